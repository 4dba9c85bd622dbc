"""Application factory for creating FastAPI instances."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import AppConfig, get_config, validate_config
from .core.catalog import ExampleCatalog
from .core.health import health_checker
from .core.logging import setup_logging, get_logger
from .core.middleware import ErrorHandlingMiddleware, PerformanceMonitoringMiddleware
from .api.endpoints import router, init_dependencies


class ApplicationState:
    """Components shared by the routes of the running application."""

    def __init__(self):
        self.config: Optional[AppConfig] = None
        self.catalog: Optional[ExampleCatalog] = None


app_state = ApplicationState()


def setup_health_checks(catalog: ExampleCatalog, config: AppConfig) -> None:
    """Register the catalog readability check."""

    def check_examples_directory():
        if not catalog.exists():
            raise FileNotFoundError(f"Examples directory not found: {catalog.directory}")
        listing = catalog.listing()
        return {
            "status": "healthy",
            "message": "Example catalog readable",
            "definitions": len(listing.definitions),
            "traces": len(listing.traces)
        }

    health_checker.clear()
    health_checker.register_check("examples_directory", check_examples_directory, timeout=config.health_check_timeout)


def initialize_components(config: AppConfig, logger) -> ExampleCatalog:
    """Create the example catalog and hand it to the API layer."""
    catalog = ExampleCatalog(config.examples_dir)
    if not catalog.exists():
        logger.warning(f"Examples directory {config.examples_dir} does not exist, catalog will be empty")

    init_dependencies(catalog=catalog, config=config)
    setup_health_checks(catalog, config)

    app_state.config = config
    app_state.catalog = catalog
    logger.info(f"Serving examples from {catalog.directory}")
    return catalog


def create_lifespan_handler(config: AppConfig):
    """Startup and shutdown logging; components are wired before the app starts."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger = get_logger(__name__)
        logger.info(f"Starting {config.app_name} v{config.app_version}")
        yield
        logger.info(f"Shutting down {config.app_name}")

    return lifespan


def create_health_router(config: AppConfig) -> APIRouter:
    """Root, liveness and health endpoints."""
    health = APIRouter(tags=["health"])
    service = config.app_name.lower().replace(" ", "-")

    @health.get("/")
    async def root():
        return {"message": f"{config.app_name} is running", "version": config.app_version}

    @health.get("/health")
    async def health_check():
        return {"status": "healthy", "service": service, "version": config.app_version}

    @health.get("/health/detailed")
    async def detailed_health_check():
        """Run every registered check; 503 when any of them fails."""
        results = await health_checker.run_all_checks()
        return JSONResponse(
            status_code=200 if results["overall_status"] == "healthy" else 503,
            content={"service": service, "version": config.app_version, **results}
        )

    @health.get("/health/live")
    async def liveness_check():
        return {"alive": True, "timestamp": datetime.now(timezone.utc).isoformat()}

    return health


def _install_middleware(app: FastAPI, config: AppConfig) -> None:
    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=config.cors_methods,
            allow_headers=["*"],
        )

    app.add_middleware(ErrorHandlingMiddleware)
    if config.enable_performance_monitoring:
        app.add_middleware(PerformanceMonitoringMiddleware, slow_request_threshold=config.slow_request_threshold)


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """
    Create and configure a FastAPI application.

    Args:
        config: Settings to use; read from the environment when omitted

    Raises:
        ConfigurationError: If the settings fail validation
    """
    if config is None:
        config = get_config()

    validate_config(config)
    setup_logging(
        level=config.log_level.value,
        log_file=config.log_file,
        log_format=config.log_format,
        structured=config.structured_logging,
        max_size=config.log_max_size,
        backup_count=config.log_backup_count
    )
    logger = get_logger(__name__)

    app = FastAPI(
        title=config.app_name,
        description="Visualizes workflow definitions merged with their execution traces",
        version=config.app_version,
        debug=config.debug,
        lifespan=create_lifespan_handler(config)
    )

    _install_middleware(app, config)
    initialize_components(config, logger)

    app.include_router(router)
    app.include_router(create_health_router(config))

    return app


def get_app_state() -> ApplicationState:
    """Get the current application state."""
    return app_state
