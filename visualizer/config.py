"""Configuration management for the Workflow Visualizer."""

import os
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator
from enum import Enum

from .core.exceptions import ConfigurationError

ENV_PREFIX = "WORKFLOW_VISUALIZER_"


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class AppConfig(BaseModel):
    """Application configuration settings."""

    # Application settings
    app_name: str = Field(default="Workflow Visualizer", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server settings
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    reload: bool = Field(default=False, description="Enable auto-reload in development")

    # Example catalog settings
    examples_dir: str = Field(default="./examples", description="Directory holding example definitions and traces")
    max_upload_bytes: int = Field(default=5 * 1024 * 1024, description="Maximum accepted upload size in bytes")

    # Layout settings
    layout_level_spacing: int = Field(default=400, description="Horizontal distance between traversal levels")
    layout_lane_spacing: int = Field(default=250, description="Vertical distance between lanes")

    # Logging settings
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format"
    )
    log_file: Optional[str] = Field(default=None, description="Log file path")
    log_max_size: int = Field(default=10485760, description="Maximum log file size in bytes")
    log_backup_count: int = Field(default=5, description="Number of log backup files to keep")
    structured_logging: bool = Field(default=False, description="Emit logs as JSON objects")

    # Health check settings
    health_check_timeout: float = Field(default=5.0, description="Health check timeout in seconds")

    # Performance monitoring settings
    slow_request_threshold: float = Field(default=2.0, description="Slow request threshold in seconds")
    enable_performance_monitoring: bool = Field(
        default=True,
        description="Enable request timing middleware"
    )

    # Security settings
    cors_origins: list = Field(default=["*"], description="CORS allowed origins")
    cors_methods: list = Field(default=["GET", "POST"], description="CORS allowed methods")

    @field_validator('log_level', mode='before')
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    @field_validator('port')
    @classmethod
    def validate_port(cls, v):
        """Validate port number."""
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator('layout_level_spacing', 'layout_lane_spacing')
    @classmethod
    def validate_spacing(cls, v):
        """Validate layout spacing."""
        if v < 1:
            raise ValueError("Layout spacing must be a positive number of pixels")
        return v

    @field_validator('max_upload_bytes')
    @classmethod
    def validate_max_upload_bytes(cls, v):
        if v < 1:
            raise ValueError("Maximum upload size must be at least 1 byte")
        return v

    def get_uvicorn_config(self) -> Dict[str, Any]:
        """Get Uvicorn server configuration."""
        return {
            "host": self.host,
            "port": self.port,
            "reload": self.reload,
            "log_level": self.log_level.value.lower(),
            "access_log": self.debug
        }

    @classmethod
    def from_env(cls) -> 'AppConfig':
        """
        Create configuration from environment variables.

        Every field can be set through ``WORKFLOW_VISUALIZER_<FIELD_NAME>``.
        Booleans accept true/1/yes/on, lists are comma separated, and the
        remaining values are converted by the field validators.
        """
        values: Dict[str, Any] = {}
        for field_name, field in cls.model_fields.items():
            raw = os.getenv(f"{ENV_PREFIX}{field_name.upper()}")
            if raw is None:
                continue
            if field.annotation is bool:
                values[field_name] = raw.lower() in ('true', '1', 'yes', 'on')
            elif field.annotation is list:
                values[field_name] = [item.strip() for item in raw.split(',') if item.strip()]
            else:
                values[field_name] = raw
        return cls(**values)


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def load_config(config_file: Optional[str] = None) -> AppConfig:
    """Load configuration from a .env file or environment variables."""
    global _config
    from dotenv import load_dotenv

    if config_file and os.path.exists(config_file):
        load_dotenv(config_file)
    elif os.path.exists('.env'):
        load_dotenv('.env')

    _config = AppConfig.from_env()

    return _config


def reset_config():
    """Reset the global configuration instance (mainly for testing)."""
    global _config
    _config = None


def validate_config(config: AppConfig) -> None:
    """Validate configuration settings."""
    errors = []

    if config.log_file:
        log_dir = os.path.dirname(config.log_file)
        if log_dir and not os.path.exists(log_dir):
            try:
                os.makedirs(log_dir, exist_ok=True)
            except OSError as e:
                errors.append(f"Cannot create log directory {log_dir}: {e}")

    if os.path.exists(config.examples_dir) and not os.path.isdir(config.examples_dir):
        errors.append(f"Examples path is not a directory: {config.examples_dir}")

    if errors:
        raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")


# Environment-specific configurations
def get_development_config() -> AppConfig:
    """Get development configuration."""
    return AppConfig(
        debug=True,
        reload=True,
        log_level=LogLevel.DEBUG,
        enable_performance_monitoring=True
    )


def get_production_config() -> AppConfig:
    """Get production configuration."""
    return AppConfig(
        debug=False,
        reload=False,
        log_level=LogLevel.INFO,
        structured_logging=True,
        enable_performance_monitoring=True,
        cors_origins=[]
    )


def get_testing_config() -> AppConfig:
    """Get testing configuration."""
    return AppConfig(
        debug=True,
        log_level=LogLevel.WARNING,
        max_upload_bytes=64 * 1024
    )
