"""Command line interface for the workflow visualizer."""

import sys
import argparse
import asyncio

from visualizer.config import (
    AppConfig,
    load_config,
    get_development_config,
    get_production_config,
    get_testing_config,
    validate_config
)
from visualizer.core.catalog import ExampleCatalog
from visualizer.core.exceptions import ConfigurationError, VisualizerError
from visualizer.core.graph_builder import build_graph, build_trace_graph, format_duration
from visualizer.core.loader import DocumentFormat, decode_json, detect_format, load_pair, load_trace
from visualizer.core.logging import get_logger, setup_logging

PRESETS = {
    "development": get_development_config,
    "production": get_production_config,
    "testing": get_testing_config,
}

# argparse destination -> AppConfig field
OVERRIDES = {
    "host": "host",
    "port": "port",
    "reload": "reload",
    "examples_dir": "examples_dir",
    "log_level": "log_level",
    "log_file": "log_file",
    "debug": "debug",
}

SHOWN_SETTINGS = (
    ("App Name", "app_name"),
    ("Version", "app_version"),
    ("Debug", "debug"),
    ("Host", "host"),
    ("Port", "port"),
    ("Examples Directory", "examples_dir"),
    ("Level Spacing", "layout_level_spacing"),
    ("Lane Spacing", "layout_lane_spacing"),
    ("Max Upload Bytes", "max_upload_bytes"),
    ("Log Level", "log_level"),
)


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        description="Workflow Visualizer - merge workflow definitions with execution traces"
    )

    parser.add_argument("--host", help="Host to bind the server to (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Port to bind the server to (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    parser.add_argument("--env", choices=sorted(PRESETS), help="Environment configuration preset")
    parser.add_argument("--config", help="Path to a .env configuration file")
    parser.add_argument("--examples-dir", help="Directory holding example definitions and traces")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level"
    )
    parser.add_argument("--log-file", help="Path to log file")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run the visualizer server")
    run_parser.add_argument("--workers", type=int, default=1, help="Number of worker processes (default: 1)")

    render_parser = subparsers.add_parser("render", help="Render a graph as JSON on stdout")
    render_parser.add_argument("definition", help="Workflow definition file, or a trace file with --trace-only")
    render_parser.add_argument("--trace", help="Execution trace file to merge")
    render_parser.add_argument("--trace-only", action="store_true", help="Render a trace without a definition")
    render_parser.add_argument("--summary", action="store_true", help="Print a per-state summary instead of JSON")

    detect_parser = subparsers.add_parser("detect", help="Detect whether a file is a definition or a trace")
    detect_parser.add_argument("file", help="JSON file to inspect")

    subparsers.add_parser("examples", help="List the example catalog")

    health_parser = subparsers.add_parser("health", help="Run health checks")
    health_parser.add_argument("--detailed", action="store_true", help="Run the registered health checks")

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="config_command", help="Config commands")
    config_subparsers.add_parser("show", help="Show current configuration")
    config_subparsers.add_parser("validate", help="Validate configuration")

    return parser


def load_configuration(args: argparse.Namespace) -> AppConfig:
    """
    Resolve settings: a preset or the environment first, then command line flags.

    Flags that were not given leave the underlying value alone. The result is
    re-validated so a bad flag fails the same way a bad environment variable does.
    """
    if args.env:
        config = PRESETS[args.env]()
    else:
        config = load_config(args.config)

    updates = {
        field: getattr(args, dest)
        for dest, field in OVERRIDES.items()
        if getattr(args, dest, None)
    }
    return AppConfig.model_validate({**config.model_dump(), **updates})


def run_server(config: AppConfig, workers: int = 1):
    """Run the visualizer server."""
    import uvicorn
    from visualizer.factory import create_app

    logger = get_logger(__name__)
    logger.info(f"Starting server on {config.host}:{config.port} with {workers} worker(s)")

    uvicorn_config = config.get_uvicorn_config()
    if workers > 1 or config.reload:
        # Worker processes build their own app from the environment.
        uvicorn.run("visualizer.factory:create_app", factory=True, workers=workers, **uvicorn_config)
    else:
        uvicorn.run(create_app(config), **uvicorn_config)


def render_command(args: argparse.Namespace, config: AppConfig):
    """Render a definition (and optional trace) to stdout."""
    if args.trace_only:
        graph = build_trace_graph(load_trace(args.definition))
    else:
        definition, trace = asyncio.run(load_pair(args.definition, args.trace))
        graph = build_graph(
            definition,
            trace,
            level_spacing=config.layout_level_spacing,
            lane_spacing=config.layout_lane_spacing
        )

    if not args.summary:
        print(graph.model_dump_json(by_alias=True, indent=2))
        return

    for node in graph.nodes:
        view = node.data
        if not view.was_executed:
            status = "not executed"
        else:
            status = f"{'error' if view.has_error else 'ok'} ({format_duration(view.duration)})"
        print(f"  {view.label:<32} ({node.position.x:>5}, {node.position.y:>5})  {status}")
    for edge in graph.edges:
        print(f"  {edge.source} -> {edge.target}  [{edge.classification.value}]")
    for warning in graph.warnings:
        print(f"  warning: {warning}")


def detect_command(path: str):
    """Print the detected format of a file; exit 1 when it is neither kind."""
    with open(path, "rb") as handle:
        document_format = detect_format(decode_json(handle.read(), path))
    print(f"{path}: {document_format.value}")
    if document_format == DocumentFormat.UNKNOWN:
        sys.exit(1)


def examples_command(config: AppConfig):
    """List the example catalog."""
    listing = ExampleCatalog(config.examples_dir).listing()
    if not listing.pairings:
        print(f"No workflow definitions found in {config.examples_dir}")
        return
    for entry in listing.pairings:
        print(f"{entry.name}: {entry.workflow}")
        for trace in entry.traces:
            print(f"  - {trace}")


async def run_health_check(config: AppConfig, detailed: bool = False):
    """Print service status, or run the registered checks with --detailed."""
    if not detailed:
        print(f"Service: {config.app_name}")
        print(f"Version: {config.app_version}")
        return

    from visualizer.core.health import health_checker
    from visualizer.factory import initialize_components

    initialize_components(config, get_logger(__name__))
    results = await health_checker.run_all_checks()

    print(f"Overall Status: {results['overall_status']}")
    for check_name, result in results["checks"].items():
        print(f"  {check_name}: {result.get('status', 'unknown')} - {result.get('message', 'No message')}")

    if results["overall_status"] != "healthy":
        sys.exit(1)


def show_configuration(config: AppConfig):
    """Show current configuration."""
    print("Current Configuration:")
    for label, field in SHOWN_SETTINGS:
        value = getattr(config, field)
        print(f"  {label}: {getattr(value, 'value', value)}")


def validate_configuration_command(config: AppConfig):
    """Validate configuration and show results."""
    try:
        validate_config(config)
    except ConfigurationError as e:
        print("Configuration validation: FAILED")
        print(f"Error: {e.message}")
        sys.exit(1)
    print("Configuration validation: PASSED")


def main():
    """Main entry point for the application."""
    parser = create_argument_parser()
    args = parser.parse_args()

    try:
        config = load_configuration(args)
        validate_config(config)

        if args.command in ("render", "detect", "examples"):
            setup_logging(level="WARNING")

        if args.command in ("run", None):
            run_server(config, getattr(args, "workers", 1))
        elif args.command == "render":
            render_command(args, config)
        elif args.command == "detect":
            detect_command(args.file)
        elif args.command == "examples":
            examples_command(config)
        elif args.command == "health":
            asyncio.run(run_health_check(config, args.detailed))
        elif args.config_command == "show":
            show_configuration(config)
        elif args.config_command == "validate":
            validate_configuration_command(config)
        else:
            print("Configuration command required. Use --help for options.")
            sys.exit(1)

    except VisualizerError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
