"""Merge, layout and edge classification for workflow visualization."""

from .exceptions import (
    VisualizerError,
    LayoutError,
    DocumentFormatError,
    ExampleNotFoundError,
    ConfigurationError,
    APIError,
)
from .logging import setup_logging, get_logger
from .merger import merge
from .error_handlers import resolve_handler
from .edges import classify_edges
from .graph_builder import build_graph, build_trace_graph, format_duration

__all__ = [
    "VisualizerError",
    "LayoutError",
    "DocumentFormatError",
    "ExampleNotFoundError",
    "ConfigurationError",
    "APIError",
    "setup_logging",
    "get_logger",
    "merge",
    "resolve_handler",
    "classify_edges",
    "build_graph",
    "build_trace_graph",
    "format_duration",
]
