"""Exception hierarchy for the workflow visualizer."""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
from enum import Enum


class ErrorSeverity(Enum):
    """How much attention an error deserves."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Where an error originates."""
    VALIDATION = "validation"
    LAYOUT = "layout"
    INPUT = "input"
    NETWORK = "network"
    CONFIGURATION = "configuration"


class VisualizerError(Exception):
    """
    Base exception for all workflow visualizer errors.

    Subclasses set ``default_severity`` and ``default_category``; both can
    still be overridden per instance. ``details`` describe the failure
    itself while ``context`` names the inputs involved (file, state, ...).
    """

    default_severity = ErrorSeverity.MEDIUM
    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: Optional[ErrorSeverity] = None,
        category: Optional[ErrorCategory] = None,
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or type(self).__name__
        self.severity = severity or self.default_severity
        self.category = category or self.default_category
        self.details = dict(details or {})
        self.context = dict(context or {})
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Full description for structured logs."""
        return {
            **create_error_response(self),
            "exception_type": type(self).__name__
        }

    def add_context(self, **kwargs):
        """Attach input context, returning self for chaining."""
        self.context.update({key: value for key, value in kwargs.items() if value is not None})
        return self

    def add_details(self, **kwargs):
        """Attach failure details, returning self for chaining."""
        self.details.update(kwargs)
        return self


class LayoutError(VisualizerError):
    """Raised when a graph cannot be laid out, e.g. the start state is missing."""

    default_category = ErrorCategory.LAYOUT

    def __init__(self, message: str, start_state: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.add_context(start_state=start_state)


class DocumentFormatError(VisualizerError):
    """Raised when an input document is not valid JSON or has an unrecognized shape."""

    default_severity = ErrorSeverity.LOW
    default_category = ErrorCategory.INPUT

    def __init__(
        self,
        message: str,
        filename: Optional[str] = None,
        validation_errors: Optional[List[str]] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.validation_errors = validation_errors or []
        self.add_context(filename=filename)
        if self.validation_errors:
            self.add_details(validation_errors=self.validation_errors)


class ExampleNotFoundError(VisualizerError):
    """Raised when a catalog file does not exist or lies outside the catalog."""

    default_severity = ErrorSeverity.LOW
    default_category = ErrorCategory.INPUT

    def __init__(self, message: str, filename: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.add_context(filename=filename)


class ConfigurationError(VisualizerError):
    """Raised when configuration is invalid or missing."""

    default_severity = ErrorSeverity.HIGH
    default_category = ErrorCategory.CONFIGURATION

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.add_context(config_key=config_key)


class APIError(VisualizerError):
    """Raised by the HTTP layer itself, e.g. for oversized uploads."""

    default_category = ErrorCategory.NETWORK

    def __init__(self, message: str, status_code: int = 500, endpoint: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.add_context(endpoint=endpoint)
        self.add_details(status_code=status_code)


def create_error_response(error: VisualizerError) -> Dict[str, Any]:
    """Create the standard JSON error body for a VisualizerError."""
    return {
        "error": error.error_code,
        "message": error.message,
        "details": {
            **error.details,
            "severity": error.severity.value,
            "category": error.category.value,
            "timestamp": error.timestamp.isoformat()
        },
        "context": error.context
    }
