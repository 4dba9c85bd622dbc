"""Resolution of the error handler that fired for a failed state."""

from typing import Optional

from ..models.core import ErrorHandler
from ..models.graph import ResolvedHandler, UnifiedState


def matches_error_ref(error_message: str, error_ref: str) -> bool:
    """Case-insensitive substring match of an errorRef inside an error message."""
    if not error_message or not error_ref:
        return False
    return error_ref.lower() in error_message.lower()


def resolve_handler(state: UnifiedState) -> Optional[ResolvedHandler]:
    """
    Determine which declared error handler fired for a state.

    Specific handlers are tried first in declared order; the DefaultErrorRef
    handler is only a fallback. Returns None when the state did not fail,
    declares no handlers, or no handler matches (the error is unhandled).
    """
    if not state.has_error or state.execution is None:
        return None
    handlers = state.definition.on_errors
    if not handlers:
        return None

    error_message = state.execution.effective_error
    if not error_message:
        return None

    for handler in handlers:
        if not handler.is_default and matches_error_ref(error_message, handler.error_ref):
            return _resolved(handler)

    for handler in handlers:
        if handler.is_default:
            return _resolved(handler)

    return None


def _resolved(handler: ErrorHandler) -> ResolvedHandler:
    return ResolvedHandler(handler=handler, next_state=handler.next_state)
