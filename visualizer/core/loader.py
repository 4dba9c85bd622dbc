"""Loading and format detection for definition and trace documents."""

import asyncio
import json
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Tuple, Union
from pydantic import ValidationError

from ..models.core import ExecutionTrace, WorkflowDefinition
from .exceptions import DocumentFormatError
from .logging import get_logger

logger = get_logger(__name__)


class DocumentFormat(str, Enum):
    """Kinds of JSON documents the visualizer accepts."""
    DEFINITION = "definition"
    TRACE = "trace"
    UNKNOWN = "unknown"


def detect_format(payload: Any) -> DocumentFormat:
    """
    Guess whether a decoded JSON document is a definition or a trace.

    A definition carries `states`, `version` and `specVersion`; a trace
    carries `states` whose first entry has a `startTime`.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("states"), list):
        return DocumentFormat.UNKNOWN
    if payload.get("version") and payload.get("specVersion"):
        return DocumentFormat.DEFINITION
    states = payload["states"]
    if states and isinstance(states[0], dict) and states[0].get("startTime"):
        return DocumentFormat.TRACE
    return DocumentFormat.UNKNOWN


def decode_json(raw: Union[bytes, str], filename: Optional[str] = None) -> Any:
    """Decode JSON text, raising DocumentFormatError on malformed input."""
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DocumentFormatError(f"Invalid JSON document: {str(e)}", filename=filename)


def parse_definition(payload: Any, filename: Optional[str] = None) -> WorkflowDefinition:
    """Validate a decoded payload as a workflow definition."""
    try:
        return WorkflowDefinition.model_validate(payload)
    except ValidationError as e:
        raise DocumentFormatError(
            "Document is not a valid workflow definition",
            filename=filename,
            validation_errors=_describe(e)
        )


def parse_trace(payload: Any, filename: Optional[str] = None) -> ExecutionTrace:
    """Validate a decoded payload as an execution trace."""
    try:
        return ExecutionTrace.model_validate(payload)
    except ValidationError as e:
        raise DocumentFormatError(
            "Document is not a valid execution trace",
            filename=filename,
            validation_errors=_describe(e)
        )


def parse_document(
    raw: Union[bytes, str],
    filename: Optional[str] = None
) -> Tuple[DocumentFormat, Union[WorkflowDefinition, ExecutionTrace]]:
    """
    Decode and auto-detect an uploaded document.

    Raises:
        DocumentFormatError: If the JSON is invalid or the format is unrecognized
    """
    payload = decode_json(raw, filename)
    document_format = detect_format(payload)
    logger.debug(f"Detected format '{document_format.value}' for {filename or 'document'}")

    if document_format == DocumentFormat.DEFINITION:
        return document_format, parse_definition(payload, filename)
    if document_format == DocumentFormat.TRACE:
        return document_format, parse_trace(payload, filename)
    raise DocumentFormatError("Unrecognized file format", filename=filename)


def load_definition(path: Union[str, Path]) -> WorkflowDefinition:
    """Read and validate a workflow definition file."""
    path = Path(path)
    return parse_definition(decode_json(_read(path), path.name), path.name)


def load_trace(path: Union[str, Path]) -> ExecutionTrace:
    """Read and validate an execution trace file."""
    path = Path(path)
    return parse_trace(decode_json(_read(path), path.name), path.name)


async def load_pair(
    definition_path: Union[str, Path],
    trace_path: Optional[Union[str, Path]] = None
) -> Tuple[WorkflowDefinition, Optional[ExecutionTrace]]:
    """
    Load a definition and its optional trace concurrently.

    Both reads complete before this returns, so callers never merge
    against a half-loaded pair.
    """
    if trace_path is None:
        definition = await asyncio.to_thread(load_definition, definition_path)
        return definition, None

    definition, trace = await asyncio.gather(
        asyncio.to_thread(load_definition, definition_path),
        asyncio.to_thread(load_trace, trace_path)
    )
    return definition, trace


def _read(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise DocumentFormatError(f"Failed to read {path.name}: {str(e)}", filename=path.name)


def _describe(error: ValidationError) -> list:
    return [
        f"{'.'.join(str(part) for part in item['loc']) or '<root>'}: {item['msg']}"
        for item in error.errors()
    ]
