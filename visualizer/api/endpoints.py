"""FastAPI REST endpoints for the workflow visualizer."""

from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field

from ..config import AppConfig
from ..core.catalog import CatalogListing, ExampleCatalog
from ..core.exceptions import APIError, DocumentFormatError, VisualizerError, create_error_response
from ..core.graph_builder import build_graph, build_trace_graph
from ..core.loader import DocumentFormat, load_pair, parse_document
from ..core.logging import get_logger
from ..core.middleware import status_code_for_error
from ..models.core import ExecutionTrace, WorkflowDefinition
from ..models.graph import RenderGraph

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["visualizer"])

# Global instances (initialized by the application factory)
_catalog: Optional[ExampleCatalog] = None
_config: Optional[AppConfig] = None


def init_dependencies(catalog: ExampleCatalog, config: AppConfig):
    """Initialize the global dependencies."""
    global _catalog, _config
    _catalog = catalog
    _config = config


def get_catalog() -> ExampleCatalog:
    """Dependency to get the example catalog."""
    if _catalog is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Example catalog not initialized"
        )
    return _catalog


def get_app_config() -> AppConfig:
    """Dependency to get the application configuration."""
    if _config is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Configuration not initialized"
        )
    return _config


# Request/Response models
class VisualizeRequest(BaseModel):
    """A definition and an optional trace to merge."""
    definition: WorkflowDefinition = Field(..., description="Workflow definition")
    trace: Optional[ExecutionTrace] = Field(None, description="Execution trace")


class DetectResponse(BaseModel):
    """Result of format auto-detection for an uploaded file."""
    model_config = ConfigDict(populate_by_name=True)

    filename: Optional[str] = Field(None, description="Uploaded file name")
    format: DocumentFormat = Field(..., description="Detected document format")
    state_count: int = Field(..., alias="stateCount", description="Number of states in the document")


def _http_error(error: VisualizerError) -> HTTPException:
    return HTTPException(status_code=status_code_for_error(error), detail=create_error_response(error))


def _unexpected(action: str, error: Exception) -> HTTPException:
    logger.error(f"Unexpected error while {action}: {str(error)}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "InternalError",
            "message": f"An unexpected error occurred while {action}",
            "details": {"original_error": str(error)},
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    )


async def _read_upload(upload: UploadFile, config: AppConfig) -> bytes:
    raw = await upload.read()
    if len(raw) > config.max_upload_bytes:
        raise APIError(
            f"File '{upload.filename}' exceeds the {config.max_upload_bytes} byte upload limit",
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            endpoint="upload"
        )
    return raw


# Endpoints

@router.post(
    "/visualize",
    response_model=RenderGraph,
    summary="Visualize a workflow",
    description="Merge a definition with an optional trace and return the laid-out graph"
)
async def visualize(
    request: VisualizeRequest,
    config: AppConfig = Depends(get_app_config)
) -> RenderGraph:
    """
    Build the render graph for a definition and optional trace.

    Raises:
        HTTPException: If the start state is missing or layout fails
    """
    try:
        return build_graph(
            request.definition,
            request.trace,
            level_spacing=config.layout_level_spacing,
            lane_spacing=config.layout_lane_spacing
        )
    except VisualizerError as e:
        logger.warning(f"Visualization failed: {e.message}")
        raise _http_error(e)
    except Exception as e:
        raise _unexpected("building the graph", e)


@router.post(
    "/visualize/trace",
    response_model=RenderGraph,
    summary="Visualize a trace without its definition"
)
async def visualize_trace(trace: ExecutionTrace) -> RenderGraph:
    """Render the executed states of a trace in execution order."""
    try:
        return build_trace_graph(trace)
    except Exception as e:
        raise _unexpected("building the trace graph", e)


@router.post(
    "/documents/detect",
    response_model=DetectResponse,
    summary="Detect the format of an uploaded document"
)
async def detect_document(
    file: UploadFile = File(..., description="Definition or trace JSON file"),
    config: AppConfig = Depends(get_app_config)
) -> DetectResponse:
    """Tell whether an uploaded file is a definition or a trace."""
    try:
        raw = await _read_upload(file, config)
        document_format, document = parse_document(raw, file.filename)
        return DetectResponse(
            filename=file.filename,
            format=document_format,
            state_count=len(document.states)
        )
    except VisualizerError as e:
        logger.warning(f"Rejected upload {file.filename}: {e.message}")
        raise _http_error(e)


@router.post(
    "/visualize/upload",
    response_model=RenderGraph,
    summary="Visualize uploaded files",
    description="Upload a definition file and an optional trace file"
)
async def visualize_upload(
    definition: UploadFile = File(..., description="Workflow definition JSON file"),
    trace: Optional[UploadFile] = File(None, description="Execution trace JSON file"),
    config: AppConfig = Depends(get_app_config)
) -> RenderGraph:
    """Build the render graph from uploaded files."""
    try:
        definition_format, definition_doc = parse_document(
            await _read_upload(definition, config), definition.filename
        )
        if definition_format != DocumentFormat.DEFINITION:
            raise DocumentFormatError(
                f"Expected a workflow definition, got a {definition_format.value}",
                filename=definition.filename
            )

        trace_doc = None
        if trace is not None:
            trace_format, trace_doc = parse_document(await _read_upload(trace, config), trace.filename)
            if trace_format != DocumentFormat.TRACE:
                raise DocumentFormatError(
                    f"Expected an execution trace, got a {trace_format.value}",
                    filename=trace.filename
                )

        return build_graph(
            definition_doc,
            trace_doc,
            level_spacing=config.layout_level_spacing,
            lane_spacing=config.layout_lane_spacing
        )
    except VisualizerError as e:
        logger.warning(f"Upload visualization failed: {e.message}")
        raise _http_error(e)


@router.get(
    "/examples",
    response_model=CatalogListing,
    summary="List example workflows and traces"
)
async def list_examples(catalog: ExampleCatalog = Depends(get_catalog)) -> CatalogListing:
    """List the catalog's definitions, traces and suggested pairings."""
    return catalog.listing()


@router.get(
    "/examples/{workflow}/graph",
    response_model=RenderGraph,
    summary="Visualize an example workflow",
    description="Build the graph for a catalog definition, optionally merged with a catalog trace"
)
async def example_graph(
    workflow: str,
    trace: Optional[str] = Query(None, description="Trace file name from the catalog"),
    catalog: ExampleCatalog = Depends(get_catalog),
    config: AppConfig = Depends(get_app_config)
) -> RenderGraph:
    """Load catalog files concurrently, then merge and lay them out."""
    try:
        definition_path = catalog.resolve(workflow)
        trace_path = catalog.resolve(trace) if trace else None

        definition, trace_doc = await load_pair(definition_path, trace_path)
        logger.info(f"Loaded example {workflow}" + (f" with trace {trace}" if trace else ""))

        return build_graph(
            definition,
            trace_doc,
            level_spacing=config.layout_level_spacing,
            lane_spacing=config.layout_lane_spacing
        )
    except VisualizerError as e:
        logger.warning(f"Example visualization failed: {e.message}")
        raise _http_error(e)
