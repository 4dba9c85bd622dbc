"""Assembles merged, laid-out and classified states into a render graph."""

import logging
from typing import List, Optional

from ..models.core import ExecutionTrace, StateKind, WorkflowDefinition, DefinitionState
from ..models.graph import (
    EdgeClassification,
    LayoutPosition,
    RenderEdge,
    RenderGraph,
    RenderNode,
    UnifiedState,
    UnifiedStateView,
)
from .edges import classify_edges
from .exceptions import LayoutError
from .layout import DEFAULT_LANE_SPACING, DEFAULT_LEVEL_SPACING, layout
from .logging import get_logger, log_with_context
from .merger import merge

logger = get_logger(__name__)

TRACE_COLUMNS = 3
TRACE_COLUMN_SPACING = 380
TRACE_ROW_SPACING = 220
TRACE_SWITCH_OFFSET = 50


def build_graph(
    definition: WorkflowDefinition,
    trace: Optional[ExecutionTrace] = None,
    level_spacing: int = DEFAULT_LEVEL_SPACING,
    lane_spacing: int = DEFAULT_LANE_SPACING
) -> RenderGraph:
    """
    Build the {nodes, edges} document for a definition and optional trace.

    Raises:
        LayoutError: If the definition's start state does not exist
    """
    logger.info(
        f"Building graph for workflow '{definition.name or definition.id}' "
        f"({len(definition.states)} states, trace: {'yes' if trace is not None else 'no'})"
    )

    merged = merge(definition, trace)
    warnings = list(merged.warnings)

    try:
        positions = layout(
            merged.states,
            definition.start,
            level_spacing=level_spacing,
            lane_spacing=lane_spacing,
            warnings=warnings
        )
    except LayoutError as e:
        e.add_context(workflow_name=definition.name or definition.id)
        raise
    edges = classify_edges(merged.states, warnings=warnings)

    defined = {state.name for state in merged.states}
    for edge in edges:
        if edge.target not in defined:
            message = f"Transition '{edge.id}' targets undefined state '{edge.target}'"
            logger.warning(message)
            warnings.append(message)

    nodes = [
        RenderNode(id=state.name, position=positions[state.name], data=_view(state))
        for state in merged.states
    ]

    log_with_context(
        logger,
        logging.DEBUG,
        "Graph built",
        nodes=len(nodes),
        edges=len(edges),
        warnings=len(warnings)
    )
    return RenderGraph(nodes=nodes, edges=edges, warnings=warnings, start_state=definition.start)


def build_trace_graph(trace: ExecutionTrace) -> RenderGraph:
    """
    Render a trace on its own, without a workflow definition.

    Records become executed nodes in a grid of three per row, chained by
    sequential edges. Edges leaving a failed state are error-triggered.
    """
    logger.info(f"Building trace-only graph ({len(trace.states)} records)")

    nodes: List[RenderNode] = []
    edges: List[RenderEdge] = []
    ids = [f"{index}-{record.name}" for index, record in enumerate(trace.states)]

    for index, record in enumerate(trace.states):
        state_type = record.type or "operation"
        state = UnifiedState(
            name=record.name,
            type=state_type,
            definition=DefinitionState(name=record.name, type=state_type),
            execution=record,
            was_executed=True,
            has_error=record.has_error,
            duration=record.duration_ms
        )

        row, column = divmod(index, TRACE_COLUMNS)
        y = row * TRACE_ROW_SPACING
        if state.kind == StateKind.SWITCH:
            y += TRACE_SWITCH_OFFSET
        nodes.append(RenderNode(
            id=ids[index],
            position=LayoutPosition(x=column * TRACE_COLUMN_SPACING, y=y),
            data=_view(state)
        ))

        if index < len(trace.states) - 1:
            edges.append(RenderEdge(
                id=f"{ids[index]}-next",
                source=ids[index],
                target=ids[index + 1],
                classification=(
                    EdgeClassification.ERROR_TRIGGERED if state.has_error else EdgeClassification.EXECUTED
                )
            ))

    return RenderGraph(nodes=nodes, edges=edges)


def format_duration(milliseconds: int) -> str:
    """Human readable duration: '<n>ms' below a second, else seconds with two decimals."""
    if milliseconds < 1000:
        return f"{milliseconds}ms"
    return f"{milliseconds / 1000:.2f}s"


def _view(state: UnifiedState) -> UnifiedStateView:
    return UnifiedStateView(
        label=state.name,
        state=state,
        duration=state.duration,
        has_error=state.has_error,
        was_executed=state.was_executed
    )
