"""Edge classifier: one rendering-ready edge per declared transition."""

from typing import List, Optional, Sequence, Set

from ..models.core import DEFAULT_CONDITION, StateKind
from ..models.graph import EdgeClassification, RenderEdge, UnifiedState
from .error_handlers import resolve_handler
from .logging import get_logger

logger = get_logger(__name__)


def edge_id(source: str, discriminator: str) -> str:
    """Build the edge id from the source state and the transition discriminator."""
    return f"{source}-{discriminator}"


def claim_edge_id(claimed: Set[str], source: str, discriminator: str, index: int) -> str:
    """
    Reserve a unique id for an edge of ``source``.

    A discriminator already used on the same state (a repeated condition name
    or errorRef) is suffixed with the transition's declaration index.
    """
    candidate = edge_id(source, discriminator)
    suffix = index
    while candidate in claimed:
        candidate = edge_id(source, f"{discriminator}-{suffix}")
        suffix += 1
    claimed.add(candidate)
    return candidate


def classify_edges(
    states: Sequence[UnifiedState],
    warnings: Optional[List[str]] = None
) -> List[RenderEdge]:
    """
    Emit and classify an edge for every structural transition.

    Switch states get one edge per data condition plus one for the default
    condition. Other states get their normal transition edge followed by one
    edge per declared error handler.

    Args:
        states: Unified states in merge order
        warnings: Optional list that receives data-consistency reports

    Returns:
        List[RenderEdge]: Edges in state order, then declaration order
    """
    edges: List[RenderEdge] = []
    for state in states:
        if state.kind == StateKind.SWITCH:
            edges.extend(_switch_edges(state, warnings))
        else:
            edges.extend(_operation_edges(state))
    return edges


def _switch_edges(state: UnifiedState, warnings: Optional[List[str]]) -> List[RenderEdge]:
    definition = state.definition
    matched = state.execution.matched_condition if state.execution is not None else None
    edges = []

    if state.was_executed and matched is None:
        message = f"Switch state '{state.name}' ran but its trace entry names no matched condition"
        logger.warning(message)
        if warnings is not None:
            warnings.append(message)

    default = definition.default_condition
    has_default_edge = default is not None and bool(default.next_state)
    claimed: Set[str] = set()
    if has_default_edge:
        # The default edge owns both its id and the "default" marker.
        claimed.add(edge_id(state.name, DEFAULT_CONDITION))
        if matched == DEFAULT_CONDITION:
            matched = None

    branch_taken = False
    for index, condition in enumerate(definition.data_conditions):
        if not condition.next_state:
            continue
        # Only the first of several conditions sharing a name can be the taken branch.
        taken = state.was_executed and not branch_taken and matched == condition.name
        branch_taken = branch_taken or taken
        edges.append(RenderEdge(
            id=claim_edge_id(claimed, state.name, condition.name, index),
            source=state.name,
            target=condition.next_state,
            classification=EdgeClassification.EXECUTED if taken else EdgeClassification.UNEXECUTED_ALTERNATIVE,
            label=condition.name
        ))

    if has_default_edge:
        taken = state.was_executed and state.execution.matched_condition == DEFAULT_CONDITION
        edges.append(RenderEdge(
            id=edge_id(state.name, DEFAULT_CONDITION),
            source=state.name,
            target=default.next_state,
            classification=EdgeClassification.EXECUTED if taken else EdgeClassification.UNEXECUTED_ALTERNATIVE,
            label=DEFAULT_CONDITION
        ))

    return edges


def _operation_edges(state: UnifiedState) -> List[RenderEdge]:
    definition = state.definition
    edges = []
    claimed: Set[str] = set()

    next_state = definition.get_next_state()
    if next_state:
        taken = state.was_executed and not state.has_error
        edges.append(RenderEdge(
            id=claim_edge_id(claimed, state.name, "next", 0),
            source=state.name,
            target=next_state,
            classification=EdgeClassification.EXECUTED if taken else EdgeClassification.UNEXECUTED_ALTERNATIVE
        ))

    resolved = resolve_handler(state)
    for index, handler in enumerate(definition.on_errors):
        if not handler.next_state:
            continue
        # Identity, not equality: only one of two handlers sharing an errorRef fires.
        triggered = resolved is not None and resolved.handler is handler
        edges.append(RenderEdge(
            id=claim_edge_id(claimed, state.name, f"error-{handler.error_ref}", index),
            source=state.name,
            target=handler.next_state,
            classification=EdgeClassification.ERROR_TRIGGERED if triggered else EdgeClassification.ERROR_UNTRIGGERED,
            label=f"error: {handler.error_ref}"
        ))

    return edges
