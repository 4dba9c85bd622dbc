"""Layout engine: assigns deterministic 2-D positions to workflow states."""

from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..models.core import DefinitionState, StateKind
from ..models.graph import LayoutPosition, UnifiedState
from .exceptions import LayoutError
from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_LEVEL_SPACING = 400
DEFAULT_LANE_SPACING = 250


class SlotGrid:
    """Tracks which (level, lane) slots are taken during one layout call."""

    def __init__(self):
        self._occupied: Dict[int, Set[int]] = {}

    def claim(self, level: int, lane: int) -> int:
        """Claim the first free lane at or below the requested one."""
        taken = self._occupied.setdefault(level, set())
        while lane in taken:
            lane += 1
        taken.add(lane)
        return lane


def outgoing_targets(state: DefinitionState) -> List[str]:
    """
    Transition targets in fan-out order.

    Switch states yield their data conditions then the default condition.
    Other states yield the normal transition followed by each error handler.
    """
    targets = []
    if state.kind == StateKind.SWITCH:
        for condition in state.data_conditions:
            if condition.next_state:
                targets.append(condition.next_state)
        if state.default_condition is not None and state.default_condition.next_state:
            targets.append(state.default_condition.next_state)
    else:
        next_state = state.get_next_state()
        if next_state:
            targets.append(next_state)
        for handler in state.on_errors:
            if handler.next_state:
                targets.append(handler.next_state)
    return targets


def layout(
    states: Sequence[UnifiedState],
    start_state: str,
    level_spacing: int = DEFAULT_LEVEL_SPACING,
    lane_spacing: int = DEFAULT_LANE_SPACING,
    warnings: Optional[List[str]] = None
) -> Dict[str, LayoutPosition]:
    """
    Position every state, driven by the definition graph rather than the trace.

    The traversal is a depth-first walk from the start state. A state is
    positioned the first time it is reached and never again, so cycles and
    diamond merges terminate. Level (depth) maps to x and lane to y; each
    child of a state claims the parent's lane plus its fan-out index. States
    never reached get a fallback slot based on their index.

    Args:
        states: Unified states in merge order
        start_state: Name of the traversal origin
        level_spacing: Horizontal distance between levels
        lane_spacing: Vertical distance between lanes
        warnings: Optional list that receives data-quality reports

    Returns:
        Dict[str, LayoutPosition]: Position per state name

    Raises:
        LayoutError: If the start state is not a defined state
    """
    by_name = {state.name: state for state in states}
    if start_state not in by_name:
        raise LayoutError(
            f"Start state '{start_state}' does not exist in the workflow definition",
            start_state=start_state
        )

    grid = SlotGrid()
    visited: Set[str] = set()
    positions: Dict[str, LayoutPosition] = {}

    _walk(start_state, visited, by_name, grid, positions, level_spacing, lane_spacing)

    for index, state in enumerate(states):
        if state.name in positions:
            continue
        lane = grid.claim(index, 0)
        positions[state.name] = LayoutPosition(x=index * level_spacing, y=lane * lane_spacing)
        message = f"State '{state.name}' is not reachable from start state '{start_state}'"
        logger.warning(message)
        if warnings is not None:
            warnings.append(message)

    logger.debug(f"Laid out {len(positions)} states, {len(visited)} reachable from '{start_state}'")
    return positions


def _walk(
    start_state: str,
    visited: Set[str],
    by_name: Dict[str, UnifiedState],
    grid: SlotGrid,
    positions: Dict[str, LayoutPosition],
    level_spacing: int,
    lane_spacing: int
) -> None:
    # Explicit stack in pre-order; children are pushed reversed so the first
    # declared branch is laid out (and claims its slots) first.
    stack: List[Tuple[str, int, int]] = [(start_state, 0, 0)]
    while stack:
        name, level, lane = stack.pop()
        if name in visited or name not in by_name:
            continue
        visited.add(name)

        lane = grid.claim(level, lane)
        positions[name] = LayoutPosition(x=level * level_spacing, y=lane * lane_spacing)

        targets = outgoing_targets(by_name[name].definition)
        for offset in reversed(range(len(targets))):
            stack.append((targets[offset], level + 1, lane + offset))
