"""State merger: combines a workflow definition with an optional execution trace."""

from typing import Dict, Optional

from ..models.core import ExecutionRecord, ExecutionTrace, WorkflowDefinition
from ..models.graph import MergeResult, UnifiedState
from .logging import get_logger

logger = get_logger(__name__)


def index_trace(trace: Optional[ExecutionTrace]) -> Dict[str, ExecutionRecord]:
    """Index trace records by state name; a repeated name keeps the last record."""
    records: Dict[str, ExecutionRecord] = {}
    if trace is None:
        return records
    for record in trace.states:
        if record.name in records:
            logger.debug(f"State '{record.name}' recorded more than once, keeping the last record")
        records[record.name] = record
    return records


def merge(definition: WorkflowDefinition, trace: Optional[ExecutionTrace] = None) -> MergeResult:
    """
    Merge definition states with their execution records.

    Produces exactly one UnifiedState per definition state, in definition
    order. States without a trace entry are reported as not executed with a
    zero duration. Trace entries naming no definition state are dropped and
    reported as warnings.

    Args:
        definition: The parsed workflow definition
        trace: Optional execution trace

    Returns:
        MergeResult: Unified states plus data-consistency warnings
    """
    records = index_trace(trace)
    states = []

    for def_state in definition.states:
        execution = records.get(def_state.name)
        was_executed = execution is not None
        states.append(UnifiedState(
            name=def_state.name,
            type=def_state.type,
            definition=def_state,
            execution=execution,
            was_executed=was_executed,
            has_error=was_executed and execution.has_error,
            duration=execution.duration_ms if was_executed else 0
        ))

    warnings = []
    defined = {state.name for state in definition.states}
    for name in records:
        if name not in defined:
            message = f"Trace entry '{name}' does not match any state in the definition"
            logger.warning(message)
            warnings.append(message)

    executed = sum(1 for state in states if state.was_executed)
    logger.debug(f"Merged {len(states)} states, {executed} executed, {len(warnings)} warnings")

    return MergeResult(states=states, warnings=warnings)
