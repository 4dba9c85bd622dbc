"""Pydantic models for workflow definitions and execution traces."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_ERROR_REF = "DefaultErrorRef"
DEFAULT_CONDITION = "default"


def assume_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Read timezone-naive timestamps as UTC so durations can mix both forms."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class StateKind(str, Enum):
    """Closed set of state kinds the layout and edge logic understand."""
    OPERATION = "operation"
    SWITCH = "switch"
    OTHER = "other"

    @classmethod
    def from_type(cls, type_name: Optional[str]) -> "StateKind":
        """Map a free-form state type string onto a known kind."""
        if type_name == cls.OPERATION.value:
            return cls.OPERATION
        if type_name == cls.SWITCH.value:
            return cls.SWITCH
        return cls.OTHER


class WorkflowModel(BaseModel):
    """Base for models that read and write camelCase JSON."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Transition(WorkflowModel):
    """Object form of a transition."""
    next_state: str = Field(..., alias="nextState", description="Name of the state to transition to")


TransitionRef = Union[str, Transition]


def transition_target(transition: Optional[TransitionRef]) -> Optional[str]:
    """Return the target state name of a bare or object transition."""
    if transition is None:
        return None
    if isinstance(transition, str):
        return transition or None
    return transition.next_state or None


class FunctionRef(WorkflowModel):
    """Reference to a function invoked by an action."""
    ref_name: str = Field(..., alias="refName", description="Name of the referenced function")
    arguments: Dict[str, Any] = Field(default_factory=dict, description="Static arguments")


class DefinitionAction(WorkflowModel):
    """An action declared on a definition state."""
    name: Optional[str] = Field(None, description="Optional action name")
    function_ref: Optional[Union[str, FunctionRef]] = Field(
        None, alias="functionRef", description="Function reference"
    )

    @property
    def function_name(self) -> Optional[str]:
        if isinstance(self.function_ref, FunctionRef):
            return self.function_ref.ref_name
        return self.function_ref

    @property
    def arguments(self) -> Dict[str, Any]:
        if isinstance(self.function_ref, FunctionRef):
            return self.function_ref.arguments
        return {}


class DataCondition(WorkflowModel):
    """One named branch of a switch state."""
    name: str = Field(..., description="Branch name, matched against matchedCondition")
    condition: Optional[str] = Field(None, description="Condition expression")
    transition: Optional[TransitionRef] = Field(None, description="Transition taken on match")

    @property
    def next_state(self) -> Optional[str]:
        return transition_target(self.transition)


class DefaultCondition(WorkflowModel):
    """Fallback branch of a switch state."""
    transition: Optional[TransitionRef] = Field(None, description="Transition taken when no branch matches")

    @property
    def next_state(self) -> Optional[str]:
        return transition_target(self.transition)


class ErrorHandler(WorkflowModel):
    """A declared {errorRef, transition} pair."""
    error_ref: str = Field(..., alias="errorRef", description="Error reference matched against error messages")
    transition: TransitionRef = Field(..., description="Transition taken when the error fires")

    @property
    def next_state(self) -> Optional[str]:
        return transition_target(self.transition)

    @property
    def is_default(self) -> bool:
        return self.error_ref == DEFAULT_ERROR_REF


class DefinitionState(WorkflowModel):
    """One declared state of a workflow definition."""
    name: str = Field(..., description="Unique state name")
    type: str = Field("operation", description="State type (operation, switch, ...)")
    actions: List[DefinitionAction] = Field(default_factory=list, description="Ordered actions")
    transition: Optional[TransitionRef] = Field(None, description="Normal transition")
    data_conditions: List[DataCondition] = Field(
        default_factory=list, alias="dataConditions", description="Switch branches in declared order"
    )
    default_condition: Optional[DefaultCondition] = Field(
        None, alias="defaultCondition", description="Switch fallback branch"
    )
    on_errors: List[ErrorHandler] = Field(
        default_factory=list, alias="onErrors", description="Error handlers in declared order"
    )
    end: Union[bool, Dict[str, Any]] = Field(False, description="Terminal flag")

    @field_validator('name')
    @classmethod
    def validate_name(cls, name):
        """Ensure the state name is not blank."""
        if not name or not name.strip():
            raise ValueError("State name cannot be empty")
        return name

    @property
    def kind(self) -> StateKind:
        return StateKind.from_type(self.type)

    @property
    def is_terminal(self) -> bool:
        return bool(self.end)

    def get_next_state(self) -> Optional[str]:
        """Return the normal transition target, or None for terminal states."""
        if self.is_terminal:
            return None
        return transition_target(self.transition)


class WorkflowDefinition(WorkflowModel):
    """A complete workflow definition document."""
    version: Optional[str] = Field(None, description="Workflow version")
    spec_version: Optional[str] = Field(None, alias="specVersion", description="Workflow language version")
    id: Optional[str] = Field(None, description="Workflow identifier")
    name: Optional[str] = Field(None, description="Workflow name")
    description: Optional[str] = Field(None, description="Workflow description")
    start: str = Field(..., description="Name of the start state")
    states: List[DefinitionState] = Field(..., description="Declared states")

    @field_validator('start', mode='before')
    @classmethod
    def normalize_start(cls, start):
        """Accept both the bare and the object form of the start state."""
        if isinstance(start, dict):
            return start.get("stateName")
        return start

    @field_validator('states')
    @classmethod
    def validate_unique_state_names(cls, states):
        """Ensure all state names are unique."""
        names = [state.name for state in states]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"State names must be unique, duplicated: {', '.join(duplicates)}")
        return states

    def get_state(self, name: str) -> Optional[DefinitionState]:
        """Look up a state by name."""
        for state in self.states:
            if state.name == name:
                return state
        return None


class ActionRecord(WorkflowModel):
    """One executed activity inside a traced state."""
    activity_name: Optional[str] = Field(None, alias="activityName", description="Activity that ran")
    arguments: Dict[str, Any] = Field(default_factory=dict, description="Arguments the activity received")
    start_time: Optional[datetime] = Field(None, alias="startTime", description="Activity start")
    end_time: Optional[datetime] = Field(None, alias="endTime", description="Activity end")
    output: Any = Field(None, description="Activity output")
    error: Optional[str] = Field(None, description="Activity error message")

    @field_validator('start_time', 'end_time')
    @classmethod
    def timestamps_are_aware(cls, value):
        return assume_utc(value)

    @field_validator('error', mode='before')
    @classmethod
    def blank_error_is_absent(cls, error):
        return error or None


class ExecutionRecord(WorkflowModel):
    """One executed state from a trace."""
    name: str = Field(..., description="Name of the state that ran")
    type: Optional[str] = Field(None, description="State type as recorded by the runtime")
    start_time: Optional[datetime] = Field(None, alias="startTime", description="State start")
    end_time: Optional[datetime] = Field(None, alias="endTime", description="State end")
    input: Any = Field(None, description="State input payload")
    output: Any = Field(None, description="State output payload")
    actions: List[ActionRecord] = Field(default_factory=list, description="Executed activities")
    error: Optional[str] = Field(None, description="State-level error message")
    matched_condition: Optional[str] = Field(
        None, alias="matchedCondition", description="Switch branch that was taken"
    )

    @field_validator('start_time', 'end_time')
    @classmethod
    def timestamps_are_aware(cls, value):
        return assume_utc(value)

    @field_validator('error', 'matched_condition', mode='before')
    @classmethod
    def blank_is_absent(cls, value):
        return value or None

    @property
    def effective_error(self) -> Optional[str]:
        """State-level error, else the first action error in declaration order."""
        if self.error:
            return self.error
        for action in self.actions:
            if action.error:
                return action.error
        return None

    @property
    def has_error(self) -> bool:
        return self.effective_error is not None

    @property
    def duration_ms(self) -> int:
        """Elapsed time in milliseconds, 0 when either timestamp is missing."""
        if self.start_time is None or self.end_time is None:
            return 0
        return int(round((self.end_time - self.start_time).total_seconds() * 1000))


class ExecutionTrace(WorkflowModel):
    """A recorded execution: one entry per state that ran."""
    states: List[ExecutionRecord] = Field(default_factory=list, description="Executed states in order")
