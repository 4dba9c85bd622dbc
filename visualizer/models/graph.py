"""Models produced by the merge, layout and edge classification steps."""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from .core import DefinitionState, ErrorHandler, ExecutionRecord, StateKind


class EdgeClassification(str, Enum):
    """How a structural transition relates to the recorded execution."""
    EXECUTED = "executed"
    UNEXECUTED_ALTERNATIVE = "unexecuted-alternative"
    ERROR_TRIGGERED = "error-triggered"
    ERROR_UNTRIGGERED = "error-untriggered"


class UnifiedState(BaseModel):
    """A definition state merged with its optional execution record."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(..., description="State name")
    type: str = Field(..., description="State type copied from the definition")
    definition: DefinitionState = Field(..., description="Declared state")
    execution: Optional[ExecutionRecord] = Field(None, description="Execution record, present iff the state ran")
    was_executed: bool = Field(False, alias="wasExecuted", description="Whether the state ran")
    has_error: bool = Field(False, alias="hasError", description="Whether the state or one of its actions failed")
    duration: int = Field(0, description="Execution time in milliseconds")

    @property
    def kind(self) -> StateKind:
        return self.definition.kind


class MergeResult(BaseModel):
    """Unified states in definition order plus data-consistency warnings."""
    states: List[UnifiedState] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class ResolvedHandler(BaseModel):
    """The error handler that fired for a failed state."""
    handler: ErrorHandler
    next_state: Optional[str] = None


class LayoutPosition(BaseModel):
    """2-D coordinates of a node."""
    x: int = Field(..., description="Horizontal coordinate")
    y: int = Field(..., description="Vertical coordinate")


class RenderEdge(BaseModel):
    """A rendering-ready structural transition."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Unique edge id")
    source: str = Field(..., description="Source state name")
    target: str = Field(..., description="Target state name")
    classification: EdgeClassification = Field(..., description="Execution classification")
    label: Optional[str] = Field(None, description="Branch or error label")


class UnifiedStateView(BaseModel):
    """Presentation payload attached to each node."""
    model_config = ConfigDict(populate_by_name=True)

    label: str
    state: UnifiedState
    duration: int = 0
    has_error: bool = Field(False, alias="hasError")
    was_executed: bool = Field(False, alias="wasExecuted")


class RenderNode(BaseModel):
    """A positioned node for the rendering collaborator."""
    id: str
    position: LayoutPosition
    data: UnifiedStateView


class RenderGraph(BaseModel):
    """The {nodes, edges} document handed to the renderer."""
    model_config = ConfigDict(populate_by_name=True)

    nodes: List[RenderNode] = Field(default_factory=list)
    edges: List[RenderEdge] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list, description="Non-fatal data-consistency reports")
    start_state: Optional[str] = Field(None, alias="startState", description="Start state of the definition")
