"""Data models for the workflow visualizer."""

from .core import (
    DEFAULT_CONDITION,
    DEFAULT_ERROR_REF,
    StateKind,
    Transition,
    FunctionRef,
    DefinitionAction,
    DataCondition,
    DefaultCondition,
    ErrorHandler,
    DefinitionState,
    WorkflowDefinition,
    ActionRecord,
    ExecutionRecord,
    ExecutionTrace,
)
from .graph import (
    EdgeClassification,
    UnifiedState,
    MergeResult,
    ResolvedHandler,
    LayoutPosition,
    RenderEdge,
    UnifiedStateView,
    RenderNode,
    RenderGraph,
)

__all__ = [
    "DEFAULT_CONDITION",
    "DEFAULT_ERROR_REF",
    "StateKind",
    "Transition",
    "FunctionRef",
    "DefinitionAction",
    "DataCondition",
    "DefaultCondition",
    "ErrorHandler",
    "DefinitionState",
    "WorkflowDefinition",
    "ActionRecord",
    "ExecutionRecord",
    "ExecutionTrace",
    "EdgeClassification",
    "UnifiedState",
    "MergeResult",
    "ResolvedHandler",
    "LayoutPosition",
    "RenderEdge",
    "UnifiedStateView",
    "RenderNode",
    "RenderGraph",
]
