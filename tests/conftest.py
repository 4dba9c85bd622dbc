"""Pytest configuration and fixtures."""

from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from visualizer.config import get_testing_config
from visualizer.factory import create_app
from visualizer.models.core import ExecutionTrace, WorkflowDefinition


EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"


def make_definition(states: List[Dict[str, Any]], start: Optional[str] = None) -> WorkflowDefinition:
    """Build a definition from raw state dicts, starting at the first state by default."""
    return WorkflowDefinition.model_validate({
        "id": "test-workflow",
        "version": "1.0",
        "specVersion": "0.8",
        "name": "Test Workflow",
        "start": start if start is not None else states[0]["name"],
        "states": states
    })


def make_trace(records: List[Dict[str, Any]]) -> ExecutionTrace:
    """Build a trace from raw record dicts, filling in timestamps when missing."""
    filled = []
    for record in records:
        record = dict(record)
        record.setdefault("startTime", "2024-01-01T00:00:00.000Z")
        record.setdefault("endTime", "2024-01-01T00:00:00.250Z")
        filled.append(record)
    return ExecutionTrace.model_validate({"states": filled})


@pytest.fixture
def switch_definition() -> WorkflowDefinition:
    """Switch A with one data condition to B and a default to C."""
    return make_definition([
        {
            "name": "A",
            "type": "switch",
            "dataConditions": [
                {"name": "big", "condition": "x>10", "transition": {"nextState": "B"}}
            ],
            "defaultCondition": {"transition": {"nextState": "C"}}
        },
        {"name": "B", "type": "operation", "end": True},
        {"name": "C", "type": "operation", "end": True}
    ])


@pytest.fixture
def error_definition() -> WorkflowDefinition:
    """Operation with a normal transition and three error handlers."""
    return make_definition([
        {
            "name": "Process",
            "type": "operation",
            "transition": "Ship",
            "onErrors": [
                {"errorRef": "Timeout", "transition": "Retry"},
                {"errorRef": "Connection", "transition": {"nextState": "Notify"}},
                {"errorRef": "DefaultErrorRef", "transition": "Fail"}
            ]
        },
        {"name": "Ship", "type": "operation", "end": True},
        {"name": "Retry", "type": "operation", "end": True},
        {"name": "Notify", "type": "operation", "end": True},
        {"name": "Fail", "type": "operation", "end": True}
    ])


@pytest.fixture
def examples_dir() -> Path:
    return EXAMPLES_DIR


@pytest.fixture
def client(examples_dir):
    """Create a test client bound to the bundled examples."""
    config = get_testing_config()
    config.examples_dir = str(examples_dir)
    app = create_app(config)
    with TestClient(app) as test_client:
        yield test_client
