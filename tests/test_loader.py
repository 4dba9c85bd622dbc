"""Tests for document loading, format detection and the example catalog."""

import asyncio
import json

import pytest

from visualizer.core.catalog import ExampleCatalog, pairing_prefix
from visualizer.core.exceptions import DocumentFormatError, ExampleNotFoundError
from visualizer.core.loader import (
    DocumentFormat,
    detect_format,
    load_definition,
    load_pair,
    parse_document,
)
from visualizer.models.core import ExecutionTrace, WorkflowDefinition


DEFINITION = {
    "version": "1.0",
    "specVersion": "0.8",
    "start": "A",
    "states": [{"name": "A", "type": "operation", "end": True}]
}
TRACE = {
    "states": [{"name": "A", "startTime": "2024-01-01T00:00:00Z", "endTime": "2024-01-01T00:00:01Z"}]
}


class TestDetectFormat:
    """Test cases for format auto-detection."""

    def test_definition(self):
        assert detect_format(DEFINITION) == DocumentFormat.DEFINITION

    def test_trace(self):
        assert detect_format(TRACE) == DocumentFormat.TRACE

    @pytest.mark.parametrize("payload", [
        [],
        {"foo": "bar"},
        {"states": []},
        {"states": [{"name": "A"}]},
        {"version": "1.0", "states": [{"name": "A"}]},
        {"states": "nope"},
    ])
    def test_unknown(self, payload):
        assert detect_format(payload) == DocumentFormat.UNKNOWN


class TestParseDocument:
    """Test cases for decoding uploaded documents."""

    def test_parses_definition(self):
        document_format, document = parse_document(json.dumps(DEFINITION), "def.json")

        assert document_format == DocumentFormat.DEFINITION
        assert isinstance(document, WorkflowDefinition)
        assert document.start == "A"

    def test_parses_trace(self):
        document_format, document = parse_document(json.dumps(TRACE).encode())

        assert document_format == DocumentFormat.TRACE
        assert isinstance(document, ExecutionTrace)
        assert document.states[0].duration_ms == 1000

    def test_unrecognized_format(self):
        with pytest.raises(DocumentFormatError) as exc_info:
            parse_document('{"hello": "world"}', "mystery.json")

        assert exc_info.value.message == "Unrecognized file format"
        assert exc_info.value.context["filename"] == "mystery.json"

    def test_invalid_json(self):
        with pytest.raises(DocumentFormatError):
            parse_document("{not json", "broken.json")

    def test_invalid_definition_lists_validation_errors(self):
        payload = dict(DEFINITION, states=[{"name": "A"}, {"name": "A"}])

        with pytest.raises(DocumentFormatError) as exc_info:
            parse_document(json.dumps(payload), "dupes.json")

        assert exc_info.value.details["validation_errors"]

    def test_start_object_form(self):
        payload = dict(DEFINITION, start={"stateName": "A"})

        _, document = parse_document(json.dumps(payload))

        assert document.start == "A"


class TestLoadFiles:
    """Test cases for loading documents from disk."""

    def test_load_definition(self, examples_dir):
        definition = load_definition(examples_dir / "email_workflow.json")

        assert definition.start == "FetchCustomer"
        assert definition.get_state("CheckTier").default_condition.next_state == "SendStandardEmail"

    def test_function_refs(self, examples_dir):
        definition = load_definition(examples_dir / "error_handling_workflow.json")

        charge = definition.get_state("ProcessOrder").actions[0]
        ship = definition.get_state("ShipOrder").actions[0]

        assert charge.function_name == "chargeCard"
        assert charge.arguments == {"amount": "${ .amount }"}
        assert ship.function_name == "createShipment"
        assert ship.arguments == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(DocumentFormatError):
            load_definition(tmp_path / "missing.json")

    def test_load_pair(self, examples_dir):
        definition, trace = asyncio.run(load_pair(
            examples_dir / "email_workflow.json",
            examples_dir / "email_workflow_standard_debug.json"
        ))

        assert definition.name == "Email Workflow"
        assert [record.name for record in trace.states][0] == "FetchCustomer"

    def test_load_pair_without_trace(self, examples_dir):
        definition, trace = asyncio.run(load_pair(examples_dir / "error_handling_workflow.json"))

        assert definition.start == "ProcessOrder"
        assert trace is None

    def test_load_pair_propagates_trace_failure(self, examples_dir, tmp_path):
        broken = tmp_path / "broken.json"
        broken.write_text("{")

        with pytest.raises(DocumentFormatError):
            asyncio.run(load_pair(examples_dir / "email_workflow.json", broken))


class TestExampleCatalog:
    """Test cases for the example catalog."""

    def test_pairing_prefix(self):
        assert pairing_prefix("email_workflow.json") == "email"
        assert pairing_prefix("custom.json") == "custom"

    def test_listing_pairs_traces_with_definitions(self, examples_dir):
        listing = ExampleCatalog(examples_dir).listing()
        pairings = {entry.workflow: entry for entry in listing.pairings}

        assert set(listing.definitions) == {"email_workflow.json", "error_handling_workflow.json"}
        assert len(listing.traces) == 4
        assert pairings["email_workflow.json"].name == "Email"
        assert sorted(pairings["email_workflow.json"].traces) == [
            "email_workflow_premium_debug.json",
            "email_workflow_standard_debug.json"
        ]
        assert pairings["error_handling_workflow.json"].name == "Error Handling"
        assert len(pairings["error_handling_workflow.json"].traces) == 2

    def test_longest_prefix_wins(self):
        definitions = ["order_workflow.json", "order_retry_workflow.json"]

        assert ExampleCatalog.find_definition_for("order_retry_run1.json", definitions) == "order_retry_workflow.json"
        assert ExampleCatalog.find_definition_for("order_run1.json", definitions) == "order_workflow.json"
        assert ExampleCatalog.find_definition_for("other.json", definitions) is None

    def test_unreadable_files_are_unknown(self, tmp_path):
        (tmp_path / "bad.json").write_text("{")
        (tmp_path / "def_workflow.json").write_text(json.dumps(DEFINITION))

        catalog = ExampleCatalog(tmp_path)

        assert catalog.scan() == {
            "bad.json": DocumentFormat.UNKNOWN,
            "def_workflow.json": DocumentFormat.DEFINITION
        }

    def test_missing_directory(self, tmp_path):
        catalog = ExampleCatalog(tmp_path / "nope")

        assert catalog.exists() is False
        assert catalog.listing().definitions == []

    def test_resolve(self, examples_dir):
        path = ExampleCatalog(examples_dir).resolve("email_workflow.json")

        assert path.name == "email_workflow.json"

    def test_resolve_missing(self, examples_dir):
        with pytest.raises(ExampleNotFoundError):
            ExampleCatalog(examples_dir).resolve("nope.json")

    def test_resolve_refuses_traversal(self, tmp_path):
        (tmp_path / "secret.json").write_text("{}")
        catalog_dir = tmp_path / "catalog"
        catalog_dir.mkdir()

        with pytest.raises(ExampleNotFoundError):
            ExampleCatalog(catalog_dir).resolve("../secret.json")
