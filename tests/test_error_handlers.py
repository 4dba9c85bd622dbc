"""Tests for error handler resolution."""

from conftest import make_definition, make_trace

from visualizer.core.error_handlers import matches_error_ref, resolve_handler
from visualizer.core.merger import merge


def process_state(definition, **record):
    trace = make_trace([{"name": "Process", **record}])
    return merge(definition, trace).states[0]


class TestMatchesErrorRef:
    """Test cases for the substring matcher."""

    def test_case_insensitive_substring(self):
        assert matches_error_ref("Gateway TIMEOUT after 30s", "timeout")
        assert matches_error_ref("timeout", "Timeout")

    def test_no_match(self):
        assert not matches_error_ref("Connection refused", "Timeout")

    def test_empty_values_never_match(self):
        assert not matches_error_ref("", "Timeout")
        assert not matches_error_ref("Timeout", "")


class TestResolveHandler:
    """Test cases for resolving which handler fired."""

    def test_specific_handler_matches_state_error(self, error_definition):
        """A matching errorRef wins over the default handler."""
        state = process_state(error_definition, error="Request timeout")

        resolved = resolve_handler(state)

        assert resolved is not None
        assert resolved.handler.error_ref == "Timeout"
        assert resolved.next_state == "Retry"

    def test_object_transition_target(self, error_definition):
        """Object-form transitions resolve to their nextState."""
        state = process_state(error_definition, error="connection reset by peer")

        resolved = resolve_handler(state)

        assert resolved.handler.error_ref == "Connection"
        assert resolved.next_state == "Notify"

    def test_falls_back_to_default_handler(self, error_definition):
        """Unmatched errors resolve to DefaultErrorRef."""
        state = process_state(error_definition, error="Card declined")

        resolved = resolve_handler(state)

        assert resolved.handler.error_ref == "DefaultErrorRef"
        assert resolved.next_state == "Fail"

    def test_first_declared_match_wins(self):
        """When two handlers match, the earlier declaration is chosen."""
        definition = make_definition([
            {
                "name": "Process",
                "type": "operation",
                "onErrors": [
                    {"errorRef": "DefaultErrorRef", "transition": "Fail"},
                    {"errorRef": "Connection", "transition": "First"},
                    {"errorRef": "Timeout", "transition": "Second"}
                ]
            },
            {"name": "Fail", "end": True},
            {"name": "First", "end": True},
            {"name": "Second", "end": True}
        ])
        state = process_state(definition, error="Connection Timeout")

        resolved = resolve_handler(state)

        assert resolved.handler.error_ref == "Connection"
        assert resolved.next_state == "First"

    def test_state_error_takes_precedence_over_action_error(self, error_definition):
        """The effective message is the state error when present."""
        state = process_state(
            error_definition,
            error="Timeout waiting for gateway",
            actions=[{"activityName": "charge", "error": "Connection refused"}]
        )

        assert resolve_handler(state).handler.error_ref == "Timeout"

    def test_first_action_error_is_used(self, error_definition):
        """Without a state error, the first failing action provides the message."""
        state = process_state(
            error_definition,
            actions=[
                {"activityName": "validate"},
                {"activityName": "charge", "error": "Connection refused"},
                {"activityName": "notify", "error": "Timeout"}
            ]
        )

        assert resolve_handler(state).handler.error_ref == "Connection"

    def test_no_error_resolves_nothing(self, error_definition):
        state = process_state(error_definition)

        assert state.has_error is False
        assert resolve_handler(state) is None

    def test_not_executed_resolves_nothing(self, error_definition):
        state = merge(error_definition).states[0]

        assert resolve_handler(state) is None

    def test_unhandled_error_without_default(self):
        """No match and no DefaultErrorRef means the error is unhandled."""
        definition = make_definition([
            {
                "name": "Process",
                "type": "operation",
                "onErrors": [{"errorRef": "Timeout", "transition": "Retry"}]
            },
            {"name": "Retry", "end": True}
        ])
        state = process_state(definition, error="Card declined")

        assert state.has_error is True
        assert resolve_handler(state) is None

    def test_no_handlers_declared(self):
        definition = make_definition([{"name": "Process", "type": "operation", "end": True}])
        state = process_state(definition, error="boom")

        assert resolve_handler(state) is None
