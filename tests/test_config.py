"""Tests for configuration loading and the command line interface."""

import argparse
import json

import pytest
from pydantic import ValidationError

from visualizer.config import AppConfig, LogLevel, get_testing_config, load_config, reset_config, validate_config
from visualizer.core.exceptions import ConfigurationError
from visualizer.startup import (
    create_argument_parser,
    detect_command,
    examples_command,
    load_configuration,
    render_command,
)


@pytest.fixture(autouse=True)
def clean_config():
    reset_config()
    yield
    reset_config()


class TestAppConfig:
    """Test cases for configuration models."""

    def test_defaults(self):
        config = AppConfig()

        assert config.layout_level_spacing == 400
        assert config.layout_lane_spacing == 250
        assert config.log_level == LogLevel.INFO

    def test_invalid_port(self):
        with pytest.raises(ValidationError):
            AppConfig(port=70000)

    def test_invalid_spacing(self):
        with pytest.raises(ValidationError):
            AppConfig(layout_lane_spacing=0)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("WORKFLOW_VISUALIZER_PORT", "9000")
        monkeypatch.setenv("WORKFLOW_VISUALIZER_DEBUG", "yes")
        monkeypatch.setenv("WORKFLOW_VISUALIZER_LAYOUT_LEVEL_SPACING", "320")
        monkeypatch.setenv("WORKFLOW_VISUALIZER_CORS_ORIGINS", "http://a,http://b")

        config = AppConfig.from_env()

        assert config.port == 9000
        assert config.debug is True
        assert config.layout_level_spacing == 320
        assert config.cors_origins == ["http://a", "http://b"]

    def test_load_config_reads_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("WORKFLOW_VISUALIZER_EXAMPLES_DIR", raising=False)
        env_file = tmp_path / "visualizer.env"
        env_file.write_text(f"WORKFLOW_VISUALIZER_EXAMPLES_DIR={tmp_path}\n")

        try:
            config = load_config(str(env_file))
        finally:
            monkeypatch.delenv("WORKFLOW_VISUALIZER_EXAMPLES_DIR", raising=False)

        assert config.examples_dir == str(tmp_path)

    def test_validate_rejects_file_as_examples_dir(self, tmp_path):
        not_a_dir = tmp_path / "file.txt"
        not_a_dir.write_text("x")
        config = get_testing_config()
        config.examples_dir = str(not_a_dir)

        with pytest.raises(ConfigurationError):
            validate_config(config)


class TestCommandLine:
    """Test cases for CLI commands."""

    def parse(self, *argv) -> argparse.Namespace:
        return create_argument_parser().parse_args(list(argv))

    def test_overrides_applied(self, examples_dir):
        args = self.parse("--env", "testing", "--port", "9100", "--examples-dir", str(examples_dir), "examples")

        config = load_configuration(args)

        assert config.port == 9100
        assert config.examples_dir == str(examples_dir)

    def test_render_json(self, examples_dir, capsys):
        args = self.parse(
            "render",
            str(examples_dir / "email_workflow.json"),
            "--trace", str(examples_dir / "email_workflow_premium_debug.json")
        )

        render_command(args, get_testing_config())

        payload = json.loads(capsys.readouterr().out)
        assert payload["startState"] == "FetchCustomer"
        assert len(payload["nodes"]) == 6

    def test_render_summary(self, examples_dir, capsys):
        args = self.parse(
            "render",
            str(examples_dir / "error_handling_workflow.json"),
            "--trace", str(examples_dir / "error_handling_Timeout Error_debug.json"),
            "--summary"
        )

        render_command(args, get_testing_config())

        out = capsys.readouterr().out
        assert "ProcessOrder" in out
        assert "error (30.00s)" in out
        assert "[error-triggered]" in out

    def test_render_trace_only(self, examples_dir, capsys):
        args = self.parse("render", str(examples_dir / "email_workflow_standard_debug.json"), "--trace-only")

        render_command(args, get_testing_config())

        payload = json.loads(capsys.readouterr().out)
        assert payload["nodes"][0]["id"] == "0-FetchCustomer"

    def test_detect(self, examples_dir, capsys):
        detect_command(str(examples_dir / "email_workflow.json"))

        assert capsys.readouterr().out.strip().endswith(": definition")

    def test_detect_unknown_exits(self, tmp_path):
        path = tmp_path / "other.json"
        path.write_text("{}")

        with pytest.raises(SystemExit):
            detect_command(str(path))

    def test_examples(self, examples_dir, capsys):
        config = get_testing_config()
        config.examples_dir = str(examples_dir)

        examples_command(config)

        out = capsys.readouterr().out
        assert "Email: email_workflow.json" in out
        assert "  - email_workflow_premium_debug.json" in out
