"""Unit tests for CLI commands (reasoning service replaced by a fake)."""

import json

import pytest
from click.testing import CliRunner

from hyperdrafter.cli import main as cli_main


CATS = "Cats are better than dogs."
DOGS = "Dogs are loyal."


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def draft(tmp_path):
    path = tmp_path / "draft.md"
    path.write_text(f"{CATS}\n\n{DOGS}\n")
    return path


@pytest.fixture
def cli_env(monkeypatch, tmp_path, fake_client):
    """Isolate config, logging and the reasoning service."""
    for name in ("HYPERDRAFTER_LLM_API_KEY", "HYPERDRAFTER_LLM_MODEL", "HYPERDRAFTER_LLM_ENDPOINT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(
        "hyperdrafter.config.loader.DEFAULT_CONFIG_PATH", tmp_path / "no-config.yaml"
    )
    monkeypatch.setattr(cli_main, "configure_logging", lambda: None)
    monkeypatch.setattr(cli_main, "LLMClient", lambda settings: fake_client)
    monkeypatch.setenv("HYPERDRAFTER_LLM_API_KEY", "test-key")
    return monkeypatch


class TestAnalyzeCommand:
    """Test `hyperdrafter analyze`."""

    def test_renders_highlights(self, runner, draft, cli_env, fake_client, raw_span):
        fake_client.responses[CATS] = [
            raw_span("better", 9, 15, type="factual", priority="high", reasoning="Unsupported claim")
        ]

        result = runner.invoke(cli_main.cli, ["analyze", str(draft)])

        assert result.exit_code == 0, result.output
        assert sorted(fake_client.calls) == sorted([CATS, DOGS])
        assert "Unsupported claim" in result.output
        assert "1 issue(s)" in result.output
        assert "0 issue(s)" in result.output

    def test_missing_api_key(self, runner, draft, cli_env, fake_client):
        cli_env.delenv("HYPERDRAFTER_LLM_API_KEY")

        result = runner.invoke(cli_main.cli, ["analyze", str(draft)])

        assert result.exit_code == 1
        assert "API key not configured" in result.output
        assert fake_client.calls == []

    def test_failures_reported_as_warnings(self, runner, draft, cli_env, fake_client):
        fake_client.responses[CATS] = RuntimeError("boom")

        result = runner.invoke(cli_main.cli, ["analyze", str(draft)])

        assert result.exit_code == 0
        assert "Warning: p1: RuntimeError: boom" in result.output

    def test_empty_draft(self, runner, tmp_path, cli_env, fake_client):
        empty = tmp_path / "empty.md"
        empty.write_text("\n\n")

        result = runner.invoke(cli_main.cli, ["analyze", str(empty)])

        assert result.exit_code == 0
        assert "No paragraphs found" in result.output
        assert fake_client.calls == []

    def test_config_file_permissions(self, runner, draft, cli_env, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("llm:\n  api_key: secret\n")
        config.chmod(0o644)

        result = runner.invoke(cli_main.cli, ["--config", str(config), "analyze", str(draft)])

        assert result.exit_code == 1
        assert "chmod 600" in result.output


class TestSpansCommand:
    """Test `hyperdrafter spans`."""

    def test_prints_json(self, runner, draft, cli_env, fake_client, raw_span):
        fake_client.responses[CATS] = [raw_span("better", 11, 17, priority="high")]

        result = runner.invoke(cli_main.cli, ["spans", str(draft)])

        assert result.exit_code == 0, result.output
        [highlight] = json.loads(result.stdout)
        assert highlight["id"] == "highlight-p1-0"
        assert highlight["paragraph_id"] == "p1"
        assert (highlight["start_index"], highlight["end_index"]) == (9, 15)
        assert highlight["priority"] == "high"

    def test_all_failed(self, runner, draft, cli_env, fake_client):
        fake_client.responses[CATS] = RuntimeError("boom")
        fake_client.responses[DOGS] = RuntimeError("boom")

        result = runner.invoke(cli_main.cli, ["spans", str(draft)])

        assert result.exit_code == 1
        assert "Analysis failed for 2 paragraph(s)" in result.output


class TestWatchCommand:
    """Test `hyperdrafter watch`."""

    def test_analyzes_after_quiet_period(self, runner, draft, cli_env, fake_client, raw_span):
        cli_env.setenv("HYPERDRAFTER_ANALYSIS_QUIET_PERIOD_MS", "50")
        fake_client.responses[CATS] = [raw_span("better", 9, 15, reasoning="Says who?")]

        result = runner.invoke(
            cli_main.cli,
            ["watch", str(draft), "--interval", "0.05", "--duration", "0.6"],
        )

        assert result.exit_code == 0, result.output
        assert sorted(fake_client.calls) == sorted([CATS, DOGS])
        assert "Says who?" in result.output
        assert "Watching" in result.output
