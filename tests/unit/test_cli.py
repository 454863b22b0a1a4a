"""Tests for the command line interface."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from guard_proxy import __version__
from guard_proxy.cli import main


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BANNED_WORDS", raising=False)


class TestCli:
    """Tests for the guard-proxy CLI."""

    def test_version(self, runner: CliRunner) -> None:
        """Test --version."""
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_check_config_clean(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test a configuration where every rule builds."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "guardrails:\n  banned_words: [bomb]\n  max_prompt_length: 0\n",
            encoding="utf-8",
        )

        result = runner.invoke(main, ["check-config", "--config", str(path)])

        assert result.exit_code == 0
        assert "1 guardrail rule(s) built" in result.output
        assert "  - banned-words" in result.output

    def test_check_config_skipped(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test that skipped entries are listed and exit non-zero."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "guardrails:\n"
            "  max_prompt_length: 0\n"
            "  custom_rules:\n"
            "    - name: mystery\n"
            "      type: sentiment\n",
            encoding="utf-8",
        )

        result = runner.invoke(main, ["check-config", "--config", str(path)])

        assert result.exit_code == 2
        assert "0 guardrail rule(s) built" in result.output
        assert "1 entry skipped:" in result.output
        assert "guardrails.custom_rules[0]: unknown custom rule type: sentiment" in result.output

    def test_check_config_unparsable(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test a configuration file that cannot be parsed."""
        path = tmp_path / "config.yaml"
        path.write_text("guardrails: [unclosed", encoding="utf-8")

        result = runner.invoke(main, ["check-config", "--config", str(path)])

        assert result.exit_code == 1

    def test_check_config_missing_file(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test that a missing file falls back to defaults."""
        result = runner.invoke(main, ["check-config", "--config", str(tmp_path / "none.yaml")])

        assert result.exit_code == 0
        assert "  - prompt-length" in result.output
