"""End-to-end tests for the modmatcher CLI.

This module drives the Typer app with CliRunner over the sample catalog
and a mods directory holding one folder per match outcome.
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from modmatcher import __version__
from modmatcher.cli import app


@pytest.fixture
def cli_runner() -> CliRunner:
    """Return a CliRunner instance for testing."""
    return CliRunner()


@pytest.fixture
def no_rerank_key(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make sure the re-rank key environment variable is unset."""
    monkeypatch.delenv("MODMATCHER_RERANK_KEY", raising=False)


@pytest.mark.integration
class TestVersion:
    """Tests for --version."""

    def test_version_output(self, cli_runner: CliRunner):
        result = cli_runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"Mod Folder Matcher v{__version__}" in result.output


@pytest.mark.integration
class TestMatchCommand:
    """Tests for the match command."""

    def test_match_without_log(
        self,
        cli_runner: CliRunner,
        mods_dir: Path,
        catalog_file: Path,
        temp_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
    ):
        monkeypatch.chdir(temp_dir)

        result = cli_runner.invoke(
            app, ["match", str(mods_dir), "--catalog", str(catalog_file), "--no-log"]
        )

        assert result.exit_code == 0, result.output
        assert "Match Summary" in result.output
        assert list(temp_dir.glob("match_log_*.log")) == []

    def test_match_with_log_file(
        self, cli_runner: CliRunner, mods_dir: Path, catalog_file: Path, temp_dir: Path
    ):
        log_path = temp_dir / "run.log"

        result = cli_runner.invoke(
            app,
            [
                "match",
                str(mods_dir),
                "-c",
                str(catalog_file),
                "--mode",
                "quick",
                "--log-file",
                str(log_path),
            ],
        )

        assert result.exit_code == 0, result.output
        content = log_path.read_text(encoding="utf-8")
        assert "Mode: QUICK" in content
        assert "Auto-matched: 1" in content
        assert "Needs review: 2" in content

    def test_mode_is_case_insensitive(
        self, cli_runner: CliRunner, mods_dir: Path, catalog_file: Path
    ):
        result = cli_runner.invoke(
            app, ["match", str(mods_dir), "-c", str(catalog_file), "-m", "FULL", "--no-log"]
        )

        assert result.exit_code == 0, result.output

    def test_mechanical_rerank(self, cli_runner: CliRunner, mods_dir: Path, catalog_file: Path):
        result = cli_runner.invoke(
            app,
            ["match", str(mods_dir), "-c", str(catalog_file), "--mechanical-rerank", "--no-log"],
        )

        assert result.exit_code == 0, result.output

    def test_invalid_mode(self, cli_runner: CliRunner, mods_dir: Path, catalog_file: Path):
        result = cli_runner.invoke(
            app, ["match", str(mods_dir), "-c", str(catalog_file), "--mode", "fast"]
        )

        assert result.exit_code == 2

    def test_missing_mods_path(self, cli_runner: CliRunner, temp_dir: Path, catalog_file: Path):
        result = cli_runner.invoke(
            app, ["match", str(temp_dir / "missing"), "-c", str(catalog_file), "--no-log"]
        )

        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_invalid_catalog(self, cli_runner: CliRunner, mods_dir: Path, temp_dir: Path):
        bad_catalog = temp_dir / "bad.json"
        bad_catalog.write_text("{not json", encoding="utf-8")

        result = cli_runner.invoke(
            app, ["match", str(mods_dir), "-c", str(bad_catalog), "--no-log"]
        )

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_invalid_catalog_shape(self, cli_runner: CliRunner, mods_dir: Path, temp_dir: Path):
        bad_catalog = temp_dir / "bad.json"
        bad_catalog.write_text(json.dumps({"items": []}), encoding="utf-8")

        result = cli_runner.invoke(
            app, ["match", str(mods_dir), "-c", str(bad_catalog), "--no-log"]
        )

        assert result.exit_code == 1

    def test_conflicting_rerank_options(
        self, cli_runner: CliRunner, mods_dir: Path, catalog_file: Path
    ):
        result = cli_runner.invoke(
            app,
            [
                "match",
                str(mods_dir),
                "-c",
                str(catalog_file),
                "--mechanical-rerank",
                "--rerank-url",
                "https://rerank.test/v1/chat/completions",
                "--no-log",
            ],
        )

        assert result.exit_code == 1
        assert "cannot be combined" in result.output

    def test_rerank_url_requires_key(
        self, cli_runner: CliRunner, mods_dir: Path, catalog_file: Path, no_rerank_key
    ):
        result = cli_runner.invoke(
            app,
            [
                "match",
                str(mods_dir),
                "-c",
                str(catalog_file),
                "--rerank-url",
                "https://rerank.test/v1/chat/completions",
                "--no-log",
            ],
        )

        assert result.exit_code == 1
        assert "--rerank-key" in result.output

    def test_blank_rerank_key_is_rejected(
        self, cli_runner: CliRunner, mods_dir: Path, catalog_file: Path, no_rerank_key
    ):
        result = cli_runner.invoke(
            app,
            [
                "match",
                str(mods_dir),
                "-c",
                str(catalog_file),
                "--rerank-url",
                "https://rerank.test/v1/chat/completions",
                "--rerank-key",
                "   ",
                "--no-log",
            ],
        )

        assert result.exit_code == 1
        assert "--rerank-key" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)


@pytest.mark.integration
class TestSignalsCommand:
    """Tests for the signals command."""

    def test_signals_full(self, cli_runner: CliRunner, make_mod_folder):
        folder = make_mod_folder(
            "Raiden Pack",
            {"mod.ini": "[TextureOverrideRaidenBody]\nhash = d94c8962\n"},
        )

        result = cli_runner.invoke(app, ["signals", str(folder), "--mode", "full"])

        assert result.exit_code == 0, result.output
        assert "Signals (full)" in result.output
        assert "d94c8962" in result.output
        assert "Fingerprint" in result.output

    def test_signals_rejects_phased(self, cli_runner: CliRunner, make_mod_folder):
        folder = make_mod_folder("Raiden Pack")

        result = cli_runner.invoke(app, ["signals", str(folder), "--mode", "phased"])

        assert result.exit_code == 2

    def test_signals_missing_folder(self, cli_runner: CliRunner, temp_dir: Path):
        result = cli_runner.invoke(app, ["signals", str(temp_dir / "missing")])

        assert result.exit_code == 1
        assert "does not exist" in result.output


@pytest.mark.integration
class TestInspectCatalogCommand:
    """Tests for the inspect-catalog command."""

    def test_overview(self, cli_runner: CliRunner, catalog_file: Path):
        result = cli_runner.invoke(app, ["inspect-catalog", str(catalog_file)])

        assert result.exit_code == 0, result.output
        assert "Entries: 4" in result.output
        assert "Object Types" in result.output

    def test_missing_file(self, cli_runner: CliRunner, temp_dir: Path):
        result = cli_runner.invoke(app, ["inspect-catalog", str(temp_dir / "missing.json")])

        assert result.exit_code == 1
        assert "Error" in result.output
