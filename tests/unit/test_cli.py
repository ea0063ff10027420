"""Tests for the scully command line interface."""

import json
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from typer.testing import CliRunner

from scully.config.settings import Settings
from scully.errors import PackageNotFoundError
from scully.models import DocumentationArtifact, ProjectDocumentationResult
from scully_cli.core import debug as log
from scully_cli.core.batch import BatchInputError, parse_batch_input
from scully_cli.main import app

runner = CliRunner()


class TestParseBatchInput:
    """Tests for parse_batch_input()."""

    def test_external_dependencies(self):
        text = json.dumps({"dependencies": {"external": [{"name": "Alamofire"}, {"name": "Kingfisher"}]}})
        assert parse_batch_input(text) == ["Alamofire", "Kingfisher"]

    def test_dependency_list(self):
        assert parse_batch_input(json.dumps({"dependencies": [{"name": "swift-nio"}]})) == ["swift-nio"]

    def test_resolved_pins(self):
        assert parse_batch_input(json.dumps({"pins": [{"identity": "alamofire"}]})) == ["alamofire"]
        assert parse_batch_input(json.dumps({"object": {"pins": [{"package": "Kingfisher"}]}})) == ["Kingfisher"]

    def test_duplicates_removed(self):
        text = json.dumps({"dependencies": [{"name": "A"}, {"name": "B"}, {"name": "A"}]})
        assert parse_batch_input(text) == ["A", "B"]

    @pytest.mark.parametrize("text,message", [
        ("", "No input received"),
        ("   \n", "No input received"),
        ("{not json", "Invalid JSON"),
        ("[1, 2]", "JSON object"),
        (json.dumps({"dependencies": []}), "No packages found"),
        (json.dumps({"other": 1}), "No packages found"),
    ])
    def test_rejected_input(self, text, message):
        with pytest.raises(BatchInputError, match=message):
            parse_batch_input(text)


@pytest.fixture
def engine(monkeypatch):
    """Replace the engine used by the CLI with a mock."""
    fake = MagicMock()
    fake.__aenter__.return_value = fake
    fake.__aexit__.return_value = False
    monkeypatch.setattr("scully_cli.main.ScullyEngine", lambda settings: fake)
    monkeypatch.setattr("scully_cli.main.load_settings", lambda config_path=None: Settings())
    return fake


class TestDocsCommand:
    """Tests for `scully docs`."""

    def test_empty_stdin_exits_with_usage_error(self, engine):
        result = runner.invoke(app, ["docs"], input="")

        assert result.exit_code == 2
        engine.fetch_documentation_batch.assert_not_called()

    def test_invalid_json_exits_with_usage_error(self, engine):
        result = runner.invoke(app, ["docs"], input="{nope")
        assert result.exit_code == 2

    def test_piped_names_fetch_in_batch(self, engine):
        engine.fetch_documentation_batch = AsyncMock(return_value=ProjectDocumentationResult(
            project_path=".",
            documents=[DocumentationArtifact(package_name="Alamofire", content="# Alamofire")],
        ))

        result = runner.invoke(
            app,
            ["docs", "--format", "json"],
            input=json.dumps({"dependencies": [{"name": "Alamofire"}]}),
        )

        assert result.exit_code == 0
        engine.fetch_documentation_batch.assert_awaited_once_with(["Alamofire"], project_path=".")
        assert "# Alamofire" in result.output

    def test_single_package(self, engine):
        engine.fetch_documentation = AsyncMock(
            return_value=DocumentationArtifact(package_name="Alamofire", content="Elegant networking")
        )

        result = runner.invoke(app, ["docs", "Alamofire", "--version", "5.9.0"])

        assert result.exit_code == 0
        engine.fetch_documentation.assert_awaited_once_with("Alamofire", version="5.9.0", project_path=".")
        assert "Elegant networking" in result.output

    def test_library_error_exits_1(self, engine):
        engine.fetch_documentation = AsyncMock(side_effect=PackageNotFoundError("Nothing"))

        result = runner.invoke(app, ["docs", "Nothing"])

        assert result.exit_code == 1
        assert "Package 'Nothing' not found" in result.output

    def test_project_deps(self, engine):
        engine.fetch_project_documentation = AsyncMock(
            return_value=ProjectDocumentationResult(project_path="App")
        )

        result = runner.invoke(app, ["docs", "--project-deps", "--path", "App"])

        assert result.exit_code == 0
        engine.fetch_project_documentation.assert_awaited_once_with("App")


class TestOtherCommands:
    """Tests for argument handling of the remaining commands."""

    def test_unknown_format(self, engine):
        result = runner.invoke(app, ["search", "alamo", "--format", "xml"])
        assert result.exit_code == 1

    def test_search_json(self, engine):
        engine.search_packages = AsyncMock(return_value=[])

        result = runner.invoke(app, ["search", "alamo", "--format", "json", "--limit", "3"])

        assert result.exit_code == 0
        engine.search_packages.assert_awaited_once_with("alamo", limit=3)

    def test_examples_limit_must_be_positive(self, engine):
        result = runner.invoke(app, ["examples", "Alamofire", "--limit", "0"])
        assert result.exit_code == 2

    def test_cache_prune(self, engine):
        engine.prune_cache = AsyncMock(return_value=3)

        result = runner.invoke(app, ["cache", "prune"])

        assert result.exit_code == 0
        assert "Removed 3 expired entries" in result.output


class TestConfigOption:
    """Tests for the global --config option."""

    def test_missing_config_file(self, tmp_path):
        result = runner.invoke(app, ["--config", str(tmp_path / "missing.yaml"), "cache", "stats"])
        assert result.exit_code == 1


class TestDebugLog:
    """Tests for the CLI log file."""

    def test_debug_flag_lowers_level(self, engine, monkeypatch):
        logger = logging.getLogger("scully")
        monkeypatch.setattr(logger, "level", logging.INFO)
        engine.prune_cache = AsyncMock(return_value=0)

        result = runner.invoke(app, ["--debug", "cache", "prune"])

        assert result.exit_code == 0
        assert logger.level == logging.DEBUG
        assert log.get_log_file().name.startswith("scully-")


@pytest.fixture
def records():
    """Collect records written to the scully logger."""
    collected = []

    class ListHandler(logging.Handler):
        def emit(self, record):
            collected.append(record)

    handler = ListHandler(level=logging.DEBUG)
    logger = logging.getLogger("scully")
    logger.addHandler(handler)
    yield collected
    logger.removeHandler(handler)


class TestLogHelpers:
    """Tests for the module-level logging helpers."""

    def test_helpers_write_to_scully_logger(self, records):
        log.info("Batch input: %d packages", 3)
        log.warning("careful")
        log.error("broken")

        assert [(r.levelno, r.getMessage()) for r in records] == [
            (logging.INFO, "Batch input: 3 packages"),
            (logging.WARNING, "careful"),
            (logging.ERROR, "broken"),
        ]

    def test_exception_includes_traceback(self, records):
        try:
            raise ValueError("boom")
        except ValueError:
            log.exception("Unexpected error in %s", "docs")

        assert records[0].levelno == logging.ERROR
        assert records[0].exc_info[0] is ValueError

    def test_unexpected_error_is_logged_and_raised(self, engine, records):
        engine.fetch_documentation = AsyncMock(side_effect=RuntimeError("kaboom"))

        result = runner.invoke(app, ["docs", "Alamofire"])

        assert isinstance(result.exception, RuntimeError)
        logged = [r for r in records if r.getMessage() == "Unexpected error in docs"]
        assert logged and logged[0].exc_info[0] is RuntimeError

    def test_rejected_batch_input_is_logged(self, engine, records):
        result = runner.invoke(app, ["docs"], input="{nope")

        assert result.exit_code == 2
        assert any(r.levelno == logging.WARNING and "Rejected batch input" in r.getMessage() for r in records)
