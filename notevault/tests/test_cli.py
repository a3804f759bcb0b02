"""Tests for the command line interface."""

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from notevault.cli import app
from notevault.config import get_settings
from notevault.search.store import ResultStore

runner = CliRunner()


@pytest.mark.usefixtures("cli_env")
class TestSearchCommand:
    """Tests for ``notevault search``."""

    def test_json_output(self) -> None:
        result = runner.invoke(app, ["search", "--tag", "urgent", "--tag", "idea", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [r["relativePath"] for r in data] == ["inbox.md"]
        assert data[0]["matchedParameters"] == {"tags": ["idea"]}

    def test_or_operator(self) -> None:
        result = runner.invoke(
            app,
            ["search", "--tag", "missing", "--operator", "or", "--pathContains", "journal", "--json"],
        )

        data = json.loads(result.stdout)
        assert [r["matchedParameters"] for r in data] == [{"pathContains": ["journal"]}]

    def test_exclusion_pair(self) -> None:
        result = runner.invoke(
            app,
            ["search", "--tag", "project", "--without-property-value", "status,done", "--json"],
        )

        data = json.loads(result.stdout)
        assert [r["relativePath"] for r in data] == ["Projects/API Design.md"]

    def test_table_output(self) -> None:
        result = runner.invoke(app, ["search", "--path", "Projects"])

        assert result.exit_code == 0
        assert "API Design" in result.stdout
        assert "2024-03-12" in result.stdout

    def test_last(self) -> None:
        result = runner.invoke(app, ["search", "--last", "1", "--json"])

        data = json.loads(result.stdout)
        assert [(r["index"], r["relativePath"]) for r in data] == [(3, "Projects/API Design.md")]

    def test_results_are_stored(self, store: ResultStore) -> None:
        runner.invoke(app, ["search", "--content", "roadmap", "--json"])

        assert [r.relative_path for r in store.load().values()] == [
            "Journal/2024-01-15.md",
            "Projects/Roadmap.md",
        ]

    def test_invalid_date(self) -> None:
        result = runner.invoke(app, ["search", "--modified-after", "yesterday"])
        assert result.exit_code == 1

    def test_unwritable_state_file(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a folder", encoding="utf-8")
        monkeypatch.setenv("STATE_FILE", str(blocker / "state.json"))
        get_settings.cache_clear()

        result = runner.invoke(app, ["search", "--json"])

        assert result.exit_code == 1
        assert "Failed to save search results" in result.output
        assert "Traceback" not in result.output


class TestVaultNotConfigured:
    """Commands fail before scanning when the vault root is invalid."""

    def test_search_exits(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("VAULT_PATH", str(tmp_path / "missing"))
        get_settings.cache_clear()
        try:
            result = runner.invoke(app, ["search", "--json"])
        finally:
            get_settings.cache_clear()

        assert result.exit_code == 1
        assert "VAULT_PATH" in result.output


@pytest.mark.usefixtures("cli_env")
class TestModifyCommand:
    """Tests for ``notevault modify``."""

    def test_modify(self, vault_path: Path) -> None:
        runner.invoke(app, ["search", "--path", "Projects/Roadmap.md", "--json"])

        result = runner.invoke(
            app,
            ["modify", "0", "--property-value", "aliases,plan,roadmap", "--add-tag", "#q1", "--json"],
        )

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"success": True}
        text = (vault_path / "Projects" / "Roadmap.md").read_text(encoding="utf-8")
        assert "aliases:\n  - plan\n  - roadmap\n" in text
        assert "tags:\n  - project\n  - q1\n" in text

    def test_unknown_id(self) -> None:
        runner.invoke(app, ["search", "--json"])

        result = runner.invoke(app, ["modify", "42", "--set-tag", "x", "--json"])

        assert result.exit_code == 1
        assert json.loads(result.stdout) == {
            "success": False,
            "errors": ["Note with ID 42 not found in search results."],
        }

    def test_without_search(self) -> None:
        result = runner.invoke(app, ["modify", "0", "--set-tag", "x", "--json"])

        assert result.exit_code == 1
        assert json.loads(result.stdout)["errors"] == [
            "No search results found. Run a search first."
        ]


@pytest.mark.usefixtures("cli_env")
class TestDeleteCommand:
    """Tests for ``notevault delete``."""

    def test_delete_with_yes(self, vault_path: Path) -> None:
        runner.invoke(app, ["search", "--json"])

        result = runner.invoke(app, ["delete", "0", "--yes", "--json"])

        assert result.exit_code == 0
        assert not (vault_path / "inbox.md").exists()

    def test_declined_prompt_keeps_files(self, vault_path: Path) -> None:
        runner.invoke(app, ["search", "--json"])

        result = runner.invoke(app, ["delete", "0"], input="n\n")

        assert result.exit_code == 0
        assert "Deletion cancelled." in result.stdout
        assert (vault_path / "inbox.md").exists()

    def test_confirmed_prompt(self, vault_path: Path) -> None:
        runner.invoke(app, ["search", "--json"])

        result = runner.invoke(app, ["delete", "1"], input="y\n")

        assert result.exit_code == 0
        assert not (vault_path / "Archive" / "Old Project.md").exists()

    def test_unknown_id_removes_nothing(self, vault_path: Path) -> None:
        runner.invoke(app, ["search", "--json"])

        result = runner.invoke(app, ["delete", "0", "7", "--yes"])

        assert result.exit_code == 1
        assert (vault_path / "inbox.md").exists()


@pytest.mark.usefixtures("cli_env")
class TestCreateCommand:
    """Tests for ``notevault create``."""

    def test_create(self, vault_path: Path) -> None:
        result = runner.invoke(
            app, ["create", "Ideas", "Big Plan", "--tag", "idea", "--content", "Draft\n", "--json"]
        )

        assert result.exit_code == 0
        assert json.loads(result.stdout)["relative_path"] == "Ideas/Big Plan.md"
        text = (vault_path / "Ideas" / "Big Plan.md").read_text(encoding="utf-8")
        assert text == "---\ntitle: Big Plan\ntags:\n  - idea\n---\nDraft\n"

    def test_blank_title(self, vault_path: Path) -> None:
        result = runner.invoke(app, ["create", "Ideas", "   "])

        assert result.exit_code == 1
        assert "Title must not be blank" in result.output
        assert not (vault_path / "Ideas").exists()


@pytest.mark.usefixtures("cli_env")
class TestFromTemplateCommand:
    """Tests for ``notevault from-template``."""

    @pytest.fixture
    def template(self, vault_path: Path) -> Path:
        path = vault_path / "Templates" / "daily.md"
        path.parent.mkdir()
        path.write_text("---\nmood: \"{{mood}}\"\n---\nToday felt {{mood}}.\n", encoding="utf-8")
        return path

    @pytest.mark.usefixtures("template")
    def test_json_output(self, vault_path: Path) -> None:
        result = runner.invoke(
            app,
            ["from-template", "Journal", "Good Day?", "Templates/daily.md", "--replace", "mood,calm", "--json"],
        )

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {
            "success": True,
            "path": "Journal/good-day.md",
            "slug": "good-day",
        }
        text = (vault_path / "Journal" / "good-day.md").read_text(encoding="utf-8")
        assert text == "---\nmood: calm\ntitle: Good Day?\n---\nToday felt calm.\n"

    def test_absolute_template_path(self, template: Path) -> None:
        result = runner.invoke(app, ["from-template", "", "Plain", str(template)])

        assert result.exit_code == 0
        assert "Note created: plain.md" in result.stdout

    def test_missing_template(self) -> None:
        result = runner.invoke(app, ["from-template", "Journal", "X", "Templates/none.md", "--json"])

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["success"] is False
        assert data["error"].startswith("Template file not found")


class TestServeCommand:
    """Tests for ``notevault serve``."""

    @pytest.fixture
    def mock_uvicorn(self, monkeypatch: pytest.MonkeyPatch) -> MagicMock:
        module = MagicMock()
        monkeypatch.setitem(sys.modules, "uvicorn", module)
        return module

    def test_defaults_from_settings(
        self, mock_uvicorn: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("HOST", "127.0.0.1")
        monkeypatch.setenv("PORT", "8123")
        get_settings.cache_clear()
        try:
            result = runner.invoke(app, ["serve"])
        finally:
            get_settings.cache_clear()

        assert result.exit_code == 0
        call_kwargs = mock_uvicorn.run.call_args.kwargs
        assert call_kwargs["host"] == "127.0.0.1"
        assert call_kwargs["port"] == 8123

    def test_overrides(self, mock_uvicorn: MagicMock) -> None:
        result = runner.invoke(app, ["serve", "--host", "0.0.0.0", "--port", "9000"])

        assert result.exit_code == 0
        assert mock_uvicorn.run.call_args.args == ("notevault.main:app",)
        assert mock_uvicorn.run.call_args.kwargs["port"] == 9000
