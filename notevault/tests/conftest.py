"""Shared pytest fixtures."""

import os
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load environment variables before importing app modules
load_dotenv()

# Set test defaults if not provided
if not os.environ.get("VAULT_PATH"):
    os.environ["VAULT_PATH"] = "/tmp/test-vault"

from fastapi.testclient import TestClient  # noqa: E402

from notevault.config import get_settings  # noqa: E402
from notevault.dependencies import VaultClient, get_vault_client  # noqa: E402
from notevault.main import app  # noqa: E402
from notevault.search.store import ResultStore, get_result_store  # noqa: E402


def write_note(root: Path, relative_path: str, content: str, day: str | None = None) -> Path:
    """Write a note and optionally set its modification date (YYYY-MM-DD)."""
    path = root / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    if day is not None:
        # Noon avoids the date shifting across timezones
        stamp = datetime.fromisoformat(f"{day}T12:00:00").timestamp()
        os.utime(path, (stamp, stamp))
    return path


@pytest.fixture
def vault_path(tmp_path: Path) -> Path:
    """Create a temporary vault with a handful of notes.

    Scan order (and so result indices for an unfiltered search):
        0 inbox.md
        1 Archive/Old Project.md
        2 Journal/2024-01-15.md
        3 Projects/API Design.md
        4 Projects/Roadmap.md
    """
    vault = tmp_path / "vault"
    vault.mkdir()

    write_note(
        vault,
        "inbox.md",
        "---\ntags: \"#idea\"\n---\nRandom idea about search.\n",
        day="2024-03-10",
    )
    write_note(
        vault,
        "Archive/Old Project.md",
        "---\ntags: [project, archived]\nstatus: done\n---\nShelved work.\n",
        day="2023-06-01",
    )
    write_note(
        vault,
        "Journal/2024-01-15.md",
        "Met with the team about the roadmap.\n",
        day="2024-01-15",
    )
    write_note(
        vault,
        "Projects/API Design.md",
        "---\ntitle: API Design\ntags:\n  - project\n  - api\nstatus: active\n---\n"
        "Design the REST endpoints.\n",
        day="2024-03-12",
    )
    write_note(
        vault,
        "Projects/Roadmap.md",
        "---\ntags: [project]\nstatus: done\npublished: true\n---\nQuarterly roadmap.\n",
        day="2024-02-01",
    )

    # Never scanned
    write_note(vault, ".obsidian/workspace.md", "hidden")
    write_note(vault, ".hidden.md", "hidden")
    write_note(vault, "Projects/notes.txt", "not a note")
    return vault


@pytest.fixture
def vault(vault_path: Path) -> VaultClient:
    """Create a VaultClient for the temporary vault."""
    return VaultClient(vault_path=vault_path)


@pytest.fixture
def store(tmp_path: Path) -> ResultStore:
    """Create a ResultStore writing into the temporary directory."""
    return ResultStore(tmp_path / "storage" / "state.json")


@pytest.fixture
def client(vault: VaultClient, store: ResultStore) -> Iterator[TestClient]:
    """Create a FastAPI test client bound to the temporary vault."""
    app.dependency_overrides[get_vault_client] = lambda: vault
    app.dependency_overrides[get_result_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def cli_env(vault_path: Path, store: ResultStore, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Point settings at the temporary vault and state file."""
    monkeypatch.setenv("VAULT_PATH", str(vault_path))
    monkeypatch.setenv("STATE_FILE", str(store.state_file))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
