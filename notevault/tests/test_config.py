"""Tests for settings loading."""

from pathlib import Path

import pytest

from notevault.config import Settings, get_settings


class TestSettings:
    """Tests for environment-driven settings."""

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("VAULT_PATH", str(tmp_path))
        monkeypatch.setenv("STATE_FILE", str(tmp_path / "state.json"))
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings()

        assert settings.vault_path == tmp_path
        assert settings.state_file == tmp_path / "state.json"
        assert settings.log_level == "debug"

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("STATE_FILE", raising=False)
        monkeypatch.delenv("PORT", raising=False)

        settings = Settings(_env_file=None)

        assert settings.state_file == Path("storage") / "state.json"
        assert settings.port == 8000

    @pytest.mark.parametrize("value", ["", "   "])
    def test_blank_vault_path_is_unset(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("VAULT_PATH", value)

        assert Settings(_env_file=None).vault_path is None

    def test_allowed_origins_list(self) -> None:
        settings = Settings(allowed_origins="app://obsidian.md, http://localhost:3000")
        assert settings.allowed_origins_list == ["app://obsidian.md", "http://localhost:3000"]

    def test_get_settings_cached(self) -> None:
        get_settings.cache_clear()
        assert get_settings() is get_settings()
