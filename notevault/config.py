"""Environment configuration using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file early to ensure environment variables are set
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Only the outer surfaces (CLI, HTTP app) read settings. Everything
    below them receives the vault root and state file explicitly.
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    vault_path: Path | None = None
    state_file: Path = Path("storage") / "state.json"
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"
    allowed_origins: str = "app://obsidian.md"

    @field_validator("vault_path", mode="before")
    @classmethod
    def blank_vault_path_is_unset(cls, v: object) -> object:
        """Treat an empty VAULT_PATH (as in a .env template) as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse allowed origins as a list."""
        return [o.strip() for o in self.allowed_origins.split(",")]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
