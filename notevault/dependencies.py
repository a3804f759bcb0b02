"""Shared dependencies: VaultClient, vault errors and structured logger."""

import json
import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, NamedTuple

from notevault.config import Settings, get_settings

NOTE_EXTENSION = ".md"

# Attributes every LogRecord carries; anything else came in through `extra=`
_RESERVED_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        data: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_RECORD_ATTRS and not key.startswith("_"):
                data[key] = value
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


def setup_logging(level: str | None = None) -> logging.Logger:
    """Configure and return the application logger."""
    level = level or get_settings().log_level
    logger = logging.getLogger("notevault")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger


logger = setup_logging()


class VaultError(Exception):
    """Base exception for vault operations."""

    pass


class VaultConfigError(VaultError):
    """Raised when the vault root is unset or not a directory."""

    pass


class VaultNotFoundError(VaultError):
    """Raised when a file is not found in the vault."""

    pass


class VaultSecurityError(VaultError):
    """Raised when a security violation is detected."""

    pass


def get_vault_root(settings: Settings | None = None) -> Path:
    """Resolve the vault root from settings.

    Args:
        settings: Settings to read; defaults to the cached instance

    Returns:
        Absolute path to an existing vault directory

    Raises:
        VaultConfigError: If VAULT_PATH is unset or not a directory
    """
    settings = settings or get_settings()
    if settings.vault_path is None:
        raise VaultConfigError("VAULT_PATH is not set or not a directory. Set it in .env.")
    root = settings.vault_path.expanduser()
    if not root.is_dir():
        raise VaultConfigError(
            f"VAULT_PATH is not set or not a directory ({root}). Set it in .env."
        )
    return root.resolve()


class VaultEntry(NamedTuple):
    """A note file found while scanning the vault."""

    full_path: Path
    relative_path: str


@dataclass
class VaultClient:
    """Client for interacting with a vault of markdown notes."""

    vault_path: Path

    @property
    def root(self) -> Path:
        return self.vault_path.resolve()

    def _validate_path(self, relative_path: str) -> Path:
        """Validate and resolve a path within the vault.

        The check is lexical so notes reached through symlinked folders stay
        addressable, while ``..`` traversal is still rejected.

        Args:
            relative_path: Relative path within the vault

        Returns:
            Absolute path inside the vault root

        Raises:
            VaultSecurityError: If path traversal is detected
        """
        full_path = Path(os.path.normpath(self.root / relative_path))
        if not full_path.is_relative_to(self.root):
            raise VaultSecurityError(f"Path traversal detected: {relative_path}")
        return full_path

    def full_path(self, path: str) -> Path:
        """Absolute path of a vault-relative path (validated)."""
        return self._validate_path(path)

    def read_file(self, path: str) -> str:
        """Read a file from the vault.

        Args:
            path: Relative path to file

        Returns:
            File content as string

        Raises:
            VaultNotFoundError: If file does not exist
        """
        full_path = self._validate_path(path)
        if not full_path.is_file():
            raise VaultNotFoundError(f"File not found: {path}")
        return full_path.read_text(encoding="utf-8")

    def write_file(self, path: str, content: str) -> None:
        """Write content to a file in the vault, creating parent folders.

        Args:
            path: Relative path to file
            content: Content to write
        """
        full_path = self._validate_path(path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_text(content, encoding="utf-8")

    def delete_file(self, path: str) -> None:
        """Delete a file from the vault.

        Args:
            path: Relative path to file

        Raises:
            VaultNotFoundError: If file does not exist
            VaultSecurityError: If path traversal detected
        """
        full_path = self._validate_path(path)
        if not full_path.is_file():
            raise VaultNotFoundError(f"File not found: {path}")
        full_path.unlink()

    def file_exists(self, path: str) -> bool:
        """Check if a file exists in the vault.

        Args:
            path: Relative path to file

        Returns:
            True if file exists, False otherwise
        """
        try:
            full_path = self._validate_path(path)
            return full_path.is_file()
        except VaultSecurityError:
            return False

    def scan(self) -> Iterator[VaultEntry]:
        """Recursively enumerate note files under the vault root.

        Symlinked folders are followed (each physical directory is visited
        once), hidden files and folders are skipped, and the extension test
        is case-insensitive. Entries that cannot be inspected are skipped.

        Yields:
            VaultEntry for every note, folders and files in name order
        """
        root = self.root
        visited: set[tuple[int, int]] = set()

        def _on_error(error: OSError) -> None:
            logger.debug(
                "scan_entry_skipped",
                extra={"path": str(error.filename), "error": str(error)},
            )

        for dirpath, dirnames, filenames in os.walk(root, followlinks=True, onerror=_on_error):
            try:
                stat = os.stat(dirpath)
            except OSError as e:
                _on_error(e)
                dirnames[:] = []
                continue

            # Symlink cycles
            if (stat.st_dev, stat.st_ino) in visited:
                dirnames[:] = []
                continue
            visited.add((stat.st_dev, stat.st_ino))

            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))

            for name in sorted(filenames):
                if name.startswith("."):
                    continue
                if os.path.splitext(name)[1].lower() != NOTE_EXTENSION:
                    continue
                full_path = Path(dirpath) / name
                if not full_path.is_file():
                    continue
                yield VaultEntry(
                    full_path=full_path,
                    relative_path=full_path.relative_to(root).as_posix(),
                )

    def last_modified(self, path: Path) -> str | None:
        """Return a file's modification date as YYYY-MM-DD, or None."""
        try:
            return datetime.fromtimestamp(path.stat().st_mtime).date().isoformat()
        except OSError:
            return None


def get_vault_client() -> VaultClient:
    """FastAPI dependency provider for VaultClient."""
    return VaultClient(vault_path=get_vault_root())
