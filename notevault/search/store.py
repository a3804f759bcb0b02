"""Persisted result set of the latest search.

Search writes its results to a JSON state file keyed by result index;
modify and delete read it back to resolve the IDs a user typed. Every
search replaces the whole file, so indices are only valid until the next
search. Staleness is not detected.
"""

import json
from pathlib import Path

from pydantic import ValidationError

from notevault.config import get_settings
from notevault.dependencies import logger
from notevault.search.models import SearchResult


class ResultStore:
    """Reads and writes the search state file."""

    def __init__(self, state_file: Path) -> None:
        """
        Initialize the store.

        Args:
            state_file: Path to the JSON state file
        """
        self.state_file = state_file

    def save(self, results: list[SearchResult]) -> None:
        """Replace the stored result set.

        Args:
            results: Results in output order; each keyed by its own index
        """
        data = {str(item.index): item.model_dump(mode="json", by_alias=True) for item in results}
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        self.state_file.write_text(
            json.dumps(data, indent=4, ensure_ascii=False),
            encoding="utf-8",
        )
        logger.debug(
            "search_results_stored",
            extra={"state_file": str(self.state_file), "count": len(data)},
        )

    def load(self) -> dict[str, SearchResult]:
        """Load the stored result set.

        Returns:
            Mapping of stringified index to result; empty if the state file
            is missing or is not a JSON object. Entries that do not validate
            are skipped.
        """
        if not self.state_file.exists():
            return {}
        try:
            data = json.loads(self.state_file.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.debug(
                "state_file_unreadable",
                extra={"state_file": str(self.state_file), "error": str(e)},
            )
            return {}
        if not isinstance(data, dict):
            return {}

        results: dict[str, SearchResult] = {}
        for key, value in data.items():
            try:
                results[str(key)] = SearchResult.model_validate(value)
            except ValidationError:
                logger.debug("state_entry_invalid", extra={"index": key})
        return results

    def lookup(self, index: str | int) -> SearchResult | None:
        """Return the stored result for an index, or None if unknown."""
        return self.load().get(str(index).strip())


def get_result_store() -> ResultStore:
    """FastAPI dependency provider for the configured ResultStore."""
    return ResultStore(get_settings().state_file)
