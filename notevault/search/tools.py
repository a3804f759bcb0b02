"""Vault search.

This module wires the vault scan, frontmatter parsing and criterion
matching into a single search run:

    scan -> parse -> evaluate -> date filter -> last N -> store

Every run re-reads the vault from disk. Result indices are assigned in
scan order as notes match, before the post-filters, and the run replaces
the stored result set.

Example:
    request = SearchRequest(
        criteria=SearchCriteria(tags=["urgent"], path_contains=["work"]),
        operator=Operator.OR,
        last=5,
    )
    results = search_notes(VaultClient(vault_root), request, store)
"""

from datetime import date
from pathlib import PurePosixPath

from notevault.dependencies import VaultClient, VaultEntry, logger
from notevault.notes.models import Frontmatter, Note
from notevault.notes.tools import parse_note
from notevault.search.matchers import evaluate
from notevault.search.models import SearchRequest, SearchResult, SearchResults
from notevault.search.store import ResultStore

# Sort key for results without a modification date
EPOCH_DATE = "1970-01-01"


# =============================================================================
# Helper Functions
# =============================================================================


def extract_title(fm: Frontmatter, relative_path: str) -> str:
    """Derive a note title.

    Uses the frontmatter ``title`` when it is a non-empty string and falls
    back to the filename without extension.

    Examples:
        >>> extract_title({"title": "My Note"}, "notes/my-note.md")
        'My Note'
        >>> extract_title({}, "deep/nested/note-name.md")
        'note-name'
    """
    title = fm.get("title")
    if isinstance(title, str) and title.strip():
        return title.strip()
    return PurePosixPath(relative_path).stem


def load_note(vault: VaultClient, entry: VaultEntry) -> Note | None:
    """Read and parse a scanned note; None if the file cannot be read."""
    try:
        content = entry.full_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(
            "search_file_error",
            extra={"path": entry.relative_path, "error": str(e)},
        )
        return None

    parsed = parse_note(content)
    return Note(
        full_path=entry.full_path,
        relative_path=entry.relative_path,
        frontmatter=parsed.frontmatter,
        body=parsed.body,
        title=extract_title(parsed.frontmatter, entry.relative_path),
        last_modified=vault.last_modified(entry.full_path),
    )


def filter_by_modification_date(
    results: list[SearchResult],
    modified_after: date | None,
    modified_before: date | None,
) -> list[SearchResult]:
    """Keep results modified within an inclusive date range.

    Results without a modification date are dropped once either bound is
    set. Dates compare as YYYY-MM-DD strings.
    """
    if modified_after is None and modified_before is None:
        return results

    after = modified_after.isoformat() if modified_after else None
    before = modified_before.isoformat() if modified_before else None

    filtered = []
    for item in results:
        when = item.last_modification_date
        if when is None:
            continue
        if after is not None and when < after:
            continue
        if before is not None and when > before:
            continue
        filtered.append(item)
    return filtered


def filter_last(results: list[SearchResult], n: int) -> list[SearchResult]:
    """Keep the N most recently modified results, newest first.

    Ties on the same date are ordered by relative path.
    """
    if n <= 0:
        return []
    ordered = sorted(results, key=lambda r: r.relative_path)
    ordered.sort(key=lambda r: r.last_modification_date or EPOCH_DATE, reverse=True)
    return ordered[:n]


# =============================================================================
# Main Search Function
# =============================================================================


def search_notes(
    vault: VaultClient,
    request: SearchRequest,
    store: ResultStore | None = None,
) -> SearchResults:
    """Search the vault and persist the result set.

    Args:
        vault: Vault to scan
        request: Criteria, operator and post-filters
        store: Result store to overwrite; nothing is stored if None

    Returns:
        SearchResults in output order
    """
    criteria = request.criteria
    logger.info(
        "search_called",
        extra={
            "operator": request.operator.value,
            "categories": criteria.positive_categories,
            "exclusions": criteria.exclusion_categories,
        },
    )

    results: list[SearchResult] = []
    scanned = 0
    for entry in vault.scan():
        scanned += 1
        note = load_note(vault, entry)
        if note is None:
            continue

        matched = evaluate(criteria, request.operator, note)
        if matched is None:
            continue

        results.append(
            SearchResult(
                index=len(results),
                full_path=str(note.full_path),
                relative_path=note.relative_path,
                title=note.title,
                last_modification_date=note.last_modified,
                matched_parameters=matched,
                frontmatter=note.frontmatter,
            )
        )

    results = filter_by_modification_date(results, request.modified_after, request.modified_before)
    if request.last is not None:
        results = filter_last(results, request.last)

    if store is not None:
        store.save(results)

    logger.info(
        "search_completed",
        extra={"scanned": scanned, "result_count": len(results)},
    )
    return SearchResults(results=results, total=len(results), operator=request.operator)
