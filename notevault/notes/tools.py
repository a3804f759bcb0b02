"""Note operations on the vault.

This module turns raw note text into :class:`NoteContent`, rebuilds notes
from frontmatter and body, and implements the ID-addressed batch
operations that act on the latest search result:

    modify_notes(["0", "3"], NoteChanges(add_tags=["review"]), store, vault)
    delete_notes(["2"], store, vault, confirm=ask_user)
    create_note(vault, CreateNoteRequest(folder="Projects", title="API"))
    create_from_template(vault, TemplateNoteRequest(title="Week 3", template="Templates/weekly.md"))

Batch operations never raise for per-note problems; they report a
:class:`BatchOutcome` with one :class:`NoteOutcome` per requested ID.
"""

import re
from collections.abc import Callable
from pathlib import Path

import frontmatter

from notevault.dependencies import (
    NOTE_EXTENSION,
    VaultClient,
    VaultNotFoundError,
    VaultSecurityError,
    logger,
)
from notevault.notes.codec import NOTE_HANDLER, parse_frontmatter
from notevault.notes.models import (
    BatchOutcome,
    CreateNoteRequest,
    CreateOutcome,
    ErrorKind,
    Frontmatter,
    NoteChanges,
    NoteContent,
    NoteOutcome,
    TemplateNoteRequest,
    TemplateOutcome,
)
from notevault.search.models import SearchResult
from notevault.search.store import ResultStore

NO_RESULTS_MESSAGE = "No search results found. Run a search first."

SLUG_SEPARATOR_PATTERN = re.compile(r"[^a-z0-9]+")
UNTITLED_SLUG = "untitled"


def normalize_path(path: str) -> str:
    """Normalize a vault-relative path.

    Converts backslashes to forward slashes and strips surrounding
    whitespace and slashes.

    Examples:
        >>> normalize_path("/Projects/API Design/")
        'Projects/API Design'
        >>> normalize_path("work\\\\proj.md")
        'work/proj.md'
    """
    return path.strip().replace("\\", "/").strip("/")


def normalize_tag(tag: str) -> str:
    """Strip surrounding whitespace and a leading ``#`` from a tag.

    Examples:
        >>> normalize_tag(" #project ")
        'project'
    """
    return tag.strip().removeprefix("#").strip()


def parse_note(content: str) -> NoteContent:
    """Parse note content into frontmatter and body.

    Never raises: text without a frontmatter block becomes the body with
    empty frontmatter.
    """
    fm, body = parse_frontmatter(content)
    return NoteContent(frontmatter=fm, body=body, raw=content)


def build_note_content(metadata: Frontmatter, body: str) -> str:
    """Rebuild full note text from frontmatter and body.

    Empty frontmatter produces the body alone, without a block.
    """
    post = frontmatter.Post(body, handler=NOTE_HANDLER)
    post.metadata = dict(metadata)
    return frontmatter.dumps(post, handler=NOTE_HANDLER)


def tags_as_list(value: object) -> list[str]:
    """Coerce a ``tags`` frontmatter value to a list of strings."""
    if value is None:
        return []
    if isinstance(value, list):
        return [str(t) for t in value]
    if isinstance(value, bool):
        return ["true" if value else "false"]
    text = str(value)
    return [text] if text.strip() else []


def parse_property_assignment(raw: str) -> tuple[str, str | list[str]] | None:
    """Parse a ``name,value`` assignment for modify.

    Further commas in the value part turn it into a list; empty items are
    dropped. A single item stays a scalar (possibly empty).

    Examples:
        >>> parse_property_assignment("status,done")
        ('status', 'done')
        >>> parse_property_assignment("aliases,a, b,c")
        ('aliases', ['a', 'b', 'c'])
        >>> parse_property_assignment("missing-comma") is None
        True
    """
    name, sep, raw_value = raw.partition(",")
    if not sep:
        return None
    items = [item.strip() for item in raw_value.strip().split(",") if item.strip()]
    if len(items) > 1:
        return name.strip(), items
    return name.strip(), items[0] if items else ""


def apply_changes(metadata: Frontmatter, changes: NoteChanges) -> Frontmatter:
    """Return a copy of ``metadata`` with property and tag edits applied."""
    updated: Frontmatter = dict(metadata)

    for raw in changes.property_values:
        parsed = parse_property_assignment(raw)
        if parsed is not None:
            name, value = parsed
            updated[name] = value

    if changes.set_tag is not None:
        updated["tags"] = [normalize_tag(changes.set_tag)]
        return updated

    tags = tags_as_list(updated.get("tags"))
    for tag in changes.add_tags:
        tag = normalize_tag(tag)
        if tag and tag not in {normalize_tag(t) for t in tags}:
            tags.append(tag)
    for tag in changes.remove_tags:
        tag = normalize_tag(tag)
        tags = [t for t in tags if normalize_tag(t) != tag]

    if tags:
        updated["tags"] = tags
    else:
        updated.pop("tags", None)
    return updated


def update_note_content(existing: str, changes: NoteChanges) -> str:
    """Apply changes to note text, replacing the body if content is given."""
    parsed = parse_note(existing)
    metadata = apply_changes(parsed.frontmatter, changes)
    body = changes.content if changes.content is not None else parsed.body
    return build_note_content(metadata, body)


# =============================================================================
# ID-addressed Operations
# =============================================================================


def modify_notes(
    ids: list[str],
    changes: NoteChanges,
    store: ResultStore,
    vault: VaultClient,
) -> BatchOutcome:
    """Modify notes referenced by index in the latest search result.

    Each ID is handled independently: an unknown ID or a failed write is
    recorded and the remaining IDs are still processed.

    Args:
        ids: Result indices as shown by search
        changes: Edits to apply to every note
        store: Result store holding the latest search
        vault: Vault the notes live in

    Returns:
        BatchOutcome with one outcome per distinct ID
    """
    if not store.load():
        return BatchOutcome(success=False, error=ErrorKind.NO_RESULTS, message=NO_RESULTS_MESSAGE)

    outcomes = [_modify_one(str(note_id), changes, store, vault) for note_id in dict.fromkeys(ids)]
    success = all(o.ok for o in outcomes)
    if not success:
        logger.warning(
            "modify_batch_failed",
            extra={"failed": [o.id for o in outcomes if not o.ok]},
        )
    return BatchOutcome(success=success, outcomes=outcomes)


def _modify_one(
    note_id: str,
    changes: NoteChanges,
    store: ResultStore,
    vault: VaultClient,
) -> NoteOutcome:
    item = store.lookup(note_id)
    if item is None:
        return NoteOutcome(
            id=note_id,
            ok=False,
            error=ErrorKind.NOT_FOUND,
            message=f"Note with ID {note_id} not found in search results.",
        )

    path = item.relative_path
    try:
        existing = vault.read_file(path)
        vault.write_file(path, update_note_content(existing, changes))
    except VaultNotFoundError:
        return NoteOutcome(
            id=note_id,
            relative_path=path,
            ok=False,
            error=ErrorKind.FILE_MISSING,
            message=f"Note file not found for ID {note_id}.",
        )
    except VaultSecurityError:
        return NoteOutcome(
            id=note_id,
            relative_path=path,
            ok=False,
            error=ErrorKind.OUTSIDE_VAULT,
            message=f"Note ID {note_id} points outside the vault: {path}",
        )
    except (OSError, UnicodeError) as e:
        logger.error(
            "note_modify_failed",
            extra={"id": note_id, "path": path, "error": str(e)},
            exc_info=True,
        )
        return NoteOutcome(
            id=note_id,
            relative_path=path,
            ok=False,
            error=ErrorKind.WRITE_FAILED,
            message=f"Failed to modify note ID {note_id}: {e}",
        )

    logger.info("note_modified", extra={"id": note_id, "path": path})
    return NoteOutcome(id=note_id, relative_path=path, message=f"Modified: {path}")


def delete_notes(
    ids: list[str],
    store: ResultStore,
    vault: VaultClient,
    confirm: Callable[[list[SearchResult]], bool] | None = None,
) -> BatchOutcome:
    """Delete notes referenced by index in the latest search result.

    All IDs are resolved before anything is removed: one unknown ID fails
    the whole batch. ``confirm`` receives the resolved results and may
    cancel. Removal failures are then accumulated per note.

    Args:
        ids: Result indices as shown by search
        store: Result store holding the latest search
        vault: Vault the notes live in
        confirm: Optional callback; returning False cancels the batch

    Returns:
        BatchOutcome with one outcome per deleted (or failed) note
    """
    results = store.load()
    if not results:
        return BatchOutcome(success=False, error=ErrorKind.NO_RESULTS, message=NO_RESULTS_MESSAGE)

    targets: list[SearchResult] = []
    for note_id in dict.fromkeys(str(i) for i in ids):
        item = results.get(note_id)
        if item is None:
            return BatchOutcome(
                success=False,
                error=ErrorKind.NOT_FOUND,
                message=f"Note with ID {note_id} not found in search results.",
            )
        targets.append(item)

    if confirm is not None and not confirm(targets):
        return BatchOutcome(success=False, error=ErrorKind.CANCELLED, message="Deletion cancelled.")

    outcomes: list[NoteOutcome] = []
    for item in targets:
        note_id = str(item.index)
        path = item.relative_path
        try:
            vault.delete_file(path)
        except VaultNotFoundError:
            outcomes.append(
                NoteOutcome(
                    id=note_id,
                    relative_path=path,
                    ok=False,
                    error=ErrorKind.FILE_MISSING,
                    message=f"Note file not found: {path}",
                )
            )
            continue
        except VaultSecurityError:
            outcomes.append(
                NoteOutcome(
                    id=note_id,
                    relative_path=path,
                    ok=False,
                    error=ErrorKind.OUTSIDE_VAULT,
                    message=f"Note points outside the vault: {path}",
                )
            )
            continue
        except OSError as e:
            logger.error(
                "note_delete_failed",
                extra={"id": note_id, "path": path, "error": str(e)},
            )
            outcomes.append(
                NoteOutcome(
                    id=note_id,
                    relative_path=path,
                    ok=False,
                    error=ErrorKind.DELETE_FAILED,
                    message=f"Failed to delete: {path}",
                )
            )
            continue

        logger.info("note_deleted", extra={"id": note_id, "path": path})
        outcomes.append(NoteOutcome(id=note_id, relative_path=path, message=f"Deleted: {path}"))

    return BatchOutcome(success=all(o.ok for o in outcomes), outcomes=outcomes)


# =============================================================================
# Creation
# =============================================================================


def find_available_path(vault: VaultClient, folder: str, name: str) -> str:
    """Return ``folder/name.md``, or ``folder/name-N.md`` if already taken."""
    prefix = f"{folder}/" if folder else ""
    candidate = f"{prefix}{name}{NOTE_EXTENSION}"
    counter = 1
    while vault.file_exists(candidate):
        candidate = f"{prefix}{name}-{counter}{NOTE_EXTENSION}"
        counter += 1
    return candidate


def build_create_frontmatter(request: CreateNoteRequest) -> Frontmatter:
    """Frontmatter for a new note.

    Repeating a property in ``property_values`` turns it into a list.
    """
    metadata: Frontmatter = {"title": request.title}

    tags = [normalize_tag(t) for t in request.tags if normalize_tag(t)]
    if tags:
        metadata["tags"] = tags

    for raw in request.property_values:
        name, sep, value = raw.partition(",")
        if not sep:
            continue
        name, value = name.strip(), value.strip()
        if name not in metadata:
            metadata[name] = value
            continue
        current = metadata[name]
        values = tags_as_list(current) if not isinstance(current, list) else list(current)
        if value not in values:
            values.append(value)
        metadata[name] = values
    return metadata


def create_note(vault: VaultClient, request: CreateNoteRequest) -> CreateOutcome:
    """Create a note named after its title.

    Raises:
        VaultSecurityError: If the folder escapes the vault
        OSError: If the file cannot be written
    """
    folder = normalize_path(request.folder)
    name = request.title.strip().replace("/", "-").replace("\\", "-")
    path = find_available_path(vault, folder, name)

    vault.write_file(path, build_note_content(build_create_frontmatter(request), request.content))

    logger.info("note_created", extra={"path": path})
    return CreateOutcome(relative_path=path, full_path=vault.full_path(path))


# =============================================================================
# Templates
# =============================================================================


def generate_slug(title: str) -> str:
    """Turn a title into a lowercase, hyphen-separated filename.

    Titles without any ASCII letter or digit become ``untitled``.

    Examples:
        >>> generate_slug("  Weekly Review: 2024/W03 ")
        'weekly-review-2024-w03'
        >>> generate_slug("!!!")
        'untitled'
    """
    slug = SLUG_SEPARATOR_PATTERN.sub("-", title.strip().lower()).strip("-")
    return slug or UNTITLED_SLUG


def resolve_template_path(vault: VaultClient, template: str) -> Path:
    """Locate a template given as an existing path or relative to the vault.

    Raises:
        VaultNotFoundError: If neither location holds a file
        VaultSecurityError: If a vault-relative path escapes the vault
    """
    direct = Path(template).expanduser()
    if direct.is_file():
        return direct
    in_vault = vault.full_path(normalize_path(template))
    if not in_vault.is_file():
        raise VaultNotFoundError(f"Template file not found: {template}")
    return in_vault


def apply_replacements(
    metadata: Frontmatter, body: str, replacements: list[str]
) -> tuple[Frontmatter, str]:
    """Replace ``{{name}}`` placeholders in string values, list items and body.

    Each replacement is a ``name,value`` pair; only the first comma
    separates. Pairs without a comma are ignored. Booleans are left alone.

    Examples:
        >>> apply_replacements({"project": "{{p}}"}, "About {{p}}", ["p, Apollo"])
        ({'project': 'Apollo'}, 'About Apollo')
    """
    updated: Frontmatter = dict(metadata)
    for raw in replacements:
        name, sep, value = raw.partition(",")
        if not sep:
            continue
        placeholder = "{{" + name.strip() + "}}"
        value = value.strip()
        for key, current in updated.items():
            if isinstance(current, bool):
                continue
            if isinstance(current, list):
                updated[key] = [item.replace(placeholder, value) for item in current]
            else:
                updated[key] = current.replace(placeholder, value)
        body = body.replace(placeholder, value)
    return updated, body


def create_from_template(vault: VaultClient, request: TemplateNoteRequest) -> TemplateOutcome:
    """Create a note from a template file.

    The template's frontmatter and body get their placeholders replaced,
    ``title`` is set to the requested title, and the note is written to
    ``folder/<slug>.md`` (``<slug>-N.md`` if taken).

    Raises:
        VaultNotFoundError: If the template does not exist
        VaultSecurityError: If the template or folder escapes the vault
        OSError: If the template cannot be read or the note written
    """
    template_path = resolve_template_path(vault, request.template)
    template_text = template_path.read_text(encoding="utf-8")

    fm, body = parse_frontmatter(template_text)
    metadata, body = apply_replacements(fm, body, request.replacements)
    metadata["title"] = request.title

    folder = normalize_path(request.folder)
    path = find_available_path(vault, folder, generate_slug(request.title))
    vault.write_file(path, build_note_content(metadata, body))

    logger.info(
        "note_created_from_template",
        extra={"path": path, "template": str(template_path)},
    )
    return TemplateOutcome(
        relative_path=path,
        full_path=vault.full_path(path),
        slug=Path(path).stem,
    )
