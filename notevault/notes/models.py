"""Pydantic models for notes and note operations."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, computed_field, field_validator

# A frontmatter value is a scalar string, a boolean, or a flat list of strings.
# Numbers stay strings; nested mappings are not supported.
FrontmatterValue = str | bool | list[str]
Frontmatter = dict[str, FrontmatterValue]


class NoteContent(BaseModel):
    """Parsed note with frontmatter and body separated.

    Attributes:
        frontmatter: Ordered key/value metadata (empty if no block)
        body: The text after the frontmatter block
        raw: The original unparsed content
    """

    frontmatter: Frontmatter = Field(default_factory=dict)
    body: str = ""
    raw: str = ""


class Note(BaseModel):
    """A note as seen by one search run.

    Recomputed from disk on every scan and discarded after matching.

    Attributes:
        full_path: Absolute path to the note file
        relative_path: Vault-relative path using forward slashes
        frontmatter: Parsed frontmatter
        body: Text after the frontmatter block
        title: Frontmatter ``title`` if set, else the filename stem
        last_modified: File modification date (YYYY-MM-DD) if known
    """

    full_path: Path
    relative_path: str
    frontmatter: Frontmatter = Field(default_factory=dict)
    body: str = ""
    title: str = ""
    last_modified: str | None = None


class NoteChanges(BaseModel):
    """Edits applied to every note of a modify batch.

    Attributes:
        property_values: ``name,value`` pairs; extra commas make a list
        add_tags: Tags to add (leading ``#`` ignored)
        set_tag: Replace all tags with this single tag
        remove_tags: Tags to remove
        content: Replacement body text
    """

    property_values: list[str] = Field(default_factory=list)
    add_tags: list[str] = Field(default_factory=list)
    set_tag: str | None = None
    remove_tags: list[str] = Field(default_factory=list)
    content: str | None = None


class ModifyRequest(NoteChanges):
    """Modify one or more notes from the latest search result."""

    ids: list[str] = Field(..., min_length=1, description="Result indices to modify")


class DeleteRequest(BaseModel):
    """Delete one or more notes from the latest search result."""

    ids: list[str] = Field(..., min_length=1, description="Result indices to delete")
    confirm: bool = Field(default=False, description="Must be true to delete")


class NewNoteRequest(BaseModel):
    """Where a new note goes and what it is called."""

    folder: str = Field(default="", description="Folder relative to the vault root")
    title: str = Field(..., min_length=1, description="Note title, also used as filename")

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        """Strip the title and reject blank ones."""
        v = v.strip()
        if not v:
            raise ValueError("title must not be blank")
        return v


class CreateNoteRequest(NewNoteRequest):
    """Create a new note in the vault."""

    tags: list[str] = Field(default_factory=list)
    property_values: list[str] = Field(default_factory=list)
    content: str = ""


class ErrorKind(str, Enum):
    """Why a note operation did not succeed."""

    NO_RESULTS = "no_results"
    NOT_FOUND = "not_found"
    FILE_MISSING = "file_missing"
    WRITE_FAILED = "write_failed"
    DELETE_FAILED = "delete_failed"
    OUTSIDE_VAULT = "outside_vault"
    CANCELLED = "cancelled"


class NoteOutcome(BaseModel):
    """Result of applying an operation to a single note."""

    id: str
    relative_path: str | None = None
    ok: bool = True
    error: ErrorKind | None = None
    message: str = ""


class BatchOutcome(BaseModel):
    """Result of a modify/delete batch.

    Attributes:
        success: True only if every requested note was processed
        outcomes: Per-note outcomes in request order
        error: Batch-level failure (no results, unknown ID, cancelled)
        message: Human readable batch-level message
    """

    success: bool = True
    outcomes: list[NoteOutcome] = Field(default_factory=list)
    error: ErrorKind | None = None
    message: str = ""

    @computed_field
    @property
    def errors(self) -> list[str]:
        """All error messages, batch-level first."""
        messages = [self.message] if self.error else []
        messages.extend(o.message for o in self.outcomes if not o.ok)
        return messages


class CreateOutcome(BaseModel):
    """Result of creating a note."""

    relative_path: str
    full_path: Path


class TemplateNoteRequest(NewNoteRequest):
    """Create a note from a template file.

    Attributes:
        template: Absolute path, or path relative to the vault root
        replacements: ``name,value`` pairs; ``{{name}}`` becomes ``value``
    """

    template: str = Field(..., min_length=1)
    replacements: list[str] = Field(default_factory=list)

    @field_validator("template")
    @classmethod
    def template_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("template must not be blank")
        return v


class TemplateOutcome(CreateOutcome):
    """Result of creating a note from a template."""

    slug: str
