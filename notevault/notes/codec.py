"""Frontmatter codec for vault notes.

Notes may start with a metadata block delimited by ``---`` lines:

    ---
    title: Demo
    tags:
      - a
      - b
    ---
    Body text

The block is deliberately not parsed as YAML. Values are typed by their
shape only: ``true``/``false`` become booleans, ``[a, b]`` and dash items
become lists of strings, everything else is a string (numbers included).

The codec plugs into python-frontmatter as a handler, so notes can be
rebuilt with ``frontmatter.Post`` and ``frontmatter.dumps``.
"""

import re
from enum import Enum
from typing import Any

from frontmatter.default_handlers import BaseHandler

from notevault.notes.models import Frontmatter, FrontmatterValue

DELIMITER = "---"

# Opening delimiter on the first line, closing delimiter on a line of its own
BLOCK_PATTERN = re.compile(
    r"\A---[ \t]*\r?\n(?:(.*?)\r?\n)?---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL,
)

# "key: value-tail"; keys never start with whitespace so indented lines
# are always continuations
KEY_LINE_PATTERN = re.compile(r"^([A-Za-z0-9_][A-Za-z0-9_\- ]*?)[ \t]*:[ \t]*(.*)$")

DASH_ITEM_PATTERN = re.compile(r"^[ \t]*-[ \t]+(.*)$")

# Characters that force a serialized value into double quotes
SPECIAL_CHARS_PATTERN = re.compile(r"[:\[\]{}|>&*!@#%`]")

_ESCAPE_SEQUENCE_PATTERN = re.compile(r'\\(["\\n])')
_UNESCAPES = {'"': '"', "\\": "\\", "n": "\n"}
_QUOTES = "\"'"


def split_lines(text: str) -> list[str]:
    """Split on newlines only, dropping a trailing carriage return per line.

    Unlike :meth:`str.splitlines`, form feeds, separators and a lone ``\\r``
    inside a value do not end the line.

    Examples:
        >>> split_lines("a: 1\\r\\nb: x\\x0cy")
        ['a: 1', 'b: x\\x0cy']
    """
    return [line.removesuffix("\r") for line in text.split("\n")]


# =============================================================================
# Value Resolution
# =============================================================================


def unquote(value: str) -> str:
    """Strip whitespace and one layer of matching quotes.

    Double-quoted values also have their backslash escapes undone, which is
    the inverse of :func:`escape_value`.

    Examples:
        >>> unquote(' "a \\\\"b\\\\"" ')
        'a "b"'
        >>> unquote("'it''s'")
        "it's"
        >>> unquote("plain")
        'plain'
    """
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
        inner = value[1:-1]
        if value[0] == '"':
            return _ESCAPE_SEQUENCE_PATTERN.sub(lambda m: _UNESCAPES[m.group(1)], inner)
        return inner.replace("''", "'")
    return value


def resolve_value(raw: str) -> FrontmatterValue:
    """Resolve an accumulated raw value into a typed frontmatter value.

    Resolution order matters: a bracketed literal is an inline list even if
    it also contains dash-prefixed text.

    Args:
        raw: Value tail of the key line plus any continuation lines

    Returns:
        bool, list[str] or str
    """
    text = raw.strip()

    if text == "true":
        return True
    if text == "false":
        return False

    if text.startswith("[") and text.endswith("]"):
        inner = text[1:-1].strip()
        if not inner:
            return []
        return [unquote(item) for item in inner.split(",")]

    items = [m.group(1) for m in map(DASH_ITEM_PATTERN.match, split_lines(text)) if m]
    if items:
        return [unquote(item) for item in items]

    return unquote(text)


# =============================================================================
# Line Parser
# =============================================================================


class ParserState(Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"


class FrontmatterLineParser:
    """Two-state automaton turning block lines into frontmatter entries.

    IDLE --key line--> ACCUMULATING(key)
    ACCUMULATING --indented line--> ACCUMULATING (line appended)
    ACCUMULATING --key line--> ACCUMULATING(new key), previous value stored
    ACCUMULATING --other line--> IDLE, value stored
    IDLE --other line--> IDLE, line dropped
    """

    def __init__(self) -> None:
        self.state = ParserState.IDLE
        self.key: str | None = None
        self.result: Frontmatter = {}
        self._buffer: list[str] = []

    def feed(self, line: str) -> None:
        match = KEY_LINE_PATTERN.match(line)
        if match:
            self._store()
            self.key = match.group(1).strip()
            self._buffer = [match.group(2)]
            self.state = ParserState.ACCUMULATING
        elif self.state is ParserState.ACCUMULATING and line.startswith((" ", "\t")):
            self._buffer.append(line)
        elif self.state is ParserState.ACCUMULATING:
            self._store()

    def close(self) -> Frontmatter:
        self._store()
        return self.result

    def _store(self) -> None:
        if self.state is ParserState.ACCUMULATING and self.key is not None:
            # Duplicate keys: last one wins
            self.result[self.key] = resolve_value("\n".join(self._buffer))
        self.state = ParserState.IDLE
        self.key = None
        self._buffer = []


# =============================================================================
# Serialization
# =============================================================================


def needs_quotes(value: str) -> bool:
    """Check whether a value must be double-quoted to survive a re-parse."""
    return (
        SPECIAL_CHARS_PATTERN.search(value) is not None
        or "\n" in value
        or value == ""
        or value != value.strip()
        or value in ("true", "false")
        or value[0] in _QUOTES
        or DASH_ITEM_PATTERN.match(value) is not None
    )


def escape_value(value: Any) -> str:
    """Render a scalar for the block, quoting and escaping when needed.

    Examples:
        >>> escape_value("plain")
        'plain'
        >>> escape_value("a: b")
        '"a: b"'
        >>> escape_value('say "hi" #now')
        '"say \\\\"hi\\\\" #now"'
    """
    text = str(value)
    if not needs_quotes(text):
        return text
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def export_entries(metadata: Frontmatter) -> str:
    """Render frontmatter entries without the surrounding delimiters."""
    lines: list[str] = []
    for key, value in metadata.items():
        if isinstance(value, bool):
            lines.append(f"{key}: {'true' if value else 'false'}")
        elif isinstance(value, list):
            if not value:
                lines.append(f"{key}: []")
            else:
                lines.append(f"{key}:")
                lines.extend(f"  - {escape_value(item)}" for item in value)
        else:
            lines.append(f"{key}: {escape_value(value)}")
    return "\n".join(lines)


# =============================================================================
# python-frontmatter Handler
# =============================================================================


class NoteHandler(BaseHandler):
    """python-frontmatter handler implementing the note block format."""

    FM_BOUNDARY = BLOCK_PATTERN
    START_DELIMITER = DELIMITER
    END_DELIMITER = DELIMITER

    def detect(self, text: str) -> bool:
        return self.FM_BOUNDARY.match(text) is not None

    def split(self, text: str) -> tuple[str, str]:
        """Split text into the raw block and the body.

        Raises:
            ValueError: If the text does not start with a frontmatter block
        """
        match = self.FM_BOUNDARY.match(text)
        if match is None:
            raise ValueError("Text does not start with a frontmatter block")
        return match.group(1) or "", text[match.end() :]

    def load(self, fm: str) -> Frontmatter:
        parser = FrontmatterLineParser()
        for line in split_lines(fm):
            parser.feed(line)
        return parser.close()

    def export(self, metadata: Frontmatter, **kwargs: Any) -> str:
        return export_entries(metadata)

    def format(self, post: Any, **kwargs: Any) -> str:
        # Body is written back untouched; no blank line is inserted
        return serialize_frontmatter(post.metadata) + post.content


NOTE_HANDLER = NoteHandler()


def parse_frontmatter(text: str) -> tuple[Frontmatter, str]:
    """Split raw note text into typed frontmatter and body.

    A missing or unterminated block is not an error: the whole text is
    returned as body with empty frontmatter.

    Examples:
        >>> parse_frontmatter("---\\ntitle: Demo\\n---\\nBody\\n")
        ({'title': 'Demo'}, 'Body\\n')
        >>> parse_frontmatter("No block")
        ({}, 'No block')
    """
    text = text.removeprefix("\ufeff")
    try:
        block, body = NOTE_HANDLER.split(text)
    except ValueError:
        return {}, text
    return NOTE_HANDLER.load(block), body


def serialize_frontmatter(metadata: Frontmatter) -> str:
    """Render frontmatter as a delimited block with a trailing newline.

    An empty mapping renders as an empty string (no block at all).
    """
    if not metadata:
        return ""
    return f"{DELIMITER}\n{export_entries(metadata)}\n{DELIMITER}\n"
