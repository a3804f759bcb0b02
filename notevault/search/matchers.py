"""Criterion matching for vault search.

Each matcher takes the requested values of one category and a note, and
returns the values that matched, or None when nothing matched (or the
category was not requested). :func:`evaluate` combines them:

- exclusion categories reject the note if any of them matches,
  whatever the operator;
- with no positive categories every remaining note matches, tagged
  with its own path;
- AND requires every requested positive category to match;
- OR requires at least one.

Matchers never raise on odd frontmatter; a value of the wrong shape
simply does not match.
"""

from collections.abc import Callable

from notevault.notes.models import Frontmatter, Note
from notevault.notes.tools import normalize_path, normalize_tag, tags_as_list
from notevault.search.models import (
    MatchedParameters,
    Operator,
    PropertyValuePair,
    SearchCriteria,
)

# =============================================================================
# Category Matchers
# =============================================================================


def match_path(values: list[str], relative_path: str) -> str | None:
    """Match a note path exactly or as being inside a folder.

    Examples:
        >>> match_path(["work"], "work/proj.md")
        'work'
        >>> match_path(["work/proj.md"], "work/proj.md")
        'work/proj.md'
        >>> match_path(["wo"], "work/proj.md") is None
        True
    """
    path = relative_path.replace("\\", "/")
    for value in values:
        wanted = normalize_path(value)
        if not wanted:
            continue
        if path == wanted or f"{path}/".startswith(f"{wanted}/"):
            return wanted
    return None


def match_path_contains(values: list[str], relative_path: str) -> list[str] | None:
    """Case-insensitive substring match against the relative path."""
    lower = relative_path.lower()
    found = [v for v in values if v.lower() in lower]
    return found or None


def match_tags(values: list[str], fm: Frontmatter) -> list[str] | None:
    """Match requested tags against the note's ``tags`` field.

    Both sides are compared without a leading ``#``; a scalar ``tags``
    value counts as a single tag.

    Examples:
        >>> match_tags(["#a", "c"], {"tags": ["a", "#b"]})
        ['#a']
        >>> match_tags(["project"], {"tags": "#project"})
        ['project']
    """
    note_tags = {normalize_tag(t) for t in tags_as_list(fm.get("tags"))}
    found = [v for v in values if normalize_tag(v) in note_tags]
    return found or None


def match_properties(names: list[str], fm: Frontmatter) -> list[str] | None:
    """Match property names present in frontmatter, whatever their value."""
    found = [name for name in names if name in fm]
    return found or None


def property_has_value(fm: Frontmatter, pair: PropertyValuePair) -> bool:
    """Check a single ``name=value`` pair against frontmatter."""
    if pair.name not in fm:
        return False
    actual = fm[pair.name]
    if isinstance(actual, list):
        return pair.value in actual
    if isinstance(actual, bool):
        return pair.value == ("true" if actual else "false")
    return pair.value == str(actual)


def match_property_value(pairs: list[PropertyValuePair], fm: Frontmatter) -> list[str] | None:
    """Match ``name,value`` pairs; matched pairs are reported as ``name=value``.

    Examples:
        >>> pair = PropertyValuePair(name="status", value="done")
        >>> match_property_value([pair], {"status": "done"})
        ['status=done']
        >>> match_property_value([pair], {"status": ["open", "done"]})
        ['status=done']
    """
    found = [pair.label() for pair in pairs if property_has_value(fm, pair)]
    return found or None


def match_title(values: list[str], title: str) -> list[str] | None:
    """Case-insensitive substring match against the note title."""
    if not title:
        return None
    lower = title.lower()
    found = [v for v in values if v.lower() in lower]
    return found or None


def match_content(values: list[str], body: str) -> list[str] | None:
    """Case-insensitive substring match against the note body."""
    lower = body.lower()
    found = [v for v in values if v.lower() in lower]
    return found or None


# Category name -> (criteria, note) -> matched values or None
PositiveMatcher = Callable[[SearchCriteria, Note], str | list[str] | None]

POSITIVE_MATCHERS: dict[str, PositiveMatcher] = {
    "path": lambda c, n: match_path(c.path, n.relative_path),
    "pathContains": lambda c, n: match_path_contains(c.path_contains, n.relative_path),
    "tags": lambda c, n: match_tags(c.tags, n.frontmatter),
    "properties": lambda c, n: match_properties(c.properties, n.frontmatter),
    "propertyValue": lambda c, n: match_property_value(c.property_value, n.frontmatter),
    "title": lambda c, n: match_title(c.title, n.title),
    "content": lambda c, n: match_content(c.content, n.body),
}

EXCLUSION_MATCHERS: dict[str, PositiveMatcher] = {
    "withoutPathContains": lambda c, n: match_path_contains(
        c.without_path_contains, n.relative_path
    ),
    "withoutTags": lambda c, n: match_tags(c.without_tags, n.frontmatter),
    "withoutProperties": lambda c, n: match_properties(c.without_properties, n.frontmatter),
    "withoutPropertyValue": lambda c, n: match_property_value(
        c.without_property_value, n.frontmatter
    ),
}


# =============================================================================
# Evaluation
# =============================================================================


def is_excluded(criteria: SearchCriteria, note: Note) -> bool:
    """True if any requested exclusion category matches the note."""
    return any(
        EXCLUSION_MATCHERS[category](criteria, note) is not None
        for category in criteria.exclusion_categories
    )


def evaluate(criteria: SearchCriteria, operator: Operator, note: Note) -> MatchedParameters | None:
    """Evaluate search criteria against a note.

    Args:
        criteria: Positive and exclusion criteria
        operator: How positive categories combine
        note: The note being tested

    Returns:
        The categories that matched with their matched values, or None if
        the note does not match
    """
    if is_excluded(criteria, note):
        return None

    requested = criteria.positive_categories
    if not requested:
        return {"path": note.relative_path}

    matched: MatchedParameters = {}
    for category in requested:
        result = POSITIVE_MATCHERS[category](criteria, note)
        if result is not None:
            matched[category] = result

    if operator is Operator.OR:
        return matched or None

    if all(category in matched for category in requested):
        return matched
    return None
