"""Pydantic models for search criteria and search results.

Criteria are split into positive categories, combined with the request's
operator, and exclusion categories, which reject a note whenever any of
them matches regardless of the operator.
"""

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from notevault.notes.models import FrontmatterValue

# Matched category name -> matched value(s). "path" holds a single string,
# every other category a list of the criterion values that matched.
MatchedParameters = dict[str, str | list[str]]

POSITIVE_CATEGORIES = (
    "path",
    "pathContains",
    "tags",
    "properties",
    "propertyValue",
    "title",
    "content",
)
EXCLUSION_CATEGORIES = (
    "withoutPathContains",
    "withoutTags",
    "withoutProperties",
    "withoutPropertyValue",
)


class Operator(str, Enum):
    """How positive criterion categories are combined."""

    AND = "AND"
    OR = "OR"


class PropertyValuePair(BaseModel):
    """A frontmatter property name with the value it must have."""

    name: str
    value: str

    @classmethod
    def parse(cls, raw: str) -> "PropertyValuePair | None":
        """Parse ``name,value``; only the first comma separates.

        Examples:
            >>> PropertyValuePair.parse("status, done")
            PropertyValuePair(name='status', value='done')
            >>> PropertyValuePair.parse("status") is None
            True
        """
        name, sep, value = raw.partition(",")
        if not sep:
            return None
        return cls(name=name.strip(), value=value.strip())

    def label(self) -> str:
        return f"{self.name}={self.value}"


class SearchCriteria(BaseModel):
    """Named criterion lists of a search.

    An empty list means the category was not requested.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    path: list[str] = Field(default_factory=list)
    path_contains: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    properties: list[str] = Field(default_factory=list)
    property_value: list[PropertyValuePair] = Field(default_factory=list)
    title: list[str] = Field(default_factory=list)
    content: list[str] = Field(default_factory=list)

    without_path_contains: list[str] = Field(default_factory=list)
    without_tags: list[str] = Field(default_factory=list)
    without_properties: list[str] = Field(default_factory=list)
    without_property_value: list[PropertyValuePair] = Field(default_factory=list)

    @field_validator(
        "path",
        "path_contains",
        "tags",
        "properties",
        "title",
        "content",
        "without_path_contains",
        "without_tags",
        "without_properties",
    )
    @classmethod
    def drop_empty_values(cls, values: list[str]) -> list[str]:
        """Blank criterion values are ignored."""
        return [v for v in values if v.strip()]

    def requested(self, category: str) -> list:
        """Criterion values for a category name such as ``pathContains``."""
        return getattr(self, _FIELD_BY_CATEGORY[category])

    @property
    def positive_categories(self) -> list[str]:
        return [c for c in POSITIVE_CATEGORIES if self.requested(c)]

    @property
    def exclusion_categories(self) -> list[str]:
        return [c for c in EXCLUSION_CATEGORIES if self.requested(c)]

    @property
    def is_empty(self) -> bool:
        return not self.positive_categories and not self.exclusion_categories


_FIELD_BY_CATEGORY = {to_camel(field): field for field in SearchCriteria.model_fields}


class SearchRequest(BaseModel):
    """A full search: criteria, operator and post-filters.

    Attributes:
        criteria: Positive and exclusion criteria
        operator: AND (every requested category) or OR (any category)
        modified_after: Keep notes modified on or after this date
        modified_before: Keep notes modified on or before this date
        last: Keep only the N most recently modified notes
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    criteria: SearchCriteria = Field(default_factory=SearchCriteria)
    operator: Operator = Operator.AND
    modified_after: date | None = None
    modified_before: date | None = None
    last: int | None = Field(default=None, description="Only the N most recently modified")

    @field_validator("operator", mode="before")
    @classmethod
    def normalize_operator(cls, v: object) -> object:
        """Accept the operator in any case."""
        return v.upper() if isinstance(v, str) else v


class SearchResult(BaseModel):
    """A single matched note, as persisted in the result store.

    Attributes:
        index: Position in this search run, used by modify/delete
        full_path: Absolute path of the note file
        relative_path: Vault-relative path
        title: Frontmatter title or filename stem
        last_modification_date: File modification date (YYYY-MM-DD)
        matched_parameters: Which categories matched and with what values
        frontmatter: All frontmatter properties of the note
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    index: int
    full_path: str
    relative_path: str
    title: str
    last_modification_date: str | None = None
    matched_parameters: MatchedParameters = Field(default_factory=dict)
    frontmatter: dict[str, FrontmatterValue] = Field(default_factory=dict)


class SearchResults(BaseModel):
    """Collection of search results.

    Attributes:
        results: Matched notes in output order
        total: Number of results
        operator: Operator the criteria were combined with
    """

    results: list[SearchResult] = Field(default_factory=list)
    total: int = 0
    operator: Operator = Operator.AND
