"""Tests for search criterion matching."""

from pathlib import Path

from notevault.notes.models import Note
from notevault.search.matchers import (
    evaluate,
    match_content,
    match_path,
    match_path_contains,
    match_properties,
    match_property_value,
    match_tags,
    match_title,
)
from notevault.search.models import Operator, PropertyValuePair, SearchCriteria


def make_note(relative_path: str = "work/proj.md", **kwargs) -> Note:
    kwargs.setdefault("title", Path(relative_path).stem)
    return Note(full_path=Path("/vault") / relative_path, relative_path=relative_path, **kwargs)


def pair(raw: str) -> PropertyValuePair:
    parsed = PropertyValuePair.parse(raw)
    assert parsed is not None
    return parsed


# =============================================================================
# Category Matcher Tests
# =============================================================================


class TestMatchPath:
    """Tests for exact and folder-prefix path matching."""

    def test_exact_file(self) -> None:
        assert match_path(["work/proj.md"], "work/proj.md") == "work/proj.md"

    def test_folder_prefix(self) -> None:
        assert match_path(["/work/"], "work/sub/proj.md") == "work"

    def test_partial_segment_does_not_match(self) -> None:
        assert match_path(["wo"], "work/proj.md") is None

    def test_first_matching_value_reported(self) -> None:
        assert match_path(["other", "work"], "work/proj.md") == "work"


class TestSubstringMatchers:
    """Tests for path, title and content substring matching."""

    def test_path_contains_case_insensitive(self) -> None:
        assert match_path_contains(["WORK", "zzz"], "work/proj.md") == ["WORK"]

    def test_title(self) -> None:
        assert match_title(["design"], "API Design") == ["design"]
        assert match_title(["design"], "") is None

    def test_content(self) -> None:
        assert match_content(["rest", "soap"], "Design the REST endpoints.") == ["rest"]
        assert match_content(["soap"], "Design the REST endpoints.") is None


class TestMatchTags:
    """Tests for tag matching with ``#`` normalization."""

    def test_hash_prefix_on_criterion(self) -> None:
        assert match_tags(["#project"], {"tags": ["project"]}) == ["#project"]

    def test_hash_prefix_on_stored_tag(self) -> None:
        assert match_tags(["a"], {"tags": ["#a", "b"]}) == ["a"]

    def test_scalar_tags(self) -> None:
        assert match_tags(["idea"], {"tags": "#idea"}) == ["idea"]

    def test_no_tags_field(self) -> None:
        assert match_tags(["a"], {"title": "x"}) is None


class TestPropertyMatchers:
    """Tests for property presence and property value matching."""

    def test_properties_present(self) -> None:
        assert match_properties(["status", "due"], {"status": ""}) == ["status"]

    def test_property_value_scalar(self) -> None:
        assert match_property_value([pair("status,done")], {"status": "done"}) == ["status=done"]

    def test_property_value_list_membership(self) -> None:
        fm = {"aliases": ["a", "b"]}
        assert match_property_value([pair("aliases,b")], fm) == ["aliases=b"]

    def test_property_value_boolean(self) -> None:
        assert match_property_value([pair("published,true")], {"published": True}) == [
            "published=true"
        ]

    def test_property_value_mismatch(self) -> None:
        assert match_property_value([pair("status,done")], {"status": "open"}) is None

    def test_value_keeps_later_commas(self) -> None:
        assert pair("note,a,b") == PropertyValuePair(name="note", value="a,b")


# =============================================================================
# Evaluation Tests
# =============================================================================


class TestEvaluate:
    """Tests for combining categories with AND/OR and exclusions."""

    def test_tag_match_with_default_and(self) -> None:
        note = make_note(frontmatter={"tags": ["urgent", "review"]})
        criteria = SearchCriteria(tags=["urgent"])
        assert evaluate(criteria, Operator.AND, note) == {"tags": ["urgent"]}

    def test_or_reports_only_matching_categories(self) -> None:
        note = make_note(frontmatter={"tags": ["urgent", "review"]})
        criteria = SearchCriteria(tags=["missing"], path_contains=["work"])
        assert evaluate(criteria, Operator.OR, note) == {"pathContains": ["work"]}

    def test_or_with_nothing_matching(self) -> None:
        note = make_note()
        criteria = SearchCriteria(tags=["missing"], content=["nothing"])
        assert evaluate(criteria, Operator.OR, note) is None

    def test_and_requires_every_category(self) -> None:
        note = make_note(frontmatter={"tags": ["urgent"]})
        criteria = SearchCriteria(tags=["urgent"], path_contains=["home"])
        assert evaluate(criteria, Operator.AND, note) is None

    def test_and_reports_every_category(self) -> None:
        note = make_note(frontmatter={"tags": ["urgent"], "status": "done"}, body="Ship it")
        criteria = SearchCriteria(
            tags=["urgent"],
            path=["work"],
            property_value=[pair("status,done"), pair("status,open")],
            content=["ship"],
        )
        assert evaluate(criteria, Operator.AND, note) == {
            "path": "work",
            "tags": ["urgent"],
            "propertyValue": ["status=done"],
            "content": ["ship"],
        }

    def test_exclusion_dominates_under_both_operators(self) -> None:
        note = make_note(frontmatter={"tags": ["urgent"], "status": "done"})
        criteria = SearchCriteria(
            tags=["urgent"],
            without_property_value=[pair("status,done")],
        )
        assert evaluate(criteria, Operator.AND, note) is None
        assert evaluate(criteria, Operator.OR, note) is None

    def test_exclusion_only_keeps_other_notes(self) -> None:
        criteria = SearchCriteria(without_tags=["#archived"])
        kept = make_note("a.md", frontmatter={"tags": ["project"]})
        dropped = make_note("b.md", frontmatter={"tags": ["archived"]})
        assert evaluate(criteria, Operator.AND, kept) == {"path": "a.md"}
        assert evaluate(criteria, Operator.AND, dropped) is None

    def test_empty_criteria_match_everything(self) -> None:
        note = make_note("deep/nested/n.md")
        assert evaluate(SearchCriteria(), Operator.AND, note) == {"path": "deep/nested/n.md"}

    def test_blank_values_are_not_requested(self) -> None:
        criteria = SearchCriteria(tags=["  "], path_contains=[""])
        assert criteria.is_empty
        assert evaluate(criteria, Operator.AND, make_note()) == {"path": "work/proj.md"}

    def test_unexpected_frontmatter_shapes_do_not_raise(self) -> None:
        note = make_note(frontmatter={"tags": True, "status": ["a", "b"]})
        criteria = SearchCriteria(tags=["x"], property_value=[pair("status,a")])
        assert evaluate(criteria, Operator.OR, note) == {"propertyValue": ["status=a"]}
