"""Tests for notionwatch.normalize: property and record normalization."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from notionwatch.errors import NotionwatchMissingIdError, NotionwatchSnapshotError
from notionwatch.normalize import (
    build_snapshot,
    normalize_properties,
    normalize_property,
    normalize_record,
    normalize_records,
    plain_text,
)
from notionwatch.normalize.properties import supported_types


def _rich(*texts: str) -> list[dict]:
    return [{"type": "text", "plain_text": t, "text": {"content": t}} for t in texts]


def _page(page_id="p1", edited="2024-05-01T10:00:00.000Z", **properties):
    return {"id": page_id, "last_edited_time": edited, "properties": properties}


# ---------------------------------------------------------------------------
# plain_text
# ---------------------------------------------------------------------------

class TestPlainText:
    def test_concatenates_runs(self):
        assert plain_text(_rich("Hello ", "world")) == "Hello world"

    def test_strips_whitespace(self):
        assert plain_text(_rich("  padded  ")) == "padded"

    def test_falls_back_to_text_content(self):
        runs = [{"type": "text", "text": {"content": "from content"}}]
        assert plain_text(runs) == "from content"

    def test_non_list_is_empty(self):
        assert plain_text(None) == ""
        assert plain_text("oops") == ""

    def test_malformed_runs_skipped(self):
        assert plain_text([None, 3, {"plain_text": "ok"}]) == "ok"


# ---------------------------------------------------------------------------
# normalize_property
# ---------------------------------------------------------------------------

class TestTextTypes:
    def test_title(self):
        assert normalize_property({"type": "title", "title": _rich("Task A")}) == "Task A"

    def test_rich_text(self):
        prop = {"type": "rich_text", "rich_text": _rich("line ", "two")}
        assert normalize_property(prop) == "line two"

    def test_empty_title(self):
        assert normalize_property({"type": "title", "title": []}) == ""


class TestChoiceTypes:
    def test_select(self):
        assert normalize_property({"type": "select", "select": {"name": "High"}}) == "High"

    def test_select_empty(self):
        assert normalize_property({"type": "select", "select": None}) is None

    def test_select_empty_name(self):
        assert normalize_property({"type": "select", "select": {"name": ""}}) is None

    def test_status(self):
        assert normalize_property({"type": "status", "status": {"name": "Done"}}) == "Done"

    def test_multi_select(self):
        prop = {"type": "multi_select", "multi_select": [{"name": "a"}, {"name": "b"}]}
        assert normalize_property(prop) == ["a", "b"]

    def test_multi_select_drops_empties(self):
        prop = {"type": "multi_select", "multi_select": [{"name": ""}, {}, {"name": "x"}]}
        assert normalize_property(prop) == ["x"]

    def test_multi_select_malformed(self):
        assert normalize_property({"type": "multi_select", "multi_select": None}) == []


class TestScalarTypes:
    @pytest.mark.parametrize(
        ("kind", "value"),
        [
            ("number", 42),
            ("number", 1.5),
            ("checkbox", True),
            ("checkbox", False),
            ("url", "https://example.com"),
            ("email", "a@example.com"),
            ("phone_number", "+1 555"),
            ("created_time", "2024-05-01T10:00:00.000Z"),
            ("last_edited_time", "2024-05-01T10:00:00.000Z"),
        ],
    )
    def test_pass_through(self, kind, value):
        assert normalize_property({"type": kind, kind: value}) == value

    def test_number_null(self):
        assert normalize_property({"type": "number", "number": None}) is None

    def test_non_scalar_payload(self):
        assert normalize_property({"type": "url", "url": {"nested": 1}}) is None


class TestReferenceTypes:
    def test_date_start(self):
        prop = {"type": "date", "date": {"start": "2024-05-01", "end": "2024-05-03"}}
        assert normalize_property(prop) == "2024-05-01"

    def test_date_missing(self):
        assert normalize_property({"type": "date", "date": None}) is None

    def test_relation_ids(self):
        prop = {"type": "relation", "relation": [{"id": "r1"}, {"id": "r2"}]}
        assert normalize_property(prop) == ["r1", "r2"]

    def test_people_ids(self):
        prop = {"type": "people", "people": [{"object": "user", "id": "u1"}]}
        assert normalize_property(prop) == ["u1"]

    def test_files(self):
        prop = {
            "type": "files",
            "files": [
                {"name": "brief.pdf", "file": {"url": "https://s3/x"}},
                {"external": {"url": "https://ext/y"}},
                {"file": {"url": "https://s3/z"}},
                {},
            ],
        }
        assert normalize_property(prop) == ["brief.pdf", "https://ext/y", "https://s3/z"]

    def test_created_by(self):
        prop = {"type": "created_by", "created_by": {"object": "user", "id": "u9"}}
        assert normalize_property(prop) == "u9"

    def test_last_edited_by_missing(self):
        assert normalize_property({"type": "last_edited_by", "last_edited_by": None}) is None


class TestComputedTypes:
    @pytest.mark.parametrize(
        ("payload", "expected"),
        [
            ({"type": "string", "string": "abc"}, "abc"),
            ({"type": "number", "number": 7}, 7),
            ({"type": "boolean", "boolean": False}, False),
            ({"type": "date", "date": {"start": "2024-01-01"}}, "2024-01-01"),
            ({"type": "mystery"}, None),
        ],
    )
    def test_formula(self, payload, expected):
        assert normalize_property({"type": "formula", "formula": payload}) == expected

    def test_rollup_number(self):
        prop = {"type": "rollup", "rollup": {"type": "number", "number": 3}}
        assert normalize_property(prop) == 3

    def test_rollup_date(self):
        prop = {"type": "rollup", "rollup": {"type": "date", "date": {"start": "2024-02-02"}}}
        assert normalize_property(prop) == "2024-02-02"

    def test_rollup_array_flattens_and_stringifies(self):
        prop = {
            "type": "rollup",
            "rollup": {
                "type": "array",
                "array": [
                    {"type": "title", "title": _rich("Alpha")},
                    {"type": "multi_select", "multi_select": [{"name": "x"}, {"name": "y"}]},
                    {"type": "number", "number": 5},
                    {"type": "checkbox", "checkbox": True},
                    {"type": "select", "select": None},
                    {"type": "rich_text", "rich_text": []},
                ],
            },
        }
        assert normalize_property(prop) == ["Alpha", "x", "y", "5", "true"]

    def test_rollup_array_unknown_element_falls_back(self):
        prop = {
            "type": "rollup",
            "rollup": {
                "type": "array",
                "array": [
                    {"type": "weird", "plain_text": "pt"},
                    {"type": "weird", "name": "nm"},
                    {"type": "weird", "id": "ident"},
                    {"type": ["unhashable"]},
                ],
            },
        }
        assert normalize_property(prop) == ["pt", "nm", "ident"]

    def test_rollup_unknown_kind(self):
        assert normalize_property({"type": "rollup", "rollup": {"type": "incomplete"}}) is None


class TestUnknownAndMalformed:
    def test_unknown_type_is_none(self):
        assert normalize_property({"type": "button", "button": {}}) is None

    def test_missing_type_is_none(self):
        assert normalize_property({"select": {"name": "x"}}) is None

    @pytest.mark.parametrize("prop", [None, "text", 3, [], {"type": 5}])
    def test_non_dict_or_bad_type(self, prop):
        assert normalize_property(prop) is None

    def test_supported_types_cover_known_kinds(self):
        assert {"title", "select", "rollup", "formula", "files"} <= supported_types()
        assert "button" not in supported_types()


class TestNormalizeProperties:
    def test_preserves_key_order(self):
        props = {
            "Status": {"type": "status", "status": {"name": "Todo"}},
            "Name": {"type": "title", "title": _rich("A")},
            "Odd": {"type": "unique_id", "unique_id": {"number": 1}},
        }
        result = normalize_properties(props)
        assert list(result) == ["Status", "Name", "Odd"]
        assert result == {"Status": "Todo", "Name": "A", "Odd": None}

    def test_non_dict_is_empty(self):
        assert normalize_properties(None) == {}


# ---------------------------------------------------------------------------
# Records and snapshots
# ---------------------------------------------------------------------------

class TestNormalizeRecord:
    def test_basic(self):
        raw = _page(Name={"type": "title", "title": _rich("Task")})
        record = normalize_record(raw)
        assert record.id == "p1"
        assert record.revision_marker == "2024-05-01T10:00:00.000Z"
        assert record.fields == {"Name": "Task"}

    def test_missing_marker_is_empty_string(self):
        record = normalize_record({"id": "p1", "properties": {}})
        assert record.revision_marker == ""

    def test_missing_properties(self):
        assert normalize_record({"id": "p1"}).fields == {}

    @pytest.mark.parametrize("raw", [{}, {"id": ""}, {"id": None}, {"id": 12}, "not-a-dict"])
    def test_missing_id_raises(self, raw):
        with pytest.raises(NotionwatchMissingIdError) as exc_info:
            normalize_record(raw, collection_id="db1", index=4)
        assert exc_info.value.context == {"collection_id": "db1", "index": 4}

    def test_normalize_records_reports_index(self):
        with pytest.raises(NotionwatchMissingIdError) as exc_info:
            normalize_records([_page("a"), {"properties": {}}], collection_id="db1")
        assert exc_info.value.context["index"] == 1


class TestBuildSnapshot:
    def test_order_preserved(self):
        captured = datetime(2024, 5, 1, tzinfo=timezone.utc)
        snapshot = build_snapshot("db1", [_page("b"), _page("a")], captured_at=captured)
        assert snapshot.ids() == ["b", "a"]
        assert snapshot.captured_at == captured
        assert snapshot.collection_id == "db1"

    def test_default_capture_time_is_aware(self):
        assert build_snapshot("db1", []).captured_at.tzinfo is not None

    def test_duplicate_ids_raise(self):
        with pytest.raises(NotionwatchSnapshotError) as exc_info:
            build_snapshot("db1", [_page("a"), _page("a")])
        assert exc_info.value.context["record_id"] == "a"
