"""Tests for markdown rendering and report file names."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from notionwatch.diff import diff_snapshots, incremental_delta
from notionwatch.models import UNDEFINED, CollectionOutcome, CollectionStatus, MultiCollectionDelta
from notionwatch.report import (
    MarkdownRenderer,
    ReportAssembler,
    brief_summary,
    escape_markdown,
    format_value,
    incremental_report_filename,
    report_filename,
)

GENERATED = datetime(2024, 5, 2, 8, 30, 15, tzinfo=timezone.utc)


class TestFormatValue:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, "*empty*"),
            (UNDEFINED, "*empty*"),
            (True, "true"),
            (False, "false"),
            ([], "*empty array*"),
            (["a", "b"], "[a, b]"),
            (3, "3"),
            (2.5, "2.5"),
            ("Draft", "Draft"),
        ],
    )
    def test_values(self, value, expected):
        assert format_value(value) == expected

    def test_long_string_truncated(self):
        assert format_value("x" * 80) == "x" * 50 + "..."

    def test_exactly_max_length_not_truncated(self):
        assert format_value("y" * 50) == "y" * 50

    def test_escape_markdown(self):
        assert escape_markdown("a*b_[c]") == "a\\*b\\_\\[c\\]"


class TestFullReport:
    def _report(self, make_snapshot, cap=20):
        previous = make_snapshot("db1", [("p1", "t0", {"Name": "Alpha", "Status": "Draft"}),
                                         ("p9", "t0", {"Name": "Gone"})])
        current = make_snapshot("db1", [("p1", "t1", {"Name": "Alpha", "Status": "Published"}),
                                        ("p2", "t1", {"Name": "Beta", "Tags": ["x"], "Notes": ""})])
        change_set = diff_snapshots(previous, current, "Tasks")
        return ReportAssembler(cap).assemble([change_set], generated_at=GENERATED)

    def test_header_and_summary(self, make_snapshot):
        text = MarkdownRenderer().render(self._report(make_snapshot))
        assert text.startswith("# 📊 Notion Changes Report\n")
        assert "> **Generated**: 2024-05-02T08:30:15.000Z" in text
        assert "**Total Changes**: 3" in text
        assert "**Databases Affected**: 1" in text
        assert "| Tasks | 1 | 1 | 1 | 3 |" in text
        assert text.endswith("\n")

    def test_entries(self, make_snapshot):
        text = MarkdownRenderer().render(self._report(make_snapshot))
        assert "## 🗂️ Tasks" in text
        assert "### 📝 UPDATED: [Alpha](https://notion.so/p1) *(t1)*" in text
        assert "| Status | Draft | Published |" in text
        assert "### ➕ ADDED: [Beta](https://notion.so/p2) *(t1)*" in text
        assert "- **Tags**: [x]" in text
        assert "**Notes**" not in text
        assert "### ❌ DELETED: [Gone](https://notion.so/p9) *(t0)*" in text

    def test_without_timestamps(self, make_snapshot):
        text = MarkdownRenderer(include_timestamps=False).render(self._report(make_snapshot))
        assert "### 📝 UPDATED: [Alpha](https://notion.so/p1)\n" in text

    def test_omitted_line(self, make_snapshot):
        text = MarkdownRenderer().render(self._report(make_snapshot, cap=1))
        assert "*... and 2 more changes*" in text

    def test_no_changes(self, make_snapshot):
        s = make_snapshot("db1", [("a", "t0", {})])
        report = ReportAssembler().assemble([diff_snapshots(s, s, "Tasks")], generated_at=GENERATED)
        text = MarkdownRenderer().render(report)
        assert "No changes detected." in text
        assert "No changes." in text
        assert "**Databases Affected**: 0" in text

    def test_skipped_databases_listed_with_reasons(self, make_snapshot):
        s = make_snapshot("db1", [("a", "t0", {})])
        skipped = CollectionOutcome(
            "db2", "Docs", CollectionStatus.SKIPPED,
            reason="NotionwatchNotFoundError: Database not found",
        )
        report = ReportAssembler().assemble(
            [diff_snapshots(s, s, "Tasks")], generated_at=GENERATED, skipped=[skipped],
        )
        text = MarkdownRenderer().render(report)
        assert "## ⚠️ Skipped Databases" in text
        assert "- **Docs** (`db2`): NotionwatchNotFoundError: Database not found" in text
        assert "No changes detected in the databases that were checked." in text
        assert "No changes detected.\n" not in text

    def test_no_skipped_section_on_clean_run(self, make_snapshot):
        s = make_snapshot("db1", [("a", "t0", {})])
        report = ReportAssembler().assemble([diff_snapshots(s, s, "Tasks")], generated_at=GENERATED)
        assert "Skipped Databases" not in MarkdownRenderer().render(report)

    def test_pipe_in_value_escaped(self, make_snapshot):
        previous = make_snapshot("db1", [("p1", "t0", {"Name": "a"})])
        current = make_snapshot("db1", [("p1", "t0", {"Name": "a|b"})])
        report = ReportAssembler().assemble([diff_snapshots(previous, current)], generated_at=GENERATED)
        assert "| Name | a | a\\|b |" in MarkdownRenderer().render(report)


class TestIncrementalReport:
    def _report(self, make_snapshot):
        fresh = make_snapshot("db1", [("a", "t0", {}), ("b", "t1", {"Name": "New"})])
        reported = make_snapshot("db1", [("a", "t0", {})])
        delta = MultiCollectionDelta(deltas=[incremental_delta(reported, fresh, "Tasks")])
        return ReportAssembler().assemble_incremental(
            delta, environment="staging", generated_at=GENERATED,
        )

    def test_render(self, make_snapshot):
        text = MarkdownRenderer().render(self._report(make_snapshot))
        assert text.startswith("# 📊 Incremental Changes - 2024-05-02\n")
        assert "> **Environment**: staging" in text
        assert "### ➕ ADDED: [New](https://notion.so/b)" in text
        assert "*This is an incremental update to avoid duplicate content.*" in text

    def test_brief_summary(self, make_snapshot):
        summary = brief_summary(self._report(make_snapshot))
        assert summary.splitlines()[0] == "**1 new changes detected**"
        assert "Across 1 database(s)" in summary

    def test_brief_summary_without_report(self):
        assert brief_summary(None) == "No new changes detected."


class TestFilenames:
    def test_report_filename(self):
        assert report_filename(when=GENERATED) == "notion-changes-2024-05-02-083015.md"

    def test_filename_converted_to_utc(self):
        when = GENERATED.astimezone(timezone(timedelta(hours=-5)))
        assert report_filename("x", when) == "x-2024-05-02-083015.md"

    def test_incremental_filename(self):
        assert (
            incremental_report_filename("prod", GENERATED)
            == "incremental-prod-2024-05-02-083015.md"
        )

    @pytest.mark.parametrize("env", ["", "a/b", "a\\b"])
    def test_incremental_filename_rejects_bad_env(self, env):
        with pytest.raises(ValueError):
            incremental_report_filename(env, GENERATED)
