"""Tests for the open-report decision."""

from __future__ import annotations

import pytest

from notionwatch.errors import NotionwatchAmbiguousReportError, NotionwatchValidationError
from notionwatch.report import (
    OpenReport,
    ReportAction,
    decide_report_action,
    relevant_reports,
    report_title,
)


def _reports(*titles: str) -> list[OpenReport]:
    return [OpenReport(number=i + 1, title=t, branch=f"b{i + 1}") for i, t in enumerate(titles)]


class TestDecision:
    def test_none_open_creates_new(self):
        decision = decide_report_action([], "prod")
        assert decision.action is ReportAction.CREATE_NEW
        assert decision.target is None
        assert decision.relevant_count == 0

    def test_other_environments_ignored(self):
        decision = decide_report_action(_reports("Notion Changes Report (STAGING)"), "prod")
        assert decision.action is ReportAction.CREATE_NEW

    def test_single_open_updates(self):
        reports = _reports("Notion Changes Report (STAGING)", "Notion Changes Report (PROD)")
        decision = decide_report_action(reports, "prod")
        assert decision.action is ReportAction.UPDATE_EXISTING
        assert decision.target == reports[1]
        assert decision.relevant_count == 1

    def test_several_open_is_ambiguous(self):
        reports = _reports("Notion Changes Report (PROD)", "hotfix (PROD)")
        with pytest.raises(NotionwatchAmbiguousReportError) as exc_info:
            decide_report_action(reports, "prod")
        assert exc_info.value.context["report_numbers"] == [1, 2]
        assert "Manual intervention required" in str(exc_info.value)

    def test_tag_is_case_sensitive_on_title(self):
        assert relevant_reports(_reports("notion changes report (prod)"), "prod") == []


class TestOpenReport:
    def test_from_gh_json(self):
        report = OpenReport.from_dict({"number": 7, "title": "t", "headRefName": "notion/prod"})
        assert report == OpenReport(7, "t", "notion/prod")

    def test_branch_optional(self):
        assert OpenReport.from_dict({"number": 7, "title": "t"}).branch == ""

    @pytest.mark.parametrize(
        "data",
        [{"title": "t"}, {"number": "7", "title": "t"}, {"number": True, "title": "t"},
         {"number": 7}],
    )
    def test_invalid_entries(self, data):
        with pytest.raises(NotionwatchValidationError):
            OpenReport.from_dict(data)


def test_report_title():
    assert report_title("prod") == "Notion Changes Report (PROD)"
