"""Decide whether a run opens a new report or extends an open one.

Reports are published as pull requests titled
``"Notion Changes Report (<ENV>)"``.  At most one may be open per
environment: with none a new one is created, with one it is updated
incrementally, and with several the run stops for a human to decide.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from notionwatch.errors import NotionwatchAmbiguousReportError, NotionwatchValidationError

REPORT_TITLE = "Notion Changes Report"


class ReportAction(str, Enum):
    CREATE_NEW = "create_new"
    UPDATE_EXISTING = "update_existing"


@dataclass(frozen=True)
class OpenReport:
    """An open report as listed by the hosting service.

    Attributes
    ----------
    number:
        Pull-request number.
    title:
        Pull-request title.
    branch:
        Head branch holding the reported snapshot files.
    """

    number: int
    title: str
    branch: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> OpenReport:
        """Build from ``gh pr list --json number,title,headRefName`` output.

        Raises
        ------
        NotionwatchValidationError
            If ``number`` or ``title`` is missing or mistyped.
        """
        number = data.get("number")
        title = data.get("title")
        if isinstance(number, bool) or not isinstance(number, int) or not isinstance(title, str):
            raise NotionwatchValidationError(
                message="Open report entries need an integer 'number' and a string 'title'",
                context={"entry": dict(data)},
            )
        branch = data.get("headRefName", data.get("branch", ""))
        return cls(number=number, title=title, branch=branch if isinstance(branch, str) else "")


@dataclass(frozen=True)
class ReportDecision:
    action: ReportAction
    target: OpenReport | None = None
    relevant_count: int = 0


def environment_tag(environment: str) -> str:
    return f"({environment.upper()})"


def report_title(environment: str) -> str:
    return f"{REPORT_TITLE} {environment_tag(environment)}"


def relevant_reports(open_reports: Iterable[OpenReport], environment: str) -> list[OpenReport]:
    """Reports whose title carries the ``(<ENV>)`` tag, in input order."""
    tag = environment_tag(environment)
    return [report for report in open_reports if tag in report.title]


def decide_report_action(open_reports: Iterable[OpenReport], environment: str) -> ReportDecision:
    """Pick the action for *environment* given the currently open reports.

    Raises
    ------
    NotionwatchAmbiguousReportError
        If more than one open report belongs to *environment*.
    """
    relevant = relevant_reports(open_reports, environment)
    if not relevant:
        return ReportDecision(action=ReportAction.CREATE_NEW)
    if len(relevant) == 1:
        return ReportDecision(
            action=ReportAction.UPDATE_EXISTING, target=relevant[0], relevant_count=1,
        )
    raise NotionwatchAmbiguousReportError(
        message=(
            f"Multiple open reports found for {environment} environment. "
            "Manual intervention required."
        ),
        context={
            "environment": environment,
            "report_numbers": [report.number for report in relevant],
        },
    )
