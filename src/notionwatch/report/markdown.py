"""Markdown rendering of assembled reports."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from notionwatch.models import UNDEFINED, ChangeKind, ChangeSummary
from notionwatch.store.codec import format_timestamp

from .assembler import Report, ReportEntry, ReportMode, ReportSection, SkippedCollection

MAX_VALUE_LENGTH = 50

_ICONS = {
    ChangeKind.ADDED: "➕",
    ChangeKind.UPDATED: "📝",
    ChangeKind.DELETED: "❌",
}

_MARKDOWN_SPECIALS = "[]*_`~"


def escape_markdown(text: str) -> str:
    return "".join("\\" + ch if ch in _MARKDOWN_SPECIALS else ch for ch in text)


def _escape_cell(text: str) -> str:
    return escape_markdown(text).replace("|", "\\|").replace("\n", " ")


def format_value(value: Any) -> str:
    """Short display form of a normalized field value."""
    if value is None or value is UNDEFINED:
        return "*empty*"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        if not value:
            return "*empty array*"
        return "[" + ", ".join(str(item) for item in value) + "]"
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False, sort_keys=True)
    text = str(value)
    if len(text) > MAX_VALUE_LENGTH:
        return text[:MAX_VALUE_LENGTH] + "..."
    return text


def _summary_lines(summary: ChangeSummary) -> list[str]:
    return [
        f"- {_ICONS[ChangeKind.ADDED]} Added: {summary.added}",
        f"- {_ICONS[ChangeKind.UPDATED]} Updated: {summary.updated}",
        f"- {_ICONS[ChangeKind.DELETED]} Deleted: {summary.deleted}",
    ]


class MarkdownRenderer:
    """Renders a :class:`Report` as a GitHub-flavoured markdown document.

    Parameters
    ----------
    include_timestamps:
        Append each record's revision marker to its heading.
    """

    def __init__(self, include_timestamps: bool = True) -> None:
        self.include_timestamps = include_timestamps

    def render(self, report: Report) -> str:
        lines: list[str] = []
        if report.mode is ReportMode.INCREMENTAL:
            lines.append(f"# 📊 Incremental Changes - {report.generated_at:%Y-%m-%d}")
        else:
            lines.append("# 📊 Notion Changes Report")
        lines.append("")
        if report.environment:
            lines.append(f"> **Environment**: {report.environment}")
        lines.append(f"> **Generated**: {format_timestamp(report.generated_at)}")
        lines.append("")

        lines.extend(self._summary(report))
        if report.skipped:
            lines.append("")
            lines.extend(self._skipped(report.skipped))
        for section in report.sections:
            lines.append("")
            lines.extend(self._section(section))

        if report.mode is ReportMode.INCREMENTAL:
            lines.extend(["", "---", "*This is an incremental update to avoid duplicate content.*"])
        return "\n".join(lines) + "\n"

    def _summary(self, report: Report) -> list[str]:
        totals = report.totals
        lines = ["## 📋 Summary", ""]
        if totals.total == 0 and report.has_failures:
            lines.append("No changes detected in the databases that were checked.")
        elif totals.total == 0:
            lines.append("No changes detected.")
        else:
            lines.append(f"**Total Changes**: {totals.total}")
            lines.extend(_summary_lines(totals))
        lines.extend(["", f"**Databases Affected**: {report.collections_affected}"])

        if report.sections:
            lines.extend([
                "",
                "| Database | Added | Updated | Deleted | Total |",
                "|---|---|---|---|---|",
            ])
            for section in report.sections:
                s = section.summary
                lines.append(
                    f"| {_escape_cell(section.label)} | {s.added} | {s.updated} "
                    f"| {s.deleted} | {s.total} |"
                )
        return lines

    def _skipped(self, skipped: list[SkippedCollection]) -> list[str]:
        lines = [
            "## ⚠️ Skipped Databases",
            "",
            f"{len(skipped)} database(s) could not be checked:",
            "",
        ]
        for item in skipped:
            reason = " ".join(escape_markdown(item.reason).splitlines())
            lines.append(
                f"- **{escape_markdown(item.label)}** (`{item.collection_id}`): {reason}"
            )
        return lines

    def _section(self, section: ReportSection) -> list[str]:
        lines = [f"## 🗂️ {escape_markdown(section.label)}", ""]
        if not section.has_changes:
            lines.append("No changes.")
            return lines

        lines.append(f"**Database Changes**: {section.summary.total}")
        lines.extend(_summary_lines(section.summary))
        lines.append("")
        for entry in section.entries:
            lines.extend(self._entry(entry))
        if section.omitted:
            lines.extend([f"*... and {section.omitted} more changes*", ""])
        return lines

    def _entry(self, entry: ReportEntry) -> list[str]:
        heading = (
            f"### {_ICONS[entry.kind]} {entry.kind.value.upper()}: "
            f"[{escape_markdown(entry.title)}]({entry.url})"
        )
        if self.include_timestamps and entry.revision_marker:
            heading += f" *({entry.revision_marker})*"
        lines = [heading, ""]

        if entry.kind is ChangeKind.ADDED and entry.initial_fields:
            lines.append("**Initial Properties:**")
            for name, value in entry.initial_fields.items():
                lines.append(f"- **{escape_markdown(name)}**: {format_value(value)}")
            lines.append("")

        if entry.kind is ChangeKind.UPDATED and entry.field_changes:
            lines.extend([
                "**Property Changes:**",
                "",
                "| Property | Previous | Current |",
                "|---|---|---|",
            ])
            for change in entry.field_changes:
                lines.append(
                    f"| {_escape_cell(change.name)} "
                    f"| {_escape_cell(format_value(change.previous_value))} "
                    f"| {_escape_cell(format_value(change.current_value))} |"
                )
            lines.append("")
        return lines


def brief_summary(report: Report | None) -> str:
    """A few lines for a pull-request body."""
    if report is None or not report.has_changes:
        return "No new changes detected."
    totals = report.totals
    return "\n".join([
        f"**{totals.total} new changes detected**",
        f"- ➕ {totals.added} added, 📝 {totals.updated} updated, ❌ {totals.deleted} deleted",
        f"- Across {report.collections_affected} database(s)",
    ])


def _utc(when: datetime | None) -> datetime:
    if when is None:
        return datetime.now(timezone.utc)
    if when.tzinfo is None:
        return when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc)


def report_filename(prefix: str = "notion-changes", when: datetime | None = None) -> str:
    """``<prefix>-YYYY-MM-DD-HHMMSS.md`` in UTC."""
    return f"{prefix}-{_utc(when):%Y-%m-%d-%H%M%S}.md"


def incremental_report_filename(environment: str, when: datetime | None = None) -> str:
    """``incremental-<environment>-YYYY-MM-DD-HHMMSS.md`` in UTC.

    Raises
    ------
    ValueError
        If *environment* is empty or contains a path separator.
    """
    if not environment or "/" in environment or "\\" in environment:
        raise ValueError(f"Invalid environment name: {environment!r}")
    return report_filename(f"incremental-{environment}", when)
