"""Report assembly, rendering and publishing policy.

Exports
-------
ReportAssembler
    Builds :class:`Report` structures from change sets.
MarkdownRenderer
    Renders a report as markdown.
decide_report_action
    Chooses between opening a new report and updating the open one.
"""

from .assembler import (
    Report,
    ReportAssembler,
    ReportEntry,
    ReportMode,
    ReportSection,
    SkippedCollection,
    is_empty_value,
    page_url,
)
from .markdown import (
    MarkdownRenderer,
    brief_summary,
    escape_markdown,
    format_value,
    incremental_report_filename,
    report_filename,
)
from .policy import (
    OpenReport,
    ReportAction,
    ReportDecision,
    decide_report_action,
    relevant_reports,
    report_title,
)

__all__ = [
    "MarkdownRenderer",
    "OpenReport",
    "Report",
    "ReportAction",
    "ReportAssembler",
    "ReportDecision",
    "ReportEntry",
    "ReportMode",
    "ReportSection",
    "SkippedCollection",
    "brief_summary",
    "decide_report_action",
    "escape_markdown",
    "format_value",
    "incremental_report_filename",
    "is_empty_value",
    "page_url",
    "relevant_reports",
    "report_filename",
    "report_title",
]
