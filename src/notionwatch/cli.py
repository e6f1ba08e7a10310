"""Command-line entry point.

Commands print ``key=value`` lines on stdout so a CI workflow can append
them to its step outputs.  Logs go to stderr.

Exit codes: ``0`` success (changes or not), ``1`` when at least one
database was skipped, ``2`` for configuration or usage errors and for
ambiguous open reports.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, TextIO

from notionwatch.config import NotionwatchConfig, load_collections_config
from notionwatch.diff import combine_deltas
from notionwatch.errors import (
    NotionwatchAmbiguousReportError,
    NotionwatchConfigError,
    NotionwatchValidationError,
)
from notionwatch.models import BatchResult, IncrementalDelta
from notionwatch.notion_api import DatabaseAPI, NotionTransport
from notionwatch.observability import get_logger
from notionwatch.observability.logger import set_level
from notionwatch.report import (
    MarkdownRenderer,
    OpenReport,
    ReportAssembler,
    decide_report_action,
    incremental_report_filename,
    report_filename,
)
from notionwatch.runner import ChangeMonitor
from notionwatch.store import SnapshotStore

log = get_logger("notionwatch.cli")

TOKEN_ENV = "NOTION_API_KEY"

EXIT_OK = 0
EXIT_SKIPPED = 1
EXIT_USAGE = 2


def _environment(value: str) -> str:
    if not value or "/" in value or "\\" in value:
        raise argparse.ArgumentTypeError(f"invalid environment name: {value!r}")
    return value


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for stderr output (default: INFO)",
    )

    monitor = argparse.ArgumentParser(add_help=False, parents=[common])
    monitor.add_argument(
        "--config",
        default="./notion-databases.json",
        help="Watched databases file (default: ./notion-databases.json)",
    )
    monitor.add_argument("--state-dir", default="./state", help="Snapshot directory")
    monitor.add_argument("--reports-dir", default="./reports", help="Report output directory")
    monitor.add_argument(
        "--max-workers",
        type=int,
        default=1,
        help="Databases processed concurrently (default: 1)",
    )
    monitor.add_argument(
        "--max-changes",
        type=int,
        default=20,
        help="Detailed changes shown per database (default: 20)",
    )

    parser = argparse.ArgumentParser(
        prog="notionwatch",
        description="Detect and report changes in Notion databases",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser(
        "check",
        parents=[monitor],
        help="Diff every database against its stored snapshot and write a report",
    ).add_argument(
        "--environment",
        type=_environment,
        default=None,
        help="Environment name shown in the report",
    )

    p_incr = sub.add_parser(
        "incremental",
        parents=[monitor],
        help="Report only changes since the open report's snapshots",
    )
    p_incr.add_argument(
        "--reported-state",
        default=None,
        help="Snapshot directory of the open report's branch",
    )
    p_incr.add_argument("--environment", type=_environment, required=True)

    p_action = sub.add_parser(
        "report-action",
        parents=[common],
        help="Read open reports as JSON from stdin and decide create or update",
    )
    p_action.add_argument("--environment", type=_environment, required=True)

    return parser


def _emit(out: TextIO, **values: Any) -> None:
    for key, value in values.items():
        if isinstance(value, bool):
            value = str(value).lower()
        elif value is None:
            value = ""
        out.write(f"{key.replace('_', '-')}={value}\n")


def _config_from_args(args: argparse.Namespace) -> NotionwatchConfig:
    token = os.environ.get(TOKEN_ENV, "")
    if not token:
        raise NotionwatchConfigError(
            message=f"{TOKEN_ENV} is not set",
            context={"reason": "missing_token"},
        )
    try:
        return NotionwatchConfig(
            token=token,
            state_dir=args.state_dir,
            reports_dir=args.reports_dir,
            max_workers=args.max_workers,
            max_changes_per_collection=args.max_changes,
        )
    except ValueError as exc:
        raise NotionwatchConfigError(
            message=str(exc), context={"reason": "invalid_option"}, cause=exc,
        ) from exc


def _run_monitor(
    args: argparse.Namespace, incremental: bool,
) -> tuple[NotionwatchConfig, BatchResult]:
    config = _config_from_args(args)
    collections = load_collections_config(args.config)
    reported_store = None
    if incremental and args.reported_state:
        reported_store = SnapshotStore(args.reported_state)

    with NotionTransport(config) as transport:
        monitor = ChangeMonitor(
            config,
            collections,
            database_api=DatabaseAPI(transport),
            store=SnapshotStore(config.state_dir),
        )
        result = monitor.run(reported_store=reported_store, incremental=incremental)
    return config, result


def _write_report(reports_dir: str, filename: str, text: str) -> Path:
    path = Path(reports_dir) / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _skipped(result: BatchResult) -> str:
    return ",".join(outcome.collection_id for outcome in result.skipped)


def _cmd_check(args: argparse.Namespace, out: TextIO) -> int:
    config, result = _run_monitor(args, incremental=False)
    assembler = ReportAssembler(config.max_changes_per_collection)
    report = assembler.assemble(
        result.change_sets, environment=args.environment, skipped=result.skipped,
    )
    path = _write_report(
        config.reports_dir,
        report_filename("notion-changes", report.generated_at),
        MarkdownRenderer().render(report),
    )
    totals = report.totals
    _emit(
        out,
        has_changes=report.has_changes,
        total_changes=totals.total,
        report_file=path,
        skipped=_skipped(result),
    )
    return EXIT_SKIPPED if result.has_failures else EXIT_OK


def _cmd_incremental(args: argparse.Namespace, out: TextIO) -> int:
    config, result = _run_monitor(args, incremental=True)
    deltas = [cs for cs in result.change_sets if isinstance(cs, IncrementalDelta)]
    assembler = ReportAssembler(config.max_changes_per_collection)
    report = assembler.assemble_incremental(
        combine_deltas(deltas), environment=args.environment, skipped=result.skipped,
    )
    path = None
    if report is not None:
        path = _write_report(
            config.reports_dir,
            incremental_report_filename(args.environment, report.generated_at),
            MarkdownRenderer().render(report),
        )
    _emit(
        out,
        has_changes=report is not None,
        total_changes=report.totals.total if report is not None else 0,
        report_file=path,
        skipped=_skipped(result),
    )
    return EXIT_SKIPPED if result.has_failures else EXIT_OK


def _read_open_reports(stream: TextIO) -> list[OpenReport]:
    raw = stream.read().strip() or "[]"
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise NotionwatchValidationError(
            message="Open reports input is not valid JSON",
            context={"reason": "invalid_json"},
            cause=exc,
        ) from exc
    if not isinstance(data, list):
        raise NotionwatchValidationError(
            message="Open reports input must be a JSON list",
            context={"reason": "not_a_list"},
        )
    return [OpenReport.from_dict(item) for item in data if isinstance(item, dict)]


def _cmd_report_action(args: argparse.Namespace, out: TextIO, stdin: TextIO) -> int:
    open_reports = _read_open_reports(stdin)
    try:
        decision = decide_report_action(open_reports, args.environment)
    except NotionwatchAmbiguousReportError as exc:
        _emit(
            out,
            action="error",
            existing_count=len(exc.context.get("report_numbers", [])),
            error_message=exc.message,
        )
        raise
    target = decision.target
    _emit(
        out,
        action=decision.action.value,
        existing_count=decision.relevant_count,
        target_number=target.number if target else None,
        target_branch=target.branch if target else None,
        target_title=target.title if target else None,
    )
    return EXIT_OK


def main(
    argv: list[str] | None = None,
    *,
    stdout: TextIO | None = None,
    stdin: TextIO | None = None,
) -> int:
    args = _build_parser().parse_args(argv)
    set_level(args.log_level)
    out = stdout or sys.stdout

    try:
        if args.command == "check":
            return _cmd_check(args, out)
        if args.command == "incremental":
            return _cmd_incremental(args, out)
        return _cmd_report_action(args, out, stdin or sys.stdin)
    except (NotionwatchConfigError, NotionwatchValidationError, NotionwatchAmbiguousReportError) as exc:
        log.error(
            exc.message,
            extra={"extra_fields": {"op": args.command, "code": exc.code, **exc.context}},
        )
        return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
