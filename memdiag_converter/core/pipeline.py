"""Report processing pipeline: parse → localize → collect.

WHY: The CLI (and any embedding host) needs one call that turns report
files into deduplicated issues, with per-record failures tolerated and
per-file failures contained to the file that caused them.

HOW: process_report() runs one report through its dialect parser, the
localizer and the sink, returning a ReportResult with counters.
process_reports() fans a batch out over a ThreadPoolExecutor; every
worker builds its own parser instance and shares only the thread-safe
IssueCollector and the read-only resolver.

RULES:
- Unknown dialects raise ValueError before any report is read
- MalformedReportError from process_report() propagates to the caller
- process_reports() records failed reports and continues, unless
  fail_fast=True, in which case the first failure is re-raised
- Records that cannot be localized are counted, never fatal
- A report's issues reach the sink only after the whole report parsed;
  a report that fails part-way adds nothing
- Set-valued parser results are processed in a stable sorted order
- Results are returned in the order the reports were given
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from memdiag_converter.core.errors import LocalizationFailure, MalformedReportError
from memdiag_converter.core.ir import ErrorRecord, Issue
from memdiag_converter.core.localizer import FrameResolver, build_issue
from memdiag_converter.core.sink import IssueCollector
from memdiag_converter.parsers import PARSERS
from memdiag_converter.parsers.base import ReportSource, report_name

logger = logging.getLogger(__name__)


@dataclass
class ReportResult:
    """Outcome of processing one report.

    RULES:
    - errors: records the parser produced
    - issues: new issues stored in the sink
    - duplicates: issues the sink already had
    - unassigned: records with no project frame
    - failure: message of the MalformedReportError, if the report failed
    """

    report: str
    errors: int = 0
    issues: int = 0
    duplicates: int = 0
    unassigned: int = 0
    failure: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass
class BatchSummary:
    """Outcome of processing several reports."""

    results: List[ReportResult] = field(default_factory=list)

    @property
    def failed(self) -> List[ReportResult]:
        return [r for r in self.results if not r.ok]

    @property
    def errors(self) -> int:
        return sum(r.errors for r in self.results)

    @property
    def issues(self) -> int:
        return sum(r.issues for r in self.results)

    @property
    def unassigned(self) -> int:
        return sum(r.unassigned for r in self.results)


def _record_sort_key(record: ErrorRecord):
    return (record.kind, record.message, tuple(f.describe() for f in record.frames))


def _check_dialect(dialect: str) -> None:
    if dialect not in PARSERS:
        available = ", ".join(sorted(PARSERS))
        raise ValueError(
            "Unknown report dialect '{}'. Available dialects: {}".format(dialect, available)
        )


def process_report(
    report: ReportSource,
    dialect: str,
    resolver: FrameResolver,
    sink: IssueCollector,
    encoding: Optional[str] = None,
) -> ReportResult:
    """Parse one report and hand its localized issues to ``sink``.

    Args:
        report: Path or binary stream of the report.
        dialect: Key into PARSERS.
        resolver: Frame → canonical project path (or None).
        sink: Destination for the localized issues.
        encoding: Report encoding override.

    Returns:
        Counters for this report.

    Raises:
        ValueError: If the dialect is unknown.
        MalformedReportError: If the report is malformed.
    """
    _check_dialect(dialect)
    parser = PARSERS[dialect]()
    result = ReportResult(report=report_name(report) or "<stream>")

    records: Iterable[ErrorRecord] = parser.parse(report, encoding)
    if isinstance(records, (set, frozenset)):
        records = sorted(records, key=_record_sort_key)

    # nothing reaches the sink until the parser has finished
    pending: List[Issue] = []
    for record in records:
        result.errors += 1
        try:
            pending.append(build_issue(record, resolver))
        except LocalizationFailure as exc:
            logger.warning("%s: %s", result.report, exc)
            result.unassigned += 1

    for issue in pending:
        if sink.add(issue):
            result.issues += 1
        else:
            result.duplicates += 1

    logger.info(
        "Processed %s: %d errors, %d new issues, %d duplicates, %d unassigned",
        result.report, result.errors, result.issues, result.duplicates, result.unassigned,
    )
    return result


def process_reports(
    reports: Sequence[ReportSource],
    dialect: str,
    resolver: FrameResolver,
    sink: IssueCollector,
    encoding: Optional[str] = None,
    workers: int = 1,
    fail_fast: bool = False,
) -> BatchSummary:
    """Process several reports, optionally in parallel.

    Args:
        reports: Report paths (or streams) to process.
        dialect: Key into PARSERS, shared by all reports.
        resolver: Frame → canonical project path; must be thread-safe.
        sink: Shared destination for issues.
        encoding: Report encoding override.
        workers: Number of worker threads (1 = sequential).
        fail_fast: Re-raise the first MalformedReportError instead of
                   recording it and continuing.

    Returns:
        BatchSummary with one ReportResult per report, in input order.
    """
    _check_dialect(dialect)

    def _run(report: ReportSource) -> ReportResult:
        try:
            return process_report(report, dialect, resolver, sink, encoding)
        except MalformedReportError as exc:
            if fail_fast:
                raise
            logger.error("Skipping malformed report: %s", exc)
            return ReportResult(report=report_name(report) or "<stream>", failure=str(exc))

    summary = BatchSummary()
    if workers <= 1 or len(reports) <= 1:
        for report in reports:
            summary.results.append(_run(report))
        return summary

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="memdiag") as pool:
        futures = [pool.submit(_run, report) for report in reports]
        try:
            for future in futures:
                summary.results.append(future.result())
        except MalformedReportError:
            for future in futures:
                future.cancel()
            raise
    return summary
