"""Unit tests for the report processing pipeline.

WHY: process_report() and process_reports() are what the CLI calls. Their
counters feed the status output and the exit code, and their failure
handling decides whether one broken report takes down a whole CI run.

HOW: Reports are written to tmp_path and processed against the in-memory
project index from conftest.py with a fresh IssueCollector per test.

RULES:
- Valgrind samples use the conftest.py builders
- Every test gets its own sink
"""

import io

import pytest

from memdiag_converter.config import DRMEMORY_TEXT, VALGRIND_XML
from memdiag_converter.core.errors import MalformedReportError
from memdiag_converter.core.localizer import frame_resolver
from memdiag_converter.core.pipeline import BatchSummary, ReportResult, process_report, process_reports
from memdiag_converter.core.sink import IssueCollector

from tests.conftest import (
    DRMEMORY_REPORT,
    MULTIPLE_AUXWHAT_REPORT,
    MULTIPLE_STACKS_REPORT,
    valgrind_error,
    valgrind_report,
)

BROKEN_REPORT = valgrind_report(valgrind_error(stacks=[]))


@pytest.fixture
def resolver(project_index):
    return frame_resolver(project_index)


@pytest.fixture
def sink():
    return IssueCollector()


class TestProcessReport:
    """One report through parser, localizer and sink."""

    def test_valgrind_counts(self, write_report, resolver, sink):
        path = write_report("valgrind.xml", MULTIPLE_STACKS_REPORT)
        result = process_report(path, VALGRIND_XML, resolver, sink)
        assert result == ReportResult(report=str(path), errors=1, issues=1)
        assert result.ok

    def test_valgrind_issue_anchor(self, write_report, resolver, sink):
        path = write_report("valgrind.xml", MULTIPLE_STACKS_REPORT)
        process_report(path, VALGRIND_XML, resolver, sink)
        issue = sink.issues()[0]
        assert issue.rule_id == "InvalidWrite"
        assert issue.primary_file == "/work/project/src/buffer.c"
        assert issue.primary_line == 21
        assert len(issue.secondary_locations) == 5

    def test_drmemory_counts(self, write_report, resolver, sink):
        path = write_report("results.txt", DRMEMORY_REPORT)
        result = process_report(path, DRMEMORY_TEXT, resolver, sink)
        # the libc-only POSSIBLE LEAK cannot be assigned; HANDLE LEAK is project-wide
        assert (result.errors, result.issues, result.unassigned) == (5, 4, 1)
        assert sum(1 for i in sink.issues() if i.is_project_wide) == 1

    def test_second_pass_only_duplicates(self, write_report, resolver, sink):
        path = write_report("results.txt", DRMEMORY_REPORT)
        process_report(path, DRMEMORY_TEXT, resolver, sink)
        again = process_report(path, DRMEMORY_TEXT, resolver, sink)
        assert (again.issues, again.duplicates) == (0, 4)
        assert len(sink) == 4

    def test_stream_source(self, resolver, sink):
        stream = io.BytesIO(MULTIPLE_AUXWHAT_REPORT.encode("utf-8"))
        result = process_report(stream, VALGRIND_XML, resolver, sink)
        assert result.report == "<stream>"
        assert result.issues == 1

    def test_unknown_dialect(self, write_report, resolver, sink):
        path = write_report("valgrind.xml", MULTIPLE_STACKS_REPORT)
        with pytest.raises(ValueError, match="Unknown report dialect"):
            process_report(path, "purify", resolver, sink)

    def test_malformed_report_propagates(self, write_report, resolver, sink):
        path = write_report("broken.xml", BROKEN_REPORT)
        with pytest.raises(MalformedReportError):
            process_report(path, VALGRIND_XML, resolver, sink)
        assert len(sink) == 0

    def test_late_decode_failure_adds_nothing(self, write_report, resolver, sink):
        data = (
            b"Error #1: LEAK 4 direct bytes\n"
            b"#0 /work/project/src/main.c:3\n"
            b"\n"
            b"Error #2: LEAK 8 direct bytes\n"
            b"#0 /work/project/src/buffer.c:7\n"
            b"\n"
            b"\xff\xfe\n"
        )
        path = write_report("results.txt", data)
        with pytest.raises(MalformedReportError) as excinfo:
            process_report(path, DRMEMORY_TEXT, resolver, sink)
        assert excinfo.value.reason == "encoding"
        assert len(sink) == 0


class TestProcessReports:
    """Batches: failure containment, fail-fast and parallel workers."""

    def test_failed_report_is_recorded(self, write_report, resolver, sink):
        good = write_report("good.xml", MULTIPLE_STACKS_REPORT)
        bad = write_report("broken.xml", BROKEN_REPORT)
        summary = process_reports([good, bad], VALGRIND_XML, resolver, sink)
        assert [r.ok for r in summary.results] == [True, False]
        assert summary.failed == [summary.results[1]]
        assert "<stack>" in summary.results[1].failure
        assert summary.issues == 1

    def test_failed_text_report_leaves_sink_untouched(self, write_report, resolver, sink):
        good = write_report("good.txt", DRMEMORY_REPORT)
        bad = write_report(
            "bad.txt",
            b"Error #1: LEAK 4 direct bytes\n#0 /work/project/include/buffer.h:3\n\n\xff\xfe\n",
        )
        summary = process_reports([good, bad], DRMEMORY_TEXT, resolver, sink)
        assert [r.ok for r in summary.results] == [True, False]
        assert len(sink) == summary.issues == 4
        assert all(i.primary_file != "/work/project/include/buffer.h" for i in sink.issues())

    def test_fail_fast_raises(self, write_report, resolver, sink):
        good = write_report("good.xml", MULTIPLE_STACKS_REPORT)
        bad = write_report("broken.xml", BROKEN_REPORT)
        with pytest.raises(MalformedReportError):
            process_reports([bad, good], VALGRIND_XML, resolver, sink, fail_fast=True)

    def test_fail_fast_with_workers(self, write_report, resolver, sink):
        bad = write_report("broken.xml", BROKEN_REPORT)
        good = write_report("good.xml", MULTIPLE_STACKS_REPORT)
        with pytest.raises(MalformedReportError):
            process_reports([bad, good], VALGRIND_XML, resolver, sink, workers=2, fail_fast=True)

    def test_workers_keep_input_order(self, write_report, resolver, sink):
        paths = [
            write_report("a.xml", MULTIPLE_STACKS_REPORT),
            write_report("b.xml", MULTIPLE_AUXWHAT_REPORT),
            write_report("c.xml", BROKEN_REPORT),
            write_report("d.xml", MULTIPLE_STACKS_REPORT),
        ]
        summary = process_reports(paths, VALGRIND_XML, resolver, sink, workers=4)
        assert [r.report for r in summary.results] == [str(p) for p in paths]
        assert len(summary.failed) == 1
        # a.xml and d.xml carry the same error
        assert len(sink) == 2
        assert summary.issues == 2

    def test_unknown_dialect_before_reading(self, tmp_path, resolver, sink):
        with pytest.raises(ValueError):
            process_reports([tmp_path / "missing.xml"], "purify", resolver, sink)

    def test_summary_totals(self, write_report, resolver, sink):
        path = write_report("results.txt", DRMEMORY_REPORT)
        summary = process_reports([path], DRMEMORY_TEXT, resolver, sink)
        assert isinstance(summary, BatchSummary)
        assert (summary.errors, summary.issues, summary.unassigned) == (5, 4, 1)
        assert summary.failed == []
