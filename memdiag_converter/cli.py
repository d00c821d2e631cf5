"""Command-line interface for the memory-diagnostic report converter.

WHY: CI jobs need a simple way to turn Valgrind or Dr. Memory reports
into project-anchored issues from the terminal. The CLI wires together
the full pipeline — project indexing, report parsing, localization,
deduplication, pluggable formatter output, and file saving — behind a
single command.

HOW: Uses argparse to accept report files, the dialect, the project
root, encoding/worker options, output format selection, and output
directory. Runs process_reports() over the reports, then every selected
formatter over the collected issues. Status messages go to stderr;
output files are saved to --output-dir (default: current directory).

RULES:
- Positional arguments: one or more report file paths
- --dialect selects the parser (default from MEMDIAG_DIALECT)
- --project-root is indexed once; frames resolve against it
- --formats: comma-separated formatter keys (default: all registered)
- Output naming: {output-name}{suffix}, numeric suffix for conflicts
  (memdiag-issues-2.json)
- Malformed reports are reported and skipped; --fail-fast stops instead
- Exit code 1 when any report failed or on configuration errors
- Status output goes to stderr (not stdout)
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from memdiag_converter.config import (
    DEFAULT_DIALECT,
    DEFAULT_OUTPUT_NAME,
    DEFAULT_REPORT_ENCODING,
    DIALECTS,
    configure_logging,
    load_workers,
)
from memdiag_converter.core.errors import MalformedReportError
from memdiag_converter.core.localizer import frame_resolver
from memdiag_converter.core.pipeline import process_reports
from memdiag_converter.core.project import ProjectFileIndex
from memdiag_converter.core.sink import IssueCollector
from memdiag_converter.formatters import FORMATTERS
from memdiag_converter.formatters.base import FormatterOutput


def _status(msg: str) -> None:
    """Print a status message to stderr.

    WHY: Status output must not pollute stdout so the CLI can be piped.
    """
    print(msg, file=sys.stderr, flush=True)


def _resolve_output_path(
    stem: str,
    suffix: str,
    output_dir: Path,
) -> Path:
    """Resolve the output file path, adding numeric suffix on conflict.

    WHY: Users may run the converter repeatedly into the same directory.
    Overwriting previous output would lose results. Numeric suffixes
    (-issues-2.json) prevent data loss.

    RULES:
    - First attempt: {stem}{suffix} (e.g. memdiag-issues.json)
    - Conflict: split suffix at last dot, insert counter before extension
      (e.g. memdiag-issues-2.json)
    - Counter starts at 2 and increments
    """
    base_path = output_dir / "{}{}".format(stem, suffix)
    if not base_path.exists():
        return base_path

    dot_idx = suffix.rfind(".")
    if dot_idx > 0:
        suffix_name = suffix[:dot_idx]
        suffix_ext = suffix[dot_idx:]
    else:
        suffix_name = suffix
        suffix_ext = ""

    counter = 2
    while True:
        candidate = output_dir / "{}{}-{}{}".format(stem, suffix_name, counter, suffix_ext)
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(
    output: FormatterOutput,
    stem: str,
    output_dir: Path,
) -> Path:
    """Save a single formatter output to disk as UTF-8 text."""
    path = _resolve_output_path(stem, output.suffix, output_dir)
    path.write_text(output.content, encoding="utf-8")
    return path


def _select_formats(formats: Optional[str]) -> List[str]:
    """Validate the --formats value; raise ValueError on unknown keys."""
    if not formats:
        return list(FORMATTERS.keys())
    keys = [f.strip() for f in formats.split(",") if f.strip()]
    for key in keys:
        if key not in FORMATTERS:
            available = ", ".join(sorted(FORMATTERS.keys()))
            raise ValueError("Unknown format '{}'. Available formats: {}".format(key, available))
    return keys


def run(args: argparse.Namespace) -> int:
    """Execute the full conversion pipeline and return the exit code.

    RULES:
    - Validate inputs before reading any report
    - Status messages to stderr at each step
    - Formatter output is written even when some reports failed
    """
    try:
        format_keys = _select_formats(args.formats)
        workers = args.workers if args.workers is not None else load_workers()
        if workers < 1:
            raise ValueError("--workers must be at least 1, got {}".format(workers))
    except ValueError as e:
        print("Error: {}".format(e), file=sys.stderr)
        return 1

    project_root = Path(args.project_root).resolve()
    if not project_root.is_dir():
        print("Error: Project root does not exist: {}".format(project_root), file=sys.stderr)
        return 1

    output_dir = Path(args.output_dir).resolve() if args.output_dir else Path.cwd()
    if not output_dir.is_dir():
        print("Error: Output directory does not exist: {}".format(output_dir), file=sys.stderr)
        return 1

    reports = [Path(r) for r in args.reports]
    missing = [r for r in reports if not r.is_file()]
    if missing:
        print("Error: Report not found: {}".format(missing[0]), file=sys.stderr)
        return 1

    _status("Indexing project {}...".format(project_root))
    index = ProjectFileIndex(project_root)
    _status("  {} files".format(len(index)))

    _status("Parsing {} report(s) as {}...".format(len(reports), args.dialect))
    sink = IssueCollector()
    try:
        summary = process_reports(
            reports,
            args.dialect,
            frame_resolver(index),
            sink,
            encoding=args.encoding,
            workers=workers,
            fail_fast=args.fail_fast,
        )
    except MalformedReportError as e:
        print("Error: {}".format(e), file=sys.stderr)
        return 1
    except ValueError as e:
        print("Error: {}".format(e), file=sys.stderr)
        return 1

    for result in summary.results:
        if result.ok:
            _status("  {}: {} errors, {} new issues, {} unassigned".format(
                result.report, result.errors, result.issues, result.unassigned,
            ))
        else:
            _status("  {}: FAILED ({})".format(result.report, result.failure))

    issues = sink.issues()
    source = ", ".join(r.name for r in reports)

    _status("Formatting output...")
    saved_files: List[Path] = []
    for key in format_keys:
        formatter = FORMATTERS[key]()
        _status("  Running {} formatter...".format(formatter.name))
        for output in formatter.format(issues, source):
            saved_files.append(_save_output(output, args.output_name, output_dir))

    _status("")
    _status("Done! {} issue(s), {} duplicate(s) dropped, saved {} file(s) to {}".format(
        len(issues), sink.duplicates, len(saved_files), output_dir,
    ))
    for f in saved_files:
        _status("  {}".format(f.name))

    return 1 if summary.failed else 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    WHY: Separating parser construction from main() makes the CLI
    testable — tests can inspect the parser without running the pipeline.
    """
    parser = argparse.ArgumentParser(
        prog="memdiag_converter",
        description="Convert Valgrind XML and Dr. Memory text reports into "
                    "project-anchored, deduplicated issues.",
    )

    parser.add_argument(
        "reports",
        nargs="+",
        help="Report file(s) to convert.",
    )

    parser.add_argument(
        "--dialect",
        choices=DIALECTS,
        default=DEFAULT_DIALECT,
        help="Report dialect (default: %(default)s).",
    )

    parser.add_argument(
        "--project-root",
        default=".",
        help="Root directory of the analyzed project (default: current directory).",
    )

    parser.add_argument(
        "--encoding",
        default=None,
        help="Report text encoding (default: document declaration for XML, "
             "{} for text reports).".format(DEFAULT_REPORT_ENCODING),
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of reports parsed in parallel (default: MEMDIAG_WORKERS or 4).",
    )

    parser.add_argument(
        "--formats",
        default=None,
        help="Comma-separated list of output formats. "
             "Available: {}. Default: all.".format(", ".join(sorted(FORMATTERS.keys()))),
    )

    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory to save output files (default: current directory).",
    )

    parser.add_argument(
        "--output-name",
        default=DEFAULT_OUTPUT_NAME,
        help="Stem of the output file names (default: %(default)s).",
    )

    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop at the first malformed report instead of skipping it.",
    )

    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: MEMDIAG_LOG_LEVEL or WARNING).",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    - Exits with the code returned by run()
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
