"""Line-oriented parser for Dr. Memory text reports (``results.txt``).

WHY: Dr. Memory writes a human-oriented text report with no formal
grammar. Errors still follow a recognizable shape — a numbered header
line, then one line per stack frame — so a lenient state machine can
recover them while ignoring everything else in the file.

HOW: Two states, seeking a header and accumulating frames. A header
line opens a new record; frame lines append to its single implicit
stack; any other line (or end of file) closes the record. Records are
yielded lazily, so a large report is never held in memory.

RULES:
- Header: "Error #<n>: <TITLE>..." — the title selects the type id,
  the text after "Error #<n>: " is the message
- Frame: "#<index> <file>:<line>" (index discarded); Dr. Memory's
  "# <index> <function> [<file>:<line>]" rendering is the same shape
- A header while accumulating closes the previous record first
- Frame lines outside a record and unrecognized lines are skipped
- A record without frames gets no stacks (project-wide error)
- Decode failures raise MalformedReportError(reason="encoding")
"""

from __future__ import annotations

import codecs
import logging
import re
from typing import Iterator, List, Optional, Tuple

from memdiag_converter.config import DEFAULT_REPORT_ENCODING
from memdiag_converter.core.errors import MalformedReportError
from memdiag_converter.core.ir import ErrorRecord, Frame, Stack
from memdiag_converter.parsers.base import (
    BaseReportParser,
    ReportSource,
    open_report,
    report_name,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Error titles → type ids
# ---------------------------------------------------------------------------

# Ordered: "POSSIBLE LEAK" must be tried before "LEAK".
ERROR_TYPES: Tuple[Tuple[str, str], ...] = (
    ("UNADDRESSABLE ACCESS", "UnadressableAccess"),
    ("UNINITIALIZED READ", "UninitializedRead"),
    ("INVALID HEAP ARGUMENT", "InvalidHeapArgument"),
    ("GDI USAGE ERROR", "GdiUsageError"),
    ("HANDLE LEAK", "HandleLeak"),
    ("WARNING", "DrMemoryWarning"),
    ("POSSIBLE LEAK", "PossibleMemoryLeak"),
    ("LEAK", "MemoryLeak"),
)

UNRECOGNIZED_TYPE = "DrMemoryUnrecognized"

_HEADER_RE = re.compile(r"^Error #\d+:\s*(.+)$")
_FRAME_RE = re.compile(r"^#\s*\d+\s+(.+):(\d+)$")
_BRACKET_FRAME_RE = re.compile(r"^#\s*\d+\s+(?:(.*?)\s+)?\[(.+):(\d+)\]$")


def classify_error(message: str) -> str:
    """Map a header message to its Dr. Memory type id.

    Falls back to UNRECOGNIZED_TYPE for titles not in ERROR_TYPES.
    """
    upper = message.upper()
    for title, type_id in ERROR_TYPES:
        if upper.startswith(title):
            return type_id
    return UNRECOGNIZED_TYPE


def match_header(line: str) -> Optional[str]:
    """Return the header message, or None if the line is not a header."""
    match = _HEADER_RE.match(line)
    if match is None:
        return None
    return match.group(1).strip()


def match_frame(line: str) -> Optional[Frame]:
    """Return the Frame a frame line describes, or None."""
    match = _BRACKET_FRAME_RE.match(line)
    if match is not None:
        function, path, line_text = match.groups()
        return Frame(file=path.strip(), line=int(line_text) or None, function=function or None)
    match = _FRAME_RE.match(line)
    if match is not None:
        path, line_text = match.groups()
        return Frame(file=path.strip(), line=int(line_text) or None)
    return None


class DrMemoryTextParser(BaseReportParser):
    """Parser for Dr. Memory ``results.txt`` reports."""

    @property
    def name(self) -> str:
        return "Dr. Memory text"

    def parse(
        self,
        report: ReportSource,
        encoding: Optional[str] = None,
    ) -> Iterator[ErrorRecord]:
        """Lazily parse a Dr. Memory text report.

        Each call starts a fresh pass over the report; an interrupted
        iteration cannot be resumed.

        Args:
            report: Path or binary stream of the text report.
            encoding: Text encoding, DEFAULT_REPORT_ENCODING when None.

        Yields:
            One ErrorRecord per error header, in file order.

        Raises:
            MalformedReportError: If the report cannot be decoded.
        """
        encoding = encoding or DEFAULT_REPORT_ENCODING
        source = report_name(report)
        logger.debug("Parsing Dr. Memory text report %s (%s)", source, encoding)

        with open_report(report) as stream:
            yield from self._parse_lines(self._decode_lines(stream, source, encoding))

    @staticmethod
    def _decode_lines(stream, source: Optional[str], encoding: str) -> Iterator[str]:
        decoder = codecs.getincrementaldecoder(encoding)()
        line_no = 0
        try:
            pending = ""
            for raw in stream:
                line_no += 1
                pending += decoder.decode(raw)
                *complete, pending = pending.split("\n")
                for text in complete:
                    yield text.rstrip("\r")
            pending += decoder.decode(b"", final=True)
            if pending:
                yield pending.rstrip("\r")
        except UnicodeDecodeError as exc:
            raise MalformedReportError(
                "cannot decode report as {}: {}".format(encoding, exc.reason),
                source=source, reason="encoding", line=line_no,
            ) from exc

    @staticmethod
    def _parse_lines(lines: Iterator[str]) -> Iterator[ErrorRecord]:
        message: Optional[str] = None
        frames: List[Frame] = []

        def _finish() -> ErrorRecord:
            stacks = (Stack(tuple(frames)),) if frames else ()
            return ErrorRecord(kind=classify_error(message), message=message, stacks=stacks)

        for line in lines:
            text = line.strip()

            header = match_header(text)
            if header is not None:
                if message is not None:
                    yield _finish()
                message = header
                frames = []
                continue

            if message is None:
                continue

            frame = match_frame(text)
            if frame is not None:
                frames.append(frame)
                continue

            yield _finish()
            message = None
            frames = []

        if message is not None:
            yield _finish()
