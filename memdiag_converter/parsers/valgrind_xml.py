"""Streaming parser for Valgrind XML reports (``--xml=yes`` output).

WHY: Valgrind reports can be large, and one run may hold thousands of
errors. Building the whole document tree before looking at it wastes
memory, and a truncated report (Valgrind killed mid-run) must be rejected
with a precise position rather than half-parsed.

HOW: The report is decoded and fed to an ElementTree XMLPullParser one
line at a time. Start/end events drive a small state machine: entering
``<error>`` opens an _ErrorBuilder, the ``end`` events of its children
fill it in, and the ``end`` of ``<error>`` validates and emits the
record. Every finished top-level subtree is cleared and detached from
the root, so memory stays bounded by one top-level element.

RULES:
- <kind> text is the error type id; missing <kind> is fatal
- <what> / <xwhat><text> open the message; <auxwhat> / <xauxwhat><text>
  append to it; all segments are joined with "; " in document order
- At least one what-class element per <error>, or the report is malformed
- Each <stack> inside an <error> becomes one Stack; zero stacks is fatal
- <stack> blocks outside <error> (e.g. <fatal_signal>) are ignored
- <frame>: <dir> + <file> joined into the frame path, <line> as int,
  <fn>, <obj>, <ip> kept as detail
- Encoding: the caller's override, else the byte order mark, else the
  XML declaration, else UTF-8
- Undecodable bytes and unknown encodings raise MalformedReportError
  with reason "encoding"; XML syntax errors and truncation use "xml"
- The result is a set: identical errors collapse
- Nothing is returned when any error is malformed
"""

from __future__ import annotations

import codecs
import logging
import os
import re
from typing import BinaryIO, List, Optional, Set
from xml.etree import ElementTree

from memdiag_converter.core.errors import MalformedReportError
from memdiag_converter.core.ir import ErrorRecord, Frame, Stack
from memdiag_converter.parsers.base import (
    BaseReportParser,
    ReportSource,
    open_report,
    report_name,
)

logger = logging.getLogger(__name__)

MESSAGE_SEPARATOR = "; "

_DECLARED_ENCODING_RE = re.compile(
    rb"""^<\?xml[^>]*?\sencoding\s*=\s*["']([A-Za-z][A-Za-z0-9._-]*)["']"""
)

# utf-8-sig and utf-16 decoders drop the mark themselves.
_BYTE_ORDER_MARKS = (
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)


def sniff_encoding(first_line: bytes) -> str:
    """Encoding of an XML document, from the first line of its bytes.

    Falls back to UTF-8, the XML default.
    """
    for mark, name in _BYTE_ORDER_MARKS:
        if first_line.startswith(mark):
            return name
    match = _DECLARED_ENCODING_RE.match(first_line)
    if match is not None:
        return match.group(1).decode("ascii")
    return "utf-8"


class _ErrorBuilder:
    """Accumulates the children of one ``<error>`` element.

    ``start_line`` is the line on which the ``<error>`` start tag was read.
    """

    def __init__(self, start_line: int) -> None:
        self.start_line = start_line
        self.kind: Optional[str] = None
        self.unique: Optional[str] = None
        self.has_what = False
        self.segments: List[str] = []
        self.stacks: List[Stack] = []

    def add_what(self, text: str) -> None:
        self.has_what = True
        self.segments.append(text)

    def add_auxwhat(self, text: str) -> None:
        self.segments.append(text)

    def describe(self) -> str:
        if self.unique:
            return "<error> {} (starting at line {})".format(self.unique, self.start_line)
        return "<error> starting at line {}".format(self.start_line)

    def build(self, source: Optional[str], line: int) -> ErrorRecord:
        """Validate the accumulated state and freeze it into an ErrorRecord."""
        if not self.kind:
            raise MalformedReportError(
                "{} has no <kind>".format(self.describe()), source=source, line=line,
            )
        if not self.has_what:
            raise MalformedReportError(
                "{} has no <what> or <xwhat>".format(self.describe()),
                source=source, line=line,
            )
        if not self.stacks:
            raise MalformedReportError(
                "{} has no <stack>".format(self.describe()), source=source, line=line,
            )
        return ErrorRecord(
            kind=self.kind,
            message=MESSAGE_SEPARATOR.join(self.segments),
            stacks=tuple(self.stacks),
        )


def _element_text(elem: ElementTree.Element) -> str:
    return (elem.text or "").strip()


def _child_text(elem: ElementTree.Element, tag: str) -> Optional[str]:
    text = elem.findtext(tag)
    if text is None:
        return None
    text = text.strip()
    return text or None


def _parse_line_number(text: Optional[str]) -> Optional[int]:
    if text is None or not text.isdigit():
        return None
    number = int(text)
    return number if number > 0 else None


def parse_frame(elem: ElementTree.Element) -> Frame:
    """Build a Frame from a completed ``<frame>`` element."""
    directory = _child_text(elem, "dir")
    file_name = _child_text(elem, "file")
    if file_name and directory:
        path: Optional[str] = os.path.join(directory, file_name)
    else:
        path = file_name
    return Frame(
        file=path,
        line=_parse_line_number(_child_text(elem, "line")),
        function=_child_text(elem, "fn"),
        obj=_child_text(elem, "obj"),
        address=_child_text(elem, "ip"),
        directory=directory,
    )


class _ReportReader:
    """One pass of an XMLPullParser over one report.

    Positions are line based: events are read after every fed line, so
    ``line_no`` is the line the current event's tag was read on.
    """

    def __init__(self, source: Optional[str], encoding: Optional[str]) -> None:
        self.source = source
        self.encoding = encoding
        self.errors: Set[ErrorRecord] = set()
        self.root: Optional[ElementTree.Element] = None
        self.line_no = 0
        self._parser = ElementTree.XMLPullParser(events=("start", "end"))
        self._path: List[str] = []
        self._builder: Optional[_ErrorBuilder] = None
        self._frames: Optional[List[Frame]] = None

    def read(self, stream: BinaryIO) -> Set[ErrorRecord]:
        decoder = None
        encoding = self.encoding
        try:
            for raw in stream:
                self.line_no += 1
                if decoder is None:
                    encoding = self.encoding or sniff_encoding(raw)
                    decoder = self._decoder(encoding)
                self._parser.feed(decoder.decode(raw))
                self._consume()
            if decoder is not None:
                self._parser.feed(decoder.decode(b"", final=True))
            self._parser.close()
            self._consume()
        except UnicodeDecodeError as exc:
            raise MalformedReportError(
                "cannot decode report as {}: {}".format(encoding, exc.reason),
                source=self.source, reason="encoding", line=self.line_no,
            ) from exc
        except ElementTree.ParseError as exc:
            err_line, err_column = getattr(exc, "position", (self.line_no, None))
            raise MalformedReportError(
                str(exc), source=self.source, reason="xml", line=err_line, column=err_column,
            ) from exc

        if self._builder is not None:
            raise MalformedReportError(
                "report ends inside {}".format(self._builder.describe()),
                source=self.source, reason="xml", line=self.line_no,
            )
        return self.errors

    def _decoder(self, encoding: str) -> codecs.IncrementalDecoder:
        try:
            return codecs.getincrementaldecoder(encoding)()
        except LookupError:
            raise MalformedReportError(
                "unknown encoding '{}'".format(encoding),
                source=self.source, reason="encoding", line=self.line_no,
            ) from None

    def _consume(self) -> None:
        for event, elem in self._parser.read_events():
            if event == "start":
                self._start(elem)
            else:
                self._end(elem)

    def _start(self, elem: ElementTree.Element) -> None:
        if self.root is None:
            self.root = elem
        self._path.append(elem.tag)
        if elem.tag == "error" and self._builder is None:
            self._builder = _ErrorBuilder(self.line_no)
        elif elem.tag == "stack" and self._builder is not None and self._path[-2] == "error":
            self._frames = []

    def _end(self, elem: ElementTree.Element) -> None:
        self._path.pop()
        if self._builder is not None:
            self._collect(elem, self._path[-1] if self._path else None)
        if len(self._path) == 1:
            # finished child of the root
            elem.clear()
            self.root.remove(elem)

    def _collect(self, elem: ElementTree.Element, parent: Optional[str]) -> None:
        builder = self._builder
        tag = elem.tag

        if tag == "error" and "error" not in self._path:
            self.errors.add(builder.build(self.source, self.line_no))
            self._builder = None
        elif parent == "error":
            if tag == "kind":
                builder.kind = _element_text(elem) or None
            elif tag == "unique":
                builder.unique = _element_text(elem) or None
            elif tag == "what":
                builder.add_what(_element_text(elem))
            elif tag == "xwhat":
                builder.add_what(_child_text(elem, "text") or "")
            elif tag == "auxwhat":
                builder.add_auxwhat(_element_text(elem))
            elif tag == "xauxwhat":
                builder.add_auxwhat(_child_text(elem, "text") or "")
            elif tag == "stack" and self._frames is not None:
                builder.stacks.append(Stack(tuple(self._frames)))
                self._frames = None
        elif tag == "frame" and parent == "stack" and self._frames is not None:
            self._frames.append(parse_frame(elem))


class ValgrindXmlParser(BaseReportParser):
    """Parser for Valgrind memcheck/helgrind/drd XML output."""

    @property
    def name(self) -> str:
        return "Valgrind XML"

    def parse(
        self,
        report: ReportSource,
        encoding: Optional[str] = None,
    ) -> Set[ErrorRecord]:
        """Parse a Valgrind XML report into a set of error records.

        Args:
            report: Path or binary stream of the XML report.
            encoding: Overrides the encoding of the document. None means
                      byte order mark, then XML declaration, then UTF-8.

        Returns:
            The distinct error records of the report.

        Raises:
            MalformedReportError: On XML syntax errors, truncated input,
                decode failures, or an <error> missing <kind>, a
                what-class element, or a <stack>.
        """
        source = report_name(report)
        logger.debug("Parsing Valgrind XML report %s", source)

        with open_report(report) as stream:
            errors = _ReportReader(source, encoding).read(stream)

        logger.debug("Parsed %d distinct errors from %s", len(errors), source)
        return errors
