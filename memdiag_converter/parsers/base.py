"""Abstract base report parser and report-source helpers.

WHY: Every report dialect produces the same ErrorRecord IR but reads a
different file layout. This base class enforces a consistent interface
so the pipeline and the CLI can work with any dialect generically.

HOW: BaseReportParser is an ABC with two requirements — a ``name``
property and a ``parse()`` method. open_report() and report_name()
normalize the two accepted report sources (a filesystem path or an
already-open binary stream).

RULES:
- Subclasses MUST implement ``name`` (human-readable) and ``parse()``
- ``parse()`` takes a path or a binary stream plus an optional encoding
- Parsers hold no state between ``parse()`` calls
- Streams passed in by the caller are never closed by the parser

To add a new dialect:
1. Create a new module in parsers/
2. Subclass BaseReportParser
3. Implement parse() and name
4. Register in PARSERS dict in parsers/__init__.py
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, Optional, Union

from memdiag_converter.core.ir import ErrorRecord

ReportSource = Union[str, "os.PathLike[str]", BinaryIO]


def report_name(report: ReportSource) -> Optional[str]:
    """Best-effort display name of a report source, for diagnostics."""
    if isinstance(report, (str, os.PathLike)):
        return str(report)
    name = getattr(report, "name", None)
    return name if isinstance(name, str) else None


@contextmanager
def open_report(report: ReportSource) -> Iterator[BinaryIO]:
    """Yield a binary stream for a path or pass a stream through.

    Paths are opened (and closed) here; caller-owned streams are left open.
    """
    if isinstance(report, (str, os.PathLike)):
        with open(Path(report), "rb") as stream:
            yield stream
    else:
        yield report


class BaseReportParser(ABC):
    """Abstract base for all report dialect parsers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable dialect name, e.g. 'Valgrind XML'."""

    @abstractmethod
    def parse(
        self,
        report: ReportSource,
        encoding: Optional[str] = None,
    ) -> Iterable[ErrorRecord]:
        """Parse one report into error records.

        Args:
            report: Path to the report, or a binary stream positioned at
                    its start.
            encoding: Text encoding override. None means the dialect's
                      own default.

        Returns:
            The parsed error records.

        Raises:
            MalformedReportError: If the report cannot be decoded or
                violates the dialect's required structure.
        """
