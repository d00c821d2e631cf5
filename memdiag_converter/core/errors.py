"""Exceptions raised while parsing and localizing diagnostic reports.

WHY: Callers need to tell a broken report (abort this file) apart from
an error that merely could not be placed in the project (skip this
record, keep going).

RULES:
- MalformedReportError is fatal for one parse call only
- LocalizationFailure is per record and never aborts a report
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from memdiag_converter.core.ir import ErrorRecord


class MalformedReportError(Exception):
    """A report violates its dialect or cannot be decoded.

    Attributes:
        source: Report name or path, when known.
        reason: ``"structure"`` for missing required elements, ``"xml"``
                for transport-level XML errors, ``"encoding"`` for decode
                failures.
        line / column: Position in the report, when known.
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        reason: str = "structure",
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        self.message = message
        self.source = source
        self.reason = reason
        self.line = line
        self.column = column
        super().__init__(self._render())

    def _render(self) -> str:
        where = self.source or "<report>"
        if self.line is not None:
            where = "{}:{}".format(where, self.line)
            if self.column is not None:
                where = "{}:{}".format(where, self.column)
        return "{} ({}): {}".format(where, self.reason, self.message)


class LocalizationFailure(Exception):
    """No frame of an error record belongs to the project."""

    def __init__(self, error: ErrorRecord) -> None:
        self.error = error
        super().__init__(
            "Cannot find a project file to assign the error '{}' to".format(error)
        )
