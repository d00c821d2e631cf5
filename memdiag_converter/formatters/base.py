"""Abstract base formatter and output container.

WHY: Every output format consumes the same list of Issues but produces
different file content. This base class enforces a consistent interface
so the CLI and embedding hosts can work with any formatter generically.

HOW: BaseFormatter is an ABC with two requirements — a ``name`` property
and a ``format()`` method. FormatterOutput is a plain dataclass that
bundles a file suffix with its content and MIME type.

RULES:
- Subclasses MUST implement ``name`` (human-readable) and ``format()``
- ``format()`` returns a list — every current formatter returns one item
- ``suffix`` starts with a hyphen, e.g. ``"-issues.json"``
- The caller is responsible for prepending the output name stem
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from memdiag_converter.core.ir import Issue


@dataclass
class FormatterOutput:
    """One output file produced by a formatter.

    Attributes:
        suffix: File suffix appended to the output stem,
                e.g. ``"-issues.json"`` → ``"memdiag-issues.json"``.
        content: The file content.
        media_type: MIME type for the content, e.g. ``"application/json"``.
    """

    suffix: str
    content: str
    media_type: str


class BaseFormatter(ABC):
    """Abstract base for all issue formatters.

    To add a new output format:
    1. Create a new file in formatters/
    2. Subclass BaseFormatter
    3. Implement format() and name
    4. Register in FORMATTERS dict in formatters/__init__.py
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'Issues JSON'."""

    @abstractmethod
    def format(self, issues: Sequence[Issue], source: str) -> list[FormatterOutput]:
        """Convert localized issues into one or more output files.

        Args:
            issues: Deduplicated issues, in the order they should appear.
            source: Description of where the issues came from (report
                    names), recorded in the output.

        Returns:
            List of FormatterOutput objects.
        """
