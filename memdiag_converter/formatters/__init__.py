"""Output formatter registry — pluggable issue output.

WHY: The CLI and embedding hosts need a single lookup to find the right
formatter by name. A central dict makes it trivial to add new formats:
create the formatter class, import it here, add one line.

HOW: FORMATTERS maps string keys to formatter *classes* (not instances).
Callers instantiate as needed: ``formatter = FORMATTERS["json_issues"]()``.

RULES:
- Keys are snake_case identifiers (used in CLI flags, config, etc.)
- Values are BaseFormatter subclasses (not instances)
- Every formatter listed here must be importable without side effects
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from memdiag_converter.formatters.json_issues import JsonIssuesFormatter
from memdiag_converter.formatters.plain_text import PlainTextFormatter

if TYPE_CHECKING:
    from memdiag_converter.formatters.base import BaseFormatter

FORMATTERS: dict[str, type[BaseFormatter]] = {
    "json_issues": JsonIssuesFormatter,
    "plain_text": PlainTextFormatter,
}
