"""Report parser registry — one parser per report dialect.

WHY: The pipeline and the CLI need a single lookup to find the right
parser for a dialect. Dialects are chosen by the caller, never sniffed
from file content, so a plain dict is all that is needed.

HOW: PARSERS maps dialect keys (see config.DIALECTS) to parser *classes*
(not instances). Callers instantiate one per report:
``parser = PARSERS["valgrind_xml"]()``.

RULES:
- Keys are snake_case dialect identifiers (used in CLI flags, config, etc.)
- Values are BaseReportParser subclasses (not instances)
- Every parser listed here must be importable without side effects
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from memdiag_converter.config import DRMEMORY_TEXT, VALGRIND_XML
from memdiag_converter.parsers.drmemory_text import DrMemoryTextParser
from memdiag_converter.parsers.valgrind_xml import ValgrindXmlParser

if TYPE_CHECKING:
    from memdiag_converter.parsers.base import BaseReportParser

PARSERS: dict[str, type[BaseReportParser]] = {
    VALGRIND_XML: ValgrindXmlParser,
    DRMEMORY_TEXT: DrMemoryTextParser,
}
