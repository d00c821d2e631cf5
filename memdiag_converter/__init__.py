"""Memory diagnostic report converter — Valgrind / Dr. Memory to issues.

WHY: Memory checkers report errors against call stacks full of system
and library frames, in formats no review tool ingests directly. This
package parses those reports into a well-typed intermediate
representation (IR), anchors each error to a file of the analyzed
project, and writes deduplicated issues in pluggable output formats.

HOW: Three-stage pipeline — parse (dialect parsers), localize (core
localizer against a project oracle), format (pluggable formatters).
Each stage is independently testable.

RULES:
- All parsers produce the same ErrorRecord IR
- Adding a new report dialect = one new parser module, no core changes
- The IR is the stable contract between parsing and localization
"""

__version__ = "0.1.0"
