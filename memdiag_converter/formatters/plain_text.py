"""Plain text issue listing.

WHY: Developers reading a CI log want the findings at a glance — rule,
position, message — with the stack right below, in the familiar
``file:line`` form their editor can jump to.

HOW: One block per issue. The header line is ``[rule] file:line:
message`` (``[rule] <project>: message`` for project-wide issues),
followed by one indented line per secondary location giving the shown
position and the original frame label. A blank line separates blocks.

RULES:
- One block per issue, in the order given
- Missing line numbers render as "?"
- Secondary line: "    at file:line (label)"
- Empty issue list → "No issues found.\n"
- Output suffix: "-issues.txt"
- Media type: "text/plain"
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from memdiag_converter.core.ir import Issue
from memdiag_converter.formatters.base import BaseFormatter, FormatterOutput


def _position(file: Optional[str], line: Optional[int]) -> str:
    return "{}:{}".format(file, line if line is not None else "?")


def _render_issue(issue: Issue) -> str:
    if issue.is_project_wide:
        where = "<project>"
    else:
        where = _position(issue.primary_file, issue.primary_line)
    lines = ["[{}] {}: {}".format(issue.rule_id, where, issue.primary_message)]
    for loc in issue.secondary_locations:
        lines.append("    at {} ({})".format(_position(loc.file, loc.line), loc.label))
    return "\n".join(lines)


class PlainTextFormatter(BaseFormatter):
    """Formatter that produces a human-readable issue listing."""

    @property
    def name(self) -> str:
        return "Plain Text"

    def format(self, issues: Sequence[Issue], source: str) -> List[FormatterOutput]:
        if issues:
            blocks = ["Issues from {} ({}):".format(source, len(issues))]
            blocks.extend(_render_issue(issue) for issue in issues)
            content = "\n\n".join(blocks) + "\n"
        else:
            content = "No issues found.\n"

        return [
            FormatterOutput(
                suffix="-issues.txt",
                content=content,
                media_type="text/plain",
            )
        ]
