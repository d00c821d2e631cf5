"""Intermediate representation dataclasses for parsed diagnostic reports.

WHY: Valgrind writes XML, Dr. Memory writes loosely structured text, but
both describe the same thing — an error kind, a message, and one or more
call stacks. The IR gives the localizer and the formatters a single,
well-typed form to consume, decoupling report parsing from issue building.

HOW: Five frozen dataclasses form a hierarchy:
  Frame         — one stack entry (file + line, plus optional tool detail)
  Stack         — the frames of one reported call/allocation trace
  ErrorRecord   — one parsed diagnostic with its message and stacks
  IssueLocation — a labeled (file, line) pair narrating one frame
  Issue         — a localized, project-anchored finding

RULES:
- Everything here is immutable and hashable; parsers build tuples, not lists
- Stacks keep the order the tool reported them in
- ErrorRecord.frames flattens stacks stack-by-stack, frame-by-frame
- An ErrorRecord without frames is a project-wide error
- Issue.key is the deduplication identity used by the sink
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class Frame:
    """A single entry of a reported stack trace.

    WHY: Localization only needs the source position of a frame, but the
    tools report more (function, object file, instruction pointer) and
    formatters may want to show it.

    HOW: ``file`` and ``line`` drive localization. The remaining fields are
    carried through untouched and excluded from equality so that the same
    source position always compares equal.

    RULES:
    - file: path as written by the tool (Valgrind dir + file joined), or None
    - line: positive int, or None when the tool gave no line
    - function / obj / address / directory: informational only
    """

    file: Optional[str]
    line: Optional[int] = None
    function: Optional[str] = field(default=None, compare=False)
    obj: Optional[str] = field(default=None, compare=False)
    address: Optional[str] = field(default=None, compare=False)
    directory: Optional[str] = field(default=None, compare=False)

    def describe(self) -> str:
        """Render as ``file:line`` with ``?`` for missing parts."""
        file_text = self.file if self.file else "?"
        line_text = str(self.line) if self.line is not None else "?"
        return "{}:{}".format(file_text, line_text)


@dataclass(frozen=True)
class Stack:
    """The frames of one ``<stack>`` block (or the implicit text stack)."""

    frames: Tuple[Frame, ...] = ()

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self):
        return iter(self.frames)


@dataclass(frozen=True)
class ErrorRecord:
    """A normalized diagnostic, before project-relative localization.

    WHY: Both dialects reduce to the same shape. Keeping every stack
    (Valgrind reports the access stack and the allocation stack
    separately) lets the localizer narrate the whole story.

    RULES:
    - kind: tool error type id, passed through as the rule id
    - message: merged explanation text
    - stacks: every reported stack, document order
    """

    kind: str
    message: str
    stacks: Tuple[Stack, ...] = ()

    @property
    def frames(self) -> Tuple[Frame, ...]:
        """All frames of all stacks, flattened in order."""
        return tuple(frame for stack in self.stacks for frame in stack.frames)

    def __str__(self) -> str:
        return "{}: {}".format(self.kind, self.message)


@dataclass(frozen=True)
class IssueLocation:
    """A secondary location: where to point, and what the frame really was."""

    file: str
    line: Optional[int]
    label: str


@dataclass(frozen=True)
class Issue:
    """A finding ready to hand over to an issue sink.

    WHY: Review tools show an issue at one primary position and can
    list secondary positions alongside it. The localizer picks both.

    RULES:
    - primary_file / primary_line are None for project-wide issues
    - secondary_locations follow the flattened frame order
    - Two issues with the same key are duplicates
    """

    rule_id: str
    primary_file: Optional[str]
    primary_line: Optional[int]
    primary_message: str
    secondary_locations: Tuple[IssueLocation, ...] = ()

    @property
    def key(self) -> Tuple[str, Optional[str], Optional[int], str]:
        return (self.rule_id, self.primary_file, self.primary_line, self.primary_message)

    @property
    def is_project_wide(self) -> bool:
        return self.primary_file is None
