"""Anchor selection and secondary-location building for error records.

WHY: Memory-checker stacks mix project code with system libraries,
runtime internals and frames without debug info. Review tools can only
point at project files, yet the full stack is what explains the error.
This module picks the one project frame that owns the error and maps
the rest of the stack onto positions a viewer can show.

HOW: The record's stacks are flattened into one frame sequence. The
first frame the project resolves is the anchor and becomes the primary
location. Every frame then yields a secondary location: project frames
point at themselves, foreign frames point at the anchor. The label of
each secondary location always names the original frame.

RULES:
- No frames at all → project-wide Issue (no file, no line, no secondaries)
- Anchor = first project frame, scanning first-to-last
- No project frame → LocalizationFailure (localize() logs and returns None)
- Secondary label: "#<index> <original-file>:<original-line>",
  index is 0-based over the flattened frames
- Foreign frames take the anchor's (file, line), keep their own label
- Pure functions: the resolver is the only collaborator
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from memdiag_converter.core.errors import LocalizationFailure
from memdiag_converter.core.ir import ErrorRecord, Frame, Issue, IssueLocation
from memdiag_converter.core.project import ProjectOracle

logger = logging.getLogger(__name__)

FrameResolver = Callable[[Frame], Optional[str]]
"""Maps a frame to its canonical in-project path, or None if foreign."""


def frame_resolver(oracle: ProjectOracle) -> FrameResolver:
    """Adapt a path-based ProjectOracle to a frame resolver.

    Frames without a file never reach the oracle.
    """

    def _resolve(frame: Frame) -> Optional[str]:
        if not frame.file:
            return None
        return oracle.lookup(frame.file)

    return _resolve


def frame_label(frame: Frame, index: int) -> str:
    """Label of a secondary location, e.g. ``"#2 src/main.c:17"``."""
    return "#{} {}".format(index, frame.describe())


def build_issue(error: ErrorRecord, is_in_project: FrameResolver) -> Issue:
    """Localize one error record.

    Args:
        error: A parsed error record.
        is_in_project: Resolver deciding project membership per frame.

    Returns:
        The localized Issue (project-wide when the record has no frames).

    Raises:
        LocalizationFailure: If the record has frames but none belongs
            to the project.
    """
    frames = error.frames
    if not frames:
        return Issue(
            rule_id=error.kind,
            primary_file=None,
            primary_line=None,
            primary_message=error.message,
        )

    memberships = [is_in_project(frame) is not None for frame in frames]
    if not any(memberships):
        raise LocalizationFailure(error)
    anchor = frames[memberships.index(True)]

    locations: List[IssueLocation] = []
    for index, (frame, in_project) in enumerate(zip(frames, memberships)):
        shown = frame if in_project else anchor
        locations.append(IssueLocation(
            file=shown.file,
            line=shown.line,
            label=frame_label(frame, index),
        ))

    return Issue(
        rule_id=error.kind,
        primary_file=anchor.file,
        primary_line=anchor.line,
        primary_message=error.message,
        secondary_locations=tuple(locations),
    )


def localize(error: ErrorRecord, is_in_project: FrameResolver) -> Optional[Issue]:
    """Localize one error record, skipping it if it cannot be assigned.

    Same as build_issue(), except that a LocalizationFailure is logged
    as a warning and turned into None so batch processing can continue.
    """
    try:
        return build_issue(error, is_in_project)
    except LocalizationFailure as exc:
        logger.warning("%s", exc)
        return None
