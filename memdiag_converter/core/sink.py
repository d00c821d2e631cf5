"""Thread-safe, deduplicating in-memory issue sink.

WHY: Several report files may be processed in parallel, and the same
error often appears in more than one report (one per test binary). The
sink is the single place that serializes inserts and drops duplicates.

HOW: Issues are stored in an insertion-ordered dict keyed by Issue.key.
Every access goes through a threading.Lock; readers get snapshots.

RULES:
- add() returns True for new issues, False for duplicates
- Duplicate = same (rule_id, primary_file, primary_line, primary_message)
- The first issue stored for a key wins
- issues() returns a new list in first-seen order
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Tuple

from memdiag_converter.core.ir import Issue

logger = logging.getLogger(__name__)


class IssueCollector:
    """Lock-protected issue store with key-based deduplication."""

    def __init__(self) -> None:
        self._issues: Dict[Tuple[str, Optional[str], Optional[int], str], Issue] = {}
        self._duplicates = 0
        self._lock = threading.Lock()

    def add(self, issue: Issue) -> bool:
        """Store ``issue`` unless an equivalent one is already stored."""
        with self._lock:
            if issue.key in self._issues:
                self._duplicates += 1
                duplicate = True
            else:
                self._issues[issue.key] = issue
                duplicate = False

        if duplicate:
            logger.debug("Dropped duplicate issue %s at %s:%s",
                         issue.rule_id, issue.primary_file, issue.primary_line)
        return not duplicate

    def issues(self) -> List[Issue]:
        with self._lock:
            return list(self._issues.values())

    @property
    def duplicates(self) -> int:
        with self._lock:
            return self._duplicates

    def __len__(self) -> int:
        with self._lock:
            return len(self._issues)
