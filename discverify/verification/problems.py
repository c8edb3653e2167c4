from __future__ import annotations

import logging
import threading
from typing import Iterator, Optional

from discverify.common.models import Problem, Severity

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    Severity.LOW: logging.INFO,
    Severity.MEDIUM: logging.WARNING,
    Severity.HIGH: logging.ERROR,
}


class ProblemCollector:
    """Append-only list of problems in detection order.

    No deduplication: the same condition seen twice is reported twice.
    """

    def __init__(self):
        self._problems: list[Problem] = []
        self._lock = threading.Lock()

    def add(self, severity: Severity, text: str) -> Problem:
        problem = Problem(severity=Severity(severity), text=text)
        with self._lock:
            self._problems.append(problem)
        logger.log(_LOG_LEVELS[problem.severity], "[%s] %s", problem.severity.label, text)
        return problem

    def __len__(self) -> int:
        return len(self._problems)

    def __getitem__(self, index: int) -> Problem:
        return self._problems[index]

    def __iter__(self) -> Iterator[Problem]:
        return iter(self.snapshot())

    def count(self, severity: Severity) -> int:
        return sum(1 for p in self._problems if p.severity == severity)

    def highest_severity(self) -> Optional[Severity]:
        return max((p.severity for p in self._problems), default=None)

    def snapshot(self) -> tuple[Problem, ...]:
        with self._lock:
            return tuple(self._problems)
