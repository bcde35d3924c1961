"""Service for aggregating per-quiz attempt statistics."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock

from lms_grading.core.models import Attempt, AttemptStatus

_FINISHED_STATUSES = (AttemptStatus.COMPLETED, AttemptStatus.TIMEOUT)


@dataclass(slots=True)
class StatisticsEntry:
    """Mutable running totals for one quiz, used internally."""

    quiz_id: str
    total_attempts: int = 0
    finished_attempts: int = 0
    graded_attempts: int = 0
    passed_attempts: int = 0
    percentage_sum: float = 0.0


@dataclass(frozen=True, slots=True)
class QuizStatistics:
    """Immutable snapshot returned to consumers."""

    quiz_id: str
    total_attempts: int
    average_score: float
    pass_rate: float
    completion_rate: float

    @classmethod
    def from_attempts(cls, quiz_id: str, attempts: list[Attempt]) -> "QuizStatistics":
        entry = StatisticsEntry(quiz_id=quiz_id)
        for attempt in attempts:
            _accumulate(entry, attempt)
        return _snapshot(entry)

    def to_dict(self) -> dict[str, object]:
        return {
            "quizId": self.quiz_id,
            "totalAttempts": self.total_attempts,
            "averageScore": self.average_score,
            "passRate": self.pass_rate,
            "completionRate": self.completion_rate,
        }


class StatisticsBoard:
    """Tracks statistics for every quiz as attempts are started and graded."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._entries: dict[str, dict[str, Attempt]] = {}

    def record_attempt(self, attempt: Attempt) -> None:
        """Insert or refresh the latest state of an attempt."""
        with self._lock:
            self._entries.setdefault(attempt.quiz_id, {})[attempt.id] = attempt

    def get_statistics(self, quiz_id: str) -> QuizStatistics:
        with self._lock:
            attempts = list(self._entries.get(quiz_id, {}).values())
        return QuizStatistics.from_attempts(quiz_id, attempts)


def _accumulate(entry: StatisticsEntry, attempt: Attempt) -> None:
    entry.total_attempts += 1
    if attempt.status in _FINISHED_STATUSES:
        entry.finished_attempts += 1
    if attempt.graded is not None:
        entry.graded_attempts += 1
        entry.percentage_sum += attempt.graded.percentage
        if attempt.graded.is_passed:
            entry.passed_attempts += 1


def _snapshot(entry: StatisticsEntry) -> QuizStatistics:
    def rate(count: int, total: int) -> float:
        return count * 100 / total if total else 0.0

    return QuizStatistics(
        quiz_id=entry.quiz_id,
        total_attempts=entry.total_attempts,
        average_score=entry.percentage_sum / entry.graded_attempts if entry.graded_attempts else 0.0,
        pass_rate=rate(entry.passed_attempts, entry.graded_attempts),
        completion_rate=rate(entry.finished_attempts, entry.total_attempts),
    )
