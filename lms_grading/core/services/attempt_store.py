"""Service for the quiz attempt lifecycle and persisting grading results."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
import logging
from threading import Lock
from uuid import uuid4

from lms_grading.core.models import (
    Attempt,
    AttemptAnswer,
    AttemptStatus,
    GradedAttempt,
    QuestionType,
    QuizDefinition,
)

logger = logging.getLogger(__name__)

_FINISHED_STATUSES = (AttemptStatus.COMPLETED, AttemptStatus.TIMEOUT)


class AttemptStore:
    """Keeps attempts and arbitrates concurrent grading commits by revision number."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._attempts: dict[str, Attempt] = {}

    def start_attempt(self, quiz: QuizDefinition, student_id: str, now: datetime) -> Attempt:
        """Open a new in-progress attempt, enforcing availability and the attempt limit."""
        if not quiz.is_available(now):
            raise RuntimeError(f"Quiz {quiz.id} is not available.")
        with self._lock:
            previous = sum(
                1
                for attempt in self._attempts.values()
                if attempt.quiz_id == quiz.id and attempt.student_id == student_id
            )
            if previous >= quiz.max_attempts:
                raise RuntimeError("Maximum attempts reached for this quiz.")
            attempt_id = uuid4().hex
            attempt = Attempt(
                id=attempt_id,
                quiz_id=quiz.id,
                student_id=student_id,
                attempt_number=previous + 1,
                started_at=now,
                answers=[AttemptAnswer(question_index=i) for i in range(len(quiz.questions))],
                seed=int(attempt_id[:8], 16),
            )
            self._attempts[attempt.id] = attempt
        logger.info(
            "Student %s started attempt %d of quiz %s", student_id, attempt.attempt_number, quiz.id
        )
        return attempt

    def get_attempt(self, attempt_id: str) -> Attempt:
        with self._lock:
            try:
                return self._attempts[attempt_id]
            except KeyError:
                raise KeyError(f"Attempt {attempt_id} not found") from None

    def list_attempts(
        self,
        quiz_id: str | None = None,
        student_id: str | None = None,
        status: AttemptStatus | None = None,
    ) -> list[Attempt]:
        with self._lock:
            attempts = list(self._attempts.values())
        if quiz_id is not None:
            attempts = [a for a in attempts if a.quiz_id == quiz_id]
        if student_id is not None:
            attempts = [a for a in attempts if a.student_id == student_id]
        if status is not None:
            attempts = [a for a in attempts if a.status is status]
        return sorted(attempts, key=lambda a: a.started_at, reverse=True)

    def count_attempts(self, quiz_id: str, student_id: str | None = None) -> int:
        return len(self.list_attempts(quiz_id=quiz_id, student_id=student_id))

    @staticmethod
    def time_remaining(attempt: Attempt, quiz: QuizDefinition, now: datetime) -> int | None:
        """Seconds left before the time limit expires, or None when the quiz is untimed."""
        if not quiz.time_limit:
            return None
        elapsed = int((now - attempt.started_at).total_seconds())
        return max(0, quiz.time_limit * 60 - elapsed)

    def save_answers(self, attempt_id: str, answers: list[AttemptAnswer]) -> Attempt:
        """Store in-progress answers without grading them."""
        with self._lock:
            attempt = self._require(attempt_id)
            if not attempt.is_in_progress():
                raise RuntimeError("Attempt is not in progress.")
            attempt.answers = list(answers)
            return attempt

    def commit_grading(
        self,
        attempt_id: str,
        expected_revision: int,
        answers: list[AttemptAnswer],
        graded: GradedAttempt,
        status: AttemptStatus,
        completed_at: datetime | None = None,
        time_spent: int | None = None,
    ) -> Attempt:
        """Persist a grading pass only if nobody else committed since ``expected_revision``."""
        with self._lock:
            attempt = self._require(attempt_id)
            if attempt.revision != expected_revision:
                raise RuntimeError(
                    f"Attempt {attempt_id} changed while grading "
                    f"(revision {attempt.revision}, expected {expected_revision})."
                )
            attempt.answers = list(answers)
            attempt.graded = graded
            attempt.status = status
            if completed_at is not None:
                attempt.completed_at = completed_at
            if time_spent is not None:
                attempt.time_spent = time_spent
            attempt.revision += 1
            return attempt

    def record_manual_score(
        self,
        attempt_id: str,
        quiz: QuizDefinition,
        question_index: int,
        points: float,
        feedback: str | None,
        grader_id: str | None,
        now: datetime,
    ) -> list[AttemptAnswer]:
        """Return the attempt's answers with a human score applied to one essay answer.

        Nothing is stored here; the caller regrades and commits the returned answers.
        """
        with self._lock:
            attempt = self._require(attempt_id)
            if attempt.status not in _FINISHED_STATUSES:
                raise RuntimeError("Only submitted attempts can be graded manually.")
            if not 0 <= question_index < len(quiz.questions):
                raise IndexError(f"Question index {question_index} out of range")
            if quiz.questions[question_index].question_type is not QuestionType.ESSAY:
                raise ValueError("Only essay answers can be graded manually.")
            answers = list(attempt.answers)
        answers[question_index] = replace(
            answers[question_index],
            manual_points=points,
            feedback=feedback,
            graded_by=grader_id,
            graded_at=now,
        )
        return answers

    def abandon_attempt(self, attempt_id: str) -> Attempt:
        with self._lock:
            attempt = self._require(attempt_id)
            if not attempt.is_in_progress():
                raise RuntimeError("Attempt is not in progress.")
            attempt.status = AttemptStatus.ABANDONED
            attempt.revision += 1
            return attempt

    def _require(self, attempt_id: str) -> Attempt:
        attempt = self._attempts.get(attempt_id)
        if attempt is None:
            raise KeyError(f"Attempt {attempt_id} not found")
        return attempt
