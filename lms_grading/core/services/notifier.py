"""In-process notification dispatcher for grading results.

Notifications are queued in a bounded outbox for a delivery worker to pick up;
the oldest are dropped once it is full. This module never sends email itself.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from threading import Lock

from lms_grading.constants.grading_constants import NOTIFICATION_OUTBOX_LIMIT
from lms_grading.core.models import Assignment, AssignmentSubmission, Attempt, QuizDefinition

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Notification:
    recipient: str
    type: str
    title: str
    message: str
    data: dict[str, object] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationDispatcher:
    def __init__(self, max_pending: int = NOTIFICATION_OUTBOX_LIMIT) -> None:
        self._lock = Lock()
        self._outbox: deque[Notification] = deque(maxlen=max_pending)

    def quiz_graded(self, attempt: Attempt, quiz: QuizDefinition) -> Notification:
        graded = attempt.graded
        data: dict[str, object] = {"quizId": quiz.id, "attemptId": attempt.id}
        if graded is not None:
            data.update(
                score=graded.total_score,
                maxScore=graded.total_points,
                grade=graded.grade,
                pendingManualGrading=list(graded.pending_manual_grading),
            )
        return self._dispatch(
            Notification(
                recipient=attempt.student_id,
                type="quiz_graded",
                title=f"Quiz Graded: {quiz.title}",
                message=f'Your quiz "{quiz.title}" has been graded. Check your results!',
                data=data,
            )
        )

    def assignment_graded(self, submission: AssignmentSubmission, assignment: Assignment) -> Notification:
        data: dict[str, object] = {"assignmentId": assignment.id, "submissionId": submission.id}
        if submission.graded is not None:
            data.update(
                score=submission.graded.final_score,
                maxScore=assignment.total_points,
                grade=submission.graded.grade,
            )
        return self._dispatch(
            Notification(
                recipient=submission.student_id,
                type="assignment_graded",
                title=f"Assignment Graded: {assignment.title}",
                message=f'Your assignment "{assignment.title}" has been graded.',
                data=data,
            )
        )

    def pending(self) -> list[Notification]:
        with self._lock:
            return list(self._outbox)

    def drain(self) -> list[Notification]:
        """Return and clear all queued notifications."""
        with self._lock:
            drained = list(self._outbox)
            self._outbox.clear()
        return drained

    def _dispatch(self, notification: Notification) -> Notification:
        with self._lock:
            self._outbox.append(notification)
        logger.info("Queued %s notification for %s", notification.type, notification.recipient)
        return notification
