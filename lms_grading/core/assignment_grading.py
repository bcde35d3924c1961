"""Scoring path for assignment submissions, including the late penalty."""

from __future__ import annotations

from datetime import datetime, timedelta
import math

from lms_grading.constants.grading_constants import LATE_PENALTY_PER_DAY
from lms_grading.core.grade_scale import letter_grade, percentage_of
from lms_grading.core.models import Assignment, AssignmentSubmission, GradedSubmission

_ONE_DAY = timedelta(days=1)


def days_late(due_date: datetime, submitted_at: datetime) -> int:
    """Whole days past the due date, counting any started day as a full one."""
    if submitted_at <= due_date:
        return 0
    return math.ceil((submitted_at - due_date) / _ONE_DAY)


def calculate_late_penalty(assignment: Assignment, submitted_at: datetime) -> float:
    """Percentage points deducted for a submission made at ``submitted_at``.

    The penalty grows by ``LATE_PENALTY_PER_DAY`` for each day late and is capped
    at the assignment's configured ``late_penalty``.
    """
    if not assignment.allow_late_submission or not assignment.late_penalty:
        return 0
    late_days = days_late(assignment.due_date, submitted_at)
    if late_days == 0:
        return 0
    return min(assignment.late_penalty, late_days * LATE_PENALTY_PER_DAY)


def grade_submission(assignment: Assignment, submission: AssignmentSubmission) -> GradedSubmission:
    if submission.score is None:
        raise ValueError("Submission has no score to grade.")
    if not 0 <= submission.score <= assignment.total_points:
        raise ValueError(
            f"Score must be between 0 and the assignment's {assignment.total_points} points."
        )

    penalty = calculate_late_penalty(assignment, submission.submitted_at)
    percentage = percentage_of(submission.score, assignment.total_points)
    final_percentage = max(0, percentage - penalty)
    return GradedSubmission(
        score=submission.score,
        percentage=percentage,
        is_late=submission.submitted_at > assignment.due_date,
        late_penalty=penalty,
        final_score=max(0, submission.score - submission.score * penalty / 100),
        final_percentage=final_percentage,
        grade=letter_grade(final_percentage),
    )
