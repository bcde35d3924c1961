"""Service for assignments and their graded submissions."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
import logging
from threading import Lock
from uuid import uuid4

from lms_grading.constants.grading_constants import MAX_ASSIGNMENT_POINTS
from lms_grading.core.assignment_grading import grade_submission
from lms_grading.core.models import Assignment, AssignmentSubmission, SubmissionStatus

logger = logging.getLogger(__name__)


class SubmissionStore:
    """Stores assignments and submissions and applies the late-penalty scoring path."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._assignments: dict[str, Assignment] = {}
        self._submissions: dict[str, AssignmentSubmission] = {}

    def add_assignment(self, assignment: Assignment) -> Assignment:
        if not assignment.title.strip():
            raise ValueError("Assignment title must not be empty.")
        if not 1 <= assignment.total_points <= MAX_ASSIGNMENT_POINTS:
            raise ValueError(f"Total points must be between 1 and {MAX_ASSIGNMENT_POINTS:g}.")
        if not 0 <= assignment.late_penalty <= 100:
            raise ValueError("Late penalty must be between 0 and 100.")
        if assignment.max_submissions < 1:
            raise ValueError("Max submissions must be at least 1.")
        with self._lock:
            if assignment.id in self._assignments:
                raise RuntimeError(f"Assignment {assignment.id} already exists.")
            self._assignments[assignment.id] = assignment
        return assignment

    def get_assignment(self, assignment_id: str) -> Assignment:
        with self._lock:
            assignment = self._assignments.get(assignment_id)
        if assignment is None:
            raise KeyError(f"Assignment {assignment_id} not found")
        return assignment

    def get_submission(self, submission_id: str) -> AssignmentSubmission:
        with self._lock:
            submission = self._submissions.get(submission_id)
        if submission is None:
            raise KeyError(f"Submission {submission_id} not found")
        return submission

    def list_submissions(self, assignment_id: str, student_id: str | None = None) -> list[AssignmentSubmission]:
        with self._lock:
            submissions = [s for s in self._submissions.values() if s.assignment_id == assignment_id]
        if student_id is not None:
            submissions = [s for s in submissions if s.student_id == student_id]
        return sorted(submissions, key=lambda s: s.submitted_at)

    def submit(
        self,
        assignment_id: str,
        student_id: str,
        submitted_at: datetime,
        submission_text: str = "",
    ) -> AssignmentSubmission:
        assignment = self.get_assignment(assignment_id)
        if not assignment.is_published:
            raise RuntimeError("Assignment is not published.")
        if submitted_at > assignment.due_date and not assignment.allow_late_submission:
            raise RuntimeError("Assignment submission is closed.")
        with self._lock:
            previous = sum(
                1
                for s in self._submissions.values()
                if s.assignment_id == assignment_id and s.student_id == student_id
            )
            if previous >= assignment.max_submissions:
                raise RuntimeError("Maximum number of submissions reached.")
            submission = AssignmentSubmission(
                id=uuid4().hex,
                assignment_id=assignment_id,
                student_id=student_id,
                submitted_at=submitted_at,
                submission_text=submission_text,
                attempt_number=previous + 1,
            )
            self._submissions[submission.id] = submission
        logger.info("Student %s submitted assignment %s", student_id, assignment_id)
        return submission

    def grade(
        self,
        submission_id: str,
        score: float,
        feedback: str | None,
        grader_id: str | None,
        now: datetime,
    ) -> AssignmentSubmission:
        submission = self.get_submission(submission_id)
        assignment = self.get_assignment(submission.assignment_id)
        graded = grade_submission(assignment, replace(submission, score=score))
        with self._lock:
            submission.score = score
            submission.graded = graded
            submission.feedback = feedback
            submission.graded_by = grader_id
            submission.graded_at = now
            submission.status = SubmissionStatus.GRADED
        logger.info(
            "Graded submission %s: %s (late penalty %s)",
            submission_id,
            submission.graded.grade,
            submission.graded.late_penalty,
        )
        return submission
