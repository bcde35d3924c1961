"""Business logic tying the stores, the grading engine and notifications together."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
import logging
from pathlib import Path
from uuid import uuid4

from lms_grading.core.grading_engine import grade_attempt
from lms_grading.core.markdown_renderer import renderer
from lms_grading.core.models import (
    Assignment,
    AssignmentSubmission,
    Attempt,
    AttemptAnswer,
    AttemptStatus,
    Question,
    QuestionType,
    QuizDefinition,
    response_to_dict,
)
from lms_grading.core.presentation import QuizPresentation, build_presentation, is_shuffled
from lms_grading.core.quiz_exporter import save_quiz_to_file, serialize_quiz
from lms_grading.core.quiz_importer import load_quiz_from_file, parse_quiz_text
from lms_grading.core.services.attempt_store import AttemptStore
from lms_grading.core.services.notifier import NotificationDispatcher
from lms_grading.core.services.quiz_repository import QuizRepository
from lms_grading.core.services.quiz_statistics import QuizStatistics, StatisticsBoard
from lms_grading.core.services.submission_store import SubmissionStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GradingManager:
    """Facade for grading services: quiz and attempt stores, statistics and notifications."""

    def __init__(self) -> None:
        self._attempts = AttemptStore()
        self._quizzes = QuizRepository(attempt_counter=self._attempts.count_attempts)
        self._submissions = SubmissionStore()
        self._statistics = StatisticsBoard()
        self._notifier = NotificationDispatcher()

    @property
    def notifier(self) -> NotificationDispatcher:
        return self._notifier

    # --- Quiz Repository Delegation ---

    def create_quiz(self, quiz: QuizDefinition) -> QuizDefinition:
        return self._quizzes.add_quiz(quiz)

    def get_quiz(self, quiz_id: str) -> QuizDefinition:
        return self._quizzes.get_quiz(quiz_id)

    def list_quizzes(self) -> list[QuizDefinition]:
        return self._quizzes.list_quizzes()

    def update_quiz(self, quiz: QuizDefinition) -> QuizDefinition:
        return self._quizzes.update_quiz(quiz)

    def delete_quiz(self, quiz_id: str) -> None:
        self._quizzes.delete_quiz(quiz_id)

    def present_quiz(self, quiz_id: str, seed: int | None = None) -> QuizPresentation:
        """The student's view of a quiz; shuffled quizzes need an explicit seed."""
        quiz = self._quizzes.get_quiz(quiz_id)
        if seed is None and is_shuffled(quiz):
            raise RuntimeError(
                f"Quiz {quiz_id} is shuffled; request it with a seed or through an attempt."
            )
        return build_presentation(quiz, seed)

    def present_attempt(self, attempt_id: str) -> QuizPresentation:
        attempt = self._attempts.get_attempt(attempt_id)
        return build_presentation(self._quizzes.get_quiz(attempt.quiz_id), attempt.seed)

    def import_quiz_text(self, text: str, quiz_id: str | None = None) -> QuizDefinition:
        return self.create_quiz(parse_quiz_text(text, quiz_id=quiz_id or uuid4().hex))

    def import_quiz_file(self, file_path: Path, quiz_id: str | None = None) -> QuizDefinition:
        imported = load_quiz_from_file(file_path, quiz_id=quiz_id)
        logger.info("Imported quiz %s from %s", imported.quiz.id, imported.source_path)
        return self.create_quiz(imported.quiz)

    def export_quiz_text(self, quiz_id: str) -> str:
        return serialize_quiz(self._quizzes.get_quiz(quiz_id))

    def export_quiz_file(self, quiz_id: str, file_path: Path) -> None:
        save_quiz_to_file(file_path, self._quizzes.get_quiz(quiz_id))

    # --- Attempt lifecycle ---

    def start_attempt(self, quiz_id: str, student_id: str, now: datetime | None = None) -> Attempt:
        quiz = self._quizzes.get_quiz(quiz_id)
        attempt = self._attempts.start_attempt(quiz, student_id, now or _utcnow())
        self._statistics.record_attempt(attempt)
        return attempt

    def get_attempt(self, attempt_id: str) -> Attempt:
        return self._attempts.get_attempt(attempt_id)

    def list_attempts(
        self,
        quiz_id: str | None = None,
        student_id: str | None = None,
        status: AttemptStatus | None = None,
    ) -> list[Attempt]:
        return self._attempts.list_attempts(quiz_id=quiz_id, student_id=student_id, status=status)

    def save_answers(self, attempt_id: str, answers: list[AttemptAnswer]) -> Attempt:
        return self._attempts.save_answers(attempt_id, answers)

    def time_remaining(self, attempt_id: str, now: datetime | None = None) -> int | None:
        attempt = self._attempts.get_attempt(attempt_id)
        quiz = self._quizzes.get_quiz(attempt.quiz_id)
        return self._attempts.time_remaining(attempt, quiz, now or _utcnow())

    def submit_attempt(
        self,
        attempt_id: str,
        answers: list[AttemptAnswer],
        time_spent: int | None = None,
        now: datetime | None = None,
    ) -> Attempt:
        """Grade and complete an in-progress attempt.

        Submissions arriving after the time limit are still graded but recorded
        with status ``timeout``.
        """
        now = now or _utcnow()
        attempt = self._attempts.get_attempt(attempt_id)
        quiz = self._quizzes.get_quiz(attempt.quiz_id)
        status = AttemptStatus.COMPLETED
        remaining = self._attempts.time_remaining(attempt, quiz, now)
        if remaining is not None and remaining <= 0:
            status = AttemptStatus.TIMEOUT
        return self._finish(attempt, quiz, answers, status, time_spent, now)

    def submit_displayed_answers(
        self,
        attempt_id: str,
        displayed_answers: list[AttemptAnswer],
        seed: int | None = None,
        time_spent: int | None = None,
        now: datetime | None = None,
    ) -> Attempt:
        """Submit answers indexed against a presented view.

        Without ``seed`` the answers refer to the attempt's own view.
        """
        if seed is None:
            presentation = self.present_attempt(attempt_id)
        else:
            presentation = build_presentation(
                self._quizzes.get_quiz(self._attempts.get_attempt(attempt_id).quiz_id), seed
            )
        answers = presentation.to_canonical(displayed_answers)
        return self.submit_attempt(attempt_id, answers, time_spent=time_spent, now=now)

    def expire_attempt(self, attempt_id: str, now: datetime | None = None) -> Attempt:
        """Force-submit the saved answers of an attempt whose time ran out."""
        now = now or _utcnow()
        attempt = self._attempts.get_attempt(attempt_id)
        quiz = self._quizzes.get_quiz(attempt.quiz_id)
        return self._finish(attempt, quiz, list(attempt.answers), AttemptStatus.TIMEOUT, None, now)

    def abandon_attempt(self, attempt_id: str) -> Attempt:
        attempt = self._attempts.abandon_attempt(attempt_id)
        self._statistics.record_attempt(attempt)
        return attempt

    def grade_essay(
        self,
        attempt_id: str,
        question_index: int,
        points: float,
        feedback: str | None = None,
        grader_id: str | None = None,
        now: datetime | None = None,
    ) -> Attempt:
        """Apply a human score to an essay answer and regrade the whole attempt."""
        now = now or _utcnow()
        attempt = self._attempts.get_attempt(attempt_id)
        quiz = self._quizzes.get_quiz(attempt.quiz_id)
        revision = attempt.revision
        answers = self._attempts.record_manual_score(
            attempt_id, quiz, question_index, points, feedback, grader_id, now
        )
        graded = grade_attempt(quiz, _with_answers(attempt, answers))
        committed = self._attempts.commit_grading(
            attempt_id, revision, answers, graded, attempt.status
        )
        self._statistics.record_attempt(committed)
        logger.info(
            "Essay %d of attempt %s scored %s; attempt now %s (%.1f%%)",
            question_index,
            attempt_id,
            points,
            graded.grade,
            graded.percentage,
        )
        self._notifier.quiz_graded(committed, quiz)
        return committed

    def _finish(
        self,
        attempt: Attempt,
        quiz: QuizDefinition,
        answers: list[AttemptAnswer],
        status: AttemptStatus,
        time_spent: int | None,
        now: datetime,
    ) -> Attempt:
        revision = attempt.revision
        if not attempt.is_in_progress():
            raise RuntimeError("Attempt is not in progress.")
        graded = grade_attempt(quiz, _with_answers(attempt, answers))
        if time_spent is None:
            time_spent = max(0, int((now - attempt.started_at).total_seconds()))
        committed = self._attempts.commit_grading(
            attempt.id,
            revision,
            answers,
            graded,
            status,
            completed_at=now,
            time_spent=time_spent,
        )
        self._statistics.record_attempt(committed)
        logger.info(
            "Attempt %s %s: %s/%s (%s)",
            attempt.id,
            status.value,
            graded.total_score,
            graded.total_points,
            graded.grade,
        )
        self._notifier.quiz_graded(committed, quiz)
        return committed

    def review_attempt(self, attempt_id: str) -> dict[str, object]:
        """Graded answers alongside rendered questions, honoring the quiz's review settings."""
        attempt = self._attempts.get_attempt(attempt_id)
        quiz = self._quizzes.get_quiz(attempt.quiz_id)
        if not quiz.allow_review:
            raise RuntimeError("Review is disabled for this quiz.")
        if attempt.graded is None:
            raise RuntimeError("Attempt has not been graded yet.")

        items: list[dict[str, object]] = []
        for question, answer, graded in zip(quiz.questions, attempt.answers, attempt.graded.answers):
            item: dict[str, object] = {
                "questionHtml": renderer.render_fragment(question.text),
                "response": response_to_dict(answer.response),
                **graded.to_dict(),
            }
            if question.options:
                item["options"] = [option.text for option in question.options]
            if quiz.show_correct_answers:
                item["correctAnswer"] = _describe_answer_key(question)
            if quiz.show_explanations and question.explanation:
                item["explanationHtml"] = renderer.render_fragment(question.explanation)
            items.append(item)

        summary = attempt.to_dict()
        summary["answers"] = items
        return summary

    # --- Statistics ---

    def get_statistics(self, quiz_id: str) -> QuizStatistics:
        self._quizzes.get_quiz(quiz_id)
        return self._statistics.get_statistics(quiz_id)

    # --- Assignments ---

    def create_assignment(self, assignment: Assignment) -> Assignment:
        return self._submissions.add_assignment(assignment)

    def get_assignment(self, assignment_id: str) -> Assignment:
        return self._submissions.get_assignment(assignment_id)

    def submit_assignment(
        self,
        assignment_id: str,
        student_id: str,
        submission_text: str = "",
        now: datetime | None = None,
    ) -> AssignmentSubmission:
        return self._submissions.submit(assignment_id, student_id, now or _utcnow(), submission_text)

    def list_submissions(
        self, assignment_id: str, student_id: str | None = None
    ) -> list[AssignmentSubmission]:
        self._submissions.get_assignment(assignment_id)
        return self._submissions.list_submissions(assignment_id, student_id)

    def grade_assignment_submission(
        self,
        submission_id: str,
        score: float,
        feedback: str | None = None,
        grader_id: str | None = None,
        now: datetime | None = None,
    ) -> AssignmentSubmission:
        submission = self._submissions.grade(submission_id, score, feedback, grader_id, now or _utcnow())
        assignment = self._submissions.get_assignment(submission.assignment_id)
        self._notifier.assignment_graded(submission, assignment)
        return submission


def _with_answers(attempt: Attempt, answers: list[AttemptAnswer]) -> Attempt:
    return replace(attempt, answers=list(answers))


def _describe_answer_key(question: Question) -> object:
    question_type = question.question_type
    if question_type in (QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE):
        return sorted(question.correct_option_indices)
    if question_type is QuestionType.MATCHING:
        return [{"left": pair.left, "right": pair.right} for pair in question.matching_pairs]
    if question_type is QuestionType.FILL_BLANK:
        return [blank.answer for blank in question.fill_blanks]
    return question.correct_answer
