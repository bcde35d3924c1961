"""Service for storing and validating quiz definitions."""

from __future__ import annotations

from collections.abc import Callable
import logging

from lms_grading.core.models import Question, QuestionType, QuizDefinition

logger = logging.getLogger(__name__)


class QuizValidationError(ValueError):
    """Raised when a quiz definition is not gradable as authored."""


class QuizRepository:
    """Quiz definition store; quizzes become immutable once anyone has attempted them."""

    def __init__(self, attempt_counter: Callable[[str], int] | None = None) -> None:
        self._quizzes: dict[str, QuizDefinition] = {}
        self._attempt_counter = attempt_counter or (lambda quiz_id: 0)

    def add_quiz(self, quiz: QuizDefinition) -> QuizDefinition:
        if quiz.id in self._quizzes:
            raise RuntimeError(f"Quiz {quiz.id} already exists.")
        self.validate(quiz)
        self._quizzes[quiz.id] = quiz
        logger.info("Stored quiz %s with %d questions", quiz.id, len(quiz.questions))
        return quiz

    def get_quiz(self, quiz_id: str) -> QuizDefinition:
        try:
            return self._quizzes[quiz_id]
        except KeyError:
            raise KeyError(f"Quiz {quiz_id} not found") from None

    def list_quizzes(self) -> list[QuizDefinition]:
        return list(self._quizzes.values())

    def has_quiz(self, quiz_id: str) -> bool:
        return quiz_id in self._quizzes

    def update_quiz(self, quiz: QuizDefinition) -> QuizDefinition:
        self.get_quiz(quiz.id)
        self._ensure_not_attempted(quiz.id, "update")
        self.validate(quiz)
        self._quizzes[quiz.id] = quiz
        return quiz

    def delete_quiz(self, quiz_id: str) -> None:
        self.get_quiz(quiz_id)
        self._ensure_not_attempted(quiz_id, "delete")
        del self._quizzes[quiz_id]

    def _ensure_not_attempted(self, quiz_id: str, action: str) -> None:
        if self._attempt_counter(quiz_id) > 0:
            raise RuntimeError(f"Cannot {action} quiz {quiz_id}: it has been attempted by students.")

    @classmethod
    def validate(cls, quiz: QuizDefinition) -> None:
        if not quiz.title.strip():
            raise QuizValidationError("Quiz title must not be empty.")
        if not quiz.questions:
            raise QuizValidationError("Quiz must contain at least one question.")
        if not 0 <= quiz.passing_score <= 100:
            raise QuizValidationError("Passing score must be between 0 and 100.")
        if quiz.max_attempts < 1:
            raise QuizValidationError("Max attempts must be at least 1.")
        if quiz.time_limit < 0:
            raise QuizValidationError("Time limit cannot be negative.")
        if quiz.start_date and quiz.end_date and quiz.end_date < quiz.start_date:
            raise QuizValidationError("End date must not be before the start date.")
        for number, question in enumerate(quiz.questions, start=1):
            try:
                cls._validate_question(question)
            except QuizValidationError as exc:
                raise QuizValidationError(f"Question {number}: {exc}") from None

    @staticmethod
    def _validate_question(question: Question) -> None:
        if not question.text.strip():
            raise QuizValidationError("Question text must not be empty.")
        if question.points < 1:
            raise QuizValidationError("Points must be at least 1.")

        correct_count = len(question.correct_option_indices)
        if question.question_type is QuestionType.MULTIPLE_CHOICE:
            if len(question.options) < 2:
                raise QuizValidationError("Multiple choice questions must have at least 2 options.")
            if correct_count == 0:
                raise QuizValidationError(
                    "Multiple choice questions must have at least one correct answer."
                )
        elif question.question_type is QuestionType.TRUE_FALSE:
            if len(question.options) != 2:
                raise QuizValidationError("True/false questions must have exactly 2 options.")
            if correct_count != 1:
                raise QuizValidationError("True/false questions must have exactly one correct answer.")
        elif question.question_type is QuestionType.SHORT_ANSWER:
            if not (question.correct_answer or "").strip():
                raise QuizValidationError("Short answer questions need a reference answer.")
        elif question.question_type is QuestionType.MATCHING:
            if len(question.matching_pairs) < 2:
                raise QuizValidationError("Matching questions must have at least 2 pairs.")
        elif question.question_type is QuestionType.FILL_BLANK:
            if not question.fill_blanks:
                raise QuizValidationError("Fill-in-the-blank questions must have at least one blank.")
