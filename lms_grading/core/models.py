"""Domain models for quizzes, attempts and assignment submissions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Union

from lms_grading.constants.grading_constants import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_SUBMISSIONS,
    DEFAULT_PASSING_SCORE,
)


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    SHORT_ANSWER = "short-answer"
    ESSAY = "essay"
    MATCHING = "matching"
    FILL_BLANK = "fill-blank"


class AttemptStatus(str, Enum):
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    TIMEOUT = "timeout"


class SubmissionStatus(str, Enum):
    SUBMITTED = "submitted"
    GRADED = "graded"
    RETURNED = "returned"


# --- Quiz definition ---


@dataclass(slots=True)
class ChoiceOption:
    text: str
    is_correct: bool = False
    explanation: str | None = None


@dataclass(slots=True)
class MatchingPair:
    """Left item ``i`` of a matching question is designated to match right item ``i``."""

    left: str
    right: str


@dataclass(slots=True)
class FillBlank:
    text: str
    answer: str
    case_sensitive: bool = False


@dataclass(slots=True)
class Question:
    """A single quiz question together with its answer key."""

    text: str
    question_type: QuestionType
    points: float = 1
    options: list[ChoiceOption] = field(default_factory=list)
    correct_answer: str | None = None
    matching_pairs: list[MatchingPair] = field(default_factory=list)
    fill_blanks: list[FillBlank] = field(default_factory=list)
    explanation: str | None = None
    difficulty: str = "medium"
    tags: list[str] = field(default_factory=list)

    @property
    def correct_option_indices(self) -> frozenset[int]:
        return frozenset(i for i, option in enumerate(self.options) if option.is_correct)


@dataclass(slots=True)
class QuizDefinition:
    """Instructor-authored quiz; ``total_points`` always reflects the current questions."""

    id: str
    title: str
    questions: list[Question]
    description: str = ""
    passing_score: float = DEFAULT_PASSING_SCORE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    time_limit: int = 0  # minutes, 0 = unlimited
    shuffle_questions: bool = False
    shuffle_options: bool = False
    show_correct_answers: bool = True
    show_explanations: bool = True
    allow_review: bool = True
    is_published: bool = True
    is_active: bool = True
    start_date: datetime | None = None
    end_date: datetime | None = None

    @property
    def total_points(self) -> float:
        return sum(question.points for question in self.questions)

    def is_available(self, now: datetime) -> bool:
        if not (self.is_published and self.is_active):
            return False
        if self.start_date is not None and now < self.start_date:
            return False
        if self.end_date is not None and now > self.end_date:
            return False
        return True


# --- Student responses ---


@dataclass(frozen=True, slots=True)
class SelectionAnswer:
    """Selected option indices for multiple-choice and true/false questions."""

    selected_options: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True)
class TextAnswer:
    """Free text for short-answer and essay questions."""

    text: str = ""


@dataclass(frozen=True, slots=True)
class Match:
    left_index: int
    right_index: int


@dataclass(frozen=True, slots=True)
class MatchingAnswer:
    matches: tuple[Match, ...] = ()


@dataclass(frozen=True, slots=True)
class FillBlankAnswer:
    blanks: tuple[str, ...] = ()


Response = Union[SelectionAnswer, TextAnswer, MatchingAnswer, FillBlankAnswer]

RESPONSE_TYPES: dict[QuestionType, type] = {
    QuestionType.MULTIPLE_CHOICE: SelectionAnswer,
    QuestionType.TRUE_FALSE: SelectionAnswer,
    QuestionType.SHORT_ANSWER: TextAnswer,
    QuestionType.ESSAY: TextAnswer,
    QuestionType.MATCHING: MatchingAnswer,
    QuestionType.FILL_BLANK: FillBlankAnswer,
}


@dataclass(slots=True)
class AttemptAnswer:
    """A student's raw response to one question plus any human grading input."""

    question_index: int
    response: Response | None = None
    manual_points: float | None = None
    feedback: str | None = None
    graded_by: str | None = None
    graded_at: datetime | None = None


# --- Grading results ---


@dataclass(frozen=True, slots=True)
class GradedAnswer:
    question_index: int
    question_type: QuestionType
    is_correct: bool | None
    points_earned: float
    points_possible: float
    feedback: str | None = None
    pending_manual_grading: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "questionIndex": self.question_index,
            "questionType": self.question_type.value,
            "isCorrect": self.is_correct,
            "pointsEarned": self.points_earned,
            "pointsPossible": self.points_possible,
            "feedback": self.feedback,
            "pendingManualGrading": self.pending_manual_grading,
        }


@dataclass(frozen=True, slots=True)
class GradedAttempt:
    """Immutable outcome of one grading pass over an attempt."""

    answers: tuple[GradedAnswer, ...]
    total_score: float
    total_points: float
    percentage: float
    grade: str
    is_passed: bool
    pending_manual_grading: tuple[int, ...] = ()

    @property
    def is_fully_graded(self) -> bool:
        return not self.pending_manual_grading

    def to_dict(self) -> dict[str, object]:
        return {
            "answers": [answer.to_dict() for answer in self.answers],
            "totalScore": self.total_score,
            "totalPoints": self.total_points,
            "percentage": self.percentage,
            "grade": self.grade,
            "isPassed": self.is_passed,
            "isGraded": self.is_fully_graded,
            "pendingManualGrading": list(self.pending_manual_grading),
        }


@dataclass(slots=True)
class Attempt:
    """One student's run through a quiz, from start to completion."""

    id: str
    quiz_id: str
    student_id: str
    attempt_number: int
    started_at: datetime
    answers: list[AttemptAnswer] = field(default_factory=list)
    completed_at: datetime | None = None
    time_spent: int = 0  # seconds
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    graded: GradedAttempt | None = None
    revision: int = 0
    seed: int = 0  # presentation seed for this attempt's shuffled view

    def is_in_progress(self) -> bool:
        return self.status is AttemptStatus.IN_PROGRESS

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": self.id,
            "quizId": self.quiz_id,
            "studentId": self.student_id,
            "attemptNumber": self.attempt_number,
            "startedAt": self.started_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "timeSpent": self.time_spent,
            "status": self.status.value,
        }
        if self.graded is not None:
            payload.update(self.graded.to_dict())
        return payload


# --- Assignments ---


@dataclass(slots=True)
class Assignment:
    id: str
    title: str
    due_date: datetime
    total_points: float
    allow_late_submission: bool = False
    late_penalty: float = 0  # cap, in percentage points
    max_submissions: int = DEFAULT_MAX_SUBMISSIONS
    is_published: bool = True


@dataclass(frozen=True, slots=True)
class GradedSubmission:
    score: float
    percentage: float
    is_late: bool
    late_penalty: float
    final_score: float
    final_percentage: float
    grade: str

    def to_dict(self) -> dict[str, object]:
        return {
            "score": self.score,
            "percentage": self.percentage,
            "isLate": self.is_late,
            "latePenalty": self.late_penalty,
            "finalScore": self.final_score,
            "finalPercentage": self.final_percentage,
            "grade": self.grade,
        }


@dataclass(slots=True)
class AssignmentSubmission:
    id: str
    assignment_id: str
    student_id: str
    submitted_at: datetime
    submission_text: str = ""
    attempt_number: int = 1
    score: float | None = None
    feedback: str | None = None
    graded_by: str | None = None
    graded_at: datetime | None = None
    status: SubmissionStatus = SubmissionStatus.SUBMITTED
    graded: GradedSubmission | None = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": self.id,
            "assignmentId": self.assignment_id,
            "studentId": self.student_id,
            "submittedAt": self.submitted_at.isoformat(),
            "attemptNumber": self.attempt_number,
            "status": self.status.value,
            "feedback": self.feedback,
        }
        if self.graded is not None:
            payload.update(self.graded.to_dict())
        return payload


def response_to_dict(response: Response | None) -> dict[str, object] | None:
    """Render a student response in the JSON shape the API accepts."""
    if response is None:
        return None
    if isinstance(response, SelectionAnswer):
        return {"selectedOptions": list(response.selected_options)}
    if isinstance(response, TextAnswer):
        return {"textAnswer": response.text}
    if isinstance(response, MatchingAnswer):
        return {
            "matchingAnswers": [
                {"leftIndex": m.left_index, "rightIndex": m.right_index} for m in response.matches
            ]
        }
    return {"fillBlankAnswers": list(response.blanks)}
