"""Pydantic payload schemas for the grading API.

Field names travel as camelCase on the wire and convert to the dataclass
domain model through the ``to_*`` helpers.
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from lms_grading.constants.grading_constants import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_SUBMISSIONS,
    DEFAULT_PASSING_SCORE,
)
from lms_grading.core.models import (
    Assignment,
    AttemptAnswer,
    ChoiceOption,
    FillBlank,
    FillBlankAnswer,
    Match,
    MatchingAnswer,
    MatchingPair,
    Question,
    QuestionType,
    QuizDefinition,
    Response,
    SelectionAnswer,
    TextAnswer,
)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC so they compare with the service clock."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChoiceOptionPayload(CamelModel):
    text: str
    is_correct: bool = False
    explanation: str | None = None


class MatchingPairPayload(CamelModel):
    left: str
    right: str


class FillBlankPayload(CamelModel):
    text: str = ""
    answer: str
    case_sensitive: bool = False


class QuestionPayload(CamelModel):
    question_text: str
    question_type: QuestionType
    points: float = 1
    options: list[ChoiceOptionPayload] = Field(default_factory=list)
    correct_answer: str | None = None
    matching_pairs: list[MatchingPairPayload] = Field(default_factory=list)
    fill_blanks: list[FillBlankPayload] = Field(default_factory=list)
    explanation: str | None = None
    difficulty: str = "medium"
    tags: list[str] = Field(default_factory=list)

    def to_question(self) -> Question:
        return Question(
            text=self.question_text,
            question_type=self.question_type,
            points=self.points,
            options=[ChoiceOption(o.text, o.is_correct, o.explanation) for o in self.options],
            correct_answer=self.correct_answer,
            matching_pairs=[MatchingPair(p.left, p.right) for p in self.matching_pairs],
            fill_blanks=[FillBlank(b.text, b.answer, b.case_sensitive) for b in self.fill_blanks],
            explanation=self.explanation,
            difficulty=self.difficulty,
            tags=list(self.tags),
        )


class QuizPayload(CamelModel):
    id: str | None = None
    title: str
    description: str = ""
    questions: list[QuestionPayload]
    passing_score: float = DEFAULT_PASSING_SCORE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    time_limit: int = 0
    shuffle_questions: bool = False
    shuffle_options: bool = False
    show_correct_answers: bool = True
    show_explanations: bool = True
    allow_review: bool = True
    is_published: bool = True
    is_active: bool = True
    start_date: datetime | None = None
    end_date: datetime | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    def to_quiz(self, quiz_id: str | None = None) -> QuizDefinition:
        return QuizDefinition(
            id=quiz_id or self.id or uuid4().hex,
            title=self.title,
            description=self.description,
            questions=[question.to_question() for question in self.questions],
            passing_score=self.passing_score,
            max_attempts=self.max_attempts,
            time_limit=self.time_limit,
            shuffle_questions=self.shuffle_questions,
            shuffle_options=self.shuffle_options,
            show_correct_answers=self.show_correct_answers,
            show_explanations=self.show_explanations,
            allow_review=self.allow_review,
            is_published=self.is_published,
            is_active=self.is_active,
            start_date=self.start_date,
            end_date=self.end_date,
        )


class QuizTextPayload(CamelModel):
    """A quiz in the plain-text authoring format."""

    text: str
    id: str | None = None


class MatchPayload(CamelModel):
    left_index: int
    right_index: int


class AnswerPayload(CamelModel):
    """One answer; at most one of the response fields may be set."""

    question_index: int
    selected_options: list[int] | None = None
    text_answer: str | None = None
    matching_answers: list[MatchPayload] | None = None
    fill_blank_answers: list[str] | None = None

    def to_attempt_answer(self) -> AttemptAnswer:
        return AttemptAnswer(question_index=self.question_index, response=self._response())

    def _response(self) -> Response | None:
        provided = [
            name
            for name in ("selected_options", "text_answer", "matching_answers", "fill_blank_answers")
            if getattr(self, name) is not None
        ]
        if len(provided) > 1:
            raise ValueError(
                f"Answer for question {self.question_index} mixes {', '.join(provided)}."
            )
        if self.selected_options is not None:
            return SelectionAnswer(tuple(self.selected_options))
        if self.text_answer is not None:
            return TextAnswer(self.text_answer)
        if self.matching_answers is not None:
            return MatchingAnswer(tuple(Match(m.left_index, m.right_index) for m in self.matching_answers))
        if self.fill_blank_answers is not None:
            return FillBlankAnswer(tuple(self.fill_blank_answers))
        return None


class StartAttemptPayload(CamelModel):
    student_id: str


class SubmitAttemptPayload(CamelModel):
    answers: list[AnswerPayload]
    time_spent: int | None = Field(default=None, ge=0)
    seed: int | None = None  # view the answers refer to; None means the attempt's own view


class EssayGradePayload(CamelModel):
    question_index: int
    points: float
    feedback: str | None = None
    grader_id: str | None = None


class AssignmentPayload(CamelModel):
    id: str | None = None
    title: str
    due_date: datetime
    total_points: float
    allow_late_submission: bool = False
    late_penalty: float = 0
    max_submissions: int = DEFAULT_MAX_SUBMISSIONS
    is_published: bool = True

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value: datetime) -> datetime:
        return as_utc(value)

    def to_assignment(self) -> Assignment:
        return Assignment(
            id=self.id or uuid4().hex,
            title=self.title,
            due_date=self.due_date,
            total_points=self.total_points,
            allow_late_submission=self.allow_late_submission,
            late_penalty=self.late_penalty,
            max_submissions=self.max_submissions,
            is_published=self.is_published,
        )


class AssignmentSubmitPayload(CamelModel):
    student_id: str
    submission_text: str = ""


class SubmissionGradePayload(CamelModel):
    score: float
    feedback: str | None = None
    grader_id: str | None = None
