"""Per-student shuffled views of a quiz.

Shuffling happens here, when a quiz is handed to a student. Answers given
against the shuffled view are translated back to canonical question positions,
option indices and matching columns before they reach the grading engine.

The right-hand column of a matching question is always shuffled, since its
canonical order is the answer key.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import random

from lms_grading.core.models import (
    AttemptAnswer,
    Match,
    MatchingAnswer,
    QuestionType,
    QuizDefinition,
    Response,
    SelectionAnswer,
)


@dataclass(slots=True)
class PresentedQuestion:
    """A question as shown to the student, with options and columns in display order."""

    canonical_index: int
    text: str
    question_type: QuestionType
    points: float
    options: list[str]
    option_order: list[int]  # display position -> canonical option index
    left_items: list[str] = field(default_factory=list)
    right_items: list[str] = field(default_factory=list)
    right_order: list[int] = field(default_factory=list)  # display position -> canonical right index
    blank_labels: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "questionText": self.text,
            "questionType": self.question_type.value,
            "points": self.points,
            "options": list(self.options),
        }
        if self.question_type is QuestionType.MATCHING:
            payload["leftItems"] = list(self.left_items)
            payload["rightItems"] = list(self.right_items)
        if self.question_type is QuestionType.FILL_BLANK:
            payload["blanks"] = list(self.blank_labels)
        return payload


@dataclass(slots=True)
class QuizPresentation:
    quiz_id: str
    seed: int | None
    questions: list[PresentedQuestion]

    def to_canonical(self, displayed_answers: list[AttemptAnswer]) -> list[AttemptAnswer]:
        """Map answers indexed by display position back onto the canonical quiz order."""
        if len(displayed_answers) != len(self.questions):
            raise ValueError(
                f"Expected {len(self.questions)} answers but received {len(displayed_answers)}."
            )

        canonical: list[AttemptAnswer | None] = [None] * len(self.questions)
        for position, (presented, answer) in enumerate(zip(self.questions, displayed_answers)):
            if answer.question_index != position:
                raise ValueError(
                    f"Answer at position {position} refers to question {answer.question_index}."
                )
            canonical[presented.canonical_index] = AttemptAnswer(
                question_index=presented.canonical_index,
                response=self._map_response(presented, answer.response),
                manual_points=answer.manual_points,
                feedback=answer.feedback,
            )
        return [answer for answer in canonical if answer is not None]

    @staticmethod
    def _map_response(presented: PresentedQuestion, response: Response | None) -> Response | None:
        if isinstance(response, SelectionAnswer):
            return SelectionAnswer(
                selected_options=tuple(
                    _unshuffle(presented.option_order, index) for index in response.selected_options
                )
            )
        if isinstance(response, MatchingAnswer):
            return MatchingAnswer(
                matches=tuple(
                    Match(match.left_index, _unshuffle(presented.right_order, match.right_index))
                    for match in response.matches
                )
            )
        return response


def _unshuffle(order: list[int], display_index: int) -> int:
    if 0 <= display_index < len(order):
        return order[display_index]
    # Left out of range so the grading engine reports it.
    return display_index


def is_shuffled(quiz: QuizDefinition) -> bool:
    """Whether the student's view of ``quiz`` depends on a seed."""
    return (
        quiz.shuffle_questions
        or quiz.shuffle_options
        or any(q.question_type is QuestionType.MATCHING for q in quiz.questions)
    )


def build_presentation(quiz: QuizDefinition, seed: int | None = None) -> QuizPresentation:
    """Build the student's view of ``quiz``; the same seed always yields the same order."""
    rng = random.Random(seed)

    question_order = list(range(len(quiz.questions)))
    if quiz.shuffle_questions:
        rng.shuffle(question_order)

    presented: list[PresentedQuestion] = []
    for canonical_index in question_order:
        question = quiz.questions[canonical_index]
        option_order = list(range(len(question.options)))
        if quiz.shuffle_options and question.question_type is QuestionType.MULTIPLE_CHOICE:
            rng.shuffle(option_order)
        right_order = list(range(len(question.matching_pairs)))
        rng.shuffle(right_order)
        presented.append(
            PresentedQuestion(
                canonical_index=canonical_index,
                text=question.text,
                question_type=question.question_type,
                points=question.points,
                options=[question.options[i].text for i in option_order],
                option_order=option_order,
                left_items=[pair.left for pair in question.matching_pairs],
                right_items=[question.matching_pairs[i].right for i in right_order],
                right_order=right_order,
                blank_labels=[blank.text for blank in question.fill_blanks],
            )
        )
    return QuizPresentation(quiz_id=quiz.id, seed=seed, questions=presented)
