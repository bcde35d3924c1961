"""Deterministic auto-grading of quiz attempts.

Every call recomputes all per-question results and the attempt aggregate from
the quiz and the attempt's current answers, so grading the same input twice
always yields the same ``GradedAttempt``. Essay answers stay pending until a
human supplies ``manual_points``; the next call then folds them into the
totals like any other answer.

The engine never touches storage, clocks or randomness. Callers persist the
result and handle shuffling before grading.
"""

from __future__ import annotations

from lms_grading.core.grade_scale import letter_grade, percentage_of
from lms_grading.core.models import (
    RESPONSE_TYPES,
    Attempt,
    AttemptAnswer,
    FillBlankAnswer,
    GradedAnswer,
    GradedAttempt,
    MatchingAnswer,
    Question,
    QuestionType,
    QuizDefinition,
    SelectionAnswer,
    TextAnswer,
)


class MalformedAttempt(ValueError):
    """Raised when an attempt's answers do not line up with the quiz's questions."""


def grade_attempt(quiz: QuizDefinition, attempt: Attempt) -> GradedAttempt:
    """Grade every answer of ``attempt`` against ``quiz`` and aggregate the result."""
    if len(attempt.answers) != len(quiz.questions):
        raise MalformedAttempt(
            f"Attempt has {len(attempt.answers)} answers but quiz has "
            f"{len(quiz.questions)} questions."
        )

    graded: list[GradedAnswer] = []
    for index, (question, answer) in enumerate(zip(quiz.questions, attempt.answers)):
        if answer.question_index != index:
            raise MalformedAttempt(
                f"Answer at position {index} refers to question {answer.question_index}."
            )
        graded.append(grade_answer(question, answer))

    total_points = quiz.total_points
    total_score = sum(answer.points_earned for answer in graded)
    percentage = percentage_of(total_score, total_points)
    is_passed = total_points > 0 and percentage >= quiz.passing_score

    return GradedAttempt(
        answers=tuple(graded),
        total_score=total_score,
        total_points=total_points,
        percentage=percentage,
        grade=letter_grade(percentage),
        is_passed=is_passed,
        pending_manual_grading=tuple(a.question_index for a in graded if a.pending_manual_grading),
    )


def grade_answer(question: Question, answer: AttemptAnswer) -> GradedAnswer:
    """Grade a single answer; points are all-or-nothing for every auto-graded type."""
    response = answer.response
    expected_type = RESPONSE_TYPES[question.question_type]
    if response is not None and not isinstance(response, expected_type):
        raise MalformedAttempt(
            f"Question {answer.question_index} is {question.question_type.value} but received "
            f"{type(response).__name__}."
        )

    if question.question_type is QuestionType.ESSAY:
        return _grade_essay(question, answer)

    if answer.manual_points is not None:
        raise MalformedAttempt(
            f"Question {answer.question_index} is auto-graded and cannot take a manual score."
        )

    checker = _CHECKERS[question.question_type]
    is_correct = False if response is None else checker(question, response)
    return GradedAnswer(
        question_index=answer.question_index,
        question_type=question.question_type,
        is_correct=is_correct,
        points_earned=question.points if is_correct else 0,
        points_possible=question.points,
        feedback=answer.feedback,
    )


def _grade_essay(question: Question, answer: AttemptAnswer) -> GradedAnswer:
    if answer.manual_points is None:
        return GradedAnswer(
            question_index=answer.question_index,
            question_type=question.question_type,
            is_correct=None,
            points_earned=0,
            points_possible=question.points,
            feedback=answer.feedback,
            pending_manual_grading=True,
        )
    if not 0 <= answer.manual_points <= question.points:
        raise MalformedAttempt(
            f"Manual score {answer.manual_points} for question {answer.question_index} "
            f"must be between 0 and {question.points}."
        )
    return GradedAnswer(
        question_index=answer.question_index,
        question_type=question.question_type,
        is_correct=answer.manual_points > 0,
        points_earned=answer.manual_points,
        points_possible=question.points,
        feedback=answer.feedback,
    )


def _check_option_range(question: Question, indices: tuple[int, ...]) -> None:
    for index in indices:
        if not 0 <= index < len(question.options):
            raise MalformedAttempt(
                f"Option index {index} is out of range for a question with "
                f"{len(question.options)} options."
            )


def _check_multiple_choice(question: Question, response: SelectionAnswer) -> bool:
    _check_option_range(question, response.selected_options)
    if not response.selected_options:
        return False
    return set(response.selected_options) == question.correct_option_indices


def _check_true_false(question: Question, response: SelectionAnswer) -> bool:
    _check_option_range(question, response.selected_options)
    if not response.selected_options:
        return False
    if len(response.selected_options) > 1:
        raise MalformedAttempt("A true/false answer may select only one option.")
    correct = question.correct_option_indices
    return len(correct) == 1 and response.selected_options[0] in correct


def _check_short_answer(question: Question, response: TextAnswer) -> bool:
    if not response.text.strip() or not question.correct_answer:
        return False
    return response.text.strip().lower() == question.correct_answer.strip().lower()


def _check_fill_blank(question: Question, response: FillBlankAnswer) -> bool:
    if len(response.blanks) > len(question.fill_blanks):
        raise MalformedAttempt(
            f"Received {len(response.blanks)} blanks but the question has "
            f"{len(question.fill_blanks)}."
        )
    if not question.fill_blanks or len(response.blanks) < len(question.fill_blanks):
        return False
    for given, blank in zip(response.blanks, question.fill_blanks):
        expected = blank.answer.strip()
        provided = given.strip()
        if not blank.case_sensitive:
            expected = expected.lower()
            provided = provided.lower()
        if not provided or provided != expected:
            return False
    return True


def _check_matching(question: Question, response: MatchingAnswer) -> bool:
    pair_count = len(question.matching_pairs)
    mapping: dict[int, int] = {}
    for match in response.matches:
        if not 0 <= match.left_index < pair_count or not 0 <= match.right_index < pair_count:
            raise MalformedAttempt(
                f"Match {match.left_index}->{match.right_index} is out of range for "
                f"{pair_count} pairs."
            )
        if match.left_index in mapping:
            raise MalformedAttempt(f"Left item {match.left_index} is matched more than once.")
        mapping[match.left_index] = match.right_index
    if pair_count == 0:
        return False
    return all(mapping.get(left) == left for left in range(pair_count))


_CHECKERS = {
    QuestionType.MULTIPLE_CHOICE: _check_multiple_choice,
    QuestionType.TRUE_FALSE: _check_true_false,
    QuestionType.SHORT_ANSWER: _check_short_answer,
    QuestionType.FILL_BLANK: _check_fill_blank,
    QuestionType.MATCHING: _check_matching,
}
