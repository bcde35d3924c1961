"""Percentage to letter-grade mapping shared by quizzes and assignments."""

from __future__ import annotations

from lms_grading.constants.grading_constants import FAILING_GRADE, GRADE_BREAKPOINTS


def letter_grade(percentage: float) -> str:
    """Return the letter for ``percentage`` using strict ``>=`` breakpoints."""
    for threshold, letter in GRADE_BREAKPOINTS:
        if percentage >= threshold:
            return letter
    return FAILING_GRADE


def percentage_of(score: float, total: float) -> float:
    """Return ``score`` as a percentage of ``total``, or 0.0 when there is nothing to score."""
    if total <= 0:
        return 0.0
    return score * 100 / total
