from datetime import datetime, timedelta, timezone

import pytest

from lms_grading.core.assignment_grading import (
    calculate_late_penalty,
    days_late,
    grade_submission,
)
from lms_grading.core.models import Assignment, AssignmentSubmission

DUE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _assignment(**overrides):
    values = dict(
        id="essay-1",
        title="Essay",
        due_date=DUE,
        total_points=100,
        allow_late_submission=True,
        late_penalty=20,
    )
    values.update(overrides)
    return Assignment(**values)


def _submission(submitted_at, score):
    return AssignmentSubmission(
        id="sub-1",
        assignment_id="essay-1",
        student_id="student-1",
        submitted_at=submitted_at,
        score=score,
    )


def test_penalty_is_capped_at_configured_value():
    assert calculate_late_penalty(_assignment(), datetime(2024, 1, 11, tzinfo=timezone.utc)) == 20


@pytest.mark.parametrize(
    ("delay", "expected"),
    [
        (timedelta(0), 0),
        (timedelta(hours=1), 5),
        (timedelta(days=1), 5),
        (timedelta(days=2, minutes=1), 15),
    ],
)
def test_partial_days_count_as_full_days(delay, expected):
    assert calculate_late_penalty(_assignment(), DUE + delay) == expected


def test_early_submission_is_not_late():
    assert days_late(DUE, DUE - timedelta(days=3)) == 0


def test_no_penalty_when_late_submissions_are_not_allowed():
    assignment = _assignment(allow_late_submission=False)
    assert calculate_late_penalty(assignment, DUE + timedelta(days=4)) == 0


def test_no_penalty_when_penalty_is_zero():
    assert calculate_late_penalty(_assignment(late_penalty=0), DUE + timedelta(days=4)) == 0


def test_late_submission_is_graded_on_final_percentage():
    graded = grade_submission(_assignment(), _submission(DUE + timedelta(hours=3), 90))

    assert graded.is_late is True
    assert graded.late_penalty == 5
    assert graded.percentage == 90.0
    assert graded.final_percentage == 85.0
    assert graded.final_score == pytest.approx(85.5)
    assert graded.grade == "B"


def test_on_time_submission_keeps_its_score():
    graded = grade_submission(_assignment(), _submission(DUE, 90))

    assert graded.is_late is False
    assert graded.late_penalty == 0
    assert graded.final_score == 90
    assert graded.grade == "A-"


def test_final_percentage_never_goes_negative():
    graded = grade_submission(_assignment(), _submission(DUE + timedelta(days=8), 3))

    assert graded.final_percentage == 0
    assert graded.grade == "F"


@pytest.mark.parametrize("score", [None, -1, 101])
def test_invalid_scores_are_rejected(score):
    with pytest.raises(ValueError):
        grade_submission(_assignment(), _submission(DUE, score))
