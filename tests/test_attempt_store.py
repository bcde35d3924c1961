from dataclasses import replace
from datetime import timedelta

import pytest

from lms_grading.core.grading_engine import grade_attempt
from lms_grading.core.models import AttemptStatus
from lms_grading.core.services.attempt_store import AttemptStore


def test_start_attempt_creates_empty_answers(mixed_quiz, start_time):
    store = AttemptStore()
    attempt = store.start_attempt(mixed_quiz, "student-1", start_time)

    assert attempt.attempt_number == 1
    assert attempt.status is AttemptStatus.IN_PROGRESS
    assert [a.question_index for a in attempt.answers] == list(range(6))
    assert all(a.response is None for a in attempt.answers)


def test_attempt_limit_is_per_student(mixed_quiz, start_time):
    store = AttemptStore()
    quiz = replace(mixed_quiz, max_attempts=2)
    store.start_attempt(quiz, "student-1", start_time)
    second = store.start_attempt(quiz, "student-1", start_time)

    assert second.attempt_number == 2
    with pytest.raises(RuntimeError, match="Maximum attempts"):
        store.start_attempt(quiz, "student-1", start_time)
    assert store.start_attempt(quiz, "student-2", start_time).attempt_number == 1
    assert store.count_attempts(quiz.id) == 3
    assert store.count_attempts(quiz.id, "student-1") == 2


def test_unavailable_quiz_cannot_be_started(mixed_quiz, start_time):
    store = AttemptStore()
    with pytest.raises(RuntimeError, match="not available"):
        store.start_attempt(replace(mixed_quiz, is_published=False), "student-1", start_time)
    with pytest.raises(RuntimeError, match="not available"):
        store.start_attempt(
            replace(mixed_quiz, end_date=start_time - timedelta(days=1)), "student-1", start_time
        )


def test_time_remaining(mixed_quiz, start_time):
    store = AttemptStore()
    attempt = store.start_attempt(mixed_quiz, "student-1", start_time)
    timed = replace(mixed_quiz, time_limit=10)

    assert store.time_remaining(attempt, mixed_quiz, start_time) is None
    assert store.time_remaining(attempt, timed, start_time + timedelta(minutes=4)) == 360
    assert store.time_remaining(attempt, timed, start_time + timedelta(minutes=12)) == 0


def test_stale_commit_is_rejected(mixed_quiz, perfect_answers, start_time):
    store = AttemptStore()
    attempt = store.start_attempt(mixed_quiz, "student-1", start_time)
    graded = grade_attempt(mixed_quiz, replace(attempt, answers=perfect_answers))

    store.commit_grading(attempt.id, 0, perfect_answers, graded, AttemptStatus.COMPLETED)
    with pytest.raises(RuntimeError, match="changed while grading"):
        store.commit_grading(attempt.id, 0, perfect_answers, graded, AttemptStatus.TIMEOUT)

    stored = store.get_attempt(attempt.id)
    assert stored.status is AttemptStatus.COMPLETED
    assert stored.revision == 1


def test_manual_score_requires_finished_attempt(mixed_quiz, start_time):
    store = AttemptStore()
    attempt = store.start_attempt(mixed_quiz, "student-1", start_time)
    with pytest.raises(RuntimeError):
        store.record_manual_score(attempt.id, mixed_quiz, 5, 3, None, "instructor-1", start_time)


def test_abandon_attempt(mixed_quiz, start_time):
    store = AttemptStore()
    attempt = store.start_attempt(mixed_quiz, "student-1", start_time)

    assert store.abandon_attempt(attempt.id).status is AttemptStatus.ABANDONED
    with pytest.raises(RuntimeError):
        store.save_answers(attempt.id, [])
    assert store.list_attempts(status=AttemptStatus.ABANDONED) == [attempt]


def test_unknown_attempt():
    with pytest.raises(KeyError):
        AttemptStore().get_attempt("missing")
