from datetime import datetime, timezone

import pytest

from lms_grading.core.grading_manager import GradingManager
from lms_grading.core.models import (
    Attempt,
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
    SelectionAnswer,
    TextAnswer,
)

START = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def start_time():
    return START


@pytest.fixture
def mixed_quiz():
    """One question of every type, 16 points in total."""
    return QuizDefinition(
        id="mixed",
        title="Everything quiz",
        passing_score=60,
        questions=[
            Question(
                text="Pick the **prime** numbers",
                question_type=QuestionType.MULTIPLE_CHOICE,
                points=2,
                options=[
                    ChoiceOption("2", True),
                    ChoiceOption("4"),
                    ChoiceOption("5", True),
                    ChoiceOption("9"),
                ],
                explanation="2 and 5 have no divisors other than 1 and themselves.",
            ),
            Question(
                text="The sun is a star",
                question_type=QuestionType.TRUE_FALSE,
                points=1,
                options=[ChoiceOption("True", True), ChoiceOption("False")],
            ),
            Question(
                text="How do plants make food?",
                question_type=QuestionType.SHORT_ANSWER,
                points=2,
                correct_answer="Photosynthesis",
            ),
            Question(
                text="Water is ___ and plants release ___",
                question_type=QuestionType.FILL_BLANK,
                points=3,
                fill_blanks=[
                    FillBlank("formula", "H2O", case_sensitive=True),
                    FillBlank("gas", "oxygen"),
                ],
            ),
            Question(
                text="Match each country to its capital",
                question_type=QuestionType.MATCHING,
                points=3,
                matching_pairs=[
                    MatchingPair("France", "Paris"),
                    MatchingPair("Japan", "Tokyo"),
                    MatchingPair("Kenya", "Nairobi"),
                ],
            ),
            Question(
                text="Explain the water cycle",
                question_type=QuestionType.ESSAY,
                points=5,
            ),
        ],
    )


@pytest.fixture
def perfect_answers():
    """Correct responses for every auto-graded question of ``mixed_quiz``."""
    return [
        AttemptAnswer(0, SelectionAnswer((2, 0))),
        AttemptAnswer(1, SelectionAnswer((0,))),
        AttemptAnswer(2, TextAnswer("  photosynthesis ")),
        AttemptAnswer(3, FillBlankAnswer(("H2O", "Oxygen"))),
        AttemptAnswer(4, MatchingAnswer((Match(2, 2), Match(0, 0), Match(1, 1)))),
        AttemptAnswer(5, TextAnswer("Evaporation, condensation, precipitation.")),
    ]


@pytest.fixture
def make_attempt(start_time):
    def factory(answers, quiz_id="mixed"):
        return Attempt(
            id="attempt-1",
            quiz_id=quiz_id,
            student_id="student-1",
            attempt_number=1,
            started_at=start_time,
            answers=list(answers),
        )

    return factory


@pytest.fixture
def manager(mixed_quiz):
    grading_manager = GradingManager()
    grading_manager.create_quiz(mixed_quiz)
    return grading_manager
