import pytest

from lms_grading.core.grading_engine import grade_attempt
from lms_grading.core.models import (
    AttemptAnswer,
    ChoiceOption,
    FillBlankAnswer,
    Match,
    MatchingAnswer,
    Question,
    QuestionType,
    QuizDefinition,
    SelectionAnswer,
    TextAnswer,
)
from lms_grading.core.presentation import build_presentation, is_shuffled


@pytest.fixture
def shuffled_quiz():
    questions = [
        Question(
            text=f"Question {number}",
            question_type=QuestionType.MULTIPLE_CHOICE,
            points=2,
            options=[ChoiceOption(f"{number}-{i}", is_correct=i == number % 4) for i in range(4)],
        )
        for number in range(6)
    ]
    questions.append(
        Question(text="Name it", question_type=QuestionType.SHORT_ANSWER, correct_answer="Ada")
    )
    return QuizDefinition(
        id="shuffled",
        title="Shuffled",
        questions=questions,
        shuffle_questions=True,
        shuffle_options=True,
    )


def test_same_seed_gives_same_presentation(shuffled_quiz):
    assert build_presentation(shuffled_quiz, seed=7) == build_presentation(shuffled_quiz, seed=7)


def test_presentation_without_shuffle_is_canonical(mixed_quiz):
    presentation = build_presentation(mixed_quiz, seed=3)

    assert [q.canonical_index for q in presentation.questions] == list(range(6))
    assert presentation.questions[0].options == ["2", "4", "5", "9"]
    assert presentation.questions[0].option_order == [0, 1, 2, 3]


def test_presentation_is_a_permutation(shuffled_quiz):
    presentation = build_presentation(shuffled_quiz, seed=11)

    assert sorted(q.canonical_index for q in presentation.questions) == list(range(7))
    for presented in presentation.questions:
        canonical = shuffled_quiz.questions[presented.canonical_index]
        assert sorted(presented.option_order) == list(range(len(canonical.options)))
        assert presented.options == [canonical.options[i].text for i in presented.option_order]


def test_displayed_answers_grade_against_canonical_key(shuffled_quiz, make_attempt):
    presentation = build_presentation(shuffled_quiz, seed=42)
    displayed = []
    for position, presented in enumerate(presentation.questions):
        if presented.question_type is QuestionType.SHORT_ANSWER:
            displayed.append(AttemptAnswer(position, TextAnswer("ada")))
            continue
        canonical = shuffled_quiz.questions[presented.canonical_index]
        (correct,) = canonical.correct_option_indices
        displayed.append(AttemptAnswer(position, SelectionAnswer((presented.option_order.index(correct),))))

    answers = presentation.to_canonical(displayed)
    result = grade_attempt(shuffled_quiz, make_attempt(answers, quiz_id=shuffled_quiz.id))

    assert [a.question_index for a in answers] == list(range(7))
    assert result.total_score == result.total_points == 13


def test_to_canonical_rejects_wrong_answer_count(shuffled_quiz):
    presentation = build_presentation(shuffled_quiz, seed=1)
    with pytest.raises(ValueError):
        presentation.to_canonical([AttemptAnswer(0)])


def test_matching_and_fill_blank_are_presentable(mixed_quiz):
    question = build_presentation(mixed_quiz, seed=9).questions[4]
    payload = question.to_dict()

    assert payload["leftItems"] == ["France", "Japan", "Kenya"]
    assert sorted(payload["rightItems"]) == ["Nairobi", "Paris", "Tokyo"]
    assert build_presentation(mixed_quiz, seed=9).questions[3].to_dict()["blanks"] == ["formula", "gas"]
    assert "leftItems" not in build_presentation(mixed_quiz, seed=9).questions[0].to_dict()


def test_matching_right_column_is_always_shuffled(mixed_quiz):
    assert not mixed_quiz.shuffle_options
    orders = {tuple(build_presentation(mixed_quiz, seed=s).questions[4].right_order) for s in range(20)}
    assert len(orders) > 1
    assert is_shuffled(mixed_quiz)


def test_displayed_matches_grade_against_canonical_pairs(mixed_quiz, perfect_answers, make_attempt):
    presentation = build_presentation(mixed_quiz, seed=13)
    matching = presentation.questions[4]
    right_texts = [pair.right for pair in mixed_quiz.questions[4].matching_pairs]
    displayed = list(perfect_answers)
    displayed[4] = AttemptAnswer(
        4,
        MatchingAnswer(
            tuple(Match(left, matching.right_items.index(text)) for left, text in enumerate(right_texts))
        ),
    )
    displayed[3] = AttemptAnswer(3, FillBlankAnswer(("H2O", "oxygen")))

    answers = presentation.to_canonical(displayed)
    result = grade_attempt(mixed_quiz, make_attempt(answers))

    assert answers[4].response == MatchingAnswer((Match(0, 0), Match(1, 1), Match(2, 2)))
    assert result.answers[4].is_correct is True
    assert result.answers[3].is_correct is True


def test_unshuffled_quiz_without_matching():
    quiz = QuizDefinition(
        id="plain",
        title="Plain",
        questions=[Question("Name it", QuestionType.SHORT_ANSWER, correct_answer="Ada")],
    )
    assert not is_shuffled(quiz)
