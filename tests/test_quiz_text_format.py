from pathlib import Path
import textwrap

import pytest

from lms_grading.core.models import QuestionType
from lms_grading.core.quiz_exporter import save_quiz_to_file, serialize_quiz
from lms_grading.core.quiz_importer import QuizImportError, load_quiz_from_file, parse_quiz_text

SAMPLE = textwrap.dedent(
    """\
    TITLE: Science check
    DESCRIPTION: Week 3
    PASSING: 70
    ATTEMPTS: 2
    TIMELIMIT: 15
    SHUFFLE: options

    ---

    Q: Which are **noble** gases?
    A: Helium
    B: Oxygen
    C: Neon
    CORRECT: A, C
    POINTS: 2
    EXPLAIN: They have full outer shells.

    Q: Water boils at 100C at sea level.
    TYPE: true-false
    CORRECT: TRUE

    Q: Name the process plants use to make food.
    TYPE: short-answer
    ANSWER: Photosynthesis

    Q: Complete the formula
    TYPE: fill-blank
    POINTS: 3
    BLANK: H2O [case]
    BLANK: oxygen

    Q: Match the symbol
    TYPE: matching
    PAIR: Fe => Iron
    PAIR: Au => Gold

    Q: Describe the water cycle.
    TYPE: essay
    POINTS: 5
    """
)


def test_parse_all_question_types():
    quiz = parse_quiz_text(SAMPLE, quiz_id="science")

    assert quiz.title == "Science check"
    assert quiz.description == "Week 3"
    assert quiz.passing_score == 70
    assert quiz.max_attempts == 2
    assert quiz.time_limit == 15
    assert quiz.shuffle_options and not quiz.shuffle_questions
    assert [q.question_type for q in quiz.questions] == [
        QuestionType.MULTIPLE_CHOICE,
        QuestionType.TRUE_FALSE,
        QuestionType.SHORT_ANSWER,
        QuestionType.FILL_BLANK,
        QuestionType.MATCHING,
        QuestionType.ESSAY,
    ]
    assert quiz.total_points == 13

    choice, true_false, _, fill, matching, _ = quiz.questions
    assert choice.correct_option_indices == {0, 2}
    assert choice.explanation == "They have full outer shells."
    assert [o.text for o in true_false.options] == ["True", "False"]
    assert true_false.correct_option_indices == {0}
    assert [(b.answer, b.case_sensitive) for b in fill.fill_blanks] == [("H2O", True), ("oxygen", False)]
    assert [(p.left, p.right) for p in matching.matching_pairs] == [("Fe", "Iron"), ("Au", "Gold")]


def test_settings_block_is_optional():
    quiz = parse_quiz_text("Q: 1 + 1?\nA: 2\nB: 3\nCORRECT: A", quiz_id="q", default_title="Maths")

    assert quiz.title == "Maths"
    assert quiz.passing_score == 60
    assert quiz.questions[0].points == 1


def test_multiline_question_text():
    quiz = parse_quiz_text("Q: First line\nsecond line\nA: x\nB: y\nCORRECT: B", quiz_id="q")
    assert quiz.questions[0].text == "First line\nsecond line"


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("TITLE: Empty", "did not contain any questions"),
        ("Q: Pick\nA: x\nB: y\nCORRECT: D", "unknown option"),
        ("Q: Pick\nTYPE: riddle", "TYPE must be one of"),
        ("Q: Pick\nA: x\nC: y\nCORRECT: A", "lettered consecutively"),
        ("Q: Pair up\nTYPE: matching\nPAIR: a -> b", "PAIR must look like"),
        ("Q: Pick\nA: x\nB: y\nCORRECT: A\nPOINTS: lots", "POINTS must be a number"),
        ("TITLE: T\nCOLOR: red\n\nQ: Essay\nTYPE: essay", "Unknown quiz setting"),
        ("Q: Two truths\nTYPE: true-false\nA: yes\nB: no\nCORRECT: A, B", "exactly one correct"),
    ],
)
def test_import_errors(text, message):
    with pytest.raises(QuizImportError, match=message):
        parse_quiz_text(text, quiz_id="broken")


def test_export_then_import_preserves_quiz():
    quiz = parse_quiz_text(SAMPLE, quiz_id="science")

    assert parse_quiz_text(serialize_quiz(quiz), quiz_id="science") == quiz


def test_file_round_trip(tmp_path: Path):
    quiz = parse_quiz_text(SAMPLE, quiz_id="science")
    target = tmp_path / "exports" / "science.txt"

    save_quiz_to_file(target, quiz)
    imported = load_quiz_from_file(target)

    assert imported.source_path == target
    assert imported.quiz.id == "science"
    assert imported.quiz == quiz
