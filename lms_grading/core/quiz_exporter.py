"""Utilities for exporting quizzes to the plain-text format used for imports."""

from __future__ import annotations

from pathlib import Path

from lms_grading.core.models import Question, QuestionType, QuizDefinition
from lms_grading.core.quiz_importer import CASE_SENSITIVE_MARKER, OPTION_LETTERS, PAIR_SEPARATOR


def save_quiz_to_file(file_path: Path, quiz: QuizDefinition) -> None:
    """Persist the provided quiz to disk in the text import format."""

    if not quiz.questions:
        raise ValueError("Cannot export an empty quiz.")

    file_path = file_path.resolve()
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(serialize_quiz(quiz), encoding="utf-8")


def serialize_quiz(quiz: QuizDefinition) -> str:
    blocks = [_serialize_settings(quiz)]
    blocks.extend(_serialize_question(question) for question in quiz.questions)
    return "\n\n---\n\n".join(blocks) + "\n"


def _serialize_settings(quiz: QuizDefinition) -> str:
    lines = [f"TITLE: {quiz.title}"]
    if quiz.description:
        lines.append(f"DESCRIPTION: {quiz.description}")
    lines.append(f"PASSING: {quiz.passing_score:g}")
    lines.append(f"ATTEMPTS: {quiz.max_attempts}")
    lines.append(f"TIMELIMIT: {quiz.time_limit}")
    if quiz.shuffle_questions and quiz.shuffle_options:
        lines.append("SHUFFLE: both")
    elif quiz.shuffle_questions:
        lines.append("SHUFFLE: questions")
    elif quiz.shuffle_options:
        lines.append("SHUFFLE: options")
    return "\n".join(lines)


def _serialize_question(question: Question) -> str:
    lines: list[str] = []

    question_lines = question.text.splitlines() or [question.text]
    lines.append(f"Q: {question_lines[0] if question_lines else ''}")
    lines.extend(question_lines[1:])
    lines.append(f"TYPE: {question.question_type.value}")
    lines.append(f"POINTS: {question.points:g}")

    if len(question.options) > len(OPTION_LETTERS):
        raise ValueError(f"Cannot export more than {len(OPTION_LETTERS)} options per question.")
    for letter, option in zip(OPTION_LETTERS, question.options):
        option_lines = option.text.splitlines() or [option.text]
        lines.append(f"{letter}: {option_lines[0] if option_lines else ''}")
        lines.extend(option_lines[1:])

    correct = [OPTION_LETTERS[index] for index in sorted(question.correct_option_indices)]
    if correct:
        lines.append(f"CORRECT: {', '.join(correct)}")

    if question.correct_answer:
        lines.append(f"ANSWER: {question.correct_answer}")

    if question.question_type is QuestionType.MATCHING:
        for pair in question.matching_pairs:
            lines.append(f"PAIR: {pair.left} {PAIR_SEPARATOR} {pair.right}")

    if question.question_type is QuestionType.FILL_BLANK:
        for blank in question.fill_blanks:
            marker = f" {CASE_SENSITIVE_MARKER}" if blank.case_sensitive else ""
            lines.append(f"BLANK: {blank.answer}{marker}")

    if question.explanation:
        lines.append(f"EXPLAIN: {question.explanation}")

    return "\n".join(lines)
