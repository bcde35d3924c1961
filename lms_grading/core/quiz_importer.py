"""Utilities for importing quizzes from a human-friendly text file.

File format (blocks separated by blank lines or '---'):

    TITLE: Quiz title
    DESCRIPTION: Optional description
    PASSING: 60          (passing percentage, optional)
    ATTEMPTS: 1          (optional)
    TIMELIMIT: 0         (minutes, optional, 0 = unlimited)
    SHUFFLE: questions|options|both   (optional)

    Q: Question text (supports markdown + LaTeX). Additional lines until the
       next marker are treated as part of the question.
    TYPE: multiple-choice|true-false|short-answer|essay|matching|fill-blank
    POINTS: 5
    A: First option text
    B: Second option text
    CORRECT: A, B        (option letters, multiple-choice and true-false)
    ANSWER: reference    (short-answer, optional rubric text for essays)
    PAIR: left => right  (matching, one line per pair)
    BLANK: answer        (fill-blank, one per blank; append [case] for case-sensitive)
    EXPLAIN: Explanation shown after submission

The settings block is optional and must come first. TYPE defaults to
multiple-choice and POINTS to 1. True/false questions without options get
"True"/"False" and also accept CORRECT: TRUE or CORRECT: FALSE.

Example:

    TITLE: Arithmetic
    PASSING: 70

    Q: What is $2 + 2$?
    A: 3
    B: 4
    CORRECT: B
    POINTS: 2
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from lms_grading.core.models import (
    ChoiceOption,
    FillBlank,
    MatchingPair,
    Question,
    QuestionType,
    QuizDefinition,
)
from lms_grading.core.services.quiz_repository import QuizRepository, QuizValidationError


class QuizImportError(Exception):
    """Raised when a quiz definition cannot be parsed."""


@dataclass(slots=True)
class ImportedQuiz:
    """Container for imported quiz metadata and questions."""

    source_path: Path
    quiz: QuizDefinition


OPTION_LETTERS = "ABCDEFGH"
CASE_SENSITIVE_MARKER = "[case]"
PAIR_SEPARATOR = "=>"
_SETTING_KEYS = ("TITLE", "DESCRIPTION", "PASSING", "ATTEMPTS", "TIMELIMIT", "SHUFFLE")
_TRUE_FALSE_OPTIONS = ("True", "False")


def load_quiz_from_file(file_path: Path, quiz_id: str | None = None) -> ImportedQuiz:
    text = file_path.read_text(encoding="utf-8")
    quiz = parse_quiz_text(text, quiz_id=quiz_id or file_path.stem, default_title=file_path.stem)
    return ImportedQuiz(source_path=file_path, quiz=quiz)


def parse_quiz_text(text: str, quiz_id: str, default_title: str = "Untitled quiz") -> QuizDefinition:
    blocks = _split_blocks(text)
    settings: dict[str, str] = {}
    if blocks and not _is_question_block(blocks[0]):
        settings = _parse_settings(blocks.pop(0))

    questions = [_parse_block(block) for block in blocks]
    if not questions:
        raise QuizImportError("Quiz file did not contain any questions.")

    shuffle = settings.get("SHUFFLE", "").lower()
    if shuffle not in ("", "questions", "options", "both"):
        raise QuizImportError("SHUFFLE must be one of questions, options or both.")

    quiz = QuizDefinition(
        id=quiz_id,
        title=settings.get("TITLE") or default_title,
        description=settings.get("DESCRIPTION", ""),
        questions=questions,
        passing_score=_parse_number(settings.get("PASSING", "60"), "PASSING"),
        max_attempts=_parse_int(settings.get("ATTEMPTS", "1"), "ATTEMPTS"),
        time_limit=_parse_int(settings.get("TIMELIMIT", "0"), "TIMELIMIT"),
        shuffle_questions=shuffle in ("questions", "both"),
        shuffle_options=shuffle in ("options", "both"),
    )
    try:
        QuizRepository.validate(quiz)
    except QuizValidationError as exc:
        raise QuizImportError(str(exc)) from exc
    return quiz


def _split_blocks(text: str) -> list[str]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---":
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        if stripped:
            current_block.append(raw_line)
        elif current_block:
            # Blank line encountered after content - finalize current block
            blocks.append("\n".join(current_block).strip())
            current_block = []
    if current_block:
        blocks.append("\n".join(current_block).strip())
    return [block for block in blocks if block]


def _is_question_block(block: str) -> bool:
    return any(line.strip().upper().startswith("Q:") for line in block.splitlines())


def _split_marker(line: str) -> tuple[str, str]:
    key, value = line.split(":", 1)
    return key.strip().upper(), value.strip()


def _parse_settings(block: str) -> dict[str, str]:
    settings: dict[str, str] = {}
    for raw_line in block.splitlines():
        line = raw_line.strip()
        if ":" not in line:
            raise QuizImportError(f"Encountered text outside of a known setting: '{line}'.")
        key, value = _split_marker(line)
        if key not in _SETTING_KEYS:
            raise QuizImportError(f"Unknown quiz setting '{key}'.")
        settings[key] = value
    return settings


def _parse_block(block: str) -> Question:
    question_lines: list[str] = []
    explanation_lines: list[str] = []
    options: dict[str, str] = {}
    correct_letters: list[str] = []
    question_type = QuestionType.MULTIPLE_CHOICE
    points: float = 1
    reference_answer: str | None = None
    pairs: list[MatchingPair] = []
    blanks: list[FillBlank] = []
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        upper = line.upper()
        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("TYPE:"):
            question_type = _parse_type(line.split(":", 1)[1].strip())
            current_section = None
            continue

        if upper.startswith("POINTS:"):
            points = _parse_number(line.split(":", 1)[1].strip(), "POINTS")
            current_section = None
            continue

        if upper.startswith("CORRECT:"):
            raw_value = line.split(":", 1)[1]
            correct_letters = [part.strip().upper() for part in raw_value.split(",") if part.strip()]
            current_section = None
            continue

        if upper.startswith("ANSWER:"):
            reference_answer = line.split(":", 1)[1].strip()
            current_section = None
            continue

        if upper.startswith("PAIR:"):
            pairs.append(_parse_pair(line.split(":", 1)[1]))
            current_section = None
            continue

        if upper.startswith("BLANK:"):
            blanks.append(_parse_blank(line.split(":", 1)[1], len(blanks) + 1))
            current_section = None
            continue

        if upper.startswith("EXPLAIN:"):
            explanation_lines = [line.split(":", 1)[1].strip()]
            current_section = "EXPLAIN"
            continue

        if len(line) > 2 and line[0].upper() in OPTION_LETTERS and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section == "EXPLAIN":
            explanation_lines.append(line)
        elif current_section is not None and current_section in OPTION_LETTERS:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise QuizImportError(
                f"Encountered text outside of a known section: '{line}'."
            )

    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise QuizImportError("Question text missing (Q: ...)")

    option_texts = _ordered_options(options)
    if question_type is QuestionType.TRUE_FALSE and not option_texts:
        option_texts = list(_TRUE_FALSE_OPTIONS)
        correct_letters = [_true_false_letter(letter) for letter in correct_letters]

    correct_indices: set[int] = set()
    for letter in correct_letters:
        index = OPTION_LETTERS.find(letter) if len(letter) == 1 else -1
        if not 0 <= index < len(option_texts):
            raise QuizImportError(f"CORRECT refers to unknown option '{letter}'.")
        correct_indices.add(index)

    return Question(
        text=question_text,
        question_type=question_type,
        points=points,
        options=[
            ChoiceOption(text=text, is_correct=index in correct_indices)
            for index, text in enumerate(option_texts)
        ],
        correct_answer=reference_answer,
        matching_pairs=pairs,
        fill_blanks=blanks,
        explanation="\n".join(explanation_lines).strip() or None,
    )


def _ordered_options(options: dict[str, str]) -> list[str]:
    letters = OPTION_LETTERS[: len(options)]
    if set(options) != set(letters):
        raise QuizImportError(f"Options must be lettered consecutively starting at A ({letters}).")
    texts = [options[letter].strip() for letter in letters]
    if any(not text for text in texts):
        raise QuizImportError("Option text cannot be empty.")
    return texts


def _true_false_letter(value: str) -> str:
    if value in ("TRUE", "T"):
        return "A"
    if value in ("FALSE", "F"):
        return "B"
    return value


def _parse_type(raw_value: str) -> QuestionType:
    try:
        return QuestionType(raw_value.strip().lower())
    except ValueError as exc:
        allowed = ", ".join(t.value for t in QuestionType)
        raise QuizImportError(f"TYPE must be one of {allowed}.") from exc


def _parse_pair(raw_value: str) -> MatchingPair:
    if PAIR_SEPARATOR not in raw_value:
        raise QuizImportError(f"PAIR must look like 'left {PAIR_SEPARATOR} right'.")
    left, right = (part.strip() for part in raw_value.split(PAIR_SEPARATOR, 1))
    if not left or not right:
        raise QuizImportError("Both sides of a PAIR must have text.")
    return MatchingPair(left=left, right=right)


def _parse_blank(raw_value: str, number: int) -> FillBlank:
    value = raw_value.strip()
    case_sensitive = value.lower().endswith(CASE_SENSITIVE_MARKER)
    if case_sensitive:
        value = value[: -len(CASE_SENSITIVE_MARKER)].strip()
    if not value:
        raise QuizImportError("BLANK must include an answer.")
    return FillBlank(text=f"Blank {number}", answer=value, case_sensitive=case_sensitive)


def _parse_number(raw_value: str, key: str) -> float:
    if not raw_value:
        raise QuizImportError(f"{key} must include a numeric value.")
    try:
        value = float(raw_value)
    except ValueError as exc:
        raise QuizImportError(f"{key} must be a number.") from exc
    return int(value) if value.is_integer() else value


def _parse_int(raw_value: str, key: str) -> int:
    try:
        return int(raw_value)
    except ValueError as exc:
        raise QuizImportError(f"{key} must be an integer.") from exc
