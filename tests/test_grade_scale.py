import pytest

from lms_grading.core.grade_scale import letter_grade, percentage_of


@pytest.mark.parametrize(
    ("percentage", "expected"),
    [
        (100, "A+"),
        (97, "A+"),
        (96.99, "A"),
        (93, "A"),
        (90, "A-"),
        (89.99, "B+"),
        (87, "B+"),
        (83, "B"),
        (80, "B-"),
        (77, "C+"),
        (73, "C"),
        (70, "C-"),
        (67, "D+"),
        (63, "D"),
        (60, "D-"),
        (59.99, "F"),
        (0, "F"),
    ],
)
def test_letter_grade_uses_inclusive_breakpoints(percentage, expected):
    assert letter_grade(percentage) == expected


def test_percentage_of_nothing_is_zero():
    assert percentage_of(0, 0) == 0.0
    assert percentage_of(5, 0) == 0.0


def test_percentage_of_exact_boundary():
    assert percentage_of(9, 10) == 90.0
    assert letter_grade(percentage_of(9, 10)) == "A-"
