"""Grading constants shared by the quiz and assignment scoring paths."""

DEFAULT_PASSING_SCORE: float = 60
DEFAULT_MAX_ATTEMPTS: int = 1
DEFAULT_MAX_SUBMISSIONS: int = 1
LATE_PENALTY_PER_DAY: float = 5
MAX_ASSIGNMENT_POINTS: float = 1000
NOTIFICATION_OUTBOX_LIMIT: int = 1000

# Ordered (threshold, letter) pairs; a percentage earns the first letter whose threshold it meets.
GRADE_BREAKPOINTS: tuple[tuple[float, str], ...] = (
    (97, "A+"),
    (93, "A"),
    (90, "A-"),
    (87, "B+"),
    (83, "B"),
    (80, "B-"),
    (77, "C+"),
    (73, "C"),
    (70, "C-"),
    (67, "D+"),
    (63, "D"),
    (60, "D-"),
)
FAILING_GRADE: str = "F"
