"""Application metadata."""

APP_NAME: str = "LMS Grading"
APP_VERSION: str = "0.1.0"
APP_DESCRIPTION: str = (
    "Quiz auto-grading and assignment scoring service for a learning management system."
)
