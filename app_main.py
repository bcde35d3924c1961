"""Application entry point for the LMS grading service."""

from __future__ import annotations

from lms_grading.constants.about import APP_NAME, APP_VERSION
from lms_grading.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from lms_grading.core.grading_manager import GradingManager
from lms_grading.server.api_server import run_api_server
from lms_grading.utils.logging_config import configure_logging


def main() -> None:
    """Initialize logging and serve the grading API."""
    logger = configure_logging()
    logger.info("Starting %s %s", APP_NAME, APP_VERSION)

    grading_manager = GradingManager()
    run_api_server(grading_manager=grading_manager, host=DEFAULT_HOST, port=DEFAULT_PORT)


if __name__ == "__main__":
    main()
