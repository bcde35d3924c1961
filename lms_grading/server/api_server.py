"""FastAPI server that exposes quiz attempt and assignment grading endpoints."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import logging

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
import uvicorn

from lms_grading.constants.about import APP_DESCRIPTION, APP_NAME, APP_VERSION
from lms_grading.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from lms_grading.core.grading_manager import GradingManager
from lms_grading.core.models import AttemptStatus, QuizDefinition
from lms_grading.core.presentation import QuizPresentation
from lms_grading.core.quiz_importer import QuizImportError
from lms_grading.server.schemas import (
    AssignmentPayload,
    AssignmentSubmitPayload,
    EssayGradePayload,
    QuizPayload,
    QuizTextPayload,
    StartAttemptPayload,
    SubmissionGradePayload,
    SubmitAttemptPayload,
)

logger = logging.getLogger(__name__)


@contextmanager
def _domain_errors() -> Iterator[None]:
    """Translate service exceptions into HTTP errors."""
    try:
        yield
    except QuizImportError as exc:
        raise HTTPException(status_code=422, detail=_message(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=_message(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=_message(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=409, detail=_message(exc)) from exc


def _message(exc: Exception) -> str:
    return str(exc.args[0]) if exc.args else exc.__class__.__name__


def _quiz_view(quiz: QuizDefinition, presentation: QuizPresentation) -> dict[str, object]:
    """Student-facing quiz payload; never includes the answer key."""
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "totalPoints": quiz.total_points,
        "passingScore": quiz.passing_score,
        "maxAttempts": quiz.max_attempts,
        "timeLimit": quiz.time_limit,
        "seed": presentation.seed,
        "questions": [question.to_dict() for question in presentation.questions],
    }


def _get_grading_manager_dependency(grading_manager: GradingManager):
    def dependency() -> GradingManager:
        return grading_manager

    return dependency


def create_api_app(grading_manager: GradingManager) -> FastAPI:
    """Create a FastAPI application wired to the provided grading manager."""
    app = FastAPI(title=f"{APP_NAME} API", description=APP_DESCRIPTION, version=APP_VERSION)
    manager_dep = _get_grading_manager_dependency(grading_manager)

    # --- Quizzes ---

    @app.get("/quizzes")
    def list_quizzes(manager: GradingManager = Depends(manager_dep)) -> dict[str, object]:
        return {
            "quizzes": [
                {"id": quiz.id, "title": quiz.title, "totalPoints": quiz.total_points}
                for quiz in manager.list_quizzes()
            ]
        }

    @app.post("/quizzes", status_code=201)
    def create_quiz(
        payload: QuizPayload, manager: GradingManager = Depends(manager_dep)
    ) -> dict[str, object]:
        with _domain_errors():
            quiz = manager.create_quiz(payload.to_quiz())
        return {"id": quiz.id, "title": quiz.title, "totalPoints": quiz.total_points}

    @app.get("/quizzes/{quiz_id}")
    def get_quiz(
        quiz_id: str,
        seed: int | None = None,
        manager: GradingManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _domain_errors():
            quiz = manager.get_quiz(quiz_id)
            presentation = manager.present_quiz(quiz_id, seed)
        return _quiz_view(quiz, presentation)

    @app.post("/quizzes/import", status_code=201)
    def import_quiz(
        payload: QuizTextPayload, manager: GradingManager = Depends(manager_dep)
    ) -> dict[str, object]:
        with _domain_errors():
            quiz = manager.import_quiz_text(payload.text, quiz_id=payload.id)
        return {"id": quiz.id, "title": quiz.title, "totalPoints": quiz.total_points}

    @app.get("/quizzes/{quiz_id}/export", response_class=PlainTextResponse)
    def export_quiz(quiz_id: str, manager: GradingManager = Depends(manager_dep)) -> str:
        with _domain_errors():
            return manager.export_quiz_text(quiz_id)

    @app.put("/quizzes/{quiz_id}")
    def update_quiz(
        quiz_id: str, payload: QuizPayload, manager: GradingManager = Depends(manager_dep)
    ) -> dict[str, object]:
        with _domain_errors():
            quiz = manager.update_quiz(payload.to_quiz(quiz_id))
        return {"id": quiz.id, "title": quiz.title, "totalPoints": quiz.total_points}

    @app.delete("/quizzes/{quiz_id}", status_code=204)
    def delete_quiz(quiz_id: str, manager: GradingManager = Depends(manager_dep)) -> None:
        with _domain_errors():
            manager.delete_quiz(quiz_id)

    @app.get("/quizzes/{quiz_id}/statistics")
    def get_statistics(
        quiz_id: str, manager: GradingManager = Depends(manager_dep)
    ) -> dict[str, object]:
        with _domain_errors():
            return manager.get_statistics(quiz_id).to_dict()

    @app.get("/quizzes/{quiz_id}/attempts")
    def list_attempts(
        quiz_id: str,
        status: AttemptStatus | None = None,
        manager: GradingManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _domain_errors():
            manager.get_quiz(quiz_id)
            attempts = manager.list_attempts(quiz_id=quiz_id, status=status)
        return {"attempts": [attempt.to_dict() for attempt in attempts]}

    # --- Attempts ---

    @app.post("/quizzes/{quiz_id}/start", status_code=201)
    def start_attempt(
        quiz_id: str,
        payload: StartAttemptPayload,
        manager: GradingManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _domain_errors():
            attempt = manager.start_attempt(quiz_id, payload.student_id)
        return attempt.to_dict()

    @app.get("/attempts/{attempt_id}")
    def get_attempt(
        attempt_id: str, manager: GradingManager = Depends(manager_dep)
    ) -> dict[str, object]:
        with _domain_errors():
            attempt = manager.get_attempt(attempt_id)
            payload = attempt.to_dict()
            payload["timeRemaining"] = manager.time_remaining(attempt_id)
        return payload

    @app.get("/attempts/{attempt_id}/questions")
    def get_attempt_questions(
        attempt_id: str, manager: GradingManager = Depends(manager_dep)
    ) -> dict[str, object]:
        with _domain_errors():
            attempt = manager.get_attempt(attempt_id)
            quiz = manager.get_quiz(attempt.quiz_id)
            presentation = manager.present_attempt(attempt_id)
        return _quiz_view(quiz, presentation)

    @app.post("/attempts/{attempt_id}/submit")
    def submit_attempt(
        attempt_id: str,
        payload: SubmitAttemptPayload,
        manager: GradingManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _domain_errors():
            answers = [answer.to_attempt_answer() for answer in payload.answers]
            attempt = manager.submit_displayed_answers(
                attempt_id, answers, seed=payload.seed, time_spent=payload.time_spent
            )
        return attempt.to_dict()

    @app.post("/attempts/{attempt_id}/expire")
    def expire_attempt(
        attempt_id: str, manager: GradingManager = Depends(manager_dep)
    ) -> dict[str, object]:
        with _domain_errors():
            attempt = manager.expire_attempt(attempt_id)
        return attempt.to_dict()

    @app.post("/attempts/{attempt_id}/abandon")
    def abandon_attempt(
        attempt_id: str, manager: GradingManager = Depends(manager_dep)
    ) -> dict[str, object]:
        with _domain_errors():
            attempt = manager.abandon_attempt(attempt_id)
        return attempt.to_dict()

    @app.post("/attempts/{attempt_id}/grade")
    def grade_essay(
        attempt_id: str,
        payload: EssayGradePayload,
        manager: GradingManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _domain_errors():
            attempt = manager.grade_essay(
                attempt_id,
                payload.question_index,
                payload.points,
                feedback=payload.feedback,
                grader_id=payload.grader_id,
            )
        return attempt.to_dict()

    @app.get("/attempts/{attempt_id}/review")
    def review_attempt(
        attempt_id: str, manager: GradingManager = Depends(manager_dep)
    ) -> dict[str, object]:
        with _domain_errors():
            return manager.review_attempt(attempt_id)

    # --- Assignments ---

    @app.post("/assignments", status_code=201)
    def create_assignment(
        payload: AssignmentPayload, manager: GradingManager = Depends(manager_dep)
    ) -> dict[str, object]:
        with _domain_errors():
            assignment = manager.create_assignment(payload.to_assignment())
        return {
            "id": assignment.id,
            "title": assignment.title,
            "dueDate": assignment.due_date.isoformat(),
            "totalPoints": assignment.total_points,
        }

    @app.post("/assignments/{assignment_id}/submit", status_code=201)
    def submit_assignment(
        assignment_id: str,
        payload: AssignmentSubmitPayload,
        manager: GradingManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _domain_errors():
            submission = manager.submit_assignment(
                assignment_id, payload.student_id, payload.submission_text
            )
        return submission.to_dict()

    @app.get("/assignments/{assignment_id}/submissions")
    def list_submissions(
        assignment_id: str,
        student_id: str | None = None,
        manager: GradingManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _domain_errors():
            submissions = manager.list_submissions(assignment_id, student_id)
        return {"submissions": [submission.to_dict() for submission in submissions]}

    @app.post("/submissions/{submission_id}/grade")
    def grade_submission(
        submission_id: str,
        payload: SubmissionGradePayload,
        manager: GradingManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _domain_errors():
            submission = manager.grade_assignment_submission(
                submission_id, payload.score, feedback=payload.feedback, grader_id=payload.grader_id
            )
        return submission.to_dict()

    # --- Notifications ---

    @app.post("/notifications/drain")
    def drain_notifications(manager: GradingManager = Depends(manager_dep)) -> dict[str, object]:
        return {
            "notifications": [
                {
                    "recipient": notification.recipient,
                    "type": notification.type,
                    "title": notification.title,
                    "message": notification.message,
                    "data": notification.data,
                    "createdAt": notification.created_at.isoformat(),
                }
                for notification in manager.notifier.drain()
            ]
        }

    return app


def run_api_server(
    grading_manager: GradingManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> None:
    """Serve the API in the foreground until interrupted."""
    app = create_api_app(grading_manager)
    logger.info("Serving grading API on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level="info")
