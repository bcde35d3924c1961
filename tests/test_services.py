from dataclasses import replace
from threading import Thread

from lms_grading.core.services.notifier import NotificationDispatcher
from lms_grading.core.services.quiz_statistics import StatisticsBoard


def test_outbox_drops_oldest_when_full(make_attempt, mixed_quiz):
    dispatcher = NotificationDispatcher(max_pending=2)
    for student_id in ("student-1", "student-2", "student-3"):
        dispatcher.quiz_graded(replace(make_attempt([]), student_id=student_id), mixed_quiz)

    assert [n.recipient for n in dispatcher.pending()] == ["student-2", "student-3"]
    assert len(dispatcher.drain()) == 2
    assert dispatcher.pending() == []


def test_statistics_record_from_many_threads(make_attempt):
    board = StatisticsBoard()
    attempt = make_attempt([])

    def record(worker: int) -> None:
        for number in range(200):
            board.record_attempt(replace(attempt, id=f"{worker}-{number}"))

    workers = [Thread(target=record, args=(worker,)) for worker in range(8)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    stats = board.get_statistics("mixed")
    assert stats.total_attempts == 1600
    assert stats.completion_rate == 0.0
