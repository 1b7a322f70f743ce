from datetime import timedelta

from tests.factories import T0
from wordmemory.application.session import StudySession
from wordmemory.domain.models import Rating


def test_empty_session():
    session = StudySession.start(T0)

    assert session.id.startswith("session_")
    assert session.cards_reviewed == 0
    assert session.accuracy == 0.0
    assert session.average_response_time == 0.0
    assert session.duration_seconds is None


def test_accuracy_and_response_time():
    session = StudySession.start(T0)
    session.record("a", Rating.GOOD, T0, response_time_ms=1000)
    session.record("b", Rating.AGAIN, T0, response_time_ms=3000)
    session.record("c", Rating.EASY, T0, response_time_ms=2000)
    session.record("d", Rating.HARD, T0, response_time_ms=2000)
    session.end(T0 + timedelta(minutes=5))

    assert session.cards_reviewed == 4
    assert session.accuracy == 0.75
    assert session.average_response_time == 2000
    assert session.duration_seconds == 300
