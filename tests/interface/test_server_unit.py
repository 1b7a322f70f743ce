from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from tests.factories import T0, make_word
from wordmemory import server
from wordmemory.application.word_service import WordService
from wordmemory.consts import VERSION
from wordmemory.infrastructure.json_store import InMemoryWordRepository
from wordmemory.infrastructure.serialization import format_datetime, word_to_dict
from wordmemory.server import app, get_service


@pytest.fixture
def service():
    return WordService(InMemoryWordRepository([make_word("w1", next_review=T0)]))


@pytest.fixture
def client(service):
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == VERSION


def test_get_version(client):
    response = client.get("/version")
    assert response.status_code == 200
    assert response.json() == {"version": VERSION}


def test_get_vocabulary(client):
    response = client.get("/vocabulary")
    assert response.status_code == 200
    assert [r["id"] for r in response.json()] == ["w1"]


def test_put_vocabulary_replaces(client, service):
    records = [word_to_dict(make_word("a")), word_to_dict(make_word("b"))]

    response = client.post("/vocabulary", json=records)

    assert response.status_code == 200
    assert response.json() == {"success": True, "count": 2}
    assert [w.id for w in service.list_words()] == ["a", "b"]


def test_put_vocabulary_rejects_bad_record(client, service):
    response = client.post("/vocabulary", json=[{"id": "x"}])

    assert response.status_code == 422
    assert [w.id for w in service.list_words()] == ["w1"]


def test_queue_lists_due_words(client):
    response = client.get("/queue")
    assert response.status_code == 200
    assert [r["id"] for r in response.json()] == ["w1"]


def test_stats(client):
    data = client.get("/stats").json()
    assert data["total_words"] == 1
    assert data["words_to_review"] == 1


def test_add_word(client, service):
    response = client.post("/words", json={"original": "Baum", "translations": {"en": "tree"}})

    assert response.status_code == 201
    body = response.json()
    assert body["original"] == "Baum"
    assert body["state"] == "new"
    assert len(service.list_words()) == 2


def test_add_word_requires_text(client):
    response = client.post("/words", json={"original": "   "})
    assert response.status_code == 422


def test_review_word(client):
    now = T0 + timedelta(hours=1)

    response = client.post(
        "/words/w1/review", json={"rating": 3, "now": format_datetime(now)}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "learning"
    assert body["stability"] == 2.0
    assert body["review_count"] == 1


def test_review_invalid_rating(client):
    response = client.post("/words/w1/review", json={"rating": 5})
    assert response.status_code == 422


def test_review_unknown_word(client):
    response = client.post("/words/nope/review", json={"rating": 3})
    assert response.status_code == 404


def test_review_malformed_state(client, service):
    service.replace_all([make_word("bad", stability=0.0)])

    response = client.post("/words/bad/review", json={"rating": 3})

    assert response.status_code == 409


def test_delete_word(client, service):
    assert client.delete("/words/w1").status_code == 200
    assert service.list_words() == []
    assert client.delete("/words/w1").status_code == 404


def test_put_vocabulary_rejects_invalid_memory(client, service):
    record = word_to_dict(make_word("a"))
    record["stability"] = -3

    response = client.post("/vocabulary", json=[record])

    assert response.status_code == 422
    assert [w.id for w in service.list_words()] == ["w1"]


def test_update_word(client, service):
    response = client.patch("/words/w1", json={"notes": "neuter", "tags": ["noun"]})

    assert response.status_code == 200
    body = response.json()
    assert body["notes"] == "neuter"
    assert body["tags"] == ["noun"]
    assert body["original"] == "Haus"
    assert service.get_word("w1").memory.next_review == T0


def test_update_word_errors(client):
    assert client.patch("/words/nope", json={"notes": "x"}).status_code == 404
    assert client.patch("/words/w1", json={"original": "  "}).status_code == 422


# --- Lifespan ---


def test_lifespan_schedules_and_cancels_auto_backup(mock_home, monkeypatch, service):
    monkeypatch.setattr(server, "_service", service)
    monkeypatch.setenv("WORDMEMORY_AUTO_BACKUP_INTERVAL_MS", "1000")
    timer = MagicMock()
    task = MagicMock()
    timer.schedule_periodic_backup.return_value = task

    with patch("wordmemory.server.ThreadingPeriodicScheduler", return_value=timer):
        with TestClient(app) as lifespan_client:
            assert lifespan_client.get("/health").status_code == 200
            interval, _ = timer.schedule_periodic_backup.call_args[0]
            assert interval == 1000
            task.cancel.assert_not_called()

    task.cancel.assert_called_once()


def test_lifespan_without_auto_backup(mock_home, monkeypatch, service):
    monkeypatch.setattr(server, "_service", service)
    monkeypatch.setenv("WORDMEMORY_AUTO_BACKUP", "false")

    with patch("wordmemory.server.ThreadingPeriodicScheduler") as scheduler_cls:
        with TestClient(app):
            pass

    scheduler_cls.assert_not_called()
