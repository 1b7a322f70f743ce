import json
from datetime import timedelta

import pytest

from tests.factories import T0, make_word
from wordmemory.application.session import StudySession
from wordmemory.domain.errors import WordValidationError
from wordmemory.domain.models import CardState, Rating
from wordmemory.infrastructure.json_store import JsonWordRepository


@pytest.fixture
def store(tmp_path):
    return JsonWordRepository(tmp_path / "data" / "vocabulary.json")


def test_missing_file_is_empty(store):
    assert store.load() == []
    assert store.load_sessions() == []


def test_save_and_load_preserves_words(store):
    words = [
        make_word("a", state=CardState.REVIEW, last_reviewed=T0, review_count=3, lapse_count=1),
        make_word("b"),
    ]
    store.save(words)

    assert store.load() == words
    raw = json.loads(store.path.read_text(encoding="utf-8"))
    assert raw["words"][0]["state"] == "review"
    assert raw["words"][0]["next_review"].endswith("+00:00")


def test_sessions_survive_word_saves(store):
    session = StudySession.start(T0)
    session.record("a", Rating.GOOD, T0, response_time_ms=900)
    session.end(T0 + timedelta(minutes=1))

    store.save_sessions([session])
    store.save([make_word("a")])

    loaded = store.load_sessions()
    assert len(loaded) == 1
    assert loaded[0].reviews[0].rating == Rating.GOOD
    assert loaded[0].end_time == T0 + timedelta(minutes=1)


def test_loads_legacy_camel_case_list(store):
    store.path.parent.mkdir(parents=True)
    store.path.write_text(
        json.dumps(
            [
                {
                    "id": "legacy-1",
                    "original": "kitap",
                    "turkishTranslation": "kitap",
                    "germanTranslation": "Buch",
                    "createdAt": "2024-05-01T10:00:00.000Z",
                    "difficulty": 6,
                    "stability": 2,
                    "retrievability": 0.8,
                    "lastReviewed": "2024-05-02T10:00:00.000Z",
                    "nextReview": "2024-05-04T10:00:00.000Z",
                    "reviewCount": 2,
                    "lapseCount": 0,
                    "tags": [],
                    "state": "learning",
                }
            ]
        ),
        encoding="utf-8",
    )

    [word] = store.load()

    assert word.translations == {"tr": "kitap", "de": "Buch"}
    assert word.memory.state == CardState.LEARNING
    assert word.memory.review_count == 2
    assert word.memory.next_review.tzinfo is not None


def test_corrupt_file_raises(store):
    store.path.parent.mkdir(parents=True)
    store.path.write_text("{not json", encoding="utf-8")
    with pytest.raises(WordValidationError):
        store.load()


def test_record_without_next_review_rejected(store):
    store.path.parent.mkdir(parents=True)
    store.path.write_text(json.dumps({"words": [{"id": "x", "original": "y"}]}), encoding="utf-8")
    with pytest.raises(WordValidationError):
        store.load()
