from datetime import datetime, timezone

import pytest

from tests.factories import T0, make_word
from wordmemory.domain.errors import WordValidationError
from wordmemory.infrastructure.serialization import (
    format_datetime,
    parse_datetime,
    word_from_dict,
    word_to_dict,
)


def test_parse_datetime_formats():
    assert parse_datetime("2025-03-01T12:00:00.000Z") == T0
    assert parse_datetime("2025-03-01T12:00:00") == T0
    assert parse_datetime(int(T0.timestamp() * 1000)) == T0
    assert parse_datetime(None) is None
    assert parse_datetime("") is None


def test_parse_datetime_rejects_garbage():
    with pytest.raises(WordValidationError):
        parse_datetime("yesterday")
    with pytest.raises(WordValidationError):
        parse_datetime(True)


def test_format_datetime_normalizes_to_utc():
    local = datetime(2025, 3, 1, 13, 0, tzinfo=timezone.utc).astimezone()
    assert format_datetime(local) == "2025-03-01T13:00:00+00:00"
    assert format_datetime(None) is None


def test_word_record_is_flat():
    record = word_to_dict(make_word("a"))

    assert record["id"] == "a"
    assert record["state"] == "new"
    assert record["last_reviewed"] is None
    assert "memory" not in record


def test_unknown_state_rejected():
    record = word_to_dict(make_word("a"))
    record["state"] = "mastered"

    with pytest.raises(WordValidationError):
        word_from_dict(record)


def test_missing_original_rejected():
    record = word_to_dict(make_word("a"))
    del record["original"]

    with pytest.raises(WordValidationError):
        word_from_dict(record)


@pytest.mark.parametrize(
    "field, value",
    [
        ("stability", -3),
        ("stability", float("nan")),
        ("stability", 0),
        ("difficulty", 42),
        ("difficulty", float("inf")),
        ("retrievability", 1.5),
        ("review_count", -1),
    ],
)
def test_out_of_range_memory_rejected(field, value):
    record = word_to_dict(make_word("a"))
    record[field] = value

    with pytest.raises(WordValidationError, match="Word a"):
        word_from_dict(record)
