"""Service for generating stable word IDs."""

import logging
from typing import Any

from ulid import ULID

logger = logging.getLogger(__name__)


def generate_word_id() -> str:
    """Generate a stable word ID using ULID."""
    return f"word_{ULID()}"


def assign_word_ids(records: list[dict[str, Any]]) -> int:
    """
    Ensures every raw word record has an ID, in place.
    Returns the number of IDs assigned.
    """
    ids_assigned = 0
    for record in records:
        if not isinstance(record, dict):
            continue
        if not record.get("id"):
            record["id"] = generate_word_id()
            ids_assigned += 1

    if ids_assigned:
        logger.info(f"Assigned {ids_assigned} new word IDs")
    return ids_assigned
