"""Helpers shared by CLI command modules."""

from typing import Any

import typer

from wordmemory.application.config import AppConfig, resolve_config
from wordmemory.domain.errors import (
    GitHubSyncError,
    InvalidRating,
    InvalidState,
    WordMemoryError,
    WordNotFoundError,
)
from wordmemory.domain.models import Rating

RATING_NAMES = {r.name.lower(): r for r in Rating}


def _resolve_with_overrides(ctx: typer.Context | None = None, **overrides: Any) -> AppConfig:
    """Resolve config, layering global CLI options and per-command overrides."""
    merged: dict[str, Any] = {}
    if ctx is not None and ctx.obj:
        merged.update(ctx.obj.get("overrides", {}))
    merged.update(overrides)
    return resolve_config(merged)


def parse_rating_arg(value: str) -> Rating:
    """Accept 1-4 or again/hard/good/easy."""
    key = value.strip().lower()
    if key in RATING_NAMES:
        return RATING_NAMES[key]
    try:
        return Rating(int(key))
    except ValueError:
        raise InvalidRating(value) from None


def humanize_error(error: Exception) -> str:
    if isinstance(error, InvalidRating):
        return f"{error} Use 1-4 or again/hard/good/easy."
    if isinstance(error, InvalidState):
        return f"Word record is malformed: {error}"
    if isinstance(error, WordNotFoundError):
        return f"No word with id '{error.word_id}'. Run 'wordmemory list' to see IDs."
    if isinstance(error, GitHubSyncError) and error.status_code in (401, 403):
        return f"GitHub rejected the token ({error.status_code}). Check WORDMEMORY_GITHUB_TOKEN."
    if isinstance(error, WordMemoryError):
        return str(error)
    return f"Unexpected error: {error}"


def fail(error: Exception) -> None:
    """Print a readable error and exit with status 1."""
    typer.secho(humanize_error(error), fg="red", err=True)
    raise typer.Exit(1)
