"""WordMemory CLI — word commands, backups, sync and the API server."""

import asyncio
import json
import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer

from wordmemory.application.factory import (
    get_backup_manager,
    get_github_sync,
    get_word_service,
)
from wordmemory.domain.errors import WordMemoryError
from wordmemory.domain.models import Word
from wordmemory.infrastructure.serialization import stats_to_dict, word_to_dict
from wordmemory.interface._common import _resolve_with_overrides, fail, parse_rating_arg

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="wordmemory: vocabulary flashcards with spaced-repetition reviews.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"


# ---------------------------------------------------------------------------
# Subgroups
# ---------------------------------------------------------------------------

backup_app = typer.Typer(help="Create, list and restore backups.", no_args_is_help=True)
app.add_typer(backup_app, name="backup")

sync_app = typer.Typer(help="Sync the vocabulary with a GitHub repository.", no_args_is_help=True)
app.add_typer(sync_app, name="sync")

config_app = typer.Typer(help="Manage wordmemory configuration.")
app.add_typer(config_app, name="config")


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    data: Annotated[
        Path | None, typer.Option("--data", help="Vocabulary file. Defaults to config.")
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for wordmemory."""
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {"data_path": data}
    if verbose:
        logging.getLogger("wordmemory").setLevel(logging.DEBUG)


def _print_word(word: Word) -> None:
    m = word.memory
    translations = ", ".join(f"{k}={v}" for k, v in word.translations.items())
    typer.echo(
        f"{word.id}  {word.original}"
        + (f"  [{translations}]" if translations else "")
        + f"  {m.state.value}  due {m.next_review:%Y-%m-%d %H:%M}"
    )


def _parse_translations(values: list[str] | None) -> dict[str, str]:
    translations: dict[str, str] = {}
    for item in values or []:
        lang, sep, text = item.partition("=")
        if not sep or not lang.strip():
            raise typer.BadParameter(
                f"Expected LANG=TEXT, got '{item}'", param_hint="--translation"
            )
        translations[lang.strip()] = text.strip()
    return translations


# ---------------------------------------------------------------------------
# Word commands
# ---------------------------------------------------------------------------


@app.command()
def add(
    ctx: typer.Context,
    original: Annotated[str, typer.Argument(help="The word or phrase to learn.")],
    translation: Annotated[
        list[str] | None,
        typer.Option("--translation", "-t", help="Translation as LANG=TEXT. Repeatable."),
    ] = None,
    tag: Annotated[list[str] | None, typer.Option("--tag", help="Tag. Repeatable.")] = None,
    example: Annotated[
        list[str] | None, typer.Option("--example", help="Example sentence. Repeatable.")
    ] = None,
    notes: Annotated[str, typer.Option(help="Free-form notes.")] = "",
):
    """[bold green]Add[/bold green] a word. It becomes due tomorrow."""
    service = get_word_service(_resolve_with_overrides(ctx))
    try:
        word = service.add_word(
            original,
            translations=_parse_translations(translation),
            notes=notes,
            examples=example or [],
            tags=tag or [],
        )
    except WordMemoryError as e:
        fail(e)
    typer.secho(f"Added {word.id}", fg="green")


@app.command()
def edit(
    ctx: typer.Context,
    word_id: Annotated[str, typer.Argument(help="ID of the word to change.")],
    original: Annotated[str | None, typer.Option(help="New original text.")] = None,
    translation: Annotated[
        list[str] | None,
        typer.Option(
            "--translation", "-t", help="Translation as LANG=TEXT. Replaces all translations."
        ),
    ] = None,
    tag: Annotated[
        list[str] | None, typer.Option("--tag", help="Tag. Replaces all tags.")
    ] = None,
    example: Annotated[
        list[str] | None, typer.Option("--example", help="Example sentence. Replaces all.")
    ] = None,
    notes: Annotated[str | None, typer.Option(help="Free-form notes.")] = None,
    audio_url: Annotated[str | None, typer.Option(help="Pronunciation audio URL.")] = None,
):
    """Change a word's content. Its review schedule is left alone."""
    changes: dict[str, object] = {}
    if original is not None:
        changes["original"] = original
    if translation:
        changes["translations"] = _parse_translations(translation)
    if tag:
        changes["tags"] = tag
    if example:
        changes["examples"] = example
    if notes is not None:
        changes["notes"] = notes
    if audio_url is not None:
        changes["audio_url"] = audio_url
    if not changes:
        typer.secho("Nothing to change.", fg="yellow")
        return

    service = get_word_service(_resolve_with_overrides(ctx))
    try:
        word = service.update_word(word_id, **changes)
    except WordMemoryError as e:
        fail(e)
    typer.secho(f"Updated {word.id}", fg="green")
    _print_word(word)


@app.command("list")
def list_words(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List every word."""
    service = get_word_service(_resolve_with_overrides(ctx))
    words = service.list_words()
    if json_output:
        typer.echo(json.dumps([word_to_dict(w) for w in words], indent=2, ensure_ascii=False))
        return
    if not words:
        typer.secho("No words yet. Add one with 'wordmemory add'.", fg="yellow")
        return
    for word in words:
        _print_word(word)


@app.command()
def due(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show words due for review now."""
    service = get_word_service(_resolve_with_overrides(ctx))
    queue = service.today_queue()
    if json_output:
        typer.echo(json.dumps([word_to_dict(w) for w in queue], indent=2, ensure_ascii=False))
        return
    typer.echo(f"Due: {len(queue)}")
    for word in queue:
        _print_word(word)


@app.command()
def review(
    ctx: typer.Context,
    word_id: Annotated[str, typer.Argument(help="ID of the word being answered.")],
    rating: Annotated[str, typer.Argument(help="1-4 or again/hard/good/easy.")],
    response_time_ms: Annotated[
        int, typer.Option("--response-time-ms", help="Time taken to answer.")
    ] = 0,
):
    """Record an answer and reschedule the word."""
    service = get_word_service(_resolve_with_overrides(ctx))
    try:
        grade = parse_rating_arg(rating)
        session = service.start_session()
        word = service.submit_review(
            word_id, grade, response_time_ms=response_time_ms, session=session
        )
        service.end_session(session)
    except WordMemoryError as e:
        fail(e)

    m = word.memory
    typer.secho(
        f"{word.original}: {grade.name.title()} -> {m.state.value}, "
        f"next review {m.next_review:%Y-%m-%d %H:%M} (stability {m.stability:.2f}d)",
        fg="green",
    )


@app.command()
def delete(
    ctx: typer.Context,
    word_id: Annotated[str, typer.Argument(help="ID of the word to delete.")],
    force: Annotated[bool, typer.Option("--force", "-f", help="Skip confirmation.")] = False,
):
    """Delete a word."""
    service = get_word_service(_resolve_with_overrides(ctx))
    try:
        word = service.get_word(word_id)
        if not force and not typer.confirm(f"Delete '{word.original}'?"):
            raise typer.Abort()
        service.delete_word(word_id)
    except WordMemoryError as e:
        fail(e)
    typer.secho(f"Deleted {word_id}", fg="green")


@app.command()
def stats(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show study statistics."""
    service = get_word_service(_resolve_with_overrides(ctx))
    summary = service.stats()
    if json_output:
        typer.echo(json.dumps(stats_to_dict(summary), indent=2))
        return
    typer.echo(f"Words: {summary.total_words}  Learned: {summary.words_learned}")
    typer.echo(f"Due now: {summary.words_to_review}")
    typer.echo(f"Retention: {summary.retention_rate}%  Streak: {summary.daily_streak} days")


# ---------------------------------------------------------------------------
# Export / Import
# ---------------------------------------------------------------------------


@app.command("export")
def export_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Destination file.")],
    fmt: Annotated[
        ExportFormat, typer.Option("--format", help="Export format.")
    ] = ExportFormat.JSON,
):
    """Export the vocabulary to JSON or CSV."""
    config = _resolve_with_overrides(ctx)
    service = get_word_service(config)
    words, summary = service.snapshot()
    try:
        out = get_backup_manager(config).export_to_file(words, summary, path, fmt.value)
    except (WordMemoryError, OSError) as e:
        fail(e)
    typer.secho(f"Exported {len(words)} words to {out}", fg="green")


@app.command("import")
def import_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="JSON, CSV or YAML file to import.")],
    replace: Annotated[
        bool, typer.Option("--replace", help="Replace the collection instead of appending.")
    ] = False,
):
    """Import words from a JSON backup, CSV export or YAML word list."""
    config = _resolve_with_overrides(ctx)
    service = get_word_service(config)
    data = get_backup_manager(config).import_from_file(path)
    if data is None:
        typer.secho(f"Could not import {path} (see log for details).", fg="red", err=True)
        raise typer.Exit(1)

    if replace:
        service.replace_all(data.words)
    else:
        known = {w.id for w in service.list_words()}
        service.replace_all(service.list_words() + [w for w in data.words if w.id not in known])
    typer.secho(f"Imported {len(data.words)} words.", fg="green")


# ---------------------------------------------------------------------------
# Backup subgroup
# ---------------------------------------------------------------------------


@backup_app.command("create")
def backup_create(ctx: typer.Context):
    """Write a manual backup."""
    config = _resolve_with_overrides(ctx)
    words, summary = get_word_service(config).snapshot()
    try:
        backup_id = get_backup_manager(config).create_backup(words, summary, "manual")
    except WordMemoryError as e:
        fail(e)
    typer.secho(f"Created {backup_id}", fg="green")


@backup_app.command("list")
def backup_list(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List backups, newest first."""
    config = _resolve_with_overrides(ctx)
    backups = get_backup_manager(config).list_backups()
    if json_output:
        typer.echo(json.dumps([b.__dict__ for b in backups], indent=2))
        return
    if not backups:
        typer.secho("No backups found.", fg="yellow")
        return
    for b in backups:
        typer.echo(f"{b.id}  {b.kind}  {b.word_count} words  {b.size} bytes")


@backup_app.command("restore")
def backup_restore(
    ctx: typer.Context,
    backup_id: Annotated[str, typer.Argument(help="Backup ID from 'backup list'.")],
):
    """Replace the collection with a verified backup."""
    config = _resolve_with_overrides(ctx)
    data = get_backup_manager(config).restore(backup_id)
    if data is None:
        typer.secho(f"Backup {backup_id} is missing or corrupt.", fg="red", err=True)
        raise typer.Exit(1)
    get_word_service(config).replace_all(data.words)
    typer.secho(f"Restored {len(data.words)} words from {backup_id}", fg="green")


# ---------------------------------------------------------------------------
# Sync subgroup
# ---------------------------------------------------------------------------


@sync_app.command("push")
def sync_push(ctx: typer.Context):
    """Upload the vocabulary to GitHub."""
    config = _resolve_with_overrides(ctx)
    service = get_word_service(config)

    async def run():
        github = get_github_sync(config)
        try:
            return await github.save(service.list_words())
        finally:
            await github.close()

    try:
        asyncio.run(run())
    except WordMemoryError as e:
        fail(e)
    typer.secho(f"Pushed {len(service.list_words())} words to GitHub.", fg="green")


@sync_app.command("pull")
def sync_pull(ctx: typer.Context):
    """Replace the local vocabulary with the copy on GitHub."""
    config = _resolve_with_overrides(ctx)
    service = get_word_service(config)

    async def run():
        github = get_github_sync(config)
        try:
            return await github.load()
        finally:
            await github.close()

    try:
        words = asyncio.run(run())
    except WordMemoryError as e:
        fail(e)
    service.replace_all(words)
    typer.secho(f"Pulled {len(words)} words from GitHub.", fg="green")


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@app.command()
def serve(
    port: Annotated[int, typer.Option(help="Port to bind the server to.")] = 8777,
    host: Annotated[str, typer.Option(help="Host to bind the server to.")] = "127.0.0.1",
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the vocabulary HTTP API."""
    import uvicorn

    uvicorn.run("wordmemory.server:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration (token redacted)."""
    config = _resolve_with_overrides(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump(mode="json").items()}
    if d.get("github_token"):
        d["github_token"] = "***"
    typer.echo(json.dumps(d, indent=2))
