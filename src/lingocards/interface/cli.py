"""LingoCards CLI: cards and decks, interactive study, goals, statistics and data management."""

import asyncio
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Annotated

import typer

from lingocards.application.backup import dump_study_data, load_study_data
from lingocards.application.config import AppConfig, resolve_config
from lingocards.application.factory import get_study_repository
from lingocards.application.scheduler import format_interval
from lingocards.application.study_service import StudyService
from lingocards.application.study_session import NoCardsDue, StudySession
from lingocards.domain.errors import (
    InvalidBackupError,
    InvalidRatingError,
    LingoCardsError,
    ReviewPersistenceError,
    StorageError,
)
from lingocards.domain.models import VOCABULARIES, rating_from_button
from lingocards.infrastructure.logging_config import level_for, log_file_path, setup_logging

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="lingocards: spaced-repetition flashcards with SM-2 scheduling.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage lingocards configuration.")
app.add_typer(config_app, name="config")

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    db_path: Annotated[
        Path | None, typer.Option("--db", help="SQLite database file.")
    ] = None,
    backend: Annotated[
        str | None, typer.Option(help="Storage backend: sqlite, memory.")
    ] = None,
):
    """Global settings for lingocards."""
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {
        "db_path": db_path,
        "backend": backend,
        "verbose": verbose or None,
    }
    ctx.obj["verbose"] = verbose


def _config(ctx: typer.Context, **extra) -> AppConfig:
    overrides = dict((ctx.obj or {}).get("overrides", {}))
    overrides.update(extra)
    try:
        config = resolve_config(overrides)
    except ValueError as e:
        typer.secho(f"Invalid configuration: {e}", fg="red")
        raise typer.Exit(2) from e

    cli_verbose = (ctx.obj or {}).get("verbose", 0)
    setup_logging(
        config.log_dir,
        config.verbose,
        console_level=level_for(cli_verbose) if cli_verbose else logging.WARNING,
    )
    return config


def _service(config: AppConfig) -> StudyService:
    return StudyService(get_study_repository(config), config)


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------


@app.command()
def add(
    ctx: typer.Context,
    front: Annotated[str, typer.Argument(help="Question side.")],
    back: Annotated[str, typer.Argument(help="Answer side.")],
    deck: Annotated[str, typer.Option(help="Deck id.")] = "default",
    example: Annotated[str | None, typer.Option(help="Example sentence.")] = None,
):
    """Add a new card. It is due immediately."""
    service = _service(_config(ctx))
    try:
        card = asyncio.run(service.add_card(front, back, deck, example))
    except LingoCardsError as e:
        typer.secho(f"Could not add card: {e}", fg="red")
        raise typer.Exit(1) from e
    typer.secho(f"Added {card.id}", fg="green")


@app.command()
def due(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List cards that are due now."""
    service = _service(_config(ctx))
    cards = asyncio.run(service.get_due_cards())
    if json_output:
        typer.echo(
            json.dumps(
                [
                    {
                        "id": c.id,
                        "deck_id": c.deck_id,
                        "front": c.front,
                        "interval": c.interval,
                        "next_review_date": c.next_review_date.isoformat(),
                    }
                    for c in cards
                ],
                indent=2,
            )
        )
        return

    if not cards:
        typer.secho("All caught up! No cards due.", fg="green")
        return
    typer.echo(f"Due cards: {len(cards)}")
    for c in cards:
        typer.echo(f"  {c.id}  [{c.deck_id}]  {c.front}")


@app.command()
def preview(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card id.")],
):
    """Show the next interval each rating button would produce."""
    service = _service(_config(ctx))
    try:
        intervals = asyncio.run(service.preview_intervals(card_id))
    except LingoCardsError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1) from e

    for name, days in asdict(intervals).items():
        typer.echo(f"{name:>6}: {format_interval(days)}")


@app.command()
def edit(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card id.")],
    front: Annotated[str | None, typer.Option(help="New question side.")] = None,
    back: Annotated[str | None, typer.Option(help="New answer side.")] = None,
    example: Annotated[
        str | None, typer.Option(help="New example sentence; empty string clears it.")
    ] = None,
    deck: Annotated[str | None, typer.Option(help="Move the card to this deck.")] = None,
):
    """Edit a card's text or deck. Its schedule is kept."""
    if front is None and back is None and example is None and deck is None:
        typer.secho("Nothing to change. Pass --front, --back, --example or --deck.", fg="yellow")
        raise typer.Exit(2)

    service = _service(_config(ctx))
    try:
        card = asyncio.run(
            service.update_card(card_id, front=front, back=back, example=example, deck_id=deck)
        )
    except LingoCardsError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1) from e
    typer.secho(f"Updated {card.id}", fg="green")


@app.command()
def delete(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card id.")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation.")] = False,
):
    """Delete a card and its review history."""
    if not yes:
        typer.confirm(f"Delete {card_id} and its review history?", abort=True)

    service = _service(_config(ctx))
    try:
        asyncio.run(service.delete_card(card_id))
    except LingoCardsError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1) from e
    typer.secho(f"Deleted {card_id}", fg="green")


@app.command()
def history(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card id.")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show every review of one card, oldest first."""
    service = _service(_config(ctx))
    try:
        logs = asyncio.run(service.get_card_history(card_id))
    except LingoCardsError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1) from e

    if json_output:
        typer.echo(
            json.dumps(
                [
                    {"id": log.id, "rating": log.rating, "reviewed_at": log.reviewed_at.isoformat()}
                    for log in logs
                ],
                indent=2,
            )
        )
        return
    if not logs:
        typer.echo("No reviews yet.")
        return
    for log in logs:
        typer.echo(f"  {log.reviewed_at:%Y-%m-%d %H:%M}  rating {log.rating}")


@app.command()
def decks(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List decks with their card counts."""
    service = _service(_config(ctx))
    deck_stats = asyncio.run(service.get_decks())

    if json_output:
        typer.echo(json.dumps([asdict(d) for d in deck_stats], indent=2))
        return
    if not deck_stats:
        typer.echo("No decks yet. Add a card with 'lingocards add'.")
        return
    for d in deck_stats:
        typer.echo(
            f"  {d.deck_id:<16} total: {d.total_cards:>4}  due: {d.due_cards:>4}"
            f"  new: {d.new_cards:>4}  learning: {d.learning_cards:>4}"
        )


# ---------------------------------------------------------------------------
# Study
# ---------------------------------------------------------------------------


@app.command()
def study(
    ctx: typer.Context,
    goal_limited: Annotated[
        bool,
        typer.Option(
            "--goal/--unlimited",
            help="Cap the session at the cards still needed for today's goal.",
        ),
    ] = True,
    max_cards: Annotated[
        int | None, typer.Option(help="Explicit session size; overrides --goal.")
    ] = None,
    buttons: Annotated[
        str | None,
        typer.Option(help="Rating vocabulary: four (again/hard/good/easy) or two."),
    ] = None,
    seed: Annotated[int | None, typer.Option(help="Shuffle seed.")] = None,
):
    """[bold green]Study[/bold green] due cards interactively."""
    config = _config(ctx, rating_buttons=buttons, shuffle_seed=seed)
    service = _service(config)
    vocabulary = VOCABULARIES[config.rating_buttons]

    async def run():
        if max_cards is not None:
            session = await service.start_session(max_cards=max_cards)
        elif goal_limited:
            session = await service.start_goal_session()
        else:
            session = await service.start_session(unlimited=True)

        while True:
            if isinstance(session, NoCardsDue):
                typer.secho(session.message, fg="green")
                return

            await _study_loop(service, session, vocabulary)

            if not session.has_more_due:
                return
            remaining = session.total_due - len(session.cards)
            if not typer.confirm(
                f"Daily goal reached. {remaining} more cards are due. Continue anyway?",
                default=False,
            ):
                return
            session = await service.continue_anyway(session)

    asyncio.run(run())


async def _study_loop(
    service: StudyService, session: StudySession, vocabulary: dict[str, int]
) -> None:
    choices = "/".join(vocabulary)
    while not session.is_complete:
        card = session.current_card
        progress = session.progress
        typer.echo(f"\n[{progress.current}/{progress.total}]  {card.front}")
        answer = typer.prompt("Press Enter to flip, 's' to skip", default="", show_default=False)
        if answer.strip().lower() == "s":
            service.skip(session)
            continue

        service.flip(session)
        typer.secho(f"  {card.back}", fg="cyan")
        if card.example:
            typer.echo(f"  e.g. {card.example}")

        while True:
            button = typer.prompt(f"Rate ({choices})")
            try:
                rating = rating_from_button(button, vocabulary)
                await service.rate(session, rating)
                break
            except InvalidRatingError as e:
                typer.secho(str(e), fg="yellow")
            except ReviewPersistenceError as e:
                typer.secho(f"{e}. Try again.", fg="red")

    typer.secho(
        f"\nSession complete: {session.reviewed_count} reviewed of {len(session.cards)}.",
        fg="green",
    )


# ---------------------------------------------------------------------------
# Goal, streaks, statistics
# ---------------------------------------------------------------------------


@app.command()
def goal(
    ctx: typer.Context,
    target: Annotated[
        int | None, typer.Option("--target", help="Goal to evaluate instead of config.")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show progress towards today's review goal."""
    service = _service(_config(ctx))
    try:
        progress = asyncio.run(service.get_daily_goal_progress(target))
    except ValueError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(2) from e

    if json_output:
        typer.echo(json.dumps(asdict(progress), indent=2))
        return
    typer.echo(f"Today: {progress.today_reviewed}/{progress.goal} cards")
    if progress.goal_met:
        typer.secho("Goal met!", fg="green")
    else:
        typer.echo(f"Remaining: {progress.remaining}")

    window = asyncio.run(service.get_daily_progress_window())
    for day in window:
        label = "Today" if day.is_today else day.day.strftime("%a %d %b")
        if day.is_future:
            typer.echo(f"  {label:<10} due: {day.due_cards}")
        else:
            mark = "*" if day.goal_met else " "
            typer.echo(f"  {label:<10} {day.reviewed:>3} {mark}")


@app.command()
def streaks(ctx: typer.Context):
    """Show current and longest study streaks."""
    service = _service(_config(ctx))
    summary = asyncio.run(service.get_streaks())
    typer.echo(f"Current streak: {summary.current_streak} days")
    typer.echo(f"Longest streak: {summary.longest_streak} days")


@app.command()
def stats(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show study statistics."""
    service = _service(_config(ctx))
    statistics = asyncio.run(service.get_statistics())

    if json_output:
        typer.echo(json.dumps(asdict(statistics), indent=2))
        return
    typer.echo(
        f"Cards: {statistics.total_cards}  Decks: {statistics.total_decks}"
        f"  Due now: {statistics.due_now}"
    )
    typer.echo(
        f"New: {statistics.new_cards}  Learning: {statistics.learning_cards}"
        f"  Mature: {statistics.mature_cards}"
    )
    typer.echo(f"Reviewed today: {statistics.reviewed_today}")
    typer.echo(f"Accuracy (recent): {statistics.recent_accuracy}%")
    typer.echo(f"Streak: {statistics.current_streak} (best {statistics.longest_streak})")
    typer.echo(f"Estimated time: {statistics.estimated_minutes_remaining} min")


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------


@app.command("export")
def export_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Destination JSON file.")],
):
    """Write every card and review log to a JSON file."""
    service = _service(_config(ctx))
    try:
        data = asyncio.run(service.export_data())
        path.write_bytes(dump_study_data(data))
    except (StorageError, OSError) as e:
        typer.secho(f"Export failed: {e}", fg="red")
        raise typer.Exit(1) from e
    typer.secho(
        f"Exported {len(data.cards)} cards and {len(data.review_logs)} reviews to {path}",
        fg="green",
    )


@app.command("import")
def import_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="JSON file written by 'lingocards export'.")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation.")] = False,
):
    """Replace all cards and review logs with the contents of an export file."""
    try:
        data = load_study_data(path.read_bytes())
    except (InvalidBackupError, OSError) as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1) from e

    if not yes:
        typer.confirm("This replaces all existing cards and reviews. Continue?", abort=True)

    service = _service(_config(ctx))
    try:
        asyncio.run(service.import_data(data))
    except StorageError as e:
        typer.secho(f"Import failed: {e}", fg="red")
        raise typer.Exit(1) from e
    typer.secho(
        f"Imported {len(data.cards)} cards and {len(data.review_logs)} reviews", fg="green"
    )


@app.command()
def clear(
    ctx: typer.Context,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation.")] = False,
):
    """Delete every card and review log."""
    if not yes:
        typer.confirm("Delete ALL cards and review history?", abort=True)

    service = _service(_config(ctx))
    try:
        asyncio.run(service.clear_all_data())
    except StorageError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1) from e
    typer.secho("All data cleared.", fg="green")


# ---------------------------------------------------------------------------
# Config & server
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


@app.command()
def serve(
    port: Annotated[int, typer.Option(help="Port to bind the server to.")] = 8787,
    host: Annotated[str, typer.Option(help="Host to bind the server to.")] = "127.0.0.1",
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("lingocards.server:app", host=host, port=port, reload=reload)


@app.command()
def logs(
    ctx: typer.Context,
    open_dir: Annotated[bool, typer.Option("--open", help="Open the log directory.")] = False,
):
    """Show where the log file is written."""
    config = _config(ctx)
    typer.echo(str(log_file_path(config.log_dir)))
    if open_dir:
        typer.launch(str(config.log_dir))
