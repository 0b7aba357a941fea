"""Main entry point for the drill gauntlet trainer."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from gauntlet import __version__
from gauntlet.application_services.gauntlet_service import GauntletService
from gauntlet.core.domain_events import GauntletCompletedEvent, LifeRegeneratedEvent
from gauntlet.core.errors import GauntletError
from gauntlet.core.item_identity import field_key_resolver
from gauntlet.core.models import (
    AnswerOutcome,
    Difficulty,
    DrillItemData,
    GameMode,
    ItemCategory,
    SessionPhase,
    SessionResult,
)
from gauntlet.core.randomness import get_random_source
from gauntlet.core.settings import get_settings
from gauntlet.infrastructure.storage.stats_store import (
    GauntletStatsStore,
    create_stats_store,
)
from gauntlet.utils.formatting import format_accuracy, format_time
from gauntlet.utils.item_loader import load_drill_items

console = Console()

QUIT_COMMAND = ":q"

CATEGORY_CHOICES = [category.value for category in ItemCategory]
DIFFICULTY_CHOICES = [difficulty.value for difficulty in Difficulty]


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Setup logging configuration.

    Console output only shows warnings so log lines don't interleave with
    the game; the log file receives everything at ``level``.
    """
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.WARNING)
    handlers: list[logging.Handler] = [stream_handler]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


@click.group()
@click.version_option(version=__version__, prog_name="gauntlet")
def main() -> None:
    """Gauntlet - timed drill practice with lives and personal bests.

    Answer every item the requested number of times before your lives run
    out. Missed items come back a few questions later.
    """
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)


@main.command()
@click.argument("items_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--category",
    type=click.Choice(CATEGORY_CHOICES),
    default=ItemCategory.VOCABULARY.value,
    help="Category the results are recorded under",
)
@click.option(
    "--difficulty",
    type=click.Choice(DIFFICULTY_CHOICES),
    default=None,
    help="Difficulty level (default from GAUNTLET_DEFAULT_DIFFICULTY)",
)
@click.option(
    "--repetitions",
    type=click.IntRange(min=1),
    default=None,
    help="Correct answers required per item (default from settings)",
)
@click.option(
    "--seed",
    type=int,
    default=None,
    help="Seed the shuffle for a reproducible run",
)
def play(
    items_file: str,
    category: str,
    difficulty: str | None,
    repetitions: int | None,
    seed: int | None,
) -> None:
    """Run a gauntlet over the drill items in ITEMS_FILE.

    ITEMS_FILE is a JSON list of objects with a "prompt" and a list of
    accepted "answers". Type :q to give up.
    """
    settings = get_settings()
    difficulty = difficulty or settings.default_difficulty
    repetitions = repetitions or settings.default_repetitions

    try:
        items = load_drill_items(items_file)
        store = create_stats_store(settings)
        asyncio.run(
            _run_gauntlet(store, items, category, difficulty, repetitions, seed)
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Gauntlet interrupted. Goodbye![/yellow]")
        sys.exit(0)
    except GauntletError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)
    except (OSError, ValueError) as e:
        console.print(f"[red]Could not start gauntlet: {e}[/red]")
        sys.exit(1)


async def _run_gauntlet(
    store: GauntletStatsStore,
    items: list[DrillItemData],
    category: str,
    difficulty: str,
    repetitions: int,
    seed: int | None,
) -> SessionResult | None:
    """Drive one interactive run and show its results."""
    service = GauntletService(
        store,
        item_key=field_key_resolver("id", "prompt"),
        rng=get_random_source(seed),
    )
    service.event_bus.subscribe(LifeRegeneratedEvent, _on_life_regenerated)
    service.event_bus.subscribe(GauntletCompletedEvent, _on_gauntlet_completed)

    state = await service.start_session(
        items,
        difficulty,
        repetitions,
        category=category,
        game_mode=GameMode.TYPE,
    )
    _display_welcome(len(items), state.config.difficulty, repetitions, state.max_lives)

    session = service.session
    while session is not None and session.phase == SessionPhase.ACTIVE:
        entry = session.current_entry
        if entry is None:
            break
        progress = session.snapshot()
        item: DrillItemData = entry.item

        console.print(
            f"[dim][{progress.correct_count}/{progress.target_count}] "
            f"lives {progress.lives}/{progress.max_lives}[/dim]"
        )
        answer = click.prompt(f"  {item.prompt}", default="", show_default=False)

        if answer.strip() == QUIT_COMMAND:
            await service.cancel_session(persist=False)
            console.print("[blue]Gauntlet abandoned, nothing recorded.[/blue]")
            return None

        outcome = await service.submit_answer(item.is_correct(answer))
        _display_feedback(item, outcome)

    result = service.last_result
    if result is not None:
        best = await store.best_time(
            result.category,
            result.difficulty,
            result.repetitions_per_item,
            result.game_mode,
            result.total_items,
        )
        _display_results(result, best)
    return result


def _on_life_regenerated(event: LifeRegeneratedEvent) -> None:
    console.print(f"[green]+1 life! ({event.lives}/{event.max_lives})[/green]")


def _on_gauntlet_completed(event: GauntletCompletedEvent) -> None:
    if event.is_new_best:
        console.print("[bold magenta]New best time![/bold magenta]")
    if event.is_perfect:
        console.print("[bold green]Perfect run, not a single miss![/bold green]")


def _display_welcome(
    item_count: int, difficulty: Difficulty, repetitions: int, lives: int
) -> None:
    console.print()
    console.print("[bold cyan]Gauntlet[/bold cyan]")
    console.print(
        f"{item_count} items x {repetitions} | {difficulty.value} | {lives} lives"
    )
    console.print(f"[dim]Type {QUIT_COMMAND} to give up.[/dim]")
    console.print()


def _display_feedback(item: DrillItemData, outcome: AnswerOutcome) -> None:
    if outcome.is_correct:
        console.print("  [green]Correct[/green]")
        return

    console.print(f"  [red]Wrong, answer: {item.answers[0]}[/red]")
    if outcome.requeued:
        console.print("  [dim]This one will come back soon.[/dim]")


def _display_results(result: SessionResult, best_time: float | None) -> None:
    title = "Gauntlet Complete" if result.completed else "Gauntlet Failed"
    style = "green" if result.completed else "red"
    console.print()
    console.print(f"[bold {style}]{title}[/bold {style}]")

    table = Table(show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Total time", format_time(result.total_time_ms))
    table.add_row(
        "Answered",
        f"{result.questions_completed} ({result.correct_answers} correct, "
        f"{result.wrong_answers} wrong)",
    )
    table.add_row("Accuracy", format_accuracy(result.accuracy))
    table.add_row("Best streak", str(result.best_streak))
    table.add_row(
        "Lives",
        f"{result.lives_remaining}/{result.starting_lives} "
        f"(lost {result.lives_lost}, regenerated {result.lives_regenerated})",
    )
    table.add_row(
        "Avg per question", format_time(result.average_time_per_question_ms)
    )
    if best_time is not None:
        table.add_row("Best time", format_time(best_time))

    console.print(table)


@main.command()
@click.option(
    "--category",
    type=click.Choice(CATEGORY_CHOICES),
    default=ItemCategory.VOCABULARY.value,
    help="Category to show statistics for",
)
def stats(category: str) -> None:
    """Display lifetime statistics for a category."""
    store = create_stats_store()
    overall = asyncio.run(store.overall_stats(category))

    console.print(f"\n[bold blue]Gauntlet Statistics ({category})[/bold blue]")
    console.print("=" * 40)
    console.print(f"Sessions played: {overall.total_sessions}")
    console.print(f"Sessions completed: {overall.completed_sessions}")
    console.print(f"Correct answers: {overall.total_correct}")
    console.print(f"Wrong answers: {overall.total_wrong}")
    console.print(f"Best streak: {overall.best_streak}")
    if overall.fastest_time is not None:
        console.print(f"Fastest run: {format_time(overall.fastest_time)}")
    else:
        console.print("Fastest run: -")
    console.print()


@main.command()
@click.option(
    "--category",
    type=click.Choice(CATEGORY_CHOICES),
    default=ItemCategory.VOCABULARY.value,
    help="Category to list sessions for",
)
@click.option("--limit", type=click.IntRange(min=1), default=20, help="Rows to show")
def history(category: str, limit: int) -> None:
    """List the most recent sessions, newest first."""
    store = create_stats_store()
    sessions = asyncio.run(store.history(category, limit=limit))

    if not sessions:
        console.print(f"[yellow]No {category} sessions recorded yet.[/yellow]")
        return

    table = Table(title=f"Recent {category} gauntlets")
    table.add_column("When", style="cyan")
    table.add_column("Difficulty")
    table.add_column("Items", justify="right")
    table.add_column("Result")
    table.add_column("Accuracy", justify="right")
    table.add_column("Time", justify="right")

    for session in sessions:
        table.add_row(
            session.timestamp.strftime("%Y-%m-%d %H:%M"),
            session.difficulty.value,
            f"{session.total_items}x{session.repetitions_per_item}",
            "[green]completed[/green]" if session.completed else "[red]failed[/red]",
            format_accuracy(session.accuracy),
            format_time(session.total_time_ms),
        )

    console.print(table)


@main.command()
@click.option(
    "--category",
    type=click.Choice(CATEGORY_CHOICES),
    default=ItemCategory.VOCABULARY.value,
    help="Category to rank",
)
@click.option(
    "--difficulty",
    type=click.Choice(DIFFICULTY_CHOICES),
    default=None,
    help="Only rank runs at this difficulty",
)
@click.option("--limit", type=click.IntRange(min=1), default=10, help="Rows to show")
def leaderboard(category: str, difficulty: str | None, limit: int) -> None:
    """Show the fastest completed runs."""
    store = create_stats_store()
    sessions = asyncio.run(store.leaderboard(category, difficulty, limit=limit))

    if not sessions:
        console.print(f"[yellow]No completed {category} runs yet.[/yellow]")
        return

    table = Table(title=f"Fastest {category} gauntlets")
    table.add_column("#", justify="right", style="bold")
    table.add_column("Time", justify="right", style="green")
    table.add_column("Difficulty")
    table.add_column("Items", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("When", style="cyan")

    for rank, session in enumerate(sessions, 1):
        table.add_row(
            str(rank),
            format_time(session.total_time_ms),
            session.difficulty.value,
            f"{session.total_items}x{session.repetitions_per_item}",
            format_accuracy(session.accuracy),
            session.timestamp.strftime("%Y-%m-%d"),
        )

    console.print(table)


@main.command()
def reset() -> None:
    """Erase all recorded gauntlet statistics."""
    console.print("[yellow]This will erase ALL gauntlet history and best times![/yellow]")
    if click.confirm("Are you sure you want to continue?"):
        store = create_stats_store()
        asyncio.run(store.clear())
        console.print("[green]Gauntlet statistics reset.[/green]")
    else:
        console.print("[blue]Reset cancelled.[/blue]")


if __name__ == "__main__":
    main()
