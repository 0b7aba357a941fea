"""Reduction of a finished session's counters into a result record."""

from __future__ import annotations

from datetime import UTC, datetime

from gauntlet.core.models import ItemStats, SessionResult, SessionState


def build_session_result(state: SessionState) -> SessionResult:
    """Build the immutable result of a finished session.

    ``lives_lost`` counts every life-loss event, including those later
    offset by regeneration.

    Args:
        state: State of the session at its Finished transition

    Returns:
        Session result snapshot
    """
    config = state.config
    finished_at = state.finished_at if state.finished_at is not None else state.started_at

    answered = state.correct_count + state.wrong_count
    accuracy = state.correct_count / answered if answered > 0 else 0.0

    latencies = [t for t in state.answer_latencies if t > 0]
    if latencies:
        average = sum(latencies) / len(latencies)
        fastest = min(latencies)
        slowest = max(latencies)
    else:
        average = fastest = slowest = 0.0

    return SessionResult(
        timestamp=datetime.fromtimestamp(finished_at / 1000, UTC),
        category=config.category,
        difficulty=config.difficulty,
        game_mode=config.game_mode,
        total_questions=state.target_count,
        correct_answers=state.correct_count,
        wrong_answers=state.wrong_count,
        accuracy=accuracy,
        best_streak=state.best_streak,
        current_streak=state.current_streak,
        starting_lives=state.max_lives,
        lives_remaining=state.lives,
        lives_lost=state.max_lives - state.lives + state.lives_regenerated,
        lives_regenerated=state.lives_regenerated,
        total_time_ms=max(0.0, finished_at - state.started_at),
        average_time_per_question_ms=average,
        fastest_answer_ms=fastest,
        slowest_answer_ms=slowest,
        completed=state.completed,
        questions_completed=answered,
        item_stats={
            key: ItemStats(correct=tally.correct, wrong=tally.wrong)
            for key, tally in state.per_item_tally.items()
        },
        total_items=config.total_items,
        repetitions_per_item=config.repetitions,
        selected_sets=list(config.selected_sets),
    )
