"""Gauntlet run orchestration.

Couples a session state machine with the stats store and the event bus:
gameplay transitions stay synchronous, and only persisting the finished run
crosses the async I/O boundary.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from gauntlet.core.domain_events import (
    GauntletCompletedEvent,
    GauntletStartedEvent,
    LifeRegeneratedEvent,
)
from gauntlet.core.errors import InvalidStateError
from gauntlet.core.item_identity import string_key
from gauntlet.core.models import (
    AnswerOutcome,
    Difficulty,
    DifficultyConfig,
    GameMode,
    ItemCategory,
    ItemKeyResolver,
    SaveResult,
    SessionPhase,
    SessionResult,
    SessionState,
)
from gauntlet.core.randomness import RandomSource
from gauntlet.core.session_manager import GauntletSession
from gauntlet.infrastructure.messaging.event_bus import DomainEvent, EventBus
from gauntlet.infrastructure.storage.stats_store import GauntletStatsStore

logger = logging.getLogger(__name__)


class GauntletService:
    """Runs gauntlet sessions and records their results."""

    def __init__(
        self,
        store: GauntletStatsStore,
        event_bus: EventBus | None = None,
        item_key: ItemKeyResolver = string_key,
        difficulty_table: Mapping[Difficulty, DifficultyConfig] | None = None,
        rng: RandomSource | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize gauntlet service.

        Args:
            store: Stats store receiving finished runs
            event_bus: Event bus for domain events
            item_key: Resolver mapping a drill item to a stable string key
            difficulty_table: Lives and regeneration rule per difficulty
            rng: Random source handed to each session
            clock: Epoch-millisecond clock handed to each session
        """
        self.store = store
        self.event_bus = event_bus or EventBus()
        self._item_key = item_key
        self._difficulty_table = difficulty_table
        self._rng = rng
        self._clock = clock
        self.session: GauntletSession | None = None
        self.last_result: SessionResult | None = None
        self.last_save: SaveResult | None = None

    async def start_session(
        self,
        items: Sequence[Any],
        difficulty: Difficulty | str,
        repetitions: int,
        *,
        category: ItemCategory | str = ItemCategory.KANA,
        game_mode: GameMode | str = GameMode.PICK,
        selected_sets: Sequence[str] = (),
    ) -> SessionState:
        """Start a fresh session, replacing any previous one.

        Raises:
            InvalidStateError: If a session is still active
        """
        if self.session is not None and self.session.phase == SessionPhase.ACTIVE:
            raise InvalidStateError("A gauntlet session is already active", "active")

        session_kwargs: dict[str, Any] = {
            "item_key": self._item_key,
            "difficulty_table": self._difficulty_table,
            "rng": self._rng,
        }
        if self._clock is not None:
            session_kwargs["clock"] = self._clock
        session = GauntletSession(**session_kwargs)

        state = session.start(
            items,
            difficulty,
            repetitions,
            category=category,
            game_mode=game_mode,
            selected_sets=selected_sets,
        )
        self.session = session
        self.last_result = None
        self.last_save = None

        await self._publish(
            GauntletStartedEvent(
                category=state.config.category.value,
                difficulty=state.config.difficulty.value,
                total_items=state.config.total_items,
                repetitions=state.config.repetitions,
                starting_lives=state.max_lives,
            )
        )
        return state

    async def submit_answer(self, is_correct: bool) -> AnswerOutcome:
        """Forward an answer and record the run once it finishes."""
        session = self._require_session()
        outcome = session.submit_answer(is_correct)

        if outcome.life_gained:
            state = session.snapshot()
            await self._publish(
                LifeRegeneratedEvent(
                    lives=state.lives,
                    max_lives=state.max_lives,
                    lives_regenerated=state.lives_regenerated,
                )
            )
        if outcome.finished and session.result is not None:
            await self._record(session.result)
        return outcome

    async def cancel_session(self, persist: bool = False) -> SessionResult | None:
        """Abandon the active run, optionally recording it as incomplete."""
        session = self._require_session()
        if not persist:
            session.cancel(discard=True)
            return None

        result = session.cancel()
        if result is not None:
            await self._record(result)
        return result

    async def _record(self, result: SessionResult) -> None:
        self.last_result = result
        save = await self.store.save(result)
        self.last_save = save
        if not save.saved:
            logger.warning("Gauntlet result could not be persisted")

        await self._publish(
            GauntletCompletedEvent(
                session_id=save.session_id,
                category=result.category.value,
                difficulty=result.difficulty.value,
                completed=result.completed,
                is_perfect=result.completed and result.accuracy == 1,
                lives_lost=result.lives_lost,
                lives_regenerated=result.lives_regenerated,
                best_streak=result.best_streak,
                total_time_ms=result.total_time_ms,
                is_new_best=save.is_new_best,
            )
        )

    async def _publish(self, event: DomainEvent) -> None:
        try:
            await self.event_bus.publish(event)
        except Exception as e:
            logger.error(f"Failed to publish event {event.event_name}: {e}")

    def _require_session(self) -> GauntletSession:
        if self.session is None:
            raise InvalidStateError("No gauntlet session has been started", "configuring")
        return self.session
