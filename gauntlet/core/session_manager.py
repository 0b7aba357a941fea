"""Gauntlet session state machine.

A session walks one player through a shuffled queue of drill items with a
limited number of lives. Missed items are re-inserted a few slots ahead,
sustained correct streaks regenerate lives on forgiving difficulties, and the
session finishes once every item has been answered correctly the requested
number of times, the lives run out, the queue runs dry, or the caller cancels.

Each public operation is one synchronous transition over a single
``SessionState`` aggregate: every derived decision (termination, requeue,
regeneration) is taken from the same consistent snapshot.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from gauntlet.core.errors import EmptyQueueError, InvalidConfigError, InvalidStateError
from gauntlet.core.item_identity import string_key
from gauntlet.core.models import (
    DIFFICULTY_CONFIG,
    AnswerOutcome,
    Difficulty,
    DifficultyConfig,
    GameMode,
    ItemCategory,
    ItemKeyResolver,
    ItemTally,
    QueueEntry,
    SessionConfig,
    SessionPhase,
    SessionResult,
    SessionState,
)
from gauntlet.core.question_queue import generate_question_queue, renumber_queue
from gauntlet.core.randomness import RandomSource, get_random_source
from gauntlet.core.session_stats import build_session_result

logger = logging.getLogger(__name__)

# Regeneration threshold is 10% of the queue, clamped to these bounds
MIN_REGEN_THRESHOLD = 5
MAX_REGEN_THRESHOLD = 20
REGEN_THRESHOLD_RATIO = 0.10

# Missed entries come back within this many slots
REQUEUE_WINDOW = 5
# Requeueing stops once the queue holds this multiple of the target
MAX_QUEUE_GROWTH = 3


def calculate_regen_threshold(total_questions: int) -> int:
    """Correct answers needed to regenerate one life."""
    threshold = math.ceil(total_questions * REGEN_THRESHOLD_RATIO)
    return max(MIN_REGEN_THRESHOLD, min(MAX_REGEN_THRESHOLD, threshold))


def _now_ms() -> float:
    return time.time() * 1000


class GauntletSession:
    """State machine for a single gauntlet run.

    A machine is used for exactly one run: ``Configuring -> Active ->
    Finished``. Start a new machine for the next run.
    """

    def __init__(
        self,
        item_key: ItemKeyResolver = string_key,
        difficulty_table: Mapping[Difficulty, DifficultyConfig] | None = None,
        rng: RandomSource | None = None,
        clock: Callable[[], float] = _now_ms,
    ) -> None:
        """Initialize gauntlet session.

        Args:
            item_key: Resolver mapping a drill item to a stable string key
            difficulty_table: Lives and regeneration rule per difficulty
            rng: Random source for shuffling and requeue placement
            clock: Returns the current time in epoch milliseconds
        """
        self._item_key = item_key
        self._difficulty_table = difficulty_table or DIFFICULTY_CONFIG
        self._rng = rng or get_random_source()
        self._clock = clock
        self._state: SessionState | None = None
        self._result: SessionResult | None = None

    @property
    def phase(self) -> SessionPhase:
        """Current lifecycle phase."""
        if self._state is None:
            return SessionPhase.CONFIGURING
        return self._state.phase

    @property
    def result(self) -> SessionResult | None:
        """Result of the run, available once it has finished."""
        return self._result

    @property
    def current_entry(self) -> QueueEntry | None:
        """Entry currently presented to the player, if any."""
        state = self._state
        if state is None or state.phase != SessionPhase.ACTIVE:
            return None
        if state.cursor >= len(state.queue):
            return None
        return state.queue[state.cursor]

    def snapshot(self) -> SessionState:
        """Return a copy of the session state that callers may freely inspect.

        Raises:
            InvalidStateError: If the session has not been started
        """
        state = self._state
        if state is None:
            raise InvalidStateError(
                "Session has not been started", SessionPhase.CONFIGURING.value
            )
        return dataclasses.replace(
            state,
            queue=[dataclasses.replace(entry) for entry in state.queue],
            per_item_tally={
                key: ItemTally(tally.correct, tally.wrong)
                for key, tally in state.per_item_tally.items()
            },
            answer_latencies=list(state.answer_latencies),
        )

    def start(
        self,
        items: Sequence[Any],
        difficulty: Difficulty | str,
        repetitions: int,
        *,
        category: ItemCategory | str = ItemCategory.KANA,
        game_mode: GameMode | str = GameMode.PICK,
        selected_sets: Sequence[str] = (),
    ) -> SessionState:
        """Build the queue and enter the Active phase.

        Args:
            items: Drill items to practice
            difficulty: Difficulty level, resolved through the difficulty table
            repetitions: Number of correct answers required per item
            category: Kind of items being drilled
            game_mode: How the player answers
            selected_sets: Labels of the item sets the player selected

        Returns:
            Snapshot of the freshly started session

        Raises:
            InvalidStateError: If this machine was already started
            EmptyQueueError: If ``items`` is empty
            InvalidConfigError: If repetitions or difficulty are unusable
        """
        if self._state is not None:
            raise InvalidStateError(
                f"Cannot start a session that is {self._state.phase.value}",
                self._state.phase.value,
            )
        if not items:
            raise EmptyQueueError()

        difficulty_level = self._resolve_difficulty(difficulty)
        difficulty_config = self._difficulty_table[difficulty_level]
        try:
            config = SessionConfig(
                category=ItemCategory(category),
                difficulty=difficulty_level,
                repetitions=repetitions,
                total_items=len(items),
                game_mode=GameMode(game_mode),
                selected_sets=tuple(selected_sets),
            )
        except ValueError as e:
            raise InvalidConfigError(f"Invalid session configuration: {e}") from e

        queue = generate_question_queue(items, repetitions, self._rng)
        now = self._clock()

        self._state = SessionState(
            config=config,
            queue=queue,
            cursor=0,
            lives=difficulty_config.starting_lives,
            max_lives=difficulty_config.starting_lives,
            regenerates=difficulty_config.regenerates,
            regen_threshold=calculate_regen_threshold(len(queue)),
            target_count=len(items) * repetitions,
            started_at=now,
            last_answer_at=now,
            phase=SessionPhase.ACTIVE,
        )

        logger.info(
            f"Started {config.category.value} gauntlet: {len(items)} items x "
            f"{repetitions}, difficulty={difficulty_level.value}, "
            f"lives={difficulty_config.starting_lives}"
        )
        return self.snapshot()

    def submit_answer(self, is_correct: bool) -> AnswerOutcome:
        """Apply the player's answer to the current entry.

        Args:
            is_correct: Whether the answer to the current entry was correct

        Returns:
            What the answer changed (life lost/gained, requeue, termination)

        Raises:
            InvalidStateError: If the session is not active
        """
        state = self._require_active("submit an answer")
        entry = state.queue[state.cursor]
        now = self._clock()

        self._record_latency(state, now)
        tally = state.per_item_tally.setdefault(self._item_key(entry.item), ItemTally())

        if is_correct:
            return self._apply_correct(state, tally, now)
        return self._apply_wrong(state, entry, tally, now)

    def cancel(self, *, discard: bool = False) -> SessionResult | None:
        """End an active session early.

        Args:
            discard: Drop the run without producing a result

        Returns:
            Result of the incomplete run, or None when discarded

        Raises:
            InvalidStateError: If the session is not active
        """
        state = self._require_active("cancel")
        if discard:
            state.phase = SessionPhase.FINISHED
            state.finished_at = self._clock()
            logger.info("Gauntlet discarded")
            return None
        return self._finish(state, completed=False, now=self._clock())

    def _apply_correct(
        self, state: SessionState, tally: ItemTally, now: float
    ) -> AnswerOutcome:
        state.correct_count += 1
        tally.correct += 1
        state.current_streak += 1
        state.best_streak = max(state.best_streak, state.current_streak)

        life_gained = False
        if state.regenerates and state.lives < state.max_lives:
            state.correct_since_regen += 1
            if state.correct_since_regen >= state.regen_threshold:
                state.lives = min(state.lives + 1, state.max_lives)
                state.correct_since_regen = 0
                state.lives_regenerated += 1
                life_gained = True
                logger.debug(f"Life regenerated, lives={state.lives}")

        if state.correct_count >= state.target_count:
            self._finish(state, completed=True, now=now)
        else:
            self._advance(state, now)

        return AnswerOutcome(
            is_correct=True,
            lives=state.lives,
            life_gained=life_gained,
            finished=state.phase == SessionPhase.FINISHED,
            completed=state.completed,
        )

    def _apply_wrong(
        self, state: SessionState, entry: QueueEntry, tally: ItemTally, now: float
    ) -> AnswerOutcome:
        state.wrong_count += 1
        tally.wrong += 1
        state.current_streak = 0
        state.correct_since_regen = 0
        state.lives = max(0, state.lives - 1)

        if state.lives == 0:
            self._finish(state, completed=False, now=now)
            return AnswerOutcome(
                is_correct=False, lives=0, life_lost=True, finished=True
            )

        requeued = self._requeue(state, entry)
        self._advance(state, now)

        return AnswerOutcome(
            is_correct=False,
            lives=state.lives,
            life_lost=True,
            requeued=requeued,
            finished=state.phase == SessionPhase.FINISHED,
        )

    def _requeue(self, state: SessionState, entry: QueueEntry) -> bool:
        """Insert a copy of a missed entry a few slots after the cursor."""
        if len(state.queue) >= state.target_count * MAX_QUEUE_GROWTH:
            logger.debug("Queue growth cap reached, missed entry not requeued")
            return False

        low = state.cursor + 1
        high = max(low, min(state.cursor + REQUEUE_WINDOW, len(state.queue)))
        position = self._rng.integer(low, high)

        state.queue.insert(position, dataclasses.replace(entry))
        renumber_queue(state.queue, position)
        return True

    def _advance(self, state: SessionState, now: float) -> None:
        state.cursor += 1
        if state.cursor >= len(state.queue):
            # Only reachable once requeueing has been capped
            logger.info("Queue exhausted before every item was answered correctly")
            self._finish(state, completed=False, now=now)

    def _record_latency(self, state: SessionState, now: float) -> None:
        elapsed = now - state.last_answer_at
        if elapsed > 0:
            state.answer_latencies.append(elapsed)
        state.last_answer_at = now

    def _finish(
        self, state: SessionState, *, completed: bool, now: float
    ) -> SessionResult:
        state.phase = SessionPhase.FINISHED
        state.completed = completed
        state.finished_at = now
        self._result = build_session_result(state)

        logger.info(
            f"Gauntlet finished: completed={completed}, "
            f"correct={state.correct_count}, wrong={state.wrong_count}, "
            f"lives={state.lives}/{state.max_lives}"
        )
        return self._result

    def _require_active(self, action: str) -> SessionState:
        state = self._state
        if state is None or state.phase != SessionPhase.ACTIVE:
            phase = self.phase.value
            raise InvalidStateError(f"Cannot {action} while session is {phase}", phase)
        return state

    def _resolve_difficulty(self, difficulty: Difficulty | str) -> Difficulty:
        try:
            level = Difficulty(difficulty)
        except ValueError as e:
            raise InvalidConfigError(
                f"Unknown difficulty: {difficulty}", field="difficulty"
            ) from e
        if level not in self._difficulty_table:
            raise InvalidConfigError(
                f"No difficulty configuration for {level.value}", field="difficulty"
            )
        if self._difficulty_table[level].starting_lives < 1:
            raise InvalidConfigError(
                f"Difficulty {level.value} must start with at least one life",
                field="difficulty",
            )
        return level
