"""Persistent gauntlet statistics: history, best times and lifetime totals.

All statistics live in one versioned blob under a single storage key:

    {
      "version": 1,
      "sessions": [ ...SessionResult, most recent first, capped... ],
      "best_times": {"kana": {"normal-3-Pick-46": 81234.0, ...}, ...},
      "lifetime_totals": {"kana": {total_sessions, completed_sessions,
                                   total_correct, total_wrong, best_streak}, ...}
    }

Lifetime totals are running sums and are never reduced when old sessions are
trimmed from the history. Blobs written before lifetime totals existed are
backfilled on load by replaying their stored sessions.

Storage is best effort: a failed read yields a fresh blob and a failed write
is logged and reported through ``SaveResult.saved``, never raised.
"""

from __future__ import annotations

import logging
import random
import string
import time
from collections.abc import Callable, Iterable
from typing import Any

from pydantic import ValidationError

from gauntlet.core.models import (
    STATS_SCHEMA_VERSION,
    Difficulty,
    GameMode,
    ItemCategory,
    LifetimeTotals,
    OverallStats,
    SaveResult,
    SessionResult,
    StoredStatsBlob,
    default_lifetime_totals,
)
from gauntlet.core.settings import Settings, get_settings
from gauntlet.infrastructure.storage.backends import (
    JsonFileStorageBackend,
    MemoryStorageBackend,
    SqliteStorageBackend,
    StorageBackend,
)

logger = logging.getLogger(__name__)

STORAGE_KEY = "gauntlet-stats"
HISTORY_LIMIT = 100

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_session_id() -> str:
    """Timestamp plus random suffix; unique in practice, not guaranteed."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=7))
    return f"gauntlet-{int(time.time() * 1000)}-{suffix}"


def best_time_key(
    difficulty: Difficulty | str,
    repetitions: int,
    game_mode: GameMode | str,
    total_items: int,
) -> str:
    """Key identifying a best-time slot."""
    return (
        f"{Difficulty(difficulty).value}-{repetitions}-"
        f"{GameMode(game_mode).value}-{total_items}"
    )


def accumulate_lifetime_totals(totals: LifetimeTotals, result: SessionResult) -> None:
    """Fold one session result into a category's running totals."""
    totals.total_sessions += 1
    if result.completed:
        totals.completed_sessions += 1
    totals.total_correct += result.correct_answers
    totals.total_wrong += result.wrong_answers
    totals.best_streak = max(totals.best_streak, result.best_streak)


def backfill_lifetime_totals(
    sessions: Iterable[SessionResult],
) -> dict[str, LifetimeTotals]:
    """Rebuild lifetime totals from stored sessions.

    Always starts from zeroed totals, so running it again over the same
    sessions gives the same totals.
    """
    totals = default_lifetime_totals()
    for session in sessions:
        category_totals = totals.setdefault(session.category.value, LifetimeTotals())
        accumulate_lifetime_totals(category_totals, session)
    return totals


def _category(category: ItemCategory | str) -> str:
    return ItemCategory(category).value


class GauntletStatsStore:
    """Loads, migrates and saves the gauntlet statistics blob."""

    def __init__(
        self,
        backend: StorageBackend,
        storage_key: str = STORAGE_KEY,
        history_limit: int = HISTORY_LIMIT,
        id_factory: Callable[[], str] = generate_session_id,
    ) -> None:
        """Initialize stats store.

        Args:
            backend: Key-value storage backend
            storage_key: Key the whole blob is stored under
            history_limit: Number of most recent sessions kept in history
            id_factory: Generates identifiers for saved sessions
        """
        self.backend = backend
        self.storage_key = storage_key
        self.history_limit = history_limit
        self._id_factory = id_factory

    async def load(self) -> StoredStatsBlob:
        """Load the stats blob, migrating legacy data if needed.

        Returns:
            Stored blob, or a fresh one if nothing usable is stored
        """
        try:
            raw = await self.backend.get(self.storage_key)
        except Exception as e:
            logger.warning(f"Failed to load gauntlet stats: {e}")
            return StoredStatsBlob()

        if not isinstance(raw, dict):
            return StoredStatsBlob()
        if raw.get("version") != STATS_SCHEMA_VERSION:
            logger.info(f"Ignoring stats blob with unknown version {raw.get('version')}")
            return StoredStatsBlob()

        return self._parse(raw)

    def _parse(self, raw: dict[str, Any]) -> StoredStatsBlob:
        legacy = raw.get("lifetime_totals") is None
        raw_sessions = raw.get("sessions", [])
        if not isinstance(raw_sessions, list):
            logger.warning("Stored gauntlet sessions are not a list, starting fresh")
            return StoredStatsBlob()

        # Sessions are validated one by one so a bad entry only drops itself
        data = {
            key: value
            for key, value in raw.items()
            if key not in ("sessions", "lifetime_totals")
        }
        if not legacy:
            data["lifetime_totals"] = raw["lifetime_totals"]

        try:
            blob = StoredStatsBlob.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Stored gauntlet stats are malformed, starting fresh: {e}")
            return StoredStatsBlob()

        for index, raw_session in enumerate(raw_sessions):
            try:
                blob.sessions.append(SessionResult.model_validate(raw_session))
            except ValidationError as e:
                logger.warning(f"Dropping malformed stored session at index {index}: {e}")

        if legacy:
            blob.lifetime_totals = backfill_lifetime_totals(blob.sessions)
            logger.info(
                f"Backfilled lifetime totals from {len(blob.sessions)} stored sessions"
            )
        return blob

    async def _write(self, blob: StoredStatsBlob) -> bool:
        try:
            await self.backend.set(self.storage_key, blob.model_dump(mode="json"))
        except Exception as e:
            logger.warning(f"Failed to save gauntlet stats: {e}")
            return False
        return True

    async def save(self, result: SessionResult) -> SaveResult:
        """Merge a finished session into the stored statistics.

        Args:
            result: Result of the finished session

        Returns:
            Whether the write succeeded and whether the run set a new best time
        """
        blob = await self.load()
        session = result.model_copy(update={"id": self._id_factory()})
        category = session.category.value

        totals = blob.lifetime_totals.setdefault(category, LifetimeTotals())
        accumulate_lifetime_totals(totals, session)

        blob.sessions.insert(0, session)
        del blob.sessions[self.history_limit :]

        is_new_best = False
        if session.completed:
            key = best_time_key(
                session.difficulty,
                session.repetitions_per_item,
                session.game_mode,
                session.total_items,
            )
            best_times = blob.best_times.setdefault(category, {})
            current_best = best_times.get(key)
            if current_best is None or session.total_time_ms < current_best:
                best_times[key] = session.total_time_ms
                is_new_best = True

        saved = await self._write(blob)
        if saved:
            logger.info(f"Saved gauntlet session {session.id} (new best: {is_new_best})")
        return SaveResult(saved=saved, is_new_best=is_new_best, session_id=session.id)

    async def history(
        self, category: ItemCategory | str, limit: int = 20
    ) -> list[SessionResult]:
        """Most recent sessions for a category, newest first."""
        blob = await self.load()
        key = _category(category)
        return [s for s in blob.sessions if s.category.value == key][:limit]

    async def best_time(
        self,
        category: ItemCategory | str,
        difficulty: Difficulty | str,
        repetitions: int,
        game_mode: GameMode | str,
        item_count: int,
    ) -> float | None:
        """Best completion time for an exact configuration, if any."""
        blob = await self.load()
        key = best_time_key(difficulty, repetitions, game_mode, item_count)
        return blob.best_times.get(_category(category), {}).get(key)

    async def leaderboard(
        self,
        category: ItemCategory | str,
        difficulty: Difficulty | str | None = None,
        limit: int = 10,
    ) -> list[SessionResult]:
        """Fastest completed runs for a category, optionally per difficulty."""
        blob = await self.load()
        key = _category(category)
        sessions = [s for s in blob.sessions if s.category.value == key and s.completed]
        if difficulty:
            level = Difficulty(difficulty)
            sessions = [s for s in sessions if s.difficulty == level]
        sessions.sort(key=lambda s: s.total_time_ms)
        return sessions[:limit]

    async def overall_stats(self, category: ItemCategory | str) -> OverallStats:
        """Lifetime totals plus the fastest run still held in history.

        ``fastest_time`` only sees retained sessions, so it can differ from
        the tracked best times once older sessions have been trimmed.
        """
        blob = await self.load()
        key = _category(category)
        totals = blob.lifetime_totals.get(key, LifetimeTotals())

        completed_times = [
            s.total_time_ms
            for s in blob.sessions
            if s.category.value == key and s.completed
        ]
        return OverallStats(
            **totals.model_dump(),
            fastest_time=min(completed_times) if completed_times else None,
        )

    async def clear(self) -> None:
        """Erase all persisted gauntlet statistics."""
        try:
            await self.backend.remove(self.storage_key)
        except Exception as e:
            logger.warning(f"Failed to clear gauntlet stats: {e}")
            return
        logger.info("Cleared gauntlet stats")


def create_stats_store(settings: Settings | None = None) -> GauntletStatsStore:
    """Build a stats store using the configured backend.

    Args:
        settings: Settings to use; loaded from the environment if omitted

    Returns:
        Stats store instance

    Raises:
        ValueError: If the configured backend is unknown
    """
    settings = settings or get_settings()
    backend_name = settings.stats_backend.lower()

    backend: StorageBackend
    if backend_name == "sqlite":
        backend = SqliteStorageBackend(settings.database_path)
    elif backend_name == "json":
        backend = JsonFileStorageBackend(settings.stats_dir)
    elif backend_name == "memory":
        backend = MemoryStorageBackend()
    else:
        raise ValueError(f"Unknown stats backend: {settings.stats_backend}")

    return GauntletStatsStore(
        backend,
        storage_key=settings.stats_storage_key,
        history_limit=settings.history_limit,
    )
