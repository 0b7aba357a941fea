"""Tests for the gauntlet application service."""

from __future__ import annotations

from unittest.mock import AsyncMock, Mock

import pytest

from gauntlet.application_services.gauntlet_service import GauntletService
from gauntlet.core.domain_events import (
    GauntletCompletedEvent,
    GauntletStartedEvent,
    LifeRegeneratedEvent,
)
from gauntlet.core.errors import EmptyQueueError, InvalidStateError
from gauntlet.core.models import SaveResult, SessionPhase
from gauntlet.infrastructure.messaging.event_bus import EventBus
from gauntlet.infrastructure.storage.backends import MemoryStorageBackend
from gauntlet.infrastructure.storage.stats_store import GauntletStatsStore

TEN_ITEMS = list("abcdefghij")


class TestGauntletService:
    """Test running sessions through the service."""

    @pytest.fixture
    def store(self):
        """Create an in-memory stats store."""
        return GauntletStatsStore(MemoryStorageBackend())

    @pytest.fixture
    def event_bus(self):
        """Create an event bus."""
        return EventBus()

    @pytest.fixture
    def service(self, store, event_bus, scripted_rng, fake_clock):
        """Create a deterministic service."""
        return GauntletService(
            store, event_bus=event_bus, rng=scripted_rng, clock=fake_clock
        )

    @pytest.mark.asyncio
    async def test_start_publishes_event(self, service, event_bus):
        """Test starting a run announces it."""
        handler = Mock()
        event_bus.subscribe(GauntletStartedEvent, handler)

        state = await service.start_session(["a", "b"], "hard", 2, category="kanji")

        assert state.phase == SessionPhase.ACTIVE
        event = handler.call_args.args[0]
        assert event.category == "kanji"
        assert event.difficulty == "hard"
        assert event.total_items == 2
        assert event.repetitions == 2
        assert event.starting_lives == 3

    @pytest.mark.asyncio
    async def test_completed_run_is_saved(self, service, store, event_bus):
        """Test finishing a run saves it and publishes the summary."""
        completed = Mock()
        event_bus.subscribe(GauntletCompletedEvent, completed)

        await service.start_session(["a", "b"], "normal", 1)
        await service.submit_answer(True)
        outcome = await service.submit_answer(True)

        assert outcome.completed is True
        assert service.last_result.completed is True
        assert service.last_save.saved is True
        assert service.last_save.is_new_best is True

        history = await store.history("kana")
        assert len(history) == 1
        assert history[0].id == service.last_save.session_id

        event = completed.call_args.args[0]
        assert event.completed is True
        assert event.is_perfect is True
        assert event.is_new_best is True
        assert event.session_id == service.last_save.session_id

    @pytest.mark.asyncio
    async def test_failed_run_is_not_perfect(self, service, event_bus):
        """Test a lost run is recorded as incomplete."""
        completed = Mock()
        event_bus.subscribe(GauntletCompletedEvent, completed)

        await service.start_session(["a"], "instant-death", 1)
        await service.submit_answer(False)

        event = completed.call_args.args[0]
        assert event.completed is False
        assert event.is_perfect is False
        assert event.lives_lost == 1
        assert event.is_new_best is False

    @pytest.mark.asyncio
    async def test_regeneration_publishes_event(self, service, event_bus):
        """Test regained lives are announced."""
        regenerated = Mock()
        event_bus.subscribe(LifeRegeneratedEvent, regenerated)

        await service.start_session(TEN_ITEMS, "normal", 1)
        await service.submit_answer(False)
        for _ in range(5):
            await service.submit_answer(True)

        regenerated.assert_called_once()
        event = regenerated.call_args.args[0]
        assert event.lives == 3
        assert event.max_lives == 3
        assert event.lives_regenerated == 1

    @pytest.mark.asyncio
    async def test_start_while_active(self, service):
        """Test a second run cannot start while one is active."""
        await service.start_session(["a"], "normal", 1)

        with pytest.raises(InvalidStateError):
            await service.start_session(["b"], "normal", 1)

    @pytest.mark.asyncio
    async def test_start_after_finish(self, service):
        """Test a new run replaces a finished one."""
        await service.start_session(["a"], "normal", 1)
        await service.submit_answer(True)

        state = await service.start_session(["b", "c"], "normal", 1)

        assert state.target_count == 2
        assert service.last_result is None
        assert service.last_save is None

    @pytest.mark.asyncio
    async def test_start_with_no_items(self, service):
        """Test configuration errors propagate."""
        with pytest.raises(EmptyQueueError):
            await service.start_session([], "normal", 1)

        assert service.session is None

    @pytest.mark.asyncio
    async def test_submit_without_session(self, service):
        """Test answering before any run started."""
        with pytest.raises(InvalidStateError):
            await service.submit_answer(True)

    @pytest.mark.asyncio
    async def test_cancel_discards_by_default(self, service, store):
        """Test a discarded run is not saved."""
        await service.start_session(TEN_ITEMS, "normal", 1)
        await service.submit_answer(True)

        result = await service.cancel_session()

        assert result is None
        assert await store.history("kana") == []

    @pytest.mark.asyncio
    async def test_cancel_persist(self, service, store):
        """Test a cancelled run can be recorded as incomplete."""
        await service.start_session(TEN_ITEMS, "normal", 1)
        await service.submit_answer(True)

        result = await service.cancel_session(persist=True)

        assert result.completed is False
        history = await store.history("kana")
        assert len(history) == 1
        assert history[0].questions_completed == 1

    @pytest.mark.asyncio
    async def test_persistence_failure_still_finishes(self, scripted_rng):
        """Test a failed save does not block reaching the results."""
        store = Mock(spec=GauntletStatsStore)
        store.save = AsyncMock(return_value=SaveResult(saved=False, is_new_best=False))
        service = GauntletService(store, rng=scripted_rng)

        await service.start_session(["a"], "normal", 1)
        outcome = await service.submit_answer(True)

        assert outcome.finished is True
        assert service.session.phase == SessionPhase.FINISHED
        assert service.last_result is not None
        assert service.last_save.saved is False

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_break_run(self, service, event_bus):
        """Test subscriber errors never reach the caller."""
        event_bus.subscribe(GauntletCompletedEvent, Mock(side_effect=RuntimeError))

        await service.start_session(["a"], "normal", 1)
        outcome = await service.submit_answer(True)

        assert outcome.completed is True
