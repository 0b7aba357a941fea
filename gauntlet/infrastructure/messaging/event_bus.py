"""In-memory async event bus for gauntlet domain events.

Events are dispatched to subscribers in-process and never stored; progress
and achievement trackers subscribe here instead of being called directly by
the gameplay code.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

logger = logging.getLogger(__name__)


class DomainEvent:
    """Base class for all domain events.

    Subclasses get an ``event_id`` and ``occurred_at`` timestamp. This is not
    a dataclass so dataclass subclasses can declare required fields.
    """

    def __init__(self, event_id: str = "", occurred_at: datetime | None = None):
        self.event_id = event_id or str(uuid4())
        self.occurred_at = occurred_at or datetime.now(UTC)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(event_id={self.event_id})"

    @property
    def event_name(self) -> str:
        """Return the name of this event type."""
        return self.__class__.__name__


class EventBus:
    """Async publish/subscribe hub with per-handler error isolation."""

    def __init__(self) -> None:
        self._handlers: dict[type[DomainEvent], list[Callable[..., Any]]] = {}

    async def publish(self, event: DomainEvent) -> None:
        """Deliver ``event`` to every handler subscribed to its type.

        Handlers run concurrently; a failing handler is logged and does not
        affect the others or the publisher.
        """
        handlers = list(self._handlers.get(type(event), []))
        if not handlers:
            logger.debug(f"No handlers registered for {event.event_name}")
            return

        logger.debug(f"Publishing {event.event_name} to {len(handlers)} handlers")
        await asyncio.gather(*(self._dispatch(handler, event) for handler in handlers))

    async def _dispatch(self, handler: Callable[..., Any], event: DomainEvent) -> None:
        try:
            result = handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            handler_name = getattr(handler, "__name__", str(handler))
            logger.error(f"Event handler {handler_name} failed for {event.event_name}: {e}")

    def subscribe(
        self, event_type: type[DomainEvent], handler: Callable[..., Any]
    ) -> None:
        """Subscribe a sync or async handler to an event type."""
        self._handlers.setdefault(event_type, []).append(handler)
        handler_name = getattr(handler, "__name__", str(handler))
        logger.debug(f"Subscribed {handler_name} to {event_type.__name__}")

    def unsubscribe(
        self, event_type: type[DomainEvent], handler: Callable[..., Any]
    ) -> None:
        """Remove a handler; unknown handlers are logged and ignored."""
        handlers = self._handlers.get(event_type, [])
        try:
            handlers.remove(handler)
        except ValueError:
            handler_name = getattr(handler, "__name__", str(handler))
            logger.warning(f"Handler {handler_name} not found for {event_type.__name__}")

    def get_handler_count(self, event_type: type[DomainEvent]) -> int:
        """Get number of handlers for an event type."""
        return len(self._handlers.get(event_type, []))
