"""Domain events emitted over the lifetime of a gauntlet run."""

from __future__ import annotations

from dataclasses import dataclass

from gauntlet.infrastructure.messaging.event_bus import DomainEvent


@dataclass
class GauntletStartedEvent(DomainEvent):
    """Event emitted when a gauntlet run begins."""

    category: str
    difficulty: str
    total_items: int
    repetitions: int
    starting_lives: int

    def __post_init__(self) -> None:
        """Initialize parent DomainEvent fields."""
        super().__init__()


@dataclass
class LifeRegeneratedEvent(DomainEvent):
    """Event emitted when a correct streak restores a life."""

    lives: int
    max_lives: int
    lives_regenerated: int

    def __post_init__(self) -> None:
        """Initialize parent DomainEvent fields."""
        super().__init__()


@dataclass
class GauntletCompletedEvent(DomainEvent):
    """Event emitted once a run's result has been handed to the stats store.

    Achievement and progress trackers consume this event.
    """

    session_id: str | None
    category: str
    difficulty: str
    completed: bool
    is_perfect: bool  # completed with 100% accuracy
    lives_lost: int
    lives_regenerated: int
    best_streak: int
    total_time_ms: float
    is_new_best: bool = False

    def __post_init__(self) -> None:
        """Initialize parent DomainEvent fields."""
        super().__init__()
