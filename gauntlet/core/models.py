"""Core data models for the drill gauntlet."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase

# Version of the persisted stats blob layout
STATS_SCHEMA_VERSION = 1

ItemKeyResolver = Callable[[Any], str]


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class ItemCategory(str, Enum):
    """Kinds of drill items a gauntlet can run over."""

    KANA = "kana"
    KANJI = "kanji"
    VOCABULARY = "vocabulary"


class Difficulty(str, Enum):
    """Gauntlet difficulty levels."""

    NORMAL = "normal"
    HARD = "hard"
    INSTANT_DEATH = "instant-death"


class GameMode(str, Enum):
    """How the player answers a question."""

    PICK = "Pick"  # Choose among options
    TYPE = "Type"  # Type the answer


class SessionPhase(str, Enum):
    """Lifecycle phase of a gauntlet session."""

    CONFIGURING = "configuring"
    ACTIVE = "active"
    FINISHED = "finished"


@dataclass(frozen=True)
class DifficultyConfig:
    """Starting lives and regeneration rule for a difficulty."""

    starting_lives: int
    regenerates: bool


DIFFICULTY_CONFIG: dict[Difficulty, DifficultyConfig] = {
    Difficulty.NORMAL: DifficultyConfig(starting_lives=3, regenerates=True),
    Difficulty.HARD: DifficultyConfig(starting_lives=3, regenerates=False),
    Difficulty.INSTANT_DEATH: DifficultyConfig(starting_lives=1, regenerates=False),
}


# Dataclasses for session logic
@dataclass
class QueueEntry:
    """One scheduled attempt at a drill item."""

    item: Any
    queue_position: int
    repetition_number: int


@dataclass
class ItemTally:
    """Correct/wrong counts for a single drill item."""

    correct: int = 0
    wrong: int = 0


@dataclass(frozen=True)
class SessionConfig:
    """Configuration a gauntlet session was started with."""

    category: ItemCategory
    difficulty: Difficulty
    repetitions: int
    total_items: int
    game_mode: GameMode = GameMode.PICK
    selected_sets: tuple[str, ...] = ()


@dataclass
class SessionState:
    """Mutable aggregate owned by a running gauntlet session."""

    config: SessionConfig
    queue: list[QueueEntry] = field(default_factory=list)
    cursor: int = 0
    lives: int = 0
    max_lives: int = 0
    regenerates: bool = False
    correct_since_regen: int = 0
    regen_threshold: int = 5
    lives_regenerated: int = 0
    target_count: int = 0
    correct_count: int = 0
    wrong_count: int = 0
    current_streak: int = 0
    best_streak: int = 0
    per_item_tally: dict[str, ItemTally] = field(default_factory=dict)
    answer_latencies: list[float] = field(default_factory=list)
    started_at: float = 0.0  # epoch milliseconds
    last_answer_at: float = 0.0
    finished_at: float | None = None
    completed: bool = False
    phase: SessionPhase = SessionPhase.CONFIGURING


@dataclass(frozen=True)
class AnswerOutcome:
    """What a single answer submission did to the session."""

    is_correct: bool
    lives: int
    life_lost: bool = False
    life_gained: bool = False
    requeued: bool = False
    finished: bool = False
    completed: bool = False


@dataclass(frozen=True)
class SaveResult:
    """Outcome of persisting a session result."""

    saved: bool
    is_new_best: bool
    session_id: str | None = None


# Pydantic models for data validation
class DrillItemData(BaseModel):
    """Type-in drill item loaded from a JSON item file."""

    model_config = ConfigDict(frozen=True)

    id: str | None = Field(None, description="Stable identifier, if any")
    prompt: str = Field(..., min_length=1, description="What the player is shown")
    answers: list[str] = Field(
        ..., min_length=1, description="Accepted answers, first one is canonical"
    )

    def is_correct(self, answer: str) -> bool:
        """Case-insensitive match against any accepted answer."""
        normalized = answer.strip().lower()
        return any(normalized == accepted.strip().lower() for accepted in self.answers)


# Pydantic models for persisted data
class ItemStats(BaseModel):
    """Per-item correctness recorded in a session result."""

    model_config = ConfigDict(frozen=True)

    correct: int = Field(0, ge=0)
    wrong: int = Field(0, ge=0)


class SessionResult(BaseModel):
    """Immutable statistical snapshot of a finished gauntlet session."""

    model_config = ConfigDict(frozen=True)

    id: str | None = Field(None, description="Assigned by the stats store on save")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the session finished",
    )
    category: ItemCategory
    difficulty: Difficulty
    game_mode: GameMode = GameMode.PICK
    total_questions: int = Field(..., ge=0, description="items x repetitions")
    correct_answers: int = Field(0, ge=0)
    wrong_answers: int = Field(0, ge=0)
    accuracy: float = Field(0.0, ge=0.0, le=1.0)
    best_streak: int = Field(0, ge=0)
    current_streak: int = Field(0, ge=0)
    starting_lives: int = Field(..., ge=0)
    lives_remaining: int = Field(0, ge=0)
    lives_lost: int = Field(0, ge=0)
    lives_regenerated: int = Field(0, ge=0)
    total_time_ms: float = Field(0.0, ge=0.0)
    average_time_per_question_ms: float = Field(0.0, ge=0.0)
    fastest_answer_ms: float = Field(0.0, ge=0.0)
    slowest_answer_ms: float = Field(0.0, ge=0.0)
    completed: bool = False
    questions_completed: int = Field(0, ge=0)
    item_stats: dict[str, ItemStats] = Field(default_factory=dict)
    total_items: int = Field(..., ge=0)
    repetitions_per_item: int = Field(..., ge=1)
    selected_sets: list[str] = Field(default_factory=list)


class LifetimeTotals(BaseModel):
    """Running sums across every session ever saved for a category."""

    total_sessions: int = 0
    completed_sessions: int = 0
    total_correct: int = 0
    total_wrong: int = 0
    best_streak: int = 0


def _default_best_times() -> dict[str, dict[str, float]]:
    return {category.value: {} for category in ItemCategory}


def default_lifetime_totals() -> dict[str, LifetimeTotals]:
    """Fresh, zeroed lifetime totals for every category."""
    return {category.value: LifetimeTotals() for category in ItemCategory}


class StoredStatsBlob(BaseModel):
    """The single persisted document holding all gauntlet statistics."""

    version: int = STATS_SCHEMA_VERSION
    sessions: list[SessionResult] = Field(default_factory=list)
    best_times: dict[str, dict[str, float]] = Field(
        default_factory=_default_best_times
    )
    lifetime_totals: dict[str, LifetimeTotals] = Field(
        default_factory=default_lifetime_totals
    )


class OverallStats(BaseModel):
    """Lifetime totals for a category plus the fastest retained run."""

    total_sessions: int = 0
    completed_sessions: int = 0
    total_correct: int = 0
    total_wrong: int = 0
    best_streak: int = 0
    fastest_time: float | None = None


# SQLAlchemy models for database
class StatsBlobRecord(Base):
    """Key-value row holding a serialized stats blob."""

    __tablename__ = "stats_blobs"

    id = Column(Integer, primary_key=True)
    blob_key = Column(String(100), unique=True, nullable=False)
    blob_value = Column(Text, nullable=False)  # JSON serialized
    created_at = Column(
        DateTime, default=lambda: datetime.now(UTC).replace(tzinfo=None)
    )
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(UTC).replace(tzinfo=None),
        onupdate=lambda: datetime.now(UTC).replace(tzinfo=None),
    )

    __table_args__ = (UniqueConstraint("blob_key"),)
