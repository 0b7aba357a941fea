"""Core module for the drill gauntlet."""

from gauntlet.core.errors import (
    EmptyInputError,
    EmptyQueueError,
    GauntletError,
    InvalidConfigError,
    InvalidStateError,
)
from gauntlet.core.models import (
    DIFFICULTY_CONFIG,
    AnswerOutcome,
    Difficulty,
    DifficultyConfig,
    GameMode,
    ItemCategory,
    QueueEntry,
    SessionPhase,
    SessionResult,
    SessionState,
    StoredStatsBlob,
)
from gauntlet.core.question_queue import generate_question_queue
from gauntlet.core.randomness import RandomSource, pick_one, shuffle
from gauntlet.core.session_manager import GauntletSession, calculate_regen_threshold
from gauntlet.core.session_stats import build_session_result

__all__ = [
    # Errors
    "GauntletError",
    "InvalidConfigError",
    "EmptyQueueError",
    "InvalidStateError",
    "EmptyInputError",
    # Models
    "DIFFICULTY_CONFIG",
    "AnswerOutcome",
    "Difficulty",
    "DifficultyConfig",
    "GameMode",
    "ItemCategory",
    "QueueEntry",
    "SessionPhase",
    "SessionResult",
    "SessionState",
    "StoredStatsBlob",
    # Session engine
    "GauntletSession",
    "RandomSource",
    "build_session_result",
    "calculate_regen_threshold",
    "generate_question_queue",
    "pick_one",
    "shuffle",
]
