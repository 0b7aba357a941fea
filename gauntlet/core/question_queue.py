"""Question queue generation for gauntlet sessions."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from gauntlet.core.errors import InvalidConfigError
from gauntlet.core.models import QueueEntry
from gauntlet.core.randomness import RandomSource, shuffle


def generate_question_queue(
    items: Sequence[Any],
    repetitions: int,
    rng: RandomSource | None = None,
) -> list[QueueEntry]:
    """Expand drill items into a shuffled queue of attempts.

    Each item appears ``repetitions`` times, tagged with its repetition
    number. Positions are assigned after the shuffle.

    Args:
        items: Drill items to practice
        repetitions: Number of attempts per item
        rng: Random source used for the shuffle

    Returns:
        Queue of ``len(items) * repetitions`` entries

    Raises:
        InvalidConfigError: If repetitions is less than 1
    """
    if repetitions < 1:
        raise InvalidConfigError(
            f"Repetitions must be at least 1, got {repetitions}",
            field="repetitions",
        )

    entries = [
        QueueEntry(item=item, queue_position=0, repetition_number=rep)
        for item in items
        for rep in range(1, repetitions + 1)
    ]

    queue = shuffle(entries, rng)
    renumber_queue(queue)
    return queue


def renumber_queue(queue: list[QueueEntry], start: int = 0) -> None:
    """Reassign ``queue_position`` from ``start`` to the end of the queue."""
    for position in range(start, len(queue)):
        queue[position].queue_position = position
