"""Loading drill item files for the command-line trainer."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from gauntlet.core.errors import InvalidConfigError
from gauntlet.core.models import DrillItemData

logger = logging.getLogger(__name__)


def load_drill_items(items_file: str | Path) -> list[DrillItemData]:
    """Load and validate drill items from a JSON file.

    The file holds a list of objects with ``prompt``, ``answers`` and an
    optional ``id``. A single ``answer`` string is accepted in place of
    ``answers``.

    Args:
        items_file: Path to the JSON item file

    Returns:
        Validated drill items

    Raises:
        FileNotFoundError: If the file doesn't exist
        InvalidConfigError: If the file content is not a valid item list
    """
    path = Path(items_file)
    if not path.exists():
        raise FileNotFoundError(f"Items file not found: {path}")

    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidConfigError(f"Items file is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise InvalidConfigError("Items file must contain a JSON list", field="items")

    items = []
    for index, raw in enumerate(data):
        if isinstance(raw, dict) and "answers" not in raw and "answer" in raw:
            raw = {**raw, "answers": [raw["answer"]]}
        try:
            items.append(DrillItemData.model_validate(raw))
        except ValidationError as e:
            raise InvalidConfigError(
                f"Invalid item at index {index}: {e}", field="items"
            ) from e

    logger.info(f"Loaded {len(items)} drill items from {path}")
    return items
