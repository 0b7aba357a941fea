"""Item identity strategies for per-item tallies."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from gauntlet.core.models import ItemKeyResolver


def string_key(item: Any) -> str:
    """Identity of an item is its string form."""
    return str(item)


def field_key_resolver(*fields: str) -> ItemKeyResolver:
    """Build a resolver that reads the first present field of an item.

    Mapping items are looked up by key, other objects by attribute; ``None``
    values count as absent. Items carrying none of the fields fall back to
    ``str(item)``.

    Args:
        fields: Field names in order of preference, e.g. ``("kana", "id")``

    Returns:
        A total, deterministic item-to-key function
    """

    def resolve(item: Any) -> str:
        for name in fields:
            if isinstance(item, Mapping):
                value = item.get(name)
            else:
                value = getattr(item, name, None)
            if value is not None:
                return str(value)
        return str(item)

    return resolve
