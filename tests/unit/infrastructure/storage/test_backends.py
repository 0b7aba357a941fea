"""Tests for key-value storage backends."""

from __future__ import annotations

import json

import pytest

from gauntlet.infrastructure.storage.backends import (
    JsonFileStorageBackend,
    MemoryStorageBackend,
    SqliteStorageBackend,
)

BLOB = {"version": 1, "sessions": [{"id": "gauntlet-1-abc"}], "best_times": {}}


@pytest.fixture(params=["memory", "json", "sqlite"])
def backend(request, tmp_path):
    """Create each backend kind over a temporary location."""
    if request.param == "memory":
        return MemoryStorageBackend()
    if request.param == "json":
        return JsonFileStorageBackend(tmp_path / "stats")
    return SqliteStorageBackend(tmp_path / "db" / "gauntlet.db")


class TestStorageBackends:
    """Behaviour shared by every backend."""

    @pytest.mark.asyncio
    async def test_missing_key(self, backend):
        """Test reading an unknown key returns None."""
        assert await backend.get("nothing") is None

    @pytest.mark.asyncio
    async def test_set_then_get(self, backend):
        """Test a stored value is read back equal."""
        await backend.set("gauntlet-stats", BLOB)

        assert await backend.get("gauntlet-stats") == BLOB

    @pytest.mark.asyncio
    async def test_overwrite(self, backend):
        """Test set replaces the whole value."""
        await backend.set("k", {"a": 1})
        await backend.set("k", {"b": 2})

        assert await backend.get("k") == {"b": 2}

    @pytest.mark.asyncio
    async def test_remove(self, backend):
        """Test remove deletes the key and tolerates missing keys."""
        await backend.set("k", {"a": 1})
        await backend.remove("k")
        await backend.remove("k")

        assert await backend.get("k") is None

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, backend):
        """Test values under different keys do not interfere."""
        await backend.set("one", [1])
        await backend.set("two", [2])
        await backend.remove("one")

        assert await backend.get("two") == [2]


class TestMemoryStorageBackend:
    """Test the in-memory backend."""

    @pytest.mark.asyncio
    async def test_values_are_copies(self):
        """Test mutating a read value does not alter the store."""
        backend = MemoryStorageBackend()
        await backend.set("k", {"items": [1]})

        value = await backend.get("k")
        value["items"].append(2)

        assert await backend.get("k") == {"items": [1]}

    @pytest.mark.asyncio
    async def test_rejects_unserialisable(self):
        """Test values must be JSON serialisable."""
        backend = MemoryStorageBackend()

        with pytest.raises(TypeError):
            await backend.set("k", {"bad": object()})


class TestJsonFileStorageBackend:
    """Test the JSON file backend."""

    @pytest.mark.asyncio
    async def test_writes_key_file(self, tmp_path):
        """Test the value is written to <key>.json."""
        backend = JsonFileStorageBackend(tmp_path)
        await backend.set("gauntlet-stats", BLOB)

        path = tmp_path / "gauntlet-stats.json"
        assert json.loads(path.read_text(encoding="utf-8")) == BLOB

    @pytest.mark.asyncio
    async def test_failed_write_keeps_previous_value(self, tmp_path):
        """Test a failed write leaves the old file and no temp files."""
        backend = JsonFileStorageBackend(tmp_path)
        await backend.set("k", {"a": 1})

        with pytest.raises(TypeError):
            await backend.set("k", {"bad": object()})

        assert await backend.get("k") == {"a": 1}
        assert sorted(p.name for p in tmp_path.iterdir()) == ["k.json"]


class TestSqliteStorageBackend:
    """Test the SQLite backend."""

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        """Test data written by one backend is read by another."""
        db_path = tmp_path / "gauntlet.db"
        await SqliteStorageBackend(db_path).set("k", BLOB)

        assert await SqliteStorageBackend(db_path).get("k") == BLOB

    @pytest.mark.asyncio
    async def test_single_row_per_key(self, tmp_path):
        """Test repeated writes update one row."""
        from gauntlet.core.models import StatsBlobRecord

        backend = SqliteStorageBackend(tmp_path / "gauntlet.db")
        await backend.set("k", {"a": 1})
        await backend.set("k", {"a": 2})

        with backend.get_session() as session:
            assert session.query(StatsBlobRecord).count() == 1
