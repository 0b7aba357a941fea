"""Key-value storage backends for the persisted stats blob.

Every backend stores one JSON-serialisable value per key and replaces it as
a whole, so a reader never observes a partially written blob.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Generator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gauntlet.core.models import Base, StatsBlobRecord

logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    """Async key-value store over an opaque serialisable blob."""

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def remove(self, key: str) -> None: ...


class MemoryStorageBackend:
    """Dict-backed backend; values are JSON round-tripped like a real store."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorageBackend:
    """One ``<key>.json`` file per key inside a data directory."""

    def __init__(self, data_dir: str | Path = "data") -> None:
        """Initialize JSON file backend.

        Args:
            data_dir: Directory holding the JSON files
        """
        self.data_dir = Path(data_dir)

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    async def get(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    async def set(self, key: str, value: Any) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.data_dir, prefix=f".{key}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except Exception:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"Wrote {path}")

    async def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class SqliteStorageBackend:
    """SQLite-backed store keeping one ``stats_blobs`` row per key."""

    def __init__(self, db_path: str | Path = "data/gauntlet.db") -> None:
        """Initialize SQLite backend.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(
            f"sqlite:///{self.db_path}",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)
        Base.metadata.create_all(bind=self.engine)
        logger.info(f"Stats database initialized at {self.db_path}")

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session that commits on success.

        Yields:
            Database session.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    async def get(self, key: str) -> Any | None:
        with self.get_session() as session:
            record = session.query(StatsBlobRecord).filter_by(blob_key=key).first()
            if record is None:
                return None
            return json.loads(record.blob_value)

    async def set(self, key: str, value: Any) -> None:
        with self.get_session() as session:
            record = session.query(StatsBlobRecord).filter_by(blob_key=key).first()
            if record:
                record.blob_value = json.dumps(value)
                record.updated_at = datetime.now(UTC).replace(tzinfo=None)
            else:
                session.add(StatsBlobRecord(blob_key=key, blob_value=json.dumps(value)))

    async def remove(self, key: str) -> None:
        with self.get_session() as session:
            session.query(StatsBlobRecord).filter_by(blob_key=key).delete()
