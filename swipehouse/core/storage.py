"""
Key/value storage backends for the listing and commute caches
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlmodel import Field, Session, SQLModel, create_engine, select


class CacheStorageError(Exception):
    """Base exception for cache storage errors"""
    pass


class CacheStorageFullError(CacheStorageError):
    """Write rejected because the storage quota is exhausted"""
    pass


class CacheStorage(ABC):
    """
    Durable (or in-memory) mapping from string keys to JSON-serializable dicts
    Writes are not transactional across keys
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the stored value or None"""
        pass

    @abstractmethod
    def set(self, key: str, value: Dict[str, Any]) -> None:
        """Store a value, raising CacheStorageFullError when over quota"""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key if present"""
        pass

    @abstractmethod
    def items(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot of all stored values"""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove every key"""
        pass


def _serialize(value: Dict[str, Any]) -> str:
    try:
        return json.dumps(value, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as e:
        raise CacheStorageError(f"Value is not JSON serializable: {e}") from e


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryCacheStorage(CacheStorage):
    """In-process storage with optional entry and size quotas"""

    def __init__(self, max_entries: Optional[int] = None, max_bytes: Optional[int] = None):
        self.max_entries = max_entries
        self.max_bytes = max_bytes
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        raw = _serialize(value)

        others = {k: v for k, v in self._data.items() if k != key}
        if self.max_entries is not None and len(others) + 1 > self.max_entries:
            raise CacheStorageFullError(f"Entry limit of {self.max_entries} reached")
        if self.max_bytes is not None:
            used = sum(len(v) for v in others.values())
            if used + len(raw) > self.max_bytes:
                raise CacheStorageFullError(f"Size limit of {self.max_bytes} bytes reached")

        self._data[key] = raw

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def items(self) -> Dict[str, Dict[str, Any]]:
        return {key: json.loads(raw) for key, raw in self._data.items()}

    def clear(self) -> None:
        self._data.clear()


class CacheRecord(SQLModel, table=True):
    """
    Cached value table
    One row per (namespace, key); values are JSON text
    """

    __tablename__ = "cache_record"

    namespace: str = Field(primary_key=True, description="Cache owning the row")
    key: str = Field(primary_key=True, description="Cache key")
    value: str = Field(description="JSON encoded value")
    updated_at: datetime = Field(
        default_factory=utc_now, index=True, description="Last write time"
    )


class SQLiteCacheStorage(CacheStorage):
    """
    SQLite-backed storage shared between caches through namespaces
    """

    def __init__(
        self,
        database_url: str = "sqlite:///swipehouse_cache.db",
        namespace: str = "listings",
        max_bytes: Optional[int] = None,
    ):
        self.database_url = database_url
        self.namespace = namespace
        self.max_bytes = max_bytes
        self.engine = create_engine(database_url, echo=False)
        self.logger = logging.getLogger(__name__)
        SQLModel.metadata.create_all(self.engine)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            with Session(self.engine) as session:
                record = session.get(CacheRecord, (self.namespace, key))
                return json.loads(record.value) if record else None
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Error reading cache key {key}: {e}") from e
        except json.JSONDecodeError as e:
            self.logger.warning(f"Discarding corrupt cache value for {key}: {e}")
            return None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        raw = _serialize(value)

        try:
            with Session(self.engine) as session:
                if self.max_bytes is not None:
                    rows = session.exec(
                        select(CacheRecord).where(
                            CacheRecord.namespace == self.namespace,
                            CacheRecord.key != key,
                        )
                    ).all()
                    used = sum(len(row.value) for row in rows)
                    if used + len(raw) > self.max_bytes:
                        raise CacheStorageFullError(
                            f"Size limit of {self.max_bytes} bytes reached"
                        )

                record = session.get(CacheRecord, (self.namespace, key))
                if record:
                    record.value = raw
                    record.updated_at = utc_now()
                else:
                    record = CacheRecord(namespace=self.namespace, key=key, value=raw)
                session.add(record)
                session.commit()

        except OperationalError as e:
            if "full" in str(e).lower():
                raise CacheStorageFullError(f"Database is full: {e}") from e
            raise CacheStorageError(f"Error writing cache key {key}: {e}") from e
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Error writing cache key {key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            with Session(self.engine) as session:
                record = session.get(CacheRecord, (self.namespace, key))
                if record:
                    session.delete(record)
                    session.commit()
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Error deleting cache key {key}: {e}") from e

    def items(self) -> Dict[str, Dict[str, Any]]:
        try:
            with Session(self.engine) as session:
                rows = session.exec(
                    select(CacheRecord).where(CacheRecord.namespace == self.namespace)
                ).all()
                raw_values = {row.key: row.value for row in rows}
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Error listing cache keys: {e}") from e

        result = {}
        for key, raw in raw_values.items():
            try:
                result[key] = json.loads(raw)
            except json.JSONDecodeError:
                self.logger.warning(f"Skipping corrupt cache value for {key}")
        return result

    def clear(self) -> None:
        try:
            with Session(self.engine) as session:
                rows = session.exec(
                    select(CacheRecord).where(CacheRecord.namespace == self.namespace)
                ).all()
                for row in rows:
                    session.delete(row)
                session.commit()
            self.logger.info(f"Cleared cache namespace {self.namespace}")
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Error clearing cache: {e}") from e

    def close(self):
        """Dispose of the database engine"""
        self.engine.dispose()
