"""Persistent key-value stores backed by DuckDB.

Each store is a namespace of the ``kv_store`` table. Values are JSON documents,
entries may carry an expiry, and expired entries behave exactly like missing
ones (they are purged lazily on access).
"""

import json
import time
from collections.abc import Callable
from typing import Any

from ..config import get_cache_database_path
from ..logging_config import get_logger
from ..models.database import DatabaseManager, get_database_manager

logger = get_logger(__name__)

MEDIA_ITEM_CACHE_TTL = 55 * 60
ALBUM_CACHE_TTL = 10 * 60


class PersistentStore:
    """One namespace of the key-value table."""

    def __init__(
        self,
        db_manager: DatabaseManager,
        namespace: str,
        default_ttl: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.db_manager = db_manager
        self.namespace = namespace
        self.default_ttl = default_ttl
        self._clock = clock

    def get(self, key: str) -> Any:
        """Return the stored value, or None when the key is missing or expired."""
        with self.db_manager.lock:
            rows = self.db_manager.execute_query(
                "SELECT value, expires_at FROM kv_store WHERE namespace = ? AND key = ?",
                (self.namespace, key),
            )
            if not rows:
                return None

            value, expires_at = rows[0]
            if expires_at is not None and expires_at <= self._clock():
                logger.debug("cache_entry_expired", namespace=self.namespace, key=key)
                self.remove(key)
                return None

        return json.loads(value)

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store ``value`` under ``key``, replacing any previous entry."""
        ttl = self.default_ttl if ttl is None else ttl
        now = self._clock()
        expires_at = now + ttl if ttl else None
        payload = json.dumps(value)

        with self.db_manager.lock:
            self.db_manager.execute_query(
                "DELETE FROM kv_store WHERE namespace = ? AND key = ?",
                (self.namespace, key),
            )
            self.db_manager.execute_query(
                "INSERT INTO kv_store (namespace, key, value, created_at, expires_at) VALUES (?, ?, ?, ?, ?)",
                (self.namespace, key, payload, now, expires_at),
            )

    def remove(self, key: str) -> None:
        self.db_manager.execute_query(
            "DELETE FROM kv_store WHERE namespace = ? AND key = ?",
            (self.namespace, key),
        )

    def keys(self) -> list[str]:
        """Live keys in insertion order."""
        rows = self.db_manager.execute_query(
            "SELECT key FROM kv_store WHERE namespace = ? AND (expires_at IS NULL OR expires_at > ?) "
            "ORDER BY created_at, key",
            (self.namespace, self._clock()),
        )
        return [row[0] for row in rows]

    def clear(self) -> None:
        self.db_manager.execute_query("DELETE FROM kv_store WHERE namespace = ?", (self.namespace,))
        logger.debug("cache_cleared", namespace=self.namespace)

    def purge_expired(self) -> None:
        self.db_manager.execute_query(
            "DELETE FROM kv_store WHERE namespace = ? AND expires_at IS NOT NULL AND expires_at <= ?",
            (self.namespace, self._clock()),
        )

    def __len__(self) -> int:
        return len(self.keys())


class CacheRegistry:
    """
    The persistent stores used by the application.

    Attributes:
        media_items: photo queue per user id (55 minutes)
        albums: album listing per user id (10 minutes)
        album_items: album content listing per album id, used for duplicate detection
        storage: last search parameters per user id
        upload_dead_letter: failed uploads waiting for a retry
        refresh_tokens: OAuth refresh credential per Google profile id
    """

    def __init__(self, db_manager: DatabaseManager, clock: Callable[[], float] = time.time) -> None:
        self.db_manager = db_manager
        self.media_items = PersistentStore(db_manager, "media_items", MEDIA_ITEM_CACHE_TTL, clock)
        self.albums = PersistentStore(db_manager, "albums", ALBUM_CACHE_TTL, clock)
        self.album_items = PersistentStore(db_manager, "album_items", clock=clock)
        self.storage = PersistentStore(db_manager, "storage", clock=clock)
        self.upload_dead_letter = PersistentStore(db_manager, "upload_dead_letter", clock=clock)
        self.refresh_tokens = PersistentStore(db_manager, "refresh_tokens", clock=clock)

    def clear_all_cache(self) -> None:
        """Clear every cache; the dead letter and stored credentials are kept."""
        for store in (self.media_items, self.albums, self.storage, self.album_items):
            store.clear()
        logger.info("all_caches_cleared")

    def evict_user(self, user_id: str) -> None:
        """Drop everything cached for one user (logout)."""
        self.media_items.remove(user_id)
        self.albums.remove(user_id)
        self.storage.remove(user_id)


_cache_registry: CacheRegistry | None = None


def get_cache_registry(db_path: str | None = None) -> CacheRegistry:
    """Get the process wide cache registry, opening the database on first use."""
    global _cache_registry
    if _cache_registry is None:
        db_manager = get_database_manager(db_path or get_cache_database_path())
        _cache_registry = CacheRegistry(db_manager)
    return _cache_registry


def reset_cache_registry() -> None:
    """Close the process wide registry so the next call reopens it."""
    global _cache_registry
    if _cache_registry is not None:
        _cache_registry.db_manager.close()
        _cache_registry = None
