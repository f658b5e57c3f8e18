"""Read-only access to Cursor's state.vscdb key/value files.

Cursor keeps extension and workbench state in a SQLite database with a single
``ItemTable(key, value)`` table per workspace. This module opens those files
read-only, pools handles by path and caches chat-key query results.
"""

import logging
import sqlite3
from collections import OrderedDict
from collections.abc import Sequence
from pathlib import Path

import orjson

from ..config import CURSOR_CHAT_KEYS, QUERY_CACHE_SIZE
from ..exceptions import StorageConnectionError
from .decoding import is_compressed_key, maybe_decode
from .models import StorageRecord
from .validation import is_plausible_chat_payload

logger = logging.getLogger(__name__)

CacheKey = tuple[str, tuple[str, ...], str | None]


class StorageConnection:
    """Pooled, read-only connection to one or more storage files.

    One path is "current" at a time; ``query``, ``execute_raw`` and ``list_keys``
    run against it. The pool and the cache are not safe for concurrent use.
    """

    def __init__(
        self,
        chat_keys: Sequence[str] = CURSOR_CHAT_KEYS,
        cache_size: int = QUERY_CACHE_SIZE,
    ):
        """Initialize an empty connection manager.

        Args:
            chat_keys: Key prefixes searched by ``query`` when no patterns are given.
            cache_size: Maximum number of cached query results.
        """
        self.chat_keys = tuple(chat_keys)
        self.cache_size = cache_size
        self._pool: dict[str, sqlite3.Connection] = {}
        self._cache: OrderedDict[CacheKey, tuple[StorageRecord, ...]] = OrderedDict()
        self._conn: sqlite3.Connection | None = None
        self._path: str | None = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close_all()

    @property
    def path(self) -> str | None:
        """Path of the current storage file, or None if nothing is open."""
        return self._path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self, path: str | Path) -> None:
        """Make ``path`` the current storage file, reusing a pooled handle if any.

        Raises:
            StorageConnectionError: If the file is missing, unreadable or not a
                SQLite database.
        """
        key = str(path)

        pooled = self._pool.get(key)
        if pooled is not None:
            self._conn = pooled
            self._path = key
            logger.debug("Reusing existing connection to %s", key)
            return

        db_path = Path(path)
        if not db_path.is_file():
            raise StorageConnectionError(f"Database file does not exist: {key}", path=key)

        try:
            uri = db_path.resolve().as_uri() + "?mode=ro"
            conn = sqlite3.connect(uri, uri=True)
            # sqlite3 opens lazily; touch the schema so corrupt headers fail here
            conn.execute("SELECT name FROM sqlite_master LIMIT 1").fetchall()
        except sqlite3.Error as e:
            raise StorageConnectionError(str(e), path=key) from e

        self._pool[key] = conn
        self._conn = conn
        self._path = key
        self._invalidate_cache(key)
        logger.info("Opened database connection to %s", key)

    def _require_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageConnectionError("Database not connected")
        return self._conn

    def query(
        self,
        key_patterns: Sequence[str] | None = None,
        extra_pattern: str | None = None,
    ) -> list[StorageRecord]:
        """Find chat-related rows in the current storage file.

        Each key pattern matches as a prefix (``LIKE 'pattern%'``); the optional
        extra pattern matches anywhere in the key (``LIKE '%extra%'``). Rows are
        decoded and only those passing structural validation are returned.

        Args:
            key_patterns: Key prefixes to match. Defaults to the known chat keys.
            extra_pattern: Optional substring to match in addition.

        Returns:
            Accepted rows, in the order SQLite returned them.
        """
        conn = self._require_connection()
        patterns = tuple(key_patterns) if key_patterns is not None else self.chat_keys

        cache_key: CacheKey = (self._path, patterns, extra_pattern)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return list(cached)

        params = [f"{p}%" for p in patterns]
        if extra_pattern:
            params.append(f"%{extra_pattern}%")
        if not params:
            return []

        where = " OR ".join("key LIKE ?" for _ in params)
        try:
            rows = conn.execute(f"SELECT key, value FROM ItemTable WHERE {where}", params).fetchall()
        except sqlite3.Error as e:
            raise StorageConnectionError(f"Database query failed: {e}", path=self._path) from e

        results = []
        for key, value in rows:
            if value is None:
                continue
            try:
                record = self._decode_row(key, value)
            except Exception:
                logger.warning("Failed to process row %s", key, exc_info=True)
                continue
            if record is not None:
                results.append(record)

        logger.debug("Query matched %d rows, accepted %d in %s", len(rows), len(results), self._path)
        self._set_cached(cache_key, results)
        return results

    def _decode_row(self, key: str, value: bytes | str) -> StorageRecord | None:
        if is_compressed_key(key):
            logger.debug("Key %s is marked as compressed", key)

        text = maybe_decode(value)
        try:
            payload = orjson.loads(text)
        except orjson.JSONDecodeError:
            # Not JSON; judged as a bare string and passed through verbatim
            payload = text

        if not is_plausible_chat_payload(payload):
            logger.debug("Rejected row %s: not a chat payload", key)
            return None

        raw_size = len(value) if isinstance(value, (bytes, bytearray)) else len(value.encode("utf-8"))
        return StorageRecord(key=key, value=text, raw_size=raw_size)

    def execute_raw(self, query: str, params: Sequence | None = None) -> list[dict]:
        """Run an arbitrary query against the current file. Results are not cached.

        Returns:
            One dict per row, keyed by column name.
        """
        conn = self._require_connection()
        logger.debug("Executing raw query: %s", query[:100])
        try:
            cursor = conn.execute(query, tuple(params or ()))
            columns = [col[0] for col in cursor.description or ()]
            rows = [dict(zip(columns, row)) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            logger.error("Raw query failed: %s", e)
            raise

        logger.debug("Raw query returned %d rows", len(rows))
        return rows

    def list_keys(self, pattern: str | None = None) -> list[str]:
        """List the distinct keys in the current file, optionally filtered by substring."""
        if pattern:
            rows = self.execute_raw("SELECT DISTINCT key FROM ItemTable WHERE key LIKE ? ORDER BY key", [f"%{pattern}%"])
        else:
            rows = self.execute_raw("SELECT DISTINCT key FROM ItemTable ORDER BY key")
        return [row["key"] for row in rows]

    def close(self) -> None:
        """Close the current connection. A no-op when nothing is open."""
        if self._conn is None or self._path is None:
            logger.debug("No active connection to close")
            return

        path = self._path
        try:
            self._conn.close()
            logger.info("Closed database connection to %s", path)
        except sqlite3.Error as e:
            logger.error("Error closing connection to %s: %s", path, e)
        finally:
            self._pool.pop(path, None)
            self._invalidate_cache(path)
            self._conn = None
            self._path = None

    def close_all(self) -> None:
        """Close every pooled connection and clear the query cache."""
        logger.debug("Closing %d database connections", len(self._pool))
        for path, conn in self._pool.items():
            try:
                conn.close()
            except sqlite3.Error as e:
                logger.error("Error closing connection to %s: %s", path, e)

        self._pool.clear()
        self._cache.clear()
        self._conn = None
        self._path = None

    def info(self) -> dict:
        """Describe the current connection state."""
        return {
            "path": self._path or "Not connected",
            "is_connected": self._conn is not None,
            "pool_size": len(self._pool),
            "cache_size": len(self._cache),
        }

    def _set_cached(self, key: CacheKey, results: list[StorageRecord]) -> None:
        self._cache[key] = tuple(results)
        while len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)

    def _invalidate_cache(self, path: str) -> None:
        for key in [k for k in self._cache if k[0] == path]:
            del self._cache[key]
