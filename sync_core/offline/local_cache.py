# =============================================================================
# sync_core/offline/local_cache.py
# Local SQLite Cache for Offline Operation
# =============================================================================
"""
LocalCacheStore - durable per-collection key/value storage backed by SQLite.

Features:
- One row per (collection, key); upsert replaces, never duplicates
- JSON-serialised records
- Every write runs in a transaction
- Thread-local connections
- sqlite/JSON failures surface as LocalStorageError
"""

from __future__ import annotations
import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional
import logging

from sync_core.errors.exceptions import LocalStorageError

logger = logging.getLogger(__name__)


class LocalCacheStore:
    """
    Local key/value/table store for user snapshots and domain collections.

    Usage:
        cache = LocalCacheStore(Path("local_data/sync_cache.db"))
        cache.upsert("orders", owner_id, [order.to_row() for order in orders])
        rows = cache.get("orders", owner_id)
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS cache_entries (
            collection TEXT NOT NULL,
            key TEXT NOT NULL,
            data_json TEXT NOT NULL,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (collection, key)
        )
    """

    def __init__(self, db_path: Path):
        """
        Args:
            db_path: Path to SQLite database file (":memory:" is not supported,
                connections are per thread)
        """
        self.db_path = Path(db_path)
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()
        self._initialized = False

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        conn = getattr(self._local, "connection", None)
        if conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            self._local.connection = conn
            with self._connections_lock:
                self._connections.append(conn)
        return conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def initialize(self) -> None:
        """Create the schema if needed."""
        if self._initialized:
            return
        try:
            with self.transaction() as conn:
                conn.execute(self.SCHEMA)
        except (sqlite3.Error, OSError) as e:
            raise LocalStorageError(f"Could not initialize cache: {e}")
        self._initialized = True
        logger.info(f"Local cache initialized at: {self.db_path}")

    # =========================================================================
    # SERIALISATION
    # =========================================================================

    @staticmethod
    def _dumps(record: Any, collection: str, key: str) -> str:
        try:
            return json.dumps(record, default=str)
        except (TypeError, ValueError) as e:
            raise LocalStorageError(f"Record is not serialisable: {e}", collection, key)

    @staticmethod
    def _loads(text: str, collection: str, key: str) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise LocalStorageError(f"Corrupt cache entry: {e}", collection, key)

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def upsert(self, collection: str, key: str, record: Any) -> None:
        """Insert or fully replace the record stored under (collection, key)."""
        self.initialize()
        payload = self._dumps(record, collection, key)
        try:
            with self.transaction() as conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO cache_entries (collection, key, data_json, updated_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    [collection, key, payload, datetime.now().isoformat()],
                )
        except sqlite3.Error as e:
            raise LocalStorageError(f"Cache write failed: {e}", collection, key)

    def get(self, collection: str, key: str) -> Optional[Any]:
        """Return the record for (collection, key) or None."""
        self.initialize()
        try:
            row = self._get_connection().execute(
                "SELECT data_json FROM cache_entries WHERE collection = ? AND key = ?",
                [collection, key],
            ).fetchone()
        except sqlite3.Error as e:
            raise LocalStorageError(f"Cache read failed: {e}", collection, key)
        if row is None:
            return None
        return self._loads(row["data_json"], collection, key)

    def get_all(self, collection: str) -> List[Any]:
        """Return every record in a collection, ordered by key."""
        self.initialize()
        try:
            rows = self._get_connection().execute(
                "SELECT key, data_json FROM cache_entries WHERE collection = ? ORDER BY key",
                [collection],
            ).fetchall()
        except sqlite3.Error as e:
            raise LocalStorageError(f"Cache read failed: {e}", collection)
        return [self._loads(row["data_json"], collection, row["key"]) for row in rows]

    def keys(self, collection: str) -> List[str]:
        self.initialize()
        try:
            rows = self._get_connection().execute(
                "SELECT key FROM cache_entries WHERE collection = ? ORDER BY key",
                [collection],
            ).fetchall()
        except sqlite3.Error as e:
            raise LocalStorageError(f"Cache read failed: {e}", collection)
        return [row["key"] for row in rows]

    def delete(self, collection: str, key: str) -> bool:
        """Delete one entry. Returns True if something was removed."""
        self.initialize()
        try:
            with self.transaction() as conn:
                cursor = conn.execute(
                    "DELETE FROM cache_entries WHERE collection = ? AND key = ?",
                    [collection, key],
                )
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise LocalStorageError(f"Cache delete failed: {e}", collection, key)

    def delete_all(self, collection: str) -> int:
        """Delete every entry in a collection. Returns the number removed."""
        self.initialize()
        try:
            with self.transaction() as conn:
                cursor = conn.execute(
                    "DELETE FROM cache_entries WHERE collection = ?",
                    [collection],
                )
                return cursor.rowcount
        except sqlite3.Error as e:
            raise LocalStorageError(f"Cache delete failed: {e}", collection)

    def replace_all(self, collection: str, records: Dict[str, Any]) -> None:
        """Delete-all then insert-all for a collection in one transaction."""
        self.initialize()
        payloads = [(key, self._dumps(record, collection, key)) for key, record in records.items()]
        now = datetime.now().isoformat()
        try:
            with self.transaction() as conn:
                conn.execute("DELETE FROM cache_entries WHERE collection = ?", [collection])
                conn.executemany(
                    """
                    INSERT INTO cache_entries (collection, key, data_json, updated_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    [(collection, key, payload, now) for key, payload in payloads],
                )
        except sqlite3.Error as e:
            raise LocalStorageError(f"Cache replace failed: {e}", collection)

    def close(self) -> None:
        """Close every connection opened by this store."""
        with self._connections_lock:
            for conn in self._connections:
                try:
                    conn.close()
                except sqlite3.Error as e:
                    logger.debug(f"Error closing cache connection: {e}")
            self._connections.clear()
        self._local = threading.local()
