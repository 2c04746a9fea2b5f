# =============================================================================
# sync_core/offline/credential_store.py
# Single-secret storage for the session refresh token
# =============================================================================
"""
CredentialStore - holds the refresh token for this installation.

save() is delete-then-insert in one transaction, so a key never has two
values. Failures never raise: save() returns False and load() returns None,
and the caller carries on with the in-memory session.
"""

from __future__ import annotations
import os
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class CredentialStore:
    """SQLite-backed secret store, readable only by the owning OS user."""

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS credentials (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._lock = threading.Lock()

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.execute(self.SCHEMA)
        try:
            os.chmod(self.db_path, 0o600)
        except OSError as e:
            logger.debug(f"Could not restrict credential file permissions: {e}")
        return conn

    def save(self, key: str, value: str) -> bool:
        """
        Store `value` under `key`, replacing any previous value.

        Returns:
            True on success, False on storage failure
        """
        if not value:
            logger.warning(f"Refusing to store empty credential for '{key}'")
            return False
        with self._lock:
            conn = None
            try:
                conn = self._connect()
                with conn:
                    conn.execute("DELETE FROM credentials WHERE key = ?", [key])
                    conn.execute(
                        "INSERT INTO credentials (key, value, updated_at) VALUES (?, ?, ?)",
                        [key, value, datetime.now().isoformat()],
                    )
                return True
            except (sqlite3.Error, OSError) as e:
                logger.error(f"Failed to save credential '{key}': {e}")
                return False
            finally:
                if conn is not None:
                    conn.close()

    def load(self, key: str) -> Optional[str]:
        """Return the stored value, or None if absent or unreadable."""
        with self._lock:
            conn = None
            try:
                conn = self._connect()
                row = conn.execute("SELECT value FROM credentials WHERE key = ?", [key]).fetchone()
                return row[0] if row else None
            except (sqlite3.Error, OSError) as e:
                logger.error(f"Failed to load credential '{key}': {e}")
                return None
            finally:
                if conn is not None:
                    conn.close()

    def delete(self, key: str) -> None:
        """Remove the value for `key` if present."""
        with self._lock:
            conn = None
            try:
                conn = self._connect()
                with conn:
                    conn.execute("DELETE FROM credentials WHERE key = ?", [key])
            except (sqlite3.Error, OSError) as e:
                logger.error(f"Failed to delete credential '{key}': {e}")
            finally:
                if conn is not None:
                    conn.close()
