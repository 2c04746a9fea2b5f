# =============================================================================
# sync_core/services/domain_sync.py
# Cache-first synchronization of per-user domain collections
# =============================================================================
"""
DomainSyncAdapter - cache-first fetch of one remote table, keyed by owner.

    fetch(owner_id)
        |
        +-- cached entry present and non-empty? --> return it (no network)
        |
        +-- owner unknown?       --> NoCredentialError
        +-- not reachable?       --> NoNetworkError
        |
        +-- query_rows(table, {owner_column: owner_id}, newest first)
        +-- replace cached entry wholesale, return fresh list

A failed refresh leaves the previous entry untouched. Cached entries for a
collection are dropped when the session signs out.
"""

from __future__ import annotations
import threading
from typing import Any, Dict, Generic, List, Optional, TypeVar

from sync_core.errors.exceptions import (
    DecodeError,
    LocalStorageError,
    NoCredentialError,
    NoNetworkError,
)
from sync_core.models.base import ensure_rows
from sync_core.offline.local_cache import LocalCacheStore
from sync_core.offline.reachability import ReachabilityMonitor
from sync_core.remote.base import RemoteSessionClient, RowOrder
from sync_core.services.base_service import BaseService
from sync_core.services.session_state import SessionEvent, SignedOut
from sync_core.services.session_synchronizer import SessionSynchronizer

R = TypeVar("R")

NEWEST_FIRST = RowOrder("created_at", descending=True)


class KeyedLocks:
    """One lock per key, created on demand."""

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def __call__(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock


class DomainSyncAdapter(BaseService, Generic[R]):
    """
    Cache-first adapter for one owner-scoped collection.

    Usage:
        orders = DomainSyncAdapter(
            collection="orders",
            table="orders",
            owner_column="customer_id",
            record_type=OrderRecord,
            remote=remote,
            cache=cache,
            reachability=reachability,
            synchronizer=synchronizer,
        )
        records = orders.fetch()                    # cache-first
        records = orders.fetch(force_refresh=True)  # always hits the network
    """

    def __init__(
        self,
        collection: str,
        table: str,
        owner_column: str,
        record_type: Any,
        remote: RemoteSessionClient,
        cache: LocalCacheStore,
        reachability: ReachabilityMonitor,
        synchronizer: Optional[SessionSynchronizer] = None,
        order: Optional[RowOrder] = NEWEST_FIRST,
    ):
        super().__init__()
        self.collection = collection
        self.table = table
        self.owner_column = owner_column
        self.record_type = record_type
        self.remote = remote
        self.cache = cache
        self.reachability = reachability
        self.synchronizer = synchronizer
        self.order = order
        self._locks = KeyedLocks()

        if synchronizer is not None:
            synchronizer.register_callback(self._on_session_event)

    def detach(self) -> None:
        """Stop listening to session events."""
        if self.synchronizer is not None:
            self.synchronizer.unregister_callback(self._on_session_event)

    # =========================================================================
    # LOCAL
    # =========================================================================

    def _resolve_owner(self, owner_id: Optional[str]) -> str:
        if owner_id:
            return owner_id
        user = self.synchronizer.current_user if self.synchronizer is not None else None
        if user is None:
            raise NoCredentialError(f"No current user to fetch {self.collection} for")
        return user.id

    def _decode(self, rows: Any) -> List[R]:
        rows = ensure_rows(rows, self.record_type.__name__)
        return [self.record_type.from_row(row) for row in rows]

    def load_local(self, owner_id: Optional[str] = None) -> List[R]:
        """
        Cached records for the owner; never touches the network.
        Unreadable entries are treated as a miss.
        """
        owner = self._resolve_owner(owner_id)
        try:
            rows = self.cache.get(self.collection, owner)
            if not rows:
                return []
            return self._decode(rows)
        except (LocalStorageError, DecodeError) as e:
            self.logger.warning(f"Unreadable {self.collection} cache for {owner}, treating as miss: {e}")
            return []

    def _store(self, owner: str, records: List[R]) -> None:
        try:
            self.cache.upsert(self.collection, owner, [record.to_row() for record in records])
        except LocalStorageError as e:
            self.logger.error(f"Failed to cache {self.collection} for {owner}: {e}")

    def invalidate(self, owner_id: Optional[str] = None) -> None:
        """Drop the cached entry for one owner, or every entry when owner_id is None."""
        try:
            if owner_id is None:
                removed = self.cache.delete_all(self.collection)
                self.logger.info(f"Invalidated {removed} {self.collection} entries")
            else:
                self.cache.delete(self.collection, owner_id)
                self.logger.info(f"Invalidated {self.collection} for {owner_id}")
        except LocalStorageError as e:
            self.logger.error(f"Failed to invalidate {self.collection}: {e}")

    def _on_session_event(self, event: SessionEvent) -> None:
        if isinstance(event.current, SignedOut) and not isinstance(event.previous, SignedOut):
            self.invalidate()

    # =========================================================================
    # FETCH
    # =========================================================================

    def fetch(self, owner_id: Optional[str] = None, force_refresh: bool = False) -> List[R]:
        """
        Return the owner's records, newest first.

        Raises:
            NoCredentialError: no owner given and nobody is signed in
            NoNetworkError: cache miss (or forced refresh) while offline
            RemoteRejected / DecodeError: remote failure; cache left untouched
        """
        owner = self._resolve_owner(owner_id)

        with self._locks(owner):
            if not force_refresh:
                cached = self.load_local(owner)
                if cached:
                    self.logger.debug(f"Serving {len(cached)} {self.collection} from cache")
                    return cached

            if not self.reachability.is_connected:
                raise NoNetworkError(
                    f"Cannot refresh {self.collection} while offline",
                    operation=f"fetch_{self.collection}",
                )

            with self.log_operation(f"Refreshing {self.collection} for {owner}"):
                rows = self.remote.query_rows(
                    self.table,
                    {self.owner_column: owner},
                    order=self.order,
                )
                records = self._decode(rows)
                self._store(owner, records)

            return records


class ReferenceCollection(BaseService, Generic[R]):
    """
    Cache-first copy of a user-independent table stored under one key.

    `filters` and `order` narrow the query, e.g. pending delivery orders
    newest first; without them the whole table is copied. Given a
    synchronizer, the entry is dropped when the session signs out.
    """

    KEY = "all"

    def __init__(
        self,
        collection: str,
        table: str,
        record_type: Any,
        remote: RemoteSessionClient,
        cache: LocalCacheStore,
        reachability: ReachabilityMonitor,
        filters: Optional[Dict[str, Any]] = None,
        order: Optional[RowOrder] = None,
        synchronizer: Optional[SessionSynchronizer] = None,
    ):
        super().__init__()
        self.collection = collection
        self.table = table
        self.record_type = record_type
        self.remote = remote
        self.cache = cache
        self.reachability = reachability
        self.filters = dict(filters or {})
        self.order = order
        self.synchronizer = synchronizer
        self._lock = threading.Lock()

        if synchronizer is not None:
            synchronizer.register_callback(self._on_session_event)

    def detach(self) -> None:
        if self.synchronizer is not None:
            self.synchronizer.unregister_callback(self._on_session_event)

    def _on_session_event(self, event: SessionEvent) -> None:
        if isinstance(event.current, SignedOut) and not isinstance(event.previous, SignedOut):
            self.invalidate()

    def _decode(self, rows: Any) -> List[R]:
        rows = ensure_rows(rows, self.record_type.__name__)
        return [self.record_type.from_row(row) for row in rows]

    def load_local(self) -> List[R]:
        """Cached records only; never touches the network."""
        try:
            rows = self.cache.get(self.collection, self.KEY)
            if not rows:
                return []
            return self._decode(rows)
        except (LocalStorageError, DecodeError) as e:
            self.logger.warning(f"Unreadable {self.collection} cache, treating as miss: {e}")
            return []

    def fetch_all(self, force_refresh: bool = False) -> List[R]:
        with self._lock:
            if not force_refresh:
                cached = self.load_local()
                if cached:
                    return cached

            if not self.reachability.is_connected:
                raise NoNetworkError(
                    f"Cannot refresh {self.collection} while offline",
                    operation=f"fetch_{self.collection}",
                )

            with self.log_operation(f"Refreshing {self.collection}"):
                rows = self.remote.query_rows(self.table, self.filters, order=self.order)
                records = self._decode(rows)
                try:
                    self.cache.upsert(self.collection, self.KEY, [r.to_row() for r in records])
                except LocalStorageError as e:
                    self.logger.error(f"Failed to cache {self.collection}: {e}")
            return records

    def invalidate(self) -> None:
        try:
            self.cache.delete(self.collection, self.KEY)
        except LocalStorageError as e:
            self.logger.error(f"Failed to invalidate {self.collection}: {e}")
