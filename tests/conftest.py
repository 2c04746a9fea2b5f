# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import pytest
from collections import Counter
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

from sync_core.errors import RemoteRejected
from sync_core.models import RemoteSession
from sync_core.offline import CredentialStore, LocalCacheStore, ReachabilityMonitor
from sync_core.remote import RemoteSessionClient, RowOrder
from sync_core.services import (
    DeliveryOrderFeed,
    OrderSyncAdapter,
    RestaurantSnapshotCache,
    RestaurantSyncAdapter,
    SessionSynchronizer,
)


# =============================================================================
# FAKE REMOTE
# =============================================================================

class FakeRemoteClient(RemoteSessionClient):
    """
    In-memory remote with rotating refresh tokens and per-operation call counts.

    Set `fail[operation] = exc` to make the next calls of that operation raise.
    """

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            "users": [],
            "orders": [],
            "restaurant_owner_snapshots": [],
            "restaurants": [],
        }
        self.accounts: Dict[str, Dict[str, str]] = {}
        self.refresh_tokens: Dict[str, str] = {}
        self.calls: Counter = Counter()
        self.fail: Dict[str, Exception] = {}
        self.confirmation_required = False
        self.auth_email: Optional[str] = None
        self._sequence = 0

    @property
    def network_calls(self) -> int:
        return sum(self.calls.values())

    def _record(self, operation: str) -> None:
        self.calls[operation] += 1
        if operation in self.fail:
            raise self.fail[operation]

    def _next(self) -> int:
        self._sequence += 1
        return self._sequence

    def _issue(self, user_id: str, email: str) -> RemoteSession:
        n = self._next()
        token = f"refresh-{n}"
        self.refresh_tokens[token] = user_id
        return RemoteSession(user_id=user_id, access_token=f"access-{n}", refresh_token=token, email=email)

    def add_account(self, email: str, password: str, row: Dict[str, Any]) -> None:
        """Register an existing account together with its users row."""
        self.accounts[email] = {"password": password, "user_id": row["id"]}
        self.tables["users"].append(dict(row))

    # ----- auth -----

    def sign_up(self, email, password):
        self._record("sign_up")
        if email in self.accounts:
            raise RemoteRejected("User already registered", operation="sign_up", status=422)
        user_id = f"user-{self._next()}"
        self.accounts[email] = {"password": password, "user_id": user_id}
        if self.confirmation_required:
            return None
        return self._issue(user_id, email)

    def sign_in(self, email, password):
        self._record("sign_in")
        account = self.accounts.get(email)
        if account is None or account["password"] != password:
            raise RemoteRejected("Invalid login credentials", operation="sign_in", status=400)
        return self._issue(account["user_id"], email)

    def refresh_session(self, refresh_token):
        self._record("refresh_session")
        user_id = self.refresh_tokens.pop(refresh_token, None)
        if user_id is None:
            raise RemoteRejected("Invalid Refresh Token", operation="refresh_session", status=400)
        return self._issue(user_id, None)

    def sign_out(self):
        self._record("sign_out")

    def update_auth_email(self, email):
        self._record("update_auth_email")
        self.auth_email = email

    # ----- tables -----

    def fetch_row(self, table, row_id):
        self._record("fetch_row")
        for row in self.tables.get(table, []):
            if row.get("id") == row_id:
                return dict(row)
        raise RemoteRejected(
            "JSON object requested, multiple (or no) rows returned",
            operation="fetch_row",
            status="PGRST116",
        )

    def insert_row(self, table, row):
        self._record("insert_row")
        self.tables.setdefault(table, []).append(dict(row))

    def update_row(self, table, row_id, fields):
        self._record("update_row")
        for row in self.tables.get(table, []):
            if row.get("id") == row_id:
                row.update(fields)
                return
        raise RemoteRejected("Row not found", operation="update_row", status=404)

    def query_rows(self, table, filters, order: Optional[RowOrder] = None):
        self._record("query_rows")
        rows = [
            dict(row)
            for row in self.tables.get(table, [])
            if all(row.get(column) == value for column, value in filters.items())
        ]
        if order is not None:
            rows.sort(key=lambda r: r.get(order.column) or "", reverse=order.descending)
        return rows


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def customer_row():
    """Remote users row for a customer"""
    return {
        "id": "user-ada",
        "email": "ada@example.com",
        "name": "Ada Lovelace",
        "username": "ada",
        "role": "customer",
        "created_at": "2024-05-01T10:00:00Z",
        "has_completed_onboarding": False,
    }


@pytest.fixture
def owner_row():
    """Remote users row for a restaurant owner"""
    return {
        "id": "user-grace",
        "email": "grace@example.com",
        "name": "Grace Hopper",
        "username": "grace",
        "role": "restaurant",
        "created_at": "2024-03-01T10:00:00Z",
        "has_completed_onboarding": True,
    }


@pytest.fixture
def restaurant_rows(owner_row):
    """Two restaurants run by the sample owner plus one run by somebody else"""
    base = {
        "description": None,
        "image_url": None,
        "phone": None,
        "website": None,
    }
    return [
        {**base, "id": "rest-1", "owner_id": owner_row["id"], "name": "Noodle Bar",
         "address": "1 Main St", "latitude": 40.7128, "longitude": -74.006,
         "created_at": "2024-03-02T10:00:00Z"},
        {**base, "id": "rest-3", "owner_id": owner_row["id"], "name": "Dumpling House",
         "address": "3 Park Ave", "latitude": 40.75, "longitude": -73.98,
         "created_at": "2024-03-05T10:00:00Z"},
        {**base, "id": "rest-2", "owner_id": "owner-2", "name": "Taco Stand",
         "address": "2 Side St", "latitude": 40.7, "longitude": -74.01,
         "created_at": "2024-03-03T10:00:00Z"},
    ]


@pytest.fixture
def snapshot_rows():
    """Two restaurants with owner snapshots"""
    return [
        {
            "id": "snap-1",
            "user_id": "owner-1",
            "user_name": "Grace",
            "user_email": "grace@example.com",
            "restaurant_id": "rest-1",
            "restaurant_name": "Noodle Bar",
            "address": "1 Main St",
            "snapshot_created_at": "2024-04-01T09:00:00Z",
            "description": "Hand-pulled noodles",
            "image_url": None,
            "phone": "555-0101",
        },
        {
            "id": "snap-2",
            "user_id": "owner-2",
            "user_name": "Alan",
            "user_email": "alan@example.com",
            "restaurant_id": "rest-2",
            "restaurant_name": "Taco Stand",
            "address": "2 Side St",
            "snapshot_created_at": "2024-04-02T09:00:00Z",
            "description": None,
            "image_url": None,
            "phone": None,
        },
    ]


@pytest.fixture
def order_rows(customer_row):
    """Orders for the sample customer plus one for somebody else"""
    base = {
        "driver_id": None,
        "delivery_address": "10 Home Rd",
        "estimated_time_minutes": 25,
        "delivery_fee": 3.5,
        "is_picked_up": False,
        "is_delivered": False,
        "updated_at": None,
    }
    return [
        {**base, "id": "order-old", "customer_id": customer_row["id"], "restaurant_id": "rest-1",
         "status": "completed", "order_type": "delivery", "created_at": "2024-05-02T12:00:00Z"},
        {**base, "id": "order-new", "customer_id": customer_row["id"], "restaurant_id": "rest-2",
         "status": "in progress", "order_type": "pickup", "created_at": "2024-05-03T12:00:00Z"},
        {**base, "id": "order-orphan", "customer_id": customer_row["id"], "restaurant_id": "rest-gone",
         "status": "pending", "order_type": "delivery", "created_at": "2024-05-01T12:00:00Z"},
        {**base, "id": "order-other", "customer_id": "user-other", "restaurant_id": "rest-1",
         "status": "pending", "order_type": "delivery", "created_at": "2024-05-04T12:00:00Z"},
    ]


# =============================================================================
# COMPONENT FIXTURES
# =============================================================================

@pytest.fixture
def remote():
    """Empty in-memory remote"""
    return FakeRemoteClient()


@pytest.fixture
def registered_remote(remote, customer_row, owner_row, order_rows, snapshot_rows, restaurant_rows):
    """Remote with the sample customer and owner accounts and table data"""
    remote.add_account(customer_row["email"], "secret123", customer_row)
    remote.add_account(owner_row["email"], "secret123", owner_row)
    remote.tables["restaurants"].extend(dict(r) for r in restaurant_rows)
    remote.tables["orders"].extend(dict(r) for r in order_rows)
    remote.tables["restaurant_owner_snapshots"].extend(dict(r) for r in snapshot_rows)
    return remote


@pytest.fixture
def cache(tmp_path):
    """Initialized local cache in a temp directory"""
    store = LocalCacheStore(tmp_path / "sync_cache.db")
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def credentials(tmp_path):
    """Credential store in a temp directory"""
    return CredentialStore(tmp_path / "credentials.db")


@pytest.fixture
def reachability():
    """Reachability pinned online; tests call force_offline() as needed"""
    monitor = ReachabilityMonitor(probe=lambda: True)
    monitor.force_online()
    return monitor


@pytest.fixture
def make_synchronizer(remote, credentials, cache, reachability):
    """
    Factory for synchronizers sharing the same stores.
    A second call simulates a process restart.
    """
    def factory(remote_client=None):
        return SessionSynchronizer(
            remote=remote_client or remote,
            credentials=credentials,
            cache=cache,
            reachability=reachability,
        )
    return factory


@pytest.fixture
def synchronizer(make_synchronizer):
    return make_synchronizer()


@pytest.fixture
def snapshots(remote, cache, reachability):
    return RestaurantSnapshotCache(remote, cache, reachability)


@pytest.fixture
def orders(remote, cache, reachability, synchronizer, snapshots):
    return OrderSyncAdapter(remote, cache, reachability, synchronizer, snapshots)


@pytest.fixture
def restaurants(remote, cache, reachability, synchronizer):
    return RestaurantSyncAdapter(remote, cache, reachability, synchronizer)


@pytest.fixture
def delivery_feed(remote, cache, reachability, synchronizer):
    return DeliveryOrderFeed(remote, cache, reachability, synchronizer)


# =============================================================================
# MOCK FIXTURES
# =============================================================================

@pytest.fixture
def mock_streamlit(monkeypatch):
    """Mock Streamlit calls made by the error handlers"""
    mock_st = MagicMock()
    mock_st.session_state = {}
    monkeypatch.setattr("sync_core.errors.handlers.st", mock_st)
    return mock_st


@pytest.fixture
def mock_supabase():
    """Mock Supabase client"""
    mock_client = MagicMock()
    mock_client.table.return_value.select.return_value.execute.return_value.data = []
    mock_client.table.return_value.insert.return_value.execute.return_value = MagicMock()
    return mock_client


@pytest.fixture
def context(tmp_path, remote):
    """Fully wired SyncContext over the in-memory remote, pinned online"""
    from sync_core.config import SyncSettings
    from sync_core.context import build_context

    ctx = build_context(SyncSettings(data_dir=tmp_path / "data"), remote=remote, probe=lambda: True)
    ctx.reachability.force_online()
    yield ctx
    ctx.close()
