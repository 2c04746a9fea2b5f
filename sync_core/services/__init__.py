# =============================================================================
# sync_core/services/__init__.py
# Service Layer: session synchronization and domain sync adapters
# =============================================================================
"""
Service Layer for the sync core.

Usage Example:
-------------
    from sync_core.services import SessionSynchronizer, SignedIn

    synchronizer = SessionSynchronizer(remote, credentials, cache, reachability)
    state = synchronizer.restore()
    if isinstance(state, SignedIn):
        print(f"Welcome back, {state.user.name}")

    orders = OrderSyncAdapter(remote, cache, reachability, synchronizer, snapshots)
    frame = orders.fetch_frame()

    restaurants = RestaurantSyncAdapter(remote, cache, reachability, synchronizer)
    feed = DeliveryOrderFeed(remote, cache, reachability, synchronizer)
"""

from sync_core.services.base_service import BaseService, ServiceResult

from sync_core.services.session_state import (
    RefreshFailed,
    Restoring,
    SessionEvent,
    SessionState,
    SignedIn,
    SignedOut,
)

from sync_core.services.session_synchronizer import SessionSynchronizer, normalize_email

from sync_core.services.domain_sync import DomainSyncAdapter, ReferenceCollection

from sync_core.services.order_sync import (
    DeliveryOrderFeed,
    OrderSyncAdapter,
    RestaurantSnapshotCache,
)

from sync_core.services.restaurant_sync import RestaurantSyncAdapter

__all__ = [
    # Base
    "BaseService",
    "ServiceResult",
    # Session
    "SessionSynchronizer",
    "SessionEvent",
    "SessionState",
    "SignedOut",
    "Restoring",
    "SignedIn",
    "RefreshFailed",
    "normalize_email",
    # Domain sync
    "DomainSyncAdapter",
    "ReferenceCollection",
    "OrderSyncAdapter",
    "RestaurantSnapshotCache",
    "RestaurantSyncAdapter",
    "DeliveryOrderFeed",
]
