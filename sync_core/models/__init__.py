# =============================================================================
# sync_core/models/__init__.py
# Record types shared by the synchronizer and the domain adapters
# =============================================================================

from sync_core.models.user import UserRole, UserRecord, RemoteSession
from sync_core.models.orders import (
    OrderStatus,
    OrderType,
    OrderRecord,
    RestaurantSnapshot,
)
from sync_core.models.restaurant import RestaurantRecord

__all__ = [
    "UserRole",
    "UserRecord",
    "RemoteSession",
    "OrderStatus",
    "OrderType",
    "OrderRecord",
    "RestaurantSnapshot",
    "RestaurantRecord",
]
