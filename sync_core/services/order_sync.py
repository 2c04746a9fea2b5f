# =============================================================================
# sync_core/services/order_sync.py
# Customer orders enriched with restaurant owner snapshots, and the driver feed
# =============================================================================

from __future__ import annotations
from dataclasses import fields
from typing import List, Optional, Tuple

import pandas as pd

from sync_core.errors.exceptions import DecodeError, NoNetworkError, RemoteRejected
from sync_core.models.orders import OrderRecord, OrderStatus, OrderType, RestaurantSnapshot
from sync_core.offline.local_cache import LocalCacheStore
from sync_core.offline.reachability import ReachabilityMonitor
from sync_core.remote.base import RemoteSessionClient
from sync_core.services.domain_sync import NEWEST_FIRST, DomainSyncAdapter, ReferenceCollection
from sync_core.services.session_synchronizer import SessionSynchronizer

EnrichedOrder = Tuple[OrderRecord, RestaurantSnapshot]

ORDER_COLUMNS = [f.name for f in fields(OrderRecord)]
SNAPSHOT_COLUMNS = [f.name for f in fields(RestaurantSnapshot)]


class RestaurantSnapshotCache(ReferenceCollection[RestaurantSnapshot]):
    """Whole `restaurant_owner_snapshots` table, cached under a single key."""

    def __init__(
        self,
        remote: RemoteSessionClient,
        cache: LocalCacheStore,
        reachability: ReachabilityMonitor,
        table: str = "restaurant_owner_snapshots",
    ):
        super().__init__(
            collection="restaurant_owner_snapshots",
            table=table,
            record_type=RestaurantSnapshot,
            remote=remote,
            cache=cache,
            reachability=reachability,
        )


class OrderSyncAdapter(DomainSyncAdapter[OrderRecord]):
    """
    Orders placed by the current customer.

    Usage:
        orders = OrderSyncAdapter(remote, cache, reachability, synchronizer, snapshots)
        for order, restaurant in orders.fetch_enriched():
            print(restaurant.restaurant_name, order.status.value)
    """

    def __init__(
        self,
        remote: RemoteSessionClient,
        cache: LocalCacheStore,
        reachability: ReachabilityMonitor,
        synchronizer: Optional[SessionSynchronizer],
        snapshots: RestaurantSnapshotCache,
        table: str = "orders",
    ):
        super().__init__(
            collection="orders",
            table=table,
            owner_column="customer_id",
            record_type=OrderRecord,
            remote=remote,
            cache=cache,
            reachability=reachability,
            synchronizer=synchronizer,
        )
        self.snapshots = snapshots

    def _load_snapshots(self, force_refresh: bool) -> List[RestaurantSnapshot]:
        """Snapshots for the join; a failed refresh falls back to whatever is cached."""
        try:
            return self.snapshots.fetch_all(force_refresh)
        except (NoNetworkError, RemoteRejected, DecodeError) as e:
            cached = self.snapshots.load_local()
            self.logger.warning(
                f"Restaurant snapshots unavailable ({e.code}), joining against {len(cached)} cached"
            )
            return cached

    def fetch_enriched(
        self,
        owner_id: Optional[str] = None,
        force_refresh: bool = False,
    ) -> List[EnrichedOrder]:
        """
        Pair each order with its restaurant snapshot. Orders whose restaurant
        has no snapshot are left out. The pairing is never cached.

        Order errors propagate as in fetch(). Snapshot errors do not: the
        join then uses the cached snapshots, possibly none.
        """
        orders = self.fetch(owner_id, force_refresh=force_refresh)
        by_restaurant = {s.restaurant_id: s for s in self._load_snapshots(force_refresh)}

        enriched = [
            (order, by_restaurant[order.restaurant_id])
            for order in orders
            if order.restaurant_id in by_restaurant
        ]

        dropped = len(orders) - len(enriched)
        if dropped:
            self.logger.warning(f"Dropped {dropped} orders with no restaurant snapshot")
        return enriched

    def fetch_frame(
        self,
        owner_id: Optional[str] = None,
        force_refresh: bool = False,
    ) -> pd.DataFrame:
        """
        Same join as fetch_enriched() as a DataFrame, newest order first.

        Snapshot columns that clash with order columns get a `_snapshot` suffix.
        """
        orders = self.fetch(owner_id, force_refresh=force_refresh)
        snapshots = self._load_snapshots(force_refresh)

        orders_df = pd.DataFrame([o.to_row() for o in orders], columns=ORDER_COLUMNS)
        snapshots_df = pd.DataFrame([s.to_row() for s in snapshots], columns=SNAPSHOT_COLUMNS)
        snapshots_df = snapshots_df.drop_duplicates(subset="restaurant_id", keep="last")

        merged = orders_df.merge(
            snapshots_df,
            on="restaurant_id",
            how="inner",
            suffixes=("", "_snapshot"),
        )

        dropped = len(orders_df) - len(merged)
        if dropped:
            self.logger.warning(f"Dropped {dropped} orders with no restaurant snapshot")

        for column in ("created_at", "updated_at", "snapshot_created_at"):
            merged[column] = pd.to_datetime(merged[column], utc=True, format="ISO8601")
        return merged.reset_index(drop=True)


class DeliveryOrderFeed(ReferenceCollection[OrderRecord]):
    """
    Pending delivery orders from every restaurant, newest first: what a
    driver can pick up. Cached under one key and dropped on sign-out.

    Usage:
        feed = DeliveryOrderFeed(remote, cache, reachability, synchronizer)
        open_orders = feed.fetch_all(force_refresh=True)
    """

    def __init__(
        self,
        remote: RemoteSessionClient,
        cache: LocalCacheStore,
        reachability: ReachabilityMonitor,
        synchronizer: Optional[SessionSynchronizer] = None,
        table: str = "orders",
    ):
        super().__init__(
            collection="drivers_delivery_orders",
            table=table,
            record_type=OrderRecord,
            remote=remote,
            cache=cache,
            reachability=reachability,
            filters={
                "order_type": OrderType.DELIVERY.value,
                "status": OrderStatus.PENDING.value,
            },
            order=NEWEST_FIRST,
            synchronizer=synchronizer,
        )
