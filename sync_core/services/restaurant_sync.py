# =============================================================================
# sync_core/services/restaurant_sync.py
# Restaurants of the signed-in restaurant owner
# =============================================================================

from __future__ import annotations
from dataclasses import fields
from typing import Optional

import pandas as pd

from sync_core.models.restaurant import RestaurantRecord
from sync_core.offline.local_cache import LocalCacheStore
from sync_core.offline.reachability import ReachabilityMonitor
from sync_core.remote.base import RemoteSessionClient
from sync_core.services.domain_sync import DomainSyncAdapter
from sync_core.services.session_synchronizer import SessionSynchronizer

RESTAURANT_COLUMNS = [f.name for f in fields(RestaurantRecord)]


class RestaurantSyncAdapter(DomainSyncAdapter[RestaurantRecord]):
    """
    Cache-first list of the restaurants an owner account runs.

    Usage:
        restaurants = RestaurantSyncAdapter(remote, cache, reachability, synchronizer)
        for restaurant in restaurants.fetch():
            print(restaurant.name, restaurant.address)
    """

    def __init__(
        self,
        remote: RemoteSessionClient,
        cache: LocalCacheStore,
        reachability: ReachabilityMonitor,
        synchronizer: Optional[SessionSynchronizer],
        table: str = "restaurants",
    ):
        super().__init__(
            collection="restaurants",
            table=table,
            owner_column="owner_id",
            record_type=RestaurantRecord,
            remote=remote,
            cache=cache,
            reachability=reachability,
            synchronizer=synchronizer,
        )

    def fetch_frame(self, owner_id: Optional[str] = None, force_refresh: bool = False) -> pd.DataFrame:
        """The owner's restaurants as a DataFrame, for table and map displays."""
        restaurants = self.fetch(owner_id, force_refresh=force_refresh)
        frame = pd.DataFrame([r.to_row() for r in restaurants], columns=RESTAURANT_COLUMNS)
        frame["created_at"] = pd.to_datetime(frame["created_at"], utc=True, format="ISO8601")
        return frame
