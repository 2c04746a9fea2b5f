# =============================================================================
# sync_core/context.py
# Explicit wiring of the sync components (no module-level singletons)
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Optional
import logging

from sync_core.config import SyncSettings, load_settings
from sync_core.offline.credential_store import CredentialStore
from sync_core.offline.local_cache import LocalCacheStore
from sync_core.offline.reachability import ReachabilityMonitor
from sync_core.remote.base import RemoteSessionClient
from sync_core.remote.supabase_client import SupabaseSessionClient, create_supabase_client
from sync_core.services.order_sync import DeliveryOrderFeed, OrderSyncAdapter, RestaurantSnapshotCache
from sync_core.services.restaurant_sync import RestaurantSyncAdapter
from sync_core.services.session_synchronizer import SessionSynchronizer

logger = logging.getLogger(__name__)


@dataclass
class SyncContext:
    """Everything one app process needs, built by build_context()."""
    settings: SyncSettings
    reachability: ReachabilityMonitor
    cache: LocalCacheStore
    credentials: CredentialStore
    remote: RemoteSessionClient
    synchronizer: SessionSynchronizer
    snapshots: RestaurantSnapshotCache
    orders: OrderSyncAdapter
    restaurants: RestaurantSyncAdapter
    delivery_feed: DeliveryOrderFeed

    def start(self, monitor: bool = True) -> SyncContext:
        """Take a first reachability reading and optionally start background probing."""
        self.reachability.check_now()
        if monitor:
            self.reachability.start()
        return self

    def close(self) -> None:
        self.reachability.stop()
        for adapter in (self.orders, self.restaurants, self.delivery_feed):
            adapter.detach()
        self.cache.close()
        logger.info("Sync context closed")

    def __enter__(self) -> SyncContext:
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False


def build_context(
    settings: Optional[SyncSettings] = None,
    remote: Optional[RemoteSessionClient] = None,
    probe: Optional[Callable[[], bool]] = None,
) -> SyncContext:
    """
    Construct a fresh SyncContext.

    Args:
        settings: Settings to use (default: load_settings())
        remote: Remote client (default: Supabase client built from settings)
        probe: Reachability probe (default: TCP probe of the configured hosts)

    Raises:
        ConfigurationError: no remote given and Supabase is not configured
    """
    settings = settings or load_settings()

    if remote is None:
        remote = SupabaseSessionClient(create_supabase_client(settings))

    if probe is None:
        reachability = ReachabilityMonitor.from_settings(settings)
    else:
        reachability = ReachabilityMonitor(
            probe,
            check_interval_online=settings.check_interval_online,
            check_interval_offline=settings.check_interval_offline,
        )

    cache = LocalCacheStore(settings.cache_db_path)
    cache.initialize()
    credentials = CredentialStore(settings.credential_db_path)

    synchronizer = SessionSynchronizer(
        remote=remote,
        credentials=credentials,
        cache=cache,
        reachability=reachability,
        credential_key=settings.credential_key,
        users_table=settings.users_table,
    )
    snapshots = RestaurantSnapshotCache(
        remote, cache, reachability, table=settings.snapshots_table
    )
    orders = OrderSyncAdapter(
        remote, cache, reachability, synchronizer, snapshots, table=settings.orders_table
    )
    restaurants = RestaurantSyncAdapter(
        remote, cache, reachability, synchronizer, table=settings.restaurants_table
    )
    delivery_feed = DeliveryOrderFeed(
        remote, cache, reachability, synchronizer, table=settings.orders_table
    )

    logger.info(f"Sync context built (data dir: {settings.data_dir})")
    return SyncContext(
        settings=settings,
        reachability=reachability,
        cache=cache,
        credentials=credentials,
        remote=remote,
        synchronizer=synchronizer,
        snapshots=snapshots,
        orders=orders,
        restaurants=restaurants,
        delivery_feed=delivery_feed,
    )
