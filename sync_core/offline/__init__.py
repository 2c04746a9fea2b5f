# =============================================================================
# sync_core/offline/__init__.py
# Local-first building blocks: reachability, local cache, credential store
# =============================================================================

from sync_core.offline.reachability import (
    ReachabilityMonitor,
    ReachabilityState,
    ReachabilityStatus,
    tcp_probe,
)

from sync_core.offline.local_cache import LocalCacheStore

from sync_core.offline.credential_store import CredentialStore

__all__ = [
    # Reachability
    "ReachabilityMonitor",
    "ReachabilityState",
    "ReachabilityStatus",
    "tcp_probe",
    # Local cache
    "LocalCacheStore",
    # Credentials
    "CredentialStore",
]
