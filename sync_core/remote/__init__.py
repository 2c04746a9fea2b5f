# =============================================================================
# sync_core/remote/__init__.py
# Remote Session Client boundary
# =============================================================================

from sync_core.remote.base import RemoteSessionClient, RowOrder

__all__ = ["RemoteSessionClient", "RowOrder"]
