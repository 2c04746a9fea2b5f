# =============================================================================
# sync_core/config/__init__.py
# =============================================================================

from .settings import SyncSettings, load_settings

__all__ = ["SyncSettings", "load_settings"]
