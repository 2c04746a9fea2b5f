# =============================================================================
# sync_core/__init__.py
# Local-first authentication & data synchronization core
# =============================================================================
"""
Local-first session and data sync on top of Supabase.

Architecture:
------------
┌─────────────────────────────────────────────────────────────────┐
│                       LOCAL-FIRST SYNC CORE                      │
├─────────────────────────────────────────────────────────────────┤
│                                                                  │
│   ┌──────────────────────────────────────────────────────────┐  │
│   │            SessionBridge (st.session_state)               │  │
│   └──────────────────────────────────────────────────────────┘  │
│                            │                                     │
│              ┌─────────────┴─────────────┐                      │
│              ▼                           ▼                      │
│   ┌──────────────────┐        ┌──────────────────┐             │
│   │SessionSynchronizer│◄──────│ Order/Restaurant │             │
│   │ (current user)   │ events │ /Delivery sync   │             │
│   └──────────────────┘        └──────────────────┘             │
│        │       │      │                │                        │
│        ▼       ▼      ▼                ▼                        │
│ ┌──────────┐┌──────┐┌────────────┐┌──────────────┐             │
│ │Credential││Reach-││ LocalCache ││RemoteSession │             │
│ │  Store   ││ability││  (SQLite)  ││Client (Supa.)│             │
│ └──────────┘└──────┘└────────────┘└──────────────┘             │
└─────────────────────────────────────────────────────────────────┘

Usage:
------
from sync_core import build_context

with build_context() as context:
    context.synchronizer.restore()
    if context.synchronizer.is_signed_in:
        orders = context.orders.fetch_enriched()
"""

from sync_core.config import SyncSettings, load_settings
from sync_core.context import SyncContext, build_context

__version__ = "0.1.0"

__all__ = [
    "SyncSettings",
    "load_settings",
    "SyncContext",
    "build_context",
]
