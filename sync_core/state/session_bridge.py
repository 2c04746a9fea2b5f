# =============================================================================
# sync_core/state/session_bridge.py
# Mirrors SessionSynchronizer state into st.session_state
# =============================================================================
"""
Streamlit adapter for the sync core.

The bridge subscribes to session events and keeps a small set of
session-state keys current, so pages can keep reading
`st.session_state["authenticated"]` and friends without touching the core.
Actions are wrapped so pages receive a ServiceResult instead of exceptions.

Usage:
    bridge = SessionBridge(context)
    bridge.init_state()
    result = bridge.sign_in(email, password)
    if not result:
        st.warning(result.error)
"""

from __future__ import annotations
from typing import Any, MutableMapping, Optional

import streamlit as st

from sync_core.context import SyncContext
from sync_core.models.user import UserRecord, UserRole
from sync_core.services.base_service import BaseService, ServiceResult
from sync_core.services.session_state import RefreshFailed, SessionEvent, SignedIn, SignedOut

# Central registry for session-state keys owned by the bridge.
SESSION_DEFAULTS = {
    "authenticated": False,
    "user_id": None,
    "username": None,
    "name": None,
    "email": None,
    "role": None,
    "has_completed_onboarding": False,
    "session_from_cache": False,
    "session_status": "signed_out",
    "session_error": None,
}


def _status_of(state: Any) -> str:
    if isinstance(state, SignedIn):
        return "signed_in"
    if isinstance(state, SignedOut):
        return "signed_out"
    if isinstance(state, RefreshFailed):
        return "refresh_failed"
    return "restoring"


class SessionBridge(BaseService):
    """Keeps st.session_state in step with one SyncContext."""

    def __init__(self, context: SyncContext, state: Optional[MutableMapping[str, Any]] = None):
        super().__init__()
        self.context = context
        self._state = state if state is not None else st.session_state
        context.synchronizer.register_callback(self._on_session_event)

    def detach(self) -> None:
        self.context.synchronizer.unregister_callback(self._on_session_event)

    # =========================================================================
    # STATE
    # =========================================================================

    def init_state(self) -> None:
        """Set defaults for missing keys and copy the current session in."""
        for key, value in SESSION_DEFAULTS.items():
            if key not in self._state:
                self._state[key] = value
        self._apply(self.context.synchronizer.state)

    def _apply(self, state: Any) -> None:
        self._state["session_status"] = _status_of(state)

        if isinstance(state, RefreshFailed):
            self._state["session_error"] = state.error
            return

        user: Optional[UserRecord] = state.user if isinstance(state, SignedIn) else None
        if user is None:
            if isinstance(state, SignedOut):
                for key, value in SESSION_DEFAULTS.items():
                    if key not in ("session_status", "session_error"):
                        self._state[key] = value
            return

        self._state.update({
            "authenticated": True,
            "user_id": user.id,
            "username": user.username,
            "name": user.name,
            "email": user.email,
            "role": user.role.value,
            "has_completed_onboarding": user.has_completed_onboarding,
            "session_from_cache": state.from_cache,
            "session_error": None,
        })

    def _on_session_event(self, event: SessionEvent) -> None:
        self._apply(event.current)

    def is_authenticated(self) -> bool:
        return bool(self._state.get("authenticated", False))

    def get_status_display(self) -> dict:
        """Session + connectivity summary for a sidebar badge."""
        display = self.context.reachability.get_status_display()
        display["session"] = self._state.get("session_status", "signed_out")
        display["from_cache"] = self._state.get("session_from_cache", False)
        return display

    # =========================================================================
    # ACTIONS
    # =========================================================================

    def restore(self) -> ServiceResult:
        return self.run_action("Restore session", self.context.synchronizer.restore)

    def sign_in(self, email: str, password: str) -> ServiceResult:
        return self.run_action("Sign in", self.context.synchronizer.sign_in, email, password)

    def sign_up(self, email: str, password: str, name: str, role: UserRole) -> ServiceResult:
        return self.run_action(
            "Sign up", self.context.synchronizer.sign_up, email, password, name, role
        )

    def sign_out(self) -> ServiceResult:
        return self.run_action("Sign out", self.context.synchronizer.sign_out)

    def update_profile(
        self,
        email: Optional[str] = None,
        name: Optional[str] = None,
        username: Optional[str] = None,
    ) -> ServiceResult:
        return self.run_action(
            "Update profile",
            self.context.synchronizer.update_profile,
            email=email,
            name=name,
            username=username,
        )

    def complete_onboarding(self) -> ServiceResult:
        return self.run_action("Complete onboarding", self.context.synchronizer.complete_onboarding)

    def load_orders(self, force_refresh: bool = False) -> ServiceResult:
        """Enriched orders as a DataFrame for st.dataframe()."""
        return self.run_action(
            "Load orders", self.context.orders.fetch_frame, force_refresh=force_refresh
        )

    def load_restaurants(self, force_refresh: bool = False) -> ServiceResult:
        """Restaurant owner view: the owner's restaurants as a DataFrame."""
        return self.run_action(
            "Load restaurants", self.context.restaurants.fetch_frame, force_refresh=force_refresh
        )

    def load_delivery_feed(self, force_refresh: bool = False) -> ServiceResult:
        """Driver view: pending delivery orders from every restaurant."""
        return self.run_action(
            "Load delivery feed", self.context.delivery_feed.fetch_all, force_refresh=force_refresh
        )
