# =============================================================================
# sync_core/services/session_state.py
# Session lifecycle states published by the SessionSynchronizer
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Union

from sync_core.models.user import UserRecord


@dataclass(frozen=True)
class SignedOut:
    """No usable identity. `reason` says how we got here."""
    reason: Optional[str] = None


@dataclass(frozen=True)
class Restoring:
    """App-start restoration in progress."""


@dataclass(frozen=True)
class SignedIn:
    """A user is current. `from_cache` is True when restored offline."""
    user: UserRecord
    from_cache: bool = False


@dataclass(frozen=True)
class RefreshFailed:
    """The remote rejected the stored session; local identity has been cleared."""
    last_known_user: Optional[UserRecord]
    error: str


SessionState = Union[SignedOut, Restoring, SignedIn, RefreshFailed]


@dataclass(frozen=True)
class SessionEvent:
    """Published on every state change."""
    previous: SessionState
    current: SessionState

    @property
    def signed_in(self) -> bool:
        return isinstance(self.current, SignedIn)

    @property
    def signed_out(self) -> bool:
        return isinstance(self.current, SignedOut)
