# =============================================================================
# sync_core/models/user.py
# User and Session Records
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sync_core.errors.exceptions import DecodeError
from sync_core.models.base import format_timestamp, parse_timestamp, require


class UserRole(Enum):
    """Account role stored in the users table."""
    CUSTOMER = "customer"
    DRIVER = "driver"
    RESTAURANT_OWNER = "restaurant"


@dataclass(frozen=True)
class UserRecord:
    """
    Canonical user row.

    The same shape is used for the remote `users` row and the local
    snapshot; the local copy is always a full overwrite of the remote one.
    """
    id: str
    email: str
    name: str
    username: str
    role: UserRole
    created_at: Optional[datetime] = None
    has_completed_onboarding: bool = False

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> UserRecord:
        role_value = require(row, "role", "UserRecord")
        try:
            role = UserRole(role_value)
        except ValueError:
            raise DecodeError(f"Unknown role {role_value!r}", "UserRecord", "role")

        return cls(
            id=str(require(row, "id", "UserRecord")),
            email=str(require(row, "email", "UserRecord")),
            name=str(row.get("name") or ""),
            username=str(row.get("username") or ""),
            role=role,
            created_at=parse_timestamp(row.get("created_at"), "UserRecord", "created_at"),
            has_completed_onboarding=bool(row.get("has_completed_onboarding", False)),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "username": self.username,
            "role": self.role.value,
            "created_at": format_timestamp(self.created_at),
            "has_completed_onboarding": self.has_completed_onboarding,
        }


@dataclass(frozen=True)
class RemoteSession:
    """Server-validated identity grant: access credential plus rotating refresh token."""
    user_id: str
    access_token: str
    refresh_token: str
    email: Optional[str] = None

    def __repr__(self) -> str:
        # Never print secrets into logs
        return f"RemoteSession(user_id={self.user_id!r}, email={self.email!r})"
