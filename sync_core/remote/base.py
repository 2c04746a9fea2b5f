# =============================================================================
# sync_core/remote/base.py
# Remote Session Client interface
# =============================================================================
"""
The narrow remote-access API the sync core depends on.

Implementations raise:
- RemoteRejected  for non-success auth/table responses
- NoNetworkError  for transport failures
- DecodeError     for malformed responses
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, List, NamedTuple, Optional

from sync_core.models.user import RemoteSession


class RowOrder(NamedTuple):
    """Ordering for query_rows()."""
    column: str
    descending: bool = True


class RemoteSessionClient(ABC):
    """Session, table-row and refresh-token operations of the remote service."""

    @abstractmethod
    def sign_up(self, email: str, password: str) -> Optional[RemoteSession]:
        """Create an account. Returns None when email confirmation is pending."""

    @abstractmethod
    def sign_in(self, email: str, password: str) -> RemoteSession:
        """Password sign-in."""

    @abstractmethod
    def refresh_session(self, refresh_token: str) -> RemoteSession:
        """Exchange a refresh token for a new session (the token rotates)."""

    @abstractmethod
    def sign_out(self) -> None:
        """Revoke the current remote session."""

    @abstractmethod
    def update_auth_email(self, email: str) -> None:
        """Change the auth-provider email (may require verification)."""

    @abstractmethod
    def fetch_row(self, table: str, row_id: str) -> Dict[str, Any]:
        """Fetch exactly one row by id."""

    @abstractmethod
    def insert_row(self, table: str, row: Dict[str, Any]) -> None:
        """Insert one row."""

    @abstractmethod
    def update_row(self, table: str, row_id: str, fields: Dict[str, Any]) -> None:
        """Update columns of the row with the given id."""

    @abstractmethod
    def query_rows(
        self,
        table: str,
        filters: Dict[str, Any],
        order: Optional[RowOrder] = None,
    ) -> List[Dict[str, Any]]:
        """Return rows matching every equality filter, in the given order."""
