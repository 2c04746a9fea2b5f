# =============================================================================
# sync_core/remote/supabase_client.py
# Supabase implementation of the Remote Session Client
# =============================================================================

from __future__ import annotations
from typing import Any, Dict, List, Optional
import logging

import httpx
from postgrest.exceptions import APIError
from supabase import AuthError, Client, create_client

from sync_core.errors.exceptions import DecodeError, NoNetworkError, RemoteRejected
from sync_core.models.user import RemoteSession
from sync_core.remote.base import RemoteSessionClient, RowOrder

logger = logging.getLogger(__name__)


def create_supabase_client(settings) -> Client:
    """
    Create a Supabase client from SyncSettings.

    Raises:
        ConfigurationError: when the URL or key is missing
    """
    settings.require_remote()
    return create_client(settings.supabase_url, settings.supabase_key)


class SupabaseSessionClient(RemoteSessionClient):
    """
    Thin adapter over supabase-py.

    Usage:
        remote = SupabaseSessionClient(create_supabase_client(settings))
        session = remote.sign_in("user@example.com", "secret")
    """

    def __init__(self, client: Client):
        self.client = client

    # =========================================================================
    # ERROR MAPPING
    # =========================================================================

    def _call(self, operation: str, func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except AuthError as e:
            raise RemoteRejected(
                getattr(e, "message", None) or str(e),
                operation=operation,
                status=getattr(e, "status", None),
            )
        except APIError as e:
            raise RemoteRejected(
                e.message or str(e),
                operation=operation,
                status=e.code,
            )
        except httpx.TransportError as e:
            raise NoNetworkError(f"Network error during {operation}: {e}", operation=operation)

    @staticmethod
    def _to_session(session, operation: str) -> RemoteSession:
        user = getattr(session, "user", None)
        if user is None or not getattr(session, "refresh_token", None):
            raise DecodeError(f"Incomplete session returned by {operation}", "RemoteSession")
        return RemoteSession(
            user_id=str(user.id),
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            email=getattr(user, "email", None),
        )

    # =========================================================================
    # AUTH
    # =========================================================================

    def sign_up(self, email: str, password: str) -> Optional[RemoteSession]:
        response = self._call(
            "sign_up",
            self.client.auth.sign_up,
            {"email": email, "password": password},
        )
        if response.session is None:
            logger.info("Sign-up accepted without a session (email confirmation pending)")
            return None
        return self._to_session(response.session, "sign_up")

    def sign_in(self, email: str, password: str) -> RemoteSession:
        response = self._call(
            "sign_in",
            self.client.auth.sign_in_with_password,
            {"email": email, "password": password},
        )
        if response.session is None:
            raise RemoteRejected("Sign-in returned no session", operation="sign_in")
        return self._to_session(response.session, "sign_in")

    def refresh_session(self, refresh_token: str) -> RemoteSession:
        response = self._call("refresh_session", self.client.auth.refresh_session, refresh_token)
        if response.session is None:
            raise RemoteRejected("Refresh returned no session", operation="refresh_session")
        return self._to_session(response.session, "refresh_session")

    def sign_out(self) -> None:
        self._call("sign_out", self.client.auth.sign_out)

    def update_auth_email(self, email: str) -> None:
        self._call("update_auth_email", self.client.auth.update_user, {"email": email})

    # =========================================================================
    # TABLES
    # =========================================================================

    def fetch_row(self, table: str, row_id: str) -> Dict[str, Any]:
        response = self._call(
            "fetch_row",
            lambda: self.client.table(table).select("*").eq("id", row_id).single().execute(),
        )
        if not isinstance(response.data, dict):
            raise DecodeError(f"Expected a single row from {table}", table)
        return response.data

    def insert_row(self, table: str, row: Dict[str, Any]) -> None:
        self._call("insert_row", lambda: self.client.table(table).insert(row).execute())

    def update_row(self, table: str, row_id: str, fields: Dict[str, Any]) -> None:
        self._call(
            "update_row",
            lambda: self.client.table(table).update(fields).eq("id", row_id).execute(),
        )

    def query_rows(
        self,
        table: str,
        filters: Dict[str, Any],
        order: Optional[RowOrder] = None,
    ) -> List[Dict[str, Any]]:
        def run():
            query = self.client.table(table).select("*")
            for column, value in filters.items():
                query = query.eq(column, value)
            if order is not None:
                query = query.order(order.column, desc=order.descending)
            return query.execute()

        response = self._call("query_rows", run)
        if not isinstance(response.data, list):
            raise DecodeError(f"Expected a list of rows from {table}", table)
        return response.data
