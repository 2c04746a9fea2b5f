# =============================================================================
# tests/unit/test_supabase_client.py
# Unit Tests for SupabaseSessionClient (mocked supabase-py client)
# =============================================================================

from unittest.mock import MagicMock

import httpx
import pytest
from postgrest.exceptions import APIError
from supabase import AuthError

from sync_core.config import SyncSettings
from sync_core.errors import ConfigurationError, DecodeError, NoNetworkError, RemoteRejected
from sync_core.remote import RowOrder
from sync_core.remote.supabase_client import SupabaseSessionClient, create_supabase_client


class StubAuthError(AuthError):
    """AuthError with a stable constructor across supabase-auth releases"""

    def __init__(self, message, status=400):
        Exception.__init__(self, message)
        self.message = message
        self.status = status


def session_response(user_id="user-ada", refresh_token="refresh-1"):
    response = MagicMock()
    response.session.user.id = user_id
    response.session.user.email = "ada@example.com"
    response.session.access_token = "access-1"
    response.session.refresh_token = refresh_token
    return response


@pytest.fixture
def client(mock_supabase):
    return SupabaseSessionClient(mock_supabase)


class TestAuthCalls:
    """Auth operations and session mapping"""

    def test_sign_in(self, client, mock_supabase):
        mock_supabase.auth.sign_in_with_password.return_value = session_response()

        session = client.sign_in("ada@example.com", "secret")

        mock_supabase.auth.sign_in_with_password.assert_called_once_with(
            {"email": "ada@example.com", "password": "secret"}
        )
        assert session.user_id == "user-ada"
        assert session.refresh_token == "refresh-1"

    def test_sign_up_without_session(self, client, mock_supabase):
        """Email confirmation pending"""
        response = MagicMock()
        response.session = None
        mock_supabase.auth.sign_up.return_value = response

        assert client.sign_up("ada@example.com", "secret") is None

    def test_refresh(self, client, mock_supabase):
        mock_supabase.auth.refresh_session.return_value = session_response(refresh_token="refresh-2")
        session = client.refresh_session("refresh-1")
        mock_supabase.auth.refresh_session.assert_called_once_with("refresh-1")
        assert session.refresh_token == "refresh-2"

    def test_refresh_without_session_rejected(self, client, mock_supabase):
        response = MagicMock()
        response.session = None
        mock_supabase.auth.refresh_session.return_value = response
        with pytest.raises(RemoteRejected):
            client.refresh_session("refresh-1")

    def test_incomplete_session(self, client, mock_supabase):
        response = session_response()
        response.session.refresh_token = None
        mock_supabase.auth.sign_in_with_password.return_value = response
        with pytest.raises(DecodeError):
            client.sign_in("ada@example.com", "secret")

    def test_update_auth_email(self, client, mock_supabase):
        client.update_auth_email("new@example.com")
        mock_supabase.auth.update_user.assert_called_once_with({"email": "new@example.com"})


class TestErrorMapping:
    """supabase-py / postgrest / httpx errors become SyncCoreErrors"""

    def test_auth_error(self, client, mock_supabase):
        mock_supabase.auth.sign_in_with_password.side_effect = StubAuthError("Invalid login credentials")
        with pytest.raises(RemoteRejected) as exc_info:
            client.sign_in("ada@example.com", "wrong")
        assert exc_info.value.details == {"operation": "sign_in", "status": 400}

    def test_api_error(self, client, mock_supabase):
        query = mock_supabase.table.return_value.select.return_value.eq.return_value.single.return_value
        query.execute.side_effect = APIError({
            "message": "JSON object requested, multiple (or no) rows returned",
            "code": "PGRST116",
            "details": None,
            "hint": None,
        })
        with pytest.raises(RemoteRejected) as exc_info:
            client.fetch_row("users", "missing")
        assert exc_info.value.details["status"] == "PGRST116"

    def test_transport_error(self, client, mock_supabase):
        mock_supabase.auth.refresh_session.side_effect = httpx.ConnectError("connection refused")
        with pytest.raises(NoNetworkError):
            client.refresh_session("refresh-1")


class TestTableCalls:
    """PostgREST query building"""

    def test_fetch_row(self, client, mock_supabase):
        query = mock_supabase.table.return_value.select.return_value.eq.return_value.single.return_value
        query.execute.return_value.data = {"id": "user-ada"}

        assert client.fetch_row("users", "user-ada") == {"id": "user-ada"}
        mock_supabase.table.assert_called_with("users")
        mock_supabase.table.return_value.select.return_value.eq.assert_called_with("id", "user-ada")

    def test_fetch_row_not_a_dict(self, client, mock_supabase):
        query = mock_supabase.table.return_value.select.return_value.eq.return_value.single.return_value
        query.execute.return_value.data = None
        with pytest.raises(DecodeError):
            client.fetch_row("users", "user-ada")

    def test_query_rows_filters_and_order(self, client, mock_supabase):
        select = mock_supabase.table.return_value.select.return_value
        ordered = select.eq.return_value.order.return_value
        ordered.execute.return_value.data = [{"id": "order-1"}]

        rows = client.query_rows("orders", {"customer_id": "user-ada"}, order=RowOrder("created_at"))

        assert rows == [{"id": "order-1"}]
        select.eq.assert_called_once_with("customer_id", "user-ada")
        select.eq.return_value.order.assert_called_once_with("created_at", desc=True)

    def test_query_rows_unfiltered(self, client, mock_supabase):
        """mock_supabase returns an empty list for a bare select"""
        assert client.query_rows("restaurant_owner_snapshots", {}) == []

    def test_insert_row(self, client, mock_supabase):
        client.insert_row("users", {"id": "user-ada"})
        mock_supabase.table.return_value.insert.assert_called_once_with({"id": "user-ada"})

    def test_update_row(self, client, mock_supabase):
        client.update_row("users", "user-ada", {"name": "Ada"})
        update = mock_supabase.table.return_value.update
        update.assert_called_once_with({"name": "Ada"})
        update.return_value.eq.assert_called_once_with("id", "user-ada")


class TestCreateClient:
    def test_requires_configuration(self):
        with pytest.raises(ConfigurationError):
            create_supabase_client(SyncSettings())
