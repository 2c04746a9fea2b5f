# =============================================================================
# tests/integration/test_session_lifecycle.py
# End-to-end session and data flows across process restarts
# =============================================================================

import pytest

from sync_core.config import SyncSettings
from sync_core.context import build_context
from sync_core.errors import NoNetworkError
from sync_core.services import SignedIn, SignedOut

PASSWORD = "secret123"


@pytest.fixture
def settings(tmp_path):
    return SyncSettings(data_dir=tmp_path / "app_data")


@pytest.fixture
def launch(settings, remote):
    """
    Start an app process over the same data directory.
    Every context built here is closed at teardown.
    """
    contexts = []

    def start(online=True):
        ctx = build_context(settings, remote=remote, probe=lambda: online)
        ctx.start(monitor=False)
        contexts.append(ctx)
        return ctx

    yield start
    for ctx in contexts:
        ctx.close()


class TestAppStart:
    """Restoration at launch"""

    def test_fresh_install_offline(self, launch, remote):
        """Fresh install, offline: signed out, no network calls"""
        app = launch(online=False)

        state = app.synchronizer.restore()

        assert isinstance(state, SignedOut)
        assert remote.network_calls == 0

    def test_fresh_install_online(self, launch, remote):
        """No credential: signed out without calling the remote"""
        state = launch().synchronizer.restore()
        assert isinstance(state, SignedOut)
        assert remote.network_calls == 0

    def test_previous_user_offline(self, launch, registered_remote, customer_row):
        """Signed in last time, offline now: same cached identity"""
        first = launch()
        first.synchronizer.sign_in(customer_row["email"], PASSWORD)
        first.close()
        registered_remote.calls.clear()

        state = launch(online=False).synchronizer.restore()

        assert isinstance(state, SignedIn)
        assert state.from_cache
        assert state.user.id == customer_row["id"]
        assert state.user.email == customer_row["email"]
        assert registered_remote.network_calls == 0

    def test_sign_in_then_offline_restart(self, launch, registered_remote, customer_row):
        """Snapshot written at sign-in is what an offline restart sees"""
        first = launch()
        signed = first.synchronizer.sign_in(customer_row["email"], PASSWORD)
        first.close()

        restored = launch(online=False).synchronizer.restore()

        assert restored.user == signed.user

    def test_online_restarts_rotate_token(self, launch, registered_remote, customer_row, settings):
        first = launch()
        first.synchronizer.sign_in(customer_row["email"], PASSWORD)
        tokens = [first.credentials.load(settings.credential_key)]
        first.close()

        for _ in range(3):
            app = launch()
            assert isinstance(app.synchronizer.restore(), SignedIn)
            tokens.append(app.credentials.load(settings.credential_key))
            app.close()

        assert len(set(tokens)) == 4
        assert list(registered_remote.refresh_tokens) == [tokens[-1]]

    def test_revoked_session(self, launch, registered_remote, customer_row):
        """Server-side revocation logs the user out on next launch"""
        first = launch()
        first.synchronizer.sign_in(customer_row["email"], PASSWORD)
        first.orders.fetch()
        first.close()
        registered_remote.refresh_tokens.clear()

        app = launch()
        state = app.synchronizer.restore()

        assert state == SignedOut(reason="refresh_failed")
        assert app.synchronizer.load_cached_user() is None
        assert app.cache.keys("orders") == []


class TestOrdersAcrossRestarts:
    """Domain data with changing connectivity"""

    def test_empty_cache_single_query(self, launch, registered_remote, customer_row):
        """Exactly one newest-first query, cached under the owner"""
        app = launch()
        app.synchronizer.sign_in(customer_row["email"], PASSWORD)
        registered_remote.calls.clear()

        result = app.orders.fetch(customer_row["id"])

        assert registered_remote.calls["query_rows"] == 1
        created = [o.created_at for o in result]
        assert created == sorted(created, reverse=True)
        assert len(app.cache.get("orders", customer_row["id"])) == len(result)

    def test_orders_available_offline_after_restart(self, launch, registered_remote, customer_row):
        first = launch()
        first.synchronizer.sign_in(customer_row["email"], PASSWORD)
        online_view = first.orders.fetch_enriched()
        first.close()
        registered_remote.calls.clear()

        app = launch(online=False)
        app.synchronizer.restore()
        offline_view = app.orders.fetch_enriched()

        assert [o.id for o, _ in offline_view] == [o.id for o, _ in online_view]
        assert registered_remote.network_calls == 0

    def test_offline_refresh_keeps_data(self, launch, registered_remote, customer_row):
        first = launch()
        first.synchronizer.sign_in(customer_row["email"], PASSWORD)
        first.orders.fetch()
        first.close()

        app = launch(online=False)
        app.synchronizer.restore()
        with pytest.raises(NoNetworkError):
            app.orders.fetch(force_refresh=True)
        assert len(app.orders.fetch()) == 3

    def test_sign_out_offline_then_back_online(self, launch, registered_remote, customer_row, settings):
        first = launch()
        first.synchronizer.sign_in(customer_row["email"], PASSWORD)
        first.orders.fetch()
        first.reachability.force_offline()

        state = first.synchronizer.sign_out()

        assert isinstance(state, SignedOut)
        assert registered_remote.calls["sign_out"] == 0
        assert first.credentials.load(settings.credential_key) is None
        assert first.cache.keys("orders") == []
        first.close()

        assert isinstance(launch().synchronizer.restore(), SignedOut)


class TestRoleCollections:
    """Owner and driver data across restarts"""

    def test_owner_restaurants_offline_restart(self, launch, registered_remote, owner_row):
        first = launch()
        first.synchronizer.sign_in(owner_row["email"], PASSWORD)
        first.restaurants.fetch()
        first.close()
        registered_remote.calls.clear()

        app = launch(online=False)
        app.synchronizer.restore()

        assert [r.name for r in app.restaurants.fetch()] == ["Dumpling House", "Noodle Bar"]
        assert registered_remote.network_calls == 0

    def test_offline_enrichment_keeps_orders(self, launch, registered_remote, customer_row):
        """Orders cached without snapshots still come back offline"""
        first = launch()
        first.synchronizer.sign_in(customer_row["email"], PASSWORD)
        first.orders.fetch()
        first.close()

        app = launch(online=False)
        app.synchronizer.restore()

        assert app.orders.fetch_enriched() == []
        assert len(app.orders.load_local()) == 3
