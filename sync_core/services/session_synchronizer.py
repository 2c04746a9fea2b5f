# =============================================================================
# sync_core/services/session_synchronizer.py
# Session restoration, refresh and local caching of the current user
# =============================================================================
"""
SessionSynchronizer - the single owner of "who is the current user".

State machine:

    SignedOut --sign_in/sign_up--> SignedIn
    *         --restore-->         Restoring
    Restoring --online, refresh ok-->          SignedIn
    Restoring --offline-->                     SignedIn(from_cache) | SignedOut
    Restoring --online, no credential-->       SignedOut
    Restoring --online, refresh rejected-->    RefreshFailed --> SignedOut
    SignedIn  --sign_out-->                    SignedOut  (always, even offline)
    SignedIn  --update_profile-->              SignedIn

Every session-mutating call holds one re-entrant lock, so sign-in, sign-out,
refresh and profile updates are linearized per instance. A refresh token is
never reused: the rotated token overwrites it before anything else happens.
"""

from __future__ import annotations
import threading
from typing import Any, Callable, Dict, List, Optional

from sync_core.errors import safe_execute
from sync_core.errors.exceptions import (
    LocalStorageError,
    NoCredentialError,
    NoNetworkError,
    SyncCoreError,
)
from sync_core.models.base import utc_now
from sync_core.models.user import RemoteSession, UserRecord, UserRole
from sync_core.offline.credential_store import CredentialStore
from sync_core.offline.local_cache import LocalCacheStore
from sync_core.offline.reachability import ReachabilityMonitor
from sync_core.remote.base import RemoteSessionClient
from sync_core.services.base_service import BaseService
from sync_core.services.session_state import (
    RefreshFailed,
    Restoring,
    SessionEvent,
    SessionState,
    SignedIn,
    SignedOut,
)

SessionCallback = Callable[[SessionEvent], None]


def normalize_email(email: str) -> str:
    return email.strip().lower()


class SessionSynchronizer(BaseService):
    """
    Coordinates the remote identity provider, the credential store, the local
    cache and the reachability signal.

    Usage:
        synchronizer = SessionSynchronizer(remote, credentials, cache, reachability)
        synchronizer.register_callback(on_session_event)
        synchronizer.restore()
        if synchronizer.is_signed_in:
            print(synchronizer.current_user.email)
    """

    USERS_COLLECTION = "users"
    SESSION_COLLECTION = "session"
    CURRENT_USER_KEY = "current_user_id"

    def __init__(
        self,
        remote: RemoteSessionClient,
        credentials: CredentialStore,
        cache: LocalCacheStore,
        reachability: ReachabilityMonitor,
        credential_key: str = "supabase_refresh_token",
        users_table: str = "users",
    ):
        super().__init__()
        self.remote = remote
        self.credentials = credentials
        self.cache = cache
        self.reachability = reachability
        self.credential_key = credential_key
        self.users_table = users_table

        self._state: SessionState = SignedOut()
        self._lock = threading.RLock()
        self._callbacks: List[SessionCallback] = []

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def current_user(self) -> Optional[UserRecord]:
        state = self._state
        return state.user if isinstance(state, SignedIn) else None

    @property
    def is_signed_in(self) -> bool:
        return isinstance(self._state, SignedIn)

    # =========================================================================
    # EVENTS
    # =========================================================================

    def register_callback(self, callback: SessionCallback) -> None:
        """Register a callback for session state changes."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: SessionCallback) -> None:
        """Remove a registered callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _transition(self, new_state: SessionState) -> SessionState:
        previous = self._state
        self._state = new_state
        self.logger.info(f"Session state: {type(previous).__name__} -> {type(new_state).__name__}")

        event = SessionEvent(previous=previous, current=new_state)
        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception as e:
                self.logger.error(f"Error in session callback: {e}")
        return new_state

    # =========================================================================
    # LOCAL SNAPSHOT
    # =========================================================================

    def load_cached_user(self) -> Optional[UserRecord]:
        """Return the current Local User Snapshot, or None (never raises)."""
        try:
            user_id = self.cache.get(self.SESSION_COLLECTION, self.CURRENT_USER_KEY)
            if not user_id:
                return None
            row = self.cache.get(self.USERS_COLLECTION, str(user_id))
            if row is None:
                self.logger.warning(f"No cached user found for current id {user_id}")
                return None
            return UserRecord.from_row(row)
        except SyncCoreError as e:
            self.logger.warning(f"Could not read cached user, treating as absent: {e}")
            return None

    def _cache_user(self, user: UserRecord) -> None:
        # Only one snapshot is kept, so the current marker can never be ambiguous
        try:
            self.cache.replace_all(self.USERS_COLLECTION, {user.id: user.to_row()})
            self.cache.upsert(self.SESSION_COLLECTION, self.CURRENT_USER_KEY, user.id)
            self.logger.info(f"User cached locally: {user.email}")
        except LocalStorageError as e:
            self.logger.error(f"Failed to cache user locally: {e}")

    def _clear_cached_user(self) -> None:
        try:
            self.cache.delete(self.SESSION_COLLECTION, self.CURRENT_USER_KEY)
            self.cache.delete_all(self.USERS_COLLECTION)
        except LocalStorageError as e:
            self.logger.error(f"Failed to clear cached user: {e}")

    def _clear_session(self) -> None:
        """Drop the credential and, by cascade, the snapshot that depended on it."""
        self.credentials.delete(self.credential_key)
        self._clear_cached_user()

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _require_network(self, operation: str) -> None:
        if not self.reachability.is_connected:
            raise NoNetworkError(f"Cannot {operation} while offline", operation=operation)

    def _require_user(self) -> UserRecord:
        user = self.current_user
        if user is None:
            raise NoCredentialError("No signed-in user")
        return user

    def _store_refresh_token(self, session: RemoteSession) -> None:
        if not self.credentials.save(self.credential_key, session.refresh_token):
            # The previous token is already spent; don't leave it behind
            self.credentials.delete(self.credential_key)
            self.logger.warning("Failed to persist refresh token; session will not survive restart")

    def _fetch_user(self, user_id: str) -> UserRecord:
        row = self.remote.fetch_row(self.users_table, user_id)
        return UserRecord.from_row(row)

    def _establish(self, session: RemoteSession) -> SessionState:
        """Persist a fresh session and make its user current."""
        self._store_refresh_token(session)
        try:
            user = self._fetch_user(session.user_id)
        except Exception:
            self.credentials.delete(self.credential_key)
            raise
        self._cache_user(user)
        return self._transition(SignedIn(user=user, from_cache=False))

    def _refresh_with(self, refresh_token: str) -> UserRecord:
        session = self.remote.refresh_session(refresh_token)
        self._store_refresh_token(session)
        user = self._fetch_user(session.user_id)
        self._cache_user(user)
        return user

    def _fail_refresh(self, error: Exception) -> None:
        self.logger.error(f"Session refresh failed, clearing local session: {error}")
        self._clear_session()
        self._transition(RefreshFailed(last_known_user=None, error=str(error)))
        self._transition(SignedOut(reason="refresh_failed"))

    def _restore_offline(self) -> SessionState:
        user = self.load_cached_user()
        if user is None:
            self.logger.info("Offline with no cached user")
            return self._transition(SignedOut(reason="offline_no_cache"))
        self.logger.info(f"Offline: restored cached user {user.email}")
        return self._transition(SignedIn(user=user, from_cache=True))

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def restore(self) -> SessionState:
        """
        Restore the session at process start.

        Offline: use the Local User Snapshot only, without any network call.
        Online: rotate the refresh token, re-fetch and re-cache the user.
        """
        with self._lock, self.log_operation("Restoring session"):
            self._transition(Restoring())

            if not self.reachability.is_connected:
                return self._restore_offline()

            refresh_token = self.credentials.load(self.credential_key)
            if not refresh_token:
                self.logger.info("No refresh token found; signed out")
                self._clear_cached_user()
                return self._transition(SignedOut(reason="no_credential"))

            try:
                user = self._refresh_with(refresh_token)
            except NoNetworkError as e:
                self.logger.warning(f"Network dropped during restore, using cache: {e}")
                return self._restore_offline()
            except Exception as e:
                self._fail_refresh(e)
                return self._state

            return self._transition(SignedIn(user=user, from_cache=False))

    def refresh(self) -> SessionState:
        """Rotate the session on demand while signed in."""
        with self._lock, self.log_operation("Refreshing session"):
            self._require_user()
            self._require_network("refresh the session")

            refresh_token = self.credentials.load(self.credential_key)
            if not refresh_token:
                raise NoCredentialError("No refresh token stored")

            try:
                user = self._refresh_with(refresh_token)
            except NoNetworkError:
                raise
            except Exception as e:
                self._fail_refresh(e)
                raise

            return self._transition(SignedIn(user=user, from_cache=False))

    def sign_in(self, email: str, password: str) -> SessionState:
        """Password sign-in; on success the user row is fetched and cached."""
        with self._lock, self.log_operation("Signing in"):
            self._require_network("sign in")
            session = self.remote.sign_in(normalize_email(email), password)
            return self._establish(session)

    def sign_up(
        self,
        email: str,
        password: str,
        name: str,
        role: UserRole,
    ) -> SessionState:
        """
        Create the account and its users row.

        Returns SignedOut(reason="confirmation_required") when the provider
        issues no session until the email is confirmed.
        """
        with self._lock, self.log_operation("Signing up"):
            self._require_network("sign up")
            clean_email = normalize_email(email)

            session = self.remote.sign_up(clean_email, password)
            if session is None:
                return self._transition(SignedOut(reason="confirmation_required"))

            new_user = UserRecord(
                id=session.user_id,
                email=clean_email,
                name=name,
                username=clean_email.split("@")[0],
                role=role,
                created_at=utc_now(),
                has_completed_onboarding=False,
            )
            self.remote.insert_row(self.users_table, new_user.to_row())
            return self._establish(session)

    def sign_out(self) -> SessionState:
        """
        Leave the signed-in state. Local state is cleared unconditionally;
        remote revocation is best-effort and only attempted when reachable.
        """
        with self._lock, self.log_operation("Signing out"):
            try:
                if self.reachability.is_connected:
                    safe_execute(
                        self.remote.sign_out,
                        show_user_message=False,
                        error_message="Remote sign-out failed; continuing locally",
                    )
                else:
                    self.logger.info("Offline: skipping remote sign-out")
            finally:
                self._clear_session()
            return self._transition(SignedOut(reason="signed_out"))

    def update_profile(
        self,
        email: Optional[str] = None,
        name: Optional[str] = None,
        username: Optional[str] = None,
    ) -> SessionState:
        """
        Update profile fields remotely, then re-cache the canonical row.

        A failed auth-provider email change is logged and does not stop the
        users-row update.
        """
        with self._lock, self.log_operation("Updating profile"):
            user = self._require_user()
            self._require_network("update the profile")

            fields: Dict[str, Any] = {}
            if name is not None and name != user.name:
                fields["name"] = name
            if username is not None and username != user.username:
                fields["username"] = username
            if email is not None:
                clean_email = normalize_email(email)
                if clean_email != user.email:
                    try:
                        self.remote.update_auth_email(clean_email)
                    except SyncCoreError as e:
                        self.logger.warning(f"Auth email update failed, continuing: {e}")
                    fields["email"] = clean_email

            if not fields:
                return self._state
            return self._apply_user_update(user, fields)

    def complete_onboarding(self) -> SessionState:
        """Mark onboarding complete remotely and re-cache the user."""
        with self._lock, self.log_operation("Completing onboarding"):
            user = self._require_user()
            self._require_network("complete onboarding")
            if user.has_completed_onboarding:
                return self._state
            return self._apply_user_update(user, {"has_completed_onboarding": True})

    def _apply_user_update(self, user: UserRecord, fields: Dict[str, Any]) -> SessionState:
        self.remote.update_row(self.users_table, user.id, fields)
        fresh = self._fetch_user(user.id)
        self._cache_user(fresh)
        return self._transition(SignedIn(user=fresh, from_cache=False))
