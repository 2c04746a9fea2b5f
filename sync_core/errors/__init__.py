# =============================================================================
# sync_core/errors/__init__.py
# Centralized Error Handling for the Sync Core
# =============================================================================

from .exceptions import (
    SyncCoreError,
    NoNetworkError,
    NoCredentialError,
    RemoteRejected,
    DecodeError,
    LocalStorageError,
    ConfigurationError,
)

from .handlers import (
    handle_error,
    user_message_for,
    safe_execute,
)

__all__ = [
    # Exceptions
    "SyncCoreError",
    "NoNetworkError",
    "NoCredentialError",
    "RemoteRejected",
    "DecodeError",
    "LocalStorageError",
    "ConfigurationError",
    # Handlers
    "handle_error",
    "user_message_for",
    "safe_execute",
]
