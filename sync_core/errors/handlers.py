# =============================================================================
# sync_core/errors/handlers.py
# Logging + user feedback for sync core errors
# =============================================================================

from __future__ import annotations
from typing import Callable, Optional, TypeVar

import streamlit as st

from sync_core.logging import get_logger
from .exceptions import NoNetworkError, SyncCoreError

logger = get_logger(__name__)

T = TypeVar("T")

# Shown instead of the raw message when no user_message is given
FRIENDLY_MESSAGES = {
    "NET_001": "You appear to be offline. Saved data is shown where available.",
    "AUTH_001": "Please sign in to continue.",
    "CONFIG_001": "The app is not connected to its backend.",
}


def user_message_for(error: Exception) -> str:
    if isinstance(error, SyncCoreError):
        if error.code == "REMOTE_001":
            return error.message
        return FRIENDLY_MESSAGES.get(error.code, error.message)
    return str(error) or error.__class__.__name__


def handle_error(
    error: Exception,
    show_user_message: bool = True,
    log_error: bool = True,
    user_message: Optional[str] = None,
) -> str:
    """
    Log an error and optionally surface it in the Streamlit page.

    Offline errors are shown as warnings; unrecoverable ones ask the user
    to contact support.

    Returns:
        The message shown (or that would have been shown)
    """
    message = user_message or user_message_for(error)

    if log_error:
        if isinstance(error, SyncCoreError):
            logger.error(f"[{error.code}] {error.message}", extra={"details": error.details}, exc_info=error)
        else:
            logger.error(f"[UNKNOWN] {error}", exc_info=error)

    if show_user_message:
        if isinstance(error, NoNetworkError):
            st.warning(message)
        elif isinstance(error, SyncCoreError) and not error.recoverable:
            st.error(f"Critical Error: {message}. Please contact support.")
        else:
            st.error(f"Error: {message}")

    return message


def safe_execute(
    func: Callable[..., T],
    *args,
    default: Optional[T] = None,
    error_message: Optional[str] = None,
    show_user_message: bool = True,
    reraise: bool = False,
    **kwargs,
) -> Optional[T]:
    """
    Call func; on failure handle the error and return `default`.

    Usage:
        safe_execute(remote.sign_out, show_user_message=False)
    """
    try:
        return func(*args, **kwargs)
    except Exception as e:
        handle_error(e, show_user_message=show_user_message, user_message=error_message)
        if reraise:
            raise
        return default
