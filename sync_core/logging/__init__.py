# =============================================================================
# sync_core/logging/__init__.py
# =============================================================================

from .config import (
    LogContext,
    SecretRedactingFilter,
    get_logger,
    redact,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "LogContext",
    "SecretRedactingFilter",
    "redact",
]
