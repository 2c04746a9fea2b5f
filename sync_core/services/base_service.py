# =============================================================================
# sync_core/services/base_service.py
# Shared plumbing for the session and domain sync services
# =============================================================================

from __future__ import annotations
from abc import ABC
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from sync_core.errors import NoNetworkError, SyncCoreError, handle_error
from sync_core.logging import LogContext, get_logger


@dataclass(frozen=True)
class ServiceResult:
    """
    Outcome of a UI-triggered action.

    Pages branch on truthiness and read `error` / `error_code` for messaging;
    `offline` lets them choose a "you are offline" message over a generic one.
    """
    success: bool
    data: Any = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    offline: bool = False
    details: Dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, data: Any = None) -> ServiceResult:
        return cls(success=True, data=data)

    @classmethod
    def from_exception(cls, e: Exception) -> ServiceResult:
        if isinstance(e, SyncCoreError):
            return cls(
                success=False,
                error=e.message,
                error_code=e.code,
                offline=isinstance(e, NoNetworkError),
                details=dict(e.details),
            )
        return cls(success=False, error=str(e), error_code="EXCEPTION")


class BaseService(ABC):
    """
    Gives every service a named logger and timed operations.

    Usage:
        class OrderSyncAdapter(BaseService):
            def fetch(self):
                with self.log_operation("Refreshing orders"):
                    ...
    """

    def __init__(self):
        self.logger = get_logger(f"sync_core.{self.__class__.__name__}")

    def log_operation(self, operation: str) -> LogContext:
        return LogContext(self.logger, operation)

    def run_action(
        self,
        operation: str,
        func: Callable[..., Any],
        *args,
        show_user_message: bool = False,
        **kwargs,
    ) -> ServiceResult:
        """
        Call func and fold any exception into a failed ServiceResult.

        Sync core errors go through handle_error (optionally shown with
        st.error); anything else is logged with its traceback.
        """
        try:
            return ServiceResult.ok(func(*args, **kwargs))
        except SyncCoreError as e:
            handle_error(e, show_user_message=show_user_message)
            return ServiceResult.from_exception(e)
        except Exception as e:
            self.logger.error(f"{operation} failed unexpectedly: {e}", exc_info=True)
            return ServiceResult.from_exception(e)
