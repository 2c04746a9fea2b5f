# =============================================================================
# sync_core/errors/exceptions.py
# Custom Exception Hierarchy for the Sync Core
# =============================================================================

from typing import Optional, Dict, Any


class SyncCoreError(Exception):
    """
    Base exception for all sync core errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "AUTH_001")
        details: Additional context as a dictionary
        recoverable: Whether the error can be recovered from
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "SYNC_000"
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# CONNECTIVITY / IDENTITY EXCEPTIONS
# =============================================================================

class NoNetworkError(SyncCoreError):
    """Raised when the network is required but unreachable"""

    def __init__(self, message: str = "No network connection", operation: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation

        super().__init__(message=message, code="NET_001", details=details, **kwargs)


class NoCredentialError(SyncCoreError):
    """Raised when no refresh token or current user is available"""

    def __init__(self, message: str = "No current user", **kwargs):
        super().__init__(message=message, code="AUTH_001", **kwargs)


# =============================================================================
# REMOTE EXCEPTIONS
# =============================================================================

class RemoteRejected(SyncCoreError):
    """Raised when the auth provider or a table query returns a non-success status"""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        status: Optional[Any] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        if status is not None:
            details["status"] = status

        super().__init__(message=message, code="REMOTE_001", details=details, **kwargs)


class DecodeError(SyncCoreError):
    """Raised when a remote or cached payload does not match the expected shape"""

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        field: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if record_type:
            details["record_type"] = record_type
        if field:
            details["field"] = field

        super().__init__(message=message, code="DECODE_001", details=details, **kwargs)


# =============================================================================
# LOCAL STORAGE / CONFIGURATION EXCEPTIONS
# =============================================================================

class LocalStorageError(SyncCoreError):
    """Raised when a local cache or credential read/write fails"""

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        key: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if collection:
            details["collection"] = collection
        if key:
            details["key"] = key

        super().__init__(message=message, code="STORE_001", details=details, **kwargs)


class ConfigurationError(SyncCoreError):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key

        super().__init__(
            message=message,
            code="CONFIG_001",
            details=details,
            recoverable=False,
            **kwargs,
        )
