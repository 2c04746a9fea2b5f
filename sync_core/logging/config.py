# =============================================================================
# sync_core/logging/config.py
# Logging setup for the sync core (stdlib logging, token redaction)
# =============================================================================

import logging
import re
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_DIR = Path("logs")
LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# HTTP and auth client libraries under supabase-py
NOISY_LOGGERS = ("urllib3", "httpx", "httpcore", "hpack", "supabase", "postgrest", "gotrue")

# JWTs (access tokens) and "refresh_token=..." style fragments
_SECRET_PATTERNS = (
    re.compile(r"eyJ[\w-]+\.[\w-]+\.[\w-]+"),
    re.compile(r"(refresh_token['\"]?\s*[:=]\s*['\"]?)[^'\"\s,}&]+", re.IGNORECASE),
)


def redact(text: str) -> str:
    """Mask session secrets that ended up in a log message."""
    text = _SECRET_PATTERNS[0].sub("<jwt>", text)
    return _SECRET_PATTERNS[1].sub(r"\1<redacted>", text)


class SecretRedactingFilter(logging.Filter):
    """Rewrites records so tokens never reach a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def setup_logging(
    level: int = logging.INFO,
    log_to_file: bool = False,
    log_filename: Optional[str] = None,
) -> None:
    """
    Configure root logging once per process.

    Args:
        level: Root log level
        log_to_file: Also write to logs/<log_filename>
        log_filename: Defaults to sync_YYYY-MM-DD.log
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_to_file:
        LOG_DIR.mkdir(exist_ok=True)
        filename = log_filename or f"sync_{datetime.now():%Y-%m-%d}.log"
        handlers.append(logging.FileHandler(LOG_DIR / filename))

    redacting = SecretRedactingFilter()
    for handler in handlers:
        handler.addFilter(redacting)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("sync_core").info("Logging initialized")


def get_logger(name: str) -> logging.Logger:
    """Named logger; services pass "sync_core.<ClassName>"."""
    return logging.getLogger(name)


class LogContext:
    """
    Times an operation and logs how it ended.

    Usage:
        with LogContext(logger, "Restoring session"):
            synchronizer.restore()
        # Restoring session... started
        # Restoring session... completed (0.12s)
    """

    def __init__(self, logger: logging.Logger, operation: str):
        self.logger = logger
        self.operation = operation
        self._started = 0.0

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self._started

    def __enter__(self) -> "LogContext":
        self._started = time.perf_counter()
        self.logger.info(f"{self.operation}... started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None:
            self.logger.info(f"{self.operation}... completed ({self.elapsed:.2f}s)")
        else:
            self.logger.error(
                f"{self.operation}... failed ({self.elapsed:.2f}s): {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb),
            )
        return False
