# =============================================================================
# sync_core/models/base.py
# Shared helpers for mapping snake_case remote rows to record dataclasses
# =============================================================================

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sync_core.errors.exceptions import DecodeError


def parse_timestamp(value: Any, record_type: str = "", field: str = "") -> Optional[datetime]:
    """Parse an ISO-8601 timestamp as returned by PostgREST ("Z" suffix allowed)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise DecodeError(f"Expected timestamp string, got {type(value).__name__}", record_type, field)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise DecodeError(f"Invalid timestamp {value!r}: {e}", record_type, field)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_row(row: Any, record_type: str) -> Dict[str, Any]:
    """Raise DecodeError unless row is a JSON object."""
    if not isinstance(row, dict):
        raise DecodeError(f"Expected an object, got {type(row).__name__}", record_type)
    return row


def ensure_rows(rows: Any, record_type: str) -> List[Dict[str, Any]]:
    """Raise DecodeError unless rows is a JSON array."""
    if not isinstance(rows, list):
        raise DecodeError(f"Expected a list, got {type(rows).__name__}", record_type)
    return rows


def require(row: Dict[str, Any], field: str, record_type: str) -> Any:
    """Return row[field] or raise DecodeError when it is missing or null."""
    ensure_row(row, record_type)
    value = row.get(field)
    if value is None:
        raise DecodeError(f"Missing required field '{field}'", record_type, field)
    return value


def optional_bool(value: Any) -> Optional[bool]:
    return None if value is None else bool(value)
