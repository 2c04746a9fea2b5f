# =============================================================================
# sync_core/models/restaurant.py
# Restaurants owned by a restaurant-owner account
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sync_core.errors.exceptions import DecodeError
from sync_core.models.base import ensure_row, format_timestamp, parse_timestamp, require


def _coordinate(row: Dict[str, Any], field: str) -> float:
    value = row.get(field)
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        raise DecodeError(f"Invalid coordinate {value!r}", "RestaurantRecord", field)


@dataclass(frozen=True)
class RestaurantRecord:
    """A row of the `restaurants` table."""
    id: str
    owner_id: str
    name: str
    address: str
    latitude: float = 0.0
    longitude: float = 0.0
    description: Optional[str] = None
    image_url: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> RestaurantRecord:
        kind = "RestaurantRecord"
        ensure_row(row, kind)
        return cls(
            id=str(require(row, "id", kind)),
            owner_id=str(require(row, "owner_id", kind)),
            name=str(row.get("name") or ""),
            address=str(row.get("address") or ""),
            latitude=_coordinate(row, "latitude"),
            longitude=_coordinate(row, "longitude"),
            description=row.get("description"),
            image_url=row.get("image_url"),
            phone=row.get("phone"),
            website=row.get("website"),
            created_at=parse_timestamp(row.get("created_at"), kind, "created_at"),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "description": self.description,
            "image_url": self.image_url,
            "phone": self.phone,
            "website": self.website,
            "created_at": format_timestamp(self.created_at),
        }
