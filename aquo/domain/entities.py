"""
===============================================================================
CRC CARD - domain/entities.py
===============================================================================

Module:
    Domain entities (User, Site)

Responsibilities:
    - Define the role and status enums shared by every rule module.
    - Define immutable User / Site records as held in the local cache.
    - Parse remote store JSON (camelCase) into entities and back.

Collaborators:
    - infrastructure/remote_store.py: parses every response through from_payload().
    - domain/site_rules.py, domain/manager_rules.py, domain/access_policy.py.

Notes:
    - This module has no business rules beyond shape parsing: invariants
      (ranges, manager role) live in the rule modules.
    - from_payload() raises ValueError on malformed input; the adapter turns
      that into RemoteProtocolError.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Mapping


class UserRole(str, Enum):
    """Business classification of a user account."""

    ADMIN = "ADMIN"
    SECTOR_MANAGER = "SECTOR_MANAGER"
    USER = "USER"
    TECHNICIAN = "TECHNICIAN"

    @classmethod
    def parse(cls, raw: Any) -> "UserRole":
        """Case-insensitive parse; raises ValueError for unknown roles."""
        if isinstance(raw, UserRole):
            return raw
        if not isinstance(raw, str):
            raise ValueError(f"Unknown role: {raw!r}")
        return cls(raw.strip().upper())


class SiteStatus(str, Enum):
    """Operational status, administered remotely (never re-derived here)."""

    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    EMERGENCY = "emergency"


@dataclass(frozen=True, slots=True)
class User:
    """User account as exposed by the remote store (no password hash)."""

    id: str
    name: str
    email: str
    role: UserRole
    phone: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "User":
        if not isinstance(data, Mapping):
            raise ValueError("User payload must be an object")
        return cls(
            id=_required_id(data),
            name=str(data.get("name") or ""),
            email=str(data.get("email") or ""),
            role=UserRole.parse(data.get("role")),
            phone=str(data.get("phone") or ""),
            created_at=parse_iso_datetime(data.get("createdAt")),
            updated_at=parse_iso_datetime(data.get("updatedAt")),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role.value,
        }


@dataclass(frozen=True, slots=True)
class Location:
    address: str
    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class Site:
    """Water-distribution site as held in the local cache."""

    id: str
    name: str
    location: Location
    reservoir_capacity: float
    current_level: float
    sector_manager_id: str
    status: SiteStatus = SiteStatus.ACTIVE
    created_at: datetime | None = None
    updated_at: datetime | None = None
    sector_manager: User | None = None

    @property
    def fill_ratio(self) -> float:
        """Share of the reservoir currently filled (0.0 - 1.0)."""
        if self.reservoir_capacity <= 0:
            return 0.0
        return self.current_level / self.reservoir_capacity

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "Site":
        if not isinstance(data, Mapping):
            raise ValueError("Site payload must be an object")
        flat = flatten_location(data)

        manager_data = flat.get("sectorManager")
        manager = None
        if isinstance(manager_data, Mapping) and manager_data.get("id"):
            manager = User.from_payload(
                {"role": UserRole.SECTOR_MANAGER.value, **manager_data}
            )

        raw_status = flat.get("status") or SiteStatus.ACTIVE.value
        return cls(
            id=_required_id(flat),
            name=str(flat.get("name") or ""),
            location=Location(
                address=str(flat.get("address") or ""),
                latitude=_as_float(flat.get("latitude"), "latitude"),
                longitude=_as_float(flat.get("longitude"), "longitude"),
            ),
            reservoir_capacity=_as_float(
                flat.get("reservoirCapacity"), "reservoirCapacity"
            ),
            current_level=_as_float(flat.get("currentLevel", 0), "currentLevel"),
            sector_manager_id=str(flat.get("sectorManagerId") or ""),
            status=SiteStatus(str(raw_status).strip().lower()),
            created_at=parse_iso_datetime(flat.get("createdAt")),
            updated_at=parse_iso_datetime(flat.get("updatedAt")),
            sector_manager=manager,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.location.address,
            "latitude": self.location.latitude,
            "longitude": self.location.longitude,
            "reservoirCapacity": self.reservoir_capacity,
            "currentLevel": self.current_level,
            "sectorManagerId": self.sector_manager_id,
            "status": self.status.value,
        }


def managed_site_ids(user_id: str, sites: Iterable[Site]) -> frozenset[str]:
    """Derived back-reference: ids of the sites a user manages."""
    return frozenset(s.id for s in sites if s.sector_manager_id == user_id)


def flatten_location(data: Mapping[str, Any]) -> dict[str, Any]:
    """
    Accepts the legacy nested shape
    ``{"location": {"address", "coordinates": {"lat", "lng"}}}`` and returns
    a copy with flat ``address/latitude/longitude`` keys. Flat keys win.
    """
    flat = dict(data)
    location = flat.pop("location", None)
    if not isinstance(location, Mapping):
        return flat

    flat.setdefault("address", location.get("address"))
    coordinates = location.get("coordinates")
    if isinstance(coordinates, Mapping):
        flat.setdefault("latitude", coordinates.get("lat"))
        flat.setdefault("longitude", coordinates.get("lng"))
    else:
        flat.setdefault("latitude", location.get("latitude"))
        flat.setdefault("longitude", location.get("longitude"))
    return flat


def parse_iso_datetime(value: Any) -> datetime | None:
    """Parses an ISO datetime from the API. None if absent or invalid."""
    if isinstance(value, datetime):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _required_id(data: Mapping[str, Any]) -> str:
    raw = data.get("id")
    if raw is None or str(raw).strip() == "":
        raise ValueError("Resource payload is missing 'id'")
    return str(raw)


def _as_float(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Field '{field_name}' must be numeric")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Field '{field_name}' must be numeric") from exc
