"""
Name: Normalized Payloads

Responsibilities:
  - Typed, already-validated payloads per resource and operation
  - Serialize to the remote store wire format (camelCase JSON)

Constraints:
  - Instances are only built by the rule modules (single parsing boundary)
  - Passwords never show up in repr()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .entities import SiteStatus, UserRole


@dataclass(frozen=True, slots=True)
class SitePayload:
    """Site create/update body after numeric parsing and range checks."""

    name: str
    address: str
    latitude: float
    longitude: float
    reservoir_capacity: float
    current_level: float
    sector_manager_id: str
    status: SiteStatus | None = None

    def to_wire(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "name": self.name,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "reservoirCapacity": self.reservoir_capacity,
            "currentLevel": self.current_level,
            "sectorManagerId": self.sector_manager_id,
        }
        if self.status is not None:
            body["status"] = self.status.value
        return body


@dataclass(frozen=True, slots=True)
class UserCreatePayload:
    name: str
    email: str
    role: UserRole
    password: str = field(repr=False)
    phone: str = ""

    def to_wire(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role.value,
            "password": self.password,
        }


@dataclass(frozen=True, slots=True)
class UserUpdatePayload:
    """Partial profile update: only non-None fields are sent."""

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    role: UserRole | None = None

    def to_wire(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if self.name is not None:
            body["name"] = self.name
        if self.email is not None:
            body["email"] = self.email
        if self.phone is not None:
            body["phone"] = self.phone
        if self.role is not None:
            body["role"] = self.role.value
        return body

    def is_empty(self) -> bool:
        return not self.to_wire()


@dataclass(frozen=True, slots=True)
class PasswordResetPayload:
    new_password: str = field(repr=False)

    def to_wire(self) -> dict[str, Any]:
        return {"newPassword": self.new_password}
