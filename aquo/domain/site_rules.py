"""
===============================================================================
DOMAIN: Site Geo/Numeric Rules
===============================================================================

Name:
    Site payload validator

Business Goal:
    Decide whether a candidate Site payload (raw form values, numeric strings
    allowed) is acceptable, and normalize it into a SitePayload.

Rules (fixed order, first failure wins so messages are deterministic):
    1) Required fields present: name, address, latitude, longitude,
       reservoirCapacity, sectorManagerId (currentLevel defaults to 0).
    2) latitude is a finite number in [-90, 90]        -> OUT_OF_RANGE(latitude)
    3) longitude is a finite number in [-180, 180]     -> OUT_OF_RANGE(longitude)
    4) reservoirCapacity is a finite number > 0        -> INVALID_CAPACITY
    5) currentLevel is a finite number >= 0            -> INVALID_LEVEL
    6) currentLevel <= reservoirCapacity               -> LEVEL_EXCEEDS_CAPACITY

Constraints:
    - Pure and total: no I/O, no exception escapes; every failure is a
      RuleViolation.
    - Accepts camelCase (wire) and snake_case keys, and the legacy nested
      ``location`` shape.
===============================================================================
"""

from __future__ import annotations

import math
from typing import Any, Final, Mapping, Tuple

from .entities import Site, SiteStatus, flatten_location
from .payloads import SitePayload
from .violations import RuleViolation, ViolationCode

_MIN_LATITUDE: Final[float] = -90.0
_MAX_LATITUDE: Final[float] = 90.0
_MIN_LONGITUDE: Final[float] = -180.0
_MAX_LONGITUDE: Final[float] = 180.0

# snake_case aliases accepted from Python callers
_ALIASES: Final[dict[str, str]] = {
    "reservoir_capacity": "reservoirCapacity",
    "current_level": "currentLevel",
    "sector_manager_id": "sectorManagerId",
}

_REQUIRED_FIELDS: Final[tuple[str, ...]] = (
    "name",
    "address",
    "latitude",
    "longitude",
    "reservoirCapacity",
    "sectorManagerId",
)

_SITE_FIELDS: Final[frozenset[str]] = frozenset(
    _REQUIRED_FIELDS + ("currentLevel", "status")
)

SiteValidation = Tuple[SitePayload | None, RuleViolation | None]


def validate_site_payload(raw: Any) -> SiteValidation:
    """
    Validates and normalizes a candidate Site payload.

    Returns:
      - (SitePayload, None) when every rule passes
      - (None, RuleViolation) with the first failing rule otherwise
    """
    if not isinstance(raw, Mapping):
        return None, RuleViolation(
            ViolationCode.INVALID_FIELD, "Site data must be an object."
        )

    data = _canonical_keys(raw)

    # 1) Required fields
    for name in _REQUIRED_FIELDS:
        if _is_blank(data.get(name)):
            return None, RuleViolation(
                ViolationCode.MISSING_FIELD,
                f"Field '{name}' is required.",
                field=name,
            )
    for name in ("name", "address"):
        if not isinstance(data[name], str):
            return None, RuleViolation(
                ViolationCode.INVALID_FIELD,
                f"Field '{name}' must be text.",
                field=name,
            )

    # 2) / 3) Coordinates
    latitude = parse_finite_number(data["latitude"])
    if latitude is None or not _MIN_LATITUDE <= latitude <= _MAX_LATITUDE:
        return None, _out_of_range("latitude", _MIN_LATITUDE, _MAX_LATITUDE)

    longitude = parse_finite_number(data["longitude"])
    if longitude is None or not _MIN_LONGITUDE <= longitude <= _MAX_LONGITUDE:
        return None, _out_of_range("longitude", _MIN_LONGITUDE, _MAX_LONGITUDE)

    # 4) Capacity
    capacity = parse_finite_number(data["reservoirCapacity"])
    if capacity is None or capacity <= 0:
        return None, RuleViolation(
            ViolationCode.INVALID_CAPACITY,
            "Reservoir capacity must be a number greater than 0.",
            field="reservoirCapacity",
        )

    # 5) Level (absent -> 0)
    raw_level = data.get("currentLevel")
    level = 0.0 if _is_blank(raw_level) else parse_finite_number(raw_level)
    if level is None or level < 0:
        return None, RuleViolation(
            ViolationCode.INVALID_LEVEL,
            "Current level must be a number greater than or equal to 0.",
            field="currentLevel",
        )

    # 6) Level within capacity
    if level > capacity:
        return None, RuleViolation(
            ViolationCode.LEVEL_EXCEEDS_CAPACITY,
            "Current level cannot exceed the reservoir capacity.",
            field="currentLevel",
            details={"current_level": level, "reservoir_capacity": capacity},
        )

    status, violation = _parse_status(data.get("status"))
    if violation is not None:
        return None, violation

    return (
        SitePayload(
            name=data["name"].strip(),
            address=data["address"].strip(),
            latitude=latitude,
            longitude=longitude,
            reservoir_capacity=capacity,
            current_level=level,
            sector_manager_id=str(data["sectorManagerId"]).strip(),
            status=status,
        ),
        None,
    )


def validate_site_update(current: Site, changes: Any) -> SiteValidation:
    """
    Merges a partial update onto the current site and re-runs the whole
    rule chain, so a partial update cannot break a cross-field invariant
    (e.g. lowering capacity below the current level).
    """
    if not isinstance(changes, Mapping):
        return None, RuleViolation(
            ViolationCode.INVALID_FIELD, "Site data must be an object."
        )

    delta = {
        k: v for k, v in _canonical_keys(changes).items() if k in _SITE_FIELDS
    }
    if not delta:
        return None, RuleViolation(
            ViolationCode.NO_CHANGES, "No fields provided to update."
        )

    merged = current.to_payload()
    merged.pop("id", None)
    merged.update(delta)
    return validate_site_payload(merged)


def parse_finite_number(value: Any) -> float | None:
    """
    Parses ints, floats and numeric strings into a finite float.

    Returns None for bools, NaN/inf, empty or non-numeric strings and any
    other type.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


# =============================================================================
# Private helpers
# =============================================================================


def _canonical_keys(raw: Mapping[str, Any]) -> dict[str, Any]:
    flat = flatten_location(raw)
    return {_ALIASES.get(str(k), str(k)): v for k, v in flat.items()}


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _out_of_range(field_name: str, low: float, high: float) -> RuleViolation:
    return RuleViolation(
        ViolationCode.OUT_OF_RANGE,
        f"{field_name.capitalize()} must be a number between {low:g} and {high:g}.",
        field=field_name,
        details={"min": low, "max": high},
    )


def _parse_status(raw: Any) -> tuple[SiteStatus | None, RuleViolation | None]:
    if _is_blank(raw):
        return None, None
    if isinstance(raw, SiteStatus):
        return raw, None
    try:
        return SiteStatus(str(raw).strip().lower()), None
    except ValueError:
        return None, RuleViolation(
            ViolationCode.INVALID_FIELD,
            "Status must be one of: active, maintenance, emergency.",
            field="status",
        )
