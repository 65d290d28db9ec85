"""
Name: Rule Violations

Responsibilities:
  - Provide the typed failure returned by every pure rule module
    (site_rules, user_rules, manager_rules, access_policy)
  - Keep violation codes stable so UI messages stay deterministic
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ViolationCode(str, Enum):
    """R: Stable codes for local rule failures."""

    # Field-level (payload shape / numeric ranges)
    MISSING_FIELD = "MISSING_FIELD"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    INVALID_CAPACITY = "INVALID_CAPACITY"
    INVALID_LEVEL = "INVALID_LEVEL"
    LEVEL_EXCEEDS_CAPACITY = "LEVEL_EXCEEDS_CAPACITY"
    INVALID_FIELD = "INVALID_FIELD"
    INVALID_EMAIL = "INVALID_EMAIL"
    INVALID_ROLE = "INVALID_ROLE"
    WEAK_PASSWORD = "WEAK_PASSWORD"
    DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
    NO_CHANGES = "NO_CHANGES"

    # Referential (site -> manager link)
    UNKNOWN_MANAGER = "UNKNOWN_MANAGER"
    WRONG_ROLE = "WRONG_ROLE"
    MANAGER_IN_USE = "MANAGER_IN_USE"

    # Authorization
    FORBIDDEN = "FORBIDDEN"


REFERENTIAL_CODES: frozenset[ViolationCode] = frozenset(
    {
        ViolationCode.UNKNOWN_MANAGER,
        ViolationCode.WRONG_ROLE,
        ViolationCode.MANAGER_IN_USE,
    }
)


@dataclass(frozen=True)
class RuleViolation:
    """
    First failing rule of a local check.

    Fields:
      - code: stable category (ViolationCode)
      - message: short human-readable text for the UI
      - field: offending payload field, when there is one
      - details: extra machine-readable data (e.g. blocking site ids)
    """

    code: ViolationCode
    message: str
    field: str | None = None
    details: dict[str, Any] = dataclasses.field(default_factory=dict)

    @property
    def is_referential(self) -> bool:
        return self.code in REFERENTIAL_CODES
