"""
===============================================================================
ADMINISTRATION USE CASE RESULTS (Shared Outcome / Error Models)
===============================================================================

Name:
    Operation outcomes

Business Goal:
    Give UI collaborators one stable, typed contract for every operation on
    users and sites:
      - local validation / referential / authorization failures
      - transport and remote failures
      - success with an explicit "the list may be out of date" warning

Why (Context):
    - Use cases return outcomes instead of raising, so the UI never has to
      catch anything and tests can assert on values.
    - A single taxonomy avoids inconsistent codes/messages across resources.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Responsibilities:
    - ErrorKind: coarse, stable categories (what the UI branches on).
    - OperationError: kind + specific code + message (+ field/details).
    - StaleCacheWarning: mutation succeeded but the view may be out of date.
    - OperationOutcome: value | error, plus an optional warning.

Collaborators:
    - domain.violations.RuleViolation (mapped through from_violation)
    - crosscutting.exceptions (mapped in application/synchronizer.py)
===============================================================================
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from ..domain.violations import RuleViolation, ViolationCode

T = TypeVar("T")


class ErrorKind(str, Enum):
    """
    Stable categories of failure.

    Local (never reach the wire):
      VALIDATION_ERROR, REFERENTIAL_ERROR, AUTHORIZATION_ERROR,
      OPERATION_IN_PROGRESS, CONFIRMATION_REQUIRED
    Remote (raised by the adapter, caught at the synchronizer boundary):
      NETWORK_ERROR, REMOTE_REJECTION, UNAUTHENTICATED, NOT_FOUND, CONFLICT
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    REFERENTIAL_ERROR = "REFERENTIAL_ERROR"
    AUTHORIZATION_ERROR = "AUTHORIZATION_ERROR"
    OPERATION_IN_PROGRESS = "OPERATION_IN_PROGRESS"
    CONFIRMATION_REQUIRED = "CONFIRMATION_REQUIRED"
    NETWORK_ERROR = "NETWORK_ERROR"
    REMOTE_REJECTION = "REMOTE_REJECTION"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"


@dataclass(frozen=True)
class OperationError:
    """
    Failure of one operation.

    Fields:
      - kind: coarse category (ErrorKind)
      - code: specific rule or remote code (e.g. "OUT_OF_RANGE", "WRONG_ROLE")
      - message: short human-readable text for the UI
      - field: offending payload field, if any
      - details: machine-readable extras (blocking site ids, status code...)
    """

    kind: ErrorKind
    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] = dataclasses.field(default_factory=dict)

    @classmethod
    def from_violation(cls, violation: RuleViolation) -> "OperationError":
        if violation.code == ViolationCode.FORBIDDEN:
            kind = ErrorKind.AUTHORIZATION_ERROR
        elif violation.is_referential:
            kind = ErrorKind.REFERENTIAL_ERROR
        else:
            kind = ErrorKind.VALIDATION_ERROR
        return cls(
            kind=kind,
            code=violation.code.value,
            message=violation.message,
            field=violation.field,
            details=dict(violation.details),
        )


class StaleReason(str, Enum):
    REFETCH_FAILED = "REFETCH_FAILED"
    SUPERSEDED = "SUPERSEDED"


@dataclass(frozen=True)
class StaleCacheWarning:
    """The mutation succeeded server-side, but the local list was not refreshed."""

    reason: StaleReason
    message: str


@dataclass
class OperationOutcome(Generic[T]):
    """
    Result of a use case.

    Contract:
      - error is None  => success; value holds the result (may be None for
        commands such as delete / reset-password)
      - error not None => failure; value is None
      - warning may accompany a success (never a failure)
    """

    value: T | None = None
    error: OperationError | None = None
    warning: StaleCacheWarning | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(
        cls,
        value: T | None = None,
        *,
        message: str | None = None,
        warning: StaleCacheWarning | None = None,
    ) -> "OperationOutcome[T]":
        return cls(value=value, message=message, warning=warning)

    @classmethod
    def failure(cls, error: OperationError) -> "OperationOutcome[T]":
        return cls(error=error, message=error.message)

    @classmethod
    def from_violation(cls, violation: RuleViolation) -> "OperationOutcome[T]":
        return cls.failure(OperationError.from_violation(violation))
