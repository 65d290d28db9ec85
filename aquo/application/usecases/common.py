"""
Name: Shared use case helpers

Responsibilities:
  - ConfirmedDeletion: the value the UI builds after its own confirm dialog
  - Consistent outcomes for local failures shared by both resources
"""

from __future__ import annotations

from dataclasses import dataclass

from ...domain.access_policy import Action, forbidden
from ..results import ErrorKind, OperationError, OperationOutcome


@dataclass(frozen=True)
class ConfirmedDeletion:
    """
    Deletion request.

    Only instances with ``confirmed=True`` reach the synchronizer.
    ``reassign_to`` names the sector manager that takes over the sites of a
    manager being deleted.
    """

    resource_id: str
    confirmed: bool = False
    reassign_to: str | None = None

    @classmethod
    def confirm(
        cls, resource_id: str, *, reassign_to: str | None = None
    ) -> "ConfirmedDeletion":
        return cls(resource_id=resource_id, confirmed=True, reassign_to=reassign_to)


def confirmation_required(resource_id: str) -> OperationOutcome:
    return OperationOutcome.failure(
        OperationError(
            kind=ErrorKind.CONFIRMATION_REQUIRED,
            code=ErrorKind.CONFIRMATION_REQUIRED.value,
            message="Please confirm the deletion before continuing.",
            details={"resource_id": resource_id},
        )
    )


def not_found(kind: str, resource_id: str) -> OperationOutcome:
    return OperationOutcome.failure(
        OperationError(
            kind=ErrorKind.NOT_FOUND,
            code=ErrorKind.NOT_FOUND.value,
            message=f"The {kind} no longer exists.",
            details={"resource_id": resource_id},
        )
    )


def denied(action: Action, message: str | None = None) -> OperationOutcome:
    return OperationOutcome.from_violation(forbidden(action, message))


def creation_key(value: str) -> str:
    """In-flight key of a resource that has no id yet."""
    return f"new:{value.strip().lower()}"
