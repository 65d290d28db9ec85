"""
Name: User Payload Rules

Responsibilities:
  - Parse raw user forms (create / update / reset password) with pydantic
  - Enforce the account policy: email shape, known role, password length
  - Enforce email uniqueness against the known user list

Collaborators:
  - domain/payloads.py: UserCreatePayload, UserUpdatePayload, PasswordResetPayload
  - domain/violations.py: RuleViolation
  - application/usecases/users.py: calls these before any network call

Constraints:
  - Pure: the known users are passed in, never fetched
  - Returns (payload, None) or (None, RuleViolation); never raises
"""

from __future__ import annotations

import re
from typing import Any, Final, Iterable, Mapping, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .entities import User, UserRole
from .payloads import PasswordResetPayload, UserCreatePayload, UserUpdatePayload
from .violations import RuleViolation, ViolationCode

_EMAIL_RE: Final[re.Pattern[str]] = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
DEFAULT_MIN_PASSWORD_LENGTH: Final[int] = 8


# -----------------------------------------------------------------------------
# Forms (shape only)
# -----------------------------------------------------------------------------


class _UserForm(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True, extra="ignore", str_strip_whitespace=True
    )

    @field_validator("email", check_fields=False)
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        return v.lower() if v is not None else v

    @field_validator("role", mode="before", check_fields=False)
    @classmethod
    def normalize_role(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v


class CreateUserForm(_UserForm):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=320)
    phone: str = Field(default="", max_length=64)
    role: UserRole
    password: str = Field(..., min_length=1, max_length=512, repr=False)


class UpdateUserForm(_UserForm):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, min_length=3, max_length=320)
    phone: str | None = Field(default=None, max_length=64)
    role: UserRole | None = None


class ResetPasswordForm(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    new_password: str = Field(
        ..., alias="newPassword", min_length=1, max_length=512, repr=False
    )


# -----------------------------------------------------------------------------
# Public rules
# -----------------------------------------------------------------------------


def validate_user_create(
    raw: Any,
    known_users: Iterable[User],
    *,
    min_password_length: int = DEFAULT_MIN_PASSWORD_LENGTH,
) -> Tuple[UserCreatePayload | None, RuleViolation | None]:
    """Validates a new-account form against the account policy."""
    form, violation = _parse(CreateUserForm, raw)
    if violation is not None:
        return None, violation

    if not _EMAIL_RE.match(form.email):
        return None, _invalid_email()
    if len(form.password) < min_password_length:
        return None, _weak_password(min_password_length, "password")
    if _email_taken(form.email, known_users):
        return None, _duplicate_email()

    return (
        UserCreatePayload(
            name=form.name,
            email=form.email,
            role=form.role,
            password=form.password,
            phone=form.phone,
        ),
        None,
    )


def validate_user_update(
    current: User,
    raw: Any,
    known_users: Iterable[User],
) -> Tuple[UserUpdatePayload | None, RuleViolation | None]:
    """
    Validates a partial profile update.

    Fields equal to the current value are dropped, so the payload only
    carries real changes.
    """
    form, violation = _parse(UpdateUserForm, raw)
    if violation is not None:
        return None, violation

    payload = UserUpdatePayload(
        name=form.name if form.name != current.name else None,
        email=form.email if form.email != current.email.lower() else None,
        phone=form.phone if form.phone != current.phone else None,
        role=form.role if form.role != current.role else None,
    )
    if payload.is_empty():
        return None, RuleViolation(
            ViolationCode.NO_CHANGES, "No fields provided to update."
        )

    if payload.email is not None:
        if not _EMAIL_RE.match(payload.email):
            return None, _invalid_email()
        if _email_taken(payload.email, known_users, exclude_id=current.id):
            return None, _duplicate_email()

    return payload, None


def validate_password_reset(
    raw: Any,
    *,
    min_password_length: int = DEFAULT_MIN_PASSWORD_LENGTH,
) -> Tuple[PasswordResetPayload | None, RuleViolation | None]:
    form, violation = _parse(ResetPasswordForm, raw)
    if violation is not None:
        return None, violation
    if len(form.new_password) < min_password_length:
        return None, _weak_password(min_password_length, "newPassword")
    return PasswordResetPayload(new_password=form.new_password), None


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _parse(model: type[BaseModel], raw: Any):
    if not isinstance(raw, Mapping):
        return None, RuleViolation(
            ViolationCode.INVALID_FIELD, "User data must be an object."
        )
    try:
        return model.model_validate(dict(raw)), None
    except ValidationError as exc:
        return None, _violation_from(exc)


def _violation_from(exc: ValidationError) -> RuleViolation:
    """R: Only the first pydantic error is reported (deterministic message)."""
    first = exc.errors()[0]
    loc = first.get("loc") or ()
    field_name = str(loc[0]) if loc else None
    error_type = first.get("type", "")

    if error_type == "missing":
        return RuleViolation(
            ViolationCode.MISSING_FIELD,
            f"Field '{field_name}' is required.",
            field=field_name,
        )
    if field_name == "role":
        allowed = ", ".join(r.value for r in UserRole)
        return RuleViolation(
            ViolationCode.INVALID_ROLE,
            f"Role must be one of: {allowed}.",
            field="role",
        )
    if error_type == "string_too_short":
        return RuleViolation(
            ViolationCode.MISSING_FIELD,
            f"Field '{field_name}' cannot be empty.",
            field=field_name,
        )
    return RuleViolation(
        ViolationCode.INVALID_FIELD,
        f"Field '{field_name}' is invalid.",
        field=field_name,
    )


def _email_taken(
    email: str, known_users: Iterable[User], *, exclude_id: str | None = None
) -> bool:
    normalized = email.strip().lower()
    return any(
        u.email.strip().lower() == normalized and u.id != exclude_id
        for u in known_users
    )


def _invalid_email() -> RuleViolation:
    return RuleViolation(
        ViolationCode.INVALID_EMAIL, "Email address is not valid.", field="email"
    )


def _duplicate_email() -> RuleViolation:
    return RuleViolation(
        ViolationCode.DUPLICATE_EMAIL,
        "A user with this email already exists.",
        field="email",
    )


def _weak_password(min_length: int, field_name: str) -> RuleViolation:
    return RuleViolation(
        ViolationCode.WEAK_PASSWORD,
        f"Password must be at least {min_length} characters long.",
        field=field_name,
    )
