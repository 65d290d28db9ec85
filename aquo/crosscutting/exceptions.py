# aquo/crosscutting/exceptions.py
"""
===============================================================================
MODULE: Typed exceptions for remote store failures
===============================================================================

Goal
----
Keep transport/remote failures coherent, with:
- a stable error_code
- an error_id for correlation with logs
- a human message (never carrying the bearer token)

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Component:
  AquoError + subclasses

Responsibilities:
  - Standardize errors raised by infrastructure/remote_store.py
  - Generate error_id for tracing

Collaborators:
  - application/synchronizer.py (maps them to OperationError outcomes)
  - crosscutting/logger.py
===============================================================================
"""

from __future__ import annotations

from uuid import uuid4


class AquoError(Exception):
    """Base for internal errors: error_code + error_id + message."""

    error_code: str = "AQUO_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.error_id = error_id or str(uuid4())
        self.original_error = original_error
        super().__init__(message)


class RemoteStoreError(AquoError):
    """Any failure talking to the remote store."""

    error_code: str = "REMOTE_STORE_ERROR"


class NetworkError(RemoteStoreError):
    """Transport failure (connection refused, timeout, DNS)."""

    error_code: str = "NETWORK_ERROR"


class RemoteRejection(RemoteStoreError):
    """The server answered with a non-2xx status."""

    error_code: str = "REMOTE_REJECTION"

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message, error_id=error_id, original_error=original_error)
        self.status_code = status_code


class Unauthenticated(RemoteRejection):
    """401: missing, expired or invalid bearer token."""

    error_code: str = "UNAUTHENTICATED"


class RemoteForbidden(RemoteRejection):
    """403: the server-side policy denied the call."""

    error_code: str = "FORBIDDEN"


class RemoteNotFound(RemoteRejection):
    """404: the resource does not exist (anymore)."""

    error_code: str = "NOT_FOUND"


class RemoteConflict(RemoteRejection):
    """409: uniqueness or concurrent-modification conflict."""

    error_code: str = "CONFLICT"


class RateLimited(RemoteRejection):
    """429: too many requests (retried by infrastructure/retry.py)."""

    error_code: str = "RATE_LIMITED"

    def __init__(
        self,
        message: str,
        status_code: int = 429,
        retry_after: float = 0.0,
        error_id: str | None = None,
    ):
        super().__init__(message, status_code=status_code, error_id=error_id)
        self.retry_after = retry_after


class RemoteProtocolError(RemoteStoreError):
    """2xx answer whose body cannot be understood (bad JSON / shape)."""

    error_code: str = "REMOTE_PROTOCOL_ERROR"
