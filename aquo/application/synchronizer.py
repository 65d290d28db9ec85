"""
===============================================================================
USE CASE SUPPORT: Resource Synchronizer (mutate, then reconcile)
===============================================================================

Name:
    ResourceSynchronizer

Business Goal:
    Keep the local list of one resource kind consistent with the remote
    store under concurrent edits and fallible network calls.

Protocol (per mutation):
    1) Claim the resource key; a second mutation for the same key while one
       is pending is rejected locally with OPERATION_IN_PROGRESS.
    2) Mutate: issue the call. On failure the cache is left untouched and a
       typed error is returned. NOT_FOUND still goes to step 3.
    3) Reconcile: refetch the full list under a new sequence number and
       replace the cache only if no newer fetch was applied meanwhile.
         - refetch failed     -> success + StaleCacheWarning(REFETCH_FAILED)
         - refetch superseded -> success + StaleCacheWarning(SUPERSEDED)
    4) Release the key.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    ResourceSynchronizer

Responsibilities:
    - Own the ResourceCache of one resource kind (only writer).
    - Serialize mutations per key (InFlightRegistry).
    - Turn RemoteStoreError subclasses into OperationError outcomes.

Collaborators:
    - ResourceCache / InFlightRegistry
    - fetch_all: async callable returning the full list (remote store)
    - crosscutting.exceptions (mapped by error_from_exception)
    - context.py (operation correlation for logs)
===============================================================================
"""

from __future__ import annotations

from typing import Awaitable, Callable, Generic, TypeVar
from uuid import uuid4

from ..context import clear_context, set_operation_context
from ..crosscutting.exceptions import (
    NetworkError,
    RemoteConflict,
    RemoteForbidden,
    RemoteNotFound,
    RemoteStoreError,
    Unauthenticated,
)
from ..crosscutting.logger import logger
from .resource_cache import InFlightRegistry, ResourceCache
from .results import (
    ErrorKind,
    OperationError,
    OperationOutcome,
    StaleCacheWarning,
    StaleReason,
)

T = TypeVar("T")
R = TypeVar("R")

_MSG_IN_PROGRESS = "Another change to this item is still being saved."
_MSG_REFETCH_FAILED = (
    "The change was saved, but the list could not be refreshed and may be "
    "out of date."
)
_MSG_SUPERSEDED = (
    "The change was saved; a newer refresh already replaced the list."
)


class ResourceSynchronizer(Generic[T]):
    """Mutate-then-reconcile orchestration for one resource kind."""

    def __init__(
        self,
        kind: str,
        fetch_all: Callable[[], Awaitable[list[T]]],
        *,
        cache: ResourceCache[T] | None = None,
    ) -> None:
        self.kind = kind
        self._fetch_all = fetch_all
        self.cache: ResourceCache[T] = cache or ResourceCache(kind)
        self._in_flight = InFlightRegistry()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> tuple[T, ...]:
        return self.cache.snapshot()

    def is_pending(self, key: str) -> bool:
        return self._in_flight.is_pending(key)

    async def refresh(self) -> OperationOutcome[tuple[T, ...]]:
        """
        Fetches the full list and applies it if still current.

        A superseded result is not an error: the outcome carries the newer
        list plus a SUPERSEDED warning.
        """
        sequence = self.cache.next_sequence()
        try:
            items = await self._fetch_all()
        except RemoteStoreError as exc:
            if self.cache.is_current(sequence):
                self.cache.mark_stale()
            logger.warning(
                "refetch failed",
                extra={
                    "kind": self.kind,
                    "sequence": sequence,
                    "error_code": exc.error_code,
                    "error_id": exc.error_id,
                },
            )
            return OperationOutcome.failure(error_from_exception(exc))

        if not self.cache.apply(sequence, items):
            logger.info(
                "discarding stale refetch result",
                extra={
                    "kind": self.kind,
                    "sequence": sequence,
                    "applied_sequence": self.cache.applied_sequence,
                },
            )
            return OperationOutcome.success(
                self.cache.snapshot(),
                warning=StaleCacheWarning(StaleReason.SUPERSEDED, _MSG_SUPERSEDED),
            )

        return OperationOutcome.success(self.cache.snapshot())

    async def ensure_loaded(self) -> OperationOutcome[tuple[T, ...]]:
        """Returns the cached list, fetching it first if never loaded or stale."""
        if self.cache.is_loaded and not self.cache.is_stale:
            return OperationOutcome.success(self.cache.snapshot())
        return await self.refresh()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def mutate(
        self,
        action: str,
        key: str,
        call: Callable[[], Awaitable[R]],
        *,
        reconcile: bool = True,
        success_message: str | None = None,
    ) -> OperationOutcome[R]:
        """
        Runs one mutation under the per-key in-flight guard.

        Args:
            action: "create" / "update" / "delete" / "reset-password" (logs)
            key: resource id (or a creation key for new resources)
            call: zero-arg coroutine factory issuing the remote call
            reconcile: refetch the full list after the call
            success_message: message attached to a successful outcome
        """
        if not self._in_flight.claim(key):
            logger.info(
                "mutation rejected: already in flight",
                extra={"kind": self.kind, "action": action, "key": key},
            )
            return OperationOutcome.failure(
                OperationError(
                    kind=ErrorKind.OPERATION_IN_PROGRESS,
                    code=ErrorKind.OPERATION_IN_PROGRESS.value,
                    message=_MSG_IN_PROGRESS,
                    details={"key": key},
                )
            )

        set_operation_context(
            operation_id=str(uuid4()), resource=self.kind, action=action
        )
        try:
            return await self._run(action, key, call, reconcile, success_message)
        finally:
            self._in_flight.release(key)
            clear_context()

    async def _run(
        self,
        action: str,
        key: str,
        call: Callable[[], Awaitable[R]],
        reconcile: bool,
        success_message: str | None,
    ) -> OperationOutcome[R]:
        # ---------------------------------------------------------------------
        # Phase 1: mutate
        # ---------------------------------------------------------------------
        try:
            result = await call()
        except RemoteNotFound as exc:
            # Already gone (e.g. deleted elsewhere): reconcile, then report.
            logger.info(
                "mutation target not found; reconciling",
                extra={"kind": self.kind, "key": key, "error_id": exc.error_id},
            )
            if reconcile:
                await self.refresh()
            return OperationOutcome.failure(error_from_exception(exc))
        except RemoteStoreError as exc:
            logger.warning(
                "mutation failed; cache left untouched",
                extra={
                    "kind": self.kind,
                    "key": key,
                    "error_code": exc.error_code,
                    "error_id": exc.error_id,
                },
            )
            return OperationOutcome.failure(error_from_exception(exc))

        logger.info("mutation applied remotely", extra={"kind": self.kind, "key": key})
        if not reconcile:
            return OperationOutcome.success(result, message=success_message)

        # ---------------------------------------------------------------------
        # Phase 2: reconcile
        # ---------------------------------------------------------------------
        refreshed = await self.refresh()
        if not refreshed.ok:
            self.cache.mark_stale()
            return OperationOutcome.success(
                result,
                message=success_message,
                warning=StaleCacheWarning(
                    StaleReason.REFETCH_FAILED, _MSG_REFETCH_FAILED
                ),
            )
        return OperationOutcome.success(
            result, message=success_message, warning=refreshed.warning
        )


def error_from_exception(exc: RemoteStoreError) -> OperationError:
    """R: Maps adapter exceptions to the outcome taxonomy."""
    details: dict = {"error_id": exc.error_id}
    status_code = getattr(exc, "status_code", 0)
    if status_code:
        details["status_code"] = status_code

    if isinstance(exc, NetworkError):
        kind = ErrorKind.NETWORK_ERROR
    elif isinstance(exc, Unauthenticated):
        kind = ErrorKind.UNAUTHENTICATED
    elif isinstance(exc, RemoteForbidden):
        kind = ErrorKind.AUTHORIZATION_ERROR
    elif isinstance(exc, RemoteNotFound):
        kind = ErrorKind.NOT_FOUND
    elif isinstance(exc, RemoteConflict):
        kind = ErrorKind.CONFLICT
    else:
        kind = ErrorKind.REMOTE_REJECTION

    return OperationError(
        kind=kind, code=exc.error_code, message=exc.message, details=details
    )
