"""
============================================================
CRC CARD - infrastructure/remote_store.py
============================================================
Class: RemoteStoreClient

Responsibilities:
  - Talk to the users/sites REST API (JSON over HTTP, async httpx).
  - Attach the session bearer token to every outbound request.
  - Retry 429 Too Many Requests (tenacity, see infrastructure/retry.py).
  - Turn non-2xx answers into typed exceptions carrying the server's
    `message`/`error` text, or a generic per-operation message.
  - Turn transport failures into NetworkError.
  - Parse response bodies into User / Site entities.

Collaborators:
  - application/session.py (SessionContext: Authorization header)
  - domain/entities.py (User, Site)
  - domain/payloads.py (request bodies)
  - crosscutting/exceptions.py
  - httpx (HTTP client), tenacity (retry)

Constraints:
  - The token never shows up in logs, repr() or exception messages.
  - Every failure leaves as a RemoteStoreError subclass; nothing else
    escapes (the synchronizer relies on it).
============================================================
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

import httpx

from ..application.session import SessionContext
from ..crosscutting.exceptions import (
    NetworkError,
    RateLimited,
    RemoteConflict,
    RemoteForbidden,
    RemoteNotFound,
    RemoteProtocolError,
    RemoteRejection,
    Unauthenticated,
)
from ..crosscutting.logger import logger
from ..domain.entities import Site, User
from ..domain.payloads import (
    PasswordResetPayload,
    SitePayload,
    UserCreatePayload,
    UserUpdatePayload,
)
from .retry import create_rate_limit_retrying

E = TypeVar("E")

# Status codes with a dedicated exception type
_STATUS_EXCEPTIONS: dict[int, type[RemoteRejection]] = {
    401: Unauthenticated,
    403: RemoteForbidden,
    404: RemoteNotFound,
    409: RemoteConflict,
}


class RemoteStoreClient:
    """
    Async client for the remote store.

    Receives the SessionContext (not the token): the header is built per
    request, so login/logout take effect on the next call.
    """

    def __init__(
        self,
        session: SessionContext,
        *,
        base_url: str,
        timeout_s: float = 10.0,
        rate_limit_retries: int | None = None,
        rate_limit_delay_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._session = session
        self._rate_limit_retries = rate_limit_retries
        self._rate_limit_delay_s = rate_limit_delay_s
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_s,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    def __repr__(self) -> str:
        return f"RemoteStoreClient(base_url={str(self._client.base_url)!r})"

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RemoteStoreClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def list_users(self) -> list[User]:
        data = await self._request(
            "GET", "/users", fallback="Could not load users."
        )
        return _parse_list(data, User.from_payload, "users")

    async def list_sector_managers(self) -> list[User]:
        data = await self._request(
            "GET",
            "/users/sector-managers",
            fallback="Could not load sector managers.",
        )
        return _parse_list(data, User.from_payload, "sector managers")

    async def create_user(self, payload: UserCreatePayload) -> User:
        data = await self._request(
            "POST", "/users", json=payload.to_wire(), fallback="Could not create user."
        )
        return _parse_one(data, User.from_payload, "user")

    async def update_user(self, user_id: str, payload: UserUpdatePayload) -> User:
        data = await self._request(
            "PUT",
            f"/users/{user_id}",
            json=payload.to_wire(),
            fallback="Could not update user.",
        )
        return _parse_one(data, User.from_payload, "user")

    async def delete_user(self, user_id: str) -> None:
        await self._request(
            "DELETE", f"/users/{user_id}", fallback="Could not delete user."
        )

    async def reset_password(
        self, user_id: str, payload: PasswordResetPayload
    ) -> None:
        await self._request(
            "POST",
            f"/users/{user_id}/reset-password",
            json=payload.to_wire(),
            fallback="Could not reset password.",
        )

    # ------------------------------------------------------------------
    # Sites
    # ------------------------------------------------------------------

    async def list_sites(self) -> list[Site]:
        data = await self._request("GET", "/sites", fallback="Could not load sites.")
        return _parse_list(data, Site.from_payload, "sites")

    async def get_site(self, site_id: str) -> Site:
        data = await self._request(
            "GET", f"/sites/{site_id}", fallback="Could not load site."
        )
        return _parse_one(data, Site.from_payload, "site")

    async def create_site(self, payload: SitePayload) -> Site:
        data = await self._request(
            "POST", "/sites", json=payload.to_wire(), fallback="Could not create site."
        )
        return _parse_one(data, Site.from_payload, "site")

    async def update_site(self, site_id: str, payload: SitePayload) -> Site:
        data = await self._request(
            "PUT",
            f"/sites/{site_id}",
            json=payload.to_wire(),
            fallback="Could not update site.",
        )
        return _parse_one(data, Site.from_payload, "site")

    async def delete_site(self, site_id: str) -> None:
        await self._request(
            "DELETE", f"/sites/{site_id}", fallback="Could not delete site."
        )

    # ------------------------------------------------------------------
    # Transport (internal)
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        fallback: str,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """
        Sends one request (plus 429 retries) and returns the decoded body,
        or None for empty answers (204 / no content).
        """
        retrying = create_rate_limit_retrying(
            self._rate_limit_retries, self._rate_limit_delay_s
        )
        async for attempt in retrying:
            with attempt:
                response = await self._send(method, path, json=json)
                _raise_for_status(response, fallback)
        return _decode_body(response, method, path)

    async def _send(
        self, method: str, path: str, *, json: dict[str, Any] | None
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                path,
                json=json,
                headers=self._session.authorization_headers(),
            )
        except httpx.TimeoutException as exc:
            logger.warning(
                "remote store timeout", extra={"method": method, "path": path}
            )
            raise NetworkError(
                "The server did not answer in time. Check your connection.",
                original_error=exc,
            ) from exc
        except httpx.RequestError as exc:
            logger.warning(
                "remote store unreachable",
                extra={"method": method, "path": path, "error": type(exc).__name__},
            )
            raise NetworkError(
                "Could not reach the server. Check your connection.",
                original_error=exc,
            ) from exc

        logger.info(
            "remote store call",
            extra={"method": method, "path": path, "status": response.status_code},
        )
        return response


# ---------------------------------------------------------------------------
# Helpers (module)
# ---------------------------------------------------------------------------


def _raise_for_status(response: httpx.Response, fallback: str) -> None:
    status = response.status_code
    if status < 400:
        return

    message = extract_error_message(response) or fallback
    if status == 429:
        raise RateLimited(message, retry_after=_parse_retry_after(response))

    exc_type = _STATUS_EXCEPTIONS.get(status, RemoteRejection)
    raise exc_type(message, status_code=status)


def extract_error_message(response: httpx.Response) -> str | None:
    """Server text from a JSON error body (`message`, then `error`)."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    for key in ("message", "error"):
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _decode_body(response: httpx.Response, method: str, path: str) -> Any:
    if response.status_code == 204 or not response.content.strip():
        return None
    try:
        return response.json()
    except ValueError as exc:
        logger.error(
            "remote store returned invalid JSON",
            extra={"method": method, "path": path, "status": response.status_code},
        )
        raise RemoteProtocolError(
            "The server returned an unreadable response.", original_error=exc
        ) from exc


def _parse_retry_after(response: httpx.Response) -> float:
    """Retry-After header (seconds). 0 when absent or invalid."""
    raw = response.headers.get("Retry-After", "")
    if not raw:
        return 0.0
    try:
        return max(float(raw), 0.0)
    except (ValueError, TypeError):
        return 0.0


def _parse_one(data: Any, parser: Callable[[Any], E], what: str) -> E:
    try:
        return parser(data)
    except ValueError as exc:
        raise RemoteProtocolError(
            f"The server returned an invalid {what}.", original_error=exc
        ) from exc


def _parse_list(data: Any, parser: Callable[[Any], E], what: str) -> list[E]:
    if not isinstance(data, list):
        raise RemoteProtocolError(f"The server returned an invalid list of {what}.")
    return [_parse_one(item, parser, what) for item in data]
