"""
Name: Session Context

Responsibilities:
  - Hold the bearer token set at login and cleared at logout
  - Hold the acting user (Actor) for policy decisions
  - Build the Authorization header carried by every outbound request

Collaborators:
  - infrastructure/remote_store.py: reads authorization_headers() per request
  - application/usecases/*: read the actor

Constraints:
  - Explicit object passed as a dependency (no module-level state)
  - The token never appears in repr()/str() or logs
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..domain.access_policy import Actor
from ..domain.entities import User


@dataclass
class SessionContext:
    """R: Current credential + actor of one UI session."""

    _token: str | None = field(default=None, repr=False)
    actor: Actor | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token)

    def start(self, token: str, user: User | Actor | None = None) -> None:
        """R: Called after login; token issuance happens elsewhere."""
        if not token or not token.strip():
            raise ValueError("token is required to start a session")
        self._token = token.strip()
        if isinstance(user, User):
            self.actor = Actor.from_user(user)
        else:
            self.actor = user

    def end(self) -> None:
        """R: Called at logout."""
        self._token = None
        self.actor = None

    def authorization_headers(self) -> dict[str, str]:
        """
        R: Headers for the next request.

        Without a token the request goes out unauthenticated; the remote
        store answers 401, surfaced as UNAUTHENTICATED.
        """
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}
