"""HTTP client for the PocketBase record database (tickets + messages).

All record reads use a service-level admin token.  The token lives in a
``Session`` owned by the client.  It is acquired lazily, held only in
memory, and refreshed under a lock so that concurrent requests never race
on refresh.

Retry policy: an authorization failure (HTTP 401/403) triggers exactly one
re-authentication followed by exactly one retry of the failed call.  No
other error is retried.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TypeVar

import httpx

from helpdesk_agent.config import (
    HTTP_TIMEOUT_SECONDS,
    MESSAGES_COLLECTION,
    POCKETBASE_ADMIN_EMAIL,
    POCKETBASE_ADMIN_PASSWORD,
    POCKETBASE_AUTH_PATH,
    POCKETBASE_URL,
    TICKETS_COLLECTION,
)
from helpdesk_agent.errors import AuthorizationError, NotFoundError, RecordStoreError
from helpdesk_agent.models import Assignee, Message, Ticket
from helpdesk_agent.services.metrics import metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")

_AUTH_STATUS_CODES = (401, 403)


@dataclass(frozen=True)
class Session:
    """An admin credential obtained from PocketBase."""

    token: str
    acquired_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class RecordStoreClient:
    """Thin wrapper around the PocketBase REST API."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        email: str | None = None,
        password: str | None = None,
        auth_path: str | None = None,
        tickets_collection: str | None = None,
        messages_collection: str | None = None,
        http_client: httpx.Client | None = None,
    ):
        self._base_url = (base_url or POCKETBASE_URL).rstrip("/")
        self._email = email or POCKETBASE_ADMIN_EMAIL
        self._password = password or POCKETBASE_ADMIN_PASSWORD
        self._auth_path = auth_path or POCKETBASE_AUTH_PATH
        self._tickets = tickets_collection or TICKETS_COLLECTION
        self._messages = messages_collection or MESSAGES_COLLECTION
        self._client = http_client or httpx.Client(
            base_url=self._base_url,
            headers={"Content-Type": "application/json"},
            timeout=HTTP_TIMEOUT_SECONDS,
        )
        self._session: Session | None = None
        self._session_lock = threading.Lock()

    # ── Internal helpers ─────────────────────────────────────────────

    def _request(
        self,
        method: str,
        path: str,
        *,
        session: Session | None = None,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Execute a single HTTP request and map failures onto our errors."""
        headers = {"Authorization": session.token} if session else None
        try:
            with metrics.track("pocketbase", f"{method} {path.split('?')[0]}"):
                response = self._client.request(
                    method, path, params=params, json=json_body, headers=headers,
                )
        except httpx.HTTPError as exc:
            raise RecordStoreError(f"PocketBase request failed: {exc}") from exc

        if response.status_code in _AUTH_STATUS_CODES:
            raise AuthorizationError(
                f"PocketBase rejected credentials ({response.status_code})",
                status_code=response.status_code,
            )
        if response.status_code == 404:
            raise NotFoundError(f"Not found: {path}", status_code=404)
        if response.status_code >= 400:
            raise RecordStoreError(
                f"PocketBase error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise RecordStoreError(
                f"PocketBase returned a non-JSON body ({response.status_code})",
                status_code=response.status_code,
            ) from exc

    # ── Session management ───────────────────────────────────────────

    def authenticate(self) -> Session:
        """Obtain a fresh admin token and make it the current session."""
        with self._session_lock:
            return self._authenticate_locked()

    def _authenticate_locked(self) -> Session:
        data = self._request(
            "POST",
            self._auth_path,
            json_body={"identity": self._email, "password": self._password},
        )
        token = data.get("token")
        if not token:
            raise AuthorizationError("PocketBase auth response did not include a token")
        self._session = Session(token=token)
        logger.info("Authenticated against PocketBase at %s", self._base_url)
        return self._session

    def _current_session(self) -> Session:
        session = self._session
        if session is not None:
            return session
        with self._session_lock:
            if self._session is None:
                return self._authenticate_locked()
            return self._session

    def _refresh_session(self, stale: Session) -> Session:
        """Replace *stale* unless another caller has already done so."""
        with self._session_lock:
            if self._session is not None and self._session is not stale:
                return self._session
            return self._authenticate_locked()

    def with_session(self, fn: Callable[[Session], T]) -> T:
        """Run *fn* with a valid session, re-authenticating at most once."""
        session = self._current_session()
        try:
            return fn(session)
        except AuthorizationError:
            logger.warning("PocketBase session rejected; re-authenticating once")
        session = self._refresh_session(session)
        return fn(session)

    # ── Public API methods ───────────────────────────────────────────

    def get_ticket(self, ticket_id: str) -> Ticket:
        """Fetch one ticket with its assignee expanded."""
        path = f"/api/collections/{self._tickets}/records/{ticket_id}"
        data = self.with_session(
            lambda s: self._request("GET", path, session=s, params={"expand": "assignee"})
        )
        return _parse_ticket(data)

    def list_messages(
        self,
        ticket_id: str,
        page: int = 1,
        page_size: int = 50,
        sort: str = "created",
    ) -> list[Message]:
        """List one page of a ticket's messages, oldest first by default."""
        escaped = ticket_id.replace("\\", "\\\\").replace('"', '\\"')
        params = {
            "filter": f'(ticket="{escaped}")',
            "sort": sort,
            "page": page,
            "perPage": page_size,
        }
        path = f"/api/collections/{self._messages}/records"
        data = self.with_session(
            lambda s: self._request("GET", path, session=s, params=params)
        )
        return [
            Message(
                ticket_id=item.get("ticket", ticket_id),
                content=item.get("content", ""),
                created=item["created"],
            )
            for item in data.get("items", [])
        ]


def _parse_ticket(data: dict[str, Any]) -> Ticket:
    assignee_data = (data.get("expand") or {}).get("assignee")
    assignee = None
    if isinstance(assignee_data, dict):
        assignee = Assignee(
            id=assignee_data.get("id", ""),
            name=assignee_data.get("name") or assignee_data.get("username", ""),
        )
    elif data.get("assignee"):
        assignee = Assignee(id=data["assignee"])
    return Ticket(
        id=data["id"],
        status=data.get("status", ""),
        title=data.get("title", ""),
        created=data["created"],
        assignee=assignee,
    )
