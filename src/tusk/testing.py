# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Testing utilities for code built on tusk.

``MockTransport`` stands in for the HTTP stack: it records every request and
replays queued responses, so client code can be exercised without a server.
The payload builders return JSON-shaped dicts for the common entities with
every field of the newest tracked generation filled in; since unknown keys are
tolerated, they decode at any generation.

Example:
    >>> from tusk import surface_for
    >>> from tusk.testing import MockTransport, status_payload
    >>>
    >>> transport = MockTransport()
    >>> transport.add_response(json=status_payload(id="7"))
    >>> client = surface_for("2.4.0").client_class("example.social", access_token="t", transport=transport)
    >>> status = await client.get_status("7")
    >>> transport.requests[0].path
    '/api/v1/statuses/7'
"""

from __future__ import annotations

import json as jsonlib
from collections import deque
from collections.abc import AsyncIterator, Iterable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from .exceptions import NetworkError
from .transport import StreamResponse, TransportResponse


class HttpMethod(str, Enum):
    """HTTP methods used by the API."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


# --- Recorded traffic ---


@dataclass
class RecordedRequest:
    """One request seen by ``MockTransport``.

    Attributes:
        method: HTTP method
        url: Full URL including the query string
        headers: Headers passed by the executor
        content: Raw body, if any
    """

    method: HttpMethod
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    content: bytes | None = None

    @property
    def path(self) -> str:
        return httpx.URL(self.url).path

    @property
    def query(self) -> list[tuple[str, str]]:
        """Query pairs in order; repeated keys (``media_ids[]``) appear once each."""
        return list(httpx.URL(self.url).params.multi_items())

    def json(self) -> Any:
        """Decoded JSON body, or ``None`` when there is no body."""
        if not self.content:
            return None
        return jsonlib.loads(self.content)


@dataclass
class _Queued:
    status: int
    headers: dict[str, str]
    content: bytes = b""
    lines: list[str] | None = None
    error: Exception | None = None


# --- MockTransport ---


class MockTransport:
    """In-memory ``Transport``.

    Responses are consumed in the order they were queued, shared between
    ``send`` and ``stream``. Running out of responses raises ``AssertionError``.
    """

    def __init__(self) -> None:
        self.requests: list[RecordedRequest] = []
        self.closed = False
        self._queue: deque[_Queued] = deque()

    def add_response(
        self,
        status: int = 200,
        *,
        json: Any = None,
        content: bytes | str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> MockTransport:
        """Queue one response. ``json`` is serialized; ``content`` is sent as-is."""
        if json is not None:
            body = jsonlib.dumps(json).encode("utf-8")
        elif isinstance(content, str):
            body = content.encode("utf-8")
        else:
            body = content or b""
        self._queue.append(_Queued(status, dict(headers or {}), body))
        return self

    def add_stream(
        self,
        lines: Iterable[str],
        *,
        status: int = 200,
        headers: Mapping[str, str] | None = None,
    ) -> MockTransport:
        """Queue a streaming response that yields ``lines`` and then ends."""
        self._queue.append(_Queued(status, dict(headers or {}), b"", lines=list(lines)))
        return self

    def add_error(self, message: str = "connection refused") -> MockTransport:
        """Queue a transport failure."""
        self._queue.append(_Queued(0, {}, error=NetworkError(message)))
        return self

    def _next(self) -> _Queued:
        if not self._queue:
            raise AssertionError("MockTransport has no queued response left")
        queued = self._queue.popleft()
        if queued.error is not None:
            raise queued.error
        return queued

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        content: bytes | None,
    ) -> TransportResponse:
        self.requests.append(RecordedRequest(HttpMethod(method), url, dict(headers), content))
        queued = self._next()
        return TransportResponse(queued.status, httpx.Headers(queued.headers), queued.content)

    @asynccontextmanager
    async def stream(self, url: str, headers: Mapping[str, str]) -> AsyncIterator[StreamResponse]:
        self.requests.append(RecordedRequest(HttpMethod.GET, url, dict(headers)))
        queued = self._next()
        body = queued.content if queued.lines is None else "\n".join(queued.lines).encode("utf-8")

        async def lines() -> AsyncIterator[str]:
            for line in queued.lines or ():
                yield line

        async def read() -> bytes:
            return body

        yield StreamResponse(queued.status, httpx.Headers(queued.headers), lines(), read)

    async def aclose(self) -> None:
        self.closed = True


# --- Payload builders ---


def emoji_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "shortcode": "blobcat",
        "url": "https://files.example.social/emoji/blobcat.png",
        "static_url": "https://files.example.social/emoji/blobcat_static.png",
        "visible_in_picker": True,
    }
    payload.update(overrides)
    return payload


def account_payload(**overrides: Any) -> dict[str, Any]:
    """A local account, as the newest generation renders it."""
    payload = {
        "id": "1",
        "username": "alice",
        "acct": "alice",
        "display_name": "Alice",
        "locked": False,
        "created_at": "2019-04-01T12:00:00.000Z",
        "followers_count": 3,
        "following_count": 5,
        "statuses_count": 42,
        "note": "<p>hello</p>",
        "url": "https://example.social/@alice",
        "avatar": "https://files.example.social/avatars/alice.png",
        "avatar_static": "https://files.example.social/avatars/alice.png",
        "header": "https://files.example.social/headers/alice.png",
        "header_static": "https://files.example.social/headers/alice.png",
        "emojis": [],
        "fields": [{"name": "Site", "value": "example.org", "verified_at": None}],
        "bot": False,
        "last_status_at": "2021-01-31T00:00:00.000Z",
        "discoverable": True,
    }
    payload.update(overrides)
    return payload


def status_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "id": "100",
        "uri": "https://example.social/users/alice/statuses/100",
        "url": "https://example.social/@alice/100",
        "account": account_payload(),
        "in_reply_to_id": None,
        "in_reply_to_account_id": None,
        "reblog": None,
        "content": "<p>toot</p>",
        "created_at": "2021-02-01T08:30:00.000Z",
        "emojis": [],
        "replies_count": 0,
        "reblogs_count": 1,
        "favourites_count": 2,
        "reblogged": False,
        "favourited": False,
        "muted": False,
        "bookmarked": False,
        "sensitive": False,
        "spoiler_text": "",
        "visibility": "public",
        "media_attachments": [],
        "mentions": [],
        "tags": [{"name": "tusk", "url": "https://example.social/tags/tusk"}],
        "card": None,
        "poll": None,
        "application": {"name": "Web", "website": None},
        "language": "en",
        "pinned": False,
    }
    payload.update(overrides)
    return payload


def notification_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "id": "9",
        "type": "mention",
        "created_at": "2021-02-01T09:00:00.000Z",
        "account": account_payload(id="2", username="bob", acct="bob@remote.example"),
        "status": status_payload(),
    }
    payload.update(overrides)
    return payload


def relationship_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "id": "2",
        "following": True,
        "followed_by": False,
        "blocking": False,
        "muting": False,
        "muting_notifications": False,
        "requested": False,
        "domain_blocking": False,
        "showing_reblogs": True,
        "endorsed": False,
        "notifying": False,
    }
    payload.update(overrides)
    return payload


def poll_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "id": "34",
        "expires_at": "2021-02-02T08:30:00.000Z",
        "expired": False,
        "multiple": False,
        "votes_count": 10,
        "voters_count": 10,
        "voted": False,
        "own_votes": [],
        "options": [{"title": "yes", "votes_count": 6}, {"title": "no", "votes_count": 4}],
        "emojis": [],
    }
    payload.update(overrides)
    return payload


def instance_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "uri": "example.social",
        "title": "Example",
        "description": "An example server",
        "email": "admin@example.social",
        "version": "3.3.0",
        "urls": {"streaming_api": "wss://example.social"},
        "thumbnail": None,
        "stats": {"user_count": 10, "status_count": 100, "domain_count": 5},
        "languages": ["en"],
        "contact_account": None,
        "registrations": True,
        "approval_required": False,
    }
    payload.update(overrides)
    return payload


def sse_lines(*events: tuple[str, Any]) -> list[str]:
    """Render ``(tag, payload)`` pairs as ``text/event-stream`` lines.

    Dict and list payloads are JSON-encoded; strings are sent verbatim.
    """
    lines: list[str] = []
    for tag, payload in events:
        lines.append(f"event: {tag}")
        if payload is not None:
            data = payload if isinstance(payload, str) else jsonlib.dumps(payload)
            lines.append(f"data: {data}")
        lines.append("")
    return lines


__all__ = [
    "HttpMethod",
    "MockTransport",
    "RecordedRequest",
    "account_payload",
    "emoji_payload",
    "instance_payload",
    "notification_payload",
    "poll_payload",
    "relationship_payload",
    "sse_lines",
    "status_payload",
]
