# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""HTTP transport behind the request executor.

The executor only needs two operations, so any HTTP stack can be plugged in:

- ``send(method, url, headers, content)`` returns a ``TransportResponse``
- ``stream(url, headers)`` opens a long-lived GET and yields a ``StreamResponse``

``HttpxTransport`` implements both over ``httpx.AsyncClient``. Transport-level
failures surface as ``NetworkError`` with the ``httpx`` exception chained.

Example:
    >>> transport = HttpxTransport(ClientConfig("mastodon.social", access_token="..."))
    >>> response = await transport.send("GET", "https://mastodon.social/api/v1/instance", {}, None)
    >>> response.status
    200
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import httpx

from .config import ClientConfig
from .exceptions import NetworkError
from .utils import get_logger

_logger = get_logger("tusk.transport")


# =============================================================================
# Response types
# =============================================================================


@dataclass(frozen=True, slots=True)
class TransportResponse:
    """Status, headers and raw body of one HTTP exchange.

    Header lookups are case-insensitive.
    """

    status: int
    headers: Mapping[str, str] = field(default_factory=httpx.Headers)
    content: bytes = b""

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


@dataclass(slots=True)
class StreamResponse:
    """An open streaming response.

    Attributes:
        status: HTTP status of the handshake
        headers: Response headers
        lines: Body lines without terminators, in arrival order
        read: Reads the remaining body (used for error responses)
    """

    status: int
    headers: Mapping[str, str]
    lines: AsyncIterator[str]
    read: Callable[[], Awaitable[bytes]]


# =============================================================================
# Transport protocol
# =============================================================================


@runtime_checkable
class Transport(Protocol):
    """What the executor and the stream reader need from an HTTP stack."""

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        content: bytes | None,
    ) -> TransportResponse:
        """Perform one request.

        Raises:
            NetworkError: If no HTTP response was received
        """
        ...

    def stream(self, url: str, headers: Mapping[str, str]) -> AbstractAsyncContextManager[StreamResponse]:
        """Open a streaming GET; the connection is released when the context exits."""
        ...

    async def aclose(self) -> None: ...


# =============================================================================
# httpx implementation
# =============================================================================


class HttpxTransport:
    """``Transport`` over a shared ``httpx.AsyncClient``.

    The client is created from ``config`` unless one is passed in; a passed-in
    client is not closed by ``aclose``. Credentials arrive in the request
    headers from the executor; none are configured on the client.
    """

    def __init__(self, config: ClientConfig, *, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                timeout=httpx.Timeout(config.timeout),
                headers={"User-Agent": config.user_agent},
            )
        self._client = client

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        content: bytes | None,
    ) -> TransportResponse:
        try:
            response = await self._client.request(method, url, headers=dict(headers), content=content)
        except httpx.TransportError as exc:
            _logger.debug(
                "transport failure",
                extra={"event": "transport.error", "method": method, "error": type(exc).__name__},
            )
            raise NetworkError(f"{method} {httpx.URL(url).path} failed: {exc}") from exc
        return TransportResponse(status=response.status_code, headers=response.headers, content=response.content)

    @asynccontextmanager
    async def stream(self, url: str, headers: Mapping[str, str]) -> AsyncIterator[StreamResponse]:
        # No read timeout: the server may stay quiet between events
        timeout = httpx.Timeout(self._config.timeout, read=None)
        try:
            async with self._client.stream("GET", url, headers=dict(headers), timeout=timeout) as response:
                yield StreamResponse(
                    status=response.status_code,
                    headers=response.headers,
                    lines=_wrap_lines(response.aiter_lines()),
                    read=response.aread,
                )
        except httpx.TransportError as exc:
            raise NetworkError(f"stream {httpx.URL(url).path} failed: {exc}") from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


async def _wrap_lines(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    try:
        async for line in lines:
            yield line
    except httpx.TransportError as exc:
        raise NetworkError(f"stream interrupted: {exc}") from exc


__all__ = [
    "HttpxTransport",
    "StreamResponse",
    "Transport",
    "TransportResponse",
]
