# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Error taxonomy for API calls and streaming.

Every failure is raised to the caller; nothing here retries. HTTP failures carry
enough detail (status, body, rate-limit reset) for the caller to decide on a
retry policy:

    from tusk.exceptions import RateLimitedError

    try:
        status = await client.get_status("1")
    except RateLimitedError as exc:
        await anyio.sleep(exc.retry_after or 60)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .versioning import MatrixError, UnsupportedVersionError


class ErrorCode(str, Enum):
    """Stable codes for programmatic handling."""

    # Transport
    NETWORK = "NETWORK"

    # HTTP 4xx
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    CLIENT_ERROR = "CLIENT_ERROR"

    # HTTP 5xx
    SERVER_ERROR = "SERVER_ERROR"

    # Entity shape drift between the target generation and the server
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"

    # Streaming
    STREAM_CLOSED = "STREAM_CLOSED"
    STREAM_MALFORMED = "STREAM_MALFORMED"
    STREAM_CANCELLED = "STREAM_CANCELLED"
    STREAM_TIMEOUT = "STREAM_TIMEOUT"


class TuskError(Exception):
    """Base class for every error raised by a client call."""

    default_code: ErrorCode = ErrorCode.CLIENT_ERROR

    def __init__(self, message: str, *, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.code = code or self.default_code


class NetworkError(TuskError):
    """The request never produced an HTTP response.

    The underlying transport exception is chained as ``__cause__``.
    """

    default_code = ErrorCode.NETWORK


# =============================================================================
# HTTP errors
# =============================================================================


class ApiError(TuskError):
    """The server answered with a non-success status.

    Attributes:
        status_code: HTTP status; ``None`` when raised before sending
        body: Raw response body text
        error: ``error`` member of a Mastodon error body, if any
        error_description: ``error_description`` member, if any
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None,
        body: str = "",
        error: str | None = None,
        error_description: str | None = None,
        code: ErrorCode | None = None,
    ) -> None:
        super().__init__(message, code=code)
        self.status_code = status_code
        self.body = body
        self.error = error
        self.error_description = error_description


class UnauthorizedError(ApiError):
    """401, or no credential configured for an endpoint that needs one."""

    default_code = ErrorCode.UNAUTHORIZED


class ForbiddenError(ApiError):
    default_code = ErrorCode.FORBIDDEN


class NotFoundError(ApiError):
    default_code = ErrorCode.NOT_FOUND


@dataclass(frozen=True, slots=True)
class RateLimit:
    """Rate limit headers of one response. Any member may be missing."""

    limit: int | None = None
    remaining: int | None = None
    reset_at: datetime | None = None


class RateLimitedError(ApiError):
    """429 Too Many Requests."""

    default_code = ErrorCode.RATE_LIMITED

    def __init__(self, message: str, *, rate_limit: RateLimit | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.rate_limit = rate_limit or RateLimit()

    @property
    def reset_at(self) -> datetime | None:
        """When the server will accept requests again, if it said so."""
        return self.rate_limit.reset_at

    @property
    def retry_after(self) -> float | None:
        """Seconds until ``reset_at`` from now (never negative)."""
        if self.reset_at is None:
            return None
        delta = (self.reset_at - datetime.now(timezone.utc)).total_seconds()
        return max(delta, 0.0)


class ClientError(ApiError):
    """Any other 4xx."""

    default_code = ErrorCode.CLIENT_ERROR


class ServerError(ApiError):
    """Any 5xx."""

    default_code = ErrorCode.SERVER_ERROR


class MalformedResponseError(TuskError):
    """A 2xx body did not match the entity shape of the target generation.

    Usually means the server runs a different generation than the build targets.
    """

    default_code = ErrorCode.MALFORMED_RESPONSE

    def __init__(self, detail: str, *, path: str = "") -> None:
        super().__init__(f"malformed response: {detail}")
        self.detail = detail
        self.path = path


# =============================================================================
# Streaming errors
# =============================================================================


class StreamError(TuskError):
    """Base class for streaming failures."""

    default_code = ErrorCode.STREAM_CLOSED


class StreamClosedError(StreamError):
    """The connection ended; no further events will arrive on this reader."""

    default_code = ErrorCode.STREAM_CLOSED


class MalformedEventError(StreamError):
    """One frame failed to decode. The stream stays open.

    Attributes:
        tag: Event type tag of the frame
        payload: Raw payload text
    """

    default_code = ErrorCode.STREAM_MALFORMED

    def __init__(self, message: str, *, tag: str, payload: str | None) -> None:
        super().__init__(message)
        self.tag = tag
        self.payload = payload


class StreamCancelledError(StreamError):
    """The reader was closed while a read was in flight."""

    default_code = ErrorCode.STREAM_CANCELLED


class StreamTimeoutError(StreamError):
    """No frame arrived within the caller's timeout. The stream stays open."""

    default_code = ErrorCode.STREAM_TIMEOUT


class TargetVersionError(ImportError):
    """The build-time target generation is missing or not tracked."""


__all__ = [
    "ApiError",
    "ClientError",
    "ErrorCode",
    "ForbiddenError",
    "MalformedEventError",
    "MalformedResponseError",
    "MatrixError",
    "NetworkError",
    "NotFoundError",
    "RateLimit",
    "RateLimitedError",
    "ServerError",
    "StreamCancelledError",
    "StreamClosedError",
    "StreamError",
    "StreamTimeoutError",
    "TargetVersionError",
    "TuskError",
    "UnauthorizedError",
    "UnsupportedVersionError",
]
