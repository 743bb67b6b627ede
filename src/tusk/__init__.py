# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Version-gated Mastodon API client.

A build targets exactly one tracked Mastodon generation. Everything the
client exposes (entity fields, enum members, request fields, endpoints) is
specialized to that generation, so using something the target does not have
fails before any request is made:

- ``tusk.surface_for(version)`` - the specialized surface of one generation
- ``tusk.build`` - the surface selected by ``TUSK_SERVER_VERSION`` at import
- ``tusk.stubgen`` - ``.pyi`` stubs so type checkers see the same surface
- ``tusk.versioning`` - the capability matrix
- ``tusk.testing`` - a mock transport and payload builders

See the module docstrings for detailed usage patterns.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from .config import ClientConfig, ReconnectPolicy, StreamConfig
from .exceptions import (
    ApiError,
    ClientError,
    ErrorCode,
    ForbiddenError,
    MalformedEventError,
    MalformedResponseError,
    NetworkError,
    NotFoundError,
    RateLimit,
    RateLimitedError,
    ServerError,
    StreamCancelledError,
    StreamClosedError,
    StreamError,
    StreamTimeoutError,
    TargetVersionError,
    TuskError,
    UnauthorizedError,
)
from .client import MastodonClient
from .model import ABSENT, Absent, Entity, Unrecognized
from .paging import Page, PageCursor
from .streaming import EventReader, ReaderState, ReconnectingEventReader, StreamEvent
from .surface import Surface, surface_for
from .transport import HttpxTransport, Transport
from .utils import configure_logging, get_logger
from .versioning import (
    ALL_VERSIONS,
    LATEST_VERSION,
    OLDEST_VERSION,
    FeatureId,
    MatrixError,
    ServerCapabilities,
    ServerProfile,
    ServerVersion,
    UnsupportedVersionError,
    capabilities_for,
)

try:
    __version__ = version("tusk-client")
except PackageNotFoundError:
    __version__ = "0.0.0+local"

__all__ = [
    "ABSENT",
    "ALL_VERSIONS",
    "LATEST_VERSION",
    "OLDEST_VERSION",
    "Absent",
    "ApiError",
    "ClientConfig",
    "ClientError",
    "Entity",
    "ErrorCode",
    "EventReader",
    "FeatureId",
    "ForbiddenError",
    "HttpxTransport",
    "MalformedEventError",
    "MalformedResponseError",
    "MastodonClient",
    "MatrixError",
    "NetworkError",
    "NotFoundError",
    "Page",
    "PageCursor",
    "RateLimit",
    "RateLimitedError",
    "ReaderState",
    "ReconnectPolicy",
    "ReconnectingEventReader",
    "ServerCapabilities",
    "ServerError",
    "ServerProfile",
    "ServerVersion",
    "StreamCancelledError",
    "StreamClosedError",
    "StreamConfig",
    "StreamError",
    "StreamEvent",
    "StreamTimeoutError",
    "Surface",
    "TargetVersionError",
    "Transport",
    "TuskError",
    "UnauthorizedError",
    "Unrecognized",
    "UnsupportedVersionError",
    "__version__",
    "capabilities_for",
    "configure_logging",
    "get_logger",
    "surface_for",
]
