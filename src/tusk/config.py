# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Client configuration dataclasses."""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _normalize_base_url(value: str) -> str:
    value = value.strip().rstrip("/")
    if not value:
        raise ValueError("base_url must not be empty")
    if "://" not in value:
        value = f"https://{value}"
    return value


@dataclass(slots=True, frozen=True)
class ReconnectPolicy:
    """Exponential backoff for the opt-in reconnecting stream reader.

    Example:
        >>> policy = ReconnectPolicy(initial_delay=0.5, max_attempts=10)
        >>> [policy.delay_for(n) for n in range(1, 4)]
        [0.5, 1.0, 2.0]
    """

    initial_delay: float = 1.0
    """Delay before the first reconnection attempt, in seconds."""

    max_delay: float = 60.0
    """Upper bound for any single delay."""

    multiplier: float = 2.0
    """Growth factor between consecutive attempts."""

    max_attempts: int | None = 5
    """Consecutive failed attempts before giving up. ``None`` retries forever."""

    def delay_for(self, attempt: int) -> float:
        """Delay before attempt number ``attempt`` (1-based)."""
        if attempt < 1:
            raise ValueError("attempt is 1-based")
        return min(self.initial_delay * self.multiplier ** (attempt - 1), self.max_delay)


@dataclass(slots=True, frozen=True)
class StreamConfig:
    """Streaming reader tunables."""

    idle_timeout: float | None = None
    """Default ``next_event`` timeout. ``None`` waits indefinitely."""

    reconnect: ReconnectPolicy | None = None
    """Set to enable ``ReconnectingEventReader``; off by default."""


@dataclass(slots=True, frozen=True)
class ClientConfig:
    """Connection parameters shared by every request of a client.

    Immutable, so one instance can be shared by concurrent tasks.

    Example:
        >>> config = ClientConfig("mastodon.social", access_token="...")
        >>> config.base_url
        'https://mastodon.social'
    """

    base_url: str
    """Server address. ``https://`` is assumed when no scheme is given."""

    access_token: str | None = field(default=None, repr=False)
    """Bearer token obtained out of band (the OAuth flow is not handled here)."""

    timeout: float = 30.0
    """Per-request timeout in seconds."""

    user_agent: str = "tusk"

    stream: StreamConfig = field(default_factory=StreamConfig)

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_url", _normalize_base_url(self.base_url))
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")

    @property
    def authenticated(self) -> bool:
        return bool(self.access_token)

    def url(self, path: str) -> str:
        """Join an absolute API path onto the base URL."""
        return f"{self.base_url}{path}"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> ClientConfig:
        """Build from ``TUSK_BASE_URL``, ``TUSK_ACCESS_TOKEN`` and ``TUSK_TIMEOUT``.

        Raises:
            ValueError: If ``TUSK_BASE_URL`` is not set
        """
        env = os.environ if environ is None else environ
        base_url = env.get("TUSK_BASE_URL")
        if not base_url:
            raise ValueError("TUSK_BASE_URL is not set")
        timeout = env.get("TUSK_TIMEOUT")
        return cls(
            base_url=base_url,
            access_token=env.get("TUSK_ACCESS_TOKEN") or None,
            timeout=float(timeout) if timeout else 30.0,
        )


__all__ = ["ClientConfig", "ReconnectPolicy", "StreamConfig"]
