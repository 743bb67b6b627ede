# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Shared fixtures."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from tusk import ClientConfig, MastodonClient, surface_for
from tusk.testing import MockTransport

BASE_URL = "https://example.social"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def transport() -> MockTransport:
    return MockTransport()


@pytest.fixture
def make_client(transport: MockTransport) -> Callable[..., MastodonClient]:
    """Build a client for a generation over the shared ``MockTransport``."""

    def _make(version: str = "3.3.0", *, token: str | None = "token", **config) -> MastodonClient:
        cls = surface_for(version).client_class
        return cls(ClientConfig(BASE_URL, access_token=token, **config), transport=transport)

    return _make
