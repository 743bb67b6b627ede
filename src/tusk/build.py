# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Build-time target selection.

Importing this module selects the target generation from the
``TUSK_SERVER_VERSION`` environment variable, once, and exposes that
generation's surface as module attributes:

    $ TUSK_SERVER_VERSION=2.4.0 python app.py

    from tusk.build import Mastodon, NewStatus   # fine at 2.4.0
    from tusk.build import Poll                  # ImportError: polls arrive at 2.9.1

A missing or untracked value fails the import with ``TargetVersionError``, so a
misconfigured program never starts. Pair it with ``python -m tusk.stubgen`` so
type checkers reject inactive names too.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any

from .exceptions import TargetVersionError
from .surface import Surface, surface_for
from .utils import get_logger
from .versioning import ALL_VERSIONS, ServerVersion, UnsupportedVersionError, capabilities_for

_logger = get_logger("tusk.build")

ENV_VAR = "TUSK_SERVER_VERSION"


def select_target(environ: Mapping[str, str] | None = None) -> ServerVersion:
    """Read the target generation from the environment.

    Raises:
        TargetVersionError: If the variable is unset, malformed or untracked
    """
    env = os.environ if environ is None else environ
    choices = ", ".join(str(v) for v in ALL_VERSIONS)
    raw = env.get(ENV_VAR, "").strip()
    if not raw:
        raise TargetVersionError(f"{ENV_VAR} is not set; choose one of: {choices}")
    try:
        return capabilities_for(ServerVersion.parse(raw)).version
    except UnsupportedVersionError as exc:
        raise TargetVersionError(f"{ENV_VAR}={raw} is not a tracked generation; choose one of: {choices}") from exc
    except ValueError as exc:
        raise TargetVersionError(f"{ENV_VAR}={raw!r} is not a version; choose one of: {choices}") from exc


TARGET_VERSION: ServerVersion = select_target()
SURFACE: Surface = surface_for(TARGET_VERSION)
Mastodon = SURFACE.client_class

_logger.info("target generation selected", extra={"event": "build.select", "version": str(TARGET_VERSION)})


def __getattr__(name: str) -> Any:
    try:
        return getattr(SURFACE, name)
    except AttributeError:
        raise AttributeError(
            f"module {__name__!r} has no attribute {name!r} (not available at Mastodon {TARGET_VERSION})"
        ) from None


def __dir__() -> list[str]:
    return sorted(
        set(globals()) | set(SURFACE.entities) | set(SURFACE.enums) | set(SURFACE.requests)
    )


__all__ = ["ENV_VAR", "SURFACE", "TARGET_VERSION", "Mastodon", "select_target"]
