# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Type stub generation for ``tusk.build``.

``tusk.build`` resolves its names at import time, which static checkers cannot
see. ``render_stub(version)`` writes the selected generation's surface out as
a ``.pyi`` so that mypy or pyright reject a call to an endpoint, or a read of
a field, that does not exist at the target:

    python -m tusk.stubgen 2.4.0 -o src/tusk/build.pyi

The stub is plain text derived from the same declarations the runtime uses.
"""

from __future__ import annotations

import argparse
import sys
import types
import typing
from collections.abc import Sequence
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Literal, Union

from pydantic import BaseModel

from .endpoints import Endpoint
from .model.fields import Entity, type_name
from .model.requests import RequestModel
from .surface import Surface, surface_for
from .utils import configure_logging, get_logger
from .versioning import ALL_VERSIONS, ServerVersion

_logger = get_logger("tusk.stubgen")

_HEADER = '''\
# Generated by tusk.stubgen for Mastodon {version}. Do not edit.
from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from tusk.client import MastodonClient
from tusk.model import requests as _rq
from tusk.model.fields import Absent, Entity, Unrecognized
from tusk.model.requests import RequestModel
from tusk.paging import Page, PageCursor
from tusk.streaming import EventReader, ReconnectingEventReader
from tusk.surface import Surface
from tusk.versioning import ServerVersion

ENV_VAR: str
TARGET_VERSION: ServerVersion
SURFACE: Surface

def select_target(environ: Mapping[str, str] | None = ...) -> ServerVersion: ...
'''


# =============================================================================
# Annotation rendering
# =============================================================================


def annotation_text(tp: Any, local: frozenset[str] = frozenset()) -> str:
    """Render a runtime annotation as stub text.

    ``local`` names classes defined in the stub itself; other pydantic models
    are referenced through ``tusk.model.requests``.
    """
    if tp is None or tp is type(None):
        return "None"
    if tp is Any:
        return "Any"
    origin = typing.get_origin(tp)
    args = typing.get_args(tp)
    if origin is Union or origin is types.UnionType:
        return " | ".join(annotation_text(a, local) for a in args)
    if origin is Literal:
        return f"Literal[{', '.join(repr(a) for a in args)}]"
    if origin is typing.Annotated:
        return annotation_text(args[0], local)
    if origin is not None:
        name = getattr(origin, "__name__", "Any")
        if not args:
            return name
        inner = ", ".join("..." if a is Ellipsis else annotation_text(a, local) for a in args)
        return f"{name}[{inner}]"
    if isinstance(tp, type):
        if tp.__name__ in local:
            return tp.__name__
        if issubclass(tp, BaseModel):
            return f"_rq.{tp.__name__}"
        if tp is datetime or tp.__module__ == "builtins":
            return tp.__name__
    return "Any"


# =============================================================================
# Sections
# =============================================================================


def _render_enum(name: str, enum_cls: type[Enum]) -> list[str]:
    lines = [f"class {name}(str, Enum):"]
    members = list(enum_cls)
    if not members:
        lines.append("    ...")
    for member in members:
        lines.append(f"    {member.name} = {member.value!r}")
    return lines


def _render_entity(name: str, cls: type[Entity]) -> list[str]:
    lines = [f"class {name}(Entity):"]
    params = []
    for field_name, field in cls._field_specs.items():
        text = field.annotation_text()
        lines.append(f"    {field_name}: {text}")
        default = " = ..." if field.optional or field.nullable else ""
        params.append(f"{field_name}: {text}{default}")
    lines.append("    raw_extra: Mapping[str, Any]")
    params.append("raw_extra: Mapping[str, Any] = ...")
    lines.append(f"    def __init__(self, *, {', '.join(params)}) -> None: ...")
    return lines


def _render_request(name: str, model: type[RequestModel], local: frozenset[str]) -> list[str]:
    lines = [f"class {name}(RequestModel):"]
    params = []
    for field_name, info in model.model_fields.items():
        text = annotation_text(info.annotation, local)
        lines.append(f"    {field_name}: {text}")
        params.append(f"{field_name}: {text}" + ("" if info.is_required() else " = ..."))
    if not params:
        lines.append("    def __init__(self) -> None: ...")
    else:
        lines.append(f"    def __init__(self, *, {', '.join(params)}) -> None: ...")
    return lines


def _method_params(surface: Surface, endpoint: Endpoint, local: frozenset[str], *, paged: bool) -> str:
    params = ["self"] + [f"{n}: str" for n in endpoint.path_params]
    model = surface.model_for(endpoint)
    if model is not None:
        params.append("*")
        params.append(f"request: {model.__name__} | None = ...")
        for field_name, info in model.model_fields.items():
            default = "" if info.is_required() else " = ..."
            params.append(f"{field_name}: {annotation_text(info.annotation, local)}{default}")
    if paged:
        if model is None:
            params.append("*")
        params.append("cursor: PageCursor | None = ...")
    return ", ".join(params)


def _render_client(surface: Surface, local: frozenset[str]) -> list[str]:
    lines = ["class Mastodon(MastodonClient):"]
    for endpoint in surface.endpoints.values():
        if endpoint.stream:
            params = _method_params(surface, endpoint, local, paged=False)
            lines.append(f"    def {endpoint.name}({params}) -> EventReader | ReconnectingEventReader: ...")
        elif endpoint.paged:
            item = type_name(endpoint.returns.item)  # type: ignore[union-attr]
            params = _method_params(surface, endpoint, local, paged=True)
            lines.append(f"    async def {endpoint.name}({params}) -> Page[{item}]: ...")
            params = _method_params(surface, endpoint, local, paged=False)
            lines.append(f"    def iter_{endpoint.name}({params}) -> AsyncIterator[{item}]: ...")
        else:
            returns = "None" if endpoint.returns is None else type_name(endpoint.returns)
            params = _method_params(surface, endpoint, local, paged=False)
            lines.append(f"    async def {endpoint.name}({params}) -> {returns}: ...")
    return lines


def render_stub(version: ServerVersion | str) -> str:
    """``.pyi`` text for ``tusk.build`` at ``version``."""
    surface = surface_for(version)
    local = frozenset(surface.entities) | frozenset(surface.enums) | frozenset(surface.requests)
    blocks: list[list[str]] = []
    blocks.extend(_render_enum(name, cls) for name, cls in surface.enums.items())
    blocks.extend(_render_entity(name, cls) for name, cls in surface.entities.items())
    blocks.extend(_render_request(name, model, local) for name, model in surface.requests.items())
    blocks.append(_render_client(surface, local))
    body = "\n\n".join("\n".join(block) for block in blocks)
    return _HEADER.format(version=surface.version) + "\n" + body + "\n"


# =============================================================================
# CLI
# =============================================================================


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="python -m tusk.stubgen", description=__doc__.splitlines()[0])
    parser.add_argument(
        "version",
        choices=[str(v) for v in ALL_VERSIONS],
        help="Target Mastodon generation",
    )
    parser.add_argument("-o", "--output", type=Path, help="Write the stub here instead of stdout")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress")
    args = parser.parse_args(argv)

    if args.verbose:
        configure_logging("DEBUG")

    text = render_stub(args.version)
    if args.output is None:
        sys.stdout.write(text)
    else:
        args.output.write_text(text, encoding="utf-8")
        _logger.info("stub written", extra={"event": "stubgen.write", "path": str(args.output)})
    return 0


__all__ = ["annotation_text", "main", "render_stub"]


if __name__ == "__main__":
    raise SystemExit(main())
