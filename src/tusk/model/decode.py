# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Decode generic JSON values into specialized entities.

Decoding follows the field declarations of the target generation only:

- active and present: decoded
- active, missing, ``optional``: ``ABSENT``
- active, missing, not ``optional``: ``DecodeError``
- not active at the target (or unknown): kept raw in ``entity.raw_extra``
- enum value the target does not know: ``Unrecognized(raw)``
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from functools import cache
from types import MappingProxyType
from typing import Any, Protocol

from pydantic import ConfigDict, TypeAdapter, ValidationError

from .fields import ABSENT, Entity, EnumSpec, ListOf, Ref, TypeExpr, Unrecognized


class DecodeError(Exception):
    """A payload does not match the declared shape.

    Attributes:
        path: Dotted location of the offending value, e.g. ``Status.account.id``
        detail: What went wrong
    """

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"{path}: {detail}")
        self.path = path
        self.detail = detail


class EntityNamespace(Protocol):
    """What the decoder needs from a specialized surface."""

    entities: Mapping[str, type[Entity]]
    enums: Mapping[str, type[Enum]]


# Mastodon ids are strings, but some older endpoints send integers
_LEAF_CONFIG = ConfigDict(coerce_numbers_to_str=True)


@cache
def _adapter(tp: type) -> TypeAdapter[Any]:
    if tp is str:
        return TypeAdapter(tp, config=_LEAF_CONFIG)
    return TypeAdapter(tp)


class Decoder:
    """Decoder bound to one generation's entity classes and enums."""

    def __init__(self, namespace: EntityNamespace) -> None:
        self._ns = namespace

    def decode_entity(self, name: str, data: Any, path: str | None = None) -> Entity:
        path = path or name
        try:
            cls = self._ns.entities[name]
        except KeyError:
            raise DecodeError(path, f"entity {name} is not part of this generation") from None
        if not isinstance(data, Mapping):
            raise DecodeError(path, f"expected an object, got {type(data).__name__}")

        values: dict[str, Any] = {}
        for field_name, spec in cls._field_specs.items():
            where = f"{path}.{field_name}"
            if field_name not in data:
                if spec.optional:
                    values[field_name] = ABSENT
                    continue
                raise DecodeError(where, "required field is missing")
            raw = data[field_name]
            if raw is None:
                if spec.nullable:
                    values[field_name] = None
                    continue
                raise DecodeError(where, "null is not allowed")
            values[field_name] = self.decode_value(spec.type, raw, where)

        extra = {key: value for key, value in data.items() if key not in cls._field_specs}
        return cls(**values, raw_extra=MappingProxyType(extra))

    def decode_value(self, expr: TypeExpr, raw: Any, path: str) -> Any:
        if isinstance(expr, Ref):
            return self.decode_entity(expr.entity, raw, path)
        if isinstance(expr, ListOf):
            if not isinstance(raw, list):
                raise DecodeError(path, f"expected a list, got {type(raw).__name__}")
            return [self.decode_value(expr.item, item, f"{path}[{i}]") for i, item in enumerate(raw)]
        if isinstance(expr, EnumSpec):
            return self._decode_enum(expr, raw, path)
        try:
            return _adapter(expr).validate_python(raw)
        except ValidationError as exc:
            first = exc.errors()[0]
            raise DecodeError(path, first["msg"]) from exc

    def decode_list(self, name: str, data: Any) -> list[Entity]:
        return self.decode_value(ListOf(Ref(name)), data, f"list[{name}]")

    def _decode_enum(self, spec: EnumSpec, raw: Any, path: str) -> Enum | Unrecognized:
        if not isinstance(raw, str):
            raise DecodeError(path, f"expected a string for {spec.name}, got {type(raw).__name__}")
        enum_cls = self._ns.enums[spec.name]
        try:
            return enum_cls(raw)
        except ValueError:
            return Unrecognized(raw, spec.name)


__all__ = ["DecodeError", "Decoder", "EntityNamespace"]
