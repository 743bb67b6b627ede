# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Build per-generation classes from the declarations.

Entities become frozen, slotted dataclasses that only have the fields active at
the target generation, so reading an inactive field is an ``AttributeError``
rather than a ``None``. Enums become ``str`` enums with only the active members.
Request models are rebuilt with ``pydantic.create_model`` without their gated
fields; since they forbid extra keys, passing an inactive field fails validation.
"""

from __future__ import annotations

import dataclasses
import types
import typing
from enum import Enum
from functools import cache
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, create_model

from ..versioning import FeatureId, ServerCapabilities
from .fields import Absent, Entity, EntitySpec, EnumSpec, Field, ListOf, Ref, TypeExpr, Unrecognized
from .requests import RequestModel, Since


def _annotation(expr: TypeExpr, enums: Mapping[str, type[Enum]]) -> Any:
    if isinstance(expr, Ref):
        return expr.entity  # forward reference; entity classes refer to each other
    if isinstance(expr, ListOf):
        return list[_annotation(expr.item, enums)]  # type: ignore[misc]
    if isinstance(expr, EnumSpec):
        return Union[enums[expr.name], Unrecognized]
    return expr


def _field_annotation(field: Field, enums: Mapping[str, type[Enum]]) -> Any:
    annotation = _annotation(field.type, enums)
    if field.nullable:
        annotation = Optional[annotation]
    if field.optional:
        annotation = Union[annotation, Absent]
    return annotation


def specialize_enum(spec: EnumSpec, caps: ServerCapabilities) -> type[Enum]:
    """``str`` enum holding only the variants active under ``caps``."""
    members = list(spec.active_variants(caps).items())
    enum_cls = Enum(spec.name, members, type=str, module=__name__)  # type: ignore[misc]
    if spec.doc:
        enum_cls.__doc__ = spec.doc
    return enum_cls


def specialize_entity(
    spec: type[EntitySpec],
    caps: ServerCapabilities,
    enums: Mapping[str, type[Enum]],
) -> type[Entity]:
    """Dataclass for ``spec`` at the generation described by ``caps``.

    Fields are keyword-only. ``optional`` fields default to ``ABSENT`` and
    ``nullable`` ones to ``None``; the rest are required.
    """
    active = spec.active_fields(caps)
    field_defs: list[tuple[str, Any, Any]] = []
    for name, field in active.items():
        annotation = _field_annotation(field, enums)
        if field.optional:
            field_defs.append((name, annotation, dataclasses.field(default=Absent.ABSENT)))
        elif field.nullable:
            field_defs.append((name, annotation, dataclasses.field(default=None)))
        else:
            field_defs.append((name, annotation, dataclasses.field()))
    field_defs.append(
        ("raw_extra", Mapping[str, Any], dataclasses.field(default_factory=dict, repr=False, compare=False))
    )

    cls = dataclasses.make_dataclass(
        spec.__name__,
        field_defs,
        bases=(Entity,),
        namespace={
            "__doc__": spec.__doc__,
            "_entity_spec": spec,
            "_server_version": caps.version,
            "_field_specs": active,
        },
        frozen=True,
        slots=True,
        kw_only=True,
    )
    cls.__module__ = __name__
    return cls


def _since(info: Any) -> FeatureId | None:
    for item in info.metadata:
        if isinstance(item, Since):
            return item.feature
    return None


def gated_fields(model: type[BaseModel]) -> dict[str, FeatureId | None]:
    """Field name to flag (``None`` for baseline) for a request model."""
    return {name: _since(info) for name, info in model.model_fields.items()}


def _nested_annotation(tp: Any, caps: ServerCapabilities) -> Any:
    # Swap nested models for their specialized copies inside unions and containers
    if isinstance(tp, type) and issubclass(tp, BaseModel):
        return _specialize_nested(tp, caps)
    args = typing.get_args(tp)
    if not args:
        return tp
    new_args = tuple(_nested_annotation(arg, caps) for arg in args)
    if new_args == args:
        return tp
    origin = typing.get_origin(tp)
    if origin is Union or origin is types.UnionType:
        return Union[new_args]
    return origin[new_args]


def _active_fields(model: type[BaseModel], caps: ServerCapabilities) -> dict[str, Any]:
    return {
        name: (_nested_annotation(info.annotation, caps), info)
        for name, info in model.model_fields.items()
        if caps.supports(_since(info))
    }


@cache
def _specialize_nested(model: type[BaseModel], caps: ServerCapabilities) -> type[BaseModel]:
    kept = _active_fields(model, caps)
    unchanged = len(kept) == len(model.model_fields) and all(
        annotation is info.annotation for annotation, info in kept.values()
    )
    if unchanged:
        return model
    return create_model(  # type: ignore[call-overload]
        model.__name__,
        __config__=ConfigDict(extra="forbid"),
        __doc__=model.__doc__,
        __module__=__name__,
        **kept,
    )


def specialize_request(model: type[RequestModel], caps: ServerCapabilities) -> type[RequestModel]:
    """Rebuild ``model`` with only the fields active under ``caps``.

    Nested models are rebuilt the same way, so a gated field one level down
    (``PushData.alerts.poll``) is rejected as well.
    """
    return create_model(  # type: ignore[call-overload]
        model.__name__,
        __base__=RequestModel,
        __doc__=model.__doc__,
        __module__=__name__,
        **_active_fields(model, caps),
    )


__all__ = [
    "gated_fields",
    "specialize_entity",
    "specialize_enum",
    "specialize_request",
]
