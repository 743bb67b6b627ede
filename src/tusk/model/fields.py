# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Declarative building blocks for versioned entities.

An entity is declared once, with every field it has ever had, and each field
names the flag that introduced it:

    class Attachment(EntitySpec):
        id = Field(str)
        description = Field(str, since=FeatureId.ATTACHMENT_DESCRIPTION, optional=True, nullable=True)

``tusk.model.specialize`` turns a spec into a concrete dataclass for one
generation, keeping only the fields whose flag is active there.

Absence and null are different things on the wire and stay different here:
a missing optional field decodes to ``ABSENT``, an explicit ``null`` to ``None``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields as dataclass_fields
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Iterator, Mapping, Union

from ..versioning import FeatureId, ServerCapabilities, ServerVersion


# =============================================================================
# Markers
# =============================================================================


class Absent(Enum):
    """Type of the ``ABSENT`` marker."""

    ABSENT = "ABSENT"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = Absent.ABSENT


@dataclass(frozen=True, slots=True)
class Unrecognized:
    """An enum value the target generation does not know.

    Servers newer than the target may send variants added later; those are kept
    verbatim rather than rejected.
    """

    raw: str
    enum: str = ""

    def __str__(self) -> str:
        return self.raw


# =============================================================================
# Type expressions
# =============================================================================


@dataclass(frozen=True, slots=True)
class Ref:
    """Reference to another entity by spec name."""

    entity: str


@dataclass(frozen=True, slots=True)
class ListOf:
    item: TypeExpr


_MEMBER_NAME = re.compile(r"[^0-9A-Za-z]+")


class EnumSpec:
    """A string enum whose variants may be gated by flags.

    Example:
        >>> MediaType = EnumSpec("MediaType", {"image": None, "audio": FeatureId.MEDIA_TYPE_AUDIO})
    """

    registry: ClassVar[dict[str, EnumSpec]] = {}

    def __init__(self, name: str, variants: Mapping[str, FeatureId | None], doc: str = "") -> None:
        self.name = name
        self.variants = dict(variants)
        self.doc = doc
        if name in EnumSpec.registry:
            raise ValueError(f"enum spec {name!r} declared twice")
        EnumSpec.registry[name] = self

    @staticmethod
    def member_name(value: str) -> str:
        return _MEMBER_NAME.sub("_", value).strip("_").upper()

    def active_variants(self, caps: ServerCapabilities) -> dict[str, str]:
        """Member name to wire value, for the variants active under ``caps``."""
        return {self.member_name(v): v for v, flag in self.variants.items() if caps.supports(flag)}

    def __repr__(self) -> str:
        return f"EnumSpec({self.name!r})"


LEAF_TYPES: tuple[type, ...] = (str, int, float, bool, datetime, dict)

TypeExpr = Union[type, EnumSpec, Ref, ListOf]


def iter_refs(expr: TypeExpr) -> Iterator[str]:
    """Yield every entity name referenced by a type expression."""
    if isinstance(expr, Ref):
        yield expr.entity
    elif isinstance(expr, ListOf):
        yield from iter_refs(expr.item)


def iter_enums(expr: TypeExpr) -> Iterator[EnumSpec]:
    if isinstance(expr, EnumSpec):
        yield expr
    elif isinstance(expr, ListOf):
        yield from iter_enums(expr.item)


def type_name(expr: TypeExpr) -> str:
    """Render a type expression as annotation text."""
    if isinstance(expr, Ref):
        return expr.entity
    if isinstance(expr, ListOf):
        return f"list[{type_name(expr.item)}]"
    if isinstance(expr, EnumSpec):
        return f"{expr.name} | Unrecognized"
    return expr.__name__


# =============================================================================
# Fields and entity specs
# =============================================================================


@dataclass(frozen=True, slots=True)
class Field:
    """One entity field.

    Attributes:
        type: Leaf type, enum spec, entity reference or list thereof
        since: Flag that introduced the field; ``None`` for baseline fields
        optional: May be missing from a payload even when active
        nullable: May be JSON ``null``
        doc: One-line description
    """

    type: TypeExpr
    since: FeatureId | None = None
    optional: bool = False
    nullable: bool = False
    doc: str = ""

    def annotation_text(self) -> str:
        text = type_name(self.type)
        if self.nullable:
            text += " | None"
        if self.optional:
            text += " | Absent"
        return text


class EntitySpec:
    """Base class for entity declarations.

    Subclasses list ``Field`` attributes in wire order. A spec may itself be
    gated with a ``since`` class attribute when the whole entity is new.
    """

    since: ClassVar[FeatureId | None] = None
    registry: ClassVar[dict[str, type[EntitySpec]]] = {}
    _fields: ClassVar[dict[str, Field]]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._fields = {name: value for name, value in vars(cls).items() if isinstance(value, Field)}
        if cls.__name__ in EntitySpec.registry:
            raise ValueError(f"entity spec {cls.__name__!r} declared twice")
        EntitySpec.registry[cls.__name__] = cls

    def __init__(self) -> None:
        raise TypeError(f"{type(self).__name__} is a declaration; use Surface.{type(self).__name__}")

    @classmethod
    def all_fields(cls) -> dict[str, Field]:
        return dict(cls._fields)

    @classmethod
    def active_fields(cls, caps: ServerCapabilities) -> dict[str, Field]:
        return {name: f for name, f in cls._fields.items() if caps.supports(f.since)}


# =============================================================================
# Runtime base for specialized entities
# =============================================================================


class Entity:
    """Base of every specialized entity dataclass.

    Instances are frozen. Payload keys that are not fields at the target
    generation are kept in ``raw_extra`` as the server sent them: undecoded,
    unvalidated and outside the typed surface. They are there for inspection
    only; code that relies on them is relying on a newer generation.
    """

    __slots__ = ()

    _entity_spec: ClassVar[type[EntitySpec]]
    _server_version: ClassVar[ServerVersion]
    _field_specs: ClassVar[dict[str, Field]]

    raw_extra: Mapping[str, Any]

    @classmethod
    def shape(cls) -> tuple[str, ...]:
        """Field names present at this class's generation."""
        return tuple(cls._field_specs)

    @classmethod
    def server_version(cls) -> ServerVersion:
        return cls._server_version

    def contains_key(self, key: str) -> bool:
        return key in self.raw_extra

    def keys(self) -> Iterator[str]:
        return iter(self.raw_extra)

    def get(self, key: str, default: Any = None) -> Any:
        return self.raw_extra.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible rendering; ``ABSENT`` fields are omitted."""
        out: dict[str, Any] = {}
        for f in dataclass_fields(self):  # type: ignore[arg-type]
            if f.name == "raw_extra":
                continue
            value = getattr(self, f.name)
            if value is ABSENT:
                continue
            out[f.name] = _to_jsonable(value)
        return out


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, Entity):
        return value.to_dict()
    if isinstance(value, list):
        return [_to_jsonable(v) for v in value]
    if isinstance(value, Unrecognized):
        return value.raw
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


__all__ = [
    "ABSENT",
    "LEAF_TYPES",
    "Absent",
    "Entity",
    "EntitySpec",
    "EnumSpec",
    "Field",
    "ListOf",
    "Ref",
    "TypeExpr",
    "Unrecognized",
    "iter_enums",
    "iter_refs",
    "type_name",
]
