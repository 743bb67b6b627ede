# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Per-generation API surface.

``surface_for(version)`` specializes every declaration against the capability
set of one generation and returns a ``Surface``:

    >>> s = surface_for("2.1.0")
    >>> s.Status.shape()            # no ``poll``, ``bookmarked`` ...
    >>> s.Poll
    AttributeError: Poll is not available at Mastodon 2.1.0
    >>> client = s.client_class("mastodon.social", access_token="...")

Surfaces are cached per generation and immutable once built. Building checks
that the specialized pieces agree with each other (an active field or endpoint
never refers to an inactive entity) and raises ``MatrixError`` otherwise.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from functools import cache
from types import MappingProxyType
from typing import Any

from .client import MastodonClient, endpoint_methods
from .endpoints import Endpoint, active_endpoints
from .model.decode import Decoder
from .model.entities import ENUM_SPECS
from .model.fields import Entity, EntitySpec, iter_enums, iter_refs
from .model.requests import REQUEST_MODELS, RequestModel
from .model.specialize import specialize_entity, specialize_enum, specialize_request
from .streaming import EventDecoder
from .utils import get_logger
from .versioning import MatrixError, ServerCapabilities, ServerVersion, capabilities_for

_logger = get_logger("tusk.surface")

# Reserved on generated clients
_CALL_KEYWORDS = frozenset({"request", "cursor"})


class Surface:
    """Everything that exists at one generation.

    Entity classes, enums and request models are also reachable as attributes
    (``surface.Status``, ``surface.Visibility``, ``surface.NewStatus``).
    """

    def __init__(self, caps: ServerCapabilities) -> None:
        self.version: ServerVersion = caps.version
        self.capabilities = caps
        self.enums: Mapping[str, type[Enum]] = MappingProxyType(
            {spec.name: specialize_enum(spec, caps) for spec in ENUM_SPECS}
        )
        self.entities: Mapping[str, type[Entity]] = MappingProxyType(
            {
                name: specialize_entity(spec, caps, self.enums)
                for name, spec in EntitySpec.registry.items()
                if caps.supports(spec.since)
            }
        )
        self.endpoints: Mapping[str, Endpoint] = MappingProxyType(active_endpoints(caps))
        taken = _models_taken_by(self.endpoints.values())
        self.requests: Mapping[str, type[RequestModel]] = MappingProxyType(
            {model.__name__: specialize_request(model, caps) for model in REQUEST_MODELS if model in taken}
        )
        self.decoder = Decoder(self)
        self.events = EventDecoder(self.decoder, caps)
        check_surface(self)
        self.client_class: type[MastodonClient] = build_client_class(self)

    def __repr__(self) -> str:
        return f"Surface({str(self.version)!r})"

    def __getattr__(self, name: str) -> Any:
        # Only reached for names that are not instance attributes
        if name.startswith("_"):
            raise AttributeError(name)
        for table in ("entities", "enums", "requests"):
            members = self.__dict__.get(table)
            if members is not None and name in members:
                return members[name]
        raise AttributeError(f"{name} is not available at Mastodon {self.version}")

    def model_for(self, endpoint: Endpoint) -> type[RequestModel] | None:
        """Specialized body or query model of ``endpoint``."""
        declared = endpoint.body or endpoint.params
        return None if declared is None else self.requests[declared.__name__]

    def endpoint(self, name: str) -> Endpoint:
        try:
            return self.endpoints[name]
        except KeyError:
            raise AttributeError(f"endpoint {name} is not available at Mastodon {self.version}") from None

    def supports(self, name: str) -> bool:
        """Whether an endpoint, entity, enum or request model exists here."""
        return name in self.endpoints or name in self.entities or name in self.enums or name in self.requests


def _models_taken_by(endpoints: Iterable[Endpoint]) -> set[type[RequestModel]]:
    models: set[type[RequestModel]] = set()
    for endpoint in endpoints:
        models.update(m for m in (endpoint.body, endpoint.params) if m is not None)
    return models


def check_surface(surface: Surface) -> None:
    """Raise ``MatrixError`` if the specialized pieces disagree."""
    problems: list[str] = []
    entities = surface.entities

    for name, cls in entities.items():
        for field_name, field in cls._field_specs.items():
            for ref in iter_refs(field.type):
                if ref not in entities:
                    problems.append(f"{name}.{field_name} refers to inactive entity {ref}")
            for spec in iter_enums(field.type):
                if spec.name not in surface.enums:
                    problems.append(f"{name}.{field_name} refers to unknown enum {spec.name}")

    reserved = set(dir(MastodonClient))
    for endpoint in surface.endpoints.values():
        if endpoint.returns is not None:
            for ref in iter_refs(endpoint.returns):
                if ref not in entities:
                    problems.append(f"endpoint {endpoint.name} returns inactive entity {ref}")
        names = {endpoint.name, f"iter_{endpoint.name}"} if endpoint.paged else {endpoint.name}
        for method in names & reserved:
            problems.append(f"endpoint {endpoint.name} shadows client attribute {method}")
        model = surface.model_for(endpoint)
        if model is not None:
            clash = (set(model.model_fields) & set(endpoint.path_params)) | (set(model.model_fields) & _CALL_KEYWORDS)
            for field_name in sorted(clash):
                problems.append(f"endpoint {endpoint.name} has ambiguous argument {field_name}")

    if problems:
        raise MatrixError(f"inconsistent surface for {surface.version}: " + "; ".join(problems))


def build_client_class(surface: Surface) -> type[MastodonClient]:
    """Subclass of ``MastodonClient`` with one method per active endpoint."""
    namespace: dict[str, Callable[..., Any] | Surface | str] = {
        "surface": surface,
        "__module__": __name__,
        "__doc__": f"Mastodon {surface.version} API client.\n\n{MastodonClient.__doc__}",
    }
    for endpoint in surface.endpoints.values():
        namespace.update(endpoint_methods(endpoint, surface.model_for(endpoint)))
    return type(f"Mastodon_{surface.version.slug}", (MastodonClient,), namespace)


@cache
def surface_for(version: ServerVersion | str) -> Surface:
    """Return the (cached) surface of a tracked generation.

    Raises:
        UnsupportedVersionError: If ``version`` is not tracked
        MatrixError: If the declarations are inconsistent at ``version``
    """
    caps = capabilities_for(version)
    if caps.version != version:
        return surface_for(caps.version)
    surface = Surface(caps)
    _logger.debug(
        "surface built",
        extra={
            "event": "surface.build",
            "version": str(caps.version),
            "endpoints": len(surface.endpoints),
            "entities": len(surface.entities),
        },
    )
    return surface


__all__ = ["Surface", "build_client_class", "check_surface", "surface_for"]
