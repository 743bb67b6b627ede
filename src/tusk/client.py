# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Client base class and the per-endpoint method factories.

A client class is generated per generation by ``tusk.surface``: each active
endpoint becomes one method on a subclass of ``MastodonClient``. Inactive
endpoints have no method, so referencing one is an ``AttributeError`` and the
generated stub makes it a type-checker error.

Method shapes:

- path placeholders are positional arguments, in path order
- body or query fields are keyword arguments, or a whole model via ``request=``
- paged endpoints return a ``Page`` and accept ``cursor=``; each also gets an
  ``iter_<name>`` async iterator over all items
- streaming endpoints return an ``EventReader`` (use it with ``async with``)

Example:
    >>> from tusk import surface_for
    >>> Mastodon = surface_for("2.4.0").client_class
    >>> async with Mastodon("mastodon.social", access_token="...") as client:
    ...     status = await client.new_status(status="hello", visibility="unlisted")
    ...     page = await client.home_timeline(limit=20)
    ...     older = await client.home_timeline(cursor=page.next_cursor)
"""

from __future__ import annotations

import inspect
from collections.abc import AsyncIterator, Callable
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel

from .config import ClientConfig, StreamConfig
from .endpoints import Endpoint
from .executor import RequestExecutor
from .model.requests import RequestModel
from .paging import Page, PageCursor, Paginator
from .streaming import EventReader, ReconnectingEventReader
from .transport import HttpxTransport, Transport
from .utils import get_logger
from .versioning import ServerVersion

if TYPE_CHECKING:
    from .surface import Surface

_logger = get_logger("tusk.client")


class MastodonClient:
    """Base of every generated client class.

    Args:
        config: A ``ClientConfig``, or a base URL
        access_token: Bearer token, when ``config`` is a base URL
        transport: HTTP stack; an ``HttpxTransport`` is created by default and
            closed with the client
    """

    surface: ClassVar[Surface]

    def __init__(
        self,
        config: ClientConfig | str,
        *,
        access_token: str | None = None,
        transport: Transport | None = None,
    ) -> None:
        if isinstance(config, str):
            config = ClientConfig(config, access_token=access_token)
        elif access_token is not None:
            raise TypeError("pass access_token inside ClientConfig")
        self._config = config
        self._owns_transport = transport is None
        self._transport: Transport = transport if transport is not None else HttpxTransport(config)
        self._executor = RequestExecutor(config, self._transport, self.surface.decoder)
        self._paginator = Paginator(self._executor)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._config.base_url!r}, version={str(self.surface.version)!r})"

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def executor(self) -> RequestExecutor:
        return self._executor

    @property
    def paginator(self) -> Paginator:
        return self._paginator

    @classmethod
    def server_version(cls) -> ServerVersion:
        return cls.surface.version

    async def __aenter__(self) -> MastodonClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_transport:
            await self._transport.aclose()

    def _open_stream(
        self, endpoint: Endpoint, path_params: dict[str, object], payload: RequestModel | None
    ) -> EventReader | ReconnectingEventReader:
        self._executor.ensure_authorized(endpoint)
        url = self._executor.build_url(endpoint, path_params, payload)
        headers = self._executor.headers("text/event-stream")
        stream_config: StreamConfig = self._config.stream
        events = self.surface.events
        _logger.debug("stream requested", extra={"event": "client.stream", "endpoint": endpoint.name})

        def reader() -> EventReader:
            return EventReader(
                lambda: self._transport.stream(url, headers),
                events,
                idle_timeout=stream_config.idle_timeout,
                name=endpoint.name,
            )

        if stream_config.reconnect is not None:
            return ReconnectingEventReader(reader, stream_config.reconnect)
        return reader()


# =============================================================================
# Method factories
# =============================================================================


def _bind(
    endpoint: Endpoint,
    model: type[RequestModel] | None,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> tuple[dict[str, object], RequestModel | None]:
    """Split call arguments into path values and a validated request model.

    Raises:
        TypeError: On a wrong argument shape
        pydantic.ValidationError: If a field is invalid or inactive at this generation
    """
    names = endpoint.path_params
    if len(args) > len(names):
        raise TypeError(f"{endpoint.name}() takes {len(names)} positional argument(s) but {len(args)} were given")
    path_values: dict[str, object] = dict(zip(names, args))
    for name in names[len(args) :]:
        if name in kwargs:
            path_values[name] = kwargs.pop(name)

    request = kwargs.pop("request", None)
    if model is None:
        if request is not None or kwargs:
            unexpected = ", ".join(sorted(kwargs)) or "request"
            raise TypeError(f"{endpoint.name}() got unexpected keyword argument(s): {unexpected}")
        return path_values, None

    if request is None:
        return path_values, model(**kwargs)
    if kwargs:
        raise TypeError(f"{endpoint.name}() takes request= or field keywords, not both")
    if not isinstance(request, BaseModel):
        raise TypeError(f"{endpoint.name}() request must be a {model.__name__}, got {type(request).__name__}")
    # Revalidate against this generation's model; inactive fields are rejected
    return path_values, model.model_validate({n: getattr(request, n) for n in request.model_fields_set})


def _signature(
    endpoint: Endpoint, model: type[RequestModel] | None, *, paged: bool = False
) -> inspect.Signature:
    params = [inspect.Parameter("self", inspect.Parameter.POSITIONAL_OR_KEYWORD)]
    params.extend(inspect.Parameter(n, inspect.Parameter.POSITIONAL_OR_KEYWORD) for n in endpoint.path_params)
    if model is not None:
        params.append(inspect.Parameter("request", inspect.Parameter.KEYWORD_ONLY, default=None))
        for name, info in model.model_fields.items():
            if info.is_required():
                default = inspect.Parameter.empty
            else:
                default = None if info.default_factory is not None else info.default
            params.append(inspect.Parameter(name, inspect.Parameter.KEYWORD_ONLY, default=default))
    if paged:
        params.append(inspect.Parameter("cursor", inspect.Parameter.KEYWORD_ONLY, default=None))
    return inspect.Signature(params)


def _finish(fn: Callable[..., Any], endpoint: Endpoint, name: str, signature: inspect.Signature) -> None:
    fn.__name__ = name
    fn.__qualname__ = f"MastodonClient.{name}"
    fn.__doc__ = endpoint.doc or f"``{endpoint.method} {endpoint.path}``"
    fn.__signature__ = signature  # type: ignore[attr-defined]


def make_operation(endpoint: Endpoint, model: type[RequestModel] | None) -> Callable[..., Any]:
    """Method for a plain request/response endpoint."""

    async def operation(self: MastodonClient, *args: Any, **kwargs: Any) -> Any:
        path_values, payload = _bind(endpoint, model, args, kwargs)
        return await self._executor.execute(endpoint, path_values, payload)

    _finish(operation, endpoint, endpoint.name, _signature(endpoint, model))
    return operation


def make_paged_operation(endpoint: Endpoint, model: type[RequestModel] | None) -> Callable[..., Any]:
    """Method returning one ``Page``; ``cursor=`` fetches a neighbouring page."""

    async def operation(self: MastodonClient, *args: Any, cursor: PageCursor | None = None, **kwargs: Any) -> Page[Any]:
        path_values, payload = _bind(endpoint, model, args, kwargs)
        return await self._paginator.page(endpoint, payload, cursor, path_values)

    _finish(operation, endpoint, endpoint.name, _signature(endpoint, model, paged=True))
    return operation


def make_iterator(endpoint: Endpoint, model: type[RequestModel] | None) -> Callable[..., Any]:
    """``iter_<name>``: async iterator over every item of a paged listing."""

    def operation(self: MastodonClient, *args: Any, **kwargs: Any) -> AsyncIterator[Any]:
        path_values, payload = _bind(endpoint, model, args, kwargs)
        return self._paginator.iterate(endpoint, payload, path_values)

    _finish(operation, endpoint, f"iter_{endpoint.name}", _signature(endpoint, model))
    return operation


def make_stream_operation(endpoint: Endpoint, model: type[RequestModel] | None) -> Callable[..., Any]:
    """Method returning an unopened stream reader."""

    def operation(self: MastodonClient, *args: Any, **kwargs: Any) -> EventReader | ReconnectingEventReader:
        path_values, payload = _bind(endpoint, model, args, kwargs)
        return self._open_stream(endpoint, path_values, payload)

    _finish(operation, endpoint, endpoint.name, _signature(endpoint, model))
    return operation


def endpoint_methods(endpoint: Endpoint, model: type[RequestModel] | None) -> dict[str, Callable[..., Any]]:
    """All methods one endpoint contributes to a client class."""
    if endpoint.stream:
        return {endpoint.name: make_stream_operation(endpoint, model)}
    if endpoint.paged:
        return {
            endpoint.name: make_paged_operation(endpoint, model),
            f"iter_{endpoint.name}": make_iterator(endpoint, model),
        }
    return {endpoint.name: make_operation(endpoint, model)}


__all__ = [
    "MastodonClient",
    "endpoint_methods",
    "make_iterator",
    "make_operation",
    "make_paged_operation",
    "make_stream_operation",
]
