# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Request executor: one HTTP exchange per endpoint call.

The executor turns an ``Endpoint`` plus its arguments into a request, sends it
through a ``Transport`` and classifies the outcome:

- no token for an endpoint that needs one: ``UnauthorizedError`` (nothing sent)
- transport failure: ``NetworkError``
- 401 / 403 / 404 / 429: ``UnauthorizedError`` / ``ForbiddenError`` /
  ``NotFoundError`` / ``RateLimitedError``
- other 4xx: ``ClientError``; 5xx: ``ServerError``
- 2xx whose body does not match the target shape: ``MalformedResponseError``

The bearer token, when configured, is attached to every request by the
executor itself, so any ``Transport`` receives it. Nothing is retried. Only
fields the caller set are serialized.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime
from typing import Any

import httpx

from .config import ClientConfig
from .endpoints import Endpoint
from .exceptions import (
    ApiError,
    ClientError,
    ForbiddenError,
    MalformedResponseError,
    NotFoundError,
    RateLimit,
    RateLimitedError,
    ServerError,
    UnauthorizedError,
)
from .model.decode import DecodeError, Decoder
from .model.requests import RequestModel
from .transport import Transport, TransportResponse
from .utils import get_logger

_logger = get_logger("tusk.executor")


# =============================================================================
# Error classification
# =============================================================================


def parse_rate_limit(headers: Mapping[str, str]) -> RateLimit:
    """Read ``X-RateLimit-*`` headers; malformed values are treated as missing."""
    return RateLimit(
        limit=_int_header(headers, "x-ratelimit-limit"),
        remaining=_int_header(headers, "x-ratelimit-remaining"),
        reset_at=_time_header(headers, "x-ratelimit-reset"),
    )


def _int_header(headers: Mapping[str, str], name: str) -> int | None:
    value = headers.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _time_header(headers: Mapping[str, str], name: str) -> datetime | None:
    value = headers.get(name)
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


def _error_fields(body: str) -> tuple[str | None, str | None]:
    try:
        data = json.loads(body)
    except ValueError:
        return None, None
    if not isinstance(data, dict):
        return None, None
    error = data.get("error")
    description = data.get("error_description")
    return (
        error if isinstance(error, str) else None,
        description if isinstance(description, str) else None,
    )


def error_for_response(status: int, headers: Mapping[str, str], body: bytes, *, what: str) -> ApiError:
    """Map a non-2xx response to the matching ``ApiError`` subclass."""
    text = body.decode("utf-8", errors="replace")
    error, description = _error_fields(text)
    message = f"{what}: HTTP {status}" + (f" ({error})" if error else "")
    kwargs: dict[str, Any] = {
        "status_code": status,
        "body": text,
        "error": error,
        "error_description": description,
    }
    if status == 401:
        return UnauthorizedError(message, **kwargs)
    if status == 403:
        return ForbiddenError(message, **kwargs)
    if status == 404:
        return NotFoundError(message, **kwargs)
    if status == 429:
        return RateLimitedError(message, rate_limit=parse_rate_limit(headers), **kwargs)
    if status >= 500:
        return ServerError(message, **kwargs)
    return ClientError(message, **kwargs)


# =============================================================================
# Body encoding
# =============================================================================


def encode_json(payload: RequestModel) -> tuple[bytes, dict[str, str]]:
    content = payload.model_dump_json(exclude_unset=True).encode("utf-8")
    return content, {"Content-Type": "application/json"}


def encode_multipart(payload: RequestModel) -> tuple[bytes, dict[str, str]]:
    """Encode a media upload as ``multipart/form-data``.

    ``file`` becomes the file part; every other set field becomes a form field.
    """
    fields = payload.model_dump(exclude_unset=True)
    file_content = fields.pop("file")
    fields.pop("filename", None)
    fields.pop("mime_type", None)
    filename = getattr(payload, "filename", "file")
    mime_type = getattr(payload, "mime_type", None) or "application/octet-stream"
    data = {key: _form_value(value) for key, value in fields.items() if value is not None}
    request = httpx.Request(
        "POST",
        "http://multipart.invalid/",
        data=data,
        files={"file": (filename, file_content, mime_type)},
    )
    return request.read(), {"Content-Type": request.headers["Content-Type"]}


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# =============================================================================
# Executor
# =============================================================================


class RequestExecutor:
    """Builds, sends and decodes requests for one generation's surface.

    Safe to share between tasks: it holds no per-request state.
    """

    def __init__(self, config: ClientConfig, transport: Transport, decoder: Decoder) -> None:
        self._config = config
        self._transport = transport
        self._decoder = decoder

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def decoder(self) -> Decoder:
        return self._decoder

    def headers(self, accept: str = "application/json") -> dict[str, str]:
        """Base headers of every request, with the bearer token when one is configured."""
        headers = {"Accept": accept}
        if self._config.access_token:
            headers["Authorization"] = f"Bearer {self._config.access_token}"
        return headers

    def ensure_authorized(self, endpoint: Endpoint) -> None:
        """Raise ``UnauthorizedError`` if ``endpoint`` needs a token and none is set."""
        if endpoint.auth and not self._config.authenticated:
            raise UnauthorizedError(
                f"{endpoint.name} requires an access token and none is configured",
                status_code=None,
            )

    def build_url(
        self,
        endpoint: Endpoint,
        path_params: Mapping[str, object] | None = None,
        payload: RequestModel | None = None,
    ) -> str:
        url = self._config.url(endpoint.format_path(**dict(path_params or {})))
        if endpoint.params is not None and payload is not None:
            query = payload.to_query()
            if query:
                url = str(httpx.URL(url, params=query))
        return url

    async def send(
        self,
        endpoint: Endpoint,
        path_params: Mapping[str, object] | None = None,
        payload: RequestModel | None = None,
        *,
        url: str | None = None,
    ) -> tuple[Any, TransportResponse]:
        """Perform ``endpoint`` and return ``(decoded, raw_response)``.

        ``url`` replaces the built URL (used to follow pagination links).
        """
        self.ensure_authorized(endpoint)
        target = url or self.build_url(endpoint, path_params, payload)

        headers = self.headers()
        content: bytes | None = None
        if endpoint.body is not None and payload is not None:
            encode = encode_multipart if endpoint.multipart else encode_json
            content, content_headers = encode(payload)
            headers.update(content_headers)

        response = await self._transport.send(endpoint.method, target, headers, content)
        _logger.debug(
            "request completed",
            extra={
                "event": "executor.request",
                "method": endpoint.method,
                "endpoint": endpoint.name,
                "status": response.status,
            },
        )

        if response.status >= 400:
            raise error_for_response(response.status, response.headers, response.content, what=endpoint.name)
        return self._decode(endpoint, response), response

    async def execute(
        self,
        endpoint: Endpoint,
        path_params: Mapping[str, object] | None = None,
        payload: RequestModel | None = None,
    ) -> Any:
        value, _ = await self.send(endpoint, path_params, payload)
        return value

    def _decode(self, endpoint: Endpoint, response: TransportResponse) -> Any:
        if endpoint.returns is None:
            return None
        try:
            data = json.loads(response.content)
        except ValueError as exc:
            raise MalformedResponseError(f"{endpoint.name} returned a body that is not JSON") from exc
        try:
            return self._decoder.decode_value(endpoint.returns, data, endpoint.name)
        except DecodeError as exc:
            _logger.warning(
                "response does not match target shape",
                extra={"event": "executor.malformed", "endpoint": endpoint.name, "path": exc.path},
            )
            raise MalformedResponseError(str(exc), path=exc.path) from exc


__all__ = [
    "RequestExecutor",
    "encode_json",
    "encode_multipart",
    "error_for_response",
    "parse_rate_limit",
]
