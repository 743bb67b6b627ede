# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Request execution: encoding, transport and error classification."""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from tusk import ClientConfig, surface_for
from tusk.exceptions import (
    ClientError,
    ErrorCode,
    ForbiddenError,
    MalformedResponseError,
    NetworkError,
    NotFoundError,
    RateLimitedError,
    ServerError,
    UnauthorizedError,
)
from tusk.executor import error_for_response, parse_rate_limit
from tusk.testing import status_payload
from tusk.transport import HttpxTransport

BASE_URL = "https://example.social"


@pytest.fixture
def client():
    return surface_for("3.3.0").client_class(ClientConfig(BASE_URL, access_token="token"))


# =============================================================================
# Over httpx
# =============================================================================


class TestHttpxRoundTrip:
    """Requests go through HttpxTransport to a mocked server."""

    @pytest.mark.anyio
    async def test_bearer_token_and_decoding(self, client, respx_mock):
        route = respx_mock.get(f"{BASE_URL}/api/v1/statuses/100").mock(
            return_value=httpx.Response(200, json=status_payload())
        )

        async with client:
            status = await client.get_status("100")

        assert status.id == "100"
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer token"
        assert request.headers["Accept"] == "application/json"
        assert request.headers["User-Agent"] == "tusk"

    @pytest.mark.anyio
    async def test_no_token_no_header(self, respx_mock):
        route = respx_mock.get(f"{BASE_URL}/api/v1/statuses/100").mock(
            return_value=httpx.Response(200, json=status_payload())
        )

        async with surface_for("3.3.0").client_class(BASE_URL) as client:
            await client.get_status("100")

        assert "Authorization" not in route.calls.last.request.headers

    @pytest.mark.anyio
    async def test_token_reaches_a_caller_supplied_client(self, respx_mock):
        route = respx_mock.get(f"{BASE_URL}/api/v1/timelines/home").mock(return_value=httpx.Response(200, json=[]))
        config = ClientConfig(BASE_URL, access_token="secret")

        async with httpx.AsyncClient() as http:
            client = surface_for("3.3.0").client_class(config, transport=HttpxTransport(config, client=http))
            await client.home_timeline()

        assert route.calls.last.request.headers["Authorization"] == "Bearer secret"

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        ("status", "error_type", "code"),
        [
            (401, UnauthorizedError, ErrorCode.UNAUTHORIZED),
            (403, ForbiddenError, ErrorCode.FORBIDDEN),
            (404, NotFoundError, ErrorCode.NOT_FOUND),
            (422, ClientError, ErrorCode.CLIENT_ERROR),
            (500, ServerError, ErrorCode.SERVER_ERROR),
            (503, ServerError, ErrorCode.SERVER_ERROR),
        ],
    )
    async def test_status_mapping(self, client, respx_mock, status, error_type, code):
        respx_mock.get(f"{BASE_URL}/api/v1/statuses/7").mock(
            return_value=httpx.Response(status, json={"error": "Record not found"})
        )

        async with client:
            with pytest.raises(error_type) as exc_info:
                await client.get_status("7")

        assert exc_info.value.status_code == status
        assert exc_info.value.error == "Record not found"
        assert exc_info.value.code is code

    @pytest.mark.anyio
    async def test_rate_limited(self, client, respx_mock):
        respx_mock.get(f"{BASE_URL}/api/v1/statuses/7").mock(
            return_value=httpx.Response(
                429,
                json={"error": "Too many requests"},
                headers={
                    "X-RateLimit-Limit": "300",
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": "2021-02-01T10:00:00.000Z",
                },
            )
        )

        async with client:
            with pytest.raises(RateLimitedError) as exc_info:
                await client.get_status("7")

        err = exc_info.value
        assert err.reset_at == datetime(2021, 2, 1, 10, 0, tzinfo=timezone.utc)
        assert err.rate_limit.limit == 300
        assert err.rate_limit.remaining == 0
        assert err.retry_after == 0.0

    @pytest.mark.anyio
    async def test_transport_failure(self, client, respx_mock):
        respx_mock.get(f"{BASE_URL}/api/v1/instance").mock(side_effect=httpx.ConnectError("refused"))

        async with client:
            with pytest.raises(NetworkError) as exc_info:
                await client.instance()

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert exc_info.value.code is ErrorCode.NETWORK

    @pytest.mark.anyio
    async def test_body_is_not_json(self, client, respx_mock):
        respx_mock.get(f"{BASE_URL}/api/v1/statuses/7").mock(
            return_value=httpx.Response(200, content=b"<html>maintenance</html>")
        )

        async with client:
            with pytest.raises(MalformedResponseError, match="not JSON"):
                await client.get_status("7")

    @pytest.mark.anyio
    async def test_shape_mismatch(self, client, respx_mock):
        payload = status_payload()
        del payload["content"]
        respx_mock.get(f"{BASE_URL}/api/v1/statuses/7").mock(return_value=httpx.Response(200, json=payload))

        async with client:
            with pytest.raises(MalformedResponseError) as exc_info:
                await client.get_status("7")

        assert exc_info.value.path == "get_status.content"


# =============================================================================
# Request encoding
# =============================================================================


class TestEncoding:
    @pytest.mark.anyio
    async def test_json_body_holds_set_fields_only(self, make_client, transport):
        transport.add_response(json=status_payload())
        client = make_client()

        await client.new_status(status="hello", visibility="unlisted")

        request = transport.requests[0]
        assert request.method == "POST"
        assert request.path == "/api/v1/statuses"
        assert request.headers["Content-Type"] == "application/json"
        assert request.json() == {"status": "hello", "visibility": "unlisted"}

    @pytest.mark.anyio
    async def test_query_string(self, make_client, transport):
        transport.add_response(json=[status_payload()])
        client = make_client()

        await client.account_statuses("1", only_media=True, limit=5)

        request = transport.requests[0]
        assert request.path == "/api/v1/accounts/1/statuses"
        assert request.query == [("only_media", "true"), ("limit", "5")]
        assert request.content is None

    @pytest.mark.anyio
    async def test_multipart_upload(self, make_client, transport):
        transport.add_response(
            json={
                "id": "22",
                "type": "image",
                "url": "https://files.example.social/cat.png",
                "preview_url": "https://files.example.social/cat_small.png",
                "description": "a cat",
            }
        )
        client = make_client()

        attachment = await client.upload_media(
            file=b"\x89PNG", filename="cat.png", mime_type="image/png", description="a cat"
        )

        request = transport.requests[0]
        assert request.headers["Content-Type"].startswith("multipart/form-data; boundary=")
        assert b'name="description"' in request.content
        assert b"a cat" in request.content
        assert b'filename="cat.png"' in request.content
        assert b"\x89PNG" in request.content
        assert attachment.description == "a cat"

    @pytest.mark.anyio
    async def test_empty_response_body(self, make_client, transport):
        transport.add_response(json={})
        client = make_client()

        assert await client.delete_status("100") is None
        assert transport.requests[0].method == "DELETE"


# =============================================================================
# Authorization pre-flight
# =============================================================================


class TestAuthorization:
    @pytest.mark.anyio
    async def test_token_is_sent_through_any_transport(self, make_client, transport):
        transport.add_response(json=[])
        client = make_client(token="secret")

        await client.home_timeline()

        assert transport.requests[0].headers == {"Accept": "application/json", "Authorization": "Bearer secret"}

    @pytest.mark.anyio
    async def test_missing_token_sends_nothing(self, make_client, transport):
        client = make_client(token=None)

        with pytest.raises(UnauthorizedError) as exc_info:
            await client.home_timeline()

        assert exc_info.value.status_code is None
        assert transport.requests == []

    @pytest.mark.anyio
    async def test_public_endpoint_without_token(self, make_client, transport):
        transport.add_response(json=status_payload())
        client = make_client(token=None)

        status = await client.get_status("100")

        assert status.id == "100"


# =============================================================================
# Helpers
# =============================================================================


class TestHelpers:
    def test_rate_limit_headers_tolerate_garbage(self) -> None:
        limit = parse_rate_limit(httpx.Headers({"X-RateLimit-Limit": "many", "X-RateLimit-Reset": "soon"}))
        assert limit.limit is None
        assert limit.reset_at is None

    def test_error_without_mastodon_body(self) -> None:
        err = error_for_response(502, {}, b"Bad Gateway", what="instance")
        assert isinstance(err, ServerError)
        assert err.error is None
        assert err.body == "Bad Gateway"
        assert str(err) == "instance: HTTP 502"

    def test_error_description(self) -> None:
        body = b'{"error": "invalid_token", "error_description": "The access token expired"}'
        err = error_for_response(401, {}, body, what="verify_credentials")
        assert err.error_description == "The access token expired"
        assert "(invalid_token)" in str(err)
