# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Error taxonomy tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from tusk import exceptions as exc
from tusk.exceptions import ErrorCode


@pytest.mark.parametrize(
    ("cls", "code"),
    [
        (exc.NetworkError, ErrorCode.NETWORK),
        (exc.UnauthorizedError, ErrorCode.UNAUTHORIZED),
        (exc.ForbiddenError, ErrorCode.FORBIDDEN),
        (exc.NotFoundError, ErrorCode.NOT_FOUND),
        (exc.RateLimitedError, ErrorCode.RATE_LIMITED),
        (exc.ClientError, ErrorCode.CLIENT_ERROR),
        (exc.ServerError, ErrorCode.SERVER_ERROR),
    ],
)
def test_default_codes(cls, code) -> None:
    kwargs = {} if cls is exc.NetworkError else {"status_code": 400}
    error = cls("boom", **kwargs)
    assert error.code is code
    assert isinstance(error, exc.TuskError)
    assert str(error) == "boom"


def test_code_override() -> None:
    error = exc.ClientError("gone", status_code=410, code=ErrorCode.NOT_FOUND)
    assert error.code is ErrorCode.NOT_FOUND


def test_api_error_attributes() -> None:
    error = exc.NotFoundError(
        "not found", status_code=404, body='{"error":"Record not found"}', error="Record not found"
    )
    assert error.status_code == 404
    assert error.error == "Record not found"
    assert error.error_description is None
    assert isinstance(error, exc.ApiError)


class TestRateLimited:
    def test_retry_after(self) -> None:
        reset = datetime.now(timezone.utc) + timedelta(seconds=120)
        error = exc.RateLimitedError("slow down", status_code=429, rate_limit=exc.RateLimit(300, 0, reset))
        assert error.reset_at == reset
        assert 100 < error.retry_after <= 120

    def test_retry_after_never_negative(self) -> None:
        reset = datetime.now(timezone.utc) - timedelta(minutes=5)
        error = exc.RateLimitedError("slow down", status_code=429, rate_limit=exc.RateLimit(reset_at=reset))
        assert error.retry_after == 0.0

    def test_without_headers(self) -> None:
        error = exc.RateLimitedError("slow down", status_code=429)
        assert error.rate_limit == exc.RateLimit()
        assert error.retry_after is None


class TestOtherErrors:
    def test_malformed_response(self) -> None:
        error = exc.MalformedResponseError("expected str, got int", path="get_status.content")
        assert str(error) == "malformed response: expected str, got int"
        assert error.path == "get_status.content"
        assert error.code is ErrorCode.MALFORMED_RESPONSE

    def test_stream_errors(self) -> None:
        for cls in (exc.StreamClosedError, exc.StreamCancelledError, exc.StreamTimeoutError):
            assert issubclass(cls, exc.StreamError)
        error = exc.MalformedEventError("bad frame", tag="update", payload="{")
        assert error.code is ErrorCode.STREAM_MALFORMED
        assert error.tag == "update"

    def test_version_errors_are_reexported(self) -> None:
        assert issubclass(exc.UnsupportedVersionError, ValueError)
        assert issubclass(exc.TargetVersionError, ImportError)
        assert not issubclass(exc.TargetVersionError, exc.TuskError)
