from __future__ import annotations

import types

import httpx

from gemini_providers.base.errors import (
    ErrorCode,
    MalformedChunkError,
    ProviderError,
    TruncatedStreamError,
    UnsupportedContentError,
    classify_exception,
)


def test_classify_provider_error_passthrough():
    e = ProviderError(code=ErrorCode.AUTH, message="nope", provider="gemini")
    assert classify_exception(e) is ErrorCode.AUTH  # nosec B101 - assert is appropriate in unit tests


def test_classify_http_status_mapping():
    e1 = types.SimpleNamespace(status_code=404)
    assert classify_exception(e1) is ErrorCode.NOT_FOUND  # nosec B101 - assert is appropriate in unit tests
    e2 = types.SimpleNamespace(response=types.SimpleNamespace(status_code=503))
    assert classify_exception(e2) is ErrorCode.UNAVAILABLE  # nosec B101 - assert is appropriate in unit tests


def test_classify_httpx_status_error():
    request = httpx.Request("POST", "https://example.invalid/v1beta/models/m:generateContent")
    response = httpx.Response(429, request=request)
    err = httpx.HTTPStatusError("too many", request=request, response=response)
    assert classify_exception(err) is ErrorCode.RATE_LIMIT  # nosec B101 - assert is appropriate in unit tests


def test_classify_transport_failures():
    assert classify_exception(httpx.ReadTimeout("slow")) is ErrorCode.TIMEOUT  # nosec B101 - assert is appropriate in unit tests
    assert classify_exception(TimeoutError()) is ErrorCode.TIMEOUT  # nosec B101 - assert is appropriate in unit tests
    assert classify_exception(httpx.ReadError("reset")) is ErrorCode.TRANSIENT  # nosec B101 - assert is appropriate in unit tests
    assert classify_exception(httpx.RemoteProtocolError("incomplete chunked read")) is ErrorCode.TRANSIENT  # nosec B101 - assert is appropriate in unit tests


def test_classify_heuristics():
    assert classify_exception(Exception("rate limit exceeded")) is ErrorCode.RATE_LIMIT  # nosec B101 - assert is appropriate in unit tests
    assert classify_exception(Exception("RESOURCE_EXHAUSTED")) is ErrorCode.RATE_LIMIT  # nosec B101 - assert is appropriate in unit tests
    assert classify_exception(Exception("timed out waiting")) is ErrorCode.TIMEOUT  # nosec B101 - assert is appropriate in unit tests
    assert classify_exception(Exception("unsupported parameter")) is ErrorCode.UNSUPPORTED  # nosec B101 - assert is appropriate in unit tests
    assert classify_exception(Exception("random")) is ErrorCode.UNKNOWN  # nosec B101 - assert is appropriate in unit tests


def test_stream_errors_pin_their_codes():
    assert MalformedChunkError().code is ErrorCode.MALFORMED_CHUNK  # nosec B101 - assert is appropriate in unit tests
    assert UnsupportedContentError().code is ErrorCode.UNSUPPORTED_CONTENT  # nosec B101 - assert is appropriate in unit tests
    truncated = TruncatedStreamError(chunks_seen=3)
    assert truncated.code is ErrorCode.TRUNCATED_STREAM  # nosec B101 - assert is appropriate in unit tests
    assert truncated.retryable is True and truncated.cause_code is None  # nosec B101 - assert is appropriate in unit tests
    assert isinstance(truncated, ProviderError)  # nosec B101 - assert is appropriate in unit tests
    assert "truncated_stream" in str(truncated)  # nosec B101 - assert is appropriate in unit tests
