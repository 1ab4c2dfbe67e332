"""GeminiChatModel end to end over httpx.MockTransport."""
from __future__ import annotations

import json

import httpx
import pytest

import gemini_providers
from gemini_providers.base.errors import ErrorCode, ProviderError, TruncatedStreamError
from gemini_providers.base.models import ChatOptions, ChatResponse, ResponseMetadata, Usage
from gemini_providers.gemini import GeminiApi, GeminiChatModel

from ..streaming.helpers import gemini_frame, sse_body

_USAGE = {"promptTokenCount": 4, "candidatesTokenCount": 3, "totalTokenCount": 7}


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr("gemini_providers.base.resilience.retry.time.sleep", lambda _s: None)


def _model(handler, **options):
    api = GeminiApi("k-123", client=httpx.Client(transport=httpx.MockTransport(handler)))
    return GeminiChatModel(api, ChatOptions(model="gemini-2.0-flash", temperature=0.7, **options))


def _events(records, name):
    out = []
    for r in records:
        try:
            payload = json.loads(r.getMessage())
        except ValueError:
            continue
        if isinstance(payload, dict) and payload.get("event") == name:
            out.append(payload)
    return out


def _previous(prompt, completion, total):
    return ChatResponse(
        metadata=ResponseMetadata(usage=Usage(prompt_tokens=prompt, completion_tokens=completion, total_tokens=total)),
        final=True,
    )


def test_call_returns_final_response_with_rate_limit(log_records):
    def handler(request):
        return httpx.Response(
            200,
            json=gemini_frame("Hello!", finish="STOP", usage=_USAGE),
            headers={"x-ratelimit-remaining-requests": "99"},
        )

    response = _model(handler).call("Hi", metadata={"conversation": "c1"})

    assert response.final is True  # nosec B101 - pytest assert in tests
    assert response.text == "Hello!"  # nosec B101 - pytest assert in tests
    assert response.result.finish_reason == "STOP"  # nosec B101 - pytest assert in tests
    assert response.result.output.metadata == {"conversation": "c1", "index": 0, "role": "assistant"}  # nosec B101 - pytest assert in tests
    assert response.usage == Usage(prompt_tokens=4, completion_tokens=3, total_tokens=7)  # nosec B101 - pytest assert in tests
    assert response.metadata.rate_limit.requests_remaining == 99  # nosec B101 - pytest assert in tests
    assert response.metadata.id == "resp-1"  # nosec B101 - pytest assert in tests
    (end,) = _events(log_records, "chat.end")
    assert end["tokens"]["total"] == 7 and end["response_id"] == "resp-1"  # nosec B101 - pytest assert in tests


def test_call_adds_previous_turn_usage():
    handler = lambda request: httpx.Response(200, json=gemini_frame("x", usage=_USAGE))  # noqa: E731
    response = _model(handler).call("again", previous_response=_previous(10, 5, 15))
    assert response.usage == Usage(prompt_tokens=14, completion_tokens=8, total_tokens=22)  # nosec B101 - pytest assert in tests


def test_call_merges_runtime_options_over_defaults():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json=gemini_frame("x"))

    _model(handler, max_tokens=100).call("Hi", ChatOptions(temperature=0.1))
    config = bodies[0]["generationConfig"]
    assert config == {"temperature": 0.1, "maxOutputTokens": 100}  # nosec B101 - pytest assert in tests


def test_call_without_candidates_is_empty_and_warned(log_records):
    handler = lambda request: httpx.Response(200, json={"usageMetadata": {"promptTokenCount": 2}})  # noqa: E731
    response = _model(handler).call("Hi")

    assert response.generations == () and response.text is None  # nosec B101 - pytest assert in tests
    assert response.usage.prompt_tokens == 2  # nosec B101 - pytest assert in tests
    assert len(_events(log_records, "chat.empty")) == 1  # nosec B101 - pytest assert in tests


def test_call_retries_unavailable_then_succeeds():
    calls = []

    def handler(request):
        calls.append(1)
        if len(calls) == 1:
            return httpx.Response(503, json={"error": {"message": "overloaded"}})
        return httpx.Response(200, json=gemini_frame("ok"))

    assert _model(handler).call("Hi").text == "ok"  # nosec B101 - pytest assert in tests
    assert len(calls) == 2  # nosec B101 - pytest assert in tests


def test_call_auth_failure_is_logged_and_raised(log_records):
    calls = []

    def handler(request):
        calls.append(1)
        return httpx.Response(401, json={"error": {"message": "API key not valid"}})

    with pytest.raises(ProviderError) as ei:
        _model(handler).call("Hi")
    assert ei.value.code is ErrorCode.AUTH  # nosec B101 - pytest assert in tests
    assert len(calls) == 1  # nosec B101 - pytest assert in tests
    (err,) = _events(log_records, "chat.error")
    assert err["error_code"] == "auth"  # nosec B101 - pytest assert in tests


def test_stream_end_to_end(log_records):
    frames = [
        gemini_frame("The "),
        gemini_frame("quick "),
        gemini_frame("fox", finish="STOP", usage=_USAGE),
    ]

    def handler(request):
        assert request.url.params["alt"] == "sse"  # nosec B101 - pytest assert in tests
        return httpx.Response(
            200,
            content=sse_body(frames),
            headers={"content-type": "text/event-stream", "x-ratelimit-remaining-requests": "12"},
        )

    controller = _model(handler).stream("Tell me", previous_response=_previous(10, 5, 15))
    snapshots = list(controller)

    assert [s.final for s in snapshots] == [False, False, True]  # nosec B101 - pytest assert in tests
    assert [s.text for s in snapshots[:-1]] == ["The ", "The quick "]  # nosec B101 - pytest assert in tests
    final = controller.final_response
    assert final is snapshots[-1]  # nosec B101 - pytest assert in tests
    assert final.text == "The quick fox"  # nosec B101 - pytest assert in tests
    assert final.usage == Usage(prompt_tokens=14, completion_tokens=8, total_tokens=22)  # nosec B101 - pytest assert in tests
    # usage not yet reported: the previous turn's totals carry through
    assert snapshots[0].usage == Usage(prompt_tokens=10, completion_tokens=5, total_tokens=15)  # nosec B101 - pytest assert in tests
    assert final.metadata.rate_limit.requests_remaining == 12  # nosec B101 - pytest assert in tests
    assert final.metadata.model == "gemini-2.0-flash-001"  # nosec B101 - pytest assert in tests
    (end,) = _events(log_records, "stream.adapter.end")
    assert end["emitted_count"] == 3 and end["tokens"]["total"] == 22  # nosec B101 - pytest assert in tests


def test_stream_without_sentinel_raises_truncated():
    handler = lambda request: httpx.Response(200, content=sse_body([gemini_frame("cut")], done=False))  # noqa: E731
    controller = _model(handler).stream("Hi")

    received = []
    with pytest.raises(TruncatedStreamError):
        for snapshot in controller:
            received.append(snapshot.text)
    assert received == ["cut"]  # nosec B101 - pytest assert in tests
    assert controller.final_response is None  # nosec B101 - pytest assert in tests


def test_stream_open_failure_surfaces_to_consumer():
    handler = lambda request: httpx.Response(400, json={"error": {"message": "bad request"}})  # noqa: E731
    with pytest.raises(ProviderError) as ei:
        list(_model(handler).stream("Hi"))
    assert ei.value.code is ErrorCode.VALIDATION  # nosec B101 - pytest assert in tests


def test_stream_is_lazy():
    calls = []

    def handler(request):
        calls.append(1)
        return httpx.Response(200, content=sse_body([gemini_frame("x")]))

    controller = _model(handler).stream("Hi")
    assert calls == []  # nosec B101 - pytest assert in tests
    list(controller)
    assert calls == [1]  # nosec B101 - pytest assert in tests


def test_from_config_and_create(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "k-env")
    monkeypatch.setenv("GEMINI_MODEL", "gemini-1.5-pro")

    model = GeminiChatModel.from_config()
    assert model.default_model() == "gemini-1.5-pro"  # nosec B101 - pytest assert in tests
    assert model.default_options.temperature == 0.7  # nosec B101 - pytest assert in tests

    created = gemini_providers.create("Gemini", {"model": "gemini-2.5-flash", "max_tokens": 32})
    assert created.default_model() == "gemini-2.5-flash"  # nosec B101 - pytest assert in tests
    assert created.default_options.max_tokens == 32  # nosec B101 - pytest assert in tests


def test_create_rejects_unknown_provider():
    with pytest.raises(ProviderError) as ei:
        gemini_providers.create("openai")
    assert ei.value.code is ErrorCode.UNSUPPORTED  # nosec B101 - pytest assert in tests


def test_stream_closing_after_finish_reason_completes():
    frames = [gemini_frame("Hi"), gemini_frame(" there", finish="STOP", usage=_USAGE)]
    handler = lambda request: httpx.Response(200, content=sse_body(frames, done=False))  # noqa: E731
    controller = _model(handler).stream("Hi")

    snapshots = list(controller)
    assert controller.finished is True  # nosec B101 - pytest assert in tests
    assert snapshots[-1].final and snapshots[-1].text == "Hi there"  # nosec B101 - pytest assert in tests
