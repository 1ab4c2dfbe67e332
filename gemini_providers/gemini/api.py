"""Low-level Gemini REST client over ``httpx``.

Each call maps onto one Gemini endpoint:

* :meth:`GeminiApi.chat_completion` posts to ``{path}/{model}:generateContent``.
* :meth:`GeminiApi.chat_completion_stream` posts to
  ``{path}/{model}:streamGenerateContent?alt=sse`` and returns a
  :class:`FrameDecoder` yielding decoded chunks until the ``[DONE]``
  sentinel, or until the body closes after a chunk whose candidates all
  carry a finish reason. Any other early close is a truncated stream.
* :meth:`GeminiApi.embeddings` posts one text to ``{path}/{model}:embedContent``
  and several to ``{path}/{model}:batchEmbedContents``.

HTTP failures are raised as :class:`ProviderError` classified from the status
code. The API key travels in the ``x-goog-api-key`` header.
"""
from __future__ import annotations

import time
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Type, TypeVar, Union

import httpx
from pydantic import BaseModel

from ..base.errors import ErrorCode, ProviderError, UnsupportedContentError, classify_exception
from ..base.http import get_httpx_client
from ..base.logging import get_logger
from ..base.models import ChatRequest, EmbeddingRequest, Message
from ..base.streaming import SENTINEL_TEXT, FrameDecoder
from ..base.timeouts import get_timeout_config
from ..config.defaults import (
    GEMINI_DEFAULT_BASE_URL,
    GEMINI_DEFAULT_COMPLETIONS_PATH,
    GEMINI_MAX_EMBEDDING_BATCH,
    GEMINI_PROVIDER_NAME,
)
from .dto import GeminiCompletion, GeminiEmbeddingBody, decode_chunk, is_final_chunk

API_KEY_HEADER = "x-goog-api-key"

# Prompt role -> Gemini wire role. Gemini has no system role in "contents".
_WIRE_ROLES = {
    "user": "user",
    "assistant": "model",
    "system": "model",
}

_logger = get_logger("gemini.api")

_Body = TypeVar("_Body", bound=BaseModel)
_AnyRequest = Union[ChatRequest, EmbeddingRequest]


def to_wire_contents(messages: Iterable[Message]) -> List[Dict[str, Any]]:
    """Map prompt messages to Gemini ``contents``.

    Raises:
        UnsupportedContentError: For a role Gemini cannot take (``tool``).
    """
    contents = []
    for msg in messages:
        role = _WIRE_ROLES.get(msg.role)
        if role is None:
            raise UnsupportedContentError(
                message=f"unsupported message role {msg.role!r}",
                provider=GEMINI_PROVIDER_NAME,
            )
        contents.append({"role": role, "parts": [{"text": msg.content}]})
    return contents


def to_generation_config(request: ChatRequest) -> Dict[str, Any]:
    opts = request.options
    config: Dict[str, Any] = {
        "temperature": opts.temperature,
        "maxOutputTokens": opts.max_tokens,
        "topP": opts.top_p,
        "topK": opts.top_k,
        "stopSequences": list(opts.stop_sequences) if opts.stop_sequences else None,
    }
    return {k: v for k, v in config.items() if v is not None}


def build_request_body(request: ChatRequest) -> Dict[str, Any]:
    body: Dict[str, Any] = {"contents": to_wire_contents(request.messages)}
    generation_config = to_generation_config(request)
    if generation_config:
        body["generationConfig"] = generation_config
    return body


def build_embed_content(text: str, request: EmbeddingRequest) -> Dict[str, Any]:
    """One ``EmbedContentRequest``; also an item of a batch request."""
    opts = request.options
    body: Dict[str, Any] = {
        "model": f"models/{request.model}",
        "content": {"parts": [{"text": text}]},
        "taskType": opts.task_type,
        "title": opts.title,
        "outputDimensionality": opts.dimensions,
    }
    return {k: v for k, v in body.items() if v is not None}


def build_embedding_body(request: EmbeddingRequest) -> Dict[str, Any]:
    if len(request.inputs) == 1:
        return build_embed_content(request.inputs[0], request)
    return {"requests": [build_embed_content(text, request) for text in request.inputs]}


def validate_embedding_inputs(inputs: Iterable[Any]) -> None:
    """Reject input the embedding endpoints cannot take.

    Raises:
        ValueError: No input, a non-string or blank input, or more inputs than
            one batch call accepts.
    """
    items = list(inputs)
    if not items:
        raise ValueError("embedding input must not be empty")
    if len(items) > GEMINI_MAX_EMBEDDING_BATCH:
        raise ValueError(
            f"at most {GEMINI_MAX_EMBEDDING_BATCH} inputs per embedding call, got {len(items)}"
        )
    for position, text in enumerate(items):
        if not isinstance(text, str) or not text.strip():
            raise ValueError(f"embedding input {position} must be a non-empty string")


def _error_message(response: httpx.Response) -> str:
    """Best-effort error text from a Gemini error body."""
    try:
        payload = response.json()
    except ValueError:
        return response.text[:260] or response.reason_phrase
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        err = payload["error"]
        return str(err.get("message") or err.get("status") or response.reason_phrase)[:260]
    return response.text[:260]


def _lines_until_deadline(lines: Iterator[str], overall_seconds: Optional[float]) -> Iterator[str]:
    """Stop the line source with ``TimeoutError`` once the overall deadline passes."""
    if overall_seconds is None:
        yield from lines
        return
    deadline = time.monotonic() + overall_seconds
    for line in lines:
        if time.monotonic() > deadline:
            raise TimeoutError(f"stream exceeded overall timeout of {overall_seconds}s")
        yield line


class GeminiApi:
    """Thin REST binding; one instance may serve many concurrent calls."""

    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: str = GEMINI_DEFAULT_BASE_URL,
        completions_path: str = GEMINI_DEFAULT_COMPLETIONS_PATH,
        headers: Optional[Mapping[str, str]] = None,
        client: Optional[httpx.Client] = None,
        stream_client: Optional[httpx.Client] = None,
    ) -> None:
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.completions_path = "/" + completions_path.strip("/")
        self._headers = dict(headers or {})
        self._client = client
        self._stream_client = stream_client or client

    # ---- transport ----
    def _http(self, stream: bool) -> httpx.Client:
        if stream:
            return self._stream_client or get_httpx_client(self.base_url, "stream")
        return self._client or get_httpx_client(self.base_url, "chat")

    def _url(self, model: str, method: str) -> str:
        return f"{self.base_url}{self.completions_path}/{model}:{method}"

    def _request_headers(self, request: _AnyRequest) -> Dict[str, str]:
        if not self._api_key:
            raise ProviderError(
                code=ErrorCode.AUTH,
                message="missing Gemini API key (set GEMINI_API_KEY)",
                provider=GEMINI_PROVIDER_NAME,
                model=request.model,
            )
        headers = {"Content-Type": "application/json", **self._headers}
        headers.update(request.options.http_headers)
        headers[API_KEY_HEADER] = self._api_key
        return headers

    def _require_model(self, request: _AnyRequest) -> str:
        if not request.model:
            raise ProviderError(
                code=ErrorCode.VALIDATION,
                message="request has no model",
                provider=GEMINI_PROVIDER_NAME,
            )
        return request.model

    def _raise_for_status(self, response: httpx.Response, model: str) -> None:
        if response.status_code < 400:
            return
        message = _error_message(response)
        err = httpx.HTTPStatusError(message, request=response.request, response=response)
        code = classify_exception(err)
        raise ProviderError(
            code=code,
            message=f"HTTP {response.status_code}: {message}",
            provider=GEMINI_PROVIDER_NAME,
            model=model,
            retryable=code in (ErrorCode.RATE_LIMIT, ErrorCode.TRANSIENT, ErrorCode.UNAVAILABLE, ErrorCode.TIMEOUT),
            raw=err,
        )

    def _post(self, request: _AnyRequest, method: str, body: Dict[str, Any], dto: Type[_Body]) -> Tuple[_Body, httpx.Headers]:
        """POST ``body`` and validate the reply as ``dto``."""
        model = self._require_model(request)
        response = self._http(stream=False).post(
            self._url(model, method),
            json=body,
            headers=self._request_headers(request),
        )
        self._raise_for_status(response, model)
        try:
            parsed = dto.model_validate_json(response.content)
        except ValueError as exc:
            raise ProviderError(
                code=ErrorCode.MALFORMED_CHUNK,
                message=f"unreadable response body: {str(exc)[:260]}",
                provider=GEMINI_PROVIDER_NAME,
                model=model,
                raw=exc,
            ) from exc
        return parsed, response.headers

    # ---- calls ----
    def chat_completion(self, request: ChatRequest) -> Tuple[GeminiCompletion, httpx.Headers]:
        """Run one blocking completion; returns the validated body and response headers.

        Raises:
            ValueError: When ``request.stream`` is set.
            ProviderError: Transport or HTTP failure, or an unreadable body.
        """
        if request.stream:
            raise ValueError("chat_completion requires a non-streaming request")
        return self._post(request, "generateContent", build_request_body(request), GeminiCompletion)

    def chat_completion_stream(self, request: ChatRequest) -> FrameDecoder:
        """Open a streamed completion.

        The returned decoder owns the HTTP response: exhausting, closing or
        aborting it releases the connection. ``decoder.headers`` holds the
        response headers (rate-limit info).

        Raises:
            ValueError: When ``request.stream`` is not set.
            ProviderError: The stream could not be opened (HTTP status >= 400).
        """
        if not request.stream:
            raise ValueError("chat_completion_stream requires a streaming request")
        model = self._require_model(request)
        client = self._http(stream=True)
        http_request = client.build_request(
            "POST",
            self._url(model, "streamGenerateContent"),
            params={"alt": "sse"},
            json=build_request_body(request),
            headers=self._request_headers(request),
        )
        response = client.send(http_request, stream=True)
        if response.status_code >= 400:
            try:
                response.read()
                self._raise_for_status(response, model)
            finally:
                response.close()
        _logger.debug("gemini stream opened model=%s status=%s", model, response.status_code)
        lines = _lines_until_deadline(
            response.iter_lines(), get_timeout_config().overall_timeout_seconds
        )
        return FrameDecoder(
            lines,
            decode_chunk,
            sentinel=SENTINEL_TEXT,
            provider=GEMINI_PROVIDER_NAME,
            model=model,
            on_close=response.close,
            headers=response.headers,
            is_terminal=is_final_chunk,
        )

    def embeddings(self, request: EmbeddingRequest) -> Tuple[GeminiEmbeddingBody, httpx.Headers]:
        """Embed ``request.inputs``; vectors come back in input order.

        One input uses ``:embedContent``, several use ``:batchEmbedContents``.

        Raises:
            ValueError: Input rejected by :func:`validate_embedding_inputs`.
            ProviderError: Missing model or key, HTTP failure, unreadable body,
                or a vector count that does not match the input count.
        """
        validate_embedding_inputs(request.inputs)
        model = self._require_model(request)
        method = "embedContent" if len(request.inputs) == 1 else "batchEmbedContents"
        body, headers = self._post(request, method, build_embedding_body(request), GeminiEmbeddingBody)
        received = len(body.vectors())
        if received != len(request.inputs):
            raise ProviderError(
                code=ErrorCode.MALFORMED_CHUNK,
                message=f"expected {len(request.inputs)} embedding(s), got {received}",
                provider=GEMINI_PROVIDER_NAME,
                model=model,
            )
        return body, headers


__all__ = [
    "API_KEY_HEADER",
    "GeminiApi",
    "build_embed_content",
    "build_embedding_body",
    "build_request_body",
    "to_generation_config",
    "to_wire_contents",
    "validate_embedding_inputs",
]
