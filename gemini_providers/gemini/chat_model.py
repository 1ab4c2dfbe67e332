"""GeminiChatModel: blocking and streaming chat over :class:`GeminiApi`.

Runtime options are merged over the model's default options for every call.
Streaming goes through :class:`BaseStreamingAdapter`, so the consumer gets one
:class:`ChatResponse` snapshot per chunk and the concatenated final response
last. Multi-turn usage accumulates by passing the previous response.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping, Optional, Sequence, Union

from ..base.cancellation import CancellationToken
from ..base.errors import ProviderError, classify_exception
from ..base.logging import LogContext, get_logger, normalized_log_event
from ..base.models import (
    ChatOptions,
    ChatRequest,
    ChatResponse,
    Message,
    RateLimit,
    ResponseMetadata,
)
from ..base.resilience.retry import RetryConfig, retry
from ..base.streaming import (
    BaseStreamingAdapter,
    StreamController,
    accumulate_usage,
    build_generation,
    extract_usage,
    initial_usage,
)
from ..config import get_provider_config
from ..config.defaults import (
    GEMINI_DEFAULT_MAX_ATTEMPTS,
    GEMINI_DEFAULT_MODEL,
    GEMINI_DEFAULT_RETRY_DELAY_BASE,
    GEMINI_PROVIDER_NAME,
)
from .api import GeminiApi

Prompt = Union[str, Message, Sequence[Message]]


def _to_messages(prompt: Prompt) -> list[Message]:
    if isinstance(prompt, str):
        return [Message(role="user", content=prompt)]
    if isinstance(prompt, Message):
        return [prompt]
    return list(prompt)


class GeminiChatModel:
    """Chat model bound to one :class:`GeminiApi` and a set of default options."""

    provider_name = GEMINI_PROVIDER_NAME

    def __init__(
        self,
        api: GeminiApi,
        default_options: Optional[ChatOptions] = None,
        *,
        max_attempts: int = GEMINI_DEFAULT_MAX_ATTEMPTS,
        retry_delay_base: float = GEMINI_DEFAULT_RETRY_DELAY_BASE,
    ) -> None:
        self._api = api
        self._defaults = default_options or ChatOptions(model=GEMINI_DEFAULT_MODEL)
        self._max_attempts = max_attempts
        self._retry_delay_base = retry_delay_base
        self._logger = get_logger("gemini")

    @classmethod
    def from_config(cls, overrides: Optional[Mapping[str, Any]] = None) -> "GeminiChatModel":
        """Build from :func:`get_provider_config` (defaults, file, env, ``overrides``)."""
        cfg = get_provider_config(GEMINI_PROVIDER_NAME, dict(overrides or {}))
        api = GeminiApi(
            cfg.get("api_key"),
            base_url=cfg["base_url"],
            completions_path=cfg["completions_path"],
            headers=cfg.get("headers"),
        )
        defaults = ChatOptions(
            model=cfg.get("model"),
            temperature=cfg.get("temperature"),
            max_tokens=cfg.get("max_tokens"),
            top_p=cfg.get("top_p"),
            top_k=cfg.get("top_k"),
            stop_sequences=cfg.get("stop_sequences"),
        )
        return cls(
            api,
            defaults,
            max_attempts=int(cfg.get("max_attempts", GEMINI_DEFAULT_MAX_ATTEMPTS)),
            retry_delay_base=float(cfg.get("retry_delay_base", GEMINI_DEFAULT_RETRY_DELAY_BASE)),
        )

    @property
    def default_options(self) -> ChatOptions:
        return self._defaults

    def default_model(self) -> Optional[str]:
        return self._defaults.model

    def build_request(self, prompt: Prompt, options: Optional[ChatOptions] = None, *, stream: bool = False) -> ChatRequest:
        """Merge ``options`` over the defaults and wrap the prompt."""
        merged = (options or ChatOptions()).merge(self._defaults)
        return ChatRequest(messages=_to_messages(prompt), options=merged, stream=stream)

    # ---- blocking ----
    def call(
        self,
        prompt: Prompt,
        options: Optional[ChatOptions] = None,
        *,
        previous_response: Optional[ChatResponse] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> ChatResponse:
        """Run one blocking completion and return the final response.

        A body without candidates yields an empty final response (logged as a
        warning). Provider failures are logged and re-raised.
        """
        request = self.build_request(prompt, options, stream=False)
        ctx = LogContext(provider=self.provider_name, model=request.model)
        normalized_log_event(
            self._logger,
            "chat.start",
            ctx,
            phase="start",
            attempt=None,
            emitted=None,
            tokens=None,
            max_tokens=request.options.max_tokens,
            temperature=request.options.temperature,
        )
        t0 = time.perf_counter()
        try:
            completion, headers = retry(self._build_retry_config(ctx))(
                lambda: self._api.chat_completion(request)
            )()
        except ProviderError as e:
            self._log_chat_error(ctx, e.code.value, str(e))
            raise
        except Exception as e:
            self._log_chat_error(ctx, classify_exception(e).value, str(e))
            raise
        latency_ms = (time.perf_counter() - t0) * 1000.0

        chunk = completion.to_chunk()
        previous = previous_response.usage if previous_response is not None else None
        usage = accumulate_usage(initial_usage(previous), extract_usage(chunk), previous)
        if not chunk.candidates:
            normalized_log_event(
                self._logger,
                "chat.empty",
                ctx,
                phase="finalize",
                attempt=None,
                emitted=False,
                tokens=usage,
                level=logging.WARNING,
            )
        generations = tuple(
            build_generation(c, metadata, provider=self.provider_name, model=request.model)
            for c in sorted(chunk.candidates, key=lambda c: c.index)
        )
        response = ChatResponse(
            generations=generations,
            metadata=ResponseMetadata(
                id=chunk.response_id or "",
                model=chunk.model or "",
                usage=usage,
                rate_limit=RateLimit.from_headers(headers),
            ),
            final=True,
        )
        ctx.response_id = response.metadata.id or None
        normalized_log_event(
            self._logger,
            "chat.end",
            ctx,
            phase="finalize",
            attempt=None,
            emitted=bool(generations),
            tokens=usage,
            latency_ms=latency_ms,
        )
        return response

    # ---- streaming ----
    def stream(
        self,
        prompt: Prompt,
        options: Optional[ChatOptions] = None,
        *,
        previous_response: Optional[ChatResponse] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> StreamController:
        """Return a controller iterating the snapshots of one streamed completion.

        Nothing is sent until iteration starts. Start failures are retried;
        mid-stream failures end iteration with the error.
        """
        request = self.build_request(prompt, options, stream=True)
        model = request.model or ""
        ctx = LogContext(provider=self.provider_name, model=model)
        adapter = BaseStreamingAdapter(
            ctx=ctx,
            provider_name=self.provider_name,
            model=model,
            starter=lambda: self._api.chat_completion_stream(request),
            retry_config_factory=lambda phase: self._build_retry_config(ctx, phase=phase),
            logger=self._logger,
            previous_usage=previous_response.usage if previous_response is not None else None,
            metadata=metadata,
            cancellation_token=cancellation_token,
        )
        return StreamController(adapter, cancellation_token)

    # -------------------- internal helpers --------------------
    def _log_chat_error(self, ctx: LogContext, code: str, error: str) -> None:
        normalized_log_event(
            self._logger,
            "chat.error",
            ctx,
            phase="finalize",
            attempt=None,
            emitted=None,
            tokens=None,
            error_code=code,
            error=error,
            level=logging.ERROR,
        )

    def _build_retry_config(self, ctx: LogContext, phase: str = "chat.start") -> RetryConfig:
        """Retry configuration with attempt logging wired to normalized events."""

        def _attempt_logger(*, attempt: int, max_attempts: int, delay: float | None, error: ProviderError | None) -> None:
            normalized_log_event(
                self._logger,
                "retry",
                ctx,
                phase=phase,
                attempt=attempt,
                emitted=None,
                tokens=None,
                max_attempts=max_attempts,
                delay=delay,
                failure_class=error.code.value if error else None,
            )

        return RetryConfig(
            max_attempts=self._max_attempts,
            delay_base=self._retry_delay_base,
            attempt_logger=_attempt_logger,
        )


__all__ = ["GeminiChatModel", "Prompt"]
