"""GeminiEmbeddingModel: text embeddings over :class:`GeminiApi`.

Runtime options are merged over the model's default options for every call.
More inputs than one ``batchEmbedContents`` call accepts are split into
consecutive batches; vector indices always refer to the caller's input order.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..base.errors import ProviderError, classify_exception
from ..base.logging import LogContext, get_logger, normalized_log_event
from ..base.models import Embedding, EmbeddingOptions, EmbeddingRequest, EmbeddingResponse, Usage
from ..base.resilience.retry import RetryConfig, retry
from ..config import get_provider_config
from ..config.defaults import (
    GEMINI_DEFAULT_EMBEDDING_MODEL,
    GEMINI_DEFAULT_MAX_ATTEMPTS,
    GEMINI_DEFAULT_RETRY_DELAY_BASE,
    GEMINI_MAX_EMBEDDING_BATCH,
    GEMINI_PROVIDER_NAME,
)
from .api import GeminiApi, validate_embedding_inputs

EmbeddingInput = Union[str, Sequence[str]]


class EmbeddingModelName(str, Enum):
    """Known Gemini embedding models."""

    GEMINI_EMBEDDING_EXP_03_07 = "gemini-embedding-exp-03-07"
    TEXT_EMBEDDING_004 = "text-embedding-004"


# Default output size per model when no ``dimensions`` option is set.
KNOWN_DIMENSIONS: Dict[str, int] = {
    EmbeddingModelName.GEMINI_EMBEDDING_EXP_03_07.value: 3072,
    EmbeddingModelName.TEXT_EMBEDDING_004.value: 768,
}

_DIMENSION_SAMPLE_TEXT = "Test String"


def _to_inputs(inputs: EmbeddingInput) -> List[str]:
    if isinstance(inputs, str):
        return [inputs]
    return list(inputs)


class GeminiEmbeddingModel:
    """Embedding model bound to one :class:`GeminiApi` and a set of default options."""

    provider_name = GEMINI_PROVIDER_NAME

    def __init__(
        self,
        api: GeminiApi,
        default_options: Optional[EmbeddingOptions] = None,
        *,
        max_attempts: int = GEMINI_DEFAULT_MAX_ATTEMPTS,
        retry_delay_base: float = GEMINI_DEFAULT_RETRY_DELAY_BASE,
        batch_size: int = GEMINI_MAX_EMBEDDING_BATCH,
    ) -> None:
        if not 0 < batch_size <= GEMINI_MAX_EMBEDDING_BATCH:
            raise ValueError(f"batch_size must be between 1 and {GEMINI_MAX_EMBEDDING_BATCH}")
        self._api = api
        self._defaults = default_options or EmbeddingOptions(model=GEMINI_DEFAULT_EMBEDDING_MODEL)
        self._max_attempts = max_attempts
        self._retry_delay_base = retry_delay_base
        self._batch_size = batch_size
        self._measured_dimensions: Dict[str, int] = {}
        self._logger = get_logger("gemini.embeddings")

    @classmethod
    def from_config(cls, overrides: Optional[Mapping[str, Any]] = None) -> "GeminiEmbeddingModel":
        """Build from :func:`get_provider_config` (``embedding_model``, ``embedding_dimensions``)."""
        cfg = get_provider_config(GEMINI_PROVIDER_NAME, dict(overrides or {}))
        api = GeminiApi(
            cfg.get("api_key"),
            base_url=cfg["base_url"],
            completions_path=cfg["completions_path"],
            headers=cfg.get("headers"),
        )
        defaults = EmbeddingOptions(
            model=cfg.get("embedding_model"),
            dimensions=cfg.get("embedding_dimensions"),
            task_type=cfg.get("embedding_task_type"),
        )
        return cls(
            api,
            defaults,
            max_attempts=int(cfg.get("max_attempts", GEMINI_DEFAULT_MAX_ATTEMPTS)),
            retry_delay_base=float(cfg.get("retry_delay_base", GEMINI_DEFAULT_RETRY_DELAY_BASE)),
        )

    @property
    def default_options(self) -> EmbeddingOptions:
        return self._defaults

    def build_request(self, inputs: EmbeddingInput, options: Optional[EmbeddingOptions] = None) -> EmbeddingRequest:
        merged = (options or EmbeddingOptions()).merge(self._defaults)
        return EmbeddingRequest(inputs=tuple(_to_inputs(inputs)), options=merged)

    def call(self, inputs: EmbeddingInput, options: Optional[EmbeddingOptions] = None) -> EmbeddingResponse:
        """Embed every input and return the vectors in input order.

        All batches are validated before the first request is sent. Provider
        failures are logged and re-raised; no partial response is returned.

        Raises:
            ValueError: Empty input, or a blank or non-string item.
            ProviderError: Any batch failed after retries.
        """
        request = self.build_request(inputs, options)
        batches = [
            request.inputs[start : start + self._batch_size]
            for start in range(0, len(request.inputs), self._batch_size)
        ] or [()]
        for batch in batches:
            validate_embedding_inputs(batch)

        ctx = LogContext(provider=self.provider_name, model=request.model)
        normalized_log_event(
            self._logger,
            "embed.start",
            ctx,
            phase="start",
            attempt=None,
            emitted=None,
            tokens=None,
            inputs=len(request.inputs),
            batches=len(batches),
        )
        t0 = time.perf_counter()
        embeddings: List[Embedding] = []
        usage = Usage.empty()
        for batch in batches:
            batch_request = EmbeddingRequest(inputs=tuple(batch), options=request.options)
            try:
                body, _headers = retry(self._build_retry_config(ctx))(
                    lambda: self._api.embeddings(batch_request)
                )()
            except ProviderError as e:
                self._log_embed_error(ctx, e.code.value, str(e))
                raise
            except Exception as e:
                self._log_embed_error(ctx, classify_exception(e).value, str(e))
                raise
            offset = len(embeddings)
            embeddings.extend(
                Embedding(index=offset + i, values=tuple(vector))
                for i, vector in enumerate(body.vectors())
            )
            usage = usage + body.to_usage()

        response = EmbeddingResponse(
            embeddings=tuple(embeddings),
            model=request.model or "",
            usage=usage,
        )
        normalized_log_event(
            self._logger,
            "embed.end",
            ctx,
            phase="finalize",
            attempt=None,
            emitted=True,
            tokens=usage,
            latency_ms=(time.perf_counter() - t0) * 1000.0,
            dimensions=len(embeddings[0]) if embeddings else None,
        )
        return response

    def embed(self, text: str, options: Optional[EmbeddingOptions] = None) -> List[float]:
        """Vector for a single text."""
        return self.call(text, options).embeddings[0].to_list()

    def dimensions(self, options: Optional[EmbeddingOptions] = None) -> int:
        """Vector size for the merged options.

        Taken from the ``dimensions`` option, then the known model sizes;
        otherwise one sample text is embedded and the size is remembered.
        """
        merged = (options or EmbeddingOptions()).merge(self._defaults)
        if merged.dimensions:
            return merged.dimensions
        model = merged.model or ""
        if model in KNOWN_DIMENSIONS:
            return KNOWN_DIMENSIONS[model]
        if model not in self._measured_dimensions:
            self._measured_dimensions[model] = len(self.embed(_DIMENSION_SAMPLE_TEXT, merged))
        return self._measured_dimensions[model]

    # -------------------- internal helpers --------------------
    def _log_embed_error(self, ctx: LogContext, code: str, error: str) -> None:
        normalized_log_event(
            self._logger,
            "embed.error",
            ctx,
            phase="finalize",
            attempt=None,
            emitted=False,
            tokens=None,
            error_code=code,
            error=error,
            level=logging.ERROR,
        )

    def _build_retry_config(self, ctx: LogContext) -> RetryConfig:
        def _attempt_logger(*, attempt: int, max_attempts: int, delay: float | None, error: ProviderError | None) -> None:
            normalized_log_event(
                self._logger,
                "retry",
                ctx,
                phase="embed",
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


__all__ = ["EmbeddingModelName", "GeminiEmbeddingModel", "KNOWN_DIMENSIONS", "EmbeddingInput"]
