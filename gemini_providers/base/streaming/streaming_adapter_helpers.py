"""Streaming adapter helper functions (within streaming package)."""

from __future__ import annotations

import logging
import time
from contextlib import suppress
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from ..errors import ErrorCode, ProviderError, classify_exception
from ..logging import normalized_log_event
from ..models import ChatResponse
from ..resilience.retry import retry
from ..timeouts import get_timeout_config, operation_timeout
from .streaming_finalize import finalize_stream
from .streaming_metrics import apply_token_usage


def attempt_start_with_timeout(adapter) -> Tuple[Iterable, Dict[str, Any]]:
    """Start the provider stream under the start-phase timeout and retry policy.

    Returns ``(source, meta)``. A failure is logged as ``stream.adapter.error``
    and re-raised as a :class:`ProviderError`.
    """
    timeout_cfg = get_timeout_config()
    try:
        with operation_timeout(timeout_cfg.start_timeout_seconds):
            result = start_with_retry(adapter)
    except ProviderError as e:
        terminal_error(adapter, e)
        raise
    except Exception as e:
        code = classify_exception(e)
        err = ProviderError(
            code=code,
            message=str(e)[:260],
            provider=adapter.provider_name,
            model=adapter.model,
            raw=e,
        )
        terminal_error(adapter, err)
        raise err from e
    stream, extra_meta = coerce_stream_start_result(result)
    req_id = extra_meta.get("request_id")
    if req_id and not adapter.ctx.request_id:
        adapter.ctx.request_id = req_id
    return stream, extra_meta


def start_with_retry(adapter):
    """Start the provider stream with retry and error classification."""

    def _invoke():
        try:
            return adapter._starter()
        except ProviderError:
            raise
        except Exception as e:  # classify into ProviderError for uniform handling
            code = classify_exception(e)
            raise ProviderError(
                code=code,
                message=str(e),
                provider=adapter.provider_name,
                model=adapter.model,
                retryable=code in (ErrorCode.TRANSIENT, ErrorCode.RATE_LIMIT, ErrorCode.TIMEOUT),
                raw=e,
            ) from e

    retry_cfg = adapter._retry_config_factory("stream.start")
    return retry(retry_cfg)(_invoke)()


def coerce_stream_start_result(result) -> Tuple[Iterable, Dict[str, Any]]:
    """Normalize the ``starter()`` return value into ``(stream, meta)``.

    Accepted forms:
    - stream_iterable (a ``headers`` attribute, when present, becomes meta)
    - {"stream": stream_iterable, ...meta}
    - (stream_iterable, {..meta})
    """
    if isinstance(result, Mapping):
        stream_obj = result.get("stream")
        if stream_obj is None:
            raise ProviderError(
                code=ErrorCode.INTERNAL,
                message="starter() mapping missing 'stream' key",
                provider=str(result.get("provider", "unknown")),
                model=str(result.get("model", "unknown")),
            )
        return stream_obj, {k: v for k, v in result.items() if k != "stream"}
    if isinstance(result, tuple) and len(result) == 2 and isinstance(result[1], Mapping):
        stream_obj, meta = result
        return stream_obj, dict(meta)
    headers = getattr(result, "headers", None)
    return result, ({"headers": dict(headers)} if headers else {})


def record_snapshot(adapter, snapshot: ChatResponse, t0: float) -> None:
    """Update metrics for one snapshot handed to the consumer."""
    if adapter.metrics.emitted == 0:
        adapter.metrics.time_to_first_token_ms = (time.perf_counter() - t0) * 1000.0
    adapter.metrics.emitted += 1
    if adapter._logger.isEnabledFor(logging.DEBUG):
        normalized_log_event(
            adapter._logger,
            "stream.delta",
            adapter.ctx,
            phase="mid_stream",
            attempt=None,
            emitted=True,
            tokens=None,
            level=logging.DEBUG,
            delta_len=sum(len(g.text) for g in (snapshot.delta or ())),
            final=snapshot.final or None,
        )


def finalize_success(adapter, final: Optional[ChatResponse], t0: float) -> None:
    """Record final usage and log the successful end of the stream."""
    adapter.metrics.total_duration_ms = (time.perf_counter() - t0) * 1000.0
    if final is not None:
        apply_token_usage(adapter.metrics, final.usage)
        if final.metadata.id and not adapter.ctx.response_id:
            adapter.ctx.response_id = final.metadata.id
    finalize_stream(logger=adapter._logger, ctx=adapter.ctx, metrics=adapter.metrics)
    _notify_complete(adapter)


def handle_failure(adapter, exc: ProviderError, t0: float) -> None:
    """Log a mid-stream failure; the caller re-raises."""
    adapter.metrics.total_duration_ms = (time.perf_counter() - t0) * 1000.0
    terminal_error(adapter, exc)
    _notify_complete(adapter)


def handle_cancellation(adapter, reason: Optional[str], t0: float) -> None:
    """Log a cancelled stream (token cancel or consumer close)."""
    adapter.metrics.total_duration_ms = (time.perf_counter() - t0) * 1000.0
    finalize_stream(
        logger=adapter._logger,
        ctx=adapter.ctx,
        metrics=adapter.metrics,
        error=f"{ErrorCode.CANCELLED.value}:{(reason or 'operation cancelled')[:260]}",
        cancelled=True,
    )
    _notify_complete(adapter)


def terminal_error(adapter, exc: ProviderError) -> None:
    """Log ``stream.adapter.error`` with the error code and message."""
    finalize_stream(
        logger=adapter._logger,
        ctx=adapter.ctx,
        metrics=adapter.metrics,
        error=f"{exc.code.value}:{exc.message[:260]}",
        error_code=exc.code.value,
    )


def _notify_complete(adapter) -> None:
    if adapter._on_complete:
        # completion hooks are observers; they never change the outcome
        with suppress(Exception):
            adapter._on_complete(adapter.metrics.emitted > 0)


__all__ = [
    "attempt_start_with_timeout",
    "start_with_retry",
    "coerce_stream_start_result",
    "record_snapshot",
    "finalize_success",
    "handle_failure",
    "handle_cancellation",
    "terminal_error",
]
