"""Finalize stream helper.

Emits the single consolidated end (or error) log line for a stream with the
collected metrics.
"""
from __future__ import annotations

import logging
from typing import Optional, Dict, Any

from ..logging import LogContext, normalized_log_event
from .streaming_metrics import StreamMetrics, validate_token_usage


def _tokens_payload(metrics: StreamMetrics) -> Dict[str, Any]:
    if metrics.tokens is not None:
        return metrics.tokens
    return {
        "prompt": metrics.prompt_tokens,
        "completion": metrics.completion_tokens,
        "total": metrics.total_tokens,
    }


def finalize_stream(
    *,
    logger,
    ctx: LogContext,
    metrics: StreamMetrics,
    error: Optional[str] = None,
    error_code: Optional[str] = None,
    cancelled: bool = False,
) -> None:
    """Log ``stream.adapter.end``, ``stream.adapter.cancelled`` or ``stream.adapter.error``.

    ``error`` is formatted ``"<code>:<message>"``; the code prefix is used as
    ``error_code`` unless one is passed explicitly.
    """
    if error_code is None and error and ":" in error:
        error_code = error.split(":", 1)[0].strip() or None

    if cancelled:
        event, level = "stream.adapter.cancelled", logging.INFO
    elif error is not None:
        event, level = "stream.adapter.error", logging.ERROR
    else:
        event, level = "stream.adapter.end", logging.INFO

    usage_ok, usage_problem = validate_token_usage(metrics)
    normalized_log_event(
        logger,
        event,
        ctx,
        phase="finalize",
        attempt=None,
        emitted=metrics.emitted > 0,
        tokens=_tokens_payload(metrics),
        error_code=error_code,
        level=level,
        emitted_count=metrics.emitted,
        time_to_first_token_ms=metrics.time_to_first_token_ms,
        total_duration_ms=metrics.total_duration_ms,
        error=error,
        usage_warning=None if usage_ok else usage_problem,
    )


__all__ = ["finalize_stream"]
