"""Streaming metrics data structures.

Isolated within the streaming package so the adapter loop stays small.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Dict, Any, Tuple

from ..models import Usage


@dataclass
class StreamMetrics:
    """Collected metrics for a single streaming invocation.

    Attributes:
        emitted: Number of snapshots handed to the consumer.
        time_to_first_token_ms: Delay between start and the first snapshot.
        total_duration_ms: Wall time of the whole stream.
        prompt_tokens / completion_tokens / total_tokens: Final usage counters.
        tokens: Canonical ``{"prompt", "completion", "total"}`` mapping.
    """

    emitted: int = 0
    time_to_first_token_ms: Optional[float] = None
    total_duration_ms: Optional[float] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    tokens: Optional[Dict[str, Any]] = None


def build_token_usage(prompt: Optional[int], completion: Optional[int], total: Optional[int] = None) -> Dict[str, Optional[int]]:
    """Return a canonical token usage mapping."""
    derived_total = total
    if derived_total is None and (prompt is not None and completion is not None):
        derived_total = prompt + completion
    return {"prompt": prompt, "completion": completion, "total": derived_total}


def apply_token_usage(metrics: StreamMetrics, usage: Optional[Usage]) -> None:
    """Copy a final :class:`Usage` onto ``metrics`` (no-op when unreported)."""
    if usage is None or not usage.reported:
        return
    metrics.prompt_tokens = usage.prompt_tokens
    metrics.completion_tokens = usage.completion_tokens
    metrics.total_tokens = usage.total_tokens
    metrics.tokens = build_token_usage(metrics.prompt_tokens, metrics.completion_tokens, metrics.total_tokens)


def validate_token_usage(
    metrics: StreamMetrics,
    *,
    raise_on_error: bool = False,
) -> Tuple[bool, Optional[str]]:
    """Check token counters for internal consistency.

    Gemini totals may include thinking and tool-use prompt tokens, so a
    mismatch between ``total`` and ``prompt + completion`` is reported only
    when the total is smaller than the sum.
    """

    def _fail(reason: str) -> Tuple[bool, Optional[str]]:
        if raise_on_error:
            raise ValueError(f"token usage invalid: {reason}")
        return False, reason

    for name, value in (
        ("prompt_tokens", metrics.prompt_tokens),
        ("completion_tokens", metrics.completion_tokens),
        ("total_tokens", metrics.total_tokens),
    ):
        if value is not None and value < 0:
            return _fail(f"{name} negative: {value}")

    if (
        metrics.prompt_tokens is not None
        and metrics.completion_tokens is not None
        and metrics.total_tokens is not None
    ) and metrics.prompt_tokens + metrics.completion_tokens > metrics.total_tokens:
        return _fail("total_tokens mismatch: total smaller than prompt+completion")

    if metrics.tokens is not None:
        required = {"prompt", "completion", "total"}
        if set(metrics.tokens.keys()) != required:
            return _fail(f"tokens mapping keys mismatch: {sorted(metrics.tokens.keys())}")

    return True, None


__all__ = [
    "StreamMetrics",
    "apply_token_usage",
    "build_token_usage",
    "validate_token_usage",
]
