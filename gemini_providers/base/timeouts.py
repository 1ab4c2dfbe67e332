"""Timeout configuration and start-phase guard.

Timeouts are owned by the transport layer: the HTTP pool derives its
``httpx.Timeout`` from :func:`get_timeout_config`, and the streaming adapter
wraps the blocking start of a stream in :func:`operation_timeout`. The
aggregator itself never times out; a transport timeout surfaces to it as an
exception from the chunk source, which it reports as a truncated stream.

Environment overrides (seconds, positive floats):
    GEMINI_TIMEOUT_START_SECONDS   connect + first response headers
    GEMINI_TIMEOUT_STREAM_SECONDS  max wait between two chunks (read timeout)
    GEMINI_TIMEOUT_HTTP_SECONDS    single-shot request timeout
    GEMINI_TIMEOUT_OVERALL_SECONDS optional cap for a whole stream
"""
from __future__ import annotations

from contextlib import contextmanager, suppress
from dataclasses import dataclass
import os
import signal
import threading
import time
from typing import Iterator, Optional

import httpx


@dataclass(frozen=True)
class TimeoutConfig:
    """Normalized timeout values in seconds."""

    start_timeout_seconds: float = 30.0
    stream_timeout_seconds: float = 60.0
    http_timeout_seconds: float = 30.0
    overall_timeout_seconds: float | None = None

    def stream_timeout(self) -> httpx.Timeout:
        """``httpx.Timeout`` for streaming calls: read timeout is the per-chunk wait."""
        return httpx.Timeout(
            self.http_timeout_seconds,
            connect=self.start_timeout_seconds,
            read=self.stream_timeout_seconds,
        )

    def http_timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.http_timeout_seconds, connect=self.start_timeout_seconds)


_ENV_NAMES = (
    "GEMINI_TIMEOUT_START_SECONDS",
    "GEMINI_TIMEOUT_STREAM_SECONDS",
    "GEMINI_TIMEOUT_HTTP_SECONDS",
    "GEMINI_TIMEOUT_OVERALL_SECONDS",
)
_CACHED: TimeoutConfig | None = None
_CACHE_KEY: str | None = None


def _parse_env_float(name: str, default: float | None) -> float | None:
    """Read ``name`` as a positive float, returning ``default`` otherwise."""
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        val = float(raw)
    except ValueError:
        return default
    return val if val > 0 else default


def get_timeout_config() -> TimeoutConfig:
    """Return the cached `TimeoutConfig`, rebuilt when the env overrides change."""
    global _CACHED, _CACHE_KEY  # noqa: PLW0603 - documented module cache
    key = "/".join(os.getenv(n, "") for n in _ENV_NAMES)
    if _CACHED is not None and _CACHE_KEY == key:
        return _CACHED
    defaults = TimeoutConfig()
    _CACHED = TimeoutConfig(
        start_timeout_seconds=_parse_env_float(_ENV_NAMES[0], defaults.start_timeout_seconds),
        stream_timeout_seconds=_parse_env_float(_ENV_NAMES[1], defaults.stream_timeout_seconds),
        http_timeout_seconds=_parse_env_float(_ENV_NAMES[2], defaults.http_timeout_seconds),
        overall_timeout_seconds=_parse_env_float(_ENV_NAMES[3], None),
    )
    _CACHE_KEY = key
    return _CACHED


def _signals_usable() -> bool:
    return hasattr(signal, "setitimer") and threading.current_thread() is threading.main_thread()


@contextmanager
def operation_timeout(seconds: float | None) -> Iterator[None]:
    """Raise ``TimeoutError`` if the guarded block runs longer than ``seconds``.

    Uses ``SIGALRM`` on the main thread of Unix processes. Elsewhere a timer
    marks expiry and the error is raised when the block returns. ``None`` or a
    non-positive value disables the guard.
    """
    if not seconds or seconds <= 0:
        yield
        return

    if _signals_usable():
        def _raise_timeout(signum, frame):  # noqa: ARG001
            raise TimeoutError(f"operation exceeded {seconds}s")

        old_handler = signal.signal(signal.SIGALRM, _raise_timeout)
        old_timer: Optional[tuple] = signal.setitimer(signal.ITIMER_REAL, seconds)
        started = time.monotonic()
        try:
            yield
        finally:
            signal.setitimer(signal.ITIMER_REAL, 0)
            signal.signal(signal.SIGALRM, old_handler)
            if old_timer and old_timer[0] > 0:
                # restore an enclosing alarm, minus the time spent in this block
                remaining = max(0.0, old_timer[0] - (time.monotonic() - started))
                with suppress(ValueError):
                    signal.setitimer(signal.ITIMER_REAL, remaining or 1e-3, old_timer[1])
        return

    expired = threading.Event()
    timer = threading.Timer(seconds, expired.set)
    timer.daemon = True
    timer.start()
    try:
        yield
    finally:
        timer.cancel()
    if expired.is_set():
        raise TimeoutError(f"operation exceeded {seconds}s")


__all__ = [
    "TimeoutConfig",
    "get_timeout_config",
    "operation_timeout",
]
