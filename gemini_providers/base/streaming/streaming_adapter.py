"""Base streaming adapter: start, aggregate, log, re-raise."""
from __future__ import annotations

import time
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional

from ..cancellation import CancellationToken, CancelledError
from ..errors import ProviderError, classify_exception
from ..logging import LogContext, normalized_log_event
from ..models import ChatResponse, RateLimit, Usage
from ..resilience.retry import RetryConfig
from .aggregator import AggregatedStream, ResponseAggregator
from .stream_controller import StreamController
from .streaming_adapter_helpers import (
    attempt_start_with_timeout,
    finalize_success,
    handle_cancellation,
    handle_failure,
    record_snapshot,
)
from .streaming_finalize import finalize_stream
from .streaming_metrics import StreamMetrics


class BaseStreamingAdapter:
    """Encapsulates the provider streaming lifecycle.

    ``starter`` opens the provider stream and returns a chunk source (see
    :func:`coerce_stream_start_result` for accepted shapes). The start is
    retried per ``retry_config_factory("stream.start")`` under the start
    timeout; once the first chunk is read nothing is retried.

    Errors are logged once and re-raised to the consumer; the adapter never
    turns a failure into a normal end of iteration.
    """

    def __init__(
        self,
        *,
        ctx: LogContext,
        provider_name: str,
        model: str,
        starter: Callable[[], Iterable],
        retry_config_factory: Callable[[str], RetryConfig],
        logger,
        previous_usage: Optional[Usage] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        rate_limit: Optional[RateLimit] = None,
        on_complete: Optional[Callable[[bool], None]] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> None:
        self.ctx = ctx
        self.provider_name = provider_name
        self.model = model
        self._starter = starter
        self._retry_config_factory = retry_config_factory
        self._logger = logger
        self._previous_usage = previous_usage
        self._metadata = dict(metadata or {})
        self._rate_limit = rate_limit
        self._on_complete = on_complete
        self._cancellation_token = cancellation_token
        self._aggregator = ResponseAggregator(provider=provider_name, model=model)
        self._stream: Optional[AggregatedStream] = None
        self.metrics = StreamMetrics()
        self._ran = False

    @property
    def final_response(self) -> Optional[ChatResponse]:
        return self._stream.final_response if self._stream is not None else None

    @property
    def rate_limit(self) -> Optional[RateLimit]:
        return self._rate_limit

    def run(self) -> Iterator[ChatResponse]:
        """Execute the streaming lifecycle, yielding one snapshot per chunk.

        Runs once per adapter; a second run raises ``RuntimeError`` before
        the starter is called again.
        """
        if self._ran:
            raise RuntimeError("streaming adapter already ran")
        self._ran = True
        t0 = time.perf_counter()
        normalized_log_event(
            self._logger,
            "stream.adapter.start",
            self.ctx,
            phase="start",
            attempt=None,
            emitted=False,
            tokens=None,
        )
        if self._cancellation_token is not None and self._cancellation_token.cancelled:
            handle_cancellation(self, self._cancellation_token.reason, t0)
            self._cancellation_token.raise_if_cancelled()

        source, meta = attempt_start_with_timeout(self)
        if self._rate_limit is None:
            self._rate_limit = meta.get("rate_limit") or RateLimit.from_headers(meta.get("headers"))
        stream = self._aggregator.aggregate(
            source,
            previous_usage=self._previous_usage,
            metadata=self._metadata,
            rate_limit=self._rate_limit,
            cancellation_token=self._cancellation_token,
        )
        self._stream = stream
        unregister = self._register_abort(source)
        completed = False
        try:
            for snapshot in stream:
                record_snapshot(self, snapshot, t0)
                yield snapshot
            completed = True
        except CancelledError as ce:
            handle_cancellation(self, str(ce), t0)
            raise
        except GeneratorExit:
            handle_cancellation(self, "consumer closed the stream", t0)
            raise
        except ProviderError as e:
            handle_failure(self, e, t0)
            raise
        except Exception as e:
            self.metrics.total_duration_ms = (time.perf_counter() - t0) * 1000.0
            code = classify_exception(e)
            finalize_stream(
                logger=self._logger,
                ctx=self.ctx,
                metrics=self.metrics,
                error=f"{code.value}:{str(e)[:260]}",
            )
            raise
        finally:
            unregister()
            stream.close()
        if completed:
            finalize_success(self, stream.final_response, t0)

    def _register_abort(self, source) -> Callable[[], None]:
        """Close the transport as soon as the token is cancelled."""
        if self._cancellation_token is None:
            return lambda: None
        abort = getattr(source, "abort", None)
        if not callable(abort):
            return lambda: None
        return self._cancellation_token.on_cancel(lambda _reason: abort())


__all__ = [
    "BaseStreamingAdapter",
    "StreamController",
    "StreamMetrics",
    "finalize_stream",
]
