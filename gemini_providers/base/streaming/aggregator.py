"""Streaming response aggregation.

:class:`ResponseAggregator` turns a source of decoded chunks into a sequence
of :class:`ChatResponse` snapshots, one per chunk, and folds them into a final
response once the end-of-stream marker arrives.

Snapshot sequence rules:

* Each snapshot carries the cumulative generations so far (one per slot seen,
  text joined up to and including its chunk, latest finish reason) and the
  cumulative usage so far. The fragments of its own chunk are in ``delta``.
* The aggregator keeps one snapshot of lookahead. When the marker arrives the
  pending snapshot is replaced by the concatenated final response
  (``final=True``), so the consumer receives exactly one item per chunk and
  the last one is complete.
* A stream that ends without the marker yields its pending snapshot and then
  raises :class:`TruncatedStreamError`; no final response is built.
* A stream with zero chunks yields nothing. ``final_response`` still holds an
  empty response carrying the starting usage.

State lives in an :class:`AggregationContext` created per ``aggregate`` call,
so concurrent streams never share buffers.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple

from ..cancellation import CancellationToken, CancelledError
from ..errors import (
    MalformedChunkError,
    ProviderError,
    TruncatedStreamError,
    classify_exception,
)
from ..logging import get_logger
from ..models import ChatResponse, Chunk, Generation, RateLimit, ResponseMetadata, Usage
from .concatenator import MessageConcatenator
from .frames import END_OF_STREAM
from .generation_builder import build_generation
from .usage_accumulator import accumulate_usage, extract_usage, initial_usage

_logger = get_logger("streaming.aggregator")


class AggregationContext:
    """Per-stream accumulation state.

    Holds the running usage, the per-slot text buffers and the latest
    response id/model. Owned by exactly one :class:`AggregatedStream`.
    """

    def __init__(
        self,
        *,
        provider: str = "unknown",
        model: Optional[str] = None,
        previous_usage: Optional[Usage] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        rate_limit: Optional[RateLimit] = None,
    ) -> None:
        self.provider = provider
        self.model = model
        self.previous_usage = previous_usage
        self.metadata: Dict[str, Any] = dict(metadata or {})
        self.rate_limit = rate_limit
        self.usage = initial_usage(previous_usage)
        self.chunks_seen = 0
        self._response_id = ""
        self._model_version = ""
        self._concatenator: Optional[MessageConcatenator] = MessageConcatenator()
        self._last_delta: Optional[Tuple[Generation, ...]] = None

    def apply(self, chunk: Chunk) -> ChatResponse:
        """Fold one chunk into the state and return its snapshot."""
        if self._concatenator is None:
            raise RuntimeError("aggregation context already released")
        self.usage = accumulate_usage(self.usage, extract_usage(chunk), self.previous_usage)
        if chunk.response_id:
            self._response_id = chunk.response_id
        if chunk.model:
            self._model_version = chunk.model
        delta = tuple(
            build_generation(candidate, self.metadata, provider=self.provider, model=self.model)
            for candidate in chunk.candidates
        )
        metadata = ResponseMetadata(
            id=chunk.response_id or self._response_id,
            model=self._model_version,
            usage=self.usage,
            rate_limit=self.rate_limit,
        )
        self._concatenator.add(ChatResponse(generations=delta, metadata=metadata))
        self._last_delta = delta
        self.chunks_seen += 1
        return ChatResponse(
            generations=self._concatenator.generations(),
            metadata=metadata,
            delta=delta,
        )

    def text(self, index: int) -> str:
        return self._concatenator.text(index) if self._concatenator is not None else ""

    def build_final(self) -> ChatResponse:
        if self._concatenator is None:
            raise RuntimeError("aggregation context already released")
        final = self._concatenator.build(usage=self.usage, rate_limit=self.rate_limit)
        if self._last_delta is None:
            return final
        # stands in for the last snapshot, so it keeps that chunk's fragments
        return replace(final, delta=self._last_delta)

    def release(self) -> None:
        """Drop the text buffers."""
        if self._concatenator is not None:
            self._concatenator.clear()
            self._concatenator = None


class AggregatedStream:
    """Iterator of snapshots for one stream.

    Closing it (explicitly, or by abandoning a ``for`` loop over a generator
    that wraps it) closes the chunk source and releases the buffers.
    """

    def __init__(
        self,
        source: Iterable[Any],
        context: AggregationContext,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> None:
        self._source = source
        self._ctx = context
        self._token = cancellation_token
        self._final: Optional[ChatResponse] = None
        self._finished = False
        self._source_closed = False
        self._run = self._snapshots()

    def __iter__(self) -> "AggregatedStream":
        return self

    def __next__(self) -> ChatResponse:
        return next(self._run)

    @property
    def finished(self) -> bool:
        """True once the end-of-stream marker was processed."""
        return self._finished

    @property
    def final_response(self) -> Optional[ChatResponse]:
        """The concatenated response; ``None`` unless :attr:`finished`."""
        return self._final

    @property
    def usage(self) -> Usage:
        """Usage accumulated so far."""
        return self._ctx.usage

    @property
    def chunks_seen(self) -> int:
        return self._ctx.chunks_seen

    def text(self, index: int = 0) -> str:
        """Cumulative text of slot ``index`` so far."""
        if self._final is not None:
            for generation in self._final.generations:
                if generation.index == index:
                    return generation.text
            return ""
        return self._ctx.text(index)

    def close(self) -> None:
        """Stop the stream early; no final response is produced.

        Call it from the consuming thread only, between reads. A read blocked
        in another thread cannot be interrupted this way (the generator is
        still executing); cancel the :class:`CancellationToken` passed to
        ``aggregate`` instead, or abort the source (``FrameDecoder.abort``).
        """
        self._run.close()
        self._close_source()
        self._ctx.release()

    def _close_source(self) -> None:
        if self._source_closed:
            return
        self._source_closed = True
        close = getattr(self._source, "close", None)
        if callable(close):
            close()

    def _truncated(self, exc: Optional[BaseException] = None) -> TruncatedStreamError:
        if exc is None:
            return TruncatedStreamError(
                provider=self._ctx.provider,
                model=self._ctx.model,
                chunks_seen=self._ctx.chunks_seen,
            )
        err = TruncatedStreamError(
            message=f"stream failed after {self._ctx.chunks_seen} chunk(s): {str(exc)[:260]}",
            provider=self._ctx.provider,
            model=self._ctx.model,
            raw=exc,
            chunks_seen=self._ctx.chunks_seen,
            cause_code=classify_exception(exc),
        )
        err.__cause__ = exc
        return err

    def _check_cancelled(self) -> None:
        if self._token is not None:
            self._token.raise_if_cancelled()

    def _snapshots(self) -> Iterator[ChatResponse]:
        source = iter(self._source)
        pending: Optional[ChatResponse] = None
        failure: Optional[ProviderError] = None
        try:
            while True:
                self._check_cancelled()
                try:
                    item = next(source)
                except StopIteration:
                    failure = self._truncated()
                    break
                except ProviderError as exc:
                    failure = exc
                    break
                except Exception as exc:
                    # closing the transport on cancel surfaces as a read error
                    self._check_cancelled()
                    failure = self._truncated(exc)
                    break
                if item is END_OF_STREAM:
                    break
                if not isinstance(item, Chunk):
                    failure = MalformedChunkError(
                        message=f"expected a decoded chunk, got {type(item).__name__}",
                        provider=self._ctx.provider,
                        model=self._ctx.model,
                    )
                    break
                try:
                    snapshot = self._ctx.apply(item)
                except ProviderError as exc:
                    failure = exc
                    break
                if pending is not None:
                    yield pending
                pending = snapshot

            if failure is not None:
                _logger.debug(
                    "stream aggregation failed code=%s chunks=%d",
                    failure.code.value,
                    self._ctx.chunks_seen,
                )
                if pending is not None:
                    snapshot, pending = pending, None
                    yield snapshot
                raise failure

            self._final = self._ctx.build_final()
            self._finished = True
            if pending is not None:
                pending = None
                yield self._final
        except CancelledError:
            _logger.debug("stream aggregation cancelled after %d chunk(s)", self._ctx.chunks_seen)
            raise
        finally:
            self._close_source()
            self._ctx.release()


class ResponseAggregator:
    """Factory of per-stream :class:`AggregatedStream` objects.

    Stateless itself; safe to share between threads.
    """

    def __init__(self, *, provider: str = "unknown", model: Optional[str] = None) -> None:
        self.provider = provider
        self.model = model

    def aggregate(
        self,
        chunks: Iterable[Any],
        *,
        previous_usage: Optional[Usage] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        rate_limit: Optional[RateLimit] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> AggregatedStream:
        """Start aggregating ``chunks``.

        Args:
            chunks: Decoded :class:`Chunk` objects ending with ``END_OF_STREAM``.
                A ``close()`` method, when present, is called once the stream
                ends for any reason.
            previous_usage: Usage of the previous turn, added to every
                reported chunk usage.
            metadata: Opaque caller values copied into each message.
            rate_limit: Quota info attached to every snapshot.
            cancellation_token: Polled before each read.
        """
        context = AggregationContext(
            provider=self.provider,
            model=self.model,
            previous_usage=previous_usage,
            metadata=metadata,
            rate_limit=rate_limit,
        )
        return AggregatedStream(chunks, context, cancellation_token)


def aggregate(chunks: Iterable[Any], **kwargs: Any) -> AggregatedStream:
    """Shortcut for ``ResponseAggregator().aggregate(chunks, **kwargs)``."""
    return ResponseAggregator().aggregate(chunks, **kwargs)


__all__ = [
    "AggregationContext",
    "AggregatedStream",
    "ResponseAggregator",
    "aggregate",
]
