"""StreamController: cancellable iterator façade around the streaming adapter.

Kept apart from the adapter module so controller tests do not need the full
adapter machinery.
"""
from __future__ import annotations

from typing import Iterator, Optional

from ..cancellation import CancellationToken
from ..models import ChatResponse


class StreamController:
    """High-level cancellable iterator wrapping ``BaseStreamingAdapter``.

    Responsibilities:
      * Iterate over :class:`ChatResponse` snapshots, once; a second
        iteration raises ``RuntimeError`` instead of reopening the stream.
      * Expose ``cancel(reason)`` for cooperative cancellation, safe from any thread.
      * Keep the final response or the terminal error for post-hoc inspection.
    """

    def __init__(
        self,
        adapter,  # untyped to avoid a circular import of BaseStreamingAdapter
        token: CancellationToken | None = None,
    ) -> None:
        self._adapter = adapter
        self._token = token or adapter._cancellation_token or CancellationToken()
        if adapter._cancellation_token is None:
            adapter._cancellation_token = self._token
        self._finished = False
        self._final: Optional[ChatResponse] = None
        self._error: Optional[BaseException] = None
        self._started = False

    def __iter__(self) -> Iterator[ChatResponse]:
        if self._started:
            raise RuntimeError("stream already consumed; start a new stream")
        self._started = True
        return self._iterate()

    def _iterate(self) -> Iterator[ChatResponse]:
        try:
            yield from self._adapter.run()
        except Exception as e:
            self._error = e
            raise
        self._finished = True
        self._final = self._adapter.final_response

    # API -----------------------------------------------------------------
    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation of the underlying stream.

        Safe to invoke multiple times or after completion.
        """
        self._token.cancel(reason)

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def finished(self) -> bool:  # noqa: D401 - short property
        """Whether the stream ended with its end-of-stream marker."""
        return self._finished

    @property
    def final_response(self) -> Optional[ChatResponse]:  # noqa: D401 - short property
        """The concatenated final response once :attr:`finished`."""
        return self._final

    @property
    def error(self) -> Optional[BaseException]:  # noqa: D401 - short property
        """The exception that ended the stream, if any."""
        return self._error


__all__ = ["StreamController"]
