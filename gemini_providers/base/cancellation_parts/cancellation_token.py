"""Cooperative cancellation token implementation.

A token is polled by the aggregator between chunks. Callbacks registered with
:meth:`CancellationToken.on_cancel` run once on cancellation so the owner of a
network stream can close it immediately instead of waiting for the next chunk.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, List, Optional

from .state import State
from .cancelled_error import CancelledError

_logger = logging.getLogger("gemini_providers.cancellation")


class CancellationToken:
    """A cooperative cancellation token with optional cascading semantics.

    Thread-safe: ``cancel`` may be called from a different thread than the one
    consuming the stream. Child tokens inherit cancellation from their parent.
    """

    def __init__(self, *, parent: "CancellationToken | None" = None) -> None:
        self._state = State()
        self._lock = Lock()
        self._children: List[CancellationToken] = []
        if parent is not None:
            parent.link_child(self)

    @property
    def cancelled(self) -> bool:  # noqa: D401 - short form
        """Whether cancellation has been requested."""
        return self._state.cancelled

    @property
    def reason(self) -> str | None:  # noqa: D401 - short form
        """Reason string supplied at cancel time (if any)."""
        return self._state.reason

    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation, run callbacks, and cascade to children."""
        with self._lock:
            if self._state.cancelled:
                return
            self._state.cancelled = True
            self._state.reason = reason
            callbacks = list(self._state.callbacks)
            self._state.callbacks.clear()
            children = list(self._children)
        for cb in callbacks:
            self._run_callback(cb, reason)
        for child in children:
            child.cancel(reason)

    def on_cancel(self, callback: Callable[[Optional[str]], None]) -> Callable[[], None]:
        """Register ``callback(reason)`` to run on cancellation.

        Runs immediately when the token is already cancelled. Returns a function
        that unregisters the callback (a no-op once it has run).
        """
        with self._lock:
            if not self._state.cancelled:
                self._state.callbacks.append(callback)

                def _unregister() -> None:
                    with self._lock:
                        if callback in self._state.callbacks:
                            self._state.callbacks.remove(callback)

                return _unregister
            reason = self._state.reason
        self._run_callback(callback, reason)
        return lambda: None

    def link_child(self, token: "CancellationToken") -> "CancellationToken":
        """Link a child token so parent cancellation cascades (returns child)."""
        with self._lock:
            self._children.append(token)
            should_cancel = self._state.cancelled
            reason = self._state.reason
        if should_cancel:
            token.cancel(reason)
        return token

    def raise_if_cancelled(self) -> None:
        """Raise ``CancelledError`` if token is cancelled."""
        if self._state.cancelled:
            raise CancelledError(self._state.reason or "operation cancelled")

    def child(self) -> "CancellationToken":
        """Create and link a child token (shortcut)."""
        return CancellationToken(parent=self)

    @staticmethod
    def _run_callback(callback: Callable[[Optional[str]], None], reason: Optional[str]) -> None:
        try:
            callback(reason)
        except Exception:
            # a failing close hook must not stop the remaining callbacks
            _logger.warning("cancellation callback failed", exc_info=True)

    def __repr__(self) -> str:  # pragma: no cover - introspection aid
        return (
            f"CancellationToken(cancelled={self._state.cancelled}, "
            f"reason={self._state.reason!r}, children={len(self._children)})"
        )


__all__ = ["CancellationToken"]
