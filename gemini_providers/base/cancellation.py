"""Cooperative cancellation primitives (public API facade).

``CancellationToken`` lets a caller stop an in-flight stream from any thread;
``CancelledError`` is raised by the aggregator once it observes the request.
Implementations live under ``cancellation_parts``.
"""

from .cancellation_parts.cancelled_error import CancelledError
from .cancellation_parts.cancellation_token import CancellationToken

__all__ = ["CancellationToken", "CancelledError"]
