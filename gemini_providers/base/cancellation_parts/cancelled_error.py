"""Cancellation error type.

Defines the public ``CancelledError`` raised when a stream consumer cancels
an in-flight aggregation. Kept apart from ``ProviderError`` so retry logic and
error logging never treat a caller's decision as a provider failure.
"""

from __future__ import annotations


class CancelledError(RuntimeError):
    """Raised when an operation is cancelled cooperatively."""

__all__ = ["CancelledError"]
