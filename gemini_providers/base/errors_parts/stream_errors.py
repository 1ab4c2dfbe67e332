"""
Aggregation-level streaming errors.

Each class pins its :class:`ErrorCode` so callers can catch by type or branch
on ``code``. All of them end the snapshot sequence; none of them is produced
for a cleanly terminated stream.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .error_code import ErrorCode
from .provider_error import ProviderError


@dataclass
class MalformedChunkError(ProviderError):
    """A frame could not be decoded into the expected chunk shape.

    ``frame`` holds the offending payload (truncated for logging).
    """

    code: ErrorCode = ErrorCode.MALFORMED_CHUNK
    message: str = "malformed chunk"
    provider: str = "unknown"
    frame: Optional[str] = None


@dataclass
class TruncatedStreamError(ProviderError):
    """The source ended, or failed, before the end-of-stream sentinel.

    ``chunks_seen`` is the number of chunks consumed before the stream broke
    and ``cause_code`` classifies the transport failure when there was one
    (``None`` for a plain early close).
    """

    code: ErrorCode = ErrorCode.TRUNCATED_STREAM
    message: str = "stream closed before end-of-stream sentinel"
    provider: str = "unknown"
    retryable: bool = True
    chunks_seen: int = 0
    cause_code: Optional[ErrorCode] = field(default=None)


@dataclass
class UnsupportedContentError(ProviderError):
    """A candidate carries a role or content shape the builder cannot map."""

    code: ErrorCode = ErrorCode.UNSUPPORTED_CONTENT
    message: str = "unsupported content"
    provider: str = "unknown"


__all__ = ["MalformedChunkError", "TruncatedStreamError", "UnsupportedContentError"]
