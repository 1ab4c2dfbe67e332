"""
Normalized provider error codes (taxonomy).

Defines the `ErrorCode` enumeration used by the Gemini binding and the
streaming aggregator. Values are lowercase snake_case and are part of the
structured log schema (``error_code`` key).
"""
from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Enumerated normalized error codes representing failure categories."""

    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    TRANSIENT = "transient"
    UNSUPPORTED = "unsupported"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SERVER_ERROR = "server_error"
    INTERNAL = "internal"
    UNAVAILABLE = "unavailable"
    MALFORMED_CHUNK = "malformed_chunk"
    TRUNCATED_STREAM = "truncated_stream"
    UNSUPPORTED_CONTENT = "unsupported_content"
    UNKNOWN = "unknown"


__all__ = ["ErrorCode"]
