"""Unified provider error taxonomy public surface.

Re-exports the one-class-per-file implementations under
``gemini_providers.base.errors_parts`` behind a single stable import path.
"""

from .errors_parts.error_code import ErrorCode
from .errors_parts.provider_error import ProviderError
from .errors_parts.stream_errors import (
    MalformedChunkError,
    TruncatedStreamError,
    UnsupportedContentError,
)
from .errors_parts.classification import classify_exception

__all__ = [
    "ErrorCode",
    "ProviderError",
    "MalformedChunkError",
    "TruncatedStreamError",
    "UnsupportedContentError",
    "classify_exception",
]
