"""Errors parts package public surface.

Re-exports individual error taxonomy components for optional direct imports.
Prefer importing from `gemini_providers.base.errors` for the stable surface.
"""

from .error_code import ErrorCode
from .provider_error import ProviderError
from .stream_errors import MalformedChunkError, TruncatedStreamError, UnsupportedContentError
from .classification import classify_exception

__all__ = [
    "ErrorCode",
    "ProviderError",
    "MalformedChunkError",
    "TruncatedStreamError",
    "UnsupportedContentError",
    "classify_exception",
]
