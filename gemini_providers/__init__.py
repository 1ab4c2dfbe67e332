"""gemini_providers package

Streaming chat client for the Gemini ``generateContent`` API, plus text
embeddings.

Purpose:
    Turn a Gemini server-sent-event stream into a sequence of provider-neutral
    :class:`ChatResponse` snapshots (one per chunk) ending with the fully
    concatenated response, with correct cumulative token usage across chunks
    and across turns.

Public API (re-exported):
    - Version: ``__version__``
    - Models: :class:`GeminiChatModel`, :class:`GeminiEmbeddingModel`,
      :class:`GeminiApi`
    - Aggregation: :class:`ResponseAggregator`, ``END_OF_STREAM``
    - DTOs: :class:`ChatOptions`, :class:`ChatResponse`, :class:`Message`,
      :class:`Usage`, :class:`Chunk`, :class:`Candidate`,
      :class:`EmbeddingOptions`, :class:`EmbeddingResponse`
    - Exceptions: :class:`ProviderError`, :class:`ErrorCode` and the stream
      errors
    - Cancellation: :class:`CancellationToken`, :class:`CancelledError`
    - Factory: :func:`create`
"""

from typing import Any, Mapping, Optional

from .base.errors import (
    ErrorCode,
    MalformedChunkError,
    ProviderError,
    TruncatedStreamError,
    UnsupportedContentError,
)
from .base.cancellation import CancellationToken, CancelledError
from .base.models import (
    Candidate,
    ChatOptions,
    ChatResponse,
    Chunk,
    ContentPart,
    EmbeddingOptions,
    EmbeddingResponse,
    Message,
    Usage,
)
from .base.streaming import END_OF_STREAM, ResponseAggregator
from .gemini import GeminiApi, GeminiChatModel, GeminiEmbeddingModel

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Exceptions
    "ProviderError",
    "ErrorCode",
    "MalformedChunkError",
    "TruncatedStreamError",
    "UnsupportedContentError",
    # Cancellation
    "CancellationToken",
    "CancelledError",
    # Models
    "Candidate",
    "ChatOptions",
    "ChatResponse",
    "Chunk",
    "ContentPart",
    "EmbeddingOptions",
    "EmbeddingResponse",
    "Message",
    "Usage",
    # Streaming
    "END_OF_STREAM",
    "ResponseAggregator",
    # Chat model
    "GeminiApi",
    "GeminiChatModel",
    "GeminiEmbeddingModel",
    "create",
]


def create(provider: str = "gemini", overrides: Optional[Mapping[str, Any]] = None) -> GeminiChatModel:
    """Create a configured chat model for ``provider``.

    Raises:
        ProviderError: For a provider other than ``"gemini"``.
    """
    name = (provider or "").strip().lower()
    if name != "gemini":
        raise ProviderError(
            code=ErrorCode.UNSUPPORTED,
            message=f"unknown provider {provider!r}",
            provider=name or "unknown",
        )
    return GeminiChatModel.from_config(overrides)
