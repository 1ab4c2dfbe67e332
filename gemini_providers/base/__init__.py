"""
Providers Base Package

Provider-agnostic building blocks for the Gemini binding:
- Models (DTOs): chunks, usage, generations and chat responses
- Errors: normalized error codes and stream error types
- Streaming: frame decoding, response aggregation and the streaming adapter
- Timeouts & Cancellation: transport timeouts and cooperative cancellation
"""

from .models import (
    AssistantMessage,
    Candidate,
    ChatOptions,
    ChatRequest,
    ChatResponse,
    Chunk,
    ContentPart,
    ContentPartType,
    Generation,
    GenerationMetadata,
    Message,
    RateLimit,
    ResponseMetadata,
    Role,
    Usage,
)
from .errors import (
    ErrorCode,
    MalformedChunkError,
    ProviderError,
    TruncatedStreamError,
    UnsupportedContentError,
    classify_exception,
)
from .timeouts import TimeoutConfig, get_timeout_config, operation_timeout
from .cancellation import CancellationToken, CancelledError
from .streaming import (
    END_OF_STREAM,
    AggregatedStream,
    BaseStreamingAdapter,
    ResponseAggregator,
    StreamController,
    StreamMetrics,
    finalize_stream,
)

__all__ = [
    # Models
    "Role",
    "Message",
    "ChatOptions",
    "ChatRequest",
    "ContentPartType",
    "ContentPart",
    "Candidate",
    "Chunk",
    "Usage",
    "AssistantMessage",
    "Generation",
    "GenerationMetadata",
    "RateLimit",
    "ResponseMetadata",
    "ChatResponse",
    # Errors
    "ErrorCode",
    "ProviderError",
    "MalformedChunkError",
    "TruncatedStreamError",
    "UnsupportedContentError",
    "classify_exception",
    # Timeouts & Cancellation
    "TimeoutConfig",
    "get_timeout_config",
    "operation_timeout",
    "CancellationToken",
    "CancelledError",
    # Streaming
    "END_OF_STREAM",
    "ResponseAggregator",
    "AggregatedStream",
    "BaseStreamingAdapter",
    "StreamMetrics",
    "finalize_stream",
    "StreamController",
]
