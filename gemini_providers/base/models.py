"""
Provider-agnostic domain models (DTOs) public surface.

Re-exports the implementations under ``gemini_providers.base.models_parts``.
"""

from .models_parts.usage import Usage
from .models_parts.content_part import ContentPart, ContentPartType
from .models_parts.chunk import Candidate, Chunk
from .models_parts.generation import AssistantMessage, Generation, GenerationMetadata
from .models_parts.rate_limit import RateLimit
from .models_parts.chat_response import ChatResponse, ResponseMetadata
from .models_parts.message import Message, Role
from .models_parts.chat_request import ChatOptions, ChatRequest
from .models_parts.embedding import Embedding, EmbeddingOptions, EmbeddingRequest, EmbeddingResponse

__all__ = [
    "Usage",
    "ContentPart",
    "ContentPartType",
    "Candidate",
    "Chunk",
    "AssistantMessage",
    "Generation",
    "GenerationMetadata",
    "RateLimit",
    "ChatResponse",
    "ResponseMetadata",
    "Message",
    "Role",
    "ChatOptions",
    "ChatRequest",
    "EmbeddingOptions",
    "EmbeddingRequest",
    "Embedding",
    "EmbeddingResponse",
]
