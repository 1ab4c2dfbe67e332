"""Model parts package: one DTO family per module."""

from .usage import Usage
from .content_part import ContentPart, ContentPartType
from .chunk import Candidate, Chunk
from .generation import AssistantMessage, Generation, GenerationMetadata
from .rate_limit import RateLimit
from .chat_response import ChatResponse, ResponseMetadata
from .message import Message, Role
from .chat_request import ChatOptions, ChatRequest
from .embedding import Embedding, EmbeddingOptions, EmbeddingRequest, EmbeddingResponse

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
