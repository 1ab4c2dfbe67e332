"""Gemini provider binding: REST client, wire DTOs, chat and embedding models."""

from .api import GeminiApi, build_request_body
from .chat_model import GeminiChatModel
from .embedding_model import EmbeddingModelName, GeminiEmbeddingModel
from .dto import GeminiCompletion, decode_chunk, is_final_chunk

__all__ = [
    "GeminiApi",
    "GeminiChatModel",
    "GeminiCompletion",
    "GeminiEmbeddingModel",
    "EmbeddingModelName",
    "build_request_body",
    "decode_chunk",
    "is_final_chunk",
]
