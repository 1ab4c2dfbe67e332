"""Gemini wire DTOs.

Purpose
-------
Validate one ``generateContent`` response body (or one streamed frame, which
has the same shape) and map it to the provider-neutral :class:`Chunk`. Also
validate ``embedContent`` and ``batchEmbedContents`` bodies.

External dependencies
---------------------
- Pydantic v2 ``BaseModel`` for validation. Unknown fields are kept
  (``extra="allow"``) so newer API fields never break decoding.

Failure modes
-------------
- ``pydantic.ValidationError`` (a ``ValueError``) for a body of the wrong
  shape; the frame decoder turns it into ``MalformedChunkError``.
- ``ValueError`` for negative token counts.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ..base.models import Candidate, Chunk, ContentPart, Usage

_WIRE = ConfigDict(extra="allow", populate_by_name=True)

# Wire part key -> neutral content part type, checked in order.
_PART_KINDS = (
    ("function_call", "tool_call"),
    ("function_response", "tool_result"),
    ("inline_data", "image"),
    ("file_data", "image"),
    ("executable_code", "code"),
    ("code_execution_result", "code"),
)


class GeminiPart(BaseModel):
    model_config = _WIRE

    text: Optional[str] = None
    thought: Optional[bool] = None
    function_call: Optional[Dict[str, Any]] = Field(None, alias="functionCall")
    function_response: Optional[Dict[str, Any]] = Field(None, alias="functionResponse")
    inline_data: Optional[Dict[str, Any]] = Field(None, alias="inlineData")
    file_data: Optional[Dict[str, Any]] = Field(None, alias="fileData")
    executable_code: Optional[Dict[str, Any]] = Field(None, alias="executableCode")
    code_execution_result: Optional[Dict[str, Any]] = Field(None, alias="codeExecutionResult")

    def to_content_part(self) -> ContentPart:
        for attr, kind in _PART_KINDS:
            value = getattr(self, attr)
            if value is not None:
                return ContentPart(type=kind, data={attr: value})  # type: ignore[arg-type]
        if self.text is not None:
            return ContentPart(type="text", text=self.text)
        return ContentPart(type="other", data=dict(self.model_extra or {}))


class GeminiContent(BaseModel):
    model_config = _WIRE

    parts: Optional[List[GeminiPart]] = None
    role: Optional[str] = None


class GeminiCandidate(BaseModel):
    model_config = _WIRE

    content: Optional[GeminiContent] = None
    finish_reason: Optional[str] = Field(
        None, validation_alias=AliasChoices("finishReason", "finish_reason")
    )
    index: Optional[int] = None


class GeminiUsage(BaseModel):
    """``usageMetadata`` counters; Gemini's total may include thought tokens."""

    model_config = _WIRE

    prompt_token_count: Optional[int] = Field(None, alias="promptTokenCount")
    candidates_token_count: Optional[int] = Field(None, alias="candidatesTokenCount")
    total_token_count: Optional[int] = Field(None, alias="totalTokenCount")
    cached_content_token_count: Optional[int] = Field(None, alias="cachedContentTokenCount")
    thoughts_token_count: Optional[int] = Field(None, alias="thoughtsTokenCount")
    tool_use_prompt_token_count: Optional[int] = Field(None, alias="toolUsePromptTokenCount")

    def to_usage(self) -> Usage:
        return Usage(
            prompt_tokens=self.prompt_token_count,
            completion_tokens=self.candidates_token_count,
            total_tokens=self.total_token_count,
        )


class GeminiCompletion(BaseModel):
    """One response body or streamed frame."""

    model_config = _WIRE

    candidates: Optional[List[GeminiCandidate]] = None
    usage_metadata: Optional[GeminiUsage] = Field(
        None,
        validation_alias=AliasChoices("usageMetadata", "usageMetaData", "usage_metadata"),
    )
    model_version: Optional[str] = Field(
        None, validation_alias=AliasChoices("modelVersion", "model_version")
    )
    response_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("responseId", "response_id")
    )

    def to_chunk(self) -> Chunk:
        """Map to a :class:`Chunk`; a candidate without ``index`` uses its list position."""
        candidates = []
        for position, cand in enumerate(self.candidates or []):
            content = cand.content
            parts = tuple(p.to_content_part() for p in (content.parts or [])) if content else ()
            candidates.append(
                Candidate(
                    index=cand.index if cand.index is not None else position,
                    parts=parts,
                    role=content.role if content else None,
                    finish_reason=cand.finish_reason,
                )
            )
        usage = self.usage_metadata.to_usage() if self.usage_metadata is not None else None
        return Chunk(
            candidates=tuple(candidates),
            usage=usage,
            model=self.model_version,
            response_id=self.response_id,
        )


class GeminiContentEmbedding(BaseModel):
    model_config = _WIRE

    values: List[float] = Field(default_factory=list)


class GeminiEmbeddingBody(BaseModel):
    """``embedContent`` body (one ``embedding``) or ``batchEmbedContents`` body (``embeddings``)."""

    model_config = _WIRE

    embedding: Optional[GeminiContentEmbedding] = None
    embeddings: Optional[List[GeminiContentEmbedding]] = None
    usage_metadata: Optional[GeminiUsage] = Field(
        None,
        validation_alias=AliasChoices("usageMetadata", "usageMetaData", "usage_metadata"),
    )

    def vectors(self) -> List[List[float]]:
        if self.embeddings is not None:
            return [e.values for e in self.embeddings]
        if self.embedding is not None:
            return [self.embedding.values]
        return []

    def to_usage(self) -> Usage:
        """Reported usage; the embedding endpoints usually report none."""
        return self.usage_metadata.to_usage() if self.usage_metadata is not None else Usage.empty()


def decode_chunk(payload: str) -> Chunk:
    """Decode one SSE ``data`` payload into a :class:`Chunk`."""
    return GeminiCompletion.model_validate_json(payload).to_chunk()


def is_final_chunk(chunk: Chunk) -> bool:
    """True when every candidate of ``chunk`` carries a finish reason."""
    return bool(chunk.candidates) and all(c.finish_reason for c in chunk.candidates)


__all__ = [
    "GeminiPart",
    "GeminiContent",
    "GeminiCandidate",
    "GeminiUsage",
    "GeminiCompletion",
    "GeminiContentEmbedding",
    "GeminiEmbeddingBody",
    "decode_chunk",
    "is_final_chunk",
]
