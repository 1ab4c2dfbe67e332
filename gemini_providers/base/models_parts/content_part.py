"""
Structured content part of a candidate.

Gemini content is a list of parts; only text parts can be streamed into an
assistant message. Other kinds are kept so the generation builder can reject
them by name instead of dropping them silently.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Literal, Optional


ContentPartType = Literal[
    "text",          # plain text fragment
    "tool_call",     # functionCall
    "tool_result",   # functionResponse
    "image",         # inlineData / fileData
    "code",          # executableCode / codeExecutionResult
    "other",         # anything else the wire format carries
]


@dataclass(frozen=True)
class ContentPart:
    """One part of a candidate's content.

    Attributes:
        type: The semantic kind of the part.
        text: Text fragment for ``"text"`` parts.
        data: Raw payload for non-text parts (kept for error messages).
    """

    type: ContentPartType
    text: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = [
    "ContentPart",
    "ContentPartType",
]
