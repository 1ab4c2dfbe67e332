"""
Generation DTOs: one unit of generated output for one slot.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class AssistantMessage:
    """Assistant output text plus the caller-supplied metadata map."""

    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def role(self) -> str:
        return "assistant"


@dataclass(frozen=True)
class GenerationMetadata:
    """Per-generation metadata; ``finish_reason`` is ``""`` when unset."""

    finish_reason: str = ""


@dataclass(frozen=True)
class Generation:
    """One slot's output: a chunk fragment in a ``delta``, otherwise the text so far."""

    index: int
    output: AssistantMessage
    metadata: GenerationMetadata = field(default_factory=GenerationMetadata)

    @property
    def text(self) -> str:
        return self.output.text

    @property
    def finish_reason(self) -> str:
        return self.metadata.finish_reason

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "text": self.output.text,
            "role": self.output.role,
            "metadata": dict(self.output.metadata),
            "finish_reason": self.metadata.finish_reason,
        }


__all__ = ["AssistantMessage", "GenerationMetadata", "Generation"]
