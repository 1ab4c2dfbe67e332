"""
ChatRequest DTO for one chat invocation.

Carries the prompt messages and the generation options after runtime options
have been merged over the model defaults (see ``ChatOptions.merge``).
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, List, Optional

from .message import Message


@dataclass(frozen=True)
class ChatOptions:
    """Generation options; ``None`` means "use the other side of the merge".

    Attributes:
        model: Target model identifier.
        temperature: Sampling temperature.
        max_tokens: Output token cap (sent as ``maxOutputTokens``).
        top_p: Nucleus sampling mass.
        top_k: Top-k sampling cutoff.
        stop_sequences: Sequences that end generation.
        http_headers: Extra HTTP headers for the call.
    """

    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    stop_sequences: Optional[List[str]] = None
    http_headers: Dict[str, str] = field(default_factory=dict)

    def merge(self, defaults: "ChatOptions | None") -> "ChatOptions":
        """Return runtime options (``self``) laid over ``defaults``.

        Scalar fields take the runtime value when set. HTTP headers are merged
        key by key with runtime values winning.
        """
        if defaults is None:
            return self
        merged: Dict[str, Any] = {}
        for f in fields(self):
            if f.name == "http_headers":
                continue
            value = getattr(self, f.name)
            merged[f.name] = value if value is not None else getattr(defaults, f.name)
        merged["http_headers"] = {**defaults.http_headers, **self.http_headers}
        return ChatOptions(**merged)


@dataclass(frozen=True)
class ChatRequest:
    """A prompt plus merged options, ready for a provider binding."""

    messages: List[Message]
    options: ChatOptions = field(default_factory=ChatOptions)
    stream: bool = False

    @property
    def model(self) -> Optional[str]:
        return self.options.model

    def to_dict(self) -> Dict[str, Any]:
        return {
            "messages": [asdict(m) for m in self.messages],
            "options": asdict(self.options),
            "stream": self.stream,
        }


__all__ = [
    "ChatOptions",
    "ChatRequest",
]
