"""
ChatResponse DTO: a stream snapshot or a final response.

During streaming, each snapshot carries the generations so far (one per
slot, text concatenated up to and including the chunk that produced it), the
fragments of that chunk alone in ``delta``, and the usage accumulated so far.
The final response (``final`` is True) carries the complete text of every
slot. Both are immutable once built.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .generation import Generation
from .rate_limit import RateLimit
from .usage import Usage


@dataclass(frozen=True)
class ResponseMetadata:
    """Response-level metadata.

    Attributes:
        id: Provider response id, ``""`` when unknown.
        model: Model version reported by the provider, ``""`` when unknown.
        usage: Usage accumulated so far (cumulative, never per-chunk).
        rate_limit: Quota information supplied out of band (headers).
        extra: Adapter diagnostics (e.g. ``chunks`` count on final responses).
    """

    id: str = ""
    model: str = ""
    usage: Usage = field(default_factory=Usage.empty)
    rate_limit: Optional[RateLimit] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "model": self.model,
            "usage": self.usage.as_dict(),
            "rate_limit": self.rate_limit.to_dict() if self.rate_limit else None,
            "extra": dict(self.extra),
        }


@dataclass(frozen=True)
class ChatResponse:
    """Provider-agnostic chat response.

    Attributes:
        generations: Generations ordered by slot index within the response.
        metadata: Response-level :class:`ResponseMetadata`.
        final: True for a fully concatenated final response.
        delta: Fragments of the single chunk behind a streamed snapshot;
            ``None`` for responses not produced by a stream.
    """

    generations: Tuple[Generation, ...] = ()
    metadata: ResponseMetadata = field(default_factory=ResponseMetadata)
    final: bool = False
    delta: Optional[Tuple[Generation, ...]] = None

    @property
    def result(self) -> Optional[Generation]:
        """First generation, or ``None`` for an empty response."""
        return self.generations[0] if self.generations else None

    @property
    def text(self) -> Optional[str]:
        return self.generations[0].text if self.generations else None

    @property
    def delta_text(self) -> Optional[str]:
        """Slot 0 fragment of the chunk behind this snapshot."""
        if self.delta is None:
            return None
        for generation in self.delta:
            if generation.index == 0:
                return generation.text
        return ""

    @property
    def usage(self) -> Usage:
        return self.metadata.usage

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generations": [g.to_dict() for g in self.generations],
            "metadata": self.metadata.to_dict(),
            "final": self.final,
            "delta": [g.to_dict() for g in self.delta] if self.delta is not None else None,
        }


__all__ = [
    "ChatResponse",
    "ResponseMetadata",
]
