"""
Provider-neutral stream chunk records.

A :class:`Chunk` is one decoded server-sent event. It is immutable and only
lives for one aggregation step. Each :class:`Candidate` addresses a slot by
``index``; the same slot index recurs across chunks and its fragments are
concatenated in arrival order.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .content_part import ContentPart
from .usage import Usage


@dataclass(frozen=True)
class Candidate:
    """One slot of one chunk.

    ``parts`` is empty when the candidate carried no content (a pure
    finish-reason update, for instance).
    """

    index: int
    parts: Tuple[ContentPart, ...] = ()
    role: Optional[str] = None
    finish_reason: Optional[str] = None


@dataclass(frozen=True)
class Chunk:
    """One decoded stream increment.

    Attributes:
        candidates: Slots updated by this chunk, possibly empty.
        usage: Usage reported by this chunk, ``None`` when absent.
        model: Model version reported by the provider.
        response_id: Provider response identifier.
    """

    candidates: Tuple[Candidate, ...] = ()
    usage: Optional[Usage] = None
    model: Optional[str] = None
    response_id: Optional[str] = None


__all__ = ["Candidate", "Chunk"]
