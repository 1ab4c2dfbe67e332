"""Message concatenation: snapshots to one final response.

Fragments are grouped by slot index and joined in arrival order with no
delimiter. A streamed snapshot contributes its ``delta`` (the fragments of
its own chunk); a response without one contributes its generations. The
last non-empty finish reason of a slot wins, and usage is the last
cumulative value seen (never a sum over chunks).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..models import (
    AssistantMessage,
    ChatResponse,
    Generation,
    GenerationMetadata,
    RateLimit,
    ResponseMetadata,
    Usage,
)


@dataclass
class _SlotBuffer:
    fragments: List[str] = field(default_factory=list)
    finish_reason: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)


class MessageConcatenator:
    """Incremental concatenation state for one stream.

    Feed snapshots with :meth:`add` in arrival order, then call :meth:`build`.
    Holds only per-slot text buffers, never the snapshots themselves.
    """

    def __init__(self) -> None:
        self._slots: Dict[int, _SlotBuffer] = {}
        self._usage: Usage = Usage.empty()
        self._response_id = ""
        self._model = ""
        self._rate_limit: Optional[RateLimit] = None
        self._count = 0

    def add(self, snapshot: ChatResponse) -> None:
        fragments = snapshot.delta if snapshot.delta is not None else snapshot.generations
        for generation in fragments:
            slot = self._slots.setdefault(generation.index, _SlotBuffer())
            slot.fragments.append(generation.text)
            if generation.finish_reason:
                slot.finish_reason = generation.finish_reason
            for key, value in generation.output.metadata.items():
                # an empty role on a later chunk must not erase an earlier one
                if value != "" or key not in slot.metadata:
                    slot.metadata[key] = value
        meta = snapshot.metadata
        self._usage = meta.usage
        if meta.id:
            self._response_id = meta.id
        if meta.model:
            self._model = meta.model
        if meta.rate_limit is not None:
            self._rate_limit = meta.rate_limit
        self._count += 1

    @property
    def count(self) -> int:
        """Number of snapshots added."""
        return self._count

    def text(self, index: int) -> str:
        """Concatenated text of slot ``index`` so far (``""`` for an unseen slot)."""
        slot = self._slots.get(index)
        return "".join(slot.fragments) if slot else ""

    def slots(self) -> List[int]:
        return sorted(self._slots)

    def generations(self) -> Tuple[Generation, ...]:
        """Generations so far, one per slot in index order."""
        return tuple(
            Generation(
                index=index,
                output=AssistantMessage(
                    text="".join(slot.fragments),
                    metadata=dict(slot.metadata),
                ),
                metadata=GenerationMetadata(finish_reason=slot.finish_reason),
            )
            for index, slot in sorted(self._slots.items())
        )

    def build(
        self,
        *,
        usage: Optional[Usage] = None,
        rate_limit: Optional[RateLimit] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> ChatResponse:
        """Return the final response, one generation per slot in index order.

        ``usage`` overrides the last snapshot usage (used for an empty stream
        that still carries a previous turn's totals).
        """
        metadata = ResponseMetadata(
            id=self._response_id,
            model=self._model,
            usage=usage if usage is not None else self._usage,
            rate_limit=rate_limit if rate_limit is not None else self._rate_limit,
            extra={"chunks": self._count, **(extra or {})},
        )
        return ChatResponse(generations=self.generations(), metadata=metadata, final=True)

    def clear(self) -> None:
        self._slots.clear()


def concatenate(snapshots: Iterable[ChatResponse]) -> ChatResponse:
    """Concatenate a completed stream's snapshots into the final response."""
    concatenator = MessageConcatenator()
    for snapshot in snapshots:
        concatenator.add(snapshot)
    return concatenator.build()


__all__ = ["MessageConcatenator", "concatenate"]
