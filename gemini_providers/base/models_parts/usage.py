"""
Token usage record with an explicit "not reported" state.

A provider usually reports usage only on the last chunk of a stream, so every
counter is optional: ``None`` means "not reported in this chunk", which is
different from a reported zero. ``Usage.empty()`` is the all-unreported
state; it renders as zeros with ``reported=False``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


def _add(a: Optional[int], b: Optional[int]) -> Optional[int]:
    if a is None:
        return b
    if b is None:
        return a
    return a + b


@dataclass(frozen=True)
class Usage:
    """Prompt, completion and total token counts.

    Attributes:
        prompt_tokens: Tokens in the prompt, ``None`` when not reported.
        completion_tokens: Tokens generated across all candidates.
        total_tokens: Provider total. Derived as prompt + completion when the
            provider omits it but reports both parts.

    Raises:
        ValueError: On a negative count.
    """

    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("prompt_tokens", "completion_tokens", "total_tokens"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")
        if self.total_tokens is None and self.prompt_tokens is not None and self.completion_tokens is not None:
            object.__setattr__(self, "total_tokens", self.prompt_tokens + self.completion_tokens)

    @classmethod
    def empty(cls) -> "Usage":
        return cls()

    @property
    def reported(self) -> bool:
        """True when at least one counter was reported."""
        return any(v is not None for v in (self.prompt_tokens, self.completion_tokens, self.total_tokens))

    def __add__(self, other: "Usage") -> "Usage":
        """Field-wise sum; an unreported field adopts the other side's value."""
        if not isinstance(other, Usage):
            return NotImplemented
        return Usage(
            prompt_tokens=_add(self.prompt_tokens, other.prompt_tokens),
            completion_tokens=_add(self.completion_tokens, other.completion_tokens),
            total_tokens=_add(self.total_tokens, other.total_tokens),
        )

    def as_dict(self) -> Dict[str, Any]:
        """Zero-filled counters plus the ``reported`` flag."""
        return {
            "prompt": self.prompt_tokens or 0,
            "completion": self.completion_tokens or 0,
            "total": self.total_tokens or 0,
            "reported": self.reported,
        }


__all__ = ["Usage"]
