"""Candidate to :class:`Generation` mapping.

Stateless. Only assistant-side roles and text parts are accepted; anything
else raises :class:`UnsupportedContentError` rather than being coerced.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ..errors import UnsupportedContentError
from ..models import AssistantMessage, Candidate, Generation, GenerationMetadata

# Wire roles a streamed candidate may carry, mapped to the message role.
ASSISTANT_ROLES = {"model": "assistant", "assistant": "assistant"}


def build_generation(
    candidate: Candidate,
    metadata: Optional[Mapping[str, Any]] = None,
    *,
    provider: str = "unknown",
    model: Optional[str] = None,
) -> Generation:
    """Map one candidate to a generation.

    Text parts are joined in order without a separator. The message metadata
    is the caller map plus ``index`` and ``role`` (``""`` when the candidate
    carries no role and the caller supplied none).

    Raises:
        UnsupportedContentError: Non-assistant role or non-text part.
    """
    role = candidate.role
    if role is not None and role not in ASSISTANT_ROLES:
        raise UnsupportedContentError(
            message=f"candidate {candidate.index} has unsupported role {role!r}",
            provider=provider,
            model=model,
        )
    fragments = []
    for part in candidate.parts:
        if part.type != "text":
            raise UnsupportedContentError(
                message=f"candidate {candidate.index} has unsupported content part {part.type!r}",
                provider=provider,
                model=model,
            )
        fragments.append(part.text or "")

    message_meta: Dict[str, Any] = dict(metadata or {})
    message_meta["index"] = candidate.index
    if role is not None:
        message_meta["role"] = ASSISTANT_ROLES[role]
    else:
        message_meta.setdefault("role", "")
    return Generation(
        index=candidate.index,
        output=AssistantMessage(text="".join(fragments), metadata=message_meta),
        metadata=GenerationMetadata(finish_reason=candidate.finish_reason or ""),
    )


__all__ = ["build_generation", "ASSISTANT_ROLES"]
