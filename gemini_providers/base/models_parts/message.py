"""
Prompt message DTO.

Roles follow the provider-agnostic vocabulary; the Gemini binding maps them
onto the wire roles ``user`` and ``model``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


Role = Literal["system", "user", "assistant", "tool"]


@dataclass(frozen=True)
class Message:
    """A prompt message with plain text content."""

    role: Role
    content: str


__all__ = [
    "Message",
    "Role",
]
