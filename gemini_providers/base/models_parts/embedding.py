"""
Embedding DTOs: request options, one vector, and the response.

Options merge the same way as :class:`ChatOptions`: runtime values laid over
the model defaults, ``None`` meaning "not set".
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Tuple

from .usage import Usage


@dataclass(frozen=True)
class EmbeddingOptions:
    """Embedding options.

    Attributes:
        model: Embedding model identifier.
        dimensions: Requested output size (``outputDimensionality``).
        task_type: Intended use, e.g. ``RETRIEVAL_DOCUMENT`` (``taskType``).
        title: Document title; only meaningful for ``RETRIEVAL_DOCUMENT``.
        http_headers: Extra HTTP headers for the call.
    """

    model: Optional[str] = None
    dimensions: Optional[int] = None
    task_type: Optional[str] = None
    title: Optional[str] = None
    http_headers: Dict[str, str] = field(default_factory=dict)

    def merge(self, defaults: "EmbeddingOptions | None") -> "EmbeddingOptions":
        if defaults is None:
            return self
        merged: Dict[str, Any] = {}
        for f in fields(self):
            if f.name == "http_headers":
                continue
            value = getattr(self, f.name)
            merged[f.name] = value if value is not None else getattr(defaults, f.name)
        merged["http_headers"] = {**defaults.http_headers, **self.http_headers}
        return EmbeddingOptions(**merged)


@dataclass(frozen=True)
class EmbeddingRequest:
    """Texts to embed plus merged options."""

    inputs: Tuple[str, ...]
    options: EmbeddingOptions = field(default_factory=EmbeddingOptions)

    @property
    def model(self) -> Optional[str]:
        return self.options.model


@dataclass(frozen=True)
class Embedding:
    """One vector; ``index`` is the position of its input in the request."""

    index: int
    values: Tuple[float, ...]

    def __len__(self) -> int:
        return len(self.values)

    def to_list(self) -> List[float]:
        return list(self.values)


@dataclass(frozen=True)
class EmbeddingResponse:
    """Vectors in input order, the model used and any usage the provider reported."""

    embeddings: Tuple[Embedding, ...] = ()
    model: str = ""
    usage: Usage = field(default_factory=Usage.empty)

    @property
    def vectors(self) -> List[List[float]]:
        return [e.to_list() for e in self.embeddings]


__all__ = [
    "EmbeddingOptions",
    "EmbeddingRequest",
    "Embedding",
    "EmbeddingResponse",
]
