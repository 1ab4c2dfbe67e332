"""Helpers for streaming tests: chunk builders and a scripted chunk source."""
from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional

from gemini_providers.base.models import Candidate, Chunk, ContentPart, Usage
from gemini_providers.base.streaming import END_OF_STREAM


def text_chunk(
    text: Optional[str],
    index: int = 0,
    *,
    finish: Optional[str] = None,
    usage: Optional[Usage] = None,
    role: Optional[str] = "model",
    model: Optional[str] = None,
    response_id: Optional[str] = None,
) -> Chunk:
    """One chunk with a single candidate (``text=None`` means no content)."""
    parts = (ContentPart(type="text", text=text),) if text is not None else ()
    return Chunk(
        candidates=(Candidate(index=index, parts=parts, role=role, finish_reason=finish),),
        usage=usage,
        model=model,
        response_id=response_id,
    )


class ScriptedSource:
    """Chunk source replaying ``items``, then the end marker (when ``end``).

    ``fail_with`` is raised after the items instead of ending. Reads and the
    close call are recorded for assertions. ``after_end`` items are
    served after the end marker to prove nothing reads past it.
    """

    def __init__(
        self,
        items: Iterable[Any],
        *,
        end: bool = True,
        fail_with: Optional[BaseException] = None,
        after_end: Iterable[Any] = (),
    ) -> None:
        self.items: List[Any] = list(items)
        self.after_end: List[Any] = list(after_end)
        self.reads_after_end = 0
        self.end = end
        self.fail_with = fail_with
        self.reads = 0
        self.close_calls = 0
        self._ended = False

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def __iter__(self) -> "ScriptedSource":
        return self

    def __next__(self) -> Any:
        if self.closed:
            raise StopIteration
        if self._ended:
            if self.reads_after_end < len(self.after_end):
                self.reads_after_end += 1
                return self.after_end[self.reads_after_end - 1]
            raise StopIteration
        if self.reads < len(self.items):
            item = self.items[self.reads]
            self.reads += 1
            return item
        self._ended = True
        if self.fail_with is not None:
            raise self.fail_with
        if self.end:
            return END_OF_STREAM
        raise StopIteration

    def close(self) -> None:
        self.close_calls += 1


def sse_body(frames: Iterable[Dict[str, Any]], *, done: bool = True) -> bytes:
    """Render Gemini frames as a server-sent-event body."""
    lines = [f"data: {json.dumps(frame)}\n\n" for frame in frames]
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


def gemini_frame(
    text: Optional[str],
    *,
    index: int = 0,
    finish: Optional[str] = None,
    usage: Optional[Dict[str, int]] = None,
    model_version: str = "gemini-2.0-flash-001",
    response_id: str = "resp-1",
) -> Dict[str, Any]:
    """One Gemini ``streamGenerateContent`` frame."""
    candidate: Dict[str, Any] = {"index": index}
    if text is not None:
        candidate["content"] = {"role": "model", "parts": [{"text": text}]}
    if finish is not None:
        candidate["finishReason"] = finish
    frame: Dict[str, Any] = {
        "candidates": [candidate],
        "modelVersion": model_version,
        "responseId": response_id,
    }
    if usage is not None:
        frame["usageMetadata"] = usage
    return frame
