"""Frame decoding: server-sent-event text to decoded chunks.

The decoder is the only component that touches raw text. It yields decoded
chunk objects followed by :data:`END_OF_STREAM` once the sentinel frame
(``data: [DONE]``) is read. A body that closes right after a chunk accepted by
the optional ``is_terminal`` predicate also ends with the marker (Gemini
closes the stream after the chunk carrying the finish reasons). Otherwise,
when the body ends without the sentinel, iteration simply stops and the
aggregator reports a truncated stream.
"""
from __future__ import annotations

from typing import Any, Callable, Iterable, Iterator, Mapping, Optional

from ..errors import MalformedChunkError

SENTINEL_TEXT = "[DONE]"

# Longest frame excerpt kept on a MalformedChunkError.
_FRAME_EXCERPT = 200


class _EndOfStream:
    """Marker type for the explicit end-of-stream frame."""

    _instance: "Optional[_EndOfStream]" = None

    def __new__(cls) -> "_EndOfStream":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "END_OF_STREAM"


END_OF_STREAM = _EndOfStream()


def iter_sse_data(lines: Iterable[str]) -> Iterator[str]:
    """Yield the ``data`` payload of each server-sent event.

    Events are separated by blank lines; several ``data:`` lines in one event
    are joined with ``\\n``. Comments and the ``event``/``id``/``retry`` fields
    are ignored. A final event not followed by a blank line is still yielded.
    """
    data_lines: list[str] = []
    for raw in lines:
        line = raw.rstrip("\r\n")
        if not line:
            if data_lines:
                yield "\n".join(data_lines)
                data_lines = []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if name != "data":
            continue
        data_lines.append(value[1:] if value.startswith(" ") else value)
    if data_lines:
        yield "\n".join(data_lines)


def decode_frames(
    payloads: Iterable[str],
    decode: Callable[[str], Any],
    *,
    sentinel: str = SENTINEL_TEXT,
    provider: str = "unknown",
    model: Optional[str] = None,
    is_terminal: Optional[Callable[[Any], bool]] = None,
) -> Iterator[Any]:
    """Decode payloads with ``decode`` until the sentinel.

    Blank payloads (keep-alives) are skipped. Nothing is read after the
    sentinel. When the payloads run out and ``is_terminal`` accepts the last
    decoded chunk, the end marker is yielded as if the sentinel had been read.

    Raises:
        MalformedChunkError: When ``decode`` rejects a payload (invalid JSON
            or an unexpected shape).
    """
    last: Any = None
    for payload in payloads:
        text = payload.strip()
        if not text:
            continue
        if text == sentinel:
            yield END_OF_STREAM
            return
        try:
            chunk = decode(text)
        except MalformedChunkError:
            raise
        except (ValueError, TypeError) as exc:
            raise MalformedChunkError(
                message=f"could not decode stream frame: {str(exc)[:260]}",
                provider=provider,
                model=model,
                raw=exc,
                frame=text[:_FRAME_EXCERPT],
            ) from exc
        last = chunk
        yield chunk
    if is_terminal is not None and last is not None and is_terminal(last):
        yield END_OF_STREAM


class FrameDecoder:
    """Closeable iterator of decoded chunks over a line source.

    ``on_close`` releases the transport (e.g. ``httpx.Response.close``). It
    may also be triggered early through :meth:`abort`, which is safe to call
    from another thread while the consumer is blocked on a read.
    """

    def __init__(
        self,
        lines: Iterable[str],
        decode: Callable[[str], Any],
        *,
        sentinel: str = SENTINEL_TEXT,
        provider: str = "unknown",
        model: Optional[str] = None,
        on_close: Optional[Callable[[], None]] = None,
        headers: Optional[Mapping[str, str]] = None,
        is_terminal: Optional[Callable[[Any], bool]] = None,
    ) -> None:
        self._frames = decode_frames(
            iter_sse_data(lines),
            decode,
            sentinel=sentinel,
            provider=provider,
            model=model,
            is_terminal=is_terminal,
        )
        self._on_close = on_close
        self._transport_closed = False
        self.headers = dict(headers or {})

    def __iter__(self) -> "FrameDecoder":
        return self

    def __next__(self) -> Any:
        return next(self._frames)

    @property
    def closed(self) -> bool:
        return self._transport_closed

    def abort(self) -> None:
        """Close the transport without touching the frame generator."""
        if self._transport_closed:
            return
        self._transport_closed = True
        if self._on_close is not None:
            self._on_close()

    def close(self) -> None:
        """Close the transport and finalize the frame generator (consumer thread only)."""
        self.abort()
        self._frames.close()


__all__ = [
    "SENTINEL_TEXT",
    "END_OF_STREAM",
    "iter_sse_data",
    "decode_frames",
    "FrameDecoder",
]
