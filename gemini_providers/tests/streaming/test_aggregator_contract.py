"""Contract tests for ResponseAggregator snapshot sequences.

Covers:
- One item per chunk, each a cumulative view; the last is the final response.
- Concatenation by slot in arrival order, multi-slot streams.
- Usage reported only on the last chunk, and usage superseding earlier reports.
- Finish reason arriving only on the last chunk.
- Empty streams, chunks without candidates, snapshot metadata.
"""
from __future__ import annotations

from gemini_providers.base.models import Usage
from gemini_providers.base.streaming import ResponseAggregator

from .helpers import ScriptedSource, text_chunk


def _run(items, **kwargs):
    stream = ResponseAggregator(provider="gemini", model="gemini-2.0-flash").aggregate(
        ScriptedSource(items), **kwargs
    )
    return stream, list(stream)


def test_one_snapshot_per_chunk_and_final_last():
    stream, snapshots = _run([text_chunk("Hel"), text_chunk("lo"), text_chunk("!", finish="STOP")])

    assert len(snapshots) == 3  # nosec B101 - pytest assert in tests
    assert [s.final for s in snapshots] == [False, False, True]  # nosec B101 - pytest assert in tests
    assert stream.finished is True  # nosec B101 - pytest assert in tests
    assert snapshots[-1] is stream.final_response  # nosec B101 - pytest assert in tests


def test_snapshots_carry_cumulative_text_and_chunk_delta():
    stream = ResponseAggregator().aggregate(
        ScriptedSource([text_chunk("Hel"), text_chunk("lo, "), text_chunk("world")])
    )
    first = next(stream)
    assert first.text == "Hel" and first.delta_text == "Hel"  # nosec B101 - pytest assert in tests
    # one chunk of lookahead: "lo, " has been read already
    assert stream.text(0) == "Hello, "  # nosec B101 - pytest assert in tests
    second = next(stream)
    assert second.text == "Hello, "  # nosec B101 - pytest assert in tests
    assert second.delta_text == "lo, "  # nosec B101 - pytest assert in tests
    final = next(stream)
    assert final.text == "Hello, world" and final.final is True  # nosec B101 - pytest assert in tests
    assert final.delta_text == "world"  # nosec B101 - pytest assert in tests
    assert stream.text(0) == "Hello, world"  # nosec B101 - pytest assert in tests


def test_each_snapshot_text_is_prefix_concatenation():
    fragments = ["The ", "quick ", "", "brown ", "fox"]
    _stream, snapshots = _run([text_chunk(f) for f in fragments])

    prefixes = ["".join(fragments[: i + 1]) for i in range(len(fragments))]
    assert [s.text for s in snapshots] == prefixes  # nosec B101 - pytest assert in tests
    assert [s.delta_text for s in snapshots] == fragments  # nosec B101 - pytest assert in tests


def test_snapshot_view_covers_every_slot_seen_so_far():
    items = [
        text_chunk("A1", index=0),
        text_chunk("B1", index=1, finish="STOP"),
        text_chunk("A2", index=0),
        text_chunk("!", index=0),
    ]
    _stream, snapshots = _run(items)

    third = snapshots[2]
    assert [(g.index, g.text) for g in third.generations] == [(0, "A1A2"), (1, "B1")]  # nosec B101 - pytest assert in tests
    assert third.generations[1].finish_reason == "STOP"  # nosec B101 - pytest assert in tests
    assert [g.index for g in third.delta] == [0]  # nosec B101 - pytest assert in tests


def test_concatenating_emitted_snapshots_reproduces_final():
    from gemini_providers.base.streaming import concatenate

    _stream, snapshots = _run([text_chunk("Hel"), text_chunk("lo", finish="STOP")])
    rebuilt = concatenate(snapshots)

    assert rebuilt.text == "Hello"  # nosec B101 - pytest assert in tests
    assert rebuilt.generations == snapshots[-1].generations  # nosec B101 - pytest assert in tests


def test_interleaved_slots_are_concatenated_separately():
    items = [
        text_chunk("A1", index=0),
        text_chunk("B1", index=1),
        text_chunk("A2", index=0, finish="STOP"),
        text_chunk("B2", index=1, finish="MAX_TOKENS"),
    ]
    _stream, snapshots = _run(items)
    final = snapshots[-1]

    assert [g.index for g in final.generations] == [0, 1]  # nosec B101 - pytest assert in tests
    assert [g.text for g in final.generations] == ["A1A2", "B1B2"]  # nosec B101 - pytest assert in tests
    assert [g.finish_reason for g in final.generations] == ["STOP", "MAX_TOKENS"]  # nosec B101 - pytest assert in tests


def test_usage_only_on_last_chunk_is_final_usage():
    items = [
        text_chunk("a"),
        text_chunk("b"),
        text_chunk("c", finish="STOP", usage=Usage(prompt_tokens=5, completion_tokens=7, total_tokens=12)),
    ]
    _stream, snapshots = _run(items)

    assert snapshots[0].usage.reported is False  # nosec B101 - pytest assert in tests
    assert snapshots[1].usage.reported is False  # nosec B101 - pytest assert in tests
    final_usage = snapshots[-1].usage
    assert (final_usage.prompt_tokens, final_usage.completion_tokens, final_usage.total_tokens) == (5, 7, 12)  # nosec B101 - pytest assert in tests


def test_later_usage_report_supersedes_earlier():
    items = [
        text_chunk("a", usage=Usage(prompt_tokens=5, completion_tokens=2, total_tokens=7)),
        text_chunk("b"),
        text_chunk("c", usage=Usage(prompt_tokens=5, completion_tokens=6, total_tokens=11)),
    ]
    _stream, snapshots = _run(items)

    # chunk without usage keeps the running value
    assert snapshots[1].usage == Usage(prompt_tokens=5, completion_tokens=2, total_tokens=7)  # nosec B101 - pytest assert in tests
    assert snapshots[-1].usage == Usage(prompt_tokens=5, completion_tokens=6, total_tokens=11)  # nosec B101 - pytest assert in tests


def test_finish_reason_only_on_last_chunk():
    _stream, snapshots = _run([text_chunk("x"), text_chunk("y"), text_chunk(None, finish="STOP")])

    assert snapshots[0].result.finish_reason == ""  # nosec B101 - pytest assert in tests
    assert snapshots[-1].result.finish_reason == "STOP"  # nosec B101 - pytest assert in tests
    assert snapshots[-1].text == "xy"  # nosec B101 - pytest assert in tests


def test_empty_stream_has_empty_final_response():
    stream, snapshots = _run([])

    assert snapshots == []  # nosec B101 - pytest assert in tests
    assert stream.finished is True  # nosec B101 - pytest assert in tests
    final = stream.final_response
    assert final is not None and final.final is True  # nosec B101 - pytest assert in tests
    assert final.generations == ()  # nosec B101 - pytest assert in tests
    assert final.usage.reported is False  # nosec B101 - pytest assert in tests
    assert final.usage.as_dict() == {"prompt": 0, "completion": 0, "total": 0, "reported": False}  # nosec B101 - pytest assert in tests


def test_chunk_without_candidates_still_yields_snapshot():
    from gemini_providers.base.models import Chunk

    keepalive = Chunk(usage=Usage(prompt_tokens=3, completion_tokens=0, total_tokens=3))
    _stream, snapshots = _run([text_chunk("hi"), keepalive])

    assert len(snapshots) == 2  # nosec B101 - pytest assert in tests
    assert snapshots[-1].text == "hi"  # nosec B101 - pytest assert in tests
    assert snapshots[-1].usage.prompt_tokens == 3  # nosec B101 - pytest assert in tests


def test_snapshot_metadata_tracks_latest_id_and_model():
    items = [
        text_chunk("a", model="gemini-2.0-flash-001", response_id="r-1"),
        text_chunk("b"),
    ]
    _stream, snapshots = _run(items, metadata={"conversation": "c-9"})

    assert snapshots[0].metadata.id == "r-1"  # nosec B101 - pytest assert in tests
    assert snapshots[0].metadata.model == "gemini-2.0-flash-001"  # nosec B101 - pytest assert in tests
    final = snapshots[-1]
    assert final.metadata.id == "r-1"  # nosec B101 - pytest assert in tests
    assert final.metadata.model == "gemini-2.0-flash-001"  # nosec B101 - pytest assert in tests
    assert final.metadata.extra["chunks"] == 2  # nosec B101 - pytest assert in tests
    meta = final.result.output.metadata
    assert meta == {"conversation": "c-9", "index": 0, "role": "assistant"}  # nosec B101 - pytest assert in tests


def test_source_closed_after_clean_end():
    source = ScriptedSource([text_chunk("a")])
    list(ResponseAggregator().aggregate(source))
    assert source.close_calls == 1  # nosec B101 - pytest assert in tests
