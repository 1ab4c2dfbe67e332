"""Usage accounting: chunk extraction, superseding reports and multi-turn totals."""
from __future__ import annotations

import pytest

from gemini_providers.base.models import Chunk, Usage
from gemini_providers.base.streaming import (
    ResponseAggregator,
    accumulate_usage,
    extract_usage,
    initial_usage,
)

from .helpers import ScriptedSource, text_chunk


def test_previous_turn_usage_is_added_to_final_usage():
    previous = Usage(prompt_tokens=10, completion_tokens=5, total_tokens=15)
    items = [
        text_chunk("a"),
        text_chunk("b", finish="STOP", usage=Usage(prompt_tokens=3, completion_tokens=4, total_tokens=7)),
    ]
    stream = ResponseAggregator().aggregate(ScriptedSource(items), previous_usage=previous)
    snapshots = list(stream)

    # before any report the running value is the previous turn's usage
    assert snapshots[0].usage == previous  # nosec B101 - pytest assert in tests
    final = stream.final_response.usage
    assert final.total_tokens == 22  # nosec B101 - pytest assert in tests
    assert (final.prompt_tokens, final.completion_tokens) == (13, 9)  # nosec B101 - pytest assert in tests


def test_previous_usage_added_once_even_with_several_reports():
    previous = Usage(prompt_tokens=10, completion_tokens=5, total_tokens=15)
    items = [
        text_chunk("a", usage=Usage(prompt_tokens=3, completion_tokens=1, total_tokens=4)),
        text_chunk("b", usage=Usage(prompt_tokens=3, completion_tokens=4, total_tokens=7)),
    ]
    stream = ResponseAggregator().aggregate(ScriptedSource(items), previous_usage=previous)
    list(stream)
    assert stream.usage.total_tokens == 22  # nosec B101 - pytest assert in tests


def test_empty_stream_keeps_previous_usage():
    previous = Usage(prompt_tokens=1, completion_tokens=1, total_tokens=2)
    stream = ResponseAggregator().aggregate(ScriptedSource([]), previous_usage=previous)
    assert list(stream) == []  # nosec B101 - pytest assert in tests
    assert stream.final_response.usage == previous  # nosec B101 - pytest assert in tests


def test_accumulate_rules():
    current = Usage(prompt_tokens=2, completion_tokens=2, total_tokens=4)
    reported = Usage(prompt_tokens=2, completion_tokens=5, total_tokens=7)
    previous = Usage(prompt_tokens=1, completion_tokens=1, total_tokens=2)

    assert accumulate_usage(current, None) is current  # nosec B101 - pytest assert in tests
    assert accumulate_usage(None, None) == Usage.empty()  # nosec B101 - pytest assert in tests
    # no running value yet: the previous turn is the starting point
    assert accumulate_usage(None, None, previous) is previous  # nosec B101 - pytest assert in tests
    assert accumulate_usage(current, reported) is reported  # nosec B101 - pytest assert in tests
    assert accumulate_usage(current, reported, previous) == Usage(3, 6, 9)  # nosec B101 - pytest assert in tests
    # an unreported previous usage contributes nothing
    assert accumulate_usage(current, reported, Usage.empty()) is reported  # nosec B101 - pytest assert in tests


def test_extract_usage_ignores_absent_and_unreported():
    assert extract_usage(Chunk()) is None  # nosec B101 - pytest assert in tests
    assert extract_usage(Chunk(usage=Usage.empty())) is None  # nosec B101 - pytest assert in tests
    usage = Usage(prompt_tokens=1)
    assert extract_usage(Chunk(usage=usage)) is usage  # nosec B101 - pytest assert in tests


def test_initial_usage():
    assert initial_usage(None) == Usage.empty()  # nosec B101 - pytest assert in tests
    prev = Usage(prompt_tokens=4, completion_tokens=4)
    assert initial_usage(prev) is prev  # nosec B101 - pytest assert in tests


def test_usage_record_semantics():
    assert Usage(prompt_tokens=2, completion_tokens=3).total_tokens == 5  # nosec B101 - pytest assert in tests
    # provider totals may exceed prompt + completion (thinking tokens)
    assert Usage(prompt_tokens=2, completion_tokens=3, total_tokens=9).total_tokens == 9  # nosec B101 - pytest assert in tests
    assert Usage(prompt_tokens=2) + Usage(completion_tokens=3) == Usage(2, 3, None)  # nosec B101 - pytest assert in tests
    assert Usage.empty().reported is False  # nosec B101 - pytest assert in tests
    assert Usage(prompt_tokens=0).reported is True  # nosec B101 - pytest assert in tests
    with pytest.raises(ValueError):
        Usage(prompt_tokens=-1)
