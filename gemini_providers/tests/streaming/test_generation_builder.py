"""Candidate to Generation mapping."""
from __future__ import annotations

import pytest

from gemini_providers.base.errors import UnsupportedContentError
from gemini_providers.base.models import Candidate, ContentPart
from gemini_providers.base.streaming import build_generation


def _text(t: str) -> ContentPart:
    return ContentPart(type="text", text=t)


def test_model_role_maps_to_assistant_and_parts_are_joined():
    cand = Candidate(index=2, parts=(_text("foo"), _text("bar")), role="model", finish_reason="STOP")
    gen = build_generation(cand, {"trace": "t1"})

    assert gen.index == 2  # nosec B101 - pytest assert in tests
    assert gen.text == "foobar"  # nosec B101 - pytest assert in tests
    assert gen.output.role == "assistant"  # nosec B101 - pytest assert in tests
    assert gen.finish_reason == "STOP"  # nosec B101 - pytest assert in tests
    assert gen.output.metadata == {"trace": "t1", "index": 2, "role": "assistant"}  # nosec B101 - pytest assert in tests


def test_missing_content_and_finish_reason_default_to_empty():
    gen = build_generation(Candidate(index=0))
    assert gen.text == ""  # nosec B101 - pytest assert in tests
    assert gen.finish_reason == ""  # nosec B101 - pytest assert in tests
    assert gen.output.metadata["role"] == ""  # nosec B101 - pytest assert in tests


def test_caller_metadata_is_copied_not_mutated():
    caller = {"role": "narrator"}
    gen = build_generation(Candidate(index=0, parts=(_text("x"),)), caller)
    assert caller == {"role": "narrator"}  # nosec B101 - pytest assert in tests
    # without a candidate role the caller value is kept
    assert gen.output.metadata["role"] == "narrator"  # nosec B101 - pytest assert in tests


@pytest.mark.parametrize("role", ["user", "system", "tool"])
def test_non_assistant_roles_are_rejected(role):
    with pytest.raises(UnsupportedContentError) as ei:
        build_generation(Candidate(index=0, parts=(_text("x"),), role=role), provider="gemini")
    assert role in ei.value.message and ei.value.provider == "gemini"  # nosec B101 - pytest assert in tests


def test_non_text_parts_are_rejected():
    image = ContentPart(type="image", data={"inline_data": {"mimeType": "image/png"}})
    with pytest.raises(UnsupportedContentError):
        build_generation(Candidate(index=0, parts=(_text("see:"), image), role="model"))
