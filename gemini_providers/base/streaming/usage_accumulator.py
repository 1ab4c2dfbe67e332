"""Chunk usage extraction and accumulation rules.

Within one call the provider reports cumulative usage, so a newer report
replaces the running value. Across calls (multi-turn) the previous
response's usage is added on top.
"""
from __future__ import annotations

from typing import Optional

from ..models import Chunk, Usage


def extract_usage(chunk: Chunk) -> Optional[Usage]:
    """Return the usage reported by ``chunk``, or ``None`` when absent."""
    usage = chunk.usage
    if usage is None or not usage.reported:
        return None
    return usage


def accumulate_usage(
    current: Optional[Usage],
    chunk_usage: Optional[Usage],
    previous_response_usage: Optional[Usage] = None,
) -> Usage:
    """Combine the running usage with one chunk's report.

    Rules:
        * ``chunk_usage`` absent: ``current`` is returned unchanged.
        * ``chunk_usage`` present: it supersedes ``current``; the previous
          turn's usage, when given, is added to it.
        * no running value yet: starts from :func:`initial_usage`, so the
          previous turn still counts before the first report.
        * nothing reported anywhere: the empty (unreported) usage.
    """
    if chunk_usage is None:
        return current if current is not None else initial_usage(previous_response_usage)
    if previous_response_usage is not None and previous_response_usage.reported:
        return chunk_usage + previous_response_usage
    return chunk_usage


def initial_usage(previous_response_usage: Optional[Usage]) -> Usage:
    """Running usage before any chunk: the previous turn's totals, or empty."""
    if previous_response_usage is None:
        return Usage.empty()
    return previous_response_usage


__all__ = ["extract_usage", "accumulate_usage", "initial_usage"]
