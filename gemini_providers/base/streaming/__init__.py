"""Streaming package for the provider layer.

Frame decoding, aggregation, concatenation, the streaming adapter and its
metrics under a single namespace.
"""

from .frames import END_OF_STREAM, SENTINEL_TEXT, FrameDecoder, decode_frames, iter_sse_data
from .usage_accumulator import accumulate_usage, extract_usage, initial_usage
from .generation_builder import build_generation
from .concatenator import MessageConcatenator, concatenate
from .aggregator import AggregatedStream, AggregationContext, ResponseAggregator, aggregate
from .streaming_metrics import StreamMetrics, apply_token_usage, build_token_usage, validate_token_usage
from .streaming_finalize import finalize_stream
from .stream_controller import StreamController
from .streaming_adapter import BaseStreamingAdapter

__all__ = [
    "END_OF_STREAM",
    "SENTINEL_TEXT",
    "FrameDecoder",
    "decode_frames",
    "iter_sse_data",
    "accumulate_usage",
    "extract_usage",
    "initial_usage",
    "build_generation",
    "MessageConcatenator",
    "concatenate",
    "AggregatedStream",
    "AggregationContext",
    "ResponseAggregator",
    "aggregate",
    "StreamMetrics",
    "apply_token_usage",
    "build_token_usage",
    "validate_token_usage",
    "finalize_stream",
    "StreamController",
    "BaseStreamingAdapter",
]
