"""Streaming module."""

from .consumer import NO_RESPONSE_FALLBACK, StreamConsumer
from .sse import (
    DONE,
    SSE_HEADERS,
    SSEDecoder,
    encode_done,
    encode_frame,
    frame_content,
    sse_stream,
)

__all__ = [
    "DONE",
    "NO_RESPONSE_FALLBACK",
    "SSE_HEADERS",
    "SSEDecoder",
    "StreamConsumer",
    "encode_done",
    "encode_frame",
    "frame_content",
    "sse_stream",
]
