"""Server-Sent-Events framing for streamed completions.

Each frame is ``data: {"content": "..."}`` followed by a blank line; the
stream ends with ``data: [DONE]``.
"""

import codecs
import json
from typing import Any, AsyncIterator

DONE = "[DONE]"
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def encode_frame(content: str) -> bytes:
    return f"data: {json.dumps({'content': content})}\n\n".encode("utf-8")


def encode_done() -> bytes:
    return f"data: {DONE}\n\n".encode("utf-8")


async def sse_stream(deltas: AsyncIterator[str]) -> AsyncIterator[bytes]:
    """Wrap text deltas into SSE frames, then the terminator."""
    async for delta in deltas:
        if delta:
            yield encode_frame(delta)
    yield encode_done()


def _fragment_text(fragment: Any) -> str:
    if isinstance(fragment, str):
        return fragment
    if isinstance(fragment, dict):
        text = fragment.get("text")
        if isinstance(text, str):
            return text
        if isinstance(text, dict) and isinstance(text.get("value"), str):
            return text["value"]
    return ""


def frame_content(payload: str) -> str:
    """Text carried by one frame payload.

    ``content`` may be a string or an array of fragments, joined in order.
    Raises ``ValueError`` when the payload is not a JSON object.
    """
    parsed = json.loads(payload)
    if not isinstance(parsed, dict):
        raise ValueError(f"Frame is not a JSON object: {payload[:50]!r}")

    content = parsed.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(_fragment_text(fragment) for fragment in content)
    return ""


class SSEDecoder:
    """Incremental decoder turning raw byte chunks into frame payloads.

    Chunks may split lines and multi-byte characters anywhere.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[str]:
        """Decode a chunk and return the payloads of completed ``data:`` lines."""
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return self._payloads(lines)

    def flush(self) -> list[str]:
        """Return payloads left in the buffer at end of stream."""
        self._buffer += self._decoder.decode(b"", final=True)
        lines, self._buffer = [self._buffer], ""
        return self._payloads(lines)

    @staticmethod
    def _payloads(lines: list[str]) -> list[str]:
        payloads = []
        for line in lines:
            line = line.rstrip("\r")
            if not line.startswith("data:"):
                continue
            payload = line[5:]
            if payload.startswith(" "):
                payload = payload[1:]
            payloads.append(payload)
        return payloads
