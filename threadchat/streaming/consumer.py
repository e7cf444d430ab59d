"""Streaming response consumer."""

import asyncio
from typing import AsyncIterator, Callable

from ..errors import SendCancelled
from ..logging_config import get_logger
from .sse import DONE, SSEDecoder, frame_content

logger = get_logger(__name__)

NO_RESPONSE_FALLBACK = "[No response]"


class StreamConsumer:
    """Accumulates streamed frames into one reply.

    ``on_update`` receives the full accumulated text after every increment.
    """

    def __init__(
        self,
        on_update: Callable[[str], None] | None = None,
        fallback: str = NO_RESPONSE_FALLBACK,
    ):
        self._on_update = on_update
        self._fallback = fallback
        self.accumulated = ""

    def _apply(self, payload: str) -> None:
        try:
            delta = frame_content(payload)
        except ValueError as e:
            logger.warning("Skipping malformed stream frame: %s", e)
            return

        if delta:
            self.accumulated += delta
            if self._on_update:
                self._on_update(self.accumulated)

    async def consume(
        self,
        chunks: AsyncIterator[bytes],
        signal: asyncio.Event | None = None,
    ) -> str:
        """Read the stream to its terminator.

        Raises ``SendCancelled`` as soon as ``signal`` is set. Returns the
        fallback sentence when nothing was accumulated.
        """
        decoder = SSEDecoder()
        finished = False
        try:
            async for chunk in chunks:
                if signal is not None and signal.is_set():
                    raise SendCancelled("Stream stopped by user")

                for payload in decoder.feed(chunk):
                    if payload == DONE:
                        finished = True
                        break
                    self._apply(payload)
                if finished:
                    break
            else:
                for payload in decoder.flush():
                    if payload != DONE:
                        self._apply(payload)
        finally:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()

        if signal is not None and signal.is_set():
            raise SendCancelled("Stream stopped by user")

        return self.accumulated or self._fallback
