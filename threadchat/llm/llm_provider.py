"""LLM Provider implementation using Anthropic Claude API."""

import os
from typing import AsyncIterator, Protocol

import anthropic

from ..config import DEFAULT_ANTHROPIC_MODEL
from ..errors import CompletionError

VISION_PROMPT = """Please analyze this image comprehensively. If the user asks a specific question, answer it. Otherwise, provide a detailed description including:

1. What you see in the image (objects, people, scenes, etc.)
2. Any text visible in the image (if present)
3. The overall context and setting
4. Any notable details or interesting elements

User question: {question}"""


class ILLMProvider(Protocol):
    """Abstraction for LLM access."""

    async def complete(
        self,
        messages: list[dict],  # [{"role": "user", "content": "..."}]
        system: str | None = None,
        max_tokens: int = 1024,
    ) -> str:
        """Generate completion."""
        ...

    def stream_complete(
        self,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int = 1024,
    ) -> AsyncIterator[str]:
        """Generate completion as incremental text deltas."""
        ...

    async def analyze_image(
        self,
        image_base64: str,
        question: str,
        media_type: str = "image/jpeg",
    ) -> str:
        """Answer a question about an image."""
        ...


class LLMProvider:
    """Anthropic Claude API provider."""

    def __init__(self, api_key: str | None = None, model: str | None = None):
        self._api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self._api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")

        self._model = model or os.getenv("ANTHROPIC_MODEL", DEFAULT_ANTHROPIC_MODEL)
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)

    def _request(
        self, messages: list[dict], system: str | None, max_tokens: int
    ) -> dict:
        request = {
            "model": self._model,
            "messages": messages,
            "max_tokens": max_tokens,
        }
        if system:
            request["system"] = system
        return request

    async def complete(
        self,
        messages: list[dict],  # [{"role": "user", "content": "..."}]
        system: str | None = None,
        max_tokens: int = 1024,
    ) -> str:
        """Generate completion using Claude API."""
        try:
            response = await self._client.messages.create(
                **self._request(messages, system, max_tokens)
            )
            return "".join(
                block.text for block in response.content if block.type == "text"
            )

        except Exception as e:
            # Re-raise for handling by caller
            raise CompletionError(f"LLM API error: {e}") from e

    async def stream_complete(
        self,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int = 1024,
    ) -> AsyncIterator[str]:
        """Stream completion deltas from Claude API."""
        try:
            async with self._client.messages.stream(
                **self._request(messages, system, max_tokens)
            ) as stream:
                async for text in stream.text_stream:
                    if text:
                        yield text
        except anthropic.APIError as e:
            raise CompletionError(f"LLM API error: {e}") from e

    async def analyze_image(
        self,
        image_base64: str,
        question: str,
        media_type: str = "image/jpeg",
    ) -> str:
        """Describe an image or answer a question about it."""
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=1000,
                temperature=0.3,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": media_type,
                                    "data": image_base64,
                                },
                            },
                            {
                                "type": "text",
                                "text": VISION_PROMPT.format(question=question),
                            },
                        ],
                    }
                ],
            )
        except Exception as e:
            raise CompletionError(f"Vision API error: {e}") from e

        text = "".join(
            block.text for block in response.content if block.type == "text"
        )
        if not text:
            raise CompletionError("No response from vision model")
        return text
