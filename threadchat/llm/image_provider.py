"""Image generation provider using the OpenAI Images API."""

import os
from typing import Protocol

from openai import AsyncOpenAI, OpenAIError

from ..config import DEFAULT_IMAGE_MODEL
from ..errors import ImageGenerationError


class IImageGenerator(Protocol):
    """Abstraction for text-to-image generation."""

    async def generate(self, prompt: str) -> str:
        """Generate an image and return its URL."""
        ...


class ImageGenerator:
    """OpenAI Images provider."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        size: str = "1024x1024",
    ):
        self._api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self._api_key:
            raise ValueError("OPENAI_API_KEY environment variable not set")

        self._model = model or os.getenv("OPENAI_IMAGE_MODEL", DEFAULT_IMAGE_MODEL)
        self._size = size
        self._client = AsyncOpenAI(api_key=self._api_key)

    async def generate(self, prompt: str) -> str:
        """Generate one image for the prompt."""
        try:
            response = await self._client.images.generate(
                model=self._model,
                prompt=prompt,
                n=1,
                size=self._size,
            )
        except OpenAIError as e:
            raise ImageGenerationError(f"Image API error: {e}") from e

        if not response.data or not response.data[0].url:
            raise ImageGenerationError("No image URL returned from image API")
        return response.data[0].url
