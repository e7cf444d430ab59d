"""LLM module."""

from .image_provider import IImageGenerator, ImageGenerator
from .llm_provider import ILLMProvider, LLMProvider

__all__ = ["ILLMProvider", "LLMProvider", "IImageGenerator", "ImageGenerator"]
