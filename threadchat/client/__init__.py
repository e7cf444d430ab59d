"""HTTP client module."""

from .api_client import ChatApiClient

__all__ = ["ChatApiClient"]
