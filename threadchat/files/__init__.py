"""File storage module."""

from .file_store import FileStore, IFileStore, StoredBlob

__all__ = ["FileStore", "IFileStore", "StoredBlob"]
