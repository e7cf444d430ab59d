"""Local file storage for uploaded attachments."""

import asyncio
import mimetypes
import time
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Protocol

from ..errors import UploadError
from ..logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class StoredBlob:
    """A blob written to the file store."""

    id: str
    path: Path
    url: str


class IFileStore(Protocol):
    """Blob storage returning public retrieval URLs."""

    async def store(self, data: bytes, name: str, media_type: str) -> StoredBlob:
        """Store a blob and return its public location."""
        ...

    async def delete(self, blob_id: str) -> None:
        """Delete a stored blob."""
        ...


class FileStore:
    """Writes blobs under a directory served at ``{public_base_url}{mount_path}``."""

    def __init__(self, root: Path, public_base_url: str, mount_path: str = "/files"):
        self._root = Path(root)
        self._public_base_url = public_base_url.rstrip("/")
        self._mount_path = mount_path
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def _blob_path(self, blob_id: str) -> Path:
        # Blob ids are generated names; anything path-like is rejected
        if not blob_id or PurePath(blob_id).name != blob_id or blob_id.startswith("."):
            raise ValueError(f"Invalid blob id: {blob_id!r}")
        return self._root / blob_id

    async def store(self, data: bytes, name: str, media_type: str) -> StoredBlob:
        """Store a blob under a collision-free name."""
        ext = PurePath(name).suffix.lower() or mimetypes.guess_extension(media_type) or ""
        blob_id = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{ext}"
        path = self._blob_path(blob_id)

        try:
            await asyncio.to_thread(path.write_bytes, data)
        except OSError as e:
            raise UploadError(f"Failed to store {name}: {e}") from e

        logger.info("Stored %s (%s bytes) as %s", name, len(data), blob_id)
        return StoredBlob(
            id=blob_id,
            path=path,
            url=f"{self._public_base_url}{self._mount_path}/{blob_id}",
        )

    async def delete(self, blob_id: str) -> None:
        """Delete a stored blob; missing blobs are ignored."""
        path = self._blob_path(blob_id)
        await asyncio.to_thread(path.unlink, missing_ok=True)
        logger.info("Deleted blob %s", blob_id)
