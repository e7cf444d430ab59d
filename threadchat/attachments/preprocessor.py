"""Attachment preprocessor: validates a selected file and extracts office
formats locally before send."""

import mimetypes
from pathlib import Path

from ..config import MAX_ATTACHMENT_BYTES, MAX_EXTRACTED_CHARS, SPREADSHEET_PREVIEW_ROWS
from ..errors import (
    AttachmentTooLarge,
    EmptyAttachment,
    ExtractionError,
    UnsupportedMediaType,
)
from ..logging_config import get_logger
from ..models import AttachmentKind, SelectedFile
from .extraction import extract_docx, spreadsheet_prompt
from .kinds import classify, normalize_media_type

logger = get_logger(__name__)

TRUNCATION_SUFFIX = "\n... (truncated)"


def truncate_extracted(text: str, limit: int = MAX_EXTRACTED_CHARS) -> str:
    """Bound prompt size: keep ``limit`` characters and mark the cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_SUFFIX


class AttachmentPreprocessor:
    """Turns a user-selected file into a ``SelectedFile``."""

    def __init__(
        self,
        max_bytes: int = MAX_ATTACHMENT_BYTES,
        preview_rows: int = SPREADSHEET_PREVIEW_ROWS,
    ):
        self._max_bytes = max_bytes
        self._preview_rows = preview_rows

    def check_size(self, name: str, size_bytes: int) -> None:
        if size_bytes > self._max_bytes:
            raise AttachmentTooLarge(name, size_bytes, self._max_bytes)
        if size_bytes == 0:
            raise EmptyAttachment(f"{name} is empty")

    def select(self, data: bytes, name: str, media_type: str | None) -> SelectedFile:
        """Validate and classify a file, extracting office formats locally."""
        self.check_size(name, len(data))

        effective_type = normalize_media_type(media_type, name)
        kind = classify(effective_type, name)
        if kind is AttachmentKind.UNSUPPORTED:
            raise UnsupportedMediaType(effective_type, name)

        return SelectedFile(
            name=name,
            media_type=effective_type,
            data=data,
            kind=kind,
            extracted_text=self.extract_locally(kind, data, name),
        )

    def select_path(self, path: str | Path) -> SelectedFile:
        """Read a file from disk and select it."""
        path = Path(path)
        # Reject oversized files before reading them
        self.check_size(path.name, path.stat().st_size)
        media_type, _ = mimetypes.guess_type(path.name)
        return self.select(path.read_bytes(), path.name, media_type)

    def extract_locally(self, kind: AttachmentKind, data: bytes, name: str) -> str | None:
        """Best-effort local extraction; ``None`` defers to the remote
        extraction service."""
        try:
            if kind is AttachmentKind.SPREADSHEET:
                return spreadsheet_prompt(data, self._preview_rows)
            if kind is AttachmentKind.DOCUMENT:
                return extract_docx(data)
        except ExtractionError as e:
            logger.warning(
                "Local extraction failed for %s, deferring to server: %s", name, e,
                extra={"attachment_kind": kind.value},
            )
        return None
