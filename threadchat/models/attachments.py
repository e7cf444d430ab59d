"""Attachment-related data models."""

from dataclasses import dataclass
from enum import Enum


class AttachmentKind(str, Enum):
    """Closed set of attachment categories the orchestrator dispatches on."""

    IMAGE = "image"
    SPREADSHEET = "spreadsheet"
    DOCUMENT = "document"  # rich text (.docx)
    PDF = "pdf"
    TEXT = "text"  # plain text, CSV, Markdown
    UNSUPPORTED = "unsupported"


@dataclass
class SelectedFile:
    """A validated file waiting to be sent with the next message."""

    name: str
    media_type: str
    data: bytes
    kind: AttachmentKind
    # Filled by local preprocessing for office formats
    extracted_text: str | None = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def is_image(self) -> bool:
        return self.kind is AttachmentKind.IMAGE
