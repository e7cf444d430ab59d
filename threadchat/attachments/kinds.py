"""Attachment classification by declared media type and file extension."""

from pathlib import PurePath

from ..models import AttachmentKind

SPREADSHEET_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

# Allow-list: anything not listed here is UNSUPPORTED
MEDIA_TYPES: dict[str, AttachmentKind] = {
    "image/png": AttachmentKind.IMAGE,
    "image/jpeg": AttachmentKind.IMAGE,
    "image/gif": AttachmentKind.IMAGE,
    "image/webp": AttachmentKind.IMAGE,
    SPREADSHEET_TYPE: AttachmentKind.SPREADSHEET,
    DOCX_TYPE: AttachmentKind.DOCUMENT,
    "application/pdf": AttachmentKind.PDF,
    "text/plain": AttachmentKind.TEXT,
    "text/csv": AttachmentKind.TEXT,
    "text/markdown": AttachmentKind.TEXT,
}

EXTENSIONS: dict[str, str] = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".xlsx": SPREADSHEET_TYPE,
    ".docx": DOCX_TYPE,
    ".pdf": "application/pdf",
    ".txt": "text/plain",
    ".csv": "text/csv",
    ".md": "text/markdown",
}


def normalize_media_type(media_type: str | None, filename: str | None = None) -> str:
    """Return the effective media type.

    An allow-listed declared type wins. Otherwise a known extension decides,
    so a missing, generic or non-standard type (``image/jpg``) is replaced by
    the canonical one.
    """
    declared = (media_type or "").split(";")[0].strip().lower()
    if declared in MEDIA_TYPES:
        return declared
    if filename:
        suffix = PurePath(filename).suffix.lower()
        if suffix in EXTENSIONS:
            return EXTENSIONS[suffix]
    return declared or "application/octet-stream"


def classify(media_type: str | None, filename: str | None = None) -> AttachmentKind:
    """Map a file to the closed set of attachment kinds."""
    return MEDIA_TYPES.get(
        normalize_media_type(media_type, filename), AttachmentKind.UNSUPPORTED
    )
