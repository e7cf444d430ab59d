"""Attachment handling module."""

from .extraction import (
    SPREADSHEET_NOTICE,
    ITextExtractor,
    TextExtractor,
    spreadsheet_preview,
    spreadsheet_prompt,
)
from .kinds import classify, normalize_media_type
from .preprocessor import TRUNCATION_SUFFIX, AttachmentPreprocessor, truncate_extracted

__all__ = [
    "AttachmentPreprocessor",
    "ITextExtractor",
    "TextExtractor",
    "SPREADSHEET_NOTICE",
    "TRUNCATION_SUFFIX",
    "classify",
    "normalize_media_type",
    "spreadsheet_preview",
    "spreadsheet_prompt",
    "truncate_extracted",
]
