"""Text extraction from attachment blobs.

The same helpers back the local preprocessor (office formats, client side) and
the ``/api/read-file`` endpoint (everything in the allow-list except images).
Parsing is CPU bound and runs in a worker thread so it never blocks the event
loop.
"""

import asyncio
import io
import zipfile
from itertools import islice
from typing import Any, Iterable, Protocol
from xml.parsers.expat import ExpatError

import mammoth
from openpyxl import load_workbook
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from ..config import SPREADSHEET_PREVIEW_ROWS
from ..errors import ExtractionError, UnsupportedMediaType
from ..logging_config import get_logger
from ..models import AttachmentKind
from .kinds import classify, normalize_media_type

logger = get_logger(__name__)

SPREADSHEET_NOTICE = (
    "This is the content of an Excel spreadsheet. Please summarize or analyze "
    "the data below. Only the first {rows} rows are shown."
)
NO_SHEET_DATA = "No data found in any sheet of the Excel file."


def _cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value).replace("|", "\\|").replace("\n", " ").strip()


def spreadsheet_preview(
    rows: Iterable[Iterable[Any]], max_rows: int = SPREADSHEET_PREVIEW_ROWS
) -> str:
    """Render rows as a grid: header, separator, then at most ``max_rows``
    data rows."""
    taken = [[_cell(value) for value in row] for row in islice(rows, max_rows + 1)]
    if not taken:
        return ""

    col_count = max(len(row) for row in taken) or 1
    padded = [row + [""] * (col_count - len(row)) for row in taken]

    lines = ["| " + " | ".join(padded[0]) + " |"]
    lines.append("| " + " | ".join(["---"] * col_count) + " |")
    lines.extend("| " + " | ".join(row) + " |" for row in padded[1:])
    return "\n".join(lines)


def _sheet_rows(worksheet) -> Iterable[tuple]:
    for row in worksheet.iter_rows(values_only=True):
        if any(value is not None and str(value).strip() for value in row):
            yield row


def extract_spreadsheet(data: bytes, max_rows: int = SPREADSHEET_PREVIEW_ROWS) -> str:
    """Render every non-empty sheet of an .xlsx workbook as a grid."""
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
        raise ExtractionError(f"Failed to read spreadsheet: {e}") from e

    sections = []
    try:
        for worksheet in workbook.worksheets:
            table = spreadsheet_preview(_sheet_rows(worksheet), max_rows)
            if table:
                sections.append(f"Sheet: {worksheet.title}\n{table}")
    finally:
        workbook.close()

    if not sections:
        return NO_SHEET_DATA
    return "\n\n".join(sections)


def spreadsheet_prompt(data: bytes, max_rows: int = SPREADSHEET_PREVIEW_ROWS) -> str:
    """Spreadsheet preview labeled as partial for inclusion in a prompt."""
    notice = SPREADSHEET_NOTICE.format(rows=max_rows)
    return f"{notice}\n\n{extract_spreadsheet(data, max_rows)}"


def extract_docx(data: bytes) -> str:
    """Raw text of a .docx document, formatting discarded.

    Paragraphs are separated by a blank line.
    """
    try:
        result = mammoth.extract_raw_text(io.BytesIO(data))
    except (zipfile.BadZipFile, KeyError, ValueError, OSError, ExpatError) as e:
        raise ExtractionError(f"Failed to read document: {e}") from e

    for message in result.messages:
        logger.debug("Document conversion: %s", message.message)
    return result.value.strip()


def extract_pdf(data: bytes) -> str:
    """Text of every page of a PDF."""
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except PdfReadError as e:
        raise ExtractionError(f"Failed to read PDF: {e}") from e
    return "\n".join(pages).strip()


def decode_text(data: bytes) -> str:
    return data.decode("utf-8-sig", errors="replace")


class ITextExtractor(Protocol):
    """Given a blob and its declared media type, produce text or fail."""

    async def extract(
        self, data: bytes, media_type: str, filename: str | None = None
    ) -> str:
        """Extract text; raises UnsupportedMediaType for unknown types."""
        ...


class TextExtractor:
    """Extracts text from documents in the attachment allow-list."""

    def __init__(self, max_rows: int = SPREADSHEET_PREVIEW_ROWS):
        self._max_rows = max_rows

    async def extract(
        self, data: bytes, media_type: str, filename: str | None = None
    ) -> str:
        """Extract text from a supported document."""
        kind = classify(media_type, filename)
        logger.debug(
            "Extracting %s bytes as %s", len(data), kind.value,
            extra={"attachment_kind": kind.value},
        )

        if kind is AttachmentKind.TEXT:
            return decode_text(data)
        if kind is AttachmentKind.PDF:
            return await asyncio.to_thread(extract_pdf, data)
        if kind is AttachmentKind.SPREADSHEET:
            return await asyncio.to_thread(extract_spreadsheet, data, self._max_rows)
        if kind is AttachmentKind.DOCUMENT:
            return await asyncio.to_thread(extract_docx, data)

        raise UnsupportedMediaType(normalize_media_type(media_type, filename), filename)
