"""Pytest configuration and fixtures."""

import asyncio
import io
import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from threadchat.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


def sse_chunks(*contents: str, done: bool = True) -> list[bytes]:
    """SSE byte chunks for the given deltas."""
    from threadchat.streaming import encode_done, encode_frame

    chunks = [encode_frame(c) for c in contents]
    if done:
        chunks.append(encode_done())
    return chunks


class FakeChatStream:
    """Chat collaborator replaying fixed SSE chunks.

    With ``hold=True`` the stream stops after the first chunk until
    ``release`` is set, so tests can act while a reply is streaming.
    """

    def __init__(self, chunks: list[bytes] | None = None, hold: bool = False):
        self.chunks = chunks if chunks is not None else sse_chunks("Hello", " world")
        self.hold = hold
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.histories: list[list[dict]] = []
        self.error: Exception | None = None

    async def stream_chat(self, history: list[dict]):
        self.histories.append(history)
        for index, chunk in enumerate(self.chunks):
            yield chunk
            if index == 0:
                self.started.set()
                if self.hold:
                    await self.release.wait()
        self.started.set()
        if self.error is not None:
            raise self.error


@pytest.fixture
def chat_stream():
    return FakeChatStream()


@pytest.fixture
def notifier():
    """Notifier recording status and notifications."""
    n = Mock()
    n.status = Mock()
    n.notify = Mock()
    return n


@pytest.fixture
def collaborators(storage, chat_stream):
    """Orchestrator collaborators backed by in-memory storage."""
    from threadchat.orchestrator import Collaborators

    uploader = Mock()
    uploader.upload = AsyncMock(return_value="http://test/files/blob.bin")
    extractor = Mock()
    extractor.extract = AsyncMock(return_value="remote text")
    vision = Mock()
    vision.analyze_image = AsyncMock(return_value="A cat on a sofa.")
    images = Mock()
    images.generate = AsyncMock(return_value="https://images.test/cat.png")

    return Collaborators(
        store=storage,
        uploader=uploader,
        extractor=extractor,
        vision=vision,
        images=images,
        chat=chat_stream,
    )


@pytest.fixture
def mock_llm():
    """Create mock LLM provider."""
    llm = Mock()
    llm.complete = AsyncMock(return_value="Test response")
    llm.analyze_image = AsyncMock(return_value="An image")

    async def stream_complete(messages, system=None, max_tokens=1024):
        for delta in ["Hello", " world"]:
            yield delta

    llm.stream_complete = Mock(side_effect=stream_complete)
    return llm


def make_xlsx(rows: list[list]) -> bytes:
    """Build an in-memory .xlsx workbook with one sheet."""
    from openpyxl import Workbook

    wb = Workbook()
    ws = wb.active
    ws.title = "Data"
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


DOCX_CONTENT_TYPES = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '<Override PartName="/word/document.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>'
    "</Types>"
)
DOCX_RELS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" '
    'Target="word/document.xml"/>'
    "</Relationships>"
)


def make_docx(paragraphs: list[str] | None = None, body: str | None = None) -> bytes:
    """Build a minimal .docx from plain paragraphs or raw body XML."""
    import zipfile

    if body is None:
        body = "".join(
            f"<w:p><w:r><w:t>{text}</w:t></w:r></w:p>" for text in paragraphs or []
        )
    document = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main" '
        'xmlns:v="urn:schemas-microsoft-com:vml">'
        f"<w:body>{body}</w:body></w:document>"
    )
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("[Content_Types].xml", DOCX_CONTENT_TYPES)
        zf.writestr("_rels/.rels", DOCX_RELS)
        zf.writestr("word/document.xml", document)
    return buffer.getvalue()
