"""Contracts the send orchestrator consumes."""

from dataclasses import dataclass
from typing import AsyncIterator, Protocol

from ..attachments import ITextExtractor
from ..llm import IImageGenerator
from ..logging_config import get_logger
from ..models import FileAttachment, Message, Role, Status, Thread

logger = get_logger(__name__)


class IConversationStore(Protocol):
    """Thread and message persistence."""

    async def create_thread(self, name: str) -> Thread:
        ...

    async def rename_thread(self, thread_id: str, name: str) -> Thread:
        ...

    async def list_messages(self, thread_id: str) -> list[Message]:
        ...

    async def append_message(
        self,
        thread_id: str,
        role: Role,
        content: str,
        attachment: FileAttachment | None = None,
    ) -> Message:
        ...


class IUploader(Protocol):
    """Accepts a blob, returns a durable public URL."""

    async def upload(self, data: bytes, name: str, media_type: str, thread_id: str) -> str:
        ...


class IVision(Protocol):
    """Answers a question about an inline image."""

    async def analyze_image(
        self, image_base64: str, question: str, media_type: str = "image/jpeg"
    ) -> str:
        ...


class IChatStream(Protocol):
    """Streams the assistant's reply to a history as raw SSE bytes."""

    def stream_chat(self, history: list[dict]) -> AsyncIterator[bytes]:
        ...


class INotifier(Protocol):
    """Status line and transient notifications."""

    def status(self, status: Status) -> None:
        ...

    def notify(self, title: str, description: str, level: str = "info") -> None:
        ...


class LoggingNotifier:
    """Notifier that only logs; used when no UI is attached."""

    def status(self, status: Status) -> None:
        logger.debug("Status: %s (%s)", status.status, status.message)

    def notify(self, title: str, description: str, level: str = "info") -> None:
        if level == "error":
            logger.error("%s: %s", title, description)
        else:
            logger.info("%s: %s", title, description)


@dataclass
class Collaborators:
    """Everything the orchestrator talks to."""

    store: IConversationStore
    uploader: IUploader
    extractor: ITextExtractor
    vision: IVision
    images: IImageGenerator
    chat: IChatStream

    @classmethod
    def from_client(cls, client) -> "Collaborators":
        """Use one API client for every role."""
        return cls(
            store=client,
            uploader=client,
            extractor=client,
            vision=client,
            images=client,
            chat=client,
        )
