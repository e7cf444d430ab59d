"""Message-related data models."""

import re
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Union

Role = Literal["user", "assistant", "system"]

# Generated images come back as bare URLs; these render inline
_IMAGE_URL_RE = re.compile(
    r"^https?://(\S+\.(png|jpe?g|gif|webp|bmp)(\?\S*)?|\S*oaidalle\S*|\S+/images/\S+)$",
    re.IGNORECASE,
)


class MessageType(str, Enum):
    """How a message is rendered."""

    TEXT = "text"
    FILE = "file"


@dataclass(frozen=True)
class Provisional:
    """Client-side identity of a message the store has not acknowledged."""

    local_id: str

    @classmethod
    def new(cls) -> "Provisional":
        return cls(local_id=str(uuid.uuid4()))

    def __str__(self) -> str:
        return self.local_id


@dataclass(frozen=True)
class Durable:
    """Identity assigned by the conversation store."""

    store_id: str

    def __str__(self) -> str:
        return self.store_id


MessageId = Union[Provisional, Durable]


@dataclass(frozen=True)
class FileAttachment:
    """Metadata of a file attached to a message."""

    name: str
    media_type: str
    size_bytes: int
    url: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "media_type": self.media_type,
            "size_bytes": self.size_bytes,
            "url": self.url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileAttachment":
        return cls(
            name=data.get("name", ""),
            media_type=data.get("media_type", "application/octet-stream"),
            size_bytes=int(data.get("size_bytes", 0)),
            url=data.get("url", ""),
        )


@dataclass
class Message:
    """A single turn in a conversation."""

    id: MessageId
    role: Role
    content: str
    timestamp: datetime
    type: MessageType = MessageType.TEXT
    attachment: FileAttachment | None = None
    # Sent to the assistant, never rendered
    extracted_text: str | None = None
    thread_id: str | None = None

    @classmethod
    def provisional(
        cls,
        role: Role,
        content: str,
        attachment: FileAttachment | None = None,
        extracted_text: str | None = None,
    ) -> "Message":
        """Create a message that only exists client-side."""
        return cls(
            id=Provisional.new(),
            role=role,
            content=content,
            timestamp=datetime.now(timezone.utc),
            type=MessageType.FILE if attachment else MessageType.TEXT,
            attachment=attachment,
            extracted_text=extracted_text,
        )

    @property
    def is_provisional(self) -> bool:
        return isinstance(self.id, Provisional)

    @property
    def is_image_url(self) -> bool:
        """Whether the content is an image URL to render inline."""
        return bool(_IMAGE_URL_RE.match(self.content.strip()))

    def with_content(self, content: str) -> "Message":
        return replace(self, content=content)

    def to_history_dict(self) -> dict[str, Any]:
        """Shape sent to the chat endpoint as conversation history."""
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.attachment:
            data["file"] = self.attachment.to_dict()
        if self.extracted_text:
            data["extracted_text"] = self.extracted_text
        return data

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Message":
        """Build a durable message from a store record (API JSON)."""
        file_data = record.get("file")
        attachment = FileAttachment.from_dict(file_data) if file_data else None
        created_at = record.get("created_at")
        if isinstance(created_at, str):
            timestamp = datetime.fromisoformat(created_at)
        elif isinstance(created_at, datetime):
            timestamp = created_at
        else:
            timestamp = datetime.now(timezone.utc)
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(
            id=Durable(str(record["id"])),
            role=record["role"],
            content=record.get("content", ""),
            timestamp=timestamp,
            type=MessageType.FILE if attachment else MessageType.TEXT,
            attachment=attachment,
            thread_id=record.get("thread_id"),
        )


@dataclass
class Thread:
    """A named, ordered conversation."""

    id: str
    name: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class StoredFile:
    """A file uploaded into a thread."""

    id: str
    thread_id: str
    name: str
    url: str
    media_type: str
    uploaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
