"""Core data models for threadchat."""

from .attachments import AttachmentKind, SelectedFile
from .messages import (
    Durable,
    FileAttachment,
    Message,
    MessageId,
    MessageType,
    Provisional,
    Role,
    StoredFile,
    Thread,
)
from .send import PROCESSING, READY, Intent, SendOutcome, SendPhase, Status

__all__ = [
    # Messages
    "Role",
    "MessageType",
    "Provisional",
    "Durable",
    "MessageId",
    "FileAttachment",
    "Message",
    "Thread",
    "StoredFile",
    # Attachments
    "AttachmentKind",
    "SelectedFile",
    # Send lifecycle
    "SendPhase",
    "SendOutcome",
    "Intent",
    "Status",
    "PROCESSING",
    "READY",
]
