"""Threadchat: threaded AI chat with file attachments."""

from .app import Application, IApplication
from .attachments import AttachmentPreprocessor, ITextExtractor, TextExtractor
from .client import ChatApiClient
from .files import FileStore, IFileStore
from .llm import IImageGenerator, ILLMProvider, ImageGenerator, LLMProvider
from .models import (
    AttachmentKind,
    Durable,
    FileAttachment,
    Intent,
    Message,
    Provisional,
    SelectedFile,
    SendOutcome,
    SendPhase,
    StoredFile,
    Thread,
)
from .orchestrator import Collaborators, SendOrchestrator
from .storage import IStorage, Storage
from .streaming import StreamConsumer

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Models
    "Message",
    "Provisional",
    "Durable",
    "FileAttachment",
    "Thread",
    "StoredFile",
    "AttachmentKind",
    "SelectedFile",
    "SendPhase",
    "SendOutcome",
    "Intent",
    # Components
    "IStorage",
    "Storage",
    "IFileStore",
    "FileStore",
    "ITextExtractor",
    "TextExtractor",
    "AttachmentPreprocessor",
    "ILLMProvider",
    "LLMProvider",
    "IImageGenerator",
    "ImageGenerator",
    "StreamConsumer",
    # Client
    "ChatApiClient",
    "Collaborators",
    "SendOrchestrator",
]
