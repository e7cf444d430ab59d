"""Exception hierarchy shared by the server, the client and the orchestrator."""


class ThreadChatError(Exception):
    """Base class for all threadchat errors."""


# Input validation: raised before any network call is issued


class InputValidationError(ThreadChatError):
    """The user's input cannot be sent as-is."""


class AttachmentTooLarge(InputValidationError):
    """The selected file exceeds the attachment size limit."""

    def __init__(self, name: str, size_bytes: int, limit_bytes: int):
        super().__init__(
            f"{name} is {size_bytes} bytes; files must be smaller than "
            f"{limit_bytes // (1024 * 1024)}MB"
        )
        self.name = name
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes


class EmptyAttachment(InputValidationError):
    """The selected file has no content."""


class UnsupportedMediaType(InputValidationError):
    """No extractor or attachment handler exists for the media type."""

    def __init__(self, media_type: str, name: str | None = None):
        label = f"{name} ({media_type})" if name else media_type
        super().__init__(f"Unsupported file type: {label}")
        self.media_type = media_type


# Upstream failures: the current send branch aborts, completed steps stay


class ServiceError(ThreadChatError):
    """An external collaborator failed."""


class UploadError(ServiceError):
    """Storing an attachment failed."""


class ExtractionError(ServiceError):
    """Extracting text from an attachment failed."""


class CompletionError(ServiceError):
    """The assistant (completion or vision) call failed."""


class ImageGenerationError(ServiceError):
    """Image generation failed."""


class StoreError(ServiceError):
    """Reading or writing the conversation store failed."""


class ThreadNotFound(StoreError):
    """The referenced thread does not exist."""

    def __init__(self, thread_id: str):
        super().__init__(f"Thread not found: {thread_id}")
        self.thread_id = thread_id


# Orchestrator control flow


class SendCancelled(ThreadChatError):
    """The user stopped an in-flight assistant reply."""


class IllegalTransition(ThreadChatError):
    """The send state machine was asked for a transition it does not allow."""
