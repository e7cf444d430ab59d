"""Message-send orchestrator.

Turns one submission (text and at most one attachment) into at most one
persisted user message, at most one persisted assistant message and a live
transcript, sequencing upload, extraction or vision, persistence and the
streamed reply.
"""

import asyncio
import base64
from pathlib import Path

from ..attachments import AttachmentPreprocessor, truncate_extracted
from ..config import THREAD_NAME_CHARS
from ..errors import (
    ImageGenerationError,
    InputValidationError,
    SendCancelled,
    ServiceError,
    StoreError,
    UploadError,
)
from ..logging_config import get_logger
from ..models import (
    PROCESSING,
    READY,
    FileAttachment,
    Intent,
    Message,
    Role,
    SelectedFile,
    SendOutcome,
    SendPhase,
)
from ..streaming import StreamConsumer
from .collaborators import Collaborators, INotifier, LoggingNotifier
from .intents import IntentClassifier, classify_intent
from .state import PendingSend, SendState
from .transcript import Transcript

logger = get_logger(__name__)

NEW_THREAD_NAME = "New Chat"
IMAGE_GENERATION_FAILED = "Failed to generate image."
DEFAULT_IMAGE_QUESTION = "Describe this image."


class CancelHandle:
    """Abort signal plus the transport task of one streaming call."""

    def __init__(self):
        self.signal = asyncio.Event()
        self.task: asyncio.Task | None = None

    @property
    def cancelled(self) -> bool:
        return self.signal.is_set()

    def cancel(self) -> None:
        self.signal.set()
        if self.task is not None and not self.task.done():
            self.task.cancel()


class SendOrchestrator:
    """Owns the transcript, the composer draft and the send state of one
    chat view."""

    def __init__(
        self,
        collaborators: Collaborators,
        thread_id: str | None = None,
        preprocessor: AttachmentPreprocessor | None = None,
        notifier: INotifier | None = None,
        intent_classifier: IntentClassifier = classify_intent,
    ):
        self._c = collaborators
        self._thread_id = thread_id
        self._preprocessor = preprocessor or AttachmentPreprocessor()
        self._notifier = notifier or LoggingNotifier()
        self._classify = intent_classifier

        self._state = SendState()
        self._transcript = Transcript()
        self._cancel_handle: CancelHandle | None = None

        # Composer
        self.draft = ""
        self.attachment: SelectedFile | None = None
        self.thread_name: str | None = None

    @property
    def thread_id(self) -> str | None:
        return self._thread_id

    @property
    def transcript(self) -> Transcript:
        return self._transcript

    @property
    def phase(self) -> SendPhase:
        return self._state.phase

    @property
    def can_cancel(self) -> bool:
        return self._cancel_handle is not None and self.phase is SendPhase.STREAMING

    # Threads and history

    async def open_thread(self, thread_id: str | None, name: str | None = None) -> None:
        """Switch to another thread (or none) and load its history."""
        if not self._state.is_idle:
            raise RuntimeError("Cannot switch threads while a send is in flight")

        # Fetch first so a failed load leaves the current thread untouched
        messages = await self._c.store.list_messages(thread_id) if thread_id else []
        self._thread_id = thread_id or None
        self.thread_name = name
        self._transcript.replace(messages)

    async def refresh(self) -> list[Message]:
        """Replace the committed transcript with the store's copy."""
        if self._thread_id is None:
            self._transcript.clear()
        else:
            self._transcript.replace(await self._c.store.list_messages(self._thread_id))
        return self._transcript.messages

    # Composer

    def select_file(self, data: bytes, name: str, media_type: str | None) -> SelectedFile | None:
        """Validate a file for the next send; invalid files are discarded."""
        try:
            self.attachment = self._preprocessor.select(data, name, media_type)
        except InputValidationError as e:
            self.attachment = None
            self._notifier.notify("File not attached", str(e), "error")
        return self.attachment

    def select_path(self, path: str | Path) -> SelectedFile | None:
        try:
            self.attachment = self._preprocessor.select_path(path)
        except InputValidationError as e:
            self.attachment = None
            self._notifier.notify("File not attached", str(e), "error")
        except OSError as e:
            self.attachment = None
            self._notifier.notify("File not attached", f"Cannot read {path}: {e}", "error")
        return self.attachment

    def remove_file(self) -> None:
        self.attachment = None

    async def submit(self) -> SendOutcome:
        """Send the current draft and attachment."""
        return await self.send(self.draft, self.attachment)

    # Sending

    async def send(self, text: str, attachment: SelectedFile | None = None) -> SendOutcome:
        """Run one send to completion, cancellation or failure."""
        text = text.strip()
        if not text and attachment is None:
            return SendOutcome.IGNORED

        if not self._state.is_idle:
            logger.info(
                "Send rejected while %s", self.phase.value,
                extra={"thread_id": self._thread_id, "phase": self.phase.value},
            )
            return SendOutcome.REJECTED

        if self._thread_id is None:
            return await self._send_in_new_thread(PendingSend(text, attachment))

        self._state.transition(SendPhase.SENDING)
        return await self._dispatch(text, attachment)

    def cancel(self) -> bool:
        """Stop the in-flight assistant stream, if any."""
        handle = self._cancel_handle
        if handle is None or self.phase is not SendPhase.STREAMING:
            return False

        self._state.transition(SendPhase.CANCELLING)
        handle.cancel()
        logger.info("Stream cancelled", extra={"thread_id": self._thread_id})
        return True

    async def _send_in_new_thread(self, pending: PendingSend) -> SendOutcome:
        self._state.await_thread(pending)
        try:
            thread = await self._c.store.create_thread(NEW_THREAD_NAME)
        except ServiceError as e:
            logger.error("Thread creation failed: %s", e)
            self._notifier.notify("Error", "Could not start a new chat.", "error")
            self._finish()
            return SendOutcome.FAILED

        self._thread_id = thread.id
        self.thread_name = thread.name
        self._transcript.clear()
        logger.info("Created thread %s", thread.id, extra={"thread_id": thread.id})

        pending = self._state.take_pending()
        self._state.transition(SendPhase.SENDING)
        return await self._dispatch(pending.text, pending.attachment)

    async def _dispatch(self, text: str, attachment: SelectedFile | None) -> SendOutcome:
        self._notifier.status(PROCESSING)
        prior_count = len(self._transcript.committed())
        try:
            if attachment is not None and attachment.is_image:
                await self._send_image_attachment(text, attachment, prior_count)
            elif attachment is not None:
                await self._send_document(text, attachment, prior_count)
            elif self._classify(text, False) is Intent.IMAGE_GENERATION:
                await self._generate_image(text, prior_count)
            else:
                await self._send_text(text, prior_count)
            return SendOutcome.COMPLETED

        except SendCancelled:
            self._notifier.notify("Stopped", "AI response was stopped.")
            return SendOutcome.CANCELLED

        except UploadError as e:
            logger.error("Upload failed: %s", e, extra={"thread_id": self._thread_id})
            self._notifier.notify("File upload failed", str(e), "error")
            return SendOutcome.FAILED

        except (InputValidationError, ServiceError) as e:
            logger.error("Send failed: %s", e, extra={"thread_id": self._thread_id})
            self._notifier.notify(
                "Error", "Failed to process your request. Please try again.", "error"
            )
            return SendOutcome.FAILED

        finally:
            self._finish()

    def _finish(self) -> None:
        """Cleanup that runs on every exit path."""
        self.draft = ""
        self.attachment = None
        self._cancel_handle = None
        self._state.reset()
        self._notifier.status(READY)

    # Branches

    async def _send_text(self, text: str, prior_count: int) -> None:
        user_message = Message.provisional("user", text)
        history = self._history_with(user_message)
        await self._persist("user", text)

        reply = await self._stream_reply(history)
        if prior_count == 0:
            await self._rename_thread(reply)

    async def _generate_image(self, text: str, prior_count: int) -> None:
        await self._persist("user", text)

        try:
            content = await self._c.images.generate(text)
        except ImageGenerationError as e:
            logger.warning("Image generation failed: %s", e, extra={"thread_id": self._thread_id})
            content = IMAGE_GENERATION_FAILED

        await self._persist("assistant", content)
        if prior_count == 0:
            await self._rename_thread(text)

    async def _send_image_attachment(
        self, text: str, selected: SelectedFile, prior_count: int
    ) -> None:
        attachment = await self._upload(selected)

        image_base64 = base64.b64encode(selected.data).decode("ascii")
        answer = await self._c.vision.analyze_image(
            image_base64, text or DEFAULT_IMAGE_QUESTION, selected.media_type
        )

        await self._persist(
            "user", self._attachment_content("image", selected.name, text), attachment
        )
        if prior_count == 0:
            await self._rename_thread(text or selected.name)
        await self._persist("assistant", answer)

    async def _send_document(
        self, text: str, selected: SelectedFile, prior_count: int
    ) -> None:
        attachment = await self._upload(selected)

        extracted = selected.extracted_text
        if extracted is None:
            extracted = await self._c.extractor.extract(
                selected.data, selected.media_type, selected.name
            )
        extracted = truncate_extracted(extracted)

        content = self._attachment_content("file", selected.name, text)
        user_message = Message.provisional(
            "user", content, attachment=attachment, extracted_text=extracted
        )
        history = self._history_with(user_message)
        await self._persist("user", content, attachment)

        reply = await self._stream_reply(history)
        if prior_count == 0:
            await self._rename_thread(reply)

    # Steps

    async def _upload(self, selected: SelectedFile) -> FileAttachment:
        url = await self._c.uploader.upload(
            selected.data, selected.name, selected.media_type, self._thread_id
        )
        logger.info(
            "Uploaded %s", selected.name,
            extra={"thread_id": self._thread_id, "attachment_kind": selected.kind.value},
        )
        return FileAttachment(
            name=selected.name,
            media_type=selected.media_type,
            size_bytes=selected.size_bytes,
            url=url,
        )

    async def _persist(
        self, role: Role, content: str, attachment: FileAttachment | None = None
    ) -> None:
        await self._c.store.append_message(self._thread_id, role, content, attachment)
        await self.refresh()

    async def _stream_reply(self, history: list[dict]) -> str:
        """Stream the assistant reply into a provisional entry, then persist it."""
        self._state.transition(SendPhase.STREAMING)
        handle = CancelHandle()
        self._cancel_handle = handle

        placeholder = Message.provisional("assistant", "")
        self._transcript.append_provisional(placeholder)
        consumer = StreamConsumer(
            on_update=lambda text: self._transcript.patch(placeholder.id, text)
        )
        handle.task = asyncio.create_task(
            consumer.consume(self._c.chat.stream_chat(history), handle.signal)
        )

        succeeded = False
        try:
            try:
                reply = await handle.task
            except asyncio.CancelledError:
                if not handle.cancelled:
                    raise
                raise SendCancelled("Stream stopped by user") from None
            if handle.cancelled:
                raise SendCancelled("Stream stopped by user")
            succeeded = True
        finally:
            self._cancel_handle = None
            if not succeeded:
                self._transcript.discard(placeholder.id)

        await self._c.store.append_message(self._thread_id, "assistant", reply)
        self._transcript.discard(placeholder.id)
        await self.refresh()
        return reply

    async def _rename_thread(self, text: str) -> None:
        name = text.strip()[:THREAD_NAME_CHARS].strip()
        if not name:
            return
        try:
            thread = await self._c.store.rename_thread(self._thread_id, name)
        except StoreError as e:
            logger.warning("Thread rename failed: %s", e, extra={"thread_id": self._thread_id})
            return
        self.thread_name = thread.name

    def _history_with(self, message: Message) -> list[dict]:
        committed = self._transcript.committed()
        return [m.to_history_dict() for m in committed] + [message.to_history_dict()]

    @staticmethod
    def _attachment_content(label: str, name: str, text: str) -> str:
        return f"Attached {label} ({name})\n{text}".rstrip()
