"""Tests for SendOrchestrator."""

import asyncio
import base64
from unittest.mock import AsyncMock, patch

import pytest

from conftest import make_xlsx, sse_chunks
from threadchat.attachments import AttachmentPreprocessor
from threadchat.errors import CompletionError, StoreError, UploadError
from threadchat.models import READY, SendOutcome, SendPhase
from threadchat.orchestrator import SendOrchestrator


@pytest.fixture
async def thread(storage):
    return await storage.create_thread("New Chat")


@pytest.fixture
def orchestrator(collaborators, notifier, thread):
    return SendOrchestrator(collaborators, thread_id=thread.id, notifier=notifier)


def assert_idle(orchestrator, notifier):
    """Postconditions of every send."""
    assert orchestrator.phase is SendPhase.IDLE
    assert orchestrator.draft == ""
    assert orchestrator.attachment is None
    assert not orchestrator.can_cancel
    assert notifier.status.call_args.args[0] == READY
    assert orchestrator.transcript.provisional() == []


class TestGuards:
    """Tests for send guards."""

    @pytest.mark.asyncio
    async def test_empty_text_without_attachment_is_ignored(
        self, orchestrator, collaborators, chat_stream, storage, thread
    ):
        """Test that an empty send makes no call and changes nothing."""
        outcome = await orchestrator.send("   ")

        assert outcome is SendOutcome.IGNORED
        assert chat_stream.histories == []
        collaborators.uploader.upload.assert_not_called()
        collaborators.images.generate.assert_not_called()
        assert len(orchestrator.transcript) == 0
        assert await storage.list_messages(thread.id) == []

    @pytest.mark.asyncio
    async def test_send_rejected_while_streaming(
        self, orchestrator, chat_stream, storage, thread
    ):
        """Test that a second send is rejected while streaming."""
        chat_stream.hold = True
        first = asyncio.create_task(orchestrator.send("Hi"))
        await chat_stream.started.wait()

        assert orchestrator.phase is SendPhase.STREAMING
        assert await orchestrator.send("again") is SendOutcome.REJECTED

        chat_stream.release.set()
        assert await first is SendOutcome.COMPLETED
        assert len(await storage.list_messages(thread.id)) == 2
        assert len(chat_stream.histories) == 1

    @pytest.mark.asyncio
    async def test_cancel_when_idle_does_nothing(self, orchestrator):
        """Test that cancel is a no-op when idle."""
        assert orchestrator.cancel() is False
        assert orchestrator.phase is SendPhase.IDLE


class TestPlainText:
    """Tests for the plain-text branch."""

    @pytest.mark.asyncio
    async def test_successful_send_adds_two_messages(
        self, orchestrator, notifier, chat_stream, storage, thread
    ):
        """Test that a send adds one user and one assistant message."""
        before = len(orchestrator.transcript)
        outcome = await orchestrator.send("Hi")

        assert outcome is SendOutcome.COMPLETED
        assert len(orchestrator.transcript) == before + 2
        assert [m.content for m in orchestrator.transcript.messages] == ["Hi", "Hello world"]
        assert all(not m.is_provisional for m in orchestrator.transcript.messages)
        assert chat_stream.histories == [[{"role": "user", "content": "Hi"}]]

        stored = await storage.list_messages(thread.id)
        assert [(m.role, m.content) for m in stored] == [
            ("user", "Hi"),
            ("assistant", "Hello world"),
        ]
        assert_idle(orchestrator, notifier)

    @pytest.mark.asyncio
    async def test_history_includes_previous_turns(self, orchestrator, chat_stream):
        """Test that earlier turns are sent as history."""
        await orchestrator.send("Hi")
        await orchestrator.send("And then?")

        assert chat_stream.histories[1] == [
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello world"},
            {"role": "user", "content": "And then?"},
        ]

    @pytest.mark.asyncio
    async def test_first_exchange_names_thread_from_reply(
        self, orchestrator, chat_stream, storage, thread
    ):
        """Test naming the thread from the first reply."""
        chat_stream.chunks = sse_chunks("x" * 80)
        await orchestrator.send("Hi")

        assert (await storage.get_thread(thread.id)).name == "x" * 50
        assert orchestrator.thread_name == "x" * 50

    @pytest.mark.asyncio
    async def test_later_exchanges_keep_thread_name(
        self, orchestrator, chat_stream, storage, thread
    ):
        """Test that later replies keep the name."""
        await orchestrator.send("Hi")
        chat_stream.chunks = sse_chunks("Different reply")
        await orchestrator.send("More")

        assert (await storage.get_thread(thread.id)).name == "Hello world"

    @pytest.mark.asyncio
    async def test_empty_reply_uses_fallback(self, orchestrator, chat_stream, storage, thread):
        """Test the fallback for an empty reply."""
        chat_stream.chunks = sse_chunks()
        await orchestrator.send("Hi")

        stored = await storage.list_messages(thread.id)
        assert stored[-1].content == "[No response]"

    @pytest.mark.asyncio
    async def test_submit_sends_and_clears_draft(self, orchestrator, notifier):
        """Test that submit sends the draft and clears it."""
        orchestrator.draft = "Hi"
        assert await orchestrator.submit() is SendOutcome.COMPLETED
        assert_idle(orchestrator, notifier)


class TestCancellation:
    """Tests for stopping a streamed reply."""

    @pytest.mark.asyncio
    async def test_cancel_mid_stream_keeps_only_user_message(
        self, orchestrator, notifier, chat_stream, storage, thread
    ):
        """Test that cancelling keeps only the user message."""
        chat_stream.hold = True
        before = len(orchestrator.transcript)
        task = asyncio.create_task(orchestrator.send("Hi"))
        await chat_stream.started.wait()

        # The partial reply is visible while streaming
        [live] = orchestrator.transcript.provisional()
        assert live.content == "Hello"
        assert orchestrator.can_cancel

        assert orchestrator.cancel() is True
        outcome = await task

        assert outcome is SendOutcome.CANCELLED
        assert len(orchestrator.transcript) == before + 1
        stored = await storage.list_messages(thread.id)
        assert [m.role for m in stored] == ["user"]
        notifier.notify.assert_any_call("Stopped", "AI response was stopped.")
        assert_idle(orchestrator, notifier)

    @pytest.mark.asyncio
    async def test_can_send_again_after_cancel(self, orchestrator, chat_stream):
        """Test sending again after a cancel."""
        chat_stream.hold = True
        task = asyncio.create_task(orchestrator.send("Hi"))
        await chat_stream.started.wait()
        orchestrator.cancel()
        await task

        chat_stream.hold = False
        assert await orchestrator.send("Again") is SendOutcome.COMPLETED


class TestFailures:
    """Tests for upstream failures."""

    @pytest.mark.asyncio
    async def test_stream_failure_discards_provisional(
        self, orchestrator, notifier, chat_stream, storage, thread
    ):
        """Test that a broken stream leaves no partial reply."""
        chat_stream.chunks = sse_chunks("partial", done=False)
        chat_stream.error = CompletionError("connection reset")

        outcome = await orchestrator.send("Hi")

        assert outcome is SendOutcome.FAILED
        assert [m.role for m in await storage.list_messages(thread.id)] == ["user"]
        assert notifier.notify.call_args.args[2] == "error"
        assert_idle(orchestrator, notifier)

    @pytest.mark.asyncio
    async def test_upload_failure_persists_nothing(
        self, orchestrator, notifier, collaborators, chat_stream, storage, thread
    ):
        """Test that a failed upload stores nothing."""
        collaborators.uploader.upload.side_effect = UploadError("disk full")
        orchestrator.select_file(b"hello", "notes.txt", "text/plain")

        outcome = await orchestrator.submit()

        assert outcome is SendOutcome.FAILED
        assert await storage.list_messages(thread.id) == []
        assert chat_stream.histories == []
        notifier.notify.assert_any_call("File upload failed", "disk full", "error")
        assert_idle(orchestrator, notifier)

    @pytest.mark.asyncio
    async def test_thread_creation_failure(self, collaborators, notifier, storage):
        """Test a failure to create the thread."""
        async def failing_create(name):
            raise StoreError("database locked")

        storage.create_thread = failing_create
        orchestrator = SendOrchestrator(collaborators, notifier=notifier)

        assert await orchestrator.send("Hi") is SendOutcome.FAILED
        assert orchestrator.thread_id is None
        assert_idle(orchestrator, notifier)


class TestNewThread:
    """Tests for the first send without a thread."""

    @pytest.mark.asyncio
    async def test_creates_thread_then_sends(self, collaborators, notifier, storage):
        """Test that the first send creates a thread."""
        orchestrator = SendOrchestrator(collaborators, notifier=notifier)

        outcome = await orchestrator.send("Hi")

        assert outcome is SendOutcome.COMPLETED
        [thread] = await storage.list_threads()
        assert orchestrator.thread_id == thread.id
        assert thread.name == "Hello world"
        assert len(await storage.list_messages(thread.id)) == 2

    @pytest.mark.asyncio
    async def test_pending_send_dispatched_exactly_once(
        self, collaborators, notifier, storage, chat_stream
    ):
        """Test that the waiting send is dispatched once."""
        gate = asyncio.Event()
        create_thread = storage.create_thread

        async def slow_create(name):
            await gate.wait()
            return await create_thread(name)

        storage.create_thread = slow_create
        orchestrator = SendOrchestrator(collaborators, notifier=notifier)

        first = asyncio.create_task(orchestrator.send("first"))
        await asyncio.sleep(0)
        assert orchestrator.phase is SendPhase.AWAITING_THREAD
        assert await orchestrator.send("second") is SendOutcome.REJECTED

        gate.set()
        assert await first is SendOutcome.COMPLETED

        [thread] = await storage.list_threads()
        stored = await storage.list_messages(thread.id)
        assert [m.content for m in stored] == ["first", "Hello world"]
        assert len(chat_stream.histories) == 1


class TestImageGeneration:
    """Tests for the image-generation branch."""

    @pytest.mark.asyncio
    async def test_generates_and_persists_url(
        self, orchestrator, notifier, collaborators, chat_stream, storage, thread
    ):
        """Test that the image URL is stored as the reply."""
        outcome = await orchestrator.send("generate an image of a cat")

        assert outcome is SendOutcome.COMPLETED
        collaborators.images.generate.assert_awaited_once_with("generate an image of a cat")
        assert chat_stream.histories == []

        stored = await storage.list_messages(thread.id)
        assert [(m.role, m.content) for m in stored] == [
            ("user", "generate an image of a cat"),
            ("assistant", "https://images.test/cat.png"),
        ]
        assert (await storage.get_thread(thread.id)).name == "generate an image of a cat"
        assert orchestrator.transcript.render()[-1] == (
            "assistant: [image] https://images.test/cat.png"
        )
        assert_idle(orchestrator, notifier)

    @pytest.mark.asyncio
    async def test_generation_failure_persists_error_sentence(
        self, orchestrator, collaborators, storage, thread
    ):
        """Test that a failed generation stores the error sentence."""
        from threadchat.errors import ImageGenerationError

        collaborators.images.generate.side_effect = ImageGenerationError("quota")

        assert await orchestrator.send("create images of dogs") is SendOutcome.COMPLETED
        stored = await storage.list_messages(thread.id)
        assert stored[-1].content == "Failed to generate image."

    @pytest.mark.asyncio
    async def test_custom_classifier(self, collaborators, notifier, thread, chat_stream):
        """Test plugging in another intent classifier."""
        from threadchat.models import Intent

        orchestrator = SendOrchestrator(
            collaborators,
            thread_id=thread.id,
            notifier=notifier,
            intent_classifier=lambda text, has_attachment: Intent.CHAT,
        )
        await orchestrator.send("generate an image of a cat")

        collaborators.images.generate.assert_not_called()
        assert len(chat_stream.histories) == 1


class TestImageAttachment:
    """Tests for the image-attachment branch."""

    @pytest.mark.asyncio
    async def test_vision_answer_persisted(
        self, orchestrator, notifier, collaborators, chat_stream, storage, thread
    ):
        """Test that the vision answer is stored after the user message."""
        data = b"\x89PNG\r\n\x1a\nfake"

        async def analyze(image_base64, question, media_type):
            # Nothing is persisted before vision answers
            assert await storage.list_messages(thread.id) == []
            return "A cat on a sofa."

        collaborators.vision.analyze_image.side_effect = analyze
        orchestrator.select_file(data, "cat.png", "image/png")
        orchestrator.draft = "what is this?"

        outcome = await orchestrator.submit()

        assert outcome is SendOutcome.COMPLETED
        collaborators.uploader.upload.assert_awaited_once_with(
            data, "cat.png", "image/png", thread.id
        )
        collaborators.vision.analyze_image.assert_awaited_once_with(
            base64.b64encode(data).decode("ascii"), "what is this?", "image/png"
        )
        assert chat_stream.histories == []

        user, assistant = await storage.list_messages(thread.id)
        assert user.content == "Attached image (cat.png)\nwhat is this?"
        assert user.attachment.url == "http://test/files/blob.bin"
        assert user.attachment.size_bytes == len(data)
        assert assistant.content == "A cat on a sofa."
        assert (await storage.get_thread(thread.id)).name == "what is this?"
        assert_idle(orchestrator, notifier)

    @pytest.mark.asyncio
    async def test_image_without_question_named_after_file(
        self, orchestrator, collaborators, storage, thread
    ):
        """Test an image sent without a question."""
        orchestrator.select_file(b"\x89PNG", "cat.png", "image/png")
        await orchestrator.submit()

        [user, _] = await storage.list_messages(thread.id)
        assert user.content == "Attached image (cat.png)"
        assert collaborators.vision.analyze_image.call_args.args[1] == "Describe this image."
        assert (await storage.get_thread(thread.id)).name == "cat.png"

    @pytest.mark.asyncio
    async def test_nonstandard_type_reaches_vision_canonical(
        self, orchestrator, collaborators
    ):
        """Test that a declared image/jpg is sent to vision as image/jpeg."""
        orchestrator.select_file(b"\xff\xd8\xff", "photo.jpg", "image/jpg")
        await orchestrator.submit()

        assert collaborators.vision.analyze_image.call_args.args[2] == "image/jpeg"
        assert collaborators.uploader.upload.call_args.args[2] == "image/jpeg"


class TestDocumentAttachment:
    """Tests for the document-attachment branch."""

    @pytest.mark.asyncio
    async def test_remote_text_truncated_and_sent(
        self, orchestrator, notifier, collaborators, chat_stream, storage, thread
    ):
        """Test that server-extracted text is truncated and sent."""
        collaborators.extractor.extract.return_value = "y" * 7000
        orchestrator.select_file(b"raw", "notes.txt", "text/plain")
        orchestrator.draft = "summarize"

        outcome = await orchestrator.submit()

        assert outcome is SendOutcome.COMPLETED
        collaborators.extractor.extract.assert_awaited_once_with(b"raw", "text/plain", "notes.txt")

        [history] = chat_stream.histories
        last = history[-1]
        assert last["content"] == "Attached file (notes.txt)\nsummarize"
        assert last["extracted_text"] == "y" * 6000 + "\n... (truncated)"
        assert last["file"]["name"] == "notes.txt"

        user, assistant = await storage.list_messages(thread.id)
        assert user.attachment.name == "notes.txt"
        assert user.extracted_text is None
        assert assistant.content == "Hello world"
        assert (await storage.get_thread(thread.id)).name == "Hello world"
        assert_idle(orchestrator, notifier)

    @pytest.mark.asyncio
    async def test_local_spreadsheet_text_skips_remote_extraction(
        self, orchestrator, collaborators, chat_stream
    ):
        """Test that local spreadsheet text skips the server."""
        data = make_xlsx([["h"]] + [[i] for i in range(30)])
        orchestrator.select_file(data, "sheet.xlsx", "")

        await orchestrator.submit()

        collaborators.extractor.extract.assert_not_called()
        extracted = chat_stream.histories[0][-1]["extracted_text"]
        assert extracted.startswith("This is the content of an Excel spreadsheet.")

    @pytest.mark.asyncio
    async def test_extraction_failure_aborts_after_upload(
        self, orchestrator, notifier, collaborators, chat_stream, storage, thread
    ):
        """Test that an extraction failure aborts after upload."""
        from threadchat.errors import ExtractionError

        collaborators.extractor.extract.side_effect = ExtractionError("corrupt")
        orchestrator.select_file(b"%PDF", "a.pdf", "application/pdf")

        assert await orchestrator.submit() is SendOutcome.FAILED
        collaborators.uploader.upload.assert_awaited_once()
        assert await storage.list_messages(thread.id) == []
        assert chat_stream.histories == []


class TestSelection:
    """Tests for choosing an attachment."""

    @pytest.mark.asyncio
    async def test_oversized_file_is_discarded(self, collaborators, notifier, thread):
        """Test that an oversized file is not attached."""
        orchestrator = SendOrchestrator(
            collaborators,
            thread_id=thread.id,
            notifier=notifier,
            preprocessor=AttachmentPreprocessor(max_bytes=4),
        )

        assert orchestrator.select_file(b"too large", "a.txt", "text/plain") is None
        assert orchestrator.attachment is None
        assert notifier.notify.call_args.args[2] == "error"
        collaborators.uploader.upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_unsupported_file_is_discarded(self, orchestrator, notifier):
        """Test that an unsupported file is not attached."""
        assert orchestrator.select_file(b"PK", "a.zip", "application/zip") is None
        assert notifier.notify.call_args.args[0] == "File not attached"

    @pytest.mark.asyncio
    async def test_remove_file(self, orchestrator):
        """Test removing the attachment."""
        orchestrator.select_file(b"hi", "a.txt", "text/plain")
        orchestrator.remove_file()
        assert orchestrator.attachment is None

    @pytest.mark.asyncio
    async def test_select_missing_path(self, orchestrator, notifier, tmp_path):
        """Test selecting a path that does not exist."""
        assert orchestrator.select_path(tmp_path / "missing.txt") is None
        assert notifier.notify.call_args.args[2] == "error"


class TestThreads:
    """Tests for loading threads."""

    @pytest.mark.asyncio
    async def test_open_thread_loads_history(self, collaborators, notifier, storage, thread):
        """Test that opening a thread loads its history."""
        await storage.append_message(thread.id, "user", "Hi")
        await storage.append_message(thread.id, "assistant", "Hello")

        orchestrator = SendOrchestrator(collaborators, notifier=notifier)
        await orchestrator.open_thread(thread.id, thread.name)

        assert orchestrator.transcript.render() == ["user: Hi", "assistant: Hello"]

    @pytest.mark.asyncio
    async def test_refresh_twice_renders_identically(self, orchestrator):
        """Test that refetching renders the same transcript."""
        await orchestrator.send("Hi")
        first = orchestrator.transcript.render()
        await orchestrator.refresh()
        await orchestrator.refresh()
        assert orchestrator.transcript.render() == first

    @pytest.mark.asyncio
    async def test_open_no_thread_clears_transcript(self, orchestrator):
        """Test that opening no thread clears the transcript."""
        await orchestrator.send("Hi")
        await orchestrator.open_thread(None)
        assert len(orchestrator.transcript) == 0
        assert orchestrator.thread_id is None

    @pytest.mark.asyncio
    async def test_failed_open_keeps_current_thread(self, orchestrator, storage, thread):
        """Test that a failed history fetch leaves thread and transcript unchanged."""
        await orchestrator.send("secret in A")
        other = await storage.create_thread("B")
        before = orchestrator.transcript.render()

        with patch.object(
            storage, "list_messages", AsyncMock(side_effect=StoreError("offline"))
        ):
            with pytest.raises(StoreError):
                await orchestrator.open_thread(other.id, other.name)

        assert orchestrator.thread_id == thread.id
        assert orchestrator.transcript.render() == before

    @pytest.mark.asyncio
    async def test_switched_thread_sends_only_its_own_history(
        self, orchestrator, chat_stream, storage
    ):
        """Test that history from the previous thread never reaches the next one."""
        await orchestrator.send("secret in A")
        other = await storage.create_thread("B")

        await orchestrator.open_thread(other.id, other.name)
        await orchestrator.send("hello B")

        assert chat_stream.histories[-1] == [{"role": "user", "content": "hello B"}]

    @pytest.mark.asyncio
    async def test_open_empty_id_means_no_thread(self, orchestrator, collaborators):
        """Test that an empty thread id is treated as no thread."""
        await orchestrator.send("Hi")

        with patch.object(collaborators.store, "list_messages", AsyncMock()) as fetch:
            await orchestrator.open_thread("")

        fetch.assert_not_called()
        assert orchestrator.thread_id is None
        assert len(orchestrator.transcript) == 0
