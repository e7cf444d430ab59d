"""HTTP client for the threadchat API.

One ``ChatApiClient`` satisfies every collaborator the send orchestrator
needs: conversation store, uploader, text extraction, vision, image
generation and the streamed chat endpoint.
"""

from datetime import datetime, timezone
from typing import AsyncIterator

import httpx

from ..errors import (
    CompletionError,
    ExtractionError,
    ImageGenerationError,
    StoreError,
    ThreadNotFound,
    UnsupportedMediaType,
    UploadError,
)
from ..logging_config import get_logger
from ..models import FileAttachment, Message, Role, StoredFile, Thread

logger = get_logger(__name__)

# The assistant stream has no read deadline; cancellation is user-driven
STREAM_TIMEOUT = httpx.Timeout(10.0, read=None)


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        return str(data.get("detail") or data.get("error") or data)
    return str(data)


def _parse_ts(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    ts = datetime.fromisoformat(value)
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def _thread_from_json(data: dict) -> Thread:
    return Thread(
        id=data["id"],
        name=data["name"],
        created_at=_parse_ts(data.get("created_at")),
    )


def _file_from_json(data: dict) -> StoredFile:
    return StoredFile(
        id=data["id"],
        thread_id=data["thread_id"],
        name=data["name"],
        url=data["url"],
        media_type=data["media_type"],
        uploaded_at=_parse_ts(data.get("uploaded_at")),
    )


class ChatApiClient:
    """Async client for the threadchat HTTP API."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ChatApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _store_request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise StoreError(f"{method} {url} failed: {e}") from e

        if response.status_code == 404 and "/threads/" in url:
            raise ThreadNotFound(url.split("/threads/")[1].split("/")[0])
        if response.is_error:
            raise StoreError(f"{method} {url} failed: {_error_detail(response)}")
        return response

    # Threads
    async def create_thread(self, name: str) -> Thread:
        response = await self._store_request("POST", "/api/threads", json={"name": name})
        return _thread_from_json(response.json())

    async def list_threads(self) -> list[Thread]:
        response = await self._store_request("GET", "/api/threads")
        return [_thread_from_json(item) for item in response.json()]

    async def rename_thread(self, thread_id: str, name: str) -> Thread:
        response = await self._store_request(
            "PATCH", f"/api/threads/{thread_id}", json={"name": name}
        )
        return _thread_from_json(response.json())

    async def delete_thread(self, thread_id: str) -> None:
        await self._store_request("DELETE", f"/api/threads/{thread_id}")

    # Messages
    async def list_messages(self, thread_id: str) -> list[Message]:
        response = await self._store_request("GET", f"/api/threads/{thread_id}/messages")
        return [Message.from_record(item) for item in response.json()]

    async def append_message(
        self,
        thread_id: str,
        role: Role,
        content: str,
        attachment: FileAttachment | None = None,
    ) -> Message:
        response = await self._store_request(
            "POST",
            f"/api/threads/{thread_id}/messages",
            json={
                "role": role,
                "content": content,
                "file": attachment.to_dict() if attachment else None,
            },
        )
        return Message.from_record(response.json())

    # Files
    async def list_thread_files(self, thread_id: str) -> list[StoredFile]:
        response = await self._store_request("GET", f"/api/threads/{thread_id}/files")
        return [_file_from_json(item) for item in response.json()]

    async def delete_document(self, file_id: str) -> None:
        await self._store_request("DELETE", f"/api/documents/{file_id}")

    async def upload(self, data: bytes, name: str, media_type: str, thread_id: str) -> str:
        """Upload a blob; returns its public URL."""
        try:
            response = await self._client.post(
                "/api/upload",
                files={"file": (name, data, media_type)},
                data={"thread_id": thread_id},
            )
        except httpx.HTTPError as e:
            raise UploadError(f"Failed to upload file: {e}") from e

        if response.is_error:
            raise UploadError(_error_detail(response))
        return response.json()["url"]

    async def extract(
        self, data: bytes, media_type: str, filename: str | None = None
    ) -> str:
        """Remote text extraction."""
        try:
            response = await self._client.post(
                "/api/read-file",
                files={"file": (filename or "upload", data, media_type)},
            )
        except httpx.HTTPError as e:
            raise ExtractionError(f"Failed to read file: {e}") from e

        if response.status_code == 415:
            raise UnsupportedMediaType(media_type, filename)
        if response.is_error:
            raise ExtractionError(_error_detail(response))
        return response.json()["text"]

    async def analyze_image(
        self, image_base64: str, question: str, media_type: str = "image/jpeg"
    ) -> str:
        try:
            response = await self._client.post(
                "/api/vision",
                json={
                    "image_base64": image_base64,
                    "user_query": question,
                    "media_type": media_type,
                },
            )
        except httpx.HTTPError as e:
            raise CompletionError(f"Failed to process image: {e}") from e

        if response.is_error:
            raise CompletionError(_error_detail(response))
        return response.json()["result"]

    async def generate(self, prompt: str) -> str:
        try:
            response = await self._client.post("/api/image", json={"prompt": prompt})
        except httpx.HTTPError as e:
            raise ImageGenerationError(f"Failed to generate image: {e}") from e

        if response.is_error:
            raise ImageGenerationError(_error_detail(response))
        return response.json()["url"]

    async def stream_chat(self, history: list[dict]) -> AsyncIterator[bytes]:
        """POST the history to the chat endpoint and yield raw SSE bytes."""
        try:
            async with self._client.stream(
                "POST",
                "/api/chat",
                json={"messages": history},
                timeout=STREAM_TIMEOUT,
            ) as response:
                if response.is_error:
                    await response.aread()
                    raise CompletionError(
                        f"Chat API error: {_error_detail(response)}"
                    )
                async for chunk in response.aiter_bytes():
                    yield chunk
        except httpx.HTTPError as e:
            logger.warning("Chat stream transport error: %s", e)
            raise CompletionError(f"Chat stream failed: {e}") from e
