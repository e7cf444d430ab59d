"""Thread, message and thread-file API routes."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException

from ...app import Application
from ...errors import ThreadNotFound
from ...logging_config import get_logger
from ...models import FileAttachment, Message, StoredFile, Thread

logger = get_logger(__name__)

ROLES = ("user", "assistant", "system")


class ThreadCreate(BaseModel):
    name: str = "New Chat"


class ThreadRename(BaseModel):
    name: str = ""


class ThreadResponse(BaseModel):
    """Response model for a thread."""

    id: str
    name: str
    created_at: datetime


class MessageCreate(BaseModel):
    """Request model for appending a message."""

    role: str | None = None
    content: str | None = None
    file: dict[str, Any] | None = None


class MessageResponse(BaseModel):
    """Response model for a stored message."""

    id: str
    thread_id: str | None
    role: str
    content: str
    file: dict[str, Any] | None
    created_at: datetime


class FileResponse(BaseModel):
    """Response model for a file uploaded in a thread."""

    id: str
    thread_id: str
    name: str
    url: str
    media_type: str
    uploaded_at: datetime


def _thread_dict(thread: Thread) -> dict:
    return {"id": thread.id, "name": thread.name, "created_at": thread.created_at}


def _message_dict(message: Message) -> dict:
    return {
        "id": str(message.id),
        "thread_id": message.thread_id,
        "role": message.role,
        "content": message.content,
        "file": message.attachment.to_dict() if message.attachment else None,
        "created_at": message.timestamp,
    }


def _file_dict(stored: StoredFile) -> dict:
    return {
        "id": stored.id,
        "thread_id": stored.thread_id,
        "name": stored.name,
        "url": stored.url,
        "media_type": stored.media_type,
        "uploaded_at": stored.uploaded_at,
    }


def create_threads_router(app: Application) -> APIRouter:
    """Create threads router."""
    router = APIRouter(prefix="/api", tags=["threads"])

    async def require_thread(thread_id: str) -> Thread:
        thread = await app.storage.get_thread(thread_id)
        if thread is None:
            raise HTTPException(status_code=404, detail=f"Thread not found: {thread_id}")
        return thread

    @router.get("/threads", response_model=list[ThreadResponse])
    async def list_threads() -> list[dict]:
        """List threads, newest first."""
        return [_thread_dict(t) for t in await app.storage.list_threads()]

    @router.post("/threads", response_model=ThreadResponse)
    async def create_thread(request: ThreadCreate) -> dict:
        thread = await app.storage.create_thread(request.name.strip() or "New Chat")
        logger.info("Thread created", extra={"thread_id": thread.id, "route": "/api/threads"})
        return _thread_dict(thread)

    @router.patch("/threads/{thread_id}", response_model=ThreadResponse)
    async def rename_thread(thread_id: str, request: ThreadRename) -> dict:
        name = request.name.strip()
        if not name:
            raise HTTPException(status_code=400, detail="Name is required")
        try:
            thread = await app.storage.rename_thread(thread_id, name)
        except ThreadNotFound as e:
            raise HTTPException(status_code=404, detail=str(e))
        return _thread_dict(thread)

    @router.delete("/threads/{thread_id}")
    async def delete_thread(thread_id: str) -> dict:
        """Delete a thread with its messages, file rows and blobs."""
        await require_thread(thread_id)

        for stored in await app.storage.list_thread_files(thread_id):
            await app.file_store.delete(stored.id)
        await app.storage.delete_thread(thread_id)
        logger.info("Thread deleted", extra={"thread_id": thread_id, "route": "/api/threads"})
        return {"success": True}

    @router.get("/threads/{thread_id}/messages", response_model=list[MessageResponse])
    async def list_messages(thread_id: str) -> list[dict]:
        """Ordered history of a thread."""
        await require_thread(thread_id)
        return [_message_dict(m) for m in await app.storage.list_messages(thread_id)]

    @router.post("/threads/{thread_id}/messages", response_model=MessageResponse)
    async def append_message(thread_id: str, request: MessageCreate) -> dict:
        if not request.role or not request.content:
            raise HTTPException(status_code=400, detail="Role and content are required")
        if request.role not in ROLES:
            raise HTTPException(status_code=400, detail=f"Invalid role: {request.role}")

        attachment = FileAttachment.from_dict(request.file) if request.file else None
        try:
            message = await app.storage.append_message(
                thread_id, request.role, request.content, attachment
            )
        except ThreadNotFound as e:
            raise HTTPException(status_code=404, detail=str(e))
        return _message_dict(message)

    @router.get("/threads/{thread_id}/files", response_model=list[FileResponse])
    async def list_thread_files(thread_id: str) -> list[dict]:
        """Files uploaded in a thread."""
        await require_thread(thread_id)
        return [_file_dict(f) for f in await app.storage.list_thread_files(thread_id)]

    return router
