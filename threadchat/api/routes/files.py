"""File, extraction, vision and image-generation API routes."""

from pydantic import BaseModel
from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from ...app import Application
from ...attachments import normalize_media_type
from ...config import MAX_ATTACHMENT_BYTES
from ...errors import (
    CompletionError,
    ExtractionError,
    ImageGenerationError,
    UnsupportedMediaType,
    UploadError,
)
from ...logging_config import get_logger
from ...models import StoredFile

logger = get_logger(__name__)


class UploadResponse(BaseModel):
    """Response model for an uploaded file."""

    id: str
    url: str


class ReadFileResponse(BaseModel):
    text: str


class VisionRequest(BaseModel):
    """Request model for an image question."""

    image_base64: str = ""
    user_query: str = ""
    media_type: str = "image/jpeg"


class VisionResponse(BaseModel):
    result: str


class ImageRequest(BaseModel):
    prompt: str = ""


class ImageResponse(BaseModel):
    url: str


def create_files_router(app: Application) -> APIRouter:
    """Create files router."""
    router = APIRouter(prefix="/api", tags=["files"])

    @router.post("/upload", response_model=UploadResponse)
    async def upload(
        file: UploadFile | None = File(None),
        thread_id: str | None = Form(None),
    ) -> dict:
        """Store a blob for a thread and return its public URL."""
        if file is None or not thread_id:
            raise HTTPException(status_code=400, detail="File and thread ID are required")

        data = await file.read()
        if len(data) > MAX_ATTACHMENT_BYTES:
            raise HTTPException(status_code=413, detail="File too large")
        if await app.storage.get_thread(thread_id) is None:
            raise HTTPException(status_code=404, detail=f"Thread not found: {thread_id}")

        name = file.filename or "upload"
        media_type = normalize_media_type(file.content_type, name)
        try:
            blob = await app.file_store.store(data, name, media_type)
        except UploadError as e:
            logger.error("Upload failed: %s", e, extra={"thread_id": thread_id, "route": "/api/upload"})
            raise HTTPException(status_code=500, detail=str(e))

        await app.storage.save_file(
            StoredFile(
                id=blob.id,
                thread_id=thread_id,
                name=name,
                url=blob.url,
                media_type=media_type,
            )
        )
        return {"id": blob.id, "url": blob.url}

    @router.post("/read-file", response_model=ReadFileResponse)
    async def read_file(file: UploadFile | None = File(None)) -> dict:
        """Extract text from a document."""
        if file is None:
            raise HTTPException(status_code=400, detail="No file uploaded")

        data = await file.read()
        try:
            text = await app.extractor.extract(
                data, file.content_type or "", file.filename
            )
        except UnsupportedMediaType as e:
            raise HTTPException(status_code=415, detail=str(e))
        except ExtractionError as e:
            logger.error("Extraction failed: %s", e, extra={"route": "/api/read-file"})
            raise HTTPException(status_code=500, detail=str(e))
        return {"text": text}

    @router.post("/vision", response_model=VisionResponse)
    async def vision(request: VisionRequest) -> dict:
        """Answer a question about an inline image."""
        if not request.image_base64 or not request.user_query:
            raise HTTPException(status_code=400, detail="Image and query are required")

        try:
            result = await app.llm.analyze_image(
                request.image_base64, request.user_query, request.media_type
            )
        except CompletionError as e:
            logger.error("Vision failed: %s", e, extra={"route": "/api/vision"})
            raise HTTPException(status_code=500, detail=str(e))
        return {"result": result}

    @router.post("/image", response_model=ImageResponse)
    async def generate_image(request: ImageRequest) -> dict:
        """Generate an image from a prompt."""
        if not request.prompt.strip():
            raise HTTPException(status_code=400, detail="Prompt is required")
        if app.images is None:
            raise HTTPException(status_code=503, detail="Image generation is not configured")

        try:
            url = await app.images.generate(request.prompt)
        except ImageGenerationError as e:
            logger.error("Image generation failed: %s", e, extra={"route": "/api/image"})
            raise HTTPException(status_code=500, detail=str(e))
        return {"url": url}

    @router.delete("/documents/{file_id}")
    async def delete_document(file_id: str) -> dict:
        """Delete a stored file, blob and row."""
        stored = await app.storage.get_file(file_id)
        if stored is None:
            raise HTTPException(status_code=404, detail=f"File not found: {file_id}")

        await app.file_store.delete(stored.id)
        await app.storage.delete_file(stored.id)
        return {"success": True}

    return router
