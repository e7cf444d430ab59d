"""FastAPI application setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from ..app import Application
from .routes import chat, files, threads


# Global application instance
_app: Application | None = None


def get_app() -> Application:
    """Get the global application instance."""
    global _app
    if not _app:
        _app = Application()
    return _app


def create_fastapi_app(application: Application | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    application = application or get_app()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifespan."""
        await application.start()
        yield
        await application.stop()

    fastapi_app = FastAPI(
        title="Threadchat API",
        description="Chat, attachments and conversation history",
        version="0.1.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=application.settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    fastapi_app.include_router(chat.create_chat_router(application))
    fastapi_app.include_router(files.create_files_router(application))
    fastapi_app.include_router(threads.create_threads_router(application))

    @fastapi_app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    # Uploaded blobs
    upload_dir = application.settings.upload_dir
    upload_dir.mkdir(parents=True, exist_ok=True)
    fastapi_app.mount("/files", StaticFiles(directory=upload_dir), name="files")

    return fastapi_app
