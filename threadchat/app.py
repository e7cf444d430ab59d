"""Application bootstrap and lifecycle management."""

import os
from typing import Protocol

from .attachments import ITextExtractor, TextExtractor
from .config import Settings
from .files import FileStore, IFileStore
from .llm import IImageGenerator, ILLMProvider, ImageGenerator, LLMProvider
from .logging_config import get_logger
from .storage import IStorage, Storage

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    settings: Settings

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...


class Application:
    """Main application bootstrap.

    Providers can be injected (tests pass fakes); anything not injected is
    built from the settings in ``start()``.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        llm: ILLMProvider | None = None,
        image_generator: IImageGenerator | None = None,
        extractor: ITextExtractor | None = None,
        file_store: IFileStore | None = None,
    ):
        self.settings = settings or Settings.from_env()

        # Components (initialized in start() unless injected)
        self._storage: IStorage | None = None
        self._file_store = file_store
        self._extractor = extractor
        self._llm = llm
        self._images = image_generator

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Storage (no dependencies)
        self._storage = Storage(self.settings.db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. File store for uploaded blobs
        if self._file_store is None:
            self._file_store = FileStore(
                self.settings.upload_dir, self.settings.public_base_url
            )
        logger.info("File store initialized")

        # 3. Text extraction (no dependencies)
        if self._extractor is None:
            self._extractor = TextExtractor()

        # 4. LLM provider (completion and vision)
        if self._llm is None:
            self._llm = LLMProvider(model=self.settings.anthropic_model)
        logger.info("LLM provider initialized")

        # 5. Image generation is optional
        if self._images is None and os.getenv("OPENAI_API_KEY"):
            self._images = ImageGenerator(model=self.settings.image_model)
        if self._images is None:
            logger.warning("OPENAI_API_KEY not set; image generation disabled")

        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._storage:
            await self._storage.close()
            self._storage = None
            logger.info("Storage closed")

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def file_store(self) -> IFileStore:
        if not self._file_store:
            raise RuntimeError("Application not started")
        return self._file_store

    @property
    def extractor(self) -> ITextExtractor:
        if not self._extractor:
            raise RuntimeError("Application not started")
        return self._extractor

    @property
    def llm(self) -> ILLMProvider:
        """Get LLM provider instance."""
        if not self._llm:
            raise RuntimeError("Application not started")
        return self._llm

    @property
    def images(self) -> IImageGenerator | None:
        """Image generator, or None when not configured."""
        return self._images
