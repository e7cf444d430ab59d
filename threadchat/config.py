"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"
LOGS_DIR = PROJECT_ROOT / "logs"
UPLOADS_DIR = DATA_DIR / "uploads"
DEFAULT_DB_PATH = DATA_DIR / "threadchat.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DEFAULT_ANTHROPIC_MODEL = "claude-3-5-sonnet-20241022"
DEFAULT_IMAGE_MODEL = "dall-e-3"

# Limits applied to attachments and prompts
MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024
MAX_EXTRACTED_CHARS = 6000
SPREADSHEET_PREVIEW_ROWS = 20
THREAD_NAME_CHARS = 50


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def resolve_upload_dir(env_value: PathLike | None = None) -> Path:
    """Resolve UPLOAD_DIR to an absolute directory path."""
    if not env_value:
        return UPLOADS_DIR

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _split_origins(value: str | None = None) -> list[str]:
    if not value:
        return ["http://localhost:3000", "http://localhost:5173"]
    return [origin.strip() for origin in value.split(",") if origin.strip()]


@dataclass
class Settings:
    """Runtime settings read from the environment."""

    api_host: str = "localhost"
    api_port: int = 8000
    db_path: PathLike = DEFAULT_DB_PATH
    upload_dir: Path = UPLOADS_DIR
    public_base_url: str = "http://localhost:8000"
    anthropic_model: str = DEFAULT_ANTHROPIC_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    cors_origins: list[str] = field(default_factory=_split_origins)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        api_host = os.getenv("API_HOST", "localhost")
        api_port = int(os.getenv("API_PORT", "8000"))
        return cls(
            api_host=api_host,
            api_port=api_port,
            db_path=resolve_db_path(os.getenv("DATABASE_URL")),
            upload_dir=resolve_upload_dir(os.getenv("UPLOAD_DIR")),
            public_base_url=os.getenv(
                "PUBLIC_BASE_URL", f"http://{api_host}:{api_port}"
            ).rstrip("/"),
            anthropic_model=os.getenv("ANTHROPIC_MODEL", DEFAULT_ANTHROPIC_MODEL),
            image_model=os.getenv("OPENAI_IMAGE_MODEL", DEFAULT_IMAGE_MODEL),
            cors_origins=_split_origins(os.getenv("CORS_ORIGINS")),
        )
