"""Send lifecycle data models."""

from dataclasses import dataclass
from enum import Enum


class SendPhase(str, Enum):
    """Phases of the message-send orchestrator."""

    IDLE = "idle"
    AWAITING_THREAD = "awaiting_thread"
    SENDING = "sending"
    STREAMING = "streaming"
    CANCELLING = "cancelling"


class SendOutcome(str, Enum):
    """Result of one call to ``SendOrchestrator.send``."""

    IGNORED = "ignored"  # nothing to send
    REJECTED = "rejected"  # another send is in flight
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class Intent(str, Enum):
    """What the user is asking for."""

    CHAT = "chat"
    IMAGE_GENERATION = "image_generation"


@dataclass(frozen=True)
class Status:
    """Status line shown next to the chat."""

    status: str  # "processing" | "connected"
    message: str


PROCESSING = Status("processing", "Processing request...")
READY = Status("connected", "System ready")
