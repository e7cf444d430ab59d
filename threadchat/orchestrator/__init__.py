from .collaborators import (
    Collaborators,
    IChatStream,
    IConversationStore,
    INotifier,
    IUploader,
    IVision,
    LoggingNotifier,
)
from .intents import IMAGE_GENERATION_RE, IntentClassifier, classify_intent
from .orchestrator import CancelHandle, SendOrchestrator
from .state import TRANSITIONS, PendingSend, SendState
from .transcript import Transcript

__all__ = [
    "Collaborators",
    "IChatStream",
    "IConversationStore",
    "INotifier",
    "IUploader",
    "IVision",
    "LoggingNotifier",
    "IMAGE_GENERATION_RE",
    "IntentClassifier",
    "classify_intent",
    "CancelHandle",
    "SendOrchestrator",
    "TRANSITIONS",
    "PendingSend",
    "SendState",
    "Transcript",
]
