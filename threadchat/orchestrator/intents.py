"""Intent classification for outgoing messages."""

import re
from typing import Callable

from ..models import Intent

IntentClassifier = Callable[[str, bool], Intent]

IMAGE_GENERATION_RE = re.compile(
    r"\b(generate|create)\b.*\bimages?\b.*\bof\b", re.IGNORECASE | re.DOTALL
)


def classify_intent(text: str, has_attachment: bool = False) -> Intent:
    """Default classifier: "generate/create ... image(s) ... of" without an
    attachment asks for image generation, everything else is chat."""
    if not has_attachment and IMAGE_GENERATION_RE.search(text.strip()):
        return Intent.IMAGE_GENERATION
    return Intent.CHAT
