"""In-memory transcript owned by the send orchestrator."""

from typing import Iterable

from ..models import Message, Provisional


class Transcript:
    """Ordered messages of the current thread.

    Mutated only through ``append_provisional``, ``patch``, ``discard`` and
    ``replace``.
    """

    def __init__(self, messages: Iterable[Message] | None = None):
        self._messages: list[Message] = [
            m for m in (messages or []) if not m.is_provisional
        ]

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def committed(self) -> list[Message]:
        """Messages the store has acknowledged."""
        return [m for m in self._messages if not m.is_provisional]

    def provisional(self) -> list[Message]:
        return [m for m in self._messages if m.is_provisional]

    def append_provisional(self, message: Message) -> None:
        if not message.is_provisional:
            raise ValueError("Only provisional messages can be appended locally")
        self._messages.append(message)

    def patch(self, message_id: Provisional, content: str) -> bool:
        """Replace the content of one provisional non-user message."""
        for index, message in enumerate(self._messages):
            if message.role == "user":
                continue
            if message.id == message_id:
                self._messages[index] = message.with_content(content)
                return True
        return False

    def discard(self, message_id: Provisional) -> bool:
        before = len(self._messages)
        self._messages = [m for m in self._messages if m.id != message_id]
        return len(self._messages) != before

    def replace(self, messages: Iterable[Message]) -> None:
        """Adopt the store's list; live provisional entries stay at the end."""
        durable = [m for m in messages if not m.is_provisional]
        self._messages = durable + self.provisional()

    def clear(self) -> None:
        self._messages = []

    def render(self) -> list[str]:
        """Plain-text view of the transcript."""
        lines = []
        for message in self._messages:
            if message.is_image_url:
                body = f"[image] {message.content.strip()}"
            else:
                body = message.content
            if message.attachment and message.role == "user":
                body = f"[{message.attachment.name}] {body}"
            lines.append(f"{message.role}: {body}")
        return lines
