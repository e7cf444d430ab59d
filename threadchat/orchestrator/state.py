"""Finite-state model of one chat composer's send lifecycle."""

from dataclasses import dataclass

from ..errors import IllegalTransition
from ..models import SelectedFile, SendPhase

TRANSITIONS: dict[SendPhase, frozenset[SendPhase]] = {
    SendPhase.IDLE: frozenset({SendPhase.AWAITING_THREAD, SendPhase.SENDING}),
    SendPhase.AWAITING_THREAD: frozenset({SendPhase.SENDING, SendPhase.IDLE}),
    SendPhase.SENDING: frozenset({SendPhase.STREAMING, SendPhase.IDLE}),
    SendPhase.STREAMING: frozenset({SendPhase.CANCELLING, SendPhase.IDLE}),
    SendPhase.CANCELLING: frozenset({SendPhase.IDLE}),
}


@dataclass(frozen=True)
class PendingSend:
    """A send buffered while its thread is being created."""

    text: str
    attachment: SelectedFile | None


class SendState:
    """Current phase plus the pending-send buffer.

    The buffer can only be filled when entering ``AWAITING_THREAD`` and only
    be taken once.
    """

    def __init__(self):
        self._phase = SendPhase.IDLE
        self._pending: PendingSend | None = None

    @property
    def phase(self) -> SendPhase:
        return self._phase

    @property
    def is_idle(self) -> bool:
        return self._phase is SendPhase.IDLE

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def transition(self, target: SendPhase) -> None:
        if target not in TRANSITIONS[self._phase]:
            raise IllegalTransition(f"{self._phase.value} -> {target.value}")
        self._phase = target

    def await_thread(self, pending: PendingSend) -> None:
        """Enter AWAITING_THREAD holding the send to replay."""
        self.transition(SendPhase.AWAITING_THREAD)
        self._pending = pending

    def take_pending(self) -> PendingSend:
        if self._pending is None:
            raise IllegalTransition("no pending send to take")
        pending, self._pending = self._pending, None
        return pending

    def reset(self) -> None:
        """Return to IDLE from any phase, dropping a pending send."""
        self._pending = None
        if self._phase is not SendPhase.IDLE:
            self.transition(SendPhase.IDLE)
