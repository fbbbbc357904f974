"""
Session life cycle.

    idle -> queued -> matched -> playing -> finished
              |
              +-> idle   (queue cancelled)

Phases only move forward, except the cancellation edge. Maintenance pauses
do not change the phase; the caller waits and polls again.
"""
from dataclasses import dataclass
from enum import Enum

from clabcraw.domain.session.models import GameSnapshot
from clabcraw.logging_config import get_logger, log_phase_change

logger = get_logger(__name__)


class SessionPhase(str, Enum):
    IDLE = "idle"
    QUEUED = "queued"
    MATCHED = "matched"
    PLAYING = "playing"
    FINISHED = "finished"


PHASE_ORDER = [
    SessionPhase.IDLE,
    SessionPhase.QUEUED,
    SessionPhase.MATCHED,
    SessionPhase.PLAYING,
    SessionPhase.FINISHED,
]


class InvalidTransitionError(RuntimeError):
    """A phase change that would move a session backwards."""


@dataclass
class Session:
    """The calling process's view of one session. Never persisted."""

    kind: str | None = None
    session_id: str | None = None
    phase: SessionPhase = SessionPhase.IDLE

    # Latest observed state
    is_your_turn: bool = False
    pot: float = 0
    your_stack: float = 0
    opponent_stack: float = 0
    result: str | None = None

    def can_advance(self, phase: SessionPhase) -> bool:
        if phase == self.phase:
            return True
        if self.phase == SessionPhase.QUEUED and phase == SessionPhase.IDLE:
            return True
        return PHASE_ORDER.index(phase) > PHASE_ORDER.index(self.phase)

    def advance(self, phase: SessionPhase) -> None:
        """Move to `phase`; re-entering the current phase is a no-op."""
        if phase == self.phase:
            return
        if not self.can_advance(phase):
            raise InvalidTransitionError(f"Cannot move session from {self.phase.value} to {phase.value}")
        previous = self.phase
        self.phase = phase
        log_phase_change(logger, self.session_id, previous.value, phase.value)

    def observe(self, snapshot: GameSnapshot) -> None:
        """Record the latest snapshot."""
        self.is_your_turn = snapshot.is_your_turn
        self.pot = snapshot.pot
        self.your_stack = snapshot.your_stack
        self.opponent_stack = snapshot.opponent_stack
        if snapshot.is_finished:
            self.result = snapshot.result
            self.advance(SessionPhase.FINISHED)
