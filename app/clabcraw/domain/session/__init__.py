"""Session domain - life cycle state machine and normalized game snapshots."""
from clabcraw.domain.session.client import SessionClient
from clabcraw.domain.session.models import (
    ActionOption,
    ActionType,
    AgentStatus,
    Card,
    GameSnapshot,
    JoinResponse,
    SessionOutcome,
    SessionResult,
    normalize_state,
)
from clabcraw.domain.session.state import InvalidTransitionError, Session, SessionPhase

__all__ = [
    "ActionOption",
    "ActionType",
    "AgentStatus",
    "Card",
    "GameSnapshot",
    "InvalidTransitionError",
    "JoinResponse",
    "Session",
    "SessionClient",
    "SessionOutcome",
    "SessionPhase",
    "SessionResult",
    "normalize_state",
]
