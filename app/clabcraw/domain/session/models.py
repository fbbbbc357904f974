"""
Session models - normalized game snapshots and API response shapes.

Snapshots are immutable; derived fields (pot odds, effective stack,
time to deadline) are computed once when the snapshot is built.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from clabcraw.domain.transport.engine import UNCHANGED, Unchanged

FINISHED_STATUSES = ("finished", "complete")


class ActionType(str, Enum):
    """Move names the platform accepts."""

    FOLD = "fold"
    CHECK = "check"
    CALL = "call"
    RAISE = "raise"
    ALL_IN = "all_in"


class SessionOutcome(str, Enum):
    """Result of a finished session from this agent's point of view."""

    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Card:
    """Card as sent by the platform, e.g. 'Aspades' or '10hearts'."""

    rank: str
    suit: str

    def __str__(self) -> str:
        return f"{self.rank}{self.suit}"

    @classmethod
    def parse(cls, value: Any) -> "Card":
        """Parse a card string or {rank, suit} mapping; junk becomes '??'."""
        if isinstance(value, Mapping) and value.get("rank"):
            return cls(rank=str(value["rank"]), suit=str(value.get("suit", "?")))
        if not isinstance(value, str) or len(value) < 2:
            return cls(rank="?", suit="?")
        rank = "10" if value.startswith("10") else value[0]
        return cls(rank=rank, suit=value[len(rank):])


@dataclass(frozen=True)
class ActionOption:
    """Availability and sizing of one move in the current state."""

    available: bool
    amount: float | None = None
    min: float | None = None
    max: float | None = None


def normalize_actions(valid_actions: Mapping[str, Any] | None) -> Mapping[str, ActionOption]:
    """
    Flatten the raw valid_actions map so every known move has an entry.

    Raw:    {"fold": {}, "call": {"amount": 100}, "raise": {"min": 200, "max": 800}}
    Result: {"fold": available, "check": unavailable, "call": amount 100, ...}
    """
    valid_actions = valid_actions or {}
    result: dict[str, ActionOption] = {}
    for action in ActionType:
        details = valid_actions.get(action.value)
        if details is None and action.value not in valid_actions:
            result[action.value] = ActionOption(available=False)
            continue
        details = details if isinstance(details, Mapping) else {}
        result[action.value] = ActionOption(
            available=True,
            amount=details.get("amount"),
            min=details.get("min", details.get("min_amount")),
            max=details.get("max", details.get("max_amount")),
        )
    return MappingProxyType(result)


def _seconds_until(deadline: str | None, now: datetime | None = None) -> float | None:
    if not deadline:
        return None
    try:
        when = datetime.fromisoformat(deadline.replace("Z", "+00:00"))
    except ValueError:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return (when - now).total_seconds()


@dataclass(frozen=True)
class GameSnapshot:
    """
    Normalized view of one state payload.

    This is what the caller's decide() callback receives.
    """

    session_id: str | None
    hand_number: int = 1

    # Turn & status
    is_your_turn: bool = False
    is_finished: bool = False
    street: str = "preflop"

    # Cards
    hole: tuple[Card, ...] = ()
    board: tuple[Card, ...] = ()

    # Stacks & pot
    pot: float = 0
    your_stack: float = 0
    opponent_stack: float = 0

    # Seconds until the move deadline (negative = past)
    move_deadline: float | None = None

    actions: Mapping[str, ActionOption] = field(default_factory=lambda: normalize_actions(None))

    # Derived at construction
    pot_odds: float = 0.0
    effective_stack: float = 0

    # Populated when finished
    result: str | None = None
    outcome: str | None = None
    opponent_cards: tuple[Card, ...] | None = None
    winning_hand: str | None = None

    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def available_actions(self) -> list[str]:
        return [name for name, option in self.actions.items() if option.available]

    @classmethod
    def from_result(cls, session_id: str, result: "SessionResult | None", address: str) -> "GameSnapshot":
        """
        Synthesize a terminal snapshot from a historical result record.

        Used when the live session was purged before its final state was read.
        """
        if result is None:
            return cls(
                session_id=session_id,
                is_finished=True,
                street="complete",
                result=SessionOutcome.UNKNOWN.value,
                outcome=SessionOutcome.UNKNOWN.value,
            )

        you_won = bool(result.winner) and result.winner.lower() == address.lower()
        if result.outcome == "draw":
            outcome = SessionOutcome.DRAW
        elif you_won:
            outcome = SessionOutcome.WIN
        else:
            outcome = SessionOutcome.LOSS

        your_stack = result.winner_stack if you_won else result.loser_stack
        opponent_stack = result.loser_stack if you_won else result.winner_stack
        return cls(
            session_id=session_id,
            is_finished=True,
            street="complete",
            your_stack=your_stack or 0,
            opponent_stack=opponent_stack or 0,
            effective_stack=min(your_stack or 0, opponent_stack or 0),
            result=outcome.value,
            outcome=result.outcome or SessionOutcome.UNKNOWN.value,
            raw=result.model_dump(),
        )


def normalize_state(raw: Any, now: datetime | None = None) -> "GameSnapshot | Unchanged":
    """Convert a raw state payload into a GameSnapshot, or UNCHANGED."""
    if raw is UNCHANGED or not isinstance(raw, Mapping) or raw.get("unchanged"):
        return UNCHANGED

    valid_actions = raw.get("valid_actions")
    if not isinstance(valid_actions, Mapping):
        valid_actions = {}
    pot = raw.get("pot") or 0
    your_stack = raw.get("your_stack") or 0
    opponent_stack = raw.get("opponent_stack") or 0

    call = valid_actions.get("call")
    call_amount = (call.get("amount") or 0) if isinstance(call, Mapping) else 0
    pot_odds = call_amount / (pot + call_amount) if call_amount > 0 else 0.0

    opponent_cards = raw.get("opponent_cards")
    status = raw.get("game_status") or raw.get("session_status")

    return GameSnapshot(
        session_id=raw.get("session_id") or raw.get("game_id"),
        hand_number=raw.get("hand_number") or 1,
        is_your_turn=raw.get("is_your_turn") is True,
        is_finished=status in FINISHED_STATUSES,
        street=raw.get("current_street") or "preflop",
        hole=tuple(Card.parse(c) for c in raw.get("your_cards") or []),
        board=tuple(Card.parse(c) for c in raw.get("community_cards") or []),
        pot=pot,
        your_stack=your_stack,
        opponent_stack=opponent_stack,
        move_deadline=_seconds_until(raw.get("move_deadline"), now),
        actions=normalize_actions(valid_actions),
        pot_odds=pot_odds,
        effective_stack=min(your_stack, opponent_stack),
        result=raw.get("result"),
        outcome=raw.get("outcome"),
        opponent_cards=tuple(Card.parse(c) for c in opponent_cards) if opponent_cards else None,
        winning_hand=raw.get("winning_hand"),
        raw=MappingProxyType(dict(raw)),
    )


# =============================================================================
# API response models
# =============================================================================


class _ApiModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class JoinResponse(_ApiModel):
    """Response of POST /v1/sessions/join."""

    session_id: str | None = Field(
        default=None, validation_alias=AliasChoices("session_id", "game_id")
    )
    status: str = Field(default="queued", description="queued or active")
    queue_position: int | None = None


class ActiveSession(_ApiModel):
    session_id: str = Field(validation_alias=AliasChoices("session_id", "game_id"))


class AgentStatus(_ApiModel):
    """Response of GET /v1/agent/:address/status."""

    status: str = Field(description="idle, queued, active or paused")
    active_sessions: list[ActiveSession] = Field(
        default_factory=list, validation_alias=AliasChoices("active_sessions", "active_games")
    )
    queue_position: int | None = None
    pause_mode: str | None = None
    message: str | None = None


class SessionResult(_ApiModel):
    """Historical terminal record, available after the live session is purged."""

    winner: str | None = None
    loser: str | None = None
    outcome: str | None = None
    winner_stack: float | None = None
    loser_stack: float | None = None


class ClaimableBalance(_ApiModel):
    claimable_balance: int = 0
    claimable_usdc: str = "0.00"


class TipReceipt(_ApiModel):
    donor: str
    amount_usdc: str
    tx: str | None = None
