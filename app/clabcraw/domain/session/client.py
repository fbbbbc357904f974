"""
SessionClient - high-level session life cycle against the Clabcraw platform.

Wraps every platform call into a coroutine, signs privileged requests and
keeps the local Session phase in step with what the server reports:

    async with SessionClient(settings, payer=payer) as client:
        await client.join("poker")
        session_id = await client.await_match()
        final = await client.play_loop(session_id, decide)

Retriable failures are absorbed by the RequestEngine. Anything it gives up
on surfaces here unchanged; callers retry at the session level (re-join),
not per call.
"""
import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, Mapping, TypeVar, Union

from pydantic import BaseModel, ValidationError

from clabcraw.config import Settings
from clabcraw.domain.auth.signer import STATE_READ_PAYLOAD, MessageSigner
from clabcraw.domain.session.models import (
    AgentStatus,
    ClaimableBalance,
    GameSnapshot,
    JoinResponse,
    SessionResult,
    TipReceipt,
    normalize_state,
)
from clabcraw.domain.session.state import PHASE_ORDER, Session, SessionPhase
from clabcraw.domain.transport.engine import UNCHANGED, RequestEngine, SleepFn, Unchanged
from clabcraw.domain.transport.payment import Payer
from clabcraw.exceptions import (
    CancelledError,
    ClabcrawError,
    ErrorKind,
    MatchTimeoutError,
    ServicePausedError,
    TransportFaultError,
)
from clabcraw.logging_config import get_logger, log_move

logger = get_logger(__name__)

Move = Mapping[str, Any]
DecideFn = Callable[[GameSnapshot], Union[Move, None, Awaitable[Move | None]]]
ModelT = TypeVar("ModelT", bound=BaseModel)


def _validate(model: type[ModelT], data: Any) -> ModelT:
    """Parse a response body, reporting a malformed shape as a TRANSPORT_FAULT."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise TransportFaultError(
            f"Malformed {model.__name__} response: {e.error_count()} invalid field(s)",
            cause=data,
        ) from e


class SessionClient:
    """
    Session state machine for one agent identity.

    One logical task drives a client at a time; operations never run
    concurrently against the same Session.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        signer: MessageSigner | None = None,
        engine: RequestEngine | None = None,
        payer: Payer | None = None,
        sleep: SleepFn | None = None,
        clock: Callable[[], float] | None = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Application settings (loaded from env when None)
            signer: Request signer; built from settings.wallet_private_key when None
            engine: Request engine; built from settings when None
            payer: Settles 402 payment challenges for join/tip
            sleep: Awaitable sleep used between polls
            clock: Monotonic clock in seconds used for match deadlines
        """
        self._settings = settings or Settings()
        self._signer = signer or MessageSigner(self._settings.wallet_private_key)
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.monotonic
        self._engine = engine or RequestEngine.from_settings(self._settings, payer=payer, sleep=self._sleep)
        self._session: Session | None = None

    @property
    def address(self) -> str:
        """Wallet address derived from the signer's key."""
        return self._signer.address

    @property
    def session(self) -> Session | None:
        return self._session

    # =========================================================================
    # Matchmaking
    # =========================================================================

    async def join(self, kind: str) -> JoinResponse:
        """
        Join the matchmaking queue for a game kind, paying the entry fee.

        Raises:
            ClabcrawError: PAYMENT_REQUIRED, RESOURCE_DISABLED, SERVICE_PAUSED, ...
        """
        session = Session(kind=kind)
        self._session = session

        data = await self._engine.execute(
            "POST", "/v1/sessions/join", params={"kind": kind}, use_payment=True
        )
        response = _validate(JoinResponse, data)

        session.advance(SessionPhase.QUEUED)
        if response.session_id:
            session.session_id = response.session_id
            session.advance(SessionPhase.MATCHED)

        logger.info(
            f"Joined {kind} queue (status={response.status}, position={response.queue_position})",
            extra={"event_type": "join", "phase": session.phase.value},
        )
        return response

    async def get_status(self) -> AgentStatus:
        data = await self._engine.execute("GET", f"/v1/agent/{self.address}/status")
        return _validate(AgentStatus, data)

    async def await_match(
        self,
        timeout: float | None = None,
        poll_interval: float | None = None,
    ) -> str:
        """
        Poll status until matched and return the session id.

        The deadline is checked before every poll; no poll is issued past it.

        Raises:
            CancelledError: status went idle (queue cancelled)
            ServicePausedError: platform paused; retriable, back off and call again
            MatchTimeoutError: deadline elapsed
        """
        timeout = self._settings.match_timeout if timeout is None else timeout
        poll_interval = self._settings.match_poll_interval if poll_interval is None else poll_interval
        deadline = self._clock() + timeout

        while self._clock() < deadline:
            status = await self.get_status()

            if status.status == "active" and status.active_sessions:
                session_id = status.active_sessions[0].session_id
                self._track(session_id)
                return session_id

            if status.status == "idle":
                if self._session is not None and self._session.phase == SessionPhase.QUEUED:
                    self._session.advance(SessionPhase.IDLE)
                raise CancelledError()

            if status.status == "paused":
                raise ServicePausedError(
                    status.message or "Platform is paused for emergency maintenance, retry after the pause lifts",
                    retriable=True,
                    cause=status.model_dump(),
                )

            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            await self._sleep(min(poll_interval, remaining))

        raise MatchTimeoutError()

    # =========================================================================
    # Play
    # =========================================================================

    async def read_state(self, session_id: str) -> GameSnapshot | Unchanged:
        """Signed state read; UNCHANGED when nothing moved since the last read."""
        data = await self._engine.execute(
            "GET",
            f"/v1/sessions/{session_id}/state",
            sign=lambda: self._signer.sign_request(session_id, STATE_READ_PAYLOAD).headers(),
            resource_id=session_id,
        )
        state = normalize_state(data)
        if state is not UNCHANGED:
            self._observe(session_id, state)
        return state

    async def submit_move(self, session_id: str, move: Move) -> GameSnapshot | Unchanged:
        """Signed move submission; returns the updated snapshot."""
        body = dict(move)
        data = await self._engine.execute(
            "POST",
            f"/v1/sessions/{session_id}/action",
            body,
            sign=lambda: self._signer.sign_request(session_id, body).headers(),
            resource_id=session_id,
        )
        log_move(logger, session_id, body)
        state = normalize_state(data)
        if state is not UNCHANGED:
            self._observe(session_id, state)
        return state

    async def get_result(self, session_id: str) -> SessionResult:
        """Historical terminal record; still served after the live session is purged."""
        data = await self._engine.execute("GET", f"/v1/sessions/{session_id}/result", resource_id=session_id)
        return _validate(SessionResult, data)

    async def play_loop(
        self,
        session_id: str,
        decide: DecideFn,
        poll_interval: float | None = None,
    ) -> GameSnapshot:
        """
        Play until the session finishes and return the final snapshot.

        `decide` receives each changed snapshot and returns a move mapping
        (e.g. {"action": "raise", "amount": 800}) or None to pass. It may be
        a coroutine function. Enforcing a deadline on it is the caller's job.
        """
        poll_interval = self._settings.poll_interval if poll_interval is None else poll_interval
        session = self._track(session_id)
        if PHASE_ORDER.index(session.phase) < PHASE_ORDER.index(SessionPhase.PLAYING):
            session.advance(SessionPhase.PLAYING)

        while True:
            try:
                state = await self.read_state(session_id)
            except ClabcrawError as e:
                if e.kind is not ErrorKind.RESOURCE_NOT_FOUND:
                    raise
                final = await self._reconcile_finished(session_id)
                session.observe(final)
                return final

            if state is UNCHANGED:
                await self._sleep(poll_interval)
                continue

            if state.is_finished:
                return state

            move = decide(state)
            if inspect.isawaitable(move):
                move = await move

            if move is not None:
                await self.submit_move(session_id, move)

            await self._sleep(poll_interval)

    async def _reconcile_finished(self, session_id: str) -> GameSnapshot:
        """The session finished and was purged between polls; rebuild its end state."""
        logger.info(
            "Session gone from live storage, fetching historical result",
            extra={"event_type": "stale_finish", "session_id": session_id},
        )
        try:
            result = await self.get_result(session_id)
        except ClabcrawError as e:
            logger.warning(
                f"Result lookup failed ({e.kind.value}), reporting unknown outcome",
                extra={"session_id": session_id, "kind": e.kind.value},
            )
            result = None
        return GameSnapshot.from_result(session_id, result, self.address)

    # =========================================================================
    # Platform
    # =========================================================================

    async def get_platform_info(self) -> dict[str, Any]:
        """Enabled game kinds, fees, endpoints and stats."""
        return await self._engine.execute("GET", "/v1/platform/info")

    async def get_claimable(self) -> ClaimableBalance:
        """Claimable winnings as reported by the platform API."""
        data = await self._engine.execute("GET", f"/v1/agents/{self.address}/claimable")
        return _validate(ClaimableBalance, data)

    async def tip(self, amount: str | float = "1.00") -> TipReceipt:
        """Send a voluntary tip; paid through the payment-aware transport."""
        data = await self._engine.execute(
            "POST", "/v1/platform/tip", params={"amount": str(amount)}, use_payment=True
        )
        return _validate(TipReceipt, data)

    # =========================================================================
    # Internal
    # =========================================================================

    def _track(self, session_id: str) -> Session:
        """Return the Session for `session_id`, adopting or starting one as needed."""
        session = self._session
        if session is None or (session.session_id is not None and session.session_id != session_id):
            session = Session(session_id=session_id)
            self._session = session
        session.session_id = session_id
        if PHASE_ORDER.index(session.phase) < PHASE_ORDER.index(SessionPhase.MATCHED):
            session.advance(SessionPhase.MATCHED)
        return session

    def _observe(self, session_id: str, state: GameSnapshot) -> None:
        if self._session is not None and self._session.session_id == session_id:
            self._session.observe(state)

    async def aclose(self) -> None:
        await self._engine.aclose()

    async def __aenter__(self) -> "SessionClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
