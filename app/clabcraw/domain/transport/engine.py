"""
Request Engine - executes one API call with typed errors and bounded retries.

Retry policy:
- CONNECTION_FAULT and classified-retriable errors share one budget of
  `max_retries` additional attempts
- non-retriable errors raise at once without touching the budget
- the delay before retry n is min(base * 2**n, cap), raised to the
  server's Retry-After hint for classified errors

The engine never touches session state; that belongs to SessionClient.
"""
import asyncio
from typing import Any, Awaitable, Callable, Mapping

import httpx

from clabcraw.config import Settings
from clabcraw.domain.auth.signer import canonicalize
from clabcraw.domain.transport.classifier import (
    classify,
    classify_connection_error,
    decode_body,
)
from clabcraw.domain.transport.payment import PaymentTransport, Payer
from clabcraw.exceptions import TransportFaultError
from clabcraw.logging_config import get_logger, log_retry

logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_BASE = 0.5
DEFAULT_BACKOFF_CAP = 10.0


class Unchanged:
    """Sentinel for a 304 / no-change response."""

    _instance: "Unchanged | None" = None

    def __new__(cls) -> "Unchanged":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNCHANGED"

    def __bool__(self) -> bool:
        return False


UNCHANGED = Unchanged()

SleepFn = Callable[[float], Awaitable[Any]]
HeaderFactory = Callable[[], Mapping[str, str]]


def backoff(attempt: int, base: float = DEFAULT_BACKOFF_BASE, cap: float = DEFAULT_BACKOFF_CAP) -> float:
    """Exponential backoff for zero-based retry `attempt`."""
    return min(base * 2**attempt, cap)


class RequestEngine:
    """
    HTTP executor over httpx.AsyncClient.

    Two clients may be held: a plain one and a payment-aware one. Each call
    site picks with `use_payment`; nothing is swapped globally.
    """

    def __init__(
        self,
        base_url: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        payment_transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
        backoff_cap: float = DEFAULT_BACKOFF_CAP,
        sleep: SleepFn | None = None,
    ):
        """
        Initialize the engine.

        Args:
            base_url: API root, e.g. https://clabcraw.sh
            transport: Transport for ordinary calls (httpx default when None)
            payment_transport: Transport for payment-aware calls; ordinary
                transport is used when None
            timeout: Per-request timeout in seconds (transport level)
            max_retries: Additional attempts after the first
            backoff_base: First backoff delay in seconds
            backoff_cap: Upper bound on the exponential backoff
            sleep: Awaitable sleep, injectable for tests
        """
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.backoff_cap = backoff_cap
        self._sleep = sleep or asyncio.sleep

        self._client = httpx.AsyncClient(base_url=self.base_url, transport=transport, timeout=timeout)
        self._payment_client: httpx.AsyncClient | None = None
        if payment_transport is not None:
            self._payment_client = httpx.AsyncClient(
                base_url=self.base_url, transport=payment_transport, timeout=timeout
            )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        payer: Payer | None = None,
        sleep: SleepFn | None = None,
    ) -> "RequestEngine":
        """Build an engine from settings; payment-aware calls need a payer."""
        payment_transport = PaymentTransport(payer) if payer is not None else None
        return cls(
            settings.api_url,
            payment_transport=payment_transport,
            timeout=settings.request_timeout,
            max_retries=settings.max_retries,
            backoff_base=settings.backoff_base,
            backoff_cap=settings.backoff_cap,
            sleep=sleep,
        )

    async def execute(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        sign: HeaderFactory | None = None,
        use_payment: bool = False,
        resource_id: str | None = None,
    ) -> Any:
        """
        Execute a request and return the decoded JSON or UNCHANGED.

        Args:
            method: HTTP method
            path: API path, e.g. "/v1/sessions/join"
            params: Query parameters
            body: JSON body, sent as canonical JSON (sorted keys, compact) so
                the bytes match what a signer signed; omitted when None
            headers: Extra static headers
            sign: Called before every attempt to produce auth headers,
                so each attempt carries a fresh timestamp
            use_payment: Route through the payment-aware client
            resource_id: Reported in not-found errors

        Raises:
            ClabcrawError: classified failure that is non-retriable or
                outlasted the retry budget
        """
        client = self._payment_client if use_payment and self._payment_client else self._client
        context = {"resource_id": resource_id}
        content = canonicalize(body).encode() if body is not None else None

        for attempt in range(self.max_retries + 1):
            request_headers = {"content-type": "application/json"}
            request_headers.update(headers or {})
            if sign is not None:
                request_headers.update(sign())

            try:
                response = await client.request(
                    method,
                    path,
                    params=params,
                    headers=request_headers,
                    content=content,
                )
            except httpx.TransportError as e:
                delay = backoff(attempt, self.backoff_base, self.backoff_cap)
                error = classify_connection_error(e, retry_after=delay)
                if attempt < self.max_retries:
                    log_retry(logger, method, path, error.kind.value, attempt + 1, delay)
                    await self._sleep(delay)
                    continue
                raise error from e

            if response.status_code == 304:
                return UNCHANGED

            if response.is_success:
                return self._decode_success(method, path, response)

            error = classify(
                response.status_code,
                decode_body(response.content, response.reason_phrase),
                response.headers,
                context,
            )

            if error.retriable and attempt < self.max_retries:
                delay = max(error.retry_after, backoff(attempt, self.backoff_base, self.backoff_cap))
                log_retry(logger, method, path, error.kind.value, attempt + 1, delay)
                await self._sleep(delay)
                continue

            raise error

    @staticmethod
    def _decode_success(method: str, path: str, response: httpx.Response) -> Any:
        # Never retried: the server has already acted on the request
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise TransportFaultError(
                f"{method} {path} returned HTTP {response.status_code} with a non-JSON body",
                cause=response.text,
            ) from e

    async def aclose(self) -> None:
        await self._client.aclose()
        if self._payment_client is not None:
            await self._payment_client.aclose()

    async def __aenter__(self) -> "RequestEngine":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
