"""
Typed errors for Clabcraw agent operations.

Every failure the client surfaces is a ClabcrawError carrying
machine-readable fields, so agent code branches on kind/retriable
instead of parsing messages:

    try:
        await client.join("poker")
    except ClabcrawError as e:
        if e.kind is ErrorKind.PAYMENT_REQUIRED:
            ...
        elif e.retriable:
            await asyncio.sleep(e.retry_after)
"""
from enum import Enum
from typing import Any

DEFAULT_RETRY_AFTER = 5.0
PAUSED_RETRY_AFTER = 30.0
# First step of the engine backoff
CONNECTION_RETRY_AFTER = 0.5


class ErrorKind(str, Enum):
    """Closed set of error kinds."""

    BAD_REQUEST = "BAD_REQUEST"
    RESOURCE_DISABLED = "RESOURCE_DISABLED"
    AUTH_FAILURE = "AUTH_FAILURE"
    PAYMENT_REQUIRED = "PAYMENT_REQUIRED"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    INVALID_OPERATION = "INVALID_OPERATION"
    SERVICE_PAUSED = "SERVICE_PAUSED"
    TRANSPORT_FAULT = "TRANSPORT_FAULT"
    CONNECTION_FAULT = "CONNECTION_FAULT"

    # Raised by the session state machine and claim bridge
    CANCELLED = "CANCELLED"
    MATCH_TIMEOUT = "MATCH_TIMEOUT"
    NOTHING_TO_CLAIM = "NOTHING_TO_CLAIM"
    CLAIM_REVERTED = "CLAIM_REVERTED"
    CONFIG_ERROR = "CONFIG_ERROR"


class ClabcrawError(Exception):
    """Base exception for all client errors.

    The classification fields are read-only once constructed.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        retriable: bool = False,
        retry_after: float = DEFAULT_RETRY_AFTER,
        cause: Any = None,
    ) -> None:
        self._kind = kind
        self._retriable = retriable
        self._retry_after = retry_after
        self._cause = cause
        self.message = message
        super().__init__(message)

    @property
    def kind(self) -> ErrorKind:
        return self._kind

    @property
    def retriable(self) -> bool:
        return self._retriable

    @property
    def retry_after(self) -> float:
        """Seconds to wait before the same request may succeed."""
        return self._retry_after

    @property
    def cause(self) -> Any:
        """Raw response body or underlying exception."""
        return self._cause

    def to_dict(self) -> dict[str, Any]:
        """Export for structured logging."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "retriable": self.retriable,
            "retry_after": self.retry_after,
            "cause": self.cause if isinstance(self.cause, (dict, list, str)) else repr(self.cause),
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value}, retriable={self.retriable}, "
            f"retry_after={self.retry_after}, message={self.message!r})"
        )


class BadRequestError(ClabcrawError):
    def __init__(self, message: str = "Bad request", cause: Any = None) -> None:
        super().__init__(ErrorKind.BAD_REQUEST, message, cause=cause)


class ResourceDisabledError(ClabcrawError):
    """Requested game kind is disabled; `alternatives` lists enabled ones."""

    def __init__(
        self,
        message: str = "Requested game type is disabled",
        alternatives: list[str] | None = None,
        cause: Any = None,
    ) -> None:
        super().__init__(ErrorKind.RESOURCE_DISABLED, message, cause=cause)
        self._alternatives = list(alternatives or [])

    @property
    def alternatives(self) -> list[str]:
        return list(self._alternatives)


class AuthFailureError(ClabcrawError):
    """Signature verification failed: clock skew, wrong key or stale timestamp."""

    def __init__(self, message: str = "Request signature verification failed", cause: Any = None) -> None:
        super().__init__(ErrorKind.AUTH_FAILURE, message, cause=cause)


class PaymentRequiredError(ClabcrawError):
    """Wallet must be funded before retrying."""

    def __init__(self, message: str = "Insufficient balance to pay entry fee", cause: Any = None) -> None:
        super().__init__(ErrorKind.PAYMENT_REQUIRED, message, cause=cause)


class ResourceNotFoundError(ClabcrawError):
    def __init__(self, resource_id: str | None = None, cause: Any = None) -> None:
        self._resource_id = resource_id or "unknown"
        super().__init__(
            ErrorKind.RESOURCE_NOT_FOUND, f"Resource not found: {self._resource_id}", cause=cause
        )

    @property
    def resource_id(self) -> str:
        return self._resource_id


class InvalidOperationError(ClabcrawError):
    """Operation not valid in the current state; `valid_operations` lists the valid ones."""

    def __init__(
        self,
        message: str = "Operation is not valid in the current state",
        valid_operations: list[str] | None = None,
        cause: Any = None,
    ) -> None:
        super().__init__(ErrorKind.INVALID_OPERATION, message, cause=cause)
        self._valid_operations = list(valid_operations or [])

    @property
    def valid_operations(self) -> list[str]:
        return list(self._valid_operations)


class ServicePausedError(ClabcrawError):
    """
    Service is paused.

    retriable=True is a short settlement delay the request engine may absorb;
    retriable=False is planned maintenance that callers back off from.
    """

    def __init__(
        self,
        message: str = "Platform is temporarily paused for maintenance",
        retriable: bool = False,
        retry_after: float = PAUSED_RETRY_AFTER,
        cause: Any = None,
    ) -> None:
        super().__init__(
            ErrorKind.SERVICE_PAUSED, message, retriable=retriable, retry_after=retry_after, cause=cause
        )


class TransportFaultError(ClabcrawError):
    def __init__(
        self,
        message: str,
        retriable: bool = False,
        retry_after: float = DEFAULT_RETRY_AFTER,
        cause: Any = None,
    ) -> None:
        super().__init__(
            ErrorKind.TRANSPORT_FAULT, message, retriable=retriable, retry_after=retry_after, cause=cause
        )


class ConnectionFaultError(ClabcrawError):
    """No HTTP response at all. `retry_after` is the backoff the engine would use next."""

    def __init__(
        self,
        message: str = "Network request failed",
        retry_after: float = CONNECTION_RETRY_AFTER,
        cause: Any = None,
    ) -> None:
        super().__init__(
            ErrorKind.CONNECTION_FAULT, message, retriable=True, retry_after=retry_after, cause=cause
        )


class CancelledError(ClabcrawError):
    """Queue entry was cancelled server-side."""

    def __init__(self, message: str = "Queue was cancelled, no longer queued") -> None:
        super().__init__(ErrorKind.CANCELLED, message)


class MatchTimeoutError(ClabcrawError):
    def __init__(self, message: str = "Timed out waiting for match") -> None:
        super().__init__(ErrorKind.MATCH_TIMEOUT, message)


class NothingToClaimError(ClabcrawError):
    def __init__(self, message: str = "No claimable balance") -> None:
        super().__init__(ErrorKind.NOTHING_TO_CLAIM, message)


class ClaimRevertedError(ClabcrawError):
    def __init__(self, message: str = "Claim transaction reverted", cause: Any = None) -> None:
        super().__init__(ErrorKind.CLAIM_REVERTED, message, retriable=True, cause=cause)


class ConfigError(ClabcrawError):
    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.CONFIG_ERROR, message)
