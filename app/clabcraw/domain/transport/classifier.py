"""
Error classifier - maps HTTP responses to typed errors.

The mapping is closed: every non-2xx, non-304 status yields exactly one
ErrorKind with a fixed retriable flag. 503 is split on the body's
`retryable` flag:
- retryable=True: short payment-settlement delay, the request engine retries
- otherwise: planned maintenance, surfaced to the caller for session-level backoff
"""
import json
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Mapping

import httpx

from clabcraw.exceptions import (
    CONNECTION_RETRY_AFTER,
    DEFAULT_RETRY_AFTER,
    PAUSED_RETRY_AFTER,
    AuthFailureError,
    BadRequestError,
    ClabcrawError,
    ConnectionFaultError,
    InvalidOperationError,
    PaymentRequiredError,
    ResourceDisabledError,
    ResourceNotFoundError,
    ServicePausedError,
    TransportFaultError,
)

# Body keys that carry the list of enabled alternatives on a 400
ALTERNATIVES_KEYS = ("available_games", "alternatives")


def parse_retry_after(
    value: str | None,
    default: float = DEFAULT_RETRY_AFTER,
    now: datetime | None = None,
) -> float:
    """
    Parse a Retry-After header value into seconds.

    Accepts integer seconds or an HTTP-date. Returns `default` when the
    header is absent or unparseable.
    """
    if value is None or not value.strip():
        return default
    value = value.strip()

    try:
        return float(max(0, int(value)))
    except ValueError:
        pass

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return default
    if when is None:
        return default
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    return max(0.0, (when - now).total_seconds())


def decode_body(content: bytes, reason: str = "") -> Any:
    """Decode a JSON error body, falling back to the reason phrase."""
    try:
        return json.loads(content) if content else {}
    except (ValueError, UnicodeDecodeError):
        return {"error": reason}


def _message(body: Any, fallback: str) -> str:
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or fallback
    return fallback


def _alternatives(body: Any) -> list[str] | None:
    if not isinstance(body, dict):
        return None
    for key in ALTERNATIVES_KEYS:
        value = body.get(key)
        if isinstance(value, list):
            return [str(v) for v in value]
    return None


def _valid_operations(body: Any) -> list[str]:
    if not isinstance(body, dict):
        return []
    ops = body.get("valid_actions") or body.get("valid_operations") or []
    if isinstance(ops, dict):
        return list(ops.keys())
    return [str(op) for op in ops]


def classify(
    status_code: int,
    body: Any,
    headers: Mapping[str, str] | httpx.Headers | None = None,
    context: Mapping[str, Any] | None = None,
) -> ClabcrawError:
    """
    Build the typed error for a failed response.

    Args:
        status_code: HTTP status (never 304 or 2xx)
        body: Decoded JSON body (dict, list, or anything the server sent)
        headers: Response headers; only Retry-After is read
        context: Call context, `resource_id` is used for not-found errors

    Returns:
        The classified ClabcrawError (not raised)
    """
    headers = httpx.Headers(headers or {})
    context = context or {}
    retry_header = headers.get("retry-after")

    if status_code == 400:
        alternatives = _alternatives(body)
        if alternatives is not None:
            return ResourceDisabledError(
                _message(body, "Requested game type is disabled"), alternatives=alternatives, cause=body
            )
        return BadRequestError(_message(body, "Bad request"), cause=body)

    if status_code == 401:
        return AuthFailureError(_message(body, "Unauthorized"), cause=body)

    if status_code == 402:
        return PaymentRequiredError(_message(body, "Payment required"), cause=body)

    if status_code == 404:
        return ResourceNotFoundError(context.get("resource_id"), cause=body)

    if status_code == 422:
        return InvalidOperationError(
            _message(body, "Invalid action"), valid_operations=_valid_operations(body), cause=body
        )

    if status_code == 503:
        transient = isinstance(body, dict) and body.get("retryable") is True
        if transient:
            return ServicePausedError(
                _message(body, "Payment settlement pending"),
                retriable=True,
                retry_after=parse_retry_after(retry_header),
                cause=body,
            )
        return ServicePausedError(
            _message(body, "Platform is paused for maintenance"),
            retriable=False,
            retry_after=parse_retry_after(retry_header, default=PAUSED_RETRY_AFTER),
            cause=body,
        )

    return TransportFaultError(
        _message(body, f"Unexpected HTTP {status_code}"),
        retriable=status_code >= 500,
        retry_after=parse_retry_after(retry_header),
        cause=body,
    )


def classify_connection_error(
    exc: BaseException,
    retry_after: float = CONNECTION_RETRY_AFTER,
) -> ClabcrawError:
    """Wrap a transport-level exception (refused, reset, timeout)."""
    return ConnectionFaultError(f"Network error: {exc}", retry_after=retry_after, cause=exc)
