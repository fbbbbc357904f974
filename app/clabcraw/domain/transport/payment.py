"""
Payment-aware transport.

Wraps another httpx transport. When a request comes back 402 the payment
requirements from the response body are handed to a caller-supplied payer,
which returns the value of the payment header (e.g. a signed USDC
authorization). The request is then re-sent once with that header. The
payer's scheme is opaque to this client.

A payment is produced per 402, not per logical call. When the paid re-send
fails at the connection level the RequestEngine retries the whole request,
the server answers 402 again and the payer is asked for a fresh
authorization. Payers must therefore tolerate repeated calls; an unsettled
authorization is simply superseded by the next one.
"""
import inspect
import json
from typing import Any, Awaitable, Callable, Union

import httpx

from clabcraw.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_PAYMENT_HEADER = "PAYMENT-SIGNATURE"

# payer(requirements) -> header value, or None to decline
Payer = Callable[[Any], Union[str, None, Awaitable[str | None]]]


class PaymentTransport(httpx.AsyncBaseTransport):
    """httpx transport that settles 402 challenges through a payer callback."""

    def __init__(
        self,
        payer: Payer,
        inner: httpx.AsyncBaseTransport | None = None,
        header_name: str = DEFAULT_PAYMENT_HEADER,
    ):
        self._payer = payer
        self._inner = inner or httpx.AsyncHTTPTransport()
        self.header_name = header_name

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        response = await self._inner.handle_async_request(request)
        if response.status_code != 402:
            return response

        content = await response.aread()
        try:
            requirements = json.loads(content) if content else {}
        except (ValueError, UnicodeDecodeError):
            requirements = {}

        payment = self._payer(requirements)
        if inspect.isawaitable(payment):
            payment = await payment
        if not payment:
            logger.info(f"Payer declined 402 for {request.url.path}")
            return response

        await response.aclose()
        headers = request.headers.copy()
        headers[self.header_name] = payment
        paid_request = httpx.Request(
            request.method,
            request.url,
            headers=headers,
            content=request.content,
            extensions=request.extensions,
        )
        logger.debug(f"Re-sending {request.method} {request.url.path} with payment")
        return await self._inner.handle_async_request(paid_request)

    async def aclose(self) -> None:
        await self._inner.aclose()
