"""Transport domain - request execution, error classification and payment."""
from clabcraw.domain.transport.classifier import classify, classify_connection_error, parse_retry_after
from clabcraw.domain.transport.engine import UNCHANGED, RequestEngine, Unchanged, backoff
from clabcraw.domain.transport.payment import PaymentTransport

__all__ = [
    "PaymentTransport",
    "RequestEngine",
    "UNCHANGED",
    "Unchanged",
    "backoff",
    "classify",
    "classify_connection_error",
    "parse_retry_after",
]
