"""
EIP-191 signing for privileged game requests.

Signs the message "{resource_id}:{canonical_json}:{timestamp}" with
personal_sign semantics. JSON keys MUST be sorted so the bytes match the
server's own encoding of the same payload.
"""
import json
import time
from dataclasses import dataclass
from typing import Any, Mapping

from eth_account import Account
from eth_account.messages import encode_defunct

from clabcraw.exceptions import ConfigError
from clabcraw.logging_config import get_logger

logger = get_logger(__name__)

# Payload signed for state reads
STATE_READ_PAYLOAD = {"action": "state"}


def canonicalize(payload: Mapping[str, Any]) -> str:
    """Compact JSON with lexicographically sorted keys."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def build_message(resource_id: str, payload: Mapping[str, Any], timestamp: str) -> str:
    return f"{resource_id}:{canonicalize(payload)}:{timestamp}"


@dataclass(frozen=True)
class SignedRequest:
    """One signed request. Single use: the server rejects replays."""

    resource_id: str
    canonical_payload: str
    timestamp: str
    signature: str
    signer: str

    def headers(self) -> dict[str, str]:
        return {
            "x-signature": self.signature,
            "x-timestamp": self.timestamp,
            "x-signer": self.signer,
        }


class MessageSigner:
    """
    Holds the wallet key and produces request signatures.

    The address is derived once at construction and is stable for the
    signer's lifetime. An invalid key fails here, never per call.
    """

    def __init__(self, private_key: str):
        if not private_key:
            raise ConfigError("No private key provided")
        key = private_key if private_key.startswith("0x") else f"0x{private_key}"
        try:
            self._account = Account.from_key(key)
        except Exception as e:  # eth-keys raises its own ValidationError, not ValueError
            raise ConfigError(f"Invalid private key: {e}") from e
        self._address: str = self._account.address
        logger.debug(f"Signer ready for {self._address}")

    @property
    def address(self) -> str:
        return self._address

    def sign(self, resource_id: str, payload: Mapping[str, Any], timestamp: str) -> str:
        """Return the 0x-prefixed signature of the canonical message."""
        message = build_message(resource_id, payload, timestamp)
        signed = self._account.sign_message(encode_defunct(text=message))
        return "0x" + bytes(signed.signature).hex()

    def sign_request(
        self,
        resource_id: str,
        payload: Mapping[str, Any],
        timestamp: str | None = None,
    ) -> SignedRequest:
        """Sign with the given timestamp, or wall-clock unix seconds now."""
        if timestamp is None:
            timestamp = str(int(time.time()))
        return SignedRequest(
            resource_id=resource_id,
            canonical_payload=canonicalize(payload),
            timestamp=timestamp,
            signature=self.sign(resource_id, payload, timestamp),
            signer=self._address,
        )
