"""
Claim Bridge - withdraws accumulated winnings from the arena contract.

The chain client is supplied by the caller (web3, an RPC gateway, ...).
Only its balance/claim/receipt contract matters here. The balance is
checked first so an empty claim never costs gas.
"""
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Protocol, Union

from clabcraw.exceptions import ClaimRevertedError, NothingToClaimError
from clabcraw.logging_config import get_logger

logger = get_logger(__name__)

# USDC has 6 decimals
USDC_DECIMALS = 6
SUCCESS_STATUSES = ("success", 1)


class ChainClient(Protocol):
    """Contract calls the bridge needs. Methods may be sync or async."""

    def get_claimable_balance(self, address: str) -> Union[int, Awaitable[int]]:
        ...

    def submit_claim(self) -> Union[str, Awaitable[str]]:
        ...

    def wait_for_receipt(self, tx_hash: str) -> Any:
        ...


@dataclass(frozen=True)
class ClaimReceipt:
    """Confirmed withdrawal."""

    tx_hash: str
    amount: int  # atomic units
    amount_usdc: str


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _receipt_status(receipt: Any) -> Any:
    if isinstance(receipt, dict):
        return receipt.get("status")
    return getattr(receipt, "status", None)


def format_usdc(amount: int) -> str:
    return f"{amount / 10**USDC_DECIMALS:.2f}"


class ClaimBridge:
    """Check-then-act wrapper around the arena contract's claim."""

    def __init__(self, chain: ChainClient, address: str):
        self._chain = chain
        self.address = address

    async def get_claimable(self) -> int:
        """On-chain claimable balance in atomic units (read only)."""
        return int(await _resolve(self._chain.get_claimable_balance(self.address)))

    async def claim(self) -> ClaimReceipt:
        """
        Claim all winnings.

        Raises:
            NothingToClaimError: balance is zero; no transaction was sent
            ClaimRevertedError: transaction confirmed as failed (retriable)
        """
        balance = await self.get_claimable()
        if balance == 0:
            raise NothingToClaimError()

        tx_hash = await _resolve(self._chain.submit_claim())
        logger.info(
            f"Claim submitted for {format_usdc(balance)} USDC: {tx_hash}",
            extra={"event_type": "claim_submitted", "signer": self.address},
        )
        receipt = await _resolve(self._chain.wait_for_receipt(tx_hash))

        if _receipt_status(receipt) not in SUCCESS_STATUSES:
            raise ClaimRevertedError(cause=receipt)

        return ClaimReceipt(tx_hash=tx_hash, amount=balance, amount_usdc=format_usdc(balance))
