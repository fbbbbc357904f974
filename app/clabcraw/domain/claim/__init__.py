"""Claim domain - on-chain withdrawal of winnings."""
from clabcraw.domain.claim.bridge import ChainClient, ClaimBridge, ClaimReceipt

__all__ = ["ChainClient", "ClaimBridge", "ClaimReceipt"]
