"""Auth domain - request signing."""
from clabcraw.domain.auth.signer import MessageSigner, SignedRequest, build_message, canonicalize

__all__ = ["MessageSigner", "SignedRequest", "build_message", "canonicalize"]
