"""Concrete RPC transport and signer for the send pipeline."""

from core.client import SolanaClient
from core.signer import KeypairSigner

__all__ = [
    "SolanaClient",
    "KeypairSigner",
]
