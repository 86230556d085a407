"""
Collaborator interfaces the pipeline orchestrates.

Any object with these methods can stand in for the RPC transport or the
signer; `core.client.SolanaClient` and `core.signer.KeypairSigner` are the
production implementations.
"""

from typing import Protocol

from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from pipeline.types import Blockhash, SignatureStatus, SimulationOutcome, TransactionDraft


class RpcTransport(Protocol):
    """RPC calls used by the pipeline. Failures raise TransportError."""

    async def get_balance(self, pubkey: Pubkey, commitment: str) -> int:
        ...

    async def get_latest_blockhash(self, commitment: str) -> Blockhash:
        ...

    async def simulate_transaction(self, tx: Transaction, commitment: str) -> SimulationOutcome:
        """Simulate without signature verification, replacing the blockhash."""
        ...

    async def send_transaction(
        self,
        tx: Transaction,
        preflight_commitment: str,
        min_context_slot: int,
        max_retries: int = 0,
    ) -> Signature:
        """Send with preflight disabled. Node rejections raise SubmissionRejected."""
        ...

    async def get_signature_status(self, signature: Signature) -> SignatureStatus:
        ...


class TransactionSigner(Protocol):
    """Single fee-payer signing capability."""

    def public_key(self) -> Pubkey:
        ...

    def sign(self, draft: TransactionDraft, blockhash: Hash) -> Transaction:
        ...
