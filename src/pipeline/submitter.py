"""
Signing and bounded-retry submission.
"""

import asyncio
from typing import Any

from solders.signature import Signature
from solders.transaction import Transaction

from pipeline.config import PipelineConfig
from pipeline.errors import SubmissionFailed, TransportError
from pipeline.protocols import RpcTransport, TransactionSigner
from pipeline.retry_state import RetryProgress
from pipeline.types import Blockhash, TransactionDraft
from utils.logger import get_logger

logger = get_logger(__name__)


class Submitter:
    """Signs a draft once and resends the same bytes until accepted."""

    def __init__(self, transport: RpcTransport, signer: TransactionSigner, config: PipelineConfig):
        self.transport = transport
        self.signer = signer
        self.config = config

    def sign(self, draft: TransactionDraft, blockhash: Blockhash) -> Transaction:
        return self.signer.sign(draft, blockhash.hash)

    async def submit(self, tx: Transaction, blockhash: Blockhash) -> Signature:
        """Send a signed transaction with fixed-delay retries.

        The transaction is never rebuilt or re-signed between attempts.
        Preflight is skipped and the node's own rebroadcasting is disabled;
        `min_context_slot` pins the node to at least the blockhash slot.

        Returns:
            Signature assigned by the network

        Raises:
            SubmissionFailed: If every attempt up to the ceiling fails
        """
        progress = RetryProgress(ceiling=self.config.submission_retries)
        last_error: Any = None

        while True:
            try:
                signature = await self.transport.send_transaction(
                    tx,
                    preflight_commitment=self.config.preflight_commitment,
                    min_context_slot=blockhash.slot,
                    max_retries=self.config.transport_max_retries,
                )
            except TransportError as e:
                last_error = e
                logger.warning(f"Error submitting transaction: {e}")
            else:
                progress = progress.record_success()
                logger.info(
                    f"Transaction submitted with signature: {signature} "
                    f"(attempt {progress.attempts})"
                )
                return signature

            progress = progress.record_failure()
            if progress.exhausted:
                logger.error(
                    f"Failed to send transaction after {progress.failures} attempts"
                )
                raise SubmissionFailed(progress.failures, last_error) from last_error

            logger.warning(
                f"Send attempt {progress.failures}/{self.config.submission_retries + 1} failed, "
                f"retrying in {self.config.submission_retry_delay:.1f}s"
            )
            await asyncio.sleep(self.config.submission_retry_delay)

    async def sign_and_submit(self, draft: TransactionDraft, blockhash: Blockhash) -> Signature:
        return await self.submit(self.sign(draft, blockhash), blockhash)
