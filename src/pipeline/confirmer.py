"""
Confirmation polling.

Polls getSignatureStatuses at a fixed interval until the signature reaches
the configured commitment threshold, lands with an execution error, or the
poll budget runs out.
"""

import asyncio

from solders.signature import Signature

from pipeline.config import PipelineConfig
from pipeline.errors import ConfirmationTimeout, OnChainExecutionError, TransportError
from pipeline.protocols import RpcTransport
from pipeline.retry_state import RetryProgress
from pipeline.types import ConfirmationStatus, SignatureStatus
from utils.logger import get_logger

logger = get_logger(__name__)


class Confirmer:
    def __init__(self, transport: RpcTransport, config: PipelineConfig):
        self.transport = transport
        self.config = config
        self.threshold = config.confirmation_threshold

    async def confirm(self, signature: Signature) -> SignatureStatus:
        """Wait until `signature` reaches the commitment threshold.

        Returns:
            The status that reached the threshold

        Raises:
            OnChainExecutionError: If the transaction landed with an error
            ConfirmationTimeout: If the threshold is not reached within the ceiling
        """
        progress = RetryProgress(ceiling=self.config.confirmation_retries)
        last_status = ConfirmationStatus.UNSEEN

        while True:
            try:
                status = await self.transport.get_signature_status(signature)
            except TransportError as e:
                logger.warning(f"Status poll for {signature} failed: {e}")
            else:
                if status.failed:
                    logger.error(f"Transaction {signature} failed on-chain: {status.err}")
                    raise OnChainExecutionError(signature, status.err)

                if status.status is not last_status:
                    logger.info(
                        f"Transaction {signature}: {last_status.name.lower()} -> "
                        f"{status.status.name.lower()}"
                    )
                    last_status = status.status

                if status.status.reaches(self.threshold):
                    progress = progress.record_success()
                    logger.info(
                        f"Transaction {signature} {status.status.name.lower()} "
                        f"after {progress.attempts} polls"
                    )
                    return status

            progress = progress.record_failure()
            if progress.exhausted:
                logger.error(
                    f"Transaction {signature} not {self.threshold.name.lower()} "
                    f"after {progress.failures} polls"
                )
                raise ConfirmationTimeout(signature, progress.failures, last_status.name.lower())

            logger.warning(
                f"Transaction {signature} still {last_status.name.lower()}, "
                f"poll attempt {progress.failures}/{self.config.confirmation_retries + 1}, "
                f"retrying in {self.config.confirmation_retry_delay:.1f}s"
            )
            await asyncio.sleep(self.config.confirmation_retry_delay)
