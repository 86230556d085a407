"""
Batch orchestration.

Runs preflight -> blockhash -> (simulation) -> sign/send -> (confirm) for
each instruction group in order. The first terminal error aborts the batch.

Usage:
    sender = BatchSender(client, signer, PipelineConfig.from_env())
    signatures = await sender.submit_batch(groups, dynamic_cost=True)
"""

from contextlib import contextmanager
from typing import Optional, Sequence

from solders.signature import Signature

from pipeline.config import PipelineConfig
from pipeline.confirmer import Confirmer
from pipeline.errors import PipelineError, TransportError
from pipeline.fee_optimizer import FeeOptimizer
from pipeline.preflight import check_balance
from pipeline.protocols import RpcTransport, TransactionSigner
from pipeline.submitter import Submitter
from pipeline.types import BatchResult, InstructionGroup, TransactionDraft
from utils.logger import get_logger
from utils.trace_context import TraceContext, new_batch_id

logger = get_logger(__name__)


class BatchSender:
    """Sequential send pipeline over a batch of instruction groups.

    The transport and signer are borrowed read-only; elements never run
    concurrently, so no locking is needed.
    """

    def __init__(
        self,
        transport: RpcTransport,
        signer: TransactionSigner,
        config: Optional[PipelineConfig] = None,
    ):
        self.transport = transport
        self.signer = signer
        self.config = config or PipelineConfig()
        self.fee_optimizer = FeeOptimizer(transport, self.config)
        self.submitter = Submitter(transport, signer, self.config)
        self.confirmer = Confirmer(transport, self.config)

    async def submit_batch(
        self,
        instruction_groups: Sequence[InstructionGroup],
        dynamic_cost: bool = False,
        skip_confirm: bool = False,
        batch_id: Optional[str] = None,
    ) -> BatchResult:
        """Build, sign, send and optionally confirm each group in order.

        Args:
            instruction_groups: One instruction group per transaction
            dynamic_cost: Size compute budget from simulation
            skip_confirm: Return right after each submission is accepted
            batch_id: Tag for log lines; generated when omitted

        Returns:
            Signatures in input order

        Raises:
            PipelineError: The failing element's error, with `element_index`
                set and `signatures` holding everything submitted so far
        """
        batch_id = batch_id or new_batch_id()
        signatures: BatchResult = []
        logger.info(
            f"Batch {batch_id}: {len(instruction_groups)} transactions "
            f"(dynamic_cost={dynamic_cost}, skip_confirm={skip_confirm})"
        )

        for index, instructions in enumerate(instruction_groups):
            trace = TraceContext.start(batch_id, index)
            fail_reason: Optional[str] = None
            try:
                await self._process(instructions, dynamic_cost, skip_confirm, trace, signatures)
            except PipelineError as e:
                fail_reason = type(e).__name__
                e.element_index = index
                e.signatures = list(signatures)
                logger.error(f"Batch {batch_id} aborted at element {index}: {e}")
                raise
            except BaseException as e:
                fail_reason = type(e).__name__
                logger.error(f"Batch {batch_id} aborted at element {index}: {fail_reason}: {e}")
                raise
            finally:
                # Cleared on every exit path
                trace.finish(success=fail_reason is None, fail_reason=fail_reason)
            logger.info(f"Element {index} done: {trace.stage_latencies_ms()}")

        logger.info(f"Batch {batch_id} complete: {len(signatures)} signatures")
        return signatures

    async def _process(
        self,
        instructions: InstructionGroup,
        dynamic_cost: bool,
        skip_confirm: bool,
        trace: TraceContext,
        signatures: list[Signature],
    ) -> None:
        payer = self.signer.public_key()
        commitment = self.config.commitment

        with _phase("preflight"):
            await check_balance(self.transport, payer, commitment)
        trace.mark("preflight")

        with _phase("blockhash"):
            blockhash = await self.transport.get_latest_blockhash(commitment)
        trace.mark("blockhash", slot=blockhash.slot)

        draft = TransactionDraft.build(instructions, payer)
        if dynamic_cost:
            with _phase("simulation"):
                draft = await self.fee_optimizer.optimize(draft, instructions)
            trace.mark("simulated", instructions=len(draft.instructions))

        tx = self.submitter.sign(draft, blockhash)
        trace.mark("signed")

        with _phase("submission"):
            signature = await self.submitter.submit(tx, blockhash)
        signatures.append(signature)
        trace.mark("sent", signature=signature)

        if skip_confirm:
            return

        with _phase("confirmation"):
            status = await self.confirmer.confirm(signature)
        trace.mark("confirmed", status=status.status.name.lower(), slot=status.slot)


@contextmanager
def _phase(name: str):
    """Attribute unclassified transport errors to the phase they escaped from."""
    try:
        yield
    except TransportError as e:
        if e.phase == TransportError.phase:
            e.phase = name
        raise
