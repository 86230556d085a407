"""
Dynamic compute-unit sizing.

Simulates the unsigned draft to learn how many compute units it consumes,
then rebuilds it with a compute-unit limit of `consumed + margin` and a
fixed compute-unit price prepended to the original instructions.
"""

from typing import Any

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.instruction import Instruction

from pipeline.config import PipelineConfig
from pipeline.errors import SimulationFailed, TransportError
from pipeline.protocols import RpcTransport
from pipeline.retry_state import RetryProgress
from pipeline.types import InstructionGroup, TransactionDraft
from utils.logger import get_logger

logger = get_logger(__name__)

# Per-transaction compute ceiling enforced by the runtime
MAX_COMPUTE_UNIT_LIMIT = 1_400_000


def compute_budget_instructions(
    units_consumed: int, margin: int, price_micro_lamports: int
) -> list[Instruction]:
    """Limit and price instructions for a measured consumption."""
    limit = min(units_consumed + margin, MAX_COMPUTE_UNIT_LIMIT)
    return [
        set_compute_unit_limit(limit),
        set_compute_unit_price(price_micro_lamports),
    ]


class FeeOptimizer:
    """Simulation loop that patches compute-budget instructions into a draft."""

    def __init__(self, transport: RpcTransport, config: PipelineConfig):
        self.transport = transport
        self.config = config

    async def optimize(
        self, draft: TransactionDraft, instructions: InstructionGroup
    ) -> TransactionDraft:
        """Return a rebuilt draft sized from simulation.

        Args:
            draft: Unsigned draft built from `instructions`
            instructions: The caller's original instruction group

        Raises:
            SimulationFailed: If simulation keeps failing past the retry ceiling
        """
        progress = RetryProgress(ceiling=self.config.simulation_retries)
        unsigned = draft.to_unsigned()
        last_error: Any = None

        while True:
            try:
                outcome = await self.transport.simulate_transaction(
                    unsigned, self.config.commitment
                )
            except TransportError as e:
                last_error = e
                logger.warning(f"Simulation error: {e}")
            else:
                if outcome.is_success:
                    progress = progress.record_success()
                    logger.info(
                        f"Dynamic CUs: {outcome.units_consumed} (attempt {progress.attempts})"
                    )
                    budget = compute_budget_instructions(
                        outcome.units_consumed,
                        self.config.compute_unit_margin,
                        self.config.priority_fee_micro_lamports,
                    )
                    return draft.with_instructions([*budget, *instructions])

                if outcome.is_anomaly:
                    last_error = "simulation reported neither an error nor consumed units"
                    logger.warning(f"Simulation anomaly: {last_error}")
                else:
                    last_error = outcome.err
                    logger.warning(f"Simulation error: {outcome.err}")

            progress = progress.record_failure()
            if progress.exhausted:
                logger.error(
                    f"Simulation failed {progress.failures} times "
                    f"(ceiling {self.config.simulation_retries})"
                )
                cause = last_error if isinstance(last_error, BaseException) else None
                raise SimulationFailed(progress.failures, last_error) from cause
            logger.warning(
                f"Retrying simulation, attempt {progress.failures + 1}/"
                f"{self.config.simulation_retries + 1}"
            )
