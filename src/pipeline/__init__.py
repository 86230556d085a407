"""Transaction send pipeline: preflight, fee sizing, submission, confirmation."""

from pipeline.config import PipelineConfig
from pipeline.errors import (
    ConfirmationTimeout,
    InsufficientFunds,
    OnChainExecutionError,
    PipelineError,
    SimulationFailed,
    SubmissionFailed,
    SubmissionRejected,
    TransportError,
)
from pipeline.orchestrator import BatchSender
from pipeline.types import (
    BatchResult,
    Blockhash,
    ConfirmationStatus,
    SignatureStatus,
    SimulationOutcome,
    TransactionDraft,
)

__all__ = [
    # Orchestration
    "BatchSender",
    "PipelineConfig",
    # Data model
    "BatchResult",
    "Blockhash",
    "ConfirmationStatus",
    "SignatureStatus",
    "SimulationOutcome",
    "TransactionDraft",
    # Errors
    "PipelineError",
    "InsufficientFunds",
    "SimulationFailed",
    "SubmissionFailed",
    "SubmissionRejected",
    "ConfirmationTimeout",
    "OnChainExecutionError",
    "TransportError",
]
