"""
Error taxonomy of the send pipeline.

Every phase raises its own terminal error once its retry ceiling is spent.
The batch orchestrator stamps the failing element index and the signatures
submitted so far onto the error before re-raising it.
"""

from typing import Any, Optional

from solders.signature import Signature


class PipelineError(Exception):
    """Base class for terminal pipeline failures."""

    phase: str = "pipeline"

    def __init__(self, message: str, phase: Optional[str] = None):
        super().__init__(message)
        if phase is not None:
            self.phase = phase
        self.element_index: Optional[int] = None
        self.signatures: list[Signature] = []

    def __str__(self) -> str:
        message = super().__str__()
        if self.element_index is None:
            return f"[{self.phase}] {message}"
        return f"[{self.phase}] element {self.element_index}: {message}"


class InsufficientFunds(PipelineError):
    """Fee payer balance is not strictly positive."""

    phase = "preflight"

    def __init__(self, balance: int):
        super().__init__(f"Insufficient SOL balance: {balance} lamports")
        self.balance = balance


class SimulationFailed(PipelineError):
    """Simulation kept failing past the simulation retry ceiling."""

    phase = "simulation"

    def __init__(self, attempts: int, last_error: Any = None):
        super().__init__(f"Simulation failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class SubmissionFailed(PipelineError):
    """Every send attempt up to the submission retry ceiling failed."""

    phase = "submission"

    def __init__(self, attempts: int, last_error: Any = None):
        super().__init__(f"Max retries exceeded after {attempts} send attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class ConfirmationTimeout(PipelineError):
    """Signature did not reach the commitment threshold in time."""

    phase = "confirmation"

    def __init__(self, signature: Signature, attempts: int, last_status: Any = None):
        super().__init__(
            f"Transaction {signature} not confirmed after {attempts} polls "
            f"(last status: {last_status}); blockhash likely expired"
        )
        self.signature = signature
        self.attempts = attempts
        self.last_status = last_status


class OnChainExecutionError(PipelineError):
    """The transaction landed but its execution failed."""

    phase = "confirmation"

    def __init__(self, signature: Signature, err: Any):
        super().__init__(f"Transaction {signature} failed on-chain: {err}")
        self.signature = signature
        self.err = err


class TransportError(PipelineError):
    """Unclassified RPC/network failure."""

    phase = "transport"


class SubmissionRejected(TransportError):
    """The node answered a sendTransaction call with an error."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code
