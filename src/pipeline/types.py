"""
Data model of the send pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Sequence

from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

InstructionGroup = Sequence[Instruction]
BatchResult = list[Signature]


@dataclass(frozen=True)
class TransactionDraft:
    """Unsigned transaction built from one instruction group.

    Drafts are never mutated: adding compute-budget instructions produces a
    new draft via `with_instructions`.
    """
    instructions: tuple[Instruction, ...]
    payer: Pubkey

    @classmethod
    def build(cls, instructions: InstructionGroup, payer: Pubkey) -> "TransactionDraft":
        return cls(tuple(instructions), payer)

    def with_instructions(self, instructions: InstructionGroup) -> "TransactionDraft":
        return TransactionDraft(tuple(instructions), self.payer)

    def message(self) -> Message:
        return Message(list(self.instructions), self.payer)

    def to_unsigned(self) -> Transaction:
        """Unsigned transaction for simulation with blockhash replacement."""
        return Transaction.new_unsigned(self.message())


@dataclass(frozen=True)
class Blockhash:
    """Recent blockhash and the slot it was observed at."""
    hash: Hash
    slot: int
    last_valid_block_height: int = 0


@dataclass
class SimulationOutcome:
    """Result of a simulateTransaction call that reached the node."""
    err: Optional[Any] = None
    units_consumed: Optional[int] = None
    logs: list[str] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return self.err is None and self.units_consumed is not None

    @property
    def is_anomaly(self) -> bool:
        # Node answered with neither an error nor a unit count
        return self.err is None and self.units_consumed is None


class ConfirmationStatus(Enum):
    """Commitment progression of a submitted signature."""
    UNSEEN = 0
    PROCESSED = 1
    CONFIRMED = 2
    FINALIZED = 3

    @classmethod
    def from_commitment(cls, commitment: str) -> "ConfirmationStatus":
        """Map a commitment name ("processed", "confirmed", "finalized")."""
        try:
            status = cls[commitment.upper()]
        except KeyError:
            raise ValueError(f"Unknown commitment level: {commitment!r}") from None
        if status is cls.UNSEEN:
            raise ValueError("'unseen' is not a commitment level")
        return status

    def reaches(self, threshold: "ConfirmationStatus") -> bool:
        return self.value >= threshold.value


@dataclass(frozen=True)
class SignatureStatus:
    """One poll of getSignatureStatuses for a signature."""
    status: ConfirmationStatus
    err: Optional[Any] = None
    slot: Optional[int] = None

    @classmethod
    def unseen(cls) -> "SignatureStatus":
        return cls(ConfirmationStatus.UNSEEN)

    @property
    def failed(self) -> bool:
        return self.err is not None
