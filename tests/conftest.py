"""
Pytest fixtures for solana-batch-sender tests
"""
import os
from typing import Any, Iterable, Optional

import pytest
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from core.signer import KeypairSigner
from pipeline.config import PipelineConfig
from pipeline.types import Blockhash, SignatureStatus, SimulationOutcome

# No real RPC endpoint in tests
os.environ.pop("SOLANA_NODE_RPC_ENDPOINT", None)


class Script:
    """Replays a list of results; exceptions in the list are raised.

    The last entry repeats once the list is exhausted.
    """

    def __init__(self, results: Iterable[Any]):
        self._results = list(results)
        self.calls = 0

    def next(self) -> Any:
        if not self._results:
            raise AssertionError("no scripted result")
        index = min(self.calls, len(self._results) - 1)
        self.calls += 1
        result = self._results[index]
        if isinstance(result, BaseException):
            raise result
        return result


class FakeTransport:
    """Deterministic in-memory RPC transport."""

    def __init__(
        self,
        balance: int = 1_000_000_000,
        blockhash: Optional[Blockhash] = None,
        simulations: Iterable[Any] = (),
        sends: Iterable[Any] = (),
        statuses: Iterable[Any] = (),
    ):
        self.balance = balance
        self.blockhash = blockhash or Blockhash(Hash.new_unique(), slot=250_000_000, last_valid_block_height=1_000)
        self.simulations = Script(simulations)
        self.sends = Script(sends)
        self.statuses = Script(statuses)
        self.calls: list[str] = []
        self.simulated: list[bytes] = []
        self.sent: list[bytes] = []
        self.send_options: list[dict] = []
        self.polled: list[Signature] = []

    async def get_balance(self, pubkey: Pubkey, commitment: str) -> int:
        self.calls.append("get_balance")
        if isinstance(self.balance, BaseException):
            raise self.balance
        return self.balance

    async def get_latest_blockhash(self, commitment: str) -> Blockhash:
        self.calls.append("get_latest_blockhash")
        if isinstance(self.blockhash, BaseException):
            raise self.blockhash
        return self.blockhash

    async def simulate_transaction(self, tx: Transaction, commitment: str) -> SimulationOutcome:
        self.calls.append("simulate_transaction")
        self.simulated.append(bytes(tx))
        return self.simulations.next()

    async def send_transaction(
        self,
        tx: Transaction,
        preflight_commitment: str,
        min_context_slot: int,
        max_retries: int = 0,
    ) -> Signature:
        self.calls.append("send_transaction")
        self.sent.append(bytes(tx))
        self.send_options.append(
            {
                "preflight_commitment": preflight_commitment,
                "min_context_slot": min_context_slot,
                "max_retries": max_retries,
            }
        )
        return self.sends.next()

    async def get_signature_status(self, signature: Signature) -> SignatureStatus:
        self.calls.append("get_signature_status")
        self.polled.append(signature)
        return self.statuses.next()


class CountingSigner(KeypairSigner):
    """KeypairSigner that counts sign() calls."""

    def __init__(self, keypair: Keypair):
        super().__init__(keypair)
        self.sign_count = 0

    def sign(self, draft, blockhash):
        self.sign_count += 1
        return super().sign(draft, blockhash)


def make_instructions(count: int) -> list[Instruction]:
    program = Pubkey.new_unique()
    return [Instruction(program, bytes([i]), []) for i in range(count)]


@pytest.fixture
def fake_transport():
    """FakeTransport factory: fake_transport(sends=[...], statuses=[...])"""
    return FakeTransport


@pytest.fixture
def fast_config() -> PipelineConfig:
    """Default ceilings, no waiting between attempts."""
    return PipelineConfig(
        submission_retry_delay=0,
        confirmation_retry_delay=0,
        priority_fee_micro_lamports=25_000,
    )


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def signer(keypair) -> CountingSigner:
    return CountingSigner(keypair)


@pytest.fixture
def instructions() -> list[Instruction]:
    return make_instructions(3)


@pytest.fixture
def instruction_groups() -> list[list[Instruction]]:
    return [make_instructions(n) for n in (1, 2, 3)]
