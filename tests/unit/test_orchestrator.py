"""Unit tests for BatchSender"""
import pytest
from solders.compute_budget import set_compute_unit_limit
from solders.signature import Signature
from solders.transaction import Transaction

from pipeline import BatchSender
from pipeline.errors import (
    ConfirmationTimeout,
    InsufficientFunds,
    SimulationFailed,
    SubmissionFailed,
    TransportError,
)
from pipeline.types import ConfirmationStatus, SignatureStatus, SimulationOutcome
from utils.trace_context import get_current_trace

CONFIRMED = SignatureStatus(ConfirmationStatus.CONFIRMED, slot=7)


class TestBatchOrder:

    @pytest.mark.asyncio
    async def test_signatures_in_input_order(self, instruction_groups, signer, fast_config, fake_transport):
        sigs = [Signature.new_unique() for _ in instruction_groups]
        transport = fake_transport(sends=sigs, statuses=[CONFIRMED])

        result = await BatchSender(transport, signer, fast_config).submit_batch(instruction_groups)

        assert result == sigs
        assert transport.polled == sigs

    @pytest.mark.asyncio
    async def test_phase_sequence_per_element(self, instructions, signer, fast_config, fake_transport):
        transport = fake_transport(
            simulations=[SimulationOutcome(units_consumed=20_000)],
            sends=[Signature.new_unique()],
            statuses=[CONFIRMED],
        )

        await BatchSender(transport, signer, fast_config).submit_batch([instructions], dynamic_cost=True)

        assert transport.calls == [
            "get_balance",
            "get_latest_blockhash",
            "simulate_transaction",
            "send_transaction",
            "get_signature_status",
        ]

    @pytest.mark.asyncio
    async def test_empty_batch(self, signer, fast_config, fake_transport):
        transport = fake_transport()
        assert await BatchSender(transport, signer, fast_config).submit_batch([]) == []
        assert transport.calls == []


class TestOptions:

    @pytest.mark.asyncio
    async def test_static_cost_skips_simulation(self, instructions, signer, fast_config, fake_transport):
        transport = fake_transport(sends=[Signature.new_unique()], statuses=[CONFIRMED])

        await BatchSender(transport, signer, fast_config).submit_batch([instructions])

        assert "simulate_transaction" not in transport.calls
        sent = Transaction.from_bytes(transport.sent[0])
        assert len(sent.message.instructions) == len(instructions)

    @pytest.mark.asyncio
    async def test_dynamic_cost_sends_budgeted_transaction(self, instructions, signer, fast_config, fake_transport):
        transport = fake_transport(
            simulations=[SimulationOutcome(units_consumed=50_000)],
            sends=[Signature.new_unique()],
            statuses=[CONFIRMED],
        )

        await BatchSender(transport, signer, fast_config).submit_batch([instructions], dynamic_cost=True)

        sent = Transaction.from_bytes(transport.sent[0])
        assert len(sent.message.instructions) == len(instructions) + 2
        limit_ix = set_compute_unit_limit(51_000)
        assert bytes(sent.message.instructions[0].data) == bytes(limit_ix.data)

    @pytest.mark.asyncio
    async def test_skip_confirm(self, instruction_groups, signer, fast_config, fake_transport):
        sigs = [Signature.new_unique() for _ in instruction_groups]
        transport = fake_transport(sends=sigs)

        result = await BatchSender(transport, signer, fast_config).submit_batch(
            instruction_groups, skip_confirm=True
        )

        assert result == sigs
        assert "get_signature_status" not in transport.calls


class TestAbort:

    @pytest.mark.asyncio
    async def test_zero_balance_stops_at_balance_query(self, instruction_groups, signer, fast_config, fake_transport):
        transport = fake_transport(balance=0)

        with pytest.raises(InsufficientFunds) as exc_info:
            await BatchSender(transport, signer, fast_config).submit_batch(instruction_groups, dynamic_cost=True)

        assert transport.calls == ["get_balance"]
        assert exc_info.value.element_index == 0
        assert exc_info.value.phase == "preflight"

    @pytest.mark.asyncio
    async def test_second_element_failure_aborts_batch(self, instruction_groups, signer, fast_config, fake_transport):
        first = Signature.new_unique()
        failures = [TransportError("gateway down")] * (fast_config.submission_retries + 1)
        transport = fake_transport(sends=[first, *failures, Signature.new_unique()], statuses=[CONFIRMED])

        with pytest.raises(SubmissionFailed) as exc_info:
            await BatchSender(transport, signer, fast_config).submit_batch(instruction_groups)

        error = exc_info.value
        assert error.element_index == 1
        assert "element 1" in str(error)
        assert error.signatures == [first]
        # element 3 never started
        assert transport.calls.count("get_balance") == 2
        assert transport.sends.calls == 1 + fast_config.submission_retries + 1

    @pytest.mark.asyncio
    async def test_simulation_failure_identifies_element(self, instruction_groups, signer, fast_config, fake_transport):
        transport = fake_transport(simulations=[SimulationOutcome(err="AccountNotFound")])

        with pytest.raises(SimulationFailed) as exc_info:
            await BatchSender(transport, signer, fast_config).submit_batch(instruction_groups, dynamic_cost=True)

        assert exc_info.value.element_index == 0
        assert "send_transaction" not in transport.calls

    @pytest.mark.asyncio
    async def test_confirmation_timeout_keeps_submitted_signature(self, instructions, signer, fast_config, fake_transport):
        sig = Signature.new_unique()
        transport = fake_transport(sends=[sig], statuses=[SignatureStatus.unseen()])

        with pytest.raises(ConfirmationTimeout) as exc_info:
            await BatchSender(transport, signer, fast_config).submit_batch([instructions])

        assert exc_info.value.signatures == [sig]
        assert exc_info.value.element_index == 0

    @pytest.mark.asyncio
    async def test_transport_error_attributed_to_phase(self, instructions, signer, fast_config, fake_transport):
        transport = fake_transport()
        transport.blockhash = TransportError("getLatestBlockhash failed: timeout")

        with pytest.raises(TransportError) as exc_info:
            await BatchSender(transport, signer, fast_config).submit_batch([instructions])

        assert exc_info.value.phase == "blockhash"
        assert transport.calls == ["get_balance", "get_latest_blockhash"]

    @pytest.mark.asyncio
    async def test_trace_cleared_after_batch(self, instructions, signer, fast_config, fake_transport):
        transport = fake_transport(balance=0)

        with pytest.raises(InsufficientFunds):
            await BatchSender(transport, signer, fast_config).submit_batch([instructions], batch_id="b1")

        assert get_current_trace() is None

    @pytest.mark.asyncio
    async def test_trace_cleared_on_unexpected_error(self, instruction_groups, signer, fast_config, fake_transport):
        transport = fake_transport(sends=[RuntimeError("decoder blew up")])

        with pytest.raises(RuntimeError):
            await BatchSender(transport, signer, fast_config).submit_batch(
                instruction_groups, skip_confirm=True, batch_id="b2"
            )

        assert get_current_trace() is None
        assert transport.calls.count("send_transaction") == 1
