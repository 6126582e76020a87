"""End-to-end tests for the swap/redeem state machine on the dry-run ledger."""

import asyncio

import pytest

from poolswap.models import Direction
from poolswap.services import SwapState

from tests.conftest import BLTM, OWNER, POOL, USDC, units


@pytest.fixture
def funded(ledger):
    """200 USDC with 50 USDC already approved for the pool."""
    ledger.fund(USDC.address, OWNER, units(200))
    ledger.set_allowance(USDC.address, OWNER, POOL, units(50))
    return ledger


async def wait_for_submission(coordinator, count=1):
    for _ in range(1000):
        if len(coordinator.transactions) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError("transaction was never submitted")


class TestInputValidation:
    """Tests for local input checks."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["abc", "0", "0.000", "-5", "1.0000001", "9" * 5000])
    async def test_invalid_input_never_reaches_ledger(self, orchestrator, ledger, value):
        """Test that unusable input is rejected without any ledger call."""
        snapshot = await orchestrator.set_amount(value)

        assert snapshot.state == SwapState.INSUFFICIENT_INPUT.value
        assert snapshot.action_enabled is False
        assert snapshot.last_error.type == "InputValidationError"
        assert ledger.total_calls == 0

    @pytest.mark.asyncio
    async def test_empty_input_is_idle(self, orchestrator, ledger):
        """Test that clearing the amount returns to idle."""
        snapshot = await orchestrator.set_amount("")

        assert snapshot.state == SwapState.IDLE.value
        assert snapshot.action_label == "Enter an amount"
        assert ledger.total_calls == 0

    @pytest.mark.asyncio
    async def test_pending_rate(self, orchestrator, funded):
        """Test that a missing rate waits instead of quoting zero."""
        funded.rate_raw = 0

        snapshot = await orchestrator.set_amount("30")

        assert snapshot.state == SwapState.AWAITING_RATE.value
        assert snapshot.action_enabled is False
        assert snapshot.computed_to_amount == ""
        assert funded.calls["balance_of"] == 0

    @pytest.mark.asyncio
    async def test_insufficient_balance_disables_action(self, orchestrator, ledger):
        """Test that the action is disabled when the balance is short."""
        ledger.fund(USDC.address, OWNER, units(10))

        snapshot = await orchestrator.set_amount("30")

        assert snapshot.state == SwapState.INSUFFICIENT_BALANCE.value
        assert snapshot.insufficient_balance is True
        assert snapshot.action_label == "Insufficient Balance"
        assert snapshot.action_enabled is False
        assert ledger.calls["allowance"] == 0


class TestSwap:
    """Tests for the swap path."""

    @pytest.mark.asyncio
    async def test_quote_and_ready(self, orchestrator, funded):
        """Test that a covered amount is quoted and ready to swap."""
        snapshot = await orchestrator.set_amount("30")

        assert snapshot.state == SwapState.READY.value
        assert snapshot.computed_to_amount == "58.8"
        assert snapshot.royalty_amount == "0.6"
        assert snapshot.rate == "2"
        assert snapshot.from_balance == "200"
        assert snapshot.action_label == "Swap"
        assert snapshot.action_enabled is True

    @pytest.mark.asyncio
    async def test_swap_refreshes_each_balance_once(self, orchestrator, funded):
        """Test that a confirmed swap re-reads both balances exactly once."""
        await orchestrator.set_amount("30")
        reads_before = funded.calls["balance_of"]

        snapshot = await orchestrator.perform_action()

        assert [r.function_name for r in funded.submitted] == ["swapUsdcForBltm"]
        assert funded.submitted[0].args == (units(30),)
        assert funded.calls["balance_of"] == reads_before + 2
        assert snapshot.state == SwapState.IDLE.value
        assert snapshot.from_amount == ""
        assert snapshot.from_balance == "170"
        assert snapshot.to_balance == "58.8"
        assert snapshot.last_transaction.status == "confirmed"
        assert snapshot.last_transaction.kind == "swap"

    @pytest.mark.asyncio
    async def test_spent_allowance_is_reread(self, orchestrator, funded):
        """Test that the spent allowance is read again after a swap."""
        await orchestrator.set_amount("30")
        await orchestrator.perform_action()

        snapshot = await orchestrator.set_amount("30")

        # 50 approved, 30 spent
        assert snapshot.state == SwapState.NEEDS_APPROVAL.value
        assert funded.calls["allowance"] == 2

    @pytest.mark.asyncio
    async def test_set_max(self, orchestrator, ledger):
        """Test that max fills in the full from-token balance."""
        ledger.fund(USDC.address, OWNER, units(123.25))
        ledger.set_allowance(USDC.address, OWNER, POOL, units(1000))

        snapshot = await orchestrator.set_max()

        assert snapshot.from_amount == "123.25"
        assert snapshot.state == SwapState.READY.value

    @pytest.mark.asyncio
    async def test_reset(self, orchestrator, funded):
        """Test that reset clears the amount and quote."""
        await orchestrator.set_amount("30")

        snapshot = await orchestrator.reset()

        assert snapshot.state == SwapState.IDLE.value
        assert snapshot.from_amount == ""
        assert orchestrator.quote is None


class TestApprovalFlow:
    """Tests for approval ahead of a swap."""

    @pytest.mark.asyncio
    async def test_approve_then_swap(self, orchestrator, ledger):
        """Test that an approval is confirmed before the swap is offered."""
        ledger.fund(USDC.address, OWNER, units(200))

        snapshot = await orchestrator.set_amount("30")
        assert snapshot.state == SwapState.NEEDS_APPROVAL.value
        assert snapshot.action_label == "Approve USDC"

        snapshot = await orchestrator.perform_action()
        assert snapshot.state == SwapState.READY.value
        assert snapshot.last_transaction.kind == "approve"
        assert ledger.get_allowance(USDC.address, OWNER, POOL) == units(30)

        snapshot = await orchestrator.perform_action()
        assert snapshot.state == SwapState.IDLE.value
        assert [r.function_name for r in ledger.submitted] == ["approve", "swapUsdcForBltm"]
        assert ledger.get_allowance(USDC.address, OWNER, POOL) == 0

    @pytest.mark.asyncio
    async def test_declined_approval_then_retry(self, orchestrator, ledger):
        """Test that a declined approval fails and a retry re-validates."""
        ledger.fund(USDC.address, OWNER, units(200))
        await orchestrator.set_amount("30")
        ledger.decline_next = True

        snapshot = await orchestrator.perform_action()

        assert snapshot.state == SwapState.FAILED.value
        assert snapshot.last_error.type == "UserDeclinedError"
        assert snapshot.action_label == "Try Again"
        assert snapshot.action_enabled is True
        assert ledger.submitted == []

        snapshot = await orchestrator.perform_action()
        assert snapshot.state == SwapState.NEEDS_APPROVAL.value
        assert snapshot.last_error is None
        assert ledger.submitted == []


class TestFailures:
    """Tests for failed transfers."""

    @pytest.mark.asyncio
    async def test_simulation_failure_submits_nothing(self, orchestrator, funded):
        """Test that a reverting swap is never submitted."""
        await orchestrator.set_amount("30")
        funded.rate_raw = 0

        snapshot = await orchestrator.perform_action()

        assert snapshot.state == SwapState.FAILED.value
        assert snapshot.last_error.type == "SimulationError"
        assert funded.calls["submit_transaction"] == 0

    @pytest.mark.asyncio
    async def test_timeout_keeps_balances(self, orchestrator, funded):
        """Test that a timed-out swap leaves balances unread."""
        await orchestrator.set_amount("30")
        reads_before = funded.calls["balance_of"]
        funded.drop_next = True

        snapshot = await orchestrator.perform_action()

        assert snapshot.state == SwapState.FAILED.value
        assert snapshot.last_error.type == "NetworkTimeoutError"
        assert snapshot.last_transaction.status == "timed_out"
        assert snapshot.from_balance == "200"
        assert funded.calls["balance_of"] == reads_before

    @pytest.mark.asyncio
    async def test_balance_read_failure_then_retry(self, orchestrator, funded):
        """Test that a failed balance read can be retried by the user."""
        funded.failing.add("balance_of")

        snapshot = await orchestrator.set_amount("30")
        assert snapshot.state == SwapState.FAILED.value
        assert snapshot.last_error.type == "UnknownRemoteError"

        funded.failing.clear()
        snapshot = await orchestrator.perform_action()
        assert snapshot.state == SwapState.READY.value
        assert funded.submitted == []


class TestDirection:
    """Tests for switching between swap and redeem."""

    @pytest.mark.asyncio
    async def test_switch_twice_restores_amount(self, orchestrator, funded):
        """Test that switching twice restores tokens and amount."""
        await orchestrator.set_amount("30")

        snapshot = await orchestrator.switch_direction()
        assert snapshot.direction == Direction.REDEEM.value
        assert snapshot.from_token.symbol == "BLTM"
        assert snapshot.from_amount == "60"
        assert snapshot.rate == "0.5"

        snapshot = await orchestrator.switch_direction()
        assert snapshot.direction == Direction.SWAP.value
        assert snapshot.from_amount == "30"
        assert snapshot.state == SwapState.READY.value

    @pytest.mark.asyncio
    async def test_redeem(self, orchestrator, ledger):
        """Test a full BLTM redeem."""
        ledger.fund(BLTM.address, OWNER, units(100))
        ledger.set_allowance(BLTM.address, OWNER, POOL, units(100))
        await orchestrator.switch_direction()

        snapshot = await orchestrator.set_amount("50")
        assert snapshot.state == SwapState.READY.value
        assert snapshot.action_label == "Redeem"
        assert snapshot.computed_to_amount == "24.5"

        snapshot = await orchestrator.perform_action()
        assert snapshot.state == SwapState.IDLE.value
        assert [r.function_name for r in ledger.submitted] == ["redeemBltmForUsdc"]
        assert ledger.get_balance(USDC.address, OWNER) == units(24.5)
        assert snapshot.from_balance == "50"


class TestConcurrency:
    """Tests for edits made while a transaction is in flight."""

    @pytest.mark.asyncio
    async def test_edit_while_swap_in_flight(self, orchestrator, funded):
        """Test that a swap finishing after an edit keeps the new input."""
        funded.receipt_delay = 3
        await orchestrator.set_amount("30")

        task = asyncio.create_task(orchestrator.perform_action())
        await wait_for_submission(orchestrator.coordinator)

        snapshot = await orchestrator.set_amount("10")
        assert snapshot.state == SwapState.READY.value
        assert snapshot.action_label == "Waiting for pending transaction..."
        assert snapshot.action_enabled is False

        # A second action while busy does nothing
        await orchestrator.perform_action()
        assert len(funded.submitted) == 1

        await task

        # The finished swap did not clear the newer input
        assert orchestrator.state is SwapState.READY
        assert orchestrator.amount == units(10)
        assert orchestrator.snapshot().from_amount == "10"
        assert funded.get_balance(USDC.address, OWNER) == units(170)
        assert orchestrator.balances.get_balance(USDC, OWNER).amount == units(170)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "new_amount,final_state",
        [("40", SwapState.NEEDS_APPROVAL), ("20", SwapState.READY)],
    )
    async def test_edit_while_approval_in_flight(self, orchestrator, ledger, new_amount, final_state):
        """Test that an approval finishing after an edit is checked against the new amount."""
        ledger.fund(USDC.address, OWNER, units(200))
        ledger.receipt_delay = 3
        await orchestrator.set_amount("30")

        task = asyncio.create_task(orchestrator.perform_action())
        await wait_for_submission(orchestrator.coordinator)

        snapshot = await orchestrator.set_amount(new_amount)
        assert snapshot.state == SwapState.NEEDS_APPROVAL.value
        assert snapshot.action_label == "Waiting for pending transaction..."
        assert snapshot.action_enabled is False

        await orchestrator.perform_action()
        await task

        assert [r.function_name for r in ledger.submitted] == ["approve"]
        assert ledger.submitted[0].args == (POOL, units(30))
        assert orchestrator.allowances.cached(USDC).current_amount == units(30)
        assert orchestrator.state is final_state
        assert orchestrator.amount == units(float(new_amount))
        assert orchestrator.snapshot().action_enabled is True

    @pytest.mark.asyncio
    async def test_switch_while_approval_in_flight(self, orchestrator, ledger):
        """Test that a direction switch during an approval keeps the redeem context."""
        ledger.fund(USDC.address, OWNER, units(200))
        ledger.fund(BLTM.address, OWNER, units(100))
        ledger.set_allowance(BLTM.address, OWNER, POOL, units(100))
        ledger.receipt_delay = 3
        await orchestrator.set_amount("30")

        task = asyncio.create_task(orchestrator.perform_action())
        await wait_for_submission(orchestrator.coordinator)

        snapshot = await orchestrator.switch_direction()
        assert snapshot.direction == Direction.REDEEM.value
        assert snapshot.from_amount == "60"
        assert snapshot.action_label == "Waiting for pending transaction..."
        assert snapshot.action_enabled is False

        await task

        assert [r.function_name for r in ledger.submitted] == ["approve"]
        # The USDC approval still landed and was re-read
        assert orchestrator.allowances.cached(USDC).current_amount == units(30)
        assert orchestrator.direction is Direction.REDEEM
        assert orchestrator.state is SwapState.READY
        assert orchestrator.snapshot().action_label == "Redeem"

    @pytest.mark.asyncio
    async def test_busy_flag(self, orchestrator, funded):
        """Test that the orchestrator reports busy while a swap runs."""
        funded.receipt_delay = 3
        await orchestrator.set_amount("30")

        task = asyncio.create_task(orchestrator.perform_action())
        await wait_for_submission(orchestrator.coordinator)

        assert orchestrator.busy is True
        assert orchestrator.snapshot().action_label == "Swapping..."
        await task
        assert orchestrator.busy is False
