"""Tests for the pool transaction history."""

import pytest
import pytest_asyncio

from poolswap.services import TransactionHistory

from tests.conftest import BLTM, OWNER, POOL, USDC, units


async def mine(ledger, function_name, amount):
    request = await ledger.simulate(POOL, function_name, (amount,), OWNER)
    tx_hash = await ledger.submit_transaction(request)
    receipt = await ledger.get_receipt(tx_hash)
    assert receipt.success
    return tx_hash


@pytest_asyncio.fixture
async def traded(ledger):
    """One 100 USDC swap followed by one 50 BLTM redeem."""
    ledger.fund(USDC.address, OWNER, units(100))
    ledger.set_allowance(USDC.address, OWNER, POOL, units(100))
    ledger.set_allowance(BLTM.address, OWNER, POOL, units(50))
    await mine(ledger, "swapUsdcForBltm", units(100))
    await mine(ledger, "redeemBltmForUsdc", units(50))
    return ledger


@pytest.fixture
def history(ledger, pair):
    """Transaction history over the dry-run ledger."""
    return TransactionHistory(ledger, pair)


class TestTransactionHistory:
    """Tests for history fetching and queries."""

    @pytest.mark.asyncio
    async def test_fetch_maps_events(self, history, traded):
        """Test that pool events become mint and burn entries."""
        entries = await history.fetch()

        assert len(entries) == 2
        mint, burn = sorted(entries, key=lambda e: e.block_number)
        assert mint.action == "mint"
        assert mint.usdc_amount == units(100)
        assert mint.bltm_amount == units(196)
        assert burn.action == "burn"
        assert burn.usdc_amount == units(24.5)
        assert burn.bltm_amount == units(50)
        assert burn.id == f"{burn.tx_hash}-0"

    @pytest.mark.asyncio
    async def test_fetch_is_cached(self, history, traded):
        """Test that history is fetched once until refreshed."""
        await history.fetch()
        await history.fetch()
        assert traded.calls["get_events"] == 2

        await history.fetch(refresh=True)
        assert traded.calls["get_events"] == 4

    @pytest.mark.asyncio
    async def test_filter(self, history, traded):
        """Test that the free-text filter matches any field."""
        await history.fetch()

        assert [e.action for e in history.query("burn")] == ["burn"]
        assert [e.action for e in history.query("196")] == ["mint"]
        assert len(history.query("  ")) == 2
        assert history.query("nothing matches") == []

    @pytest.mark.asyncio
    async def test_sort(self, history, traded):
        """Test sorting by amount and block."""
        await history.fetch()

        ordered = history.query(sort_by="usdc_amount", descending=True)
        assert [e.action for e in ordered] == ["mint", "burn"]

        ordered = history.query(sort_by="block_number")
        assert ordered[0].block_number < ordered[1].block_number

    @pytest.mark.asyncio
    async def test_unknown_sort_key(self, history, traded):
        """Test that an unknown sort key is rejected."""
        await history.fetch()
        with pytest.raises(ValueError):
            history.query(sort_by="gas")

    @pytest.mark.asyncio
    async def test_fetch_failure(self, history, ledger):
        """Test that a failed fetch flags an error and recovers."""
        ledger.failing.add("get_events")

        assert await history.fetch() == []
        assert history.is_error is True

        ledger.failing.clear()
        await history.fetch()
        assert history.is_error is False
