"""Tests for the BalanceTracker cache."""

import pytest

from poolswap.errors import UnknownRemoteError

from tests.conftest import OWNER, USDC, units


class TestBalanceTracker:
    """Tests for cached balance reads."""

    def test_unknown_before_first_read(self, balances):
        """Test that a balance is unknown until read."""
        assert balances.get_balance(USDC, OWNER) is None

    @pytest.mark.asyncio
    async def test_load_reads_once(self, balances, ledger):
        """Test that load hits the ledger only on first use."""
        ledger.fund(USDC.address, OWNER, units(200))

        first = await balances.load(USDC, OWNER)
        second = await balances.load(USDC, OWNER)

        assert first.amount == second.amount == units(200)
        assert ledger.calls["balance_of"] == 1

    @pytest.mark.asyncio
    async def test_refresh_replaces_cache(self, balances, ledger):
        """Test that refresh replaces the cached value."""
        ledger.fund(USDC.address, OWNER, units(200))
        await balances.load(USDC, OWNER)

        ledger.fund(USDC.address, OWNER, units(150))
        await balances.refresh(USDC, OWNER)

        assert balances.get_balance(USDC, OWNER).amount == units(150)

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_last_value(self, balances, ledger):
        """Test that a failed refresh raises and keeps the old balance."""
        ledger.fund(USDC.address, OWNER, units(200))
        await balances.load(USDC, OWNER)
        ledger.failing.add("balance_of")

        with pytest.raises(UnknownRemoteError):
            await balances.refresh(USDC, OWNER)

        assert balances.get_balance(USDC, OWNER).amount == units(200)

    @pytest.mark.asyncio
    async def test_owner_address_case_insensitive(self, balances, ledger):
        """Test that owner addresses are matched case-insensitively."""
        ledger.fund(USDC.address, OWNER, 5)
        await balances.load(USDC, OWNER.upper())
        assert balances.get_balance(USDC, OWNER).amount == 5
