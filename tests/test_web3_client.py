"""Tests for the web3 ledger client helpers that need no RPC node."""

import pytest

from poolswap.ledger.abi import build_pool_abi
from poolswap.ledger.web3_client import is_user_rejection


class TestUserRejection:
    """Tests for wallet rejection detection."""

    def test_eip1193_code(self):
        """Test the EIP-1193 rejection code."""
        exc = ValueError({"code": 4001, "message": "rejected"})
        assert is_user_rejection(exc) is True

    def test_nested_error_payload(self):
        """Test a rejection code nested in an error payload."""
        exc = ValueError({"error": {"code": 4001, "message": "no"}})
        assert is_user_rejection(exc) is True

    @pytest.mark.parametrize(
        "message",
        ["MetaMask Tx Signature: User denied transaction signature.", "User rejected the request."],
    )
    def test_wallet_messages(self, message):
        """Test wallet rejection messages."""
        assert is_user_rejection(Exception(message)) is True

    def test_other_errors(self):
        """Test that other errors are not rejections."""
        assert is_user_rejection(ValueError({"code": -32000, "message": "nonce too low"})) is False
        assert is_user_rejection(Exception("insufficient funds for gas")) is False


class TestPoolAbi:
    """Tests for the pool ABI builder."""

    def test_custom_function_names(self):
        """Test that configured function names appear in the ABI."""
        abi = build_pool_abi("buy", "sell")
        names = {entry["name"] for entry in abi}

        assert {"buy", "sell", "exchangeRate", "TokensSwapped", "TokensRedeemed"} <= names
