"""Ledger client backed by a JSON-RPC node through web3.py.

Signing is delegated to the node (``eth_sendTransaction``) so no private key
ever touches this process.
"""

import logging
from typing import Any, Optional, Sequence

from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import ContractLogicError, TransactionNotFound

from poolswap.ledger.abi import ERC20_ABI, build_pool_abi
from poolswap.ledger.base import (
    ContractRevertError,
    LedgerClient,
    LedgerError,
    SignatureRejectedError,
)
from poolswap.models import EventLog, PreparedRequest, Receipt

logger = logging.getLogger(__name__)

# EIP-1193 "User Rejected Request"
USER_REJECTED_CODE = 4001


def is_user_rejection(exc: BaseException) -> bool:
    """Check whether a web3 error means the wallet declined to sign."""
    payloads = [getattr(exc, "rpc_response", None)]
    payloads.extend(arg for arg in exc.args if isinstance(arg, dict))
    for payload in payloads:
        if not isinstance(payload, dict):
            continue
        error = payload.get("error", payload)
        if isinstance(error, dict) and error.get("code") == USER_REJECTED_CODE:
            return True

    text = str(exc).lower()
    return "user rejected" in text or "user denied" in text


def _is_address(value: Any) -> bool:
    return isinstance(value, str) and value.startswith("0x") and len(value) == 42


class Web3LedgerClient(LedgerClient):
    """Token and pool access over an async web3 provider."""

    def __init__(
        self,
        rpc_url: str,
        pool_address: str,
        swap_function: str = "swapUsdcForBltm",
        redeem_function: str = "redeemBltmForUsdc",
        w3: Optional[AsyncWeb3] = None,
    ):
        self.rpc_url = rpc_url
        self._w3 = w3 or AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self._pool_address = AsyncWeb3.to_checksum_address(pool_address)
        self._pool = self._w3.eth.contract(
            address=self._pool_address,
            abi=build_pool_abi(swap_function, redeem_function),
        )
        self._tokens: dict[str, Any] = {}

    @property
    def name(self) -> str:
        return "web3"

    def _token(self, token_address: str):
        address = AsyncWeb3.to_checksum_address(token_address)
        if address not in self._tokens:
            self._tokens[address] = self._w3.eth.contract(address=address, abi=ERC20_ABI)
        return self._tokens[address]

    def _contract_for(self, contract_address: str):
        if AsyncWeb3.to_checksum_address(contract_address) == self._pool_address:
            return self._pool
        return self._token(contract_address)

    @staticmethod
    def _normalize_args(args: Sequence) -> list:
        return [AsyncWeb3.to_checksum_address(a) if _is_address(a) else a for a in args]

    async def balance_of(self, token_address: str, owner: str) -> int:
        try:
            return int(
                await self._token(token_address)
                .functions.balanceOf(AsyncWeb3.to_checksum_address(owner))
                .call()
            )
        except Exception as e:
            raise LedgerError(f"balanceOf failed for {token_address}: {e}") from e

    async def allowance(self, token_address: str, owner: str, spender: str) -> int:
        try:
            return int(
                await self._token(token_address)
                .functions.allowance(
                    AsyncWeb3.to_checksum_address(owner),
                    AsyncWeb3.to_checksum_address(spender),
                )
                .call()
            )
        except Exception as e:
            raise LedgerError(f"allowance failed for {token_address}: {e}") from e

    async def exchange_rate(self) -> int:
        try:
            return int(await self._pool.functions.exchangeRate().call())
        except Exception as e:
            raise LedgerError(f"exchangeRate failed: {e}") from e

    async def block_number(self) -> int:
        try:
            return int(await self._w3.eth.block_number)
        except Exception as e:
            raise LedgerError(f"eth_blockNumber failed: {e}") from e

    async def simulate(
        self,
        contract_address: str,
        function_name: str,
        args: Sequence,
        sender: str,
    ) -> PreparedRequest:
        contract = self._contract_for(contract_address)
        sender = AsyncWeb3.to_checksum_address(sender)
        call_args = self._normalize_args(args)

        try:
            fn = getattr(contract.functions, function_name)(*call_args)
            await fn.call({"from": sender})
            payload = await fn.build_transaction({"from": sender})
        except ContractLogicError as e:
            raise ContractRevertError(
                f"{function_name} would revert: {e}",
                reason=getattr(e, "message", None),
            ) from e
        except Exception as e:
            raise LedgerError(f"Simulation of {function_name} failed: {e}") from e

        logger.debug(f"Simulated {function_name}{tuple(call_args)} from {sender}")
        return PreparedRequest(
            contract_address=contract.address,
            function_name=function_name,
            args=tuple(args),
            sender=sender,
            payload=dict(payload),
        )

    async def submit_transaction(self, request: PreparedRequest) -> str:
        try:
            tx_hash = await self._w3.eth.send_transaction(request.payload)
        except Exception as e:
            if is_user_rejection(e):
                raise SignatureRejectedError(str(e)) from e
            raise LedgerError(f"eth_sendTransaction failed: {e}") from e
        return self._w3.to_hex(tx_hash)

    async def get_receipt(self, tx_hash: str) -> Optional[Receipt]:
        try:
            receipt = await self._w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        except Exception as e:
            raise LedgerError(f"eth_getTransactionReceipt failed: {e}") from e

        return Receipt(
            tx_hash=tx_hash,
            success=receipt["status"] == 1,
            block_number=receipt.get("blockNumber"),
        )

    async def get_events(self, event_name: str, from_block: int) -> list[EventLog]:
        try:
            event = getattr(self._pool.events, event_name)
            logs = await event().get_logs(from_block=from_block)
        except Exception as e:
            raise LedgerError(f"get_logs({event_name}) failed: {e}") from e

        return [
            EventLog(
                event=event_name,
                tx_hash=self._w3.to_hex(log["transactionHash"]),
                log_index=log["logIndex"],
                block_number=log["blockNumber"],
                args=dict(log["args"]),
            )
            for log in logs
        ]
