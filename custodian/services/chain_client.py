"""
Network handle for a single RPC endpoint.

Wraps web3's async client for the handful of calls the service needs:
liveness probe, balance read, gas price, signed value transfer and the
receipt wait. Signing uses eth-account with the injected custodial key.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol
from urllib.parse import urlsplit

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

logger = logging.getLogger(__name__)

WEI_PER_ETH = Decimal(10) ** 18


def wei_to_eth(value: int) -> Decimal:
    return Decimal(value) / WEI_PER_ETH


def eth_to_wei(value: Decimal) -> int:
    return int(value * WEI_PER_ETH)


def endpoint_label(url: str) -> str:
    """Short, secret-free name for an endpoint URL (first host label)."""
    host = urlsplit(url).hostname or url
    return host.split(".")[0]


@dataclass(frozen=True)
class TransferReceipt:
    tx_hash: str
    block_number: int
    gas_used: int
    effective_gas_price: int
    succeeded: bool

    @property
    def fee_paid_eth(self) -> Decimal:
        return wei_to_eth(self.gas_used * self.effective_gas_price)


class ChainHandle(Protocol):
    """What the pipeline and the balance monitor need from an endpoint."""

    url: str
    label: str

    async def probe(self) -> int: ...

    async def get_balance(self, address: str) -> Decimal: ...

    async def get_gas_price(self) -> int: ...

    async def send_transfer(
        self,
        to: str,
        value_wei: int,
        max_fee_per_gas: int,
        max_priority_fee_per_gas: int,
        gas_limit: int,
    ) -> str: ...

    async def wait_for_receipt(self, tx_hash: str) -> TransferReceipt: ...


class Web3ChainClient:
    """web3-backed :class:`ChainHandle` bound to one endpoint URL."""

    def __init__(
        self,
        url: str,
        private_key: str = "",
        confirmation_timeout: float = 120.0,
    ):
        self.url = url
        self.label = endpoint_label(url)
        self._private_key = private_key
        self._confirmation_timeout = confirmation_timeout
        self.w3 = AsyncWeb3(AsyncHTTPProvider(url))

    async def probe(self) -> int:
        """Fetch the current block height."""
        return await self.w3.eth.block_number

    async def get_balance(self, address: str) -> Decimal:
        wei = await self.w3.eth.get_balance(Web3.to_checksum_address(address))
        return wei_to_eth(wei)

    async def get_gas_price(self) -> int:
        return await self.w3.eth.gas_price

    async def send_transfer(
        self,
        to: str,
        value_wei: int,
        max_fee_per_gas: int,
        max_priority_fee_per_gas: int,
        gas_limit: int,
    ) -> str:
        """Sign an EIP-1559 value transfer and hand it to the endpoint."""
        account = Account.from_key(self._private_key)
        nonce = await self.w3.eth.get_transaction_count(account.address, "pending")
        chain_id = await self.w3.eth.chain_id

        tx = {
            "type": 2,
            "chainId": chain_id,
            "nonce": nonce,
            "to": Web3.to_checksum_address(to),
            "value": value_wei,
            "gas": gas_limit,
            "maxFeePerGas": max_fee_per_gas,
            "maxPriorityFeePerGas": max_priority_fee_per_gas,
        }
        signed = account.sign_transaction(tx)
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)

    async def wait_for_receipt(self, tx_hash: str) -> TransferReceipt:
        """Block until the transaction is included in one block."""
        receipt = await self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self._confirmation_timeout,
        )
        return TransferReceipt(
            tx_hash=tx_hash,
            block_number=receipt["blockNumber"],
            gas_used=receipt["gasUsed"],
            effective_gas_price=receipt["effectiveGasPrice"],
            succeeded=receipt["status"] == 1,
        )


def error_code(exc: Exception) -> str | None:
    """Best-effort machine-readable code from a web3 / JSON-RPC error."""
    rpc_response = getattr(exc, "rpc_response", None)
    if isinstance(rpc_response, dict):
        error = rpc_response.get("error")
        if isinstance(error, dict) and error.get("code") is not None:
            return str(error["code"])
    if exc.args and isinstance(exc.args[0], dict) and exc.args[0].get("code") is not None:
        return str(exc.args[0]["code"])
    return None


def derive_address(private_key: str) -> str:
    """Checksummed address for *private_key*."""
    return Account.from_key(private_key).address
