"""Signing wallet bound to a private key and an RPC endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import TimeExhausted

from swapbridge.core.errors import TransactionReverted, TransactionTimeout
from swapbridge.core.utils import ensure_web3_connected, get_logger, to_hex

LOGGER = get_logger("swapbridge.wallet")

FALLBACK_GAS_LIMIT = 1_000_000


@dataclass(frozen=True)
class GasParameters:
    """EIP-1559 gas parameters."""

    gas: int
    gas_price: int
    max_priority_fee: int
    max_fee: int
    estimated_cost: int


class UserWallet:
    """Sends signed transactions from a local account on a single chain."""

    def __init__(self, web3: Web3, account: LocalAccount, chain_id: int) -> None:
        self.web3 = web3
        self.account = account
        self.chain_id = chain_id

    @property
    def address(self) -> str:
        return self.account.address

    def estimate_gas(self, tx: Dict[str, Any]) -> GasParameters:
        """Estimate gas and fees for ``tx``, falling back to a fixed limit."""
        try:
            gas_estimate = self.web3.eth.estimate_gas(tx)
        except Exception as exc:
            LOGGER.warning("Gas estimation failed: %s", exc)
            gas_estimate = FALLBACK_GAS_LIMIT

        gas_price = self.web3.eth.gas_price
        max_priority_fee = getattr(self.web3.eth, "max_priority_fee", gas_price)
        return GasParameters(
            gas=gas_estimate,
            gas_price=gas_price,
            max_priority_fee=max_priority_fee,
            max_fee=gas_price + max_priority_fee,
            estimated_cost=gas_estimate * gas_price,
        )

    def send_transaction(self, *, to: str, data: bytes, value: int = 0) -> str:
        """Sign and broadcast a transaction, returning its hash."""
        tx: Dict[str, Any] = {
            "from": self.address,
            "to": Web3.to_checksum_address(to),
            "data": to_hex(data),
            "value": value,
            "chainId": self.chain_id,
        }
        gas = self.estimate_gas(tx)
        LOGGER.info(
            "Gas=%s maxFee=%.2f gwei priority=%.2f gwei estimatedCost=%.6f ETH",
            gas.gas,
            gas.max_fee / 10**9,
            gas.max_priority_fee / 10**9,
            gas.estimated_cost / 10**18,
        )
        tx.update(
            {
                "gas": int(gas.gas * 1.1),  # add a 10% buffer
                "maxFeePerGas": gas.max_fee,
                "maxPriorityFeePerGas": gas.max_priority_fee,
                "nonce": self.web3.eth.get_transaction_count(self.address, "pending"),
            }
        )

        signed = self.account.sign_transaction(tx)
        tx_hash = self.web3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hex = to_hex(tx_hash)
        LOGGER.info("Broadcast transaction %s to %s", tx_hex, tx["to"])
        return tx_hex


def create_user_wallet(
    private_key: str,
    rpc_url: str,
    chain_id: int,
    web3_factory: Callable[[str], Web3] = lambda url: Web3(Web3.HTTPProvider(url)),
) -> UserWallet:
    """Connect to ``rpc_url`` and bind ``private_key`` to it."""
    web3 = web3_factory(rpc_url)
    try:
        ensure_web3_connected(web3, expected_chain_id=chain_id)
    except ConnectionError as exc:
        raise ConnectionError(f"Failed to connect to RPC: {rpc_url}") from exc

    account = Account.from_key(private_key)
    LOGGER.info("Connected to chain %s as %s", chain_id, account.address)
    return UserWallet(web3, account, chain_id)


def wait_for_receipt(web3: Web3, tx_hash: str, *, timeout: Optional[float] = None) -> Any:
    """Wait for ``tx_hash`` to be mined and fail on a reverted status."""
    try:
        if timeout is None:
            receipt = web3.eth.wait_for_transaction_receipt(tx_hash)
        else:
            receipt = web3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
    except TimeExhausted as exc:
        raise TransactionTimeout(f"Transaction {tx_hash} not mined after {timeout} seconds") from exc

    if receipt["status"] != 1:
        LOGGER.error("Transaction failed! hash=%s status=%s", tx_hash, receipt["status"])
        raise TransactionReverted(tx_hash, receipt)
    LOGGER.info("Transaction %s confirmed in block %s", tx_hash, receipt["blockNumber"])
    return receipt


__all__ = ["GasParameters", "UserWallet", "create_user_wallet", "wait_for_receipt"]
