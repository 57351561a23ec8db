"""Tests for swapbridge.core.wallet."""

from unittest.mock import MagicMock

import pytest
from eth_account import Account
from web3.exceptions import TimeExhausted

from swapbridge.core.errors import TransactionReverted, TransactionTimeout
from swapbridge.core.wallet import FALLBACK_GAS_LIMIT, UserWallet, create_user_wallet, wait_for_receipt
from tests.constants import PERIPHERY, PRIVATE_KEY, USER

TX_HASH = "0x" + "12" * 32


def _make_web3(chain_id: int = 8453) -> MagicMock:
    web3 = MagicMock()
    web3.is_connected.return_value = True
    web3.eth.chain_id = chain_id
    web3.eth.estimate_gas.return_value = 100_000
    web3.eth.gas_price = 10**9
    web3.eth.max_priority_fee = 10**8
    web3.eth.get_transaction_count.return_value = 7
    web3.eth.send_raw_transaction.return_value = bytes.fromhex("12" * 32)
    return web3


def test_send_transaction_signs_and_broadcasts() -> None:
    web3 = _make_web3()
    wallet = UserWallet(web3, Account.from_key(PRIVATE_KEY), 8453)

    tx_hash = wallet.send_transaction(to=PERIPHERY, data=b"\x01\x02", value=5)

    assert tx_hash == TX_HASH
    web3.eth.get_transaction_count.assert_called_once_with(USER, "pending")
    estimated = web3.eth.estimate_gas.call_args[0][0]
    assert estimated["to"] == PERIPHERY
    assert estimated["data"] == "0x0102"
    assert estimated["value"] == 5
    web3.eth.send_raw_transaction.assert_called_once()


def test_estimate_gas_falls_back_on_failure() -> None:
    web3 = _make_web3()
    web3.eth.estimate_gas.side_effect = ValueError("execution reverted")
    wallet = UserWallet(web3, Account.from_key(PRIVATE_KEY), 8453)

    gas = wallet.estimate_gas({"to": PERIPHERY})

    assert gas.gas == FALLBACK_GAS_LIMIT
    assert gas.max_fee == 10**9 + 10**8


def test_create_user_wallet_checks_chain() -> None:
    web3 = _make_web3(chain_id=8453)
    wallet = create_user_wallet(PRIVATE_KEY, "https://base.example", 8453, web3_factory=lambda url: web3)
    assert wallet.address == USER

    with pytest.raises(ValueError, match="mismatch"):
        create_user_wallet(PRIVATE_KEY, "https://base.example", 42161, web3_factory=lambda url: web3)


def test_create_user_wallet_reports_rpc_url() -> None:
    web3 = _make_web3()
    web3.is_connected.return_value = False
    with pytest.raises(ConnectionError, match="https://base.example"):
        create_user_wallet(PRIVATE_KEY, "https://base.example", 8453, web3_factory=lambda url: web3)


def test_wait_for_receipt_returns_successful_receipt() -> None:
    web3 = MagicMock()
    receipt = {"status": 1, "blockNumber": 10}
    web3.eth.wait_for_transaction_receipt.return_value = receipt

    assert wait_for_receipt(web3, TX_HASH) is receipt
    web3.eth.wait_for_transaction_receipt.assert_called_once_with(TX_HASH)

    wait_for_receipt(web3, TX_HASH, timeout=30)
    web3.eth.wait_for_transaction_receipt.assert_called_with(TX_HASH, timeout=30)


def test_wait_for_receipt_raises_on_revert() -> None:
    web3 = MagicMock()
    web3.eth.wait_for_transaction_receipt.return_value = {"status": 0, "blockNumber": 10}

    with pytest.raises(TransactionReverted) as exc_info:
        wait_for_receipt(web3, TX_HASH)
    assert exc_info.value.tx_hash == TX_HASH


def test_wait_for_receipt_raises_on_timeout() -> None:
    web3 = MagicMock()
    web3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted("slow")

    with pytest.raises(TransactionTimeout):
        wait_for_receipt(web3, TX_HASH, timeout=1)
