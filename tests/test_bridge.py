"""Tests for swapbridge.core.bridge."""

import logging
import typing as t
from unittest.mock import MagicMock

import pytest
from eth_abi import decode
from eth_utils import function_abi_to_4byte_selector
from web3.exceptions import ContractLogicError

from swapbridge.config import SwapBridgeConfig
from swapbridge.contracts import load_contract_abi
from swapbridge.core.bridge import encode_deposit, get_bridge_quote, simulate_deposit
from swapbridge.core.errors import SimulationReverted
from swapbridge.core.message import CrossChainAction, CrossChainMessage
from swapbridge.core.quotes import SuggestedFees
from swapbridge.core.utils import address_to_bytes32
from tests.constants import (
    DESTINATION_SPOKE_POOL,
    MULTICALL_HANDLER,
    ORIGIN_SPOKE_POOL,
    USDC_ARBITRUM,
    USDC_BASE,
    USER,
)

ZERO = "0x0000000000000000000000000000000000000000"


def _make_fees(**overrides: t.Any) -> SuggestedFees:
    values: t.Dict[str, t.Any] = dict(
        total_relay_fee=12_000,
        quote_timestamp=1_700_000_000,
        fill_deadline=1_700_021_600,
        exclusive_relayer=ZERO,
        exclusivity_deadline=0,
        spoke_pool_address=None,
        output_amount=None,
        is_amount_too_low=False,
        expected_fill_time_sec=None,
    )
    values.update(overrides)
    return SuggestedFees(**values)


class _FakeFees:
    def __init__(self, fees: SuggestedFees) -> None:
        self.fees = fees
        self.calls: t.List[t.Dict[str, t.Any]] = []

    def __call__(self, **kwargs: t.Any) -> SuggestedFees:
        self.calls.append(kwargs)
        return self.fees


def _message() -> CrossChainMessage:
    action = CrossChainAction(
        target=USDC_ARBITRUM,
        call_data=b"\x00",
        update=lambda amount: amount.to_bytes(4, "big"),
    )
    return CrossChainMessage(actions=(action,), fallback_recipient=USER)


def test_quote_without_message_pays_recipient(config: SwapBridgeConfig) -> None:
    """Output falls back to input minus the relay fee."""
    fees_fn = _FakeFees(_make_fees())

    quote = get_bridge_quote(
        config=config,
        input_token=USDC_BASE,
        output_token=USDC_ARBITRUM,
        input_amount=5_000_000,
        recipient=USER,
        fees_fn=fees_fn,
    )

    deposit = quote.deposit
    assert deposit.output_amount == 4_988_000
    assert deposit.recipient == USER
    assert deposit.message == b""
    assert deposit.spoke_pool_address == ORIGIN_SPOKE_POOL
    assert deposit.destination_spoke_pool_address == DESTINATION_SPOKE_POOL
    assert deposit.origin_chain_id == 8453
    assert deposit.destination_chain_id == 42161
    assert fees_fn.calls[0]["recipient"] == USER
    assert fees_fn.calls[0]["message"] == b""


def test_quote_with_message_targets_handler(config: SwapBridgeConfig) -> None:
    """A message redirects funds to the handler and is refreshed with the output amount."""
    message = _message()
    fees_fn = _FakeFees(_make_fees(output_amount=4_978_000))

    quote = get_bridge_quote(
        config=config,
        input_token=USDC_BASE,
        output_token=USDC_ARBITRUM,
        input_amount=5_000_000,
        recipient=USER,
        cross_chain_message=message,
        fees_fn=fees_fn,
    )

    assert quote.deposit.recipient == MULTICALL_HANDLER
    assert quote.deposit.output_amount == 4_978_000
    assert fees_fn.calls[0]["recipient"] == MULTICALL_HANDLER
    assert fees_fn.calls[0]["message"] == message.encode()
    assert quote.deposit.message == message.with_output_amount(4_978_000).encode()
    assert quote.deposit.message != message.encode()


def test_amount_too_low_rejected(config: SwapBridgeConfig) -> None:
    fees_fn = _FakeFees(_make_fees(is_amount_too_low=True))
    with pytest.raises(ValueError, match="too low"):
        get_bridge_quote(
            config=config,
            input_token=USDC_BASE,
            output_token=USDC_ARBITRUM,
            input_amount=10,
            recipient=USER,
            fees_fn=fees_fn,
        )


def test_fee_consuming_input_rejected(config: SwapBridgeConfig) -> None:
    fees_fn = _FakeFees(_make_fees(total_relay_fee=20_000))
    with pytest.raises(ValueError, match="consumes"):
        get_bridge_quote(
            config=config,
            input_token=USDC_BASE,
            output_token=USDC_ARBITRUM,
            input_amount=20_000,
            recipient=USER,
            fees_fn=fees_fn,
        )


def test_quoted_spoke_pool_wins_over_config(config: SwapBridgeConfig, caplog: pytest.LogCaptureFixture) -> None:
    quoted = "0x" + "5c" * 20
    fees_fn = _FakeFees(_make_fees(spoke_pool_address=quoted))

    with caplog.at_level(logging.WARNING, logger="swapbridge.bridge"):
        quote = get_bridge_quote(
            config=config,
            input_token=USDC_BASE,
            output_token=USDC_ARBITRUM,
            input_amount=5_000_000,
            recipient=USER,
            fees_fn=fees_fn,
        )

    assert quote.deposit.spoke_pool_address.lower() == quoted
    assert "instead of configured" in caplog.text


def _quote_with_message(config: SwapBridgeConfig, is_native: bool = False):
    return get_bridge_quote(
        config=config,
        input_token=USDC_BASE,
        output_token=USDC_ARBITRUM,
        input_amount=5_000_000,
        recipient=USER,
        cross_chain_message=_message(),
        is_native=is_native,
        fees_fn=_FakeFees(_make_fees(output_amount=4_978_000)),
    ).deposit


def test_encode_deposit_layout(config: SwapBridgeConfig) -> None:
    """Addresses go out as bytes32 and the handler message is attached."""
    deposit = _quote_with_message(config)
    abi = next(entry for entry in load_contract_abi("spoke_pool.json") if entry.get("name") == "deposit")

    calldata = encode_deposit(deposit, depositor=USER)

    assert calldata[:4] == function_abi_to_4byte_selector(abi)
    values = decode([item["type"] for item in abi["inputs"]], calldata[4:])
    assert values[0] == address_to_bytes32(USER)
    assert values[1] == address_to_bytes32(MULTICALL_HANDLER)
    assert values[2] == address_to_bytes32(USDC_BASE)
    assert values[3] == address_to_bytes32(USDC_ARBITRUM)
    assert values[4:7] == (5_000_000, 4_978_000, 42161)
    assert values[9] == 1_700_021_600
    assert values[11] == deposit.message


def _make_sim_web3() -> MagicMock:
    web3 = MagicMock()
    web3.is_connected.return_value = True
    return web3


def test_simulate_deposit_attaches_native_value(config: SwapBridgeConfig) -> None:
    deposit = _quote_with_message(config, is_native=True)
    web3 = _make_sim_web3()
    functions = web3.eth.contract.return_value.functions

    simulate_deposit(web3, deposit, depositor=USER)

    assert web3.eth.contract.call_args.kwargs["address"] == ORIGIN_SPOKE_POOL
    functions.deposit.assert_called_once_with(*deposit.deposit_args(USER))
    functions.deposit.return_value.call.assert_called_once_with({"from": USER, "value": 5_000_000})


def test_simulate_deposit_surfaces_revert_reason(config: SwapBridgeConfig) -> None:
    deposit = _quote_with_message(config)
    web3 = _make_sim_web3()
    call = web3.eth.contract.return_value.functions.deposit.return_value.call
    call.side_effect = ContractLogicError("execution reverted: InvalidFillDeadline")

    with pytest.raises(SimulationReverted, match="InvalidFillDeadline"):
        simulate_deposit(web3, deposit, depositor=USER)
    call.assert_called_once_with({"from": USER})
