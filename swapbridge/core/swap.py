"""Swap-and-deposit data for ``SpokePoolPeriphery.swapAndBridge``."""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Dict, Optional, Tuple

from web3 import Web3
from web3.contract import Contract
from web3.exceptions import ContractLogicError

from swapbridge.config import SwapBridgeConfig
from swapbridge.contracts import load_contract_abi
from swapbridge.core import quotes
from swapbridge.core.bridge import BridgeQuote
from swapbridge.core.errors import SimulationReverted
from swapbridge.core.utils import (
    ZERO_ADDRESS,
    address_to_bytes32,
    apply_slippage,
    ensure_web3_connected,
    get_logger,
    to_hex,
)

LOGGER = get_logger("swapbridge.swap")


class TransferType(IntEnum):
    """How the periphery obtains the swap token from the depositor."""

    APPROVAL = 0
    TRANSFER = 1
    PERMIT2_APPROVAL = 2


@dataclass(frozen=True)
class Fees:
    amount: int = 0
    recipient: str = ZERO_ADDRESS

    def as_abi_tuple(self) -> Tuple[int, str]:
        return (self.amount, Web3.to_checksum_address(self.recipient))


@dataclass(frozen=True)
class BaseDepositData:
    """Bridge-specific half of the periphery call."""

    input_token: str
    output_token: bytes
    output_amount: int
    depositor: str
    recipient: bytes
    destination_chain_id: int
    exclusive_relayer: bytes
    quote_timestamp: int
    fill_deadline: int
    exclusivity_parameter: int
    message: bytes = b""

    def as_abi_tuple(self) -> Tuple[Any, ...]:
        return (
            Web3.to_checksum_address(self.input_token),
            self.output_token,
            self.output_amount,
            Web3.to_checksum_address(self.depositor),
            self.recipient,
            self.destination_chain_id,
            self.exclusive_relayer,
            self.quote_timestamp,
            self.fill_deadline,
            self.exclusivity_parameter,
            self.message,
        )


@dataclass(frozen=True)
class SwapAndDepositData:
    """Instruction set for one swap-and-bridge submission.

    ``swap_token_amount`` is exactly what gets approved or transferred, and
    ``nonce`` must not repeat for a depositor.
    """

    swap_token: str
    swap_token_amount: int
    exchange: str
    transfer_type: TransferType
    router_calldata: bytes
    min_expected_input_token_amount: int
    deposit_data: BaseDepositData
    spoke_pool: str
    nonce: int
    submission_fees: Fees = field(default_factory=Fees)
    enable_proportional_adjustment: bool = True

    def as_abi_tuple(self) -> Tuple[Any, ...]:
        return (
            self.submission_fees.as_abi_tuple(),
            self.deposit_data.as_abi_tuple(),
            Web3.to_checksum_address(self.swap_token),
            Web3.to_checksum_address(self.exchange),
            int(self.transfer_type),
            self.swap_token_amount,
            self.min_expected_input_token_amount,
            self.router_calldata,
            self.enable_proportional_adjustment,
            Web3.to_checksum_address(self.spoke_pool),
            self.nonce,
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view used for logging."""
        deposit = self.deposit_data
        return {
            "submissionFees": {"amount": str(self.submission_fees.amount), "recipient": self.submission_fees.recipient},
            "depositData": {
                "inputToken": deposit.input_token,
                "outputToken": to_hex(deposit.output_token),
                "outputAmount": str(deposit.output_amount),
                "depositor": deposit.depositor,
                "recipient": to_hex(deposit.recipient),
                "destinationChainId": str(deposit.destination_chain_id),
                "exclusiveRelayer": to_hex(deposit.exclusive_relayer),
                "quoteTimestamp": deposit.quote_timestamp,
                "fillDeadline": deposit.fill_deadline,
                "exclusivityParameter": deposit.exclusivity_parameter,
                "message": to_hex(deposit.message) if deposit.message else "0x",
            },
            "swapToken": self.swap_token,
            "exchange": self.exchange,
            "transferType": self.transfer_type.name,
            "swapTokenAmount": str(self.swap_token_amount),
            "minExpectedInputTokenAmount": str(self.min_expected_input_token_amount),
            "routerCalldata": to_hex(self.router_calldata),
            "enableProportionalAdjustment": self.enable_proportional_adjustment,
            "spokePool": self.spoke_pool,
            "nonce": str(self.nonce),
        }


@dataclass(frozen=True)
class OriginSwap:
    """Origin-chain swap into the bridge input token."""

    quote: quotes.SwapQuoteResult
    min_expected_amount: int
    slippage_bps: int

    @property
    def exchange(self) -> str:
        return self.quote.router_address


def build_origin_swap(
    *,
    config: SwapBridgeConfig,
    swap_amount: int,
    quote_fn: Callable[..., quotes.SwapQuoteResult] = quotes.request_swap_route,
) -> OriginSwap:
    """Quote the origin swap routed from the periphery to the swap proxy."""
    slippage_bps = config.defaults.origin_swap_slippage_bps
    quote = quote_fn(
        config=config,
        chain=config.origin_chain.name,
        token_in=config.tokens.origin_swap_token.address,
        token_out=config.tokens.origin_deposit_token.address,
        amount_in=swap_amount,
        sender=config.origin_contracts.spoke_pool_periphery,
        recipient=config.origin_contracts.swap_proxy,
        slippage_bps=slippage_bps,
        initial_quote=True,
    )
    min_expected = apply_slippage(quote.amount_out, slippage_bps)
    if min_expected <= 0:
        raise ValueError(f"Origin swap of {swap_amount} yields no bridgeable amount")

    LOGGER.info(
        "Origin swap exchange=%s expectedAmountOut=%s minExpectedAmount=%s slippageBps=%s",
        quote.router_address,
        quote.amount_out,
        min_expected,
        slippage_bps,
    )
    return OriginSwap(quote=quote, min_expected_amount=min_expected, slippage_bps=slippage_bps)


def build_swap_and_deposit_data(
    *,
    config: SwapBridgeConfig,
    origin_swap: OriginSwap,
    bridge_quote: BridgeQuote,
    depositor: str,
    swap_amount: int,
    nonce: int,
    transfer_type: TransferType = TransferType.APPROVAL,
) -> SwapAndDepositData:
    """Combine the origin swap and the priced deposit into periphery call data."""
    deposit = bridge_quote.deposit
    deposit_data = BaseDepositData(
        input_token=config.tokens.origin_deposit_token.address,
        output_token=address_to_bytes32(deposit.output_token),
        output_amount=deposit.output_amount,
        depositor=Web3.to_checksum_address(depositor),
        recipient=address_to_bytes32(deposit.recipient),
        destination_chain_id=config.destination_chain.chain_id,
        exclusive_relayer=address_to_bytes32(deposit.exclusive_relayer),
        quote_timestamp=deposit.quote_timestamp,
        fill_deadline=deposit.fill_deadline,
        exclusivity_parameter=deposit.exclusivity_deadline,
        message=deposit.message,
    )
    return SwapAndDepositData(
        swap_token=config.tokens.origin_swap_token.address,
        swap_token_amount=swap_amount,
        exchange=origin_swap.exchange,
        transfer_type=transfer_type,
        router_calldata=origin_swap.quote.calldata,
        min_expected_input_token_amount=origin_swap.min_expected_amount,
        deposit_data=deposit_data,
        spoke_pool=deposit.spoke_pool_address,
        nonce=nonce,
    )


@functools.lru_cache(maxsize=1)
def _periphery_abi() -> tuple:
    return tuple(load_contract_abi("spoke_pool_periphery.json"))


def get_periphery_contract(web3: Web3, periphery_address: str) -> Contract:
    return web3.eth.contract(address=Web3.to_checksum_address(periphery_address), abi=list(_periphery_abi()))


@functools.lru_cache(maxsize=1)
def _offline_periphery() -> Contract:
    return Web3().eth.contract(abi=list(_periphery_abi()))


def encode_swap_and_bridge(data: SwapAndDepositData) -> bytes:
    """Return ``swapAndBridge`` calldata for ``data``."""
    encoded = _offline_periphery().encode_abi("swapAndBridge", args=[data.as_abi_tuple()])
    return Web3.to_bytes(hexstr=encoded)


def simulate_swap_and_bridge(
    web3: Web3,
    periphery_address: str,
    data: SwapAndDepositData,
    *,
    sender: str,
    value: int = 0,
) -> None:
    """Dry-run ``swapAndBridge`` against current state, surfacing the revert reason."""
    ensure_web3_connected(web3)
    contract = get_periphery_contract(web3, periphery_address)
    tx_params: Dict[str, Any] = {"from": Web3.to_checksum_address(sender)}
    if value:
        tx_params["value"] = value
    try:
        contract.functions.swapAndBridge(data.as_abi_tuple()).call(tx_params)
    except ContractLogicError as exc:
        reason: Optional[str] = getattr(exc, "message", None) or str(exc)
        raise SimulationReverted(reason) from exc
    LOGGER.info("swapAndBridge simulation succeeded")


__all__ = [
    "BaseDepositData",
    "Fees",
    "OriginSwap",
    "SwapAndDepositData",
    "TransferType",
    "build_origin_swap",
    "build_swap_and_deposit_data",
    "encode_swap_and_bridge",
    "get_periphery_contract",
    "simulate_swap_and_bridge",
]
