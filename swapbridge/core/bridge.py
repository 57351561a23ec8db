"""Across bridge quoting and direct SpokePool deposits."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from web3 import Web3
from web3.contract import Contract
from web3.exceptions import ContractLogicError

from swapbridge.config import SwapBridgeConfig
from swapbridge.contracts import load_contract_abi
from swapbridge.core import quotes
from swapbridge.core.errors import SimulationReverted
from swapbridge.core.message import CrossChainMessage
from swapbridge.core.utils import address_to_bytes32, ensure_web3_connected, get_logger

LOGGER = get_logger("swapbridge.bridge")


@dataclass(frozen=True)
class QuoteDeposit:
    """Deposit parameters priced by Across."""

    origin_chain_id: int
    destination_chain_id: int
    input_token: str
    output_token: str
    input_amount: int
    output_amount: int
    recipient: str
    message: bytes
    quote_timestamp: int
    fill_deadline: int
    exclusive_relayer: str
    exclusivity_deadline: int
    spoke_pool_address: str
    destination_spoke_pool_address: str
    is_native: bool = False

    @property
    def value(self) -> int:
        """Native value attached to the deposit call."""
        return self.input_amount if self.is_native else 0

    def deposit_args(self, depositor: str) -> Tuple[Any, ...]:
        return (
            address_to_bytes32(depositor),
            address_to_bytes32(self.recipient),
            address_to_bytes32(self.input_token),
            address_to_bytes32(self.output_token),
            self.input_amount,
            self.output_amount,
            self.destination_chain_id,
            address_to_bytes32(self.exclusive_relayer),
            self.quote_timestamp,
            self.fill_deadline,
            self.exclusivity_deadline,
            self.message,
        )


@dataclass(frozen=True)
class BridgeQuote:
    """Priced deposit plus the fee quote it was derived from."""

    deposit: QuoteDeposit
    fees: quotes.SuggestedFees


def get_bridge_quote(
    *,
    config: SwapBridgeConfig,
    input_token: str,
    output_token: str,
    input_amount: int,
    recipient: str,
    cross_chain_message: Optional[CrossChainMessage] = None,
    is_native: bool = False,
    fees_fn: Callable[..., quotes.SuggestedFees] = quotes.request_suggested_fees,
) -> BridgeQuote:
    """Price a deposit of ``input_amount``.

    With a cross-chain message the funds are sent to the destination multicall
    handler. The message is priced as initially built, then its actions are
    refreshed against the quoted output amount.
    """
    deposit_recipient = (
        config.destination_contracts.multicall_handler if cross_chain_message else Web3.to_checksum_address(recipient)
    )
    initial_message = cross_chain_message.encode() if cross_chain_message else b""

    fees = fees_fn(
        config=config,
        input_token=input_token,
        output_token=output_token,
        amount=input_amount,
        recipient=deposit_recipient,
        message=initial_message,
    )
    if fees.is_amount_too_low:
        raise ValueError(f"Across rejected input amount {input_amount} as too low")

    output_amount = fees.output_amount if fees.output_amount is not None else input_amount - fees.total_relay_fee
    if output_amount <= 0:
        raise ValueError(f"Relay fee {fees.total_relay_fee} consumes the whole input amount {input_amount}")

    message = cross_chain_message.with_output_amount(output_amount).encode() if cross_chain_message else b""

    LOGGER.info(
        "Across quote input=%s output=%s relayFee=%s fillDeadline=%s",
        input_amount,
        output_amount,
        fees.total_relay_fee,
        fees.fill_deadline,
    )

    spoke_pool = Web3.to_checksum_address(fees.spoke_pool_address or config.origin_contracts.spoke_pool)
    if spoke_pool != config.origin_contracts.spoke_pool:
        LOGGER.warning(
            "Across quoted spoke pool %s instead of configured %s; depositing to the quoted one",
            spoke_pool,
            config.origin_contracts.spoke_pool,
        )

    deposit = QuoteDeposit(
        origin_chain_id=config.origin_chain.chain_id,
        destination_chain_id=config.destination_chain.chain_id,
        input_token=Web3.to_checksum_address(input_token),
        output_token=Web3.to_checksum_address(output_token),
        input_amount=input_amount,
        output_amount=output_amount,
        recipient=deposit_recipient,
        message=message,
        quote_timestamp=fees.quote_timestamp,
        fill_deadline=fees.fill_deadline,
        exclusive_relayer=fees.exclusive_relayer,
        exclusivity_deadline=fees.exclusivity_deadline,
        spoke_pool_address=spoke_pool,
        destination_spoke_pool_address=config.destination_contracts.spoke_pool,
        is_native=is_native,
    )
    return BridgeQuote(deposit=deposit, fees=fees)


@functools.lru_cache(maxsize=1)
def _spoke_pool_abi() -> tuple:
    return tuple(load_contract_abi("spoke_pool.json"))


@functools.lru_cache(maxsize=1)
def _offline_spoke_pool() -> Contract:
    return Web3().eth.contract(abi=list(_spoke_pool_abi()))


def get_spoke_pool_contract(web3: Web3, spoke_pool_address: str) -> Contract:
    return web3.eth.contract(address=Web3.to_checksum_address(spoke_pool_address), abi=list(_spoke_pool_abi()))


def encode_deposit(deposit: QuoteDeposit, *, depositor: str) -> bytes:
    """Return SpokePool ``deposit`` calldata for a priced deposit."""
    encoded = _offline_spoke_pool().encode_abi("deposit", args=list(deposit.deposit_args(depositor)))
    return Web3.to_bytes(hexstr=encoded)


def simulate_deposit(web3: Web3, deposit: QuoteDeposit, *, depositor: str) -> None:
    """Dry-run ``deposit`` on the quoted spoke pool, surfacing the revert reason."""
    ensure_web3_connected(web3)
    contract = get_spoke_pool_contract(web3, deposit.spoke_pool_address)
    tx_params: Dict[str, Any] = {"from": Web3.to_checksum_address(depositor)}
    if deposit.value:
        tx_params["value"] = deposit.value
    try:
        contract.functions.deposit(*deposit.deposit_args(depositor)).call(tx_params)
    except ContractLogicError as exc:
        reason: Optional[str] = getattr(exc, "message", None) or str(exc)
        raise SimulationReverted(reason) from exc
    LOGGER.info("deposit simulation succeeded")


__all__ = [
    "BridgeQuote",
    "QuoteDeposit",
    "encode_deposit",
    "get_bridge_quote",
    "get_spoke_pool_contract",
    "simulate_deposit",
]
