"""Validation helpers for swap-and-bridge parameters."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

from web3 import Web3

from swapbridge.core.errors import InsufficientBalance
from swapbridge.core.swap import SwapAndDepositData, TransferType
from swapbridge.core.utils import ZERO_ADDRESS, format_units, get_logger

LOGGER = get_logger("swapbridge.validation")

# 1M gas at 1 gwei, kept as headroom on top of any native value sent.
GAS_BUFFER_WEI = 1_000_000 * 10**9


@dataclass(frozen=True)
class BalanceValidationResult:
    """Outcome of the swap token balance pre-flight check."""

    token_address: Optional[str]
    required_amount: int
    balance: int
    decimals: int


def validate_balance(
    *,
    balance: int,
    required_amount: int,
    decimals: int,
    token_address: Optional[str] = None,
    symbol: str = "",
) -> BalanceValidationResult:
    """Fail with :class:`InsufficientBalance` before anything is sent."""
    label = f" {symbol}" if symbol else ""
    if balance < required_amount:
        raise InsufficientBalance(
            required_amount,
            balance,
            f"Insufficient balance. Required: {format_units(required_amount, decimals)}{label}, "
            f"Available: {format_units(balance, decimals)}{label}",
        )
    LOGGER.info("Balance check passed. Available: %s%s", format_units(balance, decimals), label)
    return BalanceValidationResult(
        token_address=token_address,
        required_amount=required_amount,
        balance=balance,
        decimals=decimals,
    )


def validate_swap_and_deposit_data(
    data: SwapAndDepositData,
    *,
    depositor: str,
    now: Optional[int] = None,
) -> None:
    """Ensure the periphery call data is structurally sound."""
    if data.swap_token_amount <= 0:
        raise ValueError("swapTokenAmount must be positive")
    if data.min_expected_input_token_amount <= 0:
        raise ValueError("minExpectedInputTokenAmount must be positive")
    if not data.router_calldata:
        raise ValueError("routerCalldata is empty")
    if data.nonce < 0:
        raise ValueError("nonce cannot be negative")
    for name in ("swap_token", "exchange", "spoke_pool"):
        value = getattr(data, name)
        if not Web3.is_address(value) or Web3.to_checksum_address(value) == ZERO_ADDRESS:
            raise ValueError(f"{name} is not a usable address: {value}")

    deposit = data.deposit_data
    if Web3.to_checksum_address(deposit.depositor) != Web3.to_checksum_address(depositor):
        raise ValueError(f"depositData.depositor {deposit.depositor} does not match signer {depositor}")
    if deposit.output_amount <= 0:
        raise ValueError("depositData.outputAmount must be positive")
    if len(deposit.output_token) != 32 or len(deposit.recipient) != 32 or len(deposit.exclusive_relayer) != 32:
        raise ValueError("depositData bytes32 fields must be 32 bytes long")

    current = int(time.time()) if now is None else now
    if deposit.fill_deadline <= current:
        raise ValueError(f"depositData.fillDeadline {deposit.fill_deadline} already passed")

    if data.transfer_type is not TransferType.APPROVAL:
        LOGGER.warning("Transfer type %s is not exercised by this tool", data.transfer_type.name)


@dataclass(frozen=True)
class NativeValidationResult:
    """Outcome of native funding checks."""

    native_balance: int
    required_native: int
    has_sufficient_native: bool


def validate_native_funding(*, native_balance: int, native_value: int) -> NativeValidationResult:
    """Check the signer can pay ``native_value`` plus a gas buffer."""
    required_native = native_value + GAS_BUFFER_WEI
    has_balance = native_balance >= required_native
    if not has_balance:
        LOGGER.warning(
            "Low native balance %.6f ETH, requires at least %.6f ETH",
            native_balance / 10**18,
            required_native / 10**18,
        )
    return NativeValidationResult(
        native_balance=native_balance,
        required_native=required_native,
        has_sufficient_native=has_balance,
    )


__all__ = [
    "BalanceValidationResult",
    "GAS_BUFFER_WEI",
    "NativeValidationResult",
    "validate_balance",
    "validate_native_funding",
    "validate_swap_and_deposit_data",
]
