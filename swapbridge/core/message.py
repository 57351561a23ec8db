"""Cross-chain messages executed by the Across MulticallHandler on the destination chain."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Optional, Sequence, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from swapbridge.config import SwapBridgeConfig
from swapbridge.core import quotes
from swapbridge.core.errors import InvariantViolation
from swapbridge.core.tokens import encode_approve
from swapbridge.core.utils import get_logger

LOGGER = get_logger("swapbridge.message")

INSTRUCTIONS_ABI_TYPE = "((address,bytes,uint256)[],address)"

# Receives the relayed output amount and returns refreshed calldata for the action.
UpdateFn = Callable[[int], bytes]


@dataclass(frozen=True)
class CrossChainAction:
    """A single call the handler makes once funds arrive."""

    target: str
    call_data: bytes
    value: int = 0
    update: Optional[UpdateFn] = None

    def as_call(self) -> Tuple[str, bytes, int]:
        return (Web3.to_checksum_address(self.target), self.call_data, self.value)


@dataclass(frozen=True)
class CrossChainMessage:
    """Actions plus the address that receives funds if any action reverts."""

    actions: Sequence[CrossChainAction]
    fallback_recipient: str

    def encode(self) -> bytes:
        """ABI-encode the handler ``Instructions`` struct."""
        calls = [action.as_call() for action in self.actions]
        return encode([INSTRUCTIONS_ABI_TYPE], [(calls, Web3.to_checksum_address(self.fallback_recipient))])

    def with_output_amount(self, output_amount: int) -> "CrossChainMessage":
        """Re-derive every updatable action's calldata for ``output_amount``."""
        actions = []
        for action in self.actions:
            if action.update is None:
                actions.append(action)
            else:
                actions.append(replace(action, call_data=action.update(output_amount)))
        return replace(self, actions=tuple(actions))


def decode_fallback_recipient(message: bytes) -> Optional[str]:
    """Fallback recipient of an encoded handler message, or ``None`` if it does not decode."""
    try:
        ((_, fallback_recipient),) = decode([INSTRUCTIONS_ABI_TYPE], message)
    except (DecodingError, ValueError):
        return None
    return Web3.to_checksum_address(fallback_recipient)


def build_destination_swap_message(
    *,
    config: SwapBridgeConfig,
    user_address: str,
    estimated_amount: int,
    quote_fn: Callable[..., quotes.SwapQuoteResult] = quotes.request_swap_route,
) -> CrossChainMessage:
    """Approve the destination router and swap the relayed funds for the user.

    ``estimated_amount`` only prices the initial message for the fee quote. Both
    actions are rebuilt against the relayed output amount, and a change of router
    address between the two quotes is fatal because the approval targets it.
    """
    token_in = config.tokens.destination_swap_token_in.address
    token_out = config.tokens.destination_swap_token_out.address
    slippage_bps = config.defaults.destination_swap_slippage_bps
    chain = config.destination_chain.name

    initial = quote_fn(
        config=config,
        chain=chain,
        token_in=token_in,
        token_out=token_out,
        amount_in=estimated_amount,
        sender=user_address,
        recipient=user_address,
        slippage_bps=slippage_bps,
        initial_quote=True,
    )
    router = initial.router_address

    def _update_approve(updated_amount: int) -> bytes:
        return encode_approve(router, updated_amount)

    def _update_swap(updated_amount: int) -> bytes:
        updated = quote_fn(
            config=config,
            chain=chain,
            token_in=token_in,
            token_out=token_out,
            amount_in=updated_amount,
            sender=user_address,
            recipient=user_address,
            slippage_bps=slippage_bps,
            initial_quote=False,
        )
        if updated.router_address.lower() != router.lower():
            raise InvariantViolation(
                f"Destination swap router changed from {router} to {updated.router_address}"
            )
        return updated.calldata

    LOGGER.info("Destination swap via %s on %s", router, chain)
    return CrossChainMessage(
        actions=(
            CrossChainAction(
                target=token_in,
                call_data=encode_approve(router, estimated_amount),
                update=_update_approve,
            ),
            CrossChainAction(target=router, call_data=initial.calldata, update=_update_swap),
        ),
        fallback_recipient=user_address,
    )


__all__ = [
    "CrossChainAction",
    "CrossChainMessage",
    "UpdateFn",
    "build_destination_swap_message",
    "decode_fallback_recipient",
]
