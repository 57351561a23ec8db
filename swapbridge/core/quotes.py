"""Quoting utilities for KyberSwap and the Across suggested-fees API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from web3 import Web3

from swapbridge.config import SwapBridgeConfig
from swapbridge.core.utils import get_logger, hex_to_bytes, log_json, to_hex

LOGGER = get_logger("swapbridge.quotes")


@dataclass(frozen=True)
class SwapQuoteResult:
    """Executable KyberSwap route."""

    router_address: str
    calldata: bytes
    amount_in: int
    amount_out: int


@dataclass(frozen=True)
class SuggestedFees:
    """Relevant fields of an Across ``/suggested-fees`` response."""

    total_relay_fee: int
    quote_timestamp: int
    fill_deadline: int
    exclusive_relayer: str
    exclusivity_deadline: int
    spoke_pool_address: Optional[str]
    output_amount: Optional[int]
    is_amount_too_low: bool
    expected_fill_time_sec: Optional[int]


def _kyber_headers(config: SwapBridgeConfig) -> Dict[str, str]:
    return {"X-Client-Id": config.client_id}


def _kyber_payload(response: requests.Response, context: str) -> Dict[str, Any]:
    payload = response.json()
    if payload.get("code") not in (None, 0):
        raise ValueError(f"KyberSwap {context} returned error code {payload.get('code')}: {payload.get('message')}")
    data = payload.get("data")
    if not data:
        raise ValueError(f"KyberSwap {context} response missing data")
    return data


def request_swap_route(
    *,
    config: SwapBridgeConfig,
    chain: str,
    token_in: str,
    token_out: str,
    amount_in: int,
    sender: str,
    recipient: str,
    slippage_bps: int,
    initial_quote: bool = True,
) -> SwapQuoteResult:
    """Fetch a KyberSwap route for ``amount_in`` and build its router calldata."""
    base_url = f"{config.api_urls.kyberswap}/{chain}/api/v1"
    params = {
        "tokenIn": Web3.to_checksum_address(token_in),
        "tokenOut": Web3.to_checksum_address(token_out),
        "amountIn": str(amount_in),
        "gasInclude": "true",
    }

    try:
        response = requests.get(
            f"{base_url}/routes",
            params=params,
            headers=_kyber_headers(config),
            timeout=config.defaults.api_timeout,
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        raise ConnectionError(f"Failed to fetch KyberSwap route from {base_url}: {exc}") from exc

    route = _kyber_payload(response, "route")
    route_summary = route.get("routeSummary")
    if not route_summary:
        raise ValueError("KyberSwap route response missing routeSummary")

    body = {
        "routeSummary": route_summary,
        "sender": Web3.to_checksum_address(sender),
        "recipient": Web3.to_checksum_address(recipient),
        "slippageTolerance": slippage_bps,
    }
    try:
        response = requests.post(
            f"{base_url}/route/build",
            json=body,
            headers=_kyber_headers(config),
            timeout=config.defaults.api_timeout,
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        raise ConnectionError(f"Failed to build KyberSwap route on {base_url}: {exc}") from exc

    built = _kyber_payload(response, "route build")
    calldata = built.get("data")
    router_address = built.get("routerAddress")
    if not calldata or not router_address:
        raise ValueError("KyberSwap build response missing calldata or routerAddress")

    result = SwapQuoteResult(
        router_address=Web3.to_checksum_address(router_address),
        calldata=hex_to_bytes(calldata),
        amount_in=int(built.get("amountIn", route_summary.get("amountIn", amount_in))),
        amount_out=int(built.get("amountOut", route_summary["amountOut"])),
    )
    log_json(
        LOGGER,
        "Initial swap data" if initial_quote else "Updated swap data",
        {
            "chain": chain,
            "inputToken": params["tokenIn"],
            "amount": str(amount_in),
            "outputToken": params["tokenOut"],
            "amountOut": str(result.amount_out),
            "to": result.router_address,
            "callData": to_hex(result.calldata),
        },
    )
    return result


def request_suggested_fees(
    *,
    config: SwapBridgeConfig,
    input_token: str,
    output_token: str,
    amount: int,
    recipient: Optional[str] = None,
    message: bytes = b"",
) -> SuggestedFees:
    """Query Across for relay fees and deposit timing parameters."""
    url = f"{config.api_urls.across}/suggested-fees"
    params = {
        "originChainId": config.origin_chain.chain_id,
        "destinationChainId": config.destination_chain.chain_id,
        "inputToken": Web3.to_checksum_address(input_token),
        "outputToken": Web3.to_checksum_address(output_token),
        "amount": str(amount),
        "message": to_hex(message) if message else "0x",
        "allowUnmatchedDecimals": "true",
    }
    if recipient:
        params["recipient"] = Web3.to_checksum_address(recipient)
    LOGGER.info("Across request: %s", url)

    try:
        response = requests.get(url, params=params, timeout=config.defaults.api_timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise ConnectionError(f"Failed to fetch Across fees from {url}: {exc}") from exc

    data = response.json()
    try:
        total_relay_fee = int(data["totalRelayFee"]["total"])
        quote_timestamp = int(data["timestamp"])
        fill_deadline = int(data["fillDeadline"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Across suggested-fees response is malformed: {exc}") from exc

    output_amount = data.get("outputAmount")
    expected_fill_time = data.get("estimatedFillTimeSec", data.get("expectedFillTimeSec"))
    return SuggestedFees(
        total_relay_fee=total_relay_fee,
        quote_timestamp=quote_timestamp,
        fill_deadline=fill_deadline,
        exclusive_relayer=Web3.to_checksum_address(data.get("exclusiveRelayer") or "0x" + "00" * 20),
        exclusivity_deadline=int(data.get("exclusivityDeadline") or 0),
        spoke_pool_address=data.get("spokePoolAddress"),
        output_amount=int(output_amount) if output_amount is not None else None,
        is_amount_too_low=bool(data.get("isAmountTooLow", False)),
        expected_fill_time_sec=int(expected_fill_time) if expected_fill_time is not None else None,
    )


__all__ = ["SuggestedFees", "SwapQuoteResult", "request_suggested_fees", "request_swap_route"]
