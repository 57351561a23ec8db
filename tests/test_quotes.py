"""Tests for swapbridge.core.quotes (no network calls)."""

import typing as t
from unittest.mock import MagicMock, patch

import pytest
import requests

from swapbridge.config import SwapBridgeConfig
from swapbridge.core.quotes import request_suggested_fees, request_swap_route
from tests.constants import (
    MULTICALL_HANDLER,
    PERIPHERY,
    ROUTER,
    SWAP_PROXY,
    USDC_ARBITRUM,
    USDC_BASE,
    WETH_BASE,
)


def _make_response(payload: t.Any) -> MagicMock:
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


def _route_payload(amount_out: str = "5000000") -> t.Dict[str, t.Any]:
    return {
        "code": 0,
        "data": {
            "routeSummary": {"amountIn": "2000000000000000", "amountOut": amount_out},
            "routerAddress": ROUTER,
        },
    }


def _build_payload(amount_out: str = "4990000") -> t.Dict[str, t.Any]:
    return {
        "code": 0,
        "data": {
            "amountIn": "2000000000000000",
            "amountOut": amount_out,
            "data": "0xdeadbeef",
            "routerAddress": ROUTER.lower(),
        },
    }


def _fees_payload(**overrides: t.Any) -> t.Dict[str, t.Any]:
    payload = {
        "totalRelayFee": {"pct": "1000", "total": "12000"},
        "timestamp": "1700000000",
        "fillDeadline": "1700021600",
        "exclusiveRelayer": "0x0000000000000000000000000000000000000000",
        "exclusivityDeadline": 0,
        "spokePoolAddress": "0x09aea4b2242abC8bb4BB78D537A67a245A7bEC64",
        "outputAmount": "4978000",
        "isAmountTooLow": False,
        "estimatedFillTimeSec": 4,
    }
    payload.update(overrides)
    return payload


def _request_route(config: SwapBridgeConfig, **overrides: t.Any):
    params: t.Dict[str, t.Any] = dict(
        config=config,
        chain="base",
        token_in=WETH_BASE,
        token_out=USDC_BASE,
        amount_in=2 * 10**15,
        sender=PERIPHERY,
        recipient=SWAP_PROXY,
        slippage_bps=10,
    )
    params.update(overrides)
    return request_swap_route(**params)


@patch("swapbridge.core.quotes.requests.post")
@patch("swapbridge.core.quotes.requests.get")
def test_request_swap_route_builds_calldata(
    mock_get: MagicMock, mock_post: MagicMock, config: SwapBridgeConfig
) -> None:
    """The route is fetched, then built for the given sender and recipient."""
    mock_get.return_value = _make_response(_route_payload())
    mock_post.return_value = _make_response(_build_payload())

    result = _request_route(config)

    assert result.router_address == ROUTER
    assert result.calldata == bytes.fromhex("deadbeef")
    assert result.amount_out == 4_990_000
    assert result.amount_in == 2 * 10**15

    url = mock_get.call_args[0][0]
    assert url == "https://aggregator-api.kyberswap.com/base/api/v1/routes"
    params = mock_get.call_args[1]["params"]
    assert params["tokenIn"] == WETH_BASE
    assert params["amountIn"] == str(2 * 10**15)
    assert mock_get.call_args[1]["headers"] == {"X-Client-Id": "AcrossTest"}

    assert mock_post.call_args[0][0].endswith("/base/api/v1/route/build")
    body = mock_post.call_args[1]["json"]
    assert body["sender"] == PERIPHERY
    assert body["recipient"] == SWAP_PROXY
    assert body["slippageTolerance"] == 10
    assert body["routeSummary"]["amountOut"] == "5000000"


@patch("swapbridge.core.quotes.requests.get")
def test_request_swap_route_rejects_error_code(mock_get: MagicMock, config: SwapBridgeConfig) -> None:
    mock_get.return_value = _make_response({"code": 4008, "message": "route not found"})
    with pytest.raises(ValueError, match="4008"):
        _request_route(config)


@patch("swapbridge.core.quotes.requests.get")
def test_request_swap_route_requires_route_summary(mock_get: MagicMock, config: SwapBridgeConfig) -> None:
    mock_get.return_value = _make_response({"code": 0, "data": {"routerAddress": ROUTER}})
    with pytest.raises(ValueError, match="routeSummary"):
        _request_route(config)


@patch("swapbridge.core.quotes.requests.post")
@patch("swapbridge.core.quotes.requests.get")
def test_request_swap_route_requires_calldata(
    mock_get: MagicMock, mock_post: MagicMock, config: SwapBridgeConfig
) -> None:
    mock_get.return_value = _make_response(_route_payload())
    payload = _build_payload()
    del payload["data"]["data"]
    mock_post.return_value = _make_response(payload)
    with pytest.raises(ValueError, match="calldata"):
        _request_route(config)


@patch("swapbridge.core.quotes.requests.get")
def test_request_swap_route_wraps_http_errors(mock_get: MagicMock, config: SwapBridgeConfig) -> None:
    mock_get.side_effect = requests.Timeout("timed out")
    with pytest.raises(ConnectionError, match="KyberSwap"):
        _request_route(config)


@patch("swapbridge.core.quotes.requests.get")
def test_request_suggested_fees_parses_response(mock_get: MagicMock, config: SwapBridgeConfig) -> None:
    """Fee, timing and output fields are parsed into integers."""
    mock_get.return_value = _make_response(_fees_payload())

    fees = request_suggested_fees(
        config=config,
        input_token=USDC_BASE,
        output_token=USDC_ARBITRUM,
        amount=4_990_000,
        recipient=MULTICALL_HANDLER,
        message=b"\x01\x02",
    )

    assert fees.total_relay_fee == 12_000
    assert fees.quote_timestamp == 1_700_000_000
    assert fees.fill_deadline == 1_700_021_600
    assert fees.output_amount == 4_978_000
    assert fees.expected_fill_time_sec == 4
    assert fees.is_amount_too_low is False

    assert mock_get.call_args[0][0] == "https://app.across.to/api/suggested-fees"
    params = mock_get.call_args[1]["params"]
    assert params["originChainId"] == 8453
    assert params["destinationChainId"] == 42161
    assert params["amount"] == "4990000"
    assert params["recipient"] == MULTICALL_HANDLER
    assert params["message"] == "0x0102"


@patch("swapbridge.core.quotes.requests.get")
def test_request_suggested_fees_without_output_amount(mock_get: MagicMock, config: SwapBridgeConfig) -> None:
    payload = _fees_payload()
    del payload["outputAmount"]
    mock_get.return_value = _make_response(payload)

    fees = request_suggested_fees(config=config, input_token=USDC_BASE, output_token=USDC_ARBITRUM, amount=1)

    assert fees.output_amount is None
    assert "recipient" not in mock_get.call_args[1]["params"]
    assert mock_get.call_args[1]["params"]["message"] == "0x"


@patch("swapbridge.core.quotes.requests.get")
def test_request_suggested_fees_rejects_malformed_payload(mock_get: MagicMock, config: SwapBridgeConfig) -> None:
    mock_get.return_value = _make_response({"timestamp": "1"})
    with pytest.raises(ValueError, match="malformed"):
        request_suggested_fees(config=config, input_token=USDC_BASE, output_token=USDC_ARBITRUM, amount=1)
