"""Core domain logic for swapbridge."""

from .bridge import get_bridge_quote
from .executor import ExecuteSwapAndBridgeParams, ExecutionResult, execute_swap_and_bridge
from .message import build_destination_swap_message
from .quotes import request_suggested_fees, request_swap_route
from .swap import build_origin_swap, build_swap_and_deposit_data, simulate_swap_and_bridge
from .validation import validate_balance, validate_native_funding, validate_swap_and_deposit_data
from .watchers import parse_deposit_logs, parse_fill_logs, wait_for_deposit_tx, wait_for_fill_tx

__all__ = [
    "ExecuteSwapAndBridgeParams",
    "ExecutionResult",
    "build_destination_swap_message",
    "build_origin_swap",
    "build_swap_and_deposit_data",
    "execute_swap_and_bridge",
    "get_bridge_quote",
    "parse_deposit_logs",
    "parse_fill_logs",
    "request_suggested_fees",
    "request_swap_route",
    "simulate_swap_and_bridge",
    "validate_balance",
    "validate_native_funding",
    "validate_swap_and_deposit_data",
    "wait_for_deposit_tx",
    "wait_for_fill_tx",
]
