"""Error kinds raised while preparing or executing a swap-and-bridge run."""

from __future__ import annotations

from typing import Any, Optional


class SwapBridgeError(Exception):
    """Base class for swapbridge failures."""


class InsufficientBalance(SwapBridgeError):
    """The depositor holds less of the swap token than the run requires."""

    def __init__(self, required: int, available: int, message: Optional[str] = None) -> None:
        self.required = required
        self.available = available
        super().__init__(message or f"Insufficient balance. Required: {required}, Available: {available}")


class SimulationReverted(SwapBridgeError):
    """Simulating ``swapAndBridge`` against current state reverted."""

    def __init__(self, reason: Optional[str] = None) -> None:
        self.reason = reason
        super().__init__(f"swapAndBridge simulation reverted: {reason or 'unknown reason'}")


class TransactionReverted(SwapBridgeError):
    """A broadcast transaction was mined with a failure status."""

    def __init__(self, tx_hash: str, receipt: Any = None) -> None:
        self.tx_hash = tx_hash
        self.receipt = receipt
        super().__init__(f"Transaction {tx_hash} reverted")


class TransactionTimeout(SwapBridgeError):
    """A receipt or fill did not show up within the allotted time."""


class InvariantViolation(SwapBridgeError):
    """Data returned by an external service contradicts data already committed to."""


class OperationCancelled(SwapBridgeError):
    """The caller abandoned the run between phases."""


__all__ = [
    "InsufficientBalance",
    "InvariantViolation",
    "OperationCancelled",
    "SimulationReverted",
    "SwapBridgeError",
    "TransactionReverted",
    "TransactionTimeout",
]
