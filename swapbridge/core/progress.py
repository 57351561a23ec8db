"""Progress events emitted while a swap-and-bridge or deposit run advances.

Each ``(step, status)`` pair has its own frozen dataclass carrying only the fields
valid in that state. ``step`` and ``status`` are class attributes, except on
:class:`ProgressError` where ``step`` records the phase that failed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ClassVar, Optional, Union

from swapbridge.core.bridge import QuoteDeposit
from swapbridge.core.swap import SwapAndDepositData
from swapbridge.core.watchers import DepositLog, FillLog


class Step(str, Enum):
    APPROVE = "approve"
    SWAP_AND_BRIDGE = "swapAndBridge"
    DEPOSIT = "deposit"
    FILL = "fill"


class Status(str, Enum):
    IDLE = "idle"
    TX_PENDING = "txPending"
    TX_SUCCESS = "txSuccess"
    PENDING = "pending"
    ERROR = "error"


@dataclass(frozen=True)
class ApproveMeta:
    approval_amount: int
    spender: str


@dataclass(frozen=True)
class SwapAndBridgeMeta:
    swap_and_deposit_data: SwapAndDepositData


@dataclass(frozen=True)
class DepositMeta:
    deposit: QuoteDeposit


@dataclass(frozen=True)
class FillMeta:
    deposit_id: int
    deposit_tx_receipt: Any = None


ProgressMeta = Union[ApproveMeta, SwapAndBridgeMeta, DepositMeta, FillMeta, None]


@dataclass(frozen=True)
class Idle:
    step: ClassVar[Step] = Step.APPROVE
    status: ClassVar[Status] = Status.IDLE


@dataclass(frozen=True)
class ApprovePending:
    tx_hash: str
    meta: ApproveMeta
    step: ClassVar[Step] = Step.APPROVE
    status: ClassVar[Status] = Status.TX_PENDING


@dataclass(frozen=True)
class ApproveSuccess:
    tx_receipt: Any
    meta: ApproveMeta
    step: ClassVar[Step] = Step.APPROVE
    status: ClassVar[Status] = Status.TX_SUCCESS


@dataclass(frozen=True)
class SwapAndBridgePending:
    tx_hash: str
    meta: SwapAndBridgeMeta
    step: ClassVar[Step] = Step.SWAP_AND_BRIDGE
    status: ClassVar[Status] = Status.TX_PENDING


@dataclass(frozen=True)
class SwapAndBridgeSuccess:
    tx_receipt: Any
    deposit_id: int
    deposit_log: Optional[DepositLog]
    meta: SwapAndBridgeMeta
    step: ClassVar[Step] = Step.SWAP_AND_BRIDGE
    status: ClassVar[Status] = Status.TX_SUCCESS


@dataclass(frozen=True)
class DepositPending:
    tx_hash: str
    meta: DepositMeta
    step: ClassVar[Step] = Step.DEPOSIT
    status: ClassVar[Status] = Status.TX_PENDING


@dataclass(frozen=True)
class DepositSuccess:
    tx_receipt: Any
    deposit_id: int
    deposit_log: Optional[DepositLog]
    meta: DepositMeta
    step: ClassVar[Step] = Step.DEPOSIT
    status: ClassVar[Status] = Status.TX_SUCCESS


@dataclass(frozen=True)
class FillPending:
    meta: FillMeta
    step: ClassVar[Step] = Step.FILL
    status: ClassVar[Status] = Status.PENDING


@dataclass(frozen=True)
class FillSuccess:
    tx_receipt: Any
    fill_tx_timestamp: int
    action_success: Optional[bool]
    fill_log: Optional[FillLog]
    meta: FillMeta
    step: ClassVar[Step] = Step.FILL
    status: ClassVar[Status] = Status.TX_SUCCESS


@dataclass(frozen=True)
class ProgressError:
    step: Step
    error: BaseException
    meta: ProgressMeta
    status: ClassVar[Status] = Status.ERROR


ProgressEvent = Union[
    Idle,
    ApprovePending,
    ApproveSuccess,
    SwapAndBridgePending,
    SwapAndBridgeSuccess,
    DepositPending,
    DepositSuccess,
    FillPending,
    FillSuccess,
    ProgressError,
]

ProgressHandler = Callable[[ProgressEvent], None]


__all__ = [
    "ApproveMeta",
    "ApprovePending",
    "ApproveSuccess",
    "DepositMeta",
    "DepositPending",
    "DepositSuccess",
    "FillMeta",
    "FillPending",
    "FillSuccess",
    "Idle",
    "ProgressError",
    "ProgressEvent",
    "ProgressHandler",
    "ProgressMeta",
    "Status",
    "Step",
    "SwapAndBridgeMeta",
    "SwapAndBridgePending",
    "SwapAndBridgeSuccess",
]
