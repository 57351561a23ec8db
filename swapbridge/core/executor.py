"""Approve, swap-and-bridge or deposit, then wait for the destination fill."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Union

from web3 import Web3

from swapbridge.core import bridge
from swapbridge.core import swap as periphery
from swapbridge.core import watchers
from swapbridge.core.bridge import QuoteDeposit
from swapbridge.core.errors import OperationCancelled
from swapbridge.core.progress import (
    ApproveMeta,
    ApprovePending,
    ApproveSuccess,
    DepositMeta,
    DepositPending,
    DepositSuccess,
    FillMeta,
    FillPending,
    FillSuccess,
    Idle,
    ProgressError,
    ProgressEvent,
    ProgressHandler,
    ProgressMeta,
    Step,
    SwapAndBridgeMeta,
    SwapAndBridgePending,
    SwapAndBridgeSuccess,
)
from swapbridge.core.swap import SwapAndDepositData
from swapbridge.core.tokens import MAX_UINT256, allowance_of, encode_approve
from swapbridge.core.utils import get_logger, to_hex
from swapbridge.core.wallet import wait_for_receipt

LOGGER = get_logger("swapbridge.executor")


class Signer(Protocol):
    address: str

    def send_transaction(self, *, to: str, data: bytes, value: int = 0) -> str:
        ...


@dataclass(frozen=True)
class ExecuteSwapAndBridgeParams:
    """Everything a single run needs."""

    wallet: Signer
    origin_client: Web3
    destination_client: Web3
    origin_chain_id: int
    destination_chain_id: int
    user_address: str
    swap_and_deposit_data: SwapAndDepositData
    spoke_pool_periphery_address: str
    destination_spoke_pool_address: str
    is_native: bool = False
    infinite_approval: bool = False
    skip_allowance_check: bool = False
    throw_on_error: bool = True
    receipt_timeout: Optional[float] = None
    fill_lookback_blocks: int = 100
    fill_timeout: float = 600
    fill_poll_interval: float = 5
    cancel_event: Optional[threading.Event] = None


@dataclass(frozen=True)
class ExecuteDepositParams:
    """A priced Across deposit sent straight to the origin spoke pool."""

    wallet: Signer
    origin_client: Web3
    destination_client: Web3
    user_address: str
    deposit: QuoteDeposit
    infinite_approval: bool = False
    skip_allowance_check: bool = False
    throw_on_error: bool = True
    receipt_timeout: Optional[float] = None
    fill_lookback_blocks: int = 100
    fill_timeout: float = 600
    fill_poll_interval: float = 5
    cancel_event: Optional[threading.Event] = None

    @property
    def origin_chain_id(self) -> int:
        return self.deposit.origin_chain_id

    @property
    def destination_chain_id(self) -> int:
        return self.deposit.destination_chain_id

    @property
    def destination_spoke_pool_address(self) -> str:
        return self.deposit.destination_spoke_pool_address

    @property
    def is_native(self) -> bool:
        return self.deposit.is_native


RunParams = Union[ExecuteSwapAndBridgeParams, ExecuteDepositParams]


@dataclass(frozen=True)
class ExecutionResult:
    deposit_id: Optional[int] = None
    swap_and_bridge_tx_receipt: Any = None
    fill_tx_receipt: Any = None
    error: Optional[BaseException] = None
    deposit_tx_receipt: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None


class _ListenerFailure(Exception):
    """Carries an exception raised by the progress handler past the error event."""


class _ProgressTracker:
    """Latest progress plus the step and metadata active for error reporting."""

    def __init__(self, handler: ProgressHandler) -> None:
        self._handler = handler
        self.current: ProgressEvent = Idle()
        self.step = Step.APPROVE
        self.meta: ProgressMeta = None

    def enter(self, step: Step, meta: ProgressMeta) -> None:
        self.step = step
        self.meta = meta

    def emit(self, event: ProgressEvent) -> None:
        self.current = event
        try:
            self._handler(event)
        except Exception as exc:
            raise _ListenerFailure() from exc


def _log_progress(event: ProgressEvent) -> None:
    LOGGER.info("Progress: %s/%s %s", event.step.value, event.status.value, event)


def _check_cancelled(params: RunParams) -> None:
    if params.cancel_event is not None and params.cancel_event.is_set():
        raise OperationCancelled("Run cancelled by caller")


def _approve(
    params: RunParams,
    tracker: _ProgressTracker,
    allowance_fn: Callable[..., int],
    *,
    token: str,
    amount: int,
    spender: str,
) -> None:
    if params.skip_allowance_check or params.is_native:
        return

    allowance = allowance_fn(params.origin_client, token, params.user_address, spender)
    if amount <= allowance:
        LOGGER.info("Existing allowance %s covers %s", allowance, amount)
        return

    approval_amount = MAX_UINT256 if params.infinite_approval else amount
    meta = ApproveMeta(approval_amount=approval_amount, spender=spender)
    tracker.enter(Step.APPROVE, meta)

    tx_hash = params.wallet.send_transaction(to=token, data=encode_approve(spender, approval_amount))
    tracker.emit(ApprovePending(tx_hash=tx_hash, meta=meta))

    _check_cancelled(params)
    receipt = wait_for_receipt(params.origin_client, tx_hash, timeout=params.receipt_timeout)
    tracker.emit(ApproveSuccess(tx_receipt=receipt, meta=meta))


def _swap_and_bridge(
    params: ExecuteSwapAndBridgeParams,
    tracker: _ProgressTracker,
    simulate_fn: Callable[..., None],
    deposit_watcher: Callable[..., watchers.DepositResult],
) -> watchers.DepositResult:
    data = params.swap_and_deposit_data
    meta = SwapAndBridgeMeta(swap_and_deposit_data=data)
    tracker.enter(Step.SWAP_AND_BRIDGE, meta)

    value = data.swap_token_amount if params.is_native else 0
    calldata = periphery.encode_swap_and_bridge(data)
    LOGGER.info(
        "swapAndBridge to=%s value=%s swapTokenAmount=%s calldata=%s",
        params.spoke_pool_periphery_address,
        value,
        data.swap_token_amount,
        to_hex(calldata),
    )

    simulate_fn(
        params.origin_client,
        params.spoke_pool_periphery_address,
        data,
        sender=params.user_address,
        value=value,
    )

    _check_cancelled(params)
    tx_hash = params.wallet.send_transaction(to=params.spoke_pool_periphery_address, data=calldata, value=value)
    tracker.emit(SwapAndBridgePending(tx_hash=tx_hash, meta=meta))

    deposit = deposit_watcher(
        origin_chain_id=params.origin_chain_id,
        transaction_hash=tx_hash,
        web3=params.origin_client,
        timeout=params.receipt_timeout,
    )
    tracker.emit(
        SwapAndBridgeSuccess(
            tx_receipt=deposit.deposit_tx_receipt,
            deposit_id=deposit.deposit_id,
            deposit_log=deposit.deposit_log,
            meta=meta,
        )
    )
    return deposit


def _deposit(
    params: ExecuteDepositParams,
    tracker: _ProgressTracker,
    simulate_fn: Callable[..., None],
    deposit_watcher: Callable[..., watchers.DepositResult],
) -> watchers.DepositResult:
    quote = params.deposit
    meta = DepositMeta(deposit=quote)
    tracker.enter(Step.DEPOSIT, meta)

    calldata = bridge.encode_deposit(quote, depositor=params.user_address)
    LOGGER.info(
        "deposit to=%s value=%s inputAmount=%s outputAmount=%s",
        quote.spoke_pool_address,
        quote.value,
        quote.input_amount,
        quote.output_amount,
    )

    simulate_fn(params.origin_client, quote, depositor=params.user_address)

    _check_cancelled(params)
    tx_hash = params.wallet.send_transaction(to=quote.spoke_pool_address, data=calldata, value=quote.value)
    tracker.emit(DepositPending(tx_hash=tx_hash, meta=meta))

    deposit = deposit_watcher(
        origin_chain_id=params.origin_chain_id,
        transaction_hash=tx_hash,
        web3=params.origin_client,
        timeout=params.receipt_timeout,
    )
    tracker.emit(
        DepositSuccess(
            tx_receipt=deposit.deposit_tx_receipt,
            deposit_id=deposit.deposit_id,
            deposit_log=deposit.deposit_log,
            meta=meta,
        )
    )
    return deposit


def _wait_for_fill(
    params: RunParams,
    tracker: _ProgressTracker,
    deposit: watchers.DepositResult,
    fill_watcher: Callable[..., watchers.FillResult],
    *,
    message: bytes,
) -> watchers.FillResult:
    meta = FillMeta(deposit_id=deposit.deposit_id, deposit_tx_receipt=deposit.deposit_tx_receipt)
    tracker.enter(Step.FILL, meta)
    tracker.emit(FillPending(meta=meta))

    _check_cancelled(params)
    destination_block = params.destination_client.eth.block_number
    fill = fill_watcher(
        deposit=watchers.FillDescriptor(
            origin_chain_id=params.origin_chain_id,
            destination_chain_id=params.destination_chain_id,
            destination_spoke_pool_address=params.destination_spoke_pool_address,
            message=message,
        ),
        deposit_id=deposit.deposit_id,
        deposit_tx_hash=to_hex(deposit.deposit_tx_receipt["transactionHash"]),
        web3=params.destination_client,
        from_block=max(destination_block - params.fill_lookback_blocks, 0),
        timeout=params.fill_timeout,
        poll_interval=params.fill_poll_interval,
    )
    tracker.emit(
        FillSuccess(
            tx_receipt=fill.fill_tx_receipt,
            fill_tx_timestamp=fill.fill_tx_timestamp,
            action_success=fill.action_success,
            fill_log=fill.fill_log,
            meta=meta,
        )
    )
    return fill


def _run(
    name: str,
    params: RunParams,
    tracker: _ProgressTracker,
    phases: Callable[[], ExecutionResult],
) -> ExecutionResult:
    try:
        return phases()
    except _ListenerFailure as failure:
        raise failure.__cause__ from None
    except Exception as exc:
        LOGGER.error("%s failed during %s: %s", name, tracker.step.value, exc)
        try:
            tracker.emit(ProgressError(step=tracker.step, error=exc, meta=tracker.meta))
        except _ListenerFailure as failure:
            raise failure.__cause__ from None
        if not params.throw_on_error:
            return ExecutionResult(error=exc)
        raise


def execute_swap_and_bridge(
    params: ExecuteSwapAndBridgeParams,
    *,
    on_progress: Optional[ProgressHandler] = None,
    allowance_fn: Callable[..., int] = allowance_of,
    simulate_fn: Callable[..., None] = periphery.simulate_swap_and_bridge,
    deposit_watcher: Callable[..., watchers.DepositResult] = watchers.wait_for_deposit_tx,
    fill_watcher: Callable[..., watchers.FillResult] = watchers.wait_for_fill_tx,
) -> ExecutionResult:
    """Run approve, swapAndBridge and fill wait, reporting every transition.

    Failures emit one terminal :class:`ProgressError` and are re-raised, or returned
    in :class:`ExecutionResult` when ``throw_on_error`` is false. Exceptions raised
    by ``on_progress`` propagate as-is. The handler runs synchronously and should
    return quickly.
    """
    tracker = _ProgressTracker(on_progress or _log_progress)
    data = params.swap_and_deposit_data

    def phases() -> ExecutionResult:
        _approve(
            params,
            tracker,
            allowance_fn,
            token=data.swap_token,
            amount=data.swap_token_amount,
            spender=params.spoke_pool_periphery_address,
        )
        _check_cancelled(params)
        deposit = _swap_and_bridge(params, tracker, simulate_fn, deposit_watcher)
        fill = _wait_for_fill(params, tracker, deposit, fill_watcher, message=data.deposit_data.message)
        return ExecutionResult(
            deposit_id=deposit.deposit_id,
            swap_and_bridge_tx_receipt=deposit.deposit_tx_receipt,
            fill_tx_receipt=fill.fill_tx_receipt,
        )

    return _run("swap-and-bridge", params, tracker, phases)


def execute_deposit(
    params: ExecuteDepositParams,
    *,
    on_progress: Optional[ProgressHandler] = None,
    allowance_fn: Callable[..., int] = allowance_of,
    simulate_fn: Callable[..., None] = bridge.simulate_deposit,
    deposit_watcher: Callable[..., watchers.DepositResult] = watchers.wait_for_deposit_tx,
    fill_watcher: Callable[..., watchers.FillResult] = watchers.wait_for_fill_tx,
) -> ExecutionResult:
    """Run approve, SpokePool deposit and fill wait for an already priced deposit.

    The spoke pool is approved for the input token. Error and listener handling
    match :func:`execute_swap_and_bridge`.
    """
    tracker = _ProgressTracker(on_progress or _log_progress)
    quote = params.deposit

    def phases() -> ExecutionResult:
        _approve(
            params,
            tracker,
            allowance_fn,
            token=quote.input_token,
            amount=quote.input_amount,
            spender=quote.spoke_pool_address,
        )
        _check_cancelled(params)
        deposit = _deposit(params, tracker, simulate_fn, deposit_watcher)
        fill = _wait_for_fill(params, tracker, deposit, fill_watcher, message=quote.message)
        return ExecutionResult(
            deposit_id=deposit.deposit_id,
            deposit_tx_receipt=deposit.deposit_tx_receipt,
            fill_tx_receipt=fill.fill_tx_receipt,
        )

    return _run("deposit", params, tracker, phases)


__all__ = [
    "ExecuteDepositParams",
    "ExecuteSwapAndBridgeParams",
    "ExecutionResult",
    "Signer",
    "execute_deposit",
    "execute_swap_and_bridge",
]
