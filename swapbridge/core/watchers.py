"""Deposit and fill watchers for Across spoke pools."""

from __future__ import annotations

import functools
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Mapping, Optional

from eth_utils import event_abi_to_log_topic
from web3 import Web3
from web3.contract import Contract

from swapbridge.contracts import load_contract_abi
from swapbridge.core.errors import TransactionTimeout
from swapbridge.core.message import decode_fallback_recipient
from swapbridge.core.utils import bytes32_to_address, get_logger, hex_to_bytes, to_hex
from swapbridge.core.wallet import wait_for_receipt

LOGGER = get_logger("swapbridge.watchers")


@dataclass(frozen=True)
class DepositLog:
    """Decoded ``FundsDeposited`` event."""

    deposit_id: int
    destination_chain_id: int
    depositor: str
    input_token: str
    output_token: str
    input_amount: int
    output_amount: int
    recipient: str
    exclusive_relayer: str
    quote_timestamp: int
    fill_deadline: int
    exclusivity_deadline: int
    message: bytes
    transaction_hash: str
    block_number: int


@dataclass(frozen=True)
class FillLog:
    """Decoded ``FilledRelay`` event."""

    deposit_id: int
    origin_chain_id: int
    relayer: str
    depositor: str
    recipient: str
    input_token: str
    output_token: str
    input_amount: int
    output_amount: int
    repayment_chain_id: int
    message_hash: bytes
    updated_recipient: str
    updated_message_hash: bytes
    updated_output_amount: int
    fill_type: int
    transaction_hash: str
    block_number: int
    log_index: int = 0


@dataclass(frozen=True)
class DepositResult:
    deposit_id: int
    deposit_tx_receipt: Any
    deposit_log: DepositLog


@dataclass(frozen=True)
class FillDescriptor:
    """What the fill watcher needs to know about the deposit."""

    origin_chain_id: int
    destination_chain_id: int
    destination_spoke_pool_address: str
    message: bytes = b""


@dataclass(frozen=True)
class FillResult:
    fill_tx_receipt: Any
    fill_tx_timestamp: int
    action_success: Optional[bool]
    fill_log: Optional[FillLog]


@functools.lru_cache(maxsize=1)
def _spoke_pool() -> Contract:
    return Web3().eth.contract(abi=load_contract_abi("spoke_pool.json"))


@functools.lru_cache(maxsize=None)
def _event_topic(filename: str, event_name: str) -> bytes:
    for entry in load_contract_abi(filename):
        if entry.get("type") == "event" and entry["name"] == event_name:
            return bytes(event_abi_to_log_topic(entry))
    raise KeyError(f"{event_name} not found in {filename}")


def deposit_topic() -> bytes:
    return _event_topic("spoke_pool.json", "FundsDeposited")


def fill_topic() -> bytes:
    return _event_topic("spoke_pool.json", "FilledRelay")


def calls_failed_topic() -> bytes:
    return _event_topic("multicall_handler.json", "CallsFailed")


def uint_topic(value: int) -> bytes:
    return value.to_bytes(32, "big")


def _topic0(log: Mapping[str, Any]) -> Optional[bytes]:
    topics = log.get("topics") or []
    if not topics:
        return None
    return hex_to_bytes(topics[0])


def _field(container: Any, name: str, index: int) -> Any:
    if isinstance(container, Mapping):
        return container[name]
    return container[index]


def _decode(event_name: str, log: Mapping[str, Any]) -> Mapping[str, Any]:
    event = getattr(_spoke_pool().events, event_name)()
    return event.process_log(log)


def _iter_decoded(logs: Iterable[Mapping[str, Any]], event_name: str, topic: bytes) -> Iterable[Mapping[str, Any]]:
    for log in logs:
        if _topic0(log) == topic:
            yield _decode(event_name, log)


def _deposit_from_event(event: Mapping[str, Any]) -> DepositLog:
    args = event["args"]
    return DepositLog(
        deposit_id=int(args["depositId"]),
        destination_chain_id=int(args["destinationChainId"]),
        depositor=bytes32_to_address(args["depositor"]),
        input_token=bytes32_to_address(args["inputToken"]),
        output_token=bytes32_to_address(args["outputToken"]),
        input_amount=int(args["inputAmount"]),
        output_amount=int(args["outputAmount"]),
        recipient=bytes32_to_address(args["recipient"]),
        exclusive_relayer=bytes32_to_address(args["exclusiveRelayer"]),
        quote_timestamp=int(args["quoteTimestamp"]),
        fill_deadline=int(args["fillDeadline"]),
        exclusivity_deadline=int(args["exclusivityDeadline"]),
        message=bytes(args["message"]),
        transaction_hash=to_hex(event["transactionHash"]),
        block_number=int(event["blockNumber"]),
    )


def _fill_from_event(event: Mapping[str, Any]) -> FillLog:
    args = event["args"]
    info = args["relayExecutionInfo"]
    return FillLog(
        deposit_id=int(args["depositId"]),
        origin_chain_id=int(args["originChainId"]),
        relayer=bytes32_to_address(args["relayer"]),
        depositor=bytes32_to_address(args["depositor"]),
        recipient=bytes32_to_address(args["recipient"]),
        input_token=bytes32_to_address(args["inputToken"]),
        output_token=bytes32_to_address(args["outputToken"]),
        input_amount=int(args["inputAmount"]),
        output_amount=int(args["outputAmount"]),
        repayment_chain_id=int(args["repaymentChainId"]),
        message_hash=bytes(args["messageHash"]),
        updated_recipient=bytes32_to_address(_field(info, "updatedRecipient", 0)),
        updated_message_hash=bytes(_field(info, "updatedMessageHash", 1)),
        updated_output_amount=int(_field(info, "updatedOutputAmount", 2)),
        fill_type=int(_field(info, "fillType", 3)),
        transaction_hash=to_hex(event["transactionHash"]),
        block_number=int(event["blockNumber"]),
        log_index=int(event.get("logIndex") or 0),
    )


def parse_deposit_logs(logs: Iterable[Mapping[str, Any]]) -> Optional[DepositLog]:
    """Return the first ``FundsDeposited`` event found in ``logs``."""
    for event in _iter_decoded(logs, "FundsDeposited", deposit_topic()):
        return _deposit_from_event(event)
    return None


def parse_fill_logs(logs: Iterable[Mapping[str, Any]]) -> Optional[FillLog]:
    """Return the first ``FilledRelay`` event found in ``logs``."""
    for event in _iter_decoded(logs, "FilledRelay", fill_topic()):
        return _fill_from_event(event)
    return None


def _find_fill(logs: Iterable[Mapping[str, Any]], origin_chain_id: int, deposit_id: int) -> Optional[FillLog]:
    for event in _iter_decoded(logs, "FilledRelay", fill_topic()):
        fill = _fill_from_event(event)
        if fill.origin_chain_id == origin_chain_id and fill.deposit_id == deposit_id:
            return fill
    return None


def _is_fill_of(log: Mapping[str, Any], fill: FillLog) -> bool:
    topics = log.get("topics") or []
    return (
        len(topics) > 2
        and _topic0(log) == fill_topic()
        and hex_to_bytes(topics[1]) == uint_topic(fill.origin_chain_id)
        and hex_to_bytes(topics[2]) == uint_topic(fill.deposit_id)
    )


def _logs_after_fill(logs: Iterable[Mapping[str, Any]], fill: FillLog) -> List[Mapping[str, Any]]:
    """Logs between ``fill``'s ``FilledRelay`` and the next one in the same receipt.

    ``FilledRelay`` is emitted before the recipient's message handler runs.
    """
    ordered = sorted(logs, key=lambda log: int(log.get("logIndex") or 0))
    start = next((position for position, log in enumerate(ordered) if _is_fill_of(log, fill)), None)
    if start is None:
        return ordered
    window = []
    for log in ordered[start + 1 :]:
        if _topic0(log) == fill_topic():
            break
        window.append(log)
    return window


def action_succeeded(
    message: bytes,
    logs: Iterable[Mapping[str, Any]],
    fill: Optional[FillLog] = None,
) -> Optional[bool]:
    """Whether the handler ran the message's calls without falling back.

    ``None`` when the deposit carried no message. With ``fill`` only the
    ``CallsFailed`` logs its recipient emitted right after that fill count.
    ``CallsFailed`` must also name the message's fallback recipient when the
    message decodes.
    """
    if not message or not any(message):
        return None

    candidates = list(logs)
    handler = None
    if fill is not None:
        candidates = _logs_after_fill(candidates, fill)
        handler = fill.updated_recipient.lower()
    fallback_recipient = decode_fallback_recipient(message)

    failed = calls_failed_topic()
    for log in candidates:
        if _topic0(log) != failed:
            continue
        if handler is not None and str(log.get("address", "")).lower() != handler:
            continue
        topics = log["topics"]
        if fallback_recipient is not None and (
            len(topics) < 2 or bytes32_to_address(hex_to_bytes(topics[1])) != fallback_recipient
        ):
            continue
        return False
    return True


def wait_for_deposit_tx(
    *,
    origin_chain_id: int,
    transaction_hash: str,
    web3: Web3,
    timeout: Optional[float] = None,
) -> DepositResult:
    """Wait for the deposit transaction and extract its deposit id."""
    receipt = wait_for_receipt(web3, transaction_hash, timeout=timeout)
    deposit_log = parse_deposit_logs(receipt["logs"])
    if deposit_log is None:
        raise ValueError(f"No FundsDeposited event in transaction {transaction_hash} on chain {origin_chain_id}")
    LOGGER.info("Deposit %s recorded in block %s", deposit_log.deposit_id, receipt["blockNumber"])
    return DepositResult(deposit_id=deposit_log.deposit_id, deposit_tx_receipt=receipt, deposit_log=deposit_log)


def wait_for_fill_tx(
    *,
    deposit: FillDescriptor,
    deposit_id: int,
    deposit_tx_hash: str,
    web3: Web3,
    from_block: int,
    timeout: float = 600,
    poll_interval: float = 5,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> FillResult:
    """Poll the destination spoke pool until the deposit is filled."""
    filter_params = {
        "address": Web3.to_checksum_address(deposit.destination_spoke_pool_address),
        "fromBlock": max(from_block, 0),
        "toBlock": "latest",
        "topics": [
            to_hex(fill_topic()),
            to_hex(uint_topic(deposit.origin_chain_id)),
            to_hex(uint_topic(deposit_id)),
        ],
    }
    started = clock()
    attempts = 0
    while True:
        attempts += 1
        logs: List[Mapping[str, Any]] = list(web3.eth.get_logs(filter_params))
        fill = _find_fill(logs, deposit.origin_chain_id, deposit_id)
        if fill is not None:
            break
        if clock() - started >= timeout:
            raise TransactionTimeout(
                f"Deposit {deposit_id} ({deposit_tx_hash}) not filled on chain "
                f"{deposit.destination_chain_id} after {timeout} seconds"
            )
        LOGGER.debug("Fill for deposit %s not found yet (attempt %s)", deposit_id, attempts)
        sleep(poll_interval)

    receipt = web3.eth.get_transaction_receipt(fill.transaction_hash)
    block = web3.eth.get_block(receipt["blockNumber"])
    fill = _find_fill(receipt["logs"], deposit.origin_chain_id, deposit_id) or fill
    action_success = action_succeeded(deposit.message, receipt["logs"], fill)
    LOGGER.info(
        "Deposit %s filled by %s in %s (actionSuccess=%s)",
        deposit_id,
        fill.relayer,
        fill.transaction_hash,
        action_success,
    )
    return FillResult(
        fill_tx_receipt=receipt,
        fill_tx_timestamp=int(block["timestamp"]),
        action_success=action_success,
        fill_log=fill,
    )


__all__ = [
    "DepositLog",
    "DepositResult",
    "FillDescriptor",
    "FillLog",
    "FillResult",
    "action_succeeded",
    "parse_deposit_logs",
    "parse_fill_logs",
    "wait_for_deposit_tx",
    "wait_for_fill_tx",
]
