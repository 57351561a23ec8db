"""CLI entrypoint for the swap-bridge-swap and bridge-then-swap flows."""

from __future__ import annotations

import argparse
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from dotenv import load_dotenv
from web3 import Web3

from swapbridge.config import SwapBridgeConfig, load_config
from swapbridge.core import quotes
from swapbridge.core.bridge import BridgeQuote, get_bridge_quote, simulate_deposit
from swapbridge.core.executor import (
    ExecuteDepositParams,
    ExecuteSwapAndBridgeParams,
    ExecutionResult,
    execute_deposit,
    execute_swap_and_bridge,
)
from swapbridge.core.message import CrossChainMessage, build_destination_swap_message
from swapbridge.core.progress import (
    ApprovePending,
    ApproveSuccess,
    DepositPending,
    DepositSuccess,
    FillPending,
    FillSuccess,
    ProgressError,
    ProgressEvent,
    SwapAndBridgePending,
    SwapAndBridgeSuccess,
)
from swapbridge.core.swap import (
    OriginSwap,
    SwapAndDepositData,
    build_origin_swap,
    build_swap_and_deposit_data,
    simulate_swap_and_bridge,
)
from swapbridge.core.tokens import get_balance
from swapbridge.core.utils import create_transaction_url, ensure_web3_connected, get_logger, log_json, to_hex
from swapbridge.core.validation import (
    BalanceValidationResult,
    NativeValidationResult,
    validate_balance,
    validate_native_funding,
    validate_swap_and_deposit_data,
)
from swapbridge.core.wallet import UserWallet, create_user_wallet

LOGGER = get_logger("swapbridge.cli")

load_dotenv()


def _default_web3_factory(url: str) -> Web3:
    return Web3(Web3.HTTPProvider(url))


@dataclass(frozen=True)
class ExecutionPlan:
    """Full context required to execute ``swapAndBridge``."""

    swap_amount: int
    balance_validation: BalanceValidationResult
    origin_swap: OriginSwap
    message: CrossChainMessage
    bridge_quote: BridgeQuote
    swap_and_deposit_data: SwapAndDepositData
    native_validation: NativeValidationResult

    @property
    def min_expected_amount(self) -> int:
        return self.origin_swap.min_expected_amount

    @property
    def output_amount(self) -> int:
        return self.bridge_quote.deposit.output_amount


@dataclass(frozen=True)
class BridgePlan:
    """A direct deposit of the origin deposit token followed by the destination swap."""

    deposit_amount: int
    balance_validation: BalanceValidationResult
    message: CrossChainMessage
    bridge_quote: BridgeQuote
    native_validation: NativeValidationResult


class SwapBridgeRunner:
    """High-level driver for the swap-bridge-swap workflow."""

    def __init__(
        self,
        *,
        private_key: str,
        rpc_url: Optional[str] = None,
        destination_rpc_url: Optional[str] = None,
        config: Optional[SwapBridgeConfig] = None,
        web3_factory: Callable[[str], Web3] = _default_web3_factory,
        quote_fn: Callable[..., quotes.SwapQuoteResult] = quotes.request_swap_route,
        fees_fn: Callable[..., quotes.SuggestedFees] = quotes.request_suggested_fees,
    ) -> None:
        self.config = config or load_config()
        self.quote_fn = quote_fn
        self.fees_fn = fees_fn

        origin = self.config.origin_chain
        self.wallet: UserWallet = create_user_wallet(
            private_key,
            rpc_url or origin.ensure_rpc_url(),
            origin.chain_id,
            web3_factory=web3_factory,
        )
        self.origin_web3 = self.wallet.web3

        destination = self.config.destination_chain
        destination_url = destination_rpc_url or destination.ensure_rpc_url()
        self.destination_web3 = web3_factory(destination_url)
        try:
            ensure_web3_connected(self.destination_web3, expected_chain_id=destination.chain_id)
        except ConnectionError as exc:
            raise ConnectionError(f"Failed to connect to RPC: {destination_url}") from exc
        LOGGER.info("Origin %s and destination %s clients initialized", origin.name, destination.name)

    @property
    def address(self) -> str:
        return self.wallet.address

    @property
    def is_native(self) -> bool:
        return self.config.tokens.origin_swap_token.is_native

    def prepare_plan(self) -> ExecutionPlan:
        """Check the balance, quote every leg and assemble the periphery call data."""
        config = self.config
        swap_token = config.tokens.origin_swap_token
        swap_amount = config.origin_swap_amount

        balance = get_balance(self.origin_web3, self.address, None if swap_token.is_native else swap_token.address)
        balance_validation = validate_balance(
            balance=balance,
            required_amount=swap_amount,
            decimals=swap_token.decimals,
            token_address=None if swap_token.is_native else swap_token.address,
        )

        origin_swap = build_origin_swap(config=config, swap_amount=swap_amount, quote_fn=self.quote_fn)

        message = build_destination_swap_message(
            config=config,
            user_address=self.address,
            estimated_amount=origin_swap.min_expected_amount,
            quote_fn=self.quote_fn,
        )

        bridge_quote = get_bridge_quote(
            config=config,
            input_token=config.tokens.origin_deposit_token.address,
            output_token=config.tokens.destination_swap_token_in.address,
            input_amount=origin_swap.min_expected_amount,
            recipient=self.address,
            cross_chain_message=message,
            is_native=config.tokens.origin_deposit_token.is_native,
            fees_fn=self.fees_fn,
        )

        nonce = self.origin_web3.eth.get_transaction_count(self.address)
        data = build_swap_and_deposit_data(
            config=config,
            origin_swap=origin_swap,
            bridge_quote=bridge_quote,
            depositor=self.address,
            swap_amount=swap_amount,
            nonce=nonce,
        )
        validate_swap_and_deposit_data(data, depositor=self.address)

        native_validation = validate_native_funding(
            native_balance=self.origin_web3.eth.get_balance(self.address),
            native_value=swap_amount if swap_token.is_native else 0,
        )

        return ExecutionPlan(
            swap_amount=swap_amount,
            balance_validation=balance_validation,
            origin_swap=origin_swap,
            message=message,
            bridge_quote=bridge_quote,
            swap_and_deposit_data=data,
            native_validation=native_validation,
        )

    def execute_dry_run(self) -> ExecutionPlan:
        """Prepare the plan and simulate ``swapAndBridge`` without sending anything."""
        plan = self.prepare_plan()
        self._log_plan(plan)
        simulate_swap_and_bridge(
            self.origin_web3,
            self.config.origin_contracts.spoke_pool_periphery,
            plan.swap_and_deposit_data,
            sender=self.address,
            value=plan.swap_amount if self.is_native else 0,
        )
        return plan

    def execute_send(
        self,
        *,
        infinite_approval: Optional[bool] = None,
        skip_allowance_check: bool = False,
    ) -> ExecutionResult:
        """Prepare the plan and run the orchestrator."""
        plan = self.prepare_plan()
        self._log_plan(plan)

        defaults = self.config.defaults
        params = ExecuteSwapAndBridgeParams(
            wallet=self.wallet,
            origin_client=self.origin_web3,
            destination_client=self.destination_web3,
            origin_chain_id=self.config.origin_chain.chain_id,
            destination_chain_id=self.config.destination_chain.chain_id,
            user_address=self.address,
            swap_and_deposit_data=plan.swap_and_deposit_data,
            spoke_pool_periphery_address=self.config.origin_contracts.spoke_pool_periphery,
            destination_spoke_pool_address=self.config.destination_contracts.spoke_pool,
            is_native=self.is_native,
            infinite_approval=defaults.infinite_approval if infinite_approval is None else infinite_approval,
            skip_allowance_check=skip_allowance_check,
            throw_on_error=True,
            receipt_timeout=defaults.receipt_timeout,
            fill_lookback_blocks=defaults.fill_lookback_blocks,
            fill_timeout=defaults.fill_timeout,
            fill_poll_interval=defaults.fill_poll_interval,
        )
        result = execute_swap_and_bridge(params, on_progress=self.report_progress)
        LOGGER.info("Swap-Bridge-Swap flow completed successfully (deposit %s)", result.deposit_id)
        return result

    def prepare_bridge_plan(self) -> BridgePlan:
        """Check the deposit token balance and quote a deposit carrying the destination swap."""
        config = self.config
        deposit_token = config.tokens.origin_deposit_token
        deposit_amount = config.bridge_deposit_amount
        token_address = None if deposit_token.is_native else deposit_token.address

        balance_validation = validate_balance(
            balance=get_balance(self.origin_web3, self.address, token_address),
            required_amount=deposit_amount,
            decimals=deposit_token.decimals,
            token_address=token_address,
        )

        message = build_destination_swap_message(
            config=config,
            user_address=self.address,
            estimated_amount=deposit_amount,
            quote_fn=self.quote_fn,
        )

        bridge_quote = get_bridge_quote(
            config=config,
            input_token=deposit_token.address,
            output_token=config.tokens.destination_swap_token_in.address,
            input_amount=deposit_amount,
            recipient=self.address,
            cross_chain_message=message,
            is_native=deposit_token.is_native,
            fees_fn=self.fees_fn,
        )

        native_validation = validate_native_funding(
            native_balance=self.origin_web3.eth.get_balance(self.address),
            native_value=bridge_quote.deposit.value,
        )

        return BridgePlan(
            deposit_amount=deposit_amount,
            balance_validation=balance_validation,
            message=message,
            bridge_quote=bridge_quote,
            native_validation=native_validation,
        )

    def execute_bridge_dry_run(self) -> BridgePlan:
        """Quote the direct deposit and simulate it without sending anything."""
        plan = self.prepare_bridge_plan()
        self._log_bridge_plan(plan)
        simulate_deposit(self.origin_web3, plan.bridge_quote.deposit, depositor=self.address)
        return plan

    def execute_bridge_send(
        self,
        *,
        infinite_approval: Optional[bool] = None,
        skip_allowance_check: bool = False,
    ) -> ExecutionResult:
        """Approve the spoke pool, deposit and wait for the fill that runs the destination swap."""
        plan = self.prepare_bridge_plan()
        self._log_bridge_plan(plan)

        defaults = self.config.defaults
        params = ExecuteDepositParams(
            wallet=self.wallet,
            origin_client=self.origin_web3,
            destination_client=self.destination_web3,
            user_address=self.address,
            deposit=plan.bridge_quote.deposit,
            infinite_approval=defaults.infinite_approval if infinite_approval is None else infinite_approval,
            skip_allowance_check=skip_allowance_check,
            throw_on_error=True,
            receipt_timeout=defaults.receipt_timeout,
            fill_lookback_blocks=defaults.fill_lookback_blocks,
            fill_timeout=defaults.fill_timeout,
            fill_poll_interval=defaults.fill_poll_interval,
        )
        result = execute_deposit(params, on_progress=self.report_progress)
        LOGGER.info("Bridge transaction completed (deposit %s)", result.deposit_id)
        return result

    def report_progress(self, progress: ProgressEvent) -> None:
        """Log each progress event with explorer links where available."""
        origin_explorer = self.config.origin_chain.explorer_url
        destination = self.config.destination_chain

        if isinstance(progress, ApprovePending):
            LOGGER.info("Approving SpokePoolPeriphery to spend %s tokens", progress.meta.approval_amount)
            LOGGER.info("Approve TX: %s", _tx_link(origin_explorer, progress.tx_hash))
        elif isinstance(progress, ApproveSuccess):
            LOGGER.info("Approval confirmed")
        elif isinstance(progress, SwapAndBridgePending):
            LOGGER.info("SwapAndBridge TX: %s", _tx_link(origin_explorer, progress.tx_hash))
        elif isinstance(progress, DepositPending):
            LOGGER.info("Deposit TX: %s", _tx_link(origin_explorer, progress.tx_hash))
        elif isinstance(progress, (SwapAndBridgeSuccess, DepositSuccess)):
            LOGGER.info("Transaction confirmed in block %s", progress.tx_receipt["blockNumber"])
            LOGGER.info("Deposit ID: %s", progress.deposit_id)
            log_json(
                LOGGER,
                "Transaction receipt",
                {
                    "transactionHash": to_hex(progress.tx_receipt["transactionHash"]),
                    "blockNumber": str(progress.tx_receipt["blockNumber"]),
                    "status": progress.tx_receipt["status"],
                },
            )
        elif isinstance(progress, FillPending):
            LOGGER.info("Waiting for fill of deposit %s on %s...", progress.meta.deposit_id, destination.name)
        elif isinstance(progress, FillSuccess):
            fill_hash = to_hex(progress.tx_receipt["transactionHash"])
            LOGGER.info("Fill transaction confirmed on %s", destination.name)
            LOGGER.info("Fill TX: %s", _tx_link(destination.explorer_url, fill_hash))
            log_json(
                LOGGER,
                "Fill transaction details",
                {
                    "transactionHash": fill_hash,
                    "blockNumber": str(progress.tx_receipt["blockNumber"]),
                    "fillTimestamp": str(progress.fill_tx_timestamp),
                    "actionSuccess": progress.action_success,
                },
            )
            if progress.fill_log is not None:
                log_json(
                    LOGGER,
                    "Fill log details",
                    {
                        "depositId": str(progress.fill_log.deposit_id),
                        "inputAmount": str(progress.fill_log.input_amount),
                        "outputAmount": str(progress.fill_log.output_amount),
                        "relayer": progress.fill_log.relayer,
                    },
                )
            if progress.action_success is False:
                LOGGER.warning("Destination swap failed; funds were sent to the fallback recipient")
        elif isinstance(progress, ProgressError):
            LOGGER.error("%s step failed: %s", progress.step.value, progress.error)

    def _log_plan(self, plan: ExecutionPlan) -> None:
        swap_token = self.config.tokens.origin_swap_token
        LOGGER.info(
            "Swapping %s of %s (native=%s) via %s",
            plan.swap_amount,
            swap_token.address,
            swap_token.is_native,
            plan.origin_swap.exchange,
        )
        LOGGER.info(
            "Bridge input=%s output=%s relayFee=%s",
            plan.min_expected_amount,
            plan.output_amount,
            plan.bridge_quote.fees.total_relay_fee,
        )
        log_json(LOGGER, "SwapAndDepositData", plan.swap_and_deposit_data.to_dict())
        _warn_low_native(plan.native_validation)

    def _log_bridge_plan(self, plan: BridgePlan) -> None:
        deposit = plan.bridge_quote.deposit
        log_json(
            LOGGER,
            "Quote parameters",
            {
                "spokePool": deposit.spoke_pool_address,
                "inputToken": deposit.input_token,
                "outputToken": deposit.output_token,
                "inputAmount": str(deposit.input_amount),
                "outputAmount": str(deposit.output_amount),
                "recipient": deposit.recipient,
                "fillDeadline": deposit.fill_deadline,
                "expectedFillTimeSec": plan.bridge_quote.fees.expected_fill_time_sec,
                "message": to_hex(deposit.message) if deposit.message else "0x",
            },
        )
        _warn_low_native(plan.native_validation)


def _warn_low_native(validation: NativeValidationResult) -> None:
    if not validation.has_sufficient_native:
        LOGGER.warning(
            "Signer native balance %.6f ETH below required %.6f ETH",
            validation.native_balance / 10**18,
            validation.required_native / 10**18,
        )


def _tx_link(explorer_url: Optional[str], tx_hash: str) -> str:
    if not explorer_url:
        return tx_hash
    return create_transaction_url(explorer_url, tx_hash)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Swap, bridge with Across and swap again on the destination chain")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--dry-run", action="store_true", help="Quote and simulate without sending")
    group.add_argument("--send", action="store_true", help="Approve, send swapAndBridge and wait for the fill")
    parser.add_argument(
        "--bridge-only",
        action="store_true",
        help="Deposit the origin deposit token directly and swap only on the destination chain",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to config.json")
    parser.add_argument("--infinite-approval", action="store_true", default=None, help="Approve the maximum amount")
    parser.add_argument("--skip-allowance-check", action="store_true", help="Do not check or send an approval")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)

    rpc_url = (os.getenv("RPC_URL") or "").strip() or None
    destination_rpc_url = (os.getenv("DESTINATION_RPC_URL") or "").strip() or None
    private_key = (os.getenv("PRIVATE_KEY") or "").strip()

    if not private_key:
        print("❌ Error: PRIVATE_KEY environment variable not set")
        sys.exit(1)

    try:
        runner = SwapBridgeRunner(
            private_key=private_key,
            rpc_url=rpc_url,
            destination_rpc_url=destination_rpc_url,
            config=load_config(args.config),
        )
        if args.bridge_only and args.dry_run:
            runner.execute_bridge_dry_run()
        elif args.bridge_only:
            runner.execute_bridge_send(
                infinite_approval=args.infinite_approval,
                skip_allowance_check=args.skip_allowance_check,
            )
        elif args.dry_run:
            runner.execute_dry_run()
        else:
            runner.execute_send(
                infinite_approval=args.infinite_approval,
                skip_allowance_check=args.skip_allowance_check,
            )
    except Exception as exc:
        print(f"\n❌ Error: {exc}")
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover - CLI entry
    main()
