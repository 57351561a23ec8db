#!/usr/bin/env python3
"""Inspect the quotes and periphery call data for one swap-and-bridge run."""

import os

from dotenv import load_dotenv

from swapbridge.cli.main import SwapBridgeRunner
from swapbridge.config import load_config
from swapbridge.core.utils import format_units, to_hex

load_dotenv()


def main() -> None:
    """Print the parameters that ``--send`` would submit."""
    config = load_config()
    private_key = (os.getenv("PRIVATE_KEY") or "").strip()
    if not private_key:
        print("❌ PRIVATE_KEY not set")
        return

    try:
        runner = SwapBridgeRunner(
            private_key=private_key,
            rpc_url=os.getenv("RPC_URL") or None,
            destination_rpc_url=os.getenv("DESTINATION_RPC_URL") or None,
            config=config,
        )
        print(f"🔍 Using signer address: {runner.address}\n")
        plan = runner.prepare_plan()
        data = plan.swap_and_deposit_data
        tokens = config.tokens

        print("✅ Parameters fetched successfully!\n")
        print("=" * 60)
        print("PARAMETERS")
        print("=" * 60)
        print(f"\n📥 Swap Token: {data.swap_token} (native={tokens.origin_swap_token.is_native})")
        print(f"💸 Swap Amount: {data.swap_token_amount} ({format_units(data.swap_token_amount, tokens.origin_swap_token.decimals)})")
        print(f"⚙️  Exchange: {data.exchange}")
        print(
            f"🎯 Min Expected Input: {data.min_expected_input_token_amount} "
            f"({format_units(data.min_expected_input_token_amount, tokens.origin_deposit_token.decimals)})"
        )
        print(f"📤 Bridge Output: {plan.output_amount}")
        print(f"🧾 Relay Fee: {plan.bridge_quote.fees.total_relay_fee}")
        print(f"⏱️  Fill Deadline: {data.deposit_data.fill_deadline}")
        print(f"🔢 Nonce: {data.nonce}")
        print(f"🧩 Destination Actions: {len(plan.message.actions)}")

        print("\n⚙️  Router Calldata (first 100 chars):")
        print(f"   {to_hex(data.router_calldata)[:102]}...")
        print("\n📞 Message (first 100 chars):")
        print(f"   {to_hex(data.deposit_data.message)[:102]}...")

        native = plan.native_validation
        print(f"\n💰 Signer Native Balance: {native.native_balance} ({native.native_balance / 10**18:.6f} ETH)")
        if not native.has_sufficient_native:
            print("⚠️  Signer native balance may be insufficient for gas + call value.")

        print("\n✅ Parameter inspection complete.")
    except Exception as exc:  # pragma: no cover - debugging script
        print(f"\n❌ Error fetching parameters: {exc}")
        import traceback

        traceback.print_exc()


if __name__ == "__main__":
    main()
