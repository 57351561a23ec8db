"""Addresses and configuration shared by the swapbridge tests."""

import typing as t

from eth_account import Account
from web3 import Web3

PRIVATE_KEY = "0x" + "11" * 32
USER = Account.from_key(PRIVATE_KEY).address

PERIPHERY = Web3.to_checksum_address("0x89415a82d909a7238d69094c3dd1dcc1acbda85c")
ORIGIN_SPOKE_POOL = Web3.to_checksum_address("0x09aea4b2242abc8bb4bb78d537a67a245a7bec64")
SWAP_PROXY = Web3.to_checksum_address("0x4d6d2a149a46d9d8c4473fbaa269f3738247eb60")
DESTINATION_SPOKE_POOL = Web3.to_checksum_address("0xe35e9842fceaca96570b734083f4a58e8f7c5f2a")
MULTICALL_HANDLER = Web3.to_checksum_address("0x924a9f036260ddd5808007e1aa95f08ed08aa569")
WETH_BASE = Web3.to_checksum_address("0x4200000000000000000000000000000000000006")
USDC_BASE = Web3.to_checksum_address("0x833589fcd6edb6e08f4c7c32d4f71b54bda02913")
USDC_ARBITRUM = Web3.to_checksum_address("0xaf88d065e77c8cc2239327c5edb3a432268e5831")
NATIVE_TOKEN = Web3.to_checksum_address("0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee")
ROUTER = Web3.to_checksum_address("0x6131b5fae19ea4f9d964eac0408e4408b66337b5")

CONFIG_DATA: t.Dict[str, t.Any] = {
    "chains": {
        "origin": {
            "name": "base",
            "chain_id": 8453,
            "rpc_url": "https://base.example",
            "explorer_url": "https://basescan.org",
        },
        "destination": {
            "name": "arbitrum",
            "chain_id": 42161,
            "rpc_url": "https://arbitrum.example",
            "explorer_url": "https://arbiscan.io",
        },
    },
    "contracts": {
        "origin": {
            "spoke_pool_periphery": PERIPHERY.lower(),
            "spoke_pool": ORIGIN_SPOKE_POOL,
            "swap_proxy": SWAP_PROXY,
        },
        "destination": {
            "spoke_pool": DESTINATION_SPOKE_POOL,
            "multicall_handler": MULTICALL_HANDLER,
        },
    },
    "tokens": {
        "origin_swap_token": {"address": WETH_BASE, "decimals": 18, "is_native": True},
        "origin_deposit_token": {"address": USDC_BASE, "decimals": 6},
        "destination_swap_token_in": {"address": USDC_ARBITRUM, "decimals": 6},
        "destination_swap_token_out": {"address": NATIVE_TOKEN, "decimals": 18, "is_native": True},
    },
    "defaults": {
        "origin_swap_amount": "0.002",
        "origin_swap_slippage_bps": 10,
        "destination_swap_slippage_bps": 10,
        "api_timeout": 30,
        "bridge_deposit_amount": "5",
    },
    "api_urls": {
        "kyberswap": "https://aggregator-api.kyberswap.com/",
        "across": "https://app.across.to/api",
    },
    "integrator": {"client_id": "AcrossTest"},
}
