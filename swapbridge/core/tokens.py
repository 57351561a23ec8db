"""Token balance, allowance and approval helpers."""

from __future__ import annotations

import functools
from typing import Dict, Optional, Tuple

from web3 import Web3
from web3.contract import Contract

from swapbridge.contracts import load_contract_abi
from swapbridge.core.utils import ensure_web3_connected

MAX_UINT256 = 2**256 - 1

ERC20_ABI = load_contract_abi("erc20.json")


def get_contract(web3: Web3, token_address: str) -> Contract:
    """Return a cached ERC20 contract instance for ``token_address``."""
    ensure_web3_connected(web3)
    return _get_or_create_contract(web3, token_address)


_CONTRACT_CACHE: Dict[Tuple[int, str], Contract] = {}


def _get_or_create_contract(web3: Web3, token_address: str) -> Contract:
    checksum_address = Web3.to_checksum_address(token_address)
    key = (id(web3), checksum_address)
    contract = _CONTRACT_CACHE.get(key)
    if contract is None:
        contract = web3.eth.contract(address=checksum_address, abi=ERC20_ABI)
        _CONTRACT_CACHE[key] = contract
    return contract


def balance_of(web3: Web3, token_address: str, owner: str) -> int:
    """Fetch the ERC20 balance."""
    contract = get_contract(web3, token_address)
    return contract.functions.balanceOf(Web3.to_checksum_address(owner)).call()


def allowance_of(web3: Web3, token_address: str, owner: str, spender: str) -> int:
    """Fetch the ERC20 allowance."""
    contract = get_contract(web3, token_address)
    return contract.functions.allowance(
        Web3.to_checksum_address(owner),
        Web3.to_checksum_address(spender),
    ).call()


def get_balance(web3: Web3, owner: str, token_address: Optional[str] = None) -> int:
    """Return the native balance when ``token_address`` is ``None``, else the ERC20 balance."""
    if token_address is None:
        ensure_web3_connected(web3)
        return web3.eth.get_balance(Web3.to_checksum_address(owner))
    return balance_of(web3, token_address, owner)


@functools.lru_cache(maxsize=1)
def _offline_erc20() -> Contract:
    return Web3().eth.contract(abi=ERC20_ABI)


def encode_approve(spender: str, amount: int) -> bytes:
    """Return ``approve(spender, amount)`` calldata."""
    if amount < 0 or amount > MAX_UINT256:
        raise ValueError(f"Approval amount out of uint256 range: {amount}")
    data = _offline_erc20().encode_abi("approve", args=[Web3.to_checksum_address(spender), amount])
    return Web3.to_bytes(hexstr=data)


__all__ = [
    "ERC20_ABI",
    "MAX_UINT256",
    "allowance_of",
    "balance_of",
    "encode_approve",
    "get_balance",
    "get_contract",
]
