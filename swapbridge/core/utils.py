"""Utility helpers shared across swapbridge core modules."""

from __future__ import annotations

import json
import logging
from decimal import Decimal, ROUND_DOWN
from typing import Any, Optional, Union

from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def get_logger(name: str = "swapbridge") -> logging.Logger:
    """Return a configured logger that prints to stdout."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, "__dict__"):
        return dict(vars(value))
    return str(value)


def log_json(logger: logging.Logger, label: str, data: Any) -> None:
    """Pretty-print ``data`` under ``label``."""
    logger.info("%s:\n%s", label, json.dumps(data, default=_json_default, indent=2))


def ensure_web3_connected(web3: Web3, *, expected_chain_id: Optional[int] = None) -> None:
    """Validate that ``web3`` is connected and optionally matches the expected chain id."""
    if not web3.is_connected():
        raise ConnectionError("Failed to connect to the configured RPC endpoint")
    if expected_chain_id is not None and web3.eth.chain_id != expected_chain_id:
        raise ValueError(f"RPC chain ID mismatch: expected {expected_chain_id}, got {web3.eth.chain_id}")


def hex_to_bytes(data: Union[str, bytes]) -> bytes:
    """Convert a hex string (with or without ``0x``) to bytes."""
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    data = data[2:] if data.startswith("0x") else data
    return bytes.fromhex(data)


def to_hex(data: Union[str, bytes]) -> str:
    """Return ``data`` as a ``0x``-prefixed hex string."""
    return Web3.to_hex(hex_to_bytes(data))


def address_to_bytes32(address: str) -> bytes:
    """Left-pad an EVM address to 32 bytes."""
    return hex_to_bytes(Web3.to_checksum_address(address)).rjust(32, b"\x00")


def bytes32_to_address(value: Union[str, bytes]) -> str:
    """Take the low 20 bytes of a bytes32 value as a checksummed address."""
    raw = hex_to_bytes(value) if isinstance(value, str) else bytes(value)
    return Web3.to_checksum_address(raw[-20:])


def parse_units(amount: Union[str, Decimal], decimals: int) -> int:
    """Scale a human readable token amount to its integer base unit."""
    scaled = Decimal(str(amount)) * (Decimal(10) ** decimals)
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_DOWN))


def format_units(value: int, decimals: int) -> str:
    """Inverse of :func:`parse_units`."""
    text = format(Decimal(value) / (Decimal(10) ** decimals), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def apply_slippage(amount: int, slippage_bps: int) -> int:
    """Return the minimum acceptable amount after ``slippage_bps`` basis points."""
    return amount * (10_000 - slippage_bps) // 10_000


def create_transaction_url(explorer_url: Optional[str], transaction_hash: str) -> str:
    """Build a block explorer link for ``transaction_hash``."""
    if not explorer_url:
        raise ValueError("Chain has no block explorer configured")
    if not explorer_url.endswith("/"):
        explorer_url += "/"
    return f"{explorer_url}tx/{transaction_hash}"


__all__ = [
    "ZERO_ADDRESS",
    "address_to_bytes32",
    "apply_slippage",
    "bytes32_to_address",
    "create_transaction_url",
    "ensure_web3_connected",
    "format_units",
    "get_logger",
    "hex_to_bytes",
    "log_json",
    "parse_units",
    "to_hex",
]
