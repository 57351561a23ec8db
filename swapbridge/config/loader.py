"""Config loader for the swapbridge project."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, MutableMapping, Optional

from web3 import Web3

CONFIG_PATH_ENV = "SWAPBRIDGE_CONFIG"


class ConfigError(ValueError):
    """Raised when configuration data is invalid or missing."""


def _require_keys(data: Mapping[str, Any], keys: Iterable[str], context: str) -> None:
    missing = [key for key in keys if key not in data]
    if missing:
        raise ConfigError(f"{context} missing required keys: {', '.join(missing)}")


def _to_checksum(value: str, *, field_name: str) -> str:
    try:
        return Web3.to_checksum_address(value)
    except Exception as exc:  # web3 raises ValueError for malformed inputs
        raise ConfigError(f"Invalid address for {field_name}: {value}") from exc


@dataclass(frozen=True)
class ChainConfig:
    """Configuration for a blockchain network."""

    name: str
    chain_id: int
    rpc_url: Optional[str] = None
    explorer_url: Optional[str] = None

    def ensure_rpc_url(self) -> str:
        """Return the RPC URL or raise if it is missing."""
        if not self.rpc_url:
            raise ConfigError(f"RPC URL required for {self.name} but not configured")
        return self.rpc_url


@dataclass(frozen=True)
class TokenConfig:
    """Token address and unit information."""

    address: str
    decimals: int
    is_native: bool = False


@dataclass(frozen=True)
class OriginContracts:
    """Across contracts on the origin chain."""

    spoke_pool_periphery: str
    spoke_pool: str
    swap_proxy: str


@dataclass(frozen=True)
class DestinationContracts:
    """Across contracts on the destination chain."""

    spoke_pool: str
    multicall_handler: str


@dataclass(frozen=True)
class TokensConfig:
    """Tokens touched by the swap-bridge-swap flow."""

    origin_swap_token: TokenConfig
    origin_deposit_token: TokenConfig
    destination_swap_token_in: TokenConfig
    destination_swap_token_out: TokenConfig


@dataclass(frozen=True)
class DefaultsConfig:
    """Default operational parameters."""

    origin_swap_amount: Decimal
    origin_swap_slippage_bps: int
    destination_swap_slippage_bps: int
    api_timeout: int
    receipt_timeout: int
    fill_timeout: int
    fill_poll_interval: float
    fill_lookback_blocks: int
    infinite_approval: bool = False
    bridge_deposit_amount: Optional[Decimal] = None


@dataclass(frozen=True)
class ApiUrlsConfig:
    """API endpoints required for quoting logic."""

    kyberswap: str
    across: str


@dataclass(frozen=True)
class SwapBridgeConfig:
    """Typed wrapper around the swapbridge configuration."""

    origin_chain: ChainConfig
    destination_chain: ChainConfig
    origin_contracts: OriginContracts
    destination_contracts: DestinationContracts
    tokens: TokensConfig
    defaults: DefaultsConfig
    api_urls: ApiUrlsConfig
    client_id: str
    raw: Mapping[str, Any] = field(repr=False)

    @property
    def origin_swap_amount(self) -> int:
        """Origin swap amount in the swap token's base unit."""
        from swapbridge.core.utils import parse_units

        return parse_units(self.defaults.origin_swap_amount, self.tokens.origin_swap_token.decimals)

    @property
    def bridge_deposit_amount(self) -> int:
        """Direct deposit amount in the origin deposit token's base unit."""
        from swapbridge.core.utils import parse_units

        if self.defaults.bridge_deposit_amount is None:
            raise ConfigError("defaults.bridge_deposit_amount is required to bridge without an origin swap")
        return parse_units(self.defaults.bridge_deposit_amount, self.tokens.origin_deposit_token.decimals)

    def to_dict(self) -> Dict[str, Any]:
        """Return the original configuration mapping."""
        return dict(self.raw)


def _load_json(path: Path) -> MutableMapping[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file contains invalid JSON: {path}") from exc


def _parse_chain(data: Mapping[str, Any], context: str) -> ChainConfig:
    _require_keys(data, ["name", "chain_id"], context)
    return ChainConfig(
        name=str(data["name"]),
        chain_id=int(data["chain_id"]),
        rpc_url=data.get("rpc_url"),
        explorer_url=data.get("explorer_url"),
    )


def _parse_token(data: Mapping[str, Any], context: str) -> TokenConfig:
    _require_keys(data, ["address", "decimals"], context)
    decimals = int(data["decimals"])
    if decimals < 0 or decimals > 36:
        raise ConfigError(f"{context}.decimals must be between 0 and 36")
    return TokenConfig(
        address=_to_checksum(data["address"], field_name=f"{context}.address"),
        decimals=decimals,
        is_native=bool(data.get("is_native", False)),
    )


def load_config(config_path: Optional[Path] = None) -> SwapBridgeConfig:
    """Load and validate swapbridge configuration data."""
    config_path = config_path or Path(os.getenv(CONFIG_PATH_ENV) or "config.json")
    data = _load_json(config_path)

    _require_keys(data, ["chains", "contracts", "tokens", "defaults", "api_urls"], "config")

    chains = data["chains"]
    contracts = data["contracts"]
    tokens = data["tokens"]
    defaults = data["defaults"]
    api_urls = data["api_urls"]

    _require_keys(chains, ["origin", "destination"], "chains")
    origin_chain = _parse_chain(chains["origin"], "origin chain")
    destination_chain = _parse_chain(chains["destination"], "destination chain")
    if origin_chain.chain_id == destination_chain.chain_id:
        raise ConfigError("origin and destination chains must differ")

    _require_keys(contracts, ["origin", "destination"], "contracts")
    origin_contracts_data = contracts["origin"]
    _require_keys(origin_contracts_data, ["spoke_pool_periphery", "spoke_pool", "swap_proxy"], "origin contracts")
    origin_contracts = OriginContracts(
        spoke_pool_periphery=_to_checksum(origin_contracts_data["spoke_pool_periphery"], field_name="spoke_pool_periphery"),
        spoke_pool=_to_checksum(origin_contracts_data["spoke_pool"], field_name="origin spoke_pool"),
        swap_proxy=_to_checksum(origin_contracts_data["swap_proxy"], field_name="swap_proxy"),
    )

    destination_contracts_data = contracts["destination"]
    _require_keys(destination_contracts_data, ["spoke_pool", "multicall_handler"], "destination contracts")
    destination_contracts = DestinationContracts(
        spoke_pool=_to_checksum(destination_contracts_data["spoke_pool"], field_name="destination spoke_pool"),
        multicall_handler=_to_checksum(destination_contracts_data["multicall_handler"], field_name="multicall_handler"),
    )

    _require_keys(
        tokens,
        ["origin_swap_token", "origin_deposit_token", "destination_swap_token_in", "destination_swap_token_out"],
        "tokens",
    )
    tokens_config = TokensConfig(
        origin_swap_token=_parse_token(tokens["origin_swap_token"], "origin_swap_token"),
        origin_deposit_token=_parse_token(tokens["origin_deposit_token"], "origin_deposit_token"),
        destination_swap_token_in=_parse_token(tokens["destination_swap_token_in"], "destination_swap_token_in"),
        destination_swap_token_out=_parse_token(tokens["destination_swap_token_out"], "destination_swap_token_out"),
    )

    _require_keys(
        defaults,
        [
            "origin_swap_amount",
            "origin_swap_slippage_bps",
            "destination_swap_slippage_bps",
            "api_timeout",
        ],
        "defaults",
    )
    try:
        swap_amount = Decimal(str(defaults["origin_swap_amount"]))
    except InvalidOperation as exc:
        raise ConfigError(f"defaults.origin_swap_amount is not a number: {defaults['origin_swap_amount']}") from exc
    bridge_deposit_amount = None
    if defaults.get("bridge_deposit_amount") is not None:
        try:
            bridge_deposit_amount = Decimal(str(defaults["bridge_deposit_amount"]))
        except InvalidOperation as exc:
            raise ConfigError(
                f"defaults.bridge_deposit_amount is not a number: {defaults['bridge_deposit_amount']}"
            ) from exc
    defaults_config = DefaultsConfig(
        origin_swap_amount=swap_amount,
        origin_swap_slippage_bps=int(defaults["origin_swap_slippage_bps"]),
        destination_swap_slippage_bps=int(defaults["destination_swap_slippage_bps"]),
        api_timeout=int(defaults["api_timeout"]),
        receipt_timeout=int(defaults.get("receipt_timeout", 180)),
        fill_timeout=int(defaults.get("fill_timeout", 600)),
        fill_poll_interval=float(defaults.get("fill_poll_interval", 5)),
        fill_lookback_blocks=int(defaults.get("fill_lookback_blocks", 100)),
        infinite_approval=bool(defaults.get("infinite_approval", False)),
        bridge_deposit_amount=bridge_deposit_amount,
    )
    if defaults_config.origin_swap_amount <= 0:
        raise ConfigError("defaults.origin_swap_amount must be positive")
    if bridge_deposit_amount is not None and bridge_deposit_amount <= 0:
        raise ConfigError("defaults.bridge_deposit_amount must be positive")
    for name in ("origin_swap_slippage_bps", "destination_swap_slippage_bps"):
        value = getattr(defaults_config, name)
        if value < 0 or value >= 10_000:
            raise ConfigError(f"defaults.{name} must be between 0 and 9999")
    if defaults_config.api_timeout <= 0:
        raise ConfigError("defaults.api_timeout must be positive")
    if defaults_config.receipt_timeout <= 0 or defaults_config.fill_timeout <= 0:
        raise ConfigError("defaults.receipt_timeout and defaults.fill_timeout must be positive")
    if defaults_config.fill_poll_interval <= 0:
        raise ConfigError("defaults.fill_poll_interval must be positive")
    if defaults_config.fill_lookback_blocks < 0:
        raise ConfigError("defaults.fill_lookback_blocks cannot be negative")

    _require_keys(api_urls, ["kyberswap", "across"], "api_urls")
    api_config = ApiUrlsConfig(
        kyberswap=str(api_urls["kyberswap"]).rstrip("/"),
        across=str(api_urls["across"]).rstrip("/"),
    )

    integrator = data.get("integrator", {})
    client_id = str(integrator.get("client_id", "swapbridge"))

    return SwapBridgeConfig(
        origin_chain=origin_chain,
        destination_chain=destination_chain,
        origin_contracts=origin_contracts,
        destination_contracts=destination_contracts,
        tokens=tokens_config,
        defaults=defaults_config,
        api_urls=api_config,
        client_id=client_id,
        raw=data,
    )


__all__ = [
    "ApiUrlsConfig",
    "ChainConfig",
    "ConfigError",
    "DefaultsConfig",
    "DestinationContracts",
    "OriginContracts",
    "SwapBridgeConfig",
    "TokenConfig",
    "TokensConfig",
    "load_config",
]
