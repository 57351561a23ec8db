"""Configuration utilities for swapbridge."""

from .loader import (
    ApiUrlsConfig,
    ChainConfig,
    ConfigError,
    DefaultsConfig,
    DestinationContracts,
    OriginContracts,
    SwapBridgeConfig,
    TokenConfig,
    TokensConfig,
    load_config,
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
