"""Shared fixtures for swapbridge tests."""

import copy
import json
import typing as t
from pathlib import Path

import pytest

from swapbridge.config import SwapBridgeConfig, load_config
from swapbridge.core import tokens
from tests.constants import CONFIG_DATA


def write_config(directory: Path, data: t.Mapping[str, t.Any]) -> Path:
    """Write ``data`` as config.json under ``directory``."""
    path = directory / "config.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def config_data() -> t.Dict[str, t.Any]:
    """Return a mutable copy of the baseline configuration."""
    return copy.deepcopy(CONFIG_DATA)


@pytest.fixture
def config(tmp_path: Path) -> SwapBridgeConfig:
    """Load the baseline configuration from disk."""
    return load_config(write_config(tmp_path, CONFIG_DATA))


@pytest.fixture(autouse=True)
def _clear_contract_cache() -> t.Iterator[None]:
    tokens._CONTRACT_CACHE.clear()
    yield
    tokens._CONTRACT_CACHE.clear()
