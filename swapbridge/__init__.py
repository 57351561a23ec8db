"""Swap on one chain, bridge with Across, swap again on the destination."""

from importlib import metadata


def __getattr__(name: str) -> str:
    """Expose the package version via ``swapbridge.__version__``."""
    if name == "__version__":
        try:
            return metadata.version("swapbridge")
        except metadata.PackageNotFoundError:
            return "0.0.0"
    raise AttributeError(name)


__all__ = ["__version__"]
