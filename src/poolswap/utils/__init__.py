"""Utility modules for poolswap."""

from poolswap.utils.locks import LaneLockRegistry

__all__ = ["LaneLockRegistry"]
