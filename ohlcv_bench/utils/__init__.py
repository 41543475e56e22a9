# ohlcv_bench/utils/__init__.py
"""Utility functions for the ohlcv_bench package."""

from .logging_config import setup_logging

__all__ = [
    "setup_logging",
]
