# ohlcv_bench/models/__init__.py
"""Data models for the ohlcv_bench package."""

from .ohlcv import OHLCVRecord, PriceBar, RECORD_COLUMNS

__all__ = [
    "OHLCVRecord",
    "PriceBar",
    "RECORD_COLUMNS",
]
