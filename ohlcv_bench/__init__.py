"""Synthetic OHLCV data generation and loading for database benchmarks."""

from .exceptions import BatchInsertError, ConfigurationError, OhlcvBenchError
from .generator import OHLCVGenerator, TradingCalendar, generate_price
from .loader import BatchLoader, LoadStats, batched
from .models import OHLCVRecord, PriceBar

__version__ = "0.1.0"

__all__ = [
    "BatchInsertError",
    "BatchLoader",
    "ConfigurationError",
    "LoadStats",
    "OHLCVGenerator",
    "OHLCVRecord",
    "OhlcvBenchError",
    "PriceBar",
    "TradingCalendar",
    "batched",
    "generate_price",
]
