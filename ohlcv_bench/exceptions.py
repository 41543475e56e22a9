"""Custom exceptions for ohlcv_bench."""

from typing import Any, Dict, Optional


class OhlcvBenchError(Exception):
    """Base exception for all ohlcv_bench errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(OhlcvBenchError, ValueError):
    """Invalid configuration (date range, batch size, backend settings...)."""


class BatchInsertError(OhlcvBenchError):
    """A batch could not be written to a backend after all attempts."""

    def __init__(self, backend: str, rows: int, cause: Optional[BaseException] = None):
        super().__init__(
            f"Failed to insert batch of {rows} rows into '{backend}': {cause}",
            {"backend": backend, "rows": rows},
        )
        self.backend = backend
        self.rows = rows
        self.cause = cause
