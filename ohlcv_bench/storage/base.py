"""Common interface of the stores the loader writes to."""

import time
from abc import ABC, abstractmethod
from dataclasses import astuple
from typing import NamedTuple, Sequence

import pandas as pd

from ohlcv_bench.models import OHLCVRecord, RECORD_COLUMNS


class QueryTiming(NamedTuple):
    """Row count and wall-clock duration of one read query."""
    rows: int
    elapsed_ms: float


def records_to_dataframe(records: Sequence[OHLCVRecord]) -> pd.DataFrame:
    """Builds a DataFrame with one column per record field, in RECORD_COLUMNS order."""
    return pd.DataFrame([astuple(record) for record in records], columns=list(RECORD_COLUMNS))


class StorageBackend(ABC):
    """A store accepting ordered batches of OHLCV records."""

    @abstractmethod
    def insert_batch(self, records: Sequence[OHLCVRecord]) -> None:
        """Writes one batch. Raises on failure; retries are the caller's concern."""

    @abstractmethod
    def close(self) -> None:
        """Releases the connection or file handle."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class QueryableBackend(StorageBackend):
    """A backend that also answers arbitrary read queries."""

    @abstractmethod
    def execute_query(self, query: str) -> pd.DataFrame:
        """Runs a read query and returns its rows."""

    def timed_query(self, query: str) -> QueryTiming:
        """Runs a read query and reports how many rows came back and how long it took."""
        start = time.perf_counter()
        result = self.execute_query(query)
        elapsed_ms = (time.perf_counter() - start) * 1000
        return QueryTiming(rows=len(result), elapsed_ms=elapsed_ms)
