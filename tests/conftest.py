"""Shared fixtures: small record sets and in-memory backends."""

import threading
from typing import List, Sequence

import pytest

from ohlcv_bench.generator import OHLCVGenerator
from ohlcv_bench.models import OHLCVRecord
from ohlcv_bench.storage.base import StorageBackend


class InMemoryBackend(StorageBackend):
    """Keeps every received batch, in arrival order."""

    def __init__(self):
        self.batches: List[List[OHLCVRecord]] = []
        self.closed = False
        self._lock = threading.Lock()

    def insert_batch(self, records: Sequence[OHLCVRecord]) -> None:
        with self._lock:
            self.batches.append(list(records))

    def close(self) -> None:
        self.closed = True

    @property
    def records(self) -> List[OHLCVRecord]:
        return [record for batch in self.batches for record in batch]


class FlakyBackend(InMemoryBackend):
    """Fails the batches whose (1-based) number is in fail_on, a given number of times each."""

    def __init__(self, fail_on=(), failures_per_batch=1):
        super().__init__()
        self.fail_on = set(fail_on)
        self.failures_per_batch = failures_per_batch
        self.calls = 0
        self._seen_batches = []
        self._failures = {}

    def insert_batch(self, records: Sequence[OHLCVRecord]) -> None:
        self.calls += 1
        key = (records[0].instrument_id, records[0].date)
        if key not in self._seen_batches:
            self._seen_batches.append(key)
        batch_number = self._seen_batches.index(key) + 1
        if batch_number in self.fail_on and self._failures.get(batch_number, 0) < self.failures_per_batch:
            self._failures[batch_number] = self._failures.get(batch_number, 0) + 1
            raise ConnectionError(f"insert of batch {batch_number} rejected")
        super().insert_batch(records)


@pytest.fixture
def generator():
    """Two weeks of trading days (10 records per instrument)."""
    return OHLCVGenerator("2014-01-06", "2014-01-17")


@pytest.fixture
def records(generator):
    """30 records: instruments 1..3 over the two-week calendar."""
    return list(generator.generate([1, 2, 3]))
