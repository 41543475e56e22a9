"""Batch loader: groups generated records and fans them out to storage backends."""

import concurrent.futures
import logging
import time
from dataclasses import dataclass
from itertools import islice
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Sequence

import backoff

from ohlcv_bench.exceptions import BatchInsertError
from ohlcv_bench.models import OHLCVRecord
from ohlcv_bench.storage.base import StorageBackend

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10000
PROGRESS_EVERY_BATCHES = 10


def batched(records: Iterable[OHLCVRecord], batch_size: int) -> Iterator[List[OHLCVRecord]]:
    """Groups records into lists of at most batch_size, preserving order."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")
    iterator = iter(records)
    while True:
        batch = list(islice(iterator, batch_size))
        if not batch:
            return
        yield batch


@dataclass
class LoadStats:
    """Insert counters for one backend."""
    backend: str
    inserted: int = 0
    failed_rows: int = 0
    failed_batches: int = 0
    duration: float = 0.0  # seconds spent inside this backend's inserts

    @property
    def rate(self) -> float:
        """Inserted rows per second (0 when nothing was timed)."""
        return self.inserted / self.duration if self.duration > 0 else 0.0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "inserted": self.inserted,
            "failed_rows": self.failed_rows,
            "failed_batches": self.failed_batches,
            "duration": self.duration,
            "rate": self.rate,
        }


class BatchLoader:
    """
    Loads records into several backends at once.

    Every batch is submitted to all backends in parallel, and the loader waits
    for all of them before moving on, so each backend sees the batches in the
    same order.

    A submission that still fails after ``max_tries`` attempts is logged and
    counted in that backend's ``LoadStats`` (``failed_rows``/``failed_batches``),
    then loading carries on with the next batch. With ``fail_fast`` the failure
    is raised as BatchInsertError instead.
    """

    def __init__(
        self,
        backends: Mapping[str, StorageBackend],
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_tries: int = 1,
        fail_fast: bool = False,
    ):
        if not backends:
            raise ValueError("At least one backend is required.")
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        if max_tries < 1:
            raise ValueError(f"max_tries must be at least 1, got {max_tries}")

        self.backends = dict(backends)
        self.batch_size = batch_size
        self.max_tries = max_tries
        self.fail_fast = fail_fast

        self._inserters = {
            name: backoff.on_exception(
                backoff.expo,
                Exception,
                max_tries=max_tries,
                logger=logger,
            )(backend.insert_batch)
            for name, backend in self.backends.items()
        }

    def _submit(self, name: str, batch: Sequence[OHLCVRecord]) -> float:
        """Inserts one batch into one backend and returns the elapsed seconds."""
        start = time.perf_counter()
        self._inserters[name](batch)
        return time.perf_counter() - start

    def load(self, records: Iterable[OHLCVRecord]) -> Dict[str, LoadStats]:
        """
        Loads all records and returns per-backend statistics.

        Raises:
            BatchInsertError: Only when fail_fast is set and a batch fails.
        """
        stats = {name: LoadStats(backend=name) for name in self.backends}
        logger.info(
            f"Loading into {', '.join(self.backends)} with batches of {self.batch_size} rows"
        )

        with concurrent.futures.ThreadPoolExecutor(max_workers=len(self.backends)) as executor:
            for batch_number, batch in enumerate(batched(records, self.batch_size), start=1):
                future_to_backend = {
                    executor.submit(self._submit, name, batch): name for name in self.backends
                }

                # Collect every backend's outcome before raising so stats stay complete
                errors: List[BatchInsertError] = []
                for future in concurrent.futures.as_completed(future_to_backend):
                    name = future_to_backend[future]
                    backend_stats = stats[name]
                    try:
                        backend_stats.duration += future.result()
                        backend_stats.inserted += len(batch)
                    except Exception as e:
                        backend_stats.failed_batches += 1
                        backend_stats.failed_rows += len(batch)
                        logger.error(
                            f"Batch {batch_number} ({len(batch)} rows) failed for '{name}' "
                            f"after {self.max_tries} attempt(s): {e}"
                        )
                        errors.append(BatchInsertError(name, len(batch), e))

                if errors and self.fail_fast:
                    raise errors[0] from errors[0].cause

                if batch_number % PROGRESS_EVERY_BATCHES == 0:
                    for backend_stats in stats.values():
                        logger.info(
                            f"{backend_stats.backend}: {backend_stats.inserted} records inserted "
                            f"({backend_stats.rate:.0f}/sec)"
                        )

        for backend_stats in stats.values():
            if backend_stats.failed_rows:
                logger.warning(
                    f"{backend_stats.backend}: {backend_stats.failed_rows} rows in "
                    f"{backend_stats.failed_batches} batch(es) were not inserted"
                )
            logger.info(
                f"{backend_stats.backend}: inserted {backend_stats.inserted} records "
                f"in {backend_stats.duration:.2f}s ({backend_stats.rate:.0f}/sec)"
            )
        return stats
