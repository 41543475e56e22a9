"""Line-delimited JSON dump of generated records, and replay of such a dump."""

import logging
from pathlib import Path
from typing import Iterator, Sequence, Union

import pandas as pd

from ohlcv_bench.models import OHLCVRecord, RECORD_COLUMNS
from ohlcv_bench.storage.base import StorageBackend, records_to_dataframe

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_PATH = "data/stock_data.jsonl"

PathLike = Union[str, Path]


class JsonlWriter(StorageBackend):
    """Writes one JSON object per record, in the order batches arrive."""

    def __init__(self, path: PathLike = DEFAULT_OUTPUT_PATH, append: bool = False):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.path, "a" if append else "w", encoding="utf-8")
        self.records_written = 0
        logger.info(f"Writing records to {self.path}")

    def insert_batch(self, records: Sequence[OHLCVRecord]) -> None:
        if self._file is None:
            raise RuntimeError(f"JSONL writer for {self.path} is closed.")
        if not records:
            return
        payload = records_to_dataframe(records).to_json(orient="records", lines=True)
        if not payload.endswith("\n"):
            payload += "\n"
        self._file.write(payload)
        self.records_written += len(records)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            logger.info(f"Saved {self.records_written} records to {self.path}")


def read_jsonl_records(path: PathLike, chunksize: int = 10000) -> Iterator[OHLCVRecord]:
    """
    Returns a lazy iterator over the records stored in a JSONL dump.

    The file is checked for existence straight away, not on the first read.

    Args:
        path: File written by JsonlWriter.
        chunksize: Number of lines parsed at a time.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"JSONL file not found at {path}")
    return _iter_jsonl_records(path, chunksize)


def _iter_jsonl_records(path: Path, chunksize: int) -> Iterator[OHLCVRecord]:
    columns = list(RECORD_COLUMNS)
    # convert_dates=False keeps "date" as the ISO string the generator produced
    with pd.read_json(path, lines=True, chunksize=chunksize, convert_dates=False, precise_float=True,
                      dtype={"instrument_id": "int64", "date": str}) as reader:
        for chunk in reader:
            for instrument_id, day, open_, high, low, close, volume in chunk[columns].itertuples(index=False, name=None):
                yield OHLCVRecord(
                    instrument_id=int(instrument_id),
                    date=str(day),
                    open=float(open_),
                    high=float(high),
                    low=float(low),
                    close=float(close),
                    volume=float(volume),
                )
