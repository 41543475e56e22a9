from dataclasses import asdict, dataclass
from typing import Any, Dict, NamedTuple

# Column order shared by every backend and the JSONL format
RECORD_COLUMNS = ("instrument_id", "date", "open", "high", "low", "close", "volume")


class PriceBar(NamedTuple):
    """One generated trading day, without its instrument/date key."""
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass(frozen=True)
class OHLCVRecord:
    """Dataclass for one daily Open-High-Low-Close-Volume row."""
    instrument_id: int  # Synthetic instrument, 1..N
    date: str           # ISO-8601 trading day (YYYY-MM-DD)
    open: float
    high: float
    low: float
    close: float
    volume: float

    @classmethod
    def from_bar(cls, instrument_id: int, date: str, bar: PriceBar) -> "OHLCVRecord":
        return cls(instrument_id, date, *bar)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)
