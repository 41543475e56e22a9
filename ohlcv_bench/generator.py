"""Deterministic synthetic OHLCV data generator.

Every trading day of every instrument is seeded from the string
``f"{instrument_id}{date}"``, so re-running the generator over the same
calendar reproduces the exact same rows. Within one instrument the days must be
generated in date order because each open is a random walk from the previous
close.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Iterable, Iterator, Optional, Tuple, Union

from ohlcv_bench.exceptions import ConfigurationError
from ohlcv_bench.models import OHLCVRecord, PriceBar

logger = logging.getLogger(__name__)

# Linear congruential generator constants
LCG_MULTIPLIER = 9301
LCG_INCREMENT = 49297
LCG_MODULUS = 233280

MIN_PRICE = 0.01

DateLike = Union[date, str]


def parse_date(value: DateLike) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise ConfigurationError(f"Invalid date '{value}': expected YYYY-MM-DD") from e


@dataclass(frozen=True)
class TradingCalendar:
    """Ordered weekdays between two dates (inclusive), as ISO strings."""
    start_date: date
    end_date: date
    days: Tuple[str, ...]

    @classmethod
    def between(cls, start_date: DateLike, end_date: DateLike) -> "TradingCalendar":
        """
        Builds the calendar, skipping Saturdays and Sundays.

        Raises:
            ConfigurationError: If start_date is after end_date.
        """
        start = parse_date(start_date)
        end = parse_date(end_date)
        if start > end:
            raise ConfigurationError(
                f"Calendar start {start.isoformat()} is after end {end.isoformat()}",
                {"start_date": start.isoformat(), "end_date": end.isoformat()},
            )

        days = []
        current = start
        while current <= end:
            if current.weekday() < 5:  # Monday=0 .. Friday=4
                days.append(current.isoformat())
            current += timedelta(days=1)
        return cls(start, end, tuple(days))

    def __iter__(self) -> Iterator[str]:
        return iter(self.days)

    def __len__(self) -> int:
        return len(self.days)


def hash_code(text: str) -> int:
    """Rolling ``h * 31 + ch`` string hash, wrapped to a signed 32-bit int."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
        if h >= 0x80000000:
            h -= 0x100000000
    return h


def seeded_random(seed: int) -> Callable[[], float]:
    """Returns an LCG closure yielding floats in [0, 1)."""
    state = seed

    def next_value() -> float:
        nonlocal state
        state = (state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return state / LCG_MODULUS

    return next_value


def round_half_up(value: float, digits: int) -> float:
    # Ties go toward +infinity, which is what earlier benchmark runs used.
    # Python's round() is half-to-even and would shift some prices by 1e-4.
    scaled = value * 10 ** digits
    whole = math.floor(scaled)
    if scaled - whole >= 0.5:
        whole += 1
    return whole / 10 ** digits


def base_price(instrument_id: int) -> float:
    """Anchor price used for the first day of an instrument."""
    return 50 + (instrument_id % 1000) * 0.1


def generate_price(instrument_id: int, day: str, previous_close: Optional[float] = None) -> PriceBar:
    """
    Generates one day's bar for an instrument.

    Args:
        instrument_id: The synthetic instrument id.
        day: ISO-8601 trading day.
        previous_close: Close of the instrument's previous trading day, or None
            for the first day (the anchor price is used instead).

    Returns:
        PriceBar with prices rounded to 4 decimals and a whole-number volume.
    """
    rng = seeded_random(abs(hash_code(f"{instrument_id}{day}")))

    start_price = base_price(instrument_id) if previous_close is None else previous_close

    volatility = 0.005 + rng() * 0.045

    open_change = (rng() - 0.5) * volatility * 2
    open_price = max(MIN_PRICE, start_price * (1 + open_change))

    intraday_volatility = volatility * 0.5
    high_change = rng() * intraday_volatility
    low_change = -rng() * intraday_volatility
    high = open_price * (1 + abs(high_change))
    low = open_price * (1 + low_change)

    close = low + (high - low) * rng()

    price_movement = abs((close - open_price) / open_price)
    base_volume = 100000 + (instrument_id % 10000) * 10
    volume_multiplier = 1 + price_movement * 5
    volume = round_half_up(base_volume * volume_multiplier * (0.5 + rng()), 0)

    return PriceBar(
        open=round_half_up(open_price, 4),
        high=round_half_up(high, 4),
        low=round_half_up(low, 4),
        close=round_half_up(close, 4),
        volume=round_half_up(volume, 2),
    )


class OHLCVGenerator:
    """
    Produces OHLCV records over a fixed trading calendar.

    The generator holds no state besides the calendar: the running previous
    close lives in the iterator of each instrument, so separate instruments can
    be generated from different threads.
    """

    def __init__(self, start_date: DateLike, end_date: DateLike):
        self.calendar = TradingCalendar.between(start_date, end_date)
        logger.info(
            f"Built trading calendar {self.calendar.start_date} .. {self.calendar.end_date} "
            f"({len(self.calendar)} trading days)"
        )

    def generate_instrument(self, instrument_id: int) -> Iterator[OHLCVRecord]:
        """Yields one record per trading day for an instrument, in date order."""
        if instrument_id < 1:
            raise ValueError(f"instrument_id must be a positive integer, got {instrument_id}")

        previous_close: Optional[float] = None
        for day in self.calendar:
            bar = generate_price(instrument_id, day, previous_close)
            previous_close = bar.close
            yield OHLCVRecord.from_bar(instrument_id, day, bar)

    def generate(self, instrument_ids: Iterable[int]) -> Iterator[OHLCVRecord]:
        """Yields the records of several instruments, one instrument after the other."""
        count = 0
        for count, instrument_id in enumerate(instrument_ids, start=1):
            yield from self.generate_instrument(instrument_id)
            if count % 1000 == 0:
                logger.info(f"Generated data for {count} instruments")
        logger.debug(f"Finished generating {count} instruments")
