"""Data models for tariffs and interval readings."""

import decimal
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Iterable, Iterator

from .errors import ConfigurationError

SECONDS_PER_DAY = 24 * 60 * 60
MINUTES_PER_DAY = 24 * 60

# Enough digits that sums of kWh x $/kWh products never round
PRECISION = 50


def to_decimal(value) -> Decimal:
    """Convert a number or numeric string to Decimal without binary drift."""
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # str() gives the shortest repr, so 0.05 stays 0.05
        result = Decimal(str(value))
    elif isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"Not a number: {value!r}")
    return result


def exact_sum(values: Iterable[Decimal]) -> Decimal:
    """Sum Decimals at PRECISION digits, whatever the current context."""
    with decimal.localcontext() as ctx:
        ctx.prec = PRECISION
        return sum(values, Decimal("0"))


def seconds_since_midnight(t: time) -> float:
    return t.hour * 3600 + t.minute * 60 + t.second + t.microsecond / 1_000_000


class DayCategory(str, Enum):
    """Day categories used for rate selection. Public holidays count as weekends."""

    WEEKDAY = "weekday"
    WEEKEND = "weekend"


class FlowDirection(str, Enum):
    """Direction of energy flow through the meter."""

    CONSUMPTION = "consumption"
    FEED_IN = "feed_in"


@dataclass(frozen=True)
class TimeWindow:
    """A half-open time-of-day range [start, end).

    An end of 00:00 means midnight at the end of the day. Windows never
    wrap past midnight; overnight periods are two windows.
    """

    start: time
    end: time

    def __post_init__(self) -> None:
        if self.start.tzinfo is not None or self.end.tzinfo is not None:
            raise ConfigurationError("Time windows use local wall-clock times only")
        if self.start_seconds >= self.end_seconds:
            raise ConfigurationError(
                f"Window start {self.start.isoformat()} must be before end {self.end.isoformat()}"
            )

    @property
    def start_seconds(self) -> float:
        return seconds_since_midnight(self.start)

    @property
    def end_seconds(self) -> float:
        if self.end == time(0, 0):
            return SECONDS_PER_DAY
        return seconds_since_midnight(self.end)

    def contains(self, t: time) -> bool:
        """Check if a time of day falls inside the window."""
        return self.start_seconds <= seconds_since_midnight(t) < self.end_seconds

    def overlaps(self, other: "TimeWindow") -> bool:
        return self.start_seconds < other.end_seconds and other.start_seconds < self.end_seconds

    def __str__(self) -> str:
        end = "24:00" if self.end == time(0, 0) else self.end.strftime("%H:%M")
        return f"{self.start.strftime('%H:%M')}-{end}"


@dataclass(frozen=True)
class RateRule:
    """A price per kWh for one day category and time window."""

    day_category: DayCategory
    window: TimeWindow
    price_per_kwh: Decimal
    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "day_category", DayCategory(self.day_category))
        object.__setattr__(self, "price_per_kwh", to_decimal(self.price_per_kwh))

    @property
    def label(self) -> str:
        base = f"{self.day_category.value} {self.window}"
        return f"{self.name} ({base})" if self.name else base


@dataclass(frozen=True)
class IntervalReading:
    """A single metered energy quantity over a fixed interval."""

    start: datetime
    duration: timedelta
    quantity_kwh: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity_kwh", to_decimal(self.quantity_kwh))

    @property
    def end(self) -> datetime:
        return self.start + self.duration


@dataclass(frozen=True)
class IntervalSeries:
    """Readings for one flow direction, kept in timestamp order."""

    direction: FlowDirection
    readings: tuple[IntervalReading, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "direction", FlowDirection(self.direction))
        object.__setattr__(
            self, "readings", tuple(sorted(self.readings, key=_reading_sort_key))
        )

    @classmethod
    def from_readings(
        cls, readings: Iterable[IntervalReading], direction: FlowDirection = FlowDirection.CONSUMPTION
    ) -> "IntervalSeries":
        return cls(direction=direction, readings=tuple(readings))

    def __iter__(self) -> Iterator[IntervalReading]:
        return iter(self.readings)

    def __len__(self) -> int:
        return len(self.readings)

    def dates(self) -> set[date]:
        """Distinct calendar dates with at least one reading."""
        return {r.start.date() for r in self.readings if isinstance(r.start, datetime)}


def _reading_sort_key(reading: IntervalReading):
    # Malformed starts sort last so aggregation reports them after the good ones
    if isinstance(reading.start, datetime):
        return (0, reading.start.replace(tzinfo=None))
    return (1, datetime.max)
