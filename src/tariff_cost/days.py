"""Day category classification with public holiday overrides."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable

from .models import DayCategory


@dataclass(frozen=True)
class CalendarClassifier:
    """Classify calendar dates as weekday or weekend.

    Public holidays are charged as Sundays, so they classify as weekends.
    """

    holidays: frozenset[date] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "holidays", frozenset(_as_date(d) for d in self.holidays))

    @classmethod
    def with_holidays(cls, holidays: Iterable[date]) -> "CalendarClassifier":
        return cls(frozenset(holidays))

    def is_holiday(self, day: date) -> bool:
        return _as_date(day) in self.holidays

    def classify(self, day: date) -> DayCategory:
        """Get the day category for a date (time of day is ignored)."""
        day = _as_date(day)
        if day in self.holidays or day.weekday() >= 5:
            return DayCategory.WEEKEND
        return DayCategory.WEEKDAY


def parse_date(value) -> date:
    """Parse a civil date given as YYYYMMDD, YYYY-MM-DD or a date object."""
    if isinstance(value, date):
        return _as_date(value)
    text = str(value).strip()
    if len(text) == 8 and text.isdigit():
        return datetime.strptime(text, "%Y%m%d").date()
    return date.fromisoformat(text)


def _as_date(value: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value
