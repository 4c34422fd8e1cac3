"""Errors raised by the tariff engine.

All of them derive from ValueError so callers can treat a bad tariff or bad
reading the same way they treat any other bad input.
"""

from datetime import datetime, time


class TariffError(ValueError):
    """Base exception for tariff engine errors."""
    pass


class ConfigurationError(TariffError):
    """A rate table or rule is malformed (overlapping or missing coverage)."""

    def __init__(self, message: str, rules: tuple = ()):
        super().__init__(message)
        self.rules = rules


class NoMatchingRule(TariffError):
    """No rate rule covers a reading's day category and time of day."""

    def __init__(self, day_category, time_of_day: time, timestamp: datetime | None = None):
        self.day_category = day_category
        self.time_of_day = time_of_day
        self.timestamp = timestamp
        where = f" (reading at {timestamp.isoformat()})" if timestamp else ""
        super().__init__(
            f"No rate for {day_category.value} at {time_of_day.isoformat()}{where}"
        )


class InvalidReading(TariffError):
    """An interval reading cannot be priced at all."""

    def __init__(self, message: str, reading=None):
        super().__init__(message)
        self.reading = reading
