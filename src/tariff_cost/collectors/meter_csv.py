"""Daily-row interval data importer.

CSV format: one header line, then one row per day:
    YYYYMMDD, kWh_1, kWh_2, ..., kWh_N

The N values split the day evenly, so 288 values are 5-minute intervals
and 48 values are 30-minute intervals. Every row must have the same
number of columns as the first data row.
"""

import csv
import logging
from datetime import datetime, timedelta
from pathlib import Path

from ..days import parse_date
from ..models import MINUTES_PER_DAY, FlowDirection, IntervalReading, IntervalSeries, to_decimal

logger = logging.getLogger(__name__)


class MeterFileError(ValueError):
    """An interval data file could not be read."""

    def __init__(self, message: str, path: Path | None = None, line: int | None = None):
        location = ""
        if path is not None:
            location = f"{path}:{line}: " if line is not None else f"{path}: "
        super().__init__(f"{location}{message}")
        self.path = path
        self.line = line


def interval_minutes(value_count: int) -> int:
    """Interval length for a row with value_count readings."""
    if value_count <= 0 or MINUTES_PER_DAY % value_count:
        raise ValueError(f"{value_count} readings do not split a day into whole minutes")
    return MINUTES_PER_DAY // value_count


def parse_day_row(row: list[str]) -> list[IntervalReading]:
    """Parse one day's row into interval readings."""
    day = parse_date(row[0])
    minutes = interval_minutes(len(row) - 1)
    midnight = datetime.combine(day, datetime.min.time())
    duration = timedelta(minutes=minutes)
    return [
        IntervalReading(
            start=midnight + i * duration,
            duration=duration,
            quantity_kwh=to_decimal(value),
        )
        for i, value in enumerate(row[1:])
    ]


def parse_csv(
    csv_path: Path, direction: FlowDirection = FlowDirection.CONSUMPTION
) -> IntervalSeries:
    """Parse a daily-row interval CSV file into an interval series."""
    logger.info("Loading %s CSV file %s", FlowDirection(direction).value, csv_path)
    readings: list[IntervalReading] = []
    column_count = None

    with open(csv_path, newline="") as f:
        reader = csv.reader(f)
        next(reader, None)
        for row in reader:
            if not row:
                continue
            if column_count is None:
                if len(row) < 2:
                    raise MeterFileError("no readings on first line of data", csv_path, reader.line_num)
                column_count = len(row)
            elif len(row) != column_count:
                raise MeterFileError(
                    f"{len(row)} columns, expected {column_count} as on the first line of data",
                    csv_path,
                    reader.line_num,
                )

            logger.debug("Interval record: %s (%d values)", row[0], len(row) - 1)
            try:
                readings.extend(parse_day_row(row))
            except ValueError as e:
                raise MeterFileError(str(e), csv_path, reader.line_num) from e

    return IntervalSeries.from_readings(readings, direction)
