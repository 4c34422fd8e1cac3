"""Tariff CSV file loaders.

Rate rule CSV format (one header line):
    day_start, day_end, time_start, time_end, price, name

Days are day-of-week indexes with 0 = Monday and day_end exclusive, so
0,5 is Monday to Friday and 5,7 is the weekend. Times are HH:MM[:SS],
with 24:00 allowed as an end time. Prices are $/kWh.

Supply charge CSV: one header line, then the daily charge in the first column.
Public holiday CSV: one header line, then one YYYYMMDD date per row.
"""

import csv
import logging
from datetime import date
from decimal import Decimal
from pathlib import Path

from ..days import parse_date
from ..errors import ConfigurationError
from ..models import DayCategory, RateRule, TimeWindow, to_decimal
from ..tariffs import RateTable, parse_time

logger = logging.getLogger(__name__)

RULE_COLUMNS = 6

DAY_RANGES = {
    (0, 5): (DayCategory.WEEKDAY,),
    (5, 7): (DayCategory.WEEKEND,),
    (0, 7): (DayCategory.WEEKDAY, DayCategory.WEEKEND),
}


class TariffFileError(ValueError):
    """A tariff, supply or holiday file could not be read."""

    def __init__(self, message: str, path: Path | None = None, line: int | None = None):
        location = ""
        if path is not None:
            location = f"{path}:{line}: " if line is not None else f"{path}: "
        super().__init__(f"{location}{message}")
        self.path = path
        self.line = line


def day_categories_for_range(day_start: int, day_end: int) -> tuple[DayCategory, ...]:
    """Map a day-of-week range onto day categories."""
    try:
        return DAY_RANGES[(day_start, day_end)]
    except KeyError:
        raise ConfigurationError(
            f"Day range {day_start}-{day_end} does not match weekdays (0-5), "
            "weekends (5-7) or every day (0-7)"
        ) from None


def parse_rule_row(row: list[str]) -> list[RateRule]:
    """Parse one CSV row into rules (one per day category it covers)."""
    if len(row) != RULE_COLUMNS:
        raise ValueError(f"expected {RULE_COLUMNS} columns, got {len(row)}")
    day_start, day_end = int(row[0]), int(row[1])
    window = TimeWindow(parse_time(row[2]), parse_time(row[3], is_end=True))
    price = to_decimal(row[4])
    name = row[5].strip()
    return [
        RateRule(day_category=category, window=window, price_per_kwh=price, name=name)
        for category in day_categories_for_range(day_start, day_end)
    ]


def read_rules(csv_path: Path) -> list[RateRule]:
    """Read rate rules from a tariff CSV file, in file order."""
    logger.info("Loading tariff CSV file %s", csv_path)
    rules: list[RateRule] = []
    with open(csv_path, newline="") as f:
        reader = csv.reader(f)
        next(reader, None)
        for row in reader:
            if not any(cell.strip() for cell in row):
                continue
            logger.debug("Tariff record: %s", row)
            try:
                rules.extend(parse_rule_row(row))
            except ConfigurationError as e:
                raise TariffFileError(str(e), csv_path, reader.line_num) from e
            except ValueError as e:
                raise TariffFileError(f"invalid rate row: {e}", csv_path, reader.line_num) from e
    return rules


def load_rate_table(csv_path: Path, partial: bool = False) -> RateTable:
    """Load and validate a rate table from a tariff CSV file."""
    rules = read_rules(csv_path)
    try:
        return RateTable(tuple(rules), partial=partial)
    except ConfigurationError as e:
        raise TariffFileError(str(e), csv_path) from e


def load_supply_charge(csv_path: Path) -> Decimal:
    """Load the daily supply charge from the first data row."""
    logger.info("Loading supply charge CSV file %s", csv_path)
    with open(csv_path, newline="") as f:
        reader = csv.reader(f)
        next(reader, None)
        row = next(reader, None)
        if not row:
            raise TariffFileError("missing data line 1", csv_path)
        logger.debug("Supply record: %s", row)
        try:
            return to_decimal(row[0])
        except ValueError as e:
            raise TariffFileError(str(e), csv_path, reader.line_num) from e


def load_public_holidays(csv_path: Path) -> frozenset[date]:
    """Load public holiday dates from the first column of each row."""
    logger.info("Loading public holidays CSV file %s", csv_path)
    holidays = set()
    with open(csv_path, newline="") as f:
        reader = csv.reader(f)
        next(reader, None)
        for row in reader:
            if not row or not row[0].strip():
                continue
            logger.debug("Holiday record: %s", row)
            try:
                holidays.add(parse_date(row[0]))
            except ValueError as e:
                raise TariffFileError(f"invalid date {row[0]!r}", csv_path, reader.line_num) from e
    return frozenset(holidays)
