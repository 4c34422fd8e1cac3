"""Rate tables, tariff schedules and plan loading."""

import decimal
import logging
from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from pathlib import Path

import yaml

from .days import CalendarClassifier, parse_date
from .errors import ConfigurationError, NoMatchingRule
from .models import MINUTES_PER_DAY, PRECISION, SECONDS_PER_DAY, DayCategory, RateRule, TimeWindow, to_decimal

logger = logging.getLogger(__name__)

DAY_SELECTORS = {
    "*": (DayCategory.WEEKDAY, DayCategory.WEEKEND),
    "all": (DayCategory.WEEKDAY, DayCategory.WEEKEND),
    "weekdays": (DayCategory.WEEKDAY,),
    "weekday": (DayCategory.WEEKDAY,),
    "weekends": (DayCategory.WEEKEND,),
    "weekend": (DayCategory.WEEKEND,),
}


def parse_time(value, is_end: bool = False) -> time:
    """Parse HH:MM or HH:MM:SS to a time object.

    24:00 is accepted for window ends and maps to midnight (end of day).
    Integers are minutes since midnight, which is how YAML reads an
    unquoted 07:00. An unquoted 07:00:00 reads as seconds and is rejected.
    """
    if isinstance(value, time):
        return value
    if isinstance(value, int):
        if not 0 <= value <= MINUTES_PER_DAY:
            raise ValueError(
                f"Time of day {value} is not minutes since midnight; quote times as 'HH:MM'"
            )
        hours, minutes, seconds = value // 60, value % 60, 0
    else:
        parts = str(value).strip().split(":")
        if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
            raise ValueError(f"Invalid time of day: {value!r}")
        hours, minutes = int(parts[0]), int(parts[1])
        seconds = int(parts[2]) if len(parts) == 3 else 0

    if (hours, minutes, seconds) == (24, 0, 0):
        if not is_end:
            raise ValueError(f"24:00 is only valid as an end time: {value!r}")
        return time(0, 0)
    return time(hours, minutes, seconds)


def format_seconds(seconds: float) -> str:
    seconds = int(seconds)
    if seconds % 60:
        return f"{seconds // 3600:02d}:{seconds // 60 % 60:02d}:{seconds % 60:02d}"
    return f"{seconds // 3600:02d}:{seconds // 60 % 60:02d}"


@dataclass(frozen=True)
class RateTable:
    """An ordered set of rate rules with single-match lookup.

    Overlapping rules for the same day category are rejected. A full table
    must price every instant of both day categories; a partial table may
    leave gaps, in which case lookups in a gap raise NoMatchingRule.
    """

    rules: tuple[RateRule, ...]
    partial: bool = False
    _by_category: dict = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", tuple(self.rules))
        by_category = {
            category: tuple(
                sorted(
                    (r for r in self.rules if r.day_category == category),
                    key=lambda r: r.window.start_seconds,
                )
            )
            for category in DayCategory
        }
        object.__setattr__(self, "_by_category", by_category)

        for category, rules in by_category.items():
            _check_overlaps(category, rules)
            if not self.partial:
                _check_coverage(category, rules)

    def rules_for(self, day_category: DayCategory) -> tuple[RateRule, ...]:
        """Rules for one day category, sorted by window start."""
        return self._by_category[DayCategory(day_category)]

    def lookup(self, day_category: DayCategory, time_of_day: time) -> RateRule:
        """Get the single rule covering a day category and time of day."""
        day_category = DayCategory(day_category)
        matches = [r for r in self.rules_for(day_category) if r.window.contains(time_of_day)]
        if not matches:
            raise NoMatchingRule(day_category, time_of_day)
        if len(matches) > 1:
            raise ConfigurationError(
                f"Ambiguous rate for {day_category.value} at {time_of_day.isoformat()}: "
                + ", ".join(r.label for r in matches),
                rules=tuple(matches),
            )
        return matches[0]

    def __len__(self) -> int:
        return len(self.rules)


def _check_overlaps(category: DayCategory, rules: tuple[RateRule, ...]) -> None:
    # Rules are sorted by start, so any overlap shows up between neighbours
    for current, following in zip(rules, rules[1:]):
        if current.window.overlaps(following.window):
            raise ConfigurationError(
                f"Overlapping {category.value} rates: {current.label} and {following.label}",
                rules=(current, following),
            )


def _check_coverage(category: DayCategory, rules: tuple[RateRule, ...]) -> None:
    covered_until = 0.0
    for rule in rules:
        if rule.window.start_seconds > covered_until:
            raise ConfigurationError(
                f"No {category.value} rate covers "
                f"{format_seconds(covered_until)}-{format_seconds(rule.window.start_seconds)}"
            )
        covered_until = max(covered_until, rule.window.end_seconds)
    if covered_until < SECONDS_PER_DAY:
        raise ConfigurationError(
            f"No {category.value} rate covers {format_seconds(covered_until)}-24:00"
        )


@dataclass(frozen=True)
class TariffSchedule:
    """A rate table plus a fixed supply charge per day."""

    rate_table: RateTable
    supply_charge_per_day: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        supply = to_decimal(self.supply_charge_per_day)
        if supply < 0:
            raise ConfigurationError(f"Supply charge per day must not be negative: {supply}")
        object.__setattr__(self, "supply_charge_per_day", supply)

    def lookup(self, day_category: DayCategory, time_of_day: time) -> RateRule:
        return self.rate_table.lookup(day_category, time_of_day)

    def supply_charge_for(self, days: int) -> Decimal:
        """Supply charge for a number of distinct billed days."""
        if days < 0:
            raise ValueError(f"Number of days must not be negative: {days}")
        with decimal.localcontext() as ctx:
            ctx.prec = PRECISION
            return self.supply_charge_per_day * days


@dataclass(frozen=True)
class TariffPlan:
    """A retail plan: consumption and feed-in schedules plus holidays."""

    name: str
    consumption: TariffSchedule
    feed_in: TariffSchedule | None = None
    holidays: frozenset[date] = field(default_factory=frozenset)

    def classifier(self) -> CalendarClassifier:
        return CalendarClassifier(self.holidays)


def build_rules(
    days: str, start, end, rate, name: str = ""
) -> list[RateRule]:
    """Build one rule per day category selected by a days selector."""
    selector = str(days).strip().lower()
    if selector not in DAY_SELECTORS:
        raise ConfigurationError(
            f"Unknown days selector {days!r}, expected one of: {', '.join(DAY_SELECTORS)}"
        )
    window = TimeWindow(parse_time(start), parse_time(end, is_end=True))
    return [
        RateRule(day_category=category, window=window, price_per_kwh=to_decimal(rate), name=name)
        for category in DAY_SELECTORS[selector]
    ]


def rate_table_from_config(data: dict) -> RateTable:
    """Build a rate table from a parsed config section with a 'rates' list."""
    rules: list[RateRule] = []
    for r in data.get("rates", []):
        try:
            rules.extend(
                build_rules(
                    days=r.get("days", "*"),
                    start=r["start"],
                    end=r["end"],
                    rate=r["rate"],
                    name=r.get("name", ""),
                )
            )
        except KeyError as e:
            raise ConfigurationError(f"Rate entry {r!r} is missing {e}") from None
    return RateTable(tuple(rules), partial=bool(data.get("partial", False)))


def load_plan_from_yaml(config_path: Path, partial: bool | None = None) -> TariffPlan:
    """Load a tariff plan from a YAML file.

    Passing partial overrides the per-section 'partial' flags.
    """
    logger.info("Loading tariff plan from %s", config_path)
    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    if "consumption" not in data:
        raise ConfigurationError(f"{config_path}: plan has no 'consumption' section")

    def section(key: str) -> dict:
        sec = dict(data[key] or {})
        if partial is not None:
            sec["partial"] = partial
        return sec

    consumption = TariffSchedule(
        rate_table=rate_table_from_config(section("consumption")),
        supply_charge_per_day=to_decimal(data.get("supply_charge_per_day", 0)),
    )
    feed_in = None
    if data.get("feed_in"):
        feed_in = TariffSchedule(rate_table=rate_table_from_config(section("feed_in")))

    holidays = frozenset(parse_date(d) for d in data.get("public_holidays") or [])
    plan = TariffPlan(
        name=data.get("name", Path(config_path).stem),
        consumption=consumption,
        feed_in=feed_in,
        holidays=holidays,
    )
    logger.debug(
        "Plan %r: %d consumption rules, %d feed-in rules, %d holidays",
        plan.name,
        len(consumption.rate_table),
        len(feed_in.rate_table) if feed_in else 0,
        len(holidays),
    )
    return plan
