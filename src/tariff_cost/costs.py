"""Cost aggregation of interval readings against a tariff schedule."""

import decimal
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable

from .days import CalendarClassifier
from .errors import InvalidReading, NoMatchingRule
from .models import PRECISION, FlowDirection, IntervalReading, IntervalSeries, RateRule, exact_sum
from .tariffs import TariffSchedule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleSubtotal:
    """Energy and cost accumulated against one rate rule."""

    rule: RateRule
    quantity_kwh: Decimal
    cost: Decimal
    readings: int


@dataclass(frozen=True)
class CostBreakdown:
    """Result of pricing one interval series against one schedule."""

    direction: FlowDirection
    subtotals: tuple[RuleSubtotal, ...]
    billed_days: int
    supply_cost: Decimal
    first_date: date | None = None
    last_date: date | None = None
    energy_cost: Decimal = field(init=False)
    quantity_kwh: Decimal = field(init=False)
    total: Decimal = field(init=False)

    def __post_init__(self) -> None:
        # Summed once, at fixed precision, so reads never depend on the caller's context
        energy_cost = exact_sum(s.cost for s in self.subtotals)
        object.__setattr__(self, "energy_cost", energy_cost)
        object.__setattr__(self, "quantity_kwh", exact_sum(s.quantity_kwh for s in self.subtotals))
        object.__setattr__(self, "total", exact_sum((energy_cost, self.supply_cost)))

    @property
    def reading_count(self) -> int:
        return sum(s.readings for s in self.subtotals)

    def by_rule(self) -> dict[RateRule, RuleSubtotal]:
        return {s.rule: s for s in self.subtotals}

    def subtotal_for(self, rule: RateRule) -> RuleSubtotal | None:
        return self.by_rule().get(rule)


def check_reading(reading: IntervalReading) -> None:
    """Raise InvalidReading if a reading cannot be priced at all."""
    if not isinstance(reading.start, datetime):
        raise InvalidReading(f"Reading start {reading.start!r} is not a timestamp", reading)
    if not isinstance(reading.duration, timedelta) or reading.duration <= timedelta(0):
        raise InvalidReading(
            f"Reading at {reading.start.isoformat()} has non-positive duration {reading.duration!r}",
            reading,
        )


def aggregate(
    series: IntervalSeries | Iterable[IntervalReading],
    schedule: TariffSchedule,
    classifier: CalendarClassifier,
) -> CostBreakdown:
    """Price every reading and total the costs per rate rule.

    Readings are processed in timestamp order. The first reading that cannot
    be priced aborts the run; there is no partial total. The supply charge
    is applied once per distinct calendar date that has a reading.
    """
    if not isinstance(series, IntervalSeries):
        series = IntervalSeries.from_readings(series)

    buckets: dict[RateRule, list] = {}
    seen_dates: set[date] = set()

    with decimal.localcontext() as ctx:
        ctx.prec = PRECISION
        for reading in series:
            check_reading(reading)
            day = reading.start.date()
            time_of_day = reading.start.time()
            category = classifier.classify(day)
            try:
                rule = schedule.lookup(category, time_of_day)
            except NoMatchingRule:
                raise NoMatchingRule(category, time_of_day, reading.start) from None

            cost = reading.quantity_kwh * rule.price_per_kwh
            logger.debug(
                "%s %s %s kWh @ %s = %s",
                reading.start.isoformat(),
                category.value,
                reading.quantity_kwh,
                rule.price_per_kwh,
                cost,
            )
            bucket = buckets.setdefault(rule, [Decimal("0"), Decimal("0"), 0])
            bucket[0] += reading.quantity_kwh
            bucket[1] += cost
            bucket[2] += 1
            seen_dates.add(day)

        supply_cost = schedule.supply_charge_for(len(seen_dates))

    # Subtotals follow the rate table's rule order
    subtotals = tuple(
        RuleSubtotal(rule=rule, quantity_kwh=b[0], cost=b[1], readings=b[2])
        for rule in schedule.rate_table.rules
        if (b := buckets.get(rule)) is not None
    )
    breakdown = CostBreakdown(
        direction=series.direction,
        subtotals=subtotals,
        billed_days=len(seen_dates),
        supply_cost=supply_cost,
        first_date=min(seen_dates) if seen_dates else None,
        last_date=max(seen_dates) if seen_dates else None,
    )
    logger.info(
        "Priced %d %s readings over %d days: energy %s, supply %s",
        breakdown.reading_count,
        series.direction.value,
        breakdown.billed_days,
        breakdown.energy_cost,
        breakdown.supply_cost,
    )
    return breakdown
