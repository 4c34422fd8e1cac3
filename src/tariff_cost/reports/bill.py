"""Bill report combining consumption, feed-in and supply costs."""

from dataclasses import dataclass, field
from decimal import Decimal

from rich.table import Table

from ..costs import CostBreakdown, aggregate
from ..days import CalendarClassifier
from ..models import FlowDirection, IntervalSeries, exact_sum
from ..tariffs import TariffPlan, TariffSchedule


@dataclass(frozen=True)
class BillReport:
    """Costs for one plan over one set of meter data."""

    consumption: CostBreakdown
    feed_in: CostBreakdown | None = None
    total: Decimal = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "total", exact_sum((self.consumption_cost, self.feed_in_cost, self.supply_cost))
        )

    @property
    def consumption_cost(self) -> Decimal:
        return self.consumption.energy_cost

    @property
    def feed_in_cost(self) -> Decimal:
        return self.feed_in.energy_cost if self.feed_in else Decimal("0")

    @property
    def supply_cost(self) -> Decimal:
        return self.consumption.supply_cost

    @property
    def billed_days(self) -> int:
        return self.consumption.billed_days


def build_bill(
    consumption: IntervalSeries,
    consumption_schedule: TariffSchedule,
    classifier: CalendarClassifier,
    feed_in: IntervalSeries | None = None,
    feed_in_schedule: TariffSchedule | None = None,
) -> BillReport:
    """Price consumption and (optionally) feed-in and combine them.

    The supply charge is billed for the days in the consumption data only.
    Each series is priced on its own, so differing interval lengths between
    consumption and feed-in are fine.
    """
    consumption_costs = aggregate(consumption, consumption_schedule, classifier)

    feed_in_costs = None
    if feed_in is not None and feed_in_schedule is not None:
        # Supply is charged on the consumption side only
        schedule = TariffSchedule(feed_in_schedule.rate_table)
        feed_in_costs = aggregate(feed_in, schedule, classifier)

    return BillReport(consumption=consumption_costs, feed_in=feed_in_costs)


def build_bill_for_plan(
    plan: TariffPlan,
    consumption: IntervalSeries,
    feed_in: IntervalSeries | None = None,
) -> BillReport:
    """Price meter data against a loaded tariff plan."""
    return build_bill(
        consumption,
        plan.consumption,
        plan.classifier(),
        feed_in=feed_in,
        feed_in_schedule=plan.feed_in,
    )


def format_bill_text(report: BillReport) -> str:
    """Format the bill as the two summary lines."""
    return (
        f"Consumption ${report.consumption_cost}, Feedin ${report.feed_in_cost}, "
        f"Supply ${report.supply_cost}\n"
        f"Total ${report.total}"
    )


def bill_to_dict(report: BillReport) -> dict:
    """Convert a bill to JSON-friendly data (amounts as strings)."""

    def breakdown(costs: CostBreakdown | None) -> dict | None:
        if costs is None:
            return None
        return {
            "direction": costs.direction.value,
            "first_date": costs.first_date.isoformat() if costs.first_date else None,
            "last_date": costs.last_date.isoformat() if costs.last_date else None,
            "billed_days": costs.billed_days,
            "quantity_kwh": str(costs.quantity_kwh),
            "energy_cost": str(costs.energy_cost),
            "subtotals": [
                {
                    "rule": s.rule.label,
                    "price_per_kwh": str(s.rule.price_per_kwh),
                    "quantity_kwh": str(s.quantity_kwh),
                    "cost": str(s.cost),
                    "readings": s.readings,
                }
                for s in costs.subtotals
            ],
        }

    return {
        "consumption_cost": str(report.consumption_cost),
        "feed_in_cost": str(report.feed_in_cost),
        "supply_cost": str(report.supply_cost),
        "total": str(report.total),
        "consumption": breakdown(report.consumption),
        "feed_in": breakdown(report.feed_in),
    }


def bill_table(report: BillReport) -> Table:
    """Build a table of subtotals per tariff rule."""
    table = Table(title="Cost by Tariff")
    table.add_column("Flow", style="cyan")
    table.add_column("Tariff")
    table.add_column("$/kWh", justify="right")
    table.add_column("kWh", justify="right")
    table.add_column("Cost", justify="right")

    for costs in (report.consumption, report.feed_in):
        if costs is None:
            continue
        flow = "Feed-in" if costs.direction == FlowDirection.FEED_IN else "Consumption"
        for s in costs.subtotals:
            table.add_row(
                flow,
                s.rule.label,
                str(s.rule.price_per_kwh),
                f"{s.quantity_kwh:.3f}",
                f"{s.cost:.2f}",
            )

    table.add_row("Supply", f"{report.billed_days} days", "", "", f"{report.supply_cost:.2f}")
    table.add_row("[bold]Total[/bold]", "", "", "", f"[bold]{report.total:.2f}[/bold]")
    return table
