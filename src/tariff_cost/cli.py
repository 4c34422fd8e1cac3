"""Command-line interface for pricing metered usage against a tariff."""

import json
import logging
import os
from datetime import datetime
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .collectors import meter_csv, tariff_csv
from .days import CalendarClassifier, parse_date
from .models import DayCategory, FlowDirection
from .reports.bill import bill_table, bill_to_dict, build_bill, format_bill_text
from .tariffs import RateTable, TariffSchedule, load_plan_from_yaml

console = Console()

LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO}


def setup_logging(verbose: int) -> None:
    """Send log records through rich; -v for INFO, -vv for DEBUG."""
    level_name = os.environ.get("TARIFF_COST_LOG_LEVEL")
    if level_name:
        level = logging.getLevelName(level_name.upper())
        if not isinstance(level, int):
            raise click.BadParameter(f"Unknown log level {level_name!r}", param_hint="TARIFF_COST_LOG_LEVEL")
    else:
        level = LOG_LEVELS.get(verbose, logging.DEBUG)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def is_yaml(path: Path) -> bool:
    return path.suffix.lower() in (".yaml", ".yml")


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase log output (-v info, -vv debug)")
def cli(verbose):
    """Price interval-metered electricity usage against a time-of-use tariff."""
    load_dotenv()
    setup_logging(verbose)


@cli.command()
@click.option("-t", "--consumption-tariff", type=click.Path(exists=True, path_type=Path), help="Consumption tariff CSV")
@click.option("-c", "--consumption", type=click.Path(exists=True, path_type=Path), required=True, help="Consumption data CSV")
@click.option("-u", "--feedin-tariff", type=click.Path(exists=True, path_type=Path), help="Feed-in tariff CSV")
@click.option("-f", "--feedin", type=click.Path(exists=True, path_type=Path), help="Feed-in data CSV")
@click.option("-d", "--daily", type=click.Path(exists=True, path_type=Path), help="Daily supply charge CSV")
@click.option(
    "-p",
    "--public-holidays",
    type=click.Path(exists=True, path_type=Path),
    envvar="TARIFF_COST_PUBLIC_HOLIDAYS",
    help="Public holidays CSV (or set TARIFF_COST_PUBLIC_HOLIDAYS)",
)
@click.option(
    "--plan",
    type=click.Path(exists=True, path_type=Path),
    envvar="TARIFF_COST_PLAN",
    help="YAML tariff plan, instead of the tariff and daily CSVs (or set TARIFF_COST_PLAN)",
)
@click.option("--allow-gaps", is_flag=True, help="Accept tariffs that do not cover every time of day")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def cost(ctx, consumption_tariff, consumption, feedin_tariff, feedin, daily, public_holidays, plan, allow_gaps, as_json):
    """Calculate the cost of metered usage under a tariff.

    Feed-in is priced only when both a feed-in tariff and feed-in data are
    given. Any reading that cannot be priced aborts the run.
    """
    if plan is None and (consumption_tariff is None or daily is None):
        raise click.UsageError("Provide --plan, or both --consumption-tariff and --daily")
    if plan is not None and (consumption_tariff is not None or daily is not None):
        raise click.UsageError("--plan cannot be combined with --consumption-tariff or --daily")

    try:
        holidays = frozenset()
        if plan is not None:
            tariff_plan = load_plan_from_yaml(plan, partial=True if allow_gaps else None)
            consumption_schedule = tariff_plan.consumption
            feed_in_schedule = tariff_plan.feed_in
            holidays = tariff_plan.holidays
        else:
            consumption_schedule = TariffSchedule(
                tariff_csv.load_rate_table(consumption_tariff, partial=allow_gaps),
                tariff_csv.load_supply_charge(daily),
            )
            feed_in_schedule = None

        if feedin_tariff is not None:
            feed_in_schedule = TariffSchedule(tariff_csv.load_rate_table(feedin_tariff, partial=allow_gaps))
        if public_holidays is not None:
            holidays = holidays | tariff_csv.load_public_holidays(public_holidays)

        consumption_series = meter_csv.parse_csv(consumption, FlowDirection.CONSUMPTION)
        feed_in_series = None
        if feedin is not None and feed_in_schedule is not None:
            feed_in_series = meter_csv.parse_csv(feedin, FlowDirection.FEED_IN)

        report = build_bill(
            consumption_series,
            consumption_schedule,
            CalendarClassifier(holidays),
            feed_in=feed_in_series,
            feed_in_schedule=feed_in_schedule,
        )
    except ValueError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]", soft_wrap=True)
        ctx.exit(1)

    if as_json:
        click.echo(json.dumps(bill_to_dict(report), indent=2))
        return

    console.print(bill_table(report))
    console.print(escape(format_bill_text(report)), highlight=False, soft_wrap=True)


# Tariff commands
@cli.group()
def tariff():
    """Tariff inspection commands."""
    pass


def rate_table_view(title: str, table: RateTable) -> Table:
    view = Table(title=title)
    view.add_column("Days", style="cyan")
    view.add_column("From")
    view.add_column("To")
    view.add_column("$/kWh", justify="right")
    view.add_column("Name")
    for category in DayCategory:
        for rule in table.rules_for(category):
            start, end = str(rule.window).split("-")
            view.add_row(category.value, start, end, str(rule.price_per_kwh), rule.name)
    return view


@tariff.command("show")
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.option("--allow-gaps", is_flag=True, help="Accept tariffs that do not cover every time of day")
@click.pass_context
def tariff_show(ctx, path, allow_gaps):
    """Show the rates in a tariff CSV or YAML plan."""
    try:
        if is_yaml(path):
            plan = load_plan_from_yaml(path, partial=True if allow_gaps else None)
            console.print(rate_table_view(f"{plan.name}: consumption", plan.consumption.rate_table))
            console.print(f"Supply: ${plan.consumption.supply_charge_per_day}/day")
            if plan.feed_in:
                console.print(rate_table_view(f"{plan.name}: feed-in", plan.feed_in.rate_table))
            if plan.holidays:
                console.print(f"Public holidays: {', '.join(d.isoformat() for d in sorted(plan.holidays))}")
        else:
            table = tariff_csv.load_rate_table(path, partial=allow_gaps)
            console.print(rate_table_view(path.name, table))
    except ValueError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]", soft_wrap=True)
        ctx.exit(1)


@tariff.command("classify")
@click.argument("day")
@click.option(
    "-p",
    "--public-holidays",
    type=click.Path(exists=True, path_type=Path),
    envvar="TARIFF_COST_PUBLIC_HOLIDAYS",
    help="Public holidays CSV (or set TARIFF_COST_PUBLIC_HOLIDAYS)",
)
@click.pass_context
def tariff_classify(ctx, day, public_holidays):
    """Show the day category used for pricing DAY (YYYYMMDD or YYYY-MM-DD)."""
    try:
        target = parse_date(day)
        holidays = tariff_csv.load_public_holidays(public_holidays) if public_holidays else frozenset()
    except ValueError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]", soft_wrap=True)
        ctx.exit(1)

    classifier = CalendarClassifier(holidays)
    category = classifier.classify(target)
    note = " (public holiday)" if classifier.is_holiday(target) else ""
    weekday = datetime.combine(target, datetime.min.time()).strftime("%A")
    console.print(f"{target.isoformat()} {weekday}: [cyan]{category.value}[/cyan]{note}")


if __name__ == "__main__":
    cli()
