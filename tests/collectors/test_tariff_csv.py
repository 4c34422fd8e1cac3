"""Tests for tariff, supply and holiday CSV loaders."""

from datetime import date, time
from decimal import Decimal

import pytest
from tariff_cost.collectors import tariff_csv
from tariff_cost.models import DayCategory

HEADER = "Day Start,Day End,Time Start,Time End,Tariff,Name\n"


@pytest.fixture
def write_csv(tmp_path):
    def write(name: str, text: str):
        path = tmp_path / name
        path.write_text(text)
        return path

    return write


def test_load_rate_table(write_csv):
    path = write_csv(
        "consumption.csv",
        HEADER
        + "0,5,00:00:00,07:00:00,0.2,Off peak\n"
        + "0,5,07:00:00,24:00:00,0.3289,Peak\n"
        + "5,7,00:00:00,24:00:00,0.15,Weekend\n",
    )

    table = tariff_csv.load_rate_table(path)

    assert len(table) == 3
    peak = table.lookup(DayCategory.WEEKDAY, time(7, 0))
    assert peak.name == "Peak"
    assert peak.price_per_kwh == Decimal("0.3289")
    assert table.lookup(DayCategory.WEEKEND, time(3, 0)).price_per_kwh == Decimal("0.15")


def test_every_day_range_creates_rule_per_category(write_csv):
    path = write_csv("feedIn.csv", HEADER + "0,7,00:00,24:00,-0.05,Feed-in\n\n")

    rules = tariff_csv.read_rules(path)

    assert [r.day_category for r in rules] == [DayCategory.WEEKDAY, DayCategory.WEEKEND]
    assert all(r.price_per_kwh == Decimal("-0.05") for r in rules)


def test_unsupported_day_range(write_csv):
    path = write_csv("bad.csv", HEADER + "0,3,00:00,24:00,0.2,Early week\n")
    with pytest.raises(tariff_csv.TariffFileError, match=r"bad.csv:2: Day range 0-3"):
        tariff_csv.read_rules(path)


def test_wrong_column_count(write_csv):
    path = write_csv("bad.csv", HEADER + "0,7,00:00,24:00,0.2,Flat\n0,7,00:00,0.2\n")
    with pytest.raises(tariff_csv.TariffFileError, match=r":3: invalid rate row: expected 6 columns"):
        tariff_csv.read_rules(path)


def test_invalid_time(write_csv):
    path = write_csv("bad.csv", HEADER + "0,7,midnight,24:00,0.2,Flat\n")
    with pytest.raises(tariff_csv.TariffFileError, match="Invalid time of day"):
        tariff_csv.read_rules(path)


def test_overlapping_rows_rejected(write_csv):
    path = write_csv(
        "overlap.csv",
        HEADER + "0,7,00:00,14:00,0.2,A\n0,5,13:00,24:00,0.3,B\n5,7,14:00,24:00,0.3,C\n",
    )
    with pytest.raises(tariff_csv.TariffFileError, match="Overlapping weekday rates"):
        tariff_csv.load_rate_table(path)


def test_gaps_allowed_when_partial(write_csv):
    path = write_csv("partial.csv", HEADER + "0,5,09:00,17:00,0.3,Business hours\n")

    with pytest.raises(tariff_csv.TariffFileError, match="No weekday rate covers"):
        tariff_csv.load_rate_table(path)

    table = tariff_csv.load_rate_table(path, partial=True)
    assert table.partial
    assert len(table) == 1


def test_load_supply_charge(write_csv):
    path = write_csv("supply.csv", "Daily Supply\n1.45398\n")
    assert tariff_csv.load_supply_charge(path) == Decimal("1.45398")


def test_load_supply_charge_missing_line(write_csv):
    path = write_csv("supply.csv", "Daily Supply\n")
    with pytest.raises(tariff_csv.TariffFileError, match="missing data line 1"):
        tariff_csv.load_supply_charge(path)


@pytest.mark.parametrize("value", ["nan", "Infinity"])
def test_load_supply_charge_not_finite(write_csv, value):
    path = write_csv("supply.csv", f"Daily Supply\n{value}\n")
    with pytest.raises(tariff_csv.TariffFileError, match="Not a number"):
        tariff_csv.load_supply_charge(path)


def test_non_finite_price(write_csv):
    path = write_csv("tariff.csv", HEADER + "0,7,00:00,24:00,NaN,Flat\n")
    with pytest.raises(tariff_csv.TariffFileError, match="invalid rate row: Not a number"):
        tariff_csv.load_rate_table(path)


def test_load_public_holidays(write_csv):
    path = write_csv("publicHolidays.csv", "Date,Name\n20230808,Test day\n 20500101 ,New Year\n\n")

    holidays = tariff_csv.load_public_holidays(path)

    assert date(2023, 8, 8) in holidays
    assert date(2050, 1, 1) in holidays
    assert date(2023, 8, 7) not in holidays


def test_load_public_holidays_bad_date(write_csv):
    path = write_csv("publicHolidays.csv", "Date\n2023-02-30\n")
    with pytest.raises(tariff_csv.TariffFileError, match=r":2: invalid date"):
        tariff_csv.load_public_holidays(path)
