from datetime import date
from types import SimpleNamespace

import pytest

import smb_dre.periods as periods
from smb_dre.errors import InputError
from smb_dre.classification import TransactionType
from smb_dre.transactions import Transaction


def test_validate_period_accepts_iso_strings() -> None:
    p = periods.validate_period("2025-01-01", "2025-01-31")
    assert p.start == date(2025, 1, 1)
    assert p.end == date(2025, 1, 31)


def test_validate_period_single_day() -> None:
    p = periods.validate_period(date(2025, 1, 1), date(2025, 1, 1))
    assert p.start == p.end


def test_validate_period_accepts_iso_datetimes() -> None:
    p = periods.validate_period("2025-01-01T00:00:00", "2025-01-31 23:59:59")
    assert (p.start, p.end) == (date(2025, 1, 1), date(2025, 1, 31))


@pytest.mark.parametrize(
    "start,end",
    [
        (None, "2025-01-31"),
        ("2025-01-01", None),
        ("2025-02-01", "2025-01-01"),
        ("01/02/2025", "2025-03-01"),
        ("2025-01-01garbage", "2025-01-31"),
        ("2025-01-01", "2025-01-31T99:99"),
        (float("nan"), "2025-01-31"),
    ],
)
def test_validate_period_errors(start, end) -> None:
    with pytest.raises(InputError):
        periods.validate_period(start, end)


def test_presets() -> None:
    today = date(2025, 5, 20)

    month = periods.period_month(today)
    assert (month.start, month.end) == (date(2025, 5, 1), date(2025, 5, 31))

    quarter = periods.period_quarter(today)
    assert (quarter.start, quarter.end) == (date(2025, 4, 1), date(2025, 6, 30))

    year = periods.period_year(today)
    assert (year.start, year.end) == (date(2025, 1, 1), date(2025, 12, 31))

    ytd = periods.period_ytd(today)
    assert (ytd.start, ytd.end) == (date(2025, 1, 1), today)


def test_last_month_and_quarter_wrap_years() -> None:
    today = date(2025, 1, 10)

    last_month = periods.period_last_month(today)
    assert (last_month.start, last_month.end) == (date(2024, 12, 1), date(2024, 12, 31))

    last_quarter = periods.period_last_quarter(today)
    assert (last_quarter.start, last_quarter.end) == (
        date(2024, 10, 1),
        date(2024, 12, 31),
    )

    march = periods.period_last_month(date(2024, 3, 15))
    assert march.end == date(2024, 2, 29)


def test_previous_period_same_length() -> None:
    p = periods.Period(start=date(2025, 3, 1), end=date(2025, 3, 31))
    prev = periods.previous_period(p)

    assert prev.end == date(2025, 2, 28)
    assert prev.start == date(2025, 1, 29)
    assert prev.end - prev.start == p.end - p.start


def test_determine_period_priority(monkeypatch) -> None:
    monkeypatch.setattr(periods, "_today", lambda: date(2025, 6, 15))

    by_preset = periods.determine_period_from_args(
        SimpleNamespace(period="last-month", from_date="2025-01-01", to_date="2025-01-31")
    )
    assert by_preset.start == date(2025, 5, 1)

    custom = periods.determine_period_from_args(
        SimpleNamespace(period=None, from_date="2025-01-01", to_date="2025-01-31")
    )
    assert (custom.start, custom.end) == (date(2025, 1, 1), date(2025, 1, 31))

    default = periods.determine_period_from_args(SimpleNamespace())
    assert (default.start, default.end) == (date(2025, 6, 1), date(2025, 6, 30))

    with pytest.raises(InputError):
        periods.determine_period_from_args(
            SimpleNamespace(period=None, from_date="2025-01-01", to_date=None)
        )


def test_filter_transactions_inclusive_bounds_and_client() -> None:
    def tx(day, client):
        return Transaction(
            description=f"d{day}",
            category_name="",
            classification_tag=None,
            type=TransactionType.INCOME,
            value=1.0,
            date=date(2025, 1, day),
            client_id=client,
        )

    txs = [tx(1, "a"), tx(15, "b"), tx(31, "a"), tx(10, None)]
    p = periods.Period(start=date(2025, 1, 1), end=date(2025, 1, 15))

    kept = periods.filter_transactions(txs, p)
    assert [t.description for t in kept] == ["d1", "d15", "d10"]

    only_a = periods.filter_transactions(txs, p, client_id="a")
    assert [t.description for t in only_a] == ["d1"]
