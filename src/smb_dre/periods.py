# SMB DRE - Income statement & forecasting engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for SMB DRE.

This module defines a Period value object, validation of period bounds,
the reporting period presets offered by the dashboard filters (current
month, quarter, year, previous month, previous quarter, year to date) and
the previous-period window used for comparisons.
"""

from calendar import monthrange
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any, Optional

import pandas as pd

from .errors import InputError

if TYPE_CHECKING:
    from .transactions import Transaction


@dataclass(frozen=True)
class Period:
    """Represents a reporting period (inclusive bounds) with a label."""

    start: date
    end: date
    label: str = ""


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def coerce_date(value: Any, name: str = "date") -> date:
    """Convert a date-like value (date, datetime, ISO string) to a date.

    Strings must be a whole ISO date or datetime; trailing text is rejected.

    Raises:
        InputError: if the value is missing (None, blank, NaN or NaT) or
            cannot be parsed.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InputError(f"Missing {name}.")
    if pd.api.types.is_scalar(value) and pd.isna(value):
        raise InputError(f"Missing {name}.")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text).date()
    except ValueError as exc:
        raise InputError(f"Invalid {name}: {value!r}, expected YYYY-MM-DD.") from exc


def validate_period(start: Any, end: Any, label: str = "") -> Period:
    """
    Validate period bounds and return a Period.

    Raises
    ------
    InputError
        If a bound is absent or malformed, or if start is after end.
    """
    start_d = coerce_date(start, "period start")
    end_d = coerce_date(end, "period end")
    if start_d > end_d:
        raise InputError(
            f"Period end ({end_d.isoformat()}) cannot be before "
            f"period start ({start_d.isoformat()})."
        )
    return Period(start=start_d, end=end_d, label=label)


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


def period_month(today: Optional[date] = None) -> Period:
    """Full current calendar month."""
    today = today or _today()
    start, end = _month_bounds(today.year, today.month)
    return Period(start=start, end=end, label=f"Month {start:%Y-%m}")


def period_quarter(today: Optional[date] = None) -> Period:
    """Full current calendar quarter."""
    today = today or _today()
    first_month = (today.month - 1) // 3 * 3 + 1
    start, _ = _month_bounds(today.year, first_month)
    _, end = _month_bounds(today.year, first_month + 2)
    return Period(
        start=start, end=end, label=f"Q{(first_month - 1) // 3 + 1} {today.year}"
    )


def period_year(today: Optional[date] = None) -> Period:
    """Full current calendar year."""
    today = today or _today()
    return Period(
        start=date(today.year, 1, 1),
        end=date(today.year, 12, 31),
        label=f"Year {today.year}",
    )


def period_last_month(today: Optional[date] = None) -> Period:
    """Full previous calendar month."""
    today = today or _today()
    if today.month == 1:
        year, month = today.year - 1, 12
    else:
        year, month = today.year, today.month - 1
    start, end = _month_bounds(year, month)
    return Period(start=start, end=end, label="Last month")


def period_last_quarter(today: Optional[date] = None) -> Period:
    """Full previous calendar quarter (wrapping to Q4 of the previous year)."""
    today = today or _today()
    quarter = (today.month - 1) // 3 - 1
    year = today.year
    if quarter < 0:
        quarter = 3
        year -= 1
    start, _ = _month_bounds(year, quarter * 3 + 1)
    _, end = _month_bounds(year, quarter * 3 + 3)
    return Period(start=start, end=end, label="Last quarter")


def period_ytd(today: Optional[date] = None) -> Period:
    """Year-to-date: 1 January up to today."""
    today = today or _today()
    return Period(start=date(today.year, 1, 1), end=today, label="Year to date")


def previous_period(period: Period) -> Period:
    """
    Return the comparison window immediately preceding a period.

    The window ends the day before ``period.start`` and spans the same
    number of days between its bounds as ``period``:

        prev_end   = start - 1 day
        prev_start = prev_end - (end - start)
    """
    span = period.end - period.start
    prev_end = period.start - timedelta(days=1)
    prev_start = prev_end - span
    return Period(start=prev_start, end=prev_end, label="Previous period")


PRESETS = {
    "month": period_month,
    "quarter": period_quarter,
    "year": period_year,
    "last-month": period_last_month,
    "last-quarter": period_last_quarter,
    "ytd": period_ytd,
}


def determine_period_from_args(args, today: Optional[date] = None) -> Period:
    """
    Determine the reporting period to use based on CLI args.

    Priority (highest to lowest):

        1. args.period (month, quarter, year, last-month, last-quarter, ytd)
        2. args.from_date / args.to_date (custom period, both required)
        3. current month by default
    """
    preset = getattr(args, "period", None)
    if preset:
        try:
            return PRESETS[preset](today)
        except KeyError:
            raise InputError(f"Unknown period: {preset!r}") from None

    from_raw: Optional[str] = getattr(args, "from_date", None)
    to_raw: Optional[str] = getattr(args, "to_date", None)
    if from_raw or to_raw:
        period = validate_period(from_raw, to_raw)
        return Period(
            start=period.start,
            end=period.end,
            label=f"Custom period ({period.start} → {period.end})",
        )

    return period_month(today)


def filter_transactions(
    transactions: Iterable["Transaction"],
    period: Period,
    client_id: Optional[str] = None,
) -> list["Transaction"]:
    """
    Keep transactions dated within [period.start, period.end].

    When ``client_id`` is given, only transactions of that client are kept.
    Input order is preserved.
    """
    return [
        t
        for t in transactions
        if period.start <= t.date <= period.end
        and (client_id is None or t.client_id == client_id)
    ]
