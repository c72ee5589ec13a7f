# SMB DRE - Income statement & forecasting engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Series builders for SMB DRE.

The forecasting module expects gap-free series (one value per consecutive
month). This module builds them from transactions or from a sequence of
reports computed over consecutive periods:

- monthly_series(transactions, type, start, end):
    monthly totals for every month between start and end, zero-filled.
- monthly_buckets(transactions, type):
    {calendar month name: [total for that month, one per year]}, the input
    of ``forecasting.seasonal_average``.
- reports_to_series(reports, field):
    one waterfall figure taken from each report, in order.
"""

from calendar import month_name
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Any, Union

import pandas as pd

from .classification import TransactionType, parse_transaction_type
from .engine import WATERFALL_FIELDS, Report
from .errors import InputError
from .periods import validate_period
from .transactions import Transaction, transactions_to_frame


def _monthly_totals(
    transactions: Iterable[Transaction],
    tx_type: Union[str, TransactionType],
) -> pd.Series:
    """Sum values of one transaction type per month (PeriodIndex)."""
    kind = parse_transaction_type(tx_type)
    df = transactions_to_frame(transactions)
    df = df.loc[df["type"] == kind.value]
    if df.empty:
        return pd.Series(dtype=float)
    months = pd.to_datetime(df["date"]).dt.to_period("M")
    return df["value"].astype(float).groupby(months).sum()


def monthly_series(
    transactions: Iterable[Transaction],
    tx_type: Union[str, TransactionType],
    start: Any,
    end: Any,
) -> list[float]:
    """
    Monthly totals of one transaction type between two dates.

    Every month from the month of ``start`` to the month of ``end`` is
    present; months without transactions are 0. Transactions dated outside
    [start, end] are ignored.

    Raises
    ------
    InputError
        If a bound is missing or start is after end, or the type is unknown.
    """
    period = validate_period(start, end)
    selected = [t for t in transactions if period.start <= t.date <= period.end]
    totals = _monthly_totals(selected, tx_type)

    months = pd.period_range(
        start=pd.Timestamp(period.start), end=pd.Timestamp(period.end), freq="M"
    )
    filled = totals.reindex(months, fill_value=0.0)
    return [float(v) for v in filled]


def monthly_buckets(
    transactions: Sequence[Transaction],
    tx_type: Union[str, TransactionType],
) -> dict[str, list[float]]:
    """
    Group monthly totals by calendar month name across years.

    Months between the first and the last transaction of the requested
    type are zero-filled before grouping. All twelve month names are
    present in the result, in calendar order; months never covered map to
    an empty list.
    """
    kind = parse_transaction_type(tx_type)
    buckets: dict[str, list[float]] = {month_name[m]: [] for m in range(1, 13)}

    dates = [t.date for t in transactions if t.type == kind]
    if not dates:
        return buckets

    first: date = min(dates)
    last: date = max(dates)
    values = monthly_series(transactions, kind, first.replace(day=1), last)
    months = pd.period_range(start=pd.Timestamp(first), end=pd.Timestamp(last), freq="M")
    for month, value in zip(months, values):
        buckets[month_name[month.month]].append(value)
    return buckets


def reports_to_series(reports: Iterable[Report], field: str) -> list[float]:
    """Extract one waterfall figure from each report, in order.

    Raises:
        InputError: if ``field`` is not a waterfall field.
    """
    if field not in WATERFALL_FIELDS:
        raise InputError(f"Unknown report field: {field!r}")
    return [float(getattr(r, field)) for r in reports]
