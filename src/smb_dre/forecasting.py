# SMB DRE - Income statement & forecasting engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Forecasting helpers for SMB DRE.

This module projects future monthly values from historical series. A
series is an ordered sequence of numbers, one per consecutive bucket
(month), with no gaps: missing months must be filled with zero by the
caller (see ``series.monthly_series``).

Core operations
---------------
- fit_trend(series)            : ordinary least squares on the bucket index.
- project(series, horizon)     : continue the fitted line, clamped at zero.
- moving_average(series, w)    : trailing window averages.
- growth_rate(current, prev)   : percentage change.
- seasonal_average(buckets)    : mean per repeating key (calendar month).

All of them are total over their documented domains. Where a naive
formula would divide by zero, a fixed policy applies instead:

- a series of length <= 1 has slope 0 and intercept equal to its single
  value (0 when empty);
- a series shorter than the moving-average window is returned unchanged;
- a growth rate from a zero previous value is 100 when the current value
  is positive, else 0;
- a seasonal key without observations averages to 0.

Series elements are expected to be numbers. ``validate_series`` is the
guard callers use before entering these functions.

Higher-level helpers label projections by month (``build_forecast_series``)
and summarize revenue/expense projections (``summarize_forecast``).
"""

import math
import numbers
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any, Literal, Optional

import pandas as pd

from .errors import InputError


@dataclass(frozen=True)
class RegressionParams:
    """Fitted line ``value = slope * index + intercept``."""

    slope: float
    intercept: float


@dataclass(frozen=True)
class ForecastPoint:
    """One labelled bucket of a forecast series."""

    bucket_label: str
    value: float
    kind: Literal["historical", "forecast"]

    def to_dict(self) -> dict[str, Any]:
        return {"bucket_label": self.bucket_label, "value": self.value, "kind": self.kind}


@dataclass(frozen=True)
class ForecastSummary:
    """
    Short-term outlook built from revenue and expense projections.

    Attributes
    ----------
    revenue_forecast, expense_forecast :
        Projected values for each future bucket.
    next_revenue, next_expense, next_profit :
        Projections for the first future bucket.
    revenue_trend, expense_trend :
        Growth rate (%) of the first projection over the last observed value.
    profit_trend :
        ``revenue_trend - expense_trend``.
    """

    revenue_forecast: tuple[float, ...]
    expense_forecast: tuple[float, ...]
    next_revenue: float
    next_expense: float
    next_profit: float
    revenue_trend: float
    expense_trend: float
    profit_trend: float


def validate_series(values: Iterable[Any]) -> list[float]:
    """
    Check that every element of a series is a finite number.

    Returns
    -------
    list[float]
        The series converted to floats.

    Raises
    ------
    InputError
        If an element is not a real number (strings and booleans included)
        or is NaN / infinite.
    """
    out: list[float] = []
    for i, v in enumerate(values):
        if isinstance(v, bool) or not isinstance(v, numbers.Real):
            raise InputError(f"Series element #{i} is not numeric: {v!r}")
        f = float(v)
        if math.isnan(f) or math.isinf(f):
            raise InputError(f"Series element #{i} is not finite: {v!r}")
        out.append(f)
    return out


def fit_trend(series: Sequence[float]) -> RegressionParams:
    """Ordinary least-squares fit using the index position as x.

    A series of length <= 1 yields slope 0 and an intercept equal to its
    single value (0 for an empty series).
    """
    n = len(series)
    if n <= 1:
        return RegressionParams(slope=0.0, intercept=float(series[0]) if n else 0.0)

    x_sum = 0.0
    y_sum = 0.0
    xy_sum = 0.0
    x2_sum = 0.0
    for x, y in enumerate(series):
        x_sum += x
        y_sum += y
        xy_sum += x * y
        x2_sum += x * x

    slope = (n * xy_sum - x_sum * y_sum) / (n * x2_sum - x_sum * x_sum)
    intercept = (y_sum - slope * x_sum) / n
    return RegressionParams(slope=slope, intercept=intercept)


def project(
    series: Sequence[float],
    horizon: int,
    params: Optional[RegressionParams] = None,
) -> list[float]:
    """
    Predict the next ``horizon`` values of a series.

    Predictions continue the fitted line at indices ``len(series)``,
    ``len(series) + 1``, ... and are clamped to a minimum of zero.
    Precomputed ``params`` skip the regression.

    Raises
    ------
    InputError
        If ``horizon`` is not a positive integer.
    """
    if isinstance(horizon, bool) or not isinstance(horizon, int) or horizon < 1:
        raise InputError(f"Forecast horizon must be a positive integer, got {horizon!r}.")

    if params is None:
        params = fit_trend(series)
    start = len(series)
    return [
        max(0.0, params.slope * (start + i) + params.intercept) for i in range(horizon)
    ]


def moving_average(series: Sequence[float], window: int) -> list[float]:
    """Trailing averages over each full window of the series.

    If the series is shorter than the window, it is returned unchanged.

    Raises:
        InputError: if ``window`` is not a positive integer.
    """
    if isinstance(window, bool) or not isinstance(window, int) or window < 1:
        raise InputError(f"Moving average window must be a positive integer, got {window!r}.")
    if len(series) < window:
        return list(series)
    return [
        sum(series[i : i + window]) / window for i in range(len(series) - window + 1)
    ]


def growth_rate(current: float, previous: float) -> float:
    """Percentage change from ``previous`` to ``current``.

    If ``previous`` is zero, returns 100 when ``current`` is positive, else 0.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100.0


def seasonal_average(buckets: Mapping[str, Sequence[float]]) -> dict[str, float]:
    """Arithmetic mean of the values observed for each key (0 if none)."""
    return {
        key: (sum(values) / len(values)) if len(values) > 0 else 0.0
        for key, values in buckets.items()
    }


# ---------------------------------------------------------------------------
# Labelled series and summaries
# ---------------------------------------------------------------------------


def _month_label(period: pd.Period) -> str:
    return period.strftime("%b/%Y")


def build_forecast_series(
    historical: Sequence[float],
    forecast: Sequence[float],
    reference_date: date,
) -> list[ForecastPoint]:
    """
    Label historical and forecast values by month.

    The last historical value belongs to the month of ``reference_date``;
    earlier values step back one month each. Forecast values follow, one
    month at a time, starting the month after ``reference_date``.
    Labels use the ``Mon/YYYY`` format (e.g. ``Jan/2025``).
    """
    ref = pd.Timestamp(reference_date).to_period("M")
    n = len(historical)
    points = [
        ForecastPoint(
            bucket_label=_month_label(ref - (n - 1 - i)),
            value=float(v),
            kind="historical",
        )
        for i, v in enumerate(historical)
    ]
    points.extend(
        ForecastPoint(
            bucket_label=_month_label(ref + (i + 1)),
            value=float(v),
            kind="forecast",
        )
        for i, v in enumerate(forecast)
    )
    return points


def forecast_series(
    historical: Iterable[Any],
    horizon: int,
    reference_date: date,
) -> list[ForecastPoint]:
    """Validate a series, project ``horizon`` months and label everything."""
    values = validate_series(historical)
    params = fit_trend(values)
    return build_forecast_series(values, project(values, horizon, params), reference_date)


def summarize_forecast(
    revenue: Iterable[Any],
    expenses: Iterable[Any],
    horizon: int = 3,
) -> ForecastSummary:
    """
    Project revenue and expenses and summarize the short-term outlook.

    Trends compare the first projected bucket with the last observed one
    using ``growth_rate`` (an empty series counts as a last value of 0).
    """
    rev = validate_series(revenue)
    exp = validate_series(expenses)

    rev_fc = project(rev, horizon)
    exp_fc = project(exp, horizon)

    revenue_trend = growth_rate(rev_fc[0], rev[-1] if rev else 0.0)
    expense_trend = growth_rate(exp_fc[0], exp[-1] if exp else 0.0)

    return ForecastSummary(
        revenue_forecast=tuple(rev_fc),
        expense_forecast=tuple(exp_fc),
        next_revenue=rev_fc[0],
        next_expense=exp_fc[0],
        next_profit=rev_fc[0] - exp_fc[0],
        revenue_trend=revenue_trend,
        expense_trend=expense_trend,
        profit_trend=revenue_trend - expense_trend,
    )


def forecast_to_frame(points: Sequence[ForecastPoint]) -> pd.DataFrame:
    """Convert forecast points into a DataFrame (bucket_label, value, kind)."""
    columns = ["bucket_label", "value", "kind"]
    if not points:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame([p.to_dict() for p in points], columns=columns)
