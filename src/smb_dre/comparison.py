# SMB DRE - Income statement & forecasting engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Report comparison helpers for SMB DRE.

Two analyses are offered on top of computed reports:

- horizontal analysis: each waterfall figure of a report compared with the
  same figure of another report (typically the previous period, see
  ``periods.previous_period``);
- vertical analysis: each figure expressed as a percentage of gross
  revenue.

Division-by-zero cases follow fixed policies instead of producing NaN or
infinite values, so results can be rendered directly.
"""

import pandas as pd

from .engine import STATEMENT_LINES, Report


def calculate_variation(current: float, previous: float) -> float:
    """
    Percentage variation of ``current`` against ``previous``.

    The variation is measured against ``abs(previous)`` so that an
    improvement of a negative figure (e.g. a smaller loss) is positive.
    When ``previous`` is zero the result is 0 if ``current`` is also zero,
    else 100.
    """
    if previous == 0:
        return 0.0 if current == 0 else 100.0
    return (current - previous) / abs(previous) * 100.0


def percentage_of(value: float, base: float) -> float:
    """Return ``value`` as a percentage of ``base`` (0 when base is 0)."""
    if base == 0:
        return 0.0
    return value / base * 100.0


def compare_reports(current: Report, previous: Report) -> pd.DataFrame:
    """
    Compare two reports figure by figure.

    Returns
    -------
    pandas.DataFrame
        One row per waterfall figure with columns:
            key, name, current, previous, difference, variation_pct
    """
    rows = []
    for key, name, _level in STATEMENT_LINES:
        cur = getattr(current, key)
        prev = getattr(previous, key)
        rows.append(
            {
                "key": key,
                "name": name,
                "current": cur,
                "previous": prev,
                "difference": cur - prev,
                "variation_pct": calculate_variation(cur, prev),
            }
        )
    return pd.DataFrame(
        rows,
        columns=["key", "name", "current", "previous", "difference", "variation_pct"],
    )


def vertical_analysis(report: Report) -> pd.DataFrame:
    """Express each waterfall figure as a percentage of gross revenue."""
    base = report.receita_bruta
    rows = [
        {
            "key": key,
            "name": name,
            "amount": getattr(report, key),
            "pct_of_revenue": percentage_of(getattr(report, key), base),
        }
        for key, name, _level in STATEMENT_LINES
    ]
    return pd.DataFrame(rows, columns=["key", "name", "amount", "pct_of_revenue"])
