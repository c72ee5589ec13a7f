from datetime import date

import pytest

from smb_dre.errors import InputError
from smb_dre.forecasting import (
    RegressionParams,
    build_forecast_series,
    fit_trend,
    forecast_series,
    forecast_to_frame,
    growth_rate,
    moving_average,
    project,
    seasonal_average,
    summarize_forecast,
    validate_series,
)


def test_fit_trend_linear_series() -> None:
    params = fit_trend([100, 200, 300])
    assert params.slope == 100
    assert params.intercept == 100
    assert project([100, 200, 300], 1) == [400]


def test_single_value_series_is_flat() -> None:
    params = fit_trend([50])
    assert params == RegressionParams(slope=0.0, intercept=50.0)
    assert project([50], 2) == [50, 50]


def test_empty_series_fits_zero_line() -> None:
    assert fit_trend([]) == RegressionParams(slope=0.0, intercept=0.0)
    assert project([], 3) == [0.0, 0.0, 0.0]


def test_projection_is_clamped_at_zero() -> None:
    values = project([300, 200, 100], 3)
    assert values == [0.0, 0.0, 0.0]
    assert all(v >= 0 for v in project([50, 40, 30, 20], 6))


def test_projection_reuses_precomputed_parameters() -> None:
    params = RegressionParams(slope=10.0, intercept=5.0)
    assert project([1, 2], 2, params) == [25.0, 35.0]


@pytest.mark.parametrize("horizon", [0, -1, 1.5, True])
def test_projection_rejects_invalid_horizon(horizon) -> None:
    with pytest.raises(InputError):
        project([1, 2, 3], horizon)


def test_moving_average() -> None:
    assert moving_average([1, 2, 3, 4], 2) == [1.5, 2.5, 3.5]
    assert moving_average([1, 2, 3], 3) == [2.0]


def test_moving_average_window_larger_than_series() -> None:
    series = [1, 2, 3]
    out = moving_average(series, 5)
    assert out == series
    assert out is not series


def test_moving_average_rejects_non_positive_window() -> None:
    with pytest.raises(InputError):
        moving_average([1, 2, 3], 0)


@pytest.mark.parametrize(
    "current,previous,expected",
    [(10, 0, 100.0), (0, 0, 0.0), (-5, 0, 0.0), (25, 50, -50.0), (150, 100, 50.0)],
)
def test_growth_rate(current, previous, expected) -> None:
    assert growth_rate(current, previous) == expected


def test_seasonal_average() -> None:
    result = seasonal_average({"January": [100, 200], "February": [50], "March": []})
    assert result == {"January": 150.0, "February": 50.0, "March": 0.0}


def test_validate_series_rejects_non_numeric() -> None:
    assert validate_series([1, 2.5, 3]) == [1.0, 2.5, 3.0]
    for bad in (["1", 2], [1, None], [True, 2], [float("nan")]):
        with pytest.raises(InputError):
            validate_series(bad)


def test_build_forecast_series_labels() -> None:
    points = build_forecast_series([10, 20, 30], [40, 50], date(2025, 1, 15))

    assert [p.bucket_label for p in points] == [
        "Nov/2024",
        "Dec/2024",
        "Jan/2025",
        "Feb/2025",
        "Mar/2025",
    ]
    assert [p.kind for p in points] == [
        "historical",
        "historical",
        "historical",
        "forecast",
        "forecast",
    ]
    assert [p.value for p in points] == [10.0, 20.0, 30.0, 40.0, 50.0]


def test_forecast_series_end_to_end() -> None:
    points = forecast_series([100, 200, 300], 2, date(2025, 3, 1))

    forecast = [p for p in points if p.kind == "forecast"]
    assert [p.value for p in forecast] == [400.0, 500.0]
    assert [p.bucket_label for p in forecast] == ["Apr/2025", "May/2025"]

    df = forecast_to_frame(points)
    assert list(df.columns) == ["bucket_label", "value", "kind"]
    assert len(df) == 5


def test_forecast_series_rejects_malformed_input() -> None:
    with pytest.raises(InputError):
        forecast_series([100, "two hundred"], 1, date(2025, 3, 1))


def test_summarize_forecast() -> None:
    summary = summarize_forecast([100, 200, 300], [50, 50, 50], horizon=2)

    assert summary.revenue_forecast == (400.0, 500.0)
    assert summary.expense_forecast == (50.0, 50.0)
    assert summary.next_profit == pytest.approx(350.0)
    assert summary.revenue_trend == pytest.approx(100 / 3)
    assert summary.expense_trend == 0.0
    assert summary.profit_trend == pytest.approx(100 / 3)


def test_summarize_forecast_from_empty_history() -> None:
    summary = summarize_forecast([], [], horizon=1)
    assert summary.next_revenue == 0.0
    assert summary.revenue_trend == 0.0
