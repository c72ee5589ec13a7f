# SMB DRE - Income statement & forecasting engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for SMB DRE.

This module wires together the main building blocks of SMB DRE:

- application configuration (database, forecast defaults, display),
- transaction import & database access,
- DRE engine (report for one period),
- comparison with the previous period,
- forecasting of monthly revenue and expenses.

The CLI is intentionally thin: it does not implement accounting or
forecasting logic itself. It orchestrates the underlying modules based on
command-line arguments and configuration files.


High-level pipeline
-------------------

1) Load the TOML configuration (``smb_dre_config.toml`` by default, or
   ``--config PATH``). When the default file does not exist, built-in
   defaults are used.

2) Optionally import transactions from a CSV file (``--import``).

3) Determine the reporting period (``--period`` preset or
   ``--from-date``/``--to-date``, current month by default) and compute
   the DRE through ``SqliteSource``, optionally for one client
   (``--client``).

4) Optionally compute the previous-period report and a comparison table
   (``--compare``), save the report as a snapshot (``--save-snapshot``)
   and project monthly revenue/expenses (``--forecast N``), using the
   ``--forecast-months`` months that end with the reporting period as
   history.

5) Render as console tables, JSON (wire shape) or CSV files.

Errors raised by the library (InputError, SourceUnavailable) are turned
into a non-zero exit with a short message.
"""

import argparse
import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import pandas as pd

from . import __version__
from .comparison import compare_reports
from .config import AppConfig, default_app_config, load_app_config
from .db import (
    SqliteSource,
    has_transactions,
    import_transactions,
    init_database,
    load_transactions,
    save_report_snapshot,
)
from .engine import Report, ReportRequest, compute_report, detail_to_frame, report_to_frame
from .errors import InputError, SourceUnavailable
from .forecasting import (
    forecast_series,
    forecast_to_frame,
    moving_average,
    summarize_forecast,
)
from .periods import PRESETS, Period, determine_period_from_args, previous_period
from .series import monthly_series
from .transactions import read_transactions

logger = logging.getLogger(__name__)

# Value of --forecast given without N: use the configured horizon.
_CONFIGURED_HORIZON = "config"


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m smb_dre.cli",
        description=(
            "SMB DRE - income statement (DRE) and forecasting engine for SMBs. "
            "Reads transactions, classifies them into the DRE waterfall and "
            "projects monthly revenue and expenses."
        ),
    )

    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of smb_dre and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. "
            "If omitted, 'smb_dre_config.toml' in the current directory is used "
            "when present."
        ),
    )
    ap.add_argument(
        "--log-level",
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the logging level defined in the configuration.",
    )
    ap.add_argument(
        "--import",
        dest="import_path",
        metavar="CSV_PATH",
        help="Import transactions from the given CSV file before reporting.",
    )

    # Period selection
    ap.add_argument(
        "--period",
        choices=sorted(PRESETS),
        help="Predefined reporting period. Defaults to the current month.",
    )
    ap.add_argument(
        "--from-date",
        dest="from_date",
        help="Custom period start date (YYYY-MM-DD), used with --to-date.",
    )
    ap.add_argument(
        "--to-date",
        dest="to_date",
        help="Custom period end date (YYYY-MM-DD), used with --from-date.",
    )
    ap.add_argument(
        "--client",
        dest="client_id",
        help="Only include transactions of this client.",
    )

    # Extra outputs
    ap.add_argument(
        "--detail",
        action="store_true",
        help="Also render the itemized detail lists.",
    )
    ap.add_argument(
        "--compare",
        action="store_true",
        help="Compare the report with the previous period of the same length.",
    )
    ap.add_argument(
        "--save-snapshot",
        dest="save_snapshot",
        action="store_true",
        help="Store the computed report as a snapshot in the database.",
    )
    ap.add_argument(
        "--forecast",
        dest="forecast_horizon",
        type=int,
        nargs="?",
        const=_CONFIGURED_HORIZON,
        metavar="N",
        help=(
            "Project monthly revenue and expenses N months ahead "
            "(without N, the configured forecast.horizon is used)."
        ),
    )
    ap.add_argument(
        "--forecast-months",
        dest="forecast_months",
        type=int,
        default=12,
        metavar="M",
        help="Number of months of history used for the forecast (default: 12).",
    )

    # Output
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "json", "csv"],
        help="Override the display mode defined in the configuration.",
    )
    ap.add_argument(
        "--output-dir",
        dest="output_dir",
        help="Directory for CSV exports (default: data/output).",
    )
    return ap


def _load_config(config_path: Optional[str]) -> AppConfig:
    if config_path:
        return load_app_config(config_path)
    if Path("smb_dre_config.toml").is_file():
        return load_app_config()
    return default_app_config()


def _history_window(period: Period, months: int) -> Period:
    """Months ending with the month of ``period.end`` (inclusive)."""
    end_month = pd.Timestamp(period.end).to_period("M")
    start_month = end_month - (months - 1)
    return Period(
        start=start_month.start_time.date(),
        end=period.end,
        label=f"Last {months} months",
    )


def _compute_forecasts(
    config: AppConfig,
    period: Period,
    client_id: Optional[str],
    horizon: int,
    history_months: int,
) -> dict[str, Any]:
    history = _history_window(period, history_months)
    transactions = load_transactions(
        config.database, history.start, history.end, client_id
    )
    revenue = monthly_series(transactions, "income", history.start, history.end)
    expenses = monthly_series(transactions, "expense", history.start, history.end)

    summary = summarize_forecast(revenue, expenses, horizon)
    window = config.forecast.moving_average_window
    return {
        "revenue": forecast_series(revenue, horizon, period.end),
        "expenses": forecast_series(expenses, horizon, period.end),
        "revenue_moving_average": moving_average(revenue, window),
        "summary": summary,
    }


def _render_json(
    report: Report,
    previous: Optional[Report],
    forecasts: Optional[dict[str, Any]],
) -> None:
    payload: dict[str, Any] = report.to_dict()
    if previous is None and forecasts is None:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    out: dict[str, Any] = {"dre": payload}
    if previous is not None:
        out["comparacao"] = previous.to_dict()
    if forecasts is not None:
        summary = forecasts["summary"]
        out["previsoes"] = {
            "receitas": [p.to_dict() for p in forecasts["revenue"]],
            "despesas": [p.to_dict() for p in forecasts["expenses"]],
            "media_movel_receitas": forecasts["revenue_moving_average"],
            "resumo": {
                "next_revenue": summary.next_revenue,
                "next_expense": summary.next_expense,
                "next_profit": summary.next_profit,
                "revenue_trend": summary.revenue_trend,
                "expense_trend": summary.expense_trend,
                "profit_trend": summary.profit_trend,
            },
        }
    print(json.dumps(out, ensure_ascii=False, indent=2))


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the SMB DRE CLI.

    Parses command-line arguments, loads the configuration, optionally
    imports transactions, computes the DRE for the selected period and
    renders it together with the optional comparison and forecasts.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"smb_dre version {__version__}")
        return

    try:
        config = _load_config(args.config_path)
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(f"Error: {exc}") from exc

    logging.basicConfig(
        level=args.log_level or config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        init_database(config.database)

        # 1) Optional import
        if args.import_path:
            csv_path = Path(args.import_path)
            if not csv_path.is_file():
                parser.error(f"CSV file for --import not found: {csv_path}")
            stats = import_transactions(
                read_transactions(csv_path),
                config.database,
                source_label=str(csv_path),
            )
            print(
                f"Imported batch #{stats.batch_id}: {stats.rows_inserted} transactions."
            )
        elif not has_transactions(config.database):
            logger.warning("Database is empty, use --import to load transactions.")

        # 2) Current period report
        period = determine_period_from_args(args)
        request = ReportRequest(
            period_start=period.start,
            period_end=period.end,
            client_id=args.client_id,
        )
        source = SqliteSource(config.database)
        report = compute_report(request, source)
        logger.info(
            "Computed DRE for %s (%s → %s)", period.label, period.start, period.end
        )

        # 3) Optional comparison, snapshot and forecasts
        previous = None
        if args.compare:
            prev = previous_period(period)
            previous = compute_report(
                ReportRequest(prev.start, prev.end, args.client_id), source
            )

        if args.save_snapshot:
            snapshot_id = save_report_snapshot(config.database, report, args.client_id)
            print(f"Saved snapshot #{snapshot_id}.")

        forecasts = None
        if args.forecast_horizon is not None:
            horizon = args.forecast_horizon
            if horizon == _CONFIGURED_HORIZON:
                horizon = config.forecast.horizon
            if args.forecast_months < 1:
                parser.error("--forecast-months must be a positive integer.")
            forecasts = _compute_forecasts(
                config, period, args.client_id, horizon, args.forecast_months
            )
    except (InputError, SourceUnavailable, sqlite3.Error, OSError) as exc:
        raise SystemExit(f"Error: {exc}") from exc

    # 4) Render
    display_mode = args.display_mode or config.display.mode
    decimals = config.display.decimals

    if display_mode == "json":
        _render_json(report, previous, forecasts)
        return

    tables: list[tuple[str, str, pd.DataFrame]] = [
        (
            f"DRE - {period.label} ({period.start} → {period.end}) "
            f"[{config.display.currency}]",
            "dre",
            report_to_frame(report, decimals=decimals),
        )
    ]
    if args.detail:
        tables.append(("Detalhamento", "dre_detail", detail_to_frame(report)))
    if previous is not None:
        tables.append(
            (
                f"Comparison with {previous.period.start} → {previous.period.end}",
                "dre_comparison",
                compare_reports(report, previous).round(decimals),
            )
        )
    if forecasts is not None:
        tables.append(
            ("Revenue forecast", "forecast_revenue", forecast_to_frame(forecasts["revenue"]))
        )
        tables.append(
            (
                "Expense forecast",
                "forecast_expenses",
                forecast_to_frame(forecasts["expenses"]),
            )
        )

    if display_mode == "table":
        for title, _name, df in tables:
            print()
            print(f"=== {title} ===")
            print(df.to_string(index=False))
        if forecasts is not None:
            summary = forecasts["summary"]
            print()
            print(
                f"Next month: revenue {summary.next_revenue:.{decimals}f} "
                f"({summary.revenue_trend:+.1f}%), "
                f"expenses {summary.next_expense:.{decimals}f} "
                f"({summary.expense_trend:+.1f}%), "
                f"profit {summary.next_profit:.{decimals}f}"
            )
        return

    # csv
    output_dir = Path(args.output_dir) if args.output_dir else Path("data/output")
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
    for _title, name, df in tables:
        path = output_dir / f"{name}_{timestamp}.csv"
        df.to_csv(path, index=False)
        print(f"Wrote {path} ({len(df)} rows)")


if __name__ == "__main__":
    main()
