# SMB DRE - Income statement & forecasting engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for SMB DRE.

This module is the storage collaborator of the engine: it keeps
transactions and report snapshots in SQLite and serves transactions to the
engine through ``SqliteSource``. The engine itself never touches the
database.

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

1) import_batches
   One row per import (CSV file, API sync, ...).

   - id             INTEGER PRIMARY KEY AUTOINCREMENT
   - created_at     TEXT    NOT NULL (ISO datetime, UTC)
   - source_label   TEXT    NOT NULL  -- file path, connector name, etc.
   - rows_inserted  INTEGER NOT NULL

2) transactions
   - id                 INTEGER PRIMARY KEY AUTOINCREMENT
   - date               TEXT    NOT NULL  -- ISO date "YYYY-MM-DD"
   - description        TEXT
   - category_name      TEXT
   - classification_tag TEXT              -- DRE tag, NULL when unclassified
   - type               TEXT    NOT NULL  -- "income" | "expense"
   - value_cents        INTEGER NOT NULL  -- non-negative amount in cents
   - client_id          TEXT
   - import_batch_id    INTEGER NOT NULL  -- foreign key to import_batches.id

3) dre_snapshots
   Reports persisted by the user as named snapshots.

   - id                    INTEGER PRIMARY KEY AUTOINCREMENT
   - created_at            TEXT NOT NULL
   - period_start          TEXT NOT NULL
   - period_end            TEXT NOT NULL
   - client_id             TEXT
   - <eleven waterfall fields> REAL NOT NULL
   - data_snapshot         TEXT NOT NULL  -- JSON of the detail lists

------------------------------------------------------------------------------
Error handling
------------------------------------------------------------------------------
Any ``sqlite3.Error`` raised while fetching transactions for the engine is
re-raised as ``SourceUnavailable`` so that a failed fetch is never mistaken
for an empty period.
"""

import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional

import pandas as pd

from .classification import TransactionType
from .engine import WATERFALL_FIELDS, Report
from .errors import SourceUnavailable
from .transactions import Transaction, transactions_from_frame

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for SMB DRE.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


@dataclass(frozen=True)
class ImportStats:
    """
    Summary of an import of transactions into the database.

    Attributes
    ----------
    batch_id:
        Identifier of the batch row in `import_batches`.
    rows_inserted:
        Number of rows inserted into `transactions`.
    """

    batch_id: int
    rows_inserted: int


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection with foreign keys enabled.

    The caller is responsible for closing the connection.
    """
    _ensure_sqlite(cfg)
    conn = sqlite3.connect(cfg.path)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they do not exist yet.

    This function is idempotent and can be called multiple times safely.
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS import_batches (
            id            INTEGER PRIMARY KEY AUTOINCREMENT,
            created_at    TEXT    NOT NULL,
            source_label  TEXT    NOT NULL,
            rows_inserted INTEGER NOT NULL DEFAULT 0
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS transactions (
            id                 INTEGER PRIMARY KEY AUTOINCREMENT,
            date               TEXT    NOT NULL,  -- ISO date 'YYYY-MM-DD'
            description        TEXT,
            category_name      TEXT,
            classification_tag TEXT,
            type               TEXT    NOT NULL,
            value_cents        INTEGER NOT NULL,
            client_id          TEXT,
            import_batch_id    INTEGER NOT NULL,

            FOREIGN KEY (import_batch_id) REFERENCES import_batches(id)
        );
        """
    )

    waterfall_columns = ",\n".join(
        f"            {name} REAL NOT NULL" for name in WATERFALL_FIELDS
    )
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS dre_snapshots (
            id            INTEGER PRIMARY KEY AUTOINCREMENT,
            created_at    TEXT NOT NULL,
            period_start  TEXT NOT NULL,
            period_end    TEXT NOT NULL,
            client_id     TEXT,
{waterfall_columns},
            data_snapshot TEXT NOT NULL
        );
        """
    )

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_transactions_date
            ON transactions(date);
        """
    )

    conn.commit()


def _now_utc_iso() -> str:
    """Return the current UTC datetime as ISO string."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _to_cents(value: float) -> int:
    return int(round(value * 100))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file (and its parent directory) if needed.
    - Creates tables and indexes if they are missing.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    sqlite3.Error
        If schema creation fails.
    """
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    conn = _connect(cfg)
    try:
        _create_schema_if_needed(conn)
    finally:
        conn.close()


def import_transactions(
    df: pd.DataFrame,
    cfg: DatabaseConfig,
    *,
    source_label: str,
) -> ImportStats:
    """
    Import transactions from a DataFrame into the database.

    The DataFrame follows the layout returned by
    ``transactions.read_transactions``. Rows are validated before anything
    is written; the whole import runs in a single database transaction.

    Raises
    ------
    InputError
        If a row is invalid (missing column, bad type, negative value...).
    """
    records = transactions_from_frame(df)
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO import_batches (created_at, source_label, rows_inserted)
            VALUES (?, ?, 0);
            """,
            (_now_utc_iso(), source_label),
        )
        batch_id = int(cur.lastrowid)

        cur.executemany(
            """
            INSERT INTO transactions (
                date, description, category_name, classification_tag,
                type, value_cents, client_id, import_batch_id
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?);
            """,
            [
                (
                    t.date.isoformat(),
                    t.description,
                    t.category_name,
                    t.classification_tag,
                    t.type.value,
                    _to_cents(t.value),
                    t.client_id,
                    batch_id,
                )
                for t in records
            ],
        )

        cur.execute(
            "UPDATE import_batches SET rows_inserted = ? WHERE id = ?;",
            (len(records), batch_id),
        )
        conn.commit()
    finally:
        conn.close()

    logger.info(
        "Imported batch #%d from %s: %d transactions", batch_id, source_label, len(records)
    )
    return ImportStats(batch_id=batch_id, rows_inserted=len(records))


def load_transactions(
    cfg: DatabaseConfig,
    start: date,
    end: date,
    client_id: Optional[str] = None,
) -> list[Transaction]:
    """
    Load the transactions of a period (inclusive bounds), optionally for one
    client, ordered by date then insertion order.

    Values are reconstructed from `value_cents / 100.0`. If no transactions
    match, an empty list is returned.

    Raises
    ------
    SourceUnavailable
        If the database cannot be opened or queried.
    """
    query = """
        SELECT date, description, category_name, classification_tag,
               type, value_cents, client_id
          FROM transactions
         WHERE date BETWEEN ? AND ?
    """
    params: list[object] = [start.isoformat(), end.isoformat()]
    if client_id is not None:
        query += " AND client_id = ?"
        params.append(client_id)
    query += " ORDER BY date, id;"

    try:
        init_database(cfg)
        conn = _connect(cfg)
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()
    except (sqlite3.Error, OSError) as exc:
        logger.error("Failed to load transactions from %s: %s", cfg.path, exc)
        raise SourceUnavailable(
            f"Could not load transactions from database {cfg.path}."
        ) from exc

    logger.debug(
        "Loaded %d transactions for %s → %s (client=%s)",
        len(rows),
        start,
        end,
        client_id,
    )

    out: list[Transaction] = []
    for row_date, desc, category, tag, tx_type, cents, client in rows:
        out.append(
            Transaction(
                description=desc or "",
                category_name=category or "",
                classification_tag=tag,
                type=TransactionType(tx_type),
                value=int(cents) / 100.0,
                date=date.fromisoformat(row_date),
                client_id=client,
            )
        )
    return out


def has_transactions(cfg: DatabaseConfig) -> bool:
    """Return True if the database contains at least one transaction."""
    init_database(cfg)
    conn = _connect(cfg)
    try:
        row = conn.execute("SELECT 1 FROM transactions LIMIT 1;").fetchone()
    finally:
        conn.close()
    return row is not None


class SqliteSource:
    """TransactionSource reading from the SQLite database."""

    def __init__(self, cfg: DatabaseConfig):
        self.cfg = cfg

    def fetch(
        self, start: date, end: date, client_id: Optional[str] = None
    ) -> list[Transaction]:
        return load_transactions(self.cfg, start, end, client_id)


# ---------------------------------------------------------------------------
# Report snapshots
# ---------------------------------------------------------------------------


def save_report_snapshot(
    cfg: DatabaseConfig,
    report: Report,
    client_id: Optional[str] = None,
) -> int:
    """
    Persist an already computed report as a snapshot.

    Returns
    -------
    int
        The id of the new snapshot row.
    """
    init_database(cfg)
    columns = ["created_at", "period_start", "period_end", "client_id"]
    columns += list(WATERFALL_FIELDS)
    columns.append("data_snapshot")

    values: list[object] = [
        _now_utc_iso(),
        report.period.start.isoformat(),
        report.period.end.isoformat(),
        client_id,
    ]
    values += [getattr(report, name) for name in WATERFALL_FIELDS]
    values.append(json.dumps(report.detail.to_dict(), ensure_ascii=False))

    placeholders = ", ".join("?" for _ in columns)
    conn = _connect(cfg)
    try:
        cur = conn.execute(
            f"INSERT INTO dre_snapshots ({', '.join(columns)}) VALUES ({placeholders});",
            values,
        )
        conn.commit()
        snapshot_id = int(cur.lastrowid)
    finally:
        conn.close()

    logger.info(
        "Saved DRE snapshot #%d for %s → %s",
        snapshot_id,
        report.period.start,
        report.period.end,
    )
    return snapshot_id


def list_report_snapshots(cfg: DatabaseConfig) -> pd.DataFrame:
    """
    List stored snapshots (without their detail lists), newest first.

    Returns
    -------
    pandas.DataFrame
        Columns: id, created_at, period_start, period_end, client_id and the
        eleven waterfall fields.
    """
    init_database(cfg)
    columns = ["id", "created_at", "period_start", "period_end", "client_id"]
    columns += list(WATERFALL_FIELDS)

    conn = _connect(cfg)
    try:
        rows = conn.execute(
            f"SELECT {', '.join(columns)} FROM dre_snapshots ORDER BY id DESC;"
        ).fetchall()
    finally:
        conn.close()

    return pd.DataFrame(rows, columns=columns)

