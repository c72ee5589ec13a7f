# SMB DRE - Income statement & forecasting engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Transaction records for SMB DRE.

This module defines the immutable Transaction record consumed by the
engine and the helpers that normalize raw data into it.

Supported sources
-----------------

1) Flat records (mappings)
   -----------------------
       description, category_name, classification_tag, type, value, date,
       client_id (optional)

2) Managed-backend records
   -----------------------
   Rows as returned by the hosted data store, where the category is a
   nested object:

       {
         "description": "...",
         "category": "legacy text category",
         "categories": {"name": "...", "dre_classification": "impostos"},
         "type": "expense",
         "value": "123.45",
         "date": "2025-01-31",
         "client_id": "..."
       }

   The resolved category label is the nested category name when present,
   else the flat ``category`` text.

3) CSV files
   ---------
       date, description, category_name, classification_tag, type, value
       [, client_id]

   Column names are case-insensitive. ``category`` is accepted as an alias
   for ``category_name``; ``classification`` and ``dre_classification`` are
   accepted as aliases for ``classification_tag``.

Validation
----------
Values must be numeric and non-negative (the sign comes from ``type``),
dates must parse, and the type must be 'income' or 'expense'. Invalid rows
raise InputError. Classification tags are not validated here: an unknown
tag is simply "unclassified" for the engine.
"""

import math
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional, Union

import pandas as pd

from .classification import TransactionType, parse_transaction_type
from .errors import InputError
from .periods import coerce_date

FRAME_COLUMNS: list[str] = [
    "date",
    "description",
    "category_name",
    "classification_tag",
    "type",
    "value",
    "client_id",
]


@dataclass(frozen=True)
class Transaction:
    """A single income or expense transaction.

    Attributes:
        description: Free text label.
        category_name: Resolved category label, used in detail lists.
        classification_tag: Raw DRE classification tag, or None.
        type: TransactionType.INCOME or TransactionType.EXPENSE (raw
            'income' / 'expense' strings are converted).
        value: Non-negative amount.
        date: Transaction date.
        client_id: Optional client identifier used for filtering.
    """

    description: str
    category_name: str
    classification_tag: Optional[str]
    type: TransactionType
    value: float
    date: date
    client_id: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", parse_transaction_type(self.type))


def _to_value(raw: Any) -> float:
    """Convert a raw amount to a non-negative float."""
    try:
        value = float(str(raw).strip()) if isinstance(raw, str) else float(raw)
    except (TypeError, ValueError) as exc:
        raise InputError(f"Invalid transaction value: {raw!r}") from exc
    if math.isnan(value) or math.isinf(value):
        raise InputError(f"Invalid transaction value: {raw!r}")
    if value < 0:
        raise InputError(f"Transaction value must be non-negative, got {value}.")
    return value


def _to_optional_text(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    try:
        if pd.isna(raw):
            return None
    except (TypeError, ValueError):
        pass
    text = str(raw).strip()
    return text or None


def transaction_from_record(record: Mapping[str, Any]) -> Transaction:
    """Build a Transaction from a flat or managed-backend record.

    Raises:
        InputError: if the type, value or date is missing or invalid.
    """
    category = record.get("categories")
    if not isinstance(category, Mapping):
        category = {}

    category_name = (
        _to_optional_text(category.get("name"))
        or _to_optional_text(record.get("category_name"))
        or _to_optional_text(record.get("category"))
        or ""
    )
    tag = _to_optional_text(category.get("dre_classification"))
    if tag is None:
        tag = _to_optional_text(record.get("classification_tag"))

    if record.get("date") is None:
        raise InputError("Transaction record is missing 'date'.")

    return Transaction(
        description=_to_optional_text(record.get("description")) or "",
        category_name=category_name,
        classification_tag=tag,
        type=parse_transaction_type(record.get("type")),
        value=_to_value(record.get("value")),
        date=coerce_date(record.get("date"), "date"),
        client_id=_to_optional_text(record.get("client_id")),
    )


def transactions_from_records(
    records: Iterable[Mapping[str, Any]],
) -> list[Transaction]:
    """Build Transactions from an iterable of records, preserving order."""
    return [transaction_from_record(r) for r in records]


def transactions_from_frame(df: pd.DataFrame) -> list[Transaction]:
    """Build Transactions from a DataFrame with the FRAME_COLUMNS layout.

    Missing optional columns (classification_tag, category_name,
    client_id) are treated as empty.
    """
    required = {"date", "description", "type", "value"}
    missing = required.difference(df.columns)
    if missing:
        cols = ", ".join(sorted(missing))
        raise InputError(f"DataFrame is missing required column(s): {cols}")

    return [
        transaction_from_record(row)
        for row in df.to_dict(orient="records")
    ]


def transactions_to_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """Convert Transactions into a DataFrame (one row per transaction)."""
    rows = [
        {
            "date": pd.Timestamp(t.date),
            "description": t.description,
            "category_name": t.category_name,
            "classification_tag": t.classification_tag,
            "type": t.type.value,
            "value": t.value,
            "client_id": t.client_id,
        }
        for t in transactions
    ]
    if not rows:
        return pd.DataFrame(columns=FRAME_COLUMNS)
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def read_transactions(path: Union[str, "os.PathLike[str]"]) -> pd.DataFrame:
    """
    Read transactions from a CSV file and normalize them.

    Parameters
    ----------
    path:
        Path to the CSV file.

    Returns
    -------
    pandas.DataFrame
        A DataFrame with exactly the FRAME_COLUMNS columns:

            - date               (datetime64[ns])
            - description        (str)
            - category_name      (str)
            - classification_tag (str or None)
            - type               ('income' | 'expense')
            - value              (float, non-negative)
            - client_id          (str or None)

    Raises
    ------
    InputError
        If required columns are missing, or if date, type or value parsing
        fails.
    """
    df = pd.read_csv(path, dtype={"client_id": str})

    # Normalize column names (case-insensitive check)
    df.columns = [c.lower().strip() for c in df.columns]
    aliases = {
        "category": "category_name",
        "classification": "classification_tag",
        "dre_classification": "classification_tag",
    }
    for alias, canonical in aliases.items():
        if alias in df.columns and canonical not in df.columns:
            df = df.rename(columns={alias: canonical})

    required = {"date", "description", "type", "value"}
    missing = required.difference(df.columns)
    if missing:
        raise InputError(
            "Invalid transactions structure. Expected at least: "
            "date, description, type, value "
            "(optional: category_name, classification_tag, client_id; "
            "column names are case-insensitive)."
        )

    d = df.copy()
    for col in ("category_name", "classification_tag", "client_id"):
        if col not in d.columns:
            d[col] = None

    try:
        d["date"] = pd.to_datetime(d["date"], errors="raise")
    except Exception as exc:  # noqa: BLE001
        raise InputError("Invalid values in 'date' column.") from exc
    if d["date"].isna().any():
        raise InputError("Missing values in 'date' column.")

    d["value"] = pd.to_numeric(d["value"], errors="coerce")
    if d["value"].isna().any():
        raise InputError("Invalid numeric values in 'value' column.")
    if (d["value"] < 0).any():
        raise InputError("Negative amounts in 'value' column; use 'type' instead.")

    d["type"] = d["type"].astype(str).str.strip().str.lower()
    bad_types = sorted(set(d["type"]) - {t.value for t in TransactionType})
    if bad_types:
        raise InputError(f"Invalid values in 'type' column: {', '.join(bad_types)}")

    d["description"] = d["description"].fillna("").astype(str)
    d["category_name"] = d["category_name"].fillna("").astype(str)
    d["classification_tag"] = d["classification_tag"].map(_to_optional_text)
    d["client_id"] = d["client_id"].map(_to_optional_text)

    return d[FRAME_COLUMNS].copy()
