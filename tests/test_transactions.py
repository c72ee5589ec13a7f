from datetime import date

import pandas as pd
import pytest

from smb_dre.classification import TransactionType
from smb_dre.errors import InputError
from smb_dre.transactions import (
    Transaction,
    read_transactions,
    transaction_from_record,
    transactions_from_frame,
    transactions_to_frame,
)


def test_backend_record_with_nested_category() -> None:
    """The nested category name and classification win over flat fields."""
    tx = transaction_from_record(
        {
            "description": "ISS",
            "category": "legacy",
            "categories": {
                "name": "Impostos municipais",
                "type": "expense",
                "dre_classification": "impostos",
            },
            "type": "expense",
            "value": "123.45",
            "date": "2025-01-31T00:00:00",
            "client_id": 42,
        }
    )

    assert tx.category_name == "Impostos municipais"
    assert tx.classification_tag == "impostos"
    assert tx.type is TransactionType.EXPENSE
    assert tx.value == pytest.approx(123.45)
    assert tx.date == date(2025, 1, 31)
    assert tx.client_id == "42"


def test_record_without_category_uses_flat_text() -> None:
    tx = transaction_from_record(
        {
            "description": "Consulting",
            "category": "Serviços",
            "categories": None,
            "type": "income",
            "value": 1000,
            "date": date(2025, 2, 1),
        }
    )
    assert tx.category_name == "Serviços"
    assert tx.classification_tag is None


@pytest.mark.parametrize(
    "changes",
    [
        {"value": -1},
        {"value": "abc"},
        {"type": "transfer"},
        {"date": None},
        {"date": "31/01/2025"},
        {"date": "2025-01-31garbage"},
        {"date": pd.NaT},
        {"date": float("nan")},
    ],
)
def test_invalid_records_raise_input_error(changes) -> None:
    record = {"description": "x", "type": "income", "value": 1, "date": "2025-01-01"}
    record.update(changes)
    with pytest.raises(InputError):
        transaction_from_record(record)


def test_read_transactions_normalizes_columns(tmp_path) -> None:
    csv_path = tmp_path / "transactions.csv"
    csv_path.write_text(
        "Date,Description,Category,DRE_Classification,Type,Value,client_id\n"
        "2025-01-05,Sale A,Vendas,,INCOME,1500.00,c1\n"
        "2025-01-06,Rent,Aluguel,despesas_operacionais,expense,700.50,\n",
        encoding="utf-8",
    )

    df = read_transactions(csv_path)

    assert list(df.columns) == [
        "date",
        "description",
        "category_name",
        "classification_tag",
        "type",
        "value",
        "client_id",
    ]
    assert pd.api.types.is_datetime64_any_dtype(df["date"])
    assert df.loc[0, "type"] == "income"
    assert pd.isna(df.loc[0, "classification_tag"])
    assert df.loc[1, "classification_tag"] == "despesas_operacionais"
    assert df.loc[0, "client_id"] == "c1"
    assert pd.isna(df.loc[1, "client_id"])

    txs = transactions_from_frame(df)
    assert [t.value for t in txs] == [1500.0, 700.5]
    assert txs[1].date == date(2025, 1, 6)


@pytest.mark.parametrize(
    "body",
    [
        "date,description,type,value\n2025-01-05,Sale,income,-10\n",
        "date,description,type,value\n2025-01-05,Sale,income,ten\n",
        "date,description,type,value\nnot-a-date,Sale,income,10\n",
        "date,description,type,value\n2025-01-05,Sale,gift,10\n",
        "date,description,type,value\n2025-01-05,Sale,income,10\n,Ghost,income,900\n",
        "date,description,value\n2025-01-05,Sale,10\n",
    ],
)
def test_read_transactions_rejects_invalid_files(tmp_path, body) -> None:
    csv_path = tmp_path / "bad.csv"
    csv_path.write_text(body, encoding="utf-8")
    with pytest.raises(InputError):
        read_transactions(csv_path)


def test_frame_round_trip_keeps_order() -> None:
    records = [
        {"description": "b", "type": "expense", "value": 2, "date": "2025-01-02"},
        {"description": "a", "type": "income", "value": 1, "date": "2025-01-01"},
    ]
    txs = [transaction_from_record(r) for r in records]

    df = transactions_to_frame(txs)
    assert list(df["description"]) == ["b", "a"]
    assert transactions_from_frame(df) == txs

    assert transactions_to_frame([]).empty


def test_transaction_converts_raw_type() -> None:
    tx = Transaction(
        description="Sale",
        category_name="Vendas",
        classification_tag=None,
        type="income",
        value=10.0,
        date=date(2025, 1, 5),
    )
    assert tx.type is TransactionType.INCOME
    assert transactions_to_frame([tx]).loc[0, "type"] == "income"

    with pytest.raises(InputError):
        Transaction("x", "", None, "transfer", 1.0, date(2025, 1, 5))
