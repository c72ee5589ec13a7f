# SMB DRE - Income statement & forecasting engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Core DRE (income statement) derivation engine for SMB DRE.

This module turns a flat list of transactions for a period into a Report:
eleven waterfall figures, the period bounds and five itemized detail lists.

The engine orchestrates three responsibilities:

1. Classification
   ---------------
   Each transaction is routed to exactly one bucket by the (type, tag)
   rule table defined in ``classification.py``. Its value is added to (or,
   for financial expenses, subtracted from) that bucket, and an itemized
   entry is appended to the matching detail list, in input order.

2. Waterfall derivation
   ---------------------
   The five derived figures are computed from the buckets:

       receita_liquida       = receita_bruta - deducoes
       lucro_bruto           = receita_liquida - custo_produtos_servicos
       resultado_operacional = lucro_bruto - despesas_operacionais
       lucro_antes_impostos  = resultado_operacional + resultado_financeiro
       lucro_liquido         = lucro_antes_impostos - impostos

   No rounding is applied; display layers are responsible for currency
   rounding.

3. Fetch orchestration
   --------------------
   ``compute_report()`` validates a ReportRequest, fetches transactions
   from a TransactionSource and builds the report. Any failure of the
   source is raised as SourceUnavailable: a failed fetch is never reported
   as an empty period.

Key components
--------------
- DetailItem, Detail, Report :
    Immutable value objects. ``Report.to_dict()`` produces the wire shape
    consumed by existing report views.

- build_report(period_start, period_end, transactions) :
    The pure engine.

- compute_report(request, source) :
    Fetch + build.

- transactions_from_detail(detail) :
    Rebuilds classifiable transactions from a report's detail lists.

Notes
-----
The engine performs no I/O, keeps no state between calls and does not
log. Persisting a report as a snapshot is handled by ``db.py``.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional, Protocol

import pandas as pd

from .classification import (
    BUCKETS,
    DETAIL_LISTS,
    RULES,
    RuleKey,
    rule_for,
)
from .errors import InputError, SourceUnavailable
from .periods import Period, coerce_date, filter_transactions, validate_period
from .transactions import Transaction

# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DetailItem:
    """Itemized entry of a detail list.

    Attributes:
        description: Original transaction description.
        category: Resolved category label.
        value: Transaction value (unsigned, as recorded).
        date: Transaction date.
        tipo: Optional sub-type marker ('receita_bruta', 'dedução',
            'despesa').
    """

    description: str
    category: str
    value: float
    date: date
    tipo: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "description": self.description,
            "category": self.category,
            "value": self.value,
            "date": self.date.isoformat(),
        }
        if self.tipo is not None:
            out["tipo"] = self.tipo
        return out


@dataclass(frozen=True)
class Detail:
    """The five ordered detail lists of a report."""

    receitas: tuple[DetailItem, ...] = ()
    custos: tuple[DetailItem, ...] = ()
    despesas: tuple[DetailItem, ...] = ()
    financeiro: tuple[DetailItem, ...] = ()
    tributos: tuple[DetailItem, ...] = ()

    def sections(self) -> Iterable[tuple[str, DetailItem]]:
        """Yield (list name, item) pairs, list by list, in order."""
        for name in DETAIL_LISTS:
            for item in getattr(self, name):
                yield name, item

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {
            name: [item.to_dict() for item in getattr(self, name)]
            for name in DETAIL_LISTS
        }


@dataclass(frozen=True)
class Report:
    """
    DRE report for one period.

    The eleven numeric fields follow the waterfall order. ``period`` holds
    the parsed bounds, ``bounds`` the caller's bounds as given (echoed in
    ``periodo``) and ``detail`` the itemized lists.
    """

    receita_bruta: float
    deducoes: float
    receita_liquida: float
    custo_produtos_servicos: float
    lucro_bruto: float
    despesas_operacionais: float
    resultado_operacional: float
    resultado_financeiro: float
    lucro_antes_impostos: float
    impostos: float
    lucro_liquido: float
    period: Period
    detail: Detail = field(default_factory=Detail)
    bounds: Optional[tuple[str, str]] = None

    def figures(self) -> dict[str, float]:
        """Return the eleven waterfall figures keyed by field name."""
        return {key: getattr(self, key) for key in WATERFALL_FIELDS}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the flat wire shape used by report consumers."""
        out: dict[str, Any] = self.figures()
        if self.bounds is not None:
            inicio, fim = self.bounds
        else:
            inicio, fim = self.period.start.isoformat(), self.period.end.isoformat()
        out["periodo"] = {"inicio": inicio, "fim": fim}
        out["detalhamento"] = self.detail.to_dict()
        return out


WATERFALL_FIELDS: tuple[str, ...] = (
    "receita_bruta",
    "deducoes",
    "receita_liquida",
    "custo_produtos_servicos",
    "lucro_bruto",
    "despesas_operacionais",
    "resultado_operacional",
    "resultado_financeiro",
    "lucro_antes_impostos",
    "impostos",
    "lucro_liquido",
)

# Display labels and indentation level for the statement view.
STATEMENT_LINES: tuple[tuple[str, str, int], ...] = (
    ("receita_bruta", "Receita bruta", 0),
    ("deducoes", "(-) Deduções", 1),
    ("receita_liquida", "Receita líquida", 0),
    ("custo_produtos_servicos", "(-) Custo dos produtos e serviços", 1),
    ("lucro_bruto", "Lucro bruto", 0),
    ("despesas_operacionais", "(-) Despesas operacionais", 1),
    ("resultado_operacional", "Resultado operacional", 0),
    ("resultado_financeiro", "(+/-) Resultado financeiro", 1),
    ("lucro_antes_impostos", "Lucro antes dos impostos", 0),
    ("impostos", "(-) Impostos", 1),
    ("lucro_liquido", "Lucro líquido", 0),
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _echo_bound(value: Any) -> str:
    """Text of a period bound as the caller gave it."""
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def build_report(
    period_start: Any,
    period_end: Any,
    transactions: Iterable[Transaction],
) -> Report:
    """Classify transactions into the DRE waterfall.

    Steps:
        1. Validate the period bounds.
        2. Initialize every bucket and detail list, so that an empty input
           yields an all-zero report.
        3. For each transaction (in input order), look up its rule, update
           the bucket and append the itemized entry.
        4. Derive the five waterfall totals.
        5. Echo the input bounds, unchanged, in ``periodo``.

    Args:
        period_start: Inclusive start date (date or ISO string).
        period_end: Inclusive end date (date or ISO string).
        transactions: Transactions already selected for the period.

    Returns:
        A fully populated, immutable Report.

    Raises:
        InputError: if a bound is missing or start > end.
    """
    period = validate_period(period_start, period_end)

    buckets: dict[str, float] = {b: 0.0 for b in BUCKETS}
    lists: dict[str, list[DetailItem]] = {name: [] for name in DETAIL_LISTS}

    for t in transactions:
        rule = rule_for(t.type, t.classification_tag)
        buckets[rule.bucket] += rule.sign * t.value
        lists[rule.detail_list].append(
            DetailItem(
                description=t.description,
                category=t.category_name,
                value=t.value,
                date=t.date,
                tipo=rule.tipo,
            )
        )

    receita_liquida = buckets["receita_bruta"] - buckets["deducoes"]
    lucro_bruto = receita_liquida - buckets["custo_produtos_servicos"]
    resultado_operacional = lucro_bruto - buckets["despesas_operacionais"]
    lucro_antes_impostos = resultado_operacional + buckets["resultado_financeiro"]
    lucro_liquido = lucro_antes_impostos - buckets["impostos"]

    return Report(
        receita_bruta=buckets["receita_bruta"],
        deducoes=buckets["deducoes"],
        receita_liquida=receita_liquida,
        custo_produtos_servicos=buckets["custo_produtos_servicos"],
        lucro_bruto=lucro_bruto,
        despesas_operacionais=buckets["despesas_operacionais"],
        resultado_operacional=resultado_operacional,
        resultado_financeiro=buckets["resultado_financeiro"],
        lucro_antes_impostos=lucro_antes_impostos,
        impostos=buckets["impostos"],
        lucro_liquido=lucro_liquido,
        period=period,
        detail=Detail(**{name: tuple(items) for name, items in lists.items()}),
        bounds=(_echo_bound(period_start), _echo_bound(period_end)),
    )


# ---------------------------------------------------------------------------
# Requests and sources
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReportRequest:
    """Request for a DRE report: period bounds and an optional client.

    Bounds are dates or ISO strings, kept as given; the report echoes them
    in ``periodo``.
    """

    period_start: Any
    period_end: Any
    client_id: Optional[str] = None

    @classmethod
    def from_mapping(cls, body: Mapping[str, Any]) -> "ReportRequest":
        """Build a request from ``{period_start, period_end, client_id?}``.

        Raises:
            InputError: if a bound is missing, malformed or inverted.
        """
        start, end = body.get("period_start"), body.get("period_end")
        validate_period(start, end)
        client_id = body.get("client_id") or None
        return cls(
            period_start=start,
            period_end=end,
            client_id=str(client_id) if client_id is not None else None,
        )


class TransactionSource(Protocol):
    """Anything able to fetch the transactions of a period."""

    def fetch(
        self, start: date, end: date, client_id: Optional[str] = None
    ) -> Iterable[Transaction]: ...


class InMemorySource:
    """TransactionSource backed by an in-memory list of transactions."""

    def __init__(self, transactions: Iterable[Transaction]):
        self._transactions = list(transactions)

    def fetch(
        self, start: date, end: date, client_id: Optional[str] = None
    ) -> list[Transaction]:
        return filter_transactions(
            self._transactions, Period(start=start, end=end), client_id
        )


def compute_report(request: ReportRequest, source: TransactionSource) -> Report:
    """
    Fetch the transactions of a request from a source and build the report.

    The period is validated before any fetch. A fetch that raises, or that
    returns no result set at all (None), is surfaced as SourceUnavailable;
    an empty result set is valid and yields an all-zero report.

    Raises
    ------
    InputError
        If the request bounds are missing or inverted.
    SourceUnavailable
        If the source fails.
    """
    period = validate_period(request.period_start, request.period_end)

    try:
        fetched = source.fetch(period.start, period.end, request.client_id)
        transactions = list(fetched) if fetched is not None else None
    except SourceUnavailable:
        raise
    except Exception as exc:  # noqa: BLE001
        raise SourceUnavailable(
            f"Failed to fetch transactions for {period.start} → {period.end}."
        ) from exc

    if transactions is None:
        raise SourceUnavailable("Transaction source returned no result set.")

    return build_report(request.period_start, request.period_end, transactions)


# ---------------------------------------------------------------------------
# Re-classification and tabular views
# ---------------------------------------------------------------------------

DetailKey = tuple[str, Optional[str]]


def _detail_origins() -> dict[DetailKey, RuleKey]:
    """Map (detail list, tipo) back to (type, tag).

    Classified keys take precedence over the unclassified fallback that
    shares their detail list.
    """
    origins: dict[DetailKey, RuleKey] = {}
    for key, rule in sorted(RULES.items(), key=lambda kv: kv[0][1] is None):
        origins.setdefault((rule.detail_list, rule.tipo), key)
    return origins


_DETAIL_ORIGIN = _detail_origins()


def transactions_from_detail(detail: Detail) -> list[Transaction]:
    """
    Rebuild transactions from a report's detail lists.

    Feeding the result back into ``build_report()`` for the same period
    reproduces the original waterfall figures.

    Raises:
        InputError: if an item carries a (list, tipo) pair unknown to the
            classification rules.
    """
    out: list[Transaction] = []
    for name, item in detail.sections():
        origin = _DETAIL_ORIGIN.get((name, item.tipo))
        if origin is None:
            raise InputError(
                f"Detail item in {name!r} with tipo {item.tipo!r} cannot be "
                "re-classified."
            )
        tx_type, tag = origin
        out.append(
            Transaction(
                description=item.description,
                category_name=item.category,
                classification_tag=tag.value if tag is not None else None,
                type=tx_type,
                value=item.value,
                date=coerce_date(item.date),
            )
        )
    return out


def report_to_frame(report: Report, decimals: Optional[int] = None) -> pd.DataFrame:
    """
    Convert a report into a statement DataFrame.

    Columns: level, display_order, key, name, amount. Amounts are rounded
    only when ``decimals`` is given.
    """
    rows = []
    for order, (key, name, level) in enumerate(STATEMENT_LINES, start=1):
        amount = getattr(report, key)
        if decimals is not None:
            amount = round(amount, decimals)
        rows.append(
            {
                "level": level,
                "display_order": order * 10,
                "key": key,
                "name": name,
                "amount": amount,
            }
        )
    return pd.DataFrame(rows)


def detail_to_frame(report: Report) -> pd.DataFrame:
    """Convert the detail lists of a report into a long-format DataFrame."""
    columns = ["section", "date", "description", "category", "value", "tipo"]
    rows = [
        {
            "section": name,
            "date": item.date,
            "description": item.description,
            "category": item.category,
            "value": item.value,
            "tipo": item.tipo or "",
        }
        for name, item in report.detail.sections()
    ]
    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(rows, columns=columns)
