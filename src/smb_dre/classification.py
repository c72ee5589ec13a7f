# SMB DRE - Income statement & forecasting engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Classification rules for SMB DRE.

This module defines the fixed, simplified DRE waterfall policy used to
route each transaction to exactly one accounting bucket. It plays the
role a mapping template would play in a configurable engine, except that
the rules are closed and hard-coded: the engine implements one waterfall
only.

A transaction is classified by the pair (type, classification tag):

    type      tag                        bucket                    sign  detail list
    --------  -------------------------  ------------------------  ----  -----------
    income    deducoes                   deducoes                   +1   receitas (tipo "dedução")
    income    <anything else / absent>   receita_bruta              +1   receitas (tipo "receita_bruta")
    expense   custo_produtos_servicos    custo_produtos_servicos    +1   custos
    expense   despesas_operacionais      despesas_operacionais      +1   despesas
    expense   resultado_financeiro       resultado_financeiro       -1   financeiro (tipo "despesa")
    expense   impostos                   impostos                   +1   tributos
    expense   <anything else / absent>   despesas_operacionais      +1   despesas

Unclassified expenses are treated as operating expenses rather than being
dropped. Financial expenses reduce the financial result, which can
therefore become negative.

This module exposes:
- TransactionType:     'income' | 'expense'.
- DreClassification:   closed vocabulary of classification tags.
- ClassificationRule:  the update action attached to one (type, tag) pair.
- RULES:               the explicit (type, tag) -> rule table.
- rule_for():          table lookup with the unclassified fallback.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .errors import InputError


class TransactionType(str, Enum):
    """Direction of a transaction."""

    INCOME = "income"
    EXPENSE = "expense"


class DreClassification(str, Enum):
    """Closed set of DRE classification tags."""

    DEDUCOES = "deducoes"
    CUSTO_PRODUTOS_SERVICOS = "custo_produtos_servicos"
    DESPESAS_OPERACIONAIS = "despesas_operacionais"
    RESULTADO_FINANCEIRO = "resultado_financeiro"
    IMPOSTOS = "impostos"


# Detail list keys, in the order they appear in 'detalhamento'.
DETAIL_LISTS: tuple[str, ...] = (
    "receitas",
    "custos",
    "despesas",
    "financeiro",
    "tributos",
)

# Accumulated buckets (the waterfall fields fed directly by transactions).
BUCKETS: tuple[str, ...] = (
    "receita_bruta",
    "deducoes",
    "custo_produtos_servicos",
    "despesas_operacionais",
    "resultado_financeiro",
    "impostos",
)


@dataclass(frozen=True)
class ClassificationRule:
    """Update action applied to a transaction.

    Attributes:
        bucket: Waterfall field receiving the transaction value.
        sign: +1 to add the value to the bucket, -1 to subtract it.
        detail_list: Key of the detail list receiving the itemized entry.
        tipo: Optional sub-type marker stored on the detail item.
    """

    bucket: str
    sign: int
    detail_list: str
    tipo: Optional[str] = None


RuleKey = tuple[TransactionType, Optional[DreClassification]]

RULES: dict[RuleKey, ClassificationRule] = {
    (TransactionType.INCOME, DreClassification.DEDUCOES): ClassificationRule(
        bucket="deducoes", sign=1, detail_list="receitas", tipo="dedução"
    ),
    (TransactionType.INCOME, None): ClassificationRule(
        bucket="receita_bruta", sign=1, detail_list="receitas", tipo="receita_bruta"
    ),
    (
        TransactionType.EXPENSE,
        DreClassification.CUSTO_PRODUTOS_SERVICOS,
    ): ClassificationRule(
        bucket="custo_produtos_servicos", sign=1, detail_list="custos"
    ),
    (
        TransactionType.EXPENSE,
        DreClassification.DESPESAS_OPERACIONAIS,
    ): ClassificationRule(bucket="despesas_operacionais", sign=1, detail_list="despesas"),
    (
        TransactionType.EXPENSE,
        DreClassification.RESULTADO_FINANCEIRO,
    ): ClassificationRule(
        bucket="resultado_financeiro", sign=-1, detail_list="financeiro", tipo="despesa"
    ),
    (TransactionType.EXPENSE, DreClassification.IMPOSTOS): ClassificationRule(
        bucket="impostos", sign=1, detail_list="tributos"
    ),
    # Unclassified expenses are operating expenses.
    (TransactionType.EXPENSE, None): ClassificationRule(
        bucket="despesas_operacionais", sign=1, detail_list="despesas"
    ),
}


def parse_transaction_type(raw: Union[str, TransactionType]) -> TransactionType:
    """Return the TransactionType for a raw value.

    Raises:
        InputError: if the value is neither 'income' nor 'expense'.
    """
    if isinstance(raw, TransactionType):
        return raw
    try:
        return TransactionType(str(raw).strip().lower())
    except ValueError as exc:
        raise InputError(
            f"Invalid transaction type {raw!r}, expected 'income' or 'expense'."
        ) from exc


def parse_classification(
    raw: Union[str, DreClassification, None],
) -> Optional[DreClassification]:
    """Return the classification tag for a raw value.

    Absent, empty or unrecognized values all map to None (unclassified).
    """
    if raw is None or isinstance(raw, DreClassification):
        return raw
    text = str(raw).strip().lower()
    if not text:
        return None
    try:
        return DreClassification(text)
    except ValueError:
        return None


def rule_for(
    tx_type: Union[str, TransactionType],
    tag: Union[str, DreClassification, None],
) -> ClassificationRule:
    """Return the classification rule for a (type, tag) pair.

    Pairs that have no dedicated entry in RULES fall back to the
    unclassified rule of their type (for instance an income transaction
    tagged 'impostos' is gross revenue).

    Raises:
        InputError: if the transaction type is unknown.
    """
    kind = parse_transaction_type(tx_type)
    classification = parse_classification(tag)
    rule = RULES.get((kind, classification))
    if rule is None:
        rule = RULES[(kind, None)]
    return rule
