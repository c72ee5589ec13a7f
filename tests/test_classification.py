import pytest

from smb_dre.classification import (
    RULES,
    DreClassification,
    TransactionType,
    parse_classification,
    rule_for,
)
from smb_dre.errors import InputError


def test_rules_cover_every_tag_for_expenses() -> None:
    """Every classification tag has a dedicated expense rule."""
    for tag in DreClassification:
        if tag is DreClassification.DEDUCOES:
            continue
        assert (TransactionType.EXPENSE, tag) in RULES


def test_income_rules() -> None:
    deduction = rule_for("income", "deducoes")
    assert deduction.bucket == "deducoes"
    assert deduction.detail_list == "receitas"
    assert deduction.tipo == "dedução"

    revenue = rule_for("income", None)
    assert revenue.bucket == "receita_bruta"
    assert revenue.tipo == "receita_bruta"


def test_income_with_expense_tag_is_gross_revenue() -> None:
    """Only 'deducoes' changes the bucket of an income transaction."""
    rule = rule_for("income", "impostos")
    assert rule.bucket == "receita_bruta"
    assert rule.sign == 1


def test_financial_expense_is_subtracted() -> None:
    rule = rule_for("expense", "resultado_financeiro")
    assert rule.bucket == "resultado_financeiro"
    assert rule.sign == -1
    assert rule.detail_list == "financeiro"
    assert rule.tipo == "despesa"


@pytest.mark.parametrize("tag", [None, "", "marketing", "DRE_UNKNOWN"])
def test_unclassified_expense_is_operating_expense(tag) -> None:
    rule = rule_for("expense", tag)
    assert rule.bucket == "despesas_operacionais"
    assert rule.detail_list == "despesas"


def test_parse_classification_is_case_insensitive() -> None:
    assert parse_classification(" Impostos ") is DreClassification.IMPOSTOS
    assert parse_classification("something else") is None
    assert parse_classification(None) is None


def test_unknown_type_raises_input_error() -> None:
    with pytest.raises(InputError):
        rule_for("transfer", None)
