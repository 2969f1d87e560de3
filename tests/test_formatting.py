from datetime import date

from teambudget.domain import BudgetRecord, Expense
from teambudget.formatting import (
    format_currency, format_percent, usage_level, bar_fraction,
    balance_label, expenses_frame, LEVEL_NORMAL, LEVEL_WARNING, LEVEL_OVER
)
from teambudget.transforms import format_local_date, summarize


def test_format_currency():
    assert format_currency(42000) == "42,000원"
    assert format_currency(0) == "0원"
    assert format_currency(350000, unit=" KRW") == "350,000 KRW"


def test_format_local_date():
    assert format_local_date(date(2026, 1, 5)) == "2026. 1. 5."
    assert format_local_date(date(2025, 12, 31)) == "2025. 12. 31."


def test_format_percent():
    assert format_percent(12.0) == "12.0%"
    assert format_percent(120) == "120.0%"


def test_usage_levels():
    assert usage_level(0) == LEVEL_NORMAL
    assert usage_level(80) == LEVEL_NORMAL
    assert usage_level(80.1) == LEVEL_WARNING
    assert usage_level(100) == LEVEL_WARNING
    assert usage_level(120) == LEVEL_OVER


def test_bar_fraction_is_capped():
    assert bar_fraction(12.0) == 0.12
    assert bar_fraction(120.0) == 1.0
    assert bar_fraction(-3) == 0.0


def test_balance_label():
    within = summarize(BudgetRecord(team_size=1, expenses=(Expense(1, "Kim", 20000),)))
    over = summarize(BudgetRecord(team_size=1, expenses=(Expense(1, "Kim", 60000),)))
    assert balance_label(within) == ("잔액", 30000)
    assert balance_label(over) == ("예산 초과", 10000)


def test_expenses_frame():
    record = BudgetRecord(team_size=2, expenses=(
        Expense(1, "Kim", 100, "coffee", "2026. 1. 5."),
        Expense(2, "Lee", 200, "", "2026. 1. 6."),
    ))
    df = expenses_frame(record)
    assert list(df.columns) == ["id", "date", "name", "amount", "description"]
    assert df["amount"].sum() == 300
    assert df.iloc[0]["name"] == "Kim"

    empty = expenses_frame(BudgetRecord())
    assert empty.empty
    assert list(empty.columns) == ["id", "date", "name", "amount", "description"]
