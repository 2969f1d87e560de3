import logging
import time
from datetime import date
from functools import reduce
from typing import Any, Optional

from teambudget.domain import (
    BUDGET_PER_PERSON,
    BudgetRecord,
    BudgetSummary,
    Expense,
    ExpenseDraft,
)
from teambudget.functional import safe_int, validate_draft

logger = logging.getLogger(__name__)


def format_local_date(d: date) -> str:
    """Korean locale short date: 2026-01-05 -> "2026. 1. 5."."""
    return f"{d.year}. {d.month}. {d.day}."


def total_spent(expenses: tuple[Expense, ...]) -> int:
    return reduce(lambda acc, e: acc + e.amount, expenses, 0)


def summarize(record: BudgetRecord) -> BudgetSummary:
    budget = record.team_size * BUDGET_PER_PERSON
    spent = total_spent(record.expenses)
    remaining = budget - spent
    usage = (spent / budget) * 100 if budget else 0.0
    return BudgetSummary(
        total_budget=budget,
        total_spent=spent,
        remaining=remaining,
        usage_percent=usage,
        over_budget=remaining < 0,
        expense_count=len(record.expenses),
    )


def next_expense_id(expenses: tuple[Expense, ...], now_ms: int) -> int:
    taken = {e.id for e in expenses}
    if now_ms not in taken:
        return now_ms
    return max(taken) + 1


def add_expense(
    record: BudgetRecord,
    draft: ExpenseDraft,
    today: Optional[date] = None,
    now_ms: Optional[int] = None,
) -> BudgetRecord:
    checked = validate_draft(draft)
    if checked.is_left():
        logger.debug("Ignoring expense draft: %s", checked.get_error()["message"])
        return record

    name, amount = checked.get_or_else(("", 0))
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    expense = Expense(
        id=next_expense_id(record.expenses, now_ms),
        name=name,
        amount=amount,
        description=draft.description,
        date=format_local_date(today or date.today()),
    )
    return BudgetRecord(team_size=record.team_size, expenses=record.expenses + (expense,))


def delete_expense(record: BudgetRecord, expense_id: int) -> BudgetRecord:
    kept = tuple(filter(lambda e: e.id != expense_id, record.expenses))
    if len(kept) == len(record.expenses):
        return record
    return BudgetRecord(team_size=record.team_size, expenses=kept)


def set_team_size(record: BudgetRecord, raw: Any) -> BudgetRecord:
    # 0 and garbage both fall back to one person
    size = max(1, safe_int(raw).get_or_else(0) or 1)
    return BudgetRecord(team_size=size, expenses=record.expenses)


def find_expense(record: BudgetRecord, expense_id: int) -> Optional[Expense]:
    return next((e for e in record.expenses if e.id == expense_id), None)
