"""JSON wire format for a month's budget record.

Payloads use the same camelCase keys the shared store has always held::

    {"teamSize": 7, "expenses": [{"id": 1767571200000, "name": "Kim",
      "amount": 42000, "description": "", "date": "2026. 1. 5."}]}
"""

import json
import logging
import re

from teambudget.domain import DEFAULT_TEAM_SIZE, BudgetRecord, Expense
from teambudget.functional import Maybe, Nothing, Some

logger = logging.getLogger(__name__)

KEY_PREFIX = "budget-"
_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def is_valid_month(month: str) -> bool:
    return isinstance(month, str) and bool(_MONTH_RE.match(month))


def storage_key(month: str) -> str:
    if not is_valid_month(month):
        raise ValueError(f"Invalid month: {month!r} (expected YYYY-MM)")
    return f"{KEY_PREFIX}{month}"


def expense_to_dict(e: Expense) -> dict:
    return {
        "id": e.id,
        "name": e.name,
        "amount": e.amount,
        "description": e.description,
        "date": e.date,
    }


def expense_from_dict(d: dict) -> Expense:
    """Raises ValueError/TypeError/KeyError on a malformed entry."""
    expense_id = d["id"]
    amount = d["amount"]
    if isinstance(expense_id, bool) or not isinstance(expense_id, int):
        raise TypeError(f"expense id must be an integer, got {expense_id!r}")
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TypeError(f"expense amount must be an integer, got {amount!r}")
    name = d["name"]
    if not isinstance(name, str) or not name:
        raise ValueError(f"expense name must be a non-empty string, got {name!r}")
    return Expense(
        id=expense_id,
        name=name,
        amount=amount,
        description=str(d.get("description") or ""),
        date=str(d.get("date") or ""),
    )


def encode_record(record: BudgetRecord) -> str:
    payload = {
        "teamSize": record.team_size,
        "expenses": [expense_to_dict(e) for e in record.expenses],
    }
    return json.dumps(payload, ensure_ascii=False)


def _team_size(raw) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 1:
        return DEFAULT_TEAM_SIZE
    return raw


def decode_record(payload: str) -> Maybe[BudgetRecord]:
    try:
        data = json.loads(payload)
    except (TypeError, ValueError, RecursionError) as e:
        logger.warning("Stored budget payload is not valid JSON: %s", e)
        return Nothing()
    if not isinstance(data, dict):
        logger.warning("Stored budget payload is not an object: %r", type(data).__name__)
        return Nothing()

    raw_expenses = data.get("expenses") or []
    if not isinstance(raw_expenses, list):
        logger.warning("Stored expenses are not a list, treating as empty")
        raw_expenses = []

    expenses = []
    seen = set()
    for entry in raw_expenses:
        try:
            expense = expense_from_dict(entry)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping malformed expense %r: %s", entry, e)
            continue
        if expense.id in seen:
            logger.warning("Skipping duplicate expense id %s", expense.id)
            continue
        seen.add(expense.id)
        expenses.append(expense)

    return Some(BudgetRecord(team_size=_team_size(data.get("teamSize")), expenses=tuple(expenses)))
