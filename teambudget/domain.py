from dataclasses import dataclass, field
from typing import NamedTuple

BUDGET_PER_PERSON = 50000
DEFAULT_TEAM_SIZE = 7


@dataclass(frozen=True)
class Expense:
    id: int           # creation timestamp in ms
    name: str         # who spent it
    amount: int       # smallest currency unit, >= 0
    description: str = ""
    date: str = ""    # localized date, e.g. "2026. 1. 5."


@dataclass(frozen=True)
class BudgetRecord:
    team_size: int = DEFAULT_TEAM_SIZE
    expenses: tuple[Expense, ...] = field(default_factory=tuple)


# Raw form input, kept as typed by the user
@dataclass(frozen=True)
class ExpenseDraft:
    name: str = ""
    amount: str = ""
    description: str = ""


class BudgetSummary(NamedTuple):
    total_budget: int
    total_spent: int
    remaining: int
    usage_percent: float
    over_budget: bool
    expense_count: int


def default_record() -> BudgetRecord:
    """Record used for a month that has nothing stored yet."""
    return BudgetRecord(team_size=DEFAULT_TEAM_SIZE, expenses=())
