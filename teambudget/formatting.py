"""Display helpers shared by the Streamlit page.

Amounts are whole won, so nothing here deals with decimals except the
usage percentage.
"""

import pandas as pd

CURRENCY_UNIT = "원"

LEVEL_NORMAL = "normal"
LEVEL_WARNING = "warning"
LEVEL_OVER = "over"

WARNING_THRESHOLD = 80.0


def format_currency(amount: int, unit: str = CURRENCY_UNIT) -> str:
    """Format an integer amount, e.g. 42000 -> '42,000원'."""
    return f"{amount:,}{unit}"


def format_percent(percent: float) -> str:
    return f"{percent:.1f}%"


def usage_level(percent: float) -> str:
    if percent > 100:
        return LEVEL_OVER
    if percent > WARNING_THRESHOLD:
        return LEVEL_WARNING
    return LEVEL_NORMAL


def bar_fraction(percent: float) -> float:
    """Progress bar fill in [0, 1]; usage itself stays uncapped."""
    return min(max(percent, 0.0), 100.0) / 100


def balance_label(summary) -> tuple[str, int]:
    if summary.remaining >= 0:
        return "잔액", summary.remaining
    return "예산 초과", abs(summary.remaining)


def expenses_frame(record) -> pd.DataFrame:
    columns = ["id", "date", "name", "amount", "description"]
    rows = [
        {
            "id": e.id,
            "date": e.date,
            "name": e.name,
            "amount": e.amount,
            "description": e.description,
        }
        for e in record.expenses
    ]
    return pd.DataFrame(rows, columns=columns)
