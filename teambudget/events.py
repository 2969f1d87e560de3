from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

__all__ = [
    'Event', 'EventBus',
    'MONTH_LOADED', 'EXPENSE_ADDED', 'EXPENSE_DELETED', 'TEAM_SIZE_CHANGED',
    'BUDGET_ALERT', 'SAVE_FAILED', 'RECORD_CHANGES',
    'check_budget_handler', 'register_default_handlers',
]


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], dict]


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        if name not in self._subscribers:
            self._subscribers[name] = []
        self._subscribers[name].append(handler)

    def publish(self, name: str, payload: dict) -> List[dict]:
        if name not in self._subscribers:
            return []

        event = Event(
            name=name,
            ts=datetime.now().isoformat(),
            payload=payload
        )

        results = []
        for handler in list(self._subscribers[name]):
            results.append(handler(event, payload))
        return results

    def unsubscribe(self, name: str, handler: Handler) -> None:
        if handler in self._subscribers.get(name, []):
            self._subscribers[name].remove(handler)


MONTH_LOADED = "MONTH_LOADED"
EXPENSE_ADDED = "EXPENSE_ADDED"
EXPENSE_DELETED = "EXPENSE_DELETED"
TEAM_SIZE_CHANGED = "TEAM_SIZE_CHANGED"
BUDGET_ALERT = "BUDGET_ALERT"
SAVE_FAILED = "SAVE_FAILED"

# events after which the month's totals may have moved
RECORD_CHANGES = (MONTH_LOADED, EXPENSE_ADDED, EXPENSE_DELETED, TEAM_SIZE_CHANGED)


def check_budget_handler(event: Event, payload: dict) -> dict:
    month = payload.get("month", "")
    total_budget = payload.get("total_budget", 0)
    total_spent = payload.get("total_spent", 0)
    remaining = total_budget - total_spent

    if remaining < 0:
        return {
            "alert": f"Budget exceeded for {month}: {total_spent:,} / {total_budget:,}",
            "month": month,
            "spent": total_spent,
            "limit": total_budget,
            "over_budget": -remaining,
        }
    return {"remaining": remaining}


def register_default_handlers(bus: EventBus) -> None:
    for name in RECORD_CHANGES:
        bus.subscribe(name, check_budget_handler)
