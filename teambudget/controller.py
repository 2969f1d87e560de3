"""State container for the budget page.

The controller owns everything the page shows for the selected month: the
record, the expense form draft and the loading flag. Renderers read its
attributes and call its methods; they never touch storage themselves.

Loading is awaited. Mutations are plain methods that update the in-memory
record at once and schedule the write on the running event loop without
waiting for it, so they must be called from inside a coroutine.
"""

import asyncio
import dataclasses
import logging
from typing import Optional

from teambudget import transforms
from teambudget.codec import storage_key
from teambudget.domain import BudgetRecord, BudgetSummary, ExpenseDraft, default_record
from teambudget.events import (
    BUDGET_ALERT,
    EXPENSE_ADDED,
    EXPENSE_DELETED,
    MONTH_LOADED,
    SAVE_FAILED,
    TEAM_SIZE_CHANGED,
    EventBus,
    register_default_handlers,
)
from teambudget.repository import BudgetRepository

logger = logging.getLogger(__name__)

LOADING = "loading"
READY = "ready"


class BudgetController:
    def __init__(self, repository: BudgetRepository, month: str, bus: Optional[EventBus] = None):
        storage_key(month)
        self.repository = repository
        self.month = month
        self.record: BudgetRecord = default_record()
        self.draft = ExpenseDraft()
        self.status = LOADING
        self.alerts: list[dict] = []
        if bus is None:
            bus = EventBus()
            register_default_handlers(bus)
        self.bus = bus
        self._load_seq = 0
        self._save_seq: dict[str, int] = {}
        self._save_locks: dict[str, asyncio.Lock] = {}
        self._pending: set[asyncio.Task] = set()
        self._pending_by_month: dict[str, set[asyncio.Task]] = {}

    @property
    def loading(self) -> bool:
        return self.status == LOADING

    @property
    def summary(self) -> BudgetSummary:
        return transforms.summarize(self.record)

    @property
    def pending_saves(self) -> int:
        return len(self._pending)

    # --- loading

    async def load(self) -> BudgetRecord:
        return await self.set_month(self.month)

    async def set_month(self, month: str) -> BudgetRecord:
        """Switch to ``month`` and load its record, replacing the current one.

        If another switch starts before this one finishes, this result is
        dropped and the newer month wins. Saves still queued for ``month``
        land before it is read back.
        """
        storage_key(month)
        self._load_seq += 1
        seq = self._load_seq
        self.month = month
        self.record = default_record()
        self.status = LOADING

        try:
            await self._wait_for_saves(month)
            loaded = await self.repository.load(month)
        finally:
            if seq == self._load_seq and self.status == LOADING:
                self.status = READY
        if seq != self._load_seq:
            logger.debug("Discarding stale load of %s", month)
            return self.record

        self.record = loaded.get_or_else(default_record())
        self.status = READY
        logger.info(
            "Loaded %s: team of %d, %d expenses%s",
            month, self.record.team_size, len(self.record.expenses),
            "" if loaded.is_some() else " (defaults)",
        )
        self._notify(MONTH_LOADED)
        return self.record

    # --- mutations

    def update_draft(self, **fields) -> ExpenseDraft:
        self.draft = dataclasses.replace(self.draft, **fields)
        return self.draft

    def add_expense(self, draft: Optional[ExpenseDraft] = None) -> BudgetRecord:
        if not self._ready("add_expense"):
            return self.record
        updated = transforms.add_expense(self.record, draft if draft is not None else self.draft)
        if updated is self.record:
            return self.record
        self.draft = ExpenseDraft()
        self._commit(updated, EXPENSE_ADDED, {"expense_id": updated.expenses[-1].id})
        return self.record

    def delete_expense(self, expense_id: int) -> BudgetRecord:
        if not self._ready("delete_expense"):
            return self.record
        updated = transforms.delete_expense(self.record, expense_id)
        self._commit(updated, EXPENSE_DELETED, {"expense_id": expense_id})
        return self.record

    def set_team_size(self, raw) -> BudgetRecord:
        if not self._ready("set_team_size"):
            return self.record
        updated = transforms.set_team_size(self.record, raw)
        self._commit(updated, TEAM_SIZE_CHANGED, {"team_size": updated.team_size})
        return self.record

    # --- persistence

    async def flush(self) -> None:
        """Wait until every scheduled save has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _ready(self, operation: str) -> bool:
        if self.status != READY:
            logger.debug("Ignoring %s while %s is loading", operation, self.month)
            return False
        return True

    def _commit(self, record: BudgetRecord, event: str, payload: dict) -> None:
        self.record = record
        self._schedule_save(self.month, record)
        self._notify(event, payload)

    def _schedule_save(self, month: str, record: BudgetRecord) -> None:
        seq = self._save_seq.get(month, 0) + 1
        self._save_seq[month] = seq
        task = asyncio.get_running_loop().create_task(self._write(month, record, seq))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        month_tasks = self._pending_by_month.setdefault(month, set())
        month_tasks.add(task)
        task.add_done_callback(month_tasks.discard)

    async def _wait_for_saves(self, month: str) -> None:
        while self._pending_by_month.get(month):
            await asyncio.gather(*list(self._pending_by_month[month]), return_exceptions=True)

    async def _write(self, month: str, record: BudgetRecord, seq: int) -> bool:
        lock = self._save_locks.setdefault(month, asyncio.Lock())
        async with lock:
            if seq < self._save_seq[month]:
                # a newer state for this month is already queued
                return True
            ok = await self.repository.save(month, record)
        if not ok:
            self.bus.publish(SAVE_FAILED, {"month": month, "seq": seq})
        return ok

    def _notify(self, event: str, payload: Optional[dict] = None) -> None:
        summary = self.summary
        body = {
            "month": self.month,
            "team_size": self.record.team_size,
            "total_budget": summary.total_budget,
            "total_spent": summary.total_spent,
            **(payload or {}),
        }
        for result in self.bus.publish(event, body):
            if isinstance(result, dict) and "alert" in result:
                self.alerts.append(result)
                self.bus.publish(BUDGET_ALERT, result)
