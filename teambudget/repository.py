import logging

from teambudget.codec import decode_record, encode_record, storage_key
from teambudget.domain import BudgetRecord, default_record
from teambudget.functional import Maybe, Nothing
from teambudget.storage import KeyValueStorage

logger = logging.getLogger(__name__)

__all__ = ['BudgetRepository', 'default_record']


class BudgetRepository:
    """Reads and writes one budget record per month through a key-value store.

    Nothing here raises on storage trouble: a failed read looks like a month
    with no record, a failed write is logged and reported as ``False``.
    """

    def __init__(self, storage: KeyValueStorage, shared: bool = True):
        self.storage = storage
        self.shared = shared

    async def load(self, month: str) -> Maybe[BudgetRecord]:
        """Return the stored record for ``month``, or Nothing if there is none.

        A payload that cannot be parsed is treated as missing.
        """
        key = storage_key(month)
        try:
            result = await self.storage.get(key, self.shared)
        except Exception as e:
            logger.warning("Failed to load %s: %s", key, e)
            return Nothing()

        if result is None or not result.value:
            logger.debug("No stored record for %s", key)
            return Nothing()
        return decode_record(result.value)

    async def load_or_default(self, month: str) -> BudgetRecord:
        return (await self.load(month)).get_or_else(default_record())

    async def save(self, month: str, record: BudgetRecord) -> bool:
        key = storage_key(month)
        try:
            await self.storage.set(key, encode_record(record), self.shared)
        except Exception:
            logger.exception("Failed to save %s", key)
            return False
        logger.debug("Saved %s (%d expenses)", key, len(record.expenses))
        return True
