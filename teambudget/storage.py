"""Key-value persistence adapters.

Every adapter speaks the same small async contract::

    await storage.get(key, shared)         -> StoredValue | None
    await storage.set(key, value, shared)  -> None

``shared`` picks the scope: shared entries are visible to everyone looking
at the same page, personal ones only to the current user. Both calls may
raise; callers decide how to degrade.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Dict, NamedTuple, Optional, Protocol

logger = logging.getLogger(__name__)

SHARED_SCOPE = "shared"
PERSONAL_SCOPE = "personal"


class StoredValue(NamedTuple):
    value: str


class StorageError(Exception):
    """Raised by an adapter when the backing store cannot be read or written."""


class KeyValueStorage(Protocol):
    async def get(self, key: str, shared: bool = False) -> Optional[StoredValue]:
        ...

    async def set(self, key: str, value: str, shared: bool = False) -> None:
        ...


def _scope(shared: bool) -> str:
    return SHARED_SCOPE if shared else PERSONAL_SCOPE


class InMemoryStorage:
    """Dict-backed store. ``delay`` (seconds) simulates a slow backend."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self._data: Dict[str, Dict[str, str]] = {SHARED_SCOPE: {}, PERSONAL_SCOPE: {}}

    async def get(self, key: str, shared: bool = False) -> Optional[StoredValue]:
        await asyncio.sleep(self.delay)
        value = self._data[_scope(shared)].get(key)
        return None if value is None else StoredValue(value)

    async def set(self, key: str, value: str, shared: bool = False) -> None:
        await asyncio.sleep(self.delay)
        self._data[_scope(shared)][key] = value

    def keys(self, shared: bool = True) -> list[str]:
        return sorted(self._data[_scope(shared)])


class JsonFileStorage:
    """Store every entry in one JSON file: ``{"shared": {...}, "personal": {...}}``.

    File I/O runs in a worker thread so the event loop is never blocked.
    Writes go through a ``.tmp`` file and ``os.replace`` so a crash mid-write
    leaves the previous file intact. A missing file reads as empty; a corrupt
    one is moved aside to ``<name>.corrupt`` first so the next write cannot
    bury what was in it.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read_all(self) -> Dict[str, Dict[str, str]]:
        empty = {SHARED_SCOPE: {}, PERSONAL_SCOPE: {}}
        if not self.path.exists():
            return empty
        try:
            with self.path.open('r', encoding='utf-8') as handle:
                data = json.load(handle)
        except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as e:
            self._quarantine(e)
            return empty
        except OSError as e:
            raise StorageError(f"Failed to read {self.path}: {e}") from e
        if not isinstance(data, dict):
            self._quarantine(f"top level is {type(data).__name__}, not an object")
            return empty
        for scope in (SHARED_SCOPE, PERSONAL_SCOPE):
            entries = data.get(scope)
            empty[scope] = entries if isinstance(entries, dict) else {}
        return empty

    def _quarantine(self, reason) -> None:
        aside = self.path.with_suffix(self.path.suffix + ".corrupt")
        try:
            os.replace(self.path, aside)
        except OSError as e:
            raise StorageError(f"Failed to move corrupt {self.path} aside: {e}") from e
        logger.warning("Storage file %s is corrupt (%s), moved to %s", self.path, reason, aside)

    def _write_all(self, data: Dict[str, Dict[str, str]]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open('w', encoding='utf-8') as handle:
                json.dump(data, handle, indent=2, sort_keys=True, ensure_ascii=False)
            os.replace(tmp, self.path)
        except OSError as e:
            if tmp.exists():
                tmp.unlink()
            raise StorageError(f"Failed to write {self.path}: {e}") from e

    async def get(self, key: str, shared: bool = False) -> Optional[StoredValue]:
        data = await asyncio.to_thread(self._read_all)
        value = data[_scope(shared)].get(key)
        if not isinstance(value, str):
            return None
        return StoredValue(value)

    async def set(self, key: str, value: str, shared: bool = False) -> None:
        # read-modify-write must not interleave with another set
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
            data[_scope(shared)][key] = value
            await asyncio.to_thread(self._write_all, data)
        logger.debug("Wrote %s (%s scope) to %s", key, _scope(shared), self.path)
