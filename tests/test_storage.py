import json

import pytest

from teambudget.storage import InMemoryStorage, JsonFileStorage, StoredValue, StorageError


@pytest.mark.asyncio
async def test_in_memory_scopes_are_separate():
    storage = InMemoryStorage()
    await storage.set("budget-2026-01", "shared-value", True)
    await storage.set("budget-2026-01", "mine", False)

    assert await storage.get("budget-2026-01", True) == StoredValue("shared-value")
    assert await storage.get("budget-2026-01", False) == StoredValue("mine")
    assert await storage.get("budget-2026-02", True) is None
    assert storage.keys(shared=True) == ["budget-2026-01"]


@pytest.mark.asyncio
async def test_json_file_storage_persists(tmp_path):
    path = tmp_path / "store.json"
    storage = JsonFileStorage(path)
    await storage.set("budget-2026-01", '{"teamSize": 3}', True)

    reopened = JsonFileStorage(path)
    result = await reopened.get("budget-2026-01", True)
    assert result.value == '{"teamSize": 3}'
    assert await reopened.get("budget-2026-01", False) is None

    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk["shared"]["budget-2026-01"] == '{"teamSize": 3}'
    assert not path.with_suffix(".json.tmp").exists()


@pytest.mark.asyncio
async def test_json_file_storage_missing_and_corrupt(tmp_path):
    path = tmp_path / "store.json"
    storage = JsonFileStorage(path)
    assert await storage.get("budget-2026-01", True) is None

    path.write_text("{oops", encoding="utf-8")
    assert await storage.get("budget-2026-01", True) is None

    await storage.set("budget-2026-01", "v", True)
    assert (await storage.get("budget-2026-01", True)).value == "v"


@pytest.mark.asyncio
async def test_json_file_storage_moves_corrupt_file_aside_before_writing(tmp_path):
    path = tmp_path / "store.json"
    path.write_text('{"shared": {"budget-2025-12": "kept"', encoding="utf-8")
    storage = JsonFileStorage(path)

    await storage.set("budget-2026-01", "v", True)

    aside = tmp_path / "store.json.corrupt"
    assert aside.read_text(encoding="utf-8") == '{"shared": {"budget-2025-12": "kept"'
    assert json.loads(path.read_text(encoding="utf-8")) == {
        "shared": {"budget-2026-01": "v"},
        "personal": {},
    }


@pytest.mark.asyncio
async def test_json_file_storage_moves_non_object_file_aside(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("[1, 2]", encoding="utf-8")
    storage = JsonFileStorage(path)

    assert await storage.get("budget-2026-01", True) is None
    assert not path.exists()
    assert (tmp_path / "store.json.corrupt").read_text(encoding="utf-8") == "[1, 2]"


@pytest.mark.asyncio
async def test_json_file_storage_write_failure(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")
    storage = JsonFileStorage(blocker / "store.json")

    with pytest.raises(StorageError):
        await storage.set("budget-2026-01", "v", True)
