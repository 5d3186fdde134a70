# tests/test_persistence.py
"""
Tests for the SQLite result store.
Uses a disposable SQLite file per test for isolation.
"""
import os

import pytest
import pytest_asyncio

from bulkgpt.db import ResultStore
from bulkgpt.errors import PersistenceError, StoreNotInitializedError
from bulkgpt.schemas import PersistedRecord

from conftest import drop_responses_table


def _record(prompt, response="ok"):
    return {"gptPrompt": prompt, "response": response, "options": '{"maxTokens":16}'}


@pytest_asyncio.fixture
async def store(db_path):
    s = ResultStore(db_path)
    await s.initialize()
    yield s
    await s.close()


@pytest.mark.asyncio
async def test_initialize_creates_file_and_empty_table(store, db_path):
    assert os.path.exists(db_path)
    assert store.initialized
    assert await store.read_all() == []


@pytest.mark.asyncio
async def test_append_assigns_increasing_ids_and_reads_in_order(store):
    ids = [await store.append(_record(p)) for p in ("a", "b", "c")]
    assert ids == sorted(ids)
    assert len(set(ids)) == 3

    rows = await store.read_all()
    assert [r.gptPrompt for r in rows] == ["a", "b", "c"]
    assert [r.id for r in rows] == ids
    assert isinstance(rows[0], PersistedRecord)
    assert rows[0].model_dump() == {
        "id": ids[0], "gptPrompt": "a", "response": "ok", "options": '{"maxTokens":16}',
    }


@pytest.mark.asyncio
async def test_reopen_without_recreate_keeps_rows(db_path):
    first = ResultStore(db_path)
    await first.initialize()
    await first.append(_record("kept"))
    await first.close()

    second = ResultStore(db_path)
    await second.initialize(recreate=False)
    rows = await second.read_all()
    await second.close()
    assert [r.gptPrompt for r in rows] == ["kept"]


@pytest.mark.asyncio
async def test_recreate_drops_existing_rows(db_path):
    first = ResultStore(db_path)
    await first.initialize()
    await first.append(_record("old-1"))
    await first.append(_record("old-2"))
    await first.close()

    fresh = ResultStore(db_path)
    await fresh.initialize(recreate=True)
    assert await fresh.read_all() == []
    await fresh.append(_record("new"))
    rows = await fresh.read_all()
    await fresh.close()
    assert [r.gptPrompt for r in rows] == ["new"]


@pytest.mark.asyncio
async def test_recreate_on_missing_file_is_fine(db_path):
    s = ResultStore(db_path)
    await s.initialize(recreate=True)
    assert await s.read_all() == []
    await s.close()


@pytest.mark.asyncio
async def test_uninitialized_store_rejects_append_and_read(db_path):
    s = ResultStore(db_path)
    with pytest.raises(StoreNotInitializedError):
        await s.append(_record("x"))
    with pytest.raises(StoreNotInitializedError):
        await s.read_all()
    assert not os.path.exists(db_path)


@pytest.mark.asyncio
async def test_initialize_without_path_is_a_configuration_error():
    s = ResultStore(None)
    with pytest.raises(StoreNotInitializedError):
        await s.initialize()


@pytest.mark.asyncio
async def test_closed_store_is_uninitialized(store):
    await store.close()
    with pytest.raises(StoreNotInitializedError):
        await store.read_all()


@pytest.mark.asyncio
async def test_write_and_read_failures_raise_persistence_error(store, db_path):
    await store.append(_record("before"))
    drop_responses_table(db_path)

    with pytest.raises(PersistenceError):
        await store.append(_record("after"))
    with pytest.raises(PersistenceError):
        await store.read_all()
