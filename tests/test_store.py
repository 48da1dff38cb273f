import sqlite3

import pytest

from ledger.domain import BUDGETS, TRANSACTIONS
from ledger.store import MemoryStore, SQLiteStore, StorageError


def record(record_id, date, amount=10, category="Food"):
    return {"id": record_id, "type": "expense", "amount": amount, "category": category, "date": date, "note": ""}


async def check_store_contract(store):
    await store.insert_many(TRANSACTIONS, [
        record("b", "2026-10-31T23:59:59.999999"),
        record("a", "2026-10-01T00:00:00.000000"),
        record("c", "2026-11-01T00:00:00.000000"),
        record("d", "2026-09-30T23:59:59.999999"),
    ])

    hits = await store.range_query(TRANSACTIONS, "date", "2026-10-01T00:00:00.000000", "2026-10-31T23:59:59.999999")
    assert [r["id"] for r in hits] == ["a", "b"]

    assert (await store.get(TRANSACTIONS, "a"))["amount"] == 10
    assert await store.get(TRANSACTIONS, "zzz") is None
    assert len(await store.list_all(TRANSACTIONS)) == 4

    with pytest.raises(StorageError):
        await store.insert(TRANSACTIONS, record("a", "2026-10-02T00:00:00.000000"))
    with pytest.raises(StorageError):
        await store.insert(TRANSACTIONS, {"amount": 1})
    with pytest.raises(StorageError):
        await store.list_all("accounts")

    assert await store.update(TRANSACTIONS, "a", {"amount": 99}) is True
    updated = await store.get(TRANSACTIONS, "a")
    assert updated["amount"] == 99
    assert updated["category"] == "Food"
    assert await store.update(TRANSACTIONS, "missing", {"amount": 1}) is False

    await store.delete(TRANSACTIONS, "a")
    await store.delete(TRANSACTIONS, "a")
    assert await store.get(TRANSACTIONS, "a") is None

    await store.insert(BUDGETS, {"id": "x", "category": "Food", "monthly_limit": 100})
    assert [r["id"] for r in await store.range_query(BUDGETS, "category", "Food", "Food")] == ["x"]

    await store.clear(TRANSACTIONS)
    assert await store.list_all(TRANSACTIONS) == []
    assert len(await store.list_all(BUDGETS)) == 1


@pytest.mark.asyncio
async def test_memory_store_contract():
    await check_store_contract(MemoryStore())


@pytest.mark.asyncio
async def test_sqlite_store_contract(tmp_path):
    async with SQLiteStore(tmp_path / "ledger.db") as store:
        await check_store_contract(store)


@pytest.mark.asyncio
async def test_memory_store_returns_copies():
    store = MemoryStore()
    await store.insert(TRANSACTIONS, record("a", "2026-10-01T00:00:00.000000"))
    fetched = await store.get(TRANSACTIONS, "a")
    fetched["amount"] = 1000
    assert (await store.get(TRANSACTIONS, "a"))["amount"] == 10


@pytest.mark.asyncio
async def test_range_query_rejects_bad_field():
    with pytest.raises(StorageError):
        await MemoryStore().range_query(TRANSACTIONS, "date') OR 1=1 --", "a", "z")


@pytest.mark.asyncio
async def test_sqlite_persists_between_opens(tmp_path):
    path = tmp_path / "ledger.db"
    async with SQLiteStore(path) as store:
        await store.insert(TRANSACTIONS, record("a", "2026-10-01T00:00:00.000000"))

    async with SQLiteStore(path) as store:
        assert [r["id"] for r in await store.list_all(TRANSACTIONS)] == ["a"]


@pytest.mark.asyncio
async def test_sqlite_closed_store_raises(tmp_path):
    store = SQLiteStore(tmp_path / "ledger.db")
    with pytest.raises(StorageError):
        await store.list_all(TRANSACTIONS)


def _mark_schema_stale(path):
    conn = sqlite3.connect(path)
    conn.execute("UPDATE schema_meta SET value = 'stale' WHERE key = 'schema_hash'")
    conn.commit()
    conn.close()


@pytest.mark.asyncio
async def test_sqlite_schema_change_keeps_data_by_default(tmp_path):
    path = tmp_path / "ledger.db"
    async with SQLiteStore(path) as store:
        await store.insert(TRANSACTIONS, record("a", "2026-10-01T00:00:00.000000"))
    _mark_schema_stale(path)

    async with SQLiteStore(path) as store:
        assert len(await store.list_all(TRANSACTIONS)) == 1


@pytest.mark.asyncio
async def test_sqlite_schema_change_resets_when_asked(tmp_path):
    path = tmp_path / "ledger.db"
    async with SQLiteStore(path) as store:
        await store.insert(TRANSACTIONS, record("a", "2026-10-01T00:00:00.000000"))
    _mark_schema_stale(path)

    async with SQLiteStore(path, reset_on_schema_change=True) as store:
        assert await store.list_all(TRANSACTIONS) == []
