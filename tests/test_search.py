from datetime import date, datetime

import pytest

from ledger.domain import TRANSACTIONS, Transaction
from ledger.filters import TransactionFilter
from ledger.search import SearchIndex, format_search_amount, format_search_date, searchable_fields
from ledger.services import FinanceTracker
from ledger.store import MemoryStore
from ledger.transforms import to_record

NOW = datetime(2026, 10, 19, 12, 0)


def sample_ledger():
    return [
        Transaction("a", "expense", 1200, "Food", datetime(2026, 10, 2), "Lunch"),
        Transaction("b", "expense", 15000, "Rent", datetime(2026, 10, 1), "Monthly rent"),
        Transaction("c", "income", 50000, "Other", datetime(2026, 10, 1), "Salary"),
        Transaction("d", "expense", 1200, "Entertainment", datetime(2026, 10, 10), "Movie tickets"),
    ]


async def make_index():
    store = MemoryStore()
    await store.insert_many(TRANSACTIONS, [to_record(t) for t in sample_ledger()])
    return store, SearchIndex(store)


def test_searchable_fields():
    fields = searchable_fields(Transaction("x", "income", 1200.5, "Other", datetime(2026, 3, 7), ""))
    assert fields == {
        "note": "",
        "category": "Other",
        "type": "income",
        "amount": "1200.5",
        "date": "March 7, 2026",
    }
    assert format_search_amount(15000) == "15000"
    assert format_search_date(datetime(2026, 10, 19)) == "October 19, 2026"


@pytest.mark.asyncio
async def test_search_matches_note_case_insensitively():
    store, index = await make_index()
    assert [t.id for t in await index.search("LUNCH")] == ["a"]


@pytest.mark.asyncio
async def test_best_match_comes_first():
    store, index = await make_index()
    results = await index.search("rent")
    assert results[0].id == "b"


@pytest.mark.asyncio
async def test_equal_scores_are_newest_first():
    store, index = await make_index()
    results = await index.search("1200")
    assert [t.id for t in results[:2]] == ["d", "a"]


@pytest.mark.asyncio
async def test_short_blank_and_unmatched_queries():
    store, index = await make_index()
    assert await index.search("l") == []
    assert await index.search("   ") == []
    assert await index.search("zzqx") == []


@pytest.mark.asyncio
async def test_result_limit():
    store, index = await make_index()
    assert len(await index.search("1200", limit=1)) == 1


@pytest.mark.asyncio
async def test_index_is_cached_until_invalidated():
    store, index = await make_index()
    assert await index.search("groceries") == []

    await store.insert(TRANSACTIONS, to_record(
        Transaction("e", "expense", 900, "Groceries", datetime(2026, 10, 3), "Weekly groceries")
    ))
    assert await index.search("groceries") == []

    index.invalidate()
    assert [t.id for t in await index.search("groceries")] == ["e"]


@pytest.mark.asyncio
async def test_tracker_search_sees_new_transactions():
    tracker = FinanceTracker(MemoryStore(), clock=lambda: NOW)
    assert await tracker.search_transactions("lunch") == []

    await tracker.add_transaction({"type": "expense", "amount": 300, "category": "Food", "date": NOW, "note": "Lunch"})
    assert [t.note for t in await tracker.search_transactions("lunch")] == ["Lunch"]

    await tracker.import_transactions([
        {"type": "expense", "amount": 80, "category": "Food", "date": NOW, "note": "Team lunch"},
    ])
    assert len(await tracker.search_transactions("lunch")) == 2


@pytest.mark.asyncio
async def test_tracker_search_with_filters():
    tracker = FinanceTracker(MemoryStore(), clock=lambda: NOW)
    await tracker.store.insert_many(TRANSACTIONS, [to_record(t) for t in sample_ledger()])

    found = await tracker.search_transactions("1200", TransactionFilter(categories=("Food",)))
    assert [t.id for t in found] == ["a"]

    listed = await tracker.search_transactions("", TransactionFilter(types=("expense",), date_from=date(2026, 10, 2)))
    assert [t.id for t in listed] == ["d", "a"]
