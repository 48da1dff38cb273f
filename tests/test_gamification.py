from datetime import datetime, timedelta

import pytest

from ledger.budgets import BudgetEngine
from ledger.domain import ACHIEVEMENTS, TRANSACTIONS, Achievement, Transaction
from ledger.gamification import CATALOG, STREAK_LOOKBACK_DAYS, GamificationEngine, level_for, round_half_up
from ledger.store import MemoryStore
from ledger.transforms import new_id, to_record

NOW = datetime(2026, 10, 19, 12, 0)


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def make_tx(tx_type, amount, category, when=NOW):
    return Transaction(new_id(), tx_type, amount, category, when)


async def make_engine(*trans, clock=None):
    store = MemoryStore()
    await store.insert_many(TRANSACTIONS, [to_record(t) for t in trans])
    clock = clock or Clock(NOW)
    return store, GamificationEngine(store, clock)


def days_ago(n):
    return NOW - timedelta(days=n)


def test_round_half_up_and_levels():
    assert round_half_up(48.5) == 49
    assert round_half_up(48.49) == 48
    assert level_for(0) == 1
    assert level_for(99) == 1
    assert level_for(110) == 2


@pytest.mark.asyncio
async def test_streak_counts_consecutive_days_ending_today():
    store, engine = await make_engine(
        make_tx("expense", 10, "Food", days_ago(0)),
        make_tx("expense", 10, "Food", days_ago(1)),
        make_tx("expense", 10, "Food", days_ago(1)),
        make_tx("expense", 10, "Food", days_ago(2)),
        make_tx("expense", 10, "Food", days_ago(4)),
    )
    assert await engine.calculate_current_streak() == 3


@pytest.mark.asyncio
async def test_streak_stops_at_lookback_limit():
    store, engine = await make_engine(*(make_tx("expense", 1, "Food", days_ago(n)) for n in range(400)))
    assert await engine.calculate_current_streak() == STREAK_LOOKBACK_DAYS == 365


@pytest.mark.asyncio
async def test_streak_is_zero_without_a_transaction_today():
    store, engine = await make_engine(make_tx("expense", 10, "Food", days_ago(1)))
    assert await engine.calculate_current_streak() == 0


@pytest.mark.asyncio
async def test_health_score_empty_ledger_is_zero():
    store, engine = await make_engine()
    assert await engine.calculate_financial_health_score() == 0


@pytest.mark.asyncio
async def test_health_score_never_negative_in_deficit():
    store, engine = await make_engine(
        make_tx("income", 100, "Other"),
        make_tx("expense", 5000, "Food"),
    )
    assert await engine.calculate_financial_health_score() == 0


@pytest.mark.asyncio
async def test_health_score_components():
    store, engine = await make_engine(
        make_tx("income", 10000, "Other", days_ago(0)),
        make_tx("expense", 2000, "Food", days_ago(1)),
    )
    # savings 40 + budgets 0 + streak 2 days -> 4 + categorized 1/2 -> 5
    assert await engine.calculate_financial_health_score() == 49

    budgets = BudgetEngine(store, clock=lambda: NOW)
    await budgets.create_budget("Food", 1000)
    await budgets.create_budget("Travel", 5000)
    await budgets.refresh_all_budgets_spending()
    # Food exceeded, Travel within -> 15
    assert await engine.calculate_financial_health_score() == 64


@pytest.mark.asyncio
async def test_initialize_achievements_seeds_once():
    store, engine = await make_engine()
    await engine.initialize_achievements()
    await engine.initialize_achievements()

    achievements = await engine.get_all_achievements()
    assert len(achievements) == len(CATALOG) == 8
    assert all(a.progress == 0 and not a.completed for a in achievements)


@pytest.mark.asyncio
async def test_unhandled_milestone_has_no_progress():
    store, engine = await make_engine(make_tx("income", 10, "Other"))
    mystery = Achievement(new_id(), "Mystery", "", "?", "milestone", 1, 5)
    assert await engine.calculate_achievement_progress(mystery) == 0


@pytest.mark.asyncio
async def test_budget_master_needs_budgets():
    store, engine = await make_engine(make_tx("expense", 10, "Food"))
    master = next(a for a in await engine.get_all_achievements() if a.title == "Budget Master")
    assert await engine.calculate_achievement_progress(master) == 0

    budgets = BudgetEngine(store, clock=lambda: NOW)
    await budgets.create_budget("Food", 1000)
    await budgets.refresh_all_budgets_spending()
    assert await engine.calculate_achievement_progress(master) == 1


@pytest.mark.asyncio
async def test_unlock_is_one_way():
    clock = Clock(NOW)
    store, engine = await make_engine(make_tx("income", 10000, "Other"), clock=clock)

    unlocked = await engine.check_and_unlock_achievements()
    assert {a.title for a in unlocked} == {"First Steps", "Savings Champion"}
    champion = next(a for a in unlocked if a.title == "Savings Champion")
    assert champion.completed
    assert champion.progress == 10000
    assert champion.unlocked_at == NOW

    # savings drop to zero and time moves on; completion stays put
    await store.insert(TRANSACTIONS, to_record(make_tx("expense", 10000, "Rent")))
    clock.now = NOW + timedelta(hours=3)
    assert await engine.check_and_unlock_achievements() == []

    stored = next(a for a in await engine.get_all_achievements() if a.title == "Savings Champion")
    assert stored.completed
    assert stored.progress == 10000
    assert stored.unlocked_at == NOW


@pytest.mark.asyncio
async def test_progress_updates_for_locked_achievements():
    store, engine = await make_engine(make_tx("income", 3000, "Other"), make_tx("expense", 500, "Food"))
    await engine.check_and_unlock_achievements()

    by_title = {a.title: a for a in await engine.get_all_achievements()}
    assert by_title["Century Club"].progress == 2
    assert by_title["Savings Champion"].progress == 2500
    assert not by_title["Savings Champion"].completed


@pytest.mark.asyncio
async def test_update_user_stats_points_and_level():
    store, engine = await make_engine(make_tx("income", 10000, "Other"))
    await engine.check_and_unlock_achievements()

    stats = await engine.update_user_stats()
    assert stats.achievements_unlocked == 2
    assert stats.total_points == 110
    assert stats.level == 2
    assert stats.next_level_points == 200
    assert stats.total_savings == 10000
    assert stats.monthly_goal_progress == 50
    assert stats.current_streak == 1
    assert stats.financial_health_score == 42

    again = await engine.update_user_stats()
    assert again == stats
    assert await engine.get_user_stats() == stats


@pytest.mark.asyncio
async def test_monthly_goal_progress_capped():
    store, engine = await make_engine(make_tx("income", 90000, "Other"))
    stats = await engine.update_user_stats()
    assert stats.monthly_goal_progress == 100


@pytest.mark.asyncio
async def test_longest_streak_never_decreases():
    clock = Clock(NOW)
    store, engine = await make_engine(
        make_tx("expense", 10, "Food", days_ago(0)),
        make_tx("expense", 10, "Food", days_ago(1)),
        make_tx("expense", 10, "Food", days_ago(2)),
        clock=clock,
    )
    stats = await engine.update_user_stats()
    assert stats.current_streak == 3
    assert stats.longest_streak == 3

    clock.now = NOW + timedelta(days=2)
    stats = await engine.update_user_stats()
    assert stats.current_streak == 0
    assert stats.longest_streak == 3


@pytest.mark.asyncio
async def test_user_stats_defaults():
    store, engine = await make_engine()
    stats = await engine.get_user_stats()
    assert stats.level == 1
    assert stats.total_points == 0
    assert stats.next_level_points == 100
    assert await store.list_all(ACHIEVEMENTS) == []
