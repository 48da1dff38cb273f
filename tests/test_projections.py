from datetime import datetime

import pytest

from ledger.analytics import AnalyticsEngine
from ledger.domain import TRANSACTIONS, Transaction
from ledger.errors import ComputationError
from ledger.projections import Advisor, get_investment_recommendation, monthly_saving_goal
from ledger.store import MemoryStore
from ledger.transforms import new_id, to_record

NOW = datetime(2026, 10, 19, 12, 0)


def make_tx(tx_type, amount, category, when=NOW):
    return Transaction(new_id(), tx_type, amount, category, when)


async def make_advisor(*trans):
    store = MemoryStore()
    await store.insert_many(TRANSACTIONS, [to_record(t) for t in trans])
    return Advisor(AnalyticsEngine(store, clock=lambda: NOW))


def test_investment_ladder_boundaries():
    rec = get_investment_recommendation(50000)
    assert (rec.type, rec.amount, rec.risk) == ("Mutual Funds", 30000, "medium")

    rec = get_investment_recommendation(49999)
    assert (rec.type, rec.amount) == ("Index Funds", 34999)

    assert get_investment_recommendation(25000).type == "Index Funds"

    rec = get_investment_recommendation(10000)
    assert (rec.type, rec.amount, rec.risk) == ("Fixed Deposits", 8000, "low")

    rec = get_investment_recommendation(9999)
    assert (rec.type, rec.amount) == ("Savings Account", 9999)
    assert rec.expected_return == "4-6% annually"


def test_monthly_saving_goal_tiers():
    assert monthly_saving_goal(100000, 60000).goal == 32000
    assert monthly_saving_goal(100000, 60000).recommendation == "excellent"
    assert monthly_saving_goal(100000, 75000).recommendation == "good"
    assert monthly_saving_goal(100000, 85000).recommendation == "moderate"

    goal = monthly_saving_goal(100000, 95000)
    assert goal.recommendation == "needs_improvement"
    assert goal.goal == 2500


def test_monthly_saving_goal_without_income():
    with pytest.raises(ComputationError):
        monthly_saving_goal(0, 500)


@pytest.mark.asyncio
async def test_projection_with_cut():
    advisor = await make_advisor(
        make_tx("income", 50000, "Other"),
        make_tx("expense", 10000, "Food"),
        make_tx("expense", 20000, "Rent"),
    )

    projection = await advisor.project_savings_with_cut("2026-10", "Food", 20)
    assert projection.current_savings == 20000
    assert projection.increase == 2000
    assert projection.projected_savings == 22000
    assert projection.percentage_increase == 10


@pytest.mark.asyncio
async def test_projection_percentage_undefined_at_zero_savings():
    advisor = await make_advisor(make_tx("income", 10000, "Other"), make_tx("expense", 10000, "Food"))

    projection = await advisor.project_savings_with_cut(None, "Food", 50)
    assert projection.current_savings == 0
    assert projection.projected_savings == 5000
    assert projection.percentage_increase is None


@pytest.mark.asyncio
async def test_overspend_sorted_by_percentage():
    advisor = await make_advisor(
        make_tx("expense", 12000, "Food"),
        make_tx("expense", 6000, "Shopping"),
        make_tx("expense", 10000, "Rent"),
        make_tx("expense", 99999, "Food", datetime(2026, 9, 1)),
    )

    overspend = await advisor.overspend_categories()
    assert [o.category for o in overspend] == ["Shopping", "Food"]
    shopping, food = overspend
    assert shopping.overspend_amount == 3000
    assert shopping.overspend_percentage == 100
    assert food.budget_limit == 8000
    assert food.overspend_percentage == 50


@pytest.mark.asyncio
async def test_no_overspend_on_empty_month():
    advisor = await make_advisor()
    assert await advisor.overspend_categories("2026-10") == []
