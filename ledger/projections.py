from dataclasses import dataclass
from typing import Dict, List, Optional

from ledger.analytics import AnalyticsEngine, category_sums
from ledger.errors import ComputationError
from ledger.filters import MonthRef, by_category, expense_total

# Reference limits used for overspend questions. These are independent of the
# user's own Budget records.
OVERSPEND_LIMITS: Dict[str, float] = {
    "Food": 8000,
    "Travel": 5000,
    "Rent": 15000,
    "Shopping": 3000,
    "Bills": 5000,
    "Health": 2000,
    "Entertainment": 2000,
    "Groceries": 4000,
    "Other": 1000,
}


@dataclass(frozen=True)
class SavingsProjection:
    current_savings: float
    projected_savings: float
    increase: float
    percentage_increase: Optional[float]  # None when current savings is 0


@dataclass(frozen=True)
class Overspend:
    category: str
    current_spending: float
    budget_limit: float
    overspend_amount: float
    overspend_percentage: float


@dataclass(frozen=True)
class SavingGoal:
    goal: int
    recommendation: str


@dataclass(frozen=True)
class InvestmentRecommendation:
    type: str
    amount: int
    risk: str
    description: str
    expected_return: str


# (minimum amount, type, share of amount, risk, description, expected return)
INVESTMENT_TIERS = (
    (50000, "Mutual Funds", 0.6, "medium",
     "Diversified equity mutual funds for long-term growth", "12-15% annually"),
    (25000, "Index Funds", 0.7, "medium",
     "Low-cost index funds tracking market performance", "10-12% annually"),
    (10000, "Fixed Deposits", 0.8, "low",
     "Government-backed fixed deposits for stable returns", "6-8% annually"),
    (0, "Savings Account", 1.0, "low",
     "High-yield savings account for liquidity", "4-6% annually"),
)

# (minimum savings rate, share of savings kept as goal, label)
SAVING_GOAL_TIERS = (
    (0.3, 0.8, "excellent"),
    (0.2, 0.9, "good"),
    (0.1, 0.95, "moderate"),
)


def _round(x: float) -> int:
    # half-up, matching how amounts are shown elsewhere
    return int(x + 0.5) if x >= 0 else -int(-x + 0.5)


def get_investment_recommendation(amount: float) -> InvestmentRecommendation:
    for minimum, kind, share, risk, description, expected in INVESTMENT_TIERS:
        if amount >= minimum:
            break
    # amounts below zero fall through to the last (savings account) tier
    allocated = amount if share == 1.0 else _round(amount * share)
    return InvestmentRecommendation(kind, allocated, risk, description, expected)


def monthly_saving_goal(income: float, expenses: float) -> SavingGoal:
    if income <= 0:
        raise ComputationError("savings rate is undefined without income")
    savings = income - expenses
    rate = savings / income
    for minimum, share, label in SAVING_GOAL_TIERS:
        if rate >= minimum:
            return SavingGoal(_round(savings * share), label)
    return SavingGoal(_round(savings * 0.5), "needs_improvement")


class Advisor:
    """What-if projections and overspend checks for a given month."""

    def __init__(self, analytics: AnalyticsEngine):
        self.analytics = analytics

    async def project_savings_with_cut(self, month: MonthRef, category: str, percent: float) -> SavingsProjection:
        trans = await self.analytics.month_transactions(month)
        stats = await self.analytics.monthly_stats(month)
        category_spending = expense_total(filter(by_category(category), trans))

        reduction = category_spending * (percent / 100)
        projected = stats.savings + reduction
        increase_pct = None
        if stats.savings != 0:
            increase_pct = (projected - stats.savings) / stats.savings * 100
        return SavingsProjection(stats.savings, projected, reduction, increase_pct)

    async def overspend_categories(self, month: MonthRef = None) -> List[Overspend]:
        overspend = []
        for item in category_sums(await self.analytics.month_transactions(month)):
            limit = OVERSPEND_LIMITS.get(item.name, 0)
            if limit > 0 and item.value > limit:
                overspend.append(Overspend(
                    category=item.name,
                    current_spending=item.value,
                    budget_limit=limit,
                    overspend_amount=item.value - limit,
                    overspend_percentage=(item.value - limit) / limit * 100,
                ))
        return sorted(overspend, key=lambda o: o.overspend_percentage, reverse=True)
