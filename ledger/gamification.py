"""Streaks, financial-health score, achievements and the user stats view.

Achievements move locked -> in progress -> completed and never back: once an
achievement is completed it is skipped by every later check, so ``unlocked_at``
is written exactly once. ``UserStats`` is rebuilt in full by
``update_user_stats``; only ``longest_streak`` carries over between calls.
"""
import logging
import math
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Iterable, List

from ledger.domain import (
    ACHIEVEMENTS,
    BUDGETS,
    EXCEEDED,
    TRANSACTIONS,
    USER_STATS,
    USER_STATS_ID,
    Achievement,
    Budget,
    Transaction,
    UserStats,
)
from ledger.filters import by_date_range, day_key, expense_total, income_total, month_window
from ledger.store import Store
from ledger.transforms import from_record, new_id, to_record

logger = logging.getLogger(__name__)

STREAK_LOOKBACK_DAYS = 365
DEFAULT_MONTHLY_GOAL = 20000
POINTS_PER_LEVEL = 100

FIRST_STEPS = "First Steps"
CENTURY_CLUB = "Century Club"
FINANCIAL_GURU = "Financial Guru"
BUDGET_MASTER = "Budget Master"

CATALOG = (
    {"title": FIRST_STEPS, "description": "Add your first transaction",
     "icon": "🚀", "type": "milestone", "requirement": 1, "points": 10},
    {"title": "Consistent Tracker", "description": "Add transactions for 7 consecutive days",
     "icon": "📈", "type": "streak", "requirement": 7, "points": 50},
    {"title": "Savings Champion", "description": "Save ₹10,000 in a month",
     "icon": "💰", "type": "savings", "requirement": 10000, "points": 100},
    {"title": BUDGET_MASTER, "description": "Stay within budget for all categories in a month",
     "icon": "🎯", "type": "spending", "requirement": 1, "points": 75},
    {"title": CENTURY_CLUB, "description": "Add 100 transactions",
     "icon": "💯", "type": "milestone", "requirement": 100, "points": 150},
    {"title": "Big Saver", "description": "Save ₹50,000 in a month",
     "icon": "🏆", "type": "savings", "requirement": 50000, "points": 200},
    {"title": "Streak Master", "description": "Maintain a 30-day tracking streak",
     "icon": "🔥", "type": "streak", "requirement": 30, "points": 300},
    {"title": FINANCIAL_GURU, "description": "Achieve 90+ financial health score",
     "icon": "🧠", "type": "milestone", "requirement": 90, "points": 250},
)


def round_half_up(x: float) -> int:
    return math.floor(x + 0.5)


def level_for(points: int) -> int:
    return points // POINTS_PER_LEVEL + 1


class GamificationEngine:
    def __init__(
        self,
        store: Store,
        clock: Callable[[], datetime] = datetime.now,
        monthly_goal: float = DEFAULT_MONTHLY_GOAL,
    ):
        self.store = store
        self.clock = clock
        self.monthly_goal = monthly_goal

    async def _transactions(self) -> List[Transaction]:
        return [from_record(Transaction, r) for r in await self.store.list_all(TRANSACTIONS)]

    async def _budgets(self) -> List[Budget]:
        return [from_record(Budget, r) for r in await self.store.list_all(BUDGETS)]

    def _month_savings(self, trans: Iterable[Transaction]) -> float:
        in_month = [t for t in trans if by_date_range(*month_window(None, self.clock))(t)]
        return income_total(in_month) - expense_total(in_month)

    async def initialize_achievements(self) -> None:
        """Seed the catalog once; an already populated store is left alone."""
        if await self.store.list_all(ACHIEVEMENTS):
            return
        records = [to_record(Achievement(id=new_id(), **entry)) for entry in CATALOG]
        await self.store.insert_many(ACHIEVEMENTS, records)
        logger.info("Seeded %d achievements", len(records))

    async def initialize_user_stats(self) -> UserStats:
        record = await self.store.get(USER_STATS, USER_STATS_ID)
        if record is not None:
            return from_record(UserStats, record)
        stats = UserStats()
        await self.store.insert(USER_STATS, to_record(stats))
        return stats

    async def get_user_stats(self) -> UserStats:
        return await self.initialize_user_stats()

    async def get_all_achievements(self) -> List[Achievement]:
        await self.initialize_achievements()
        return [from_record(Achievement, r) for r in await self.store.list_all(ACHIEVEMENTS)]

    async def calculate_current_streak(self) -> int:
        days = {day_key(t.date) for t in await self._transactions()}
        today = self.clock()
        streak = 0
        for offset in range(STREAK_LOOKBACK_DAYS):
            if day_key(today - timedelta(days=offset)) not in days:
                break
            streak += 1
        return streak

    async def calculate_financial_health_score(self) -> int:
        trans = await self._transactions()
        if not trans:
            return 0
        budgets = await self._budgets()
        score = 0.0

        # savings rate, 40 max: a 20% rate earns the full amount
        in_month = [t for t in trans if by_date_range(*month_window(None, self.clock))(t)]
        income = income_total(in_month)
        if income > 0:
            savings_rate = (income - expense_total(in_month)) / income * 100
            score += min(40, savings_rate * 2)

        # budget adherence, 30 max
        if budgets:
            within = sum(1 for b in budgets if b.status != EXCEEDED)
            score += within / len(budgets) * 30

        # consistency, 20 max
        score += min(20, await self.calculate_current_streak() * 2)

        # categorization, 10 max
        categorized = sum(1 for t in trans if t.category != "Other")
        score += categorized / len(trans) * 10

        return max(0, min(100, round_half_up(score)))

    async def calculate_achievement_progress(self, achievement: Achievement) -> float:
        if achievement.type == "milestone":
            if achievement.title == FIRST_STEPS:
                return 1 if await self._transactions() else 0
            if achievement.title == CENTURY_CLUB:
                return len(await self._transactions())
            if achievement.title == FINANCIAL_GURU:
                return await self.calculate_financial_health_score()
        elif achievement.type == "streak":
            return await self.calculate_current_streak()
        elif achievement.type == "savings":
            return max(0, self._month_savings(await self._transactions()))
        elif achievement.type == "spending" and achievement.title == BUDGET_MASTER:
            budgets = await self._budgets()
            if not budgets:
                return 0
            return 1 if all(b.status != EXCEEDED for b in budgets) else 0

        logger.debug("No progress rule for %s (%s)", achievement.title, achievement.type)
        return 0

    async def check_and_unlock_achievements(self) -> List[Achievement]:
        """Update progress of incomplete achievements; return the ones unlocked now."""
        unlocked = []
        for achievement in await self.get_all_achievements():
            if achievement.completed:
                continue
            progress = await self.calculate_achievement_progress(achievement)
            if progress >= achievement.requirement:
                done = replace(
                    achievement,
                    progress=achievement.requirement,
                    completed=True,
                    unlocked_at=self.clock(),
                )
                await self.store.update(ACHIEVEMENTS, achievement.id, to_record(done))
                unlocked.append(done)
                logger.info("Achievement unlocked: %s", achievement.title)
            elif progress != achievement.progress:
                await self.store.update(ACHIEVEMENTS, achievement.id, {"progress": progress})
        return unlocked

    async def update_user_stats(self) -> UserStats:
        previous = await self.initialize_user_stats()
        achievements = [from_record(Achievement, r) for r in await self.store.list_all(ACHIEVEMENTS)]
        completed = [a for a in achievements if a.completed]

        current_streak = await self.calculate_current_streak()
        total_savings = self._month_savings(await self._transactions())
        total_points = sum(a.points for a in completed)
        level = level_for(total_points)

        stats = replace(
            previous,
            current_streak=current_streak,
            longest_streak=max(previous.longest_streak, current_streak),
            financial_health_score=await self.calculate_financial_health_score(),
            total_savings=total_savings,
            achievements_unlocked=len(completed),
            total_points=total_points,
            level=level,
            next_level_points=level * POINTS_PER_LEVEL,
            monthly_goal_progress=min(100, total_savings / self.monthly_goal * 100) if self.monthly_goal > 0 else 0,
        )
        await self.store.update(USER_STATS, USER_STATS_ID, to_record(stats))
        return stats
