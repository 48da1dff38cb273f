import asyncio
from collections import defaultdict
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from ledger.domain import EXPENSE, INCOME, TRANSACTIONS, CategorySum, MonthlyStats, MonthlyTotals, Transaction
from ledger.errors import ValidationError
from ledger.filters import (
    MonthRef,
    TransactionFilter,
    apply_filter,
    month_key,
    month_window,
    shift_month,
    to_month_start,
)
from ledger.store import Store
from ledger.transforms import from_record, to_iso


def category_sums(trans: Iterable[Transaction]) -> List[CategorySum]:
    # expense categories only, in first-seen order; no zero-filling
    sums: Dict[str, float] = {}
    for t in trans:
        if t.type != EXPENSE:
            continue
        sums[t.category] = sums.get(t.category, 0) + t.amount
    return [CategorySum(name, value) for name, value in sums.items()]


class AnalyticsEngine:
    """Month-bucketed aggregates over the transaction ledger."""

    def __init__(self, store: Store, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock

    async def all_transactions(self) -> List[Transaction]:
        return [from_record(Transaction, r) for r in await self.store.list_all(TRANSACTIONS)]

    async def month_transactions(self, reference: MonthRef = None) -> List[Transaction]:
        """Transactions dated within the calendar month of ``reference``, both edges included."""
        start, end = month_window(reference, self.clock)
        records = await self.store.range_query(TRANSACTIONS, "date", to_iso(start), to_iso(end))
        return [from_record(Transaction, r) for r in records]

    async def category_sums_for_month(self, reference: MonthRef = None) -> List[CategorySum]:
        return category_sums(await self.month_transactions(reference))

    async def monthly_totals(self, n: int = 6) -> List[MonthlyTotals]:
        """Exactly ``n`` months ending at the current one; empty months are zero."""
        if n < 1:
            raise ValidationError(f"monthly_totals needs at least one month, got {n}")

        current = to_month_start(self.clock())
        months = [shift_month(current, i - (n - 1)) for i in range(n)]

        async def month_total(start: datetime) -> MonthlyTotals:
            totals = defaultdict(float)
            for t in await self.month_transactions(start):
                totals[t.type] += t.amount
            return MonthlyTotals(month_key(start), totals[INCOME], totals[EXPENSE])

        return list(await asyncio.gather(*(month_total(m) for m in months)))

    async def monthly_stats(self, month: MonthRef = None) -> MonthlyStats:
        trans = await self.month_transactions(month)
        income = sum(t.amount for t in trans if t.type == INCOME)
        expenses = sum(t.amount for t in trans if t.type == EXPENSE)

        top: Optional[str] = None
        top_amount = 0
        for item in category_sums(trans):
            if item.value > top_amount:
                top, top_amount = item.name, item.value

        return MonthlyStats(income, expenses, income - expenses, top, top_amount)

    async def total_income(self, month: MonthRef = None) -> float:
        return (await self.monthly_stats(month)).income

    async def total_expenses(self, month: MonthRef = None) -> float:
        return (await self.monthly_stats(month)).expenses

    async def top_category(self, month: MonthRef = None) -> CategorySum:
        stats = await self.monthly_stats(month)
        return CategorySum(stats.top_category, stats.top_category_amount)

    async def filter_transactions(self, criteria: TransactionFilter) -> List[Transaction]:
        """Transactions matching ``criteria``, newest first."""
        if criteria.date_from or criteria.date_to:
            start, end = criteria.bounds()
            records = await self.store.range_query(TRANSACTIONS, "date", to_iso(start), to_iso(end))
            trans = [from_record(Transaction, r) for r in records]
        else:
            trans = await self.all_transactions()
        return sorted(apply_filter(trans, criteria), key=lambda t: t.date, reverse=True)
