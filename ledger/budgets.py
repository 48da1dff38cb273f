import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ledger.domain import BUDGETS, CATEGORIES, EXCEEDED, EXPENSE, SAFE, TRANSACTIONS, WARNING, Budget, Transaction
from ledger.errors import DuplicateBudgetError, NotFoundError, ValidationError
from ledger.filters import by_type, month_window
from ledger.store import Store
from ledger.transforms import from_record, new_id, to_iso, to_record

logger = logging.getLogger(__name__)

WARNING_THRESHOLD = 80
EXCEEDED_THRESHOLD = 100


def budget_percentage(spent: float, limit: float) -> float:
    return spent / limit * 100 if limit > 0 else 0


def budget_status(spent: float, limit: float) -> str:
    percentage = budget_percentage(spent, limit)
    if percentage >= EXCEEDED_THRESHOLD:
        return EXCEEDED
    if percentage >= WARNING_THRESHOLD:
        return WARNING
    return SAFE


def derived_fields(spent: float, limit: float) -> Dict[str, float | str]:
    """spent/remaining/percentage/status for a limit; the only place they are computed."""
    return {
        "spent": spent,
        "remaining": max(0, limit - spent),
        "percentage": budget_percentage(spent, limit),
        "status": budget_status(spent, limit),
    }


def _check_limit(limit: float) -> None:
    if limit is None or limit <= 0:
        raise ValidationError(f"Monthly limit must be greater than 0, got {limit}")


class BudgetEngine:
    """Per-category monthly limits whose usage is recomputed from the ledger."""

    def __init__(self, store: Store, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock

    async def list_budgets(self) -> List[Budget]:
        return [from_record(Budget, r) for r in await self.store.list_all(BUDGETS)]

    async def get_budget(self, budget_id: str) -> Budget:
        record = await self.store.get(BUDGETS, budget_id)
        if record is None:
            raise NotFoundError("Budget", budget_id)
        return from_record(Budget, record)

    async def get_budget_progress(self, category: str) -> Optional[Budget]:
        records = await self.store.range_query(BUDGETS, "category", category, category)
        return from_record(Budget, records[0]) if records else None

    async def create_budget(self, category: str, monthly_limit: float) -> Budget:
        if category not in CATEGORIES:
            raise ValidationError(f"Unknown category: {category}")
        _check_limit(monthly_limit)
        if await self.get_budget_progress(category) is not None:
            raise DuplicateBudgetError(category)

        now = self.clock()
        budget = Budget(
            id=new_id(),
            category=category,
            monthly_limit=monthly_limit,
            created_at=now,
            updated_at=now,
            **derived_fields(0, monthly_limit),
        )
        await self.store.insert(BUDGETS, to_record(budget))
        logger.info("Created %s budget with limit %s", category, monthly_limit)
        return budget

    async def update_budget(self, budget_id: str, monthly_limit: float) -> Budget:
        """Change the limit; usage figures use the stored ``spent`` until the next refresh."""
        _check_limit(monthly_limit)
        budget = await self.get_budget(budget_id)
        updated = replace(
            budget,
            monthly_limit=monthly_limit,
            updated_at=self.clock(),
            **derived_fields(budget.spent, monthly_limit),
        )
        await self.store.update(BUDGETS, budget_id, to_record(updated))
        return updated

    async def delete_budget(self, budget_id: str) -> None:
        # deleting an absent budget is a no-op
        await self.store.delete(BUDGETS, budget_id)

    async def refresh_all_budgets_spending(self) -> List[Budget]:
        """Recompute ``spent`` for every budget from this month's expenses."""
        start, end = month_window(None, self.clock)
        records = await self.store.range_query(TRANSACTIONS, "date", to_iso(start), to_iso(end))
        expenses = filter(by_type(EXPENSE), (from_record(Transaction, r) for r in records))
        spent_by_category: Dict[str, float] = {}
        for t in expenses:
            spent_by_category[t.category] = spent_by_category.get(t.category, 0) + t.amount

        now = self.clock()
        refreshed = []
        for budget in await self.list_budgets():
            spent = spent_by_category.get(budget.category, 0)
            updated = replace(budget, updated_at=now, **derived_fields(spent, budget.monthly_limit))
            await self.store.update(BUDGETS, budget.id, to_record(updated))
            refreshed.append(updated)
        logger.debug("Refreshed spending for %d budgets", len(refreshed))
        return refreshed

    async def list_budget_alerts(self) -> List[Budget]:
        return [b for b in await self.list_budgets() if b.status in (WARNING, EXCEEDED)]
