import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, List, Mapping, Optional

from ledger.analytics import AnalyticsEngine
from ledger.assistant import Assistant, Translate, default_translate, format_currency
from ledger.budgets import BudgetEngine
from ledger.config import Settings
from ledger.domain import ACHIEVEMENTS, BUDGETS, TRANSACTIONS, USER_STATS, Achievement, Budget, Transaction, UserStats
from ledger.errors import ValidationError
from ledger.events import (
    ACHIEVEMENT_UNLOCKED,
    BUDGET_ALERT,
    STATS_UPDATED,
    TRANSACTION_ADDED,
    EventBus,
    NotificationCenter,
    register_notification_handlers,
)
from ledger.filters import TransactionFilter, apply_filter
from ledger.functional import validate_transaction
from ledger.gamification import GamificationEngine
from ledger.projections import Advisor
from ledger.search import SearchIndex
from ledger.store import Store
from ledger.transforms import demo_budgets, demo_transactions, new_id, to_record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshResult:
    stats: UserStats
    budgets: List[Budget] = field(default_factory=list)
    alerts: List[Budget] = field(default_factory=list)
    unlocked: List[Achievement] = field(default_factory=list)


class FinanceTracker:
    """Facade wiring every engine to one store handle.

    ``refresh`` is the only way derived records (budget usage, achievements,
    user stats) get recomputed.
    """

    def __init__(
        self,
        store: Store,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
        bus: Optional[EventBus] = None,
        notifications: Optional[NotificationCenter] = None,
    ):
        self.store = store
        self.settings = settings or Settings()
        self.clock = clock
        self.bus = bus or EventBus(clock)
        self.notifications = notifications or NotificationCenter()
        register_notification_handlers(self.bus, self.notifications)
        self.search_index = SearchIndex(store)
        self.bus.subscribe(TRANSACTION_ADDED, lambda event, payload: self.search_index.invalidate())

        self.analytics = AnalyticsEngine(store, clock)
        self.budgets = BudgetEngine(store, clock)
        self.gamification = GamificationEngine(store, clock, self.settings.monthly_savings_goal)
        self.advisor = Advisor(self.analytics)
        symbol = self.settings.currency_symbol
        self.assistant = Assistant(self.analytics, self.advisor, lambda amount: format_currency(amount, symbol))

    async def add_transaction(self, data: Mapping[str, Any]) -> Transaction:
        result = validate_transaction(data.get("id") or new_id(), data)
        if result.is_left():
            error = result.get_error()
            raise ValidationError(error["message"], [error])
        tx = result.get_or_else(None)
        await self.store.insert(TRANSACTIONS, to_record(tx))
        self.bus.publish(TRANSACTION_ADDED, to_record(tx))
        return tx

    async def import_transactions(self, rows: Iterable[Mapping[str, Any]]) -> List[Transaction]:
        """Validate every row first; nothing is written if any row is invalid."""
        valid, errors = [], []
        for index, row in enumerate(rows):
            result = validate_transaction(row.get("id") or new_id(), row)
            if result.is_left():
                errors.append({**result.get_error(), "row": index})
            else:
                valid.append(result.get_or_else(None))
        if errors:
            raise ValidationError(f"{len(errors)} invalid row(s) in import", errors)
        await self.store.insert_many(TRANSACTIONS, [to_record(t) for t in valid])
        for tx in valid:
            self.bus.publish(TRANSACTION_ADDED, to_record(tx))
        logger.info("Imported %d transactions", len(valid))
        return valid

    async def refresh(self) -> RefreshResult:
        before = {b.id: b.status for b in await self.budgets.list_budgets()}
        budgets = await self.budgets.refresh_all_budgets_spending()
        alerts = await self.budgets.list_budget_alerts()
        for budget in alerts:
            # notify on entering warning/exceeded, not on every refresh
            if before.get(budget.id) != budget.status:
                self.bus.publish(BUDGET_ALERT, to_record(budget))

        unlocked = await self.gamification.check_and_unlock_achievements()
        for achievement in unlocked:
            self.bus.publish(ACHIEVEMENT_UNLOCKED, to_record(achievement))

        stats = await self.gamification.update_user_stats()
        self.bus.publish(STATS_UPDATED, to_record(stats))
        logger.info(
            "Refreshed: %d budgets (%d alerts), %d achievements unlocked, level %d",
            len(budgets), len(alerts), len(unlocked), stats.level,
        )
        return RefreshResult(stats, budgets, alerts, unlocked)

    async def search_transactions(
        self, query: str, criteria: Optional[TransactionFilter] = None
    ) -> List[Transaction]:
        """Fuzzy search, narrowed by ``criteria``. A blank query lists the filtered ledger."""
        criteria = criteria or TransactionFilter()
        if not query.strip():
            return await self.analytics.filter_transactions(criteria)
        return apply_filter(await self.search_index.search(query), criteria)

    async def ask(self, query: str, translate: Translate = default_translate) -> str:
        return await self.assistant.generate_response(query, translate)

    async def seed_demo_data(self) -> None:
        """Replace all data with a demo ledger spanning the last three months."""
        for name in (TRANSACTIONS, BUDGETS, ACHIEVEMENTS, USER_STATS):
            await self.store.clear(name)
        today = self.clock()
        await self.store.insert_many(TRANSACTIONS, [to_record(t) for t in demo_transactions(today)])
        await self.store.insert_many(BUDGETS, [to_record(b) for b in demo_budgets(today)])
        await self.gamification.initialize_achievements()
        await self.gamification.initialize_user_stats()
        self.search_index.invalidate()
        logger.info("Demo data seeded")
