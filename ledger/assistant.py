import logging
import random
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ledger.analytics import AnalyticsEngine
from ledger.filters import month_key
from ledger.intents import (
    ExpenseAnalysis,
    FinancialAdvice,
    IncomeAnalysis,
    Intent,
    InvestmentAdvice,
    InvestmentGeneral,
    OverspendAnalysis,
    OverspendCategory,
    SavingsAnalysis,
    SavingsGeneral,
    SavingsGoal,
    SavingsProjectionQuery,
    TopCategory,
    TopExpense,
    detect_intent,
)
from ledger.projections import Advisor, get_investment_recommendation, monthly_saving_goal

logger = logging.getLogger(__name__)

Translate = Callable[[str], str]

ADVICE_COUNT = 8
DEFAULT_INVESTMENT_AMOUNT = 10000
DEFAULT_PROJECTION_PERCENT = 15

DEFAULT_MESSAGES: Dict[str, str] = {
    "ai.savings.excellent": "Great job! You saved {savings} this month, a {rate}% savings rate.",
    "ai.savings.good": "You saved {savings} this month ({rate}%). Aim for 20% to build wealth faster.",
    "ai.savings.needs_improvement": "You saved {savings} this month ({rate}%). Try trimming discretionary spending.",
    "ai.savings.general": "This month: income {income}, expenses {expenses}, savings {savings}.",
    "ai.savings.goal": "Based on this month, a realistic savings goal is {goal} ({recommendation}).",
    "ai.top_expense": "Your top expense this month is {category} at {amount}.",
    "ai.top_category": "{category} is your highest spending category this month ({amount}).",
    "ai.no_expenses": "No expenses recorded this month yet.",
    "ai.overspend.category": "You spent {current} on {category}, over the {limit} limit by {overspend}.",
    "ai.overspend.within_budget": "Your {category} spending is within budget this month.",
    "ai.overspend.summary": "You are over the limit in: {categories}.",
    "ai.overspend.none": "You are within the limit in every category this month.",
    "ai.investment.recommendation": "Consider {type}: invest {amount} ({risk} risk). {description}. Expected return: {return}.",
    "ai.savings_projection.projection": "Cutting {category} by {percent}% would raise savings from {current} to {projected} (+{increase}).",
    "ai.income.analysis": "Your income this month is {income}.",
    "ai.expense.analysis": "Your expenses this month total {expenses}.",
    "ai.advice.0": "Track every expense, even small ones.",
    "ai.advice.1": "Pay yourself first: move savings out on payday.",
    "ai.advice.2": "Keep an emergency fund of three to six months of expenses.",
    "ai.advice.3": "Review subscriptions and cancel the ones you do not use.",
    "ai.advice.4": "Set a budget for each category and check it weekly.",
    "ai.advice.5": "Cook at home more often to cut food spending.",
    "ai.advice.6": "Automate bill payments to avoid late fees.",
    "ai.advice.7": "Invest surplus savings regularly instead of timing the market.",
    "ai.quick_actions.savings": "How can I save more money?",
    "ai.quick_actions.top_expense": "What is my top expense?",
    "ai.quick_actions.overspend_food": "Am I overspending on food?",
    "ai.quick_actions.investment": "Where should I invest ₹25,000?",
    "ai.quick_actions.cut_dining": "What if I cut dining by 20%?",
    "ai.unknown_query": "Sorry, I did not understand. Try asking about savings, expenses or investments.",
    "ai.error": "Something went wrong while answering. Please try again.",
}

QUICK_ACTION_KEYS = (
    "ai.quick_actions.savings",
    "ai.quick_actions.top_expense",
    "ai.quick_actions.overspend_food",
    "ai.quick_actions.investment",
    "ai.quick_actions.cut_dining",
)


def default_translate(key: str) -> str:
    return DEFAULT_MESSAGES.get(key, key)


def format_currency(amount: float, symbol: str = "₹") -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def render(template: str, **values) -> str:
    for key, value in values.items():
        template = template.replace("{" + key + "}", str(value))
    return template


def quick_actions(translate: Translate = default_translate) -> List[str]:
    return [translate(key) for key in QUICK_ACTION_KEYS]


class Assistant:
    """Answers a free-text question with a filled-in message template."""

    def __init__(
        self,
        analytics: AnalyticsEngine,
        advisor: Optional[Advisor] = None,
        format_amount: Callable[[float], str] = format_currency,
        rng: Optional[random.Random] = None,
    ):
        self.analytics = analytics
        self.advisor = advisor or Advisor(analytics)
        self.format_amount = format_amount
        self.rng = rng or random.Random()
        self._handlers = {
            SavingsAnalysis: self._savings_analysis,
            SavingsGoal: self._savings_goal,
            SavingsGeneral: self._savings_general,
            TopExpense: self._top_expense,
            TopCategory: self._top_category,
            OverspendCategory: self._overspend_category,
            OverspendAnalysis: self._overspend_analysis,
            InvestmentAdvice: self._investment,
            InvestmentGeneral: self._investment_general,
            SavingsProjectionQuery: self._savings_projection,
            IncomeAnalysis: self._income,
            ExpenseAnalysis: self._expenses,
            FinancialAdvice: self._advice,
        }

    async def generate_response(self, query: str, translate: Translate = default_translate) -> str:
        intent = detect_intent(query)
        handler = self._handlers.get(type(intent))
        if handler is None:
            return translate("ai.unknown_query")
        month = month_key(self.analytics.clock())
        try:
            return await handler(intent, month, translate)
        except Exception:
            logger.exception("Failed to answer %r (intent %s)", query, intent.name)
            return translate("ai.error")

    async def _savings_analysis(self, intent: Intent, month: str, t: Translate) -> str:
        stats = await self.analytics.monthly_stats(month)
        rate = stats.savings / stats.income * 100 if stats.income > 0 else 0.0
        if rate >= 20:
            key = "ai.savings.excellent"
        elif rate >= 10:
            key = "ai.savings.good"
        else:
            key = "ai.savings.needs_improvement"
        return render(t(key), savings=self.format_amount(stats.savings), rate=f"{rate:.1f}")

    async def _savings_goal(self, intent: Intent, month: str, t: Translate) -> str:
        stats = await self.analytics.monthly_stats(month)
        goal = monthly_saving_goal(stats.income, stats.expenses)
        return render(t("ai.savings.goal"), goal=self.format_amount(goal.goal), recommendation=goal.recommendation)

    async def _savings_general(self, intent: Intent, month: str, t: Translate) -> str:
        stats = await self.analytics.monthly_stats(month)
        return render(
            t("ai.savings.general"),
            income=self.format_amount(stats.income),
            expenses=self.format_amount(stats.expenses),
            savings=self.format_amount(stats.savings),
        )

    async def _top_expense(self, intent: Intent, month: str, t: Translate, key: str = "ai.top_expense") -> str:
        top = await self.analytics.top_category(month)
        if top.name is None:
            return t("ai.no_expenses")
        return render(t(key), category=top.name, amount=self.format_amount(top.value))

    async def _top_category(self, intent: Intent, month: str, t: Translate) -> str:
        return await self._top_expense(intent, month, t, key="ai.top_category")

    async def _overspend_category(self, intent: OverspendCategory, month: str, t: Translate) -> str:
        for item in await self.advisor.overspend_categories(month):
            if item.category == intent.category:
                return render(
                    t("ai.overspend.category"),
                    category=item.category,
                    current=self.format_amount(item.current_spending),
                    limit=self.format_amount(item.budget_limit),
                    overspend=self.format_amount(item.overspend_amount),
                )
        return render(t("ai.overspend.within_budget"), category=intent.category)

    async def _overspend_analysis(self, intent: Intent, month: str, t: Translate) -> str:
        overspend = await self.advisor.overspend_categories(month)
        if not overspend:
            return t("ai.overspend.none")
        names = ", ".join(f"{o.category} (+{self.format_amount(o.overspend_amount)})" for o in overspend)
        return render(t("ai.overspend.summary"), categories=names)

    async def _investment(self, intent: InvestmentAdvice, month: str, t: Translate) -> str:
        return self._recommend(intent.amount or DEFAULT_INVESTMENT_AMOUNT, t)

    async def _investment_general(self, intent: Intent, month: str, t: Translate) -> str:
        # without an amount in the question, suggest what to do with this month's savings
        stats = await self.analytics.monthly_stats(month)
        amount = stats.savings if stats.savings > 0 else DEFAULT_INVESTMENT_AMOUNT
        return self._recommend(amount, t)

    def _recommend(self, amount: float, t: Translate) -> str:
        rec = get_investment_recommendation(amount)
        return render(
            t("ai.investment.recommendation"),
            type=rec.type,
            amount=self.format_amount(rec.amount),
            risk=rec.risk,
            description=rec.description,
            **{"return": rec.expected_return},
        )

    async def _savings_projection(self, intent: SavingsProjectionQuery, month: str, t: Translate) -> str:
        percent = intent.percent or DEFAULT_PROJECTION_PERCENT
        projection = await self.advisor.project_savings_with_cut(month, intent.category, percent)
        return render(
            t("ai.savings_projection.projection"),
            category=intent.category,
            percent=percent,
            current=self.format_amount(projection.current_savings),
            projected=self.format_amount(projection.projected_savings),
            increase=self.format_amount(projection.increase),
        )

    async def _income(self, intent: Intent, month: str, t: Translate) -> str:
        return render(t("ai.income.analysis"), income=self.format_amount(await self.analytics.total_income(month)))

    async def _expenses(self, intent: Intent, month: str, t: Translate) -> str:
        return render(t("ai.expense.analysis"), expenses=self.format_amount(await self.analytics.total_expenses(month)))

    async def _advice(self, intent: Intent, month: str, t: Translate) -> str:
        return t(f"ai.advice.{self.rng.randrange(ADVICE_COUNT)}")
