"""Keyword-based intent detection for free-text finance questions.

Rules are tried in order and the first one whose builder returns an intent
wins. Each intent type carries a fixed confidence and whatever parameters were
pulled out of the query (a category, an amount, a percentage).
"""
import re
from dataclasses import dataclass
from typing import Callable, ClassVar, List, Optional, Tuple

AMOUNT_RE = re.compile(r"₹?(\d+(?:,\d+)*)")
PERCENT_RE = re.compile(r"(\d+)%")

SAVE_WORDS = ("save", "saving", "बचत", "बचती")
MORE_WORDS = ("more", "ज्यादा", "अधिक")
GOAL_WORDS = ("goal", "लक्ष्य", "उद्दिष्ट")
TOP_WORDS = ("top", "highest", "सबसे", "मुख्य")
EXPENSE_NOUNS = ("expense", "खर्च", "खर्चा")
CATEGORY_WORDS = ("category", "श्रेणी")
OVERSPEND_WORDS = ("overspend", "over", "ज्यादा", "अधिक")
FOOD_WORDS = ("food", "खाना", "अन्न")
SHOPPING_WORDS = ("shopping", "शॉपिंग")
INVEST_WORDS = ("invest", "investment", "निवेश", "गुंतवणूक")
CUT_WORDS = ("cut", "reduce", "कम", "घट")
DINING_WORDS = ("food", "dining", "खाना")
INCOME_WORDS = ("income", "earn", "आय", "कमाई")
SPEND_WORDS = ("expense", "spend", "खर्च", "खर्चा")
ADVICE_WORDS = ("advice", "tip", "सलाह", "सूचना")


@dataclass(frozen=True)
class Intent:
    name: ClassVar[str] = "unknown"
    confidence: ClassVar[float] = 0.1


@dataclass(frozen=True)
class Unknown(Intent):
    pass


@dataclass(frozen=True)
class SavingsAnalysis(Intent):
    name: ClassVar[str] = "savings_analysis"
    confidence: ClassVar[float] = 0.9


@dataclass(frozen=True)
class SavingsGoal(Intent):
    name: ClassVar[str] = "savings_goal"
    confidence: ClassVar[float] = 0.8


@dataclass(frozen=True)
class SavingsGeneral(Intent):
    name: ClassVar[str] = "savings_general"
    confidence: ClassVar[float] = 0.7


@dataclass(frozen=True)
class TopExpense(Intent):
    name: ClassVar[str] = "top_expense"
    confidence: ClassVar[float] = 0.9


@dataclass(frozen=True)
class TopCategory(Intent):
    name: ClassVar[str] = "top_category"
    confidence: ClassVar[float] = 0.8


@dataclass(frozen=True)
class OverspendCategory(Intent):
    name: ClassVar[str] = "overspend_category"
    confidence: ClassVar[float] = 0.9
    category: str


@dataclass(frozen=True)
class OverspendAnalysis(Intent):
    name: ClassVar[str] = "overspend_analysis"
    confidence: ClassVar[float] = 0.8


@dataclass(frozen=True)
class InvestmentAdvice(Intent):
    name: ClassVar[str] = "investment_recommendation"
    confidence: ClassVar[float] = 0.9
    amount: int


@dataclass(frozen=True)
class InvestmentGeneral(Intent):
    name: ClassVar[str] = "investment_general"
    confidence: ClassVar[float] = 0.7


@dataclass(frozen=True)
class SavingsProjectionQuery(Intent):
    name: ClassVar[str] = "savings_projection"
    confidence: ClassVar[float] = 0.9
    category: str
    percent: int


@dataclass(frozen=True)
class IncomeAnalysis(Intent):
    name: ClassVar[str] = "income_analysis"
    confidence: ClassVar[float] = 0.8


@dataclass(frozen=True)
class ExpenseAnalysis(Intent):
    name: ClassVar[str] = "expense_analysis"
    confidence: ClassVar[float] = 0.8


@dataclass(frozen=True)
class FinancialAdvice(Intent):
    name: ClassVar[str] = "financial_advice"
    confidence: ClassVar[float] = 0.7


def has_any(words: Tuple[str, ...]) -> Callable[[str], bool]:
    def _pred(q: str) -> bool:
        return any(w in q for w in words)

    return _pred


def _always(intent: Intent) -> Callable[[str], Optional[Intent]]:
    return lambda q: intent


def _when(words: Tuple[str, ...], intent: Intent) -> Callable[[str], Optional[Intent]]:
    pred = has_any(words)
    return lambda q: intent if pred(q) else None


def _first(*builders: Callable[[str], Optional[Intent]]) -> Callable[[str], Optional[Intent]]:
    def _build(q: str) -> Optional[Intent]:
        for build in builders:
            intent = build(q)
            if intent is not None:
                return intent
        return None

    return _build


def _investment(q: str) -> Intent:
    match = AMOUNT_RE.search(q)
    if match:
        return InvestmentAdvice(amount=int(match.group(1).replace(",", "")))
    return InvestmentGeneral()


def _projection(q: str) -> Optional[Intent]:
    match = PERCENT_RE.search(q)
    if not match:
        return None
    percent = int(match.group(1))
    if has_any(DINING_WORDS)(q):
        return SavingsProjectionQuery(category="Food", percent=percent)
    if has_any(SHOPPING_WORDS)(q):
        return SavingsProjectionQuery(category="Shopping", percent=percent)
    return None


# (block keywords, builder); a block whose builder returns None falls through
RULES: List[Tuple[Callable[[str], bool], Callable[[str], Optional[Intent]]]] = [
    (has_any(SAVE_WORDS), _first(
        _when(MORE_WORDS, SavingsAnalysis()),
        _when(GOAL_WORDS, SavingsGoal()),
        _always(SavingsGeneral()),
    )),
    (has_any(TOP_WORDS), _first(
        _when(EXPENSE_NOUNS, TopExpense()),
        _when(CATEGORY_WORDS, TopCategory()),
    )),
    (has_any(OVERSPEND_WORDS), _first(
        _when(FOOD_WORDS, OverspendCategory(category="Food")),
        _when(SHOPPING_WORDS, OverspendCategory(category="Shopping")),
        _always(OverspendAnalysis()),
    )),
    (has_any(INVEST_WORDS), _investment),
    (has_any(CUT_WORDS), _projection),
    (has_any(INCOME_WORDS), _always(IncomeAnalysis())),
    (has_any(SPEND_WORDS), _always(ExpenseAnalysis())),
    (has_any(ADVICE_WORDS), _always(FinancialAdvice())),
]


def detect_intent(query: str) -> Intent:
    q = query.lower()
    for matches, build in RULES:
        if not matches(q):
            continue
        intent = build(q)
        if intent is not None:
            return intent
    return Unknown()
