from dataclasses import dataclass
from datetime import datetime
from typing import Optional

CATEGORIES = (
    "Food",
    "Travel",
    "Rent",
    "Shopping",
    "Bills",
    "Health",
    "Entertainment",
    "Groceries",
    "Other",
)

INCOME = "income"
EXPENSE = "expense"
TX_TYPES = (INCOME, EXPENSE)

SAFE = "safe"
WARNING = "warning"
EXCEEDED = "exceeded"

MAX_NOTE_LENGTH = 120

# store names
TRANSACTIONS = "transactions"
BUDGETS = "budgets"
ACHIEVEMENTS = "achievements"
USER_STATS = "user_stats"

USER_STATS_ID = "main"


@dataclass(frozen=True)
class Transaction:
    id: str
    type: str          # "income" | "expense"
    amount: float      # always positive, sign comes from type
    category: str
    date: datetime
    note: str = ""


@dataclass(frozen=True)
class Budget:
    id: str
    category: str
    monthly_limit: float
    spent: float
    remaining: float
    percentage: float
    status: str        # "safe" | "warning" | "exceeded"
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Achievement:
    id: str
    title: str
    description: str
    icon: str
    type: str          # "milestone" | "streak" | "savings" | "spending"
    requirement: float
    points: int
    progress: float = 0
    completed: bool = False
    unlocked_at: Optional[datetime] = None


@dataclass(frozen=True)
class UserStats:
    id: str = USER_STATS_ID
    total_points: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    financial_health_score: int = 0
    total_savings: float = 0
    monthly_goal_progress: float = 0
    achievements_unlocked: int = 0
    level: int = 1
    next_level_points: int = 100


@dataclass(frozen=True)
class MonthlyTotals:
    month: str         # "YYYY-MM"
    income: float
    expense: float


@dataclass(frozen=True)
class CategorySum:
    name: str
    value: float


@dataclass(frozen=True)
class MonthlyStats:
    income: float
    expenses: float
    savings: float
    top_category: Optional[str]
    top_category_amount: float
