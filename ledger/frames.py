from dataclasses import asdict
from typing import Iterable

import pandas as pd

from ledger.domain import Budget, CategorySum, MonthlyTotals, Transaction

TRANSACTION_COLUMNS = ["id", "date", "type", "category", "amount", "note"]


def transactions_to_frame(trans: Iterable[Transaction]) -> pd.DataFrame:
    df = pd.DataFrame([asdict(t) for t in trans], columns=TRANSACTION_COLUMNS)
    if not df.empty:
        df["date"] = pd.to_datetime(df["date"], errors="coerce")
        df = df.sort_values("date", ascending=False).reset_index(drop=True)
    return df


def monthly_totals_to_frame(totals: Iterable[MonthlyTotals]) -> pd.DataFrame:
    df = pd.DataFrame([asdict(m) for m in totals], columns=["month", "income", "expense"])
    df["savings"] = df["income"] - df["expense"]
    return df


def category_sums_to_frame(sums: Iterable[CategorySum]) -> pd.DataFrame:
    df = pd.DataFrame([asdict(s) for s in sums], columns=["name", "value"])
    return df.sort_values("value", ascending=False).reset_index(drop=True)


def budgets_to_frame(budgets: Iterable[Budget]) -> pd.DataFrame:
    rows = [
        {
            "Category": b.category,
            "Limit": b.monthly_limit,
            "Spent": b.spent,
            "Remaining": b.remaining,
            "Progress": min(100, b.percentage),
            "Status": b.status,
        }
        for b in budgets
    ]
    return pd.DataFrame(rows, columns=["Category", "Limit", "Spent", "Remaining", "Progress", "Status"])
