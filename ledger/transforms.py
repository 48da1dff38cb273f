from dataclasses import asdict, fields
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple, Type, TypeVar
from uuid import uuid4

from ledger.domain import EXPENSE, INCOME, SAFE, Budget, Transaction
from ledger.filters import shift_month, to_month_start

T = TypeVar("T")

DATETIME_FIELDS = ("date", "created_at", "updated_at", "unlocked_at")


def new_id() -> str:
    return uuid4().hex


def to_iso(dt: datetime) -> str:
    return dt.isoformat(timespec="microseconds")


def from_iso(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    dt = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if dt.tzinfo is not None:
        # the ledger works in naive local time
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def to_record(obj: Any) -> Dict[str, Any]:
    """Dataclass -> plain dict with ISO strings for instants."""
    record = asdict(obj)
    for key in DATETIME_FIELDS:
        if isinstance(record.get(key), datetime):
            record[key] = to_iso(record[key])
    return record


def from_record(cls: Type[T], record: Dict[str, Any]) -> T:
    names = {f.name for f in fields(cls)}
    data = {k: v for k, v in record.items() if k in names}
    for key in DATETIME_FIELDS:
        if key in data:
            data[key] = from_iso(data[key])
    return cls(**data)


def demo_transactions(today: datetime) -> Tuple[Transaction, ...]:
    start = to_month_start(today)
    prev = shift_month(start, -1)
    prev2 = shift_month(start, -2)

    def tx(tx_type: str, amount: float, category: str, base: datetime, day: int, note: str) -> Transaction:
        return Transaction(new_id(), tx_type, amount, category, base + timedelta(days=day), note)

    return (
        tx(INCOME, 50000, "Other", start, 1, "Salary"),
        tx(EXPENSE, 1200, "Food", start, 2, "Lunch"),
        tx(EXPENSE, 2500, "Groceries", start, 3, "Grocery shopping"),
        tx(INCOME, 5000, "Other", start, 5, "Freelance work"),
        tx(EXPENSE, 3000, "Travel", start, 6, "Cab fare"),
        tx(EXPENSE, 15000, "Rent", start, 1, "Monthly rent"),
        tx(EXPENSE, 800, "Bills", start, 7, "Electricity bill"),
        tx(EXPENSE, 2000, "Shopping", start, 8, "Clothing"),
        tx(EXPENSE, 1500, "Health", start, 9, "Pharmacy"),
        tx(EXPENSE, 1200, "Entertainment", start, 10, "Movie tickets"),
        tx(INCOME, 48000, "Other", prev, 1, "Salary"),
        tx(EXPENSE, 1100, "Food", prev, 2, "Lunch"),
        tx(EXPENSE, 2300, "Groceries", prev, 3, "Grocery shopping"),
        tx(EXPENSE, 14000, "Rent", prev, 1, "Monthly rent"),
        tx(EXPENSE, 1800, "Shopping", prev, 8, "Clothing"),
        tx(INCOME, 52000, "Other", prev2, 1, "Salary"),
        tx(EXPENSE, 1300, "Food", prev2, 2, "Lunch"),
        tx(EXPENSE, 16000, "Rent", prev2, 1, "Monthly rent"),
        tx(EXPENSE, 2500, "Travel", prev2, 15, "Vacation"),
    )


def demo_budgets(today: datetime) -> Tuple[Budget, ...]:
    # derived fields start clean; the next refresh fills them from the ledger
    start = to_month_start(today)
    return tuple(
        Budget(new_id(), category, limit, 0, limit, 0, SAFE, start, start)
        for category, limit in (("Food", 8000), ("Travel", 5000), ("Shopping", 3000))
    )
