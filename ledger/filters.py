from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable, List, Optional, Tuple, Union

from ledger.domain import EXPENSE, INCOME, Transaction

MonthRef = Union[str, date, datetime, None]


def to_month_start(ref: MonthRef, now: Callable[[], datetime] = datetime.now) -> datetime:
    """First instant of the month containing ``ref``.

    ``ref`` may be a "YYYY-MM" (or longer ISO) string, a date/datetime, or None
    for the current month.
    """
    if ref is None:
        ref = now()
    if isinstance(ref, str):
        ref = datetime.strptime(ref[:7], "%Y-%m")
    return datetime(ref.year, ref.month, 1)


def shift_month(start: datetime, months: int) -> datetime:
    idx = start.year * 12 + (start.month - 1) + months
    return datetime(idx // 12, idx % 12 + 1, 1)


def month_window(ref: MonthRef, now: Callable[[], datetime] = datetime.now) -> tuple[datetime, datetime]:
    # both edges are inclusive: [first instant, last instant]
    start = to_month_start(ref, now)
    end = shift_month(start, 1) - timedelta(microseconds=1)
    return start, end


def month_key(d: Union[date, datetime]) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def day_key(d: Union[date, datetime]) -> str:
    return d.strftime("%Y-%m-%d")


def by_category(*categories: str):
    def _filter(t: Transaction) -> bool:
        return t.category in categories

    return _filter


def by_type(*tx_types: str):
    def _filter(t: Transaction) -> bool:
        return t.type in tx_types

    return _filter


def by_date_range(start: datetime, end: datetime):
    def _filter(t: Transaction) -> bool:
        return start <= t.date <= end

    return _filter


@dataclass(frozen=True)
class TransactionFilter:
    """Transactions-page criteria. Empty tuples and None bounds match everything."""
    types: Tuple[str, ...] = ()
    categories: Tuple[str, ...] = ()
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    def active_count(self) -> int:
        bounds = sum(1 for d in (self.date_from, self.date_to) if d is not None)
        return bounds + len(self.types) + len(self.categories)

    def bounds(self) -> Tuple[datetime, datetime]:
        # whole days, both inclusive
        start = datetime.combine(self.date_from, time.min) if self.date_from else datetime.min
        end = datetime.combine(self.date_to, time.max) if self.date_to else datetime.max
        return start, end

    def predicates(self) -> List[Callable[[Transaction], bool]]:
        preds = []
        if self.types:
            preds.append(by_type(*self.types))
        if self.categories:
            preds.append(by_category(*self.categories))
        if self.date_from or self.date_to:
            preds.append(by_date_range(*self.bounds()))
        return preds


def apply_filter(trans: Iterable[Transaction], criteria: TransactionFilter) -> List[Transaction]:
    preds = criteria.predicates()
    return [t for t in trans if all(p(t) for p in preds)]


def total(trans: Iterable[Transaction], tx_type: str) -> float:
    return sum(t.amount for t in trans if t.type == tx_type)


def income_total(trans: Iterable[Transaction]) -> float:
    return total(trans, INCOME)


def expense_total(trans: Iterable[Transaction]) -> float:
    return total(trans, EXPENSE)
