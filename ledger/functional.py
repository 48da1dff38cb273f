import math
from dataclasses import dataclass
from datetime import date as date_cls, datetime
from typing import Any, Generic, Mapping, TypeVar, Union

from ledger.domain import CATEGORIES, MAX_NOTE_LENGTH, TX_TYPES, Transaction
from ledger.transforms import from_iso

T = TypeVar('T')
E = TypeVar('E')


@dataclass(frozen=True)
class Right(Generic[T]):
    value: T

    def is_left(self) -> bool:
        return False

    def get_or_else(self, default: Any) -> T:
        return self.value

    def get_error(self):
        raise ValueError("Cannot get error from Right")


@dataclass(frozen=True)
class Left(Generic[E]):
    error: E

    def is_left(self) -> bool:
        return True

    def get_or_else(self, default: Any) -> Any:
        return default

    def get_error(self) -> E:
        return self.error


Either = Union[Left[E], Right[T]]


def _invalid(field: str, message: str, value: Any) -> Left:
    return Left({"error": f"invalid_{field}", "field": field, "message": message, "value": value})


def validate_transaction(record_id: str, data: Mapping[str, Any]) -> Either[dict, Transaction]:
    """Check raw form/import input and build a Transaction from it.

    Amounts may arrive as strings (form fields, CSV cells) and are coerced.
    """
    tx_type = data.get("type")
    if tx_type not in TX_TYPES:
        return _invalid("type", f"Type must be one of {', '.join(TX_TYPES)}", tx_type)

    raw_amount = data.get("amount")
    try:
        amount = float(raw_amount)
    except (TypeError, ValueError):
        return _invalid("amount", "Amount must be a number", raw_amount)
    if not math.isfinite(amount) or amount <= 0:
        return _invalid("amount", "Amount must be greater than 0", raw_amount)

    category = data.get("category")
    if category not in CATEGORIES:
        return _invalid("category", f"Unknown category: {category}", category)

    raw_date = data.get("date")
    if isinstance(raw_date, date_cls) and not isinstance(raw_date, datetime):
        raw_date = datetime.combine(raw_date, datetime.min.time())
    try:
        date = from_iso(raw_date) if raw_date is not None else None
    except (TypeError, ValueError):
        date = None
    if not isinstance(date, datetime):
        return _invalid("date", "Invalid date", raw_date)

    note = data.get("note") or ""
    if len(note) > MAX_NOTE_LENGTH:
        return _invalid("note", f"Note must be at most {MAX_NOTE_LENGTH} characters", note)

    return Right(Transaction(record_id, tx_type, amount, category, date, note))
