class LedgerError(Exception):
    """Base class for recoverable, per-operation ledger errors."""


class ValidationError(LedgerError):
    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message)
        self.errors = errors or []


class DuplicateBudgetError(LedgerError):
    def __init__(self, category: str):
        super().__init__(f"Budget for {category} already exists")
        self.category = category


class NotFoundError(LedgerError):
    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


class ComputationError(LedgerError):
    """Raised when a derived figure has no defined value (e.g. zero income)."""
