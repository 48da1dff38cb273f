"""Fuzzy transaction search.

Every transaction is flattened into a few weighted text fields. A field counts
toward the score when its partial similarity to the query reaches
``MATCH_CUTOFF``; the transaction's score is the weighted sum over those fields.
Results are best-first, newest first among equal scores.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from rapidfuzz import fuzz, utils

from ledger.domain import TRANSACTIONS, Transaction
from ledger.store import Store
from ledger.transforms import from_record

logger = logging.getLogger(__name__)

SEARCH_FIELDS = (
    ("note", 0.4),
    ("category", 0.3),
    ("type", 0.2),
    ("amount", 0.1),
    ("date", 0.1),
)
MATCH_CUTOFF = 70
MIN_QUERY_LENGTH = 2
MAX_RESULTS = 50


def format_search_date(d: datetime) -> str:
    return f"{d:%B} {d.day}, {d.year}"


def format_search_amount(amount: float) -> str:
    return f"{amount:.2f}".rstrip("0").rstrip(".")


def searchable_fields(t: Transaction) -> Dict[str, str]:
    return {
        "note": t.note or "",
        "category": t.category,
        "type": t.type,
        "amount": format_search_amount(t.amount),
        "date": format_search_date(t.date),
    }


def score_fields(query: str, fields: Dict[str, str]) -> float:
    score = 0.0
    for name, weight in SEARCH_FIELDS:
        similarity = fuzz.partial_ratio(
            query, fields[name], processor=utils.default_process, score_cutoff=MATCH_CUTOFF
        )
        score += weight * similarity
    return score


class SearchIndex:
    """Searchable copies of the ledger, rebuilt on first use after ``invalidate``."""

    def __init__(self, store: Store):
        self.store = store
        self._entries: Optional[List[Tuple[Transaction, Dict[str, str]]]] = None

    def invalidate(self) -> None:
        self._entries = None

    async def _load(self) -> List[Tuple[Transaction, Dict[str, str]]]:
        if self._entries is None:
            trans = [from_record(Transaction, r) for r in await self.store.list_all(TRANSACTIONS)]
            self._entries = [(t, searchable_fields(t)) for t in trans]
            logger.debug("Search index rebuilt with %d transactions", len(self._entries))
        return self._entries

    async def search(self, query: str, limit: int = MAX_RESULTS) -> List[Transaction]:
        query = query.strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []

        hits = []
        for t, fields in await self._load():
            score = score_fields(query, fields)
            if score > 0:
                hits.append((score, t))
        hits.sort(key=lambda hit: (hit[0], hit[1].date), reverse=True)
        return [t for _, t in hits[:limit]]
