"""Record stores consumed by the engines.

Records are plain dicts keyed by ``id``. Instants are ISO-8601 strings, so a
``range_query`` over ``date`` is an ordered string comparison. Every engine
receives its store handle explicitly; there is no module-level database.
"""
import copy
import hashlib
import json
import logging
import re
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ledger.domain import ACHIEVEMENTS, BUDGETS, TRANSACTIONS, USER_STATS

logger = logging.getLogger(__name__)

STORES = (TRANSACTIONS, BUDGETS, ACHIEVEMENTS, USER_STATS)

Record = Dict[str, Any]

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class StorageError(Exception):
    pass


class Store(ABC):
    """Async record store. Lifecycle: open -> operate -> close."""

    async def open(self) -> "Store":
        return self

    async def close(self) -> None:
        pass

    async def __aenter__(self) -> "Store":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @abstractmethod
    async def list_all(self, store: str) -> List[Record]:
        pass

    @abstractmethod
    async def get(self, store: str, record_id: str) -> Optional[Record]:
        pass

    @abstractmethod
    async def insert(self, store: str, record: Record) -> str:
        pass

    async def insert_many(self, store: str, records: Iterable[Record]) -> List[str]:
        return [await self.insert(store, r) for r in records]

    @abstractmethod
    async def update(self, store: str, record_id: str, changes: Record) -> bool:
        """Merge ``changes`` into an existing record. False if the id is absent."""

    @abstractmethod
    async def delete(self, store: str, record_id: str) -> None:
        pass

    @abstractmethod
    async def range_query(self, store: str, field: str, lo: Any, hi: Any) -> List[Record]:
        """Records with ``lo <= record[field] <= hi``, ordered by ``field``."""

    @abstractmethod
    async def clear(self, store: str) -> None:
        pass


def _check_store(store: str) -> None:
    if store not in STORES:
        raise StorageError(f"unknown store: {store}")


def _check_field(field: str) -> None:
    if not _FIELD_RE.match(field):
        raise StorageError(f"invalid field name: {field}")


class MemoryStore(Store):
    def __init__(self):
        self._data: Dict[str, Dict[str, Record]] = {name: {} for name in STORES}

    async def list_all(self, store: str) -> List[Record]:
        _check_store(store)
        return [copy.deepcopy(r) for r in self._data[store].values()]

    async def get(self, store: str, record_id: str) -> Optional[Record]:
        _check_store(store)
        record = self._data[store].get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def insert(self, store: str, record: Record) -> str:
        _check_store(store)
        record_id = record.get("id")
        if not record_id:
            raise StorageError("record has no id")
        if record_id in self._data[store]:
            raise StorageError(f"duplicate id {record_id} in {store}")
        self._data[store][record_id] = copy.deepcopy(record)
        return record_id

    async def update(self, store: str, record_id: str, changes: Record) -> bool:
        _check_store(store)
        record = self._data[store].get(record_id)
        if record is None:
            return False
        record.update(copy.deepcopy(changes))
        record["id"] = record_id
        return True

    async def delete(self, store: str, record_id: str) -> None:
        _check_store(store)
        self._data[store].pop(record_id, None)

    async def range_query(self, store: str, field: str, lo: Any, hi: Any) -> List[Record]:
        _check_store(store)
        _check_field(field)
        hits = [
            r for r in self._data[store].values()
            if r.get(field) is not None and lo <= r[field] <= hi
        ]
        hits.sort(key=lambda r: r[field])
        return [copy.deepcopy(r) for r in hits]

    async def clear(self, store: str) -> None:
        _check_store(store)
        self._data[store].clear()


SCHEMA_SQL = "\n".join(
    f"CREATE TABLE IF NOT EXISTS {name} (id TEXT PRIMARY KEY, data TEXT NOT NULL);"
    for name in STORES
) + "\nCREATE INDEX IF NOT EXISTS ix_transactions_date ON transactions (json_extract(data, '$.date'));"

SCHEMA_HASH = hashlib.sha256(SCHEMA_SQL.encode("utf-8")).hexdigest()


class SQLiteStore(Store):
    """Single-file store: one table per record kind, one JSON document per row."""

    def __init__(self, db_path: Union[str, Path], reset_on_schema_change: bool = False):
        self.db_path = str(db_path)
        self.reset_on_schema_change = reset_on_schema_change
        self.conn: Optional[sqlite3.Connection] = None

    async def open(self) -> "SQLiteStore":
        if self.conn is None:
            self.conn = sqlite3.connect(self.db_path)
            self.conn.row_factory = sqlite3.Row
            self._init_schema()
        return self

    async def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def _init_schema(self) -> None:
        self.conn.execute("CREATE TABLE IF NOT EXISTS schema_meta (key TEXT PRIMARY KEY, value TEXT)")
        row = self.conn.execute("SELECT value FROM schema_meta WHERE key = 'schema_hash'").fetchone()
        stored = row["value"] if row else None
        if stored is not None and stored != SCHEMA_HASH:
            if self.reset_on_schema_change:
                logger.warning("Schema changed, resetting %s", self.db_path)
                for name in STORES:
                    self.conn.execute(f"DROP TABLE IF EXISTS {name}")
            else:
                logger.warning("Schema hash mismatch in %s; keeping existing data", self.db_path)
        self.conn.executescript(SCHEMA_SQL)
        self.conn.execute(
            "INSERT OR REPLACE INTO schema_meta (key, value) VALUES ('schema_hash', ?)", (SCHEMA_HASH,)
        )
        self.conn.commit()

    def _db(self) -> sqlite3.Connection:
        if self.conn is None:
            raise StorageError("store is not open")
        return self.conn

    async def list_all(self, store: str) -> List[Record]:
        _check_store(store)
        rows = self._db().execute(f"SELECT data FROM {store} ORDER BY rowid").fetchall()
        return [json.loads(r["data"]) for r in rows]

    async def get(self, store: str, record_id: str) -> Optional[Record]:
        _check_store(store)
        row = self._db().execute(f"SELECT data FROM {store} WHERE id = ?", (record_id,)).fetchone()
        return json.loads(row["data"]) if row else None

    async def insert(self, store: str, record: Record) -> str:
        ids = await self.insert_many(store, [record])
        return ids[0]

    async def insert_many(self, store: str, records: Iterable[Record]) -> List[str]:
        _check_store(store)
        rows = []
        for record in records:
            if not record.get("id"):
                raise StorageError("record has no id")
            rows.append((record["id"], json.dumps(record)))
        db = self._db()
        try:
            with db:
                db.executemany(f"INSERT INTO {store} (id, data) VALUES (?, ?)", rows)
        except sqlite3.IntegrityError as exc:
            raise StorageError(f"duplicate id in {store}") from exc
        return [r[0] for r in rows]

    async def update(self, store: str, record_id: str, changes: Record) -> bool:
        record = await self.get(store, record_id)
        if record is None:
            return False
        record.update(changes)
        record["id"] = record_id
        db = self._db()
        with db:
            db.execute(f"UPDATE {store} SET data = ? WHERE id = ?", (json.dumps(record), record_id))
        return True

    async def delete(self, store: str, record_id: str) -> None:
        _check_store(store)
        db = self._db()
        with db:
            db.execute(f"DELETE FROM {store} WHERE id = ?", (record_id,))

    async def range_query(self, store: str, field: str, lo: Any, hi: Any) -> List[Record]:
        _check_store(store)
        _check_field(field)
        # field is checked above, inlined so the date expression index applies
        expr = f"json_extract(data, '$.{field}')"
        rows = self._db().execute(
            f"SELECT data FROM {store} WHERE {expr} BETWEEN ? AND ? ORDER BY {expr}, rowid",
            (lo, hi),
        ).fetchall()
        return [json.loads(r["data"]) for r in rows]

    async def clear(self, store: str) -> None:
        _check_store(store)
        db = self._db()
        with db:
            db.execute(f"DELETE FROM {store}")
