"""Collection-style repository over one SQLite table."""

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping

from policy_ledger.core.errors import DuplicateKeyError
from policy_ledger.models.query import Query
from policy_ledger.repositories.db_pool import INTEGRITY_ERRORS, ThreadLocalConnection


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def duplicate_field(error: Exception) -> str:
    """Extract the column(s) from ``UNIQUE constraint failed: table.col`` messages."""
    message = str(error)
    if ":" not in message:
        return "unknown"
    targets = message.split(":", 1)[1].split(",")
    return ",".join(target.strip().rsplit(".", 1)[-1] for target in targets)


class DocumentRepository:
    """Generic create/read/update/delete plus filtered, paginated listing.

    Subclasses declare the table, its writable columns, the columns searched by
    ``Query.search``, the column used by ``Query.date_from``/``date_to``, and
    which columns hold decimals, dates, booleans, or JSON lists.
    """

    table: str = ""
    columns: tuple[str, ...] = ()
    search_fields: tuple[str, ...] = ()
    date_field: str | None = None
    order_by: str = "id DESC"
    decimal_fields: frozenset[str] = frozenset()
    date_fields: frozenset[str] = frozenset()
    bool_fields: frozenset[str] = frozenset()
    json_fields: frozenset[str] = frozenset()

    def __init__(self, pool: ThreadLocalConnection):
        self._pool = pool

    def transaction(self):
        """Group writes across repositories sharing this pool into one commit."""
        return self._pool.transaction()

    @property
    def _filterable(self) -> frozenset[str]:
        return frozenset(self.columns) | {"id"}

    def _encode_value(self, value: Any) -> Any:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, (list, tuple)):
            return json.dumps(list(value), ensure_ascii=False)
        return value

    def _encode(self, data: Mapping[str, Any]) -> dict[str, Any]:
        unknown = set(data) - set(self.columns)
        if unknown:
            raise KeyError(f"Unknown {self.table} columns: {', '.join(sorted(unknown))}")
        return {key: self._encode_value(value) for key, value in data.items()}

    def _decode(self, row: Mapping[str, Any]) -> dict[str, Any]:
        record = dict(row)
        for key, value in record.items():
            if value is None:
                continue
            if key in self.decimal_fields:
                record[key] = Decimal(value)
            elif key in self.date_fields:
                record[key] = date.fromisoformat(value)
            elif key in self.bool_fields:
                record[key] = bool(value)
            elif key in self.json_fields:
                record[key] = json.loads(value)
        return record

    def _where(self, query: Query) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []

        for key, value in query.filters.items():
            if key not in self._filterable:
                raise KeyError(f"Unsupported {self.table} filter: {key}")
            if value is None:
                clauses.append(f"{key} IS NULL")
            else:
                clauses.append(f"{key} = ?")
                params.append(self._encode_value(value))

        term = query.search.strip().lower()
        if term and self.search_fields:
            pattern = f"%{_escape_like(term)}%"
            ors = [f"LOWER(COALESCE({field}, '')) LIKE ? ESCAPE '\\'" for field in self.search_fields]
            clauses.append("(" + " OR ".join(ors) + ")")
            params.extend([pattern] * len(self.search_fields))

        if self.date_field and query.date_from:
            clauses.append(f"{self.date_field} >= ?")
            params.append(query.date_from.isoformat())
        if self.date_field and query.date_to:
            clauses.append(f"{self.date_field} <= ?")
            params.append(query.date_to.isoformat())

        where_sql = "WHERE " + " AND ".join(clauses) if clauses else ""
        return where_sql, params

    def insert(self, data: Mapping[str, Any]) -> int:
        """Insert a record and return its new id; unique violations raise DuplicateKeyError."""
        encoded = self._encode(data)
        names = ", ".join(encoded)
        marks = ", ".join("?" for _ in encoded)
        try:
            cursor = self._pool.execute(
                f"INSERT INTO {self.table} ({names}) VALUES ({marks})",
                tuple(encoded.values()),
            )
        except INTEGRITY_ERRORS as error:
            raise DuplicateKeyError(duplicate_field(error)) from error
        return int(cursor.lastrowid)

    def update(self, record_id: int, data: Mapping[str, Any]) -> int:
        """Apply a partial update and return the affected row count."""
        encoded = self._encode(data)
        if not encoded:
            return 0
        assignments = ", ".join(f"{key} = ?" for key in encoded)
        try:
            cursor = self._pool.execute(
                f"UPDATE {self.table} SET {assignments} WHERE id = ?",
                (*encoded.values(), record_id),
            )
        except INTEGRITY_ERRORS as error:
            raise DuplicateKeyError(duplicate_field(error)) from error
        return cursor.rowcount

    def delete(self, record_id: int) -> int:
        cursor = self._pool.execute(f"DELETE FROM {self.table} WHERE id = ?", (record_id,))
        return cursor.rowcount

    def get(self, record_id: int) -> dict[str, Any] | None:
        row = self._pool.fetchone(f"SELECT * FROM {self.table} WHERE id = ?", (record_id,))
        return self._decode(row) if row else None

    def get_many(self, record_ids: Iterable[int]) -> dict[int, dict[str, Any]]:
        """Batch-fetch records by id, keyed by id."""
        ids = sorted({record_id for record_id in record_ids if record_id is not None})
        if not ids:
            return {}
        marks = ", ".join("?" for _ in ids)
        rows = self._pool.fetchall(
            f"SELECT * FROM {self.table} WHERE id IN ({marks})",
            tuple(ids),
        )
        return {row["id"]: self._decode(row) for row in rows}

    def find_one(self, **filters: Any) -> dict[str, Any] | None:
        where_sql, params = self._where(Query(filters=filters))
        row = self._pool.fetchone(
            f"SELECT * FROM {self.table} {where_sql} ORDER BY id LIMIT 1",
            tuple(params),
        )
        return self._decode(row) if row else None

    def exists(self, exclude_id: int | None = None, **filters: Any) -> bool:
        """Check for a matching record, optionally ignoring one id (for updates)."""
        where_sql, params = self._where(Query(filters=filters))
        if exclude_id is not None:
            where_sql = f"{where_sql} AND id != ?" if where_sql else "WHERE id != ?"
            params.append(exclude_id)
        row = self._pool.fetchone(
            f"SELECT 1 FROM {self.table} {where_sql} LIMIT 1",
            tuple(params),
        )
        return row is not None

    def count(self, query: Query | None = None) -> int:
        where_sql, params = self._where(query or Query())
        return int(self._pool.fetchvalue(f"SELECT COUNT(*) FROM {self.table} {where_sql}", tuple(params), 0))

    def find(self, query: Query) -> tuple[list[dict[str, Any]], int]:
        """Return one page of matching records and the total match count."""
        where_sql, params = self._where(query)
        total = int(self._pool.fetchvalue(f"SELECT COUNT(*) FROM {self.table} {where_sql}", tuple(params), 0))
        rows = self._pool.fetchall(
            f"""
            SELECT * FROM {self.table}
            {where_sql}
            ORDER BY {self.order_by}
            LIMIT ? OFFSET ?
            """,
            tuple(params + [query.limit, query.offset]),
        )
        return [self._decode(row) for row in rows], total

    def sum_decimal(self, field: str, query: Query | None = None) -> Decimal:
        """Sum a decimal text column without going through floating point."""
        if field not in self.decimal_fields:
            raise KeyError(f"{field} is not a decimal column of {self.table}")
        where_sql, params = self._where(query or Query())
        rows = self._pool.fetchall(f"SELECT {field} FROM {self.table} {where_sql}", tuple(params))
        return sum((Decimal(row[0]) for row in rows if row[0] is not None), Decimal("0"))
