"""Sequence counters backing generated identifiers."""

from __future__ import annotations

from typing import Protocol

from policy_ledger.repositories.db_pool import ThreadLocalConnection


class CounterStore(Protocol):
    """Hands out the next sequence number inside a bucket such as ``CLM-202403``."""

    def next_sequence(self, bucket_key: str) -> int: ...


class CountingCounterStore:
    """Derives the next sequence by counting identifiers already stored in a column.

    Two concurrent callers in the same bucket can read the same count and
    produce the same identifier; the unique index on the column rejects the
    second insert and the caller retries. An atomic counter table could replace
    this class without touching callers.
    """

    def __init__(self, pool: ThreadLocalConnection, table: str, column: str):
        self._pool = pool
        self._table = table
        self._column = column

    def next_sequence(self, bucket_key: str) -> int:
        escaped = bucket_key.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        count = self._pool.fetchvalue(
            f"SELECT COUNT(*) FROM {self._table} WHERE {self._column} LIKE ? ESCAPE '\\'",
            (f"{escaped}-%",),
            0,
        )
        return int(count) + 1
