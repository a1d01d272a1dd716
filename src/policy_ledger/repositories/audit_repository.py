"""Append-only audit log repository."""

from __future__ import annotations

import json
from datetime import date
from typing import Any

from policy_ledger.core.dates import utc_now
from policy_ledger.repositories.db_pool import ThreadLocalConnection

AUDIT_ACTIONS = ("CREATE", "UPDATE", "DELETE")


class AuditRepository:
    """Persists activity entries for every successful mutation.

    Entries are never updated or deleted.
    """

    def __init__(self, pool: ThreadLocalConnection):
        self._pool = pool

    def record(
        self,
        actor_id: str,
        action: str,
        entity_type: str,
        entity_id: int | None,
        summary: str,
        details: dict[str, Any] | None = None,
    ) -> int:
        """Insert an audit log record and return its id."""
        if action not in AUDIT_ACTIONS:
            raise ValueError(f"Unsupported audit action: {action}")
        cursor = self._pool.execute(
            """
            INSERT INTO audit_logs (actor_id, action, entity_type, entity_id, summary, details, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                actor_id,
                action,
                entity_type,
                entity_id,
                summary,
                json.dumps(details, ensure_ascii=False, default=str) if details is not None else None,
                utc_now().isoformat(),
            ),
        )
        return int(cursor.lastrowid)

    def list_logs(
        self,
        limit: int = 50,
        offset: int = 0,
        actor_id: str | None = None,
        action: str | None = None,
        entity_type: str | None = None,
        entity_id: int | None = None,
        keyword: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> tuple[list[dict[str, Any]], int]:
        """List audit logs with optional filters, newest first, with total count."""
        where_clauses: list[str] = []
        params: list[Any] = []

        if actor_id:
            where_clauses.append("actor_id = ?")
            params.append(actor_id)
        if action:
            where_clauses.append("action = ?")
            params.append(action)
        if entity_type:
            where_clauses.append("entity_type = ?")
            params.append(entity_type)
        if entity_id is not None:
            where_clauses.append("entity_id = ?")
            params.append(entity_id)
        if keyword:
            where_clauses.append("(summary LIKE ? OR details LIKE ?)")
            params.extend([f"%{keyword.strip()}%"] * 2)
        if date_from:
            where_clauses.append("date(created_at) >= date(?)")
            params.append(date_from.isoformat())
        if date_to:
            where_clauses.append("date(created_at) <= date(?)")
            params.append(date_to.isoformat())

        where_sql = ""
        if where_clauses:
            where_sql = "WHERE " + " AND ".join(where_clauses)

        total = int(self._pool.fetchvalue(f"SELECT COUNT(*) FROM audit_logs {where_sql}", tuple(params), 0))
        rows = self._pool.fetchall(
            f"""
            SELECT id, actor_id, action, entity_type, entity_id, summary, details, created_at
            FROM audit_logs
            {where_sql}
            ORDER BY id DESC
            LIMIT ? OFFSET ?
            """,
            tuple(params + [limit, offset]),
        )
        logs = []
        for row in rows:
            entry = dict(row)
            entry["details"] = json.loads(entry["details"]) if entry["details"] else None
            logs.append(entry)
        return logs, total
