"""Snapshot and diff helpers for audit log details."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Mapping

AUDIT_EXCLUDED = frozenset({"created_at", "updated_at"})


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def snapshot(record: Mapping[str, Any] | None) -> dict[str, Any]:
    """JSON-safe copy of a stored record for audit details."""
    if not record:
        return {}
    return {key: _plain(value) for key, value in record.items() if key not in AUDIT_EXCLUDED}


def diff(before: Mapping[str, Any], after: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    """Return changed fields for audit logs."""
    changes: dict[str, dict[str, Any]] = {}
    for key in sorted(set(before) | set(after)):
        old = before.get(key)
        new = after.get(key)
        if old != new:
            changes[key] = {"before": old, "after": new}
    return changes


def update_details(before: Mapping[str, Any] | None, after: Mapping[str, Any] | None) -> dict[str, Any]:
    """Before/after snapshot plus the changed fields."""
    old = snapshot(before)
    new = snapshot(after)
    return {"before": old, "after": new, "changes": diff(old, new)}
