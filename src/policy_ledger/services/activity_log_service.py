"""Read side of the audit log for the activity viewer."""

from __future__ import annotations

from datetime import date
from typing import Any

from policy_ledger.core.access import Requester
from policy_ledger.core.validation import validate_choice
from policy_ledger.models.query import Page
from policy_ledger.repositories.audit_repository import AUDIT_ACTIONS, AuditRepository


class ActivityLogService:
    def __init__(self, audit_repo: AuditRepository):
        self._audit_repo = audit_repo

    def list_logs(
        self,
        requester: Requester,
        limit: int = 50,
        offset: int = 0,
        actor_id: str | None = None,
        action: str | None = None,
        entity_type: str | None = None,
        entity_id: int | None = None,
        keyword: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> Page[dict[str, Any]]:
        """Privileged users see every entry; others only their own."""
        if action:
            action = validate_choice(action.upper(), "action", AUDIT_ACTIONS)
        if not requester.is_privileged:
            actor_id = requester.user_id
        logs, total = self._audit_repo.list_logs(
            limit=limit,
            offset=offset,
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            keyword=keyword,
            date_from=date_from,
            date_to=date_to,
        )
        return Page(logs, total, limit, offset)
