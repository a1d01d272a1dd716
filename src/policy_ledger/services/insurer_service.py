"""Insurer catalog service."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Mapping

from policy_ledger.core.access import AccessScoper, Requester
from policy_ledger.core.dates import utc_now
from policy_ledger.core.errors import ConflictError, NotFoundError, ValidationError
from policy_ledger.core.validation import (
    validate_code,
    validate_email,
    validate_optional_text,
    validate_phone,
    validate_required_text,
)
from policy_ledger.models.insurance import InsurerCreate, InsurerView
from policy_ledger.models.query import Page, Query
from policy_ledger.repositories.audit_repository import AuditRepository
from policy_ledger.repositories.insurer_repository import InsurerRepository
from policy_ledger.repositories.policy_repository import PolicyRepository
from policy_ledger.services.audit_support import snapshot, update_details

logger = logging.getLogger(__name__)

ENTITY = "insurer"
UPDATABLE_FIELDS = frozenset(
    {"name", "code", "contact_person", "phone", "email", "address", "notes", "is_active"}
)


class InsurerService:
    """Coordinates insurer use cases."""

    def __init__(
        self,
        insurer_repo: InsurerRepository,
        policy_repo: PolicyRepository,
        audit_repo: AuditRepository,
        scoper: AccessScoper,
    ):
        self._insurer_repo = insurer_repo
        self._policy_repo = policy_repo
        self._audit_repo = audit_repo
        self._scoper = scoper

    @staticmethod
    def _validate(data: Mapping[str, Any]) -> dict[str, Any]:
        """Validate the fields present in ``data`` and return normalized values."""
        unknown = set(data) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"unknown fields: {', '.join(sorted(unknown))}")
        cleaned: dict[str, Any] = {}
        if "name" in data:
            cleaned["name"] = validate_required_text(data["name"], "name", 2, 100)
        if "code" in data:
            cleaned["code"] = validate_code(data["code"])
        if "contact_person" in data:
            cleaned["contact_person"] = validate_optional_text(data["contact_person"], "contact_person", 100)
        if "phone" in data:
            cleaned["phone"] = validate_phone(data["phone"])
        if "email" in data:
            cleaned["email"] = validate_email(data["email"])
        if "address" in data:
            cleaned["address"] = validate_optional_text(data["address"], "address", 500)
        if "notes" in data:
            cleaned["notes"] = validate_optional_text(data["notes"], "notes", 1000)
        if "is_active" in data:
            if not isinstance(data["is_active"], bool):
                raise ValidationError("must be true or false", field="is_active")
            cleaned["is_active"] = data["is_active"]
        return cleaned

    def _ensure_unique(self, cleaned: Mapping[str, Any], exclude_id: int | None = None) -> None:
        if "name" in cleaned and self._insurer_repo.exists(exclude_id=exclude_id, name=cleaned["name"]):
            raise ConflictError("Insurer with this name already exists", details={"field": "name"})
        code = cleaned.get("code")
        if code and self._insurer_repo.exists(exclude_id=exclude_id, code=code):
            raise ConflictError("Insurer with this code already exists", details={"field": "code"})

    @staticmethod
    def _to_view(row: Mapping[str, Any]) -> InsurerView:
        return InsurerView(
            id=row["id"],
            name=row["name"],
            code=row["code"],
            contact_person=row["contact_person"],
            phone=row["phone"],
            email=row["email"],
            address=row["address"],
            notes=row["notes"],
            is_active=row["is_active"],
            created_by=row["created_by"],
            updated_by=row["updated_by"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _require(self, insurer_id: int) -> dict[str, Any]:
        row = self._insurer_repo.get(insurer_id)
        if row is None:
            raise NotFoundError(ENTITY, insurer_id)
        return row

    def create(self, payload: InsurerCreate, requester: Requester) -> InsurerView:
        """Validate, persist, and audit insurer creation."""
        self._scoper.ensure_privileged(requester, "create insurers")
        cleaned = self._validate(asdict(payload))
        self._ensure_unique(cleaned)

        now = utc_now().isoformat()
        insurer_id = self._insurer_repo.insert(
            {**cleaned, "created_by": requester.user_id, "created_at": now, "updated_at": now}
        )
        row = self._require(insurer_id)
        self._audit_repo.record(
            requester.user_id,
            "CREATE",
            ENTITY,
            insurer_id,
            f"Created insurer {row['name']}",
            {"after": snapshot(row)},
        )
        logger.info("Insurer %s created by %s", insurer_id, requester.user_id)
        return self._to_view(row)

    def update(self, insurer_id: int, changes: Mapping[str, Any], requester: Requester) -> InsurerView:
        """Apply a partial update and write an audit log with the diff."""
        self._scoper.ensure_privileged(requester, "update insurers")
        before = self._require(insurer_id)
        cleaned = self._validate(changes)
        self._ensure_unique(cleaned, exclude_id=insurer_id)

        self._insurer_repo.update(
            insurer_id,
            {**cleaned, "updated_by": requester.user_id, "updated_at": utc_now().isoformat()},
        )
        after = self._require(insurer_id)
        self._audit_repo.record(
            requester.user_id,
            "UPDATE",
            ENTITY,
            insurer_id,
            f"Updated insurer {after['name']}",
            update_details(before, after),
        )
        logger.info("Insurer %s updated by %s", insurer_id, requester.user_id)
        return self._to_view(after)

    def delete(self, insurer_id: int, requester: Requester) -> None:
        """Delete an insurer that no policy references."""
        self._scoper.ensure_privileged(requester, "delete insurers")
        before = self._require(insurer_id)
        if self._policy_repo.exists(insurer_id=insurer_id):
            raise ConflictError(
                "Cannot delete insurer with existing policies",
                details={"dependents": "policies"},
            )
        self._insurer_repo.delete(insurer_id)
        self._audit_repo.record(
            requester.user_id,
            "DELETE",
            ENTITY,
            insurer_id,
            f"Deleted insurer {before['name']}",
            {"before": snapshot(before)},
        )
        logger.info("Insurer %s deleted by %s", insurer_id, requester.user_id)

    def get(self, insurer_id: int, requester: Requester) -> InsurerView:
        row = self._scoper.ensure_visible(self._insurer_repo.get(insurer_id), requester, ENTITY, insurer_id)
        return self._to_view(row)

    def find_by_code(self, code: str, requester: Requester) -> InsurerView:
        row = self._insurer_repo.find_by_code(code.strip().upper())
        return self._to_view(self._scoper.ensure_visible(row, requester, ENTITY, code))

    def list(self, query: Query, requester: Requester) -> Page[InsurerView]:
        """Search name/code/contact fields; ``is_active`` may be passed as a filter."""
        scoped = self._scoper.scope(query, requester, ENTITY)
        rows, total = self._insurer_repo.find(scoped)
        return Page([self._to_view(row) for row in rows], total, query.limit, query.offset)

    def list_active(self) -> list[InsurerView]:
        """Active insurers for selection lists."""
        return [self._to_view(row) for row in self._insurer_repo.list_active()]
