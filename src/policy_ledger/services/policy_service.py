"""Insurance product catalog service."""

from __future__ import annotations

import logging
from dataclasses import asdict, replace
from typing import Any, Mapping

from policy_ledger.core.access import AccessScoper, Requester
from policy_ledger.core.dates import PREMIUM_FREQUENCIES, utc_now
from policy_ledger.core.errors import ConflictError, NotFoundError, ValidationError
from policy_ledger.core.validation import (
    parse_id,
    validate_amount,
    validate_choice,
    validate_code,
    validate_int_range,
    validate_optional_amount,
    validate_optional_text,
    validate_required_text,
)
from policy_ledger.models.insurance import CURRENCIES, PolicyCreate, PolicyView
from policy_ledger.models.query import Page, Query
from policy_ledger.repositories.audit_repository import AuditRepository
from policy_ledger.repositories.customer_policy_repository import CustomerPolicyRepository
from policy_ledger.repositories.insurer_repository import InsurerRepository
from policy_ledger.repositories.policy_repository import PolicyRepository
from policy_ledger.services.audit_support import snapshot, update_details
from policy_ledger.services.enrichment import INSURER_PROJECTION, lookup, project

logger = logging.getLogger(__name__)

ENTITY = "policy"
UPDATABLE_FIELDS = frozenset(
    {
        "insurer_id",
        "name",
        "code",
        "premium_amount",
        "premium_frequency",
        "currency",
        "term_months",
        "min_cover_amount",
        "max_cover_amount",
        "active",
        "description",
        "coverage_details",
    }
)


class PolicyService:
    """Coordinates insurance product use cases."""

    def __init__(
        self,
        policy_repo: PolicyRepository,
        insurer_repo: InsurerRepository,
        binding_repo: CustomerPolicyRepository,
        audit_repo: AuditRepository,
        scoper: AccessScoper,
    ):
        self._policy_repo = policy_repo
        self._insurer_repo = insurer_repo
        self._binding_repo = binding_repo
        self._audit_repo = audit_repo
        self._scoper = scoper

    @staticmethod
    def _validate(data: Mapping[str, Any]) -> dict[str, Any]:
        unknown = set(data) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"unknown fields: {', '.join(sorted(unknown))}")
        cleaned: dict[str, Any] = {}
        if "insurer_id" in data:
            cleaned["insurer_id"] = parse_id(data["insurer_id"], "insurer_id")
        if "name" in data:
            cleaned["name"] = validate_required_text(data["name"], "name", 2, 100)
        if "code" in data:
            cleaned["code"] = validate_code(data["code"])
        if "premium_amount" in data:
            cleaned["premium_amount"] = validate_amount(data["premium_amount"], "premium_amount")
        if "premium_frequency" in data:
            cleaned["premium_frequency"] = validate_choice(
                data["premium_frequency"], "premium_frequency", PREMIUM_FREQUENCIES
            )
        if "currency" in data:
            cleaned["currency"] = validate_choice(data["currency"], "currency", CURRENCIES)
        if "term_months" in data:
            cleaned["term_months"] = validate_int_range(data["term_months"], "term_months", 1, 1200)
        if "min_cover_amount" in data:
            cleaned["min_cover_amount"] = validate_optional_amount(data["min_cover_amount"], "min_cover_amount")
        if "max_cover_amount" in data:
            cleaned["max_cover_amount"] = validate_optional_amount(data["max_cover_amount"], "max_cover_amount")
        if "active" in data:
            if not isinstance(data["active"], bool):
                raise ValidationError("must be true or false", field="active")
            cleaned["active"] = data["active"]
        if "description" in data:
            cleaned["description"] = validate_optional_text(data["description"], "description", 1000)
        if "coverage_details" in data:
            cleaned["coverage_details"] = validate_optional_text(data["coverage_details"], "coverage_details", 2000)
        return cleaned

    @staticmethod
    def _check_cover_range(record: Mapping[str, Any]) -> None:
        low = record.get("min_cover_amount")
        high = record.get("max_cover_amount")
        if low is not None and high is not None and high < low:
            raise ValidationError("must be greater than or equal to min_cover_amount", field="max_cover_amount")

    def _ensure_active_insurer(self, insurer_id: int) -> dict[str, Any]:
        insurer = self._insurer_repo.get(insurer_id)
        if insurer is None:
            raise NotFoundError("insurer", insurer_id)
        if not insurer["is_active"]:
            raise ConflictError("Cannot assign policy to inactive insurer", details={"insurer_id": insurer_id})
        return insurer

    def _ensure_unique(self, record: Mapping[str, Any], exclude_id: int | None = None) -> None:
        if self._policy_repo.exists(exclude_id=exclude_id, insurer_id=record["insurer_id"], name=record["name"]):
            raise ConflictError("Policy with this name already exists for this insurer", details={"field": "name"})
        code = record.get("code")
        if code and self._policy_repo.exists(exclude_id=exclude_id, code=code):
            raise ConflictError("Policy with this code already exists", details={"field": "code"})

    @staticmethod
    def _to_view(row: Mapping[str, Any], insurer: Mapping[str, Any] | None = None) -> PolicyView:
        return PolicyView(
            id=row["id"],
            insurer_id=row["insurer_id"],
            name=row["name"],
            code=row["code"],
            premium_amount=row["premium_amount"],
            premium_frequency=row["premium_frequency"],
            currency=row["currency"],
            term_months=row["term_months"],
            min_cover_amount=row["min_cover_amount"],
            max_cover_amount=row["max_cover_amount"],
            active=row["active"],
            description=row["description"],
            coverage_details=row["coverage_details"],
            created_by=row["created_by"],
            updated_by=row["updated_by"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            insurer=project(insurer, INSURER_PROJECTION),
        )

    def _views(self, rows: list[dict[str, Any]]) -> list[PolicyView]:
        insurers = lookup(self._insurer_repo, rows, "insurer_id")
        return [self._to_view(row, insurers.get(row["insurer_id"])) for row in rows]

    def _require(self, policy_id: int) -> dict[str, Any]:
        row = self._policy_repo.get(policy_id)
        if row is None:
            raise NotFoundError(ENTITY, policy_id)
        return row

    def create(self, payload: PolicyCreate, requester: Requester) -> PolicyView:
        """Create a product under an active insurer."""
        self._scoper.ensure_privileged(requester, "create policies")
        cleaned = self._validate(asdict(payload))
        self._check_cover_range(cleaned)
        insurer = self._ensure_active_insurer(cleaned["insurer_id"])
        self._ensure_unique(cleaned)

        now = utc_now().isoformat()
        policy_id = self._policy_repo.insert(
            {**cleaned, "created_by": requester.user_id, "created_at": now, "updated_at": now}
        )
        row = self._require(policy_id)
        self._audit_repo.record(
            requester.user_id,
            "CREATE",
            ENTITY,
            policy_id,
            f"Created policy {row['name']} for insurer {insurer['name']}",
            {"after": snapshot(row)},
        )
        logger.info("Policy %s created by %s", policy_id, requester.user_id)
        return self._to_view(row, insurer)

    def update(self, policy_id: int, changes: Mapping[str, Any], requester: Requester) -> PolicyView:
        """Partial update; the insurer is re-checked only when it changes."""
        self._scoper.ensure_privileged(requester, "update policies")
        before = self._require(policy_id)
        cleaned = self._validate(changes)
        merged = {**before, **cleaned}
        self._check_cover_range(merged)
        if cleaned.get("insurer_id", before["insurer_id"]) != before["insurer_id"]:
            self._ensure_active_insurer(cleaned["insurer_id"])
        if {"insurer_id", "name", "code"} & set(cleaned):
            self._ensure_unique(merged, exclude_id=policy_id)

        self._policy_repo.update(
            policy_id,
            {**cleaned, "updated_by": requester.user_id, "updated_at": utc_now().isoformat()},
        )
        after = self._require(policy_id)
        self._audit_repo.record(
            requester.user_id,
            "UPDATE",
            ENTITY,
            policy_id,
            f"Updated policy {after['name']}",
            update_details(before, after),
        )
        logger.info("Policy %s updated by %s", policy_id, requester.user_id)
        return self._to_view(after, self._insurer_repo.get(after["insurer_id"]))

    def delete(self, policy_id: int, requester: Requester) -> None:
        """Delete a policy that no customer policy references."""
        self._scoper.ensure_privileged(requester, "delete policies")
        before = self._require(policy_id)
        if self._binding_repo.exists(policy_id=policy_id):
            raise ConflictError(
                "Cannot delete policy with existing customer policies",
                details={"dependents": "customer_policies"},
            )
        self._policy_repo.delete(policy_id)
        self._audit_repo.record(
            requester.user_id,
            "DELETE",
            ENTITY,
            policy_id,
            f"Deleted policy {before['name']}",
            {"before": snapshot(before)},
        )
        logger.info("Policy %s deleted by %s", policy_id, requester.user_id)

    def get(self, policy_id: int, requester: Requester) -> PolicyView:
        row = self._scoper.ensure_visible(self._policy_repo.get(policy_id), requester, ENTITY, policy_id)
        return self._to_view(row, self._insurer_repo.get(row["insurer_id"]))

    def find_by_code(self, code: str, requester: Requester) -> PolicyView:
        row = self._policy_repo.find_by_code(code.strip().upper())
        row = self._scoper.ensure_visible(row, requester, ENTITY, code)
        return self._to_view(row, self._insurer_repo.get(row["insurer_id"]))

    def list(self, query: Query, requester: Requester) -> Page[PolicyView]:
        """Filter by ``insurer_id``/``active``, search name/code/description."""
        scoped = self._scoper.scope(query, requester, ENTITY)
        rows, total = self._policy_repo.find(scoped)
        return Page(self._views(rows), total, query.limit, query.offset)

    def list_active(self, insurer_id: int | None = None) -> list[PolicyView]:
        return self._views(self._policy_repo.list_active(insurer_id))

    def list_by_insurer(self, insurer_id: int, query: Query, requester: Requester) -> Page[PolicyView]:
        if self._insurer_repo.get(insurer_id) is None:
            raise NotFoundError("insurer", insurer_id)
        return self.list(replace(query, filters={**query.filters, "insurer_id": insurer_id}), requester)
