"""Claim workflow service."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date
from typing import Any, Mapping

from policy_ledger.core.access import AccessScoper, Requester
from policy_ledger.core.dates import today, utc_now, year_month_bucket
from policy_ledger.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from policy_ledger.core.validation import (
    parse_date,
    parse_id,
    validate_choice,
    validate_optional_amount,
    validate_optional_text,
    validate_required_text,
)
from policy_ledger.models.insurance import BINDING_ACTIVE, ClaimCreate, ClaimView
from policy_ledger.models.query import Page, Query
from policy_ledger.repositories.audit_repository import AuditRepository
from policy_ledger.repositories.claim_repository import ClaimRepository
from policy_ledger.repositories.customer_policy_repository import CustomerPolicyRepository
from policy_ledger.repositories.customer_repository import CustomerRepository
from policy_ledger.repositories.insurer_repository import InsurerRepository
from policy_ledger.repositories.policy_repository import PolicyRepository
from policy_ledger.services.audit_support import snapshot, update_details
from policy_ledger.services.customer_policy_service import CustomerPolicyService
from policy_ledger.services.enrichment import chain_lookup
from policy_ledger.services.identifiers import CLAIM_PREFIX, IdentifierGenerator, insert_with_generated_id

logger = logging.getLogger(__name__)

ENTITY = "claim"

DRAFT = "draft"
SUBMITTED = "submitted"
UNDER_REVIEW = "under_review"
APPROVED = "approved"
REJECTED = "rejected"
SETTLED = "settled"

CLAIM_STATUSES = (DRAFT, SUBMITTED, UNDER_REVIEW, APPROVED, REJECTED, SETTLED)

TRANSITIONS: dict[str, frozenset[str]] = {
    DRAFT: frozenset({SUBMITTED}),
    SUBMITTED: frozenset({UNDER_REVIEW, DRAFT}),
    UNDER_REVIEW: frozenset({APPROVED, REJECTED, SUBMITTED}),
    APPROVED: frozenset({SETTLED, UNDER_REVIEW}),
    REJECTED: frozenset({UNDER_REVIEW}),
    SETTLED: frozenset(),
}

# Entering one of these records the acting user as the handler.
HANDLED_STATES = frozenset({UNDER_REVIEW, APPROVED, REJECTED, SETTLED})

INITIAL_STATUSES = (DRAFT, SUBMITTED)
UPDATABLE_FIELDS = frozenset(
    {
        "claim_number",
        "date_of_event",
        "amount_claimed",
        "amount_approved",
        "status",
        "claimant_id",
        "notes",
        "supporting_docs",
    }
)


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in TRANSITIONS.get(from_status, frozenset())


def _validate_docs(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValidationError("must be a list of document references", field="supporting_docs")
    docs = []
    for doc in value:
        if not isinstance(doc, str) or not doc.strip():
            raise ValidationError("must contain non-empty document references", field="supporting_docs")
        docs.append(validate_optional_text(doc, "supporting_docs", 500))
    return docs


class ClaimService:
    """Tracks claims against active bindings through the approval workflow."""

    def __init__(
        self,
        claim_repo: ClaimRepository,
        binding_repo: CustomerPolicyRepository,
        policy_repo: PolicyRepository,
        insurer_repo: InsurerRepository,
        customer_repo: CustomerRepository,
        bindings: CustomerPolicyService,
        audit_repo: AuditRepository,
        scoper: AccessScoper,
        claim_numbers: IdentifierGenerator,
        max_attempts: int = 5,
    ):
        self._claim_repo = claim_repo
        self._binding_repo = binding_repo
        self._policy_repo = policy_repo
        self._insurer_repo = insurer_repo
        self._customer_repo = customer_repo
        self._bindings = bindings
        self._audit_repo = audit_repo
        self._scoper = scoper
        self._claim_numbers = claim_numbers
        self._max_attempts = max_attempts

    @staticmethod
    def _validate(data: Mapping[str, Any]) -> dict[str, Any]:
        unknown = set(data) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"unknown fields: {', '.join(sorted(unknown))}")
        cleaned: dict[str, Any] = {}
        if "claim_number" in data:
            cleaned["claim_number"] = validate_required_text(data["claim_number"], "claim_number", 1, 50)
        if "date_of_event" in data:
            cleaned["date_of_event"] = parse_date(data["date_of_event"], "date_of_event") or today()
        for field in ("amount_claimed", "amount_approved"):
            if field in data:
                cleaned[field] = validate_optional_amount(data[field], field)
        if "status" in data:
            cleaned["status"] = validate_choice(data["status"], "status", CLAIM_STATUSES)
        if "claimant_id" in data:
            cleaned["claimant_id"] = validate_optional_text(data["claimant_id"], "claimant_id", 100) or None
        if "notes" in data:
            cleaned["notes"] = validate_optional_text(data["notes"], "notes", 2000)
        if "supporting_docs" in data:
            cleaned["supporting_docs"] = _validate_docs(data["supporting_docs"])
        return cleaned

    @staticmethod
    def _check_amounts(record: Mapping[str, Any]) -> None:
        claimed = record.get("amount_claimed")
        approved = record.get("amount_approved")
        if claimed is not None and approved is not None and approved > claimed:
            raise ValidationError("cannot exceed amount_claimed", field="amount_approved")

    @staticmethod
    def _status_change(current: str, target: str, requester: Requester) -> dict[str, Any]:
        """Fields to write for a status change, or InvalidTransition."""
        if not can_transition(current, target):
            raise InvalidTransitionError(current, target)
        changes: dict[str, Any] = {"status": target}
        if target in HANDLED_STATES:
            changes["handled_by"] = requester.user_id
        return changes

    @staticmethod
    def _to_view(row: Mapping[str, Any]) -> ClaimView:
        return ClaimView(
            id=row["id"],
            customer_policy_id=row["customer_policy_id"],
            claim_number=row["claim_number"],
            date_of_event=row["date_of_event"],
            amount_claimed=row["amount_claimed"],
            amount_approved=row["amount_approved"],
            currency=row["currency"],
            status=row["status"],
            claimant_id=row["claimant_id"],
            handled_by=row["handled_by"],
            notes=row["notes"],
            supporting_docs=row["supporting_docs"],
            created_by=row["created_by"],
            updated_by=row["updated_by"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            customer_policy=row.get("customer_policy"),
            policy=row.get("policy"),
            insurer=row.get("insurer"),
            customer=row.get("customer"),
        )

    def _views(self, rows: list[dict[str, Any]]) -> list[ClaimView]:
        enriched = chain_lookup(rows, self._binding_repo, self._policy_repo, self._insurer_repo, self._customer_repo)
        return [self._to_view(row) for row in enriched]

    def _require(self, claim_id: int) -> dict[str, Any]:
        row = self._claim_repo.get(claim_id)
        if row is None:
            raise NotFoundError(ENTITY, claim_id)
        return row

    def preview_claim_number(self, on_date: date | None = None) -> str:
        return self._claim_numbers.next_id(CLAIM_PREFIX, year_month_bucket(on_date or today()))

    def create(self, payload: ClaimCreate, requester: Requester) -> ClaimView:
        """Open a claim on an active binding with a generated claim number."""
        binding_id = parse_id(payload.customer_policy_id, "customer_policy_id")
        fields = asdict(payload)
        fields.pop("customer_policy_id")
        fields["date_of_event"] = fields["date_of_event"] or today()
        cleaned = self._validate(fields)
        if cleaned["status"] not in INITIAL_STATUSES:
            raise ValidationError(f"must be one of: {', '.join(INITIAL_STATUSES)}", field="status")
        self._check_amounts(cleaned)
        cleaned["claimant_id"] = cleaned.get("claimant_id") or requester.user_id
        if not cleaned["claimant_id"]:
            raise ValidationError("claimant_id is required when no acting user is known", field="claimant_id")

        binding = self._bindings.require_visible(binding_id, requester)
        if binding["status"] != BINDING_ACTIVE:
            raise InvalidStateError(
                f"Cannot file a claim on a {binding['status']} customer policy",
                details={"status": binding["status"]},
            )

        now = utc_now()
        record = {
            **cleaned,
            "customer_policy_id": binding_id,
            "currency": binding["currency"],
            "created_by": requester.user_id,
            "created_at": now.isoformat(),
            "updated_at": now.isoformat(),
        }
        bucket = year_month_bucket(now.date())
        claim_id, claim_number = insert_with_generated_id(
            lambda attempt: self._claim_numbers.next_id(CLAIM_PREFIX, bucket, attempt=attempt),
            lambda number: self._claim_repo.insert({**record, "claim_number": number}),
            field="claim_number",
            max_attempts=self._max_attempts,
        )

        row = self._require(claim_id)
        self._audit_repo.record(
            requester.user_id,
            "CREATE",
            ENTITY,
            claim_id,
            f"Created claim {claim_number} on {binding['policy_number']}",
            {"after": snapshot(row)},
        )
        logger.info("Claim %s created by %s", claim_number, requester.user_id)
        return self._views([row])[0]

    def update(self, claim_id: int, changes: Mapping[str, Any], requester: Requester) -> ClaimView:
        """Edit claim fields; a different ``status`` goes through the transition table."""
        before = dict(self._scoper.ensure_writable(self._claim_repo.get(claim_id), requester, ENTITY, claim_id))
        cleaned = self._validate(changes)
        self._check_amounts({**before, **cleaned})

        target = cleaned.pop("status", before["status"])
        if target != before["status"]:
            cleaned.update(self._status_change(before["status"], target, requester))
        if cleaned.get("claim_number", before["claim_number"]) != before["claim_number"]:
            if self._claim_repo.exists(exclude_id=claim_id, claim_number=cleaned["claim_number"]):
                raise ConflictError("Claim number already exists", details={"field": "claim_number"})
        if "claimant_id" in cleaned and not cleaned["claimant_id"]:
            cleaned.pop("claimant_id")

        after = self._write(claim_id, cleaned, requester)
        summary = f"Updated claim {after['claim_number']}"
        if after["status"] != before["status"]:
            summary += f" ({before['status']} -> {after['status']})"
        self._audit_repo.record(requester.user_id, "UPDATE", ENTITY, claim_id, summary, update_details(before, after))
        logger.info("Claim %s updated by %s", claim_id, requester.user_id)
        return self._views([after])[0]

    def transition(self, claim_id: int, to_status: str, requester: Requester) -> ClaimView:
        """Move a claim to ``to_status``; anything outside the table is an InvalidTransition."""
        before = dict(self._scoper.ensure_writable(self._claim_repo.get(claim_id), requester, ENTITY, claim_id))
        target = validate_choice(to_status, "status", CLAIM_STATUSES)
        after = self._write(claim_id, self._status_change(before["status"], target, requester), requester)
        self._audit_repo.record(
            requester.user_id,
            "UPDATE",
            ENTITY,
            claim_id,
            f"Claim {after['claim_number']} {before['status']} -> {after['status']}",
            update_details(before, after),
        )
        logger.info(
            "Claim %s moved %s -> %s by %s", claim_id, before["status"], after["status"], requester.user_id
        )
        return self._views([after])[0]

    def _write(self, claim_id: int, changes: Mapping[str, Any], requester: Requester) -> dict[str, Any]:
        self._claim_repo.update(
            claim_id,
            {**changes, "updated_by": requester.user_id, "updated_at": utc_now().isoformat()},
        )
        return self._require(claim_id)

    def delete(self, claim_id: int, requester: Requester) -> None:
        """Only privileged users may delete, and only draft claims."""
        self._scoper.ensure_can_delete(requester, ENTITY)
        before = dict(self._scoper.ensure_visible(self._claim_repo.get(claim_id), requester, ENTITY, claim_id))
        if before["status"] != DRAFT:
            logger.warning("Refused delete of %s claim %s", before["status"], claim_id)
            raise ForbiddenError("Only draft claims can be deleted", details={"status": before["status"]})
        self._claim_repo.delete(claim_id)
        self._audit_repo.record(
            requester.user_id,
            "DELETE",
            ENTITY,
            claim_id,
            f"Deleted claim {before['claim_number']}",
            {"before": snapshot(before)},
        )
        logger.info("Claim %s deleted by %s", claim_id, requester.user_id)

    def get(self, claim_id: int, requester: Requester) -> ClaimView:
        row = self._scoper.ensure_visible(self._claim_repo.get(claim_id), requester, ENTITY, claim_id)
        return self._views([dict(row)])[0]

    def list(self, query: Query, requester: Requester) -> Page[ClaimView]:
        """Filter by binding, status or claimant; date range applies to ``date_of_event``."""
        rows, total = self._claim_repo.find(self._scoper.scope(query, requester, ENTITY))
        return Page(self._views(rows), total, query.limit, query.offset)
