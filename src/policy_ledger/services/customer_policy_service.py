"""Policy binding service: assigns customers to policies."""

from __future__ import annotations

import logging
import re
from dataclasses import asdict
from datetime import date
from typing import Any, Mapping

from policy_ledger.core.access import AccessScoper, Requester
from policy_ledger.core.dates import PREMIUM_FREQUENCIES, add_interval, today, utc_now, year_bucket
from policy_ledger.core.errors import ConflictError, NotFoundError, ValidationError
from policy_ledger.core.validation import (
    parse_date,
    parse_id,
    parse_optional_id,
    validate_choice,
    validate_optional_amount,
    validate_optional_text,
    validate_required_text,
)
from policy_ledger.models.insurance import BINDING_STATUSES, CustomerPolicyCreate, CustomerPolicyView
from policy_ledger.models.query import Page, Query
from policy_ledger.repositories.audit_repository import AuditRepository
from policy_ledger.repositories.claim_repository import ClaimRepository
from policy_ledger.repositories.customer_policy_repository import CustomerPolicyRepository
from policy_ledger.repositories.customer_repository import CustomerRepository
from policy_ledger.repositories.insurer_repository import InsurerRepository
from policy_ledger.repositories.payment_repository import PaymentRepository
from policy_ledger.repositories.policy_repository import PolicyRepository
from policy_ledger.services.audit_support import snapshot, update_details
from policy_ledger.services.enrichment import (
    CUSTOMER_PROJECTION,
    INSURER_PROJECTION,
    POLICY_PROJECTION,
    lookup,
    project,
)
from policy_ledger.services.identifiers import (
    POLICY_NUMBER_PREFIX,
    IdentifierGenerator,
    acronym_code,
    insert_with_generated_id,
)

logger = logging.getLogger(__name__)

ENTITY = "customer_policy"
POLICY_NUMBER_PATTERN = re.compile(r"^INS-[A-Z0-9]+-\d{4}-\d{4,}$")
UPDATABLE_FIELDS = frozenset(
    {
        "customer_id",
        "policy_id",
        "insurer_id",
        "policy_number",
        "status",
        "start_date",
        "end_date",
        "next_premium_due_date",
        "insured_person_id",
        "sum_insured",
        "premium",
        "premium_frequency",
        "notes",
    }
)


def effective_frequency(binding: Mapping[str, Any], policy: Mapping[str, Any] | None) -> str | None:
    """The binding's own premium frequency, else its policy's."""
    if binding.get("premium_frequency"):
        return binding["premium_frequency"]
    return policy["premium_frequency"] if policy else None


class CustomerPolicyService:
    """Coordinates customer policy bindings."""

    def __init__(
        self,
        binding_repo: CustomerPolicyRepository,
        policy_repo: PolicyRepository,
        insurer_repo: InsurerRepository,
        customer_repo: CustomerRepository,
        payment_repo: PaymentRepository,
        claim_repo: ClaimRepository,
        audit_repo: AuditRepository,
        scoper: AccessScoper,
        policy_numbers: IdentifierGenerator,
        max_attempts: int = 5,
    ):
        self._binding_repo = binding_repo
        self._policy_repo = policy_repo
        self._insurer_repo = insurer_repo
        self._customer_repo = customer_repo
        self._payment_repo = payment_repo
        self._claim_repo = claim_repo
        self._audit_repo = audit_repo
        self._scoper = scoper
        self._policy_numbers = policy_numbers
        self._max_attempts = max_attempts

    @staticmethod
    def _validate(data: Mapping[str, Any]) -> dict[str, Any]:
        unknown = set(data) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"unknown fields: {', '.join(sorted(unknown))}")
        cleaned: dict[str, Any] = {}
        if "customer_id" in data:
            cleaned["customer_id"] = parse_id(data["customer_id"], "customer_id")
        if "policy_id" in data:
            cleaned["policy_id"] = parse_id(data["policy_id"], "policy_id")
        if "insurer_id" in data:
            cleaned["insurer_id"] = parse_optional_id(data["insurer_id"], "insurer_id")
        if data.get("policy_number"):
            cleaned["policy_number"] = validate_required_text(data["policy_number"], "policy_number", 1, 50)
        if "status" in data:
            cleaned["status"] = validate_choice(data["status"], "status", BINDING_STATUSES)
        for field in ("start_date", "end_date", "next_premium_due_date"):
            if field in data:
                cleaned[field] = parse_date(data[field], field)
        if "insured_person_id" in data:
            cleaned["insured_person_id"] = parse_optional_id(data["insured_person_id"], "insured_person_id")
        for field in ("sum_insured", "premium"):
            if field in data:
                cleaned[field] = validate_optional_amount(data[field], field)
        if "premium_frequency" in data:
            frequency = data["premium_frequency"]
            cleaned["premium_frequency"] = (
                validate_choice(frequency, "premium_frequency", PREMIUM_FREQUENCIES) if frequency else None
            )
        if "notes" in data:
            cleaned["notes"] = validate_optional_text(data["notes"], "notes", 1000)
        return cleaned

    @staticmethod
    def _check_dates(record: Mapping[str, Any]) -> None:
        start = record.get("start_date")
        end = record.get("end_date")
        if start and end and end < start:
            raise ValidationError("must be on or after start_date", field="end_date")

    def _active_policy_and_insurer(self, policy_id: int) -> tuple[dict[str, Any], dict[str, Any]]:
        policy = self._policy_repo.get(policy_id)
        if policy is None:
            raise NotFoundError("policy", policy_id)
        if not policy["active"]:
            raise ConflictError("Cannot bind an inactive policy", details={"policy_id": policy_id})
        insurer = self._insurer_repo.get(policy["insurer_id"])
        if insurer is None:
            raise NotFoundError("insurer", policy["insurer_id"])
        if not insurer["is_active"]:
            raise ConflictError("Cannot bind a policy of an inactive insurer", details={"insurer_id": insurer["id"]})
        return policy, insurer

    def _ensure_customer(self, customer_id: int) -> None:
        if not self._customer_repo.exists_customer(customer_id):
            raise NotFoundError("customer", customer_id)

    def _ensure_policy_number_free(self, policy_number: str, exclude_id: int | None = None) -> None:
        if self._binding_repo.exists(exclude_id=exclude_id, policy_number=policy_number):
            raise ConflictError("Policy number already exists", details={"field": "policy_number"})

    @staticmethod
    def _bucket(insurer: Mapping[str, Any], start_date: date | None) -> str:
        code = insurer.get("code") or acronym_code(insurer["name"])
        return f"{code}-{year_bucket(start_date or today())}"

    @staticmethod
    def _to_view(
        row: Mapping[str, Any],
        policy: Mapping[str, Any] | None = None,
        insurer: Mapping[str, Any] | None = None,
        customer: Mapping[str, Any] | None = None,
    ) -> CustomerPolicyView:
        return CustomerPolicyView(
            id=row["id"],
            customer_id=row["customer_id"],
            policy_id=row["policy_id"],
            insurer_id=row["insurer_id"],
            policy_number=row["policy_number"],
            status=row["status"],
            start_date=row["start_date"],
            end_date=row["end_date"],
            next_premium_due_date=row["next_premium_due_date"],
            insured_person_id=row["insured_person_id"],
            sum_insured=row["sum_insured"],
            premium=row["premium"],
            premium_frequency=row["premium_frequency"],
            currency=row["currency"],
            notes=row["notes"],
            created_by=row["created_by"],
            updated_by=row["updated_by"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            policy=project(policy, POLICY_PROJECTION),
            insurer=project(insurer, INSURER_PROJECTION),
            customer=project(customer, CUSTOMER_PROJECTION),
        )

    def _views(self, rows: list[dict[str, Any]]) -> list[CustomerPolicyView]:
        policies = lookup(self._policy_repo, rows, "policy_id")
        insurers = lookup(self._insurer_repo, rows, "insurer_id")
        customers = lookup(self._customer_repo, rows, "customer_id")
        return [
            self._to_view(
                row,
                policies.get(row["policy_id"]),
                insurers.get(row["insurer_id"]),
                customers.get(row["customer_id"]),
            )
            for row in rows
        ]

    def _require(self, binding_id: int) -> dict[str, Any]:
        row = self._binding_repo.get(binding_id)
        if row is None:
            raise NotFoundError(ENTITY, binding_id)
        return row

    def require_visible(self, binding_id: int, requester: Requester) -> dict[str, Any]:
        """Stored binding the requester may see, else NotFound."""
        return dict(self._scoper.ensure_visible(self._binding_repo.get(binding_id), requester, ENTITY, binding_id))

    def preview_policy_number(self, insurer_id: int, start_date: date | None = None) -> str:
        """Next policy number for an insurer without reserving it."""
        insurer = self._insurer_repo.get(insurer_id)
        if insurer is None:
            raise NotFoundError("insurer", insurer_id)
        return self._policy_numbers.next_id(POLICY_NUMBER_PREFIX, self._bucket(insurer, start_date))

    def check_policy_number(self, policy_number: str) -> dict[str, Any]:
        """Report whether a number has the generated format and whether it is taken."""
        number = (policy_number or "").strip()
        if not number:
            raise ValidationError("policy_number is required", field="policy_number")
        if not POLICY_NUMBER_PATTERN.match(number):
            return {"policy_number": number, "is_valid": False, "exists": False}
        return {
            "policy_number": number,
            "is_valid": True,
            "exists": self._binding_repo.exists(policy_number=number),
        }

    def create(self, payload: CustomerPolicyCreate, requester: Requester) -> CustomerPolicyView:
        """Bind a customer to an active policy, numbering it and scheduling the first premium."""
        cleaned = self._validate(asdict(payload))
        self._check_dates(cleaned)
        self._ensure_customer(cleaned["customer_id"])
        policy, insurer = self._active_policy_and_insurer(cleaned["policy_id"])
        supplied_insurer = cleaned.pop("insurer_id", None)
        if supplied_insurer is not None and supplied_insurer != insurer["id"]:
            raise ValidationError("does not match the policy's insurer", field="insurer_id")

        frequency = effective_frequency(cleaned, policy)
        if cleaned.get("next_premium_due_date") is None and cleaned.get("start_date") and frequency:
            cleaned["next_premium_due_date"] = add_interval(cleaned["start_date"], frequency)

        now = utc_now().isoformat()
        record = {
            **cleaned,
            "insurer_id": insurer["id"],
            "currency": policy["currency"],
            "created_by": requester.user_id,
            "created_at": now,
            "updated_at": now,
        }

        if cleaned.get("policy_number"):
            self._ensure_policy_number_free(cleaned["policy_number"])
            binding_id = self._binding_repo.insert(record)
        else:
            bucket = self._bucket(insurer, cleaned.get("start_date"))
            binding_id, _ = insert_with_generated_id(
                lambda attempt: self._policy_numbers.next_id(POLICY_NUMBER_PREFIX, bucket, attempt=attempt),
                lambda number: self._binding_repo.insert({**record, "policy_number": number}),
                field="policy_number",
                max_attempts=self._max_attempts,
            )

        row = self._require(binding_id)
        self._audit_repo.record(
            requester.user_id,
            "CREATE",
            ENTITY,
            binding_id,
            f"Created customer policy {row['policy_number']} on {policy['name']}",
            {"after": snapshot(row)},
        )
        logger.info("Customer policy %s (%s) created by %s", binding_id, row["policy_number"], requester.user_id)
        return self._to_view(row, policy, insurer, self._customer_repo.get(row["customer_id"]))

    def update(self, binding_id: int, changes: Mapping[str, Any], requester: Requester) -> CustomerPolicyView:
        """Partial update; policy and insurer are re-checked only when the policy changes."""
        before = dict(self._scoper.ensure_writable(self._binding_repo.get(binding_id), requester, ENTITY, binding_id))
        cleaned = self._validate(changes)
        supplied_insurer = cleaned.pop("insurer_id", None)
        self._check_dates({**before, **cleaned})

        if "customer_id" in cleaned and cleaned["customer_id"] != before["customer_id"]:
            self._ensure_customer(cleaned["customer_id"])
        policy_id = cleaned.get("policy_id", before["policy_id"])
        if policy_id != before["policy_id"]:
            policy, insurer = self._active_policy_and_insurer(policy_id)
            cleaned["insurer_id"] = insurer["id"]
            cleaned["currency"] = policy["currency"]
        expected_insurer = cleaned.get("insurer_id", before["insurer_id"])
        if supplied_insurer is not None and supplied_insurer != expected_insurer:
            raise ValidationError("does not match the policy's insurer", field="insurer_id")
        if cleaned.get("policy_number", before["policy_number"]) != before["policy_number"]:
            self._ensure_policy_number_free(cleaned["policy_number"], exclude_id=binding_id)

        self._binding_repo.update(
            binding_id,
            {**cleaned, "updated_by": requester.user_id, "updated_at": utc_now().isoformat()},
        )
        after = self._require(binding_id)
        self._audit_repo.record(
            requester.user_id,
            "UPDATE",
            ENTITY,
            binding_id,
            f"Updated customer policy {after['policy_number']}",
            update_details(before, after),
        )
        logger.info("Customer policy %s updated by %s", binding_id, requester.user_id)
        return self._views([after])[0]

    def delete(self, binding_id: int, requester: Requester) -> None:
        """Delete a binding with no payments or claims."""
        self._scoper.ensure_can_delete(requester, ENTITY)
        before = self.require_visible(binding_id, requester)
        if self._payment_repo.exists(customer_policy_id=binding_id):
            raise ConflictError(
                "Cannot delete customer policy with existing payments",
                details={"dependents": "policy_payments"},
            )
        if self._claim_repo.exists(customer_policy_id=binding_id):
            raise ConflictError(
                "Cannot delete customer policy with existing claims",
                details={"dependents": "claims"},
            )
        self._binding_repo.delete(binding_id)
        self._audit_repo.record(
            requester.user_id,
            "DELETE",
            ENTITY,
            binding_id,
            f"Deleted customer policy {before['policy_number']}",
            {"before": snapshot(before)},
        )
        logger.info("Customer policy %s deleted by %s", binding_id, requester.user_id)

    def get(self, binding_id: int, requester: Requester) -> CustomerPolicyView:
        return self._views([self.require_visible(binding_id, requester)])[0]

    def find_by_policy_number(self, policy_number: str, requester: Requester) -> CustomerPolicyView:
        row = self._binding_repo.find_by_policy_number(policy_number.strip())
        return self._views([dict(self._scoper.ensure_visible(row, requester, ENTITY, policy_number))])[0]

    def list(self, query: Query, requester: Requester) -> Page[CustomerPolicyView]:
        """Filter by customer, policy, insurer or status; search policy number and notes."""
        rows, total = self._binding_repo.find(self._scoper.scope(query, requester, ENTITY))
        return Page(self._views(rows), total, query.limit, query.offset)
