"""Premium ledger service."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date
from typing import Any, Mapping

from policy_ledger.core.access import AccessScoper, Requester
from policy_ledger.core.dates import ONE_TIME, add_interval, day_bucket, today, utc_now
from policy_ledger.core.errors import InvalidStateError, NotFoundError, ValidationError
from policy_ledger.core.validation import (
    parse_date,
    parse_id,
    validate_amount,
    validate_choice,
    validate_optional_text,
)
from policy_ledger.models.insurance import (
    BINDING_CANCELLED,
    BINDING_EXPIRED,
    CURRENCIES,
    PAYMENT_MODES,
    PaymentSummary,
    PolicyPaymentCreate,
    PolicyPaymentView,
)
from policy_ledger.models.query import Page, Query
from policy_ledger.repositories.audit_repository import AuditRepository
from policy_ledger.repositories.customer_policy_repository import CustomerPolicyRepository
from policy_ledger.repositories.customer_repository import CustomerRepository
from policy_ledger.repositories.insurer_repository import InsurerRepository
from policy_ledger.repositories.payment_repository import PaymentRepository
from policy_ledger.repositories.policy_repository import PolicyRepository
from policy_ledger.services.audit_support import snapshot, update_details
from policy_ledger.services.customer_policy_service import CustomerPolicyService, effective_frequency
from policy_ledger.services.enrichment import chain_lookup
from policy_ledger.services.identifiers import TRANSACTION_PREFIX, IdentifierGenerator, insert_with_generated_id

logger = logging.getLogger(__name__)

ENTITY = "policy_payment"
CLOSED_BINDING_STATUSES = frozenset({BINDING_CANCELLED, BINDING_EXPIRED})
UPDATABLE_FIELDS = frozenset({"amount", "payment_date", "mode_of_payment", "currency", "payer_id", "reference"})


class PaymentService:
    """Records premium payments and keeps each binding's next due date current.

    Deleting a payment leaves the binding's ``next_premium_due_date`` as the
    last payment set it.
    """

    def __init__(
        self,
        payment_repo: PaymentRepository,
        binding_repo: CustomerPolicyRepository,
        policy_repo: PolicyRepository,
        insurer_repo: InsurerRepository,
        customer_repo: CustomerRepository,
        bindings: CustomerPolicyService,
        audit_repo: AuditRepository,
        scoper: AccessScoper,
        transaction_ids: IdentifierGenerator,
        max_attempts: int = 5,
    ):
        self._payment_repo = payment_repo
        self._binding_repo = binding_repo
        self._policy_repo = policy_repo
        self._insurer_repo = insurer_repo
        self._customer_repo = customer_repo
        self._bindings = bindings
        self._audit_repo = audit_repo
        self._scoper = scoper
        self._transaction_ids = transaction_ids
        self._max_attempts = max_attempts

    @staticmethod
    def _validate(data: Mapping[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        if "amount" in data:
            cleaned["amount"] = validate_amount(data["amount"], "amount", allow_equal=False)
        if "payment_date" in data:
            cleaned["payment_date"] = parse_date(data["payment_date"], "payment_date") or today()
        if "mode_of_payment" in data:
            cleaned["mode_of_payment"] = validate_choice(data["mode_of_payment"], "mode_of_payment", PAYMENT_MODES)
        if "currency" in data:
            cleaned["currency"] = validate_choice(data["currency"], "currency", CURRENCIES)
        if "payer_id" in data:
            cleaned["payer_id"] = validate_optional_text(data["payer_id"], "payer_id", 100) or None
        if "reference" in data:
            cleaned["reference"] = validate_optional_text(data["reference"], "reference", 200)
        return cleaned

    @staticmethod
    def _to_view(row: Mapping[str, Any]) -> PolicyPaymentView:
        return PolicyPaymentView(
            id=row["id"],
            customer_policy_id=row["customer_policy_id"],
            payer_id=row["payer_id"],
            amount=row["amount"],
            currency=row["currency"],
            payment_date=row["payment_date"],
            mode_of_payment=row["mode_of_payment"],
            reference=row["reference"],
            transaction_id=row["transaction_id"],
            created_by=row["created_by"],
            updated_by=row["updated_by"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            customer_policy=row.get("customer_policy"),
            policy=row.get("policy"),
            insurer=row.get("insurer"),
            customer=row.get("customer"),
        )

    def _views(self, rows: list[dict[str, Any]]) -> list[PolicyPaymentView]:
        enriched = chain_lookup(rows, self._binding_repo, self._policy_repo, self._insurer_repo, self._customer_repo)
        return [self._to_view(row) for row in enriched]

    def _require(self, payment_id: int) -> dict[str, Any]:
        row = self._payment_repo.get(payment_id)
        if row is None:
            raise NotFoundError(ENTITY, payment_id)
        return row

    def preview_transaction_id(self, payment_date: date | None = None) -> str:
        return self._transaction_ids.next_id(TRANSACTION_PREFIX, day_bucket(payment_date or today()))

    def create(self, payload: PolicyPaymentCreate, requester: Requester) -> PolicyPaymentView:
        """Record a payment and move the binding's next premium due date forward."""
        binding_id = parse_id(payload.customer_policy_id, "customer_policy_id")
        fields = asdict(payload)
        fields.pop("customer_policy_id")
        cleaned = self._validate(fields)
        binding = self._bindings.require_visible(binding_id, requester)
        if binding["status"] in CLOSED_BINDING_STATUSES:
            raise InvalidStateError(
                f"Cannot record payment for a {binding['status']} customer policy",
                details={"status": binding["status"]},
            )

        now = utc_now().isoformat()
        record = {
            **cleaned,
            "customer_policy_id": binding_id,
            "created_by": requester.user_id,
            "created_at": now,
            "updated_at": now,
        }
        bucket = day_bucket(cleaned["payment_date"])
        due_before = binding["next_premium_due_date"]
        due_after = due_before
        frequency = effective_frequency(binding, self._policy_repo.get(binding["policy_id"]))

        # The payment, the due-date move and the audit entry commit together.
        with self._payment_repo.transaction():
            payment_id, transaction_id = insert_with_generated_id(
                lambda attempt: self._transaction_ids.next_id(TRANSACTION_PREFIX, bucket, attempt=attempt),
                lambda number: self._payment_repo.insert({**record, "transaction_id": number}),
                field="transaction_id",
                max_attempts=self._max_attempts,
            )
            if frequency and frequency != ONE_TIME:
                due_after = add_interval(cleaned["payment_date"], frequency)
                self._binding_repo.set_next_premium_due_date(binding_id, due_after, now)

            row = self._require(payment_id)
            self._audit_repo.record(
                requester.user_id,
                "CREATE",
                ENTITY,
                payment_id,
                f"Recorded payment {transaction_id} of {row['amount']} {row['currency']} for {binding['policy_number']}",
                {
                    "after": snapshot(row),
                    "next_premium_due_date": {"before": due_before, "after": due_after},
                },
            )
        logger.info("Payment %s recorded on customer policy %s by %s", transaction_id, binding_id, requester.user_id)
        return self._views([row])[0]

    def update(self, payment_id: int, changes: Mapping[str, Any], requester: Requester) -> PolicyPaymentView:
        """Edit the payment record only; the binding's due date is left as is."""
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"unknown fields: {', '.join(sorted(unknown))}")
        before = dict(self._scoper.ensure_writable(self._payment_repo.get(payment_id), requester, ENTITY, payment_id))
        cleaned = self._validate(changes)

        self._payment_repo.update(
            payment_id,
            {**cleaned, "updated_by": requester.user_id, "updated_at": utc_now().isoformat()},
        )
        after = self._require(payment_id)
        self._audit_repo.record(
            requester.user_id,
            "UPDATE",
            ENTITY,
            payment_id,
            f"Updated payment {after['transaction_id']}",
            update_details(before, after),
        )
        logger.info("Payment %s updated by %s", payment_id, requester.user_id)
        return self._views([after])[0]

    def delete(self, payment_id: int, requester: Requester) -> None:
        self._scoper.ensure_can_delete(requester, ENTITY)
        before = dict(self._scoper.ensure_visible(self._payment_repo.get(payment_id), requester, ENTITY, payment_id))
        self._payment_repo.delete(payment_id)
        self._audit_repo.record(
            requester.user_id,
            "DELETE",
            ENTITY,
            payment_id,
            f"Deleted payment {before['transaction_id']}",
            {"before": snapshot(before)},
        )
        logger.info("Payment %s deleted by %s", payment_id, requester.user_id)

    def get(self, payment_id: int, requester: Requester) -> PolicyPaymentView:
        row = self._scoper.ensure_visible(self._payment_repo.get(payment_id), requester, ENTITY, payment_id)
        return self._views([dict(row)])[0]

    def list(self, query: Query, requester: Requester) -> Page[PolicyPaymentView]:
        """Filter by binding, mode or currency; date range applies to ``payment_date``."""
        rows, total = self._payment_repo.find(self._scoper.scope(query, requester, ENTITY))
        return Page(self._views(rows), total, query.limit, query.offset)

    def payment_summary(self, customer_policy_id: int, requester: Requester) -> PaymentSummary:
        """Count, total and first/last payment dates for one binding."""
        self._bindings.require_visible(customer_policy_id, requester)
        stats = self._payment_repo.summary_for_binding(customer_policy_id)
        total = self._payment_repo.sum_decimal(
            "amount", Query(filters={"customer_policy_id": customer_policy_id})
        )
        return PaymentSummary(
            customer_policy_id=customer_policy_id,
            total_payments=int(stats.get("total_payments") or 0),
            total_amount=total,
            first_payment_date=parse_date(stats.get("first_payment_date"), "first_payment_date"),
            last_payment_date=parse_date(stats.get("last_payment_date"), "last_payment_date"),
        )
