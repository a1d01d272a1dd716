"""Customer policy (binding) repository."""

from __future__ import annotations

from datetime import date
from typing import Any

from policy_ledger.repositories.base import DocumentRepository


class CustomerPolicyRepository(DocumentRepository):
    """Handles bindings between customers and policies."""

    table = "customer_policies"
    columns = (
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
        "currency",
        "notes",
        "created_by",
        "updated_by",
        "created_at",
        "updated_at",
    )
    search_fields = ("policy_number", "notes")
    date_field = "start_date"
    order_by = "created_at DESC, id DESC"
    decimal_fields = frozenset({"sum_insured", "premium"})
    date_fields = frozenset({"start_date", "end_date", "next_premium_due_date"})

    def find_by_policy_number(self, policy_number: str) -> dict[str, Any] | None:
        return self.find_one(policy_number=policy_number)

    def set_next_premium_due_date(self, binding_id: int, due_date: date | None, updated_at: str) -> int:
        """Persist a recomputed due date; last write wins."""
        return self.update(
            binding_id,
            {"next_premium_due_date": due_date, "updated_at": updated_at},
        )
