"""Claim repository."""

from __future__ import annotations

from typing import Any

from policy_ledger.repositories.base import DocumentRepository


class ClaimRepository(DocumentRepository):
    """Handles insurance claim persistence."""

    table = "claims"
    columns = (
        "customer_policy_id",
        "claim_number",
        "date_of_event",
        "amount_claimed",
        "amount_approved",
        "currency",
        "status",
        "claimant_id",
        "handled_by",
        "notes",
        "supporting_docs",
        "created_by",
        "updated_by",
        "created_at",
        "updated_at",
    )
    search_fields = ("claim_number", "notes")
    date_field = "date_of_event"
    order_by = "created_at DESC, id DESC"
    decimal_fields = frozenset({"amount_claimed", "amount_approved"})
    date_fields = frozenset({"date_of_event"})
    json_fields = frozenset({"supporting_docs"})

    def find_by_claim_number(self, claim_number: str) -> dict[str, Any] | None:
        return self.find_one(claim_number=claim_number)
