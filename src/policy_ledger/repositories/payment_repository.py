"""Policy payment repository."""

from __future__ import annotations

from typing import Any

from policy_ledger.repositories.base import DocumentRepository


class PaymentRepository(DocumentRepository):
    """Handles premium payment persistence."""

    table = "policy_payments"
    columns = (
        "customer_policy_id",
        "payer_id",
        "amount",
        "currency",
        "payment_date",
        "mode_of_payment",
        "reference",
        "transaction_id",
        "created_by",
        "updated_by",
        "created_at",
        "updated_at",
    )
    search_fields = ("transaction_id", "reference")
    date_field = "payment_date"
    order_by = "payment_date DESC, id DESC"
    decimal_fields = frozenset({"amount"})
    date_fields = frozenset({"payment_date"})

    def summary_for_binding(self, customer_policy_id: int) -> dict[str, Any]:
        """Count, first and last payment dates for one binding."""
        row = self._pool.fetchone(
            """
            SELECT
                COUNT(*) AS total_payments,
                MIN(payment_date) AS first_payment_date,
                MAX(payment_date) AS last_payment_date
            FROM policy_payments
            WHERE customer_policy_id = ?
            """,
            (customer_policy_id,),
        )
        return self._decode(row) if row else {}
