"""Customer repository."""

from __future__ import annotations

from policy_ledger.core.dates import utc_now
from policy_ledger.models.customer import CustomerCreate
from policy_ledger.repositories.base import DocumentRepository


class CustomerRepository(DocumentRepository):
    """Read side of the customer collection, used for binding projections."""

    table = "customers"
    columns = ("name", "phone", "email", "created_by", "created_at", "updated_at")
    search_fields = ("name", "phone", "email")

    def create_customer(self, payload: CustomerCreate, created_by: str) -> int:
        """Insert a customer and return new id."""
        now = utc_now().isoformat()
        return self.insert(
            {
                "name": payload.name.strip(),
                "phone": payload.phone.strip(),
                "email": payload.email.strip(),
                "created_by": created_by,
                "created_at": now,
                "updated_at": now,
            }
        )

    def exists_customer(self, customer_id: int) -> bool:
        return self.exists(id=customer_id)
