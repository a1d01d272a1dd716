"""Policy repository."""

from __future__ import annotations

from typing import Any

from policy_ledger.repositories.base import DocumentRepository


class PolicyRepository(DocumentRepository):
    """Handles insurance product persistence."""

    table = "policies"
    columns = (
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
        "created_by",
        "updated_by",
        "created_at",
        "updated_at",
    )
    search_fields = ("name", "code", "description")
    order_by = "created_at DESC, id DESC"
    decimal_fields = frozenset({"premium_amount", "min_cover_amount", "max_cover_amount"})
    bool_fields = frozenset({"active"})

    def find_by_code(self, code: str) -> dict[str, Any] | None:
        return self.find_one(code=code)

    def list_active(self, insurer_id: int | None = None) -> list[dict[str, Any]]:
        """Active policies ordered by name, optionally for one insurer."""
        if insurer_id is None:
            rows = self._pool.fetchall("SELECT * FROM policies WHERE active = 1 ORDER BY name")
        else:
            rows = self._pool.fetchall(
                "SELECT * FROM policies WHERE active = 1 AND insurer_id = ? ORDER BY name",
                (insurer_id,),
            )
        return [self._decode(row) for row in rows]
