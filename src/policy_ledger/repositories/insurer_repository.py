"""Insurer repository."""

from __future__ import annotations

from typing import Any

from policy_ledger.repositories.base import DocumentRepository


class InsurerRepository(DocumentRepository):
    """Handles insurer persistence."""

    table = "insurers"
    columns = (
        "name",
        "code",
        "contact_person",
        "phone",
        "email",
        "address",
        "notes",
        "is_active",
        "created_by",
        "updated_by",
        "created_at",
        "updated_at",
    )
    search_fields = ("name", "code", "contact_person", "email", "phone")
    order_by = "created_at DESC, id DESC"
    bool_fields = frozenset({"is_active"})

    def find_by_code(self, code: str) -> dict[str, Any] | None:
        return self.find_one(code=code)

    def list_active(self) -> list[dict[str, Any]]:
        """Active insurers ordered by name, for selection lists."""
        rows = self._pool.fetchall("SELECT * FROM insurers WHERE is_active = 1 ORDER BY name")
        return [self._decode(row) for row in rows]
