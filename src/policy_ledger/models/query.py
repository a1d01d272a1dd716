"""Store-neutral query and page models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Query:
    """Equality filters, substring search, a date range, and offset paging."""

    filters: dict[str, Any] = field(default_factory=dict)
    search: str = ""
    date_from: date | None = None
    date_to: date | None = None
    limit: int = 10
    offset: int = 0


@dataclass
class Page(Generic[T]):
    items: list[T]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total

    def pagination(self) -> dict[str, Any]:
        """Pagination block for API envelopes."""
        page = self.offset // self.limit + 1 if self.limit else 1
        total_pages = -(-self.total // self.limit) if self.limit else 1
        return {
            "total": self.total,
            "limit": self.limit,
            "offset": self.offset,
            "page": page,
            "totalPages": total_pages,
            "hasNext": self.has_more,
            "hasPrev": self.offset > 0,
        }
