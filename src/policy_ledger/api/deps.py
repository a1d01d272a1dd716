from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from fastapi import Depends, Header, Query, Request

from policy_ledger.core.access import ROLES, Requester
from policy_ledger.core.container import ServiceContainer
from policy_ledger.core.errors import ForbiddenError
from policy_ledger.models.query import Query as ListQuery


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def current_requester(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
    x_can_delete: bool = Header(False),
) -> Requester:
    """Caller identity as forwarded by the auth gateway."""
    if not x_user_id or not x_user_role:
        raise ForbiddenError("Authentication required")
    role = x_user_role.strip().lower()
    if role not in ROLES:
        raise ForbiddenError(f"Unknown role: {x_user_role}")
    return Requester(user_id=x_user_id.strip(), role=role, can_delete_override=x_can_delete)


@dataclass
class ListParams:
    limit: int
    offset: int
    search: str
    date_from: Optional[date]
    date_to: Optional[date]

    def query(self, **filters: Any) -> ListQuery:
        """Build a store query, ignoring filters the caller left out."""
        return ListQuery(
            filters={key: value for key, value in filters.items() if value is not None},
            search=self.search,
            date_from=self.date_from,
            date_to=self.date_to,
            limit=self.limit,
            offset=self.offset,
        )


def list_params(
    container: ServiceContainer = Depends(get_container),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    search: str = Query(""),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
) -> ListParams:
    paging = container.config.pagination
    size = min(limit or paging.default_limit, paging.max_limit)
    return ListParams(
        limit=size,
        offset=(page - 1) * size,
        search=search.strip(),
        date_from=date_from,
        date_to=date_to,
    )
