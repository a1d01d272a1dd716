from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from policy_ledger.api.deps import current_requester, get_container
from policy_ledger.api.response import page
from policy_ledger.core.access import Requester
from policy_ledger.core.container import ServiceContainer

router = APIRouter(prefix="/activity-logs", tags=["Activity Logs"])


@router.get("")
def list_activity_logs(
    page_number: int = Query(1, ge=1, alias="page"),
    limit: int = Query(50, ge=1, le=200),
    user_id: Optional[str] = Query(None, alias="userId"),
    action: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None, alias="entityType"),
    entity_id: Optional[int] = Query(None, alias="entityId"),
    keyword: Optional[str] = Query(None),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    result = container.activity_log_service.list_logs(
        requester,
        limit=limit,
        offset=(page_number - 1) * limit,
        actor_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        keyword=keyword,
        date_from=date_from,
        date_to=date_to,
    )
    return page(result)
