from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from policy_ledger.api.deps import ListParams, current_requester, get_container, list_params
from policy_ledger.api.response import created, ok, page
from policy_ledger.api.schemas import InsurerIn, InsurerPatch
from policy_ledger.core.access import Requester
from policy_ledger.core.container import ServiceContainer
from policy_ledger.models.insurance import InsurerCreate

router = APIRouter(prefix="/insurers", tags=["Insurers"])


@router.get("")
def list_insurers(
    is_active: Optional[bool] = Query(None, alias="isActive"),
    params: ListParams = Depends(list_params),
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return page(container.insurer_service.list(params.query(is_active=is_active), requester))


@router.get("/active")
def list_active_insurers(
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.insurer_service.list_active())


@router.get("/code/{code}")
def get_insurer_by_code(
    code: str,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.insurer_service.find_by_code(code, requester))


@router.get("/{insurer_id}")
def get_insurer(
    insurer_id: int,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.insurer_service.get(insurer_id, requester))


@router.get("/{insurer_id}/policies")
def list_insurer_policies(
    insurer_id: int,
    params: ListParams = Depends(list_params),
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return page(container.policy_service.list_by_insurer(insurer_id, params.query(), requester))


@router.post("", status_code=201)
def create_insurer(
    body: InsurerIn,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return created(container.insurer_service.create(InsurerCreate(**body.model_dump()), requester))


@router.put("/{insurer_id}")
def update_insurer(
    insurer_id: int,
    body: InsurerPatch,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.insurer_service.update(insurer_id, body.changes(), requester))


@router.delete("/{insurer_id}")
def delete_insurer(
    insurer_id: int,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    container.insurer_service.delete(insurer_id, requester)
    return ok({"id": insurer_id, "deleted": True})
