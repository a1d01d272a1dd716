from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from policy_ledger.api.deps import ListParams, current_requester, get_container, list_params
from policy_ledger.api.response import created, ok, page
from policy_ledger.api.schemas import PolicyIn, PolicyPatch
from policy_ledger.core.access import Requester
from policy_ledger.core.container import ServiceContainer
from policy_ledger.models.insurance import PolicyCreate

router = APIRouter(prefix="/policies", tags=["Policies"])


@router.get("")
def list_policies(
    insurer_id: Optional[int] = Query(None, alias="insurerId"),
    active: Optional[bool] = Query(None),
    params: ListParams = Depends(list_params),
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    query = params.query(insurer_id=insurer_id, active=active)
    return page(container.policy_service.list(query, requester))


@router.get("/active")
def list_active_policies(
    insurer_id: Optional[int] = Query(None, alias="insurerId"),
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.policy_service.list_active(insurer_id))


@router.get("/code/{code}")
def get_policy_by_code(
    code: str,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.policy_service.find_by_code(code, requester))


@router.get("/{policy_id}")
def get_policy(
    policy_id: int,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.policy_service.get(policy_id, requester))


@router.post("", status_code=201)
def create_policy(
    body: PolicyIn,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return created(container.policy_service.create(PolicyCreate(**body.model_dump()), requester))


@router.put("/{policy_id}")
def update_policy(
    policy_id: int,
    body: PolicyPatch,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.policy_service.update(policy_id, body.changes(), requester))


@router.delete("/{policy_id}")
def delete_policy(
    policy_id: int,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    container.policy_service.delete(policy_id, requester)
    return ok({"id": policy_id, "deleted": True})
