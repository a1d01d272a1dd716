from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from policy_ledger.api.deps import ListParams, current_requester, get_container, list_params
from policy_ledger.api.response import created, ok, page
from policy_ledger.api.schemas import ClaimIn, ClaimPatch, TransitionIn
from policy_ledger.core.access import Requester
from policy_ledger.core.container import ServiceContainer
from policy_ledger.models.insurance import ClaimCreate

router = APIRouter(prefix="/claims", tags=["Claims"])


@router.get("")
def list_claims(
    customer_policy_id: Optional[int] = Query(None, alias="customerPolicyId"),
    status: Optional[str] = Query(None),
    claimant_id: Optional[str] = Query(None, alias="claimantId"),
    params: ListParams = Depends(list_params),
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    query = params.query(customer_policy_id=customer_policy_id, status=status, claimant_id=claimant_id)
    return page(container.claim_service.list(query, requester))


@router.get("/{claim_id}")
def get_claim(
    claim_id: int,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.claim_service.get(claim_id, requester))


@router.post("", status_code=201)
def create_claim(
    body: ClaimIn,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return created(container.claim_service.create(ClaimCreate(**body.model_dump()), requester))


@router.put("/{claim_id}")
def update_claim(
    claim_id: int,
    body: ClaimPatch,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.claim_service.update(claim_id, body.changes(), requester))


@router.post("/{claim_id}/transition")
def transition_claim(
    claim_id: int,
    body: TransitionIn,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.claim_service.transition(claim_id, body.status, requester))


@router.delete("/{claim_id}")
def delete_claim(
    claim_id: int,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    container.claim_service.delete(claim_id, requester)
    return ok({"id": claim_id, "deleted": True})
