from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from policy_ledger.api.deps import ListParams, current_requester, get_container, list_params
from policy_ledger.api.response import created, ok, page
from policy_ledger.api.schemas import PolicyPaymentIn, PolicyPaymentPatch
from policy_ledger.core.access import Requester
from policy_ledger.core.container import ServiceContainer
from policy_ledger.models.insurance import PolicyPaymentCreate

router = APIRouter(prefix="/policy-payments", tags=["Policy Payments"])


@router.get("")
def list_payments(
    customer_policy_id: Optional[int] = Query(None, alias="customerPolicyId"),
    mode_of_payment: Optional[str] = Query(None, alias="modeOfPayment"),
    currency: Optional[str] = Query(None),
    params: ListParams = Depends(list_params),
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    query = params.query(
        customer_policy_id=customer_policy_id,
        mode_of_payment=mode_of_payment,
        currency=currency,
    )
    return page(container.payment_service.list(query, requester))


@router.get("/{payment_id}")
def get_payment(
    payment_id: int,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.payment_service.get(payment_id, requester))


@router.post("", status_code=201)
def create_payment(
    body: PolicyPaymentIn,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return created(container.payment_service.create(PolicyPaymentCreate(**body.model_dump()), requester))


@router.put("/{payment_id}")
def update_payment(
    payment_id: int,
    body: PolicyPaymentPatch,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.payment_service.update(payment_id, body.changes(), requester))


@router.delete("/{payment_id}")
def delete_payment(
    payment_id: int,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    container.payment_service.delete(payment_id, requester)
    return ok({"id": payment_id, "deleted": True})
