from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from policy_ledger.api.deps import ListParams, current_requester, get_container, list_params
from policy_ledger.api.response import created, ok, page
from policy_ledger.api.schemas import CustomerPolicyIn, CustomerPolicyPatch
from policy_ledger.core.access import Requester
from policy_ledger.core.container import ServiceContainer
from policy_ledger.models.insurance import CustomerPolicyCreate

router = APIRouter(prefix="/customer-policies", tags=["Customer Policies"])


@router.get("")
def list_customer_policies(
    customer_id: Optional[int] = Query(None, alias="customerId"),
    policy_id: Optional[int] = Query(None, alias="policyId"),
    insurer_id: Optional[int] = Query(None, alias="insurerId"),
    status: Optional[str] = Query(None),
    params: ListParams = Depends(list_params),
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    query = params.query(customer_id=customer_id, policy_id=policy_id, insurer_id=insurer_id, status=status)
    return page(container.customer_policy_service.list(query, requester))


@router.get("/number/{policy_number}")
def get_customer_policy_by_number(
    policy_number: str,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.customer_policy_service.find_by_policy_number(policy_number, requester))


@router.get("/{binding_id}")
def get_customer_policy(
    binding_id: int,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.customer_policy_service.get(binding_id, requester))


@router.get("/{binding_id}/payment-summary")
def get_payment_summary(
    binding_id: int,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.payment_service.payment_summary(binding_id, requester))


@router.post("", status_code=201)
def create_customer_policy(
    body: CustomerPolicyIn,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    payload = CustomerPolicyCreate(**body.model_dump())
    return created(container.customer_policy_service.create(payload, requester))


@router.put("/{binding_id}")
def update_customer_policy(
    binding_id: int,
    body: CustomerPolicyPatch,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.customer_policy_service.update(binding_id, body.changes(), requester))


@router.delete("/{binding_id}")
def delete_customer_policy(
    binding_id: int,
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    container.customer_policy_service.delete(binding_id, requester)
    return ok({"id": binding_id, "deleted": True})
