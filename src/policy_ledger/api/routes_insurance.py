from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from policy_ledger.api.deps import current_requester, get_container
from policy_ledger.api.response import ok
from policy_ledger.core.access import Requester
from policy_ledger.core.container import ServiceContainer
from policy_ledger.core.dates import ONE_TIME, PREMIUM_FREQUENCIES, add_interval
from policy_ledger.core.validation import validate_choice

router = APIRouter(prefix="/insurance", tags=["Insurance"])


@router.get("/reports/summary")
def summary_report(
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.report_service.summary(requester))


@router.get("/identifiers/policy-number")
def next_policy_number(
    insurer_id: int = Query(..., alias="insurerId"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    number = container.customer_policy_service.preview_policy_number(insurer_id, start_date)
    return ok({"policy_number": number})


@router.get("/identifiers/transaction-id")
def next_transaction_id(
    payment_date: Optional[date] = Query(None, alias="date"),
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok({"transaction_id": container.payment_service.preview_transaction_id(payment_date)})


@router.get("/identifiers/claim-number")
def next_claim_number(
    on_date: Optional[date] = Query(None, alias="date"),
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok({"claim_number": container.claim_service.preview_claim_number(on_date)})


@router.get("/identifiers/validate-policy-number")
def validate_policy_number(
    policy_number: str = Query(..., alias="policyNumber"),
    requester: Requester = Depends(current_requester),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.customer_policy_service.check_policy_number(policy_number))


@router.get("/identifiers/premium-due")
def premium_due_date(
    start_date: date = Query(..., alias="startDate"),
    frequency: str = Query(...),
    requester: Requester = Depends(current_requester),
):
    frequency = validate_choice(frequency, "frequency", PREMIUM_FREQUENCIES)
    return ok(
        {
            "start_date": start_date,
            "frequency": frequency,
            "next_due_date": add_interval(start_date, frequency),
            "is_one_time": frequency == ONE_TIME,
        }
    )
