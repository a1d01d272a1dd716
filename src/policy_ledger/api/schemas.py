from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts camelCase or snake_case keys; unknown keys are rejected."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    def changes(self) -> dict:
        """Only the fields the caller actually sent, keyed by field name."""
        return self.model_dump(exclude_unset=True)


class InsurerIn(CamelModel):
    name: str
    code: Optional[str] = None
    contact_person: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""
    notes: str = ""
    is_active: bool = True


class InsurerPatch(CamelModel):
    name: Optional[str] = None
    code: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class PolicyIn(CamelModel):
    insurer_id: int
    name: str
    premium_amount: Decimal
    premium_frequency: str = "monthly"
    code: Optional[str] = None
    currency: str = "INR"
    term_months: Optional[int] = None
    min_cover_amount: Optional[Decimal] = None
    max_cover_amount: Optional[Decimal] = None
    active: bool = True
    description: str = ""
    coverage_details: str = ""


class PolicyPatch(CamelModel):
    insurer_id: Optional[int] = None
    name: Optional[str] = None
    premium_amount: Optional[Decimal] = None
    premium_frequency: Optional[str] = None
    code: Optional[str] = None
    currency: Optional[str] = None
    term_months: Optional[int] = None
    min_cover_amount: Optional[Decimal] = None
    max_cover_amount: Optional[Decimal] = None
    active: Optional[bool] = None
    description: Optional[str] = None
    coverage_details: Optional[str] = None


class CustomerPolicyIn(CamelModel):
    customer_id: int
    policy_id: int
    insurer_id: Optional[int] = None
    policy_number: Optional[str] = None
    status: str = "active"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    next_premium_due_date: Optional[date] = None
    insured_person_id: Optional[int] = None
    sum_insured: Optional[Decimal] = None
    premium: Optional[Decimal] = None
    premium_frequency: Optional[str] = None
    notes: str = ""


class CustomerPolicyPatch(CamelModel):
    customer_id: Optional[int] = None
    policy_id: Optional[int] = None
    insurer_id: Optional[int] = None
    policy_number: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    next_premium_due_date: Optional[date] = None
    insured_person_id: Optional[int] = None
    sum_insured: Optional[Decimal] = None
    premium: Optional[Decimal] = None
    premium_frequency: Optional[str] = None
    notes: Optional[str] = None


class PolicyPaymentIn(CamelModel):
    customer_policy_id: int
    amount: Decimal
    payment_date: Optional[date] = None
    mode_of_payment: str = "cash"
    currency: str = "INR"
    payer_id: Optional[str] = None
    reference: str = ""


class PolicyPaymentPatch(CamelModel):
    amount: Optional[Decimal] = None
    payment_date: Optional[date] = None
    mode_of_payment: Optional[str] = None
    currency: Optional[str] = None
    payer_id: Optional[str] = None
    reference: Optional[str] = None


class ClaimIn(CamelModel):
    customer_policy_id: int
    status: str = "draft"
    date_of_event: Optional[date] = None
    amount_claimed: Optional[Decimal] = None
    amount_approved: Optional[Decimal] = None
    claimant_id: Optional[str] = None
    notes: str = ""
    supporting_docs: List[str] = Field(default_factory=list)


class ClaimPatch(CamelModel):
    claim_number: Optional[str] = None
    status: Optional[str] = None
    date_of_event: Optional[date] = None
    amount_claimed: Optional[Decimal] = None
    amount_approved: Optional[Decimal] = None
    claimant_id: Optional[str] = None
    notes: Optional[str] = None
    supporting_docs: Optional[List[str]] = None


class TransitionIn(CamelModel):
    status: str
