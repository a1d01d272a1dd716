"""Insurance domain models: catalog, bindings, payments, and claims."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

DEFAULT_CURRENCY = "INR"
CURRENCIES = ("INR", "USD", "EUR")

BINDING_ACTIVE = "active"
BINDING_LAPSED = "lapsed"
BINDING_CANCELLED = "cancelled"
BINDING_EXPIRED = "expired"
BINDING_STATUSES = (BINDING_ACTIVE, BINDING_LAPSED, BINDING_CANCELLED, BINDING_EXPIRED)

PAYMENT_MODES = ("cash", "upi", "card", "bank_transfer", "other")

Projection = dict[str, Any]


@dataclass
class InsurerCreate:
    """Input model for an insurance company."""

    name: str
    code: str | None = None
    contact_person: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""
    notes: str = ""
    is_active: bool = True


@dataclass
class InsurerView:
    id: int
    name: str
    code: str | None
    contact_person: str
    phone: str
    email: str
    address: str
    notes: str
    is_active: bool
    created_by: str
    updated_by: str | None
    created_at: str
    updated_at: str


@dataclass
class PolicyCreate:
    """Input model for an insurance product offered by an insurer."""

    insurer_id: int
    name: str
    premium_amount: Decimal
    premium_frequency: str = "monthly"
    code: str | None = None
    currency: str = DEFAULT_CURRENCY
    term_months: int | None = None
    min_cover_amount: Decimal | None = None
    max_cover_amount: Decimal | None = None
    active: bool = True
    description: str = ""
    coverage_details: str = ""


@dataclass
class PolicyView:
    id: int
    insurer_id: int
    name: str
    code: str | None
    premium_amount: Decimal
    premium_frequency: str
    currency: str
    term_months: int | None
    min_cover_amount: Decimal | None
    max_cover_amount: Decimal | None
    active: bool
    description: str
    coverage_details: str
    created_by: str
    updated_by: str | None
    created_at: str
    updated_at: str
    insurer: Projection | None = None


@dataclass
class CustomerPolicyCreate:
    """Input model binding a customer to a policy.

    ``insurer_id`` is taken from the policy; when supplied it must match.
    ``policy_number`` is generated when omitted.
    """

    customer_id: int
    policy_id: int
    insurer_id: int | None = None
    policy_number: str | None = None
    status: str = BINDING_ACTIVE
    start_date: date | None = None
    end_date: date | None = None
    next_premium_due_date: date | None = None
    insured_person_id: int | None = None
    sum_insured: Decimal | None = None
    premium: Decimal | None = None
    premium_frequency: str | None = None
    notes: str = ""


@dataclass
class CustomerPolicyView:
    id: int
    customer_id: int
    policy_id: int
    insurer_id: int
    policy_number: str
    status: str
    start_date: date | None
    end_date: date | None
    next_premium_due_date: date | None
    insured_person_id: int | None
    sum_insured: Decimal | None
    premium: Decimal | None
    premium_frequency: str | None
    currency: str
    notes: str
    created_by: str
    updated_by: str | None
    created_at: str
    updated_at: str
    policy: Projection | None = None
    insurer: Projection | None = None
    customer: Projection | None = None


@dataclass
class PolicyPaymentCreate:
    """Input model for a premium payment against a binding."""

    customer_policy_id: int
    amount: Decimal
    payment_date: date | None = None
    mode_of_payment: str = "cash"
    currency: str = DEFAULT_CURRENCY
    payer_id: str | None = None
    reference: str = ""


@dataclass
class PolicyPaymentView:
    id: int
    customer_policy_id: int
    payer_id: str | None
    amount: Decimal
    currency: str
    payment_date: date
    mode_of_payment: str
    reference: str
    transaction_id: str
    created_by: str
    updated_by: str | None
    created_at: str
    updated_at: str
    customer_policy: Projection | None = None
    policy: Projection | None = None
    insurer: Projection | None = None
    customer: Projection | None = None


@dataclass
class PaymentSummary:
    customer_policy_id: int
    total_payments: int
    total_amount: Decimal
    first_payment_date: date | None
    last_payment_date: date | None


@dataclass
class ClaimCreate:
    """Input model for an insurance claim against a binding."""

    customer_policy_id: int
    status: str = "draft"
    date_of_event: date | None = None
    amount_claimed: Decimal | None = None
    amount_approved: Decimal | None = None
    claimant_id: str | None = None
    notes: str = ""
    supporting_docs: list[str] = field(default_factory=list)


@dataclass
class ClaimView:
    id: int
    customer_policy_id: int
    claim_number: str
    date_of_event: date
    amount_claimed: Decimal | None
    amount_approved: Decimal | None
    currency: str
    status: str
    claimant_id: str
    handled_by: str | None
    notes: str
    supporting_docs: list[str]
    created_by: str
    updated_by: str | None
    created_at: str
    updated_at: str
    customer_policy: Projection | None = None
    policy: Projection | None = None
    insurer: Projection | None = None
    customer: Projection | None = None


@dataclass
class InsuranceSummary:
    """Headline counts and totals for the insurance dashboard."""

    total_insurers: int
    total_policies: int
    total_customer_policies: int
    customer_policies_by_status: dict[str, int]
    total_payments: int
    premium_revenue: Decimal
    total_claims: int
    claims_amount: Decimal
    claims_settled: int
    claims_pending: int
