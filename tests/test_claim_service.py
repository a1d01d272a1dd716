from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from policy_ledger.core.dates import today
from policy_ledger.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from policy_ledger.models.insurance import ClaimCreate
from policy_ledger.models.query import Query
from policy_ledger.services.claim_service import (
    APPROVED,
    CLAIM_STATUSES,
    DRAFT,
    REJECTED,
    SETTLED,
    SUBMITTED,
    TRANSITIONS,
    UNDER_REVIEW,
    can_transition,
)

ALLOWED = {
    (DRAFT, SUBMITTED),
    (SUBMITTED, UNDER_REVIEW),
    (SUBMITTED, DRAFT),
    (UNDER_REVIEW, APPROVED),
    (UNDER_REVIEW, REJECTED),
    (UNDER_REVIEW, SUBMITTED),
    (APPROVED, SETTLED),
    (APPROVED, UNDER_REVIEW),
    (REJECTED, UNDER_REVIEW),
}

# Shortest path from draft to each status.
PATHS = {
    DRAFT: [],
    SUBMITTED: [SUBMITTED],
    UNDER_REVIEW: [SUBMITTED, UNDER_REVIEW],
    APPROVED: [SUBMITTED, UNDER_REVIEW, APPROVED],
    REJECTED: [SUBMITTED, UNDER_REVIEW, REJECTED],
    SETTLED: [SUBMITTED, UNDER_REVIEW, APPROVED, SETTLED],
}


def open_claim(container, requester, binding_id, **extra):
    return container.claim_service.create(ClaimCreate(customer_policy_id=binding_id, **extra), requester)


def walk(container, claim_id, requester, status):
    for step in PATHS[status]:
        container.claim_service.transition(claim_id, step, requester)


@pytest.mark.parametrize("from_status", CLAIM_STATUSES)
@pytest.mark.parametrize("to_status", CLAIM_STATUSES)
def test_transition_table(from_status, to_status) -> None:
    assert can_transition(from_status, to_status) is ((from_status, to_status) in ALLOWED)


def test_settled_is_terminal() -> None:
    assert TRANSITIONS[SETTLED] == frozenset()


@pytest.mark.parametrize("from_status", CLAIM_STATUSES)
@pytest.mark.parametrize("to_status", CLAIM_STATUSES)
def test_service_enforces_transition_table(container, moderator, binding, from_status, to_status) -> None:
    claim = open_claim(container, moderator, binding.id)
    walk(container, claim.id, moderator, from_status)

    if (from_status, to_status) in ALLOWED:
        moved = container.claim_service.transition(claim.id, to_status, moderator)
        assert moved.status == to_status
    else:
        with pytest.raises(InvalidTransitionError):
            container.claim_service.transition(claim.id, to_status, moderator)
        assert container.claim_service.get(claim.id, moderator).status == from_status


def test_handler_recorded_when_claim_is_handled(container, staff, moderator, binding) -> None:
    claim = open_claim(container, staff, binding.id)

    submitted = container.claim_service.transition(claim.id, SUBMITTED, staff)
    assert submitted.handled_by is None

    reviewed = container.claim_service.transition(claim.id, UNDER_REVIEW, moderator)
    assert reviewed.handled_by == "mod-1"
    assert reviewed.updated_by == "mod-1"


def test_claim_defaults(container, staff, binding) -> None:
    claim = open_claim(container, staff, binding.id, amount_claimed=Decimal("5000"))

    assert claim.status == DRAFT
    assert claim.claimant_id == "staff-1"
    assert claim.date_of_event == today()
    assert claim.currency == "INR"
    assert claim.claim_number == f"CLM-{today():%Y%m}-0001"
    assert claim.customer_policy["policy_number"] == binding.policy_number
    assert claim.customer["name"] == "Ravi Kumar"


def test_claim_may_start_submitted_only_from_initial_states(container, staff, binding) -> None:
    assert open_claim(container, staff, binding.id, status=SUBMITTED).status == SUBMITTED

    with pytest.raises(ValidationError) as excinfo:
        open_claim(container, staff, binding.id, status=APPROVED)
    assert "status" in excinfo.value.errors


def test_claim_requires_active_binding(container, staff, binding) -> None:
    container.customer_policy_service.update(binding.id, {"status": "lapsed"}, staff)

    with pytest.raises(InvalidStateError):
        open_claim(container, staff, binding.id)
    with pytest.raises(NotFoundError):
        open_claim(container, staff, 999)


def test_claim_on_foreign_binding_is_hidden(container, other_staff, binding) -> None:
    with pytest.raises(NotFoundError):
        open_claim(container, other_staff, binding.id)


def test_approved_cannot_exceed_claimed(container, staff, binding) -> None:
    with pytest.raises(ValidationError) as excinfo:
        open_claim(container, staff, binding.id, amount_claimed=Decimal("100"), amount_approved=Decimal("150"))
    assert "amount_approved" in excinfo.value.errors

    claim = open_claim(container, staff, binding.id, amount_claimed=Decimal("100"))
    with pytest.raises(ValidationError):
        container.claim_service.update(claim.id, {"amount_approved": "100.01"}, staff)
    assert container.claim_service.update(claim.id, {"amount_approved": "100"}, staff).amount_approved == Decimal("100")


def test_supporting_docs_round_trip(container, staff, binding) -> None:
    claim = open_claim(container, staff, binding.id, supporting_docs=["docs/bill.pdf", "docs/report.pdf"])

    assert claim.supporting_docs == ["docs/bill.pdf", "docs/report.pdf"]
    with pytest.raises(ValidationError):
        container.claim_service.update(claim.id, {"supporting_docs": ["  "]}, staff)


def test_update_with_same_status_is_not_a_transition(container, staff, binding) -> None:
    claim = open_claim(container, staff, binding.id)

    updated = container.claim_service.update(claim.id, {"status": DRAFT, "notes": "hospital bill"}, staff)

    assert updated.status == DRAFT
    assert updated.notes == "hospital bill"
    with pytest.raises(InvalidTransitionError):
        container.claim_service.transition(claim.id, DRAFT, staff)


def test_update_status_goes_through_table(container, staff, binding) -> None:
    claim = open_claim(container, staff, binding.id)

    with pytest.raises(InvalidTransitionError):
        container.claim_service.update(claim.id, {"status": APPROVED}, staff)
    assert container.claim_service.update(claim.id, {"status": SUBMITTED}, staff).status == SUBMITTED


def test_claim_number_unique_on_update(container, staff, binding) -> None:
    first = open_claim(container, staff, binding.id)
    second = open_claim(container, staff, binding.id)

    with pytest.raises(ConflictError):
        container.claim_service.update(second.id, {"claim_number": first.claim_number}, staff)


def test_only_draft_claims_can_be_deleted(container, staff, admin, binding) -> None:
    draft = open_claim(container, staff, binding.id)
    submitted = open_claim(container, staff, binding.id, status=SUBMITTED)

    with pytest.raises(ForbiddenError):
        container.claim_service.delete(draft.id, staff)
    with pytest.raises(ForbiddenError):
        container.claim_service.delete(submitted.id, admin)
    with pytest.raises(NotFoundError):
        container.claim_service.delete(999, admin)

    container.claim_service.delete(draft.id, admin)
    with pytest.raises(NotFoundError):
        container.claim_service.get(draft.id, admin)


def test_other_staff_cannot_touch_claim(container, staff, other_staff, binding) -> None:
    claim = open_claim(container, staff, binding.id)

    with pytest.raises(NotFoundError):
        container.claim_service.get(claim.id, other_staff)
    with pytest.raises(NotFoundError):
        container.claim_service.transition(claim.id, SUBMITTED, other_staff)


def test_claim_listing_filters(container, staff, moderator, binding) -> None:
    open_claim(container, staff, binding.id, date_of_event=date(2024, 3, 5))
    open_claim(container, staff, binding.id, status=SUBMITTED, date_of_event=date(2024, 4, 5))
    service = container.claim_service

    assert service.list(Query(filters={"status": SUBMITTED}), staff).total == 1
    assert service.list(Query(filters={"customer_policy_id": binding.id}), moderator).total == 2
    assert service.list(Query(date_from=date(2024, 4, 1)), staff).total == 1
    assert service.list(Query(filters={"claimant_id": "staff-1"}), staff).total == 2
