from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from policy_ledger.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from policy_ledger.models.insurance import (
    ClaimCreate,
    CustomerPolicyCreate,
    InsurerCreate,
    PolicyCreate,
    PolicyPaymentCreate,
)
from policy_ledger.models.query import Query


def test_create_binding_derives_insurer_and_first_due_date(container, staff, insurer, policy, customer_id) -> None:
    binding = container.customer_policy_service.create(
        CustomerPolicyCreate(customer_id=customer_id, policy_id=policy.id, start_date=date(2024, 1, 1)), staff
    )

    assert binding.insurer_id == insurer.id
    assert binding.policy_number == "INS-ACM-2024-0001"
    assert binding.next_premium_due_date == date(2024, 2, 1)
    assert binding.currency == "INR"
    assert binding.policy["premium_frequency"] == "monthly"
    assert binding.insurer == {"id": insurer.id, "name": "Acme", "code": "ACM"}
    assert binding.customer["name"] == "Ravi Kumar"


def test_binding_frequency_overrides_policy(container, staff, policy, customer_id) -> None:
    binding = container.customer_policy_service.create(
        CustomerPolicyCreate(
            customer_id=customer_id,
            policy_id=policy.id,
            start_date=date(2024, 1, 31),
            premium_frequency="quarterly",
        ),
        staff,
    )

    assert binding.next_premium_due_date == date(2024, 4, 30)


def test_one_time_policy_has_no_due_date(container, admin, staff, insurer, customer_id) -> None:
    single = container.policy_service.create(
        PolicyCreate(insurer_id=insurer.id, name="Travel", premium_amount=Decimal("300"), premium_frequency="one-time"),
        admin,
    )
    binding = container.customer_policy_service.create(
        CustomerPolicyCreate(customer_id=customer_id, policy_id=single.id, start_date=date(2024, 1, 1)), staff
    )

    assert binding.next_premium_due_date is None


def test_explicit_due_date_and_number_are_kept(container, staff, policy, customer_id) -> None:
    binding = container.customer_policy_service.create(
        CustomerPolicyCreate(
            customer_id=customer_id,
            policy_id=policy.id,
            policy_number="LEGACY-77",
            start_date=date(2024, 1, 1),
            next_premium_due_date=date(2024, 1, 15),
        ),
        staff,
    )

    assert binding.policy_number == "LEGACY-77"
    assert binding.next_premium_due_date == date(2024, 1, 15)
    with pytest.raises(ConflictError):
        container.customer_policy_service.create(
            CustomerPolicyCreate(customer_id=customer_id, policy_id=policy.id, policy_number="LEGACY-77"), staff
        )


def test_binding_requires_active_policy_and_insurer(container, admin, staff, insurer, policy, customer_id) -> None:
    container.policy_service.update(policy.id, {"active": False}, admin)
    with pytest.raises(ConflictError):
        container.customer_policy_service.create(
            CustomerPolicyCreate(customer_id=customer_id, policy_id=policy.id), staff
        )

    container.policy_service.update(policy.id, {"active": True}, admin)
    container.insurer_service.update(insurer.id, {"is_active": False}, admin)
    with pytest.raises(ConflictError):
        container.customer_policy_service.create(
            CustomerPolicyCreate(customer_id=customer_id, policy_id=policy.id), staff
        )


def test_binding_references_must_exist(container, staff, policy, customer_id) -> None:
    with pytest.raises(NotFoundError):
        container.customer_policy_service.create(CustomerPolicyCreate(customer_id=customer_id, policy_id=999), staff)
    with pytest.raises(NotFoundError):
        container.customer_policy_service.create(CustomerPolicyCreate(customer_id=999, policy_id=policy.id), staff)


def test_mismatched_insurer_is_rejected(container, admin, staff, policy, customer_id) -> None:
    other = container.insurer_service.create(InsurerCreate(name="Zenith", code="ZEN"), admin)

    with pytest.raises(ValidationError) as excinfo:
        container.customer_policy_service.create(
            CustomerPolicyCreate(customer_id=customer_id, policy_id=policy.id, insurer_id=other.id), staff
        )
    assert "insurer_id" in excinfo.value.errors


def test_end_date_before_start_is_rejected(container, staff, policy, customer_id) -> None:
    with pytest.raises(ValidationError):
        container.customer_policy_service.create(
            CustomerPolicyCreate(
                customer_id=customer_id,
                policy_id=policy.id,
                start_date=date(2024, 6, 1),
                end_date=date(2024, 5, 1),
            ),
            staff,
        )


def test_update_rechecks_only_changed_references(container, admin, staff, insurer, policy, binding) -> None:
    container.insurer_service.update(insurer.id, {"is_active": False}, admin)

    # The policy is unchanged, so the now-inactive insurer is not re-checked.
    updated = container.customer_policy_service.update(binding.id, {"status": "lapsed", "notes": "missed"}, staff)
    assert updated.status == "lapsed"
    assert updated.updated_by == "staff-1"

    other = container.insurer_service.create(InsurerCreate(name="Zenith", code="ZEN"), admin)
    moved_to = container.policy_service.create(
        PolicyCreate(insurer_id=other.id, name="Plus", premium_amount=Decimal("2000")), admin
    )
    moved = container.customer_policy_service.update(binding.id, {"policy_id": moved_to.id}, staff)
    assert moved.insurer_id == other.id


def test_update_policy_number_uniqueness(container, staff, policy, customer_id, binding) -> None:
    second = container.customer_policy_service.create(
        CustomerPolicyCreate(customer_id=customer_id, policy_id=policy.id, start_date=date(2024, 2, 1)), staff
    )

    with pytest.raises(ConflictError):
        container.customer_policy_service.update(second.id, {"policy_number": binding.policy_number}, staff)
    same = container.customer_policy_service.update(binding.id, {"policy_number": binding.policy_number}, staff)
    assert same.policy_number == binding.policy_number


def test_delete_blocked_by_payments_and_claims(container, admin, staff, policy, customer_id, binding) -> None:
    container.payment_service.create(
        PolicyPaymentCreate(customer_policy_id=binding.id, amount=Decimal("1000"), payment_date=date(2024, 2, 1)),
        staff,
    )
    with pytest.raises(ConflictError):
        container.customer_policy_service.delete(binding.id, admin)

    with_claim = container.customer_policy_service.create(
        CustomerPolicyCreate(customer_id=customer_id, policy_id=policy.id), staff
    )
    container.claim_service.create(ClaimCreate(customer_policy_id=with_claim.id), staff)
    with pytest.raises(ConflictError):
        container.customer_policy_service.delete(with_claim.id, admin)

    empty = container.customer_policy_service.create(
        CustomerPolicyCreate(customer_id=customer_id, policy_id=policy.id), staff
    )
    container.customer_policy_service.delete(empty.id, admin)
    with pytest.raises(NotFoundError):
        container.customer_policy_service.get(empty.id, admin)


def test_staff_cannot_delete_even_own_binding(container, staff, binding) -> None:
    with pytest.raises(ForbiddenError):
        container.customer_policy_service.delete(binding.id, staff)


def test_ownership_scoping(container, staff, other_staff, moderator, binding) -> None:
    service = container.customer_policy_service

    with pytest.raises(NotFoundError):
        service.get(binding.id, other_staff)
    with pytest.raises(NotFoundError):
        service.update(binding.id, {"notes": "not mine"}, other_staff)
    assert service.get(binding.id, moderator).id == binding.id
    assert service.get(binding.id, staff).id == binding.id

    assert service.list(Query(), other_staff).total == 0
    assert service.list(Query(), staff).total == 1
    assert service.list(Query(), moderator).total == 1


def test_listing_filters_and_search(container, staff, policy, customer_id, binding) -> None:
    service = container.customer_policy_service
    service.create(
        CustomerPolicyCreate(customer_id=customer_id, policy_id=policy.id, status="lapsed", notes="grace period"),
        staff,
    )

    assert service.list(Query(filters={"status": "active"}), staff).total == 1
    assert service.list(Query(search="grace"), staff).total == 1
    assert service.list(Query(search="INS-ACM-2024"), staff).total == 1
    listed = service.list(Query(filters={"customer_id": customer_id}), staff)
    assert all(view.policy["name"] == "Basic" for view in listed.items)
    assert service.find_by_policy_number(binding.policy_number, staff).id == binding.id


def test_check_policy_number(container, binding) -> None:
    service = container.customer_policy_service

    assert service.check_policy_number(binding.policy_number) == {
        "policy_number": binding.policy_number,
        "is_valid": True,
        "exists": True,
    }
    assert service.check_policy_number("INS-ACM-2024-0099")["exists"] is False
    assert service.check_policy_number("POL-1")["is_valid"] is False
