"""Insurer and policy catalog behaviour."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from policy_ledger.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from policy_ledger.models.insurance import CustomerPolicyCreate, InsurerCreate, PolicyCreate
from policy_ledger.models.query import Query


def test_insurer_crud(container, admin) -> None:
    service = container.insurer_service
    created = service.create(
        InsurerCreate(name="Acme", code="ACM", contact_person="Asha", email="claims@acme.in"), admin
    )

    assert created.is_active is True
    assert created.created_by == "admin-1"
    assert service.find_by_code("acm", admin).id == created.id

    updated = service.update(created.id, {"phone": "+911234567890"}, admin)
    assert updated.phone == "+911234567890"
    assert updated.updated_by == "admin-1"

    service.delete(created.id, admin)
    with pytest.raises(NotFoundError):
        service.get(created.id, admin)


def test_insurer_uniqueness_rechecked_excluding_self(container, admin) -> None:
    service = container.insurer_service
    acme = service.create(InsurerCreate(name="Acme", code="ACM"), admin)
    service.create(InsurerCreate(name="Zenith", code="ZEN"), admin)

    with pytest.raises(ConflictError):
        service.create(InsurerCreate(name="Acme"), admin)
    with pytest.raises(ConflictError):
        service.create(InsurerCreate(name="Other", code="ZEN"), admin)
    with pytest.raises(ConflictError):
        service.update(acme.id, {"code": "ZEN"}, admin)

    # Re-saving its own name and code is not a conflict.
    assert service.update(acme.id, {"name": "Acme", "code": "ACM"}, admin).name == "Acme"


def test_insurer_validation_is_field_level(container, admin) -> None:
    with pytest.raises(ValidationError) as excinfo:
        container.insurer_service.create(InsurerCreate(name="Acme", code="acme"), admin)
    assert "code" in excinfo.value.errors


def test_catalog_writes_require_privileged_role(container, staff, admin) -> None:
    with pytest.raises(ForbiddenError):
        container.insurer_service.create(InsurerCreate(name="Acme"), staff)

    insurer = container.insurer_service.create(InsurerCreate(name="Acme"), admin)
    with pytest.raises(ForbiddenError):
        container.policy_service.create(
            PolicyCreate(insurer_id=insurer.id, name="Basic", premium_amount=Decimal("10")), staff
        )
    # Reads stay open to the base role.
    assert container.insurer_service.get(insurer.id, staff).name == "Acme"


def test_insurer_listing_search_and_active_filter(container, admin, staff) -> None:
    service = container.insurer_service
    service.create(InsurerCreate(name="Acme Life", code="ACM"), admin)
    service.create(InsurerCreate(name="Bharat General", code="BGI", contact_person="Acme liaison"), admin)
    service.create(InsurerCreate(name="Closed Co", code="CLS", is_active=False), admin)

    found = service.list(Query(search="acme"), staff)
    assert found.total == 2

    active = service.list(Query(filters={"is_active": True}), staff)
    assert {view.code for view in active.items} == {"ACM", "BGI"}

    paged = service.list(Query(limit=1, offset=1), staff)
    assert paged.total == 3
    assert len(paged.items) == 1
    assert paged.has_more is True

    assert [view.name for view in service.list_active()] == ["Acme Life", "Bharat General"]


def test_policy_requires_active_insurer(container, admin) -> None:
    inactive = container.insurer_service.create(InsurerCreate(name="Dormant", is_active=False), admin)

    with pytest.raises(ConflictError):
        container.policy_service.create(
            PolicyCreate(insurer_id=inactive.id, name="Basic", premium_amount=Decimal("10")), admin
        )
    with pytest.raises(NotFoundError):
        container.policy_service.create(
            PolicyCreate(insurer_id=999, name="Basic", premium_amount=Decimal("10")), admin
        )


def test_policy_reassignment_checks_new_insurer(container, admin, policy) -> None:
    inactive = container.insurer_service.create(InsurerCreate(name="Dormant", is_active=False), admin)

    with pytest.raises(ConflictError):
        container.policy_service.update(policy.id, {"insurer_id": inactive.id}, admin)
    # Unrelated edits do not re-check the insurer.
    assert container.policy_service.update(policy.id, {"description": "Entry plan"}, admin).description == "Entry plan"


def test_policy_name_unique_within_insurer(container, admin, insurer, policy) -> None:
    other = container.insurer_service.create(InsurerCreate(name="Zenith", code="ZEN"), admin)

    with pytest.raises(ConflictError):
        container.policy_service.create(
            PolicyCreate(insurer_id=insurer.id, name="Basic", premium_amount=Decimal("5")), admin
        )
    same_name = container.policy_service.create(
        PolicyCreate(insurer_id=other.id, name="Basic", premium_amount=Decimal("5")), admin
    )
    assert same_name.insurer == {"id": other.id, "name": "Zenith", "code": "ZEN"}


def test_policy_validation(container, admin, insurer) -> None:
    with pytest.raises(ValidationError) as excinfo:
        container.policy_service.create(
            PolicyCreate(
                insurer_id=insurer.id,
                name="Cover",
                premium_amount=Decimal("10"),
                min_cover_amount=Decimal("500"),
                max_cover_amount=Decimal("100"),
            ),
            admin,
        )
    assert "max_cover_amount" in excinfo.value.errors

    with pytest.raises(ValidationError):
        container.policy_service.create(
            PolicyCreate(insurer_id=insurer.id, name="Cover", premium_amount=Decimal("10"), premium_frequency="weekly"),
            admin,
        )


def test_policy_listing_carries_insurer_projection(container, admin, staff, insurer, policy) -> None:
    listed = container.policy_service.list(Query(filters={"insurer_id": insurer.id}), staff)

    assert listed.total == 1
    assert listed.items[0].insurer == {"id": insurer.id, "name": "Acme", "code": "ACM"}
    assert [view.id for view in container.policy_service.list_active(insurer.id)] == [policy.id]
    assert container.policy_service.list_by_insurer(insurer.id, Query(), staff).total == 1


def test_referential_integrity_on_catalog_delete(container, admin, insurer, policy, customer_id) -> None:
    with pytest.raises(ConflictError):
        container.insurer_service.delete(insurer.id, admin)

    binding = container.customer_policy_service.create(
        CustomerPolicyCreate(customer_id=customer_id, policy_id=policy.id, start_date=date(2024, 1, 1)), admin
    )
    with pytest.raises(ConflictError):
        container.policy_service.delete(policy.id, admin)

    container.customer_policy_service.delete(binding.id, admin)
    container.policy_service.delete(policy.id, admin)
    container.insurer_service.delete(insurer.id, admin)
    assert container.insurer_service.list(Query(), admin).total == 0
