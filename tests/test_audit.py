from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from policy_ledger.core.dates import today
from policy_ledger.core.errors import ConflictError, ValidationError
from policy_ledger.models.insurance import ClaimCreate, InsurerCreate, PolicyPaymentCreate
from policy_ledger.repositories.audit_repository import AuditRepository


def entries(container, **filters):
    logs, _ = container.audit_repo.list_logs(limit=200, **filters)
    return logs


def test_each_mutation_writes_one_entry(container, admin) -> None:
    service = container.insurer_service
    created = service.create(InsurerCreate(name="Acme", code="ACM"), admin)
    service.update(created.id, {"notes": "preferred"}, admin)
    service.delete(created.id, admin)

    logs = entries(container, entity_type="insurer", entity_id=created.id)

    assert [log["action"] for log in logs] == ["DELETE", "UPDATE", "CREATE"]
    assert all(log["actor_id"] == "admin-1" for log in logs)
    assert logs[2]["details"]["after"]["name"] == "Acme"
    assert logs[0]["details"]["before"]["code"] == "ACM"


def test_update_entry_carries_before_after_and_changes(container, admin) -> None:
    created = container.insurer_service.create(InsurerCreate(name="Acme", code="ACM"), admin)
    container.insurer_service.update(created.id, {"contact_person": "Asha"}, admin)

    update = entries(container, action="UPDATE", entity_id=created.id)[0]

    assert update["details"]["before"]["contact_person"] == ""
    assert update["details"]["after"]["contact_person"] == "Asha"
    assert update["details"]["changes"]["contact_person"] == {"before": "", "after": "Asha"}
    assert update["details"]["changes"]["updated_by"] == {"before": None, "after": "admin-1"}
    assert "updated_at" not in update["details"]["after"]


def test_failed_mutations_write_nothing(container, admin) -> None:
    container.insurer_service.create(InsurerCreate(name="Acme", code="ACM"), admin)
    before = len(entries(container))

    with pytest.raises(ConflictError):
        container.insurer_service.create(InsurerCreate(name="Acme"), admin)
    with pytest.raises(ValidationError):
        container.insurer_service.create(InsurerCreate(name="A"), admin)

    assert len(entries(container)) == before


def test_payment_entry_records_due_date_move(container, staff, binding) -> None:
    payment = container.payment_service.create(
        PolicyPaymentCreate(customer_policy_id=binding.id, amount=Decimal("1000"), payment_date=date(2024, 2, 1)),
        staff,
    )

    logs = entries(container, entity_type="policy_payment", entity_id=payment.id)

    assert len(logs) == 1
    assert logs[0]["details"]["next_premium_due_date"] == {"before": "2024-02-01", "after": "2024-03-01"}
    assert logs[0]["details"]["after"]["amount"] == "1000"


def test_claim_transition_summary(container, staff, binding) -> None:
    claim = container.claim_service.create(ClaimCreate(customer_policy_id=binding.id), staff)
    container.claim_service.transition(claim.id, "submitted", staff)

    latest = entries(container, entity_type="claim")[0]

    assert latest["summary"].endswith("draft -> submitted")
    assert latest["details"]["changes"]["status"] == {"before": "draft", "after": "submitted"}


def test_audit_repository_is_append_only() -> None:
    assert not hasattr(AuditRepository, "update")
    assert not hasattr(AuditRepository, "delete")


def test_list_logs_filters(container, admin, staff, binding) -> None:
    service = container.activity_log_service

    by_staff = service.list_logs(admin, actor_id="staff-1")
    assert by_staff.total == 1
    assert by_staff.items[0]["entity_type"] == "customer_policy"

    assert service.list_logs(admin, action="create").total == 3
    assert service.list_logs(admin, keyword="INS-ACM-2024-0001").total == 1
    assert service.list_logs(admin, date_from=today(), date_to=today()).total == 3
    assert service.list_logs(admin, limit=2).has_more is True

    with pytest.raises(ValidationError):
        service.list_logs(admin, action="PURGE")


def test_staff_only_see_their_own_activity(container, staff, binding) -> None:
    page = container.activity_log_service.list_logs(staff, actor_id="admin-1")

    assert page.total == 1
    assert {log["actor_id"] for log in page.items} == {"staff-1"}
