from __future__ import annotations

import pytest

from policy_ledger.core.access import AccessScoper, Requester
from policy_ledger.core.errors import ForbiddenError, NotFoundError, ValidationError
from policy_ledger.models.query import Query


def test_requester_rejects_unknown_role() -> None:
    with pytest.raises(ValidationError):
        Requester(user_id="u1", role="superuser")
    with pytest.raises(ValidationError):
        Requester(user_id="", role="staff")


def test_scope_adds_owner_filter_for_staff(staff, admin, moderator) -> None:
    scoper = AccessScoper()
    query = Query(filters={"status": "active"}, limit=5)

    scoped = scoper.scope(query, staff, "customer_policy")

    assert scoped.filters == {"status": "active", "created_by": "staff-1"}
    assert scoped.limit == 5
    assert query.filters == {"status": "active"}
    assert scoper.scope(query, admin, "customer_policy") is query
    assert scoper.scope(query, moderator, "claim") is query


def test_catalog_reads_are_shared(staff) -> None:
    scoper = AccessScoper()
    query = Query()

    assert scoper.scope(query, staff, "insurer") is query
    assert scoper.is_visible({"created_by": "someone-else"}, staff, "policy")


def test_ensure_visible_hides_foreign_records(staff, admin) -> None:
    scoper = AccessScoper()
    record = {"id": 3, "created_by": "staff-2"}

    with pytest.raises(NotFoundError):
        scoper.ensure_visible(record, staff, "claim", 3)
    with pytest.raises(NotFoundError):
        scoper.ensure_visible(None, admin, "claim", 3)
    assert scoper.ensure_visible(record, admin, "claim", 3) is record


def test_delete_capability_is_independent_of_ownership(staff) -> None:
    scoper = AccessScoper()

    with pytest.raises(ForbiddenError):
        scoper.ensure_can_delete(staff, "claim")
    scoper.ensure_can_delete(Requester(user_id="staff-1", role="staff", can_delete_override=True), "claim")
    scoper.ensure_can_delete(Requester(user_id="admin-1", role="admin"), "claim")


def test_ensure_privileged(staff, moderator) -> None:
    scoper = AccessScoper()

    with pytest.raises(ForbiddenError):
        scoper.ensure_privileged(staff, "create insurers")
    scoper.ensure_privileged(moderator, "create insurers")
