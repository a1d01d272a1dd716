"""Shared fixtures: a fully wired container over a temporary SQLite file."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from policy_ledger.core.access import Requester
from policy_ledger.core.config import (
    AppConfig,
    DatabaseConfig,
    IdentifierConfig,
    LoggingConfig,
    PaginationConfig,
    ServerConfig,
)
from policy_ledger.core.container import build_container
from policy_ledger.models.customer import CustomerCreate
from policy_ledger.models.insurance import CustomerPolicyCreate, InsurerCreate, PolicyCreate


def make_config(tmp_path) -> AppConfig:
    return AppConfig(
        database=DatabaseConfig(
            path=str(tmp_path / "test.db"),
            key_env="LEDGER_DB_KEY",
            allow_sqlite_fallback=True,
        ),
        logging=LoggingConfig(level="WARNING", format="standard"),
        identifiers=IdentifierConfig(width=4, max_attempts=5),
        pagination=PaginationConfig(default_limit=10, max_limit=100),
        server=ServerConfig(host="127.0.0.1", port=8000),
    )


@pytest.fixture
def container(tmp_path, monkeypatch):
    monkeypatch.setenv("LEDGER_DB_KEY", "test-db-key")
    built = build_container(make_config(tmp_path))
    yield built
    built.pool.close_connection()


@pytest.fixture
def admin() -> Requester:
    return Requester(user_id="admin-1", role="admin")


@pytest.fixture
def moderator() -> Requester:
    return Requester(user_id="mod-1", role="moderator")


@pytest.fixture
def staff() -> Requester:
    return Requester(user_id="staff-1", role="staff")


@pytest.fixture
def other_staff() -> Requester:
    return Requester(user_id="staff-2", role="staff")


@pytest.fixture
def customer_id(container) -> int:
    return container.customer_repo.create_customer(
        CustomerCreate(name="Ravi Kumar", phone="+919876543210", email="ravi@example.com"),
        created_by="admin-1",
    )


@pytest.fixture
def insurer(container, admin):
    return container.insurer_service.create(InsurerCreate(name="Acme", code="ACM"), admin)


@pytest.fixture
def policy(container, admin, insurer):
    return container.policy_service.create(
        PolicyCreate(
            insurer_id=insurer.id,
            name="Basic",
            premium_amount=Decimal("1000"),
            premium_frequency="monthly",
        ),
        admin,
    )


@pytest.fixture
def binding(container, staff, policy, customer_id):
    return container.customer_policy_service.create(
        CustomerPolicyCreate(customer_id=customer_id, policy_id=policy.id, start_date=date(2024, 1, 1)),
        staff,
    )
