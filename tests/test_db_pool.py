from __future__ import annotations

import pytest

from policy_ledger.core.errors import DuplicateKeyError
from policy_ledger.repositories.insurer_repository import InsurerRepository


def count_insurers(container) -> int:
    return container.pool.fetchvalue("SELECT COUNT(*) FROM insurers", (), 0)


def insurer_row(name: str) -> dict:
    return {"name": name, "created_by": "admin-1", "created_at": "2024-01-01", "updated_at": "2024-01-01"}


def test_transaction_rolls_back_every_statement(container) -> None:
    repo = InsurerRepository(container.pool)

    with pytest.raises(RuntimeError):
        with repo.transaction():
            repo.insert(insurer_row("Acme"))
            repo.insert(insurer_row("Zenith"))
            raise RuntimeError("boom")

    assert count_insurers(container) == 0
    assert container.pool.in_transaction is False


def test_failed_statement_inside_transaction_keeps_earlier_writes(container) -> None:
    repo = InsurerRepository(container.pool)

    with repo.transaction():
        repo.insert(insurer_row("Acme"))
        with pytest.raises(DuplicateKeyError):
            repo.insert(insurer_row("Acme"))
        with repo.transaction():
            repo.insert(insurer_row("Zenith"))

    assert count_insurers(container) == 2


def test_statements_outside_transaction_commit_immediately(container) -> None:
    InsurerRepository(container.pool).insert(insurer_row("Acme"))
    container.pool.get_connection().rollback()

    assert count_insurers(container) == 1
