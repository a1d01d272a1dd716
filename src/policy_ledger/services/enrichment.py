"""Batch lookups that attach denormalized projections to a page of records."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from policy_ledger.repositories.base import DocumentRepository

INSURER_PROJECTION = ("id", "name", "code")
POLICY_PROJECTION = ("id", "name", "code", "premium_amount", "premium_frequency")
CUSTOMER_PROJECTION = ("id", "name", "phone", "email")
BINDING_PROJECTION = ("id", "policy_number", "status", "next_premium_due_date", "customer_id", "policy_id", "insurer_id")


def project(record: Mapping[str, Any] | None, fields: Iterable[str]) -> dict[str, Any] | None:
    if record is None:
        return None
    return {field: record.get(field) for field in fields}


def lookup(repo: DocumentRepository, records: Iterable[Mapping[str, Any]], key: str) -> dict[int, dict[str, Any]]:
    """Fetch every record referenced by ``key`` in one query."""
    return repo.get_many(record[key] for record in records if record.get(key) is not None)


def chain_lookup(
    records: list[dict[str, Any]],
    bindings: DocumentRepository,
    policies: DocumentRepository,
    insurers: DocumentRepository,
    customers: DocumentRepository,
) -> list[dict[str, Any]]:
    """Attach binding, policy, insurer, and customer projections to rows keyed by ``customer_policy_id``.

    Each referenced collection is read once for the whole page and merged in memory.
    """
    binding_map = lookup(bindings, records, "customer_policy_id")
    binding_rows = list(binding_map.values())
    policy_map = lookup(policies, binding_rows, "policy_id")
    insurer_map = lookup(insurers, binding_rows, "insurer_id")
    customer_map = lookup(customers, binding_rows, "customer_id")

    enriched = []
    for record in records:
        binding = binding_map.get(record["customer_policy_id"])
        enriched.append(
            {
                **record,
                "customer_policy": project(binding, BINDING_PROJECTION),
                "policy": project(policy_map.get(binding["policy_id"]) if binding else None, POLICY_PROJECTION),
                "insurer": project(insurer_map.get(binding["insurer_id"]) if binding else None, INSURER_PROJECTION),
                "customer": project(customer_map.get(binding["customer_id"]) if binding else None, CUSTOMER_PROJECTION),
            }
        )
    return enriched
