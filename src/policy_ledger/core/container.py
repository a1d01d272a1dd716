"""Application dependency container."""

from __future__ import annotations

from dataclasses import dataclass

from policy_ledger.core.access import AccessScoper
from policy_ledger.core.config import AppConfig, load_config
from policy_ledger.core.logging import setup_logging
from policy_ledger.repositories.audit_repository import AuditRepository
from policy_ledger.repositories.claim_repository import ClaimRepository
from policy_ledger.repositories.counters import CountingCounterStore
from policy_ledger.repositories.customer_policy_repository import CustomerPolicyRepository
from policy_ledger.repositories.customer_repository import CustomerRepository
from policy_ledger.repositories.db_pool import ThreadLocalConnection
from policy_ledger.repositories.insurer_repository import InsurerRepository
from policy_ledger.repositories.payment_repository import PaymentRepository
from policy_ledger.repositories.policy_repository import PolicyRepository
from policy_ledger.repositories.schema import initialize_schema
from policy_ledger.services.activity_log_service import ActivityLogService
from policy_ledger.services.claim_service import ClaimService
from policy_ledger.services.customer_policy_service import CustomerPolicyService
from policy_ledger.services.identifiers import IdentifierGenerator
from policy_ledger.services.insurer_service import InsurerService
from policy_ledger.services.payment_service import PaymentService
from policy_ledger.services.policy_service import PolicyService
from policy_ledger.services.report_service import ReportService


@dataclass
class ServiceContainer:
    """Wires repositories and services."""

    config: AppConfig
    pool: ThreadLocalConnection
    customer_repo: CustomerRepository
    audit_repo: AuditRepository
    insurer_service: InsurerService
    policy_service: PolicyService
    customer_policy_service: CustomerPolicyService
    payment_service: PaymentService
    claim_service: ClaimService
    report_service: ReportService
    activity_log_service: ActivityLogService


def build_container(config: AppConfig | None = None) -> ServiceContainer:
    """Build dependencies and initialize schema."""
    config = config or load_config()
    setup_logging(config.logging.level, config.logging.format)

    pool = ThreadLocalConnection(config)
    initialize_schema(pool)

    scoper = AccessScoper()
    audit_repo = AuditRepository(pool)
    customer_repo = CustomerRepository(pool)
    insurer_repo = InsurerRepository(pool)
    policy_repo = PolicyRepository(pool)
    binding_repo = CustomerPolicyRepository(pool)
    payment_repo = PaymentRepository(pool)
    claim_repo = ClaimRepository(pool)

    width = config.identifiers.width
    max_attempts = config.identifiers.max_attempts
    policy_numbers = IdentifierGenerator(CountingCounterStore(pool, "customer_policies", "policy_number"), width)
    transaction_ids = IdentifierGenerator(CountingCounterStore(pool, "policy_payments", "transaction_id"), width)
    claim_numbers = IdentifierGenerator(CountingCounterStore(pool, "claims", "claim_number"), width)

    customer_policy_service = CustomerPolicyService(
        binding_repo,
        policy_repo,
        insurer_repo,
        customer_repo,
        payment_repo,
        claim_repo,
        audit_repo,
        scoper,
        policy_numbers,
        max_attempts,
    )

    return ServiceContainer(
        config=config,
        pool=pool,
        customer_repo=customer_repo,
        audit_repo=audit_repo,
        insurer_service=InsurerService(insurer_repo, policy_repo, audit_repo, scoper),
        policy_service=PolicyService(policy_repo, insurer_repo, binding_repo, audit_repo, scoper),
        customer_policy_service=customer_policy_service,
        payment_service=PaymentService(
            payment_repo,
            binding_repo,
            policy_repo,
            insurer_repo,
            customer_repo,
            customer_policy_service,
            audit_repo,
            scoper,
            transaction_ids,
            max_attempts,
        ),
        claim_service=ClaimService(
            claim_repo,
            binding_repo,
            policy_repo,
            insurer_repo,
            customer_repo,
            customer_policy_service,
            audit_repo,
            scoper,
            claim_numbers,
            max_attempts,
        ),
        report_service=ReportService(insurer_repo, policy_repo, binding_repo, payment_repo, claim_repo, scoper),
        activity_log_service=ActivityLogService(audit_repo),
    )
