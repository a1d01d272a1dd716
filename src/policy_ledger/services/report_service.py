"""Insurance summary report."""

from __future__ import annotations

from policy_ledger.core.access import AccessScoper, Requester
from policy_ledger.models.insurance import BINDING_STATUSES, InsuranceSummary
from policy_ledger.models.query import Query
from policy_ledger.repositories.claim_repository import ClaimRepository
from policy_ledger.repositories.customer_policy_repository import CustomerPolicyRepository
from policy_ledger.repositories.insurer_repository import InsurerRepository
from policy_ledger.repositories.payment_repository import PaymentRepository
from policy_ledger.repositories.policy_repository import PolicyRepository
from policy_ledger.services.claim_service import SETTLED


class ReportService:
    """Aggregates counts and totals across the insurance collections."""

    def __init__(
        self,
        insurer_repo: InsurerRepository,
        policy_repo: PolicyRepository,
        binding_repo: CustomerPolicyRepository,
        payment_repo: PaymentRepository,
        claim_repo: ClaimRepository,
        scoper: AccessScoper,
    ):
        self._insurer_repo = insurer_repo
        self._policy_repo = policy_repo
        self._binding_repo = binding_repo
        self._payment_repo = payment_repo
        self._claim_repo = claim_repo
        self._scoper = scoper

    def summary(self, requester: Requester) -> InsuranceSummary:
        """Catalog counts are global; ledger figures only cover what the requester can see."""
        bindings = self._scoper.scope(Query(), requester, "customer_policy")
        payments = self._scoper.scope(Query(), requester, "policy_payment")
        claims = self._scoper.scope(Query(), requester, "claim")
        settled = self._scoper.scope(Query(filters={"status": SETTLED}), requester, "claim")

        by_status = {
            status: self._binding_repo.count(
                self._scoper.scope(Query(filters={"status": status}), requester, "customer_policy")
            )
            for status in BINDING_STATUSES
        }
        total_claims = self._claim_repo.count(claims)
        claims_settled = self._claim_repo.count(settled)

        return InsuranceSummary(
            total_insurers=self._insurer_repo.count(Query(filters={"is_active": True})),
            total_policies=self._policy_repo.count(Query(filters={"active": True})),
            total_customer_policies=self._binding_repo.count(bindings),
            customer_policies_by_status=by_status,
            total_payments=self._payment_repo.count(payments),
            premium_revenue=self._payment_repo.sum_decimal("amount", payments),
            total_claims=total_claims,
            claims_amount=self._claim_repo.sum_decimal("amount_claimed", claims),
            claims_settled=claims_settled,
            claims_pending=total_claims - claims_settled,
        )
