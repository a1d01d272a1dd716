from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from policy_ledger.api import (
    routes_activity_logs,
    routes_claims,
    routes_customer_policies,
    routes_insurance,
    routes_insurers,
    routes_policies,
    routes_policy_payments,
)
from policy_ledger.api.exception_handlers import register_exception_handlers
from policy_ledger.core.container import ServiceContainer, build_container


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """Build the HTTP application around a service container."""
    app = FastAPI(title="Policy Ledger", docs_url="/docs", redoc_url="/redoc")
    app.state.container = container or build_container()
    register_exception_handlers(app)

    for module in (
        routes_insurers,
        routes_policies,
        routes_customer_policies,
        routes_policy_payments,
        routes_claims,
        routes_activity_logs,
        routes_insurance,
    ):
        app.include_router(module.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
