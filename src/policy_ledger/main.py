"""Application entry point."""

from __future__ import annotations

import uvicorn

from policy_ledger.api.app import create_app
from policy_ledger.core.container import build_container


def run() -> None:
    """Serve the HTTP API."""
    container = build_container()
    app = create_app(container)
    server = container.config.server
    uvicorn.run(app, host=server.host, port=server.port, log_config=None)


if __name__ == "__main__":
    run()
