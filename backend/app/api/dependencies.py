"""Request Dependencies — hand out the process-wide ledger objects built in the lifespan.

Invariants:
    - TokenPipeline and the ledger client live on app.state, set once at startup
    - Routes receive them via Depends(); tests swap them with dependency_overrides
"""

from fastapi import Request

from app.core.ledger_protocols import LedgerClient
from app.services.token_pipeline import TokenPipeline


def get_pipeline(request: Request) -> TokenPipeline:
    """FastAPI dependency for the token pipeline."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise RuntimeError("Token pipeline not initialized")
    return pipeline


def get_ledger(request: Request) -> LedgerClient | None:
    """Ledger client for health probes; None before startup completes."""
    return getattr(request.app.state, "ledger", None)
