"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 if the ledger endpoint is unreachable (readiness)
"""

import logging
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.api.dependencies import get_ledger

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["health"])


@router.get("", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {"status": "ok"}


@router.get("/ready")
async def readiness_check(ledger=Depends(get_ledger)):
    """Readiness probe — includes ledger endpoint connectivity."""
    ledger_ok = await ledger.is_connected() if ledger else False
    if not ledger_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "ledger_unavailable",
            },
        )
    return {"status": "ready", "checks": {"ledger": "healthy"}}
