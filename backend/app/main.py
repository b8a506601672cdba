"""Token Ledger API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map TokenError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Settings are validated at import: missing/malformed RPC_URL, PRIVATE_KEY or
      CONTRACT_ADDRESS abort startup instead of failing on the first request
    - Ledger client and pipeline built once in the lifespan, stored on app.state

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Startup connects to the ledger and checks the chain id before accepting traffic
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handlers import register_error_handlers
from app.api.routes import health, token
from app.config import get_settings
from app.infrastructure.ledger_client import connect_ledger
from app.infrastructure.observability import setup_logging
from app.services.token_pipeline import TokenPipeline

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(
        settings.log_level,
        settings.log_format,
        secrets=(settings.private_key.get_secret_value(), settings.rpc_url),
    )
    ledger = await connect_ledger(settings)
    app.state.ledger = ledger
    app.state.pipeline = TokenPipeline(
        ledger,
        settings.contract_address,
        confirmations=settings.confirmations,
        allowance_precheck=settings.allowance_precheck,
    )
    logger.info(
        "Token API started",
        extra={"chain_id": ledger.chain_id, "signer": ledger.signer},
    )
    yield
    logger.info("Token API shutting down")
    await ledger.close()


app = FastAPI(
    title="Token Ledger API", version="1.0.0", lifespan=lifespan,
)

# CORS: configured from settings
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes: explicit registration
app.include_router(health.router)
app.include_router(token.router)

register_error_handlers(app)


def run() -> None:
    """Console entry point — serves the app with uvicorn on HOST:PORT."""
    uvicorn.run("app.main:app", host=settings.host, port=settings.port)
