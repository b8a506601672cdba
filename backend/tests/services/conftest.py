"""Service test fixtures — fake ledger, pipeline and FastAPI test client.

Invariants:
    - Default ledger: decimals=18, balance(OWNER)=1000 tokens,
      allowance(OWNER → SIGNER)=500 tokens, totalSupply=1_000_000 tokens
    - get_pipeline / get_ledger overridden so the lifespan (real RPC) never runs

Design Decisions:
    - httpx ASGITransport does not run lifespan events, so no node is contacted
"""

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.dependencies import get_ledger, get_pipeline
from app.main import app
from app.services.token_pipeline import TokenPipeline

from tests.services.fake_ledger import FakeLedger, OWNER, SIGNER, TOKEN_ADDRESS, WEI


@pytest.fixture
def fake_ledger():
    return FakeLedger(
        total_supply=1_000_000 * WEI,
        balances={OWNER: 1000 * WEI},
        allowances={(OWNER, SIGNER): 500 * WEI},
    )


@pytest.fixture
def pipeline(fake_ledger):
    return TokenPipeline(fake_ledger, TOKEN_ADDRESS)


@pytest.fixture
async def client(pipeline, fake_ledger):
    """FastAPI test client with ledger dependencies overridden."""
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    app.dependency_overrides[get_ledger] = lambda: fake_ledger

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
