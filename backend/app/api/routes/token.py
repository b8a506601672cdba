"""Token Routes — token info, balances, delegated transfers and approvals.

Invariants:
    - Request bodies and path params validated by Pydantic before reaching the handler
    - Handlers only translate between schemas and TokenPipeline — no ledger logic here
    - TokenErrors propagate to the global handler (api/error_handlers.py)
"""

import logging

from fastapi import APIRouter, Depends, Path

from app.api.dependencies import get_pipeline
from app.core.addresses import ADDRESS_PATTERN
from app.schemas.token import (
    ApproveRequest,
    BalanceResponse,
    TokenInfoResponse,
    TransactionResponse,
    TransferFromRequest,
)
from app.services.token_pipeline import TokenPipeline

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/token", tags=["token"])


@router.get("/info", response_model=TokenInfoResponse)
async def get_token_info(pipeline: TokenPipeline = Depends(get_pipeline)):
    """Token name, symbol, decimals and current total supply."""
    info = await pipeline.get_token_info()
    return TokenInfoResponse.from_info(info)


@router.get("/balance/{address}", response_model=BalanceResponse)
async def get_balance(
    address: str = Path(pattern=ADDRESS_PATTERN),
    pipeline: TokenPipeline = Depends(get_pipeline),
):
    """Formatted token balance of an address."""
    balance = await pipeline.get_balance(address)
    return BalanceResponse(balance=balance)


@router.post("/transfer-from", response_model=TransactionResponse)
async def transfer_from(
    body: TransferFromRequest, pipeline: TokenPipeline = Depends(get_pipeline),
):
    """Move tokens between accounts using the service's delegated allowance."""
    outcome = await pipeline.transfer_from(body.sender, body.to, body.amount)
    return TransactionResponse.from_outcome(outcome)


@router.post("/approve", response_model=TransactionResponse)
async def approve(
    body: ApproveRequest, pipeline: TokenPipeline = Depends(get_pipeline),
):
    """Grant a spender an allowance from the service's account."""
    outcome = await pipeline.approve(body.spender, body.amount)
    return TransactionResponse.from_outcome(outcome)
