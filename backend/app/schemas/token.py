"""Token Schemas — Pydantic models with field-level validation for API boundaries.

Invariants:
    - Addresses: 0x + 40 hex digits (ADDRESS_PATTERN)
    - Amounts: decimal strings only — large values never pass through JSON numbers
    - Responses use the camelCase wire names (transactionHash, blockNumber, totalSupply)
    - blockNumber is serialized as a decimal string

Design Decisions:
    - Field aliases over camelCase attributes: Python side stays snake_case,
      FastAPI serializes response_model by alias
"""

from pydantic import BaseModel, ConfigDict, Field

from app.core.addresses import ADDRESS_PATTERN
from app.core.domain_types import TokenInfo, TransactionOutcome

AMOUNT_PATTERN = r"^[0-9]+(?:\.[0-9]+)?$"


class TransferFromRequest(BaseModel):
    """Delegated transfer — moves tokens using the service's allowance."""
    model_config = ConfigDict(populate_by_name=True)

    sender: str = Field(alias="from", pattern=ADDRESS_PATTERN)
    to: str = Field(pattern=ADDRESS_PATTERN)
    amount: str = Field(pattern=AMOUNT_PATTERN, max_length=100)


class ApproveRequest(BaseModel):
    """Allowance grant from the service's signing account."""
    spender: str = Field(pattern=ADDRESS_PATTERN)
    amount: str = Field(pattern=AMOUNT_PATTERN, max_length=100)


class TokenInfoResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    symbol: str
    total_supply: str = Field(alias="totalSupply")
    decimals: int

    @classmethod
    def from_info(cls, info: TokenInfo) -> "TokenInfoResponse":
        return cls(
            name=info.metadata.name,
            symbol=info.metadata.symbol,
            total_supply=info.total_supply,
            decimals=info.metadata.decimals,
        )


class BalanceResponse(BaseModel):
    balance: str


class TransactionResponse(BaseModel):
    """Outcome of a submitted transaction; success=False means it reverted on-chain."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    transaction_hash: str = Field(alias="transactionHash")
    block_number: str = Field(alias="blockNumber")

    @classmethod
    def from_outcome(cls, outcome: TransactionOutcome) -> "TransactionResponse":
        return cls(
            success=outcome.success,
            transaction_hash=outcome.transaction_hash,
            block_number=str(outcome.block_number),
        )
