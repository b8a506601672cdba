"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - Address is always the lower-case canonical form (0x + 40 hex digits)
    - Amount is an int of ledger-native precision — never a float
    - Outcome, metadata, plan and confirmation values are frozen after creation
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers for scalars: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON logs without custom encoders
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

Address = NewType("Address", str)
TxHash = NewType("TxHash", str)

ZERO_ADDRESS = Address("0x" + "0" * 40)


# ─── Value Types ─────────────────────────────────────────────────

Amount = NewType("Amount", int)      # scaled integer, 0 ≤ amount ≤ 2**256 - 1
Decimals = NewType("Decimals", int)  # scaling exponent, typically ≤ 18


# ─── Enums ───────────────────────────────────────────────────────

class PipelineStage(str, Enum):
    """Per-invocation stages of a mutating token operation."""
    START = "start"
    READ_DECIMALS = "read_decimals"
    VALIDATE_AND_PARSE_AMOUNT = "validate_and_parse_amount"
    CHECK_PRECONDITION = "check_precondition"
    SIMULATE = "simulate"
    SUBMIT = "submit"
    AWAIT_CONFIRMATION = "await_confirmation"
    DONE = "done"
    FAILED = "failed"


class FailureStage(str, Enum):
    """Where a ledger failure was first detected — tagged by the ledger client."""
    VALIDATION = "validation"      # client rejected input before any RPC
    NETWORK = "network"            # endpoint unreachable, transport error
    READ = "read"                  # eth_call for a view function failed
    SIMULATION = "simulation"      # dry run or gas estimation reverted
    SUBMISSION = "submission"      # node refused the signed transaction
    CONFIRMATION = "confirmation"  # receipt wait failed or timed out


class ConfirmationStatus(str, Enum):
    SUCCESS = "success"
    REVERTED = "reverted"


class TokenOperation(str, Enum):
    """Caller-facing operations — used for classification and log context."""
    TOKEN_INFO = "get_token_info"
    BALANCE = "get_balance"
    TRANSFER_FROM = "transfer_from"
    APPROVE = "approve"

    @property
    def is_mutating(self) -> bool:
        return self in (TokenOperation.TRANSFER_FROM, TokenOperation.APPROVE)


# ─── Value Objects ───────────────────────────────────────────────

@dataclass(frozen=True)
class TokenMetadata:
    """Immutable per deployment."""
    name: str
    symbol: str
    decimals: Decimals


@dataclass(frozen=True)
class TokenInfo:
    """Metadata plus the total supply as read for this request."""
    metadata: TokenMetadata
    total_supply: str


@dataclass(frozen=True)
class CallPlan:
    """A mutating call that simulated successfully for a given sender.

    Attributes:
        sender: Signing identity the dry run was executed as.
        contract_address: Target contract.
        function_name: Contract function (e.g. "transferFrom").
        args: Positional call arguments, already scaled.
        gas: Gas limit from estimation.
    """
    sender: Address
    contract_address: Address
    function_name: str
    args: tuple
    gas: int


@dataclass(frozen=True)
class Confirmation:
    status: ConfirmationStatus
    block_number: int


@dataclass(frozen=True)
class TransactionOutcome:
    """Result of a submitted transaction; success=False means reverted on-chain."""
    success: bool
    transaction_hash: TxHash
    block_number: int
