"""Error Classification — maps tagged ledger failures onto caller-facing TokenErrors.

Invariants:
    - Every LedgerFailure maps to exactly one ErrorCode
    - Reason text only refines the kind; it never reaches the returned message
    - Rules are evaluated in order; UNKNOWN_ERROR is the fallback

Design Decisions:
    - Stage-first: the ledger client tags where a failure was detected, so network,
      simulation and on-chain failures are told apart without string matching
    - Reason patterns cover both revert strings ("ERC20: transfer amount exceeds balance")
      and decoded OpenZeppelin custom error names ("ERC20InsufficientBalance")
"""

import re

from app.core.domain_types import FailureStage, TokenOperation
from app.core.errors import (
    AddressNotFoundError,
    ContractExecutionFailedError,
    ErrorContext,
    InsufficientAllowanceError,
    InsufficientFundsError,
    InvalidAddressError,
    LedgerFailure,
    TokenError,
    TransactionFailedError,
    UnknownLedgerError,
)

_INVALID_ADDRESS = re.compile(
    r"invalid (ethereum )?address|zero address"
    r"|erc20invalid(sender|receiver|spender|approver)",
    re.IGNORECASE,
)
_INSUFFICIENT_ALLOWANCE = re.compile(
    r"insufficient ?allowance|exceeds allowance", re.IGNORECASE,
)
_INSUFFICIENT_FUNDS = re.compile(
    r"insufficient ?(funds|balance)|exceeds balance", re.IGNORECASE,
)

_CONFIRMATION_TIMEOUT_MESSAGE = (
    "Transaction was not confirmed in time; check its status before retrying"
)


def classify_failure(
    failure: LedgerFailure,
    operation: TokenOperation,
    context: ErrorContext | None = None,
) -> TokenError:
    """Return the TokenError a ledger failure during `operation` should surface as."""
    ctx = context or ErrorContext(operation=operation.value)
    ctx.stage = ctx.stage or failure.stage.value
    if failure.tx_hash:
        ctx.tx_hash = failure.tx_hash
    reason = failure.reason or ""

    if failure.stage == FailureStage.VALIDATION or _INVALID_ADDRESS.search(reason):
        return InvalidAddressError(context=ctx)
    if _INSUFFICIENT_ALLOWANCE.search(reason):
        return InsufficientAllowanceError(context=ctx)
    if _INSUFFICIENT_FUNDS.search(reason):
        return InsufficientFundsError(context=ctx)
    if failure.stage == FailureStage.CONFIRMATION:
        if failure.timed_out:
            return TransactionFailedError(_CONFIRMATION_TIMEOUT_MESSAGE, context=ctx)
        return TransactionFailedError(context=ctx)
    if failure.stage == FailureStage.SIMULATION:
        return ContractExecutionFailedError(context=ctx)
    if failure.stage == FailureStage.SUBMISSION:
        return TransactionFailedError(context=ctx)
    if failure.stage == FailureStage.NETWORK and operation.is_mutating:
        return TransactionFailedError(context=ctx)
    if failure.stage == FailureStage.READ and operation == TokenOperation.BALANCE:
        return AddressNotFoundError(context=ctx)
    return UnknownLedgerError(operation.value, context=ctx)
