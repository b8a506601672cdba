"""Error Hierarchy — typed, categorized exceptions for all token API failure modes.

Invariants:
    - Every error has a code (ErrorCode), category (ErrorCategory), severity (ErrorSeverity)
    - Caller-facing kinds are closed: one subclass per ErrorCode
    - to_response() produces the REST envelope; no remote error text or key material in it
    - The code is repeated as a top-level "errorCode" for clients that read only that key
    - LedgerFailure is internal only — it is classified into a TokenError before reaching a caller

Design Decisions:
    - Single hierarchy with TokenError base: FastAPI global handler catches all (ADR: uniform error shape)
    - LedgerFailure carries a FailureStage tagged where the failure is detected,
      so classification does not depend on the exception's concrete type
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from app.core.domain_types import FailureStage


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    LEDGER = "ledger"
    INTERNAL = "internal"


class ErrorCode(str, Enum):
    """Caller-facing error kinds."""
    INVALID_ADDRESS = "INVALID_ADDRESS"
    ADDRESS_NOT_FOUND = "ADDRESS_NOT_FOUND"
    INSUFFICIENT_ALLOWANCE = "INSUFFICIENT_ALLOWANCE"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    CONTRACT_EXECUTION_FAILED = "CONTRACT_EXECUTION_FAILED"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    MALFORMED_AMOUNT = "MALFORMED_AMOUNT"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    operation: str | None = None
    stage: str | None = None
    tx_hash: str | None = None
    debug_info: dict[str, Any] | None = None


class TokenError(Exception):
    """Base exception for all caller-facing token API errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "errorCode": self.code.value,
            "error": {
                "code": self.code.value,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "operation": self.context.operation,
                    "stage": self.context.stage,
                    "tx_hash": self.context.tx_hash,
                },
            }
        }


# ─── Validation Errors (400-level) ──────────────────────────────

class InvalidAddressError(TokenError):
    """Address is malformed or the zero address where a real account is required."""
    def __init__(
        self, message: str = "Invalid Ethereum address format",
        field: str | None = None, context: ErrorContext | None = None,
    ):
        super().__init__(
            message, ErrorCode.INVALID_ADDRESS, ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class MalformedAmountError(TokenError):
    """Amount string is not a decimal number representable at the token's precision."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, ErrorCode.MALFORMED_AMOUNT, ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )


# ─── Ledger Errors ──────────────────────────────────────────────

class AddressNotFoundError(TokenError):
    def __init__(self, address: str | None = None, context: ErrorContext | None = None):
        message = (
            f"Failed to fetch balance for address {address}"
            if address else "Address not found"
        )
        super().__init__(
            message, ErrorCode.ADDRESS_NOT_FOUND, ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


class InsufficientAllowanceError(TokenError):
    def __init__(
        self, message: str = "Insufficient allowance for this transfer",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, ErrorCode.INSUFFICIENT_ALLOWANCE, ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 403,
        )


class InsufficientFundsError(TokenError):
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Insufficient funds for this transaction",
            ErrorCode.INSUFFICIENT_FUNDS, ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 400,
        )


class ContractExecutionFailedError(TokenError):
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Contract execution failed",
            ErrorCode.CONTRACT_EXECUTION_FAILED, ErrorCategory.LEDGER,
            ErrorSeverity.ERROR, context, 400,
        )


class TransactionFailedError(TokenError):
    def __init__(
        self, message: str = "Transaction failed", context: ErrorContext | None = None,
    ):
        super().__init__(
            message, ErrorCode.TRANSACTION_FAILED, ErrorCategory.LEDGER,
            ErrorSeverity.ERROR, context, 400,
        )


class UnknownLedgerError(TokenError):
    """Default for anything unrecognized — message never carries the cause."""
    def __init__(self, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Failed during {operation}",
            ErrorCode.UNKNOWN_ERROR, ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 500,
        )


# ─── Internal failure signal ────────────────────────────────────

class LedgerFailure(Exception):
    """Raised by the ledger client; tagged with the stage that detected it.

    Attributes:
        stage: Where the failure was detected.
        reason: Remote or local diagnostic text (revert reason, RPC message,
            decoded custom error name). Logged, never returned to callers.
        timed_out: True when the failure is a timeout.
        tx_hash: Hash of the transaction concerned, when one exists.
    """

    def __init__(
        self,
        stage: FailureStage,
        reason: str,
        *,
        timed_out: bool = False,
        tx_hash: str | None = None,
    ):
        super().__init__(f"{stage.value}: {reason}")
        self.stage = stage
        self.reason = reason
        self.timed_out = timed_out
        self.tx_hash = tx_hash
