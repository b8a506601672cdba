"""Amount Codec — decimal strings ↔ ledger fixed-point integers.

Invariants:
    - Integer arithmetic only: no value ever passes through float
    - parse_units accepts exactly [0-9]+(.[0-9]+)? with at most `decimals` fractional digits
    - format_units returns the minimal exact representation (no trailing fractional zeros)
    - format_units(parse_units(s, d), d) == s numerically; parse_units(format_units(a, d), d) == a
    - MAX_UINT256 allowance is unlimited: always covers, never decremented

Design Decisions:
    - Syntax check split from scaling: callers can reject garbage before any remote call,
      while the fractional-digit check needs the token's decimals
"""

import re

from app.core.domain_types import Amount, Decimals
from app.core.errors import MalformedAmountError

MAX_UINT256 = 2**256 - 1
_MAX_UINT256_DIGITS = len(str(MAX_UINT256))

_AMOUNT_PATTERN = re.compile(r"[0-9]+(?:\.[0-9]+)?")


def check_amount_syntax(value: str) -> None:
    """Raise MalformedAmountError unless value is a plain non-negative decimal."""
    if not isinstance(value, str) or not _AMOUNT_PATTERN.fullmatch(value):
        raise MalformedAmountError(
            "Amount must be a non-negative decimal string (e.g. '100' or '1.5')",
        )


def parse_units(value: str, decimals: int) -> Amount:
    """Scale a decimal string into the ledger's integer representation."""
    _check_decimals(decimals)
    check_amount_syntax(value)
    whole, _, fraction = value.partition(".")
    whole = whole.lstrip("0") or "0"
    if len(whole) > _MAX_UINT256_DIGITS:
        raise MalformedAmountError("Amount exceeds the maximum ledger value")
    if len(fraction) > decimals:
        raise MalformedAmountError(
            f"Amount has more than {decimals} fractional digits",
        )
    scaled = int(whole) * 10**decimals + int(fraction.ljust(decimals, "0") or "0")
    if scaled > MAX_UINT256:
        raise MalformedAmountError("Amount exceeds the maximum ledger value")
    return Amount(scaled)


def format_units(amount: int, decimals: int) -> str:
    """Render a scaled integer as its minimal exact decimal string."""
    _check_decimals(decimals)
    if amount < 0:
        raise ValueError(f"amount must be non-negative, got {amount}")
    whole, fraction = divmod(amount, 10**decimals)
    if not fraction:
        return str(whole)
    digits = str(fraction).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{digits}"


def is_unlimited_allowance(allowance: int) -> bool:
    return allowance == MAX_UINT256


def allowance_covers(allowance: Amount, required: Amount) -> bool:
    """True if a spender holding `allowance` may move `required` (same scale)."""
    return is_unlimited_allowance(allowance) or allowance >= required


def _check_decimals(decimals: int) -> Decimals:
    if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
        raise ValueError(f"decimals must be a non-negative int, got {decimals!r}")
    return Decimals(decimals)
