"""Address Validation — pure checks for 20-byte account identifiers.

Invariants:
    - Accepted form: 0x + 40 hex digits, any letter case
    - Returned Address is lower-case, so equality is case-insensitive
    - Mutating operations reject ZERO_ADDRESS (reserved for mint/burn origin)
"""

import re

from app.core.domain_types import Address, ZERO_ADDRESS
from app.core.errors import InvalidAddressError

ADDRESS_PATTERN = r"^0x[a-fA-F0-9]{40}$"

_ADDRESS_RE = re.compile(r"0x[a-fA-F0-9]{40}")


def parse_address(value: str, field: str = "address") -> Address:
    """Validate and canonicalize an address, raising InvalidAddressError."""
    if not isinstance(value, str) or not _ADDRESS_RE.fullmatch(value):
        raise InvalidAddressError(field=field)
    return Address(value.lower())


def parse_account_address(value: str, field: str) -> Address:
    """Like parse_address, but the zero address is not a valid account."""
    address = parse_address(value, field)
    if address == ZERO_ADDRESS:
        raise InvalidAddressError(
            f"The zero address is not a valid {field}", field=field,
        )
    return address


def same_address(a: str, b: str) -> bool:
    return a.lower() == b.lower()
