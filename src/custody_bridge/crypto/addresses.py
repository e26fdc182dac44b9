"""
Account identity helpers.

Validator, user and owner identities are 20-byte EVM addresses, always held in
EIP-55 checksum form so that equality is a plain string comparison.
"""

import logging

logger = logging.getLogger(__name__)
from typing import Any, Iterable, Tuple

from web3 import Web3

from ..errors import InvalidAddressError

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def normalize_address(value: Any, field: str = "address") -> str:
    """Return the checksum form of an address, or raise InvalidAddressError."""
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 20:
            raise InvalidAddressError(
                f"Invalid {field}: expected 20 bytes, got {len(value)}",
                field=field,
                value=value,
            )
        return Web3.to_checksum_address(bytes(value))

    if not isinstance(value, str) or not Web3.is_address(value):
        raise InvalidAddressError(f"Invalid {field}: {value!r}", field=field, value=value)

    return Web3.to_checksum_address(value)


def normalize_addresses(values: Iterable[Any], field: str = "addresses") -> Tuple[str, ...]:
    """Normalize an ordered collection of addresses, preserving order."""
    return tuple(
        normalize_address(value, field=f"{field}[{index}]")
        for index, value in enumerate(values)
    )
