"""
Hash functions and utilities for the custody bridge.

Implements keccak-256 hashing over raw bytes and over canonical ABI encodings,
matching what an EVM contract computes with keccak256(abi.encode(...)).
"""

import logging

logger = logging.getLogger(__name__)
from dataclasses import dataclass
from typing import Any, Sequence, Union

from eth_abi import encode
from web3 import Web3

# Prefix used by eth_sign / personal_sign for 32-byte payloads.
SIGNED_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n32"


@dataclass(frozen=True)
class Hash:
    """Immutable hash value with comparison and string representation."""

    value: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.value, (bytes, bytearray)):
            raise TypeError("Hash value must be bytes")
        if len(self.value) != 32:
            raise ValueError("Hash must be exactly 32 bytes")
        if isinstance(self.value, bytearray):
            object.__setattr__(self, "value", bytes(self.value))

    def __str__(self) -> str:
        return self.value.hex()

    def __repr__(self) -> str:
        return f"Hash('{self.value.hex()}')"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Hash):
            return False
        return self.value == other.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __lt__(self, other: "Hash") -> bool:
        return self.value < other.value

    def __le__(self, other: "Hash") -> bool:
        return self.value <= other.value

    def __gt__(self, other: "Hash") -> bool:
        return self.value > other.value

    def __ge__(self, other: "Hash") -> bool:
        return self.value >= other.value

    @classmethod
    def from_hex(cls, hex_string: str) -> "Hash":
        """Create a Hash from a hexadecimal string (with or without 0x)."""
        if hex_string.startswith(("0x", "0X")):
            hex_string = hex_string[2:]
        return cls(bytes.fromhex(hex_string))

    @classmethod
    def from_int(cls, value: int) -> "Hash":
        """Create a Hash from an integer (big-endian)."""
        return cls(value.to_bytes(32, byteorder="big"))

    @classmethod
    def zero(cls) -> "Hash":
        """Create a zero hash (all zeros)."""
        return cls(b"\x00" * 32)

    def to_hex(self, prefixed: bool = True) -> str:
        """Convert hash to hexadecimal string."""
        return ("0x" if prefixed else "") + self.value.hex()

    def to_int(self) -> int:
        """Convert hash to integer (big-endian)."""
        return int.from_bytes(self.value, byteorder="big")


class Keccak256Hasher:
    """Keccak-256 hasher with EVM-compatible helpers."""

    @staticmethod
    def hash(data: Union[bytes, str]) -> Hash:
        """
        Hash data using keccak-256.

        Args:
            data: Data to hash (bytes or string)

        Returns:
            Hash object containing the keccak-256 digest
        """
        if isinstance(data, str):
            data = data.encode("utf-8")

        return Hash(bytes(Web3.keccak(primitive=data)))

    @staticmethod
    def hash_abi(types: Sequence[str], values: Sequence[Any]) -> Hash:
        """
        Hash the standard (non-packed) ABI encoding of values.

        Args:
            types: ABI type strings, e.g. ["address[]", "uint256"]
            values: Values matching the types

        Returns:
            keccak256(abi.encode(values...))
        """
        if len(types) != len(values):
            raise ValueError("ABI types and values must have the same length")

        encoded = encode(list(types), list(values))
        return Keccak256Hasher.hash(encoded)

    @staticmethod
    def signed_message_hash(digest: Hash) -> Hash:
        """
        Hash a 32-byte digest the way eth_sign does before signing.

        Args:
            digest: Message digest to wrap

        Returns:
            keccak256("\\x19Ethereum Signed Message:\\n32" || digest)
        """
        return Keccak256Hasher.hash(SIGNED_MESSAGE_PREFIX + digest.value)
