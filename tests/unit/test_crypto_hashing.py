"""
Unit tests for keccak hashing and address helpers.
"""

import pytest
from eth_abi import encode

from custody_bridge.crypto import (
    SIGNED_MESSAGE_PREFIX,
    ZERO_ADDRESS,
    Hash,
    Keccak256Hasher,
    normalize_address,
    normalize_addresses,
)
from custody_bridge.errors import InvalidAddressError

EMPTY_KECCAK = "0xc5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"


class TestHash:
    """Test Hash value type."""

    def test_hash_requires_32_bytes(self):
        """Test that only 32-byte values are accepted."""
        with pytest.raises(ValueError):
            Hash(b"\x00" * 31)
        with pytest.raises(TypeError):
            Hash("00" * 32)

    def test_hash_hex_conversion(self):
        """Test hex conversion with and without prefix."""
        value = Hash(bytes(range(32)))
        assert value.to_hex().startswith("0x")
        assert Hash.from_hex(value.to_hex()) == value
        assert Hash.from_hex(value.to_hex(prefixed=False)) == value

    def test_hash_int_conversion(self):
        """Test integer conversion."""
        assert Hash.from_int(1).value == b"\x00" * 31 + b"\x01"
        assert Hash.from_int(12345).to_int() == 12345
        assert Hash.zero().to_int() == 0

    def test_hash_bytearray_is_frozen_to_bytes(self):
        """Test bytearray input is stored as bytes."""
        value = Hash(bytearray(32))
        assert isinstance(value.value, bytes)

    def test_hash_ordering_and_hashing(self):
        """Test ordering and use in sets."""
        low, high = Hash.from_int(1), Hash.from_int(2)
        assert low < high
        assert high >= low
        assert len({low, Hash.from_int(1), high}) == 2
        assert low != b"\x00" * 31 + b"\x01"


class TestKeccak256Hasher:
    """Test Keccak256Hasher."""

    def test_hash_empty_input(self):
        """Test the well-known keccak-256 of empty input."""
        assert Keccak256Hasher.hash(b"").to_hex() == EMPTY_KECCAK

    def test_hash_string_is_utf8(self):
        """Test that strings are hashed as UTF-8 bytes."""
        assert Keccak256Hasher.hash("withdraw") == Keccak256Hasher.hash(b"withdraw")

    def test_hash_abi_matches_manual_encoding(self):
        """Test ABI hashing is keccak over eth_abi encoding."""
        types = ["address[]", "uint256[]", "uint256"]
        values = [[ZERO_ADDRESS], [7], 3]
        expected = Keccak256Hasher.hash(encode(types, values))
        assert Keccak256Hasher.hash_abi(types, values) == expected

    def test_hash_abi_length_mismatch(self):
        """Test mismatched types and values are rejected."""
        with pytest.raises(ValueError):
            Keccak256Hasher.hash_abi(["uint256"], [1, 2])

    def test_signed_message_hash(self):
        """Test the Ethereum signed-message prefix is applied."""
        digest = Keccak256Hasher.hash(b"payload")
        expected = Keccak256Hasher.hash(SIGNED_MESSAGE_PREFIX + digest.value)
        assert Keccak256Hasher.signed_message_hash(digest) == expected
        assert Keccak256Hasher.signed_message_hash(digest) != digest


class TestAddresses:
    """Test address normalization."""

    def test_normalize_lowercase_address(self):
        """Test lowercase input is returned in checksum form."""
        lower = "0x7e5f4552091a69125d5dfcb7b8c2659029395bdf"
        assert normalize_address(lower) == "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"

    def test_normalize_bytes_address(self):
        """Test 20-byte input."""
        assert normalize_address(b"\x00" * 20) == ZERO_ADDRESS

    def test_normalize_rejects_invalid(self):
        """Test invalid addresses raise InvalidAddressError."""
        with pytest.raises(InvalidAddressError):
            normalize_address("0x1234")
        with pytest.raises(InvalidAddressError):
            normalize_address(b"\x00" * 19)
        with pytest.raises(InvalidAddressError):
            normalize_address(42)

    def test_normalize_addresses_reports_index(self):
        """Test the failing element index is reported in the field name."""
        with pytest.raises(InvalidAddressError) as exc_info:
            normalize_addresses([ZERO_ADDRESS, "nope"], field="validators")
        assert exc_info.value.field == "validators[1]"
