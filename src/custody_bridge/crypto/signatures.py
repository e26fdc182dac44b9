"""
Recoverable ECDSA signatures over secp256k1.

Validators sign the Ethereum signed-message hash of a 32-byte digest and the
bridge recovers the signer address from (r, s, v), the same way an EVM
contract does with ecrecover.
"""

import logging

logger = logging.getLogger(__name__)
import secrets
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from eth_keys import keys
from eth_keys.exceptions import BadSignature
from eth_utils import ValidationError

from ..errors import CryptographicError, SignatureRecoveryError
from .hashing import Hash, Keccak256Hasher

# secp256k1 group order
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


@dataclass(frozen=True)
class ValidatorSignature:
    """
    Immutable (r, s, v) signature as submitted on chain.

    ``v`` uses the EVM convention (27 or 28). A signature with ``v == 0`` is
    the placeholder for a validator that did not sign.
    """

    r: int
    s: int
    v: int

    def __post_init__(self) -> None:
        for name in ("r", "s", "v"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise CryptographicError(
                    f"Signature component '{name}' must be a non-negative integer",
                    algorithm="secp256k1",
                )
        if self.r >= 2**256 or self.s >= 2**256 or self.v > 255:
            raise CryptographicError(
                "Signature component out of range", algorithm="secp256k1"
            )

    @classmethod
    def empty(cls) -> "ValidatorSignature":
        """Placeholder for a validator that did not sign."""
        return cls(0, 0, 0)

    @property
    def is_empty(self) -> bool:
        return self.v == 0

    @classmethod
    def from_bytes(cls, signature_bytes: bytes) -> "ValidatorSignature":
        """Create a signature from 65 bytes laid out as r || s || v."""
        if len(signature_bytes) != 65:
            raise CryptographicError(
                "Signature must be exactly 65 bytes", algorithm="secp256k1"
            )

        r = int.from_bytes(signature_bytes[:32], byteorder="big")
        s = int.from_bytes(signature_bytes[32:64], byteorder="big")
        return cls(r, s, signature_bytes[64])

    @classmethod
    def from_hex(cls, hex_string: str) -> "ValidatorSignature":
        if hex_string.startswith(("0x", "0X")):
            hex_string = hex_string[2:]
        return cls.from_bytes(bytes.fromhex(hex_string))

    def to_bytes(self) -> bytes:
        return (
            self.r.to_bytes(32, byteorder="big")
            + self.s.to_bytes(32, byteorder="big")
            + bytes([self.v])
        )

    def to_hex(self) -> str:
        return "0x" + self.to_bytes().hex()

    def to_dict(self) -> Dict[str, Any]:
        return {"r": hex(self.r), "s": hex(self.s), "v": self.v}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidatorSignature":
        def as_int(value: Union[int, str]) -> int:
            return int(value, 16) if isinstance(value, str) else value

        return cls(as_int(data["r"]), as_int(data["s"]), as_int(data["v"]))

    def recover_signer(self, digest: Hash) -> str:
        """
        Recover the checksum address that signed ``digest``.

        The digest is wrapped in the Ethereum signed-message prefix before
        recovery, mirroring what validators sign.

        Raises:
            SignatureRecoveryError: if the signature is empty, malformed or
                does not correspond to any public key.
        """
        if self.is_empty:
            raise SignatureRecoveryError("Cannot recover signer from an empty signature")
        if self.v not in (27, 28):
            raise SignatureRecoveryError(f"Invalid recovery id v={self.v}")
        if not (0 < self.r < SECP256K1_N and 0 < self.s < SECP256K1_N):
            raise SignatureRecoveryError("Signature r/s outside the curve order")

        message_hash = Keccak256Hasher.signed_message_hash(digest)
        try:
            signature = keys.Signature(vrs=(self.v - 27, self.r, self.s))
            public_key = signature.recover_public_key_from_msg_hash(message_hash.value)
        except (BadSignature, ValidationError, ValueError) as e:
            raise SignatureRecoveryError(f"Signature recovery failed: {e}", cause=e)

        return public_key.to_checksum_address()

    def __str__(self) -> str:
        return f"ValidatorSignature('{self.to_hex()[:18]}...')"


class ValidatorKey:
    """secp256k1 private key belonging to a validator."""

    def __init__(self, private_key: keys.PrivateKey):
        self._key = private_key

    @classmethod
    def generate(cls) -> "ValidatorKey":
        """Generate a new random key."""
        while True:
            secret = secrets.token_bytes(32)
            if 0 < int.from_bytes(secret, "big") < SECP256K1_N:
                return cls.from_bytes(secret)

    @classmethod
    def from_bytes(cls, key_bytes: bytes) -> "ValidatorKey":
        if len(key_bytes) != 32:
            raise CryptographicError(
                "Private key must be exactly 32 bytes",
                algorithm="secp256k1",
                key_type="private",
            )
        try:
            return cls(keys.PrivateKey(key_bytes))
        except (ValidationError, ValueError) as e:
            raise CryptographicError(
                f"Invalid private key: {e}",
                algorithm="secp256k1",
                key_type="private",
                cause=e,
            )

    @classmethod
    def from_hex(cls, hex_string: str) -> "ValidatorKey":
        if hex_string.startswith(("0x", "0X")):
            hex_string = hex_string[2:]
        return cls.from_bytes(bytes.fromhex(hex_string))

    @property
    def address(self) -> str:
        return self._key.public_key.to_checksum_address()

    def sign_digest(self, digest: Hash) -> ValidatorSignature:
        """Sign the Ethereum signed-message hash of a 32-byte digest."""
        message_hash = Keccak256Hasher.signed_message_hash(digest)
        signature = self._key.sign_msg_hash(message_hash.value)
        return ValidatorSignature(r=signature.r, s=signature.s, v=signature.v + 27)

    def __str__(self) -> str:
        return f"ValidatorKey('{self.address}')"

    def __repr__(self) -> str:
        return f"ValidatorKey(address='{self.address}')"


def recover_signer(signature: Optional[ValidatorSignature], digest: Hash) -> Optional[str]:
    """Recover a signer, returning None for an absent or empty signature slot."""
    if signature is None or signature.is_empty:
        return None
    return signature.recover_signer(digest)
