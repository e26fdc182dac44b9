"""
Cryptographic primitives for the custody bridge.

This module provides:
- Keccak-256 hashing and canonical ABI hashing
- Recoverable secp256k1 signatures (ecrecover semantics)
- Address normalization
"""

from .addresses import ZERO_ADDRESS, normalize_address, normalize_addresses
from .hashing import SIGNED_MESSAGE_PREFIX, Hash, Keccak256Hasher
from .signatures import ValidatorKey, ValidatorSignature, recover_signer

__all__ = [
    "Hash",
    "Keccak256Hasher",
    "SIGNED_MESSAGE_PREFIX",
    "ValidatorKey",
    "ValidatorSignature",
    "recover_signer",
    "ZERO_ADDRESS",
    "normalize_address",
    "normalize_addresses",
]
