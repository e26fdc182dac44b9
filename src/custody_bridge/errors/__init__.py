"""Custody bridge error handling.

All bridge failures are synchronous and fail-closed. Each distinct reason has
its own exception class and stable ``error_code``.
"""

from .exceptions import (
    AlreadyWithdrawnError,
    ArrayLengthMismatchError,
    AssetTransferError,
    AuthorizationError,
    BadSignatureError,
    BridgeError,
    BridgeNotPausedError,
    BridgePausedError,
    ConfigurationError,
    CryptographicError,
    EpochMismatchError,
    EpochNotIncreasingError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    InsufficientAllowanceError,
    InsufficientBalanceError,
    InsufficientPowerError,
    InvalidAddressError,
    InvalidValueError,
    LifecycleError,
    MalformedInputError,
    NotOwnerError,
    OperationalError,
    PowerSumMismatchError,
    ReentrancyError,
    ReplayError,
    SignatureCountMismatchError,
    SignatureRecoveryError,
    StaleValidatorSetError,
    ThresholdTooLowError,
    create_validation_error,
)

__all__ = [
    # Base
    "BridgeError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorSeverity",
    # Malformed input
    "MalformedInputError",
    "ArrayLengthMismatchError",
    "SignatureCountMismatchError",
    "PowerSumMismatchError",
    "InvalidValueError",
    "InvalidAddressError",
    # Authorization
    "AuthorizationError",
    "StaleValidatorSetError",
    "InsufficientPowerError",
    "BadSignatureError",
    # Replay
    "ReplayError",
    "AlreadyWithdrawnError",
    # Lifecycle
    "LifecycleError",
    "EpochNotIncreasingError",
    "EpochMismatchError",
    # Operational
    "OperationalError",
    "BridgePausedError",
    "BridgeNotPausedError",
    "NotOwnerError",
    "ReentrancyError",
    # Asset
    "AssetTransferError",
    "InsufficientBalanceError",
    "InsufficientAllowanceError",
    # Configuration / crypto
    "ConfigurationError",
    "ThresholdTooLowError",
    "CryptographicError",
    "SignatureRecoveryError",
    "create_validation_error",
]
