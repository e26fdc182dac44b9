"""Exception hierarchy for the custody bridge.

Every failure the bridge can report is a BridgeError subclass carrying a
stable error code and a category, so callers and off-chain tooling can assert
on the cause of a rejected call rather than on its message text.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""

    MALFORMED_INPUT = "malformed_input"
    AUTHORIZATION = "authorization"
    REPLAY = "replay"
    LIFECYCLE = "lifecycle"
    OPERATIONAL = "operational"
    ASSET = "asset"
    CONFIGURATION = "configuration"
    CRYPTOGRAPHIC = "cryptographic"
    SYSTEM = "system"


@dataclass
class ErrorContext:
    """Context information for an error."""

    timestamp: float = field(default_factory=time.time)
    component: Optional[str] = None
    operation: Optional[str] = None
    caller: Optional[str] = None
    epoch: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary."""
        return {
            "timestamp": self.timestamp,
            "component": self.component,
            "operation": self.operation,
            "caller": self.caller,
            "epoch": self.epoch,
            "metadata": self.metadata,
        }

    def fill(self, **fields: Any) -> None:
        """Set the named fields that are still unset."""
        for name, value in fields.items():
            if getattr(self, name) is None:
                setattr(self, name, value)


class BridgeError(Exception):
    """Base exception for all custody bridge errors."""

    default_code = "BRIDGE_ERROR"
    default_category = ErrorCategory.SYSTEM
    default_severity = ErrorSeverity.MEDIUM

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: Optional[ErrorSeverity] = None,
        category: Optional[ErrorCategory] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.severity = severity or self.default_severity
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause
        self.metadata = metadata or {}
        self.timestamp = time.time()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "severity": self.severity.value,
            "category": self.category.value,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
            "metadata": self.metadata,
            "timestamp": self.timestamp,
        }

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [f"{self.__class__.__name__}: {self.message}", f"Code: {self.error_code}"]

        if self.severity != ErrorSeverity.MEDIUM:
            parts.append(f"Severity: {self.severity.value}")

        if self.category != ErrorCategory.SYSTEM:
            parts.append(f"Category: {self.category.value}")

        return " | ".join(parts)


# Malformed input: rejected before any state is read or written.


class MalformedInputError(BridgeError):
    """Input that is structurally invalid regardless of bridge state."""

    default_code = "MALFORMED_INPUT"
    default_category = ErrorCategory.MALFORMED_INPUT

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        expected: Optional[Any] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.expected = expected

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "field": self.field,
                "value": str(self.value) if self.value is not None else None,
                "expected": str(self.expected) if self.expected is not None else None,
            }
        )
        return data


class ArrayLengthMismatchError(MalformedInputError):
    default_code = "ARRAY_LENGTH_MISMATCH"


class SignatureCountMismatchError(MalformedInputError):
    default_code = "SIGNATURE_COUNT_MISMATCH"


class PowerSumMismatchError(MalformedInputError):
    """Sum of a validator set's powers differs from the total validator power."""

    default_code = "POWER_SUM_MISMATCH"


class InvalidValueError(MalformedInputError):
    """Amount, nonce, power or epoch that is not a non-negative integer."""

    default_code = "INVALID_VALUE"


class InvalidAddressError(MalformedInputError):
    default_code = "INVALID_ADDRESS"


# Authorization: the supplied committee or signatures do not authorize the call.


class AuthorizationError(BridgeError):
    default_code = "UNAUTHORIZED"
    default_category = ErrorCategory.AUTHORIZATION
    default_severity = ErrorSeverity.HIGH


class StaleValidatorSetError(AuthorizationError):
    """Supplied validator set does not hash to the active checkpoint."""

    default_code = "CHECKPOINT_MISMATCH"

    def __init__(
        self,
        message: str,
        expected_checkpoint: Optional[str] = None,
        supplied_checkpoint: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.expected_checkpoint = expected_checkpoint
        self.supplied_checkpoint = supplied_checkpoint

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "expected_checkpoint": self.expected_checkpoint,
                "supplied_checkpoint": self.supplied_checkpoint,
            }
        )
        return data


class InsufficientPowerError(AuthorizationError):
    """Signed power did not strictly exceed the power threshold."""

    default_code = "INSUFFICIENT_POWER"

    def __init__(
        self,
        message: str,
        signed_power: Optional[int] = None,
        power_threshold: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.signed_power = signed_power
        self.power_threshold = power_threshold

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {"signed_power": self.signed_power, "power_threshold": self.power_threshold}
        )
        return data


class BadSignatureError(AuthorizationError):
    """A present signature was not produced by the validator in its slot."""

    default_code = "BAD_SIGNATURE"

    def __init__(
        self,
        message: str,
        index: Optional[int] = None,
        expected_signer: Optional[str] = None,
        recovered_signer: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.index = index
        self.expected_signer = expected_signer
        self.recovered_signer = recovered_signer

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "index": self.index,
                "expected_signer": self.expected_signer,
                "recovered_signer": self.recovered_signer,
            }
        )
        return data


# Replay


class ReplayError(BridgeError):
    default_code = "REPLAY"
    default_category = ErrorCategory.REPLAY
    default_severity = ErrorSeverity.HIGH


class AlreadyWithdrawnError(ReplayError):
    """Withdrawal digest has already been marked processed."""

    default_code = "ALREADY_WITHDRAWN"

    def __init__(self, message: str, message_hash: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.message_hash = message_hash

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"message_hash": self.message_hash})
        return data


# Lifecycle


class LifecycleError(BridgeError):
    default_code = "LIFECYCLE_VIOLATION"
    default_category = ErrorCategory.LIFECYCLE


class EpochNotIncreasingError(LifecycleError):
    default_code = "EPOCH_NOT_INCREASING"

    def __init__(
        self,
        message: str,
        new_epoch: Optional[int] = None,
        current_epoch: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.new_epoch = new_epoch
        self.current_epoch = current_epoch


class EpochMismatchError(LifecycleError):
    """Claimed current set is not at the active epoch."""

    default_code = "EPOCH_MISMATCH"

    def __init__(
        self,
        message: str,
        supplied_epoch: Optional[int] = None,
        active_epoch: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.supplied_epoch = supplied_epoch
        self.active_epoch = active_epoch


# Operational


class OperationalError(BridgeError):
    default_code = "OPERATIONAL"
    default_category = ErrorCategory.OPERATIONAL


class BridgePausedError(OperationalError):
    default_code = "PAUSED"


class BridgeNotPausedError(OperationalError):
    default_code = "NOT_PAUSED"


class NotOwnerError(OperationalError):
    default_code = "NOT_OWNER"

    def __init__(self, message: str, caller: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.caller = caller


class ReentrancyError(OperationalError):
    default_code = "REENTRANT_CALL"
    default_severity = ErrorSeverity.HIGH


# Asset transfers


class AssetTransferError(BridgeError):
    """Failure reported by the custodied asset."""

    default_code = "TRANSFER_FAILED"
    default_category = ErrorCategory.ASSET

    def __init__(
        self,
        message: str,
        account: Optional[str] = None,
        required: Optional[int] = None,
        available: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.account = account
        self.required = required
        self.available = available

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "account": self.account,
                "required": self.required,
                "available": self.available,
            }
        )
        return data


class InsufficientBalanceError(AssetTransferError):
    default_code = "INSUFFICIENT_BALANCE"


class InsufficientAllowanceError(AssetTransferError):
    default_code = "INSUFFICIENT_ALLOWANCE"


# Configuration and cryptography


class ConfigurationError(BridgeError):
    """Configuration error."""

    default_code = "CONFIGURATION_ERROR"
    default_category = ErrorCategory.CONFIGURATION

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.config_key = config_key
        self.config_value = config_value

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "config_key": self.config_key,
                "config_value": str(self.config_value)
                if self.config_value is not None
                else None,
            }
        )
        return data


class ThresholdTooLowError(ConfigurationError):
    """Power threshold below two thirds of the total validator power."""

    default_code = "THRESHOLD_TOO_LOW"


class CryptographicError(BridgeError):
    """Cryptographic error."""

    default_code = "CRYPTOGRAPHIC_ERROR"
    default_category = ErrorCategory.CRYPTOGRAPHIC
    default_severity = ErrorSeverity.HIGH

    def __init__(
        self,
        message: str,
        algorithm: Optional[str] = None,
        key_type: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.algorithm = algorithm
        self.key_type = key_type


class SignatureRecoveryError(CryptographicError):
    default_code = "SIGNATURE_RECOVERY_FAILED"

    def __init__(self, message: str, **kwargs):
        super().__init__(message, algorithm="secp256k1", **kwargs)


def create_validation_error(
    field: str, value: Any, expected: Any, message: Optional[str] = None
) -> InvalidValueError:
    """Create an invalid-value error for a field."""
    if message is None:
        message = f"Invalid value for field '{field}': expected {expected}, got {value!r}"

    return InvalidValueError(message=message, field=field, value=value, expected=expected)
