"""
Threshold signature verification.

Signatures are checked in validator-set order against the validator in the
same slot. Unsigned slots (``None`` or ``v == 0``) are skipped. The walk stops
as soon as the accumulated power strictly exceeds the threshold.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Sequence

from ..crypto import Hash, ValidatorSignature, recover_signer
from ..errors import (
    ArrayLengthMismatchError,
    BadSignatureError,
    InsufficientPowerError,
    SignatureCountMismatchError,
    SignatureRecoveryError,
)
from ..logging import get_logger
from .bridge_types import ValidatorSet

logger = get_logger(__name__)


@dataclass
class PowerTally:
    """
    Running power sum against a strict upper bound.

    ``crossed`` flips once ``accumulated`` is strictly greater than ``bound``
    and never flips back, since powers are non-negative.
    """

    bound: int
    accumulated: int = 0
    crossed: bool = False

    def add(self, power: int) -> bool:
        self.accumulated += power
        if self.accumulated > self.bound:
            self.crossed = True
        return self.crossed


def sum_powers_bounded(powers: Iterable[int], bound: int) -> int:
    """
    Sum ``powers`` but stop once the running total exceeds ``bound``.

    The result equals the exact sum whenever the exact sum is at most
    ``bound``; otherwise it is some value greater than ``bound``.
    """
    tally = PowerTally(bound)
    for power in powers:
        if tally.add(power):
            break
    return tally.accumulated


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a successful threshold verification."""

    signed_power: int
    signer_count: int
    crossed_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signed_power": self.signed_power,
            "signer_count": self.signer_count,
            "crossed_at": self.crossed_at,
        }


def require_well_formed(validator_set: ValidatorSet, field: str = "validator_set") -> None:
    if not validator_set.is_well_formed:
        raise ArrayLengthMismatchError(
            f"Malformed {field}: {len(validator_set.validators)} validators, "
            f"{len(validator_set.powers)} powers",
            field=field,
            value=(len(validator_set.validators), len(validator_set.powers)),
            expected="equal lengths",
        )


class ThresholdVerifier:
    """Checks that a committee signed a digest with more than ``power_threshold`` power."""

    def __init__(self, power_threshold: int):
        self.power_threshold = power_threshold

    def verify(
        self,
        message: Hash,
        validator_set: ValidatorSet,
        signatures: Sequence[Optional[ValidatorSignature]],
    ) -> VerificationResult:
        """
        Verify ``signatures`` over ``message`` against ``validator_set``.

        The caller is responsible for checking that ``validator_set`` matches
        the active checkpoint.

        Raises:
            ArrayLengthMismatchError: validators and powers differ in length.
            SignatureCountMismatchError: one signature slot per validator is required.
            BadSignatureError: a present signature does not recover to its slot's validator.
            InsufficientPowerError: signed power is not strictly above the threshold.
        """
        require_well_formed(validator_set)
        if len(signatures) != len(validator_set.validators):
            raise SignatureCountMismatchError(
                f"Expected {len(validator_set.validators)} signature slots, "
                f"got {len(signatures)}",
                field="signatures",
                value=len(signatures),
                expected=len(validator_set.validators),
            )

        tally = PowerTally(self.power_threshold)
        signer_count = 0
        for index, signature in enumerate(signatures):
            expected = validator_set.validators[index]
            try:
                signer = recover_signer(signature, message)
            except SignatureRecoveryError as e:
                raise BadSignatureError(
                    f"Unrecoverable signature in slot {index}",
                    index=index,
                    expected_signer=expected,
                    cause=e,
                )
            if signer is None:
                continue
            if signer != expected:
                raise BadSignatureError(
                    f"Signature in slot {index} was not made by {expected}",
                    index=index,
                    expected_signer=expected,
                    recovered_signer=signer,
                )

            signer_count += 1
            if tally.add(validator_set.powers[index]):
                logger.debug(
                    f"Threshold {self.power_threshold} crossed at slot {index}",
                    extra={"signed_power": tally.accumulated},
                )
                return VerificationResult(
                    signed_power=tally.accumulated,
                    signer_count=signer_count,
                    crossed_at=index,
                )

        raise InsufficientPowerError(
            f"Signed power {tally.accumulated} does not exceed "
            f"threshold {self.power_threshold}",
            signed_power=tally.accumulated,
            power_threshold=self.power_threshold,
        )


def verify(
    message: Hash,
    validator_set: ValidatorSet,
    signatures: Sequence[Optional[ValidatorSignature]],
    power_threshold: int,
) -> VerificationResult:
    """Module-level shortcut for ``ThresholdVerifier(power_threshold).verify``."""
    return ThresholdVerifier(power_threshold).verify(message, validator_set, signatures)
