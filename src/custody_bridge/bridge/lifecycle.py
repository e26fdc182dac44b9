"""
Validator-set lifecycle: genesis and committee rotation.

The active committee is known only by its checkpoint. Rotating to a new
committee requires the current committee to sign the new checkpoint with more
than the threshold power.
"""

from typing import Iterable, Optional, Sequence, Tuple

from ..crypto import ValidatorSignature
from ..errors import EpochMismatchError, EpochNotIncreasingError, PowerSumMismatchError
from .admin import check_threshold_bound, require_not_paused
from .bridge_types import BridgeState, ValidatorSet, ValsetUpdated, require_uint
from .checkpoint import make_checkpoint, require_checkpoint
from .verifier import (
    ThresholdVerifier,
    VerificationResult,
    require_well_formed,
    sum_powers_bounded,
)


def check_power_sum(powers: Iterable[int], total_validator_power: int) -> None:
    """Raise PowerSumMismatchError unless ``powers`` sum exactly to the total."""
    powers = tuple(powers)
    accumulated = sum_powers_bounded(powers, total_validator_power)
    if accumulated != total_validator_power:
        raise PowerSumMismatchError(
            f"Validator powers do not sum to total validator power {total_validator_power}",
            field="powers",
            value=accumulated,
            expected=total_validator_power,
        )


def build_genesis_state(
    validator_set: ValidatorSet,
    total_validator_power: int,
    power_threshold: int,
    owner: str,
    asset: str,
) -> BridgeState:
    """
    Build the initial state for a deployment committee.

    Raises:
        ArrayLengthMismatchError: validators and powers differ in length.
        ThresholdTooLowError: threshold is below two thirds of the total power.
        PowerSumMismatchError: powers do not sum to the total power.
    """
    require_well_formed(validator_set, field="validator_set")
    require_uint(total_validator_power, "total_validator_power")
    check_threshold_bound(power_threshold, total_validator_power)
    check_power_sum(validator_set.powers, total_validator_power)
    return BridgeState(
        checkpoint=make_checkpoint(validator_set),
        epoch=validator_set.epoch,
        power_threshold=power_threshold,
        total_validator_power=total_validator_power,
        owner=owner,
        asset=asset,
    )


def apply_valset_update(
    state: BridgeState,
    new_set: ValidatorSet,
    current_set: ValidatorSet,
    signatures: Sequence[Optional[ValidatorSignature]],
) -> Tuple[BridgeState, ValsetUpdated, VerificationResult]:
    """
    Rotate the active committee from ``current_set`` to ``new_set``.

    Checks run in this order: paused, malformed input, epoch ordering, active
    epoch, active checkpoint, threshold signatures over the new checkpoint.
    """
    require_not_paused(state)
    require_well_formed(new_set, field="new_set")
    require_well_formed(current_set, field="current_set")
    check_power_sum(new_set.powers, state.total_validator_power)

    if new_set.epoch <= current_set.epoch:
        raise EpochNotIncreasingError(
            f"New epoch {new_set.epoch} must be greater than current epoch {current_set.epoch}",
            new_epoch=new_set.epoch,
            current_epoch=current_set.epoch,
        )
    if current_set.epoch != state.epoch:
        raise EpochMismatchError(
            f"Supplied current epoch {current_set.epoch} is not the active epoch {state.epoch}",
            supplied_epoch=current_set.epoch,
            active_epoch=state.epoch,
        )
    require_checkpoint(current_set, state.checkpoint)

    new_checkpoint = make_checkpoint(new_set)
    result = ThresholdVerifier(state.power_threshold).verify(
        new_checkpoint, current_set, signatures
    )

    new_state = state.evolve(checkpoint=new_checkpoint, epoch=new_set.epoch)
    record = ValsetUpdated(
        epoch=new_set.epoch, validators=new_set.validators, powers=new_set.powers
    )
    return new_state, record, result
