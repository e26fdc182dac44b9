"""
Owner-only administration.

The owner can pause and unpause the bridge and, while paused, change the
power threshold. No administrative transition touches the checkpoint, the
epoch or custodied funds.
"""

from typing import Tuple

from ..errors import (
    BridgeNotPausedError,
    BridgePausedError,
    NotOwnerError,
    ThresholdTooLowError,
)
from .bridge_types import (
    BridgeState,
    CallContext,
    Paused,
    PowerThresholdChanged,
    Unpaused,
    require_uint,
)


def meets_two_thirds(power_threshold: int, total_validator_power: int) -> bool:
    """Exact check of ``power_threshold >= 2/3 * total_validator_power``."""
    return 3 * power_threshold >= 2 * total_validator_power


def check_threshold_bound(power_threshold: int, total_validator_power: int) -> None:
    require_uint(power_threshold, "power_threshold")
    if not meets_two_thirds(power_threshold, total_validator_power):
        raise ThresholdTooLowError(
            f"Power threshold {power_threshold} is below two thirds of "
            f"total validator power {total_validator_power}",
            config_key="power_threshold",
            config_value=power_threshold,
        )


def require_owner(state: BridgeState, context: CallContext) -> None:
    if context.sender != state.owner:
        raise NotOwnerError(f"{context.sender} is not the bridge owner", caller=context.sender)


def require_not_paused(state: BridgeState) -> None:
    if state.paused:
        raise BridgePausedError("Bridge is paused")


def require_paused(state: BridgeState) -> None:
    if not state.paused:
        raise BridgeNotPausedError("Bridge is not paused")


def apply_pause(state: BridgeState, context: CallContext) -> Tuple[BridgeState, Paused]:
    require_owner(state, context)
    require_not_paused(state)
    return state.evolve(paused=True), Paused(account=context.sender)


def apply_unpause(state: BridgeState, context: CallContext) -> Tuple[BridgeState, Unpaused]:
    require_owner(state, context)
    require_paused(state)
    return state.evolve(paused=False), Unpaused(account=context.sender)


def apply_threshold_change(
    state: BridgeState, context: CallContext, new_threshold: int
) -> Tuple[BridgeState, PowerThresholdChanged]:
    """Change the power threshold. Owner only, and only while paused."""
    require_owner(state, context)
    require_paused(state)
    check_threshold_bound(new_threshold, state.total_validator_power)
    record = PowerThresholdChanged(
        old_threshold=state.power_threshold, new_threshold=new_threshold
    )
    return state.evolve(power_threshold=new_threshold), record
