"""
Deposit and withdrawal transitions.

Withdrawal is split in two so the facade can commit the replay mark before
anything that may fail runs:

1. ``begin_withdrawal`` performs the checks that burn nothing (paused, input,
   checkpoint, replay) and returns a state with the digest marked processed.
2. ``authorize_withdrawal`` runs threshold verification over the digest.

A triple whose digest was marked stays burned even if verification or the
transfer fails afterwards.
"""

from typing import Optional, Sequence, Tuple

from ..crypto import Hash, Keccak256Hasher, ValidatorSignature, normalize_address
from ..errors import AlreadyWithdrawnError
from .admin import require_not_paused
from .bridge_types import (
    BridgeState,
    CallContext,
    DepositRecord,
    ValidatorSet,
    WithdrawRecord,
    require_uint,
)
from .checkpoint import require_checkpoint
from .verifier import ThresholdVerifier, VerificationResult

WITHDRAW_TAG = "withdraw"
WITHDRAW_ABI_TYPES = ("string", "address", "uint256", "uint256")


def make_withdrawal_message(user: str, amount: int, nonce: int) -> Hash:
    """keccak256(abi.encode("withdraw", user, amount, nonce))."""
    user = normalize_address(user, field="user")
    require_uint(amount, "amount")
    require_uint(nonce, "nonce")
    return Keccak256Hasher.hash_abi(WITHDRAW_ABI_TYPES, (WITHDRAW_TAG, user, amount, nonce))


def prepare_deposit(state: BridgeState, context: CallContext, amount: int) -> DepositRecord:
    require_not_paused(state)
    require_uint(amount, "amount")
    return DepositRecord(user=context.sender, amount=amount, timestamp_ms=context.timestamp_ms)


def begin_withdrawal(
    state: BridgeState,
    context: CallContext,
    amount: int,
    nonce: int,
    validator_set: ValidatorSet,
) -> Tuple[BridgeState, Hash]:
    """
    Check and mark a withdrawal.

    Returns the state with the withdrawal digest added to the processed set,
    and the digest itself.

    Raises:
        BridgePausedError: the bridge is paused.
        InvalidValueError: amount or nonce is not a uint256.
        StaleValidatorSetError: ``validator_set`` is not the active committee.
        AlreadyWithdrawnError: the digest was marked by an earlier call.
    """
    require_not_paused(state)
    message = make_withdrawal_message(context.sender, amount, nonce)
    require_checkpoint(validator_set, state.checkpoint)
    if state.is_processed(message):
        raise AlreadyWithdrawnError(
            f"Withdrawal of {amount} with nonce {nonce} for {context.sender} "
            "has already been processed",
            message_hash=message.to_hex(),
        )
    return state.with_processed(message), message


def authorize_withdrawal(
    state: BridgeState,
    message: Hash,
    validator_set: ValidatorSet,
    signatures: Sequence[Optional[ValidatorSignature]],
) -> VerificationResult:
    return ThresholdVerifier(state.power_threshold).verify(message, validator_set, signatures)


def withdrawal_record(
    context: CallContext, amount: int, nonce: int, validator_set: ValidatorSet
) -> WithdrawRecord:
    return WithdrawRecord(
        user=context.sender,
        amount=amount,
        nonce=nonce,
        timestamp_ms=context.timestamp_ms,
        validator_set=validator_set,
    )
