"""
Validator-set checkpointing.

A checkpoint is the keccak-256 digest of
``abi.encode(address[] validators, uint256[] powers, uint256 epoch)``. The
bridge stores only this digest; callers must present the full set on every
call and the bridge recomputes and compares it.
"""

from ..crypto import Hash, Keccak256Hasher
from ..errors import StaleValidatorSetError
from ..logging import get_logger
from .bridge_types import ValidatorSet

logger = get_logger(__name__)

CHECKPOINT_ABI_TYPES = ("address[]", "uint256[]", "uint256")


def make_checkpoint(validator_set: ValidatorSet) -> Hash:
    """Compute the checkpoint of a validator set."""
    return Keccak256Hasher.hash_abi(
        CHECKPOINT_ABI_TYPES,
        (
            list(validator_set.validators),
            list(validator_set.powers),
            validator_set.epoch,
        ),
    )


def checkpoint_matches(validator_set: ValidatorSet, checkpoint: Hash) -> bool:
    return make_checkpoint(validator_set) == checkpoint


def require_checkpoint(validator_set: ValidatorSet, checkpoint: Hash) -> Hash:
    """Raise StaleValidatorSetError unless ``validator_set`` hashes to ``checkpoint``."""
    supplied = make_checkpoint(validator_set)
    if supplied != checkpoint:
        logger.debug(
            f"Checkpoint mismatch at epoch {validator_set.epoch}: "
            f"{supplied.to_hex()} != {checkpoint.to_hex()}"
        )
        raise StaleValidatorSetError(
            "Supplied validator set does not match the active checkpoint",
            expected_checkpoint=checkpoint.to_hex(),
            supplied_checkpoint=supplied.to_hex(),
        )
    return supplied


def signed_message_hash(digest: Hash) -> Hash:
    """Ethereum signed-message hash of a 32-byte digest."""
    return Keccak256Hasher.signed_message_hash(digest)
