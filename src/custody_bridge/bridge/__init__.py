"""
Validator-set checkpointed custody bridge.

This module provides:
- Checkpointing of validator sets
- Threshold signature verification against a checkpointed committee
- Deposit and replay-protected withdrawal of a single custodied asset
- Committee rotation, owner administration and an audit log
"""

from .admin import (
    apply_pause,
    apply_threshold_change,
    apply_unpause,
    check_threshold_bound,
    meets_two_thirds,
    require_not_paused,
    require_owner,
    require_paused,
)
from .asset import Asset, TokenLedger
from .bridge_config import BridgeConfig
from .bridge_core import CustodyBridge, derive_bridge_address
from .bridge_types import (
    RECORD_TYPES,
    BridgeRecord,
    BridgeState,
    CallContext,
    DepositRecord,
    Paused,
    PowerThresholdChanged,
    Unpaused,
    ValidatorSet,
    ValsetUpdated,
    WithdrawRecord,
)
from .checkpoint import (
    checkpoint_matches,
    make_checkpoint,
    require_checkpoint,
    signed_message_hash,
)
from .custody import (
    authorize_withdrawal,
    begin_withdrawal,
    make_withdrawal_message,
    prepare_deposit,
    withdrawal_record,
)
from .events import EmittedRecord, EventLog
from .lifecycle import apply_valset_update, build_genesis_state, check_power_sum
from .verifier import (
    PowerTally,
    ThresholdVerifier,
    VerificationResult,
    sum_powers_bounded,
    verify,
)

__all__ = [
    # Facade
    "CustodyBridge",
    "BridgeConfig",
    "derive_bridge_address",
    # Types
    "ValidatorSet",
    "CallContext",
    "BridgeState",
    "BridgeRecord",
    "DepositRecord",
    "WithdrawRecord",
    "ValsetUpdated",
    "Paused",
    "Unpaused",
    "PowerThresholdChanged",
    "RECORD_TYPES",
    # Checkpoints
    "make_checkpoint",
    "checkpoint_matches",
    "require_checkpoint",
    "signed_message_hash",
    # Verification
    "ThresholdVerifier",
    "VerificationResult",
    "PowerTally",
    "sum_powers_bounded",
    "verify",
    # Custody
    "Asset",
    "TokenLedger",
    "make_withdrawal_message",
    "prepare_deposit",
    "begin_withdrawal",
    "authorize_withdrawal",
    "withdrawal_record",
    # Lifecycle
    "build_genesis_state",
    "apply_valset_update",
    "check_power_sum",
    # Administration
    "apply_pause",
    "apply_unpause",
    "apply_threshold_change",
    "check_threshold_bound",
    "meets_two_thirds",
    "require_owner",
    "require_paused",
    "require_not_paused",
    # Events
    "EventLog",
    "EmittedRecord",
]
