"""
Integration tests for the custody bridge.

These tests drive a deployed bridge through deposits, withdrawals, committee
rotation and administration, checking balances, state and the audit log.
"""

import json

import pytest

from custody_bridge.bridge import ValidatorSet, make_checkpoint, make_withdrawal_message
from custody_bridge.errors import (
    AlreadyWithdrawnError,
    BadSignatureError,
    BridgePausedError,
    InsufficientPowerError,
    NotOwnerError,
    StaleValidatorSetError,
)


class TestEndToEnd:
    """Three validators of 100 power each with a threshold of 200."""

    def test_two_signatures_fail_three_succeed(
        self, bridge, ledger, genesis_set, validator_keys, sign, user_context
    ):
        """Test the threshold is exclusive end to end."""
        bridge.deposit(user_context, 10_000)

        message = make_withdrawal_message(user_context.sender, 5_000, 1)
        with pytest.raises(InsufficientPowerError):
            bridge.withdraw(
                user_context, 5_000, 1, genesis_set, sign(validator_keys, message, signers=[0, 1])
            )

        # The failed attempt consumed nonce 1.
        with pytest.raises(AlreadyWithdrawnError):
            bridge.withdraw(user_context, 5_000, 1, genesis_set, sign(validator_keys, message))

        message = make_withdrawal_message(user_context.sender, 5_000, 2)
        bridge.withdraw(user_context, 5_000, 2, genesis_set, sign(validator_keys, message))
        assert ledger.balance_of(user_context.sender) == 1_000_000 - 10_000 + 5_000

    def test_rotation_then_withdraw(
        self,
        bridge,
        ledger,
        genesis_set,
        validator_keys,
        next_keys,
        sign,
        user_context,
        other_context,
    ):
        """Test withdrawals follow the active committee across a rotation."""
        new_set = ValidatorSet.create(1, [k.address for k in next_keys], [75, 75, 75, 75])
        record = bridge.update_valset(
            other_context, new_set, genesis_set, sign(validator_keys, make_checkpoint(new_set))
        )
        assert record.epoch == 1
        assert bridge.epoch == 1
        assert bridge.checkpoint == make_checkpoint(new_set)

        message = make_withdrawal_message(user_context.sender, 100, 1)
        with pytest.raises(StaleValidatorSetError):
            bridge.withdraw(user_context, 100, 1, genesis_set, sign(validator_keys, message))

        # 3 x 75 = 225 > 200
        bridge.withdraw(
            user_context, 100, 1, new_set, sign(next_keys, message, signers=[0, 1, 3])
        )
        assert bridge.is_withdrawal_processed(user_context.sender, 100, 1)

        # The old committee can no longer rotate, even claiming the new epoch.
        claimed = ValidatorSet.create(1, genesis_set.validators, genesis_set.powers)
        later = ValidatorSet.create(2, genesis_set.validators, genesis_set.powers)
        with pytest.raises(StaleValidatorSetError):
            bridge.update_valset(
                other_context, later, claimed, sign(validator_keys, make_checkpoint(later))
            )

    def test_consecutive_rotations(
        self, bridge, genesis_set, validator_keys, next_keys, sign, user_context
    ):
        """Test epochs may skip values but must increase."""
        middle = ValidatorSet.create(5, [k.address for k in next_keys], [75, 75, 75, 75])
        bridge.update_valset(
            user_context, middle, genesis_set, sign(validator_keys, make_checkpoint(middle))
        )

        back = ValidatorSet.create(9, genesis_set.validators, genesis_set.powers)
        bridge.update_valset(user_context, back, middle, sign(next_keys, make_checkpoint(back)))
        assert bridge.epoch == 9
        assert [r.epoch for r in bridge.events.records("ValsetUpdated")] == [5, 9]

    def test_rotation_with_wrong_signer_order(
        self, bridge, genesis_set, validator_keys, next_keys, sign, user_context
    ):
        """Test signatures cannot be permuted."""
        new_set = ValidatorSet.create(1, [k.address for k in next_keys], [75, 75, 75, 75])
        signatures = sign(validator_keys, make_checkpoint(new_set))
        signatures.reverse()
        with pytest.raises(BadSignatureError):
            bridge.update_valset(user_context, new_set, genesis_set, signatures)
        assert bridge.epoch == 0


class TestPauseFlow:
    """Test pausing and threshold changes against a live bridge."""

    def test_pause_blocks_operations(
        self, bridge, genesis_set, validator_keys, next_keys, sign, owner_context, user_context
    ):
        """Test pause blocks custody and rotation but allows threshold changes."""
        checkpoint, epoch = bridge.checkpoint, bridge.epoch
        bridge.pause(owner_context)

        message = make_withdrawal_message(user_context.sender, 1, 1)
        new_set = ValidatorSet.create(1, [k.address for k in next_keys], [75, 75, 75, 75])
        with pytest.raises(BridgePausedError):
            bridge.deposit(user_context, 1)
        with pytest.raises(BridgePausedError):
            bridge.withdraw(user_context, 1, 1, genesis_set, sign(validator_keys, message))
        with pytest.raises(BridgePausedError):
            bridge.update_valset(
                user_context, new_set, genesis_set, sign(validator_keys, make_checkpoint(new_set))
            )
        assert not bridge.is_withdrawal_processed(user_context.sender, 1, 1)

        bridge.change_power_threshold(owner_context, 250)
        bridge.unpause(owner_context)
        assert bridge.checkpoint == checkpoint
        assert bridge.epoch == epoch
        assert bridge.power_threshold == 250

        # 3 x 100 = 300 > 250, 2 x 100 does not pass any more.
        message = make_withdrawal_message(user_context.sender, 1, 2)
        with pytest.raises(InsufficientPowerError):
            bridge.withdraw(
                user_context, 1, 2, genesis_set, sign(validator_keys, message, signers=[0, 1])
            )
        message = make_withdrawal_message(user_context.sender, 1, 3)
        bridge.withdraw(user_context, 1, 3, genesis_set, sign(validator_keys, message))

    def test_only_owner_administers(self, bridge, owner_context, user_context):
        """Test administration is owner only."""
        with pytest.raises(NotOwnerError):
            bridge.pause(user_context)
        bridge.pause(owner_context)
        with pytest.raises(NotOwnerError):
            bridge.unpause(user_context)
        with pytest.raises(NotOwnerError):
            bridge.change_power_threshold(user_context, 300)

    def test_audit_log(
        self, bridge, genesis_set, validator_keys, sign, owner_context, user_context
    ):
        """Test every successful call leaves one ordered record."""
        bridge.deposit(user_context, 50)
        message = make_withdrawal_message(user_context.sender, 20, 1)
        bridge.withdraw(user_context, 20, 1, genesis_set, sign(validator_keys, message))
        bridge.pause(owner_context)
        bridge.change_power_threshold(owner_context, 300)
        bridge.unpause(owner_context)

        kinds = [e.kind for e in bridge.events]
        assert kinds == [
            "DepositRecord",
            "WithdrawRecord",
            "Paused",
            "PowerThresholdChanged",
            "Unpaused",
        ]
        exported = json.loads(bridge.events.to_json())
        assert [e["sequence"] for e in exported] == [0, 1, 2, 3, 4]
        assert exported[1]["validator_set"]["epoch"] == 0
        assert bridge.version == 4
