"""
Security tests for the non-reentrant guard.

Reentrant callers are modelled with ledger receive hooks that call back into
the bridge while a transfer is in progress.
"""

import pytest

from custody_bridge.bridge import make_withdrawal_message
from custody_bridge.errors import ReentrancyError


class TestReentrancyGuard:
    """Test reentrant calls are rejected."""

    def test_reentrant_withdraw_reverts_payout(
        self, bridge, ledger, genesis_set, validator_keys, sign, user_context
    ):
        """Test a payout whose recipient re-enters is reverted, the nonce stays burned."""
        second = make_withdrawal_message(user_context.sender, 100, 2)
        second_signatures = sign(validator_keys, second)

        def reenter(sender, recipient, amount):
            bridge.withdraw(user_context, 100, 2, genesis_set, second_signatures)

        ledger.add_receive_hook(user_context.sender, reenter)
        first = make_withdrawal_message(user_context.sender, 100, 1)
        custody = bridge.custody_balance()

        with pytest.raises(ReentrancyError):
            bridge.withdraw(user_context, 100, 1, genesis_set, sign(validator_keys, first))

        assert bridge.custody_balance() == custody
        assert ledger.balance_of(user_context.sender) == 1_000_000
        assert bridge.is_withdrawal_processed(user_context.sender, 100, 1)
        assert not bridge.is_withdrawal_processed(user_context.sender, 100, 2)
        assert bridge.events.records("WithdrawRecord") == []

    def test_swallowed_reentry_pays_once(
        self, bridge, ledger, genesis_set, validator_keys, sign, user_context
    ):
        """Test a recipient that catches the rejection only receives the outer payout."""
        rejected = []
        second = make_withdrawal_message(user_context.sender, 100, 2)
        second_signatures = sign(validator_keys, second)

        def reenter(sender, recipient, amount):
            try:
                bridge.withdraw(user_context, 100, 2, genesis_set, second_signatures)
            except ReentrancyError as e:
                rejected.append(e)

        ledger.add_receive_hook(user_context.sender, reenter)
        first = make_withdrawal_message(user_context.sender, 100, 1)
        bridge.withdraw(user_context, 100, 1, genesis_set, sign(validator_keys, first))

        assert len(rejected) == 1
        assert ledger.balance_of(user_context.sender) == 1_000_100
        assert len(bridge.events.records("WithdrawRecord")) == 1

    def test_reentrant_admin_call(
        self, bridge, ledger, genesis_set, validator_keys, sign, owner_context
    ):
        """Test admin calls cannot run while a withdrawal is in flight."""

        def reenter(sender, recipient, amount):
            bridge.pause(owner_context)

        ledger.add_receive_hook(owner_context.sender, reenter)
        message = make_withdrawal_message(owner_context.sender, 10, 1)
        with pytest.raises(ReentrancyError) as exc_info:
            bridge.withdraw(owner_context, 10, 1, genesis_set, sign(validator_keys, message))
        assert exc_info.value.context.operation == "pause"
        assert not bridge.paused

    def test_guard_released_after_failure(
        self, bridge, ledger, genesis_set, validator_keys, sign, user_context
    ):
        """Test the guard is released when a call fails."""

        def reenter(sender, recipient, amount):
            bridge.deposit(user_context, 1)

        ledger.add_receive_hook(user_context.sender, reenter)
        message = make_withdrawal_message(user_context.sender, 10, 1)
        with pytest.raises(ReentrancyError):
            bridge.withdraw(user_context, 10, 1, genesis_set, sign(validator_keys, message))

        ledger.remove_receive_hook(user_context.sender, reenter)
        bridge.deposit(user_context, 1)
        message = make_withdrawal_message(user_context.sender, 10, 2)
        bridge.withdraw(user_context, 10, 2, genesis_set, sign(validator_keys, message))
        assert ledger.balance_of(user_context.sender) == 1_000_000 - 1 + 10
