"""
Custody bridge facade.

``CustodyBridge`` owns the current ``BridgeState`` record, the custodied
asset and the audit log. Every external operation runs under a non-reentrant
guard, computes its transition from the pure functions in ``custody``,
``lifecycle`` and ``admin``, and commits the resulting state before any asset
transfer runs.
"""

import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

from ..crypto import Hash, Keccak256Hasher, ValidatorSignature, normalize_address
from ..errors import BridgeError, ConfigurationError, ReentrancyError
from ..logging import LogContext, get_logger
from .admin import apply_pause, apply_threshold_change, apply_unpause
from .asset import Asset
from .bridge_config import BridgeConfig
from .bridge_types import (
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
from .custody import (
    authorize_withdrawal,
    begin_withdrawal,
    make_withdrawal_message,
    prepare_deposit,
    withdrawal_record,
)
from .events import EmittedRecord, EventLog
from .lifecycle import apply_valset_update, build_genesis_state

logger = get_logger(__name__)

GENESIS_EPOCH = 0


def derive_bridge_address(deployer: str, timestamp: int) -> str:
    """Deterministic bridge address for a deployment without a configured one."""
    digest = Keccak256Hasher.hash_abi(("address", "uint256"), (deployer, timestamp))
    return normalize_address(digest.value[12:], field="bridge_address")


def _annotate(error: BridgeError, log_context: LogContext) -> None:
    error.context.fill(
        component=log_context.component,
        operation=log_context.operation,
        caller=log_context.caller,
        epoch=log_context.epoch,
    )


class CustodyBridge:
    """Validator-set checkpointed custody bridge for a single asset."""

    def __init__(
        self,
        state: BridgeState,
        asset: Asset,
        address: str,
        events: Optional[EventLog] = None,
    ):
        if asset.address != state.asset:
            raise ConfigurationError(
                f"Asset {asset.address} does not match bridge state asset {state.asset}",
                config_key="asset_address",
                config_value=asset.address,
            )
        self._state = state
        self.asset = asset
        self.address = normalize_address(address, field="bridge_address")
        self.events = events if events is not None else EventLog()
        self._lock = threading.RLock()
        self._entered = False
        self._pending: List[EmittedRecord] = []

    @classmethod
    def deploy(
        cls,
        config: BridgeConfig,
        asset: Asset,
        context: CallContext,
        events: Optional[EventLog] = None,
    ) -> "CustodyBridge":
        """
        Deploy a bridge with the configured committee at epoch 0.

        The deploying account becomes the owner.

        Raises:
            ArrayLengthMismatchError: validators and powers differ in length.
            ThresholdTooLowError: threshold is below two thirds of the total power.
            PowerSumMismatchError: powers do not sum to the total power.
            ConfigurationError: the configured asset address is not ``asset``.
        """
        if config.asset_address is not None and config.asset_address != asset.address:
            raise ConfigurationError(
                f"Configured asset {config.asset_address} does not match {asset.address}",
                config_key="asset_address",
                config_value=config.asset_address,
            )

        validator_set = ValidatorSet.create(GENESIS_EPOCH, config.validators, config.powers)
        log_context = LogContext(
            component="custody_bridge", operation="deploy", caller=context.sender, epoch=0
        )
        try:
            state = build_genesis_state(
                validator_set,
                total_validator_power=config.total_validator_power,
                power_threshold=config.power_threshold,
                owner=context.sender,
                asset=asset.address,
            )
        except BridgeError as e:
            _annotate(e, log_context)
            logger.error(
                f"Deployment rejected: {e.message}",
                context=log_context,
                extra={"error_code": e.error_code},
            )
            raise

        address = config.bridge_address or derive_bridge_address(context.sender, context.timestamp)
        bridge = cls(state, asset, address, events)
        logger.info(
            f"Bridge deployed at {bridge.address} with {len(validator_set)} validators",
            context=log_context,
            extra={
                "checkpoint": state.checkpoint.to_hex(),
                "power_threshold": state.power_threshold,
                "total_validator_power": state.total_validator_power,
            },
        )
        return bridge

    # State queries

    @property
    def state(self) -> BridgeState:
        return self._state

    @property
    def checkpoint(self) -> Hash:
        return self._state.checkpoint

    @property
    def epoch(self) -> int:
        return self._state.epoch

    @property
    def power_threshold(self) -> int:
        return self._state.power_threshold

    @property
    def total_validator_power(self) -> int:
        return self._state.total_validator_power

    @property
    def paused(self) -> bool:
        return self._state.paused

    @property
    def owner(self) -> str:
        return self._state.owner

    @property
    def version(self) -> int:
        return self._state.version

    def is_withdrawal_processed(self, user: str, amount: int, nonce: int) -> bool:
        return self._state.is_processed(make_withdrawal_message(user, amount, nonce))

    def custody_balance(self) -> int:
        """Amount of the asset currently held by the bridge."""
        return self.asset.balance_of(self.address)

    # Guard

    @contextmanager
    def _call(self, operation: str, context: CallContext) -> Iterator[LogContext]:
        with self._lock:
            log_context = LogContext(
                component="custody_bridge",
                operation=operation,
                caller=context.sender,
                epoch=self._state.epoch,
            )
            if self._entered:
                logger.warning(f"Reentrant {operation} rejected", context=log_context)
                error = ReentrancyError(f"Reentrant call to {operation}")
                _annotate(error, log_context)
                raise error

            self._entered = True
            try:
                yield log_context
            except BridgeError as e:
                _annotate(e, log_context)
                logger.warning(
                    f"{operation} rejected: {e.message}",
                    context=log_context,
                    extra={"error_code": e.error_code},
                )
                raise
            finally:
                self._entered = False
                pending, self._pending = self._pending, []

        # Handlers run once the guard is released.
        for emitted in pending:
            self.events.dispatch(emitted)

    def _emit(self, record) -> None:
        self._pending.append(self.events.append(record))

    # Custody

    def deposit(self, context: CallContext, amount: int) -> DepositRecord:
        """
        Pull ``amount`` of the asset from the caller into custody.

        The caller must have approved the bridge for at least ``amount``.
        """
        with self._call("deposit", context) as log_context:
            record = prepare_deposit(self._state, context, amount)
            self.asset.transfer_from(self.address, context.sender, self.address, amount)
            self._emit(record)
            logger.info(f"Deposit of {amount} from {context.sender}", context=log_context)
            return record

    def withdraw(
        self,
        context: CallContext,
        amount: int,
        nonce: int,
        validator_set: ValidatorSet,
        signatures: Sequence[Optional[ValidatorSignature]],
    ) -> WithdrawRecord:
        """
        Pay ``amount`` to the caller on the active committee's authority.

        The withdrawal digest is marked processed before signatures are
        verified; a failure after that point leaves the mark in place.
        """
        with self._call("withdraw", context) as log_context:
            marked, message = begin_withdrawal(
                self._state, context, amount, nonce, validator_set
            )
            self._state = marked

            result = authorize_withdrawal(marked, message, validator_set, signatures)
            self.asset.transfer(self.address, context.sender, amount)

            record = withdrawal_record(context, amount, nonce, validator_set)
            self._emit(record)
            logger.info(
                f"Withdrawal of {amount} (nonce {nonce}) to {context.sender}",
                context=log_context,
                extra={"message": message.to_hex(), **result.to_dict()},
            )
            return record

    # Lifecycle

    def update_valset(
        self,
        context: CallContext,
        new_set: ValidatorSet,
        current_set: ValidatorSet,
        signatures: Sequence[Optional[ValidatorSignature]],
    ) -> ValsetUpdated:
        """Rotate to ``new_set`` with signatures from the active committee."""
        with self._call("update_valset", context) as log_context:
            new_state, record, result = apply_valset_update(
                self._state, new_set, current_set, signatures
            )
            self._state = new_state
            self._emit(record)
            logger.info(
                f"Validator set updated to epoch {new_set.epoch}",
                context=log_context,
                extra={"checkpoint": new_state.checkpoint.to_hex(), **result.to_dict()},
            )
            return record

    # Administration

    def pause(self, context: CallContext) -> Paused:
        with self._call("pause", context) as log_context:
            self._state, record = apply_pause(self._state, context)
            self._emit(record)
            logger.warning("Bridge paused", context=log_context)
            return record

    def unpause(self, context: CallContext) -> Unpaused:
        with self._call("unpause", context) as log_context:
            self._state, record = apply_unpause(self._state, context)
            self._emit(record)
            logger.info("Bridge unpaused", context=log_context)
            return record

    def change_power_threshold(
        self, context: CallContext, new_threshold: int
    ) -> PowerThresholdChanged:
        with self._call("change_power_threshold", context) as log_context:
            self._state, record = apply_threshold_change(self._state, context, new_threshold)
            self._emit(record)
            logger.info(
                f"Power threshold changed from {record.old_threshold} to {record.new_threshold}",
                context=log_context,
            )
            return record

    def __repr__(self) -> str:
        return (
            f"CustodyBridge(address='{self.address}', epoch={self.epoch}, "
            f"paused={self.paused}, version={self.version})"
        )
