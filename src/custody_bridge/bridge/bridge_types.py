"""
Custody bridge types and data structures.

This module defines the validator-set arguments callers submit, the per-call
chain context, the immutable audit records the bridge emits and the versioned
state record every operation transforms.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, FrozenSet, Iterable, Tuple

from ..crypto import Hash, normalize_address, normalize_addresses
from ..errors import create_validation_error

UINT256_MAX = 2**256 - 1


def require_uint(value: Any, field_name: str, maximum: int = UINT256_MAX) -> int:
    """Validate a non-negative integer that fits the on-chain integer width."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise create_validation_error(field_name, value, "integer")
    if value < 0 or value > maximum:
        raise create_validation_error(field_name, value, f"0 <= value <= {maximum}")
    return value


@dataclass(frozen=True)
class ValidatorSet:
    """
    Validator-set arguments (``ValsetArgs``).

    Index ``i`` of ``validators`` and ``powers`` describes one validator. The
    two sequences are not required to have equal length here; operations
    reject mismatched sets with ArrayLengthMismatchError.
    """

    epoch: int
    validators: Tuple[str, ...]
    powers: Tuple[int, ...]

    def __post_init__(self) -> None:
        require_uint(self.epoch, "epoch")
        object.__setattr__(
            self, "validators", normalize_addresses(self.validators, field="validators")
        )
        powers = tuple(self.powers)
        for index, power in enumerate(powers):
            require_uint(power, f"powers[{index}]")
        object.__setattr__(self, "powers", powers)

    @classmethod
    def create(
        cls, epoch: int, validators: Iterable[Any], powers: Iterable[int]
    ) -> "ValidatorSet":
        return cls(epoch=epoch, validators=tuple(validators), powers=tuple(powers))

    def __len__(self) -> int:
        return len(self.validators)

    @property
    def is_well_formed(self) -> bool:
        return len(self.validators) == len(self.powers)

    @property
    def total_power(self) -> int:
        return sum(self.powers)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "epoch": self.epoch,
            "validators": list(self.validators),
            "powers": list(self.powers),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidatorSet":
        """Create from dictionary."""
        return cls.create(
            epoch=data["epoch"],
            validators=data.get("validators", []),
            powers=data.get("powers", []),
        )


@dataclass(frozen=True)
class CallContext:
    """
    Chain context of a single external call.

    ``sender`` is the calling account and ``timestamp`` the chain time of the
    enclosing block, in seconds.
    """

    sender: str
    timestamp: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "sender", normalize_address(self.sender, field="sender"))
        require_uint(self.timestamp, "timestamp")

    @property
    def timestamp_ms(self) -> int:
        return self.timestamp * 1000


@dataclass(frozen=True)
class BridgeRecord:
    """Base class for immutable audit records."""

    kind: ClassVar[str] = "record"

    def to_dict(self) -> Dict[str, Any]:
        data = {"kind": self.kind}
        for item in dataclasses.fields(self):
            value = getattr(self, item.name)
            if isinstance(value, ValidatorSet):
                value = value.to_dict()
            elif isinstance(value, tuple):
                value = list(value)
            data[item.name] = value
        return data


@dataclass(frozen=True)
class DepositRecord(BridgeRecord):
    """Emitted when an amount is pulled into custody."""

    kind: ClassVar[str] = "DepositRecord"

    user: str
    amount: int
    timestamp_ms: int


@dataclass(frozen=True)
class WithdrawRecord(BridgeRecord):
    """Emitted when an amount is paid out, with the committee that approved it."""

    kind: ClassVar[str] = "WithdrawRecord"

    user: str
    amount: int
    nonce: int
    timestamp_ms: int
    validator_set: ValidatorSet


@dataclass(frozen=True)
class ValsetUpdated(BridgeRecord):
    """Emitted when the active checkpoint advances to a new committee."""

    kind: ClassVar[str] = "ValsetUpdated"

    epoch: int
    validators: Tuple[str, ...]
    powers: Tuple[int, ...]


@dataclass(frozen=True)
class Paused(BridgeRecord):
    kind: ClassVar[str] = "Paused"

    account: str


@dataclass(frozen=True)
class Unpaused(BridgeRecord):
    kind: ClassVar[str] = "Unpaused"

    account: str


@dataclass(frozen=True)
class PowerThresholdChanged(BridgeRecord):
    kind: ClassVar[str] = "PowerThresholdChanged"

    old_threshold: int
    new_threshold: int


RECORD_TYPES: Dict[str, type] = {
    record_type.kind: record_type
    for record_type in (
        DepositRecord,
        WithdrawRecord,
        ValsetUpdated,
        Paused,
        Unpaused,
        PowerThresholdChanged,
    )
}


@dataclass(frozen=True)
class BridgeState:
    """
    Versioned bridge state record.

    The validator list itself is never stored, only its checkpoint. Each
    mutation produces a new record with ``version`` incremented by one.
    """

    checkpoint: Hash
    epoch: int
    power_threshold: int
    total_validator_power: int
    owner: str
    asset: str
    paused: bool = False
    processed_withdrawals: FrozenSet[Hash] = field(default_factory=frozenset)
    version: int = 0

    def evolve(self, **changes: Any) -> "BridgeState":
        """Return a new record with ``changes`` applied and the version bumped."""
        changes.setdefault("version", self.version + 1)
        return dataclasses.replace(self, **changes)

    def is_processed(self, message: Hash) -> bool:
        return message in self.processed_withdrawals

    def with_processed(self, message: Hash) -> "BridgeState":
        return self.evolve(processed_withdrawals=self.processed_withdrawals | {message})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "checkpoint": self.checkpoint.to_hex(),
            "epoch": self.epoch,
            "power_threshold": self.power_threshold,
            "total_validator_power": self.total_validator_power,
            "owner": self.owner,
            "asset": self.asset,
            "paused": self.paused,
            "processed_withdrawals": sorted(m.to_hex() for m in self.processed_withdrawals),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeState":
        """Create from dictionary."""
        return cls(
            checkpoint=Hash.from_hex(data["checkpoint"]),
            epoch=data["epoch"],
            power_threshold=data["power_threshold"],
            total_validator_power=data["total_validator_power"],
            owner=normalize_address(data["owner"], field="owner"),
            asset=normalize_address(data["asset"], field="asset"),
            paused=data.get("paused", False),
            processed_withdrawals=frozenset(
                Hash.from_hex(m) for m in data.get("processed_withdrawals", [])
            ),
            version=data.get("version", 0),
        )
