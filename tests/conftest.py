"""
Shared fixtures: a deterministic validator committee, an asset ledger and a
deployed bridge.
"""

import os

import pytest

from custody_bridge.bridge import (
    BridgeConfig,
    CallContext,
    CustodyBridge,
    TokenLedger,
    ValidatorSet,
)
from custody_bridge.crypto import ValidatorKey
from custody_bridge.logging import shutdown_logging

ASSET_ADDRESS = "0x1111111111111111111111111111111111111111"
OWNER = "0x000000000000000000000000000000000000dead"
USER = "0x00000000000000000000000000000000000000aa"
OTHER_USER = "0x00000000000000000000000000000000000000bb"
DEPLOY_TIME = 1_700_000_000
USER_FUNDS = 1_000_000
BRIDGE_FUNDS = 500_000


def make_keys(count, offset=1):
    return [ValidatorKey.from_bytes((offset + i).to_bytes(32, "big")) for i in range(count)]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep CUSTODY_BRIDGE_* variables from leaking into configs."""
    for name in list(os.environ):
        if name.startswith("CUSTODY_BRIDGE_"):
            monkeypatch.delenv(name, raising=False)
    yield
    shutdown_logging()


@pytest.fixture
def validator_keys():
    return make_keys(3)


@pytest.fixture
def next_keys():
    return make_keys(4, offset=101)


@pytest.fixture
def genesis_set(validator_keys):
    return ValidatorSet.create(0, [k.address for k in validator_keys], [100, 100, 100])


@pytest.fixture
def sign():
    """sign(keys, digest, signers=None) -> one signature slot per key."""

    def _sign(keys, digest, signers=None):
        if signers is None:
            signers = range(len(keys))
        signers = set(signers)
        return [key.sign_digest(digest) if i in signers else None for i, key in enumerate(keys)]

    return _sign


@pytest.fixture
def owner_context():
    return CallContext(sender=OWNER, timestamp=DEPLOY_TIME)


@pytest.fixture
def user_context():
    return CallContext(sender=USER, timestamp=DEPLOY_TIME + 60)


@pytest.fixture
def ledger():
    token = TokenLedger(ASSET_ADDRESS)
    token.mint(USER, USER_FUNDS)
    return token


@pytest.fixture
def bridge_config(genesis_set):
    return BridgeConfig(
        validators=list(genesis_set.validators),
        powers=list(genesis_set.powers),
        total_validator_power=300,
        power_threshold=200,
        asset_address=ASSET_ADDRESS,
    )


@pytest.fixture
def bridge(bridge_config, ledger, owner_context):
    deployed = CustodyBridge.deploy(bridge_config, ledger, owner_context)
    ledger.mint(deployed.address, BRIDGE_FUNDS)
    ledger.approve(USER, deployed.address, USER_FUNDS)
    return deployed


@pytest.fixture
def other_context():
    return CallContext(sender=OTHER_USER, timestamp=DEPLOY_TIME + 120)


@pytest.fixture
def key_factory():
    return make_keys
