"""
Custodied asset interface and an in-memory ERC-20 style ledger.

The bridge only ever talks to its asset through ``Asset``. ``TokenLedger``
keeps balances and allowances in memory and can invoke receive hooks after
crediting an account, which is how contracts that call back into the bridge
during a transfer are modelled.

Hooks run after the ledger lock is released, so a hook may call into a bridge
that another thread is using. A failing hook reverts its transfer together with
the transfers its thread made from inside the hook.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from ..crypto import normalize_address
from ..errors import InsufficientAllowanceError, InsufficientBalanceError
from ..logging import get_logger
from .bridge_types import require_uint

logger = get_logger(__name__)

ReceiveHook = Callable[[str, str, int], None]


class Asset(ABC):
    """ERC-20 style fungible asset."""

    @property
    @abstractmethod
    def address(self) -> str:
        """Address of the asset contract."""

    @abstractmethod
    def balance_of(self, account: str) -> int:
        """Balance held by ``account``."""

    @abstractmethod
    def allowance(self, owner: str, spender: str) -> int:
        """Amount ``spender`` may still pull from ``owner``."""

    @abstractmethod
    def approve(self, owner: str, spender: str, amount: int) -> None:
        """Set the allowance of ``spender`` over ``owner``'s balance."""

    @abstractmethod
    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """Move ``amount`` from ``sender`` to ``recipient``."""

    @abstractmethod
    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        """Move ``amount`` from ``owner`` to ``recipient`` using ``spender``'s allowance."""


class TokenLedger(Asset):
    """In-memory token with balances, allowances and receive hooks."""

    def __init__(self, address: str, symbol: str = "USDC", decimals: int = 6):
        self._address = normalize_address(address, field="asset_address")
        self.symbol = symbol
        self.decimals = decimals
        self.total_supply = 0
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._hooks: Dict[str, List[ReceiveHook]] = {}
        self._lock = threading.RLock()
        self._local = threading.local()

    @property
    def address(self) -> str:
        return self._address

    def balance_of(self, account: str) -> int:
        return self._balances.get(normalize_address(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    def mint(self, account: str, amount: int) -> None:
        account = normalize_address(account, field="account")
        require_uint(amount, "amount")
        with self._lock:
            self._balances[account] = self._balances.get(account, 0) + amount
            self.total_supply += amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        owner = normalize_address(owner, field="owner")
        spender = normalize_address(spender, field="spender")
        require_uint(amount, "amount")
        with self._lock:
            self._allowances[(owner, spender)] = amount

    def add_receive_hook(self, account: str, hook: ReceiveHook) -> None:
        """Call ``hook(sender, recipient, amount)`` after ``account`` is credited."""
        account = normalize_address(account, field="account")
        with self._lock:
            self._hooks.setdefault(account, []).append(hook)

    def remove_receive_hook(self, account: str, hook: ReceiveHook) -> None:
        account = normalize_address(account, field="account")
        with self._lock:
            hooks = self._hooks.get(account, [])
            if hook in hooks:
                hooks.remove(hook)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        sender = normalize_address(sender, field="sender")
        recipient = normalize_address(recipient, field="recipient")
        require_uint(amount, "amount")
        with self._lock:
            self._move(sender, recipient, amount)
        self._after_transfer(_Move(sender, recipient, amount))

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        spender = normalize_address(spender, field="spender")
        owner = normalize_address(owner, field="owner")
        recipient = normalize_address(recipient, field="recipient")
        require_uint(amount, "amount")
        with self._lock:
            allowed = self._allowances.get((owner, spender), 0)
            if allowed < amount:
                raise InsufficientAllowanceError(
                    f"Allowance of {spender} over {owner} is {allowed}, need {amount}",
                    account=owner,
                    required=amount,
                    available=allowed,
                )
            self._move(owner, recipient, amount)
            self._allowances[(owner, spender)] = allowed - amount
        self._after_transfer(_Move(owner, recipient, amount, spender=spender))

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        available = self._balances.get(sender, 0)
        if available < amount:
            raise InsufficientBalanceError(
                f"Balance of {sender} is {available}, need {amount}",
                account=sender,
                required=amount,
                available=available,
            )
        self._balances[sender] = available - amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount

    def _after_transfer(self, move: "_Move") -> None:
        # Hooks run outside the ledger lock. A failing hook reverts this move
        # and every move the same thread made from inside the hook.
        journal = getattr(self._local, "journal", None)
        outermost = journal is None
        if outermost:
            journal = self._local.journal = []
        mark = len(journal)
        journal.append(move)
        try:
            for hook in list(self._hooks.get(move.recipient, [])):
                hook(move.sender, move.recipient, move.amount)
        except Exception:
            self._revert(journal[mark:])
            del journal[mark:]
            logger.debug(f"Receive hook for {move.recipient} failed, transfer reverted")
            raise
        finally:
            if outermost:
                self._local.journal = None

    def _revert(self, moves: List["_Move"]) -> None:
        with self._lock:
            for move in reversed(moves):
                self._balances[move.recipient] = self._balances.get(move.recipient, 0) - move.amount
                self._balances[move.sender] = self._balances.get(move.sender, 0) + move.amount
                if move.spender is not None:
                    key = (move.sender, move.spender)
                    self._allowances[key] = self._allowances.get(key, 0) + move.amount


@dataclass(frozen=True)
class _Move:
    sender: str
    recipient: str
    amount: int
    spender: Optional[str] = None
