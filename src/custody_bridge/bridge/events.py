"""
Append-only audit log of bridge records.

Off-chain watchers subscribe to record kinds (``DepositRecord``,
``ValsetUpdated``, ...) through handlers. A failing handler is logged and never
affects the call that emitted the record.
"""

import json
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from ..logging import get_logger
from .bridge_types import RECORD_TYPES, BridgeRecord

logger = get_logger(__name__)

RecordHandler = Callable[["EmittedRecord"], None]


@dataclass(frozen=True)
class EmittedRecord:
    """A record together with its position in the log."""

    sequence: int
    record: BridgeRecord

    @property
    def kind(self) -> str:
        return self.record.kind

    def to_dict(self) -> Dict[str, Any]:
        data = self.record.to_dict()
        data["sequence"] = self.sequence
        return data


class EventLog:
    """Ordered, append-only record log with per-kind handlers."""

    def __init__(self):
        self._entries: List[EmittedRecord] = []
        self._handlers: Dict[str, List[RecordHandler]] = {kind: [] for kind in RECORD_TYPES}
        self._lock = threading.RLock()

    def add_handler(self, kind: str, handler: RecordHandler) -> None:
        """
        Add a handler for one record kind.

        Records emitted by ``CustodyBridge`` reach handlers after the emitting
        call has returned control of the bridge, so a handler may call back
        into the bridge.
        """
        self._require_kind(kind)
        self._handlers[kind].append(handler)

    def remove_handler(self, kind: str, handler: RecordHandler) -> None:
        """Remove a handler."""
        self._require_kind(kind)
        if handler in self._handlers[kind]:
            self._handlers[kind].remove(handler)

    def emit(self, record: BridgeRecord) -> EmittedRecord:
        """Append ``record`` and notify the handlers of its kind."""
        emitted = self.append(record)
        self.dispatch(emitted)
        return emitted

    def append(self, record: BridgeRecord) -> EmittedRecord:
        """Append ``record`` without notifying handlers."""
        self._require_kind(record.kind)
        with self._lock:
            emitted = EmittedRecord(sequence=len(self._entries), record=record)
            self._entries.append(emitted)
        return emitted

    def dispatch(self, emitted: EmittedRecord) -> None:
        """Notify the handlers of an appended record."""
        for handler in list(self._handlers[emitted.kind]):
            try:
                handler(emitted)
            except Exception as e:
                logger.error(
                    f"Error in record handler for {emitted.kind}: {e}",
                    exception=e,
                )

    def records(self, kind: Optional[str] = None) -> List[BridgeRecord]:
        """All records in emission order, optionally filtered by kind."""
        with self._lock:
            return [e.record for e in self._entries if kind is None or e.kind == kind]

    def entries(self) -> Tuple[EmittedRecord, ...]:
        with self._lock:
            return tuple(self._entries)

    def latest(self, kind: Optional[str] = None) -> Optional[BridgeRecord]:
        with self._lock:
            for emitted in reversed(self._entries):
                if kind is None or emitted.kind == kind:
                    return emitted.record
        return None

    def to_json(self, indent: Optional[int] = None) -> str:
        with self._lock:
            return json.dumps([e.to_dict() for e in self._entries], indent=indent)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[EmittedRecord]:
        return iter(self.entries())

    @staticmethod
    def _require_kind(kind: str) -> None:
        if kind not in RECORD_TYPES:
            raise ValueError(f"Unknown record kind: {kind}")
