"""
Append-only notification records.

Records are produced by the ledger for off-ledger observers (the indexer,
API readers) and are never read back by the ledger itself. Subscribers only
see records of committed operations: the execution guard publishes them
after the call succeeded and truncates them away if it rolled back.
"""

import logging
import time
import uuid
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional

from app.core.constants import (
    EVENT_PHASE_ADVANCE,
    EVENT_POSITION_RELEASED,
    EVENT_PRICE_STEP,
    EVENT_PURCHASE,
    EVENT_SETTLEMENT,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerEvent:
    sequence: int = field(default=0, kw_only=True)
    timestamp: float = field(default=0.0, kw_only=True)

    kind = "event"

    def to_payload(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload.pop("sequence")
        payload.pop("timestamp")
        return payload


@dataclass(frozen=True)
class PurchaseRecorded(LedgerEvent):
    buyer: str
    asset: str
    position_id: int
    paid_amount: int
    minted_amount: int
    price: int

    kind = EVENT_PURCHASE


@dataclass(frozen=True)
class PriceStepped(LedgerEvent):
    phase_index: int
    old_price: int
    new_price: int
    sold_volume: int
    completed: bool

    kind = EVENT_PRICE_STEP


@dataclass(frozen=True)
class PhaseAdvanced(LedgerEvent):
    cycle: int
    phase_index: int
    base_price: int

    kind = EVENT_PHASE_ADVANCE


@dataclass(frozen=True)
class PositionReleased(LedgerEvent):
    position_id: int
    total_allocation: int
    value_usd: int
    price: int

    kind = EVENT_POSITION_RELEASED


@dataclass(frozen=True)
class SettlementRecorded(LedgerEvent):
    position_id: int
    holder: str
    burn_percent: int
    burned_amount: int
    released_amount: int
    stable_amount: int
    price: int

    kind = EVENT_SETTLEMENT


class EventLog:
    """Ordered, append-only store of ledger notifications."""

    def __init__(self, clock: Callable[[], float] = time.time, run_id: Optional[str] = None):
        self._clock = clock
        # Sequences restart with every process; run_id tells the runs apart
        self.run_id = run_id or uuid.uuid4().hex
        self._records: List[LedgerEvent] = []
        self._published = 0
        self._subscribers: List[Callable[[LedgerEvent], None]] = []

    def __len__(self) -> int:
        return len(self._records)

    def append(self, event: LedgerEvent) -> LedgerEvent:
        stamped = replace(event, sequence=len(self._records) + 1, timestamp=self._clock())
        self._records.append(stamped)
        return stamped

    def since(self, sequence: int = 0) -> List[LedgerEvent]:
        """Published records with a sequence number greater than ``sequence``."""
        return [r for r in self._records[: self._published] if r.sequence > sequence]

    def subscribe(self, callback: Callable[[LedgerEvent], None]) -> None:
        self._subscribers.append(callback)

    def publish(self) -> None:
        """Deliver records appended since the last publish to subscribers."""
        pending = self._records[self._published :]
        self._published = len(self._records)
        for record in pending:
            for callback in self._subscribers:
                try:
                    callback(record)
                except Exception as e:
                    # The operation already committed; a broken reader cannot undo it
                    logger.warning(f"events: subscriber failed on #{record.sequence} {record.kind}: {e}")

    def snapshot(self) -> int:
        return len(self._records)

    def restore(self, state: int) -> None:
        del self._records[state:]
        self._published = min(self._published, state)
