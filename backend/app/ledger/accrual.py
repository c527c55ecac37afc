"""
Per-position value accrual.

Each position sums purchased, rewarded and airdropped allocations and is
checked against a USD cap fixed at activation. The check prices the whole
allocation at the phase ledger's price at evaluation time, never at the price
it was bought for. Once the value reaches the cap the position is latched
into ``releasing`` and stops accruing.
"""

import copy
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from app.core.constants import PRICE_SCALE
from app.ledger.base import AllocationKind, PositionInfo, PriceSource
from app.ledger.errors import (
    AlreadyActivated,
    AlreadyReleasing,
    InvalidAmount,
    NotActivated,
    UnknownPosition,
)
from app.ledger.events import LedgerEvent, PositionReleased
from app.ledger.latch import Latch

logger = logging.getLogger(__name__)


@dataclass
class Position:
    activated: Latch = field(default_factory=Latch)
    activation_time: Optional[float] = None
    cap_usd: int = 0
    purchased: int = 0
    rewarded: int = 0
    airdropped: int = 0
    releasing: Latch = field(default_factory=Latch)

    @property
    def total_allocation(self) -> int:
        return self.purchased + self.rewarded + self.airdropped


def usd_value(amount: int, price: int) -> int:
    return amount * price // PRICE_SCALE


class ValueAccrualRegistry:
    """Owns every position's accrual record and its release latch."""

    def __init__(
        self,
        prices: PriceSource,
        emit: Callable[[LedgerEvent], LedgerEvent],
        clock: Callable[[], float] = time.time,
    ):
        self._prices = prices
        self._emit = emit
        self._clock = clock
        self._positions: Dict[int, Position] = {}

    @staticmethod
    def _check_id(position_id: int) -> None:
        if position_id < 0:
            raise UnknownPosition(f"position id {position_id} is invalid")

    def _activated(self, position_id: int) -> Position:
        self._check_id(position_id)
        position = self._positions.get(position_id)
        if position is None or not position.activated:
            raise NotActivated(f"position {position_id} is not activated")
        return position

    # --- Reads ---

    def get_info(self, position_id: int) -> PositionInfo:
        self._check_id(position_id)
        position = self._positions.get(position_id) or Position()
        return PositionInfo(
            position_id=position_id,
            activated=position.activated.is_set,
            activation_time=position.activation_time,
            cap_usd=position.cap_usd,
            purchased=position.purchased,
            rewarded=position.rewarded,
            airdropped=position.airdropped,
            releasing=position.releasing.is_set,
        )

    def usd_value(self, position_id: int) -> int:
        info = self.get_info(position_id)
        return usd_value(info.total_allocation, self._prices.get_current_price())

    def position_ids(self) -> list[int]:
        return sorted(self._positions)

    # --- Writes ---

    def check_activation(self, position_id: int, cap_usd: int, initial_allocation: int = 0) -> None:
        """Argument checks of activate(), without touching any state."""
        self._check_id(position_id)
        if cap_usd <= 0:
            raise InvalidAmount("cap_usd must be positive")
        if initial_allocation < 0:
            raise InvalidAmount("initial_allocation cannot be negative")

    def activate(self, position_id: int, cap_usd: int, initial_allocation: int = 0) -> PositionInfo:
        self.check_activation(position_id, cap_usd, initial_allocation)

        position = self._positions.setdefault(position_id, Position())
        if not position.activated.set_once():
            raise AlreadyActivated(f"position {position_id} is already activated")

        position.activation_time = self._clock()
        position.cap_usd = cap_usd
        position.purchased = initial_allocation
        logger.info(
            f"accrual: activated position {position_id} cap={cap_usd} initial={initial_allocation}"
        )
        if initial_allocation:
            self._evaluate_release(position_id, position)
        return self.get_info(position_id)

    def record_allocation(self, position_id: int, amount: int, kind: AllocationKind) -> PositionInfo:
        """Add to one accumulator of an open position, then re-check the cap."""
        if amount <= 0:
            raise InvalidAmount("allocation amount must be positive")
        kind = AllocationKind(kind)
        position = self._activated(position_id)
        if position.releasing:
            raise AlreadyReleasing(f"position {position_id} is already releasing")

        if kind is AllocationKind.PURCHASED:
            position.purchased += amount
        elif kind is AllocationKind.REWARDED:
            position.rewarded += amount
        else:
            position.airdropped += amount

        self._evaluate_release(position_id, position)
        return self.get_info(position_id)

    def refresh_release(self, position_id: int) -> bool:
        """Re-check the cap at the current price without accruing anything."""
        position = self._activated(position_id)
        if position.releasing:
            return True
        return self._evaluate_release(position_id, position)

    def _evaluate_release(self, position_id: int, position: Position) -> bool:
        price = self._prices.get_current_price()
        value = usd_value(position.total_allocation, price)
        if value < position.cap_usd:
            return False
        if position.releasing.set_once():
            logger.info(
                f"accrual: position {position_id} releasing, value={value} cap={position.cap_usd} price={price}"
            )
            self._emit(
                PositionReleased(
                    position_id=position_id,
                    total_allocation=position.total_allocation,
                    value_usd=value,
                    price=price,
                )
            )
        return True

    # --- Rollback ---

    def snapshot(self) -> Dict[int, Position]:
        return copy.deepcopy(self._positions)

    def restore(self, state: Dict[int, Position]) -> None:
        self._positions = copy.deepcopy(state)
