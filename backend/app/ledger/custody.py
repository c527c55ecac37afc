import logging
from typing import Dict

from app.core.constants import ZERO_ADDRESS
from app.ledger.accrual import ValueAccrualRegistry
from app.ledger.base import PositionCustody, PositionInfo
from app.ledger.errors import (
    AlreadyActivated,
    NotPositionHolder,
    PositionInvalidated,
    UnknownPosition,
    ZeroAddress,
)
from app.ledger.latch import LatchSet

logger = logging.getLogger(__name__)


class InMemoryPositionCustody(PositionCustody):
    """Non-fungible claims backing positions, one holder per position."""

    def __init__(self, registry: ValueAccrualRegistry):
        self._registry = registry
        self._owners: Dict[int, str] = {}
        self._invalidated = LatchSet()

    def issue(self, position_id: int, holder: str) -> None:
        if not holder or holder == ZERO_ADDRESS:
            raise ZeroAddress("position holder must not be the zero address")
        if position_id in self._owners:
            raise AlreadyActivated(f"position {position_id} claim already issued")
        self._owners[position_id] = holder

    def is_invalidated(self, position_id: int) -> bool:
        return position_id in self._invalidated

    def owner_of(self, position_id: int) -> str:
        if position_id not in self._owners:
            raise UnknownPosition(f"position {position_id} has no claim")
        if position_id in self._invalidated:
            raise PositionInvalidated(f"position {position_id} claim is invalidated")
        return self._owners[position_id]

    def get_position_info(self, position_id: int) -> PositionInfo:
        return self._registry.get_info(position_id)

    def invalidate(self, position_id: int) -> None:
        self.owner_of(position_id)
        self._invalidated.set_once(position_id)
        logger.info(f"custody: position {position_id} claim invalidated")

    def transfer_claim(self, position_id: int, sender: str, recipient: str) -> None:
        if self.owner_of(position_id) != sender:
            raise NotPositionHolder(f"{sender} does not hold position {position_id}")
        if not recipient or recipient == ZERO_ADDRESS:
            raise ZeroAddress("recipient must not be the zero address")
        self._owners[position_id] = recipient
        logger.info(f"custody: position {position_id} {sender} -> {recipient}")

    def snapshot(self) -> tuple:
        return dict(self._owners), self._invalidated.snapshot()

    def restore(self, state: tuple) -> None:
        owners, invalidated = state
        self._owners = dict(owners)
        self._invalidated.restore(invalidated)
