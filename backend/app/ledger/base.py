"""
Abstract contracts for the collaborators the ledger talks to.

The ledger only ever reaches other components through these narrow
interfaces. To plug in a real asset or custody backend:
1. Implement the abstract class defined here
2. Register the asset in the AssetRegistry (app/ledger/assets.py)
3. Hand the instances to PresaleEngine

Implementations that also provide ``snapshot()`` / ``restore(state)`` are
rolled back together with the ledger when an operation fails.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AllocationKind(str, Enum):
    """Allocation accumulators of a position."""
    PURCHASED = "purchased"
    REWARDED = "rewarded"
    AIRDROPPED = "airdropped"


@dataclass(frozen=True)
class PositionInfo:
    """Read-only view of a position's accrual record."""
    position_id: int
    activated: bool
    activation_time: Optional[float]
    cap_usd: int
    purchased: int
    rewarded: int
    airdropped: int
    releasing: bool

    @property
    def total_allocation(self) -> int:
        return self.purchased + self.rewarded + self.airdropped


class AssetTransfer(ABC):
    """
    A fungible asset the ledger can pull payments in and push payouts out of.

    Both calls report rejection by returning False rather than raising; the
    caller turns a rejection into the matching ExternalCallFailure.
    """

    @property
    @abstractmethod
    def symbol(self) -> str:
        """Ticker of the asset."""
        pass

    @property
    @abstractmethod
    def decimals(self) -> int:
        """Number of decimals of the smallest unit."""
        pass

    @abstractmethod
    def pull(self, sender: str, amount: int) -> bool:
        """Move ``amount`` from ``sender`` into the ledger's reserve."""
        pass

    @abstractmethod
    def push(self, recipient: str, amount: int) -> bool:
        """Move ``amount`` out of the ledger's reserve to ``recipient``."""
        pass


class PositionCustody(ABC):
    """Holder of the non-fungible claims that back positions."""

    @abstractmethod
    def owner_of(self, position_id: int) -> str:
        """Current holder of the position's claim."""
        pass

    @abstractmethod
    def get_position_info(self, position_id: int) -> PositionInfo:
        """Accrual record of the position."""
        pass

    @abstractmethod
    def invalidate(self, position_id: int) -> None:
        """Retire the claim so it can never back a settlement again."""
        pass


class PriceObserver(ABC):
    """Receiver of price-change notifications from the phase ledger."""

    @abstractmethod
    def on_price_changed(self, new_price: int) -> None:
        pass


class PriceSource(ABC):
    """Read accessor the accrual registry and settlement use for prices."""

    @abstractmethod
    def get_current_price(self) -> int:
        pass

    @abstractmethod
    def get_next_phase_base_price(self) -> int:
        pass
