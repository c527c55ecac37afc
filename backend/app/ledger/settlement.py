"""
Settlement burn.

A releasing position is settled once by its holder: a chosen percentage of
its total allocation is burned and valued at the next phase's base price,
the rest becomes liquid, the stable value of the burned part is paid to the
treasury, and the position's claim is retired.
"""

import logging
from dataclasses import dataclass
from typing import Callable

from app.core.constants import PERCENT_DENOMINATOR, PRICE_SCALE, ZERO_ADDRESS
from app.ledger.assets import denormalize_from_usd
from app.ledger.base import AssetTransfer, PositionCustody, PriceSource
from app.ledger.errors import (
    AlreadySettled,
    InsufficientBalance,
    InvalidBurnPercent,
    NotActivated,
    NotPositionHolder,
    NotReleasing,
    SettlementPayoutFailed,
    ZeroAddress,
)
from app.ledger.events import LedgerEvent, SettlementRecorded
from app.ledger.latch import LatchSet
from app.ledger.token import TokenLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementQuote:
    position_id: int
    burn_percent: int
    total_allocation: int
    burn_amount: int
    release_amount: int
    next_price: int
    stable_amount: int


class SettlementBurn:
    """Owns the burned-position bitmap; reads positions and prices through accessors."""

    def __init__(
        self,
        custody: PositionCustody,
        prices: PriceSource,
        tokens: TokenLedger,
        stable_asset: AssetTransfer,
        treasury_address: str,
        emit: Callable[[LedgerEvent], LedgerEvent],
        min_burn_pct: int = 15,
        max_burn_pct: int = 85,
    ):
        if not treasury_address or treasury_address == ZERO_ADDRESS:
            raise ZeroAddress("treasury address must not be the zero address")
        self._custody = custody
        self._prices = prices
        self._tokens = tokens
        self._stable = stable_asset
        self._treasury = treasury_address
        self._emit = emit
        self.min_burn_pct = min_burn_pct
        self.max_burn_pct = max_burn_pct
        self._burned = LatchSet()
        self.total_stable_paid = 0

    @property
    def stable_symbol(self) -> str:
        return self._stable.symbol

    def is_settled(self, position_id: int) -> bool:
        return position_id in self._burned

    @property
    def settled_count(self) -> int:
        return len(self._burned)

    def _check_percent(self, burn_percent: int) -> None:
        if not self.min_burn_pct <= burn_percent <= self.max_burn_pct:
            raise InvalidBurnPercent(
                f"burn percent {burn_percent} outside [{self.min_burn_pct}, {self.max_burn_pct}]"
            )

    def quote(self, position_id: int, burn_percent: int) -> SettlementQuote:
        self._check_percent(burn_percent)
        if self.is_settled(position_id):
            raise AlreadySettled(f"position {position_id} is already settled")
        info = self._custody.get_position_info(position_id)
        if not info.activated:
            raise NotActivated(f"position {position_id} is not activated")
        if not info.releasing:
            raise NotReleasing(f"position {position_id} has not reached its cap")

        total = info.total_allocation
        burn_amount = total * burn_percent // PERCENT_DENOMINATOR
        next_price = self._prices.get_next_phase_base_price()
        stable_usd = burn_amount * next_price // PRICE_SCALE
        return SettlementQuote(
            position_id=position_id,
            burn_percent=burn_percent,
            total_allocation=total,
            burn_amount=burn_amount,
            release_amount=total - burn_amount,
            next_price=next_price,
            stable_amount=denormalize_from_usd(self._stable, stable_usd),
        )

    def settle(self, caller: str, position_id: int, burn_percent: int) -> SettlementQuote:
        self._check_percent(burn_percent)
        if not caller or caller == ZERO_ADDRESS:
            raise ZeroAddress("caller must not be the zero address")
        if self.is_settled(position_id):
            raise AlreadySettled(f"position {position_id} is already settled")
        if self._custody.owner_of(position_id) != caller:
            raise NotPositionHolder(f"{caller} does not hold position {position_id}")

        quote = self.quote(position_id, burn_percent)
        balance = self._tokens.balance_of(caller)
        if balance < quote.total_allocation:
            raise InsufficientBalance(
                f"{caller} holds {balance}, position {position_id} needs {quote.total_allocation}"
            )

        self._tokens.burn(caller, quote.burn_amount)
        self._tokens.release(caller, quote.release_amount)
        if not self._stable.push(self._treasury, quote.stable_amount):
            raise SettlementPayoutFailed(
                f"could not pay {quote.stable_amount} {self._stable.symbol} for position {position_id}"
            )
        self.total_stable_paid += quote.stable_amount

        self._burned.set_once(position_id)
        self._custody.invalidate(position_id)

        self._emit(
            SettlementRecorded(
                position_id=position_id,
                holder=caller,
                burn_percent=burn_percent,
                burned_amount=quote.burn_amount,
                released_amount=quote.release_amount,
                stable_amount=quote.stable_amount,
                price=quote.next_price,
            )
        )
        logger.info(
            f"settlement: position {position_id} burned {quote.burn_amount} released "
            f"{quote.release_amount} paid {quote.stable_amount} at {quote.next_price}"
        )
        return quote

    def snapshot(self) -> tuple:
        return self._burned.snapshot(), self.total_stable_paid

    def restore(self, state: tuple) -> None:
        burned, self.total_stable_paid = state
        self._burned.restore(burned)
