"""
Purchase router.

Turns a stable-asset payment into sale tokens at the ladder's current price:

1. Validate the payment and the target position (activated, not releasing)
2. mint_amount = usd_amount * PRICE_SCALE // current_price (truncated)
3. Pull the payment from the buyer, before anything is minted
4. Mint, record the purchased allocation, keep the reserve share of the
   payment for settlement payouts, forward the rest to the treasury and
   report the sold volume to the phase ledger
5. Advance the phase when the volume completed it, bumping the cycle counter
6. Emit the purchase notification with the price actually used
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from app.core.constants import PERCENT_DENOMINATOR, PRICE_SCALE, ZERO_ADDRESS
from app.ledger.accrual import ValueAccrualRegistry
from app.ledger.assets import AssetRegistry, normalize_to_usd
from app.ledger.base import AllocationKind, PriceObserver
from app.ledger.errors import (
    InvalidAmount,
    NotActivated,
    PaymentFailed,
    PositionReleasing,
    ZeroAddress,
)
from app.ledger.events import LedgerEvent, PhaseAdvanced, PurchaseRecorded
from app.ledger.phases import PhasePriceLedger
from app.ledger.token import TokenLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseQuote:
    asset: str
    paid_amount: int
    usd_amount: int
    minted_amount: int
    price: int


@dataclass(frozen=True)
class PurchaseReceipt:
    buyer: str
    asset: str
    position_id: int
    paid_amount: int
    minted_amount: int
    price: int
    phase_index: int
    cycle: int
    phase_advanced: bool


class PurchaseRouter(PriceObserver):
    def __init__(
        self,
        phases: PhasePriceLedger,
        registry: ValueAccrualRegistry,
        tokens: TokenLedger,
        assets: AssetRegistry,
        treasury_address: str,
        emit: Callable[[LedgerEvent], LedgerEvent],
        reserve_share_pct: int = 0,
    ):
        self._phases = phases
        self._registry = registry
        self._tokens = tokens
        self._assets = assets
        self._treasury = treasury_address
        self._reserve_share_pct = reserve_share_pct
        self._emit = emit
        self.cycle = 0
        self.total_sold = 0
        self.last_notified_price: Optional[int] = None

    def on_price_changed(self, new_price: int) -> None:
        self.last_notified_price = new_price

    def quote(self, asset_symbol: str, pay_amount: int) -> PurchaseQuote:
        if pay_amount <= 0:
            raise InvalidAmount("payment amount must be positive")
        asset = self._assets.get(asset_symbol)
        usd_amount = normalize_to_usd(asset, pay_amount)
        price = self._phases.get_current_price()
        return PurchaseQuote(
            asset=asset.symbol,
            paid_amount=pay_amount,
            usd_amount=usd_amount,
            minted_amount=usd_amount * PRICE_SCALE // price,
            price=price,
        )

    def purchase(self, buyer: str, asset_symbol: str, pay_amount: int, position_id: int) -> PurchaseReceipt:
        if not buyer or buyer == ZERO_ADDRESS:
            raise ZeroAddress("buyer must not be the zero address")
        quote = self.quote(asset_symbol, pay_amount)
        if quote.minted_amount == 0:
            raise InvalidAmount(f"payment of {pay_amount} buys nothing at price {quote.price}")

        info = self._registry.get_info(position_id)
        if not info.activated:
            raise NotActivated(f"position {position_id} is not activated")
        if info.releasing:
            raise PositionReleasing(f"position {position_id} is releasing and takes no purchases")

        asset = self._assets.get(asset_symbol)
        if not asset.pull(buyer, pay_amount):
            raise PaymentFailed(f"could not pull {pay_amount} {asset.symbol} from {buyer}")

        self._tokens.mint(buyer, quote.minted_amount)
        # valued at the price paid; the volume step below applies afterwards
        self._registry.record_allocation(position_id, quote.minted_amount, AllocationKind.PURCHASED)
        forwarded = pay_amount - pay_amount * self._reserve_share_pct // PERCENT_DENOMINATOR
        if forwarded and not asset.push(self._treasury, forwarded):
            raise PaymentFailed(f"could not forward {forwarded} {asset.symbol} to treasury")

        completed = self._phases.report_sold(quote.minted_amount)
        self.total_sold += quote.minted_amount

        advanced = completed and self.advance_phase()

        self._emit(
            PurchaseRecorded(
                buyer=buyer,
                asset=asset.symbol,
                position_id=position_id,
                paid_amount=pay_amount,
                minted_amount=quote.minted_amount,
                price=quote.price,
            )
        )
        logger.info(
            f"purchase: {buyer} paid {pay_amount} {asset.symbol} for {quote.minted_amount} "
            f"at {quote.price} into position {position_id}"
        )
        return PurchaseReceipt(
            buyer=buyer,
            asset=asset.symbol,
            position_id=position_id,
            paid_amount=pay_amount,
            minted_amount=quote.minted_amount,
            price=quote.price,
            phase_index=self._phases.current_phase_index,
            cycle=self.cycle,
            phase_advanced=advanced,
        )

    def advance_phase(self) -> bool:
        """Advance a completed phase and open the next sale cycle."""
        if not self._phases.advance_phase():
            return False
        self.cycle += 1
        phase_index = self._phases.current_phase_index
        base_price = self._phases.get_current_price()
        logger.info(f"purchase: cycle {self.cycle} opened phase {phase_index} at {base_price}")
        self._emit(PhaseAdvanced(cycle=self.cycle, phase_index=phase_index, base_price=base_price))
        return True

    def snapshot(self) -> tuple:
        return self.cycle, self.total_sold, self.last_notified_price

    def restore(self, state: tuple) -> None:
        self.cycle, self.total_sold, self.last_notified_price = state
