"""
Presale engine: the caller-visible entry points over the ledger components.

Every mutating method runs as one atomic unit through ExecutionGuard, so a
failure anywhere inside it (including a rejected asset transfer or a failing
price observer) leaves every component exactly as it was before the call.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from app.core.config import Settings
from app.ledger.accrual import ValueAccrualRegistry
from app.ledger.assets import AssetRegistry, InMemoryAsset
from app.ledger.atomic import ExecutionGuard, entry_point
from app.ledger.base import AllocationKind, AssetTransfer, PositionInfo, PriceObserver
from app.ledger.custody import InMemoryPositionCustody
from app.core.constants import ZERO_ADDRESS
from app.ledger.errors import InvalidAmount, UnknownAsset, ZeroAddress
from app.ledger.events import EventLog
from app.ledger.phases import PhasePriceLedger
from app.ledger.purchase import PurchaseQuote, PurchaseReceipt, PurchaseRouter
from app.ledger.settlement import SettlementBurn, SettlementQuote
from app.ledger.token import TokenLedger
from app.workers.tokenomics import build_ladder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineStats:
    total_sold: int
    total_supply: int
    total_burned: int
    total_stable_paid: int
    settled_positions: int
    cycle: int
    phase_index: int
    current_price: int


class PresaleEngine:
    def __init__(
        self,
        config: Settings,
        assets: Optional[Iterable[AssetTransfer]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.events = EventLog(clock=clock)
        self.guard = ExecutionGuard(self.events)

        self.assets = AssetRegistry()
        if assets is None:
            assets = [InMemoryAsset(symbol, decimals) for symbol, decimals in config.payment_assets_map.items()]
        for asset in assets:
            self.assets.register(asset)

        self.phases = PhasePriceLedger(
            build_ladder(config),
            emit=self.events.append,
            observer_errors=config.price_observer_errors,
        )
        self.registry = ValueAccrualRegistry(self.phases, emit=self.events.append, clock=clock)
        self.tokens = TokenLedger()
        self.custody = InMemoryPositionCustody(self.registry)
        self.router = PurchaseRouter(
            self.phases,
            self.registry,
            self.tokens,
            self.assets,
            treasury_address=config.treasury_address,
            emit=self.events.append,
            reserve_share_pct=config.reserve_share_pct,
        )
        self.settlement = SettlementBurn(
            self.custody,
            self.phases,
            self.tokens,
            self.assets.get(config.stable_asset_symbol),
            treasury_address=config.treasury_address,
            emit=self.events.append,
            min_burn_pct=config.min_burn_pct,
            max_burn_pct=config.max_burn_pct,
        )
        self.phases.add_observer(self.router)

        for participant in (self.phases, self.registry, self.tokens, self.custody, self.router, self.settlement):
            self.guard.register(participant)
        for asset in self.assets.all():
            if hasattr(asset, "snapshot") and hasattr(asset, "restore"):
                self.guard.register(asset)

    def add_price_observer(self, observer: PriceObserver) -> None:
        """Subscribe an external receiver (e.g. the airdrop service) to price changes."""
        self.phases.add_observer(observer)

    # --- Reads ---

    def get_position(self, position_id: int) -> PositionInfo:
        return self.registry.get_info(position_id)

    def quote_purchase(self, asset: str, amount: int) -> PurchaseQuote:
        return self.router.quote(asset, amount)

    def quote_settlement(self, position_id: int, burn_percent: int) -> SettlementQuote:
        return self.settlement.quote(position_id, burn_percent)

    def stats(self) -> EngineStats:
        return EngineStats(
            total_sold=self.router.total_sold,
            total_supply=self.tokens.total_supply,
            total_burned=self.tokens.total_burned,
            total_stable_paid=self.settlement.total_stable_paid,
            settled_positions=self.settlement.settled_count,
            cycle=self.router.cycle,
            phase_index=self.phases.current_phase_index,
            current_price=self.phases.get_current_price(),
        )

    # --- Entry points ---

    @entry_point
    def activate_position(self, position_id: int, holder: str, cap_usd: int, initial_allocation: int = 0) -> PositionInfo:
        """Issue the position's claim to ``holder`` and open its accrual record."""
        self.registry.check_activation(position_id, cap_usd, initial_allocation)
        self.custody.issue(position_id, holder)
        info = self.registry.activate(position_id, cap_usd, initial_allocation)
        if initial_allocation:
            self.tokens.mint(holder, initial_allocation)
        return info

    @entry_point
    def purchase(self, buyer: str, asset: str, amount: int, position_id: int) -> PurchaseReceipt:
        return self.router.purchase(buyer, asset, amount, position_id)

    def _credit(self, position_id: int, amount: int, kind: AllocationKind) -> PositionInfo:
        if amount <= 0:
            raise InvalidAmount("allocation amount must be positive")
        holder = self.custody.owner_of(position_id)
        info = self.registry.record_allocation(position_id, amount, kind)
        self.tokens.mint(holder, amount)
        logger.info(f"engine: credited {kind.value} {amount} to position {position_id}")
        return info

    @entry_point
    def credit_reward(self, position_id: int, amount: int) -> PositionInfo:
        return self._credit(position_id, amount, AllocationKind.REWARDED)

    @entry_point
    def credit_airdrop(self, position_id: int, amount: int) -> PositionInfo:
        return self._credit(position_id, amount, AllocationKind.AIRDROPPED)

    @entry_point
    def refresh_release(self, position_id: int) -> bool:
        return self.registry.refresh_release(position_id)

    @entry_point
    def advance_phase(self) -> bool:
        """Advance a completed phase that a purchase did not advance itself."""
        return self.router.advance_phase()

    @entry_point
    def settle(self, caller: str, position_id: int, burn_percent: int) -> SettlementQuote:
        return self.settlement.settle(caller, position_id, burn_percent)

    @entry_point
    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        self.tokens.transfer(sender, recipient, amount)

    @entry_point
    def transfer_position(self, position_id: int, sender: str, recipient: str) -> None:
        self.custody.transfer_claim(position_id, sender, recipient)

    # --- Payment asset funding ---

    def _fundable(self, symbol: str, amount: int) -> InMemoryAsset:
        if amount <= 0:
            raise InvalidAmount("funding amount must be positive")
        asset = self.assets.get(symbol)
        if not isinstance(asset, InMemoryAsset):
            raise UnknownAsset(f"{asset.symbol} is held outside the ledger and cannot be funded here")
        return asset

    @entry_point
    def deposit(self, symbol: str, holder: str, amount: int) -> int:
        """Credit a wallet's payment-asset balance. Returns the new balance."""
        if not holder or holder == ZERO_ADDRESS:
            raise ZeroAddress("deposit holder must not be the zero address")
        asset = self._fundable(symbol, amount)
        asset.fund(holder, amount)
        logger.info(f"engine: deposited {amount} {asset.symbol} to {holder}")
        return asset.balance_of(holder)

    @entry_point
    def fund_reserve(self, symbol: str, amount: int) -> int:
        """Top up the reserve settlement payouts are paid from. Returns the new reserve."""
        asset = self._fundable(symbol, amount)
        asset.fund_reserve(amount)
        logger.info(f"engine: reserve of {asset.symbol} funded with {amount}")
        return asset.reserve


def build_engine(config: Settings) -> PresaleEngine:
    engine = PresaleEngine(config)
    logger.info(
        f"engine: ladder of {config.phase_count} phases, "
        f"assets={engine.assets.get_supported_assets()}, stable={config.stable_asset_symbol}"
    )
    return engine
