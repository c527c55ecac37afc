"""
Fungible asset collaborators and the registry of accepted payment assets.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, Optional

from app.core.constants import USD_DECIMALS
from app.ledger.base import AssetTransfer
from app.ledger.errors import UnknownAsset

logger = logging.getLogger(__name__)


class InMemoryAsset(AssetTransfer):
    """
    Account-based asset kept in process memory.

    Pulls move funds from a holder into the ledger's reserve; pushes pay out
    of that reserve. A transfer the balances cannot cover is rejected with
    False. ``on_transfer`` runs after every accepted transfer, which is where
    a token with transfer hooks would call back into the caller.
    """

    def __init__(self, symbol: str, decimals: int = USD_DECIMALS):
        self._symbol = symbol.upper()
        self._decimals = decimals
        self._balances: Dict[str, int] = defaultdict(int)
        self.reserve = 0
        self.on_transfer: Optional[Callable[[str, str, int], None]] = None

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def decimals(self) -> int:
        return self._decimals

    def balance_of(self, holder: str) -> int:
        return self._balances.get(holder, 0)

    def fund(self, holder: str, amount: int) -> None:
        self._balances[holder] += amount

    def fund_reserve(self, amount: int) -> None:
        self.reserve += amount

    def pull(self, sender: str, amount: int) -> bool:
        if amount < 0 or self._balances[sender] < amount:
            logger.warning(f"asset {self._symbol}: pull of {amount} from {sender} rejected")
            return False
        self._balances[sender] -= amount
        self.reserve += amount
        if self.on_transfer:
            self.on_transfer(sender, "reserve", amount)
        return True

    def push(self, recipient: str, amount: int) -> bool:
        if amount < 0 or self.reserve < amount:
            logger.warning(f"asset {self._symbol}: push of {amount} to {recipient} rejected")
            return False
        self.reserve -= amount
        self._balances[recipient] += amount
        if self.on_transfer:
            self.on_transfer("reserve", recipient, amount)
        return True

    def snapshot(self) -> tuple[Dict[str, int], int]:
        return dict(self._balances), self.reserve

    def restore(self, state: tuple[Dict[str, int], int]) -> None:
        balances, self.reserve = state
        self._balances = defaultdict(int, balances)


class AssetRegistry:
    """
    Registry of payment assets accepted by the purchase router.

    Usage:
        registry.register(InMemoryAsset("USDT", 18))
        asset = registry.get("usdt")
    """

    def __init__(self):
        self._assets: Dict[str, AssetTransfer] = {}

    def register(self, asset: AssetTransfer) -> None:
        if asset.decimals > USD_DECIMALS:
            raise ValueError(f"{asset.symbol} has more than {USD_DECIMALS} decimals")
        self._assets[asset.symbol.upper()] = asset

    def is_registered(self, symbol: str) -> bool:
        return symbol.upper() in self._assets

    def get(self, symbol: str) -> AssetTransfer:
        if not self.is_registered(symbol):
            raise UnknownAsset(f"asset {symbol} is not accepted")
        return self._assets[symbol.upper()]

    def get_supported_assets(self) -> list[str]:
        return list(self._assets)

    def all(self) -> list[AssetTransfer]:
        return list(self._assets.values())


def normalize_to_usd(asset: AssetTransfer, amount: int) -> int:
    """Scale an amount of a stable asset up to USD x 10^18."""
    return amount * 10 ** (USD_DECIMALS - asset.decimals)


def denormalize_from_usd(asset: AssetTransfer, amount: int) -> int:
    """Scale USD x 10^18 down to the asset's smallest unit, truncating."""
    return amount // 10 ** (USD_DECIMALS - asset.decimals)
