"""
Sale-token balances.

A holder's balance has two views on the same account: the full balance, which
backs any position the holder owns, and the liquid part of it that may be
transferred. Minted allocations start illiquid; settlement releases the
unburned remainder into the liquid part.
"""

import logging
from collections import defaultdict
from typing import Dict

from app.core.constants import ZERO_ADDRESS
from app.ledger.errors import InsufficientBalance, InvalidAmount, ZeroAddress

logger = logging.getLogger(__name__)


class TokenLedger:
    def __init__(self, symbol: str = "TOKEN"):
        self.symbol = symbol
        self._balances: Dict[str, int] = defaultdict(int)
        self._liquid: Dict[str, int] = defaultdict(int)
        self.total_supply = 0
        self.total_burned = 0

    @staticmethod
    def _check(address: str, amount: int) -> None:
        if not address or address == ZERO_ADDRESS:
            raise ZeroAddress("address must not be the zero address")
        if amount < 0:
            raise InvalidAmount("amount cannot be negative")

    def balance_of(self, holder: str) -> int:
        return self._balances.get(holder, 0)

    def liquid_of(self, holder: str) -> int:
        return self._liquid.get(holder, 0)

    def mint(self, to: str, amount: int) -> None:
        self._check(to, amount)
        self._balances[to] += amount
        self.total_supply += amount

    def burn(self, holder: str, amount: int) -> None:
        self._check(holder, amount)
        if self._balances[holder] < amount:
            raise InsufficientBalance(f"{holder} holds {self._balances[holder]}, cannot burn {amount}")
        self._balances[holder] -= amount
        self._liquid[holder] = min(self._liquid[holder], self._balances[holder])
        self.total_supply -= amount
        self.total_burned += amount

    def release(self, holder: str, amount: int) -> None:
        """Make ``amount`` of the holder's balance freely transferable."""
        self._check(holder, amount)
        # liquid never exceeds the balance it is part of
        self._liquid[holder] = min(self._liquid[holder] + amount, self._balances[holder])

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        self._check(sender, amount)
        self._check(recipient, amount)
        if self._liquid[sender] < amount:
            raise InsufficientBalance(f"{sender} has {self._liquid[sender]} liquid, cannot send {amount}")
        self._balances[sender] -= amount
        self._liquid[sender] -= amount
        self._balances[recipient] += amount
        self._liquid[recipient] += amount
        logger.info(f"token: transfer {amount} {sender} -> {recipient}")

    def snapshot(self) -> tuple:
        return dict(self._balances), dict(self._liquid), self.total_supply, self.total_burned

    def restore(self, state: tuple) -> None:
        balances, liquid, self.total_supply, self.total_burned = state
        self._balances = defaultdict(int, balances)
        self._liquid = defaultdict(int, liquid)
