"""
Phased price ladder.

Owns the phase table and the active phase index. Price within a phase is a
pure function of the volume sold in it:

    current_price = base_price + min(sold_volume // volume_step, max_steps) * price_increment

A phase is completed once it reaches max_steps. Advancing re-seeds the next
phase at its own base price, which can sit below the price the previous phase
climbed to. That drop is part of the pricing model and is kept as is.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from app.ledger.base import PriceObserver, PriceSource
from app.ledger.errors import InvalidAmount, NoActivePhase, NoNextPhase
from app.ledger.events import LedgerEvent, PriceStepped
from app.ledger.latch import Latch
from app.workers.tokenomics import LadderConfig

logger = logging.getLogger(__name__)


@dataclass
class Phase:
    index: int
    base_price: int
    current_price: int
    sold_volume: int = 0
    completed: Latch = field(default_factory=Latch)


class PhasePriceLedger(PriceSource):
    """Phase table plus the volume-driven price within the active phase."""

    def __init__(
        self,
        ladder: LadderConfig,
        emit: Callable[[LedgerEvent], LedgerEvent],
        observer_errors: str = "propagate",
    ):
        self._volume_step = ladder.volume_step
        self._price_increment = ladder.price_increment
        self._max_steps = ladder.max_steps
        self._phases: List[Phase] = [
            Phase(index=p.index, base_price=p.base_price, current_price=p.base_price)
            for p in ladder.phases
        ]
        self._current_index = 0
        self._emit = emit
        self._observers: List[PriceObserver] = []
        self._observer_errors = observer_errors

    # --- Observers ---

    def add_observer(self, observer: PriceObserver) -> None:
        self._observers.append(observer)

    def _notify(self, new_price: int) -> None:
        for observer in self._observers:
            try:
                observer.on_price_changed(new_price)
            except Exception as e:
                if self._observer_errors == "propagate":
                    raise
                logger.warning(f"phase_ledger: price observer {observer!r} failed: {e}")

    # --- Reads ---

    @property
    def current_phase_index(self) -> int:
        return self._current_index

    @property
    def volume_step(self) -> int:
        return self._volume_step

    @property
    def price_increment(self) -> int:
        return self._price_increment

    @property
    def max_steps(self) -> int:
        return self._max_steps

    def _active(self) -> Phase:
        if not 0 <= self._current_index < len(self._phases):
            raise NoActivePhase(f"phase index {self._current_index} is out of range")
        return self._phases[self._current_index]

    def phases(self) -> List[Phase]:
        return [copy.deepcopy(p) for p in self._phases]

    def get_phase(self, index: int) -> Phase:
        if not 0 <= index < len(self._phases):
            raise NoActivePhase(f"phase index {index} is out of range")
        return copy.deepcopy(self._phases[index])

    def price_for_volume(self, base_price: int, sold_volume: int) -> int:
        steps = min(sold_volume // self._volume_step, self._max_steps)
        return base_price + steps * self._price_increment

    def get_current_price(self) -> int:
        return self._active().current_price

    def get_next_phase_base_price(self) -> int:
        next_index = self._active().index + 1
        if next_index >= len(self._phases):
            raise NoNextPhase(f"phase {self._current_index} is the last phase")
        return self._phases[next_index].base_price

    def has_next_phase(self) -> bool:
        return self._current_index + 1 < len(self._phases)

    def is_current_phase_completed(self) -> bool:
        return self._active().completed.is_set

    # --- Writes ---

    def report_sold(self, amount: int) -> bool:
        """
        Add sold volume to the active phase.

        Returns whether the active phase is completed afterwards.
        """
        if amount < 0:
            raise InvalidAmount("sold volume cannot be negative")
        phase = self._active()
        phase.sold_volume += amount

        steps = min(phase.sold_volume // self._volume_step, self._max_steps)
        if steps == self._max_steps and phase.completed.set_once():
            logger.info(f"phase_ledger: phase {phase.index} completed at volume {phase.sold_volume}")

        new_price = phase.base_price + steps * self._price_increment
        if new_price != phase.current_price:
            old_price = phase.current_price
            phase.current_price = new_price
            logger.info(f"phase_ledger: phase {phase.index} price {old_price} -> {new_price} (steps={steps})")
            self._emit(
                PriceStepped(
                    phase_index=phase.index,
                    old_price=old_price,
                    new_price=new_price,
                    sold_volume=phase.sold_volume,
                    completed=phase.completed.is_set,
                )
            )
            self._notify(new_price)

        return phase.completed.is_set

    def advance_phase(self) -> bool:
        """
        Move to the next phase once the active one is completed.

        Returns False without touching state when the active phase is still
        open or when the ladder has no further phase.
        """
        phase = self._active()
        if not phase.completed.is_set or not self.has_next_phase():
            return False

        self._current_index += 1
        nxt = self._phases[self._current_index]
        nxt.current_price = nxt.base_price
        logger.info(
            f"phase_ledger: advanced to phase {nxt.index} at base price {nxt.base_price} "
            f"(previous phase closed at {phase.current_price})"
        )
        self._notify(nxt.base_price)
        return True

    # --- Rollback ---

    def snapshot(self) -> tuple[int, List[Phase]]:
        return self._current_index, copy.deepcopy(self._phases)

    def restore(self, state: tuple[int, List[Phase]]) -> None:
        self._current_index, phases = state
        self._phases = copy.deepcopy(phases)


def next_price_or_none(ledger: PhasePriceLedger) -> Optional[int]:
    if not ledger.has_next_phase():
        return None
    return ledger.get_next_phase_base_price()
