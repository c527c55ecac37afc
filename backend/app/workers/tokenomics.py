"""
Price ladder schedule derived from settings.

Each phase has a base price; within a phase the price climbs by
PRICE_INCREMENT for every VOLUME_STEP tokens sold, up to MAX_STEPS steps.

Fixed-point precision:
  prices are stored as USD x 10^18 per whole token.
    e.g. $0.30 -> 0.30 * 10^18 = 300_000_000_000_000_000
  volumes are stored in smallest token units (10^18 decimals).
    e.g. 100_000 tokens -> 100_000 * 10^18
"""

from dataclasses import dataclass
from decimal import Decimal

from app.core.config import Settings
from app.core.constants import PRICE_SCALE, TOKEN_DECIMALS


@dataclass(frozen=True, slots=True)
class PhaseConfig:
    index: int
    base_price: int     # USD x 10^18


@dataclass(frozen=True, slots=True)
class LadderConfig:
    phases: tuple[PhaseConfig, ...]
    volume_step: int        # tokens x 10^18
    price_increment: int    # USD x 10^18
    max_steps: int


def _p(usd: str) -> int:
    """Convert a USD decimal string (e.g. "0.30") to fixed point."""
    scaled = Decimal(usd) * PRICE_SCALE
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{usd} has more precision than the price scale supports")
    return int(scaled)


def _c(tokens: int) -> int:
    """Convert whole tokens to smallest units."""
    return tokens * TOKEN_DECIMALS


def build_ladder(config: Settings) -> LadderConfig:
    first = _p(config.first_phase_base_price_usd)
    growth = _p(config.phase_base_price_step_usd)
    phases = tuple(
        PhaseConfig(index=i, base_price=first + i * growth)
        for i in range(config.phase_count)
    )
    return LadderConfig(
        phases=phases,
        volume_step=_c(config.volume_step_tokens),
        price_increment=_p(config.price_increment_usd),
        max_steps=config.max_steps,
    )


def to_usd(amount: int) -> float:
    """Fixed-point USD to float, for display only."""
    return amount / PRICE_SCALE
