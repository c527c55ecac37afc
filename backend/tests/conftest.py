from decimal import Decimal

import pytest

from app.core.config import Settings
from app.core.constants import PRICE_SCALE, TOKEN_DECIMALS
from app.ledger.engine import PresaleEngine

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
TREASURY = "0x" + "7e" * 20

NOW = 1_700_000_000.0


def usd(value: float | int | str) -> int:
    """Whole or fractional USD to fixed point, exact for decimal strings."""
    return int(Decimal(str(value)) * PRICE_SCALE)


def tokens(value: int) -> int:
    return value * TOKEN_DECIMALS


def make_settings(**overrides) -> Settings:
    values = {
        "phase_count": 3,
        "first_phase_base_price_usd": "0.30",
        "phase_base_price_step_usd": "0.02",
        "price_increment_usd": "0.01",
        "volume_step_tokens": 100_000,
        "max_steps": 20,
        "min_burn_pct": 15,
        "max_burn_pct": 85,
        "treasury_address": TREASURY,
        "payment_assets": '{"USDT": 18, "USDC": 6}',
        "stable_asset_symbol": "USDT",
        "price_observer_errors": "propagate",
        "indexer_enabled": False,
    }
    values.update(overrides)
    return Settings(**values)


def make_engine(**overrides) -> PresaleEngine:
    return PresaleEngine(make_settings(**overrides), clock=lambda: NOW)


@pytest.fixture
def engine() -> PresaleEngine:
    return make_engine()


@pytest.fixture
def usdt(engine):
    asset = engine.assets.get("USDT")
    asset.fund(ALICE, usd(10_000_000))
    asset.fund(BOB, usd(10_000_000))
    return asset
