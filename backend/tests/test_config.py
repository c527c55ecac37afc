import pytest

from app.workers.tokenomics import _p, build_ladder, to_usd

from conftest import make_settings, tokens, usd


def test_default_ladder():
    ladder = build_ladder(make_settings(phase_count=10))
    assert len(ladder.phases) == 10
    assert ladder.phases[0].base_price == usd("0.30")
    assert ladder.phases[9].base_price == usd("0.48")
    assert ladder.volume_step == tokens(100_000)
    assert ladder.price_increment == usd("0.01")
    assert ladder.max_steps == 20


def test_decimal_prices_convert_exactly():
    assert _p("0.30") == 300_000_000_000_000_000
    assert _p("1") == 10**18
    assert to_usd(_p("0.32")) == pytest.approx(0.32)


def test_excess_precision_rejected():
    with pytest.raises(ValueError):
        _p("0.0000000000000000001")


def test_payment_assets_normalized_to_upper_case():
    settings = make_settings(payment_assets='{"usdt": 18, "Usdc": 6}')
    assert settings.payment_assets_map == {"USDT": 18, "USDC": 6}


@pytest.mark.parametrize(
    "overrides",
    [
        {"min_burn_pct": 90, "max_burn_pct": 10},
        {"max_burn_pct": 101},
        {"max_steps": 0},
        {"volume_step_tokens": 0},
        {"phase_count": 0},
        {"price_observer_errors": "ignore"},
        {"stable_asset_symbol": "DAI"},
        {"reserve_share_pct": 101},
    ],
)
def test_invalid_settings_rejected(overrides):
    with pytest.raises(ValueError):
        make_settings(**overrides)


def test_database_url_drops_sslmode():
    settings = make_settings(database_url="postgres://u:p@db:5432/ledger?sslmode=require&timeout=5")
    assert settings.cleaned_database_url == "postgres://u:p@db:5432/ledger?timeout=5"
    assert settings.tortoise_config["apps"]["models"]["models"] == ["app.models.ledger"]
