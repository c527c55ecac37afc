import random

import pytest

from app.ledger.base import PriceObserver
from app.ledger.errors import InvalidAmount, NoNextPhase
from app.ledger.events import EventLog, PriceStepped
from app.ledger.phases import PhasePriceLedger
from app.workers.tokenomics import build_ladder

from conftest import make_settings, tokens, usd


class RecordingObserver(PriceObserver):
    def __init__(self):
        self.prices = []

    def on_price_changed(self, new_price: int) -> None:
        self.prices.append(new_price)


class FailingObserver(PriceObserver):
    def on_price_changed(self, new_price: int) -> None:
        raise RuntimeError("airdrop service unavailable")


def make_ledger(**overrides) -> tuple[PhasePriceLedger, EventLog]:
    log = EventLog(clock=lambda: 0.0)
    ladder = build_ladder(make_settings(**overrides))
    observer_errors = overrides.get("price_observer_errors", "propagate")
    return PhasePriceLedger(ladder, emit=log.append, observer_errors=observer_errors), log


def test_price_steps_with_volume():
    ledger, _ = make_ledger()
    assert ledger.get_current_price() == usd("0.30")

    assert ledger.report_sold(tokens(250_000)) is False
    assert ledger.get_current_price() == usd("0.32")

    assert ledger.report_sold(tokens(1_750_000)) is True
    assert ledger.get_current_price() == usd("0.50")
    assert ledger.is_current_phase_completed()


def test_price_is_clamped_at_max_steps_and_completion_is_idempotent():
    ledger, log = make_ledger()
    ledger.report_sold(tokens(2_000_000))
    events_before = len(log)

    assert ledger.report_sold(tokens(5_000_000)) is True
    assert ledger.get_current_price() == usd("0.50")
    assert ledger.get_phase(0).sold_volume == tokens(7_000_000)
    assert len(log) == events_before


def test_price_matches_formula_for_any_split_of_volume():
    ledger, _ = make_ledger()
    rng = random.Random(7)
    sold = 0
    last_price = ledger.get_current_price()
    for _ in range(200):
        amount = rng.randrange(0, tokens(40_000))
        ledger.report_sold(amount)
        sold += amount
        expected = usd("0.30") + min(sold // tokens(100_000), 20) * usd("0.01")
        assert ledger.get_current_price() == expected
        assert ledger.get_current_price() >= last_price
        last_price = ledger.get_current_price()


def test_price_step_emits_notification():
    ledger, log = make_ledger()
    ledger.report_sold(tokens(100_000))
    ledger.report_sold(tokens(1))

    records = log.since(0)
    # nothing published yet: publishing is the execution guard's job
    assert records == []
    log.publish()
    records = log.since(0)
    assert len(records) == 1
    assert isinstance(records[0], PriceStepped)
    assert records[0].old_price == usd("0.30")
    assert records[0].new_price == usd("0.31")
    assert records[0].completed is False


def test_negative_volume_rejected():
    ledger, _ = make_ledger()
    with pytest.raises(InvalidAmount):
        ledger.report_sold(-1)


def test_advance_requires_completed_phase():
    ledger, _ = make_ledger()
    ledger.report_sold(tokens(1_999_999))

    assert ledger.advance_phase() is False
    assert ledger.current_phase_index == 0
    assert ledger.get_current_price() == usd("0.49")


def test_advance_resets_to_lower_base_price():
    ledger, _ = make_ledger()
    ledger.report_sold(tokens(2_000_000))
    assert ledger.get_current_price() == usd("0.50")

    assert ledger.advance_phase() is True
    assert ledger.current_phase_index == 1
    # next base (0.32) sits below the 0.50 the previous phase reached
    assert ledger.get_current_price() == usd("0.32")
    assert ledger.get_phase(0).completed.is_set
    assert not ledger.is_current_phase_completed()


def test_advance_at_end_of_ladder_is_noop():
    ledger, _ = make_ledger(phase_count=2)
    ledger.report_sold(tokens(2_000_000))
    assert ledger.advance_phase() is True
    ledger.report_sold(tokens(2_000_000))

    assert ledger.advance_phase() is False
    assert ledger.current_phase_index == 1
    assert ledger.get_current_price() == usd("0.52")
    with pytest.raises(NoNextPhase):
        ledger.get_next_phase_base_price()


def test_next_phase_base_price():
    ledger, _ = make_ledger()
    assert ledger.get_next_phase_base_price() == usd("0.32")


def test_observers_receive_step_and_advance_prices():
    ledger, _ = make_ledger()
    observer = RecordingObserver()
    ledger.add_observer(observer)

    ledger.report_sold(tokens(100_000))
    ledger.report_sold(tokens(50_000))
    ledger.report_sold(tokens(1_850_000))
    ledger.advance_phase()

    assert observer.prices == [usd("0.31"), usd("0.50"), usd("0.32")]


def test_failing_observer_propagates_by_default():
    ledger, _ = make_ledger()
    ledger.add_observer(FailingObserver())
    with pytest.raises(RuntimeError):
        ledger.report_sold(tokens(100_000))


def test_failing_observer_can_be_logged_instead():
    ledger, _ = make_ledger(price_observer_errors="log")
    ledger.add_observer(FailingObserver())
    ledger.report_sold(tokens(100_000))
    assert ledger.get_current_price() == usd("0.31")


def test_snapshot_restore_round_trip():
    ledger, _ = make_ledger()
    state = ledger.snapshot()
    ledger.report_sold(tokens(2_000_000))
    ledger.advance_phase()

    ledger.restore(state)
    assert ledger.current_phase_index == 0
    assert ledger.get_current_price() == usd("0.30")
    assert not ledger.is_current_phase_completed()
