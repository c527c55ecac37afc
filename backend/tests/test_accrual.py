import pytest

from app.ledger.accrual import ValueAccrualRegistry
from app.ledger.base import AllocationKind, PriceSource
from app.ledger.errors import (
    AlreadyActivated,
    AlreadyReleasing,
    InvalidAmount,
    NotActivated,
    UnknownPosition,
)
from app.ledger.events import EventLog, PositionReleased

from conftest import ALICE, BOB, NOW, make_engine, tokens, usd


class FixedPrice(PriceSource):
    def __init__(self, price: int):
        self.price = price

    def get_current_price(self) -> int:
        return self.price

    def get_next_phase_base_price(self) -> int:
        return self.price


@pytest.fixture
def price():
    return FixedPrice(usd("0.30"))


@pytest.fixture
def log():
    return EventLog(clock=lambda: NOW)


@pytest.fixture
def registry(price, log):
    return ValueAccrualRegistry(price, emit=log.append, clock=lambda: NOW)


def test_activate_records_cap_and_initial_purchase(registry):
    info = registry.activate(1, usd(1000), tokens(2000))

    assert info.activated
    assert info.activation_time == NOW
    assert info.cap_usd == usd(1000)
    assert info.purchased == tokens(2000)
    assert info.total_allocation == tokens(2000)
    assert not info.releasing


def test_activate_twice_fails(registry):
    registry.activate(1, usd(1000))
    with pytest.raises(AlreadyActivated):
        registry.activate(1, usd(5000))
    assert registry.get_info(1).cap_usd == usd(1000)


def test_unknown_position_reads_as_inactive(registry):
    info = registry.get_info(42)
    assert not info.activated
    assert info.total_allocation == 0


def test_negative_position_id_rejected(registry):
    with pytest.raises(UnknownPosition):
        registry.get_info(-1)


def test_allocation_requires_activation(registry):
    with pytest.raises(NotActivated):
        registry.record_allocation(9, tokens(1), AllocationKind.REWARDED)


def test_allocation_amount_must_be_positive(registry):
    registry.activate(1, usd(1000))
    with pytest.raises(InvalidAmount):
        registry.record_allocation(1, 0, AllocationKind.AIRDROPPED)


def test_allocations_go_to_matching_accumulator(registry):
    registry.activate(1, usd(1_000_000))
    registry.record_allocation(1, tokens(10), AllocationKind.REWARDED)
    registry.record_allocation(1, tokens(20), AllocationKind.AIRDROPPED)
    registry.record_allocation(1, tokens(30), AllocationKind.PURCHASED)

    info = registry.get_info(1)
    assert (info.purchased, info.rewarded, info.airdropped) == (tokens(30), tokens(10), tokens(20))
    assert info.total_allocation == tokens(60)


def test_release_uses_price_at_evaluation_time(registry, price, log):
    registry.activate(1, usd(1000), tokens(2000))
    assert not registry.get_info(1).releasing  # 2000 x 0.30 = 600

    price.price = usd("0.50")
    info = registry.record_allocation(1, 1, AllocationKind.REWARDED)
    assert info.releasing

    log.publish()
    released = [r for r in log.since(0) if isinstance(r, PositionReleased)]
    assert len(released) == 1
    assert released[0].price == usd("0.50")


def test_release_at_exact_cap(registry, price):
    price.price = usd("0.50")
    info = registry.activate(1, usd(1000), tokens(2000))
    assert info.releasing
    assert registry.usd_value(1) == usd(1000)


def test_release_never_reverts_and_freezes_accrual(registry, price):
    price.price = usd("0.50")
    registry.activate(1, usd(1000), tokens(2000))

    price.price = usd("0.10")
    assert registry.get_info(1).releasing
    assert registry.refresh_release(1) is True
    with pytest.raises(AlreadyReleasing):
        registry.record_allocation(1, tokens(1), AllocationKind.AIRDROPPED)
    assert registry.get_info(1).total_allocation == tokens(2000)


def test_refresh_release_after_price_rise(registry, price):
    registry.activate(1, usd(1000), tokens(2000))
    assert registry.refresh_release(1) is False

    price.price = usd("0.55")
    assert registry.refresh_release(1) is True
    assert registry.get_info(1).releasing


def test_refresh_release_requires_activation(registry):
    with pytest.raises(NotActivated):
        registry.refresh_release(3)


def test_activation_amounts_checked_before_claim_is_issued():
    engine = make_engine()
    engine.activate_position(1, ALICE, usd(1000))

    # a bad cap is a validation error even though the claim already exists
    with pytest.raises(InvalidAmount):
        engine.activate_position(1, BOB, 0)
    with pytest.raises(InvalidAmount):
        engine.activate_position(2, BOB, usd(1000), -1)

    assert engine.custody.owner_of(1) == ALICE
    with pytest.raises(UnknownPosition):
        engine.custody.owner_of(2)
