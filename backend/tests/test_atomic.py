import threading

import pytest

from app.ledger.atomic import ExecutionGuard
from app.ledger.errors import PaymentFailed, ReentrantCall
from app.ledger.events import EventLog, PhaseAdvanced, PurchaseRecorded

from conftest import ALICE, NOW, make_engine, tokens, usd


class Counter:
    def __init__(self):
        self.value = 0

    def snapshot(self):
        return self.value

    def restore(self, state):
        self.value = state


@pytest.fixture
def guard():
    return ExecutionGuard(EventLog(clock=lambda: NOW))


def test_failure_restores_participants(guard):
    counter = Counter()
    guard.register(counter)

    with pytest.raises(ValueError):
        with guard.atomic("bump"):
            counter.value += 5
            raise ValueError("boom")

    assert counter.value == 0
    assert not guard.active


def test_success_keeps_changes(guard):
    counter = Counter()
    guard.register(counter)

    with guard.atomic("bump"):
        counter.value += 5

    assert counter.value == 5


def test_nested_entry_is_rejected(guard):
    counter = Counter()
    guard.register(counter)

    with pytest.raises(ReentrantCall):
        with guard.atomic("outer"):
            counter.value += 1
            with guard.atomic("inner"):
                counter.value += 1

    assert counter.value == 0


def test_participant_without_snapshot_rejected(guard):
    with pytest.raises(TypeError):
        guard.register(object())


def test_calls_from_other_threads_are_serialized(guard):
    counter = Counter()
    guard.register(counter)
    entered = threading.Event()
    release = threading.Event()
    seen = []

    def slow():
        with guard.atomic("slow"):
            entered.set()
            release.wait(timeout=5)
            counter.value += 1

    def fast():
        with guard.atomic("fast"):
            seen.append(counter.value)

    first = threading.Thread(target=slow)
    first.start()
    entered.wait(timeout=5)
    second = threading.Thread(target=fast)
    second.start()
    release.set()
    first.join(timeout=5)
    second.join(timeout=5)

    # the second call waited instead of being rejected as reentrant
    assert seen == [1]


def test_subscribers_see_only_committed_notifications():
    engine = make_engine()
    engine.assets.get("USDT").fund(ALICE, usd(600))
    seen = []
    engine.events.subscribe(seen.append)
    engine.activate_position(1, ALICE, usd(1_000_000))

    engine.purchase(ALICE, "USDT", usd(300), 1)
    with pytest.raises(PaymentFailed):
        engine.purchase(ALICE, "USDT", usd(30_000), 1)

    assert [type(r) for r in seen] == [PurchaseRecorded]
    assert [r.sequence for r in engine.events.since(0)] == [1]


def test_rolled_back_notifications_free_their_sequence_numbers():
    engine = make_engine()
    engine.assets.get("USDT").fund(ALICE, usd(10_000_000))
    engine.activate_position(1, ALICE, usd(10_000_000))

    with pytest.raises(PaymentFailed):
        engine.purchase(ALICE, "USDT", usd(20_000_000), 1)
    engine.purchase(ALICE, "USDT", usd(600_000), 1)

    records = engine.events.since(0)
    assert [r.sequence for r in records] == [1, 2, 3]
    assert isinstance(records[1], PhaseAdvanced)
    assert all(r.timestamp == NOW for r in records)


def test_broken_subscriber_does_not_undo_commit(caplog):
    engine = make_engine()
    engine.assets.get("USDT").fund(ALICE, usd(300))

    def broken(record):
        raise RuntimeError("reader offline")

    engine.events.subscribe(broken)
    engine.activate_position(1, ALICE, usd(1_000_000))

    with caplog.at_level("WARNING", logger="app.ledger.events"):
        receipt = engine.purchase(ALICE, "USDT", usd(300), 1)

    assert receipt.minted_amount == tokens(1000)
    assert engine.tokens.balance_of(ALICE) == tokens(1000)
    assert "subscriber failed" in caplog.text
