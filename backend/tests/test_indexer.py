import asyncio

from tortoise import Tortoise, connections

from app.models.ledger import EventKind, IndexerCursor, LedgerEventRecord
from app.workers.indexer import index_pending

from conftest import ALICE, make_engine, tokens, usd


def run_with_db(test):
    async def runner():
        await Tortoise.init(db_url="sqlite://:memory:", modules={"models": ["app.models.ledger"]})
        await Tortoise.generate_schemas()
        try:
            await test()
        finally:
            await connections.close_all()

    asyncio.run(runner())


def sold_out_engine():
    engine = make_engine()
    engine.assets.get("USDT").fund(ALICE, usd(10_000_000))
    engine.activate_position(1, ALICE, usd(10_000_000))
    engine.purchase(ALICE, "USDT", usd(600_000), 1)
    return engine


def test_index_pending_stores_committed_notifications():
    engine = sold_out_engine()

    async def check():
        assert await index_pending(engine) == 3

        rows = await LedgerEventRecord.all()
        assert [r.sequence for r in rows] == [1, 2, 3]
        assert [r.kind for r in rows] == [EventKind.PRICE_STEP, EventKind.PHASE_ADVANCE, EventKind.PURCHASE]
        assert rows[2].position_id == 1
        assert rows[2].payload["minted_amount"] == tokens(2_000_000)

        assert {r.run_id for r in rows} == {engine.events.run_id}
        cursor = await IndexerCursor.get(name="ledger_events", run_id=engine.events.run_id)
        assert cursor.last_sequence == 3

    run_with_db(check)


def test_index_pending_is_incremental_and_idempotent():
    engine = sold_out_engine()

    async def check():
        await index_pending(engine)
        assert await index_pending(engine) == 0

        engine.purchase(ALICE, "USDT", usd(320), 1)
        assert await index_pending(engine) == 1
        assert await LedgerEventRecord.all().count() == 4

        # a lagging cursor re-reads stored records without duplicating them
        await IndexerCursor.filter(name="ledger_events").update(last_sequence=2)
        assert await index_pending(engine) == 0
        assert await LedgerEventRecord.all().count() == 4
        cursor = await IndexerCursor.get(name="ledger_events", run_id=engine.events.run_id)
        assert cursor.last_sequence == 4

    run_with_db(check)


def test_nothing_to_index():
    engine = make_engine()

    async def check():
        assert await index_pending(engine) == 0
        assert await LedgerEventRecord.all().count() == 0

    run_with_db(check)


def test_restarted_ledger_is_indexed_alongside_previous_run():
    first = sold_out_engine()
    # a restarted process numbers its notifications from 1 again
    second = make_engine()
    second.assets.get("USDT").fund(ALICE, usd(1_000))
    second.activate_position(7, ALICE, usd(10_000_000))
    second.purchase(ALICE, "USDT", usd(300), 7)
    assert [r.sequence for r in second.events.since(0)] == [1]

    async def check():
        assert await index_pending(first) == 3
        assert await index_pending(second) == 1

        rows = await LedgerEventRecord.filter(position_id=7)
        assert len(rows) == 1
        assert rows[0].run_id == second.events.run_id
        assert rows[0].sequence == 1
        assert await LedgerEventRecord.all().count() == 4

        # both runs keep their own progress
        assert await index_pending(first) == 0
        assert await index_pending(second) == 0

    run_with_db(check)
