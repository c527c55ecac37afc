"""
Notification indexer worker.

Periodically copies committed ledger notifications into the database so that
history survives the process. The ledger numbers its notifications afresh in
every process, so rows and cursors are keyed by the log's run id as well as
the sequence. A crash between the two writes only causes already-stored
records to be skipped on the next pass.
"""

import asyncio
import logging
from datetime import datetime, timezone

from tortoise.transactions import in_transaction

from app.ledger.engine import PresaleEngine
from app.models.ledger import EventKind, IndexerCursor, LedgerEventRecord

logger = logging.getLogger(__name__)

CURSOR_NAME = "ledger_events"


async def index_pending(engine: PresaleEngine, cursor_name: str = CURSOR_NAME) -> int:
    """Persist every published notification newer than the cursor. Returns how many were stored."""
    run_id = engine.events.run_id
    cursor, _ = await IndexerCursor.get_or_create(name=cursor_name, run_id=run_id)
    pending = engine.events.since(cursor.last_sequence)
    if not pending:
        return 0

    stored = 0
    async with in_transaction():
        for record in pending:
            payload = record.to_payload()
            _, created = await LedgerEventRecord.get_or_create(
                run_id=run_id,
                sequence=record.sequence,
                defaults={
                    "kind": EventKind(record.kind),
                    "position_id": payload.get("position_id"),
                    "payload": payload,
                    "occurred_at": datetime.fromtimestamp(record.timestamp, tz=timezone.utc),
                },
            )
            if created:
                stored += 1
        cursor.last_sequence = pending[-1].sequence
        await cursor.save()

    logger.info(f"indexer: stored {stored} notifications of run {run_id} up to #{cursor.last_sequence}")
    return stored


async def indexer_loop(engine: PresaleEngine, interval_seconds: float) -> None:
    """Background loop that drains the ledger's notifications every interval."""
    logger.info(f"indexer: started, interval {interval_seconds:.0f}s")
    while True:
        try:
            await index_pending(engine)
        except Exception as e:
            logger.error(f"indexer: failed to persist notifications: {e}")
        await asyncio.sleep(interval_seconds)
