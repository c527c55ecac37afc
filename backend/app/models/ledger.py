"""
Tortoise ORM models for indexed ledger notifications.

The in-memory ledger is the source of truth; these rows are an
append-only copy for analytics and history queries. Nothing in the ledger
reads them back.
"""

from enum import Enum

from tortoise import fields, models

from app.core.constants import (
    EVENT_PHASE_ADVANCE,
    EVENT_POSITION_RELEASED,
    EVENT_PRICE_STEP,
    EVENT_PURCHASE,
    EVENT_SETTLEMENT,
)


class EventKind(str, Enum):
    """Notification kinds emitted by the ledger."""
    PURCHASE = EVENT_PURCHASE
    PRICE_STEP = EVENT_PRICE_STEP
    PHASE_ADVANCE = EVENT_PHASE_ADVANCE
    POSITION_RELEASED = EVENT_POSITION_RELEASED
    SETTLEMENT = EVENT_SETTLEMENT


class LedgerEventRecord(models.Model):
    """
    One committed ledger notification.

    ``sequence`` is the ledger's own ordering within one process run;
    together with ``run_id`` it makes indexing idempotent across restarts.
    Amounts live in ``payload`` because 18-decimal values overflow BIGINT.
    """
    id = fields.UUIDField(pk=True)
    run_id = fields.CharField(max_length=32, index=True)
    sequence = fields.BigIntField()
    kind = fields.CharEnumField(EventKind, max_length=32, index=True)
    position_id = fields.BigIntField(null=True, index=True)
    payload = fields.JSONField()

    # Timestamps
    occurred_at = fields.DatetimeField()
    indexed_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "ledger_events"
        unique_together = (("run_id", "sequence"),)
        ordering = ["occurred_at", "sequence"]


class IndexerCursor(models.Model):
    """Highest sequence persisted so far, one row per indexer name and run."""
    id = fields.UUIDField(pk=True)
    name = fields.CharField(max_length=64)
    run_id = fields.CharField(max_length=32)
    last_sequence = fields.BigIntField(default=0)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "indexer_cursors"
        unique_together = (("name", "run_id"),)
