"""
Execution guard for caller-visible entry points.

Gives each entry point the substrate the ledger assumes:
  - calls are serialized; a second thread waits for the first to finish
  - a nested entry from the running call (e.g. a payment asset calling back
    into ``purchase`` from its transfer hook) is rejected with ReentrantCall
  - every participant is snapshotted before the call and restored if the call
    raises, so an operation either commits entirely or leaves no trace
  - notifications are published only after the call committed
"""

import functools
import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator, List

from app.ledger.errors import ReentrantCall
from app.ledger.events import EventLog

logger = logging.getLogger(__name__)


class ExecutionGuard:
    def __init__(self, events: EventLog):
        self._events = events
        self._lock = threading.RLock()
        self._depth = 0
        self._participants: List[Any] = [events]

    def register(self, participant: Any) -> None:
        """Include a participant with snapshot()/restore(state) in rollback."""
        if not (hasattr(participant, "snapshot") and hasattr(participant, "restore")):
            raise TypeError(f"{participant!r} cannot be rolled back")
        self._participants.append(participant)

    @property
    def active(self) -> bool:
        return self._depth > 0

    @contextmanager
    def atomic(self, operation: str) -> Iterator[None]:
        with self._lock:
            if self._depth:
                logger.warning(f"guard: rejected reentrant call to {operation}")
                raise ReentrantCall(f"{operation} cannot be entered while another operation runs")
            self._depth += 1
            states = [(p, p.snapshot()) for p in self._participants]
            try:
                yield
            except BaseException as e:
                for participant, state in reversed(states):
                    participant.restore(state)
                logger.warning(f"guard: {operation} rolled back: {e!r}")
                raise
            finally:
                self._depth -= 1
            self._events.publish()


def entry_point(method):
    """Run an engine method inside its guard's atomic unit."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.guard.atomic(method.__name__):
            return method(self, *args, **kwargs)

    return wrapper
