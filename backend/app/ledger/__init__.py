from app.ledger.base import AllocationKind, PositionInfo
from app.ledger.engine import PresaleEngine, build_engine
from app.ledger.errors import (
    AuthorizationError,
    ExternalCallFailure,
    LedgerError,
    StateError,
    ValidationError,
)

__all__ = [
    "AllocationKind",
    "PositionInfo",
    "PresaleEngine",
    "build_engine",
    "LedgerError",
    "ValidationError",
    "AuthorizationError",
    "StateError",
    "ExternalCallFailure",
]
