import re

from fastapi import Request, status
from fastapi.responses import JSONResponse

from app.core.constants import ZERO_ADDRESS
from app.ledger.accrual import usd_value
from app.ledger.engine import PresaleEngine
from app.ledger.errors import (
    AuthorizationError,
    ExternalCallFailure,
    InvalidAddress,
    LedgerError,
    StateError,
    ValidationError,
    ZeroAddress,
)
from app.schemas.ledger import PositionResponse
from app.services.ledger import presale_engine


WALLET_ADDRESS_REGEX = re.compile(r"^0x[a-fA-F0-9]{40}$")

ERROR_STATUS_MAP: list[tuple[type[LedgerError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (StateError, status.HTTP_409_CONFLICT),
    (ExternalCallFailure, status.HTTP_502_BAD_GATEWAY),
]


def get_engine() -> PresaleEngine:
    """Engine dependency; tests override it with a fresh engine."""
    return presale_engine


def validate_wallet_address(wallet_address: str) -> str:
    """Normalize and validate an EVM-style wallet address."""
    address = wallet_address.strip()
    if not WALLET_ADDRESS_REGEX.fullmatch(address):
        raise InvalidAddress(f"unsupported wallet address format: {wallet_address!r}")
    if address.lower() == ZERO_ADDRESS:
        raise ZeroAddress("address must not be the zero address")
    return address


def status_for(error: LedgerError) -> int:
    for error_type, status_code in ERROR_STATUS_MAP:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    return JSONResponse(
        status_code=status_for(exc),
        content={"error": exc.code, "detail": exc.message},
    )


def build_position_response(engine: PresaleEngine, position_id: int) -> PositionResponse:
    info = engine.get_position(position_id)
    holder = None
    if info.activated and not engine.custody.is_invalidated(position_id):
        holder = engine.custody.owner_of(position_id)
    return PositionResponse(
        position_id=position_id,
        holder=holder,
        activated=info.activated,
        activation_time=info.activation_time,
        cap_usd=info.cap_usd,
        purchased=info.purchased,
        rewarded=info.rewarded,
        airdropped=info.airdropped,
        total_allocation=info.total_allocation,
        value_usd=usd_value(info.total_allocation, engine.phases.get_current_price()),
        releasing=info.releasing,
        settled=engine.settlement.is_settled(position_id),
    )
