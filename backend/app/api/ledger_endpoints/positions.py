import logging

from fastapi import APIRouter, Depends, Query

from app.ledger.engine import PresaleEngine
from app.schemas.ledger import (
    ActivatePositionRequest,
    AllocationRequest,
    CreditKind,
    PositionResponse,
    ReleaseResponse,
    SettleRequest,
    SettlementResponse,
)

from .common import build_position_response, get_engine, validate_wallet_address

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/positions")


def _settlement_response(quote) -> SettlementResponse:
    return SettlementResponse(
        position_id=quote.position_id,
        burn_percent=quote.burn_percent,
        total_allocation=quote.total_allocation,
        burn_amount=quote.burn_amount,
        release_amount=quote.release_amount,
        next_price=quote.next_price,
        stable_amount=quote.stable_amount,
    )


@router.post(
    "/{position_id}/activate",
    response_model=PositionResponse,
    summary="Activate a position",
)
async def activate_position(
    position_id: int,
    request: ActivatePositionRequest,
    engine: PresaleEngine = Depends(get_engine),
) -> PositionResponse:
    holder = validate_wallet_address(request.holder)
    engine.activate_position(position_id, holder, request.cap_usd, request.initial_allocation)
    return build_position_response(engine, position_id)


@router.get(
    "/{position_id}",
    response_model=PositionResponse,
    summary="Get position info",
)
async def get_position(
    position_id: int,
    engine: PresaleEngine = Depends(get_engine),
) -> PositionResponse:
    return build_position_response(engine, position_id)


@router.post(
    "/{position_id}/allocations",
    response_model=PositionResponse,
    summary="Credit a reward or airdrop allocation",
)
async def credit_allocation(
    position_id: int,
    request: AllocationRequest,
    engine: PresaleEngine = Depends(get_engine),
) -> PositionResponse:
    if request.kind == CreditKind.REWARD:
        engine.credit_reward(position_id, request.amount)
    else:
        engine.credit_airdrop(position_id, request.amount)
    return build_position_response(engine, position_id)


@router.post(
    "/{position_id}/refresh-release",
    response_model=ReleaseResponse,
    summary="Re-check the release cap at the current price",
)
async def refresh_release(
    position_id: int,
    engine: PresaleEngine = Depends(get_engine),
) -> ReleaseResponse:
    releasing = engine.refresh_release(position_id)
    return ReleaseResponse(position_id=position_id, releasing=releasing)


@router.get(
    "/{position_id}/settlement-quote",
    response_model=SettlementResponse,
    summary="Preview a settlement",
    description="Computes the burn, release and stable amounts at the next phase's base price without settling.",
)
async def settlement_quote(
    position_id: int,
    burn_percent: int = Query(..., description="Share of the allocation to burn, in percent"),
    engine: PresaleEngine = Depends(get_engine),
) -> SettlementResponse:
    return _settlement_response(engine.quote_settlement(position_id, burn_percent))


@router.post(
    "/{position_id}/settle",
    response_model=SettlementResponse,
    summary="Settle a releasing position",
)
async def settle(
    position_id: int,
    request: SettleRequest,
    engine: PresaleEngine = Depends(get_engine),
) -> SettlementResponse:
    caller = validate_wallet_address(request.caller)
    quote = engine.settle(caller, position_id, request.burn_percent)
    logger.info(f"settle endpoint: position {position_id} settled by {caller}")
    return _settlement_response(quote)
