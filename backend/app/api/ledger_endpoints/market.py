import logging

from fastapi import APIRouter, Depends, Query

from app.ledger.engine import PresaleEngine
from app.ledger.phases import next_price_or_none
from app.schemas.ledger import (
    EventResponse,
    EventsResponse,
    PhaseResponse,
    PhasesResponse,
    PriceInfoResponse,
    PurchaseReceiptResponse,
    PurchaseRequest,
    StatsResponse,
    TransferRequest,
)
from app.workers.tokenomics import to_usd

from .common import get_engine, validate_wallet_address

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get(
    "/price",
    response_model=PriceInfoResponse,
    summary="Get the current ladder price",
)
async def get_price(engine: PresaleEngine = Depends(get_engine)) -> PriceInfoResponse:
    phase = engine.phases.get_phase(engine.phases.current_phase_index)
    return PriceInfoResponse(
        phase_index=phase.index,
        current_price=phase.current_price,
        current_price_usd=to_usd(phase.current_price),
        next_phase_base_price=next_price_or_none(engine.phases),
        sold_volume=phase.sold_volume,
        phase_completed=phase.completed.is_set,
        cycle=engine.router.cycle,
    )


@router.get(
    "/phases",
    response_model=PhasesResponse,
    summary="Get the full price ladder",
)
async def get_phases(engine: PresaleEngine = Depends(get_engine)) -> PhasesResponse:
    ledger = engine.phases
    return PhasesResponse(
        current_phase_index=ledger.current_phase_index,
        volume_step=ledger.volume_step,
        price_increment=ledger.price_increment,
        max_steps=ledger.max_steps,
        phases=[
            PhaseResponse(
                index=p.index,
                base_price=p.base_price,
                current_price=p.current_price,
                sold_volume=p.sold_volume,
                completed=p.completed.is_set,
            )
            for p in ledger.phases()
        ],
    )


@router.post(
    "/phases/advance",
    summary="Advance a completed phase",
    description="Moves to the next phase when the active one is completed. Returns advanced=false otherwise.",
)
async def advance_phase(engine: PresaleEngine = Depends(get_engine)) -> dict[str, object]:
    advanced = engine.advance_phase()
    return {"advanced": advanced, "phase_index": engine.phases.current_phase_index}


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Get sale statistics",
)
async def get_stats(engine: PresaleEngine = Depends(get_engine)) -> StatsResponse:
    stats = engine.stats()
    return StatsResponse(
        total_sold=stats.total_sold,
        total_supply=stats.total_supply,
        total_burned=stats.total_burned,
        total_stable_paid=stats.total_stable_paid,
        settled_positions=stats.settled_positions,
        cycle=stats.cycle,
        phase_index=stats.phase_index,
        current_price=stats.current_price,
        supported_assets=engine.assets.get_supported_assets(),
    )


@router.post(
    "/purchase",
    response_model=PurchaseReceiptResponse,
    summary="Buy tokens into a position",
    description="Pulls the payment, mints at the current price and reports the volume to the price ladder.",
)
async def purchase(
    request: PurchaseRequest,
    engine: PresaleEngine = Depends(get_engine),
) -> PurchaseReceiptResponse:
    buyer = validate_wallet_address(request.caller)
    receipt = engine.purchase(buyer, request.asset, request.amount, request.position_id)
    return PurchaseReceiptResponse(
        buyer=receipt.buyer,
        asset=receipt.asset,
        position_id=receipt.position_id,
        paid_amount=receipt.paid_amount,
        minted_amount=receipt.minted_amount,
        price=receipt.price,
        phase_index=receipt.phase_index,
        cycle=receipt.cycle,
        phase_advanced=receipt.phase_advanced,
    )


@router.post(
    "/transfer",
    summary="Transfer liquid tokens",
)
async def transfer(
    request: TransferRequest,
    engine: PresaleEngine = Depends(get_engine),
) -> dict[str, int]:
    sender = validate_wallet_address(request.sender)
    recipient = validate_wallet_address(request.recipient)
    engine.transfer(sender, recipient, request.amount)
    return {
        "sender_balance": engine.tokens.balance_of(sender),
        "sender_liquid": engine.tokens.liquid_of(sender),
        "recipient_balance": engine.tokens.balance_of(recipient),
    }


@router.get(
    "/events",
    response_model=EventsResponse,
    summary="List committed ledger notifications",
)
async def list_events(
    since: int = Query(0, ge=0, description="Return notifications after this sequence"),
    limit: int = Query(100, ge=1, le=1000),
    engine: PresaleEngine = Depends(get_engine),
) -> EventsResponse:
    records = engine.events.since(since)[:limit]
    items = [
        EventResponse(
            sequence=r.sequence,
            kind=r.kind,
            timestamp=r.timestamp,
            payload=r.to_payload(),
        )
        for r in records
    ]
    return EventsResponse(run_id=engine.events.run_id, total_count=len(items), items=items)
