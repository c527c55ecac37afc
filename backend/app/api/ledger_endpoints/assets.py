import logging

from fastapi import APIRouter, Depends

from app.ledger.assets import InMemoryAsset
from app.ledger.engine import PresaleEngine
from app.schemas.ledger import (
    AssetResponse,
    AssetsResponse,
    DepositRequest,
    DepositResponse,
    ReserveFundingRequest,
    ReserveResponse,
)

from .common import get_engine, validate_wallet_address

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/assets")


@router.get(
    "",
    response_model=AssetsResponse,
    summary="List accepted payment assets",
)
async def list_assets(engine: PresaleEngine = Depends(get_engine)) -> AssetsResponse:
    stable = engine.settlement.stable_symbol
    return AssetsResponse(
        items=[
            AssetResponse(
                symbol=asset.symbol,
                decimals=asset.decimals,
                reserve=asset.reserve if isinstance(asset, InMemoryAsset) else None,
                stable=asset.symbol == stable,
            )
            for asset in engine.assets.all()
        ]
    )


@router.post(
    "/{symbol}/deposit",
    response_model=DepositResponse,
    summary="Credit a wallet with a payment asset",
    description="Records a deposit received off-ledger so the wallet can pay for purchases.",
)
async def deposit(
    symbol: str,
    request: DepositRequest,
    engine: PresaleEngine = Depends(get_engine),
) -> DepositResponse:
    wallet = validate_wallet_address(request.wallet)
    balance = engine.deposit(symbol, wallet, request.amount)
    return DepositResponse(symbol=symbol.upper(), wallet=wallet, balance=balance)


@router.post(
    "/{symbol}/reserve",
    response_model=ReserveResponse,
    summary="Top up the settlement payout reserve",
)
async def fund_reserve(
    symbol: str,
    request: ReserveFundingRequest,
    engine: PresaleEngine = Depends(get_engine),
) -> ReserveResponse:
    reserve = engine.fund_reserve(symbol, request.amount)
    logger.info(f"assets endpoint: {symbol.upper()} reserve now {reserve}")
    return ReserveResponse(symbol=symbol.upper(), reserve=reserve)
