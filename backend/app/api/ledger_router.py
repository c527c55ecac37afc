from fastapi import APIRouter

from app.api.ledger_endpoints.assets import router as assets_router
from app.api.ledger_endpoints.market import router as market_router
from app.api.ledger_endpoints.positions import router as positions_router

router = APIRouter(prefix="/ledger", tags=["ledger"])

router.include_router(market_router)
router.include_router(positions_router)
router.include_router(assets_router)
