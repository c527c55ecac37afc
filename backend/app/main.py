import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from tortoise.contrib.fastapi import RegisterTortoise

from app.core.config import settings
from app.api import health, ledger_router
from app.api.ledger_endpoints.common import ledger_error_handler
from app.ledger.errors import LedgerError
from app.services.ledger import presale_engine
from app.workers.indexer import indexer_loop

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    async with RegisterTortoise(
        app,
        config=settings.tortoise_config,
        generate_schemas=True,
        add_exception_handlers=True,
    ):
        worker_task = None
        if settings.indexer_enabled:
            worker_task = asyncio.create_task(
                indexer_loop(presale_engine, settings.indexer_interval_seconds)
            )
            logger.info("Started ledger notification indexer")
        yield
        # Shutdown - cancel worker before connections close
        if worker_task is not None:
            worker_task.cancel()
            try:
                await worker_task
            except asyncio.CancelledError:
                pass


app = FastAPI(
    title=settings.app_name,
    description="""
    Tiered presale ledger API

    This API provides endpoints for:
    - Reading the phased price ladder and the current price
    - Buying tokens into a position with a stable payment asset
    - Activating positions and crediting reward / airdrop allocations
    - Settling released positions by burning part of their allocation

    ## Position lifecycle

    1. A position is activated with a USD value cap
    2. Purchases, rewards and airdrops accrue to it; after each one its
       allocation is valued at the current price
    3. Once the value reaches the cap the position is releasing for good
    4. Its holder settles it once: part is burned for a stable payout priced
       at the next phase, the rest becomes transferable
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(LedgerError, ledger_error_handler)

# Include routers
app.include_router(health.router)
app.include_router(ledger_router.router, prefix=settings.api_v1_prefix)


@app.get("/", tags=["root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "api": f"{settings.api_v1_prefix}/ledger",
    }
