"""
Custodian Transfer Service: FastAPI application entry point.

Configures the app, middleware, background polling, and registers all
API routers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from custodian.config import settings
from custodian.api import status, transactions, transfers

logging.getLogger("custodian").setLevel(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the price and balance polls; stop them on shutdown."""
    from custodian import runtime
    from custodian.tasks.scheduler import build_scheduler

    scheduler = None
    if settings.BACKGROUND_POLLING_ENABLED:
        scheduler = build_scheduler(
            runtime.price_aggregator,
            runtime.balance_monitor,
            price_interval=settings.PRICE_POLL_INTERVAL_SECONDS,
            balance_interval=settings.BALANCE_POLL_INTERVAL_SECONDS,
            balance_delay=settings.BALANCE_POLL_DELAY_SECONDS,
        )
        scheduler.start()

    logger.info(
        "%s started: wallet=%s endpoints=%d",
        settings.APP_NAME, runtime.custody_address or "<unset>", len(settings.RPC_ENDPOINTS),
    )
    if not settings.CUSTODY_PRIVATE_KEY:
        logger.warning("CUSTODY_PRIVATE_KEY not set; transfers will be rejected")

    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)


app = FastAPI(
    title=settings.APP_NAME,
    description="Custodial ETH transfer service with live price feed and transfer ledger.",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception Handlers ---
app.add_exception_handler(RequestValidationError, transfers.transfer_validation_handler)

# --- Routers ---
app.include_router(status.router, tags=["Status"])
app.include_router(transactions.router, prefix="/transactions", tags=["Transactions"])
app.include_router(transfers.router, tags=["Transfers"])
