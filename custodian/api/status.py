"""
Read-only status endpoints: identity, health, balance and price.

``/`` and ``/price`` answer from the advisory caches; ``/status`` and
``/balance`` read the live balance through the endpoint selector.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException

from custodian.api.deps import (
    get_balance_cache,
    get_custody_address,
    get_endpoint_selector,
    get_ledger,
    get_price_state,
)
from custodian.config import settings
from custodian.core.exceptions import NetworkRequestError, TransferError
from custodian.schemas.status import (
    BalanceResponse,
    HealthResponse,
    PriceResponse,
    ServiceInfoResponse,
    StatusResponse,
)
from custodian.services.balance_service import BalanceCache
from custodian.services.endpoint_selector import EndpointSelector
from custodian.services.ledger_service import TransferLedger
from custodian.services.price_service import PriceState

logger = logging.getLogger(__name__)

router = APIRouter()

FEATURES = [
    "Live price feed with source fallback",
    "Multi-RPC endpoint fallback",
    "Fee-aware sufficiency check",
    "Append-only transfer ledger",
]


async def _read_live_balance(selector: EndpointSelector, address: str) -> tuple[Decimal, str]:
    """Live balance and the label of the endpoint that served it."""
    handle = await selector.acquire_live_endpoint()
    try:
        balance = await handle.get_balance(address)
    except Exception as exc:
        raise NetworkRequestError(f"Failed to read balance: {exc}") from exc
    return balance, handle.label


@router.get("/", response_model=ServiceInfoResponse)
async def service_info(
    price: PriceState = Depends(get_price_state),
    cache: BalanceCache = Depends(get_balance_cache),
    address: str = Depends(get_custody_address),
):
    """Service identity with the cached balance and current price."""
    return ServiceInfoResponse(
        name=settings.APP_NAME,
        version=settings.APP_VERSION,
        network=settings.NETWORK_NAME,
        wallet=address,
        price_usd=price.price,
        balance=cache.value,
        balance_checked_at=cache.last_checked,
        rpc=cache.connected_endpoint,
        features=FEATURES,
    )


@router.get("/status", response_model=StatusResponse)
async def service_status(
    price: PriceState = Depends(get_price_state),
    cache: BalanceCache = Depends(get_balance_cache),
    selector: EndpointSelector = Depends(get_endpoint_selector),
    ledger: TransferLedger = Depends(get_ledger),
    address: str = Depends(get_custody_address),
):
    """
    Live balance, price and capability flags.

    If the live read fails the response still answers 200 with the
    cached balance and an ``error`` field.
    """
    error = None
    try:
        balance, rpc = await _read_live_balance(selector, address)
        source = "live"
    except TransferError as exc:
        logger.warning("Status falling back to cached balance: %s", exc.message)
        balance, rpc, source = cache.value, cache.connected_endpoint, "cache"
        error = exc.message

    return StatusResponse(
        wallet=address,
        balance=balance,
        balance_usd=price.to_usd(balance),
        balance_source=source,
        price_usd=price.price,
        last_price_update=price.last_update,
        rpc=rpc,
        can_transfer=balance >= settings.MIN_OPERATING_BALANCE_ETH,
        transaction_count=len(ledger),
        error=error,
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(price: PriceState = Depends(get_price_state)):
    """Liveness probe; always 200 while the process is up."""
    return HealthResponse(timestamp=datetime.now(timezone.utc), price_usd=price.price)


@router.get("/balance", response_model=BalanceResponse)
@router.get("/wallet/balance", response_model=BalanceResponse)
async def wallet_balance(
    price: PriceState = Depends(get_price_state),
    selector: EndpointSelector = Depends(get_endpoint_selector),
    address: str = Depends(get_custody_address),
):
    """Live balance in ETH and its USD equivalent."""
    try:
        balance, rpc = await _read_live_balance(selector, address)
    except TransferError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.to_dict())

    return BalanceResponse(
        address=address,
        balance_eth=balance,
        balance_usd=price.to_usd(balance),
        price_usd=price.price,
        last_updated=datetime.now(timezone.utc),
        network=settings.NETWORK_NAME,
        rpc=rpc,
    )


@router.get("/price", response_model=PriceResponse)
@router.get("/eth-price", response_model=PriceResponse)
async def current_price(price: PriceState = Depends(get_price_state)):
    """Latest accepted price and when it was published."""
    return PriceResponse(
        price=price.price,
        last_update=price.last_update,
        source=price.source,
    )
