"""
Reusable FastAPI dependencies.

Dependencies:
  - get_price_state / get_balance_cache  : advisory process-wide state
  - get_endpoint_selector                : live network access
  - get_ledger / get_transfer_pipeline   : transfer history and execution
  - get_custody_address                  : the custodial account
  - require_api_key                      : X-API-Key guard for transfer routes

Tests swap any of these through ``app.dependency_overrides``.
"""

import hmac

from fastapi import Header, HTTPException, status

from custodian import runtime
from custodian.config import settings
from custodian.services.balance_service import BalanceCache
from custodian.services.endpoint_selector import EndpointSelector
from custodian.services.ledger_service import TransferLedger
from custodian.services.price_service import PriceState
from custodian.services.transfer_service import TransferPipeline


async def get_price_state() -> PriceState:
    return runtime.price_state


async def get_balance_cache() -> BalanceCache:
    return runtime.balance_cache


async def get_endpoint_selector() -> EndpointSelector:
    return runtime.endpoint_selector


async def get_ledger() -> TransferLedger:
    return runtime.ledger


async def get_transfer_pipeline() -> TransferPipeline:
    return runtime.transfer_pipeline


async def get_custody_address() -> str:
    return runtime.custody_address


# ---------------------------------------------------------------------------
# Operator key
# ---------------------------------------------------------------------------


async def require_api_key(
    x_api_key: str | None = Header(None, description="Operator API key"),
) -> None:
    """
    Check ``X-API-Key`` against TRANSFER_API_KEY.

    When TRANSFER_API_KEY is empty (dev), every request is allowed.
    """
    expected = settings.TRANSFER_API_KEY
    if not expected:
        return
    if x_api_key is None or not hmac.compare_digest(x_api_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
