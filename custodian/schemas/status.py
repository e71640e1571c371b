"""
Pydantic schemas for service status, balance and price responses.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class ServiceInfoResponse(BaseModel):
    """Identity plus cached (advisory) figures."""
    status: str = "online"
    name: str
    version: str
    network: str
    wallet: str
    price_usd: Decimal
    balance: Decimal
    balance_checked_at: datetime | None
    rpc: str
    features: list[str]


class StatusResponse(BaseModel):
    """Live balance and capability flags; degrades to the cache on error."""
    status: str = "online"
    wallet: str
    balance: Decimal
    balance_usd: Decimal
    balance_source: str
    price_usd: Decimal
    last_price_update: datetime | None
    rpc: str
    can_transfer: bool
    transaction_count: int
    error: str | None = None


class HealthResponse(BaseModel):
    healthy: bool = True
    timestamp: datetime
    price_usd: Decimal


class BalanceResponse(BaseModel):
    address: str
    balance_eth: Decimal
    balance_usd: Decimal
    price_usd: Decimal
    last_updated: datetime
    network: str
    rpc: str


class PriceResponse(BaseModel):
    price: Decimal
    last_update: datetime | None
    source: str
