"""
Shared test fixtures for the custodian transfer service.

Provides a scripted chain handle, a mock endpoint selector, fresh
process-wide state objects, a pipeline wired to them, and an async HTTP
client with every runtime dependency overridden.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from custodian.api import deps
from custodian.services.balance_service import BalanceCache
from custodian.services.chain_client import TransferReceipt
from custodian.services.ledger_service import TransferLedger
from custodian.services.price_service import PriceState
from custodian.services.transfer_service import TransferPipeline

GWEI = 10**9

CUSTODY_ADDRESS = "0x1111111111111111111111111111111111111111"
DESTINATION = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"
TX_HASH = "0x" + "ab" * 32
BLOCK_NUMBER = 19_500_000


# --- Chain handle double ---


def _make_handle(
    balance: str = "1.0",
    gas_price: int = 20 * GWEI,
    label: str = "ethereum",
    tx_hash: str = TX_HASH,
    receipt_status: bool = True,
) -> MagicMock:
    """Chain handle double with every network call scripted."""
    handle = MagicMock()
    handle.url = f"https://{label}.example.org"
    handle.label = label
    handle.probe = AsyncMock(return_value=BLOCK_NUMBER)
    handle.get_balance = AsyncMock(return_value=Decimal(balance))
    handle.get_gas_price = AsyncMock(return_value=gas_price)
    handle.send_transfer = AsyncMock(return_value=tx_hash)
    handle.wait_for_receipt = AsyncMock(return_value=TransferReceipt(
        tx_hash=tx_hash,
        block_number=BLOCK_NUMBER,
        gas_used=21000,
        effective_gas_price=gas_price,
        succeeded=receipt_status,
    ))
    return handle


@pytest.fixture
def make_handle():
    """Factory fixture for chain handle doubles."""
    return _make_handle


@pytest.fixture
def handle():
    """Default handle: 1 ETH balance, 20 gwei gas price."""
    return _make_handle()


@pytest.fixture
def selector(handle):
    """Endpoint selector double that always returns ``handle``."""
    sel = MagicMock()
    sel.connected_endpoint = handle.label
    sel.acquire_live_endpoint = AsyncMock(return_value=handle)
    return sel


# --- Process-wide state ---


@pytest.fixture
def price_state():
    return PriceState(price=Decimal("3500"), source="test")


@pytest.fixture
def balance_cache():
    return BalanceCache()


@pytest.fixture
def ledger():
    return TransferLedger()


@pytest.fixture
def pipeline(selector, price_state, ledger):
    """Transfer pipeline wired to the test doubles."""
    return TransferPipeline(
        selector=selector,
        price_state=price_state,
        ledger=ledger,
        custody_address=CUSTODY_ADDRESS,
        fee_reserve=Decimal("0.003"),
        gas_limit=21000,
        fee_multiplier=2,
        priority_fee_gwei=Decimal("2"),
        withdraw_buffer=Decimal("0.0005"),
    )


# --- Dependency Override Helpers ---


def _returning(value):
    async def _override():
        return value
    return _override


@pytest_asyncio.fixture
async def client(pipeline, selector, price_state, balance_cache, ledger):
    """
    Async HTTP test client with every runtime dependency overridden
    to use the test doubles.
    """
    from custodian.main import app

    app.dependency_overrides[deps.get_transfer_pipeline] = _returning(pipeline)
    app.dependency_overrides[deps.get_endpoint_selector] = _returning(selector)
    app.dependency_overrides[deps.get_price_state] = _returning(price_state)
    app.dependency_overrides[deps.get_balance_cache] = _returning(balance_cache)
    app.dependency_overrides[deps.get_ledger] = _returning(ledger)
    app.dependency_overrides[deps.get_custody_address] = _returning(CUSTODY_ADDRESS)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
