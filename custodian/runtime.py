"""
Process-wide service objects.

Each piece of shared state has exactly one writer: ``price_state`` is
written by the price aggregator, ``balance_cache`` by the balance monitor,
``ledger`` by the transfer pipeline. Everything else only reads them.
Route handlers reach these through the dependencies in ``custodian.api.deps``.
"""

from functools import partial

from custodian.config import settings
from custodian.services.balance_service import BalanceCache, BalanceMonitor, ExplorerBalanceLookup
from custodian.services.chain_client import Web3ChainClient, derive_address
from custodian.services.endpoint_selector import EndpointSelector
from custodian.services.ledger_service import TransferLedger
from custodian.services.price_service import PriceAggregator, PriceState
from custodian.services.transfer_service import TransferPipeline


def _custody_address() -> str:
    if settings.CUSTODY_PRIVATE_KEY:
        return derive_address(settings.CUSTODY_PRIVATE_KEY)
    return settings.CUSTODY_ADDRESS


custody_address = _custody_address()

price_state = PriceState(price=settings.PRICE_DEFAULT)
balance_cache = BalanceCache()
ledger = TransferLedger()

endpoint_selector = EndpointSelector(
    settings.RPC_ENDPOINTS,
    client_factory=partial(
        Web3ChainClient,
        private_key=settings.CUSTODY_PRIVATE_KEY,
        confirmation_timeout=settings.CONFIRMATION_TIMEOUT_SECONDS,
    ),
    probe_timeout=settings.RPC_PROBE_TIMEOUT_SECONDS,
)

price_aggregator = PriceAggregator(
    state=price_state,
    timeout=settings.PRICE_SOURCE_TIMEOUT_SECONDS,
    band_min=settings.PRICE_MIN,
    band_max=settings.PRICE_MAX,
)

balance_monitor = BalanceMonitor(
    cache=balance_cache,
    selector=endpoint_selector,
    address=custody_address,
    explorer=ExplorerBalanceLookup(
        settings.EXPLORER_API_URL,
        api_key=settings.EXPLORER_API_KEY,
        timeout=settings.EXPLORER_TIMEOUT_SECONDS,
    ),
)

transfer_pipeline = TransferPipeline(
    selector=endpoint_selector,
    price_state=price_state,
    ledger=ledger,
    custody_address=custody_address,
    signing_enabled=bool(settings.CUSTODY_PRIVATE_KEY),
    fee_reserve=settings.FEE_RESERVE_ETH,
    gas_limit=settings.TRANSFER_GAS_LIMIT,
    fee_multiplier=settings.FEE_SAFETY_MULTIPLIER,
    priority_fee_gwei=settings.PRIORITY_FEE_GWEI,
    withdraw_buffer=settings.WITHDRAW_BUFFER_ETH,
)
