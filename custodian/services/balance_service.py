"""
Balance cache for the custodial account.

Refreshed on a schedule through the endpoint selector, falling back to a
block-explorer lookup when no endpoint answers. The cached value is
advisory: status pages read it, the transfer pipeline never does.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

import httpx

from custodian.services.chain_client import wei_to_eth
from custodian.services.endpoint_selector import EndpointSelector

logger = logging.getLogger(__name__)


@dataclass
class BalanceCache:
    """Process-wide cached balance. Written only by :class:`BalanceMonitor`."""
    value: Decimal = Decimal("0")
    last_checked: datetime | None = None
    connected_endpoint: str = "none"
    source: str = "none"

    def publish(self, value: Decimal, endpoint: str, source: str) -> None:
        self.value = value
        self.connected_endpoint = endpoint
        self.source = source
        self.last_checked = datetime.now(timezone.utc)


class ExplorerBalanceLookup:
    """Etherscan-style ``module=account&action=balance`` query."""

    def __init__(
        self,
        api_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    async def get_balance(self, address: str) -> Decimal | None:
        """Balance in ETH, or None when the explorer cannot answer."""
        params = {
            "module": "account",
            "action": "balance",
            "address": address,
            "tag": "latest",
        }
        if self.api_key:
            params["apikey"] = self.api_key

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(self.api_url, params=params)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Explorer balance lookup failed: %s", exc)
            return None

        if data.get("status") != "1":
            logger.warning("Explorer balance lookup rejected: %s", data.get("message"))
            return None
        try:
            return wei_to_eth(int(data["result"]))
        except (KeyError, TypeError, ValueError):
            logger.warning("Explorer returned malformed balance: %r", data.get("result"))
            return None


class BalanceMonitor:
    """Refreshes :class:`BalanceCache` from the network or the explorer."""

    def __init__(
        self,
        cache: BalanceCache,
        selector: EndpointSelector,
        address: str,
        explorer: ExplorerBalanceLookup | None = None,
    ):
        self.cache = cache
        self.selector = selector
        self.address = address
        self.explorer = explorer

    async def refresh(self) -> bool:
        """Run one refresh. Returns True if the cache was updated."""
        if not self.address:
            logger.warning("Balance refresh skipped: custodial address not configured")
            return False

        try:
            handle = await self.selector.acquire_live_endpoint()
            balance = await handle.get_balance(self.address)
        except Exception as exc:
            logger.warning("Live balance read failed (%s), trying explorer", exc)
        else:
            self.cache.publish(balance, handle.label, "rpc")
            logger.info("Balance: %.6f ETH via %s", balance, handle.label)
            return True

        if self.explorer is None:
            return False
        balance = await self.explorer.get_balance(self.address)
        if balance is None:
            logger.warning("Balance unchanged at %.6f ETH (all lookups failed)", self.cache.value)
            return False

        self.cache.publish(balance, "explorer", "explorer")
        logger.info("Balance: %.6f ETH via explorer", balance)
        return True
