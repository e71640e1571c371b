"""
Price feed: polls external quote sources and publishes the latest
plausible base-asset price in USD.

Sources are tried in priority order on every poll; the first quote inside
the sanity band wins. When every source fails the published price is left
untouched (fail-static) and the failure is only logged.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

import httpx

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_PRICE = Decimal("3500")
PRICE_BAND_MIN = Decimal("100")
PRICE_BAND_MAX = Decimal("100000")

REQUEST_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "custodian-transfer-service/1.0",
}

_PARSE_ERRORS = (ValueError, ArithmeticError, AttributeError, KeyError, TypeError)


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PriceSource:
    """External quote provider: where to ask and how to read the answer."""
    name: str
    url: str
    parse: Callable[[dict], object]


def _binance(data: dict):
    return data["price"]


def _coingecko(data: dict):
    return data["ethereum"]["usd"]


def _coinbase(data: dict):
    return data["data"]["amount"]


DEFAULT_PRICE_SOURCES = [
    PriceSource(
        "Binance",
        "https://api.binance.com/api/v3/ticker/price?symbol=ETHUSDT",
        _binance,
    ),
    PriceSource(
        "CoinGecko",
        "https://api.coingecko.com/api/v3/simple/price?ids=ethereum&vs_currencies=usd",
        _coingecko,
    ),
    PriceSource(
        "Coinbase",
        "https://api.coinbase.com/v2/prices/ETH-USD/spot",
        _coinbase,
    ),
]


# ---------------------------------------------------------------------------
# Published state
# ---------------------------------------------------------------------------


@dataclass
class PriceState:
    """
    Process-wide price. Written only by :class:`PriceAggregator`,
    read by the transfer pipeline and the status endpoints.
    """
    price: Decimal = DEFAULT_PRICE
    last_update: datetime | None = None
    source: str = "default"

    def publish(self, price: Decimal, source: str) -> None:
        self.price = price
        self.source = source
        self.last_update = datetime.now(timezone.utc)

    def to_usd(self, amount_eth: Decimal) -> Decimal:
        return amount_eth * self.price


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


@dataclass
class PriceAggregator:
    state: PriceState
    sources: list[PriceSource] = field(default_factory=lambda: list(DEFAULT_PRICE_SOURCES))
    timeout: float = 5.0
    band_min: Decimal = PRICE_BAND_MIN
    band_max: Decimal = PRICE_BAND_MAX
    transport: httpx.AsyncBaseTransport | None = None

    def is_plausible(self, price: Decimal) -> bool:
        return self.band_min < price < self.band_max

    async def poll(self) -> bool:
        """
        Run one poll over the sources.

        Returns True if a quote was accepted and published.
        """
        async with httpx.AsyncClient(
            timeout=self.timeout, headers=REQUEST_HEADERS, transport=self.transport,
        ) as client:
            for source in self.sources:
                price = await self._fetch(client, source)
                if price is None:
                    continue
                if not self.is_plausible(price):
                    logger.warning(
                        "Price %s from %s outside band (%s, %s), skipped",
                        price, source.name, self.band_min, self.band_max,
                    )
                    continue

                self.state.publish(price, source.name)
                logger.info("ETH price $%.2f (%s)", price, source.name)
                return True

        logger.warning(
            "No price source answered; keeping $%.2f from %s",
            self.state.price, self.state.source,
        )
        return False

    async def _fetch(self, client: httpx.AsyncClient, source: PriceSource) -> Decimal | None:
        try:
            resp = await client.get(source.url)
            resp.raise_for_status()
            raw = source.parse(resp.json())
            if raw is None:
                return None
            price = Decimal(str(raw))
            return price if price.is_finite() else None
        except httpx.HTTPError as exc:
            logger.warning("Price source %s failed: %s", source.name, exc)
        except _PARSE_ERRORS as exc:
            logger.warning("Price source %s returned unusable data: %r", source.name, exc)
        return None
