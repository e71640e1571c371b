"""
Manual price poll: runs a single poll over the configured price sources.

Usage:
    python scripts/poll_price.py

Useful for checking source reachability without starting the service.
"""

import asyncio

from custodian.config import settings
from custodian.services.price_service import PriceAggregator, PriceState


async def main():
    """Run one price poll and print the published state."""
    state = PriceState(price=settings.PRICE_DEFAULT)
    aggregator = PriceAggregator(
        state=state,
        timeout=settings.PRICE_SOURCE_TIMEOUT_SECONDS,
        band_min=settings.PRICE_MIN,
        band_max=settings.PRICE_MAX,
    )

    print("Polling price sources...")
    accepted = await aggregator.poll()

    print("\n=== Price ===")
    print(f"Accepted: {accepted}")
    print(f"Price:    ${state.price}")
    print(f"Source:   {state.source}")
    print(f"Updated:  {state.last_update}")


if __name__ == "__main__":
    asyncio.run(main())
