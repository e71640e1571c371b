"""
Probe every configured RPC endpoint and report which ones answer.

Usage:
    python scripts/check_endpoints.py

The service itself stops at the first live endpoint; this walks the whole
list so operators can spot dead entries in RPC_ENDPOINTS.
"""

import asyncio

from custodian.config import settings
from custodian.core.exceptions import AllEndpointsUnavailableError
from custodian.services.chain_client import Web3ChainClient, endpoint_label
from custodian.services.endpoint_selector import EndpointSelector


async def main():
    """Probe each endpoint on its own and print the result."""
    print(f"Probing {len(settings.RPC_ENDPOINTS)} endpoints...")
    for url in settings.RPC_ENDPOINTS:
        selector = EndpointSelector(
            [url],
            client_factory=Web3ChainClient,
            probe_timeout=settings.RPC_PROBE_TIMEOUT_SECONDS,
        )
        try:
            await selector.acquire_live_endpoint()
        except AllEndpointsUnavailableError as exc:
            print(f"  FAIL  {endpoint_label(url):<20} {exc.context['failures'][0]}")
        else:
            print(f"  OK    {endpoint_label(url)}")


if __name__ == "__main__":
    asyncio.run(main())
