"""
Endpoint selector: first responsive RPC endpoint, in priority order.

Every acquisition re-probes the list; no endpoint is remembered across
calls, so a silently dead endpoint is never handed out twice.
"""

import asyncio
import logging
from typing import Callable

from custodian.core.exceptions import AllEndpointsUnavailableError
from custodian.services.chain_client import ChainHandle, endpoint_label

logger = logging.getLogger(__name__)


class EndpointSelector:
    """Probe-then-return selection over a static endpoint list."""

    def __init__(
        self,
        endpoints: list[str],
        client_factory: Callable[[str], ChainHandle],
        probe_timeout: float = 5.0,
    ):
        self.endpoints = list(endpoints)
        self._client_factory = client_factory
        self._probe_timeout = probe_timeout
        self.connected_endpoint = "none"

    async def acquire_live_endpoint(self) -> ChainHandle:
        """
        Return a handle bound to the first endpoint whose probe succeeds.

        Raises AllEndpointsUnavailableError if every endpoint fails.
        """
        failures: list[str] = []
        for url in self.endpoints:
            label = endpoint_label(url)
            try:
                handle = self._client_factory(url)
                height = await asyncio.wait_for(handle.probe(), self._probe_timeout)
            except asyncio.TimeoutError:
                logger.warning("RPC %s probe timed out after %.1fs", label, self._probe_timeout)
                failures.append(f"{label}: timeout")
                continue
            except Exception as exc:
                logger.warning("RPC %s probe failed: %s", label, exc)
                failures.append(f"{label}: {exc}")
                continue

            self.connected_endpoint = label
            logger.debug("RPC %s live at block %s", label, height)
            return handle

        raise AllEndpointsUnavailableError(
            "All RPC endpoints failed",
            endpoints_tried=len(self.endpoints),
            failures=failures,
        )
