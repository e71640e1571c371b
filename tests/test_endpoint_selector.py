"""Tests for the endpoint selector: priority order and probe failures."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from custodian.core.exceptions import AllEndpointsUnavailableError
from custodian.services.chain_client import endpoint_label
from custodian.services.endpoint_selector import EndpointSelector

ENDPOINT_A = "https://rpc-a.example.org"
ENDPOINT_B = "https://rpc-b.example.org/v2/secret-key"


def _handle(url: str, probe=None) -> MagicMock:
    h = MagicMock()
    h.url = url
    h.label = endpoint_label(url)
    h.probe = probe or AsyncMock(return_value=19_000_000)
    return h


class _Factory:
    """Client factory returning pre-built handles and counting calls."""

    def __init__(self, handles: dict):
        self.handles = handles
        self.calls: list[str] = []

    def __call__(self, url: str):
        self.calls.append(url)
        return self.handles[url]


class TestAcquireLiveEndpoint:

    @pytest.mark.asyncio
    async def test_skips_failing_endpoint(self):
        """[A fails, B succeeds] returns the handle bound to B."""
        a = _handle(ENDPOINT_A, AsyncMock(side_effect=ConnectionError("refused")))
        b = _handle(ENDPOINT_B)
        selector = EndpointSelector([ENDPOINT_A, ENDPOINT_B], _Factory({ENDPOINT_A: a, ENDPOINT_B: b}))

        handle = await selector.acquire_live_endpoint()

        assert handle is b
        assert selector.connected_endpoint == "rpc-b"
        a.probe.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_first_live_endpoint_wins(self):
        """B is never probed when A answers."""
        a = _handle(ENDPOINT_A)
        b = _handle(ENDPOINT_B)
        selector = EndpointSelector([ENDPOINT_A, ENDPOINT_B], _Factory({ENDPOINT_A: a, ENDPOINT_B: b}))

        assert await selector.acquire_live_endpoint() is a
        b.probe.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_all_failing_raises(self):
        """Every probe failing raises AllEndpointsUnavailableError."""
        a = _handle(ENDPOINT_A, AsyncMock(side_effect=ConnectionError("refused")))
        b = _handle(ENDPOINT_B, AsyncMock(side_effect=ValueError("bad response")))
        selector = EndpointSelector([ENDPOINT_A, ENDPOINT_B], _Factory({ENDPOINT_A: a, ENDPOINT_B: b}))

        with pytest.raises(AllEndpointsUnavailableError) as exc_info:
            await selector.acquire_live_endpoint()

        assert exc_info.value.context["endpoints_tried"] == 2
        assert len(exc_info.value.context["failures"]) == 2
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_empty_list_raises(self):
        selector = EndpointSelector([], _Factory({}))
        with pytest.raises(AllEndpointsUnavailableError):
            await selector.acquire_live_endpoint()

    @pytest.mark.asyncio
    async def test_slow_probe_times_out(self):
        """A probe exceeding the timeout counts as a failure."""
        async def _hang():
            await asyncio.sleep(5)

        a = _handle(ENDPOINT_A, AsyncMock(side_effect=_hang))
        b = _handle(ENDPOINT_B)
        selector = EndpointSelector(
            [ENDPOINT_A, ENDPOINT_B], _Factory({ENDPOINT_A: a, ENDPOINT_B: b}), probe_timeout=0.05,
        )

        assert await selector.acquire_live_endpoint() is b

    @pytest.mark.asyncio
    async def test_factory_error_counts_as_failure(self):
        """An endpoint whose client cannot be built is skipped."""
        b = _handle(ENDPOINT_B)

        def factory(url):
            if url == ENDPOINT_A:
                raise ValueError("unsupported scheme")
            return b

        selector = EndpointSelector([ENDPOINT_A, ENDPOINT_B], factory)
        assert await selector.acquire_live_endpoint() is b

    @pytest.mark.asyncio
    async def test_every_call_reprobes(self):
        """No endpoint is cached between acquisitions."""
        a = _handle(ENDPOINT_A)
        factory = _Factory({ENDPOINT_A: a})
        selector = EndpointSelector([ENDPOINT_A], factory)

        await selector.acquire_live_endpoint()
        await selector.acquire_live_endpoint()

        assert factory.calls == [ENDPOINT_A, ENDPOINT_A]
        assert a.probe.await_count == 2


class TestEndpointLabel:

    def test_label_drops_path_and_key(self):
        assert endpoint_label(ENDPOINT_B) == "rpc-b"
        assert endpoint_label("https://eth-mainnet.g.alchemy.com/v2/abc") == "eth-mainnet"
