"""Tests for the httpx existence-check transport."""

import asyncio

import httpx
import pytest

from shipcheck.models import ErrorType
from shipcheck.transport import HttpxTransport
from shipcheck.validator import LinkValidator


def make_transport(handler, **kwargs) -> HttpxTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxTransport(client=client, **kwargs)


def site_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/old":
        return httpx.Response(301, headers={"Location": "/new"})
    if path == "/new":
        return httpx.Response(200)
    if path == "/loop":
        return httpx.Response(302, headers={"Location": "/loop"})
    if path == "/down":
        raise httpx.ConnectError("Connection refused", request=request)
    return httpx.Response(404)


class TestHttpxTransport:
    """Test cases for HttpxTransport."""

    @pytest.mark.asyncio
    async def test_uses_head(self):
        """Test probes are HEAD requests."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200)

        transport = make_transport(handler)
        result = await transport.probe("https://x.test/", timeout=5)
        await transport.aclose()

        assert result.ok
        assert seen[0].method == "HEAD"

    @pytest.mark.asyncio
    async def test_follows_redirects(self):
        """Test redirects are followed to the final response."""
        transport = make_transport(site_handler)
        result = await transport.probe("https://x.test/old", timeout=5)
        await transport.aclose()

        assert result.status_code == 200
        assert result.redirects == 1
        assert result.final_url == "https://x.test/new"

    @pytest.mark.asyncio
    async def test_redirect_limit(self):
        """Test a redirect loop stops after the hop limit and reports the redirect."""
        transport = make_transport(site_handler, max_redirects=5)
        result = await transport.probe("https://x.test/loop", timeout=5)
        await transport.aclose()

        assert result.status_code == 302
        assert result.redirects == 5
        assert not result.ok

    @pytest.mark.asyncio
    async def test_timeout_covers_whole_redirect_chain(self):
        """Test a slow redirect chain times out as one attempt."""
        async def handler(request):
            await asyncio.sleep(0.05)
            hop = int(request.url.path.strip("/") or 0)
            if hop < 5:
                return httpx.Response(302, headers={"Location": f"/{hop + 1}"})
            return httpx.Response(200)

        transport = make_transport(handler)
        with pytest.raises(httpx.TimeoutException):
            await transport.probe("https://x.test/", timeout=0.12)
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_timeout_classified_by_validator(self):
        """Test an attempt running past its deadline is reported as a Timeout."""
        async def handler(request):
            await asyncio.sleep(0.05)
            return httpx.Response(302, headers={"Location": "/again"})

        validator = LinkValidator(make_transport(handler), timeout=0.12, retry_count=0)
        outcome = await validator.validate("https://x.test/")
        await validator.close()

        assert outcome.error.type == ErrorType.TIMEOUT

    @pytest.mark.asyncio
    async def test_not_found(self):
        """Test a 404 is returned, not raised."""
        transport = make_transport(site_handler)
        result = await transport.probe("https://x.test/missing", timeout=5)
        await transport.aclose()

        assert result.status_code == 404
        assert result.reason == "Not Found"

    @pytest.mark.asyncio
    async def test_transport_fault_raised(self):
        """Test network faults surface as httpx.TransportError."""
        transport = make_transport(site_handler)
        with pytest.raises(httpx.TransportError):
            await transport.probe("https://x.test/down", timeout=5)
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_async_context_manager_closes_client(self):
        """Test the client is closed on exit."""
        async with make_transport(site_handler) as transport:
            await transport.probe("https://x.test/new", timeout=5)
        assert transport.client.is_closed
