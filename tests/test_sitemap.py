"""Tests for sitemap discovery and parsing."""

import gzip

import httpx
import pytest

from shipcheck.exceptions import SitemapError
from shipcheck.sitemap import SitemapIngestor

NS = "http://www.sitemaps.org/schemas/sitemap/0.9"


def urlset(*locs: str) -> str:
    entries = "".join(f"<url><loc>{loc}</loc></url>" for loc in locs)
    return f'<?xml version="1.0" encoding="UTF-8"?><urlset xmlns="{NS}">{entries}</urlset>'


def sitemapindex(*locs: str) -> str:
    entries = "".join(f"<sitemap><loc>{loc}</loc></sitemap>" for loc in locs)
    return f'<?xml version="1.0" encoding="UTF-8"?><sitemapindex xmlns="{NS}">{entries}</sitemapindex>'


def make_ingestor(routes, head_ok=(), **kwargs) -> SitemapIngestor:
    """Ingestor over a mock site.

    ``routes`` maps paths to response bodies (str or bytes) for GET;
    HEAD succeeds only for paths in ``head_ok``.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "HEAD":
            return httpx.Response(200 if path in head_ok else 404)
        body = routes.get(path)
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body if isinstance(body, bytes) else body.encode())

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SitemapIngestor(client, timeout=5, **kwargs)


class TestFetch:
    """Test cases for SitemapIngestor.fetch."""

    @pytest.mark.asyncio
    async def test_urlset(self):
        """Test a plain sitemap yields its loc values."""
        ingestor = make_ingestor({"/sitemap.xml": urlset("https://x.test/a", "https://x.test/b")})
        urls = await ingestor.fetch("https://x.test/sitemap.xml")
        assert urls == ["https://x.test/a", "https://x.test/b"]

    @pytest.mark.asyncio
    async def test_index_union_without_duplicates(self):
        """Test an index yields the union of its children, each URL once."""
        ingestor = make_ingestor({
            "/sitemap_index.xml": sitemapindex(
                "https://x.test/pages.xml", "https://x.test/posts.xml"
            ),
            "/pages.xml": urlset("https://x.test/a", "https://x.test/b"),
            "/posts.xml": urlset("https://x.test/b", "https://x.test/c"),
        })

        urls = await ingestor.fetch("https://x.test/sitemap_index.xml")

        assert urls == ["https://x.test/a", "https://x.test/b", "https://x.test/c"]

    @pytest.mark.asyncio
    async def test_gzip_child(self):
        """Test gzip-compressed sitemaps are decompressed."""
        ingestor = make_ingestor({
            "/sitemap_index.xml": sitemapindex("https://x.test/sitemap.xml.gz"),
            "/sitemap.xml.gz": gzip.compress(urlset("https://x.test/z").encode()),
        })

        urls = await ingestor.fetch("https://x.test/sitemap_index.xml")

        assert urls == ["https://x.test/z"]

    @pytest.mark.asyncio
    async def test_cycle_terminates(self):
        """Test an index that references itself does not loop."""
        ingestor = make_ingestor({
            "/index.xml": sitemapindex("https://x.test/index.xml", "https://x.test/pages.xml"),
            "/pages.xml": urlset("https://x.test/a"),
        })

        urls = await ingestor.fetch("https://x.test/index.xml")

        assert urls == ["https://x.test/a"]

    @pytest.mark.asyncio
    async def test_depth_cap(self):
        """Test nested indexes beyond the depth cap are not followed."""
        ingestor = make_ingestor({
            "/l0.xml": sitemapindex("https://x.test/l1.xml"),
            "/l1.xml": sitemapindex("https://x.test/l2.xml"),
            "/l2.xml": sitemapindex("https://x.test/leaf.xml"),
            "/leaf.xml": urlset("https://x.test/deep"),
        }, max_depth=2)

        assert await ingestor.fetch("https://x.test/l0.xml") == []

    @pytest.mark.asyncio
    async def test_failing_child_skipped(self):
        """Test a broken child sitemap does not lose the others."""
        ingestor = make_ingestor({
            "/index.xml": sitemapindex("https://x.test/gone.xml", "https://x.test/ok.xml"),
            "/ok.xml": urlset("https://x.test/a"),
        })

        assert await ingestor.fetch("https://x.test/index.xml") == ["https://x.test/a"]

    @pytest.mark.asyncio
    async def test_missing_sitemap_raises(self):
        """Test a missing top-level sitemap raises SitemapError."""
        ingestor = make_ingestor({})
        with pytest.raises(SitemapError):
            await ingestor.fetch("https://x.test/sitemap.xml")

    @pytest.mark.asyncio
    async def test_malformed_xml_raises(self):
        """Test unparsable XML raises SitemapError."""
        ingestor = make_ingestor({"/sitemap.xml": "<urlset><url>"})
        with pytest.raises(SitemapError):
            await ingestor.fetch("https://x.test/sitemap.xml")


class TestDiscover:
    """Test cases for SitemapIngestor.discover."""

    @pytest.mark.asyncio
    async def test_common_location(self):
        """Test the first reachable common location wins."""
        ingestor = make_ingestor({}, head_ok={"/sitemap_index.xml", "/sitemap-index.xml"})
        assert await ingestor.discover("https://x.test/") == "https://x.test/sitemap_index.xml"

    @pytest.mark.asyncio
    async def test_robots_fallback(self):
        """Test the robots.txt Sitemap directive is used as a fallback."""
        ingestor = make_ingestor({
            "/robots.txt": "User-agent: *\nDisallow: /admin\nSITEMAP: https://x.test/custom.xml\n",
        })
        assert await ingestor.discover("https://x.test/docs/") == "https://x.test/custom.xml"

    @pytest.mark.asyncio
    async def test_nothing_found(self):
        """Test None is returned when no sitemap exists."""
        ingestor = make_ingestor({})
        assert await ingestor.discover("https://x.test/") is None


class TestGetSitemapUrls:
    """Test cases for origin filtering."""

    @pytest.mark.asyncio
    async def test_filters_other_origins(self):
        """Test URLs from other origins are dropped."""
        ingestor = make_ingestor({
            "/sitemap.xml": urlset(
                "https://x.test/a", "https://cdn.x.test/b", "http://x.test/c", "https://x.test:443/d"
            ),
        })

        urls = await ingestor.get_sitemap_urls("https://x.test/sitemap.xml", "https://x.test/")

        assert urls == ["https://x.test/a", "https://x.test:443/d"]

    @pytest.mark.asyncio
    async def test_rewrite_applied_before_filtering(self):
        """Test URLs can be rewritten onto the run's origin."""
        ingestor = make_ingestor({
            "/sitemap.xml": urlset("https://prod.test/a"),
        })

        urls = await ingestor.get_sitemap_urls(
            "https://x.test/sitemap.xml",
            "https://x.test/",
            rewrite=lambda url: url.replace("https://prod.test", "https://x.test"),
        )

        assert urls == ["https://x.test/a"]
