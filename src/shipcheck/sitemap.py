"""Sitemap discovery and parsing.

Supports:
- Standard sitemap.xml files
- Sitemap index files (nested sitemaps, bounded depth)
- Gzip-compressed sitemaps
- Discovery through common locations and robots.txt
"""

import gzip
import logging
import re
from typing import Callable, List, Optional, Set
from urllib.parse import urljoin
from xml.etree import ElementTree as ET

import httpx

from shipcheck.constants import (
    DEFAULT_TIMEOUT_SECONDS,
    MAX_SITEMAP_DEPTH,
    SITEMAP_LOCATIONS,
    SITEMAP_NAMESPACE,
)
from shipcheck.exceptions import SitemapError
from shipcheck.urls import same_origin

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"

ROBOTS_SITEMAP_RE = re.compile(r"^\s*sitemap\s*:\s*(\S+)", re.IGNORECASE | re.MULTILINE)


def _local_name(tag: str) -> str:
    return tag.split("}")[-1] if "}" in tag else tag


def _child_locs(root: ET.Element, entry_tag: str) -> List[str]:
    """Collect <loc> text under every ``entry_tag`` element of ``root``."""
    locs = []
    for entry in root.iter():
        if _local_name(entry.tag) != entry_tag:
            continue
        loc = entry.find(f"{{{SITEMAP_NAMESPACE}}}loc")
        if loc is None:
            loc = entry.find("loc")
        if loc is not None and loc.text and loc.text.strip():
            locs.append(loc.text.strip())
    return locs


class SitemapIngestor:
    """
    Fetch sitemaps and extract page URLs.

    Index recursion carries a visited set and a depth cap, so cyclic or
    pathologically nested indexes terminate.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_depth: int = MAX_SITEMAP_DEPTH,
    ):
        """
        Initialize the ingestor.

        Args:
            client: HTTP client used for every sitemap request
            timeout: Per-request timeout in seconds
            max_depth: Maximum sitemap index nesting followed
        """
        self.client = client
        self.timeout = timeout
        self.max_depth = max_depth

    async def discover(self, base_url: str) -> Optional[str]:
        """
        Find a sitemap for a site.

        Tries the common locations in order, then the robots.txt
        ``Sitemap:`` directive.

        Args:
            base_url: Site root (any URL on the site)

        Returns:
            Sitemap URL, or None if none was found
        """
        for location in SITEMAP_LOCATIONS:
            candidate = urljoin(base_url, location)
            try:
                response = await self.client.head(
                    candidate, timeout=self.timeout, follow_redirects=True
                )
            except httpx.HTTPError as e:
                logger.debug(f"Sitemap probe failed for {candidate}: {e}")
                continue

            if response.is_success:
                logger.info(f"Found sitemap at {candidate}")
                return candidate

        return await self._discover_from_robots(base_url)

    async def _discover_from_robots(self, base_url: str) -> Optional[str]:
        robots_url = urljoin(base_url, "/robots.txt")
        try:
            response = await self.client.get(
                robots_url, timeout=self.timeout, follow_redirects=True
            )
        except httpx.HTTPError as e:
            logger.debug(f"Could not fetch {robots_url}: {e}")
            return None

        if not response.is_success:
            return None

        match = ROBOTS_SITEMAP_RE.search(response.text)
        if match:
            sitemap_url = urljoin(base_url, match.group(1))
            logger.info(f"Found sitemap in robots.txt: {sitemap_url}")
            return sitemap_url
        return None

    async def fetch(self, sitemap_url: str) -> List[str]:
        """
        Fetch a sitemap (or sitemap index) and return every page URL in it.

        Args:
            sitemap_url: URL of the sitemap or sitemap index

        Returns:
            Page URLs, de-duplicated in first-seen order

        Raises:
            SitemapError: If the top-level sitemap cannot be fetched or parsed
        """
        visited: Set[str] = set()
        urls = await self._fetch_recursive(sitemap_url, depth=0, visited=visited)
        unique = list(dict.fromkeys(urls))
        logger.info(f"Extracted {len(unique)} URLs from {sitemap_url}")
        return unique

    async def _fetch_recursive(self, sitemap_url: str, depth: int, visited: Set[str]) -> List[str]:
        visited.add(sitemap_url)
        root = await self._fetch_document(sitemap_url)
        root_tag = _local_name(root.tag)

        if root_tag == "urlset":
            return _child_locs(root, "url")

        if root_tag != "sitemapindex":
            raise SitemapError(f"Unknown sitemap root element <{root_tag}> in {sitemap_url}")

        urls: List[str] = []
        if depth >= self.max_depth:
            logger.warning(f"Sitemap index depth limit ({self.max_depth}) reached at {sitemap_url}")
            return urls

        for child_url in _child_locs(root, "sitemap"):
            if child_url in visited:
                logger.debug(f"Skipping already visited sitemap {child_url}")
                continue
            logger.info(f"Found child sitemap: {child_url}")
            try:
                urls.extend(await self._fetch_recursive(child_url, depth + 1, visited))
            except SitemapError as e:
                logger.warning(f"Skipping child sitemap {child_url}: {e}")
        return urls

    async def _fetch_document(self, sitemap_url: str) -> ET.Element:
        try:
            response = await self.client.get(
                sitemap_url, timeout=self.timeout, follow_redirects=True
            )
        except httpx.HTTPError as e:
            raise SitemapError(f"Failed to fetch sitemap {sitemap_url}: {e}") from e

        if not response.is_success:
            raise SitemapError(
                f"Failed to fetch sitemap {sitemap_url}: HTTP {response.status_code}"
            )

        content = response.content
        content_type = response.headers.get("content-type", "").lower()
        if sitemap_url.endswith(".gz") or "gzip" in content_type or content.startswith(GZIP_MAGIC):
            try:
                content = gzip.decompress(content)
            except (OSError, EOFError) as e:
                # httpx already decoded a Content-Encoding: gzip body
                if not content.lstrip().startswith(b"<"):
                    raise SitemapError(f"Failed to decompress sitemap {sitemap_url}: {e}") from e

        try:
            return ET.fromstring(content)
        except ET.ParseError as e:
            raise SitemapError(f"Failed to parse sitemap XML {sitemap_url}: {e}") from e

    async def get_sitemap_urls(
        self,
        sitemap_url: str,
        base_url: str,
        rewrite: Optional[Callable[[str], str]] = None,
    ) -> List[str]:
        """
        Fetch a sitemap and keep only URLs on the same origin as ``base_url``.

        Args:
            sitemap_url: URL of the sitemap
            base_url: Start URL of the run
            rewrite: Optional mapping applied to each URL before filtering

        Returns:
            Same-origin page URLs in sitemap order
        """
        urls = await self.fetch(sitemap_url)
        if rewrite is not None:
            urls = list(dict.fromkeys(rewrite(url) for url in urls))
        same_site = [url for url in urls if same_origin(url, base_url)]
        dropped = len(urls) - len(same_site)
        if dropped:
            logger.info(f"Ignored {dropped} sitemap URLs from other origins")
        return same_site
