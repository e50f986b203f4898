"""
Run orchestration: start-URL check, render crawl, sitemap seeding and
validation of everything discovered.

A run owns exactly one LinkFrontier and one RunStats; both are passed
explicitly and only mutated here or by the validator between windows.
"""

import asyncio
import logging
import random
from collections import deque
from dataclasses import replace
from typing import Awaitable, Callable, Deque, Dict, List, Optional, Set

import httpx
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from shipcheck.config import CrawlConfig, settings
from shipcheck.constants import (
    CRAWL_PROGRESS_INTERVAL,
    DIRECT_NAVIGATION_SOURCE,
    IGNORED_HREF_PREFIXES,
    SITEMAP_SOURCE,
)
from shipcheck.exceptions import SitemapError, StartUrlUnreachableError
from shipcheck.filters import LinkFilter, is_non_page_content
from shipcheck.frontier import LinkFrontier
from shipcheck.models import (
    CheckError,
    ErrorType,
    LinkStatus,
    ReportPayload,
    RunStats,
    ValidationOutcome,
)
from shipcheck.page_checks import PageCheckAggregator
from shipcheck.renderer import PageRenderer, PlaywrightRenderer, RenderedPage
from shipcheck.report import build_report
from shipcheck.sitemap import SitemapIngestor
from shipcheck.transport import ExistenceTransport, HttpxTransport
from shipcheck.urls import (
    is_valid_url,
    normalize_url,
    replace_url_domain,
    resolve_url,
)
from shipcheck.validator import LinkValidator, classify_transport_error

logger = logging.getLogger(__name__)


def classify_render_error(url: str, exc: Exception, timeout: float) -> CheckError:
    """Map a browser navigation failure to an error."""
    if isinstance(exc, (PlaywrightTimeoutError, asyncio.TimeoutError)) or "timeout" in str(exc).lower():
        return CheckError(
            type=ErrorType.TIMEOUT,
            url=url,
            message=f"Page load timeout after {timeout:g} seconds",
        )
    return classify_transport_error(url, exc, timeout)


class SiteChecker:
    """
    Checks one site end to end.

    Usage:
        checker = SiteChecker(config)
        report = await checker.run()
    """

    def __init__(
        self,
        config: CrawlConfig,
        renderer: Optional[PageRenderer] = None,
        transport: Optional[ExistenceTransport] = None,
        sitemap_client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the checker.

        Args:
            config: Run configuration
            renderer: Page renderer (Playwright if None)
            transport: Existence-check transport (httpx if None)
            sitemap_client: HTTP client for sitemap requests (created if None)
            sleep: Awaitable delay used for retry backoff
            rng: Random source for sitemap shuffling
        """
        self.config = config
        self.renderer = renderer
        self.frontier = LinkFrontier()
        self.stats = RunStats()
        self.link_filter = LinkFilter(config.url, config.exclude_patterns)
        self.page_checks = PageCheckAggregator(check_metadata=config.check_metadata)
        self.validator = LinkValidator(
            transport or HttpxTransport(user_agent=settings.USER_AGENT),
            timeout=config.timeout,
            retry_count=config.retry_count,
            concurrency=config.concurrency,
            sleep=sleep,
        )
        self.rendered: Dict[str, ValidationOutcome] = {}
        self.page_errors: List[CheckError] = []
        self._sitemap_client = sitemap_client
        self._rng = rng or random.Random()
        self._render_queue: Deque[str] = deque()
        self._queued: Set[str] = set()
        self._render_attempts = 0

    async def run(self) -> ReportPayload:
        """
        Execute the run.

        Returns:
            Immutable report, including every failure found

        Raises:
            ConfigValidationError: If the configuration is invalid
            StartUrlUnreachableError: If the start URL fails validation
        """
        self.config.validate()
        logger.info(f"Checking {self.config.url}")

        try:
            await self.validate_start_url()

            if self.config.use_sitemap or self.config.sitemap_url:
                await self.ingest_sitemap()

            if self.renderer is not None:
                await self.crawl_pages(self.renderer)
            else:
                async with PlaywrightRenderer(
                    self.config.url, user_agent=settings.USER_AGENT
                ) as renderer:
                    await self.crawl_pages(renderer)

            logger.info(f"Crawling complete. Found {len(self.frontier)} unique URLs")

            self.record_failed_renders()
            await self.validator.validate_pending(
                self.frontier, self.stats, known_outcomes=self.rendered
            )
            self.stats.finish()

            return build_report(
                self.config,
                self.stats,
                self.frontier,
                self._attributed_page_errors(),
            )
        finally:
            await self.validator.close()
            self.frontier.clear()

    async def validate_start_url(self) -> None:
        """Fail fast when the start URL itself is not reachable."""
        logger.info(f"Validating start URL: {self.config.url}")
        outcome = await self.validator.validate(self.config.url)
        if not outcome.success:
            reason = outcome.error.message if outcome.error else "unknown error"
            raise StartUrlUnreachableError(self.config.url, reason)

    # ------------------------------------------------------------------
    # Link discovery
    # ------------------------------------------------------------------

    def extract_links(self, page: RenderedPage) -> List[str]:
        """Resolve a rendered page's hrefs into checkable absolute URLs.

        Drops script, mail, phone and fragment-only references, applies the
        configured domain replacement and de-duplicates in document order.
        """
        links = []
        for href in page.hrefs:
            href = href.strip()
            if not href or href.lower().startswith(IGNORED_HREF_PREFIXES):
                continue

            link = self._rewrite_domain(resolve_url(page.url, href))
            if is_valid_url(link):
                links.append(normalize_url(link))

        return list(dict.fromkeys(links))

    def _rewrite_domain(self, url: str) -> str:
        if self.config.replace_from and self.config.replace_to:
            return replace_url_domain(url, self.config.replace_from, self.config.replace_to)
        return url

    def register_link(self, url: str, source_page: str, follow: bool = True) -> None:
        """Add a link to the frontier and queue it for rendering if eligible.

        Args:
            url: Absolute discovered URL
            source_page: Page (or pseudo-source) the link came from
            follow: Allow the link to be rendered as part of the crawl
        """
        known = url in self.frontier
        record = self.frontier.add_discovered_link(url, source_page)

        if not known:
            reason = self.link_filter.skip_reason(record.url)
            if reason is not None:
                self.frontier.mark_skipped(record, reason)
                self.stats.links_skipped += 1
                logger.debug(f"Skipped {record.url}: {reason}")
                return

        # Sitemap seeds are known before any page links to them
        if (
            follow
            and record.status != LinkStatus.SKIPPED
            and self.link_filter.should_render(record.url)
        ):
            self._enqueue(record.url)

    def _enqueue(self, url: str) -> None:
        if url in self._queued or self.frontier.is_crawled(url):
            return
        self._queued.add(url)
        self._render_queue.append(url)

    # ------------------------------------------------------------------
    # Sitemap
    # ------------------------------------------------------------------

    async def ingest_sitemap(self) -> None:
        """Seed the frontier from the site's sitemap.

        Any failure is logged and the run continues as a regular crawl.
        """
        if self._sitemap_client is not None:
            await self._ingest_sitemap(self._sitemap_client)
            return

        async with httpx.AsyncClient(headers={"User-Agent": settings.USER_AGENT}) as client:
            await self._ingest_sitemap(client)

    async def _ingest_sitemap(self, client: httpx.AsyncClient) -> None:
        ingestor = SitemapIngestor(client, timeout=self.config.timeout)

        try:
            sitemap_url = self.config.sitemap_url or await ingestor.discover(self.config.url)
            if sitemap_url is None:
                logger.warning("No sitemap found, falling back to regular crawl")
                return

            urls = await ingestor.get_sitemap_urls(
                sitemap_url, self.config.url, rewrite=self._rewrite_domain
            )
        except SitemapError as e:
            logger.warning(f"Sitemap ingestion failed, falling back to regular crawl: {e}")
            return

        urls = [
            url for url in urls
            if not self.link_filter.is_excluded(url) and not is_non_page_content(url)
        ]
        self._rng.shuffle(urls)

        for url in urls:
            self.register_link(url, SITEMAP_SOURCE, follow=False)

        logger.info(f"Seeded {len(urls)} URLs from {sitemap_url}")

    # ------------------------------------------------------------------
    # Render crawl
    # ------------------------------------------------------------------

    async def crawl_pages(self, renderer: PageRenderer) -> None:
        """Render same-domain pages breadth-first in windows of ``concurrency``.

        Stops when the queue drains or ``max_pages`` renders were attempted.
        """
        self._enqueue(normalize_url(self.config.url))

        while self._render_queue and self._render_attempts < self.config.max_pages:
            room = self.config.max_pages - self._render_attempts
            window_size = min(self.config.concurrency, room)
            window = [
                self._render_queue.popleft()
                for _ in range(min(window_size, len(self._render_queue)))
            ]
            for url in window:
                self.frontier.mark_crawled(url)
            self._render_attempts += len(window)

            results = await asyncio.gather(
                *(renderer.render(url, self.config.timeout) for url in window),
                return_exceptions=True,
            )

            for url, result in zip(window, results):
                if isinstance(result, Exception):
                    self._record_render_failure(url, result)
                elif isinstance(result, BaseException):
                    raise result
                else:
                    self._process_page(url, result)

        if self._render_queue:
            logger.warning(
                f"Reached max pages limit ({self.config.max_pages}); "
                f"{len(self._render_queue)} pages left unrendered"
            )

    def _record_render_failure(self, url: str, exc: Exception) -> None:
        logger.warning(f"ERROR CRAWL - {url}: {exc}")
        error = classify_render_error(url, exc, self.config.timeout)
        self.rendered[url] = ValidationOutcome.failed(error)

    def _process_page(self, url: str, page: RenderedPage) -> None:
        result = self.page_checks.check_page(url, page.status, page.document, self.stats)
        self.rendered[url] = result.outcome
        self.page_errors.extend(result.metadata_errors)

        if page.status is not None and not 200 <= page.status < 300:
            logger.info(f"{page.status} CRAWL {url}")
            return

        self.stats.pages_crawled += 1
        logger.info(f"CRAWL {url}")

        for link in self.extract_links(page):
            self.register_link(link, url)

        if self.stats.pages_crawled % CRAWL_PROGRESS_INTERVAL == 0:
            logger.info(
                f"Queue: {self.stats.pages_crawled} crawled, {len(self._render_queue)} queued, "
                f"{len(self.frontier)} discovered"
            )

    def record_failed_renders(self) -> None:
        """Make sure every failed render is reported, even if nothing linked to it."""
        for url, outcome in self.rendered.items():
            if not outcome.success and url not in self.frontier:
                self.frontier.add_discovered_link(url, DIRECT_NAVIGATION_SOURCE)

    def _attributed_page_errors(self) -> List[CheckError]:
        errors = []
        for error in self.page_errors:
            record = self.frontier.get(error.url)
            sources = sorted(record.source_pages) if record else []
            errors.append(replace(error, source_pages=sources))
        return errors


async def crawl(
    config: CrawlConfig,
    renderer: Optional[PageRenderer] = None,
    transport: Optional[ExistenceTransport] = None,
) -> ReportPayload:
    """
    Check a site and return its report.

    Args:
        config: Run configuration
        renderer: Page renderer (Playwright if None)
        transport: Existence-check transport (httpx if None)

    Returns:
        Immutable report payload
    """
    checker = SiteChecker(config, renderer=renderer, transport=transport)
    return await checker.run()
