"""
Headless rendering of pages with Playwright.

The crawler depends only on the PageRenderer protocol; PlaywrightRenderer is
the production implementation and tests substitute lightweight fakes.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from playwright.async_api import Route, async_playwright

from shipcheck.constants import RENDER_SETTLE_DELAY_SECONDS
from shipcheck.document import HtmlDocument, PageDocument
from shipcheck.urls import same_origin

logger = logging.getLogger(__name__)

BLOCKED_RESOURCE_TYPES = {"image", "stylesheet", "font", "media"}

LAUNCH_ARGS = [
    "--ignore-certificate-errors",
    "--use-mock-keychain",
    "--password-store=basic",
]


@dataclass
class RenderedPage:
    """A page after client-side rendering settled."""
    url: str
    status: Optional[int]
    hrefs: List[str] = field(default_factory=list)
    document: PageDocument = field(default_factory=lambda: HtmlDocument(""))

    @classmethod
    def from_html(
        cls,
        url: str,
        status: Optional[int],
        html: str,
        title: Optional[str] = None,
        visible_text: Optional[str] = None,
    ) -> "RenderedPage":
        """Build a page whose hrefs come from the document's anchors."""
        document = HtmlDocument(html, title=title, visible_text=visible_text)
        return cls(url=url, status=status, hrefs=document.hrefs(), document=document)


class PageRenderer(Protocol):
    """Loads a URL in a browser context and returns the settled page."""

    async def render(self, url: str, timeout: float) -> RenderedPage:
        ...


class PlaywrightRenderer:
    """
    Playwright-based renderer for JavaScript-built sites.

    This class is designed to be used as an async context manager, managing
    its own browser lifecycle:

        async with PlaywrightRenderer(start_url) as renderer:
            page = await renderer.render("https://example.com", timeout=60)

    Each render gets an isolated browser context. Images, stylesheets, fonts,
    media and scripts from other origins are blocked.
    """

    def __init__(
        self,
        start_url: str,
        user_agent: Optional[str] = None,
        headless: bool = True,
        settle_delay: float = RENDER_SETTLE_DELAY_SECONDS,
    ):
        """
        Initialize the renderer.

        Args:
            start_url: Run start URL; scripts from its origin are allowed
            user_agent: Optional User-Agent override
            headless: Run the browser without a window
            settle_delay: Seconds to wait after network idle for hydration
        """
        self.start_url = start_url
        self.user_agent = user_agent
        self.headless = headless
        self.settle_delay = settle_delay
        self._playwright = None
        self._browser = None

    async def __aenter__(self) -> "PlaywrightRenderer":
        """Enter async context manager, launching browser."""
        logger.info(f"Launching chromium browser (headless={self.headless})")
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.headless, args=LAUNCH_ARGS
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager, closing browser."""
        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        logger.info("Browser closed")

    async def _route(self, route: Route) -> None:
        request = route.request
        if request.resource_type in BLOCKED_RESOURCE_TYPES:
            await route.abort()
        elif request.resource_type == "script" and not same_origin(request.url, self.start_url):
            await route.abort()
        else:
            await route.continue_()

    async def render(self, url: str, timeout: float) -> RenderedPage:
        """
        Load a URL and wait for it to settle.

        Args:
            url: URL to render
            timeout: Navigation timeout in seconds

        Returns:
            RenderedPage with status, raw hrefs and the settled document

        Raises:
            RuntimeError: If the browser is not running
            playwright.async_api.Error: On navigation failure or timeout
        """
        if not self._browser:
            raise RuntimeError(
                "Browser is not running. Use PlaywrightRenderer as an async context manager: "
                "async with PlaywrightRenderer(start_url) as renderer:"
            )

        context_options = {"ignore_https_errors": True}
        if self.user_agent:
            context_options["user_agent"] = self.user_agent
        context = await self._browser.new_context(**context_options)

        try:
            page = await context.new_page()
            await page.route("**/*", self._route)

            response = await page.goto(
                url, timeout=timeout * 1000, wait_until="domcontentloaded"
            )
            await page.wait_for_load_state("networkidle", timeout=timeout * 1000)
            await asyncio.sleep(self.settle_delay)

            title = await page.title()
            visible_text = await page.evaluate(
                "() => document.body ? document.body.innerText : ''"
            )
            html = await page.content()

            return RenderedPage.from_html(
                url=page.url or url,
                status=response.status if response is not None else None,
                html=html,
                title=title,
                visible_text=visible_text,
            )
        finally:
            await context.close()
