"""Exceptions raised by ship-check."""


class ShipCheckError(Exception):
    """Base class for run-fatal ship-check errors."""


class ConfigValidationError(ShipCheckError, ValueError):
    """Raised when the crawl configuration is invalid.

    Raised before any network activity takes place.
    """


class StartUrlUnreachableError(ShipCheckError):
    """Raised when the configured start URL cannot be validated."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(
            f"Start URL is not accessible: {url}\n"
            f"Error: {reason}\n\n"
            "Please ensure:\n"
            "  1. The URL is correct\n"
            "  2. The server is running (if localhost)\n"
            "  3. The domain is accessible"
        )


class SitemapError(ShipCheckError):
    """Raised when a sitemap cannot be fetched or parsed."""
