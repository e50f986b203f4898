"""Pre-deployment website checker: crawl, validate links, flag broken pages."""

__version__ = "1.0.0"

from shipcheck.crawler import SiteChecker, crawl
from shipcheck.frontier import LinkFrontier
from shipcheck.validator import LinkValidator
from shipcheck.page_checks import PageCheckAggregator
from shipcheck.sitemap import SitemapIngestor
from shipcheck.models import (
    CheckError,
    CheckWarning,
    ErrorType,
    LinkRecord,
    LinkStatus,
    ReportPayload,
    RunStats,
    ValidationOutcome,
)
from shipcheck.config import CrawlConfig, settings
from shipcheck.exceptions import (
    ConfigValidationError,
    ShipCheckError,
    SitemapError,
    StartUrlUnreachableError,
)

__all__ = [
    "SiteChecker",
    "crawl",
    "LinkFrontier",
    "LinkValidator",
    "PageCheckAggregator",
    "SitemapIngestor",
    "CheckError",
    "CheckWarning",
    "ErrorType",
    "LinkRecord",
    "LinkStatus",
    "ReportPayload",
    "RunStats",
    "ValidationOutcome",
    "CrawlConfig",
    "settings",
    "ConfigValidationError",
    "ShipCheckError",
    "SitemapError",
    "StartUrlUnreachableError",
]
