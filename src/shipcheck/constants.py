# src/shipcheck/constants.py
"""Centralized constants for ship-check.

This module contains magic numbers and fixed lists used across the crawler,
validator and page checks. For user-configurable settings, see config.py
and CrawlConfig.
"""

# =============================================================================
# Crawl Defaults
# =============================================================================

# Default number of links/pages processed concurrently in one window
DEFAULT_CONCURRENCY = 3

# Default request timeout in seconds
DEFAULT_TIMEOUT_SECONDS = 60

# Default number of retries for transport failures
DEFAULT_RETRY_COUNT = 3

# Hard ceiling on pages rendered in one run
DEFAULT_MAX_PAGES = 1000

# Delay after network idle to tolerate client-side hydration
RENDER_SETTLE_DELAY_SECONDS = 1.0

# Source attribution for pages that failed without a known referrer
DIRECT_NAVIGATION_SOURCE = "Direct navigation"

# Source attribution for sitemap-seeded links
SITEMAP_SOURCE = "sitemap.xml"

# Emit a queue status line every N pages crawled / links validated
CRAWL_PROGRESS_INTERVAL = 10
VALIDATION_PROGRESS_INTERVAL = 20


# =============================================================================
# Validation Engine Constants
# =============================================================================

# Maximum redirect hops followed by an existence check
MAX_REDIRECTS = 5

# Base for exponential backoff: delay = BASE ** attempt seconds
EXPONENTIAL_BACKOFF_BASE = 2

# Freshness window for cached validation outcomes (seconds)
RESPONSE_CACHE_TTL_SECONDS = 60.0

# Keep-alive pool bounds for the existence-check transport
MAX_POOL_CONNECTIONS = 50
MAX_KEEPALIVE_CONNECTIONS = 10

DEFAULT_USER_AGENT = "ship-check/1.0.0"


# =============================================================================
# Content Filter Constants
# =============================================================================

# Extensions treated as page-less resources: never rendered, still validated
NON_PAGE_EXTENSIONS = (
    # documents
    ".pdf",
    # images
    ".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp",
    # audio / video
    ".mp4", ".webm", ".ogg", ".mp3", ".wav",
    # archives
    ".zip", ".tar", ".gz", ".rar",
    # office
    ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    # non-page text
    ".css", ".js", ".json", ".xml",
)

# href prefixes that never point at a checkable resource
IGNORED_HREF_PREFIXES = ("javascript:", "mailto:", "tel:", "#")

SKIP_REASON_EXCLUDED = "excluded by pattern"


# =============================================================================
# Page Check Constants
# =============================================================================

# Phrases indicating a "not found" page rendered with a success status
SOFT_404_PATTERNS = (
    "page not found",
    "404",
    "not found",
    "page cannot be found",
    "page does not exist",
    "page doesn't exist",
    "the page you are looking for",
    "the page you requested",
    "could not be found",
    "no longer exists",
)

# Body text shorter than this (characters) counts as minimal content
SOFT_404_MIN_CONTENT_LENGTH = 200

# Recommended length bands (characters), warning-only
META_DESCRIPTION_MIN = 50
META_DESCRIPTION_MAX = 160
TITLE_MIN = 30
TITLE_MAX = 60

# Open Graph properties that must all be present
REQUIRED_SOCIAL_TAGS = ("og:title", "og:description", "og:image")


# =============================================================================
# Sitemap Constants
# =============================================================================

# Probed in order by sitemap discovery
SITEMAP_LOCATIONS = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap.xml.gz",
    "/sitemap-index.xml",
)

# Nesting cap for sitemap index recursion
MAX_SITEMAP_DEPTH = 5

SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"


# =============================================================================
# Config Validation Ranges
# =============================================================================

MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 100
MIN_TIMEOUT_SECONDS = 1
MAX_TIMEOUT_SECONDS = 600
MIN_RETRY_COUNT = 0
MAX_RETRY_COUNT = 10

CONFIG_FILE_NAMES = (
    "check-shipment.config.yaml",
    "check-shipment.config.yml",
    "check-shipment.config.json",
)

DEFAULT_REPORT_DIR = ".check-shipment"
