"""Exclusion patterns and non-page content detection."""

import re
from typing import Iterable, List, Optional, Pattern, Sequence
from urllib.parse import urlsplit

from shipcheck.constants import NON_PAGE_EXTENSIONS, SKIP_REASON_EXCLUDED
from shipcheck.urls import is_same_domain


def compile_pattern(pattern: str) -> Pattern[str]:
    """Convert a glob pattern into an anchored regex.

    ``*`` matches any character sequence; every other character is literal.
    """
    parts = (re.escape(part) for part in pattern.split("*"))
    return re.compile("^" + ".*".join(parts) + "$", re.DOTALL)


def matches_exclude_pattern(url: str, patterns: Optional[Iterable[str]]) -> bool:
    """Check if a URL matches any exclude pattern.

    Each pattern is tested against both the URL path and the full URL, so
    ``/admin/*`` and ``*.pdf`` and ``https://example.com/tmp/*`` all work.

    Args:
        url: Absolute URL to check
        patterns: Glob patterns (``*`` wildcard)

    Returns:
        True if the URL matches any pattern
    """
    return matches_compiled(url, [compile_pattern(p) for p in patterns or []])


def matches_compiled(url: str, regexes: Sequence[Pattern[str]]) -> bool:
    """Test compiled exclude patterns against the URL path and the full URL."""
    if not regexes:
        return False

    try:
        path = urlsplit(url).path
    except ValueError:
        return False

    return any(regex.match(path) or regex.match(url) for regex in regexes)


def is_non_page_content(url: str) -> bool:
    """Check if a URL points at a page-less resource (PDF, image, archive...)."""
    try:
        path = urlsplit(url).path.lower()
    except ValueError:
        return False
    return path.endswith(NON_PAGE_EXTENSIONS)


class LinkFilter:
    """Decides what happens to a newly discovered link.

    Excluded links are recorded as skipped and never validated. Links that
    pass are validated; only same-domain page links are also rendered.
    """

    def __init__(self, start_url: str, exclude_patterns: Optional[Sequence[str]] = None):
        self.start_url = start_url
        self.exclude_patterns: List[str] = list(exclude_patterns or [])
        self._compiled = [compile_pattern(p) for p in self.exclude_patterns]

    def is_excluded(self, url: str) -> bool:
        return matches_compiled(url, self._compiled)

    def skip_reason(self, url: str) -> Optional[str]:
        """Return why a link should be skipped, or None to accept it."""
        if self.is_excluded(url):
            return SKIP_REASON_EXCLUDED
        return None

    def should_render(self, url: str) -> bool:
        """Check if a link should be followed and rendered in the browser."""
        return (
            is_same_domain(url, self.start_url)
            and not self.is_excluded(url)
            and not is_non_page_content(url)
        )
