"""URL canonicalization and domain matching helpers.

Normalization is a best-effort convenience: malformed input is returned
unchanged rather than rejected.
"""

from typing import Optional, Tuple
from urllib.parse import urljoin, urlsplit, urlunsplit

DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_url(url: str) -> str:
    """Canonicalize a URL for deduplication.

    Drops the query string and fragment and strips trailing slashes from the
    path unless the path is the root. Scheme, host and port are kept.

    Args:
        url: Absolute URL to normalize

    Returns:
        Canonical URL, or the original string if it cannot be parsed
    """
    try:
        parsed = urlsplit(url)
        parsed.port  # raises ValueError on a malformed port
    except ValueError:
        return url

    if not parsed.scheme or not parsed.netloc:
        return url

    path = parsed.path.rstrip("/") or "/"
    return urlunsplit((parsed.scheme, parsed.netloc.lower(), path, "", ""))


def resolve_url(base_url: str, relative_url: str) -> str:
    """Resolve a relative reference against a base URL.

    Args:
        base_url: Base URL
        relative_url: Relative (or absolute) reference

    Returns:
        Resolved absolute URL, or the reference unchanged if unresolvable
    """
    try:
        return urljoin(base_url, relative_url)
    except ValueError:
        return relative_url


def get_base_domain(url: str) -> str:
    """Extract the hostname of a URL without a leading ``www.`` label.

    Returns:
        Base domain, or an empty string if the URL has no hostname
    """
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        return ""

    if not hostname:
        return ""
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname


def is_same_domain(url1: str, url2: str) -> bool:
    """Check if two URLs belong to the same (www-insensitive) domain."""
    domain1 = get_base_domain(url1)
    domain2 = get_base_domain(url2)
    return domain1 != "" and domain1 == domain2


def is_valid_url(url: Optional[str]) -> bool:
    """Check that a URL is an absolute http(s) URL with a host."""
    if not url:
        return False
    try:
        parsed = urlsplit(url)
        parsed.port
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def _origin(url: str) -> Optional[Tuple[str, str, Optional[int]]]:
    try:
        parsed = urlsplit(url)
        port = parsed.port or DEFAULT_PORTS.get(parsed.scheme)
    except ValueError:
        return None
    if not parsed.hostname:
        return None
    return parsed.scheme, parsed.hostname, port


def same_origin(url1: str, url2: str) -> bool:
    """Check if two URLs share scheme, host and (effective) port."""
    origin1 = _origin(url1)
    return origin1 is not None and origin1 == _origin(url2)


def replace_url_domain(url: str, replace_from: str, replace_to: str) -> str:
    """Swap the origin of a URL when it belongs to ``replace_from``'s domain.

    Used to test a local build whose pages still link to the production
    domain.

    Args:
        url: URL to rewrite
        replace_from: URL whose domain should be replaced
        replace_to: URL providing the replacement scheme, host and port

    Returns:
        Rewritten URL, or the original URL when it does not match
    """
    if not is_valid_url(replace_from) or not is_valid_url(replace_to):
        return url

    try:
        parsed = urlsplit(url)
    except ValueError:
        return url

    if not is_same_domain(url, replace_from):
        return url

    target = urlsplit(replace_to)
    return urlunsplit(
        (target.scheme, target.netloc, parsed.path, parsed.query, parsed.fragment)
    )
