"""Validation engine: cached, retrying existence checks run in windows."""

import asyncio
import logging
import socket
import ssl
from typing import Awaitable, Callable, Dict, Iterator, List, Optional, Sequence

import httpx

from shipcheck.constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_RETRY_COUNT,
    DEFAULT_TIMEOUT_SECONDS,
    EXPONENTIAL_BACKOFF_BASE,
    VALIDATION_PROGRESS_INTERVAL,
)
from shipcheck.frontier import LinkFrontier
from shipcheck.models import CheckError, ErrorType, RunStats, ValidationOutcome
from shipcheck.response_cache import ResponseCache
from shipcheck.transport import ExistenceTransport, ProbeResult
from shipcheck.urls import normalize_url

logger = logging.getLogger(__name__)

DNS_ERROR_MARKERS = (
    "getaddrinfo",
    "enotfound",
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "no address associated with hostname",
    "err_name_not_resolved",
)

SSL_ERROR_MARKERS = ("certificate", "err_cert_", "ssl", "tls")


def classify_status(url: str, status_code: int, reason: str = "") -> CheckError:
    """Map a failing HTTP status to an error.

    404 is Not Found, 5xx is Server Error, anything else (other 4xx, or a
    3xx that never resolved) is reported as a generic HTTP error.
    """
    if status_code == 404:
        error_type = ErrorType.NOT_FOUND
    elif status_code >= 500:
        error_type = ErrorType.SERVER_ERROR
    else:
        error_type = ErrorType.HTTP_OTHER

    return CheckError(
        type=error_type,
        url=url,
        message=f"{status_code} {reason}".strip(),
        status_code=status_code,
    )


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def classify_transport_error(url: str, exc: Exception, timeout: float) -> CheckError:
    """Map a transport fault to Timeout, DNS, SSL or generic network errors."""
    chain = list(_exception_chain(exc))
    text = " ".join(str(e) for e in chain).lower()

    if any(isinstance(e, (httpx.TimeoutException, asyncio.TimeoutError)) for e in chain):
        return CheckError(
            type=ErrorType.TIMEOUT,
            url=url,
            message=f"Request timeout after {timeout:g} seconds",
        )

    if any(isinstance(e, socket.gaierror) for e in chain) or any(
        marker in text for marker in DNS_ERROR_MARKERS
    ):
        return CheckError(type=ErrorType.DNS_ERROR, url=url, message="DNS resolution failed")

    if any(isinstance(e, ssl.SSLError) for e in chain) or any(
        marker in text for marker in SSL_ERROR_MARKERS
    ):
        return CheckError(type=ErrorType.SSL_ERROR, url=url, message="SSL certificate error")

    message = str(exc) or type(exc).__name__
    return CheckError(type=ErrorType.NETWORK_ERROR, url=url, message=message)


class LinkValidator:
    """Determines reachability of URLs.

    Each URL gets a cache lookup, then up to ``retry_count + 1`` probe
    attempts. Only transport faults are retried; an HTTP status is final.
    """

    def __init__(
        self,
        transport: ExistenceTransport,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        retry_count: int = DEFAULT_RETRY_COUNT,
        concurrency: int = DEFAULT_CONCURRENCY,
        cache: Optional[ResponseCache] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the validator.

        Args:
            transport: Existence-check transport
            timeout: Per-attempt timeout in seconds
            retry_count: Retries allowed after a transport fault
            concurrency: Window size for batch validation
            cache: Outcome cache (a fresh 60s cache if None)
            sleep: Awaitable delay used for backoff
        """
        self.transport = transport
        self.timeout = timeout
        self.retry_count = retry_count
        self.concurrency = max(1, concurrency)
        self.cache = cache if cache is not None else ResponseCache()
        self._sleep = sleep
        self.probe_count = 0
        self.retry_total = 0

    @staticmethod
    def backoff_delay(attempt: int) -> float:
        """Delay before the retry following ``attempt`` (0-indexed)."""
        return float(EXPONENTIAL_BACKOFF_BASE ** attempt)

    @staticmethod
    def _should_retry(exc: httpx.TransportError) -> bool:
        # A URL httpx cannot speak to will not improve with time
        return not isinstance(exc, httpx.UnsupportedProtocol)

    async def validate(self, url: str) -> ValidationOutcome:
        """Validate one URL, using the cache when a fresh outcome exists."""
        key = normalize_url(url)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            return cached

        outcome = await self._probe_with_retries(url)
        self.cache.set(key, outcome)
        return outcome

    async def _probe_with_retries(self, url: str) -> ValidationOutcome:
        attempt = 0

        while True:
            self.probe_count += 1
            try:
                probe: ProbeResult = await self.transport.probe(url, self.timeout)
            except httpx.TransportError as e:
                if attempt < self.retry_count and self._should_retry(e):
                    delay = self.backoff_delay(attempt)
                    logger.debug(
                        f"Retry {attempt + 1}/{self.retry_count} after {delay:.0f}s: "
                        f"{url} ({type(e).__name__})"
                    )
                    self.retry_total += 1
                    await self._sleep(delay)
                    attempt += 1
                    continue

                error = classify_transport_error(url, e, self.timeout)
                return ValidationOutcome.failed(error, attempts=attempt + 1)
            except httpx.InvalidURL as e:
                error = CheckError(
                    type=ErrorType.NETWORK_ERROR, url=url, message=f"Invalid URL: {e}"
                )
                return ValidationOutcome.failed(error, attempts=attempt + 1)

            if probe.ok:
                return ValidationOutcome.ok(attempts=attempt + 1)

            error = classify_status(url, probe.status_code, probe.reason)
            return ValidationOutcome.failed(error, attempts=attempt + 1)

    async def validate_window(self, urls: Sequence[str]) -> List[ValidationOutcome]:
        """Validate a window of URLs concurrently.

        Returns once every member has a terminal outcome. An unexpected
        exception in one member becomes a Network Error for that member only.
        """
        results = await asyncio.gather(
            *(self.validate(url) for url in urls), return_exceptions=True
        )

        outcomes: List[ValidationOutcome] = []
        for url, result in zip(urls, results):
            if isinstance(result, Exception):
                logger.warning(f"Validation failed unexpectedly for {url}: {result!r}")
                error = CheckError(
                    type=ErrorType.NETWORK_ERROR,
                    url=url,
                    message=str(result) or type(result).__name__,
                )
                outcomes.append(ValidationOutcome.failed(error))
            elif isinstance(result, BaseException):
                raise result
            else:
                outcomes.append(result)
        return outcomes

    async def validate_pending(
        self,
        frontier: LinkFrontier,
        stats: RunStats,
        known_outcomes: Optional[Dict[str, ValidationOutcome]] = None,
    ) -> None:
        """Validate every pending frontier record in sequential windows.

        Records whose outcome is already known (pages rendered in the browser)
        are resolved without a probe. Frontier and stats are only touched
        between windows.

        Args:
            frontier: Run frontier
            stats: Run statistics to update
            known_outcomes: Outcomes keyed by normalized URL
        """
        known_outcomes = known_outcomes or {}
        records = frontier.pending()
        total = len(records)

        logger.info(f"Validating {total} links (concurrency: {self.concurrency})...")

        for start in range(0, total, self.concurrency):
            window = records[start:start + self.concurrency]
            for record in window:
                frontier.start_checking(record)

            to_probe = [r.url for r in window if r.url not in known_outcomes]
            probed = dict(zip(to_probe, await self.validate_window(to_probe)))

            for record in window:
                outcome = known_outcomes.get(record.url) or probed[record.url]
                frontier.resolve(record, outcome)
                stats.links_checked += 1

                if outcome.success:
                    logger.info(f"OK {record.url}")
                else:
                    stats.links_broken += 1
                    error = record.error
                    code = (error.status_code or error.type.value) if error else "ERROR"
                    logger.info(f"{code} {record.url}")

            checked = start + len(window)
            if checked % VALIDATION_PROGRESS_INTERVAL == 0 or checked >= total:
                logger.info(
                    f"Queue: {stats.pages_crawled} crawled, {stats.links_checked} validated, "
                    f"{total - checked} pending, {stats.links_broken} errors"
                )

        logger.info(
            f"Validation complete: {stats.links_checked} checked, {stats.links_broken} errors"
        )

    async def close(self) -> None:
        """Release pooled connections and drop cached outcomes."""
        await self.transport.aclose()
        self.cache.clear()
