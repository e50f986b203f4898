"""Checks run against pages already rendered in the browser.

Two independent checks:

- Soft-404 detection: a success status whose content says "not found".
- Metadata hygiene: canonical link, meta description, title and Open Graph
  tags.

Soft-404 detection is a heuristic. A legitimately short page that happens to
mention one of the phrases is flagged too; that tradeoff is accepted.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from shipcheck.constants import (
    META_DESCRIPTION_MAX,
    META_DESCRIPTION_MIN,
    REQUIRED_SOCIAL_TAGS,
    SOFT_404_MIN_CONTENT_LENGTH,
    SOFT_404_PATTERNS,
    TITLE_MAX,
    TITLE_MIN,
)
from shipcheck.document import PageDocument
from shipcheck.models import (
    CheckError,
    CheckResult,
    CheckWarning,
    ErrorType,
    RunStats,
    ValidationOutcome,
)
from shipcheck.urls import is_valid_url, normalize_url, resolve_url
from shipcheck.validator import classify_status

logger = logging.getLogger(__name__)

CANONICAL_SELECTOR = 'link[rel~="canonical"]'
DESCRIPTION_SELECTOR = 'meta[name="description"]'


def detect_soft_404(document: PageDocument) -> bool:
    """Check if a page that loaded successfully is really a "not found" page.

    Flags the page if a not-found phrase appears in the title, or appears in
    the body while the body has minimal visible content.
    """
    title = document.title().casefold()
    body = document.visible_text().casefold()

    found_in_title = any(pattern in title for pattern in SOFT_404_PATTERNS)
    found_in_body = any(pattern in body for pattern in SOFT_404_PATTERNS)
    has_minimal_content = len(body) < SOFT_404_MIN_CONTENT_LENGTH

    return found_in_title or (found_in_body and has_minimal_content)


def check_http_status(url: str, status_code: Optional[int]) -> Optional[CheckError]:
    """Classify a failing render status, or return None for success."""
    if status_code is None or status_code < 400:
        return None
    return classify_status(url, status_code)


def soft_404_error(url: str) -> CheckError:
    return CheckError(
        type=ErrorType.SOFT_404,
        url=url,
        message='200 OK but appears to be a "Not Found" page (Soft 404)',
        status_code=200,
    )


@dataclass
class MetadataReport:
    """Outcome of the metadata hygiene checks for one page."""
    result: CheckResult
    canonical_passed: bool
    description_passed: bool
    title_passed: bool
    social_passed: bool


def _check_canonical(document: PageDocument, url: str, result: CheckResult) -> bool:
    count = document.count(CANONICAL_SELECTOR)

    if count == 0:
        result.errors.append(CheckError(
            type=ErrorType.MISSING_CANONICAL,
            url=url,
            message="Page is missing canonical URL tag",
        ))
        return False

    if count > 1:
        result.errors.append(CheckError(
            type=ErrorType.DUPLICATE_CANONICAL,
            url=url,
            message=f"Page has {count} canonical URL tags (should have exactly 1)",
        ))
        return False

    hrefs = document.attributes(CANONICAL_SELECTOR, "href")
    href = hrefs[0].strip() if hrefs else ""
    canonical = resolve_url(url, href) if href else ""

    if not is_valid_url(canonical):
        result.errors.append(CheckError(
            type=ErrorType.INVALID_CANONICAL,
            url=url,
            message=f"Canonical URL is not valid: {href or '(empty)'}",
        ))
        return False

    if normalize_url(canonical) != normalize_url(url):
        result.warnings.append(CheckWarning(
            type="Non-Self-Referential Canonical",
            message=f"Canonical URL points to different page: {canonical}",
            url=url,
        ))
    return True


def _check_description(document: PageDocument, url: str, result: CheckResult) -> bool:
    contents = document.attributes(DESCRIPTION_SELECTOR, "content")
    description = contents[0].strip() if contents else ""

    if not description:
        result.errors.append(CheckError(
            type=ErrorType.MISSING_DESCRIPTION,
            url=url,
            message="Page is missing meta description",
        ))
        return False

    length = len(description)
    band = f"recommended: {META_DESCRIPTION_MIN}-{META_DESCRIPTION_MAX}"
    if length < META_DESCRIPTION_MIN:
        result.warnings.append(CheckWarning(
            type="Short Meta Description",
            message=f"Meta description is too short ({length} chars, {band})",
            url=url,
        ))
    elif length > META_DESCRIPTION_MAX:
        result.warnings.append(CheckWarning(
            type="Long Meta Description",
            message=f"Meta description is too long ({length} chars, {band})",
            url=url,
        ))
    return True


def _check_title(document: PageDocument, url: str, result: CheckResult) -> bool:
    title = document.title().strip()

    if not title:
        result.errors.append(CheckError(
            type=ErrorType.MISSING_TITLE,
            url=url,
            message="Page is missing title tag",
        ))
        return False

    length = len(title)
    band = f"recommended: {TITLE_MIN}-{TITLE_MAX}"
    if length < TITLE_MIN:
        result.warnings.append(CheckWarning(
            type="Short Title",
            message=f"Page title is too short ({length} chars, {band})",
            url=url,
        ))
    elif length > TITLE_MAX:
        result.warnings.append(CheckWarning(
            type="Long Title",
            message=f"Page title is too long ({length} chars, {band})",
            url=url,
        ))
    return True


def _check_social(document: PageDocument, url: str, result: CheckResult) -> bool:
    missing = [
        tag for tag in REQUIRED_SOCIAL_TAGS
        if document.count(f'meta[property="{tag}"]') == 0
    ]
    if missing:
        result.errors.append(CheckError(
            type=ErrorType.MISSING_SOCIAL_METADATA,
            url=url,
            message=f"Page is missing Open Graph tags: {', '.join(missing)}",
        ))
        return False
    return True


def check_metadata(document: PageDocument, url: str) -> MetadataReport:
    """Run the metadata hygiene checks on one page.

    Args:
        document: Rendered document
        url: Page URL (for self-referential canonical comparison)

    Returns:
        MetadataReport with errors, warnings and per-check pass flags
    """
    result = CheckResult()
    return MetadataReport(
        result=result,
        canonical_passed=_check_canonical(document, url, result),
        description_passed=_check_description(document, url, result),
        title_passed=_check_title(document, url, result),
        social_passed=_check_social(document, url, result),
    )


@dataclass
class PageCheckResult:
    """Everything learned about one rendered page."""
    url: str
    status_code: Optional[int]
    outcome: ValidationOutcome
    soft_404: bool = False
    metadata_errors: List[CheckError] = field(default_factory=list)
    warnings: List[CheckWarning] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.outcome.success and not self.metadata_errors


class PageCheckAggregator:
    """Runs page checks and folds their results into RunStats."""

    def __init__(self, check_metadata: bool = False):
        """
        Args:
            check_metadata: Also run metadata hygiene checks on healthy pages
        """
        self.check_metadata = check_metadata

    def check_page(
        self,
        url: str,
        status_code: Optional[int],
        document: PageDocument,
        stats: RunStats,
    ) -> PageCheckResult:
        """Check a rendered page.

        The returned outcome stands in for an existence check of the page
        itself. Metadata checks only run on pages that loaded and are not
        soft-404s.
        """
        status_error = check_http_status(url, status_code)
        if status_error is not None:
            return PageCheckResult(
                url=url,
                status_code=status_code,
                outcome=ValidationOutcome.failed(status_error),
            )

        if detect_soft_404(document):
            logger.info(f"Soft 404 detected: {url}")
            return PageCheckResult(
                url=url,
                status_code=status_code,
                outcome=ValidationOutcome.failed(soft_404_error(url)),
                soft_404=True,
            )

        page_result = PageCheckResult(
            url=url,
            status_code=status_code,
            outcome=ValidationOutcome.ok(),
        )

        if self.check_metadata:
            report = check_metadata(document, url)
            stats.seo_checked += 1
            stats.canonical_url.record(report.canonical_passed)
            stats.meta_description.record(report.description_passed)
            stats.page_title.record(report.title_passed)
            stats.social_metadata.record(report.social_passed)

            if not report.result.passed:
                stats.seo_errors += 1
            for warning in report.result.warnings:
                logger.debug(f"{warning.type}: {warning.message} ({url})")

            page_result.metadata_errors = report.result.errors
            page_result.warnings = report.result.warnings

        return page_result
