"""Data models for ship-check runs."""

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple


class ErrorType(Enum):
    """Classified failure kinds reported by a run."""

    NOT_FOUND = "404 Not Found"
    SERVER_ERROR = "500 Internal Server Error"
    HTTP_OTHER = "HTTP Error"
    TIMEOUT = "Timeout"
    DNS_ERROR = "DNS Error"
    SSL_ERROR = "SSL Error"
    NETWORK_ERROR = "Network Error"
    SOFT_404 = "Soft 404"
    # Metadata hygiene
    MISSING_CANONICAL = "Missing Canonical URL"
    DUPLICATE_CANONICAL = "Duplicate Canonical URLs"
    INVALID_CANONICAL = "Invalid Canonical URL"
    MISSING_DESCRIPTION = "Missing Meta Description"
    MISSING_TITLE = "Missing Page Title"
    MISSING_SOCIAL_METADATA = "Missing Open Graph Tags"

    @property
    def is_link_error(self) -> bool:
        """True for reachability failures, False for metadata findings."""
        return self in _LINK_ERRORS


_LINK_ERRORS = {
    ErrorType.NOT_FOUND,
    ErrorType.SERVER_ERROR,
    ErrorType.HTTP_OTHER,
    ErrorType.TIMEOUT,
    ErrorType.DNS_ERROR,
    ErrorType.SSL_ERROR,
    ErrorType.NETWORK_ERROR,
    ErrorType.SOFT_404,
}


class LinkStatus(Enum):
    """Lifecycle of a discovered link."""

    PENDING = "pending"
    CHECKING = "checking"
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


TERMINAL_STATUSES = {LinkStatus.SUCCESS, LinkStatus.ERROR, LinkStatus.SKIPPED}


@dataclass
class CheckError:
    """A failure found by validation or a page check."""

    type: ErrorType
    url: str
    message: str
    status_code: Optional[int] = None
    source_pages: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "url": self.url,
            "message": self.message,
            "status_code": self.status_code,
            "source_pages": list(self.source_pages),
        }


@dataclass
class CheckWarning:
    """A non-fatal finding; never counts towards broken totals."""

    type: str
    message: str
    url: str


@dataclass
class CheckResult:
    """Errors and warnings produced by one check."""

    errors: List[CheckError] = field(default_factory=list)
    warnings: List[CheckWarning] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.errors


@dataclass
class LinkRecord:
    """A discovered link, keyed by its normalized URL."""

    url: str
    source_pages: Set[str] = field(default_factory=set)
    status: LinkStatus = LinkStatus.PENDING
    error: Optional[CheckError] = None
    skip_reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of validating one URL."""

    success: bool
    error: Optional[CheckError] = None
    attempts: int = 1

    @classmethod
    def ok(cls, attempts: int = 1) -> "ValidationOutcome":
        return cls(success=True, attempts=attempts)

    @classmethod
    def failed(cls, error: CheckError, attempts: int = 1) -> "ValidationOutcome":
        return cls(success=False, error=error, attempts=attempts)


@dataclass
class CheckCounter:
    """Checked/passed/failed tally for one metadata check."""

    checked: int = 0
    passed: int = 0
    failed: int = 0

    def record(self, passed: bool) -> None:
        self.checked += 1
        if passed:
            self.passed += 1
        else:
            self.failed += 1


@dataclass
class RunStats:
    """Monotonic counters for a single run."""

    pages_crawled: int = 0
    links_checked: int = 0
    links_broken: int = 0
    links_skipped: int = 0
    seo_checked: int = 0
    seo_errors: int = 0
    canonical_url: CheckCounter = field(default_factory=CheckCounter)
    meta_description: CheckCounter = field(default_factory=CheckCounter)
    page_title: CheckCounter = field(default_factory=CheckCounter)
    social_metadata: CheckCounter = field(default_factory=CheckCounter)
    started_at: float = field(default_factory=time.time)
    ended_at: Optional[float] = None

    def finish(self, now: Optional[float] = None) -> None:
        """Set the end timestamp; later calls keep the first value."""
        if self.ended_at is None:
            self.ended_at = now if now is not None else time.time()

    @property
    def duration_seconds(self) -> float:
        end = self.ended_at if self.ended_at is not None else time.time()
        return max(0.0, end - self.started_at)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["duration_seconds"] = round(self.duration_seconds, 3)
        return data


@dataclass(frozen=True)
class ReportPayload:
    """Immutable final report of a run."""

    config: Dict[str, Any]
    stats: Dict[str, Any]
    errors: Tuple[CheckError, ...]
    timestamp: str

    @property
    def has_failures(self) -> bool:
        return len(self.errors) > 0

    def errors_by_type(self) -> Dict[ErrorType, List[CheckError]]:
        """Group errors by kind, keeping first-seen order of kinds."""
        grouped: Dict[ErrorType, List[CheckError]] = {}
        for error in self.errors:
            grouped.setdefault(error.type, []).append(error)
        return grouped

    def to_dict(self) -> Dict[str, Any]:
        return {
            "config": self.config,
            "stats": self.stats,
            "errors": [error.to_dict() for error in self.errors],
            "timestamp": self.timestamp,
        }
