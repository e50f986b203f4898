"""Deduplicated registry of discovered links.

The frontier is owned by a single run and passed explicitly through the
crawl call chain. It holds exactly one LinkRecord per normalized URL.
"""

import logging
from collections import Counter
from dataclasses import replace
from typing import Dict, Iterator, List, Optional, Set

from shipcheck.models import LinkRecord, LinkStatus, ValidationOutcome
from shipcheck.urls import normalize_url

logger = logging.getLogger(__name__)


class LinkFrontier:
    """Keyed store of LinkRecords with source-page attribution."""

    def __init__(self):
        self._records: Dict[str, LinkRecord] = {}
        self._crawled: Set[str] = set()

    def add_discovered_link(self, url: str, source_page: str) -> LinkRecord:
        """Register a link found on ``source_page``.

        Creates a pending record on first sight; otherwise unions the source
        into the existing record. Repeating a call changes nothing.

        Args:
            url: Discovered URL (normalized here)
            source_page: Page on which the link was found

        Returns:
            The record for the normalized URL
        """
        normalized = normalize_url(url)
        record = self._records.get(normalized)

        if record is None:
            record = LinkRecord(url=normalized, source_pages={source_page})
            self._records[normalized] = record
            logger.debug(f"Discovered {normalized} (from {source_page})")
        else:
            record.source_pages.add(source_page)

        return record

    def get(self, url: str) -> Optional[LinkRecord]:
        return self._records.get(normalize_url(url))

    def __contains__(self, url: str) -> bool:
        return normalize_url(url) in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[LinkRecord]:
        return iter(list(self._records.values()))

    def records(self) -> List[LinkRecord]:
        """All records in discovery order."""
        return list(self._records.values())

    def pending(self) -> List[LinkRecord]:
        """Records not yet attempted, in discovery order."""
        return [r for r in self._records.values() if r.status == LinkStatus.PENDING]

    def errors(self) -> List[LinkRecord]:
        """Records with a populated error, in discovery order."""
        return [r for r in self._records.values() if r.error is not None]

    def counts(self) -> Dict[str, int]:
        """Number of records per status value."""
        counter = Counter(r.status.value for r in self._records.values())
        return {status.value: counter.get(status.value, 0) for status in LinkStatus}

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def mark_skipped(self, record: LinkRecord, reason: str) -> None:
        if record.status != LinkStatus.PENDING:
            raise ValueError(f"Cannot skip {record.url} in status {record.status.value}")
        record.status = LinkStatus.SKIPPED
        record.skip_reason = reason

    def start_checking(self, record: LinkRecord) -> None:
        if record.status != LinkStatus.PENDING:
            raise ValueError(f"Cannot check {record.url} in status {record.status.value}")
        record.status = LinkStatus.CHECKING

    def resolve(self, record: LinkRecord, outcome: ValidationOutcome) -> None:
        """Apply a validation outcome to a record in the checking state.

        On failure the record's source pages are copied into the error, so
        attribution reflects every page seen up to this point.
        """
        if record.status != LinkStatus.CHECKING:
            raise ValueError(f"Cannot resolve {record.url} in status {record.status.value}")

        if outcome.success:
            record.status = LinkStatus.SUCCESS
            return

        record.status = LinkStatus.ERROR
        if outcome.error is not None:
            # Outcomes may be shared through the response cache; never mutate them.
            record.error = replace(
                outcome.error,
                url=record.url,
                source_pages=sorted(record.source_pages),
            )

    # ------------------------------------------------------------------
    # Crawl bookkeeping
    # ------------------------------------------------------------------

    def mark_crawled(self, url: str) -> None:
        self._crawled.add(normalize_url(url))

    def is_crawled(self, url: str) -> bool:
        return normalize_url(url) in self._crawled

    @property
    def crawled_count(self) -> int:
        return len(self._crawled)

    def clear(self) -> None:
        """Drop all state at run teardown."""
        self._records.clear()
        self._crawled.clear()
