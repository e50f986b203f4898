"""Tests for the link frontier."""

import pytest

from shipcheck.frontier import LinkFrontier
from shipcheck.models import CheckError, ErrorType, LinkStatus, ValidationOutcome


class TestAddDiscoveredLink:
    """Test cases for link registration and deduplication."""

    def test_same_url_two_sources_one_record(self):
        """Test variants of one URL found on two pages share a record."""
        frontier = LinkFrontier()
        frontier.add_discovered_link("https://x.test/a/", "https://x.test/")
        frontier.add_discovered_link("https://x.test/a?utm=1", "https://x.test/b")

        assert len(frontier) == 1
        record = frontier.get("https://x.test/a")
        assert record.source_pages == {"https://x.test/", "https://x.test/b"}
        assert record.status == LinkStatus.PENDING

    def test_idempotent(self):
        """Test repeating a registration changes nothing."""
        frontier = LinkFrontier()
        first = frontier.add_discovered_link("https://x.test/a", "https://x.test/")
        second = frontier.add_discovered_link("https://x.test/a", "https://x.test/")

        assert first is second
        assert len(frontier) == 1
        assert first.source_pages == {"https://x.test/"}

    def test_order_independent(self):
        """Test registration order does not change the resulting sources."""
        a = LinkFrontier()
        a.add_discovered_link("https://x.test/a", "p1")
        a.add_discovered_link("https://x.test/a", "p2")
        b = LinkFrontier()
        b.add_discovered_link("https://x.test/a", "p2")
        b.add_discovered_link("https://x.test/a", "p1")

        assert a.get("https://x.test/a").source_pages == b.get("https://x.test/a").source_pages

    def test_contains_normalizes(self):
        """Test membership uses the normalized URL."""
        frontier = LinkFrontier()
        frontier.add_discovered_link("https://x.test/a", "p")
        assert "https://x.test/a/#top" in frontier


class TestStatusTransitions:
    """Test cases for record lifecycle."""

    def test_success_path(self):
        """Test pending -> checking -> success."""
        frontier = LinkFrontier()
        record = frontier.add_discovered_link("https://x.test/a", "p")
        frontier.start_checking(record)
        frontier.resolve(record, ValidationOutcome.ok())

        assert record.status == LinkStatus.SUCCESS
        assert record.error is None
        assert record.is_terminal

    def test_error_copies_sorted_sources(self):
        """Test a failed record's error carries every source page."""
        frontier = LinkFrontier()
        record = frontier.add_discovered_link("https://x.test/a", "https://x.test/z")
        frontier.add_discovered_link("https://x.test/a", "https://x.test/b")
        error = CheckError(type=ErrorType.NOT_FOUND, url="https://x.test/a/", message="404")

        frontier.start_checking(record)
        frontier.resolve(record, ValidationOutcome.failed(error))

        assert record.status == LinkStatus.ERROR
        assert record.error.url == "https://x.test/a"
        assert record.error.source_pages == ["https://x.test/b", "https://x.test/z"]
        assert error.source_pages == []

    def test_skipped(self):
        """Test skipped records are terminal and not pending."""
        frontier = LinkFrontier()
        record = frontier.add_discovered_link("https://x.test/admin", "p")
        frontier.mark_skipped(record, "excluded by pattern")

        assert record.status == LinkStatus.SKIPPED
        assert record.skip_reason == "excluded by pattern"
        assert frontier.pending() == []

    def test_resolve_requires_checking(self):
        """Test resolving a pending record is rejected."""
        frontier = LinkFrontier()
        record = frontier.add_discovered_link("https://x.test/a", "p")
        with pytest.raises(ValueError):
            frontier.resolve(record, ValidationOutcome.ok())

    def test_cannot_check_skipped(self):
        """Test a skipped record cannot be checked."""
        frontier = LinkFrontier()
        record = frontier.add_discovered_link("https://x.test/a", "p")
        frontier.mark_skipped(record, "excluded by pattern")
        with pytest.raises(ValueError):
            frontier.start_checking(record)


class TestQueries:
    """Test cases for frontier queries and bookkeeping."""

    def test_errors_in_discovery_order(self):
        """Test errors() lists failed records in discovery order."""
        frontier = LinkFrontier()
        urls = ["https://x.test/c", "https://x.test/a", "https://x.test/b"]
        for url in urls:
            frontier.add_discovered_link(url, "p")

        for record in frontier.pending():
            frontier.start_checking(record)
            error = CheckError(type=ErrorType.NOT_FOUND, url=record.url, message="404")
            frontier.resolve(record, ValidationOutcome.failed(error))

        assert [r.url for r in frontier.errors()] == urls

    def test_counts(self):
        """Test counts() tallies every status."""
        frontier = LinkFrontier()
        skipped = frontier.add_discovered_link("https://x.test/s", "p")
        frontier.mark_skipped(skipped, "excluded by pattern")
        frontier.add_discovered_link("https://x.test/p", "p")

        counts = frontier.counts()
        assert counts["skipped"] == 1
        assert counts["pending"] == 1
        assert counts["success"] == 0

    def test_crawl_bookkeeping_and_clear(self):
        """Test crawled tracking and teardown."""
        frontier = LinkFrontier()
        frontier.add_discovered_link("https://x.test/a", "p")
        frontier.mark_crawled("https://x.test/a/")

        assert frontier.is_crawled("https://x.test/a")
        assert frontier.crawled_count == 1

        frontier.clear()
        assert len(frontier) == 0
        assert not frontier.is_crawled("https://x.test/a")
