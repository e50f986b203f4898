"""Tests for report assembly and the console/Markdown reporters."""

from datetime import datetime

from shipcheck.config import CrawlConfig
from shipcheck.frontier import LinkFrontier
from shipcheck.models import CheckError, ErrorType, RunStats, ValidationOutcome
from shipcheck.report import build_report
from shipcheck.reporters import (
    MarkdownReporter,
    format_duration,
    print_console_report,
    save_markdown_report,
)
from shipcheck.reporters.console import format_sources, success_rate

NOW = datetime(2024, 1, 2, 3, 4, 5)


def failed_frontier() -> LinkFrontier:
    frontier = LinkFrontier()
    for url, status in [("https://x.test/ok", None), ("https://x.test/gone", 404)]:
        record = frontier.add_discovered_link(url, "https://x.test/")
        frontier.start_checking(record)
        if status is None:
            frontier.resolve(record, ValidationOutcome.ok())
        else:
            error = CheckError(ErrorType.NOT_FOUND, url, "HTTP 404: Not Found", status_code=404)
            frontier.resolve(record, ValidationOutcome.failed(error))
    return frontier


def finished_stats(**counts) -> RunStats:
    stats = RunStats(started_at=100.0, **counts)
    stats.finish(now=165.0)
    return stats


class TestBuildReport:
    """Test cases for build_report."""

    def test_link_errors_before_page_errors(self):
        """Test link errors come first, then metadata errors."""
        page_error = CheckError(ErrorType.MISSING_TITLE, "https://x.test/", "Page has no title")
        report = build_report(
            CrawlConfig(url="https://x.test/"),
            finished_stats(links_checked=2, links_broken=1),
            failed_frontier(),
            [page_error],
            now=NOW,
        )

        assert [e.type for e in report.errors] == [ErrorType.NOT_FOUND, ErrorType.MISSING_TITLE]
        assert report.errors[0].source_pages == ["https://x.test/"]
        assert report.timestamp == "2024-01-02 03:04:05"
        assert report.has_failures

    def test_snapshot_survives_teardown(self):
        """Test the payload is unaffected by clearing the frontier or editing config."""
        config = CrawlConfig(url="https://x.test/", exclude_patterns=["/a/*"])
        frontier = failed_frontier()
        report = build_report(config, finished_stats(), frontier, now=NOW)

        frontier.clear()
        config.exclude_patterns.append("/b/*")

        assert len(report.errors) == 1
        assert report.config["exclude_patterns"] == ["/a/*"]

    def test_clean_run(self):
        """Test a run without errors has no failures."""
        report = build_report(CrawlConfig(url="https://x.test/"), finished_stats(), LinkFrontier(), now=NOW)
        assert not report.has_failures
        assert report.stats["duration_seconds"] == 65.0


class TestConsoleReporter:
    """Test cases for the console reporter."""

    def test_format_duration(self):
        """Test short and minute-long durations."""
        assert format_duration(42.7) == "42s"
        assert format_duration(185) == "3m 5s"

    def test_success_rate(self):
        """Test the rate is a percentage and undefined when nothing was checked."""
        assert success_rate(4, 1) == 75.0
        assert success_rate(0, 0) is None

    def test_format_sources_truncates(self):
        """Test long source lists are truncated with a count."""
        assert format_sources([]) == "(unknown)"
        assert format_sources(["a", "b", "c", "d", "e"]) == "a, b, c (+2 more)"

    def test_prints_grouped_errors(self, capsys):
        """Test failures are printed grouped by type with their sources."""
        report = build_report(
            CrawlConfig(url="https://x.test/"),
            finished_stats(pages_crawled=1, links_checked=2, links_broken=1),
            failed_frontier(),
            now=NOW,
        )

        print_console_report(report, report_path=".check-shipment/report.md")
        out = capsys.readouterr().out

        assert "Success Rate:   50.0%" in out
        assert "❌ Found 1 problem:" in out
        assert "404 Not Found (1):" in out
        assert "  • https://x.test/gone" in out
        assert "Found on: https://x.test/" in out
        assert "📄 Report saved to: .check-shipment/report.md" in out

    def test_prints_success(self, capsys):
        """Test a clean run prints the success line."""
        report = build_report(CrawlConfig(url="https://x.test/"), finished_stats(), LinkFrontier(), now=NOW)
        print_console_report(report)
        out = capsys.readouterr().out

        assert "✅ No broken links found!" in out
        assert "Success Rate" not in out


class TestMarkdownReporter:
    """Test cases for the Markdown reporter."""

    def test_save_writes_timestamped_file(self, tmp_path):
        """Test the report is written under the report directory."""
        report = build_report(
            CrawlConfig(url="https://x.test/"),
            finished_stats(links_checked=2, links_broken=1),
            failed_frontier(),
            now=NOW,
        )

        path = save_markdown_report(report, str(tmp_path / "reports"))

        assert path == tmp_path / "reports" / "report-2024-01-02_030405.md"
        content = path.read_text(encoding="utf-8")
        assert "**Start URL:** https://x.test/" in content
        assert "## Problems (1)" in content
        assert "### 404 Not Found (1)" in content
        assert "| https://x.test/gone | HTTP 404: Not Found | https://x.test/ |" in content
        assert "## Metadata Checks" not in content

    def test_metadata_section(self, tmp_path):
        """Test the metadata table appears when pages were checked."""
        stats = finished_stats(seo_checked=3, seo_errors=1)
        stats.page_title.record(True)
        report = build_report(CrawlConfig(url="https://x.test/"), stats, LinkFrontier(), now=NOW)

        content = MarkdownReporter().render(report)

        assert "## Metadata Checks" in content
        assert "| Page Title | 1 | 1 | 0 |" in content
        assert "✅ No broken links found!" in content
