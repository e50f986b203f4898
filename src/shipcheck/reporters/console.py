"""Plain-text run summary printed to stdout."""

from typing import List, Optional

from shipcheck.models import CheckError, ReportPayload

MAX_SOURCES_SHOWN = 3
RULE = "━" * 80


def format_duration(seconds: float) -> str:
    """Format a duration as ``42s`` or ``3m 5s``."""
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    minutes, remaining = divmod(seconds, 60)
    return f"{minutes}m {remaining}s"


def format_sources(sources: List[str], limit: int = MAX_SOURCES_SHOWN) -> str:
    """Join up to ``limit`` source pages, noting how many were left out."""
    if not sources:
        return "(unknown)"
    shown = ", ".join(sources[:limit])
    if len(sources) > limit:
        shown += f" (+{len(sources) - limit} more)"
    return shown


def success_rate(links_checked: int, links_broken: int) -> Optional[float]:
    """Percentage of checked links that resolved, or None if none were checked."""
    if links_checked == 0:
        return None
    return (links_checked - links_broken) / links_checked * 100


def print_console_report(report: ReportPayload, report_path: Optional[str] = None) -> None:
    """Print the summary and grouped errors of a finished run.

    Args:
        report: Finished run report
        report_path: Where the Markdown report was saved, if anywhere
    """
    config = report.config
    stats = report.stats

    print(f"\n{RULE}")
    print("  ship-check Report")
    print(f"{RULE}\n")

    print("📊 Summary:")
    print(f"  Start URL:      {config['url']}")
    print(f"  Pages Crawled:  {stats['pages_crawled']}")
    print(f"  Links Checked:  {stats['links_checked']}")
    print(f"  Broken Links:   {stats['links_broken']}")
    if stats.get("links_skipped"):
        print(f"  Links Skipped:  {stats['links_skipped']}")

    rate = success_rate(stats["links_checked"], stats["links_broken"])
    if rate is not None:
        print(f"  Success Rate:   {rate:.1f}%")

    if stats.get("seo_checked"):
        print(f"  Pages with metadata issues: {stats['seo_errors']}/{stats['seo_checked']}")

    print(f"  Duration:       {format_duration(stats['duration_seconds'])}")
    print()

    if not report.has_failures:
        print("✅ No broken links found!\n")
    else:
        count = len(report.errors)
        print(f"❌ Found {count} problem{'s' if count != 1 else ''}:\n")
        for error_type, errors in report.errors_by_type().items():
            print(f"{error_type.value} ({len(errors)}):")
            for error in errors:
                _print_error(error)
            print()

    if report_path:
        print(f"📄 Report saved to: {report_path}\n")


def _print_error(error: CheckError) -> None:
    print(f"  • {error.url}")
    if error.message:
        print(f"      {error.message}")
    print(f"      Found on: {format_sources(error.source_pages)}")
