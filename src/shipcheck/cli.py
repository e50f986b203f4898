"""Command-line interface for ship-check."""

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from shipcheck.config import (
    CrawlConfig,
    apply_defaults,
    load_config_file,
    merge_config,
    parse_pattern_list,
    settings,
)
from shipcheck.crawler import crawl
from shipcheck.exceptions import (
    ConfigValidationError,
    ShipCheckError,
    StartUrlUnreachableError,
)
from shipcheck.logging_config import setup_logging
from shipcheck.reporters import print_console_report, save_markdown_report

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_FATAL = 2

EPILOG = """
Examples:
  # Check a local build
  ship-check --url http://localhost:3000

  # Exclude admin and API routes
  ship-check --url http://localhost:3000 --exclude-patterns "/admin/*,/api/*"

  # Test a local build whose pages link to production
  ship-check --url http://localhost:3000 \\
      --replace-from https://example.com --replace-to http://localhost:3000

Config files:
  check-shipment.config.yaml, .yml or .json in the current directory or the
  project root. Command-line options take precedence.

Reports:
  Reports are saved to .check-shipment/report-[timestamp].md
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ship-check",
        description="ship-check - Validate a website for broken links before deployment",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("-u", "--url", help="Start URL to crawl")
    parser.add_argument(
        "-c", "--concurrency", type=int,
        help="Number of pages/links processed concurrently (default: 3)",
    )
    parser.add_argument(
        "-t", "--timeout", type=int,
        help="Request timeout in seconds (default: 60)",
    )
    parser.add_argument(
        "-r", "--retry-count", type=int,
        help="Retries for network failures (default: 3)",
    )
    parser.add_argument(
        "-e", "--exclude-patterns",
        help="Comma-separated glob patterns to exclude (e.g. '/admin/*,*.pdf')",
    )
    parser.add_argument("--replace-from", help="Domain to replace in discovered links")
    parser.add_argument("--replace-to", help="Replacement domain for discovered links")
    parser.add_argument(
        "--use-sitemap", action="store_true", default=None,
        help="Seed the crawl from the site's sitemap.xml",
    )
    parser.add_argument("--sitemap-url", help="Explicit sitemap URL (implies --use-sitemap)")
    parser.add_argument(
        "--max-pages", type=int,
        help="Maximum pages rendered in the browser (default: 1000)",
    )
    parser.add_argument(
        "--check-seo", dest="check_metadata", action="store_true", default=None,
        help="Also check canonical URL, description, title and Open Graph tags",
    )
    parser.add_argument(
        "--no-fail", action="store_true", default=None,
        help="Exit with code 0 even when problems are found",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", default=None,
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to file in addition to console",
    )
    parser.add_argument(
        "--report-dir",
        help=f"Directory for Markdown reports (default: {settings.REPORT_DIR})",
    )
    return parser


def cli_values(args: argparse.Namespace) -> Dict[str, Any]:
    """Collect the config fields set on the command line."""
    values = {
        "url": args.url,
        "concurrency": args.concurrency,
        "timeout": args.timeout,
        "retry_count": args.retry_count,
        "exclude_patterns": (
            parse_pattern_list(args.exclude_patterns)
            if args.exclude_patterns is not None else None
        ),
        "replace_from": args.replace_from,
        "replace_to": args.replace_to,
        "use_sitemap": args.use_sitemap,
        "sitemap_url": args.sitemap_url,
        "max_pages": args.max_pages,
        "check_metadata": args.check_metadata,
        "no_fail": args.no_fail,
        "verbose": args.verbose,
    }
    return values


def print_configuration(config: CrawlConfig) -> None:
    print("\n⚙️  Configuration:")
    print(f"  URL:         {config.url}")
    print(f"  Concurrency: {config.concurrency}")
    print(f"  Timeout:     {config.timeout}s")
    print(f"  Retry Count: {config.retry_count}")
    if config.exclude_patterns:
        print(f"  Exclude:     {', '.join(config.exclude_patterns)}")
    if config.replace_from and config.replace_to:
        print(f"  Replace:     {config.replace_from} → {config.replace_to}")
    if config.use_sitemap or config.sitemap_url:
        print("  Use Sitemap: Yes")
        if config.sitemap_url:
            print(f"  Sitemap URL: {config.sitemap_url}")
    if config.check_metadata:
        print("  SEO Checks:  Yes")
    print()


def print_error(title: str, detail: Optional[str] = None) -> None:
    print(f"\n❌ {title}", file=sys.stderr)
    if detail:
        print(f"   {detail}", file=sys.stderr)
    print(file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        0 on success (or with --no-fail), 1 when problems were found,
        2 on configuration or startup errors
    """
    parser = build_parser()
    if argv is None:
        argv = sys.argv[1:]
    if not argv:
        parser.print_help()
        return EXIT_OK

    args = parser.parse_args(argv)

    try:
        merged = merge_config(cli_values(args), load_config_file())
        config = apply_defaults(merged)
        config.validate()
    except ConfigValidationError as e:
        print_error("Invalid configuration", str(e))
        return EXIT_FATAL

    setup_logging(
        level="DEBUG" if config.verbose else settings.LOG_LEVEL,
        log_file=args.log_file or settings.LOG_FILE,
    )
    print_configuration(config)

    try:
        report = asyncio.run(crawl(config))
    except StartUrlUnreachableError as e:
        print_error(str(e))
        return EXIT_FATAL
    except ShipCheckError as e:
        print_error("Run failed", str(e))
        return EXIT_FATAL
    except Exception as e:
        logger.exception(f"Unexpected error while checking {config.url}")
        print_error("An error occurred", str(e) or type(e).__name__)
        return EXIT_FATAL

    report_path = save_markdown_report(report, args.report_dir)
    print_console_report(report, report_path=str(report_path))

    if report.has_failures and not config.no_fail:
        return EXIT_FAILURES
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
