"""Markdown report rendered with Jinja2 and saved under the report directory."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader

from shipcheck.config import settings
from shipcheck.models import ReportPayload
from shipcheck.report import TIMESTAMP_FORMAT
from shipcheck.reporters.console import format_duration, format_sources, success_rate

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"
TEMPLATE_NAME = "report.md.j2"
FILENAME_TIMESTAMP_FORMAT = "%Y-%m-%d_%H%M%S"


class MarkdownReporter:
    """Renders ReportPayloads to Markdown."""

    def __init__(self, template_dir: Optional[str] = None):
        """Initialize the reporter.

        Args:
            template_dir: Directory containing the report template
        """
        template_path = Path(template_dir) if template_dir else TEMPLATE_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(template_path)),
            keep_trailing_newline=True,
        )
        self.env.filters['duration'] = format_duration
        self.env.filters['sources'] = format_sources

    def render(self, report: ReportPayload) -> str:
        stats = report.stats
        template = self.env.get_template(TEMPLATE_NAME)
        return template.render(
            report=report,
            config=report.config,
            stats=stats,
            success_rate=success_rate(stats["links_checked"], stats["links_broken"]),
            errors_by_type=report.errors_by_type(),
        )

    @staticmethod
    def filename_for(report: ReportPayload) -> str:
        """Build ``report-YYYY-MM-DD_HHMMSS.md`` from the report timestamp."""
        stamp = datetime.strptime(report.timestamp, TIMESTAMP_FORMAT)
        return f"report-{stamp.strftime(FILENAME_TIMESTAMP_FORMAT)}.md"

    def save(self, report: ReportPayload, report_dir: Optional[str] = None) -> Path:
        """Render and write the report.

        Args:
            report: Finished run report
            report_dir: Output directory (defaults to SHIPCHECK_REPORT_DIR)

        Returns:
            Path of the written file
        """
        output_dir = Path(report_dir or settings.REPORT_DIR)
        output_dir.mkdir(parents=True, exist_ok=True)

        path = output_dir / self.filename_for(report)
        path.write_text(self.render(report), encoding="utf-8")
        logger.info(f"Markdown report saved to {path}")
        return path


def save_markdown_report(report: ReportPayload, report_dir: Optional[str] = None) -> Path:
    """Convenience wrapper around MarkdownReporter.save."""
    return MarkdownReporter().save(report, report_dir)
