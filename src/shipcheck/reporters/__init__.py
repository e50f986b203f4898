"""Report writers for finished runs."""

from shipcheck.reporters.console import format_duration, print_console_report
from shipcheck.reporters.markdown import MarkdownReporter, save_markdown_report

__all__ = [
    "format_duration",
    "print_console_report",
    "MarkdownReporter",
    "save_markdown_report",
]
