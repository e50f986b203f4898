"""Root logger setup for ship-check runs.

Progress lines (``CRAWL <url>``, ``OK <url>``, queue status) go to stdout in
a compact form; an optional log file gets timestamped records with the
logger name for later inspection.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

CONSOLE_FORMAT = '%(levelname)-7s %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Per-request chatter from the HTTP stack, the browser driver and the event loop
QUIET_LOGGERS = ('httpx', 'httpcore', 'asyncio', 'playwright')


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
) -> None:
    """Route ship-check logs to the console and optionally a file.

    Args:
        level: Level name; unknown names fall back to INFO
        log_file: Also append records here, creating parent directories
        format_string: Replaces both the console and the file format
    """
    run_level = getattr(logging, level.upper(), logging.INFO)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter(format_string or CONSOLE_FORMAT))
    handlers: List[logging.Handler] = [console]

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        to_file = logging.FileHandler(log_file, encoding="utf-8")
        to_file.setFormatter(logging.Formatter(format_string or FILE_FORMAT))
        handlers.append(to_file)

    logging.basicConfig(level=run_level, handlers=handlers, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
