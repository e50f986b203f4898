"""Assemble the immutable end-of-run report."""

import copy
from datetime import datetime
from typing import Optional, Sequence

from shipcheck.config import CrawlConfig
from shipcheck.frontier import LinkFrontier
from shipcheck.models import CheckError, ReportPayload, RunStats

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def build_report(
    config: CrawlConfig,
    stats: RunStats,
    frontier: LinkFrontier,
    page_errors: Sequence[CheckError] = (),
    now: Optional[datetime] = None,
) -> ReportPayload:
    """Snapshot a finished run into a ReportPayload.

    Link errors come first in frontier discovery order, followed by page
    metadata errors in crawl order. Nothing here performs I/O, and later
    changes to the inputs do not leak into the payload.

    Args:
        config: Run configuration
        stats: Run statistics (should already be finished)
        frontier: Run frontier
        page_errors: Metadata errors collected while crawling
        now: Report time (defaults to the current local time)

    Returns:
        Immutable report payload
    """
    errors = [
        copy.deepcopy(record.error)
        for record in frontier.errors()
    ]
    errors.extend(copy.deepcopy(error) for error in page_errors)

    timestamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)

    return ReportPayload(
        config=copy.deepcopy(config.to_dict()),
        stats=stats.to_dict(),
        errors=tuple(errors),
        timestamp=timestamp,
    )
