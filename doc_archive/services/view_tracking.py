"""
View Tracking Service

Page visits are recorded in two steps:

1. `track_document_view` appends a row to the `view_queue` table on every
   viewer request. It must never slow down or break the page, so every
   failure is logged and swallowed.
2. `process_view_queue` is run by an external scheduler (see the
   `/api/cron/process-views` endpoint). It copies pending queue rows into
   `document_views`, keeping their enqueue timestamps, and removes them from
   the queue. Failures propagate so the scheduler sees a 500 and the queue
   stays intact for the next attempt.
"""

import logging
import sqlite3
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict

from ..database import enqueue_view, drain_view_queue, count_queued_views
from ..exceptions import DatabaseError

logger = logging.getLogger(__name__)


@dataclass
class DrainResult:
    processed: int
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def track_document_view(document_id: str) -> bool:
    """
    Queue one view of `document_id`.

    Returns:
        bool: True if the row was queued. Never raises.
    """
    try:
        enqueue_view(document_id)
        return True
    except Exception as e:
        logger.error(f"Failed to track view for {document_id}: {e}")
        return False


def pending_view_count() -> int:
    return count_queued_views()


def process_view_queue() -> DrainResult:
    """
    Drain the view queue into permanent view records.

    Returns:
        DrainResult: `processed` is 0 when the queue was empty.

    Raises:
        DatabaseError: If the drain failed. Nothing was removed from the queue.
    """
    try:
        processed = drain_view_queue()
    except sqlite3.Error as e:
        logger.error(f"Failed to process view queue: {e}")
        raise DatabaseError("Failed to process view queue", details=str(e)) from e

    if processed:
        logger.info(f"Drained {processed} queued views into document_views")
    else:
        logger.debug("View queue empty; nothing to drain")
    return DrainResult(processed=processed, timestamp=datetime.now(timezone.utc).isoformat())
