"""Domain event constants and publisher.

Category writes publish an event after the store confirms them. Events are
logged and buffered in-process so tests can observe them.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Deque, Dict, List
import logging

logger = logging.getLogger(__name__)

CATEGORY_CREATED = "category.created"
CATEGORY_UPDATED = "category.updated"
CATEGORY_DELETED = "category.deleted"
CATEGORY_REORDERED = "category.reordered"
CATEGORY_REORDER_FAILED = "category.reorder_failed"

EVENT_BUFFER_MAXLEN = 1000

# In-memory buffer for domain events (test-only visibility); oldest dropped first
EVENT_BUFFER: Deque[Dict[str, Any]] = deque(maxlen=EVENT_BUFFER_MAXLEN)


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    logger.info("event_publish type=%s payload=%s", event_type, payload)
    EVENT_BUFFER.append({"type": event_type, "payload": payload})


def get_buffered_events(clear: bool = True) -> List[Dict[str, Any]]:
    """Return buffered domain events; optionally clear the buffer."""
    events = list(EVENT_BUFFER)
    if clear:
        EVENT_BUFFER.clear()
    return events


__all__ = [
    "CATEGORY_CREATED",
    "CATEGORY_UPDATED",
    "CATEGORY_DELETED",
    "CATEGORY_REORDERED",
    "CATEGORY_REORDER_FAILED",
    "EVENT_BUFFER",
    "EVENT_BUFFER_MAXLEN",
    "publish",
    "get_buffered_events",
]
