"""Central error mapping for the categories API.

Single source of truth for mapping domain failures to problem+json codes
and HTTP statuses. Route modules import from here instead of hardcoding
strings or numbers.
"""

from __future__ import annotations

CATEGORY_ERROR_MAP = {
    "not_found": {"code": "CATEGORY_NOT_FOUND", "status": 404, "title": "Not Found"},
    "reorder_unknown_id": {"code": "REORDER_UNKNOWN_ID", "status": 422, "title": "Unprocessable Entity"},
    "reorder_persistence_failed": {"code": "REORDER_PERSISTENCE_FAILED", "status": 503, "title": "Service Unavailable"},
}

__all__ = ["CATEGORY_ERROR_MAP"]
