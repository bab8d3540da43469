"""Database bootstrap utilities.

Exposes engine construction and the SQL migrations runner that applies the
files under ``db/migrations/``. Repositories work with SQL text over the
shared engine; no ORM models leak into route handlers.
"""

from storefront_admin.db.base import get_engine, reset_engine
from storefront_admin.db.migrations_runner import MIGRATIONS_DIR, apply_migrations

__all__ = [
    "get_engine",
    "reset_engine",
    "apply_migrations",
    "MIGRATIONS_DIR",
]
