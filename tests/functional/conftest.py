from __future__ import annotations

"""Functional test bootstrap.

Points the service at a file-backed SQLite database in a temp directory
before anything imports ``storefront_admin``, applies the packaged
migrations once per session, and empties the tables before every test.
"""

import os
import tempfile
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

import pytest

_TMP_DIR = Path(tempfile.mkdtemp(prefix="storefront_admin_tests_"))
_DB_FILE = _TMP_DIR / "functional_tests.db"

# Use a file-backed SQLite DB so worker threads share state across connections
os.environ["TEST_DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]
# Startup migrations stay off; the session fixture applies them explicitly
os.environ["AUTO_APPLY_MIGRATIONS"] = "0"
os.environ.pop("REORDER_STRATEGY", None)

from sqlalchemy import text as sql_text  # noqa: E402

from storefront_admin.db.base import get_engine  # noqa: E402
from storefront_admin.db.migrations_runner import apply_migrations  # noqa: E402
from storefront_admin.logic import events  # noqa: E402

TIMESTAMP = "2024-01-01T00:00:00Z"


@pytest.fixture(scope="session", autouse=True)
def functional_sqlite_bootstrap() -> None:
    """Session-level bootstrap: apply migrations once for the shared DB."""
    engine = get_engine(os.environ["TEST_DATABASE_URL"])
    apply_migrations(engine, journal_path=_TMP_DIR / "_journal.json")
    yield
    engine.dispose()


@pytest.fixture(autouse=True)
def clean_tables(functional_sqlite_bootstrap) -> None:
    with get_engine().begin() as conn:
        conn.execute(sql_text("DELETE FROM products"))
        conn.execute(sql_text("DELETE FROM categories"))
    events.EVENT_BUFFER.clear()
    yield


@pytest.fixture
def seed_categories() -> Callable[..., Dict[str, str]]:
    """Insert categories directly; returns name -> id.

    Ids are derived from names (``cat-<name>``) so assertions stay readable.
    """

    def _seed(names: Iterable[str], ranks: Optional[Iterable[int]] = None) -> Dict[str, str]:
        names = list(names)
        ranks = list(ranks) if ranks is not None else list(range(len(names)))
        ids: Dict[str, str] = {}
        with get_engine().begin() as conn:
            for name, rank in zip(names, ranks):
                cid = f"cat-{name}"
                conn.execute(
                    sql_text(
                        "INSERT INTO categories (id, name, description, display_order, created_at, updated_at) "
                        "VALUES (:id, :name, :desc, :rank, :ts, :ts)"
                    ),
                    {"id": cid, "name": name, "desc": f"{name} items", "rank": rank, "ts": TIMESTAMP},
                )
                ids[name] = cid
        return ids

    return _seed


@pytest.fixture
def seed_product() -> Callable[..., str]:
    def _seed(sku: str, category_id: Optional[str]) -> str:
        pid = f"prd-{sku}"
        with get_engine().begin() as conn:
            conn.execute(
                sql_text(
                    "INSERT INTO products (id, name, sku, price, inventory, category_id, created_at, updated_at) "
                    "VALUES (:id, :name, :sku, 9.99, 5, :cid, :ts, :ts)"
                ),
                {"id": pid, "name": f"Product {sku}", "sku": sku, "cid": category_id, "ts": TIMESTAMP},
            )
        return pid

    return _seed


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from storefront_admin.main import create_app

    with TestClient(create_app()) as test_client:
        yield test_client
