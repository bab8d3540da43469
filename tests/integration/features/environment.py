"""Behave environment hooks for category reorder integration tests.

Runs the API in-process through Starlette's TestClient against a
file-backed SQLite database in a temp directory. Migrations are applied
once; every scenario starts from empty tables.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

_TMP_DIR = Path(tempfile.mkdtemp(prefix="storefront_admin_behave_"))
os.environ["TEST_DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'integration.db'}"
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]
os.environ["AUTO_APPLY_MIGRATIONS"] = "1"
os.environ["MIGRATIONS_JOURNAL"] = str(_TMP_DIR / "_journal.json")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import text as sql_text  # noqa: E402

from storefront_admin.db.base import get_engine, reset_engine  # noqa: E402
from storefront_admin.logic import events  # noqa: E402
from storefront_admin.main import create_app  # noqa: E402


def before_all(context: Any) -> None:  # pragma: no cover - executed by Behave
    context.client = TestClient(create_app())
    # Entering the client runs startup hooks, which apply the migrations
    context.client.__enter__()
    context.api = "/api/v1/categories"


def before_scenario(context: Any, scenario: Any) -> None:  # pragma: no cover
    with get_engine().begin() as conn:
        conn.execute(sql_text("DELETE FROM products"))
        conn.execute(sql_text("DELETE FROM categories"))
    events.EVENT_BUFFER.clear()
    context.ids = {}
    context.response = None


def after_all(context: Any) -> None:  # pragma: no cover
    context.client.__exit__(None, None, None)
    reset_engine()
    shutil.rmtree(_TMP_DIR, ignore_errors=True)
