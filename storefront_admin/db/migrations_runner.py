"""Lightweight SQL migrations runner.

Applies ``.sql`` files in lexical order from a migrations directory (by
default the one shipped inside this package). Rollback scripts are skipped.
Applied filenames are recorded in a JSON journal so reruns are no-ops; the
journal location can be moved out of the package with ``journal_path``.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


def _iter_sql_files(root: Path) -> Iterable[Path]:
    for p in sorted(root.glob("*.sql")):
        if "rollback" in p.name.lower():
            continue
        yield p


def _exec_sql_compat(conn: Connection, sql: str) -> None:
    """Execute a possibly multi-statement SQL script.

    pysqlite refuses several statements per execute(), so on SQLite the
    script goes through the DB-API ``executescript``. Other dialects receive
    the script as-is.
    """
    if conn.dialect.name == "sqlite":
        raw = conn.connection.driver_connection
        if raw is not None and hasattr(raw, "executescript"):
            raw.executescript(sql)
            return
        for stmt in sql.split(";"):
            s = stmt.strip()
            if not s or s.startswith("--"):
                continue
            if s.upper() in {"BEGIN", "COMMIT", "END"}:
                continue
            conn.exec_driver_sql(s)
        return
    conn.exec_driver_sql(sql)


def _load_journal(journal_path: Path) -> list[dict]:
    if not journal_path.exists():
        return []
    try:
        data = json.loads(journal_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        logger.error("migration_journal_parse_failed path=%s", str(journal_path), exc_info=True)
        return []
    if not isinstance(data, list):
        return []
    return [e for e in data if isinstance(e, dict)]


def apply_migrations(
    engine: Engine,
    migrations_dir: str | os.PathLike[str] | None = None,
    journal_path: str | os.PathLike[str] | None = None,
) -> list[str]:
    """Apply pending migrations and return the filenames applied this run."""
    root = Path(migrations_dir) if migrations_dir else MIGRATIONS_DIR
    if not root.exists():
        logger.warning("migrations_dir_missing path=%s", str(root))
        return []

    journal = Path(journal_path) if journal_path else root / "_journal.json"
    entries = _load_journal(journal)
    applied = {Path(str(e.get("filename", ""))).name for e in entries}
    newly_applied: list[str] = []

    with engine.begin() as conn:
        for sql_path in _iter_sql_files(root):
            fname = sql_path.name
            if fname in applied:
                continue
            sql = sql_path.read_text(encoding="utf-8")
            if not sql.strip():
                continue
            _exec_sql_compat(conn, sql)
            logger.info("migration_applied file=%s", fname)
            entries.append(
                {
                    "filename": f"migrations/{fname}",
                    # ISO-8601 UTC without fractional seconds
                    "applied_at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
                }
            )
            newly_applied.append(fname)
            _atomic_write_json(journal, entries)
    return newly_applied


def _atomic_write_json(path: Path, content: list[dict]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(json.dumps(content, ensure_ascii=False, indent=2), encoding="utf-8")
    os.replace(tmp_path, path)
