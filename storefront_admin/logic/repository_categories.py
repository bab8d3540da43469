"""Category data access helpers.

Module-level functions hold the SQL for the ``categories`` table so route
handlers stay free of persistence details. ``CategoryRepository`` adapts the
rank functions to the async ``OrderedRepository`` seam used by the reorder
engine; blocking calls run in a worker thread.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging
import uuid

import anyio
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from storefront_admin.db.base import get_engine
from storefront_admin.logic.ordered_repository import OrderedEntity, RepositoryError

logger = logging.getLogger(__name__)

_COLUMNS = "c.id, c.name, c.description, c.display_order, c.created_at, c.updated_at"
_ORDER_BY = "ORDER BY c.display_order ASC, c.created_at ASC, c.id ASC"
UPDATABLE_FIELDS = ("name", "description")


class CategoryNotFound(LookupError):
    def __init__(self, category_id: str) -> None:
        super().__init__(f"category not found: {category_id}")
        self.category_id = category_id


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def _row_to_dict(row: Any) -> Dict[str, Any]:
    out = {
        "id": str(row[0]),
        "name": str(row[1]),
        "description": row[2],
        "display_order": int(row[3]),
        "created_at": str(row[4]),
        "updated_at": str(row[5]),
    }
    if len(row) > 6:
        out["product_count"] = int(row[6] or 0)
    return out


def _like_pattern(term: str) -> str:
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def list_categories(search: Optional[str] = None) -> List[Dict[str, Any]]:
    """List categories in display order with their product counts.

    ``search`` filters case-insensitively on name and description.
    """
    where = ""
    params: Dict[str, Any] = {}
    if search and search.strip():
        where = (
            "WHERE LOWER(c.name) LIKE :pat ESCAPE '\\' "
            "OR LOWER(COALESCE(c.description, '')) LIKE :pat ESCAPE '\\'"
        )
        params["pat"] = _like_pattern(search.strip())
    eng = get_engine()
    with eng.connect() as conn:
        rows = conn.execute(
            sql_text(
                f"""
                SELECT {_COLUMNS}, COALESCE(pc.cnt, 0)
                FROM categories c
                LEFT JOIN (
                    SELECT category_id, COUNT(*) AS cnt FROM products GROUP BY category_id
                ) pc ON pc.category_id = c.id
                {where}
                {_ORDER_BY}
                """
            ),
            params,
        ).fetchall()
    return [_row_to_dict(r) for r in rows]


def get_category(category_id: str) -> Optional[Dict[str, Any]]:
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(
                f"""
                SELECT {_COLUMNS},
                       (SELECT COUNT(*) FROM products p WHERE p.category_id = c.id)
                FROM categories c
                WHERE c.id = :cid
                """
            ),
            {"cid": category_id},
        ).fetchone()
    return _row_to_dict(row) if row else None


def create_category(name: str, description: Optional[str] = None) -> Dict[str, Any]:
    """Insert a category at the end of the display order (max+1, 0 when empty)."""
    category_id = str(uuid.uuid4())
    now = _now()
    eng = get_engine()
    with eng.begin() as conn:
        row = conn.execute(sql_text("SELECT MAX(display_order) FROM categories")).fetchone()
        rank = int(row[0]) + 1 if row and row[0] is not None else 0
        conn.execute(
            sql_text(
                """
                INSERT INTO categories (id, name, description, display_order, created_at, updated_at)
                VALUES (:cid, :name, :description, :rank, :now, :now)
                """
            ),
            {"cid": category_id, "name": name, "description": description, "rank": rank, "now": now},
        )
    logger.info("category_created id=%s display_order=%s", category_id, rank)
    return {
        "id": category_id,
        "name": name,
        "description": description,
        "display_order": rank,
        "created_at": now,
        "updated_at": now,
        "product_count": 0,
    }


def update_category(category_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    """Apply ``changes`` (name/description only) and return the fresh row."""
    fields = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
    eng = get_engine()
    with eng.begin() as conn:
        exists = conn.execute(
            sql_text("SELECT 1 FROM categories WHERE id = :cid"), {"cid": category_id}
        ).fetchone()
        if not exists:
            raise CategoryNotFound(category_id)
        if fields:
            assignments = ", ".join(f"{k} = :{k}" for k in fields)
            conn.execute(
                sql_text(f"UPDATE categories SET {assignments}, updated_at = :now WHERE id = :cid"),
                {**fields, "now": _now(), "cid": category_id},
            )
    updated = get_category(category_id)
    if updated is None:
        raise CategoryNotFound(category_id)
    return updated


def delete_category(category_id: str) -> None:
    """Delete a category; products lose the reference and ranks are not re-packed."""
    eng = get_engine()
    with eng.begin() as conn:
        conn.execute(
            sql_text("UPDATE products SET category_id = NULL WHERE category_id = :cid"),
            {"cid": category_id},
        )
        result = conn.execute(sql_text("DELETE FROM categories WHERE id = :cid"), {"cid": category_id})
        if result.rowcount == 0:
            raise CategoryNotFound(category_id)
    logger.info("category_deleted id=%s", category_id)


def fetch_ordered_categories() -> List[OrderedEntity]:
    eng = get_engine()
    try:
        with eng.connect() as conn:
            rows = conn.execute(
                sql_text(f"SELECT {_COLUMNS} FROM categories c {_ORDER_BY}")
            ).fetchall()
    except SQLAlchemyError as exc:
        raise RepositoryError("failed to fetch categories") from exc
    return [
        OrderedEntity(id=str(r[0]), name=str(r[1]), description=r[2], rank=int(r[3]))
        for r in rows
    ]


def update_category_rank(category_id: str, rank: int) -> None:
    eng = get_engine()
    try:
        with eng.begin() as conn:
            result = conn.execute(
                sql_text("UPDATE categories SET display_order = :rank, updated_at = :now WHERE id = :cid"),
                {"rank": int(rank), "now": _now(), "cid": category_id},
            )
            if result.rowcount == 0:
                raise RepositoryError(f"no category with id {category_id}")
    except SQLAlchemyError as exc:
        raise RepositoryError(f"rank update failed for {category_id}") from exc


def bulk_update_category_ranks(assignments: Sequence[Tuple[str, int]]) -> None:
    """Write every (id, rank) pair in one transaction; all-or-nothing."""
    eng = get_engine()
    now = _now()
    try:
        with eng.begin() as conn:
            for category_id, rank in assignments:
                result = conn.execute(
                    sql_text("UPDATE categories SET display_order = :rank, updated_at = :now WHERE id = :cid"),
                    {"rank": int(rank), "now": now, "cid": str(category_id)},
                )
                if result.rowcount == 0:
                    # Raising inside begin() rolls back rows already written
                    raise RepositoryError(f"no category with id {category_id}")
    except SQLAlchemyError as exc:
        raise RepositoryError("bulk rank update failed") from exc


class CategoryRepository:
    """``OrderedRepository`` over the ``categories`` table."""

    async def fetch_ordered(self) -> List[OrderedEntity]:
        return await anyio.to_thread.run_sync(fetch_ordered_categories)

    async def update_rank(self, entity_id: str, rank: int) -> None:
        await anyio.to_thread.run_sync(update_category_rank, entity_id, rank)

    async def bulk_upsert_ranks(self, assignments: Sequence[Tuple[str, int]]) -> None:
        await anyio.to_thread.run_sync(bulk_update_category_ranks, list(assignments))


__all__ = [
    "CategoryNotFound",
    "CategoryRepository",
    "UPDATABLE_FIELDS",
    "bulk_update_category_ranks",
    "create_category",
    "delete_category",
    "fetch_ordered_categories",
    "get_category",
    "list_categories",
    "update_category",
    "update_category_rank",
]
