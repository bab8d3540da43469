"""Category routes: listing, CRUD and drag-and-drop reorder.

The reorder endpoint runs the same optimistic protocol a browser view does:
load the authoritative order, apply the drop through ``OrderedListView``
and, when the store rejects the new ranks, answer with the reloaded order
so the client can snap back to it.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence
import logging

import anyio
from fastapi import APIRouter, Depends, Query, Request, Response

from storefront_admin.http.problem import problem_response
from storefront_admin.logic.events import (
    CATEGORY_CREATED,
    CATEGORY_DELETED,
    CATEGORY_REORDER_FAILED,
    CATEGORY_REORDERED,
    CATEGORY_UPDATED,
    publish,
)
from storefront_admin.logic.ordered_repository import OrderedEntity, OrderedRepository
from storefront_admin.logic.ordered_view import DropOutcome, OrderedListView
from storefront_admin.logic.reorder import STRATEGY_BULK, ReorderEngine, index_of
from storefront_admin.logic.repository_categories import (
    CategoryNotFound,
    CategoryRepository,
    create_category as repo_create_category,
    delete_category as repo_delete_category,
    get_category as repo_get_category,
    list_categories as repo_list_categories,
    update_category as repo_update_category,
)
from storefront_admin.models.category import (
    Category,
    CategoryCreate,
    CategoryUpdate,
    RankAssignment,
    ReorderRequest,
    ReorderResponse,
)

router = APIRouter(prefix="/categories")
logger = logging.getLogger(__name__)


def get_category_repository() -> OrderedRepository:
    return CategoryRepository()


def _reorder_strategy(request: Request) -> str:
    config = getattr(request.app.state, "config", None)
    return config.reorder.strategy if config is not None else STRATEGY_BULK


async def _render(items: Sequence[OrderedEntity]) -> List[Dict[str, Any]]:
    """Full category rows in the order (and with the ranks) of ``items``."""
    details = {row["id"]: row for row in await anyio.to_thread.run_sync(repo_list_categories)}
    return [{**details[ent.id], "display_order": ent.rank} for ent in items if ent.id in details]


@router.get("", response_model=List[Category], summary="List categories in display order")
def list_categories(q: Optional[str] = Query(default=None, max_length=200)) -> List[Dict[str, Any]]:
    return repo_list_categories(q)


@router.post("", response_model=Category, status_code=201, summary="Create a category at the end")
def create_category(payload: CategoryCreate) -> Dict[str, Any]:
    created = repo_create_category(payload.name, payload.description)
    publish(CATEGORY_CREATED, {"id": created["id"], "display_order": created["display_order"]})
    return created


@router.get("/{category_id}", response_model=Category, summary="Get a category")
def get_category(category_id: str) -> Dict[str, Any]:
    row = repo_get_category(category_id)
    if row is None:
        raise CategoryNotFound(category_id)
    return row


@router.patch("/{category_id}", response_model=Category, summary="Update name or description")
def update_category(category_id: str, payload: CategoryUpdate) -> Dict[str, Any]:
    changes = payload.model_dump(exclude_unset=True)
    updated = repo_update_category(category_id, changes)
    publish(CATEGORY_UPDATED, {"id": category_id, "fields": sorted(changes)})
    return updated


@router.delete("/{category_id}", status_code=204, summary="Delete a category")
def delete_category(category_id: str) -> Response:
    repo_delete_category(category_id)
    publish(CATEGORY_DELETED, {"id": category_id})
    return Response(status_code=204)


@router.post("/reorder", response_model=ReorderResponse, summary="Move one category onto another's position")
async def reorder_categories(
    payload: ReorderRequest,
    request: Request,
    repository: OrderedRepository = Depends(get_category_repository),
) -> Any:
    logger.info("categories_reorder_request moved=%s target=%s", payload.moved_id, payload.target_id)
    engine = ReorderEngine(repository, strategy=_reorder_strategy(request))
    view = OrderedListView(repository, engine)
    await view.load()
    # Unknown ids are a caller bug even where dragging is disabled
    index_of(view.items, payload.moved_id)
    index_of(view.items, payload.target_id)

    result = await view.drop(payload.moved_id, payload.target_id)
    view.close()

    if result.outcome is DropOutcome.rolled_back and result.error is not None:
        publish(
            CATEGORY_REORDER_FAILED,
            {"moved_id": payload.moved_id, "target_id": payload.target_id, "attempted": result.error.assignments},
        )
        return problem_response(
            "reorder_persistence_failed",
            "display order could not be saved; the stored order was reloaded",
            attempted=[RankAssignment(id=eid, display_order=rank) for eid, rank in result.error.assignments],
            categories=await _render(result.items),
        )

    persisted = result.outcome is DropOutcome.persisted
    if persisted:
        publish(
            CATEGORY_REORDERED,
            {
                "moved_id": payload.moved_id,
                "target_id": payload.target_id,
                "order": [ent.id for ent in result.items],
            },
        )
    return {"categories": await _render(result.items), "persisted": persisted}


__all__ = ["router", "get_category_repository"]
