"""Client-side holder for an ordered collection under drag-and-drop.

Owns the visible sequence for one view: loads it from the repository,
applies the engine's optimistic order on drop, and on a persistence failure
replaces it with a fresh fetch from the store (not the pre-drag order, since
other edits may have landed meanwhile).

State: idle -> dragging -> reordering -> idle. A closed view ignores the
completion of any in-flight write.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional
import logging

from storefront_admin.logic.ordered_repository import OrderedEntity, OrderedRepository
from storefront_admin.logic.reorder import (
    PersistenceFailure,
    ReorderEngine,
    index_of,
    next_rank,
)

logger = logging.getLogger(__name__)


class DragState(str, Enum):
    idle = "idle"
    dragging = "dragging"
    reordering = "reordering"


class DropOutcome(str, Enum):
    noop = "noop"
    persisted = "persisted"
    rolled_back = "rolled_back"
    detached = "detached"


@dataclass(frozen=True)
class DropResult:
    outcome: DropOutcome
    items: List[OrderedEntity]
    error: Optional[PersistenceFailure] = None


class OrderedListView:
    def __init__(self, repository: OrderedRepository, engine: Optional[ReorderEngine] = None) -> None:
        self.repository = repository
        self.engine = engine or ReorderEngine(repository)
        self.items: List[OrderedEntity] = []
        self.state = DragState.idle
        self.dragging_id: Optional[str] = None
        self.closed = False

    @property
    def can_drag(self) -> bool:
        return not self.closed and len(self.items) > 1

    async def load(self) -> List[OrderedEntity]:
        items = await self.repository.fetch_ordered()
        if not self.closed:
            self.items = list(items)
        return items

    def append(self, entity: OrderedEntity) -> OrderedEntity:
        """Add ``entity`` at the end with rank max+1."""
        placed = OrderedEntity(
            id=entity.id,
            name=entity.name,
            description=entity.description,
            rank=next_rank(self.items),
        )
        self.items.append(placed)
        return placed

    def remove(self, entity_id: str) -> None:
        # Ranks of the remaining items are left as they are
        self.items = [ent for ent in self.items if ent.id != entity_id]

    def begin_drag(self, entity_id: str) -> bool:
        if not self.can_drag or self.state is not DragState.idle:
            return False
        index_of(self.items, entity_id)
        self.state = DragState.dragging
        self.dragging_id = entity_id
        return True

    def cancel_drag(self) -> None:
        if self.state is DragState.dragging:
            self.state = DragState.idle
            self.dragging_id = None

    async def drop(self, moved_id: str, target_id: str) -> DropResult:
        if not self.can_drag or moved_id == target_id:
            self.cancel_drag()
            return DropResult(DropOutcome.noop, list(self.items))

        try:
            plan = self.engine.plan(self.items, moved_id, target_id)
        except ValueError:
            self.cancel_drag()
            raise
        self.items = list(plan.order)
        self.state = DragState.reordering
        self.dragging_id = None
        try:
            result = await self.engine.confirm(plan)
        finally:
            self.state = DragState.idle

        if self.closed:
            logger.info("ordered_view_detached moved=%s ok=%s", moved_id, result.ok)
            return DropResult(DropOutcome.detached, list(result.order), result.error)
        if result.ok:
            return DropResult(DropOutcome.persisted, list(self.items))

        logger.warning("ordered_view_rollback moved=%s target=%s", moved_id, target_id)
        await self.load()
        return DropResult(DropOutcome.rolled_back, list(self.items), result.error)

    def close(self) -> None:
        self.closed = True
        self.state = DragState.idle
        self.dragging_id = None


__all__ = ["DragState", "DropOutcome", "DropResult", "OrderedListView"]
