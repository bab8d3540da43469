"""Drag-and-drop reorder engine for ranked collections.

Computes the new rank assignment for a single move within an ordered
collection and confirms it against an ``OrderedRepository``. The work is
split in two phases so callers can render the optimistic order before the
store answers:

- ``plan()`` is synchronous and pure: array-move the entity, then reassign
  contiguous 0-based ranks from the post-move order.
- ``confirm()`` awaits persistence and returns a ``ReorderResult`` that is
  either ok or carries a ``PersistenceFailure``. There are no retries; the
  caller recovers by reloading from the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Sequence, Tuple
import logging

from storefront_admin.logic.ordered_repository import (
    OrderedEntity,
    OrderedRepository,
    RepositoryError,
)

logger = logging.getLogger(__name__)

# per_row writes only rows whose rank changed in the caller's snapshot, so two
# reorders planned from the same stale snapshot can leave duplicate ranks even
# when applied one after the other. bulk rewrites the full ranking atomically.
STRATEGY_PER_ROW = "per_row"
STRATEGY_BULK = "bulk"
STRATEGIES = (STRATEGY_PER_ROW, STRATEGY_BULK)

RankAssignment = Tuple[str, int]


class ReorderValidationError(ValueError):
    """Moved or target id is missing from (or duplicated in) the collection."""

    def __init__(self, message: str, *, entity_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.entity_id = entity_id


class PersistenceFailure(Exception):
    """The store rejected one or more rank writes."""

    def __init__(
        self,
        assignments: Sequence[RankAssignment],
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(f"failed to persist {len(assignments)} rank assignment(s): {cause}")
        self.assignments: List[RankAssignment] = list(assignments)
        self.cause = cause


@dataclass(frozen=True)
class ReorderPlan:
    order: List[OrderedEntity]
    assignments: List[RankAssignment] = field(default_factory=list)
    changed: List[RankAssignment] = field(default_factory=list)
    moved_id: Optional[str] = None
    source_index: Optional[int] = None
    target_index: Optional[int] = None

    @property
    def is_noop(self) -> bool:
        return not self.assignments


@dataclass(frozen=True)
class ReorderResult:
    order: List[OrderedEntity]
    error: Optional[PersistenceFailure] = None
    persisted: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


def index_of(collection: Sequence[OrderedEntity], entity_id: str) -> int:
    """Return the position of ``entity_id``; it must occur exactly once."""
    hits = [i for i, ent in enumerate(collection) if ent.id == entity_id]
    if not hits:
        raise ReorderValidationError(f"id not in collection: {entity_id}", entity_id=entity_id)
    if len(hits) > 1:
        raise ReorderValidationError(f"id occurs {len(hits)} times in collection: {entity_id}", entity_id=entity_id)
    return hits[0]


def array_move(items: Sequence[OrderedEntity], source: int, target: int) -> List[OrderedEntity]:
    working = list(items)
    moving = working.pop(source)
    working.insert(target, moving)
    return working


def reindex(items: Iterable[OrderedEntity], start: int = 0) -> List[OrderedEntity]:
    """Return copies of ``items`` with ranks set to their position from ``start``."""
    return [ent if ent.rank == pos else replace(ent, rank=pos) for pos, ent in enumerate(items, start)]


def next_rank(collection: Iterable[OrderedEntity]) -> int:
    """Rank for an appended entity: one past the current maximum, 0 when empty."""
    ranks = [ent.rank for ent in collection]
    return max(ranks) + 1 if ranks else 0


def plan_reorder(collection: Sequence[OrderedEntity], moved_id: str, target_id: str) -> ReorderPlan:
    source = index_of(collection, moved_id)
    target = index_of(collection, target_id)
    if moved_id == target_id:
        return ReorderPlan(order=list(collection), moved_id=moved_id, source_index=source, target_index=target)

    before = {ent.id: ent.rank for ent in collection}
    order = reindex(array_move(collection, source, target))
    assignments = [(ent.id, ent.rank) for ent in order]
    changed = [(eid, rank) for eid, rank in assignments if before.get(eid) != rank]
    return ReorderPlan(
        order=order,
        assignments=assignments,
        changed=changed,
        moved_id=moved_id,
        source_index=source,
        target_index=target,
    )


class ReorderEngine:
    """Plan and persist moves against an injected ``OrderedRepository``."""

    def __init__(self, repository: OrderedRepository, strategy: str = STRATEGY_BULK) -> None:
        if strategy not in STRATEGIES:
            raise ValueError(f"unknown reorder strategy {strategy!r}; expected one of {list(STRATEGIES)}")
        self.repository = repository
        self.strategy = strategy

    def plan(self, collection: Sequence[OrderedEntity], moved_id: str, target_id: str) -> ReorderPlan:
        plan = plan_reorder(collection, moved_id, target_id)
        logger.info(
            "reorder_plan moved=%s source=%s target=%s noop=%s changed=%s",
            moved_id,
            plan.source_index,
            plan.target_index,
            plan.is_noop,
            len(plan.changed),
        )
        return plan

    async def confirm(self, plan: ReorderPlan) -> ReorderResult:
        if plan.is_noop:
            return ReorderResult(order=plan.order)
        # per_row only sends rows whose rank moved; bulk always sends the full ranking
        attempted = plan.changed if self.strategy == STRATEGY_PER_ROW else plan.assignments
        try:
            if self.strategy == STRATEGY_PER_ROW:
                for entity_id, rank in plan.changed:
                    await self.repository.update_rank(entity_id, rank)
            else:
                await self.repository.bulk_upsert_ranks(plan.assignments)
        except RepositoryError as exc:
            logger.error(
                "reorder_persist_failed strategy=%s moved=%s attempted=%s",
                self.strategy,
                plan.moved_id,
                attempted,
                exc_info=True,
            )
            return ReorderResult(order=plan.order, error=PersistenceFailure(attempted, exc))
        logger.info("reorder_persisted strategy=%s moved=%s writes=%s", self.strategy, plan.moved_id, len(attempted))
        return ReorderResult(order=plan.order, persisted=True)

    async def reorder(self, collection: Sequence[OrderedEntity], moved_id: str, target_id: str) -> ReorderResult:
        return await self.confirm(self.plan(collection, moved_id, target_id))


__all__ = [
    "STRATEGY_PER_ROW",
    "STRATEGY_BULK",
    "STRATEGIES",
    "ReorderValidationError",
    "PersistenceFailure",
    "ReorderPlan",
    "ReorderResult",
    "ReorderEngine",
    "array_move",
    "index_of",
    "next_rank",
    "plan_reorder",
    "reindex",
]
