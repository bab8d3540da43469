"""Persistence seam for ranked collections.

``OrderedRepository`` is what the reorder engine talks to; the SQL-backed
category repository and the in-memory store below both satisfy it. The
in-memory variant keeps rows in a dict and supports failure injection so
tests can drive the reload-on-failure path.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple, runtime_checkable
import logging

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """A store operation failed (connectivity, constraint, permission)."""


@dataclass(frozen=True)
class OrderedEntity:
    id: str
    name: str
    rank: int
    description: Optional[str] = None


@runtime_checkable
class OrderedRepository(Protocol):
    async def fetch_ordered(self) -> List[OrderedEntity]:
        ...

    async def update_rank(self, entity_id: str, rank: int) -> None:
        ...

    async def bulk_upsert_ranks(self, assignments: Sequence[Tuple[str, int]]) -> None:
        ...


class InMemoryOrderedRepository:
    """Dict-backed ``OrderedRepository`` for tests and local runs.

    ``fail_writes`` makes every rank write raise; ``fail_on_ids`` fails only
    writes touching those ids, so a run of per-row updates can land partially.
    Bulk writes stay all-or-nothing.
    """

    def __init__(self, entities: Iterable[OrderedEntity] = ()) -> None:
        self._rows: Dict[str, OrderedEntity] = {}
        self._seq: Dict[str, int] = {}
        self.fail_writes = False
        self.fail_on_ids: set[str] = set()
        self.write_calls: List[Tuple[str, object]] = []
        for ent in entities:
            self.insert(ent)

    def insert(self, entity: OrderedEntity) -> OrderedEntity:
        self._seq.setdefault(entity.id, len(self._seq))
        self._rows[entity.id] = entity
        return entity

    def delete(self, entity_id: str) -> bool:
        self._seq.pop(entity_id, None)
        return self._rows.pop(entity_id, None) is not None

    def snapshot(self) -> List[OrderedEntity]:
        return sorted(self._rows.values(), key=lambda e: (e.rank, self._seq.get(e.id, 0), e.id))

    def _check(self, entity_id: str) -> None:
        if self.fail_writes or entity_id in self.fail_on_ids:
            raise RepositoryError(f"rank write rejected for {entity_id}")
        if entity_id not in self._rows:
            raise RepositoryError(f"no row with id {entity_id}")

    async def fetch_ordered(self) -> List[OrderedEntity]:
        return self.snapshot()

    async def update_rank(self, entity_id: str, rank: int) -> None:
        self.write_calls.append(("update_rank", (entity_id, rank)))
        self._check(entity_id)
        self._rows[entity_id] = replace(self._rows[entity_id], rank=int(rank))

    async def bulk_upsert_ranks(self, assignments: Sequence[Tuple[str, int]]) -> None:
        pairs = [(str(eid), int(rank)) for eid, rank in assignments]
        self.write_calls.append(("bulk_upsert_ranks", pairs))
        # Validate everything first so a bulk write is all-or-nothing
        for eid, _ in pairs:
            self._check(eid)
        for eid, rank in pairs:
            self._rows[eid] = replace(self._rows[eid], rank=rank)


__all__ = [
    "OrderedEntity",
    "OrderedRepository",
    "InMemoryOrderedRepository",
    "RepositoryError",
]
