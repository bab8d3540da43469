"""Functional tests for the optimistic ordered-list view.

Exercises the drag state, optimistic rendering before the store answers,
rollback by reload after a failed write, and detachment on close.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import anyio
import pytest

from storefront_admin.logic.ordered_repository import InMemoryOrderedRepository, OrderedEntity
from storefront_admin.logic.ordered_view import DragState, DropOutcome, OrderedListView
from storefront_admin.logic.reorder import STRATEGY_PER_ROW, ReorderEngine, ReorderValidationError


def _entities(names):
    return [OrderedEntity(id=n, name=f"Category {n}", rank=i) for i, n in enumerate(names)]


def _ids(items):
    return [e.id for e in items]


class GatedRepository(InMemoryOrderedRepository):
    """Holds bulk writes until ``release`` is set; counts fetches.

    Call ``arm()`` inside the event loop before dropping.
    """

    def __init__(self, entities) -> None:
        super().__init__(entities)
        self.entered: Optional[anyio.Event] = None
        self.release: Optional[anyio.Event] = None
        self.fetches = 0

    def arm(self) -> None:
        self.entered = anyio.Event()
        self.release = anyio.Event()

    async def fetch_ordered(self) -> List[OrderedEntity]:
        self.fetches += 1
        return await super().fetch_ordered()

    async def bulk_upsert_ranks(self, assignments: Sequence[Tuple[str, int]]) -> None:
        if self.entered is not None and self.release is not None:
            self.entered.set()
            await self.release.wait()
        await super().bulk_upsert_ranks(assignments)


def _loaded_view(repo, engine=None) -> OrderedListView:
    view = OrderedListView(repo, engine)
    anyio.run(view.load)
    return view


def test_load_sorts_by_rank() -> None:
    repo = InMemoryOrderedRepository(
        [OrderedEntity("B", "b", 7), OrderedEntity("A", "a", 2), OrderedEntity("C", "c", 9)]
    )
    view = _loaded_view(repo)

    assert _ids(view.items) == ["A", "B", "C"]
    assert view.can_drag


def test_single_item_collection_never_reorders() -> None:
    repo = InMemoryOrderedRepository(_entities("A"))
    view = _loaded_view(repo)

    assert view.can_drag is False
    assert view.begin_drag("A") is False
    result = anyio.run(view.drop, "A", "A")

    assert result.outcome is DropOutcome.noop
    assert repo.write_calls == []


def test_empty_collection_cannot_drag() -> None:
    view = _loaded_view(InMemoryOrderedRepository())
    assert view.can_drag is False


def test_successful_drop_keeps_optimistic_order() -> None:
    repo = InMemoryOrderedRepository(_entities("ABCD"))
    view = _loaded_view(repo)

    assert view.begin_drag("D")
    assert view.state is DragState.dragging
    result = anyio.run(view.drop, "D", "B")

    assert result.outcome is DropOutcome.persisted
    assert _ids(view.items) == ["A", "D", "B", "C"]
    assert [e.rank for e in view.items] == [0, 1, 2, 3]
    assert view.state is DragState.idle
    assert _ids(repo.snapshot()) == ["A", "D", "B", "C"]


def test_drop_onto_itself_is_noop() -> None:
    repo = InMemoryOrderedRepository(_entities("ABC"))
    view = _loaded_view(repo)
    view.begin_drag("B")

    result = anyio.run(view.drop, "B", "B")

    assert result.outcome is DropOutcome.noop
    assert view.state is DragState.idle
    assert repo.write_calls == []


def test_optimistic_order_is_visible_while_write_is_pending() -> None:
    repo = GatedRepository(_entities("ABC"))
    view = _loaded_view(repo)
    seen = {}

    async def scenario() -> None:
        repo.arm()
        async with anyio.create_task_group() as tg:
            tg.start_soon(view.drop, "C", "A")
            await repo.entered.wait()
            seen["items"] = _ids(view.items)
            seen["state"] = view.state
            seen["stored"] = _ids(repo.snapshot())
            repo.release.set()

    anyio.run(scenario)

    assert seen["items"] == ["C", "A", "B"]
    assert seen["state"] is DragState.reordering
    assert seen["stored"] == ["A", "B", "C"]
    assert view.state is DragState.idle


def test_failed_write_reloads_store_order_not_pre_drag_order() -> None:
    repo = InMemoryOrderedRepository(_entities("ABCD"))
    view = _loaded_view(repo)
    # Another session moves A to the end after this view loaded
    anyio.run(repo.bulk_upsert_ranks, [("B", 0), ("C", 1), ("D", 2), ("A", 3)])
    repo.fail_writes = True

    result = anyio.run(view.drop, "D", "B")

    assert result.outcome is DropOutcome.rolled_back
    assert result.error is not None
    assert result.error.assignments == [("A", 0), ("D", 1), ("B", 2), ("C", 3)]
    assert _ids(view.items) == ["B", "C", "D", "A"]
    assert view.items == repo.snapshot()
    assert view.state is DragState.idle


def test_partial_per_row_failure_converges_to_store_state() -> None:
    repo = InMemoryOrderedRepository(_entities("ABCD"))
    repo.fail_on_ids = {"B"}
    view = _loaded_view(repo, ReorderEngine(repo, strategy=STRATEGY_PER_ROW))

    result = anyio.run(view.drop, "D", "B")

    assert result.outcome is DropOutcome.rolled_back
    # D landed at rank 1 before B failed; no reconciliation beyond the reload
    assert view.items == repo.snapshot()
    assert {e.id: e.rank for e in view.items}["D"] == 1


def test_close_during_write_skips_rollback_reload() -> None:
    repo = GatedRepository(_entities("ABC"))
    view = _loaded_view(repo)
    fetches_after_load = repo.fetches
    repo.fail_writes = True
    outcome = {}

    async def scenario() -> None:
        repo.arm()

        async def run_drop() -> None:
            outcome["result"] = await view.drop("C", "A")

        async with anyio.create_task_group() as tg:
            tg.start_soon(run_drop)
            await repo.entered.wait()
            view.close()
            repo.release.set()

    anyio.run(scenario)

    assert outcome["result"].outcome is DropOutcome.detached
    assert outcome["result"].error is not None
    assert repo.fetches == fetches_after_load


def test_unknown_id_drop_raises_and_resets_drag_state() -> None:
    view = _loaded_view(InMemoryOrderedRepository(_entities("ABC")))
    view.begin_drag("A")

    with pytest.raises(ReorderValidationError):
        anyio.run(view.drop, "A", "Z")
    assert view.state is DragState.idle


def test_append_uses_next_rank_and_remove_keeps_gaps() -> None:
    view = _loaded_view(InMemoryOrderedRepository(_entities("ABC")))

    view.remove("B")
    placed = view.append(OrderedEntity(id="D", name="Category D", rank=0))

    assert [(e.id, e.rank) for e in view.items] == [("A", 0), ("C", 2), ("D", 3)]
    assert placed.rank == 3


def test_cancel_drag_returns_to_idle() -> None:
    view = _loaded_view(InMemoryOrderedRepository(_entities("AB")))

    assert view.begin_drag("A")
    assert view.begin_drag("B") is False
    view.cancel_drag()

    assert view.state is DragState.idle
    assert view.dragging_id is None
