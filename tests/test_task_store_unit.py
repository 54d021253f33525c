"""Unit tests for TaskStore mutations, reducers and dispatch."""

import pytest

from application.task_store import (
    ACTION_CREATE,
    ACTION_HYDRATE,
    ACTION_RESTORE,
    RECORDABLE_ACTIONS,
    Action,
    TaskStore,
    reduce_items,
)
from core import TaskPriority, TaskStatus, ValidationError, new_task_item


@pytest.fixture
def store(clock, id_factory):
    return TaskStore(clock=clock, id_factory=id_factory)


class TestCreate:
    def test_create_appends_with_defaults(self, store):
        item = store.create({"title": "Write spec"})
        assert item.id == "task-001"
        assert item.status is TaskStatus.NOT_STARTED
        assert item.priority is TaskPriority.NONE
        assert item.created_at == item.updated_at
        assert store.items == [item]

    def test_create_rejects_blank_title_without_change(self, store):
        events = []
        store.subscribe(events.append)
        with pytest.raises(ValidationError):
            store.create({"title": "  "})
        assert store.items == []
        assert events == []

    def test_colliding_ids_are_skipped(self, clock):
        ids = iter(["same", "same", "other"])
        store = TaskStore(clock=clock, id_factory=lambda: next(ids))
        first = store.create({"title": "A"})
        second = store.create({"title": "B"})
        assert (first.id, second.id) == ("same", "other")

    def test_collection_order_is_insertion_order(self, store):
        titles = ["A", "B", "C"]
        for title in titles:
            store.create({"title": title})
        assert [it.title for it in store.items] == titles


class TestUpdate:
    def test_update_merges_and_refreshes_updated_at(self, store):
        item = store.create({"title": "A", "description": "d"})
        assert store.update(item.id, {"status": "completed"}) is True
        updated = store.get(item.id)
        assert updated.status is TaskStatus.COMPLETED
        assert updated.description == "d"
        assert updated.id == item.id
        assert updated.created_at == item.created_at
        assert updated.updated_at > item.updated_at

    def test_update_unknown_id_is_silent_no_op(self, store):
        store.create({"title": "A"})
        before = store.items
        assert store.update("missing", {"title": "B"}) is False
        assert store.items == before

    def test_update_validates_before_applying(self, store):
        item = store.create({"title": "A"})
        with pytest.raises(ValidationError):
            store.update(item.id, {"title": ""})
        assert store.get(item.id).title == "A"

    def test_batch_update_touches_each_match(self, store):
        a = store.create({"title": "A"})
        b = store.create({"title": "B"})
        store.create({"title": "C"})
        assert store.batch_update([a.id, b.id, "missing"], {"priority": "high"}) == 2
        assert [it.priority for it in store.items] == [TaskPriority.HIGH, TaskPriority.HIGH, TaskPriority.NONE]


class TestDelete:
    def test_delete_returns_removed_count(self, store):
        a = store.create({"title": "A"})
        assert store.delete(a.id) == 1
        assert store.delete(a.id) == 0
        assert store.items == []

    def test_delete_batch_ignores_unknown_ids(self, store):
        a = store.create({"title": "A"})
        b = store.create({"title": "B"})
        c = store.create({"title": "C"})
        assert store.delete_batch([a.id, c.id, "nope"]) == 2
        assert [it.id for it in store.items] == [b.id]


class TestBoardMutations:
    def test_reassign_priority(self, store):
        a = store.create({"title": "A"})
        assert store.reassign_priority(a.id, "urgent") is True
        assert store.get(a.id).priority is TaskPriority.URGENT
        assert store.reassign_priority("missing", "low") is False

    def test_reassign_priority_drops_position_from_old_column(self, store):
        a = store.create({"title": "A", "priority": "high"})
        b = store.create({"title": "B", "priority": "high"})
        store.reorder("high", [b.id, a.id])
        store.reassign_priority(a.id, "low")
        assert store.get(a.id).priority is TaskPriority.LOW
        assert store.get(a.id).position is None
        # same column keeps the manual order
        store.reassign_priority(b.id, "high")
        assert store.get(b.id).position == 0

    def test_reassign_priority_rejects_unknown_priority(self, store):
        a = store.create({"title": "A"})
        with pytest.raises(ValidationError):
            store.reassign_priority(a.id, "critical")

    def test_reorder_sets_positions_within_group_only(self, store):
        a = store.create({"title": "A", "priority": "high"})
        b = store.create({"title": "B", "priority": "high"})
        c = store.create({"title": "C", "priority": "low"})
        assert store.reorder("high", [b.id, c.id, a.id]) == 2
        assert store.get(b.id).position == 0
        assert store.get(a.id).position == 2
        assert store.get(c.id).position is None


class TestDispatch:
    def test_recordable_set(self):
        assert ACTION_CREATE in RECORDABLE_ACTIONS
        assert ACTION_HYDRATE not in RECORDABLE_ACTIONS
        assert ACTION_RESTORE not in RECORDABLE_ACTIONS

    def test_unknown_action_type_raises(self, store):
        with pytest.raises(ValueError):
            store.dispatch(Action("explode"))

    def test_listeners_see_before_and_after(self, store):
        events = []
        store.subscribe(events.append)
        item = store.create({"title": "A"})
        assert len(events) == 1
        event = events[0]
        assert event.action.type == ACTION_CREATE
        assert event.before == ()
        assert event.after == (item,)
        assert event.changed is True

    def test_unsubscribe_stops_notifications(self, store):
        events = []
        unsubscribe = store.subscribe(events.append)
        unsubscribe()
        store.create({"title": "A"})
        assert events == []

    def test_hydrate_replaces_and_dedupes(self, store):
        first = new_task_item({"title": "A"}, task_id="x", now="2024-01-01T00:00:00.000000+00:00")
        dup = new_task_item({"title": "B"}, task_id="x", now="2024-01-01T00:00:00.000000+00:00")
        event = store.hydrate([first, dup])
        assert event.action.type == ACTION_HYDRATE
        assert store.items == [first]


def test_reducers_do_not_mutate_input():
    item = new_task_item({"title": "A"}, task_id="x", now="2024-01-01T00:00:00.000000+00:00")
    items = [item]
    result = reduce_items(
        items,
        Action("update", {"id": "x", "changes": {"title": "B"}, "now": "2024-01-02T00:00:00.000000+00:00"}),
    )
    assert items == [item]
    assert item.title == "A"
    assert result[0].title == "B"
