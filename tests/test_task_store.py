# tests/test_task_store.py

from __future__ import annotations

import pytest

from tasksync.core.errors import BackendError
from tasksync.core.ports import SERVER_TIMESTAMP, Document
from tasksync.tasks.task_models import StoreOperation, Task

from .conftest import TASKS_PATH
from .fakes import settle


@pytest.mark.asyncio
async def test_snapshot_replaces_list_with_per_field_defaults(store, documents) -> None:
    assert store.load() is True

    documents.push(
        TASKS_PATH,
        [
            Document("a", {"title": "Buy milk", "done": True}),
            Document("b", {"done": True}),
            Document("c", {"title": "No flag"}),
            Document("d", None),
            Document("e", {"title": None, "done": None, "createdAt": 123.0}),
        ],
    )
    await settle()

    assert store.tasks.value == (
        Task("a", "Buy milk", True),
        Task("b", "", True),
        Task("c", "No flag", False),
        Task("d", "", False),
        Task("e", "", False),
    )


@pytest.mark.asyncio
async def test_list_follows_backend_order_not_sorted(store, documents) -> None:
    store.load()
    documents.push(TASKS_PATH, [Document("z", {"title": "b"}), Document("a", {"title": "a"})])
    await settle()

    assert [t.id for t in store.tasks.value] == ["z", "a"]


@pytest.mark.asyncio
async def test_load_twice_keeps_exactly_one_subscription(store, documents) -> None:
    seen: list[tuple[Task, ...]] = []
    store.tasks.subscribe(seen.append)

    store.load()
    store.load()

    assert len(documents.listeners) == 2
    assert len(documents.active_listeners(TASKS_PATH)) == 1

    documents.push(TASKS_PATH, [Document("a", {"title": "x"})])
    await settle()

    assert seen == [(Task("a", "x", False),)]
    store.close()


@pytest.mark.asyncio
async def test_add_issues_create_and_waits_for_push(store, documents) -> None:
    store.load()
    documents.push(TASKS_PATH, [])
    await settle()

    handle = store.add("Buy milk")
    assert handle is not None
    assert await handle is None

    assert len(documents.calls) == 1
    call = documents.calls[0]
    assert call.op == "add"
    assert call.path == TASKS_PATH
    assert call.fields == {"title": "Buy milk", "done": False, "createdAt": SERVER_TIMESTAMP}

    # The write result does not touch the list.
    assert store.tasks.value == ()

    documents.push(TASKS_PATH, [Document("doc-1", {"title": "Buy milk", "done": False})])
    await settle()

    (task,) = store.tasks.value
    assert task.id
    assert task.title == "Buy milk"
    assert task.done is False


@pytest.mark.asyncio
async def test_toggle_sends_single_update_and_leaves_list_alone(store, documents) -> None:
    store.load()
    documents.push(TASKS_PATH, [Document("t1", {"title": "x", "done": False})])
    await settle()
    before = store.tasks.value

    handle = store.toggle(before[0])
    assert handle is not None
    assert await handle is None

    assert [(c.op, c.path, c.fields) for c in documents.calls] == [
        ("update", f"{TASKS_PATH}/t1", {"done": True}),
    ]
    assert store.tasks.value is before

    documents.push(TASKS_PATH, [Document("t1", {"title": "x", "done": True})])
    await settle()
    assert store.tasks.value == (Task("t1", "x", True),)


@pytest.mark.asyncio
async def test_toggle_done_task_sets_false(store, documents) -> None:
    await store.toggle(Task("t1", "x", True))
    assert documents.calls[0].fields == {"done": False}


@pytest.mark.asyncio
async def test_delete_then_push_without_task_removes_it(store, documents) -> None:
    store.load()
    documents.push(TASKS_PATH, [Document("t1", {"title": "a"}), Document("t2", {"title": "b"})])
    await settle()

    await store.delete(store.tasks.value[0])
    assert documents.calls[-1].op == "delete"
    assert documents.calls[-1].path == f"{TASKS_PATH}/t1"
    assert len(store.tasks.value) == 2

    documents.push(TASKS_PATH, [Document("t2", {"title": "b"})])
    await settle()
    assert [t.id for t in store.tasks.value] == ["t2"]


@pytest.mark.asyncio
async def test_unauthenticated_operations_are_silent_noops(store, documents, identity) -> None:
    store.load()
    documents.push(TASKS_PATH, [Document("t1", {"title": "a"})])
    await settle()
    before = store.tasks.value
    listeners_before = len(documents.listeners)

    identity.uid = None

    assert store.load() is False
    assert store.add("x") is None
    assert store.toggle(before[0]) is None
    assert store.delete(before[0]) is None
    await settle()

    assert documents.calls == []
    assert len(documents.listeners) == listeners_before
    assert store.tasks.value is before
    assert store.error.value is None


@pytest.mark.asyncio
async def test_feed_error_is_reported_and_previous_list_kept(store, documents) -> None:
    store.load()
    documents.push(TASKS_PATH, [Document("t1", {"title": "a"})])
    await settle()

    documents.push_error(TASKS_PATH, BackendError("Missing or insufficient permissions.", code="PERMISSION_DENIED"))
    await settle()

    assert store.tasks.value == (Task("t1", "a", False),)
    err = store.error.value
    assert err is not None
    assert err.operation is StoreOperation.LOAD
    assert err.code == "PERMISSION_DENIED"

    # The feed keeps going after an error.
    documents.push(TASKS_PATH, [])
    await settle()
    assert store.tasks.value == ()


@pytest.mark.asyncio
async def test_write_failure_resolves_handle_and_publishes_error(store, documents) -> None:
    documents.fail_with = BackendError("quota exceeded", code="RESOURCE_EXHAUSTED")
    errors = []
    store.error.subscribe(errors.append)

    err = await store.delete(Task("t9", "gone"))

    assert err is not None
    assert err.operation is StoreOperation.DELETE
    assert err.task_id == "t9"
    assert err.code == "RESOURCE_EXHAUSTED"
    assert errors == [err]
    assert store.tasks.value == ()

    store.clear_error()
    assert store.error.value is None


@pytest.mark.asyncio
async def test_unexpected_write_exception_still_reaches_error_channel(store, documents) -> None:
    documents.fail_with = RuntimeError("boom")

    err = await store.add("x")

    assert err is not None
    assert err.operation is StoreOperation.ADD
    assert err.code == "RuntimeError"
    assert store.error.value == err


@pytest.mark.asyncio
async def test_task_without_valid_id_is_rejected_without_backend_call(store, documents) -> None:
    err = await store.toggle(Task("", "x"))

    assert err is not None
    assert err.code == "INVALID_ARGUMENT"
    assert documents.calls == []


@pytest.mark.asyncio
async def test_close_stops_feed_and_clears_state(store, documents) -> None:
    store.load()
    documents.push(TASKS_PATH, [Document("t1", {"title": "a"})])
    await settle()
    assert store.is_loaded

    store.close()
    await settle()

    assert not store.is_loaded
    assert store.tasks.value == ()
    assert documents.active_listeners() == []

    # Late pushes from the backend are not applied.
    documents.listeners[0].on_snapshot([Document("t2", {"title": "late"})])
    await settle()
    assert store.tasks.value == ()


@pytest.mark.asyncio
async def test_wait_pending_drains_writes(store, documents) -> None:
    store.add("a")
    store.add("b")

    await store.wait_pending()

    assert [c.op for c in documents.calls] == ["add", "add"]


@pytest.mark.asyncio
async def test_switching_user_drops_previous_users_list(store, documents, identity) -> None:
    store.load()
    documents.push(TASKS_PATH, [Document("t1", {"title": "u1 secret"})])
    await settle()
    assert len(store.tasks.value) == 1

    identity.uid = "u2"
    assert store.load() is True

    # Nothing from u1 is visible before u2's first snapshot.
    assert store.tasks.value == ()
    assert store.error.value is None
    assert [lst.path for lst in documents.active_listeners()] == ["users/u2/tasks"]

    documents.push("users/u2/tasks", [Document("t9", {"title": "mine"})])
    await settle()
    assert store.tasks.value == (Task("t9", "mine", False),)
    store.close()


@pytest.mark.asyncio
async def test_reload_for_same_user_keeps_list_until_next_push(store, documents) -> None:
    store.load()
    documents.push(TASKS_PATH, [Document("t1", {"title": "a"})])
    await settle()

    store.load()

    assert store.tasks.value == (Task("t1", "a", False),)
    store.close()


@pytest.mark.asyncio
async def test_load_with_unusable_user_id_reports_invalid_argument(store, documents, identity) -> None:
    identity.uid = "bad/uid"

    assert store.load() is False

    assert documents.listeners == []
    assert not store.is_loaded
    err = store.error.value
    assert err is not None
    assert err.operation is StoreOperation.LOAD
    assert err.code == "INVALID_ARGUMENT"
