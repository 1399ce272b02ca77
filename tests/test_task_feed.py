# tests/test_task_feed.py

from __future__ import annotations

import asyncio
import threading

import pytest

from tasksync.core.errors import BackendError
from tasksync.core.ports import Document
from tasksync.tasks.task_feed import TaskFeed, document_to_task
from tasksync.tasks.task_models import Task

from .conftest import TASKS_PATH


def test_document_to_task_defaults_each_field_independently() -> None:
    assert document_to_task(Document("a", {"title": "t", "done": True})) == Task("a", "t", True)
    assert document_to_task(Document("b", {"done": True})) == Task("b", "", True)
    assert document_to_task(Document("c", {"title": "only title"})) == Task("c", "only title", False)
    assert document_to_task(Document("d", None)) == Task("d", "", False)
    # Wrong types are treated like missing fields.
    assert document_to_task(Document("e", {"title": 42, "done": "yes"})) == Task("e", "", False)


def test_paths_are_scoped_per_user() -> None:
    feed = TaskFeed(documents=None, users_collection="people", tasks_collection="todos")  # type: ignore[arg-type]

    assert feed.collection_path("u1") == "people/u1/todos"
    assert feed.document_path("u1", "t1") == "people/u1/todos/t1"

    with pytest.raises(ValueError):
        feed.collection_path("")
    with pytest.raises(ValueError):
        feed.document_path("u1", "a/b")


@pytest.mark.asyncio
async def test_snapshots_from_sdk_thread_reach_the_loop(documents) -> None:
    feed = TaskFeed(documents)
    sub = feed.subscribe("u1")

    worker = threading.Thread(
        target=documents.push,
        args=(TASKS_PATH, [Document("t1", {"title": "from thread"})]),
    )
    worker.start()
    worker.join()

    event = await asyncio.wait_for(sub.__anext__(), timeout=1.0)
    assert not event.is_error
    assert event.tasks == (Task("t1", "from thread", False),)
    sub.close()


@pytest.mark.asyncio
async def test_error_event_carries_no_tasks(documents) -> None:
    feed = TaskFeed(documents)
    sub = feed.subscribe("u1")

    documents.push_error(TASKS_PATH, RuntimeError("stream reset"))
    event = await asyncio.wait_for(sub.__anext__(), timeout=1.0)

    assert event.is_error
    assert isinstance(event.error, BackendError)
    assert event.error.code == "RuntimeError"
    assert event.tasks == ()
    sub.close()


@pytest.mark.asyncio
async def test_listen_failure_is_delivered_as_first_event() -> None:
    class BrokenStore:
        def listen(self, path, on_snapshot, on_error):
            raise BackendError("offline", code="UNAVAILABLE")

    sub = TaskFeed(BrokenStore()).subscribe("u1")  # type: ignore[arg-type]
    event = await asyncio.wait_for(sub.__anext__(), timeout=1.0)

    assert event.error is not None
    assert event.error.code == "UNAVAILABLE"
    sub.close()


@pytest.mark.asyncio
async def test_close_unsubscribes_and_ends_iteration(documents) -> None:
    feed = TaskFeed(documents)
    sub = feed.subscribe("u1")

    received = []

    async def consume() -> None:
        async for event in sub:
            received.append(event)

    consumer = asyncio.create_task(consume())
    documents.push(TASKS_PATH, [])
    await asyncio.sleep(0.01)

    sub.close()
    await asyncio.wait_for(consumer, timeout=1.0)

    assert len(received) == 1
    assert documents.active_listeners() == []
    assert sub.closed


@pytest.mark.asyncio
async def test_subscribe_again_after_close(documents) -> None:
    feed = TaskFeed(documents)
    first = feed.subscribe("u1")
    first.close()

    second = feed.subscribe("u1")
    documents.push(TASKS_PATH, [Document("t1", {})])
    event = await asyncio.wait_for(second.__anext__(), timeout=1.0)

    assert event.tasks == (Task("t1", "", False),)
    second.close()
