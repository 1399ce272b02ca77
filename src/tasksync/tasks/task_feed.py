# src/tasksync/tasks/task_feed.py

from __future__ import annotations

"""
Live task feed.

Wraps DocumentStore.listen() for one user's task collection and turns the
callback stream into an async iterator of FeedEvent:
- every snapshot becomes a full replacement list of Task records,
- every listener error becomes an error event (no task list attached).

Backend SDKs call us from their own threads; events are handed over to the
subscriber's event loop with call_soon_threadsafe.
"""

import asyncio
import logging

from ..core.errors import BackendError
from ..core.ports import Document, DocumentStore, ListenerRegistration
from .task_models import FIELD_DONE, FIELD_TITLE, FeedEvent, Task

logger = logging.getLogger(__name__)


def document_to_task(doc: Document) -> Task:
    """
    Map one snapshot document to a Task.

    Defaults are applied per field, so a document is never dropped:
    - title: "" when missing or not a string
    - done:  False when missing or not a bool
    """
    data = doc.data or {}
    title = data.get(FIELD_TITLE)
    done = data.get(FIELD_DONE)
    return Task(
        id=doc.id,
        title=title if isinstance(title, str) else "",
        done=done if isinstance(done, bool) else False,
    )


def _segment(value: str, what: str) -> str:
    value = (value or "").strip()
    if not value or "/" in value:
        raise ValueError(f"invalid {what}: {value!r}")
    return value


class FeedSubscription:
    """
    One open listener on a task collection.

    Iterate with `async for event in subscription`. Iteration ends after close().
    close() must be called from the event loop that created the subscription.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, path: str) -> None:
        self.path = path
        self._loop = loop
        self._queue: asyncio.Queue[FeedEvent | None] = asyncio.Queue()
        self._registration: ListenerRegistration | None = None
        self._closed = False
        self.delivered = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _attach(self, registration: ListenerRegistration) -> None:
        if self._closed:
            # Closed while listen() was still running.
            registration.unsubscribe()
            return
        self._registration = registration

    def _deliver(self, event: FeedEvent) -> None:
        if self._closed:
            return
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, event)
        except RuntimeError:
            # Event loop already closed (shutdown race); nobody is listening anymore.
            logger.debug("Dropping feed event for %s: event loop closed", self.path)

    def on_snapshot(self, documents: list[Document]) -> None:
        tasks = tuple(document_to_task(doc) for doc in documents)
        self._deliver(FeedEvent(tasks=tasks))

    def on_error(self, exc: Exception) -> None:
        if isinstance(exc, BackendError):
            err = exc
        else:
            err = BackendError(str(exc) or exc.__class__.__name__, code=exc.__class__.__name__)
        logger.warning("Task feed error path=%s code=%s: %s", self.path, err.code, err)
        self._deliver(FeedEvent(error=err))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        registration, self._registration = self._registration, None
        if registration is not None:
            try:
                registration.unsubscribe()
            except Exception:
                logger.exception("Failed to unsubscribe task feed path=%s", self.path)

        # Wake up a consumer blocked in __anext__.
        self._queue.put_nowait(None)
        logger.debug("Task feed closed path=%s delivered=%d", self.path, self.delivered)

    def __aiter__(self) -> FeedSubscription:
        return self

    async def __anext__(self) -> FeedEvent:
        if self._closed:
            raise StopAsyncIteration
        event = await self._queue.get()
        if event is None or self._closed:
            raise StopAsyncIteration
        self.delivered += 1
        return event


class TaskFeed:
    """Opens live subscriptions on users/{uid}/tasks (collection names configurable)."""

    def __init__(
        self,
        documents: DocumentStore,
        *,
        users_collection: str = "users",
        tasks_collection: str = "tasks",
    ) -> None:
        self._documents = documents
        self._users = _segment(users_collection, "users collection")
        self._tasks = _segment(tasks_collection, "tasks collection")

    def collection_path(self, user_id: str) -> str:
        return f"{self._users}/{_segment(user_id, 'user id')}/{self._tasks}"

    def document_path(self, user_id: str, task_id: str) -> str:
        return f"{self.collection_path(user_id)}/{_segment(task_id, 'task id')}"

    def subscribe(self, user_id: str) -> FeedSubscription:
        """
        Start listening. Must be called with a running event loop.

        A failure to register the listener is delivered as the first event,
        just like a push-time error.
        """
        path = self.collection_path(user_id)
        sub = FeedSubscription(asyncio.get_running_loop(), path)
        try:
            registration = self._documents.listen(path, sub.on_snapshot, sub.on_error)
        except Exception as e:
            sub.on_error(e)
        else:
            sub._attach(registration)
        logger.debug("Task feed subscribed path=%s", path)
        return sub
