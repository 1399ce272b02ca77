# src/tasksync/tasks/task_store.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..core.errors import BackendError
from ..core.observable import Observable
from ..core.ports import SERVER_TIMESTAMP, DocumentStore, IdentityGate
from .task_feed import FeedSubscription, TaskFeed
from .task_models import (
    FIELD_CREATED_AT,
    FIELD_DONE,
    FIELD_TITLE,
    StoreError,
    StoreOperation,
    Task,
)

logger = logging.getLogger(__name__)

OpHandle = asyncio.Task[StoreError | None]


class TaskStore:
    """
    Per-user task list kept in sync with the document store.

    State:
    - tasks: Observable[tuple[Task, ...]], replaced in full on every feed push
    - error: Observable[StoreError | None], the latest failure of any operation

    Rules:
    - every operation asks the identity gate first; no user -> silent no-op
    - writes never touch `tasks`; the next snapshot is the source of truth
    - at most one feed subscription is open; load() replaces the previous one
    - writes are fire-and-forget: they return an asyncio.Task the caller may await,
      resolving to None on success or to the StoreError that was also published

    Must be driven from a running asyncio event loop.
    """

    def __init__(
        self,
        documents: DocumentStore,
        identity: IdentityGate,
        *,
        users_collection: str = "users",
        tasks_collection: str = "tasks",
    ) -> None:
        self._documents = documents
        self._identity = identity
        self._feed = TaskFeed(
            documents,
            users_collection=users_collection,
            tasks_collection=tasks_collection,
        )

        self.tasks: Observable[tuple[Task, ...]] = Observable(())
        self.error: Observable[StoreError | None] = Observable(None)

        self._subscription: FeedSubscription | None = None
        self._subscription_uid: str | None = None
        self._consumer: asyncio.Task[None] | None = None
        self._pending: set[asyncio.Task[Any]] = set()

    @property
    def is_loaded(self) -> bool:
        return self._subscription is not None and not self._subscription.closed

    # ---- reads ----

    def load(self) -> bool:
        """
        Open (or re-open) the live feed for the current user.
        Returns False when nobody is signed in (nothing happens) or when the
        user id cannot form a path (reported on `error` as INVALID_ARGUMENT).
        Switching to a different user drops the previous user's list first.
        """
        uid = self._identity.current_user_id()
        if uid is None:
            logger.debug("load skipped: no signed-in user")
            return False

        previous_uid = self._subscription_uid
        self._stop_feed()

        if previous_uid is not None and previous_uid != uid:
            # Another user's list must not stay visible until this user's first snapshot.
            self.tasks.set(())
            self.error.set(None)
            logger.info("Task list reset for user switch")

        try:
            subscription = self._feed.subscribe(uid)
        except ValueError as e:
            logger.warning("load rejected: %s", e)
            self.tasks.set(())
            self._publish_error(
                StoreError(operation=StoreOperation.LOAD, message=str(e), code="INVALID_ARGUMENT")
            )
            return False

        self._subscription = subscription
        self._subscription_uid = uid
        self._consumer = asyncio.get_running_loop().create_task(
            self._consume(subscription), name=f"task-feed:{subscription.path}"
        )
        logger.info("Task feed started path=%s", subscription.path)
        return True

    async def _consume(self, subscription: FeedSubscription) -> None:
        async for event in subscription:
            if subscription is not self._subscription:
                # Replaced by a newer load(); ignore anything still in flight.
                break

            if event.error is not None:
                # Keep the previous list; only report.
                self._publish_error(
                    StoreError(
                        operation=StoreOperation.LOAD,
                        message=str(event.error),
                        code=event.error.code,
                    )
                )
                continue

            self.tasks.set(event.tasks)
            logger.debug("Task list replaced: %d task(s)", len(event.tasks))

    def _stop_feed(self) -> None:
        subscription, self._subscription = self._subscription, None
        self._subscription_uid = None
        consumer, self._consumer = self._consumer, None

        if subscription is not None:
            subscription.close()
        if consumer is not None and not consumer.done():
            consumer.cancel()

    # ---- writes ----

    def add(self, title: str) -> OpHandle | None:
        uid = self._identity.current_user_id()
        if uid is None:
            logger.debug("add skipped: no signed-in user")
            return None

        async def _run() -> None:
            path = self._feed.collection_path(uid)
            fields = {
                FIELD_TITLE: title,
                FIELD_DONE: False,
                FIELD_CREATED_AT: SERVER_TIMESTAMP,
            }
            doc_id = await self._documents.add(path, fields)
            logger.debug("Task added id=%s path=%s", doc_id, path)

        return self._spawn(StoreOperation.ADD, _run, task_id=None)

    def toggle(self, task: Task) -> OpHandle | None:
        uid = self._identity.current_user_id()
        if uid is None:
            logger.debug("toggle skipped: no signed-in user")
            return None

        new_done = not task.done

        async def _run() -> None:
            path = self._feed.document_path(uid, task.id)
            await self._documents.update(path, {FIELD_DONE: new_done})
            logger.debug("Task toggled id=%s done=%s", task.id, new_done)

        return self._spawn(StoreOperation.TOGGLE, _run, task_id=task.id)

    def delete(self, task: Task) -> OpHandle | None:
        uid = self._identity.current_user_id()
        if uid is None:
            logger.debug("delete skipped: no signed-in user")
            return None

        async def _run() -> None:
            path = self._feed.document_path(uid, task.id)
            await self._documents.delete(path)
            logger.debug("Task deleted id=%s", task.id)

        return self._spawn(StoreOperation.DELETE, _run, task_id=task.id)

    def _spawn(
        self,
        operation: StoreOperation,
        run: Callable[[], Awaitable[None]],
        *,
        task_id: str | None,
    ) -> OpHandle:
        async def _guarded() -> StoreError | None:
            try:
                await run()
            except BackendError as e:
                logger.warning("%s failed task_id=%s code=%s: %s", operation.value, task_id, e.code, e)
                err = StoreError(operation=operation, message=str(e), task_id=task_id, code=e.code)
            except ValueError as e:
                logger.warning("%s rejected task_id=%s: %s", operation.value, task_id, e)
                err = StoreError(
                    operation=operation, message=str(e), task_id=task_id, code="INVALID_ARGUMENT"
                )
            except Exception as e:
                logger.exception("%s crashed task_id=%s", operation.value, task_id)
                err = StoreError(
                    operation=operation,
                    message=str(e) or e.__class__.__name__,
                    task_id=task_id,
                    code=e.__class__.__name__,
                )
            else:
                return None

            self._publish_error(err)
            return err

        handle = asyncio.get_running_loop().create_task(
            _guarded(), name=f"task-{operation.value}"
        )
        self._pending.add(handle)
        handle.add_done_callback(self._pending.discard)
        return handle

    # ---- error channel / lifecycle ----

    def _publish_error(self, err: StoreError) -> None:
        self.error.set(err)

    def clear_error(self) -> None:
        self.error.set(None)

    async def wait_pending(self) -> None:
        """Wait for in-flight writes (used on shutdown)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def close(self) -> None:
        """
        Stop the feed and forget the cached list (sign-out / teardown).
        In-flight writes are left to finish on their own.
        """
        was_loaded = self.is_loaded
        self._stop_feed()
        self.tasks.set(())
        self.error.set(None)
        if was_loaded:
            logger.info("Task feed stopped")
