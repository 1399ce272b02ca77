# src/tasksync/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from ..core.errors import BackendError

# Field names inside a task document.
FIELD_TITLE = "title"
FIELD_DONE = "done"
FIELD_CREATED_AT = "createdAt"


class StoreOperation(StrEnum):
    LOAD = "load"
    ADD = "add"
    TOGGLE = "toggle"
    DELETE = "delete"


@dataclass(slots=True, frozen=True)
class Task:
    """
    One to-do item as last seen in a snapshot.

    `id` is assigned by the backend on create and never changes.
    """

    id: str
    title: str = ""
    done: bool = False


@dataclass(slots=True, frozen=True)
class StoreError:
    """Failure published on TaskStore.error."""

    operation: StoreOperation
    message: str
    task_id: str | None = None
    code: str = "UNKNOWN"

    def describe(self) -> str:
        target = f" task={self.task_id}" if self.task_id else ""
        return f"{self.operation.value} failed{target}: {self.message}"


@dataclass(slots=True, frozen=True)
class FeedEvent:
    """
    One delivery from the task feed: either a full task list or an error, never both.
    """

    tasks: tuple[Task, ...] = ()
    error: BackendError | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None
