# src/tasksync/tasks/task_api.py

from __future__ import annotations

from collections.abc import Sequence

from .task_models import Task


def resolve_task(tasks: Sequence[Task], ref: str) -> Task | None:
    """
    Find a task by a user-typed reference:
    - "3"   -> third task as currently listed (1-based)
    - other -> exact task id
    """
    ref = (ref or "").strip()
    if not ref:
        return None

    if ref.isdigit():
        idx = int(ref)
        if 1 <= idx <= len(tasks):
            return tasks[idx - 1]

    for task in tasks:
        if task.id == ref:
            return task
    return None


def format_task_line(position: int, task: Task) -> str:
    mark = "x" if task.done else " "
    title = task.title or "(untitled)"
    return f"{position:>3}. [{mark}] {title}  ({task.id})"


def format_task_list(tasks: Sequence[Task]) -> str:
    if not tasks:
        return "No tasks yet. Add one with /add <title>."
    done = sum(1 for t in tasks if t.done)
    lines = [f"Tasks ({done}/{len(tasks)} done):"]
    lines.extend(format_task_line(i, t) for i, t in enumerate(tasks, start=1))
    return "\n".join(lines)
