# src/tasksync/core/state.py

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..auth.session import AuthSession
from ..tasks.task_store import TaskStore
from .ports import AuthProvider, DocumentStore


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    auth_provider: AuthProvider
    documents: DocumentStore
    auth: AuthSession
    task_store: TaskStore

    backend_name: str = "memory"

    # Listener removers registered by the composition root; run on shutdown.
    cleanups: list[Callable[[], None]] = field(default_factory=list)
