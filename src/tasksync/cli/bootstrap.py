# src/tasksync/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the backend (Firebase or in-memory) and wires AuthSession + TaskStore into AppState,
- ties the task feed lifecycle to the auth state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from ..auth.session import AuthIdentityGate, AuthSession, AuthState, AuthStatus
from ..backends.memory import InMemoryAuthProvider, InMemoryDocumentStore
from ..config import BACKEND_FIREBASE, BACKEND_MEMORY, get_settings
from ..core.ports import AuthProvider, DocumentStore
from ..core.state import AppState
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def _create_backend(settings) -> tuple[str, AuthProvider, DocumentStore]:
    if settings.backend == BACKEND_FIREBASE:
        try:
            # Imported lazily: the Google SDK is heavy and not needed for the memory backend.
            from ..backends.firebase import FirebaseAuthProvider, FirestoreDocumentStore

            provider = FirebaseAuthProvider(
                settings.firebase_api_key or "",
                timeout_seconds=settings.auth_timeout_seconds,
            )
            documents = FirestoreDocumentStore.from_settings(settings)
            return BACKEND_FIREBASE, provider, documents
        except Exception:
            # Fallback for demos / local runs without a configured Firebase project.
            logger.exception("Firebase backend unavailable; falling back to in-memory backend.")

    return BACKEND_MEMORY, InMemoryAuthProvider(), InMemoryDocumentStore()


def bind_task_store_to_auth(auth: AuthSession, task_store: TaskStore) -> Callable[[], None]:
    """
    Keep the task feed in step with sign-in state:
    - authenticated   -> load() (opens or replaces the feed for the new user)
    - unauthenticated -> close() (stops the feed, forgets the cached list)

    Must be called with a running event loop.
    Returns a callable that removes the binding.
    """

    def _on_auth(state: AuthState) -> None:
        if state.is_authenticated:
            task_store.load()
        elif state.status is AuthStatus.UNAUTHENTICATED:
            task_store.close()

    return auth.state.subscribe(_on_auth, emit_current=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    Must be called with a running event loop (the task feed may start immediately).
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    backend_name, provider, documents = _create_backend(settings)

    auth = AuthSession(provider)
    task_store = TaskStore(
        documents,
        AuthIdentityGate(provider),
        users_collection=settings.users_collection,
        tasks_collection=settings.tasks_collection,
    )

    state = AppState(
        settings=settings,
        auth_provider=provider,
        documents=documents,
        auth=auth,
        task_store=task_store,
        backend_name=backend_name,
    )

    state.cleanups.append(bind_task_store_to_auth(auth, task_store))
    logger.info("State ready backend=%s", backend_name)
    return state
